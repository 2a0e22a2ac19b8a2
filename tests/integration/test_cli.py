"""
End-to-end tests for the cnet command line.

Each test runs in an isolated working directory:
- init seeds a consistent network
- create / link / classify keep it consistent
- check --strict fails on defects
- remove records follow-ups in the ledger
"""

from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from cnet.cli import cli
from cnet.config import load_config
from cnet.ledger import ChangeLedger


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    monkeypatch.setenv("USER", "tester")
    return CliRunner()


def _run(runner: CliRunner, *args: str):
    return runner.invoke(cli, list(args), catch_exceptions=False)


class TestInit:
    """Tests for cnet init."""

    def test_init_creates_consistent_network(self, runner: CliRunner):
        with runner.isolated_filesystem():
            result = _run(runner, "init", "demo")
            assert result.exit_code == 0
            assert Path("cnet.toml").exists()
            assert Path(".context-network.md").exists()
            assert Path("context-network/index.md").exists()
            assert "Seeded nodes: index, meta/maintenance" in result.output

            check = _run(runner, "check", "--strict")
            assert check.exit_code == 0
            assert "No defects found" in check.output

    def test_init_twice_keeps_pointer(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init", "--location", "./first")
            result = _run(runner, "init", "--location", "./second")
            assert result.exit_code == 0
            assert "already exists" in result.output
            assert load_config(Path.cwd()).location == (Path.cwd() / "first").resolve()

    def test_commands_outside_project_fail_cleanly(self, runner: CliRunner):
        with runner.isolated_filesystem():
            result = runner.invoke(cli, ["check"])
            assert result.exit_code == 1
            assert "pointer" in result.output.lower()


class TestEditing:
    """Tests for create / link / classify / unlink / remove."""

    def test_create_under_parent(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            result = _run(
                runner, "create", "foundation/overview", "Overview", "--parent", "index",
                "--domain", "Runtime", "--stability", "semi-stable",
                "--abstraction", "conceptual", "--confidence", "established",
            )
            assert result.exit_code == 0
            assert "Created [foundation/overview] Overview" in result.output
            assert _run(runner, "check", "--strict").exit_code == 0

            show = _run(runner, "show", "foundation/overview")
            assert "is-child-of [index]" in show.output

    def test_unclassified_node_fails_strict_check(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            _run(runner, "create", "draft", "Draft", "--parent", "index", "--domain", "Notes")

            result = runner.invoke(cli, ["check", "--strict", "--kind", "UnclassifiedNode"])
            assert result.exit_code == 1
            assert "1 defect(s)" in result.output

            _run(runner, "classify", "draft", "--stability", "dynamic",
                 "--abstraction", "detailed", "--confidence", "speculative")
            assert _run(runner, "check", "--strict").exit_code == 0

    def test_link_one_way_then_unlink(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            result = _run(runner, "link", "meta/maintenance", "depends-on", "index", "--one-way")
            assert "Added [meta/maintenance] depends-on [index]" in result.output
            assert runner.invoke(cli, ["check", "--strict"]).exit_code == 1

            unlink = _run(runner, "unlink", "meta/maintenance", "depends-on", "index")
            assert "Removed [meta/maintenance] depends-on [index]" in unlink.output
            assert _run(runner, "check", "--strict").exit_code == 0

    def test_link_unknown_target(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            result = runner.invoke(cli, ["link", "index", "relates-to", "ghost"])
            assert result.exit_code == 1
            assert "ghost" in result.output

    def test_create_outside_store_rejected(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            result = runner.invoke(cli, ["create", "../escape", "Escape"])
            assert result.exit_code == 1
            assert "Invalid node id" in result.output
            assert not Path("escape.md").exists()

    def test_remove_records_follow_up(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            result = _run(runner, "remove", "meta/maintenance", "--yes")
            assert result.exit_code == 0
            assert "follow-up: remove or retarget index -[is-parent-of]-> meta/maintenance" in result.output

            entries = ChangeLedger(load_config(Path.cwd()).ledger_path).read_all()
            assert entries[-1].summary == "Remove meta/maintenance"

    def test_remove_aborts_without_confirmation(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            result = runner.invoke(cli, ["remove", "meta/maintenance"], input="n\n")
            assert result.exit_code == 1
            assert Path("context-network/meta/maintenance.md").exists()


class TestReading:
    """Tests for traverse / tasks / ledger / types / status."""

    def test_traverse_defaults_to_root(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            result = _run(runner, "traverse")
            assert result.output.splitlines() == ["index", "meta/maintenance"]

            limited = _run(runner, "traverse", "--limit", "1")
            assert limited.output.splitlines() == ["index"]

    def test_traverse_by_task(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            with Path("cnet.toml").open("a") as f:
                f.write('onboarding = ["meta/maintenance", "index"]\n')

            result = _run(runner, "traverse", "--strategy", "by-task", "--task", "onboarding")
            assert result.output.splitlines() == ["meta/maintenance", "index"]
            assert "onboarding (2)" in _run(runner, "tasks").output

            missing = runner.invoke(cli, ["traverse", "--strategy", "by-task", "--task", "deploy"])
            assert missing.exit_code == 1

    def test_ledger_and_types(self, runner: CliRunner):
        with runner.isolated_filesystem():
            _run(runner, "init")
            assert "Bootstrap" in _run(runner, "ledger").output
            assert "is-depended-on-by" in _run(runner, "types").output
            assert _run(runner, "status").exit_code == 0
