"""CNetConfig: project-local config for a context network.

Default layout (all relative to the project root):

    cnet.toml                 # project config (git-tracked)
    .context-network.md       # discovery pointer -> node store location
    context-network/          # node store (git-tracked)
        index.md
        foundation/overview.md
        .cnet/
            ledger.jsonl      # append-only change ledger

cnet.toml example:

    [network]
    name = "my-project"
    root_node = "index"            # reachability root for `cnet check`
    # ledger = ".cnet/ledger.jsonl"  # relative to the node store
    # author = "alice"               # default Updated By (falls back to $USER)

    [tasks]
    onboarding = ["index", "foundation/overview", "foundation/architecture"]
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from cnet.discovery import POINTER_FILENAME, resolve

_CONFIG_FILENAME = "cnet.toml"
_DEFAULT_ROOT_NODE = "index"
_DEFAULT_LEDGER = ".cnet/ledger.jsonl"


@dataclass
class CNetConfig:
    """Resolved configuration for a context network project."""

    root: Path                      # directory that holds cnet.toml / the pointer
    name: str = ""
    root_node: str = _DEFAULT_ROOT_NODE
    ledger: str = _DEFAULT_LEDGER
    author: str = ""
    tasks: dict[str, list[str]] = field(default_factory=dict)

    @property
    def config_path(self) -> Path:
        return self.root / _CONFIG_FILENAME

    @property
    def location(self) -> Path:
        """Node store root, resolved through the discovery pointer."""
        return resolve(self.root)

    @property
    def ledger_path(self) -> Path:
        path = Path(self.ledger).expanduser()
        return path if path.is_absolute() else self.location / path

    @property
    def updated_by(self) -> str:
        return self.author or os.environ.get("USER", "") or os.environ.get("USERNAME", "")


def _find_root(start: Path) -> Path:
    """Walk upward from start looking for cnet.toml or a discovery pointer."""
    for directory in (start, *start.parents):
        if (directory / _CONFIG_FILENAME).exists() or (directory / POINTER_FILENAME).exists():
            return directory
    return start


def _tasks(raw: Any) -> dict[str, list[str]]:
    if not isinstance(raw, dict):
        return {}
    tasks: dict[str, list[str]] = {}
    for name, sequence in raw.items():
        if isinstance(sequence, list):
            tasks[str(name)] = [str(s) for s in sequence]
    return tasks


def load_config(root: Path | str | None = None) -> CNetConfig:
    """Load cnet.toml from root (or search upward from cwd if root is None)."""
    root_path = _find_root(Path(root) if root else Path.cwd()).resolve()
    config_path = root_path / _CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_path.exists():
        with config_path.open("rb") as f:
            raw = tomllib.load(f)

    net_section = raw.get("network", {})

    return CNetConfig(
        root=root_path,
        name=str(net_section.get("name", root_path.name)),
        root_node=str(net_section.get("root_node", _DEFAULT_ROOT_NODE)),
        ledger=str(net_section.get("ledger", _DEFAULT_LEDGER)),
        author=str(net_section.get("author", "")),
        tasks=_tasks(raw.get("tasks", {})),
    )


def init_config(root: Path, name: str | None = None) -> Path:
    """Write a default cnet.toml at root. Raises if already exists."""
    config_path = root / _CONFIG_FILENAME
    if config_path.exists():
        msg = f"cnet.toml already exists at {config_path}"
        raise FileExistsError(msg)

    project_name = name or root.name
    content = f"""\
[network]
name = {json.dumps(project_name, ensure_ascii=False)}
root_node = "{_DEFAULT_ROOT_NODE}"   # reachability root for `cnet check`
# ledger = "{_DEFAULT_LEDGER}"   # relative to the node store location
# author = ""                     # default Updated By; falls back to $USER

# Curated reading orders for `cnet traverse --strategy by-task --task NAME`
[tasks]
# onboarding = ["index", "foundation/overview"]
"""
    root.mkdir(parents=True, exist_ok=True)
    config_path.write_text(content, encoding="utf-8")
    return config_path
