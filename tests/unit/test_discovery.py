"""
Unit tests for the discovery pointer.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from cnet import discovery
from cnet.errors import AlreadyInitialized, MalformedPointer, MissingPointer


class TestResolve:
    """Tests for resolve / read_pointer."""

    def test_missing_pointer(self, tmp_path: Path):
        with pytest.raises(MissingPointer):
            discovery.resolve(tmp_path)

    def test_missing_pointer_is_file_not_found(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            discovery.resolve(tmp_path)

    def test_relative_location(self, tmp_path: Path):
        (tmp_path / ".context-network.md").write_text("Location: ./notes\n")
        assert discovery.resolve(tmp_path) == (tmp_path / "notes").resolve()

    def test_absolute_location(self, tmp_path: Path):
        target = tmp_path / "elsewhere"
        (tmp_path / ".context-network.md").write_text(f"- **Location**: {target}\n")
        assert discovery.resolve(tmp_path) == target.resolve()

    def test_markdown_pointer(self, tmp_path: Path):
        (tmp_path / ".context-network.md").write_text(
            "# Context Network Discovery\n\n**Location:** ./cn\n**Purpose**: notes\n"
        )
        pointer = discovery.read_pointer(tmp_path)
        assert pointer.location == "./cn"
        assert pointer.extra == {"purpose": "notes"}

    def test_missing_location_key(self, tmp_path: Path):
        (tmp_path / ".context-network.md").write_text("Purpose: notes\n")
        with pytest.raises(MalformedPointer):
            discovery.resolve(tmp_path)

    def test_empty_location(self, tmp_path: Path):
        (tmp_path / ".context-network.md").write_text("Location:\n")
        with pytest.raises(MalformedPointer):
            discovery.resolve(tmp_path)


class TestInitialize:
    """Tests for initialize / relocate."""

    def test_creates_pointer_and_store(self, tmp_path: Path):
        location = discovery.initialize(tmp_path, "./context-network")
        assert location == (tmp_path / "context-network").resolve()
        assert location.is_dir()
        assert discovery.resolve(tmp_path) == location

    def test_second_initialize_fails_and_keeps_first(self, tmp_path: Path):
        first = discovery.initialize(tmp_path, "./first")
        pointer_before = (tmp_path / ".context-network.md").read_text()

        with pytest.raises(AlreadyInitialized):
            discovery.initialize(tmp_path, "./second")

        assert (tmp_path / ".context-network.md").read_text() == pointer_before
        assert discovery.resolve(tmp_path) == first
        assert not (tmp_path / "second").exists()

    def test_relocate(self, tmp_path: Path):
        discovery.initialize(tmp_path, "./first")
        moved = discovery.relocate(tmp_path, "./second")
        assert moved == (tmp_path / "second").resolve()
        assert discovery.resolve(tmp_path) == moved

    def test_relocate_requires_pointer(self, tmp_path: Path):
        with pytest.raises(MissingPointer):
            discovery.relocate(tmp_path, "./x")
