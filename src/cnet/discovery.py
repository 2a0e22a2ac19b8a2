"""Discovery pointer: find the node store from a project root.

The pointer is a small key-value file at a well-known path:

    <root>/.context-network.md
        # Context Network Discovery

        **Location**: ./context-network
        **Created**: 2026-01-02

Only Location is required. Relative locations resolve against the directory
holding the pointer. The pointer is written once by initialize() and only
rewritten by relocate().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from cnet.errors import AlreadyInitialized, MalformedPointer, MissingPointer
from cnet.models import today

POINTER_FILENAME = ".context-network.md"
DEFAULT_LOCATION = "./context-network"

logger = logging.getLogger("cnet.discovery")


@dataclass
class DiscoveryPointer:
    location: str
    extra: dict[str, str] = field(default_factory=dict)


def pointer_path(root_hint: Path | str) -> Path:
    return Path(root_hint) / POINTER_FILENAME


def _parse_pointer(text: str) -> dict[str, str]:
    """Parse "Key: Value" lines, tolerating markdown bullets and bold."""
    values: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip().lstrip("-*+ ").strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        key, _, value = line.partition(":")
        key = key.strip().strip("*").strip().lower()
        value = value.strip().strip("*").strip()
        if key:
            values.setdefault(key, value)
    return values


def read_pointer(root_hint: Path | str) -> DiscoveryPointer:
    """Read and validate the pointer record at root_hint."""
    path = pointer_path(root_hint)
    if not path.is_file():
        msg = f"No discovery pointer at {path}"
        raise MissingPointer(msg)
    values = _parse_pointer(path.read_text())
    location = values.pop("location", "")
    if not location:
        msg = f"Discovery pointer {path} has no Location"
        raise MalformedPointer(msg)
    return DiscoveryPointer(location=location, extra=values)


def resolve(root_hint: Path | str) -> Path:
    """Return the node store root named by the pointer at root_hint."""
    pointer = read_pointer(root_hint)
    location = Path(pointer.location).expanduser()
    if not location.is_absolute():
        location = Path(root_hint) / location
    return location.resolve()


def _write_pointer(path: Path, location: str) -> None:
    content = (
        "# Context Network Discovery\n\n"
        "The context network for this project lives at the location below.\n\n"
        f"**Location**: {location}\n"
        f"**Created**: {today()}\n"
    )
    tmp = path.with_suffix(".md.tmp")
    tmp.write_text(content)
    tmp.replace(path)


def initialize(root_hint: Path | str, default_location: str = DEFAULT_LOCATION) -> Path:
    """Create the pointer and an empty node store. Refuses to overwrite."""
    path = pointer_path(root_hint)
    if path.exists():
        msg = f"Discovery pointer already exists at {path}"
        raise AlreadyInitialized(msg)
    Path(root_hint).mkdir(parents=True, exist_ok=True)
    _write_pointer(path, default_location)
    location = resolve(root_hint)
    location.mkdir(parents=True, exist_ok=True)
    logger.info("initialized context network at %s", location)
    return location


def relocate(root_hint: Path | str, new_location: str) -> Path:
    """Point an initialised project at a new store location (files are not moved)."""
    read_pointer(root_hint)
    _write_pointer(pointer_path(root_hint), new_location)
    location = resolve(root_hint)
    logger.info("pointer relocated to %s", location)
    return location
