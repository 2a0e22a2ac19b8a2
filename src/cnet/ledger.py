"""Append-only change ledger (JSONL).

One entry per line:
    {"date": "2026-01-02", "summary": "...", "nodes_modified": [...],
     "relationships_added": [...], "relationships_modified": [...],
     "follow_ups": [...]}

Concurrent appends: each entry is a single write() on an O_APPEND descriptor
under flock(LOCK_EX), then fsync. There is no update or delete; corrections
are new entries.
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from cnet.errors import LedgerWriteError
from cnet.models import today

if TYPE_CHECKING:
    from collections.abc import Iterable

    from cnet.models import Relationship

logger = logging.getLogger("cnet.ledger")


def format_relationship(rel: Relationship) -> str:
    return f"{rel.source} -[{rel.type}]-> {rel.target}"


@dataclass(frozen=True)
class ChangeLedgerEntry:
    date: str
    nodes_modified: tuple[str, ...] = ()
    relationships_added: tuple[str, ...] = ()
    relationships_modified: tuple[str, ...] = ()
    follow_ups: tuple[str, ...] = ()
    summary: str = ""

    @classmethod
    def for_edit(
        cls,
        summary: str,
        *,
        nodes_modified: Iterable[str] = (),
        relationships_added: Iterable[Relationship] = (),
        relationships_modified: Iterable[Relationship] = (),
        follow_ups: Iterable[str] = (),
        date: str | None = None,
    ) -> ChangeLedgerEntry:
        """Entry dated today, with relationships rendered as "a -[type]-> b"."""
        return cls(
            date=date or today(),
            nodes_modified=tuple(dict.fromkeys(nodes_modified)),
            relationships_added=tuple(format_relationship(r) for r in relationships_added),
            relationships_modified=tuple(format_relationship(r) for r in relationships_modified),
            follow_ups=tuple(follow_ups),
            summary=summary,
        )

    def to_dict(self) -> dict[str, Any]:
        return {k: list(v) if isinstance(v, tuple) else v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> ChangeLedgerEntry:
        return cls(
            date=str(d.get("date", "")),
            nodes_modified=tuple(d.get("nodes_modified", ())),
            relationships_added=tuple(d.get("relationships_added", ())),
            relationships_modified=tuple(d.get("relationships_modified", ())),
            follow_ups=tuple(d.get("follow_ups", ())),
            summary=str(d.get("summary", "")),
        )


class ChangeLedger:
    """JSONL-backed append-only ledger."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def append(self, entry: ChangeLedgerEntry) -> None:
        """Durably append one entry. Raises LedgerWriteError on any I/O failure."""
        line = (json.dumps(entry.to_dict(), ensure_ascii=False) + "\n").encode("utf-8")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o644)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX)
                written = os.write(fd, line)
                if written != len(line):
                    msg = f"short write to ledger {self.path}: {written}/{len(line)} bytes"
                    raise OSError(msg)
                os.fsync(fd)
            finally:
                os.close(fd)  # releases the flock
        except OSError as exc:
            msg = f"Failed to append to change ledger {self.path}: {exc}"
            raise LedgerWriteError(msg) from exc
        logger.info("ledger: %s (%d nodes)", entry.summary or "entry", len(entry.nodes_modified))

    def read_all(self) -> list[ChangeLedgerEntry]:
        """All entries in append order. Undecodable lines are logged and skipped."""
        if not self.path.exists():
            return []
        entries: list[ChangeLedgerEntry] = []
        with self.path.open(encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    obj = json.loads(line)
                except json.JSONDecodeError:
                    logger.warning("ledger %s:%d: undecodable entry skipped", self.path, lineno)
                    continue
                if isinstance(obj, dict):
                    entries.append(ChangeLedgerEntry.from_dict(obj))
        return entries
