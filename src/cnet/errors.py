"""Exceptions raised by cnet.

Each error also derives from the nearest builtin so callers that catch
FileExistsError / KeyError / OSError keep working.
"""

from __future__ import annotations


class CNetError(Exception):
    """Base class for all cnet errors."""


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


class MissingPointer(CNetError, FileNotFoundError):
    """No discovery pointer file at the given root."""


class MalformedPointer(CNetError, ValueError):
    """Pointer file exists but has no usable Location."""


class AlreadyInitialized(CNetError, FileExistsError):
    """initialize() called on a root that already has a pointer."""


# ---------------------------------------------------------------------------
# Store / navigation
# ---------------------------------------------------------------------------


class DuplicateId(CNetError, FileExistsError):
    """create() called with an id that already exists."""


class InvalidNodeId(CNetError, ValueError):
    """Id that would resolve outside the node store (absolute, "..", hidden segment)."""


class UnknownNode(CNetError, KeyError):
    """Node id not present in the store or graph."""

    def __str__(self) -> str:
        # KeyError repr-quotes its argument
        return str(self.args[0]) if self.args else ""


class UnknownTask(CNetError, KeyError):
    """No curated sequence configured for the task name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class LedgerWriteError(CNetError, OSError):
    """A ledger append could not be durably written."""
