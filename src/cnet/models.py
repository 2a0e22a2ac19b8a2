"""Data models for the context network: nodes, classification, relationships."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


def today() -> str:
    """Current date as YYYY-MM-DD (UTC), the format used in node files."""
    return datetime.now(UTC).date().isoformat()


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class Stability(StrEnum):
    STATIC = "static"
    SEMI_STABLE = "semi-stable"
    DYNAMIC = "dynamic"


class Abstraction(StrEnum):
    CONCEPTUAL = "conceptual"
    STRUCTURAL = "structural"
    DETAILED = "detailed"


class Confidence(StrEnum):
    ESTABLISHED = "established"
    EVOLVING = "evolving"
    SPECULATIVE = "speculative"


# Dimension name -> enum (None for the open Domain vocabulary)
DIMENSIONS: dict[str, type[StrEnum] | None] = {
    "domain": None,
    "stability": Stability,
    "abstraction": Abstraction,
    "confidence": Confidence,
}


@dataclass(frozen=True)
class Classification:
    """One value per dimension; None means the dimension is absent."""

    domain: str | None = None
    stability: Stability | None = None
    abstraction: Abstraction | None = None
    confidence: Confidence | None = None

    def missing_dimensions(self) -> list[str]:
        return [name for name in DIMENSIONS if not getattr(self, name)]

    @property
    def is_complete(self) -> bool:
        return not self.missing_dimensions()

    @classmethod
    def from_values(cls, values: dict[str, str]) -> Classification:
        """Build from raw label -> text pairs. Invalid enum values become None."""
        kwargs: dict[str, object] = {}
        for name, enum_cls in DIMENSIONS.items():
            raw = values.get(name, "").strip()
            if not raw:
                continue
            if enum_cls is None:
                kwargs[name] = raw
                continue
            try:
                kwargs[name] = enum_cls(raw.lower())
            except ValueError:
                continue
        return cls(**kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------


class RelationshipType(StrEnum):
    # hierarchical
    IS_PARENT_OF = "is-parent-of"
    IS_CHILD_OF = "is-child-of"
    IS_VERSION_OF = "is-version-of"
    # associative
    RELATES_TO = "relates-to"
    DEPENDS_ON = "depends-on"
    IS_DEPENDED_ON_BY = "is-depended-on-by"
    IMPLEMENTS = "implements"
    IS_IMPLEMENTED_BY = "is-implemented-by"
    EXTENDS = "extends"
    IS_EXTENDED_BY = "is-extended-by"
    CONTRADICTS = "contradicts"
    COMPLEMENTS = "complements"
    # cross-domain
    INTERFACES_WITH = "interfaces-with"
    TRANSLATES_TO = "translates-to"
    TRANSLATES_FROM = "translates-from"
    IMPACTS = "impacts"
    IS_IMPACTED_BY = "is-impacted-by"


class RelationshipCategory(StrEnum):
    HIERARCHICAL = "hierarchical"
    ASSOCIATIVE = "associative"
    CROSS_DOMAIN = "cross-domain"


_T = RelationshipType
_C = RelationshipCategory

# type -> (inverse, category). Adding a type is one line here.
_RELATIONSHIP_TABLE: dict[RelationshipType, tuple[RelationshipType, RelationshipCategory]] = {
    _T.IS_PARENT_OF: (_T.IS_CHILD_OF, _C.HIERARCHICAL),
    _T.IS_CHILD_OF: (_T.IS_PARENT_OF, _C.HIERARCHICAL),
    _T.IS_VERSION_OF: (_T.IS_VERSION_OF, _C.HIERARCHICAL),
    _T.RELATES_TO: (_T.RELATES_TO, _C.ASSOCIATIVE),
    _T.DEPENDS_ON: (_T.IS_DEPENDED_ON_BY, _C.ASSOCIATIVE),
    _T.IS_DEPENDED_ON_BY: (_T.DEPENDS_ON, _C.ASSOCIATIVE),
    _T.IMPLEMENTS: (_T.IS_IMPLEMENTED_BY, _C.ASSOCIATIVE),
    _T.IS_IMPLEMENTED_BY: (_T.IMPLEMENTS, _C.ASSOCIATIVE),
    _T.EXTENDS: (_T.IS_EXTENDED_BY, _C.ASSOCIATIVE),
    _T.IS_EXTENDED_BY: (_T.EXTENDS, _C.ASSOCIATIVE),
    _T.CONTRADICTS: (_T.CONTRADICTS, _C.ASSOCIATIVE),
    _T.COMPLEMENTS: (_T.COMPLEMENTS, _C.ASSOCIATIVE),
    _T.INTERFACES_WITH: (_T.INTERFACES_WITH, _C.CROSS_DOMAIN),
    _T.TRANSLATES_TO: (_T.TRANSLATES_FROM, _C.CROSS_DOMAIN),
    _T.TRANSLATES_FROM: (_T.TRANSLATES_TO, _C.CROSS_DOMAIN),
    _T.IMPACTS: (_T.IS_IMPACTED_BY, _C.CROSS_DOMAIN),
    _T.IS_IMPACTED_BY: (_T.IMPACTS, _C.CROSS_DOMAIN),
}

INVERSES: dict[RelationshipType, RelationshipType] = {
    t: inv for t, (inv, _) in _RELATIONSHIP_TABLE.items()
}
CATEGORIES: dict[RelationshipType, RelationshipCategory] = {
    t: cat for t, (_, cat) in _RELATIONSHIP_TABLE.items()
}


def inverse_of(rel_type: str) -> RelationshipType | None:
    """Inverse type, or None if rel_type is not in the table."""
    return INVERSES.get(rel_type)  # type: ignore[call-overload]


def category_of(rel_type: str) -> RelationshipCategory | None:
    return CATEGORIES.get(rel_type)  # type: ignore[call-overload]


@dataclass(frozen=True)
class Relationship:
    """A directed edge declared by ``source``.

    ``type`` is kept as the raw string so that unknown types survive a load
    and are reported by the checker instead of being dropped.
    """

    source: str
    target: str
    type: str
    description: str = ""

    @property
    def is_known(self) -> bool:
        return self.type in INVERSES

    def inverse(self, description: str = "") -> Relationship | None:
        inv = inverse_of(self.type)
        if inv is None:
            return None
        return Relationship(
            source=self.target,
            target=self.source,
            type=str(inv),
            description=description or self.description,
        )


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------

FLAG_UNCLASSIFIED = "unclassified"
FLAG_MALFORMED_RELATIONSHIP = "malformed-relationship"
# Set by the store when the file is not valid UTF-8 (decoded with replacement characters)
FLAG_UNDECODABLE = "undecodable"


@dataclass(frozen=True)
class ChangeRecord:
    """A dated line from a node's Change History section."""

    date: str
    description: str


@dataclass
class NodeMetadata:
    created_at: str = ""
    updated_at: str = ""
    updated_by: str = ""


@dataclass
class Node:
    """A node loaded from <store>/<id>.md."""

    id: str
    title: str
    purpose: str = ""
    classification: Classification = field(default_factory=Classification)
    content: str = ""
    relationships: list[Relationship] = field(default_factory=list)
    metadata: NodeMetadata = field(default_factory=NodeMetadata)
    change_history: list[ChangeRecord] = field(default_factory=list)

    # Free-form level-2 sections, preserved in file order
    extra_sections: list[tuple[str, str]] = field(default_factory=list)
    # Load-time defects (see FLAG_*); derived on parse, never written out
    flags: set[str] = field(default_factory=set)
    # Raw relationship lines that could not be parsed, written back verbatim
    malformed_relationships: list[str] = field(default_factory=list)

    @property
    def is_unclassified(self) -> bool:
        return FLAG_UNCLASSIFIED in self.flags or not self.classification.is_complete

    def relationships_to(self, target: str) -> list[Relationship]:
        return [r for r in self.relationships if r.target == target]

    def declares(self, rel_type: str, target: str) -> bool:
        return any(r.type == rel_type and r.target == target for r in self.relationships)

    def refresh_flags(self) -> None:
        """Recompute load-time flags from the current field values."""
        self.flags.discard(FLAG_UNCLASSIFIED)
        self.flags.discard(FLAG_MALFORMED_RELATIONSHIP)
        if not self.classification.is_complete:
            self.flags.add(FLAG_UNCLASSIFIED)
        if self.malformed_relationships:
            self.flags.add(FLAG_MALFORMED_RELATIONSHIP)

    def touch(self, updated_by: str, date: str | None = None) -> None:
        """Stamp Last Updated / Updated By before a save."""
        self.metadata.updated_at = date or today()
        if updated_by:
            self.metadata.updated_by = updated_by
