"""Parse and render node markdown files.

Node file layout (sections recognised by heading text, case-insensitive):

    # Title

    ## Purpose
    One paragraph.

    ## Classification
    - **Domain:** Runtime
    - **Stability:** semi-stable
    - **Abstraction:** structural
    - **Confidence:** established

    ## Content
    Opaque payload, kept verbatim (### sub-headings allowed).

    ## Relationships
    - [[foundation/overview]] — is-child-of — Parent overview

    ## Metadata
    - **Created:** 2026-01-02
    - **Last Updated:** 2026-01-03
    - **Updated By:** alice

    ## Change History
    - 2026-01-02: Created

Any other "## " section is kept in Node.extra_sections and written back after
Content (after Change History when one of them repeats a known heading).
"""

from __future__ import annotations

import posixpath
import re

from cnet.models import (
    ChangeRecord,
    Classification,
    Node,
    NodeMetadata,
    Relationship,
)

_TITLE_RE = re.compile(r"^#\s+(.+?)(?:\s+#+)?\s*$")
_SECTION_RE = re.compile(r"^##\s+(.+?)(?:\s+#+)?\s*$")
_FENCE_RE = re.compile(r"^\s*(`{3,}|~{3,})(.*)$")
_TRAILING_HASHES_RE = re.compile(r"\s#+$")

# "- **Label:** value", "**Label**: value", "Label: value"
_FIELD_RE = re.compile(r"^\s*(?:[-*+]\s+)?\**([A-Za-z][A-Za-z ]*?)\**\s*:\s*\**\s*(.*?)\s*$")
_BULLET_RE = re.compile(r"^\s*[-*+]\s+(.*\S)\s*$")
_REL_SPLIT_RE = re.compile(r"\s+(?:—|–|--)\s+")
_HISTORY_RE = re.compile(r"^\s*[-*+]\s+\**(\d{4}-\d{2}-\d{2})\**\s*(?::|—|–|-)\s*(.*?)\s*$")

_WIKILINK_RE = re.compile(r"^\[\[([^\]|]+)(?:\|[^\]]*)?\]\]$")
_MDLINK_RE = re.compile(r"^\[[^\]]*\]\(([^)\s]+)\)$")

PURPOSE = "purpose"
CLASSIFICATION = "classification"
CONTENT = "content"
RELATIONSHIPS = "relationships"
METADATA = "metadata"
CHANGE_HISTORY = "change history"

_KNOWN = {PURPOSE, CLASSIFICATION, CONTENT, RELATIONSHIPS, METADATA, CHANGE_HISTORY}
_METADATA_LABELS = {
    "created": "created_at",
    "last updated": "updated_at",
    "updated": "updated_at",
    "updated by": "updated_by",
}


# ---------------------------------------------------------------------------
# Parse
# ---------------------------------------------------------------------------


def _fence_open(line: str) -> str | None:
    m = _FENCE_RE.match(line)
    return m.group(1) if m else None


def _closes(fence: str, line: str) -> bool:
    """A closing fence uses the opener's character, at least as many, and no info string."""
    m = _FENCE_RE.match(line)
    if not m or m.group(2).strip():
        return False
    marker = m.group(1)
    return marker[0] == fence[0] and len(marker) >= len(fence)


def _split_once(lines: list[str], literal: set[int]) -> tuple[str, list[tuple[str, list[str]]], int | None]:
    title = ""
    sections: list[tuple[str, list[str]]] = []
    fence: str | None = None
    fence_at: int | None = None
    for i, line in enumerate(lines):
        if fence is not None:
            if _closes(fence, line):
                fence = None
        elif i not in literal and (opener := _fence_open(line)):
            fence, fence_at = opener, i
        else:
            if not title and not sections:
                m = _TITLE_RE.match(line)
                if m:
                    title = m.group(1)
                    continue
            m = _SECTION_RE.match(line)
            if m:
                sections.append((m.group(1).strip(), []))
                continue
        if sections:
            sections[-1][1].append(line)
    return title, sections, fence_at if fence is not None else None


def _split_sections(text: str) -> tuple[str, list[tuple[str, str]]]:
    """Return (title, [(heading, body)]) splitting on level-2 headings.

    Headings inside fenced code blocks are not section breaks. A fence still
    open at end of file is treated as plain text and the file is split again,
    so an unterminated fence in Content cannot swallow the sections after it.
    """
    lines = text.splitlines()
    literal: set[int] = set()
    while True:
        title, sections, unclosed = _split_once(lines, literal)
        if unclosed is None:
            break
        literal.add(unclosed)
    return title, [(heading, "\n".join(body).strip("\n")) for heading, body in sections]


def _fields(body: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for line in body.splitlines():
        m = _FIELD_RE.match(line)
        if m:
            out.setdefault(m.group(1).strip().lower(), m.group(2).strip())
    return out


def normalize_target(raw: str, source_id: str) -> str:
    """Reduce a relationship target to a node id.

    Accepts bare ids, [[wikilinks]], `code spans` and [label](path.md) links.
    Link paths starting with ./ or ../ resolve relative to the declaring node.
    """
    target = raw.strip().strip("`").strip()
    m = _WIKILINK_RE.match(target)
    if m:
        target = m.group(1).strip()
    else:
        m = _MDLINK_RE.match(target)
        if m:
            target = m.group(1)
            if target.startswith(("./", "../")):
                target = posixpath.normpath(posixpath.join(posixpath.dirname(source_id), target))
    target = target.split("#", 1)[0]
    if target.endswith(".md"):
        target = target[:-3]
    return target.lstrip("/")


def parse_relationship(line: str, source_id: str) -> Relationship | None:
    """Parse one "- target — type — description" bullet. None if malformed."""
    m = _BULLET_RE.match(line)
    if not m:
        return None
    parts = _REL_SPLIT_RE.split(m.group(1), maxsplit=2)
    if len(parts) < 2:
        return None
    target = normalize_target(parts[0], source_id)
    rel_type = parts[1].strip().strip("`*").strip().lower()
    if not target or not rel_type or " " in rel_type:
        return None
    description = parts[2].strip() if len(parts) > 2 else ""
    return Relationship(source=source_id, target=target, type=rel_type, description=description)


def parse_node(node_id: str, text: str) -> Node:
    """Parse a node file. Never raises on content problems; sets flags instead."""
    title, sections = _split_sections(text)
    node = Node(id=node_id, title=title or node_id)

    seen: set[str] = set()
    for heading, body in sections:
        key = heading.lower()
        if key not in _KNOWN or key in seen:
            node.extra_sections.append((heading, body))
            continue
        seen.add(key)

        if key == PURPOSE:
            node.purpose = body.strip()
        elif key == CONTENT:
            node.content = body
        elif key == CLASSIFICATION:
            node.classification = Classification.from_values(_fields(body))
        elif key == RELATIONSHIPS:
            for line in body.splitlines():
                if not _BULLET_RE.match(line):
                    continue
                rel = parse_relationship(line, node_id)
                if rel is None:
                    node.malformed_relationships.append(line.strip())
                else:
                    node.relationships.append(rel)
        elif key == METADATA:
            meta = NodeMetadata()
            for label, value in _fields(body).items():
                attr = _METADATA_LABELS.get(label)
                if attr:
                    setattr(meta, attr, value)
            node.metadata = meta
        elif key == CHANGE_HISTORY:
            for line in body.splitlines():
                m = _HISTORY_RE.match(line)
                if m:
                    node.change_history.append(ChangeRecord(date=m.group(1), description=m.group(2)))

    node.refresh_flags()
    return node


# ---------------------------------------------------------------------------
# Render
# ---------------------------------------------------------------------------


def _heading_text(text: str) -> str:
    # A trailing " #" run would read back as a closing sequence; close it explicitly
    return f"{text} #" if _TRAILING_HASHES_RE.search(text) else text


def _section(heading: str, body: str) -> str:
    body = body.strip("\n")
    heading = _heading_text(heading)
    return f"## {heading}\n\n{body}\n" if body else f"## {heading}\n"


def format_relationship(rel: Relationship) -> str:
    line = f"- {rel.target} — {rel.type}"
    if rel.description:
        line += f" — {rel.description}"
    return line


def render_node(node: Node) -> str:
    """Render a node back to markdown. parse_node(render_node(n)) == n."""
    c = node.classification
    classification = "\n".join([
        f"- **Domain:** {c.domain or ''}".rstrip(),
        f"- **Stability:** {c.stability or ''}".rstrip(),
        f"- **Abstraction:** {c.abstraction or ''}".rstrip(),
        f"- **Confidence:** {c.confidence or ''}".rstrip(),
    ])
    relationships = "\n".join(
        [format_relationship(r) for r in node.relationships] + list(node.malformed_relationships)
    )
    m = node.metadata
    metadata = "\n".join([
        f"- **Created:** {m.created_at}".rstrip(),
        f"- **Last Updated:** {m.updated_at}".rstrip(),
        f"- **Updated By:** {m.updated_by}".rstrip(),
    ])
    history = "\n".join(f"- {h.date}: {h.description}" for h in node.change_history)

    extras = [_section(heading, body) for heading, body in node.extra_sections]
    # Repeated known headings only read back as extras after the canonical ones
    extras_last = any(heading.lower() in _KNOWN for heading, _ in node.extra_sections)

    parts = [
        f"# {_heading_text(node.title)}\n",
        _section("Purpose", node.purpose),
        _section("Classification", classification),
        _section("Content", node.content),
    ]
    if not extras_last:
        parts.extend(extras)
    parts.extend([
        _section("Relationships", relationships),
        _section("Metadata", metadata),
        _section("Change History", history),
    ])
    if extras_last:
        parts.extend(extras)
    return "\n".join(parts)
