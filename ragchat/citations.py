"""Inline citation parsing.

Assistant answers cite retrieved passages with bracketed ordinals such as
``[1]``.  ``render_citations`` splits an answer into plain runs and citation
markers and resolves each marker against the source list of the turn that
produced the answer.  Ordinals are 1-based positions in that list, in the
order the backend returned it.  Markers that point past the end of the list
are kept as literal text.

Nothing here knows about HTML or Streamlit; see ``presentation`` for that.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Literal, Optional, Sequence, Tuple

from .types import Source

CITATION_PATTERN = re.compile(r"\[([0-9]+)\]")
PREVIEW_CHARS = 200
MISSING_PAGE = "?"

SegmentKind = Literal["plain", "citation", "unresolved"]


@dataclass(frozen=True)
class Citation:
    """A marker resolved to a source of the current turn."""

    label: str
    ordinal: int
    source: Source
    page: str
    similarity: str
    preview: str


@dataclass(frozen=True)
class Segment:
    """One run of an answer.

    ``text`` is always the exact text of the run, so joining the
    ``text`` of every segment gives back the answer unchanged.
    """

    kind: SegmentKind
    text: str
    citation: Optional[Citation] = None


def page_label(source: Source) -> str:
    page = source.get("metadata", {}).get("page")
    return MISSING_PAGE if page is None else str(page)


def similarity_percent(source: Source) -> str:
    """Similarity as a percentage with one decimal, e.g. ``"87.3"``."""
    return f"{float(source['similarity']) * 100:.1f}"


def content_preview(content: str, limit: int = PREVIEW_CHARS) -> str:
    if len(content) > limit:
        return content[:limit] + "..."
    return content


def resolve_citation(label: str, sources: Sequence[Source]) -> Optional[Citation]:
    """Resolve the digits of a marker, or return None when out of range."""
    # More digits than any valid ordinal; int() refuses very long digit runs.
    digits = label.lstrip("0") or "0"
    if len(digits) > len(str(len(sources))):
        return None
    ordinal = int(digits)
    if ordinal < 1 or ordinal > len(sources):
        return None
    source = sources[ordinal - 1]
    return Citation(
        label=label,
        ordinal=ordinal,
        source=source,
        page=page_label(source),
        similarity=similarity_percent(source),
        preview=content_preview(source["content"]),
    )


def render_citations(text: str, sources: Sequence[Source]) -> Tuple[Segment, ...]:
    """Split ``text`` into plain, citation and unresolved segments."""
    segments: List[Segment] = []
    position = 0
    for match in CITATION_PATTERN.finditer(text):
        if match.start() > position:
            segments.append(Segment(kind="plain", text=text[position : match.start()]))
        citation = resolve_citation(match.group(1), sources)
        if citation is None:
            segments.append(Segment(kind="unresolved", text=match.group(0)))
        else:
            segments.append(Segment(kind="citation", text=match.group(0), citation=citation))
        position = match.end()
    if position < len(text):
        segments.append(Segment(kind="plain", text=text[position:]))
    return tuple(segments)


def citation_ordinal(source_id: int, sources: Sequence[Source]) -> int:
    """1-based position of the source with ``source_id``; -1 when absent."""
    for index, source in enumerate(sources, start=1):
        if source["id"] == source_id:
            return index
    return -1
