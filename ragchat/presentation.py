"""Display helpers shared by the Streamlit app and the terminal client."""
from __future__ import annotations

import html
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .citations import Citation, Segment, citation_ordinal, page_label, render_citations, similarity_percent
from .types import Message, Source

PANEL_PREVIEW_CHARS = 120


@dataclass(frozen=True)
class SourceCard:
    """Entry of the "Sources Referenced" panel."""

    ordinal: int
    badge: str
    similarity: str
    preview: str


def citation_tooltip(citation: Citation) -> str:
    return f"Page {citation.page} · {citation.similarity}% match\n{citation.preview}"


def segments_to_html(segments: Sequence[Segment]) -> str:
    """Render segments as escaped HTML; citations become hoverable badges."""
    parts: List[str] = []
    for segment in segments:
        if segment.kind == "citation" and segment.citation is not None:
            tooltip = html.escape(citation_tooltip(segment.citation), quote=True)
            parts.append(
                f'<span class="citation-link" title="{tooltip}">{html.escape(segment.citation.label)}</span>'
            )
        else:
            parts.append(html.escape(segment.text).replace("\n", "<br>"))
    return "".join(parts)


def conversation_segments(
    messages: Sequence[Message], current_sources: Sequence[Source]
) -> List[Optional[Tuple[Segment, ...]]]:
    """Citation segments for each assistant message, None for user messages.

    Only the latest assistant message is resolved against ``current_sources``;
    markers in earlier answers stay unresolved because their sources are gone.
    """
    latest = max((index for index, message in enumerate(messages) if message.role == "assistant"), default=-1)
    rendered: List[Optional[Tuple[Segment, ...]]] = []
    for index, message in enumerate(messages):
        if message.role != "assistant":
            rendered.append(None)
            continue
        rendered.append(render_citations(message.content, current_sources if index == latest else ()))
    return rendered


def segments_to_text(segments: Sequence[Segment]) -> str:
    """Terminal rendering: the answer text as written, unresolved markers included."""
    return "".join(segment.text for segment in segments)


def source_cards(sources: Sequence[Source]) -> List[SourceCard]:
    """Build the sources panel, numbered the same way as inline citations."""
    cards: List[SourceCard] = []
    for source in sources:
        ordinal = citation_ordinal(source["id"], sources)
        cards.append(
            SourceCard(
                ordinal=ordinal,
                badge=f"[{ordinal}] Page {page_label(source)}",
                similarity=f"{similarity_percent(source)}%",
                preview=source["content"][:PANEL_PREVIEW_CHARS] + "...",
            )
        )
    return cards
