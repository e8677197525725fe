"""Prompt template for grounded, cited answers."""
from __future__ import annotations

from typing import List, Sequence

from .types import Source

INSTRUCTIONS = """Instructions:
- Provide a comprehensive and accurate answer based on the context
- Use citation numbers [1], [2], etc. when referencing specific sources
- If the context doesn't contain enough information, say so
- Focus on being helpful and educational
- Keep the response conversational but informative"""


def format_context(sources: Sequence[Source]) -> str:
    """Number the passages the same way the UI resolves citations."""
    if not sources:
        return "No context passages were retrieved."
    blocks: List[str] = []
    for ordinal, source in enumerate(sources, start=1):
        page = source.get("metadata", {}).get("page")
        blocks.append(f"[{ordinal}] Page {page if page is not None else '?'}: {source['content']}")
    return "\n\n".join(blocks)


def build_grounded_prompt(question: str, sources: Sequence[Source]) -> str:
    return (
        "You are a helpful nutrition expert assistant. Answer the following question based on the "
        "provided context from a nutrition textbook. Use the source citations [1], [2], etc. when "
        "referencing specific information.\n\n"
        f"Context:\n{format_context(sources)}\n\n"
        f"Question: {question}\n\n"
        f"{INSTRUCTIONS}\n\n"
        "Answer:"
    )
