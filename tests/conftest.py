from __future__ import annotations

from typing import List, Optional

import pytest

from ragchat.types import Source, SourceMetadata


def make_source(
    source_id: int,
    content: str = "Fat-soluble vitamins A, D, E, and K are stored in fatty tissues and the liver.",
    page: Optional[int] = 45,
    similarity: float = 0.87,
    origin: Optional[str] = "micronutrients-guide.pdf",
) -> Source:
    metadata = SourceMetadata()
    if page is not None:
        metadata["page"] = page
    if origin is not None:
        metadata["source"] = origin
    return Source(id=source_id, content=content, metadata=metadata, similarity=similarity)


@pytest.fixture
def vitamin_sources() -> List[Source]:
    return [
        make_source(4, "Water-soluble vitamins include vitamin C and the B-complex vitamins.", page=42, similarity=0.92),
        make_source(5, page=45, similarity=0.87),
        make_source(6, "Deficiency symptoms vary by vitamin.", page=48, similarity=0.81),
    ]


@pytest.fixture
def source_factory():
    return make_source
