"""Wire models for the chat endpoint, shared by the server and the client."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import ChatResponse, Source


class ChatRequest(BaseModel):
    message: str

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be empty")
        return value


class SourceMetadataModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    page: Optional[int] = None
    source: Optional[str] = None


class SourceModel(BaseModel):
    id: int
    content: str
    metadata: SourceMetadataModel = Field(default_factory=SourceMetadataModel)
    similarity: float = Field(ge=0.0, le=1.0)

    def to_source(self) -> Source:
        return Source(
            id=self.id,
            content=self.content,
            metadata=self.metadata.model_dump(exclude_none=True),  # type: ignore[typeddict-item]
            similarity=self.similarity,
        )


class ChatResponseModel(BaseModel):
    answer: str
    # An absent source list means "no sources", not a malformed payload.
    sources: Optional[List[SourceModel]] = None

    def to_response(self) -> ChatResponse:
        return ChatResponse(
            answer=self.answer,
            sources=[item.to_source() for item in self.sources or []],
        )


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
