"""Shared type declarations for conversation state and retrieved sources."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, TypedDict

Role = Literal["user", "assistant"]
CueKind = Literal["send", "receive"]


class SourceMetadata(TypedDict, total=False):
    """Where a passage came from; either key may be absent."""

    page: int
    source: str


class Source(TypedDict):
    """Single retrieved passage, valid only for the turn that produced it."""

    id: int
    content: str
    metadata: SourceMetadata
    similarity: float


class ChatResponse(TypedDict):
    """Successful body of the chat endpoint."""

    answer: str
    sources: List[Source]


@dataclass(frozen=True)
class Message:
    """One chat transcript entry."""

    role: Role
    content: str


@dataclass(frozen=True)
class Notification:
    """Transient, non-blocking message for the user."""

    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"
