"""HTTP transport from the conversation controller to the chat endpoint."""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from .schemas import ChatResponseModel
from .types import ChatResponse

logger = logging.getLogger(__name__)


class ChatTransportError(Exception):
    """Raised for network errors, non-2xx statuses and malformed bodies."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ChatClient:
    """Posts ``{message}`` to the chat endpoint and validates the reply.

    A fresh ``httpx.AsyncClient`` is opened per request so the client can be
    reused across event loops (Streamlit runs one loop per rerun).
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        self._transport = transport

    async def send(self, message: str) -> ChatResponse:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.endpoint, json={"message": message})
        except httpx.HTTPError as exc:
            logger.error("Chat endpoint request failed: %s", exc)
            raise ChatTransportError(f"Could not reach chat endpoint: {exc}") from exc

        if not response.is_success:
            logger.error("Chat endpoint returned HTTP %s: %s", response.status_code, response.text[:500])
            raise ChatTransportError(f"HTTP error! status: {response.status_code}", response.status_code)

        try:
            payload = ChatResponseModel.model_validate_json(response.content)
        except ValidationError as exc:
            logger.error("Malformed chat endpoint payload: %s", exc)
            raise ChatTransportError("Malformed response from chat endpoint", response.status_code) from exc
        return payload.to_response()
