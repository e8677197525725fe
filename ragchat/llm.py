"""Gemini API wrapper for answer generation."""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from google import genai
from google.genai import types as genai_types

from .prompts import build_grounded_prompt
from .types import Source

logger = logging.getLogger(__name__)


class GenerationError(RuntimeError):
    """Raised when the model call fails or returns no text."""


class GeminiAnswerGenerator:
    """Generates cited answers with Gemini. Failures raise; nothing is retried."""

    def __init__(
        self,
        api_key: str,
        model_name: str,
        temperature: float = 0.7,
        max_output_tokens: int = 1000,
        client: Optional[genai.Client] = None,
    ) -> None:
        if not api_key and client is None:
            raise GenerationError("Gemini API key is required")
        self.client = client or genai.Client(api_key=api_key)
        self.model_name = model_name
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens

    def _generation_config(self) -> genai_types.GenerateContentConfig:
        return genai_types.GenerateContentConfig(
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
        )

    def generate_answer(self, question: str, sources: Sequence[Source]) -> str:
        prompt = build_grounded_prompt(question, sources)
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=self._generation_config(),
            )
        except Exception as exc:
            status_code = getattr(exc, "code", None) or getattr(exc, "status_code", None)
            logger.error("Gemini request failed (%s): %s", status_code or "unknown", exc)
            raise GenerationError(f"Failed to get completion from Gemini: {exc}") from exc

        text = getattr(response, "text", None)
        if not text or not text.strip():
            raise GenerationError("Gemini returned an empty completion")
        return text.strip()
