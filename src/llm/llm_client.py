from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Sequence

import httpx
from pydantic import ValidationError

from llm.json_repair import extract_object
from llm.providers.base import LLMProvider
from llm.schemas import Classification, ClassificationExample

logger = logging.getLogger(__name__)


def build_provider(name: Optional[str] = None) -> LLMProvider:
    """Provider chosen by ``LLM_PROVIDER`` (cohere, openai, ollama, mock)."""
    name = (name or os.getenv("LLM_PROVIDER", "mock")).strip().lower()

    if name == "cohere":
        from llm.providers.cohere_provider import CohereProvider

        return CohereProvider()
    if name == "openai":
        from llm.providers.openai_provider import OpenAIProvider

        return OpenAIProvider()
    if name == "ollama":
        from llm.providers.ollama_provider import OllamaProvider

        return OllamaProvider()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider

        return MockProvider()
    raise ValueError(f"Unknown LLM_PROVIDER: {name!r}")


# Everything a remote call can fail with once it left our process.
REMOTE_ERRORS = (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError, ValidationError)


class LLMClient:
    """Thin wrapper turning provider failures into ``None``.

    Calls are made once with the provider's timeout; a failed call is never
    retried, the caller degrades to its next option instead.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider if provider is not None else build_provider()

    def generate(self, *, system: str, user: str) -> Optional[str]:
        try:
            return self.provider.generate(system=system, user=user)
        except REMOTE_ERRORS as e:
            logger.warning(f"Generation call failed: {e}")
            return None

    def generate_json(self, *, system: str, user: str) -> Optional[Dict[str, Any]]:
        raw = self.generate(system=system, user=user)
        if raw is None:
            return None
        data = extract_object(raw)
        if data is None:
            logger.warning(f"Could not recover JSON from model output: {raw[:120]!r}")
        return data

    def classify(self, text: str, examples: Sequence[ClassificationExample]) -> Optional[Classification]:
        try:
            return self.provider.classify(text=text, examples=examples)
        except REMOTE_ERRORS as e:
            logger.warning(f"Classification call failed: {e}")
            return None
