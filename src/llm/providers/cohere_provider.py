from __future__ import annotations

import os
from typing import Sequence

from llm.schemas import Classification, ClassificationExample
from .base import HTTPProvider


class CohereProvider(HTTPProvider):
    def __init__(self):
        self.api_key = os.getenv("COHERE_API_KEY", "").strip()
        self.base_url = os.getenv("COHERE_BASE_URL", "https://api.cohere.ai/v1").strip()
        self.generate_model = os.getenv("COHERE_GENERATE_MODEL", "command-light-nightly").strip()
        self.classify_model = os.getenv("COHERE_CLASSIFY_MODEL", "embed-english-v3.0").strip()

        if not self.api_key:
            raise RuntimeError("COHERE_API_KEY is missing")

    def _headers(self) -> dict:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def generate(self, *, system: str, user: str) -> str:
        payload = {
            "model": self.generate_model,
            "prompt": f"{system}\n\n{user}",
            "max_tokens": 500,
            "temperature": 0.2,
            "stop_sequences": ["\n\n"],
            "return_likelihoods": "NONE",
        }
        data = self._post(f"{self.base_url}/generate", payload, self._headers())
        generations = data.get("generations") or []
        if not generations:
            raise ValueError("Cohere response has no generations")
        return generations[0]["text"]

    def classify(self, *, text: str, examples: Sequence[ClassificationExample]) -> Classification:
        payload = {
            "model": self.classify_model,
            "inputs": [text],
            "examples": [ex.model_dump() for ex in examples],
        }
        data = self._post(f"{self.base_url}/classify", payload, self._headers())
        classifications = data.get("classifications") or []
        if not classifications:
            raise ValueError("Cohere response has no classifications")
        top = classifications[0]
        return Classification(label=top["prediction"], confidence=float(top.get("confidence", 0.0)))
