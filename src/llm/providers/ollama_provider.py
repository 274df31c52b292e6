from __future__ import annotations

import os

from .base import HTTPProvider


class OllamaProvider(HTTPProvider):
    """Local models served by Ollama; no API key needed."""

    def __init__(self):
        self.model = os.getenv("OLLAMA_MODEL", "llama3.1").strip()
        self.base_url = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434").strip()

    def generate(self, *, system: str, user: str) -> str:
        data = self._post(
            f"{self.base_url}/api/chat",
            {
                "model": self.model,
                "stream": False,
                "format": "json",
                "messages": [
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                "options": {"temperature": 0.2},
            },
        )
        return data["message"]["content"]
