from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Sequence

import httpx

from llm.schemas import Classification, ClassificationExample


LLM_TIMEOUT_S = float(os.getenv("LLM_TIMEOUT_S", "15"))

CLASSIFY_SYSTEM = (
    "You are a text classifier. Answer ONLY with a JSON object "
    '{"label": "<one of the labels>", "confidence": <0..1>}.'
)


class LLMProvider(ABC):
    @abstractmethod
    def generate(self, *, system: str, user: str) -> str:
        """
        Must return the model output as TEXT (JSON is parsed/validated in LLMClient).
        """
        raise NotImplementedError

    def classify(self, *, text: str, examples: Sequence[ClassificationExample]) -> Classification:
        """Few-shot classification answered through ``generate``.

        Providers with a native classification endpoint override this.
        """
        labels = sorted({ex.label for ex in examples})
        shots = "\n".join(f"{ex.text} => {ex.label}" for ex in examples)
        user = (
            f"Labels: {', '.join(labels)}\n"
            f"Examples:\n{shots}\n\n"
            f"Classify this text: {text}"
        )
        raw = self.generate(system=CLASSIFY_SYSTEM, user=user)
        start, end = raw.find("{"), raw.rfind("}")
        if start < 0 or end < start:
            raise ValueError(f"classifier returned no JSON object: {raw[:80]!r}")
        data = json.loads(raw[start : end + 1])
        return Classification(
            label=str(data.get("label", "")).strip(),
            confidence=float(data.get("confidence", 0.0)),
        )


class HTTPProvider(LLMProvider, ABC):
    """Shared JSON-over-HTTP plumbing with a bounded timeout."""

    timeout_s: float = LLM_TIMEOUT_S

    def _post(self, url: str, payload: Dict[str, Any], headers: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        with httpx.Client(timeout=self.timeout_s) as client:
            r = client.post(url, headers=headers, json=payload)
            r.raise_for_status()
            return r.json()
