"""Recovery of JSON objects from sloppy model output."""
from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional


_OBJECT = re.compile(r"\{[\s\S]*\}")


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def complete_braces(text: str) -> Optional[str]:
    """An opening brace with no closing one gets a synthetic ``}``."""
    if "{" in text and "}" not in text:
        return text[text.index("{"):].rstrip().rstrip(",") + "}"
    return None


def strip_fences(text: str) -> str:
    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?", "", cleaned)
    cleaned = re.sub(r"```$", "", cleaned)
    cleaned = cleaned.replace("JSON:", "", 1)
    return cleaned.strip()


def loosen(text: str) -> str:
    """Quote bare keys and values, swap single quotes, drop trailing commas."""
    fixed = re.sub(r"'([^']*)'", r'"\1"', text)
    fixed = re.sub(r'(?<=[{,\s])([A-Za-z_]\w*)\s*:', r'"\1":', fixed)
    fixed = re.sub(r':\s*(?!(?:true|false|null|-?\d+(?:\.\d+)?)\s*[,}])([^"\[\]{},\s][^,}\]]*?)\s*(?=[,}])', r': "\1"', fixed)
    fixed = re.sub(r",\s*([}\]])", r"\1", fixed)
    return fixed


def extract_object(text: str) -> Optional[Dict[str, Any]]:
    """Best-effort parse of the first JSON object found in ``text``."""
    if not text:
        return None

    completed = complete_braces(text)
    if completed is not None:
        data = _loads_object(completed) or _loads_object(loosen(completed))
        if data is not None:
            return data

    match = _OBJECT.search(text) or _OBJECT.search(strip_fences(text))
    if match is None:
        return None

    candidate = match.group(0)
    return _loads_object(candidate) or _loads_object(loosen(candidate))
