"""Explicit tag / priority markers shared by the extraction tiers."""
from __future__ import annotations

import re
from typing import List, Optional

from commands.parser import map_priority


DELETE_TAGS = re.compile(r"\b(?:delete|remove)\s+tags?\b", re.IGNORECASE)
HASHTAG = re.compile(r"#(\w+)")
TAG_IS = re.compile(r"\b(?:tag|hashtag)\s+is\s+(\w+)", re.IGNORECASE)
BANG_PRIORITY = re.compile(r"!(\w+)")
PRIORITY_IS = re.compile(r"\bpriority\s+is\s+(\w+)", re.IGNORECASE)


def wants_tags_removed(text: str) -> bool:
    return DELETE_TAGS.search(text) is not None


def has_tag_marker(text: str) -> bool:
    return "#" in text or TAG_IS.search(text) is not None


def has_priority_marker(text: str) -> bool:
    return BANG_PRIORITY.search(text) is not None or PRIORITY_IS.search(text) is not None


def explicit_tags(text: str) -> List[str]:
    if wants_tags_removed(text):
        return []
    tags: List[str] = []
    for m in list(HASHTAG.finditer(text)) + list(TAG_IS.finditer(text)):
        tag = m.group(1).lower()
        if tag not in tags:
            tags.append(tag)
    return tags


def explicit_priority(text: str) -> Optional[str]:
    m = BANG_PRIORITY.search(text) or PRIORITY_IS.search(text)
    return map_priority(m.group(1)) if m else None


def strip_markers(text: str) -> str:
    out = HASHTAG.sub("", text)
    out = BANG_PRIORITY.sub("", out)
    out = TAG_IS.sub("", out)
    out = PRIORITY_IS.sub("", out)
    out = DELETE_TAGS.sub("", out)
    out = re.sub(r"task description", "", out, flags=re.IGNORECASE)
    return re.sub(r"\s{2,}", " ", out).strip()
