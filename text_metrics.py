"""Deterministic text measurements computed from final content (no LLM calls)."""

from __future__ import annotations

import math
import re

WORDS_PER_MINUTE = 200


def word_count(text: str) -> int:
    """Number of whitespace-delimited tokens."""
    return len(text.split())


def reading_time(text: str, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Minutes to read text, rounded up: 200 words -> 1, 201 words -> 2."""
    if words_per_minute <= 0:
        raise ValueError("words_per_minute must be positive")
    return math.ceil(word_count(text) / words_per_minute)


def slugify(title: str) -> str:
    """URL slug: lowercase, non-alphanumeric runs become '-', no leading/trailing '-'."""
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug or "untitled"
