"""Rough context-window accounting for the chat transcript."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

# Gemini flash text models accept roughly one million input tokens.
DEFAULT_CONTEXT_TOKENS = 1_000_000


@dataclass
class ContextUsage:
    used_tokens: int
    max_tokens: int
    pct: float
    alert_level: str


def estimate_tokens(texts: Iterable[str]) -> int:
    """Four characters per token, rounded half up."""
    chars = sum(len(text or "") for text in texts)
    return int(chars / 4 + 0.5)


def context_usage(used_tokens: int, max_tokens: int = DEFAULT_CONTEXT_TOKENS) -> ContextUsage:
    pct = min(used_tokens / max(max_tokens, 1), 1.0)
    alert = "none"
    if pct >= 0.95:
        alert = "95"
    elif pct >= 0.85:
        alert = "85"
    elif pct >= 0.70:
        alert = "70"
    return ContextUsage(used_tokens=used_tokens, max_tokens=max_tokens, pct=pct, alert_level=alert)
