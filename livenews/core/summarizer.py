"""Extractive two-sentence summaries with a hard length bound."""

from __future__ import annotations

import re

DEFAULT_MAX_LENGTH = 180
ELLIPSIS = "…"

_WHITESPACE_RE = re.compile(r"\s+")
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.!?])\s+")


def clean_text(value: str | None) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", value or "").strip()


def split_sentences(text: str) -> list[str]:
    """Split on terminal punctuation followed by whitespace, dropping empties."""
    parts = (clean_text(part) for part in _SENTENCE_BOUNDARY_RE.split(text))
    return [part for part in parts if part]


def summarize(title: str, body: str, max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Reduce ``body`` to its first two sentences, bounded to ``max_length``.

    Falls back to a pointer at the source link when there is no body at all.
    Truncated output ends in a single ellipsis character and never exceeds
    ``max_length`` characters.
    """
    normalized_title = clean_text(title)
    normalized_body = clean_text(body)

    if not normalized_body:
        return f"{normalized_title}. Read full details in the source link."

    sentences = split_sentences(normalized_body)
    first = sentences[0] if sentences else normalized_body
    second = sentences[1] if len(sentences) > 1 else ""

    combined = clean_text(f"{first} {second}")
    summary = combined or normalized_body

    if len(summary) <= max_length:
        return summary

    if max_length < 1:
        return ""
    return summary[: max_length - 1].rstrip() + ELLIPSIS
