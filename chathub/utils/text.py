"""Text processing utilities shared across services."""

import re

# First http(s) URL in free text; deliberately simple, the first match wins
URL_PATTERN = re.compile(r"https?://[^\s<>\"']+", re.IGNORECASE)


def extract_first_url(text: str) -> str | None:
    """
    Return the first http:// or https:// URL found in text.

    No attempt is made to pick the "best" URL or strip trailing punctuation.
    """
    if not text:
        return None
    match = URL_PATTERN.search(text)
    return match.group(0) if match else None


def truncate_text(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """Truncate text to a maximum length with a suffix."""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix
