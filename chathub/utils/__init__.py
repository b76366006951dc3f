"""Utility modules."""

from chathub.utils.text import extract_first_url, truncate_text

__all__ = [
    "extract_first_url",
    "truncate_text",
]
