"""Canonical, URL-safe identifiers derived from display names."""

from __future__ import annotations

import unicodedata
from typing import Callable, Optional

DEFAULT_SEPARATOR = "-"
DEFAULT_FALLBACK = "item-name"
DEFAULT_MAX_ATTEMPTS = 1_000_000

_INVISIBLE = {
    "\u200b",  # zero width space
    "\u200c",  # zero width non-joiner
    "\u200d",  # zero width joiner
    "\ufeff",  # byte order mark
    "\u2060",  # word joiner
    "\u2061",
    "\u2062",
    "\u2063",
    "\u180e",  # mongolian vowel separator
}


class CanonifyExhaustedError(ValueError):
    """No free candidate was found within the allowed number of attempts."""


def _strip_invisible(text: str) -> str:
    chars = []
    for char in text:
        if char in "\t\n\r ":
            chars.append(" ")
            continue
        if char in _INVISIBLE:
            continue
        if unicodedata.category(char) in ("Cc", "Cf"):
            continue
        chars.append(char)
    return "".join(chars)


def canonify_plain(
    text: str, separator: str = DEFAULT_SEPARATOR, fallback: str = DEFAULT_FALLBACK
) -> str:
    """Return the lowercase slug for ``text`` without any uniqueness check.

    Diacritics are removed, every run of non-alphanumeric characters becomes a
    single ``separator`` and leading/trailing separators are trimmed.
    """
    normalized = unicodedata.normalize("NFKD", _strip_invisible(text))

    parts: list[str] = []
    previous_separator = False
    for char in normalized.lower():
        if unicodedata.category(char) == "Mn":
            continue
        if char.isalnum():
            parts.append(char)
            previous_separator = False
        elif not previous_separator:
            parts.append(separator)
            previous_separator = True

    slug = "".join(parts).strip(separator)
    return slug or fallback


def canonify(
    text: str,
    exists: Optional[Callable[[str], bool]] = None,
    separator: str = DEFAULT_SEPARATOR,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> str:
    """Return a slug for ``text`` that ``exists`` reports as free.

    Candidates are tried in order: ``slug``, ``slug-1``, ``slug-2``...
    """
    base = canonify_plain(text, separator=separator)
    if exists is None or not exists(base):
        return base

    for attempt in range(1, max_attempts + 1):
        candidate = f"{base}{separator}{attempt}"
        if not exists(candidate):
            return candidate
    raise CanonifyExhaustedError(f"Could not find a unique name for '{text}'")


def last_path_segment(path: str) -> str:
    """Return the final ``/``-separated segment of ``path``."""
    return path.rstrip("/").rsplit("/", 1)[-1]
