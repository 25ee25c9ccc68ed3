"""Heuristics that decide whether a response line names a file path."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Pattern, Tuple

_NUMBERED_LIST: Pattern[str] = re.compile(r"^\d+\.")
_WHITESPACE: Pattern[str] = re.compile(r"\s")


@dataclass(frozen=True, slots=True)
class PathRules:
    """Predicate table consulted by :func:`looks_like_path`.

    A candidate is rejected when it starts with any ``rejected_prefixes``
    entry or matches any ``rejected_patterns`` entry, and accepted only when it
    contains at least one of ``required_characters``.
    """

    rejected_prefixes: Tuple[str, ...] = ("```", "#", "*", "-", ">", "|")
    rejected_patterns: Tuple[Pattern[str], ...] = (_NUMBERED_LIST,)
    required_characters: Tuple[str, ...] = (".", "/")
    quote: str = '"'


DEFAULT_PATH_RULES = PathRules()


def _is_quoted(text: str, quote: str) -> bool:
    return len(text) >= 2 and text.startswith(quote) and text.endswith(quote)


def normalise_path(line: str, rules: PathRules = DEFAULT_PATH_RULES) -> str:
    """Trim ``line`` and drop a wrapping pair of quotes."""
    text = line.strip()
    if _is_quoted(text, rules.quote):
        return text[1:-1]
    return text


def looks_like_path(line: str, rules: PathRules = DEFAULT_PATH_RULES) -> bool:
    """Return ``True`` when ``line`` is plausibly a file path.

    False positives are cheap: the extractor only emits a change once a valid
    fenced block follows the candidate.
    """
    text = line.strip()
    if not text:
        return False
    if any(text.startswith(prefix) for prefix in rules.rejected_prefixes):
        return False
    if any(pattern.match(text) for pattern in rules.rejected_patterns):
        return False

    quoted = _is_quoted(text, rules.quote)
    candidate = text[1:-1] if quoted else text
    if not candidate.strip():
        return False
    if not any(marker in candidate for marker in rules.required_characters):
        return False
    if not quoted and _WHITESPACE.search(candidate):
        return False
    return True


__all__ = ["DEFAULT_PATH_RULES", "PathRules", "looks_like_path", "normalise_path"]
