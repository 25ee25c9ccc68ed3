"""Fenced code block scanning over a list of response lines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

FENCE_CHAR = "`"
MIN_FENCE_LENGTH = 3


@dataclass(frozen=True, slots=True)
class FencedBlock:
    """Span and interior of a fenced block."""

    start_index: int
    end_index: int
    content: str
    fence: str
    language: str = ""


def fence_length(line: str) -> int:
    """Return the backtick run length opening ``line``, or 0 when it is not a fence."""
    text = line.strip()
    run = len(text) - len(text.lstrip(FENCE_CHAR))
    return run if run >= MIN_FENCE_LENGTH else 0


def is_fence_opener(line: str) -> bool:
    return fence_length(line) > 0


def find_block(lines: Sequence[str], from_index: int) -> FencedBlock | None:
    """Locate the fenced block starting at the first non-blank line from ``from_index``.

    The closing line must be exactly the opening backtick run, so a four-backtick
    fence can carry triple-backtick examples. Unterminated blocks return ``None``.
    """
    index = max(from_index, 0)
    total = len(lines)
    while index < total and not lines[index].strip():
        index += 1
    if index >= total:
        return None

    opener = lines[index].strip()
    run = fence_length(opener)
    if not run:
        return None
    fence = FENCE_CHAR * run
    language = opener[run:].strip()

    for end in range(index + 1, total):
        if lines[end].strip() == fence:
            content = "\n".join(lines[index + 1 : end])
            return FencedBlock(
                start_index=index,
                end_index=end,
                content=content,
                fence=fence,
                language=language,
            )
    return None


__all__ = ["FencedBlock", "fence_length", "find_block", "is_fence_opener"]
