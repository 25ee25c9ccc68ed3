"""Recover search/replace and new-file instructions from free-form model output.

The response has no grammar to speak of: prose, headings, bare file paths and
fenced blocks arrive in whatever order the model chose. Extraction walks the
text with a line cursor and only emits a change once a path is followed by a
fenced block that carries a usable instruction. Anything malformed is skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

from ..structured import Change
from .blocks import FencedBlock, find_block, is_fence_opener
from .paths import DEFAULT_PATH_RULES, PathRules, looks_like_path, normalise_path

LOGGER = logging.getLogger(__name__)

SEARCH_MARKER = "<<<<<<< SEARCH"
DIVIDER_MARKER = "======="
REPLACE_MARKER = ">>>>>>> REPLACE"
CREATE_MARKER = "create new file"

_DEFAULT_RULE_PHRASES: Tuple[str, ...] = (
    "[exact existing code",
    "[new code to replace",
    "[replacement code",
    "[complete file content",
    "search/replace block",
    "*create new file*",
)
_DEFAULT_MARKERS: Tuple[str, ...] = (SEARCH_MARKER, REPLACE_MARKER)


@dataclass(frozen=True, slots=True)
class InstructionDenylist:
    """Phrases that mark a fenced block as documentation rather than an edit.

    ``rule_phrases`` are fragments of the response-format instructions and are
    matched case-insensitively. ``markers`` are literal delimiter lines that
    must not leak into a created file.
    """

    rule_phrases: Tuple[str, ...] = _DEFAULT_RULE_PHRASES
    markers: Tuple[str, ...] = _DEFAULT_MARKERS

    def describes_instructions(self, content: str) -> bool:
        lowered = content.lower()
        return any(phrase.lower() in lowered for phrase in self.rule_phrases)

    def contains_markers(self, content: str) -> bool:
        return any(marker in content for marker in self.markers)


DEFAULT_DENYLIST = InstructionDenylist()


def parse_search_replace(content: str) -> tuple[str, str] | None:
    """Split block ``content`` into ``(search, replace)`` or return ``None``.

    Marker lines must match exactly apart from trailing whitespace; the text
    between them is returned verbatim.
    """
    lines = content.split("\n")
    markers = (SEARCH_MARKER, DIVIDER_MARKER, REPLACE_MARKER)
    positions: list[int] = []
    cursor = 0
    for marker in markers:
        for index in range(cursor, len(lines)):
            if lines[index].rstrip() == marker:
                positions.append(index)
                cursor = index + 1
                break
        else:
            return None

    search_at, divider_at, replace_at = positions
    search = "\n".join(lines[search_at + 1 : divider_at])
    replace = "\n".join(lines[divider_at + 1 : replace_at])
    return search, replace


@dataclass(frozen=True, slots=True)
class ChangeExtractor:
    """Line-cursor state machine that turns a response into ``Change`` records."""

    path_rules: PathRules = DEFAULT_PATH_RULES
    denylist: InstructionDenylist = DEFAULT_DENYLIST
    path_lookahead: int = 4
    fence_lookahead: int = 10

    def extract(self, response_text: str | None) -> list[Change]:
        """Return the changes described by ``response_text`` in block order."""
        if not response_text:
            return []

        lines = response_text.split("\n")
        changes: list[Change] = []
        index = 0
        while index < len(lines):
            line = lines[index]

            if CREATE_MARKER in line.lower():
                change, next_index = self._match_creation(lines, index)
                if next_index is not None:
                    if change is not None:
                        changes.append(change)
                    index = next_index
                    continue

            if looks_like_path(line, self.path_rules):
                change, next_index = self._match_edit(lines, index)
                if next_index is not None:
                    if change is not None:
                        changes.append(change)
                    index = next_index
                    continue

            index += 1

        LOGGER.debug("Extracted %d change(s) from %d line(s)", len(changes), len(lines))
        return changes

    def _match_creation(
        self, lines: Sequence[str], marker_index: int
    ) -> tuple[Change | None, int | None]:
        """Resolve an explicit new-file marker.

        Returns ``(change, next_index)``; ``next_index`` is ``None`` when no
        block was found so the caller falls back to the regular scan.
        """
        path_index = self._first_path_after(lines, marker_index)
        if path_index is None:
            return None, None
        block = self._first_block_after(lines, path_index)
        if block is None:
            return None, None

        path = normalise_path(lines[path_index], self.path_rules)
        next_index = block.end_index + 1
        if self.denylist.describes_instructions(block.content):
            LOGGER.debug("Skipping instructional block at line %d", block.start_index + 1)
            return None, next_index

        # A new-file block may only carry a whole-file triple.
        triple = parse_search_replace(block.content)
        if triple is not None and triple[0] == "":
            return Change(file=path, search="", replace=triple[1]), next_index

        if self.denylist.contains_markers(block.content):
            LOGGER.debug("Skipping block with stray delimiters at line %d", block.start_index + 1)
            return None, next_index
        return Change(file=path, search="", replace=block.content), next_index

    def _match_edit(
        self, lines: Sequence[str], path_index: int
    ) -> tuple[Change | None, int | None]:
        """Resolve a path line directly followed by a search/replace block."""
        block = find_block(lines, path_index + 1)
        if block is None:
            return None, None

        triple = parse_search_replace(block.content)
        if triple is None:
            return None, None
        if self.denylist.describes_instructions(block.content):
            LOGGER.debug("Skipping instructional block at line %d", block.start_index + 1)
            return None, block.end_index + 1

        search, replace = triple
        path = normalise_path(lines[path_index], self.path_rules)
        return Change(file=path, search=search, replace=replace), block.end_index + 1

    def _first_path_after(self, lines: Sequence[str], index: int) -> int | None:
        stop = min(index + 1 + self.path_lookahead, len(lines))
        for candidate in range(index + 1, stop):
            if looks_like_path(lines[candidate], self.path_rules):
                return candidate
        return None

    def _first_block_after(self, lines: Sequence[str], index: int) -> FencedBlock | None:
        stop = min(index + 1 + self.fence_lookahead, len(lines))
        for candidate in range(index + 1, stop):
            if is_fence_opener(lines[candidate]):
                return find_block(lines, candidate)
        return None


def extract(response_text: str | None) -> list[Change]:
    """Extract changes from ``response_text`` with the default heuristics."""
    return ChangeExtractor().extract(response_text)


__all__ = [
    "CREATE_MARKER",
    "ChangeExtractor",
    "DEFAULT_DENYLIST",
    "DIVIDER_MARKER",
    "InstructionDenylist",
    "REPLACE_MARKER",
    "SEARCH_MARKER",
    "extract",
    "parse_search_replace",
]
