"""Heuristic parsing of model responses into change records."""

from .blocks import FencedBlock, find_block, is_fence_opener
from .extractor import (
    DEFAULT_DENYLIST,
    ChangeExtractor,
    InstructionDenylist,
    extract,
    parse_search_replace,
)
from .paths import DEFAULT_PATH_RULES, PathRules, looks_like_path, normalise_path

__all__ = [
    "ChangeExtractor",
    "DEFAULT_DENYLIST",
    "DEFAULT_PATH_RULES",
    "FencedBlock",
    "InstructionDenylist",
    "PathRules",
    "extract",
    "find_block",
    "is_fence_opener",
    "looks_like_path",
    "normalise_path",
    "parse_search_replace",
]
