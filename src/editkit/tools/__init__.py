"""Patch application tooling exposed by the editkit runtime."""

from .applier import ChangeSetApplier, apply_all, generate_all
from .patch import (
    PatchEngine,
    PatchError,
    SearchNotFoundError,
    VerificationError,
    apply_search_replace,
    render_unified_diff,
)

__all__ = [
    "ChangeSetApplier",
    "PatchEngine",
    "PatchError",
    "SearchNotFoundError",
    "VerificationError",
    "apply_all",
    "apply_search_replace",
    "generate_all",
    "render_unified_diff",
]
