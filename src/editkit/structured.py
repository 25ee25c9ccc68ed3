"""Typed payloads that describe edits extracted from model responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ErrorReason = Literal["not_found", "verification_failed", "io_error", "unexpected"]


@dataclass(frozen=True, slots=True)
class Change:
    """Single search/replace instruction recovered from a response."""

    file: str
    search: str
    replace: str

    @property
    def is_full_write(self) -> bool:
        """Return ``True`` when the change creates or overwrites the whole file."""
        return self.search == ""


@dataclass(frozen=True, slots=True)
class Diff:
    """Before/after content for a change plus a display-oriented unified diff."""

    file: str
    original_content: str
    new_content: str
    patch: str

    @property
    def is_new_file(self) -> bool:
        return self.original_content == ""

    @property
    def has_changes(self) -> bool:
        return self.original_content != self.new_content


@dataclass(frozen=True, slots=True)
class ApplyError:
    """Failure recorded for one change of a batch."""

    file: str
    error: str
    reason: ErrorReason = "unexpected"


@dataclass(slots=True)
class ApplyResult:
    """Outcome of applying a batch of changes."""

    applied_files: list[str] = field(default_factory=list)
    errors: list[ApplyError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {
            "applied_files": list(self.applied_files),
            "errors": [
                {"file": item.file, "error": item.error, "reason": item.reason}
                for item in self.errors
            ],
        }


__all__ = ["ApplyError", "ApplyResult", "Change", "Diff", "ErrorReason"]
