"""Batch application of changes with per-file failure isolation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from ..structured import ApplyError, ApplyResult, Change, Diff, ErrorReason
from .patch import PatchEngine, PatchError, VerificationError, emit_patch_event

LOGGER = logging.getLogger(__name__)


class ChangeSetApplier:
    """Drive :class:`PatchEngine` over a batch of changes.

    Each change targets its own file, so a failure is recorded and the batch
    continues. Earlier writes are never rolled back.
    """

    def __init__(self, engine: PatchEngine | None = None) -> None:
        self.engine = engine or PatchEngine()

    def apply(self, changes: Iterable[Change]) -> ApplyResult:
        result = ApplyResult()
        for change in changes:
            try:
                self.engine.apply(change)
            except VerificationError as error:
                LOGGER.error("Verification failed after writing %s: %s", change.file, error)
                self._record_failure(result, change, error, error.reason)
            except PatchError as error:
                if error.reason == "not_found":
                    LOGGER.warning("Search text not found in %s; skipping change", change.file)
                else:
                    LOGGER.warning("Failed to apply change to %s: %s", change.file, error)
                self._record_failure(result, change, error, error.reason)
            except Exception as error:
                LOGGER.exception("Unexpected failure while applying change to %s", change.file)
                self._record_failure(result, change, error, "unexpected")
            else:
                LOGGER.info("Applied change to %s", change.file)
                result.applied_files.append(change.file)

        emit_patch_event(
            "changeset.applied",
            applied=len(result.applied_files),
            failed=len(result.errors),
        )
        return result

    @staticmethod
    def _record_failure(
        result: ApplyResult, change: Change, error: Exception, reason: ErrorReason
    ) -> None:
        result.errors.append(ApplyError(file=change.file, error=str(error), reason=reason))
        emit_patch_event("patch.failed", file=change.file, reason=reason, error=str(error))


def generate_all(changes: Iterable[Change], *, root: Path | str | None = None) -> list[Diff]:
    """Preview ``changes`` as diffs without mutating storage."""
    return PatchEngine(root).generate_all(changes)


def apply_all(changes: Iterable[Change], *, root: Path | str | None = None) -> ApplyResult:
    """Apply ``changes`` in order and report applied files and failures."""
    return ChangeSetApplier(PatchEngine(root)).apply(changes)


__all__ = ["ChangeSetApplier", "apply_all", "generate_all"]
