"""Literal search/replace patching with write-then-verify semantics."""

from __future__ import annotations

import difflib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping

from ..structured import Change, Diff, ErrorReason


class PatchError(RuntimeError):
    """Raised when a change cannot be computed or written."""

    reason: ErrorReason = "io_error"

    def __init__(
        self,
        message: str,
        *,
        reason: ErrorReason | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason
        self.details: dict[str, Any] = dict(details or {})


class SearchNotFoundError(PatchError):
    """The search text does not occur in the current file content."""

    reason: ErrorReason = "not_found"


class VerificationError(PatchError):
    """The file read back after writing differs from the intended content."""

    reason: ErrorReason = "verification_failed"


LOGGER = logging.getLogger(__name__)
TELEMETRY_LOGGER = logging.getLogger("editkit.telemetry")
_ENCODING = "utf-8"


def _serialise_event_value(value: Any) -> Any:
    """Convert telemetry payload values into JSON-friendly representations."""
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def emit_patch_event(event: str, **fields: Any) -> None:
    """Log a structured telemetry event as a single JSON line."""
    if not TELEMETRY_LOGGER.isEnabledFor(logging.INFO):
        return
    payload = {"event": event, "timestamp": datetime.now(timezone.utc).isoformat()}
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    message = json.dumps(payload, separators=(",", ":"), ensure_ascii=True)
    TELEMETRY_LOGGER.info(message)


def apply_search_replace(content: str, search: str, replace: str) -> str:
    """Replace the first exact occurrence of ``search`` in ``content``.

    An empty ``search`` means the whole file becomes ``replace``.
    """
    if search == "":
        return replace
    index = content.find(search)
    if index == -1:
        raise SearchNotFoundError(
            "search content not found",
            details={"search": search[:200]},
        )
    return content[:index] + replace + content[index + len(search) :]


def render_unified_diff(file: str, original: str, new: str) -> str:
    """Render a display-only unified diff between ``original`` and ``new``."""
    original_lines = original.splitlines(keepends=True)
    new_lines = new.splitlines(keepends=True)
    if original_lines and not original_lines[-1].endswith("\n"):
        original_lines[-1] += "\n"
    if new_lines and not new_lines[-1].endswith("\n"):
        new_lines[-1] += "\n"
    return "".join(
        difflib.unified_diff(
            original_lines,
            new_lines,
            fromfile="/dev/null" if original == "" else f"a/{file}",
            tofile=f"b/{file}",
        )
    )


class PatchEngine:
    """Compute and apply ``Change`` records against the file system.

    Relative paths resolve against ``root`` (the working directory when unset).
    No state is cached between calls: every operation reads the file afresh.
    """

    def __init__(self, root: Path | str | None = None) -> None:
        self._root = Path(root).resolve() if root is not None else None

    @property
    def root(self) -> Path:
        return self._root if self._root is not None else Path.cwd()

    def resolve(self, file: str) -> Path:
        path = Path(file).expanduser()
        if path.is_absolute():
            return path
        return self.root / path

    def generate(self, change: Change) -> Diff:
        """Return the diff ``change`` would produce against current storage."""
        path = self.resolve(change.file)
        original = self._read_text(path, change.file)
        new_content = self._substitute(original, change)
        diff = Diff(
            file=change.file,
            original_content=original,
            new_content=new_content,
            patch=render_unified_diff(change.file, original, new_content),
        )
        emit_patch_event(
            "patch.generated",
            file=change.file,
            new_file=diff.is_new_file,
            has_changes=diff.has_changes,
        )
        return diff

    def generate_all(self, changes: Iterable[Change]) -> list[Diff]:
        """Generate a diff per change without touching storage."""
        return [self.generate(change) for change in changes]

    def apply(self, change: Change) -> Path:
        """Write ``change`` to disk and verify the bytes that landed."""
        path = self.resolve(change.file)
        original = self._read_text(path, change.file)
        new_content = self._substitute(original, change)
        expected = new_content.encode(_ENCODING)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(expected)
        except OSError as error:
            raise PatchError(
                f"failed to write {change.file}: {error}",
                details={"path": path.as_posix()},
            ) from error

        try:
            written = path.read_bytes()
        except OSError as error:
            raise VerificationError(
                f"verification failed: {error}",
                details={"path": path.as_posix()},
            ) from error
        if written != expected:
            raise VerificationError(
                "verification failed",
                details={
                    "path": path.as_posix(),
                    "expected_bytes": len(expected),
                    "written_bytes": len(written),
                },
            )

        emit_patch_event(
            "patch.applied",
            file=change.file,
            path=path,
            bytes=len(expected),
            new_file=original == "",
        )
        return path

    @staticmethod
    def _substitute(original: str, change: Change) -> str:
        try:
            return apply_search_replace(original, change.search, change.replace)
        except SearchNotFoundError as error:
            error.details.setdefault("file", change.file)
            raise

    @staticmethod
    def _read_text(path: Path, label: str) -> str:
        """Read ``path`` as text; a missing file reads as empty."""
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return ""
        except OSError as error:
            raise PatchError(
                f"failed to read {label}: {error}",
                details={"path": path.as_posix()},
            ) from error
        try:
            return raw.decode(_ENCODING)
        except UnicodeDecodeError as error:
            raise PatchError(
                f"{label} is not valid {_ENCODING} text",
                details={"path": path.as_posix()},
            ) from error


__all__ = [
    "PatchEngine",
    "PatchError",
    "SearchNotFoundError",
    "VerificationError",
    "apply_search_replace",
    "emit_patch_event",
    "render_unified_diff",
]
