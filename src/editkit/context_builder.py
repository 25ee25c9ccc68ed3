"""Track the repository files whose contents are shared with the model."""

from __future__ import annotations

import fnmatch
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

LOGGER = logging.getLogger(__name__)

DEFAULT_PATTERNS: Tuple[str, ...] = (
    "*.js",
    "*.ts",
    "*.jsx",
    "*.tsx",
    "*.py",
    "*.java",
    "*.cpp",
    "*.c",
    "*.h",
    "*.html",
    "*.css",
    "*.scss",
    "*.json",
    "*.yaml",
    "*.yml",
    "*.md",
    "*.txt",
    ".gitignore",
)
DEFAULT_MAX_FILES = 20
_MAX_DEPTH = 3
_EXCLUDE_DIRS = frozenset(
    {
        ".git",
        ".hg",
        ".venv",
        "venv",
        "node_modules",
        "dist",
        "build",
        "__pycache__",
        ".mypy_cache",
        ".pytest_cache",
    }
)


@dataclass(frozen=True, slots=True)
class ContextSummary:
    """Aggregate view of the files currently in context."""

    files: Tuple[str, ...]
    total_files: int
    total_size: int


class ContextBuilder:
    """Load, refresh and summarise the files included in model prompts."""

    def __init__(
        self,
        repo_root: Path | str | None = None,
        *,
        max_files: int = DEFAULT_MAX_FILES,
        patterns: Sequence[str] | None = None,
    ) -> None:
        self._repo_root = self._resolve_repo_root(repo_root)
        self._max_files = max_files
        self._patterns = tuple(patterns or DEFAULT_PATTERNS)
        self._files: Dict[str, str] = {}
        self._sizes: Dict[str, int] = {}

    @classmethod
    def from_config(cls, config: Mapping[str, Any], repo_root: Path | None = None) -> ContextBuilder:
        """Instantiate a builder using project configuration values."""
        context_config = config.get("context") if isinstance(config.get("context"), Mapping) else {}

        max_files = context_config.get("max_files")
        if not isinstance(max_files, int) or max_files <= 0:
            max_files = DEFAULT_MAX_FILES

        patterns_raw = context_config.get("patterns")
        patterns: list[str] = []
        if isinstance(patterns_raw, Sequence) and not isinstance(patterns_raw, str):
            patterns = [entry.strip() for entry in patterns_raw if isinstance(entry, str) and entry.strip()]

        return cls(repo_root, max_files=max_files, patterns=patterns or None)

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    def add_files(self, paths: Iterable[str | Path]) -> List[str]:
        """Read ``paths`` into context and return the ones that loaded."""
        added: list[str] = []
        for entry in paths:
            key = self._key(entry)
            path = self._repo_root / key
            try:
                content = path.read_text(encoding="utf-8")
                size = path.stat().st_size
            except (OSError, UnicodeDecodeError) as error:
                LOGGER.warning("Could not read file %s: %s", key, error)
                continue
            self._files[key] = content
            self._sizes[key] = size
            added.append(key)
        return added

    def remove_files(self, paths: Iterable[str | Path]) -> None:
        for entry in paths:
            key = self._key(entry)
            self._files.pop(key, None)
            self._sizes.pop(key, None)

    def refresh(self) -> None:
        """Reload every tracked file from disk."""
        tracked = list(self._files)
        self._files.clear()
        self._sizes.clear()
        self.add_files(tracked)

    def detect_relevant_files(self) -> List[str]:
        """Return up to ``max_files`` repository files matching the context patterns."""
        root = self._repo_root
        matches: list[str] = []
        for current_root, dirs, filenames in os.walk(root):
            rel_dir = Path(current_root).relative_to(root)
            depth = 0 if rel_dir == Path(".") else len(rel_dir.parts)
            if depth >= _MAX_DEPTH:
                dirs[:] = []
            else:
                dirs[:] = sorted(d for d in dirs if d not in _EXCLUDE_DIRS)
            for filename in sorted(filenames):
                if not any(fnmatch.fnmatch(filename, pattern) for pattern in self._patterns):
                    continue
                relative = Path(filename) if rel_dir == Path(".") else rel_dir / filename
                matches.append(relative.as_posix())
                if len(matches) >= self._max_files:
                    return matches
        return matches

    def has_file(self, path: str | Path) -> bool:
        return self._key(path) in self._files

    def get_file(self, path: str | Path) -> str | None:
        return self._files.get(self._key(path))

    def file_contents(self) -> Dict[str, str]:
        return dict(self._files)

    def summary(self) -> ContextSummary:
        return ContextSummary(
            files=tuple(self._files),
            total_files=len(self._files),
            total_size=sum(self._sizes.values()),
        )

    def _key(self, path: str | Path) -> str:
        """Normalise ``path`` to a repo-relative POSIX key where possible."""
        candidate = Path(path)
        if candidate.is_absolute():
            try:
                candidate = candidate.resolve().relative_to(self._repo_root)
            except ValueError:
                return candidate.as_posix()
        return candidate.as_posix()

    @staticmethod
    def _resolve_repo_root(repo_root: Path | str | None) -> Path:
        """Determine an absolute repository root path from a user-provided hint."""
        if repo_root is None:
            return Path.cwd().resolve()
        path = Path(repo_root)
        if not path.is_absolute():
            path = Path.cwd() / path
        return path.resolve()


__all__ = ["ContextBuilder", "ContextSummary", "DEFAULT_MAX_FILES", "DEFAULT_PATTERNS"]
