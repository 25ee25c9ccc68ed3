"""editkit: turn model-written search/replace responses into verified file edits."""

from .parsing import extract
from .structured import ApplyError, ApplyResult, Change, Diff
from .tools import PatchEngine, PatchError, apply_all, generate_all

__all__ = [
    "ApplyError",
    "ApplyResult",
    "Change",
    "Diff",
    "PatchEngine",
    "PatchError",
    "apply_all",
    "extract",
    "generate_all",
]

__version__ = "0.1.0"
