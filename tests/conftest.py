from __future__ import annotations

import os
import subprocess
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@dataclass(slots=True)
class TinyRepo:
    """Fixture payload representing the synthetic workspace under test."""

    root: Path

    def write_response(self, text: str, name: str = "response.md") -> Path:
        """Store a model response next to the workspace and return its path."""
        path = self.root.parent / name
        path.write_text(text, encoding="utf-8")
        return path

    def read(self, relative: str) -> str:
        return (self.root / relative).read_text(encoding="utf-8")

    def run_cli(self, *args: str) -> subprocess.CompletedProcess[str]:
        """Invoke ``python -m editkit.cli`` with the provided arguments."""

        env = os.environ.copy()
        pythonpath = str(SRC)
        if env.get("PYTHONPATH"):
            pythonpath = os.pathsep.join([pythonpath, env["PYTHONPATH"]])
        env["PYTHONPATH"] = pythonpath

        command = [sys.executable, "-m", "editkit.cli", *args]
        return subprocess.run(  # noqa: S603 - command constructed from known values
            command,
            cwd=self.root,
            env=env,
            capture_output=True,
            text=True,
            check=False,
        )


@pytest.fixture()
def tiny_repo(tmp_path: Path) -> TinyRepo:
    """Create a tiny workspace with a package and a README."""

    repo_root = tmp_path / "tiny-repo"
    src_dir = repo_root / "src" / "tiny_app"
    src_dir.mkdir(parents=True)

    (src_dir / "__init__.py").write_text(
        '"""Tiny app package used for CLI smoke tests."""\n\nfrom .calculator import add\n',
        encoding="utf-8",
    )
    (src_dir / "calculator.py").write_text(
        textwrap.dedent(
            """
            from __future__ import annotations


            def add(left: int, right: int) -> int:
                return left + right
            """
        ).lstrip(),
        encoding="utf-8",
    )
    (repo_root / "README.md").write_text("# Tiny app\n\nAdds numbers.\n", encoding="utf-8")

    return TinyRepo(root=repo_root)
