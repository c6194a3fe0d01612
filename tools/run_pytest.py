"""Run the Postwright test suite, preferring the project's virtual environment."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]


def _interpreter(root: Path) -> str:
    bin_dir, name = ("Scripts", "python.exe") if os.name == "nt" else ("bin", "python")
    for venv in (".venv", "venv"):
        candidate = root / venv / bin_dir / name
        if candidate.exists():
            return str(candidate)
    return sys.executable


def main(argv: list[str] | None = None) -> int:
    args = list(argv or [])
    if not any(not arg.startswith("-") for arg in args):
        args.append("tests")
    return subprocess.call([_interpreter(ROOT), "-m", "pytest", "-q", *args], cwd=ROOT)


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
