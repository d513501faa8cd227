from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path


def _run(argv: list[str], *, cwd: Path) -> None:
    p = subprocess.run(argv, cwd=str(cwd))
    if p.returncode != 0:
        raise SystemExit(f"FAILURE DETECTED: gate failed: {' '.join(argv)} (exit={p.returncode}).")


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--mode", choices=["local", "ci"], required=True)
    args = ap.parse_args()

    root = Path(__file__).resolve().parents[1]
    os.chdir(root)

    py = sys.executable

    _run([py, "-m", "compileall", "-q", "gradlepatch", "tests", "tools"], cwd=root)

    if args.mode == "local":
        _run([py, "-m", "black", "gradlepatch", "tests", "tools"], cwd=root)
    else:
        _run([py, "-m", "black", "--check", "gradlepatch", "tests", "tools"], cwd=root)

    _run([py, "-m", "ruff", "check", "gradlepatch", "tests", "tools"], cwd=root)

    # Smoke: the patched fixture must classify clean through the real CLI.
    fixture = root / "tests" / "fixtures" / "patched_modern.gradle"
    if fixture.exists():
        _run([py, "-m", "gradlepatch", "check", str(fixture), "--toolchain", "modern"], cwd=root)

    _run([py, "-m", "pytest", "-q"], cwd=root)

    if args.mode == "local":
        gates_dir = root / ".gates"
        gates_dir.mkdir(parents=True, exist_ok=True)
        (gates_dir / "LAST_GREEN.txt").write_text("GREEN\n", encoding="utf-8")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
