from __future__ import annotations

import sys
from typing import List


def _usage() -> int:
    print("usage: python -m gradlepatch [-v] <command> [args]")
    print("commands:")
    print("  patch <file>     bring the Gradle template's required fragments up to date")
    print("  check <file>     classify fragments without writing")
    print("  backups <file>   list retained snapshots of a template")
    print("  gui              open the patch panel")
    return 2


def main(argv: List[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    verbose = False
    while args and args[0] in ("-v", "--verbose"):
        verbose = True
        args = args[1:]
    if not args:
        return _usage()

    cmd = args[0]
    rest = args[1:]

    if cmd in ("patch", "check", "backups"):
        from gradlepatch.cli import main as _cli

        return int(_cli([cmd] + rest, verbose=verbose))

    if cmd == "gui":
        from gradlepatch.gui.main import run as _gui

        return int(_gui())

    return _usage()


if __name__ == "__main__":
    raise SystemExit(main())
