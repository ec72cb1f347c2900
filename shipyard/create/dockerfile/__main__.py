#!/usr/bin/env python3
from __future__ import annotations

import argparse
import shlex
import sys
from pathlib import Path
from typing import List, Optional

from shipyard.core.errors import ShipyardError
from shipyard.create.render import render_template, write_output


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="shipyard create dockerfile",
        description="Render a single-stage Dockerfile for a Python web app.",
    )
    parser.add_argument("-o", "--output", type=Path, default=Path("Dockerfile"))
    parser.add_argument("--python-version", default="3.12", help="Base image version.")
    parser.add_argument("--requirements", default="requirements.txt")
    parser.add_argument("--port", type=int, default=5000, help="Port the app listens on.")
    parser.add_argument(
        "--command",
        default="python -m webapp",
        help="Process launch command (shell words).",
    )
    parser.add_argument("--stdout", action="store_true", help="Print instead of writing.")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing file.")
    args = parser.parse_args(argv)

    try:
        text = render_template(
            "Dockerfile.j2",
            python_version=args.python_version,
            requirements=args.requirements,
            port=args.port,
            command=shlex.split(args.command),
        )
        if args.stdout:
            print(text, end="")
            return 0
        out = write_output(args.output, text, force=args.force)
    except ShipyardError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    print(f"✓ Dockerfile written to {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
