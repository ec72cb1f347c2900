from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional

from shipyard.config.settings import load_settings
from shipyard.core.errors import ShipyardError, describe
from shipyard.publish.stage import publish


def parse_build_args(pairs: List[str]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"--build-arg expects KEY=VALUE, got {pair!r}")
        result[key] = value
    return result


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shipyard publish",
        description="Build the application image and push it to the registry.",
    )
    parser.add_argument("-c", "--config", type=Path, help="Settings file (default: shipyard.yml).")
    parser.add_argument("--image", help="Image reference, e.g. user/flask-app:latest.")
    parser.add_argument("--context", help="Build context directory.")
    parser.add_argument("-f", "--file", dest="dockerfile", help="Dockerfile path.")
    parser.add_argument("-t", "--tag", help="Override the image tag.")
    parser.add_argument(
        "--also-tag",
        action="append",
        default=[],
        metavar="TAG",
        help="Additional tag to push (repeatable).",
    )
    parser.add_argument("--no-cache", action="store_true", help="Build with --no-cache.")
    parser.add_argument("--no-push", action="store_true", help="Build only, do not push.")
    parser.add_argument(
        "--build-arg",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Docker build argument (repeatable).",
    )
    parser.add_argument(
        "--skip-check",
        action="store_true",
        help="Do not verify that the descriptor references the published tag.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        build_args = parse_build_args(args.build_arg)
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))

    secrets = None
    try:
        settings = load_settings(args.config).override(
            image=args.image, context=args.context, dockerfile=args.dockerfile
        )
        secrets = settings.load_secrets()
        publish(
            settings,
            secrets,
            tag=args.tag,
            extra_tags=args.also_tag,
            push=not args.no_push,
            no_cache=args.no_cache,
            build_args=build_args,
            check_descriptor=not args.skip_check,
        )
    except ShipyardError as exc:
        msg = describe(exc, secrets.redact if secrets else None)
        print(f"\n[ERROR] {msg}\n", file=sys.stderr)
        return getattr(exc, "returncode", 1)
    except subprocess.CalledProcessError as exc:
        print(f"\n[ERROR] command exited with status {exc.returncode}\n", file=sys.stderr)
        return exc.returncode

    return 0
