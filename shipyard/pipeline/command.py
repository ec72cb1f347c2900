from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from shipyard.config.model import ImageRef
from shipyard.config.secrets import SecretSet
from shipyard.config.settings import PipelineSettings, load_settings
from shipyard.core.errors import ShipyardError
from shipyard.deploy.stage import deploy
from shipyard.pipeline.runner import Stage, exit_code, format_summary, run_pipeline
from shipyard.publish.stage import publish

STAGE_NAMES = ("publish", "deploy")


def build_stages(
    settings: PipelineSettings,
    secrets: SecretSet,
    *,
    only: Optional[str] = None,
    key_file: Optional[str] = None,
    no_cache: bool = False,
    dry_run: bool = False,
) -> List[Stage]:
    """publish -> deploy, with deploy gated on publish succeeding."""
    published: Dict[str, ImageRef] = {}

    def _publish() -> None:
        if dry_run:
            image = settings.image_ref(secrets)
            print(f">>> [dry-run] would build and push {image}")
            published["image"] = image
            return
        published["image"] = publish(settings, secrets, no_cache=no_cache)

    def _deploy() -> None:
        deploy(
            settings,
            secrets,
            image=published.get("image"),
            key_file=key_file,
            dry_run=dry_run,
        )

    stages = [
        Stage("publish", _publish),
        Stage("deploy", _deploy, needs=("publish",)),
    ]
    if only:
        return [Stage(s.name, s.run) for s in stages if s.name == only]
    return stages


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shipyard pipeline",
        description="Run the publish stage, then (only if it succeeded) the deploy stage.",
    )
    parser.add_argument("-c", "--config", type=Path, help="Settings file (default: shipyard.yml).")
    parser.add_argument("--only", choices=STAGE_NAMES, help="Run a single stage.")
    parser.add_argument("-i", "--key-file", help="Private key file for SSH/SCP.")
    parser.add_argument("--no-cache", action="store_true", help="Build with --no-cache.")
    parser.add_argument(
        "-n", "--dry-run", action="store_true", help="Print what would run, change nothing."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    try:
        settings = load_settings(args.config)
    except ShipyardError as exc:
        print(f"\n[ERROR] {exc}\n", file=sys.stderr)
        return 1
    secrets = settings.load_secrets()

    stages = build_stages(
        settings,
        secrets,
        only=args.only,
        key_file=args.key_file,
        no_cache=args.no_cache,
        dry_run=args.dry_run,
    )
    results = run_pipeline(stages, redact=secrets.redact)

    print()
    print(format_summary(results))
    print()
    return exit_code(results)
