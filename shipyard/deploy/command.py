from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from shipyard.config.settings import READINESS_STRATEGIES, load_settings
from shipyard.core.errors import ShipyardError, describe
from shipyard.deploy.readiness import status_url
from shipyard.deploy.stage import deploy


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shipyard deploy",
        description="Copy the compose descriptor to the remote host and recreate the service.",
    )
    parser.add_argument("-c", "--config", type=Path, help="Settings file (default: shipyard.yml).")
    parser.add_argument("--descriptor", help="Compose file to deploy.")
    parser.add_argument("--remote-dir", help="Remote directory receiving the descriptor.")
    parser.add_argument("--port", type=int, dest="ssh_port", help="SSH port.")
    parser.add_argument(
        "-i",
        "--key-file",
        help="Private key file (instead of the key held in the environment).",
    )
    parser.add_argument("--wait", type=int, help="Seconds to wait before recreating.")
    parser.add_argument(
        "--readiness",
        choices=READINESS_STRATEGIES,
        help="How to wait for the new image: fixed sleep, registry polling, or not at all.",
    )
    health = parser.add_mutually_exclusive_group()
    health.add_argument("--health-url", help="Poll this URL after deploying.")
    health.add_argument(
        "--check-health",
        action="store_true",
        help="Poll http://<remote host>/status after deploying.",
    )
    parser.add_argument(
        "-n", "--dry-run", action="store_true", help="Print scp/ssh commands only."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    secrets = None
    try:
        settings = load_settings(args.config).override(
            descriptor=args.descriptor,
            remote_dir=args.remote_dir,
            ssh_port=args.ssh_port,
            wait=args.wait,
            readiness=args.readiness,
            health_url=args.health_url,
        )
        secrets = settings.load_secrets()
        if args.check_health and secrets.host:
            settings = settings.override(health_url=status_url(secrets.host))
        deploy(settings, secrets, key_file=args.key_file, dry_run=args.dry_run)
    except ShipyardError as exc:
        msg = describe(exc, secrets.redact if secrets else None)
        print(f"\n[ERROR] {msg}\n", file=sys.stderr)
        return getattr(exc, "returncode", 1)
    except subprocess.CalledProcessError as exc:
        print(f"\n[ERROR] command exited with status {exc.returncode}\n", file=sys.stderr)
        return exc.returncode

    return 0
