#!/usr/bin/env python3
"""
Render the GitHub Actions workflow for the two-job pipeline:
build-and-push, then deploy (needs: build-and-push).
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from shipyard.config.model import ImageRef
from shipyard.config.secrets import DEFAULT_SECRET_ENV
from shipyard.config.settings import PipelineSettings, load_settings
from shipyard.core.errors import ShipyardError
from shipyard.create.render import github_expr, render_template, write_output
from shipyard.deploy.script import remote_steps

DEFAULT_OUTPUT = Path(".github/workflows/deploy.yml")


def workflow_context(
    settings: PipelineSettings,
    *,
    workflow_name: str = "Build and deploy",
    branch: str = "main",
    path_prefix: str = "",
) -> Dict[str, Any]:
    secret_env = dict(DEFAULT_SECRET_ENV)
    secret_env.update(settings.secret_env)

    if settings.image:
        ref = ImageRef.parse(settings.image)
        image = str(ref)
        registry = ref.registry or ""
    else:
        user = github_expr(f"secrets.{secret_env['registry_username']}")
        image = f"{user}/{settings.app_name}:latest"
        registry = ""

    prefix = path_prefix.strip("/")
    descriptor = settings.descriptor
    return {
        "workflow_name": workflow_name,
        "branch": branch,
        "path_prefix": prefix,
        "strip_components": len(Path(prefix).parts) if prefix else 0,
        "registry": registry,
        "secret_env": secret_env,
        "image": image,
        "explicit_image": bool(settings.image),
        "dockerfile": settings.dockerfile,
        "context": settings.context,
        "ssh_port": settings.ssh_port,
        "descriptor_path": f"{prefix}/{descriptor}" if prefix else descriptor,
        "remote_dir": settings.remote_dir,
        "remote_steps": remote_steps(settings, Path(descriptor).name),
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="shipyard create workflow",
        description="Render the GitHub Actions build-and-deploy workflow.",
    )
    parser.add_argument("-c", "--config", type=Path, help="Settings file (default: shipyard.yml).")
    parser.add_argument("-o", "--output", type=Path, default=DEFAULT_OUTPUT, help="Output path.")
    parser.add_argument("--name", default="Build and deploy", help="Workflow name.")
    parser.add_argument("--branch", default="main", help="Branch that triggers the workflow.")
    parser.add_argument(
        "--path-prefix",
        default="",
        help="Only trigger on changes below this directory (app lives in a subfolder).",
    )
    parser.add_argument("--stdout", action="store_true", help="Print instead of writing.")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing file.")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
        text = render_template(
            "workflow.yml.j2",
            **workflow_context(
                settings,
                workflow_name=args.name,
                branch=args.branch,
                path_prefix=args.path_prefix,
            ),
        )
        if args.stdout:
            print(text, end="")
            return 0
        out = write_output(args.output, text, force=args.force)
    except ShipyardError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    print(f"✓ Workflow written to {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
