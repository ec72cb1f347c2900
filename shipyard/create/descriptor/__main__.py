#!/usr/bin/env python3
"""
Create the compose descriptor, or retag the image of an existing one.

  shipyard create descriptor                      # new file from settings
  shipyard create descriptor --tag v2 --force     # rewrite tag, keep comments
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from shipyard.config.settings import load_settings
from shipyard.core.errors import ShipyardError
from shipyard.create.render import write_output
from shipyard.descriptor.compose import (
    dump_descriptor,
    load_descriptor,
    render_descriptor,
    set_image_tag,
)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="shipyard create descriptor",
        description="Write the docker-compose descriptor for the deployed service.",
    )
    parser.add_argument("-c", "--config", type=Path, help="Settings file (default: shipyard.yml).")
    parser.add_argument("-o", "--output", type=Path, help="Descriptor path.")
    parser.add_argument("--service", help="Service name.")
    parser.add_argument("--image", help="Image reference.")
    parser.add_argument(
        "-p",
        "--port",
        action="append",
        dest="ports",
        metavar="HOST:CONTAINER",
        help="Port mapping (repeatable, default 80:5000).",
    )
    parser.add_argument("--restart", default="always", help="Restart policy.")
    parser.add_argument(
        "-t", "--tag", help="Retag the service image of an existing descriptor in place."
    )
    parser.add_argument("--stdout", action="store_true", help="Print instead of writing.")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing file.")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config).override(
            descriptor=str(args.output) if args.output else None,
            service=args.service,
            image=args.image,
        )
        path = Path(settings.descriptor)

        if args.tag and path.is_file():
            doc = load_descriptor(path)
            new_ref = set_image_tag(doc, settings.service, args.tag)
            print(f">>> {settings.service}: image -> {new_ref}")
        else:
            image = settings.image_ref(settings.load_secrets())
            if args.tag:
                image = image.with_tag(args.tag)
            doc = render_descriptor(
                settings.service,
                image,
                ports=tuple(args.ports or ["80:5000"]),
                restart=args.restart,
            )

        text = dump_descriptor(doc)
        if args.stdout:
            print(text, end="")
            return 0
        # --tag edits an existing file in place
        out = write_output(path, text, force=args.force or bool(args.tag))
    except ShipyardError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    print(f"✓ Descriptor written to {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
