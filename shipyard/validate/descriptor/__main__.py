#!/usr/bin/env python3
"""
Check that the compose descriptor references the image tag the publish stage pushes.

Exit codes: 0 consistent, 1 mismatch, 2 invalid configuration or descriptor.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from shipyard.config.settings import load_settings
from shipyard.core.colors import Fore, color_text
from shipyard.core.errors import ShipyardError
from shipyard.descriptor.check import check_image_consistency
from shipyard.descriptor.compose import load_descriptor


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="shipyard validate descriptor",
        description="Verify the compose descriptor references the published image tag.",
    )
    parser.add_argument("-c", "--config", type=Path, help="Settings file (default: shipyard.yml).")
    parser.add_argument("--descriptor", help="Compose file to check.")
    parser.add_argument("--image", help="Expected image reference.")
    parser.add_argument("-t", "--tag", help="Expected tag (overrides the image's tag).")
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config).override(
            descriptor=args.descriptor, image=args.image
        )
        image = settings.image_ref(settings.load_secrets())
        if args.tag:
            image = image.with_tag(args.tag)
        problems = check_image_consistency(load_descriptor(Path(settings.descriptor)), image)
    except ShipyardError as exc:
        print(color_text(f"[ERROR] {exc}", Fore.RED), file=sys.stderr)
        return 2

    if problems:
        for problem in problems:
            print(color_text(f"✗ {problem}", Fore.RED))
        return 1

    print(color_text(f"✓ {settings.descriptor} references {image}", Fore.GREEN))
    return 0


if __name__ == "__main__":
    sys.exit(main())
