from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List

from shipyard.core.colors import Fore, Style, color_text
from shipyard.core.discovery import resolve_command_module
from shipyard.core.help import (
    print_global_help,
    show_full_help_for_all,
    show_help_for_directory,
)
from shipyard.core.run import open_log_file, run_command_once


@dataclass
class Flags:
    log_dir: Path | None = None
    help_all: bool = False


def parse_flags(argv: List[str]) -> Flags:
    """
    Strip dispatcher-level flags from argv (in place) and return them.

    Only tokens before the first command word are considered, so that
    command options with the same name are forwarded untouched.
    """
    flags = Flags()

    i = 1
    while i < len(argv) and argv[i].startswith("-"):
        token = argv[i]
        if token == "--help-all":
            flags.help_all = True
            del argv[i]
        elif token == "--log":
            if i + 1 >= len(argv) or argv[i + 1].startswith("-"):
                print(color_text("--log requires a <LOG_DIR> argument!", Fore.RED))
                raise SystemExit(1)
            flags.log_dir = Path(argv[i + 1])
            del argv[i : i + 2]
        else:
            i += 1

    return flags


def main() -> None:
    argv = sys.argv[:]
    flags = parse_flags(argv)
    args = argv[1:]

    pkg_dir = Path(__file__).resolve().parents[1]  # .../shipyard/core/app.py -> .../shipyard

    if flags.help_all:
        print_global_help(pkg_dir)
        print(color_text("Full detailed help for all subcommands:", Style.BRIGHT))
        print()
        show_full_help_for_all(pkg_dir)
        raise SystemExit(0)

    if not args or args[0] in ("-h", "--help"):
        print_global_help(pkg_dir)
        raise SystemExit(0)

    # Directory-specific help: "create -h"
    if len(args) > 1 and args[-1] in ("-h", "--help"):
        if show_help_for_directory(pkg_dir, args[:-1]):
            raise SystemExit(0)

    module, remaining = resolve_command_module(pkg_dir, args)
    if not module:
        print(color_text(f"Error: command '{' '.join(args)}' not found.", Fore.RED))
        raise SystemExit(1)

    if remaining and remaining[0] in ("-h", "--help"):
        subprocess.run([sys.executable, "-m", module, remaining[0]])
        raise SystemExit(0)

    log_file = None
    if flags.log_dir is not None:
        log_file, log_path = open_log_file(flags.log_dir)
        print(color_text(f"Tip: Log file created at {log_path}", Fore.GREEN))

    full_cmd = [sys.executable, "-m", module] + remaining

    try:
        run_command_once(full_cmd, log_file)
        raise SystemExit(0)
    except KeyboardInterrupt:
        print()
        print(color_text("Execution interrupted by user (Ctrl+C).", Fore.YELLOW))
        raise SystemExit(130)
    finally:
        if log_file:
            log_file.close()
