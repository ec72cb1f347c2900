from __future__ import annotations

import subprocess
import sys
import textwrap
from pathlib import Path
from typing import List, Tuple

from shipyard.core.colors import Fore, Style, color_text
from shipyard.core.discovery import command_paths, module_name

GLOBAL_OPTIONS = (
    ("--log <LOG_DIR>", "Log all proxied command output to <LOG_DIR>/<timestamp>.log"),
    ("--help-all", "Show full --help for all commands"),
    ("-h, --help", "Show this help message and exit"),
)


def format_command_help(
    name: str, description: str, indent: int = 2, col_width: int = 28, width: int = 80
) -> str:
    prefix = " " * indent + f"{name:<{col_width - indent}}"
    wrapper = textwrap.TextWrapper(
        width=width, initial_indent=prefix, subsequent_indent=" " * col_width
    )
    return wrapper.fill(description)


def extract_description_via_help(module: str) -> str:
    """
    Best-effort: run "python -m <module> --help" and return the first paragraph after usage.
    """
    try:
        result = subprocess.run(
            [sys.executable, "-m", module, "--help"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return "-"

    out = (result.stdout or "").splitlines()
    seen_usage = False
    for i, line in enumerate(out):
        if line.strip().startswith("usage:"):
            seen_usage = True
            continue
        if not seen_usage or line.strip():
            continue
        for desc in out[i + 1 :]:
            if desc.strip():
                return desc.strip()
        break
    return "-"


def print_global_help(pkg_dir: Path) -> None:
    commands = command_paths(pkg_dir)

    print(color_text("Shipyard 🚢", Fore.CYAN + Style.BRIGHT))
    print()
    print(color_text("Build, publish and deploy a containerized app to a remote host", Style.DIM))
    print()
    print(
        color_text(
            "Usage: shipyard [--log <LOG_DIR>] [--help-all] [-h|--help] <command> [options]",
            Fore.GREEN,
        )
    )
    print()
    print(color_text("Options:", Style.BRIGHT))
    for flag, text in GLOBAL_OPTIONS:
        print(color_text(f"  {flag:<18}{text}", Fore.YELLOW))
    print()
    print(color_text("Available commands:", Style.BRIGHT))
    print()

    current_group: Tuple[str, ...] = ()
    for parts in commands:
        group = parts[:-1]
        if group and group != current_group:
            print(color_text("/".join(group) + "/", Fore.MAGENTA))
        current_group = group

        desc = extract_description_via_help(module_name(parts))
        print(format_command_help(parts[-1], desc, indent=4 if group else 2))

    print()
    print(
        color_text(
            "🔗  Nested directories chain into subcommands, e.g. shipyard create workflow",
            Fore.CYAN,
        )
    )
    print(color_text("    corresponds to shipyard/create/workflow/__main__.py.", Fore.CYAN))
    print()


def show_full_help_for_all(pkg_dir: Path) -> None:
    print(color_text("Shipyard – Full Help Overview", Fore.CYAN + Style.BRIGHT))
    print()

    for parts in command_paths(pkg_dir):
        file_path = "/".join((pkg_dir.name, *parts, "__main__.py"))
        print(color_text("=" * 80, Fore.BLUE + Style.BRIGHT))
        print(color_text(f"Subcommand: {' '.join(parts)}", Fore.YELLOW + Style.BRIGHT))
        print(color_text(f"File: {file_path}", Fore.CYAN))
        print(color_text("-" * 80, Fore.BLUE))

        try:
            result = subprocess.run(
                [sys.executable, "-m", module_name(parts), "--help"],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            print(color_text(f"Failed to get help for {file_path}: {e}", Fore.RED))
            continue

        if result.stdout:
            print(result.stdout.rstrip())
        if result.stderr:
            print(color_text(result.stderr.rstrip(), Fore.RED))
        print()


def show_help_for_directory(pkg_dir: Path, dir_parts: List[str]) -> bool:
    """
    If shipyard/<dir_parts>/ is a directory, show commands directly below it.
    """
    candidate_dir = pkg_dir.joinpath(*dir_parts)
    if not candidate_dir.is_dir() or (candidate_dir / "__main__.py").is_file():
        return False

    print(color_text(f"Overview of commands in: {'/'.join(dir_parts)}", Fore.CYAN + Style.BRIGHT))
    print()

    shown = False
    for parts in command_paths(pkg_dir):
        if list(parts[:-1]) == dir_parts:
            desc = extract_description_via_help(module_name(parts))
            print(format_command_help(parts[-1], desc, indent=2))
            shown = True

    return shown
