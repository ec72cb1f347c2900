from __future__ import annotations

import os
import sys


class Style:  # type: ignore
    RESET_ALL = "\033[0m"
    BRIGHT = "\033[1m"
    DIM = "\033[2m"


class Fore:  # type: ignore
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"


def colors_enabled() -> bool:
    # https://no-color.org
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty() or os.environ.get("GITHUB_ACTIONS") == "true"


def color_text(text: str, color: str) -> str:
    if not color or not colors_enabled():
        return text
    return f"{color}{text}{Style.RESET_ALL}"
