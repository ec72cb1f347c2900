from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

PACKAGE = "shipyard"

CommandPath = Tuple[str, ...]


def module_name(parts: CommandPath) -> str:
    """("create", "workflow") -> "shipyard.create.workflow" """
    return ".".join((PACKAGE, *parts))


def command_paths(pkg_dir: Path) -> List[CommandPath]:
    """
    Every package below pkg_dir with a __main__.py is a command; the
    dispatcher's own __main__.py is not. Grouped by parent directory.
    """
    found = [
        main.parent.relative_to(pkg_dir).parts
        for main in pkg_dir.rglob("__main__.py")
        if main.parent != pkg_dir and "__pycache__" not in main.parts
    ]
    return sorted(found, key=lambda parts: (parts[:-1], parts[-1]))


def resolve_command_module(
    pkg_dir: Path, argv_parts: List[str]
) -> Tuple[Optional[str], List[str]]:
    """
    Map the leading command words of argv to the deepest matching command.

    ["create", "workflow", "--force"] -> ("shipyard.create.workflow", ["--force"])
    """
    words: List[str] = []
    for token in argv_parts:
        if token.startswith("-"):
            break
        words.append(token)

    while words:
        if (pkg_dir.joinpath(*words) / "__main__.py").is_file():
            return module_name(tuple(words)), argv_parts[len(words) :]
        words.pop()
    return None, argv_parts
