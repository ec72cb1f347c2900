from __future__ import annotations

import shlex
from typing import List

from shipyard.config.settings import PipelineSettings


def _cd(remote_dir: str) -> str:
    # Keep a leading "~" unquoted so the remote shell expands it.
    if remote_dir in ("", "~"):
        return "cd ~"
    if remote_dir.startswith("~/"):
        return "cd ~/" + shlex.quote(remote_dir[2:])
    return "cd " + shlex.quote(remote_dir)


def remote_steps(settings: PipelineSettings, descriptor_name: str) -> List[str]:
    """
    The fixed remote sequence: wait, tear the service down (dropping local
    images so the next `up` pulls the freshly pushed tag), recreate it.

    The wait is a plain `sleep` only for the "sleep" readiness strategy.
    """
    compose = [*shlex.split(settings.compose_command), "-f", descriptor_name]
    compose_cmd = " ".join(shlex.quote(part) for part in compose)

    steps: List[str] = []
    if settings.readiness == "sleep" and settings.wait > 0:
        steps.append(f"sleep {int(settings.wait)}")
    steps.append(_cd(settings.remote_dir))
    steps.append(f"{compose_cmd} down {settings.teardown_flags}".rstrip())
    steps.append(f"{compose_cmd} up -d")
    return steps


def build_remote_script(settings: PipelineSettings, descriptor_name: str) -> str:
    """Join remote_steps() with `&&` so the first failing step stops the sequence."""
    return " && ".join(remote_steps(settings, descriptor_name))
