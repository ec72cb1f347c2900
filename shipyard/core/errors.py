from __future__ import annotations

from typing import Callable, Optional


class ShipyardError(RuntimeError):
    """Base class for all errors raised by shipyard itself (not by child tools)."""


class ConfigError(ShipyardError):
    """Raised when shipyard.yml or a SHIPYARD_* override is invalid."""


class SecretError(ShipyardError):
    """Raised when required secrets are missing from the environment."""


class DescriptorError(ShipyardError):
    """Raised when the compose descriptor is malformed or does not match the image."""


class StageError(ShipyardError):
    """Raised when a pipeline stage fails (build, login, push, copy, remote command)."""

    def __init__(
        self, stage: str, message: str, returncode: int = 1, tail: str = ""
    ) -> None:
        super().__init__(f"{stage}: {message}")
        self.stage = stage
        self.returncode = returncode
        # Last lines of the failing tool's output, if it was captured.
        self.tail = tail


class ReadinessError(ShipyardError):
    """Raised when the registry or the deployed service did not become ready in time."""


def describe(exc: BaseException, redact: Optional[Callable[[str], str]] = None) -> str:
    """Error text for the terminal: the message plus the captured output tail."""
    text = str(exc)
    tail = getattr(exc, "tail", "")
    if tail:
        text += "\n--- last output ---\n" + tail
    return redact(text) if redact else text
