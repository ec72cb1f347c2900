from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from typing import Dict, Mapping, Optional

from shipyard.core.errors import SecretError

MASK = "***"

# field name -> default environment variable (the GitHub Actions secret names)
DEFAULT_SECRET_ENV: Dict[str, str] = {
    "registry_username": "DOCKER_USERNAME",
    "registry_password": "DOCKER_PASSWORD",
    "host": "EC2_HOST",
    "ssh_user": "EC2_USERNAME",
    "ssh_key": "EC2_SSH_KEY",
}


@dataclass(frozen=True)
class SecretSet:
    """
    The five opaque credentials the pipeline consumes by reference.

    Values are never printed; use redact() on anything derived from them
    before it reaches the terminal.
    """

    registry_username: Optional[str] = field(default=None, repr=False)
    registry_password: Optional[str] = field(default=None, repr=False)
    host: Optional[str] = field(default=None, repr=False)
    ssh_user: Optional[str] = field(default=None, repr=False)
    ssh_key: Optional[str] = field(default=None, repr=False)
    env_names: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_SECRET_ENV), repr=False, compare=False
    )

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        env_names: Optional[Mapping[str, str]] = None,
    ) -> "SecretSet":
        env = os.environ if env is None else env
        names = dict(DEFAULT_SECRET_ENV)
        names.update(env_names or {})
        values = {attr: (env.get(var) or None) for attr, var in names.items()}
        return cls(env_names=names, **values)

    def require(self, *attrs: str) -> None:
        missing = [
            self.env_names.get(a, a) for a in attrs if not getattr(self, a, None)
        ]
        if missing:
            raise SecretError(
                "Missing required secret(s) in environment: " + ", ".join(missing)
            )

    def _values(self) -> list[str]:
        return [
            v
            for f in fields(self)
            if f.name != "env_names"
            for v in [getattr(self, f.name)]
            if v and len(v) >= 3
        ]

    def redact(self, text: str) -> str:
        # Longest first, so a value containing another value is masked whole.
        for value in sorted(self._values(), key=len, reverse=True):
            if value in text:
                text = text.replace(value, MASK)
            if "\n" in value:
                for line in value.splitlines():
                    if len(line.strip()) >= 8 and line in text:
                        text = text.replace(line, MASK)
        return text

    def __repr__(self) -> str:
        present = ", ".join(
            f"{f.name}={'<set>' if getattr(self, f.name) else '<unset>'}"
            for f in fields(self)
            if f.name != "env_names"
        )
        return f"SecretSet({present})"
