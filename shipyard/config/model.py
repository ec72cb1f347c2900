from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from shipyard.core.errors import ConfigError

DEFAULT_TAG = "latest"
DOCKER_HUB_HOSTS = ("docker.io", "index.docker.io", "registry-1.docker.io")

_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")
_PORT_RE = re.compile(r"^(?:[0-9.]+:)?\d{1,5}:\d{1,5}(?:/(?:tcp|udp))?$")


def _is_registry_host(component: str) -> bool:
    return "." in component or ":" in component or component == "localhost"


@dataclass(frozen=True)
class ImageRef:
    """
    A container image reference: [registry/]repository[:tag].

    Pushing under a fixed tag (``latest``) overwrites the previous image, so a
    reference identifies "whatever was pushed last" rather than a version.
    """

    repository: str
    tag: str = DEFAULT_TAG
    registry: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "ImageRef":
        raw = (text or "").strip()
        if not raw:
            raise ConfigError("Image reference must not be empty.")
        if "@" in raw:
            raise ConfigError(f"Digest image references are not supported: {raw!r}")

        registry: Optional[str] = None
        head, sep, rest = raw.partition("/")
        if sep and _is_registry_host(head):
            registry, raw = head, rest

        repository, tag = raw, DEFAULT_TAG
        name_start = raw.rfind("/") + 1
        colon = raw.rfind(":")
        if colon >= name_start:
            repository, tag = raw[:colon], raw[colon + 1 :]

        if not repository or repository.endswith("/"):
            raise ConfigError(f"Image reference has no repository: {text!r}")
        if not _TAG_RE.match(tag):
            raise ConfigError(f"Invalid image tag {tag!r} in {text!r}")

        return cls(repository=repository, tag=tag, registry=registry)

    def with_tag(self, tag: str) -> "ImageRef":
        if not _TAG_RE.match(tag):
            raise ConfigError(f"Invalid image tag {tag!r}")
        return replace(self, tag=tag)

    @property
    def name(self) -> str:
        """Reference without tag, e.g. ``docker.io/user/app`` or ``user/app``."""
        if self.registry:
            return f"{self.registry}/{self.repository}"
        return self.repository

    def canonical_name(self) -> str:
        """Name with Docker Hub defaults resolved, for comparisons."""
        registry = self.registry
        if registry in DOCKER_HUB_HOSTS:
            registry = None
        repository = self.repository
        if registry is None and "/" not in repository:
            repository = f"library/{repository}"
        return f"{registry}/{repository}" if registry else repository

    def same_repository(self, other: "ImageRef") -> bool:
        return self.canonical_name() == other.canonical_name()

    def __str__(self) -> str:
        return f"{self.name}:{self.tag}"


@dataclass(frozen=True)
class ServiceSpec:
    """One service entry of the orchestration descriptor."""

    name: str
    image: ImageRef
    ports: Tuple[str, ...] = ()
    restart: Optional[str] = None

    def __post_init__(self) -> None:
        for port in self.ports:
            if not _PORT_RE.match(port):
                raise ConfigError(
                    f"Service '{self.name}': invalid port mapping {port!r} "
                    "(expected HOST:CONTAINER)"
                )
