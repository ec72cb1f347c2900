from __future__ import annotations

import logging
import os
from dataclasses import MISSING, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from shipyard.config.model import ImageRef
from shipyard.config.secrets import DEFAULT_SECRET_ENV, SecretSet
from shipyard.core.errors import ConfigError

log = logging.getLogger(__name__)

SETTINGS_FILE = "shipyard.yml"
ENV_PREFIX = "SHIPYARD_"
READINESS_STRATEGIES = ("sleep", "registry", "none")


@dataclass(frozen=True)
class PipelineSettings:
    app_name: str = "flask-app"
    # Full image reference; derived from the registry user + app_name when unset.
    image: Optional[str] = None
    context: str = "."
    dockerfile: str = "Dockerfile"
    descriptor: str = "docker-compose.yml"
    service: str = "web"
    remote_dir: str = "~"
    wait: int = 60
    readiness: str = "sleep"
    health_url: Optional[str] = None
    health_timeout: int = 120
    ssh_port: int = 22
    compose_command: str = "docker compose"
    teardown_flags: str = "--rmi all"
    secret_env: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.wait < 0:
            raise ConfigError(f"wait must be >= 0, got {self.wait}")
        if self.health_timeout <= 0:
            raise ConfigError(f"health_timeout must be > 0, got {self.health_timeout}")
        if not 0 < self.ssh_port < 65536:
            raise ConfigError(f"ssh_port out of range: {self.ssh_port}")
        if self.readiness not in READINESS_STRATEGIES:
            raise ConfigError(
                f"readiness must be one of {', '.join(READINESS_STRATEGIES)}, "
                f"got {self.readiness!r}"
            )
        unknown = set(self.secret_env) - set(DEFAULT_SECRET_ENV)
        if unknown:
            raise ConfigError(
                "Unknown secret_env key(s): " + ", ".join(sorted(unknown))
            )

    def image_ref(self, secrets: Optional[SecretSet] = None) -> ImageRef:
        if self.image:
            return ImageRef.parse(self.image)
        user = secrets.registry_username if secrets else None
        if not user:
            raise ConfigError(
                "No image configured: set 'image' in shipyard.yml, pass --image, "
                f"or export {DEFAULT_SECRET_ENV['registry_username']}."
            )
        return ImageRef.parse(f"{user}/{self.app_name}")

    def load_secrets(self, env: Optional[Mapping[str, str]] = None) -> SecretSet:
        return SecretSet.from_env(env, env_names=self.secret_env)

    def override(self, **changes: Any) -> "PipelineSettings":
        """Apply CLI overrides; None means "not given on the command line"."""
        given = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **given) if given else self


def _coerce(name: str, value: Any, default: Any) -> Any:
    target = type(default) if default is not None else str
    if name in ("image", "health_url"):
        target = str
    if value is None:
        return None
    if target is int:
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if target is dict:
        if not isinstance(value, dict):
            raise ConfigError(f"{name} must be a mapping, got {type(value).__name__}")
        return {str(k): str(v) for k, v in value.items()}
    return str(value)


def _read_file(path: Path) -> Dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(
            f"Expected a mapping at top-level in {path}, got {type(data).__name__}"
        )
    return data


def load_settings(
    path: Optional[Path] = None, env: Optional[Mapping[str, str]] = None
) -> PipelineSettings:
    """
    Resolve settings: defaults < shipyard.yml < SHIPYARD_* environment.

    A missing settings file is not an error.
    """
    env = os.environ if env is None else env
    path = Path(path) if path is not None else Path(env.get(f"{ENV_PREFIX}CONFIG", SETTINGS_FILE))

    raw: Dict[str, Any] = {}
    if path.exists():
        log.debug("Loading settings from %s", path)
        raw = _read_file(path)
    else:
        log.debug("No settings file at %s, using defaults", path)

    defaults = {f.name: f for f in fields(PipelineSettings)}
    unknown = set(raw) - set(defaults)
    if unknown:
        raise ConfigError(f"Unknown key(s) in {path}: {', '.join(sorted(unknown))}")

    for name in defaults:
        if name == "secret_env":
            continue
        env_value = env.get(f"{ENV_PREFIX}{name.upper()}")
        if env_value not in (None, ""):
            raw[name] = env_value

    values: Dict[str, Any] = {}
    for name, value in raw.items():
        f = defaults[name]
        default = f.default if f.default_factory is MISSING else f.default_factory()
        if value is None and default is not None:
            # `key:` or `key: ~` in YAML; keep the default.
            log.debug("%s is null in %s, using default %r", name, path, default)
            continue
        values[name] = _coerce(name, value, default)

    return PipelineSettings(**values)
