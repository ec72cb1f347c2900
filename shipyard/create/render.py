# Strict Jinja2 rendering for the generated artifacts (workflow, Dockerfile).
#
# Missing variables fail hard: a half-rendered workflow would only fail later,
# on the CI provider, with a much less useful error.

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from shipyard.core.errors import ShipyardError


def github_expr(expr: str) -> str:
    """Render a GitHub Actions expression, e.g. github_expr("secrets.X") -> ${{ secrets.X }}."""
    return "${{ " + expr + " }}"


def _env() -> Environment:
    env = Environment(
        loader=PackageLoader("shipyard.create", "templates"),
        undefined=StrictUndefined,
        autoescape=False,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.globals["gh"] = github_expr
    return env


def render_template(name: str, **ctx: Any) -> str:
    try:
        return _env().get_template(name).render(**ctx)
    except TemplateError as exc:
        raise ShipyardError(f"Failed to render {name}: {exc}") from exc


def write_output(path: Path, text: str, *, force: bool = False) -> Path:
    """Write a generated file; refuse to clobber an existing one unless force."""
    path = Path(path)
    if path.exists() and not force:
        raise ShipyardError(f"{path} already exists (use --force to overwrite)")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path
