from __future__ import annotations

import io
from pathlib import Path
from typing import Any, List, Optional

from ruamel.yaml import YAML
from ruamel.yaml.comments import CommentedMap, CommentedSeq
from ruamel.yaml.scalarstring import DoubleQuotedScalarString

from shipyard.config.model import ImageRef, ServiceSpec
from shipyard.core.errors import ConfigError, DescriptorError


def _yaml() -> YAML:
    yaml_rt = YAML(typ="rt")
    yaml_rt.preserve_quotes = True
    yaml_rt.indent(mapping=2, sequence=4, offset=2)
    return yaml_rt


def parse_descriptor(text: str, source: str = "<string>") -> CommentedMap:
    try:
        doc = _yaml().load(text)
    except Exception as exc:
        raise DescriptorError(f"Failed to parse {source}: {exc}") from exc

    if not isinstance(doc, CommentedMap):
        raise DescriptorError(f"Expected a mapping at top-level in {source}")
    svc = doc.get("services")
    if not isinstance(svc, CommentedMap) or not svc:
        raise DescriptorError(f"{source} has no 'services' mapping")
    return doc


def load_descriptor(path: Path) -> CommentedMap:
    """Round-trip load a compose file (comments and quoting are preserved)."""
    path = Path(path)
    if not path.is_file():
        raise DescriptorError(f"Descriptor not found: {path}")
    return parse_descriptor(path.read_text(encoding="utf-8"), source=str(path))


def dump_descriptor(doc: CommentedMap, path: Optional[Path] = None) -> str:
    buf = io.StringIO()
    _yaml().dump(doc, buf)
    text = buf.getvalue()
    if path is not None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
    return text


def _ports(name: str, raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise DescriptorError(f"Service '{name}': 'ports' must be a list")
    return tuple(str(p) for p in raw)


def services(doc: CommentedMap) -> List[ServiceSpec]:
    """
    Return every service that references an image.

    Services with only a `build:` section are skipped: they are built on the
    remote host and never pulled from the registry.
    """
    result: List[ServiceSpec] = []
    for name, body in doc["services"].items():
        if not isinstance(body, dict):
            raise DescriptorError(f"Service '{name}' must be a mapping")
        image = body.get("image")
        if not image:
            continue
        try:
            result.append(
                ServiceSpec(
                    name=str(name),
                    image=ImageRef.parse(str(image)),
                    ports=_ports(str(name), body.get("ports")),
                    restart=str(body["restart"]) if body.get("restart") else None,
                )
            )
        except ConfigError as exc:
            raise DescriptorError(f"Service '{name}': {exc}") from exc
    return result


def set_image_tag(doc: CommentedMap, service: str, tag: str) -> ImageRef:
    """Rewrite the tag of one service's image in place; return the new reference."""
    body = doc["services"].get(service)
    if not isinstance(body, dict) or not body.get("image"):
        raise DescriptorError(f"Service '{service}' has no image to retag")
    try:
        new_ref = ImageRef.parse(str(body["image"])).with_tag(tag)
    except ConfigError as exc:
        raise DescriptorError(f"Service '{service}': {exc}") from exc
    body["image"] = str(new_ref)
    return new_ref


def render_descriptor(
    service: str,
    image: ImageRef,
    ports: tuple[str, ...] = ("80:5000",),
    restart: str = "always",
) -> CommentedMap:
    spec = ServiceSpec(name=service, image=image, ports=ports, restart=restart)

    body = CommentedMap()
    body["image"] = str(spec.image)
    if spec.ports:
        seq = CommentedSeq()
        # quoted: YAML 1.1 readers parse 80:5000 as a base-60 integer
        seq.extend(DoubleQuotedScalarString(p) for p in spec.ports)
        body["ports"] = seq
    body["restart"] = spec.restart

    svc = CommentedMap()
    svc[spec.name] = body

    doc = CommentedMap()
    doc["services"] = svc
    return doc
