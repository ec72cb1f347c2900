from __future__ import annotations

from typing import List

from ruamel.yaml.comments import CommentedMap

from shipyard.config.model import ImageRef
from shipyard.descriptor.compose import services


def check_image_consistency(doc: CommentedMap, image: ImageRef) -> List[str]:
    """
    Compare the descriptor against the image the build stage publishes.

    Returns a list of problems; empty means the remote host will pull exactly
    the tag that was just pushed.
    """
    specs = services(doc)
    matching = [s for s in specs if s.image.same_repository(image)]

    if not matching:
        referenced = ", ".join(f"{s.name}={s.image}" for s in specs) or "none"
        return [
            f"No service references image '{image.name}' (referenced: {referenced})"
        ]

    return [
        f"Service '{s.name}' uses tag '{s.image.tag}' but the pipeline pushes '{image.tag}'"
        for s in matching
        if s.image.tag != image.tag
    ]
