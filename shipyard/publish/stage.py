from __future__ import annotations

import datetime
import subprocess
from pathlib import Path
from typing import Dict, Optional, Sequence

from shipyard.config.model import ImageRef
from shipyard.config.secrets import SecretSet
from shipyard.config.settings import PipelineSettings
from shipyard.core.colors import Fore, color_text
from shipyard.core.errors import DescriptorError, StageError
from shipyard.core.proc import failure_tail
from shipyard.descriptor.check import check_image_consistency
from shipyard.descriptor.compose import load_descriptor
from shipyard.publish.docker import DockerCLI

STAGE = "publish"


def verify_descriptor(settings: PipelineSettings, image: ImageRef) -> None:
    """Fail early if the descriptor would make the remote host pull another tag."""
    path = Path(settings.descriptor)
    if not path.is_file():
        print(
            color_text(
                f"[WARN] Descriptor {path} not found, skipping image consistency check",
                Fore.YELLOW,
            )
        )
        return

    problems = check_image_consistency(load_descriptor(path), image)
    if problems:
        raise DescriptorError(
            f"{path} does not match {image}:\n  - " + "\n  - ".join(problems)
        )
    print(f"\n🔍 {path} references {image}\n")


def _logout(docker: DockerCLI, registry: Optional[str]) -> None:
    try:
        docker.logout(registry)
    except (subprocess.CalledProcessError, FileNotFoundError) as exc:
        print(
            color_text(
                f"[WARN] docker logout failed ({exc}); credentials may remain in the "
                "docker config of this machine",
                Fore.YELLOW,
            )
        )


def publish(
    settings: PipelineSettings,
    secrets: SecretSet,
    docker: Optional[DockerCLI] = None,
    *,
    tag: Optional[str] = None,
    extra_tags: Sequence[str] = (),
    push: bool = True,
    no_cache: bool = False,
    build_args: Optional[Dict[str, str]] = None,
    check_descriptor: bool = True,
) -> ImageRef:
    """
    Build the image and push it to the registry.

    Any build, login or push failure aborts the stage; nothing is retried.
    After a successful login the registry session is always closed again.
    With push=False the image stays local, so the descriptor is not checked
    against it. Returns the primary image reference that was built (and pushed).
    """
    if push:
        secrets.require("registry_username", "registry_password")

    image = settings.image_ref(secrets)
    if tag:
        image = image.with_tag(tag)
    aliases = [image.with_tag(t) for t in extra_tags if t != image.tag]

    if check_descriptor and push:
        verify_descriptor(settings, image)

    docker = docker or DockerCLI(redact=secrets.redact)
    start = datetime.datetime.now()

    step = "build"
    try:
        print(f"\n🛠️  Building {image} from {settings.context}\n", flush=True)
        docker.build(
            image,
            context=settings.context,
            dockerfile=settings.dockerfile,
            no_cache=no_cache,
            build_args=build_args,
        )
        for alias in aliases:
            docker.tag(image, alias)

        if not push:
            print(f"\n📦 Push skipped (--no-push); {image} is only available locally\n")
            return image

        step = "login"
        print(f"\n🔑 Logging in to {image.registry or 'Docker Hub'}\n", flush=True)
        docker.login(
            secrets.registry_username or "",
            secrets.registry_password or "",
            registry=image.registry,
        )

        step = "push"
        try:
            print(f"\n🚀 Pushing {image}\n", flush=True)
            docker.push_all([image, *aliases])
        finally:
            _logout(docker, image.registry)
    except subprocess.CalledProcessError as exc:
        raise StageError(
            STAGE,
            f"docker {step} failed with exit code {exc.returncode}",
            returncode=exc.returncode,
            tail=failure_tail(exc),
        ) from exc
    except FileNotFoundError as exc:
        raise StageError(STAGE, f"cannot run docker: {exc}") from exc

    print(f"\n✅ Published {image} in {datetime.datetime.now() - start}\n")
    return image
