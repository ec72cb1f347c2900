from __future__ import annotations

import datetime
import subprocess
from pathlib import Path
from typing import Optional

from shipyard.config.model import ImageRef
from shipyard.config.secrets import SecretSet
from shipyard.config.settings import PipelineSettings
from shipyard.core.errors import DescriptorError, StageError
from shipyard.core.proc import failure_tail
from shipyard.deploy.readiness import wait_for_health, wait_for_registry
from shipyard.deploy.remote import RemoteHost
from shipyard.deploy.script import build_remote_script
from shipyard.publish.docker import DockerCLI

STAGE = "deploy"


def deploy(
    settings: PipelineSettings,
    secrets: SecretSet,
    *,
    image: Optional[ImageRef] = None,
    key_file: Optional[str] = None,
    docker: Optional[DockerCLI] = None,
    dry_run: bool = False,
) -> None:
    """
    Copy the descriptor to the remote host, wait until the new image can be
    pulled, then recreate the service from the descriptor.

    There is no rollback: if the remote sequence fails after `down`, the
    service stays down until the next successful run.
    """
    required = ["host", "ssh_user"] + ([] if key_file else ["ssh_key"])
    secrets.require(*required)

    descriptor = Path(settings.descriptor)
    if not descriptor.is_file():
        raise DescriptorError(f"Descriptor not found: {descriptor}")

    start = datetime.datetime.now()
    print(f"\n▶️ Deploying {descriptor.name} to remote host at {start.isoformat()}\n")

    script = build_remote_script(settings, descriptor.name)

    step = "copy"
    try:
        with RemoteHost(
            secrets.host or "",
            secrets.ssh_user or "",
            key=secrets.ssh_key,
            key_file=key_file,
            port=settings.ssh_port,
            redact=secrets.redact,
            dry_run=dry_run,
        ) as remote:
            print(f"\n📤 Copying {descriptor} to {settings.remote_dir}\n", flush=True)
            remote.copy(descriptor, settings.remote_dir)

            if settings.readiness == "registry":
                step = "registry check"
                _wait_for_image(settings, secrets, image, docker, dry_run)

            step = "remote command"
            print("\n🔁 Recreating service on remote host\n", flush=True)
            remote.execute(script)
    except subprocess.CalledProcessError as exc:
        message = f"{step} failed with exit code {exc.returncode}"
        if step == "remote command":
            message += "; the remote service may be stopped"
        raise StageError(
            STAGE, message, returncode=exc.returncode, tail=failure_tail(exc)
        ) from exc
    except FileNotFoundError as exc:
        raise StageError(STAGE, f"{step} failed: cannot run {exc.filename or exc}") from exc

    if settings.health_url:
        if dry_run:
            print(f">>> [dry-run] skipping health check of {settings.health_url}")
        else:
            wait_for_health(settings.health_url, timeout_s=settings.health_timeout)

    end = datetime.datetime.now()
    print(f"\n✅ Deploy finished at: {end.isoformat()}")
    print(f"⏱️ Deploy time: {end - start}\n")


def _wait_for_image(
    settings: PipelineSettings,
    secrets: SecretSet,
    image: Optional[ImageRef],
    docker: Optional[DockerCLI],
    dry_run: bool,
) -> None:
    if dry_run:
        print(">>> [dry-run] skipping registry readiness check")
        return
    wait_for_registry(
        docker or DockerCLI(redact=secrets.redact),
        image or settings.image_ref(secrets),
        timeout_s=max(settings.wait, 1),
    )
