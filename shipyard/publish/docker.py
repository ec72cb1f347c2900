from __future__ import annotations

import subprocess
from typing import Dict, List, Optional, Sequence

from shipyard.config.model import ImageRef
from shipyard.core.proc import Redactor, run, run_quiet, run_streaming


class DockerCLI:
    """
    Thin wrapper around the `docker` client.

    Every mutating call echoes its (redacted) command line and raises
    subprocess.CalledProcessError on a non-zero exit.
    """

    def __init__(
        self,
        executable: str = "docker",
        *,
        cwd: Optional[str] = None,
        redact: Optional[Redactor] = None,
    ) -> None:
        self.executable = executable
        self.cwd = cwd
        self.redact = redact

    def _run(self, args: List[str], *, input: Optional[str] = None) -> subprocess.CompletedProcess:
        return run(
            [self.executable, *args],
            cwd=self.cwd,
            check=True,
            input=input,
            redact=self.redact,
        )

    def _stream(self, args: List[str]) -> subprocess.CompletedProcess:
        # Long-running and chatty: stream live, keep the tail for error reports.
        return run_streaming(
            [self.executable, *args], cwd=self.cwd, check=True, redact=self.redact
        )

    def build(
        self,
        image: ImageRef,
        *,
        context: str = ".",
        dockerfile: Optional[str] = None,
        no_cache: bool = False,
        pull: bool = False,
        build_args: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        args = ["build", "-t", str(image)]
        if dockerfile:
            args += ["-f", dockerfile]
        if no_cache:
            args.append("--no-cache")
        if pull:
            args.append("--pull")
        for key, value in (build_args or {}).items():
            args += ["--build-arg", f"{key}={value}"]
        args.append(context)
        return self._stream(args)

    def login(
        self, username: str, password: str, registry: Optional[str] = None
    ) -> subprocess.CompletedProcess:
        # Password goes through stdin only; argv is visible in `ps`.
        args = ["login", "-u", username, "--password-stdin"]
        if registry:
            args.append(registry)
        return self._run(args, input=password)

    def logout(self, registry: Optional[str] = None) -> subprocess.CompletedProcess:
        return self._run(["logout", *([registry] if registry else [])])

    def tag(self, source: ImageRef, target: ImageRef) -> subprocess.CompletedProcess:
        return self._run(["tag", str(source), str(target)])

    def push(self, image: ImageRef) -> subprocess.CompletedProcess:
        return self._stream(["push", str(image)])

    def manifest_exists(self, image: ImageRef) -> bool:
        """True once the registry serves `image` (`docker manifest inspect`)."""
        r = run_quiet([self.executable, "manifest", "inspect", str(image)], cwd=self.cwd)
        return r.returncode == 0

    def push_all(self, images: Sequence[ImageRef]) -> None:
        for image in images:
            self.push(image)
