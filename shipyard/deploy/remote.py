from __future__ import annotations

import os
import subprocess
import tempfile
from pathlib import Path
from typing import List, Optional

from shipyard.core.proc import Redactor, format_command, run, run_streaming

SSH_OPTIONS = [
    "-o",
    "StrictHostKeyChecking=accept-new",
    "-o",
    "BatchMode=yes",
    "-o",
    "ConnectTimeout=30",
]


class RemoteHost:
    """
    SCP/SSH access to a single host authenticated by a private key.

    Use as a context manager: key material given as a string is written to a
    0600 temp file for the lifetime of the block and removed afterwards.
    """

    def __init__(
        self,
        host: str,
        user: str,
        *,
        key: Optional[str] = None,
        key_file: Optional[str] = None,
        port: int = 22,
        redact: Optional[Redactor] = None,
        dry_run: bool = False,
    ) -> None:
        if not key and not key_file:
            raise ValueError("RemoteHost needs either key or key_file")
        self.host = host
        self.user = user
        self.port = int(port)
        self.redact = redact
        self.dry_run = dry_run
        self._key = key
        self._key_file = key_file
        self._tmp_key: Optional[str] = None

    def __enter__(self) -> "RemoteHost":
        if self._key_file is None and not self.dry_run:
            fd, path = tempfile.mkstemp(prefix="shipyard-key-")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(self._key.rstrip("\n") + "\n")  # type: ignore[union-attr]
            os.chmod(path, 0o600)
            self._tmp_key = path
        return self

    def __exit__(self, *exc_info) -> None:
        if self._tmp_key and os.path.exists(self._tmp_key):
            os.unlink(self._tmp_key)
        self._tmp_key = None

    @property
    def key_path(self) -> str:
        path = self._key_file or self._tmp_key
        if path is None:
            if self.dry_run:
                return "<ssh-key>"
            raise RuntimeError("RemoteHost key is only available inside a 'with' block")
        return path

    @property
    def target(self) -> str:
        return f"{self.user}@{self.host}"

    def _run(self, cmd: List[str], *, stream: bool = False) -> subprocess.CompletedProcess:
        if self.dry_run:
            print(f">>> [dry-run] {format_command(cmd, self.redact)}", flush=True)
            return subprocess.CompletedProcess(cmd, 0)
        if stream:
            return run_streaming(cmd, check=True, redact=self.redact)
        return run(cmd, check=True, redact=self.redact)

    def copy_command(self, local: Path, remote_dir: str) -> List[str]:
        if remote_dir in ("", "~"):
            dest = f"{self.target}:"
        else:
            dest = f"{self.target}:{remote_dir.rstrip('/')}/"
        return [
            "scp",
            "-i",
            self.key_path,
            "-P",
            str(self.port),
            *SSH_OPTIONS,
            str(local),
            dest,
        ]

    def ssh_command(self, script: str) -> List[str]:
        return [
            "ssh",
            "-i",
            self.key_path,
            "-p",
            str(self.port),
            *SSH_OPTIONS,
            self.target,
            script,
        ]

    def copy(self, local: Path, remote_dir: str) -> subprocess.CompletedProcess:
        return self._run(self.copy_command(local, remote_dir))

    def execute(self, script: str) -> subprocess.CompletedProcess:
        return self._run(self.ssh_command(script), stream=True)
