from __future__ import annotations

import errno
import os
import pty
import subprocess
from datetime import datetime
from pathlib import Path
from typing import List, TextIO

from shipyard.core.colors import Fore, color_text


def open_log_file(log_dir: Path) -> tuple[TextIO, Path]:
    """
    Create/open a timestamped log file inside log_dir.

    - log_dir is mandatory (provided via --log <LOG_DIR>)
    - log_dir is created with parents=True if missing
    - the file is created with mode 0600; logs may contain remote hostnames
    """
    log_dir = log_dir.expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%dT%H%M%S")
    log_file_path = log_dir / f"{timestamp}.log"
    fd = os.open(str(log_file_path), os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
    return os.fdopen(fd, "a", encoding="utf-8"), log_file_path


def _tee_through_pty(full_cmd: List[str], log_file: TextIO) -> int:
    master_fd, slave_fd = pty.openpty()
    proc = subprocess.Popen(
        full_cmd,
        stdin=slave_fd,
        stdout=slave_fd,
        stderr=slave_fd,
        text=True,
    )
    os.close(slave_fd)

    with os.fdopen(master_fd) as master:
        try:
            for line in master:
                ts = datetime.now().strftime("%Y-%m-%dT%H:%M:%S")
                log_file.write(f"{ts} {line}")
                log_file.flush()
                print(line, end="")
        except OSError as e:
            # EIO: child closed the pty
            if e.errno != errno.EIO:
                raise

    return proc.wait()


def run_command_once(full_cmd: List[str], log_file: TextIO | None = None) -> bool:
    """
    Run a proxied command, optionally teeing its output into log_file.

    Raises SystemExit with the child's return code on failure.
    """
    try:
        if log_file is not None:
            rc = _tee_through_pty(full_cmd, log_file)
        else:
            rc = subprocess.Popen(full_cmd).wait()
    except OSError as e:
        print(color_text(f"Exception running command: {e}", Fore.RED))
        raise SystemExit(1)

    if rc != 0:
        raise SystemExit(rc)
    return True
