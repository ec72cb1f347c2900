from __future__ import annotations

import shlex
import subprocess
import sys
import threading
from collections import deque
from typing import Callable, Deque, Dict, List, Optional, TextIO

Redactor = Callable[[str], str]


def format_command(cmd: List[str], redact: Optional[Redactor] = None) -> str:
    text = shlex.join(str(c) for c in cmd)
    return redact(text) if redact else text


def run(
    cmd: List[str],
    *,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    check: bool = True,
    input: Optional[str] = None,
    redact: Optional[Redactor] = None,
) -> subprocess.CompletedProcess:
    """
    Run a command with stdout/stderr passthrough.

    The command line is echoed first; pass `redact` so secrets never reach the
    terminal or a --log file.
    """
    print(f">>> {format_command(cmd, redact)}", flush=True)
    return subprocess.run(
        cmd,
        cwd=cwd,
        env=env,
        check=check,
        input=input,
        text=True,
        stdout=sys.stdout,
        stderr=sys.stderr,
    )


def run_quiet(
    cmd: List[str],
    *,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run a probe command (e.g. `docker image inspect`) and capture its output."""
    return subprocess.run(
        cmd,
        cwd=cwd,
        env=env,
        check=False,
        capture_output=True,
        text=True,
    )


def _drain_stream(
    stream: TextIO,
    *,
    sink: TextIO,
    buf: Deque[str],
    redact: Optional[Redactor],
) -> None:
    """
    Read a text stream line-by-line, write to sink, and keep a tail buffer.
    """
    try:
        for line in iter(stream.readline, ""):
            if redact:
                line = redact(line)
            sink.write(line)
            sink.flush()
            buf.append(line.rstrip("\n"))
    finally:
        stream.close()


def run_streaming(
    cmd: List[str],
    *,
    cwd: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    check: bool = True,
    keep_lines: int = 400,
    redact: Optional[Redactor] = None,
) -> subprocess.CompletedProcess:
    """
    Run a subprocess, stream stdout/stderr live to the terminal, and return
    a CompletedProcess whose stdout/stderr contain only the last `keep_lines`
    lines (tail buffers).

    With `check`, a non-zero exit raises CalledProcessError carrying those
    tails as `output` and `stderr`.
    """
    print(f">>> {format_command(cmd, redact)}", flush=True)
    p = subprocess.Popen(
        cmd,
        cwd=cwd,
        env=env,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        bufsize=1,
    )

    out_buf: Deque[str] = deque(maxlen=int(keep_lines))
    err_buf: Deque[str] = deque(maxlen=int(keep_lines))

    assert p.stdout is not None
    assert p.stderr is not None

    threads = [
        threading.Thread(
            target=_drain_stream,
            kwargs={"stream": p.stdout, "sink": sys.stdout, "buf": out_buf, "redact": redact},
            daemon=True,
        ),
        threading.Thread(
            target=_drain_stream,
            kwargs={"stream": p.stderr, "sink": sys.stderr, "buf": err_buf, "redact": redact},
            daemon=True,
        ),
    ]
    for t in threads:
        t.start()

    rc = p.wait()
    for t in threads:
        t.join()

    stdout, stderr = "\n".join(out_buf), "\n".join(err_buf)
    if check and rc != 0:
        raise subprocess.CalledProcessError(rc, cmd, output=stdout, stderr=stderr)
    return subprocess.CompletedProcess(cmd, rc, stdout=stdout, stderr=stderr)


def failure_tail(exc: subprocess.CalledProcessError, lines: int = 20) -> str:
    """Last `lines` lines of a failed command's captured output (stderr first)."""
    text = exc.stderr or exc.output or ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", "replace")
    return "\n".join(text.rstrip("\n").splitlines()[-lines:])
