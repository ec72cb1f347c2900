from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from shipyard.config.model import ImageRef
from shipyard.core.errors import ReadinessError
from shipyard.publish.docker import DockerCLI

log = logging.getLogger(__name__)


def wait_for_registry(
    docker: DockerCLI,
    image: ImageRef,
    *,
    timeout_s: int = 60,
    interval_s: int = 5,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Poll the registry until it serves `image`.

    Returns the number of attempts; raises ReadinessError after timeout_s.
    """
    print(f">>> Waiting for registry to serve {image} (up to {timeout_s}s)")
    deadline = time.monotonic() + timeout_s
    attempts = 0

    while True:
        attempts += 1
        if docker.manifest_exists(image):
            print(f">>> Registry serves {image} (attempt {attempts})")
            return attempts

        if time.monotonic() >= deadline:
            raise ReadinessError(
                f"Registry did not serve {image} within {timeout_s}s "
                f"({attempts} attempts)"
            )
        log.debug("manifest for %s not available yet, retrying", image)
        sleep(interval_s)


def wait_for_health(
    url: str,
    *,
    timeout_s: int = 120,
    interval_s: int = 5,
    expected_status: int = 200,
    request_timeout_s: int = 10,
    sleep: Callable[[float], None] = time.sleep,
) -> Dict[str, Any]:
    """
    Poll a deployed HTTP endpoint (the app's /status) until it answers
    `expected_status`. Returns the decoded JSON body (or {} for non-JSON).
    """
    print(f">>> Waiting for {url} to answer HTTP {expected_status} (up to {timeout_s}s)")
    deadline = time.monotonic() + timeout_s
    last = "no response"

    while True:
        try:
            r = requests.get(url, timeout=request_timeout_s, allow_redirects=False)
            if r.status_code == expected_status:
                print(f">>> {url}: OK")
                try:
                    body = r.json()
                except ValueError:
                    return {}
                return body if isinstance(body, dict) else {"body": body}
            last = f"HTTP {r.status_code}"
        except requests.RequestException as exc:
            last = f"{type(exc).__name__}: {exc}"

        log.debug("%s not healthy yet: %s", url, last)
        if time.monotonic() >= deadline:
            raise ReadinessError(
                f"{url} not healthy after {timeout_s}s (last: {last})"
            )
        sleep(interval_s)


def status_url(host: str, path: str = "/status", scheme: str = "http", port: Optional[int] = None) -> str:
    netloc = f"{host}:{port}" if port else host
    return f"{scheme}://{netloc}{path}"
