"""Vault dev server process management and readiness polling."""
import logging
import subprocess
import time
from typing import Callable
from urllib.parse import urlsplit

import requests

from gcp_labkit.common.domains.errors import InstallError, ReadinessTimeoutError

logger = logging.getLogger(__name__)

HEALTH_PATH = "/v1/sys/health"
# 429 is an unsealed standby; both mean the API is answering
READY_STATUS_CODES = (200, 429)
PROBE_TIMEOUT = 2


def health_url(addr: str) -> str:
    return addr.rstrip("/") + HEALTH_PATH


def probe_health(url: str) -> bool:
    """One GET against the health endpoint. Never raises."""
    try:
        response = requests.get(url, timeout=PROBE_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.debug(f"Health probe {url} failed: {e}")
        return False
    return response.status_code in READY_STATUS_CODES


def wait_ready(
    url: str,
    attempts: int = 30,
    interval: float = 1.0,
    probe: Callable[[str], bool] = probe_health,
    sleep: Callable[[float], None] = time.sleep,
    hint: str = "",
) -> None:
    """
    Block until ``probe(url)`` succeeds.

    Makes exactly ``attempts`` probes and sleeps ``interval`` seconds after
    each failed one, so a server that never comes up costs at least
    ``attempts * interval`` seconds.

    Raises:
        ReadinessTimeoutError: If no probe succeeded
    """
    for attempt in range(1, attempts + 1):
        if probe(url):
            logger.debug(f"{url} ready after {attempt} attempt(s)")
            return
        sleep(interval)
    raise ReadinessTimeoutError(url, attempts, hint)


def listen_address(addr: str) -> str:
    """host:port for -dev-listen-address, derived from the API address."""
    parts = urlsplit(addr)
    port = parts.port or (443 if parts.scheme == "https" else 8200)
    return f"{parts.hostname}:{port}"


def start_dev_server(addr: str, root_token: str, log_file: str, binary: str = "vault") -> subprocess.Popen:
    """
    Launch ``vault server -dev`` detached from this process.

    The server keeps running after the lab exits; output goes to
    ``log_file``.
    """
    cmd = [
        binary, "server", "-dev",
        f"-dev-root-token-id={root_token}",
        f"-dev-listen-address={listen_address(addr)}",
    ]
    logger.debug(f"Starting: {' '.join(cmd[:3])} (log: {log_file})")
    try:
        with open(log_file, "ab") as log:
            return subprocess.Popen(
                cmd,
                stdout=log,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
            )
    except FileNotFoundError as e:
        raise InstallError(f"'{binary}' not found on PATH: {e}") from e
