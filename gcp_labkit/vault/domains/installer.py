"""Install the vault binary on a Debian-family host (Cloud Shell)."""
import io
import logging
import shutil
import subprocess
import tempfile
import zipfile
from pathlib import Path
from typing import List, Optional

import requests

from gcp_labkit.common.domains.errors import InstallError

logger = logging.getLogger(__name__)

HASHICORP_GPG_URL = "https://apt.releases.hashicorp.com/gpg"
HASHICORP_APT_URL = "https://apt.releases.hashicorp.com"
KEYRING_PATH = Path("/usr/share/keyrings/hashicorp-archive-keyring.gpg")
SOURCES_PATH = Path("/etc/apt/sources.list.d/hashicorp.list")
RELEASE_URL = "https://releases.hashicorp.com/vault/{version}/vault_{version}_linux_amd64.zip"
DOWNLOAD_TIMEOUT = 60


def _run(cmd: List[str], input: Optional[bytes] = None) -> subprocess.CompletedProcess:
    logger.debug(f"+ {' '.join(cmd)}")
    return subprocess.run(cmd, input=input, check=True)


def _fetch(url: str) -> bytes:
    response = requests.get(url, timeout=DOWNLOAD_TIMEOUT)
    response.raise_for_status()
    return response.content


def _codename() -> str:
    result = subprocess.run(["lsb_release", "-cs"], capture_output=True, text=True, check=True)
    return result.stdout.strip()


def _add_apt_repository() -> None:
    if not KEYRING_PATH.exists():
        logger.info("Adding HashiCorp GPG key...")
        _run(["sudo", "gpg", "--dearmor", "-o", str(KEYRING_PATH)], input=_fetch(HASHICORP_GPG_URL))
    if not SOURCES_PATH.exists():
        line = f"deb [signed-by={KEYRING_PATH}] {HASHICORP_APT_URL} {_codename()} main\n"
        _run(["sudo", "tee", str(SOURCES_PATH)], input=line.encode())


def install_with_apt() -> None:
    _add_apt_repository()
    _run(["sudo", "apt-get", "update", "-y"])
    _run(["sudo", "apt-get", "install", "-y", "vault"])


def install_from_release(version: str, install_dir: str) -> str:
    """Download the release zip and install the binary into ``install_dir``."""
    url = RELEASE_URL.format(version=version)
    logger.info(f"Downloading {url}")
    archive = zipfile.ZipFile(io.BytesIO(_fetch(url)))
    with tempfile.TemporaryDirectory() as tmp:
        archive.extract("vault", tmp)
        target = str(Path(install_dir) / "vault")
        _run(["sudo", "install", "-m", "0755", str(Path(tmp) / "vault"), target])
    return target


def vault_version(binary: str) -> str:
    result = subprocess.run([binary, "--version"], capture_output=True, text=True)
    return result.stdout.splitlines()[0] if result.stdout else "unknown version"


def ensure_vault_installed(version: str = "1.14.2", install_dir: str = "/usr/local/bin") -> str:
    """
    Make sure a ``vault`` binary is available.

    Tries apt first and falls back to the release zip when apt fails.

    Returns:
        Path of the vault binary

    Raises:
        InstallError: If both installation routes fail
    """
    existing = shutil.which("vault")
    if existing:
        logger.info(f"vault present: {vault_version(existing)}")
        return existing

    logger.info("Installing vault via apt...")
    try:
        install_with_apt()
    except (OSError, subprocess.CalledProcessError, requests.exceptions.RequestException) as e:
        logger.warning(f"apt install failed, falling back to binary download: {e}")
        try:
            return install_from_release(version, install_dir)
        except (OSError, KeyError, zipfile.BadZipFile, subprocess.CalledProcessError,
                requests.exceptions.RequestException) as e:
            raise InstallError(f"Failed to install vault {version}: {e}") from e

    installed = shutil.which("vault")
    if not installed:
        raise InstallError("apt reported success but vault is not on PATH")
    return installed
