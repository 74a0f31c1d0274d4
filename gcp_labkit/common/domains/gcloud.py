"""Thin wrapper around the gcloud CLI."""
import logging
import os
import shlex
import subprocess
from typing import List, Optional

from .errors import ConfigurationMissingError

logger = logging.getLogger(__name__)

GCLOUD_BIN = "gcloud"


class GcloudCLI:
    """Runs gcloud commands. Tests substitute a recording double."""

    def __init__(self, binary: str = GCLOUD_BIN):
        self.binary = binary

    def run(self, args: List[str], capture: bool = False, check: bool = True) -> subprocess.CompletedProcess:
        """
        Run ``gcloud <args>``.

        Args:
            args: Arguments after the gcloud binary
            capture: Capture stdout/stderr instead of streaming them
            check: Raise CalledProcessError on a non-zero exit status

        Returns:
            The completed process
        """
        cmd = [self.binary] + args
        logger.debug(f"+ {shlex.join(cmd)}")
        return subprocess.run(
            cmd,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
            check=check,
        )

    def get_config_value(self, key: str) -> Optional[str]:
        """Return ``gcloud config get-value <key>``, or None when unset."""
        try:
            result = self.run(["config", "get-value", key], capture=True)
        except (OSError, subprocess.CalledProcessError) as e:
            logger.warning(f"Failed to read gcloud config '{key}': {e}")
            return None

        value = result.stdout.strip()
        # gcloud prints "(unset)" for missing keys
        if not value or value in ("(unset)", "unset"):
            return None
        return value


def detect_project(gcloud: Optional[GcloudCLI] = None) -> str:
    """
    Detect the active GCP project.

    Priority order:
    1. GCP_PROJECT environment variable (allows override)
    2. gcloud config get-value project

    Raises:
        ConfigurationMissingError: If neither source names a project
    """
    gcp_project_env = os.getenv("GCP_PROJECT")
    if gcp_project_env:
        logger.debug(f"Using GCP_PROJECT from environment: {gcp_project_env}")
        return gcp_project_env

    project_id = (gcloud or GcloudCLI()).get_config_value("project")
    if not project_id:
        raise ConfigurationMissingError(
            "No gcloud project set. Run: gcloud config set project <PROJECT_ID>"
        )
    return project_id
