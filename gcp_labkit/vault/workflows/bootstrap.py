"""Vault lab: dev server bootstrap, sample data, artifact upload."""
import base64
import logging
import secrets
import time
from pathlib import Path
from typing import Callable, Optional

from gcp_labkit.common.domains.errors import VaultOperationError
from gcp_labkit.common.domains.gcloud import GcloudCLI, detect_project
from gcp_labkit.common.domains.settings import VaultLabSettings
from gcp_labkit.common.workflows.ensure import ensure
from ..domains import dev_server
from ..domains.installer import ensure_vault_installed
from ..domains.models import VaultLabContext, VaultLabReport
from ..domains.storage import StorageClient, detect_bucket
from ..domains.vault_client import VaultClient
from .token_acquisition import Prompt, acquire_token

logger = logging.getLogger(__name__)

POLICY_TEMPLATE = """path "{mount}/*" {{
  capabilities = ["create", "read", "update", "delete", "list"]
}}
"""


def detect_targets(ctx: VaultLabContext, gcloud: Optional[GcloudCLI] = None,
                   storage_client: Optional[StorageClient] = None) -> None:
    logger.info("Detecting GCP project...")
    ctx.project_id = detect_project(gcloud)
    logger.info(f"Project: {ctx.project_id}")

    if ctx.settings.bucket:
        ctx.bucket = ctx.settings.bucket
        logger.info(f"Using configured bucket {ctx.bucket}")
        return

    logger.info("Looking for GCS bucket matching project...")
    ctx.bucket = detect_bucket(ctx.project_id, storage_client)
    if ctx.bucket:
        logger.info(f"Bucket: {ctx.bucket}")


def start_or_detect_server(ctx: VaultLabContext, sleep: Callable[[float], None] = time.sleep) -> bool:
    """
    Reuse a Vault already answering at the configured address, or start one.

    Returns:
        True if this call started a dev server
    """
    settings = ctx.settings
    url = dev_server.health_url(settings.addr)
    if dev_server.probe_health(url):
        logger.info(f"Vault already responding at {settings.addr}")
        return False

    ctx.default_token = secrets.token_hex(12)
    logger.info("Starting Vault dev server (will use token ID shown below)...")
    logger.info(f"Dev root token (for convenience): {ctx.default_token}")
    dev_server.start_dev_server(settings.addr, ctx.default_token, settings.log_file,
                                binary=ctx.vault_binary)
    dev_server.wait_ready(
        url,
        attempts=settings.readiness_attempts,
        interval=settings.readiness_interval,
        probe=dev_server.probe_health,
        sleep=sleep,
        hint=f"Check {settings.log_file}",
    )
    logger.info(f"Vault dev server started and is responding at {settings.addr}")
    logger.info(f"You can view logs: tail -n 50 {settings.log_file}")
    return True


def authenticate(ctx: VaultLabContext, vault: VaultClient, prompt: Prompt) -> None:
    logger.info(f"Open the Vault UI (Cloud Shell web preview on port 8200) or browse to {ctx.addr}")
    ctx.token = acquire_token(
        vault.validate_token,
        prompt=prompt,
        default_token=ctx.default_token,
        max_attempts=ctx.settings.token_attempts,
    )
    vault.token = ctx.token


def secret_round_trip(ctx: VaultLabContext, vault: VaultClient, report: VaultLabReport) -> str:
    """Write the sample secret, read it back and save it to the artifact file."""
    s = ctx.settings
    report.ensured[f"secret engine:{s.kv_mount}"] = ensure(
        "secret engine",
        s.kv_mount,
        lambda: vault.list_secret_engines().keys(),
        lambda: vault.enable_secret_engine("kv", s.kv_mount, options={"version": "2"}),
    ).value

    logger.info(f"Writing secret to {s.kv_mount}/{s.secret_path}")
    vault.put_secret(s.kv_mount, s.secret_path, {s.secret_field: s.secret_value})

    value = vault.get_field(s.kv_mount, s.secret_path, s.secret_field)
    if value != s.secret_value:
        raise VaultOperationError(
            f"Read back a different value from {s.kv_mount}/{s.secret_path} than was written"
        )

    logger.info(f"Reading and saving secret value to {s.artifact_file}")
    with open(s.artifact_file, "w", encoding="utf-8", newline="") as f:
        f.write(value)
    report.secret_value = value
    report.artifact_path = s.artifact_file
    return value


def upload_artifact(ctx: VaultLabContext, report: VaultLabReport,
                    storage_client: Optional[StorageClient] = None) -> None:
    artifact = ctx.settings.artifact_file
    if not ctx.bucket:
        logger.warning(f"Could not auto-detect a bucket in project '{ctx.project_id}'.")
        logger.warning(f"Manually upload the file with: gsutil cp {artifact} gs://<your-bucket>/")
        return

    logger.info(f"Uploading {artifact} to {ctx.bucket}")
    client = storage_client or StorageClient(ctx.project_id)
    report.uploaded_uri = client.upload(artifact, ctx.bucket)
    logger.info(f"Upload successful: {report.uploaded_uri}")


def ensure_identity(ctx: VaultLabContext, vault: VaultClient, report: VaultLabReport) -> None:
    user = ctx.settings.userpass
    logger.info("Ensure userpass auth and demo user exist...")
    report.ensured["auth method:userpass"] = ensure(
        "auth method",
        "userpass",
        lambda: vault.list_auth_methods().keys(),
        lambda: vault.enable_auth_method("userpass"),
    ).value
    # existing users are left untouched, password included
    report.ensured[f"userpass user:{user.username}"] = ensure(
        "userpass user",
        user.username,
        vault.list_userpass_users,
        lambda: vault.create_userpass_user(user.username, user.password, user.policies),
    ).value


def ensure_transit(ctx: VaultLabContext, vault: VaultClient, report: VaultLabReport) -> None:
    s = ctx.settings
    logger.info(f"Ensure transit engine and key '{s.transit_key}' exist...")
    report.ensured[f"secret engine:{s.transit_mount}"] = ensure(
        "secret engine",
        s.transit_mount,
        lambda: vault.list_secret_engines().keys(),
        lambda: vault.enable_secret_engine("transit", s.transit_mount),
    ).value
    report.ensured[f"transit key:{s.transit_key}"] = ensure(
        "transit key",
        s.transit_key,
        lambda: vault.list_transit_keys(s.transit_mount),
        lambda: vault.create_transit_key(s.transit_key, s.transit_mount),
    ).value


def policy_and_encryption_demo(ctx: VaultLabContext, vault: VaultClient, report: VaultLabReport) -> None:
    s = ctx.settings
    report.ensured[f"policy:{s.policy_name}"] = ensure(
        "policy",
        s.policy_name,
        vault.list_policies,
        lambda: vault.write_policy(s.policy_name, POLICY_TEMPLATE.format(mount=s.kv_mount)),
    ).value

    auth = vault.create_token([s.policy_name])
    report.token_accessor = auth.get("accessor")
    logger.info(f"Created token with policy {s.policy_name} (accessor {report.token_accessor})")

    plaintext = base64.b64encode(s.sample_plaintext.encode("utf-8")).decode("ascii")
    report.ciphertext = vault.encrypt(s.transit_key, plaintext, s.transit_mount)
    logger.info(f"Encrypted sample text: {report.ciphertext}")


def run_vault_lab(
    settings: VaultLabSettings,
    prompt: Prompt = input,
    vault: Optional[VaultClient] = None,
    gcloud: Optional[GcloudCLI] = None,
    storage_client: Optional[StorageClient] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> VaultLabReport:
    """
    Run the whole Vault lab.

    Every step is fatal on failure except bucket detection, which degrades
    to a printed manual upload instruction.
    """
    ctx = VaultLabContext(settings=settings)
    report = VaultLabReport()

    detect_targets(ctx, gcloud, storage_client)
    ctx.vault_binary = ensure_vault_installed(settings.install_version, settings.install_dir)
    report.server_started = start_or_detect_server(ctx, sleep=sleep)

    vault = vault or VaultClient(settings.addr)
    authenticate(ctx, vault, prompt)

    secret_round_trip(ctx, vault, report)
    upload_artifact(ctx, report, storage_client)
    ensure_identity(ctx, vault, report)
    ensure_transit(ctx, vault, report)
    policy_and_encryption_demo(ctx, vault, report)

    logger.info(f"Done. Vault UI available at {settings.addr} (use web preview port 8200).")
    logger.info(f"Secret written to: {Path(settings.artifact_file).resolve()}")
    return report
