"""Vault HTTP API wrapper built on hvac.

Listing methods return plain collections of names so they can feed
``ensure`` directly. A 404 on a LIST means "nothing there yet" and reads as
empty; an unreachable server raises ConnectivityError.
"""
import logging
from typing import Any, Dict, List, Optional

import hvac
import requests

from gcp_labkit.common.domains.errors import ConnectivityError, VaultOperationError

logger = logging.getLogger(__name__)

_CONNECTIVITY_ERRORS = (
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
    hvac.exceptions.VaultDown,
)


def _data(response: Any) -> Dict[str, Any]:
    """Unwrap the ``data`` envelope hvac returns for most endpoints."""
    if isinstance(response, dict):
        return response.get("data") or response
    return {}


def _mount_names(mounts: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    # mount listings key on "path/" and mix in envelope fields
    return {
        path.rstrip("/"): info
        for path, info in mounts.items()
        if path.endswith("/") and isinstance(info, dict)
    }


class VaultClient:
    """Wrapper around hvac.Client."""

    def __init__(self, addr: str, token: Optional[str] = None, timeout: int = 10):
        self.addr = addr
        self._client = hvac.Client(url=addr, token=token, timeout=timeout)

    @property
    def token(self) -> Optional[str]:
        return self._client.token

    @token.setter
    def token(self, value: str) -> None:
        self._client.token = value

    def _call(self, description: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except _CONNECTIVITY_ERRORS as e:
            raise ConnectivityError(f"Vault at {self.addr} unreachable while trying to {description}: {e}") from e

    def _list_keys(self, description: str, fn, **kwargs) -> List[str]:
        try:
            response = self._call(description, fn, **kwargs)
        except hvac.exceptions.InvalidPath:
            return []
        return list(_data(response).get("keys") or [])

    # -- token ----------------------------------------------------------

    def validate_token(self, token: str) -> bool:
        """
        Check whether ``token`` authorizes requests against this server.

        An unreachable server is reported as an invalid token, with a
        warning, so the operator gets another attempt.
        """
        self.token = token
        try:
            return bool(self._client.is_authenticated())
        except _CONNECTIVITY_ERRORS as e:
            logger.warning(f"Vault not reachable at {self.addr}: {e}")
            return False

    def create_token(self, policies: List[str]) -> Dict[str, Any]:
        """Create a child token bound to ``policies``; returns the auth block."""
        response = self._call("create a token", self._client.auth.token.create, policies=policies)
        return response["auth"]

    # -- secret engines -------------------------------------------------

    def list_secret_engines(self) -> Dict[str, Dict[str, Any]]:
        """Mounted secret engines keyed by path without the trailing slash."""
        response = self._call("list secret engines", self._client.sys.list_mounted_secrets_engines)
        return _mount_names(_data(response))

    def enable_secret_engine(self, backend_type: str, path: str, options: Optional[Dict[str, str]] = None) -> None:
        self._call(
            f"enable {backend_type} at {path}/",
            self._client.sys.enable_secrets_engine,
            backend_type=backend_type,
            path=path,
            options=options,
        )

    def kv_version(self, mount: str) -> str:
        """Return "1" or "2" for the kv engine mounted at ``mount``."""
        info = self.list_secret_engines().get(mount)
        if info is None:
            raise VaultOperationError(f"No secret engine mounted at {mount}/")
        if info.get("type") not in ("kv", "generic"):
            raise VaultOperationError(f"{mount}/ is a {info.get('type')} engine, not kv")
        options = info.get("options") or {}
        return str(options.get("version") or "1")

    # -- kv -------------------------------------------------------------

    def put_secret(self, mount: str, path: str, fields: Dict[str, str]) -> None:
        """Write ``fields`` at ``mount/path``, replacing whatever was there."""
        try:
            if self.kv_version(mount) == "2":
                self._call(
                    f"write {mount}/{path}",
                    self._client.secrets.kv.v2.create_or_update_secret,
                    path=path, secret=fields, mount_point=mount,
                )
            else:
                self._call(
                    f"write {mount}/{path}",
                    self._client.secrets.kv.v1.create_or_update_secret,
                    path=path, secret=fields, mount_point=mount,
                )
        except hvac.exceptions.VaultError as e:
            raise VaultOperationError(f"Failed to write secret {mount}/{path}: {e}") from e

    def get_field(self, mount: str, path: str, field: str) -> str:
        """Read a single field from ``mount/path``."""
        try:
            if self.kv_version(mount) == "2":
                response = self._call(
                    f"read {mount}/{path}",
                    self._client.secrets.kv.v2.read_secret_version,
                    path=path, mount_point=mount, raise_on_deleted_version=True,
                )
                data = response["data"]["data"]
            else:
                response = self._call(
                    f"read {mount}/{path}",
                    self._client.secrets.kv.v1.read_secret,
                    path=path, mount_point=mount,
                )
                data = response["data"]
        except hvac.exceptions.VaultError as e:
            raise VaultOperationError(f"Failed to read secret {mount}/{path}: {e}") from e

        if field not in data:
            raise VaultOperationError(f"Secret {mount}/{path} has no field '{field}'")
        return data[field]

    # -- auth methods ---------------------------------------------------

    def list_auth_methods(self) -> Dict[str, Dict[str, Any]]:
        response = self._call("list auth methods", self._client.sys.list_auth_methods)
        return _mount_names(_data(response))

    def enable_auth_method(self, method_type: str, path: Optional[str] = None) -> None:
        self._call(
            f"enable auth method {method_type}",
            self._client.sys.enable_auth_method,
            method_type=method_type, path=path,
        )

    def list_userpass_users(self, mount: str = "userpass") -> List[str]:
        return self._list_keys("list userpass users", self._client.auth.userpass.list_user, mount_point=mount)

    def create_userpass_user(self, username: str, password: str, policies: List[str], mount: str = "userpass") -> None:
        self._call(
            f"create user {username}",
            self._client.auth.userpass.create_or_update_user,
            username=username, password=password, policies=policies, mount_point=mount,
        )

    # -- policies -------------------------------------------------------

    def list_policies(self) -> List[str]:
        return self._list_keys("list policies", self._client.sys.list_acl_policies)

    def write_policy(self, name: str, policy: str) -> None:
        self._call(f"write policy {name}", self._client.sys.create_or_update_acl_policy, name=name, policy=policy)

    # -- transit --------------------------------------------------------

    def list_transit_keys(self, mount: str = "transit") -> List[str]:
        return self._list_keys("list transit keys", self._client.secrets.transit.list_keys, mount_point=mount)

    def create_transit_key(self, name: str, mount: str = "transit") -> None:
        self._call(f"create transit key {name}", self._client.secrets.transit.create_key, name=name, mount_point=mount)

    def encrypt(self, key: str, plaintext_b64: str, mount: str = "transit") -> str:
        """Encrypt base64 plaintext with a transit key; returns the ciphertext."""
        try:
            response = self._call(
                f"encrypt with {key}",
                self._client.secrets.transit.encrypt_data,
                name=key, plaintext=plaintext_b64, mount_point=mount,
            )
        except hvac.exceptions.VaultError as e:
            raise VaultOperationError(f"Failed to encrypt with transit key {key}: {e}") from e
        return response["data"]["ciphertext"]
