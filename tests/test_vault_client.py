"""Tests for the hvac wrapper, with hvac.Client mocked out."""
from unittest import mock

import hvac
import pytest
import requests

from gcp_labkit.common.domains.errors import ConnectivityError, VaultOperationError
from gcp_labkit.vault.domains.vault_client import VaultClient

MOUNTS = {
    "request_id": "abc",
    "data": {
        "secret/": {"type": "kv", "options": {"version": "2"}},
        "legacy/": {"type": "kv", "options": None},
        "transit/": {"type": "transit", "options": None},
        "sys/": {"type": "system", "options": None},
    },
}


@pytest.fixture
def client():
    vault = VaultClient("http://127.0.0.1:8200")
    vault._client = mock.MagicMock()
    vault._client.sys.list_mounted_secrets_engines.return_value = MOUNTS
    return vault


class TestListing:

    def test_secret_engines_strip_trailing_slash(self, client):
        engines = client.list_secret_engines()
        assert set(engines) == {"secret", "legacy", "transit", "sys"}

    def test_empty_list_reads_as_no_keys(self, client):
        client._client.secrets.transit.list_keys.side_effect = hvac.exceptions.InvalidPath()
        assert client.list_transit_keys() == []

    def test_keys_returned(self, client):
        client._client.auth.userpass.list_user.return_value = {"data": {"keys": ["testuser"]}}
        assert client.list_userpass_users() == ["testuser"]

    def test_policies(self, client):
        client._client.sys.list_acl_policies.return_value = {"data": {"keys": ["default", "root"]}}
        assert client.list_policies() == ["default", "root"]

    def test_connection_refused_is_connectivity_error(self, client):
        client._client.sys.list_auth_methods.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(ConnectivityError):
            client.list_auth_methods()

    def test_connection_refused_on_keys_is_not_empty(self, client):
        client._client.secrets.transit.list_keys.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(ConnectivityError):
            client.list_transit_keys()


class TestKeyValue:

    def test_v2_mount_uses_v2_api(self, client):
        client._client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"value": "s3cr3t"}}}

        client.put_secret("secret", "hello", {"value": "s3cr3t"})
        value = client.get_field("secret", "hello", "value")

        assert value == "s3cr3t"
        client._client.secrets.kv.v2.create_or_update_secret.assert_called_once_with(
            path="hello", secret={"value": "s3cr3t"}, mount_point="secret")
        client._client.secrets.kv.v1.create_or_update_secret.assert_not_called()

    def test_v1_mount_uses_v1_api(self, client):
        client._client.secrets.kv.v1.read_secret.return_value = {"data": {"value": "old"}}

        client.put_secret("legacy", "hello", {"value": "old"})

        assert client.get_field("legacy", "hello", "value") == "old"
        client._client.secrets.kv.v1.create_or_update_secret.assert_called_once()

    def test_missing_field(self, client):
        client._client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {}}}
        with pytest.raises(VaultOperationError):
            client.get_field("secret", "hello", "value")

    def test_unmounted_path(self, client):
        with pytest.raises(VaultOperationError):
            client.put_secret("nowhere", "hello", {"value": "x"})

    def test_non_kv_mount(self, client):
        with pytest.raises(VaultOperationError):
            client.put_secret("transit", "hello", {"value": "x"})

    def test_write_forbidden(self, client):
        client._client.secrets.kv.v2.create_or_update_secret.side_effect = hvac.exceptions.Forbidden()
        with pytest.raises(VaultOperationError):
            client.put_secret("secret", "hello", {"value": "x"})


class TestToken:

    def test_valid(self, client):
        client._client.is_authenticated.return_value = True
        assert client.validate_token("root") is True
        assert client.token == "root"

    def test_invalid(self, client):
        client._client.is_authenticated.return_value = False
        assert client.validate_token("nope") is False

    def test_unreachable_counts_as_invalid(self, client):
        client._client.is_authenticated.side_effect = requests.exceptions.ConnectionError("refused")
        assert client.validate_token("root") is False

    def test_create_token_returns_auth_block(self, client):
        client._client.auth.token.create.return_value = {"auth": {"client_token": "s.x", "accessor": "a"}}
        assert client.create_token(["mypolicy"])["accessor"] == "a"
        client._client.auth.token.create.assert_called_once_with(policies=["mypolicy"])


class TestTransit:

    def test_encrypt(self, client):
        client._client.secrets.transit.encrypt_data.return_value = {"data": {"ciphertext": "vault:v1:abc"}}
        assert client.encrypt("mykey", "U2Vuc2l0aXZlRGF0YQ==") == "vault:v1:abc"
