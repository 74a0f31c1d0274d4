"""Shared fixtures and test doubles."""
import subprocess
from pathlib import Path

import pytest

from gcp_labkit.common.domains import preferences


@pytest.fixture
def temp_home(tmp_path, monkeypatch):
    """Fixture to create a temporary home directory for testing."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()
    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setattr(Path, "home", lambda: fake_home)

    fake_config_dir = fake_home / ".config" / "gcp-labkit"
    monkeypatch.setattr(preferences, "PREFERENCES_DIR", fake_config_dir)
    monkeypatch.setattr(preferences, "PREFERENCES_FILE", fake_config_dir / "preferences.json")

    return fake_home


@pytest.fixture
def temp_config_dir(temp_home):
    config_dir = temp_home / ".config" / "gcp-labkit"
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


class FakeVault:
    """In-memory stand-in for VaultClient that records every call."""

    def __init__(self, valid_tokens=("root-token",), kv_version="2"):
        self.valid_tokens = set(valid_tokens)
        self.token = None
        self.calls = []
        self.probes = []
        self.engines = {
            "secret": {"type": "kv", "options": {"version": kv_version}},
            "sys": {"type": "system", "options": None},
        }
        self.auth_methods = {"token": {"type": "token"}}
        self.users = {}
        self.policies = ["default", "root"]
        self.transit_keys = []
        self.kv = {}

    def validate_token(self, token):
        self.probes.append(token)
        return token in self.valid_tokens

    def list_secret_engines(self):
        return dict(self.engines)

    def enable_secret_engine(self, backend_type, path, options=None):
        self.calls.append(("enable_secret_engine", backend_type, path))
        if path in self.engines:
            raise RuntimeError(f"path is already in use at {path}/")
        self.engines[path] = {"type": backend_type, "options": options}

    def put_secret(self, mount, path, fields):
        self.calls.append(("put_secret", mount, path))
        self.kv[(mount, path)] = dict(fields)

    def get_field(self, mount, path, field):
        return self.kv[(mount, path)][field]

    def list_auth_methods(self):
        return dict(self.auth_methods)

    def enable_auth_method(self, method_type, path=None):
        self.calls.append(("enable_auth_method", method_type))
        self.auth_methods[path or method_type] = {"type": method_type}

    def list_userpass_users(self, mount="userpass"):
        return list(self.users)

    def create_userpass_user(self, username, password, policies, mount="userpass"):
        self.calls.append(("create_userpass_user", username))
        self.users[username] = {"password": password, "policies": list(policies)}

    def list_policies(self):
        return list(self.policies)

    def write_policy(self, name, policy):
        self.calls.append(("write_policy", name))
        self.policies.append(name)

    def list_transit_keys(self, mount="transit"):
        return list(self.transit_keys)

    def create_transit_key(self, name, mount="transit"):
        self.calls.append(("create_transit_key", name))
        self.transit_keys.append(name)

    def create_token(self, policies):
        self.calls.append(("create_token", tuple(policies)))
        return {"client_token": "s.child", "accessor": "acc-123", "policies": list(policies)}

    def encrypt(self, key, plaintext_b64, mount="transit"):
        self.calls.append(("encrypt", key))
        return f"vault:v1:{plaintext_b64}"

    def creations(self):
        return [c for c in self.calls if c[0] not in ("put_secret", "create_token", "encrypt")]


@pytest.fixture
def fake_vault():
    return FakeVault()


class RecordingGcloud:
    """GcloudCLI double: records argument lists and fakes describe output."""

    def __init__(self, ips=None, fail_on=(), config=None):
        self.commands = []
        self.ips = ips or {}
        self.fail_on = set(fail_on)
        self.config = config or {}

    def run(self, args, capture=False, check=True):
        self.commands.append(list(args))
        names = set(args)
        returncode = 1 if names & self.fail_on else 0
        if returncode and check:
            raise subprocess.CalledProcessError(returncode, ["gcloud"] + list(args))

        stdout = ""
        if "describe" in args:
            stdout = self.ips.get(args[args.index("describe") + 1], "") + "\n"
        return subprocess.CompletedProcess(["gcloud"] + list(args), returncode, stdout=stdout, stderr="")

    def get_config_value(self, key):
        return self.config.get(key)


@pytest.fixture
def recording_gcloud():
    return RecordingGcloud(ips={"us-web-vm": "10.142.0.2", "europe-web-vm": "10.132.0.2"})
