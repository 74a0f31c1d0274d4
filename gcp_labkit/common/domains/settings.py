"""Typed settings for both labs.

Defaults reproduce the lab exercises as published, so a missing config file is a
valid configuration.
"""
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class UserpassSettings:
    """Demo identity created under the userpass auth method."""
    username: str = "testuser"
    password: str = "testpass"
    policies: List[str] = field(default_factory=lambda: ["default"])


@dataclass
class VaultLabSettings:
    addr: str = "http://127.0.0.1:8200"
    log_file: str = "vault.log"
    install_version: str = "1.14.2"
    install_dir: str = "/usr/local/bin"
    readiness_attempts: int = 30
    readiness_interval: float = 1.0
    token_attempts: int = 3
    kv_mount: str = "secret"
    secret_path: str = "hello"
    secret_field: str = "value"
    secret_value: str = "mysecretvalue"
    artifact_file: str = "secret.txt"
    bucket: Optional[str] = None
    userpass: UserpassSettings = field(default_factory=UserpassSettings)
    transit_mount: str = "transit"
    transit_key: str = "mykey"
    policy_name: str = "mypolicy"
    sample_plaintext: str = "SensitiveData"


@dataclass
class RegionSettings:
    """One region of the geo-routing topology.

    Every region gets a client VM named ``<prefix>-client-vm``; regions with
    ``server`` set also get ``<prefix>-web-vm`` and an entry in the routing
    policy.
    """
    prefix: str
    region: str
    zone: str
    server: bool = True


def _default_regions() -> List[RegionSettings]:
    return [
        RegionSettings(prefix="us", region="us-east1", zone="us-east1-b"),
        RegionSettings(prefix="europe", region="europe-west1", zone="europe-west1-b"),
        RegionSettings(prefix="asia", region="asia-south1", zone="asia-south1-b", server=False),
    ]


@dataclass
class GeoRoutingSettings:
    regions: List[RegionSettings] = field(default_factory=_default_regions)
    machine_type: str = "e2-micro"
    network: str = "default"
    zone_name: str = "example"
    dns_name: str = "example.com"
    record_name: str = "geo.example.com"
    ttl: int = 5


@dataclass
class LabkitConfig:
    vault_lab: VaultLabSettings = field(default_factory=VaultLabSettings)
    geo_routing: GeoRoutingSettings = field(default_factory=GeoRoutingSettings)
