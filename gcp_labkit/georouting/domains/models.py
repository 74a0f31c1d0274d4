"""Resource specs for the geo-routing lab."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class FirewallRuleSpec:
    name: str
    rules: str
    source_ranges: str
    network: str = "default"
    target_tags: Optional[str] = None
    direction: str = "INGRESS"
    priority: int = 1000
    action: str = "ALLOW"


@dataclass(frozen=True)
class InstanceSpec:
    name: str
    zone: str
    machine_type: str
    region: str
    tags: tuple = ()
    startup_script: Optional[str] = None  # opaque, passed through as metadata


@dataclass(frozen=True)
class DnsZoneSpec:
    name: str
    dns_name: str
    network: str
    description: str = "test"
    visibility: str = "private"


@dataclass(frozen=True)
class GeoRecordSpec:
    name: str
    zone: str
    ttl: int
    record_type: str = "A"


@dataclass
class GeoLabPlan:
    """Everything the provisioning run creates, in creation order."""
    apis: List[str]
    firewall_rules: List[FirewallRuleSpec]
    clients: List[InstanceSpec]
    servers: List[InstanceSpec]
    zone: DnsZoneSpec
    record: GeoRecordSpec


@dataclass
class GeoLabResult:
    server_ips: Dict[str, str] = field(default_factory=dict)  # region -> private IP
    routing_policy_data: str = ""
    instructions: List[str] = field(default_factory=list)
