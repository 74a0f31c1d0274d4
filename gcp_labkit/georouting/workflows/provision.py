"""Geo-routing lab provisioning.

Creation order is fixed: APIs, firewall rules, client VMs, server VMs,
server IP capture, private zone, geo record. Nothing is checked for prior
existence, so a second run without cleanup fails on the first duplicate.
"""
import logging
import subprocess
from typing import List, Optional

from gcp_labkit.common.domains.errors import LabkitError, ResourceCreationError
from gcp_labkit.common.domains.gcloud import GcloudCLI
from gcp_labkit.common.domains.settings import GeoRoutingSettings
from ..domains.models import (
    DnsZoneSpec,
    FirewallRuleSpec,
    GeoLabPlan,
    GeoLabResult,
    GeoRecordSpec,
    InstanceSpec,
)
from ..domains.topology import build_plan, manual_test_instructions, routing_policy_data

logger = logging.getLogger(__name__)


def firewall_create_args(rule: FirewallRuleSpec) -> List[str]:
    args = [
        "compute", "firewall-rules", "create", rule.name,
        f"--direction={rule.direction}",
        f"--priority={rule.priority}",
        f"--network={rule.network}",
        f"--action={rule.action}",
        f"--rules={rule.rules}",
        f"--source-ranges={rule.source_ranges}",
    ]
    if rule.target_tags:
        args.append(f"--target-tags={rule.target_tags}")
    return args


def instance_create_args(instance: InstanceSpec) -> List[str]:
    args = [
        "compute", "instances", "create", instance.name,
        f"--zone={instance.zone}",
        f"--machine-type={instance.machine_type}",
    ]
    if instance.tags:
        args.append(f"--tags={','.join(instance.tags)}")
    if instance.startup_script is not None:
        args.append(f"--metadata=startup-script={instance.startup_script}")
    return args


def zone_create_args(zone: DnsZoneSpec) -> List[str]:
    return [
        "dns", "managed-zones", "create", zone.name,
        f"--description={zone.description}",
        f"--dns-name={zone.dns_name}",
        f"--networks={zone.network}",
        f"--visibility={zone.visibility}",
    ]


def record_create_args(record: GeoRecordSpec, policy_data: str) -> List[str]:
    return [
        "dns", "record-sets", "create", record.name,
        f"--ttl={record.ttl}",
        f"--type={record.record_type}",
        f"--zone={record.zone}",
        "--routing-policy-type=GEO",
        f"--routing-policy-data={policy_data}",
    ]


def _create(gcloud: GcloudCLI, kind: str, name: str, args: List[str]) -> subprocess.CompletedProcess:
    logger.info(f"Creating {kind} {name}")
    try:
        return gcloud.run(args)
    except (OSError, subprocess.CalledProcessError) as e:
        raise ResourceCreationError(kind, name, e) from e


def capture_private_ip(gcloud: GcloudCLI, instance: InstanceSpec) -> str:
    try:
        result = gcloud.run(
            [
                "compute", "instances", "describe", instance.name,
                f"--zone={instance.zone}",
                "--format=value(networkInterfaces[0].networkIP)",
            ],
            capture=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise LabkitError(f"Failed to read private IP of {instance.name}: {e}") from e

    ip = result.stdout.strip()
    if not ip:
        raise LabkitError(f"No private IP reported for {instance.name}")
    return ip


def provision(gcloud: GcloudCLI, plan: GeoLabPlan) -> GeoLabResult:
    """
    Create every resource in ``plan``.

    Raises:
        ResourceCreationError: On the first failing create call
    """
    result = GeoLabResult()

    for api in plan.apis:
        logger.info(f"Enabling {api}")
        try:
            gcloud.run(["services", "enable", api])
        except (OSError, subprocess.CalledProcessError) as e:
            raise LabkitError(f"Failed to enable {api}: {e}") from e

    for rule in plan.firewall_rules:
        _create(gcloud, "firewall rule", rule.name, firewall_create_args(rule))

    for instance in plan.clients + plan.servers:
        _create(gcloud, "instance", instance.name, instance_create_args(instance))

    for server in plan.servers:
        result.server_ips[server.region] = capture_private_ip(gcloud, server)
        logger.info(f"{server.name} private IP: {result.server_ips[server.region]}")

    _create(gcloud, "private zone", plan.zone.name, zone_create_args(plan.zone))

    result.routing_policy_data = routing_policy_data(result.server_ips)
    logger.info(f"Routing policy: {result.routing_policy_data}")
    _create(gcloud, "geo record", plan.record.name, record_create_args(plan.record, result.routing_policy_data))

    result.instructions = manual_test_instructions(plan)
    return result


def run_geo_lab(settings: GeoRoutingSettings, gcloud: Optional[GcloudCLI] = None) -> GeoLabResult:
    return provision(gcloud or GcloudCLI(), build_plan(settings))
