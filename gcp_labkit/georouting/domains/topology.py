"""Build the geo-routing lab plan from settings."""
from typing import Dict, List

from gcp_labkit.common.domains.settings import GeoRoutingSettings
from .models import DnsZoneSpec, FirewallRuleSpec, GeoLabPlan, GeoRecordSpec, InstanceSpec

REQUIRED_APIS = ["compute.googleapis.com", "dns.googleapis.com"]
IAP_SOURCE_RANGE = "35.235.240.0/20"
HTTP_TAG = "http-server"

STARTUP_SCRIPT = """#! /bin/bash
apt-get update
apt-get install apache2 -y
echo 'Page served from: {region}' > /var/www/html/index.html
systemctl restart apache2
"""


def startup_script(region: str) -> str:
    return STARTUP_SCRIPT.format(region=region)


def build_plan(settings: GeoRoutingSettings) -> GeoLabPlan:
    firewall_rules = [
        FirewallRuleSpec(
            name="fw-default-iapproxy",
            rules="tcp:22,icmp",
            source_ranges=IAP_SOURCE_RANGE,
            network=settings.network,
        ),
        FirewallRuleSpec(
            name="allow-http-traffic",
            rules="tcp:80",
            source_ranges="0.0.0.0/0",
            network=settings.network,
            target_tags=HTTP_TAG,
        ),
    ]
    clients = [
        InstanceSpec(
            name=f"{r.prefix}-client-vm",
            zone=r.zone,
            region=r.region,
            machine_type=settings.machine_type,
        )
        for r in settings.regions
    ]
    servers = [
        InstanceSpec(
            name=f"{r.prefix}-web-vm",
            zone=r.zone,
            region=r.region,
            machine_type=settings.machine_type,
            tags=(HTTP_TAG,),
            startup_script=startup_script(r.region),
        )
        for r in settings.regions
        if r.server
    ]
    return GeoLabPlan(
        apis=list(REQUIRED_APIS),
        firewall_rules=firewall_rules,
        clients=clients,
        servers=servers,
        zone=DnsZoneSpec(name=settings.zone_name, dns_name=settings.dns_name, network=settings.network),
        record=GeoRecordSpec(name=settings.record_name, zone=settings.zone_name, ttl=settings.ttl),
    )


def routing_policy_data(server_ips: Dict[str, str]) -> str:
    """``region=ip;region=ip`` in insertion order."""
    return ";".join(f"{region}={ip}" for region, ip in server_ips.items())


def manual_test_instructions(plan: GeoLabPlan) -> List[str]:
    lines = ["Testing Instructions:", "1. SSH into each client VM:"]
    lines += [f"   gcloud compute ssh {c.name} --zone={c.zone} --tunnel-through-iap" for c in plan.clients]
    lines.append(f"2. Run: for i in {{1..10}}; do echo $i; curl {plan.record.name}; sleep 6; done")
    lines.append("3. Compare results.")
    lines.append("To clean up later, run: labkit geo-lab cleanup")
    return lines
