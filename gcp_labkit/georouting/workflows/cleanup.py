"""Geo-routing lab teardown.

Deletes what provisioning creates, newest first. Every deletion is attempted
even if an earlier one failed, and nothing checks whether a resource exists
beforehand, so after a partial provisioning run some deletions will fail.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from gcp_labkit.common.domains.gcloud import GcloudCLI
from gcp_labkit.common.domains.settings import GeoRoutingSettings
from ..domains.models import GeoLabPlan
from ..domains.topology import build_plan

logger = logging.getLogger(__name__)


@dataclass
class CleanupReport:
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def deletion_steps(plan: GeoLabPlan) -> List[Tuple[str, List[str]]]:
    """(description, gcloud args) for each created resource, in deletion order."""
    steps = [
        (f"record {plan.record.name}",
         ["dns", "record-sets", "delete", plan.record.name,
          f"--type={plan.record.record_type}", f"--zone={plan.record.zone}"]),
        (f"zone {plan.zone.name}",
         ["dns", "managed-zones", "delete", plan.zone.name]),
    ]
    for instance in reversed(plan.clients + plan.servers):
        steps.append((f"instance {instance.name}",
                      ["compute", "instances", "delete", instance.name, f"--zone={instance.zone}"]))
    for rule in reversed(plan.firewall_rules):
        steps.append((f"firewall rule {rule.name}",
                      ["compute", "firewall-rules", "delete", rule.name]))
    return steps


def cleanup(gcloud: GcloudCLI, plan: GeoLabPlan) -> CleanupReport:
    report = CleanupReport()
    logger.info("Deleting all lab resources...")
    for description, args in deletion_steps(plan):
        try:
            result = gcloud.run(["--quiet"] + args, check=False)
            ok = result.returncode == 0
        except OSError as e:
            logger.warning(f"Could not run gcloud to delete {description}: {e}")
            ok = False

        if ok:
            logger.info(f"Deleted {description}")
            report.deleted.append(description)
        else:
            logger.warning(f"Failed to delete {description}")
            report.failed.append(description)

    if report.failed:
        logger.warning(f"{len(report.failed)} deletion(s) failed: {', '.join(report.failed)}")
    return report


def run_geo_cleanup(settings: GeoRoutingSettings, gcloud: Optional[GcloudCLI] = None) -> CleanupReport:
    return cleanup(gcloud or GcloudCLI(), build_plan(settings))
