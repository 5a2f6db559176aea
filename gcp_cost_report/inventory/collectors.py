"""
Repository pattern for cloud inventory access.

Each method issues one read-only gcloud query and normalizes the result.
A query that fails, is unauthorized or is not enabled for the project
degrades to an UNAVAILABLE result; nothing here raises for that.
"""

import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .models import (
    BillingInfo,
    Budget,
    ClusterDetail,
    ClusterStatus,
    Collected,
    ComputeInstance,
    Disk,
    ForwardingRule,
    ProjectInfo,
    QueryStatus,
    ResourceCount,
    ResourceCounts,
    StorageBucket,
    ThresholdBasis,
    ThresholdRule,
    VpcNetwork,
)
from .runner import CommandRunner, ProjectContext

logger = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d{2}:\d{2}$|$)")


def parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as printed by gcloud.

    Fractions of any length (GKE reports nanoseconds) are cut or padded to
    microseconds first.
    """
    if not raw:
        return None
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), raw.replace("Z", "+00:00"))
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        logger.debug("Unparseable timestamp %r", raw)
        return None


def _last_segment(url: Optional[str]) -> str:
    """Strip a resource URL down to its final component (zones/us-a → us-a)."""
    if not url:
        return ""
    return url.rstrip("/").rsplit("/", 1)[-1]


class InventoryRepository:
    """Read-only access to the inventory of one project.

    Args:
        context: Which project and binaries to use
        runner: Executes the underlying commands
    """

    def __init__(self, context: ProjectContext, runner: Optional[CommandRunner] = None):
        self.context = context
        self.runner = runner or CommandRunner(context.timeout_seconds)

    def _gcloud(self, *args: str, project_scoped: bool = True) -> Optional[Any]:
        command = [self.context.gcloud_bin, *args]
        if project_scoped:
            command.append(f"--project={self.context.project_id}")
        command.append("--format=json")
        return self.runner.run_json(command)

    def _collect(self, what: str, raw: Optional[Any], parse: Callable[[Dict], Any]) -> Collected:
        """Normalize a JSON list into a Collected result."""
        if raw is None:
            logger.warning("%s unavailable for project %s", what, self.context.project_id)
            return Collected.unavailable()
        if not isinstance(raw, list):
            logger.warning("%s: expected a list, got %s", what, type(raw).__name__)
            return Collected.unavailable()
        try:
            items = tuple(parse(entry) for entry in raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("%s: could not parse response: %s", what, e)
            return Collected.unavailable()
        return Collected(items=items, status=QueryStatus.OK)

    def get_project_info(self) -> ProjectInfo:
        """Get project metadata; falls back to the bare id if describe fails."""
        raw = self._gcloud("projects", "describe", self.context.project_id, project_scoped=False)
        if not isinstance(raw, dict):
            logger.warning("Project metadata unavailable for %s", self.context.project_id)
            return ProjectInfo(project_id=self.context.project_id)
        return ProjectInfo(
            project_id=raw.get("projectId", self.context.project_id),
            project_number=raw.get("projectNumber"),
            display_name=raw.get("name"),
            create_time=parse_timestamp(raw.get("createTime")),
        )

    def list_clusters(self) -> Collected:
        raw = self._gcloud("container", "clusters", "list")
        return self._collect("GKE clusters", raw, _parse_cluster)

    def list_instances(self) -> Collected:
        raw = self._gcloud("compute", "instances", "list")
        return self._collect("Compute instances", raw, _parse_instance)

    def list_disks(self) -> Collected:
        raw = self._gcloud("compute", "disks", "list")
        return self._collect("Persistent disks", raw, _parse_disk)

    def list_networks(self) -> Collected:
        raw = self._gcloud("compute", "networks", "list")
        return self._collect("VPC networks", raw, _parse_network)

    def list_forwarding_rules(self) -> Collected:
        raw = self._gcloud("compute", "forwarding-rules", "list")
        return self._collect("Forwarding rules", raw, _parse_forwarding_rule)

    def list_buckets(self) -> Collected:
        raw = self._gcloud("storage", "buckets", "list")
        return self._collect("Storage buckets", raw, _parse_bucket)

    def get_billing_info(self) -> BillingInfo:
        """Get billing linkage, then the linked account's details if any.

        Returns:
            BillingInfo; status is UNAVAILABLE if the project lookup failed
        """
        raw = self._gcloud("billing", "projects", "describe", self.context.project_id, project_scoped=False)
        if not isinstance(raw, dict):
            logger.warning("Billing information unavailable for %s", self.context.project_id)
            return BillingInfo(account_id=None, billing_enabled=False, status=QueryStatus.UNAVAILABLE)

        account_id = _last_segment(raw.get("billingAccountName")) or None
        billing_enabled = bool(raw.get("billingEnabled", False))
        if account_id is None:
            return BillingInfo(account_id=None, billing_enabled=billing_enabled)

        account = self._gcloud("billing", "accounts", "describe", account_id, project_scoped=False)
        if not isinstance(account, dict):
            logger.warning("Billing account %s details unavailable", account_id)
            return BillingInfo(account_id=account_id, billing_enabled=billing_enabled)

        return BillingInfo(
            account_id=account_id,
            billing_enabled=billing_enabled,
            account_display_name=account.get("displayName"),
            account_open=bool(account.get("open", False)),
        )

    def list_budgets(self, billing: BillingInfo) -> Collected:
        """List budgets on the linked billing account.

        Skipped (UNAVAILABLE) when no billing account resolved.
        """
        if billing.account_id is None:
            return Collected.unavailable()
        raw = self._gcloud(
            "billing", "budgets", "list",
            f"--billing-account={billing.account_id}",
            project_scoped=False,
        )
        return self._collect("Budgets", raw, _parse_budget)


def resource_counts(
    clusters: Collected,
    instances: Collected,
    disks: Collected,
    networks: Collected,
    forwarding_rules: Collected,
    buckets: Collected,
) -> ResourceCounts:
    """Summarize collected lists into headline counts."""
    return ResourceCounts(
        gke_clusters=ResourceCount.of(clusters),
        compute_instances=ResourceCount.of(instances),
        disks=ResourceCount.of(disks),
        vpc_networks=ResourceCount.of(networks),
        load_balancers=ResourceCount.of(forwarding_rules),
        storage_buckets=ResourceCount.of(buckets),
    )


def _parse_cluster(data: Dict) -> ClusterDetail:
    return ClusterDetail(
        name=data["name"],
        location=data.get("location") or data.get("zone", ""),
        control_plane_version=data.get("currentMasterVersion"),
        node_version=data.get("currentNodeVersion"),
        status=ClusterStatus.parse(data.get("status")),
        node_count=int(data.get("currentNodeCount", 0)),
        create_time=parse_timestamp(data.get("createTime")),
    )


def _parse_instance(data: Dict) -> ComputeInstance:
    internal_ip = None
    external_ip = None
    interfaces: List[Dict] = data.get("networkInterfaces") or []
    if interfaces:
        internal_ip = interfaces[0].get("networkIP")
        for access in interfaces[0].get("accessConfigs") or []:
            if access.get("natIP"):
                external_ip = access["natIP"]
                break
    return ComputeInstance(
        name=data["name"],
        zone=_last_segment(data.get("zone")),
        machine_type=_last_segment(data.get("machineType")),
        status=data.get("status", "UNKNOWN"),
        internal_ip=internal_ip,
        external_ip=external_ip,
    )


def _parse_disk(data: Dict) -> Disk:
    size = data.get("sizeGb")
    return Disk(
        name=data["name"],
        zone=_last_segment(data.get("zone")),
        size_gb=int(size) if size not in (None, "") else None,
        disk_type=_last_segment(data.get("type")) or None,
    )


def _parse_network(data: Dict) -> VpcNetwork:
    mode = data.get("x_gcloud_subnet_mode")
    if not mode:
        if "autoCreateSubnetworks" not in data:
            mode = "LEGACY"
        else:
            mode = "AUTO" if data["autoCreateSubnetworks"] else "CUSTOM"
    return VpcNetwork(name=data["name"], subnet_mode=mode)


def _parse_forwarding_rule(data: Dict) -> ForwardingRule:
    return ForwardingRule(
        name=data["name"],
        region=_last_segment(data.get("region")) or "global",
        ip_address=data.get("IPAddress"),
        port_range=data.get("portRange"),
        target=_last_segment(data.get("target")) or None,
    )


def _parse_bucket(data: Dict) -> StorageBucket:
    # `gcloud storage` prints snake_case keys, the JSON API camelCase
    return StorageBucket(
        name=data["name"],
        location=data.get("location"),
        storage_class=data.get("default_storage_class") or data.get("storageClass"),
    )


def _parse_budget(data: Dict) -> Budget:
    specified = (data.get("amount") or {}).get("specifiedAmount") or {}
    rules = tuple(
        ThresholdRule(
            percent=float(rule.get("thresholdPercent", 0)) * 100,
            basis=ThresholdBasis.parse(rule.get("spendBasis")),
        )
        for rule in data.get("thresholdRules") or []
    )
    return Budget(
        display_name=data.get("displayName") or _last_segment(data.get("name")),
        specified_amount_units=specified.get("units"),
        currency_code=specified.get("currencyCode"),
        calendar_period=(data.get("budgetFilter") or {}).get("calendarPeriod"),
        threshold_rules=rules,
    )
