"""
Report assembly.

Runs every collector once, in order, and derives the cost breakdown and
free trial projection. Kubernetes workloads are queried only when the
active kubectl context is a cluster of the reported project.

This is the only place collectors and the cost model meet; by the time a
ProjectReport exists every degraded query has already been replaced by a
placeholder.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from gcp_cost_report.inventory.collectors import InventoryRepository, resource_counts
from gcp_cost_report.inventory.models import (
    BillingInfo,
    Collected,
    ExchangeRate,
    ProjectInfo,
    QueryStatus,
    ResourceCounts,
    WorkloadSummary,
)
from gcp_cost_report.inventory.workloads import WorkloadCollector

from .pricing import DEFAULT_PRICE_TABLE, CostBreakdown, PriceTable, calculate_cost_breakdown
from .trial import DEFAULT_TRIAL_SETTINGS, TrialProjection, TrialSettings, project_free_trial

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectReport:
    """Everything the renderer needs, fully populated."""
    generated_at: datetime
    project: ProjectInfo
    billing: BillingInfo
    budgets: Collected
    counts: ResourceCounts
    clusters: Collected
    instances: Collected
    disks: Collected
    networks: Collected
    forwarding_rules: Collected
    buckets: Collected
    workloads: WorkloadSummary
    node_usage: Collected
    costs: CostBreakdown
    rate: ExchangeRate
    trial: Optional[TrialProjection]
    trial_settings: TrialSettings
    price_table: PriceTable


def build_report(
    repository: InventoryRepository,
    workloads: WorkloadCollector,
    rate: ExchangeRate,
    price_table: PriceTable = DEFAULT_PRICE_TABLE,
    trial_settings: TrialSettings = DEFAULT_TRIAL_SETTINGS,
    now: Optional[datetime] = None,
) -> ProjectReport:
    """Collect the inventory of one project and derive its costs.

    Args:
        repository: Project inventory queries
        workloads: Kubernetes workload queries
        rate: USD to target currency rate, already fetched
        price_table: Unit prices
        trial_settings: Free trial terms
        now: Reference time for project age (defaults to current UTC time)

    Returns:
        ProjectReport ready for rendering
    """
    now = now or datetime.now(timezone.utc)

    project = repository.get_project_info()
    billing = repository.get_billing_info()
    budgets = repository.list_budgets(billing)

    clusters = repository.list_clusters()
    instances = repository.list_instances()
    disks = repository.list_disks()
    networks = repository.list_networks()
    forwarding_rules = repository.list_forwarding_rules()
    buckets = repository.list_buckets()
    counts = resource_counts(clusters, instances, disks, networks, forwarding_rules, buckets)

    workload_summary = WorkloadSummary(status=QueryStatus.UNAVAILABLE)
    node_usage = Collected.unavailable()
    if not clusters.count:
        logger.info("No known GKE clusters; skipping workload queries")
    elif not workloads.targets_project():
        logger.info("kubectl context is not a cluster of %s; skipping workload queries",
                    workloads.context.project_id)
    else:
        workload_summary = workloads.summarize()
        node_usage = workloads.node_usage()

    costs = calculate_cost_breakdown(
        instance_count=instances.count,
        disks=disks.items,
        forwarding_rule_count=forwarding_rules.count,
        table=price_table,
    )

    trial = None
    days = project.days_since_creation(now)
    if days is None:
        logger.warning("Project creation time unknown; skipping free trial projection")
    else:
        # Clock skew can put createTime slightly ahead of now
        trial = project_free_trial(max(days, 0), costs, trial_settings)

    return ProjectReport(
        generated_at=now,
        project=project,
        billing=billing,
        budgets=budgets,
        counts=counts,
        clusters=clusters,
        instances=instances,
        disks=disks,
        networks=networks,
        forwarding_rules=forwarding_rules,
        buckets=buckets,
        workloads=workload_summary,
        node_usage=node_usage,
        costs=costs,
        rate=rate,
        trial=trial,
        trial_settings=trial_settings,
        price_table=price_table,
    )
