"""
Data models for the inventory layer.

Defines the immutable records built from collector output.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Generic, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class QueryStatus(Enum):
    """Outcome of a single inventory query."""
    OK = "ok"
    UNAVAILABLE = "unavailable"  # Failed, unauthorized or unsupported


@dataclass(frozen=True)
class Collected(Generic[T]):
    """Records returned by one collector, tagged with the query outcome.

    An empty OK result is a confirmed zero. An UNAVAILABLE result is an
    unknown count that happens to render as zero.
    """
    items: Tuple[T, ...] = ()
    status: QueryStatus = QueryStatus.OK

    @classmethod
    def unavailable(cls) -> "Collected":
        return cls(items=(), status=QueryStatus.UNAVAILABLE)

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def known(self) -> bool:
        return self.status is QueryStatus.OK


@dataclass(frozen=True)
class ResourceCount:
    """A resource count that remembers whether it was actually observed."""
    value: int
    known: bool = True

    def __post_init__(self):
        if self.value < 0:
            raise ValueError("resource count cannot be negative")

    @classmethod
    def of(cls, collected: Collected) -> "ResourceCount":
        return cls(value=collected.count, known=collected.known)


@dataclass(frozen=True)
class ResourceCounts:
    """Headline resource counts for a project."""
    gke_clusters: ResourceCount
    compute_instances: ResourceCount
    disks: ResourceCount
    vpc_networks: ResourceCount
    load_balancers: ResourceCount
    storage_buckets: ResourceCount


@dataclass(frozen=True)
class ProjectInfo:
    """Project metadata from `gcloud projects describe`."""
    project_id: str
    project_number: Optional[str] = None
    display_name: Optional[str] = None
    create_time: Optional[datetime] = None

    def days_since_creation(self, now: datetime) -> Optional[int]:
        """Whole days elapsed since the project was created."""
        if self.create_time is None:
            return None
        created = self.create_time
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return (now - created).days


class ClusterStatus(Enum):
    """GKE cluster lifecycle states."""
    PROVISIONING = "PROVISIONING"
    RUNNING = "RUNNING"
    RECONCILING = "RECONCILING"
    STOPPING = "STOPPING"
    ERROR = "ERROR"
    DEGRADED = "DEGRADED"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ClusterStatus":
        if not raw:
            return cls.UNKNOWN
        try:
            return cls(raw.upper())
        except ValueError:
            logger.debug("Unrecognized cluster status %r", raw)
            return cls.UNKNOWN


@dataclass(frozen=True)
class ClusterDetail:
    """One GKE cluster."""
    name: str
    location: str
    control_plane_version: Optional[str]
    node_version: Optional[str]
    status: ClusterStatus
    node_count: int
    create_time: Optional[datetime] = None


@dataclass(frozen=True)
class ComputeInstance:
    """One Compute Engine VM."""
    name: str
    zone: str
    machine_type: str
    status: str
    internal_ip: Optional[str] = None
    external_ip: Optional[str] = None


@dataclass(frozen=True)
class Disk:
    """One persistent disk. size_gb is None when the API omitted it."""
    name: str
    zone: str
    size_gb: Optional[int]
    disk_type: Optional[str] = None


@dataclass(frozen=True)
class VpcNetwork:
    name: str
    subnet_mode: str


@dataclass(frozen=True)
class ForwardingRule:
    """A load balancer entry point, the unit of load balancer cost."""
    name: str
    region: str
    ip_address: Optional[str]
    port_range: Optional[str] = None
    target: Optional[str] = None


@dataclass(frozen=True)
class StorageBucket:
    name: str
    location: Optional[str]
    storage_class: Optional[str]


@dataclass(frozen=True)
class BillingInfo:
    """Billing linkage for the project.

    account_id is only set when a billing account is linked; account
    lookups downstream are skipped otherwise.
    """
    account_id: Optional[str]
    billing_enabled: bool
    account_display_name: Optional[str] = None
    account_open: bool = False
    status: QueryStatus = QueryStatus.OK


class ThresholdBasis(Enum):
    """What a budget threshold is measured against."""
    ACTUAL = "ACTUAL"
    FORECASTED = "FORECASTED"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ThresholdBasis":
        if raw and raw.upper().startswith("FORECAST"):
            return cls.FORECASTED
        return cls.ACTUAL


@dataclass(frozen=True)
class ThresholdRule:
    percent: float
    basis: ThresholdBasis

    # Usually 0-100; Cloud Billing also accepts overspend thresholds like 120
    def __post_init__(self):
        if self.percent < 0:
            raise ValueError("threshold percent cannot be negative")


@dataclass(frozen=True)
class Budget:
    display_name: str
    specified_amount_units: Optional[str]
    currency_code: Optional[str]
    calendar_period: Optional[str]
    threshold_rules: Tuple[ThresholdRule, ...] = ()


@dataclass(frozen=True)
class ExchangeRate:
    """Conversion factor from USD, fetched once per run."""
    currency_code: str
    usd_to_target: float

    def __post_init__(self):
        if self.usd_to_target <= 0:
            raise ValueError("exchange rate must be > 0")


@dataclass(frozen=True)
class ServiceEndpoint:
    """A Kubernetes LoadBalancer service with an external address."""
    namespace: str
    name: str
    external_ip: Optional[str]
    ports: Tuple[int, ...] = ()


@dataclass(frozen=True)
class WorkloadSummary:
    """Aggregated workload state of the current kubectl context."""
    pods_total: int = 0
    pods_running: int = 0
    pod_phases: Dict[str, int] = field(default_factory=dict)
    deployments_total: int = 0
    deployments_ready: int = 0
    services_total: int = 0
    load_balancer_services: Tuple[ServiceEndpoint, ...] = ()
    pvcs_total: int = 0
    pvcs_bound: int = 0
    status: QueryStatus = QueryStatus.OK


@dataclass(frozen=True)
class NodeUsage:
    """One line of `kubectl top nodes`."""
    name: str
    cpu_cores: str
    cpu_percent: str
    memory: str
    memory_percent: str
