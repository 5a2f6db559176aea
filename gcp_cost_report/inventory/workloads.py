"""
Workload-level inventory from the cluster management API.

Queries the current kubectl context for pods, deployments, services and
persistent volume claims, plus node utilization. Callers check
`targets_project` first so another project's cluster is never reported.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional

from .models import Collected, NodeUsage, QueryStatus, ServiceEndpoint, WorkloadSummary
from .runner import CommandRunner, ProjectContext

logger = logging.getLogger(__name__)


class WorkloadCollector:
    """Read-only workload queries against the active kubectl context."""

    def __init__(self, context: ProjectContext, runner: Optional[CommandRunner] = None):
        self.context = context
        self.runner = runner or CommandRunner(context.timeout_seconds)

    def _items(self, kind: str) -> Optional[List[Dict[str, Any]]]:
        raw = self.runner.run_json(
            [self.context.kubectl_bin, "get", kind, "--all-namespaces", "-o", "json"]
        )
        if not isinstance(raw, dict):
            logger.warning("Kubernetes %s unavailable", kind)
            return None
        return raw.get("items") or []

    def targets_project(self) -> bool:
        """Whether the active kubectl context is a GKE cluster of this project.

        gcloud names the contexts it creates gke_<project>_<location>_<cluster>.
        """
        current = self.runner.run_text([self.context.kubectl_bin, "config", "current-context"])
        if current is None:
            return False
        return current.strip().startswith(f"gke_{self.context.project_id}_")

    def summarize(self) -> WorkloadSummary:
        """Count pods, deployments, services and PVCs across all namespaces.

        If pods cannot be listed the cluster is treated as unreachable and
        an UNAVAILABLE summary is returned without further queries.
        """
        pods = self._items("pods")
        if pods is None:
            return WorkloadSummary(status=QueryStatus.UNAVAILABLE)

        phases = Counter((pod.get("status") or {}).get("phase", "Unknown") for pod in pods)

        deployments = self._items("deployments") or []
        ready = sum(1 for d in deployments if _deployment_ready(d))

        services = self._items("services") or []
        endpoints = tuple(
            _service_endpoint(svc)
            for svc in services
            if (svc.get("spec") or {}).get("type") == "LoadBalancer"
        )

        pvcs = self._items("persistentvolumeclaims") or []
        bound = sum(1 for pvc in pvcs if (pvc.get("status") or {}).get("phase") == "Bound")

        return WorkloadSummary(
            pods_total=len(pods),
            pods_running=phases.get("Running", 0),
            pod_phases=dict(phases),
            deployments_total=len(deployments),
            deployments_ready=ready,
            services_total=len(services),
            load_balancer_services=endpoints,
            pvcs_total=len(pvcs),
            pvcs_bound=bound,
        )

    def node_usage(self) -> Collected:
        """Parse `kubectl top nodes`; needs metrics-server in the cluster."""
        output = self.runner.run_text([self.context.kubectl_bin, "top", "nodes", "--no-headers"])
        if output is None:
            logger.warning("Node utilization unavailable (is metrics-server installed?)")
            return Collected.unavailable()

        usage = []
        for line in output.splitlines():
            columns = line.split()
            if len(columns) < 5:
                continue
            usage.append(NodeUsage(
                name=columns[0],
                cpu_cores=columns[1],
                cpu_percent=columns[2],
                memory=columns[3],
                memory_percent=columns[4],
            ))
        return Collected(items=tuple(usage), status=QueryStatus.OK)


def _deployment_ready(deployment: Dict[str, Any]) -> bool:
    desired = (deployment.get("spec") or {}).get("replicas", 1)
    ready = (deployment.get("status") or {}).get("readyReplicas", 0)
    return ready >= desired


def _service_endpoint(service: Dict[str, Any]) -> ServiceEndpoint:
    metadata = service.get("metadata") or {}
    ingress = ((service.get("status") or {}).get("loadBalancer") or {}).get("ingress") or []
    external_ip = None
    if ingress:
        external_ip = ingress[0].get("ip") or ingress[0].get("hostname")
    ports = tuple(
        port["port"] for port in (service.get("spec") or {}).get("ports") or [] if "port" in port
    )
    return ServiceEndpoint(
        namespace=metadata.get("namespace", "default"),
        name=metadata.get("name", ""),
        external_ip=external_ip,
        ports=ports,
    )
