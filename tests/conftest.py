"""
Shared fixtures: a fake command runner and canned gcloud/kubectl output.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from gcp_cost_report.core.report import build_report
from gcp_cost_report.inventory.collectors import InventoryRepository
from gcp_cost_report.inventory.models import ExchangeRate
from gcp_cost_report.inventory.runner import CommandRunner, ProjectContext
from gcp_cost_report.inventory.workloads import WorkloadCollector

NOW = datetime(2024, 4, 5, 12, 0, tzinfo=timezone.utc)


class FakeRunner(CommandRunner):
    """Answers commands from a table keyed by the command without flags.

    Keys look like "compute instances list" or "get pods". A command with
    no entry behaves like a failed query and returns None.
    """

    def __init__(self, json_responses: Optional[Dict[str, Any]] = None,
                 text_responses: Optional[Dict[str, str]] = None):
        super().__init__()
        self.json_responses = json_responses or {}
        self.text_responses = text_responses or {}
        self.calls: List[List[str]] = []

    @staticmethod
    def key(args: List[str]) -> str:
        words = [a for a in args[1:] if not a.startswith("-")]
        if words[:1] == ["get"]:
            return " ".join(words[:2])
        return " ".join(words)

    def run_text(self, args):
        self.calls.append(list(args))
        return self.text_responses.get(self.key(args))

    def run_json(self, args):
        self.calls.append(list(args))
        return self.json_responses.get(self.key(args))


SAMPLE_JSON = {
    "projects describe demo-project": {
        "projectId": "demo-project",
        "projectNumber": "123456789012",
        "name": "Demo Project",
        "createTime": "2024-01-01T12:00:00.000Z",
    },
    "container clusters list": [
        {
            "name": "demo-cluster",
            "location": "us-central1-a",
            "currentMasterVersion": "1.29.1-gke.1589000",
            "currentNodeVersion": "1.29.1-gke.1589000",
            "status": "RUNNING",
            "currentNodeCount": 2,
            "createTime": "2024-01-02T08:00:00+00:00",
        }
    ],
    "compute instances list": [
        {
            "name": "gke-demo-node-1",
            "zone": "https://www.googleapis.com/compute/v1/projects/demo-project/zones/us-central1-a",
            "machineType": "https://www.googleapis.com/compute/v1/projects/demo-project/zones/us-central1-a/machineTypes/e2-medium",
            "status": "RUNNING",
            "networkInterfaces": [
                {"networkIP": "10.128.0.2", "accessConfigs": [{"natIP": "34.10.20.30"}]}
            ],
        },
        {
            "name": "gke-demo-node-2",
            "zone": "https://www.googleapis.com/compute/v1/projects/demo-project/zones/us-central1-a",
            "machineType": "https://www.googleapis.com/compute/v1/projects/demo-project/zones/us-central1-a/machineTypes/e2-medium",
            "status": "RUNNING",
            "networkInterfaces": [{"networkIP": "10.128.0.3"}],
        },
    ],
    "compute disks list": [
        {"name": "gke-demo-node-1", "zone": "zones/us-central1-a", "sizeGb": "25", "type": "diskTypes/pd-balanced"},
        {"name": "gke-demo-node-2", "zone": "zones/us-central1-a", "sizeGb": "25", "type": "diskTypes/pd-balanced"},
    ],
    "compute networks list": [
        {"name": "default", "autoCreateSubnetworks": True},
    ],
    "compute forwarding-rules list": [
        {
            "name": "a1b2c3",
            "region": "regions/us-central1",
            "IPAddress": "35.1.2.3",
            "portRange": "80-80",
            "target": "targetPools/a1b2c3",
        }
    ],
    "storage buckets list": [
        {"name": "demo-artifacts", "location": "US", "default_storage_class": "STANDARD"},
    ],
    "billing projects describe demo-project": {
        "billingAccountName": "billingAccounts/01ABCD-234567-89EFGH",
        "billingEnabled": True,
    },
    "billing accounts describe 01ABCD-234567-89EFGH": {
        "displayName": "My Billing Account",
        "open": True,
    },
    "billing budgets list": [
        {
            "displayName": "Monthly cap",
            "amount": {"specifiedAmount": {"currencyCode": "USD", "units": "100"}},
            "budgetFilter": {"calendarPeriod": "MONTH"},
            "thresholdRules": [
                {"thresholdPercent": 0.5, "spendBasis": "CURRENT_SPEND"},
                {"thresholdPercent": 1.0, "spendBasis": "FORECASTED_SPEND"},
            ],
        }
    ],
    "get pods": {
        "items": [
            {"status": {"phase": "Running"}},
            {"status": {"phase": "Running"}},
            {"status": {"phase": "Pending"}},
        ]
    },
    "get deployments": {
        "items": [
            {"spec": {"replicas": 2}, "status": {"readyReplicas": 2}},
            {"spec": {"replicas": 1}, "status": {}},
        ]
    },
    "get services": {
        "items": [
            {"metadata": {"name": "kubernetes", "namespace": "default"}, "spec": {"type": "ClusterIP"}},
            {
                "metadata": {"name": "web", "namespace": "shop"},
                "spec": {"type": "LoadBalancer", "ports": [{"port": 8080}]},
                "status": {"loadBalancer": {"ingress": [{"ip": "35.1.2.3"}]}},
            },
        ]
    },
    "get persistentvolumeclaims": {
        "items": [{"status": {"phase": "Bound"}}]
    },
}

SAMPLE_TEXT = {
    "config current-context": "gke_demo-project_us-central1-a_demo-cluster\n",
    "top nodes": (
        "gke-demo-node-1   120m   12%   1024Mi   36%\n"
        "gke-demo-node-2   80m    8%    900Mi    32%\n"
    ),
}


@pytest.fixture
def context():
    return ProjectContext(project_id="demo-project")


@pytest.fixture
def fake_runner():
    """Runner that knows every sample command."""
    return FakeRunner(dict(SAMPLE_JSON), dict(SAMPLE_TEXT))


@pytest.fixture
def empty_runner():
    """Runner for which every query fails."""
    return FakeRunner()


@pytest.fixture
def repository(context, fake_runner):
    return InventoryRepository(context, fake_runner)


@pytest.fixture
def workloads(context, fake_runner):
    return WorkloadCollector(context, fake_runner)


@pytest.fixture
def inr_rate():
    return ExchangeRate(currency_code="INR", usd_to_target=84.50)


@pytest.fixture
def sample_report(repository, workloads, inr_rate):
    """Report for the sample project, 95 days after creation."""
    return build_report(repository, workloads, inr_rate, now=NOW)
