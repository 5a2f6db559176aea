"""
Unit tests for report assembly.
"""

from datetime import datetime, timezone
from decimal import Decimal

from gcp_cost_report.core.pricing import PriceTable
from gcp_cost_report.core.report import build_report
from gcp_cost_report.core.trial import TrialSettings
from gcp_cost_report.inventory.collectors import InventoryRepository
from gcp_cost_report.inventory.models import QueryStatus
from gcp_cost_report.inventory.workloads import WorkloadCollector

from conftest import NOW, SAMPLE_JSON, SAMPLE_TEXT, FakeRunner


class TestBuildReport:
    """Test collection and derivation."""

    def test_sample_project(self, repository, workloads, inr_rate):
        """Verify counts, costs and trial for the sample project."""
        report = build_report(repository, workloads, inr_rate, now=NOW)

        assert report.project.project_id == "demo-project"
        assert report.counts.compute_instances.value == 2
        assert report.counts.load_balancers.value == 1
        assert report.costs.total_monthly == Decimal("69.00")
        assert report.costs.converted(report.rate)["total_monthly"] == Decimal("5830.50")
        assert report.trial is not None
        assert report.trial.days_since_creation == 95
        assert report.trial.days_remaining == -5
        assert report.trial.expired

    def test_every_collector_runs_once(self, repository, workloads, inr_rate, fake_runner):
        """Verify a single pass over the collectors."""
        build_report(repository, workloads, inr_rate, now=NOW)
        keys = [FakeRunner.key(call) for call in fake_runner.calls]
        assert len(keys) == len(set(keys))
        assert "compute instances list" in keys
        assert "top nodes" in keys

    def test_injected_prices_and_trial(self, repository, workloads, inr_rate):
        """Verify configuration flows into the cost model."""
        report = build_report(
            repository, workloads, inr_rate,
            price_table=PriceTable(compute_node_month=Decimal("10")),
            trial_settings=TrialSettings(length_days=365),
            now=NOW,
        )
        assert report.costs.compute_monthly == Decimal("20")
        assert report.trial.days_remaining == 270

    def test_everything_unavailable(self, context, empty_runner, inr_rate):
        """Verify a project where every query fails still yields a report."""
        report = build_report(
            InventoryRepository(context, empty_runner),
            WorkloadCollector(context, empty_runner),
            inr_rate,
            now=NOW,
        )

        assert report.counts.gke_clusters.value == 0
        assert not report.counts.gke_clusters.known
        assert report.costs.total_monthly == 0
        assert report.trial is None
        assert report.billing.status is QueryStatus.UNAVAILABLE
        assert report.workloads.status is QueryStatus.UNAVAILABLE

    def test_creation_after_now_is_day_zero(self, context, inr_rate):
        """Verify a createTime slightly in the future counts as day 0."""
        responses = dict(SAMPLE_JSON)
        responses["projects describe demo-project"] = {
            "projectId": "demo-project",
            "createTime": "2024-04-05T12:30:00Z",
        }
        runner = FakeRunner(responses)
        report = build_report(
            InventoryRepository(context, runner),
            WorkloadCollector(context, runner),
            inr_rate,
            now=datetime(2024, 4, 5, 12, 0, tzinfo=timezone.utc),
        )
        assert report.trial.days_since_creation == 0
        assert report.trial.days_remaining == 90


class TestWorkloadScope:
    """Test that Kubernetes data comes only from the project's own clusters."""

    def test_no_clusters_skips_kubectl(self, context, inr_rate):
        """Verify a project with zero clusters reports no workloads."""
        responses = dict(SAMPLE_JSON)
        responses["container clusters list"] = []
        runner = FakeRunner(responses, dict(SAMPLE_TEXT))

        report = build_report(
            InventoryRepository(context, runner),
            WorkloadCollector(context, runner),
            inr_rate,
            now=NOW,
        )

        assert report.workloads.status is QueryStatus.UNAVAILABLE
        assert report.workloads.load_balancer_services == ()
        assert not report.node_usage.known
        assert not any(call[0] == "kubectl" for call in runner.calls)

    def test_foreign_kubectl_context_is_ignored(self, context, inr_rate):
        """Verify a context pointing at another project's cluster is not read."""
        text = dict(SAMPLE_TEXT)
        text["config current-context"] = "gke_other-project_us-central1-a_shop"
        runner = FakeRunner(dict(SAMPLE_JSON), text)

        report = build_report(
            InventoryRepository(context, runner),
            WorkloadCollector(context, runner),
            inr_rate,
            now=NOW,
        )

        assert report.workloads.status is QueryStatus.UNAVAILABLE
        keys = [FakeRunner.key(call) for call in runner.calls]
        assert "get pods" not in keys
        assert "top nodes" not in keys
