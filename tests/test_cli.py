"""
Tests for the CLI interface.
"""
import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from gcp_cost_report.cli.main import (
    app,
    EXIT_CODE_OK,
    EXIT_CODE_NO_PROJECT,
    EXIT_CODE_RATE_UNAVAILABLE,
)
from gcp_cost_report.clients.exchange_rate import ExchangeRateError

runner = CliRunner()


@pytest.fixture
def mock_resolve():
    """Mock project resolution."""
    with patch('gcp_cost_report.cli.main.resolve_project_id') as mock:
        mock.return_value = "demo-project"
        yield mock


@pytest.fixture
def mock_rate_client(inr_rate):
    """Mock the exchange rate client."""
    with patch('gcp_cost_report.cli.main.ExchangeRateClient') as mock_class:
        mock_class.return_value.fetch.return_value = inr_rate
        yield mock_class


@pytest.fixture
def mock_build(sample_report):
    """Mock report assembly so no commands run."""
    with patch('gcp_cost_report.cli.main.build_report') as mock:
        mock.return_value = sample_report
        yield mock


@pytest.fixture(autouse=True)
def no_config_env(monkeypatch):
    monkeypatch.delenv("GCP_COST_REPORT_CONFIG", raising=False)


class TestCLI:
    """Test the report command."""

    def test_report_success(self, mock_resolve, mock_rate_client, mock_build):
        """Test a full report prints and exits 0."""
        result = runner.invoke(app, [])

        assert result.exit_code == EXIT_CODE_OK
        assert "Project ID: demo-project" in result.output
        assert "Resource Counts" in result.output
        assert "Estimated Costs" in result.output
        assert "Access Guide" in result.output

    def test_project_flag(self, mock_resolve, mock_rate_client, mock_build):
        """Test --project is used for resolution and collection."""
        result = runner.invoke(app, ["--project", "other-project"])

        assert result.exit_code == EXIT_CODE_OK
        args, kwargs = mock_resolve.call_args
        assert args[0] == "other-project"
        repository = mock_build.call_args.kwargs["repository"]
        assert repository.context.project_id == "demo-project"

    def test_no_project_exits_one(self, mock_rate_client, mock_build):
        """Test that no resolvable project exits 1 without a report."""
        with patch('gcp_cost_report.cli.main.resolve_project_id', return_value=None):
            result = runner.invoke(app, [])

        assert result.exit_code == EXIT_CODE_NO_PROJECT
        assert "No project specified" in result.output
        assert "Resource Counts" not in result.output
        mock_rate_client.return_value.fetch.assert_not_called()
        mock_build.assert_not_called()

    def test_rate_failure_exits_non_zero(self, mock_resolve, mock_rate_client, mock_build):
        """Test that an unreachable rate service aborts before any report."""
        mock_rate_client.return_value.fetch.side_effect = ExchangeRateError("service unreachable")

        result = runner.invoke(app, [])

        assert result.exit_code == EXIT_CODE_RATE_UNAVAILABLE
        assert "service unreachable" in result.output
        assert "Resource Counts" not in result.output
        mock_build.assert_not_called()

    def test_currency_flag(self, mock_resolve, mock_rate_client, mock_build):
        """Test --currency overrides the configured currency."""
        result = runner.invoke(app, ["--currency", "eur"])

        assert result.exit_code == EXIT_CODE_OK
        mock_rate_client.return_value.fetch.assert_called_once_with("EUR")

    def test_default_currency_is_inr(self, mock_resolve, mock_rate_client, mock_build):
        """Test the built-in target currency."""
        runner.invoke(app, [])
        mock_rate_client.return_value.fetch.assert_called_once_with("INR")

    def test_json_output(self, mock_resolve, mock_rate_client, mock_build):
        """Test --json prints parseable JSON."""
        result = runner.invoke(app, ["--json"])

        assert result.exit_code == EXIT_CODE_OK
        payload = json.loads(result.stdout)
        assert payload["costs"]["usd"]["total_monthly"] == 69.0

    def test_config_file(self, tmp_path, mock_resolve, mock_rate_client, mock_build):
        """Test configuration flows into the run."""
        config_file = tmp_path / "report.yaml"
        config_file.write_text(
            "pricing:\n  compute_node_month: 10\n"
            "currency:\n  code: GBP\n  rate_url: https://rates.example/USD\n",
            encoding="utf-8",
        )

        result = runner.invoke(app, ["--config", str(config_file)])

        assert result.exit_code == EXIT_CODE_OK
        mock_rate_client.assert_called_once_with(url="https://rates.example/USD", timeout=10.0)
        mock_rate_client.return_value.fetch.assert_called_once_with("GBP")
        assert str(mock_build.call_args.kwargs["price_table"].compute_node_month) == "10"

    def test_invalid_config_exits_one(self, mock_resolve, mock_rate_client, mock_build):
        """Test a missing config file is fatal."""
        result = runner.invoke(app, ["--config", "does-not-exist.yaml"])

        assert result.exit_code == EXIT_CODE_NO_PROJECT
        assert "Invalid configuration" in result.output
        mock_build.assert_not_called()

    def test_version(self):
        """Test --version prints and exits cleanly."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "gcp-cost-report" in result.output


class TestDiagnostics:
    """Test what a run writes to stderr."""

    def test_degraded_run_is_quiet(self, mock_rate_client):
        """Verify failed inventory queries print no warnings by default."""
        with patch('gcp_cost_report.inventory.runner.subprocess.run',
                   side_effect=FileNotFoundError("gcloud")):
            result = runner.invoke(app, ["--project", "p1"])

        assert result.exit_code == EXIT_CODE_OK
        assert "GKE clusters: 0" in result.output
        assert "WARNING" not in result.output
        assert "Command not found" not in result.output

    def test_verbose_shows_degraded_queries(self, mock_rate_client):
        """Verify --verbose surfaces the failed queries."""
        with patch('gcp_cost_report.inventory.runner.subprocess.run',
                   side_effect=FileNotFoundError("gcloud")):
            result = runner.invoke(app, ["--project", "p1", "--verbose"])

        assert result.exit_code == EXIT_CODE_OK
        assert "Command not found" in result.output

    def test_missing_gcloud_gives_single_diagnostic(self, mock_rate_client, mock_build):
        """Verify no project and no gcloud yields exactly one error line."""
        with patch('gcp_cost_report.inventory.runner.subprocess.run',
                   side_effect=FileNotFoundError("gcloud")):
            result = runner.invoke(app, [])

        assert result.exit_code == EXIT_CODE_NO_PROJECT
        lines = [line for line in result.output.splitlines() if line.strip()]
        assert len(lines) == 1
        assert lines[0].startswith("Error: No project specified")

    def test_error_text_with_markup_is_printed_literally(self, mock_resolve, mock_rate_client, mock_build):
        """Verify bracketed error text does not break the error output."""
        mock_rate_client.return_value.fetch.side_effect = ExchangeRateError("bad body [/oops]")

        result = runner.invoke(app, [])

        assert result.exit_code == EXIT_CODE_RATE_UNAVAILABLE
        assert "bad body [/oops]" in result.output
