"""
Report rendering.

Prints a ProjectReport as sectioned terminal text, or as JSON.
Rendering is a single pass; any missing value is shown as a placeholder.
"""

import json
from collections import Counter
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gcp_cost_report.core.pricing import convert, round_usd, total_disk_gb
from gcp_cost_report.core.report import ProjectReport
from gcp_cost_report.inventory.models import Collected, QueryStatus, ResourceCount

NOT_AVAILABLE = "not available"
NA = "N/A"

CURRENCY_SYMBOLS = {
    "USD": "$",
    "INR": "₹",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
}

CONSOLE_URL = "https://console.cloud.google.com"


def format_money(amount: Decimal, currency_code: str = "USD") -> str:
    """Format an amount with its currency symbol and thousands separators."""
    symbol = CURRENCY_SYMBOLS.get(currency_code.upper())
    if symbol is None:
        return f"{currency_code.upper()} {amount:,.2f}"
    return f"{symbol}{amount:,.2f}"


def _value(value: Optional[Any]) -> str:
    """Placeholder for missing optional fields, escaped otherwise."""
    if value is None or value == "":
        return NA
    return escape(str(value))


def _count(count: ResourceCount) -> str:
    # Unknown counts still print as 0; the collector already logged why
    return str(count.value)


class ReportRenderer:
    """Writes a ProjectReport to a rich Console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def _line(self, text: str = "") -> None:
        self.console.print(text, soft_wrap=True)

    def _section(self, title: str) -> None:
        self._line()
        self._line(f"[bold]{title}[/bold]")
        self._line("-" * 40)

    def _usd(self, amount: Decimal) -> str:
        return format_money(round_usd(amount), "USD")

    def _target(self, amount: Decimal, report: ProjectReport) -> str:
        return format_money(convert(amount, report.rate), report.rate.currency_code)

    def render(self, report: ProjectReport) -> None:
        """Print every section in order."""
        self._render_header(report)
        self._render_billing(report)
        self._render_counts(report)
        self._render_clusters(report)
        self._render_details(report)
        self._render_utilization(report)
        self._render_costs(report)
        self._render_trial(report)
        self._render_access_guide(report)

    def _render_header(self, report: ProjectReport) -> None:
        project = report.project
        self._line("[bold]GCP Project Inventory & Cost Report[/bold]")
        self._line("=" * 40)
        self._line(f"Project ID: {_value(project.project_id)}")
        self._line(f"Project name: {_value(project.display_name)}")
        self._line(f"Project number: {_value(project.project_number)}")
        created = project.create_time.strftime("%Y-%m-%d %H:%M UTC") if project.create_time else None
        self._line(f"Created: {_value(created)}")
        age = project.days_since_creation(report.generated_at)
        self._line(f"Age: {NA if age is None else f'{age} days'}")
        self._line(f"Generated: {report.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}")

    def _render_billing(self, report: ProjectReport) -> None:
        billing = report.billing
        self._section("Billing")
        if billing.status is QueryStatus.UNAVAILABLE:
            self._line(f"Billing information: {NOT_AVAILABLE}")
        else:
            self._line(f"Billing enabled: {'yes' if billing.billing_enabled else 'no'}")
            self._line(f"Billing account: {_value(billing.account_id)}")
            if billing.account_id is not None:
                self._line(f"Account name: {_value(billing.account_display_name)}")
                self._line(f"Account open: {'yes' if billing.account_open else 'no'}")

        budgets = report.budgets
        if not budgets.known:
            self._line(f"Budgets: {NOT_AVAILABLE}")
            return
        if not budgets.items:
            self._line("Budgets: none configured")
            return
        self._line("Budgets:")
        for budget in budgets.items:
            amount = NA
            if budget.specified_amount_units is not None:
                amount = f"{escape(budget.specified_amount_units)} {escape(budget.currency_code or '')}".strip()
            period = _value(budget.calendar_period)
            self._line(f"  • {escape(budget.display_name)}: {amount} per {period}")
            for rule in budget.threshold_rules:
                self._line(f"      alert at {rule.percent:g}% of {rule.basis.value.lower()} spend")

    def _render_counts(self, report: ProjectReport) -> None:
        counts = report.counts
        self._section("Resource Counts")
        self._line(f"GKE clusters: {_count(counts.gke_clusters)}")
        self._line(f"Compute instances: {_count(counts.compute_instances)}")
        self._line(f"Persistent disks: {_count(counts.disks)}")
        self._line(f"VPC networks: {_count(counts.vpc_networks)}")
        self._line(f"Load balancers (forwarding rules): {_count(counts.load_balancers)}")
        self._line(f"Storage buckets: {_count(counts.storage_buckets)}")

    def _render_clusters(self, report: ProjectReport) -> None:
        self._section("GKE Clusters")
        if not report.clusters.items:
            self._line("No clusters found")
            return

        table = Table(show_header=True, header_style="bold")
        for column in ("Name", "Location", "Status", "Nodes", "Control plane", "Node version", "Created"):
            table.add_column(column)
        for cluster in report.clusters.items:
            created = cluster.create_time.strftime("%Y-%m-%d") if cluster.create_time else None
            table.add_row(
                escape(cluster.name),
                _value(cluster.location),
                cluster.status.value,
                str(cluster.node_count),
                _value(cluster.control_plane_version),
                _value(cluster.node_version),
                _value(created),
            )
        self.console.print(table)

    def _list_or_placeholder(self, label: str, collected: Collected, lines: Iterable[str]) -> None:
        if not collected.known:
            self._line(f"{label}: {NOT_AVAILABLE}")
            return
        if not collected.items:
            self._line(f"{label}: none")
            return
        self._line(f"{label}:")
        for line in lines:
            self._line(f"  • {line}")

    def _render_details(self, report: ProjectReport) -> None:
        self._section("Network, Storage & Workloads")
        self._list_or_placeholder(
            "VPC networks",
            report.networks,
            (f"{escape(n.name)} ({escape(n.subnet_mode.lower())} subnets)" for n in report.networks.items),
        )
        self._list_or_placeholder(
            "Load balancers",
            report.forwarding_rules,
            (
                f"{escape(r.name)} ({escape(r.region)}) {_value(r.ip_address)}"
                f"{':' + escape(r.port_range) if r.port_range else ''}"
                for r in report.forwarding_rules.items
            ),
        )
        self._list_or_placeholder(
            "Persistent disks",
            report.disks,
            (
                f"{escape(d.name)} ({escape(d.zone)}): "
                f"{NA if d.size_gb is None else f'{d.size_gb} GB'} {_value(d.disk_type)}"
                for d in report.disks.items
            ),
        )
        self._list_or_placeholder(
            "Storage buckets",
            report.buckets,
            (
                f"gs://{escape(b.name)} ({_value(b.location)}, {_value(b.storage_class)})"
                for b in report.buckets.items
            ),
        )

        workloads = report.workloads
        if workloads.status is QueryStatus.UNAVAILABLE:
            self._line(f"Kubernetes workloads: {NOT_AVAILABLE}")
            return
        self._line("Kubernetes workloads:")
        self._line(f"  Pods: {workloads.pods_running}/{workloads.pods_total} running")
        other_phases = {p: n for p, n in workloads.pod_phases.items() if p != "Running"}
        if other_phases:
            summary = ", ".join(f"{escape(p)}: {n}" for p, n in sorted(other_phases.items()))
            self._line(f"    other phases: {summary}")
        self._line(f"  Deployments: {workloads.deployments_ready}/{workloads.deployments_total} ready")
        self._line(
            f"  Services: {workloads.services_total} "
            f"({len(workloads.load_balancer_services)} LoadBalancer)"
        )
        self._line(f"  Persistent volume claims: {workloads.pvcs_bound}/{workloads.pvcs_total} bound")

    def _render_utilization(self, report: ProjectReport) -> None:
        self._section("Utilization Summary")
        statuses = Counter(instance.status for instance in report.instances.items)
        if statuses:
            summary = ", ".join(f"{escape(s)}: {n}" for s, n in sorted(statuses.items()))
            self._line(f"Instances by status: {summary}")
        else:
            self._line("Instances by status: none")

        nodes = sum(cluster.node_count for cluster in report.clusters.items)
        self._line(f"GKE nodes (all clusters): {nodes}")

        disk_gb = total_disk_gb(report.disks.items, report.price_table)
        assumed = sum(1 for disk in report.disks.items if disk.size_gb is None)
        note = f" ({assumed} disk(s) assumed {report.price_table.default_disk_size_gb} GB)" if assumed else ""
        self._line(f"Provisioned disk: {disk_gb} GB{note}")

        usage = report.node_usage
        if not usage.known or not usage.items:
            self._line(f"Node metrics: {NOT_AVAILABLE}")
            return
        table = Table(show_header=True, header_style="bold")
        for column in ("Node", "CPU", "CPU %", "Memory", "Memory %"):
            table.add_column(column)
        for node in usage.items:
            table.add_row(
                escape(node.name),
                escape(node.cpu_cores),
                escape(node.cpu_percent),
                escape(node.memory),
                escape(node.memory_percent),
            )
        self.console.print(table)

    def _render_costs(self, report: ProjectReport) -> None:
        costs = report.costs
        prices = report.price_table
        code = report.rate.currency_code
        self._section("Estimated Costs")
        self._line(f"Exchange rate: 1 USD = {format_money(Decimal(str(report.rate.usd_to_target)), code)}")

        table = Table(show_header=True, header_style="bold")
        table.add_column("Item")
        table.add_column("Basis")
        table.add_column("USD", justify="right")
        table.add_column(code, justify="right")

        disk_gb = total_disk_gb(report.disks.items, prices)
        rows = [
            ("Compute (monthly)",
             f"{report.instances.count} × {format_money(prices.compute_node_month)}",
             costs.compute_monthly),
            ("Persistent disk (monthly)",
             f"{disk_gb} GB × {format_money(prices.disk_gb_month)}",
             costs.disk_monthly),
            ("Load balancing (monthly)",
             f"{report.forwarding_rules.count} × {format_money(prices.forwarding_rule_month)}",
             costs.lb_monthly),
            ("Total monthly", "", costs.total_monthly),
            ("Total daily", "monthly ÷ 30", costs.total_daily),
            ("Total hourly", "monthly ÷ 720", costs.total_hourly),
        ]
        for item, basis, amount in rows:
            table.add_row(item, basis, self._usd(amount), self._target(amount, report))
        self.console.print(table)
        self._line("[dim]Storage buckets and network egress are not included.[/dim]")

    def _render_trial(self, report: ProjectReport) -> None:
        self._section("Free Trial Burn-down")
        trial = report.trial
        settings = report.trial_settings
        if trial is None:
            self._line(f"Free trial projection: {NOT_AVAILABLE}")
            return

        self._line(
            f"Trial terms: {format_money(settings.credit_usd)} credit over {settings.length_days} days"
        )
        if trial.expired:
            self._line(f"Trial status: likely expired ({-trial.days_remaining} days past the trial period)")
        else:
            self._line(f"Days remaining: {trial.days_remaining} ({trial.hours_remaining} hours)")

        self._line(
            f"Burn rate: {self._usd(trial.burn_rate_per_day)}/day "
            f"({self._target(trial.burn_rate_per_day, report)}/day)"
        )
        self._line(f"Estimated credit used: {self._usd(trial.credit_used_estimate)}")
        self._line(f"Estimated credit remaining: {self._usd(trial.credit_remaining_estimate)}")
        if trial.days_of_credit_left is None:
            self._line("Credit runway: no projected spend")
        else:
            self._line(f"Credit runway: ~{trial.days_of_credit_left:.1f} days at the current rate")

    def _render_access_guide(self, report: ProjectReport) -> None:
        project_id = report.project.project_id
        self._section("Access Guide")

        external = [i for i in report.instances.items if i.external_ip]
        lb_rules = [r for r in report.forwarding_rules.items if r.ip_address]
        lb_services = [s for s in report.workloads.load_balancer_services if s.external_ip]
        if not (external or lb_rules or lb_services):
            self._line("External IPs: none found")
        else:
            self._line("External IPs:")
            for instance in external:
                self._line(f"  • {escape(instance.name)}: {escape(instance.external_ip)}")
            for rule in lb_rules:
                self._line(f"  • {escape(rule.name)} (load balancer): {escape(rule.ip_address)}")
            for service in lb_services:
                port = service.ports[0] if service.ports else 80
                self._line(
                    f"  • {escape(service.namespace)}/{escape(service.name)}: "
                    f"http://{escape(service.external_ip)}:{port}"
                )

        if report.clusters.items or report.instances.items:
            self._line("Connect:")
        for cluster in report.clusters.items:
            self._line(
                f"  gcloud container clusters get-credentials {escape(cluster.name)} "
                f"--location {escape(cluster.location)} --project {escape(project_id)}"
            )
        for instance in report.instances.items:
            self._line(
                f"  gcloud compute ssh {escape(instance.name)} "
                f"--zone {escape(instance.zone)} --project {escape(project_id)}"
            )

        self._line("Console:")
        for label, path in (
            ("Dashboard", "home/dashboard"),
            ("Billing", "billing/linkedaccount"),
            ("Kubernetes", "kubernetes/list/overview"),
            ("VM instances", "compute/instances"),
            ("Storage", "storage/browser"),
        ):
            self._line(f"  {label}: {CONSOLE_URL}/{path}?project={escape(project_id)}")


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render_json(report: ProjectReport) -> str:
    """Serialize the report for machine consumption."""
    payload = asdict(report)
    payload["costs"] = {
        "usd": {name: round_usd(amount) for name, amount in report.costs.as_dict().items()},
        report.rate.currency_code.lower(): report.costs.converted(report.rate),
    }
    if report.trial is not None:
        payload["trial"]["days_of_credit_left"] = (
            None if report.trial.days_of_credit_left is None
            else round_usd(report.trial.days_of_credit_left)
        )
        payload["trial"]["hours_remaining"] = report.trial.hours_remaining
        payload["trial"]["expired"] = report.trial.expired
    return json.dumps(payload, default=_json_default, indent=2, ensure_ascii=False)
