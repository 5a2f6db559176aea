"""
Configuration management and loading.

Handles report settings: unit prices, free trial terms, the target
currency and the inventory command binaries.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml

from gcp_cost_report.clients.exchange_rate import DEFAULT_RATE_URL
from gcp_cost_report.core.pricing import PriceTable
from gcp_cost_report.core.trial import TrialSettings

CONFIG_ENV_VAR = "GCP_COST_REPORT_CONFIG"


@dataclass(frozen=True)
class CurrencyConfig:
    """Target currency and where to fetch its rate."""
    code: str = "INR"
    rate_url: str = DEFAULT_RATE_URL
    timeout_seconds: float = 10.0

    def __post_init__(self):
        """Validate currency settings."""
        if len(self.code) != 3 or not self.code.isalpha():
            raise ValueError("currency code must be a 3-letter ISO 4217 code")
        if self.timeout_seconds <= 0:
            raise ValueError("currency timeout_seconds must be > 0")


@dataclass(frozen=True)
class CommandConfig:
    """Inventory tool binaries and their per-call timeout."""
    gcloud: str = "gcloud"
    kubectl: str = "kubectl"
    timeout_seconds: float = 60.0

    def __post_init__(self):
        """Validate command settings."""
        if not self.gcloud.strip():
            raise ValueError("gcloud binary cannot be empty")
        if not self.kubectl.strip():
            raise ValueError("kubectl binary cannot be empty")
        if self.timeout_seconds <= 0:
            raise ValueError("commands timeout_seconds must be > 0")


@dataclass(frozen=True)
class ReportConfig:
    """Complete report configuration."""
    pricing: PriceTable = field(default_factory=PriceTable)
    trial: TrialSettings = field(default_factory=TrialSettings)
    currency: CurrencyConfig = field(default_factory=CurrencyConfig)
    commands: CommandConfig = field(default_factory=CommandConfig)


def default_config() -> ReportConfig:
    """Built-in settings used when no configuration file is given."""
    return ReportConfig()


def resolve_config_path(explicit: Optional[str] = None) -> Optional[str]:
    """Explicit path first, then the environment variable."""
    return explicit or os.environ.get(CONFIG_ENV_VAR) or None


def load_report_config(path: str) -> ReportConfig:
    """Load and validate report configuration from YAML file.

    Every section and key is optional; anything omitted keeps its
    built-in default. Unknown keys are rejected so that a typo never
    silently falls back to a default price.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated ReportConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Report config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'pricing', 'trial', 'currency', 'commands'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    pricing_data = _section(raw_config, 'pricing', {
        'compute_node_month', 'disk_gb_month', 'forwarding_rule_month', 'default_disk_size_gb'
    })
    defaults = PriceTable()
    pricing = PriceTable(
        compute_node_month=_decimal(pricing_data, 'compute_node_month', defaults.compute_node_month, 'pricing'),
        disk_gb_month=_decimal(pricing_data, 'disk_gb_month', defaults.disk_gb_month, 'pricing'),
        forwarding_rule_month=_decimal(pricing_data, 'forwarding_rule_month', defaults.forwarding_rule_month, 'pricing'),
        default_disk_size_gb=_integer(pricing_data, 'default_disk_size_gb', defaults.default_disk_size_gb, 'pricing'),
    )

    trial_data = _section(raw_config, 'trial', {'credit_usd', 'length_days'})
    trial_defaults = TrialSettings()
    trial = TrialSettings(
        credit_usd=_decimal(trial_data, 'credit_usd', trial_defaults.credit_usd, 'trial'),
        length_days=_integer(trial_data, 'length_days', trial_defaults.length_days, 'trial'),
    )

    currency_data = _section(raw_config, 'currency', {'code', 'rate_url', 'timeout_seconds'})
    currency_defaults = CurrencyConfig()
    currency = CurrencyConfig(
        code=_string(currency_data, 'code', currency_defaults.code, 'currency').upper(),
        rate_url=_string(currency_data, 'rate_url', currency_defaults.rate_url, 'currency'),
        timeout_seconds=float(_decimal(currency_data, 'timeout_seconds', Decimal(str(currency_defaults.timeout_seconds)), 'currency')),
    )

    commands_data = _section(raw_config, 'commands', {'gcloud', 'kubectl', 'timeout_seconds'})
    command_defaults = CommandConfig()
    commands = CommandConfig(
        gcloud=_string(commands_data, 'gcloud', command_defaults.gcloud, 'commands'),
        kubectl=_string(commands_data, 'kubectl', command_defaults.kubectl, 'commands'),
        timeout_seconds=float(_decimal(commands_data, 'timeout_seconds', Decimal(str(command_defaults.timeout_seconds)), 'commands')),
    )

    return ReportConfig(pricing=pricing, trial=trial, currency=currency, commands=commands)


def _section(raw_config: Dict, name: str, allowed_keys: Set[str]) -> Dict[str, Any]:
    """Get an optional section and reject unknown keys in it."""
    data = raw_config.get(name) or {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown {name} keys: {unknown_keys}")
    return data


def _decimal(data: Dict, key: str, default: Decimal, path: str) -> Decimal:
    if key not in data:
        return default
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        raise ValueError(f"'{key}' in {path} must be a number")
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"'{key}' in {path} must be a number")
    if not number.is_finite():
        raise ValueError(f"'{key}' in {path} must be a finite number")
    return number


def _integer(data: Dict, key: str, default: int, path: str) -> int:
    if key not in data:
        return default
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' in {path} must be an integer")
    return value


def _string(data: Dict, key: str, default: str, path: str) -> str:
    if key not in data:
        return default
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{key}' in {path} must be a non-empty string")
    return value
