"""
Exchange rate client.

Fetches the USD to target currency conversion rate used throughout
the report. Failures are loud: the report is never printed with a
made-up rate.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict

import requests

from ..inventory.models import ExchangeRate

logger = logging.getLogger(__name__)

DEFAULT_RATE_URL = "https://api.exchangerate-api.com/v4/latest/USD"


class ExchangeRateError(Exception):
    """Raised when the exchange rate cannot be obtained."""


class ExchangeRateClient:
    """Single-shot client for a USD-based rate endpoint.

    The endpoint must return JSON shaped like {"rates": {"INR": 84.5, ...}}.
    """

    def __init__(self, url: str = DEFAULT_RATE_URL, timeout: float = 10.0):
        if not url or not url.strip():
            raise ValueError("url is required and cannot be empty")
        if timeout <= 0:
            raise ValueError("timeout must be > 0")
        self.url = url
        self.timeout = timeout

    def fetch(self, currency_code: str) -> ExchangeRate:
        """Fetch the rate for one currency, rounded to 2 decimal places.

        Args:
            currency_code: ISO 4217 code, e.g. "INR"

        Returns:
            ExchangeRate for the currency

        Raises:
            ExchangeRateError: If the service is unreachable, answers with an
                error status, or the response has no usable rate
        """
        code = currency_code.upper()
        if code == "USD":
            return ExchangeRate(currency_code="USD", usd_to_target=1.0)

        logger.debug("Fetching USD->%s rate from %s", code, self.url)
        try:
            response = requests.get(self.url, timeout=self.timeout)
            response.raise_for_status()
            payload: Dict[str, Any] = response.json()
        except requests.RequestException as e:
            raise ExchangeRateError(f"Could not fetch exchange rate from {self.url}: {e}") from e
        except ValueError as e:
            raise ExchangeRateError(f"Exchange rate service returned invalid JSON: {e}") from e

        rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(rates, dict) or code not in rates:
            raise ExchangeRateError(f"Exchange rate response has no rate for {code}")

        try:
            value = Decimal(str(rates[code])).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
            positive = value > 0
        except ArithmeticError as e:
            raise ExchangeRateError(f"Exchange rate for {code} is not a number: {rates[code]!r}") from e
        if not positive:
            raise ExchangeRateError(f"Exchange rate for {code} must be positive, got {value}")

        return ExchangeRate(currency_code=code, usd_to_target=float(value))
