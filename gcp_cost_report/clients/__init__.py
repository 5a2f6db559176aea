"""
External service clients for GCP Cost Report.
"""

from .exchange_rate import ExchangeRateClient, ExchangeRateError

__all__ = ["ExchangeRateClient", "ExchangeRateError"]
