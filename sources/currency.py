"""
Currency source — live exchange rate between the budget and destination currencies.

OpenExchangeRates free tier only serves USD-based rates, so non-USD pairs
are computed as a cross rate through USD. One API call per lookup.
Endpoint: https://openexchangerates.org/api/latest.json
"""
from typing import Any, Dict, Optional

import requests

from providers.cache import CacheStore
from sources.base import CachedSource, DestinationQuery
from utils.error_handler import EmptyResultError, raise_for_provider_status
from utils.platform import utc_now


class CurrencySource(CachedSource):
    """Exchange rate (cached per currency pair) and the budget converted into local currency."""

    namespace = "currency"
    provider = "openexchangerates"
    ENDPOINT = "https://openexchangerates.org/api/latest.json"

    def __init__(self, cache: CacheStore, api_key: Optional[str] = None,
                 ttl_seconds: Optional[float] = None, timeout: float = 30.0):
        super().__init__(cache, ttl_seconds=ttl_seconds, timeout=timeout)
        if api_key is None:
            from config.settings import get_settings
            api_key = get_settings().openexchangerates_api_key
        self._api_key = api_key or ""

    def is_available(self) -> bool:
        return bool(self._api_key)

    def cache_params(self, query: DestinationQuery) -> tuple:
        return (query.currency, query.local_currency)

    def fetch(self, query: DestinationQuery) -> Dict[str, Any]:
        source_ccy = query.currency.upper()
        target_ccy = query.local_currency.upper()
        if not target_ccy:
            raise EmptyResultError(
                f"No local currency known for {query.place}", provider=self.provider
            )

        rate = 1.0 if source_ccy == target_ccy else self._rate(source_ccy, target_ccy)
        return {
            "exchange_rate": rate,
            "from_currency": source_ccy,
            "to_currency": target_ccy,
            "fetched_at": utc_now().isoformat(),
        }

    def present(self, query: DestinationQuery, data: Dict[str, Any]) -> Dict[str, Any]:
        # Cached entries hold the rate only; the budget differs per query
        return dict(data, budget_in_local_currency=round(query.budget * data["exchange_rate"], 2))

    def _rate(self, source_ccy: str, target_ccy: str) -> float:
        params = {
            "app_id": self._api_key,
            "symbols": f"{source_ccy},{target_ccy}",
        }
        response = requests.get(self.ENDPOINT, params=params, timeout=self._timeout)
        raise_for_provider_status(response, self.provider)

        rates = response.json().get("rates")
        if not rates:
            raise ValueError("OpenExchangeRates: response has no rates")

        if source_ccy == "USD":
            if target_ccy not in rates:
                raise EmptyResultError(f"No USD->{target_ccy} rate", provider=self.provider)
            return float(rates[target_ccy])

        if target_ccy == "USD":
            if source_ccy not in rates:
                raise EmptyResultError(f"No {source_ccy}->USD rate", provider=self.provider)
            return 1.0 / float(rates[source_ccy])

        # Cross rate via USD: EUR -> GBP = USD_GBP / USD_EUR
        if source_ccy not in rates or target_ccy not in rates:
            raise EmptyResultError(
                f"No rates for {source_ccy} and {target_ccy}", provider=self.provider
            )
        return float(rates[target_ccy]) / float(rates[source_ccy])
