"""
Clients for the third-party market-data providers behind the gateway.

Each client knows its base URL, where its credential goes (header or query
string) and how to describe a missing credential. Network behaviour lives in
``UpstreamClient``.
"""

from __future__ import annotations

from typing import List, Tuple

from shared.errors import ConfigurationError
from shared.logging import get_logger

from .upstream_client import ProxyResult, QueryPairs, UpstreamClient


class MarketDataClient:
    """Base class for an API-key protected upstream."""

    name = "upstream"
    key_env = "API_KEY"

    def __init__(self, upstream: UpstreamClient, api_key: str, base_url: str) -> None:
        self.upstream = upstream
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.logger = get_logger(f"gateway.{self.name}")

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def missing_key_message(self) -> str:
        return f"{self.key_env} missing on server"

    def require_key(self) -> None:
        """Raise before any network call when the credential is absent."""
        if not self.configured:
            self.logger.error("Upstream credential missing", upstream=self.name, setting=self.key_env)
            raise ConfigurationError(self.missing_key_message)


class CoinMarketCapClient(MarketDataClient):
    """CoinMarketCap Pro API; key travels in a header."""

    name = "coinmarketcap"
    key_env = "CMC_API_KEY"

    async def get(self, path: str, params: QueryPairs = ()) -> ProxyResult:
        return await self.upstream.fetch(
            f"{self.base_url}{path}",
            params=params,
            headers={"X-CMC_PRO_API_KEY": self.api_key},
            upstream=self.name,
        )


class FreeCurrencyClient(MarketDataClient):
    """freecurrencyapi.com; key is the first query parameter."""

    name = "freecurrencyapi"
    key_env = "FREE_CURRENCY_API_KEY"

    async def latest(self, params: QueryPairs = ()) -> ProxyResult:
        query: List[Tuple[str, str]] = [("apikey", self.api_key)]
        query.extend(params)
        return await self.upstream.fetch(f"{self.base_url}/latest", params=query, upstream=self.name)


class MarketauxClient(MarketDataClient):
    """Marketaux news; key is appended as ``api_token``."""

    name = "marketaux"
    key_env = "MARKETAUX_API_KEY"

    async def news(self, params: QueryPairs = ()) -> ProxyResult:
        query: List[Tuple[str, str]] = list(params)
        query.append(("api_token", self.api_key))
        return await self.upstream.fetch(f"{self.base_url}/news/all", params=query, upstream=self.name)


class FinnhubClient(MarketDataClient):
    """Finnhub stock data; key is appended as ``token``."""

    name = "finnhub"
    key_env = "FINNHUB_API_KEY"

    async def get(self, path: str, params: QueryPairs = ()) -> ProxyResult:
        query: List[Tuple[str, str]] = list(params)
        query.append(("token", self.api_key))
        return await self.upstream.fetch(f"{self.base_url}{path}", params=query, upstream=self.name)
