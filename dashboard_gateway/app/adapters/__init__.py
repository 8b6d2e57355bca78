"""
Adapters for the services the gateway talks to: market-data upstreams,
the Gemini assistant and the portfolio document store.
"""

from .upstream_client import ProxyResult, UpstreamClient
from .market_clients import (
    CoinMarketCapClient,
    FinnhubClient,
    FreeCurrencyClient,
    MarketauxClient,
    MarketDataClient,
)
from .chat_client import GeminiClient
from .portfolio_store import PortfolioStore

__all__ = [
    "ProxyResult",
    "UpstreamClient",
    "MarketDataClient",
    "CoinMarketCapClient",
    "FreeCurrencyClient",
    "MarketauxClient",
    "FinnhubClient",
    "GeminiClient",
    "PortfolioStore",
]
