"""
Declarative API route table and the request/response envelopes the
dispatcher works with.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from shared.errors import ValidationError


@dataclass(frozen=True)
class ApiRequest:
    """Transport-independent view of an inbound ``/api/*`` request."""

    method: str
    path: str
    query: Tuple[Tuple[str, str], ...] = ()
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def param(self, name: str) -> Optional[str]:
        """First value of query parameter ``name``, or None."""
        for key, value in self.query:
            if key == name:
                return value
        return None

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    def json(self) -> Any:
        """Decode the body; an empty body reads as ``{}``."""
        if not self.body:
            return {}
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError):
            raise ValidationError("Invalid JSON body") from None


@dataclass
class ApiResponse:
    """JSON response produced by the dispatcher."""

    status_code: int
    body: Any
    headers: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class RouteSpec:
    """
    One entry of the API route table.

    ``handler`` names a ``Dispatcher`` coroutine (``_handle_<handler>``).
    ``upstream`` names the client whose credential must be present, and
    ``portfolio`` the portfolio kind whose storage must be configured.
    ``required_params`` pairs a query parameter with the 400 message used
    when it is missing or empty.
    """

    path: str
    handler: str
    methods: Tuple[str, ...] = ("GET",)
    upstream: Optional[str] = None
    upstream_path: Optional[str] = None
    forward_query: bool = True
    required_params: Tuple[Tuple[str, str], ...] = ()
    cache_prefix: Optional[str] = None
    portfolio: Optional[str] = None


MISSING_ID = "Missing required id parameter"
MISSING_QUERY = "Missing query parameter"
MISSING_SYMBOL = "Missing symbol parameter"

LISTINGS_DEFAULTS = (
    ("start", "1"),
    ("limit", "100"),
    ("sort", "market_cap"),
    ("cryptocurrency_type", "all"),
    ("tag", "all"),
)


ROUTES: Tuple[RouteSpec, ...] = (
    # Crypto market data (CoinMarketCap), never cached
    RouteSpec("/api/listings", "cmc_listings", upstream="cmc",
              upstream_path="/v1/cryptocurrency/listings/latest"),
    RouteSpec("/api/info", "cmc_by_id", upstream="cmc",
              upstream_path="/v2/cryptocurrency/info",
              required_params=(("id", MISSING_ID),)),
    RouteSpec("/api/quote", "cmc_by_id", upstream="cmc",
              upstream_path="/v1/cryptocurrency/quotes/latest",
              required_params=(("id", MISSING_ID),)),
    RouteSpec("/api/categories", "cmc_passthrough", upstream="cmc",
              upstream_path="/v1/cryptocurrency/categories"),
    RouteSpec("/api/map", "cmc_passthrough", upstream="cmc",
              upstream_path="/v1/cryptocurrency/map"),
    RouteSpec("/api/exchange-info", "cmc_passthrough", upstream="cmc",
              upstream_path="/v1/exchange/info"),
    RouteSpec("/api/feargreed/latest", "cmc_passthrough", upstream="cmc",
              upstream_path="/v3/fear-and-greed/latest", forward_query=False),
    RouteSpec("/api/feargreed/historical", "cmc_passthrough", upstream="cmc",
              upstream_path="/v3/fear-and-greed/historical"),

    # FX rates and crypto news
    RouteSpec("/api/currency/latest", "currency", upstream="fx"),
    RouteSpec("/api/news", "news", upstream="news"),

    # Stocks (Finnhub), cached
    RouteSpec("/api/stock/symbols", "stock_symbols", upstream="finnhub",
              cache_prefix="stock_symbols"),
    RouteSpec("/api/stock/search", "stock_search", upstream="finnhub",
              required_params=(("q", MISSING_QUERY),), cache_prefix="stock_search"),
    RouteSpec("/api/stock/news", "stock_news", upstream="finnhub",
              cache_prefix="stock_news"),
    RouteSpec("/api/stock/quote", "stock_quote", upstream="finnhub",
              required_params=(("symbol", MISSING_SYMBOL),), cache_prefix="stock_quote"),
    RouteSpec("/api/stock/metric", "stock_metric", upstream="finnhub",
              required_params=(("symbol", MISSING_SYMBOL),), cache_prefix="stock_metric"),

    # Portfolios
    RouteSpec("/api/portfolio", "portfolio", methods=("GET", "PUT"), portfolio="crypto"),
    RouteSpec("/api/stock/portfolio", "portfolio", methods=("GET", "PUT"), portfolio="stock"),

    # Assistant
    RouteSpec("/api/chat", "chat", methods=("POST",), upstream="gemini"),
)
