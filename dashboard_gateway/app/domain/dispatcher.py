"""
API request dispatcher.

Resolves an ``ApiRequest`` against the route table, runs the guards in a
fixed order (path, method, credential or storage, required parameters) and
hands off to the route's handler. Every outcome, including unexpected
failures, comes back as an ``ApiResponse``.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple, TYPE_CHECKING

from shared.errors import (
    GatewayError,
    MethodNotAllowedError,
    RouteNotFoundError,
    ValidationError,
)
from shared.logging import get_logger

from ..adapters.chat_client import validate_message
from ..adapters.upstream_client import ProxyResult
from .portfolio import normalize_entries
from .routes import LISTINGS_DEFAULTS, ROUTES, ApiRequest, ApiResponse, RouteSpec

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..adapters.chat_client import GeminiClient
    from ..adapters.market_clients import (
        CoinMarketCapClient,
        FinnhubClient,
        FreeCurrencyClient,
        MarketauxClient,
    )
    from ..adapters.portfolio_store import PortfolioStore
    from ..caching.cache_manager import CacheManager
    from shared.metrics import MetricsCollector


DEFAULT_USER_KEY = "default"


def _search_results(body: Any) -> Any:
    if isinstance(body, dict) and body.get("result"):
        return body["result"]
    return []


class Dispatcher:
    """Routes API requests to upstream proxies, the cache and portfolio storage."""

    def __init__(
        self,
        *,
        cmc: "CoinMarketCapClient",
        fx: "FreeCurrencyClient",
        news: "MarketauxClient",
        finnhub: "FinnhubClient",
        gemini: "GeminiClient",
        cache_manager: "CacheManager",
        store: "PortfolioStore",
        default_currency: str = "INR",
        metrics: Optional["MetricsCollector"] = None,
        routes: Iterable[RouteSpec] = ROUTES,
    ):
        self.cmc = cmc
        self.fx = fx
        self.news = news
        self.finnhub = finnhub
        self.gemini = gemini
        self.clients = {"cmc": cmc, "fx": fx, "news": news, "finnhub": finnhub, "gemini": gemini}
        self.cache_manager = cache_manager
        self.store = store
        self.default_currency = default_currency
        self.metrics = metrics
        self.routes: Dict[str, RouteSpec] = {route.path: route for route in routes}
        self.logger = get_logger("gateway.dispatcher")

    async def handle(self, request: ApiRequest) -> ApiResponse:
        """Dispatch one request. Never raises."""
        try:
            route = self.resolve(request)
            self._check_guards(route)
            self._check_required_params(route, request)
            handler = getattr(self, f"_handle_{route.handler}")
            return await handler(route, request)
        except GatewayError as exc:
            self.logger.info(
                "API request rejected",
                path=request.path,
                method=request.method,
                status_code=exc.status_code,
                code=exc.code,
            )
            return ApiResponse(exc.status_code, exc.to_body())
        except Exception as exc:
            self.logger.error(
                "API request failed",
                path=request.path,
                method=request.method,
                error=str(exc),
                exc_info=True,
            )
            if self.metrics:
                self.metrics.record_error(type(exc).__name__)
            return ApiResponse(500, {"error": "Server error", "detail": str(exc)})

    def resolve(self, request: ApiRequest) -> RouteSpec:
        """Find the route for ``request`` or raise 404/405."""
        route = self.routes.get(request.path)
        if route is None:
            raise RouteNotFoundError()
        if request.method.upper() not in route.methods:
            raise MethodNotAllowedError()
        return route

    def _check_guards(self, route: RouteSpec) -> None:
        if route.upstream:
            self.clients[route.upstream].require_key()
        if route.portfolio:
            self.store.require_configured()

    def _check_required_params(self, route: RouteSpec, request: ApiRequest) -> None:
        for name, message in route.required_params:
            if not request.param(name):
                raise ValidationError(message)

    @staticmethod
    def _proxied(result: ProxyResult) -> ApiResponse:
        return ApiResponse(result.status_code, result.body)

    # CoinMarketCap

    async def _handle_cmc_listings(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        params: Dict[str, str] = dict(LISTINGS_DEFAULTS)
        for key, value in request.query:
            params[key] = value
        return self._proxied(await self.cmc.get(route.upstream_path, list(params.items())))

    async def _handle_cmc_by_id(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        params = [("id", request.param("id"))]
        return self._proxied(await self.cmc.get(route.upstream_path, params))

    async def _handle_cmc_passthrough(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        params = request.query if route.forward_query else ()
        return self._proxied(await self.cmc.get(route.upstream_path, params))

    # FX and news

    async def _handle_currency(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        return self._proxied(await self.fx.latest(request.query))

    async def _handle_news(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        return self._proxied(await self.news.news(request.query))

    # Finnhub, served through the response cache

    async def _cached_finnhub(
        self,
        route: RouteSpec,
        key_part: str,
        path: str,
        params: List[Tuple[str, str]],
        extract=None,
    ) -> ApiResponse:
        status_code, body, cached = await self.cache_manager.fetch_through(
            route.cache_prefix,
            key_part,
            fetch=lambda: self.finnhub.get(path, params),
            extract=extract,
        )
        self.logger.debug("Stock data served", path=route.path, cached=cached, status_code=status_code)
        return ApiResponse(status_code, body)

    async def _handle_stock_symbols(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        exchange = request.param("exchange") or "US"
        return await self._cached_finnhub(route, exchange, "/stock/symbol", [("exchange", exchange)])

    async def _handle_stock_search(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        query = request.param("q")
        return await self._cached_finnhub(route, query, "/search", [("q", query)], extract=_search_results)

    async def _handle_stock_news(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        return await self._cached_finnhub(route, "general", "/news", [("category", "general")])

    async def _handle_stock_quote(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        symbol = request.param("symbol")
        return await self._cached_finnhub(route, symbol, "/quote", [("symbol", symbol)])

    async def _handle_stock_metric(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        symbol = request.param("symbol")
        return await self._cached_finnhub(
            route, symbol, "/stock/metric", [("symbol", symbol), ("metric", "all")]
        )

    # Portfolios

    async def _handle_portfolio(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        user_key = request.header("x-user-id") or DEFAULT_USER_KEY

        if request.method.upper() == "GET":
            entries = await self.store.read(route.portfolio, user_key)
            return ApiResponse(200, {"data": entries})

        payload = request.json()
        if not isinstance(payload, list):
            raise ValidationError("Body must be an array of portfolio entries")
        normalized = normalize_entries(route.portfolio, payload, self.default_currency)
        saved = await self.store.write(route.portfolio, user_key, normalized)
        return ApiResponse(200, {"data": saved})

    # Assistant

    async def _handle_chat(self, route: RouteSpec, request: ApiRequest) -> ApiResponse:
        message = validate_message(request.json())
        status_code, body = await self.gemini.generate(message)
        return ApiResponse(status_code, body)
