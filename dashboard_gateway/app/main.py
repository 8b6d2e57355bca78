"""
Market Dashboard Gateway service.

Proxies the dashboard's ``/api/*`` calls to CoinMarketCap, FreeCurrencyAPI,
Marketaux, Finnhub and Gemini, persists portfolios to MongoDB and serves the
single-page application for every other path.
"""

import asyncio
from typing import Any, Dict, Optional

import httpx
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import PayloadTooLargeError, RateLimitError

from .adapters.chat_client import GeminiClient
from .adapters.market_clients import (
    CoinMarketCapClient,
    FinnhubClient,
    FreeCurrencyClient,
    MarketauxClient,
)
from .adapters.portfolio_store import ClientFactory, PortfolioStore
from .adapters.upstream_client import UpstreamClient
from .caching.cache_manager import CacheManager
from .caching.ttl_cache import TTLCache
from .domain.dispatcher import Dispatcher
from .domain.routes import ApiRequest
from .ratelimit.token_bucket import RateLimitMiddleware, TokenBucketRateLimiter
from .static_files import StaticSite


SERVICE_NAME = "gateway"
DEFAULT_PORT = 3000
MAX_BODY_BYTES = 1_000_000
API_PREFIX = "/api/"
API_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,OPTIONS,PUT,POST,DELETE",
    "Access-Control-Allow-Headers": "Content-Type, X-User-ID, X-User-Id",
}


class GatewayHTTPMiddleware(BaseHTTPMiddleware):
    """CORS, preflight short-circuit and per-client rate limiting for ``/api/*``."""

    def __init__(self, app, service: "GatewayService"):
        super().__init__(app)
        self.service = service

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        decision = None
        if request.url.path.startswith(API_PREFIX):
            decision = self.service.rate_limit_middleware.check_request(request)
            if not decision.allowed:
                self.service.metrics.record_rate_limit_hit(request.url.path)
                error = RateLimitError(decision.retry_after_seconds)
                return JSONResponse(
                    status_code=error.status_code,
                    content=error.to_body(),
                    headers={**CORS_HEADERS, "Retry-After": str(decision.retry_after_seconds)},
                )

        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        if decision is not None:
            response.headers["X-RateLimit-Limit"] = str(decision.limit)
            response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response


async def read_body(request: Request, limit: int = MAX_BODY_BYTES) -> bytes:
    """Read the request body, refusing anything larger than ``limit`` bytes."""
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError()
    return bytes(body)


class GatewayService(BaseService):
    """Market dashboard API gateway."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        store_client_factory: Optional[ClientFactory] = None,
    ):
        super().__init__(SERVICE_NAME, DEFAULT_PORT, config)
        config = self.config

        self.rate_limiter = TokenBucketRateLimiter(
            config.rate_limit,
            config.rate_limit_window_ms,
            max_clients=config.rate_limit_max_clients,
        )
        self.rate_limit_middleware = RateLimitMiddleware(
            self.rate_limiter,
            trust_forwarded_for=config.trust_forwarded_for,
        )
        self.cache_manager = CacheManager(TTLCache(config.cache_ttl_seconds), metrics=self.metrics)

        self.upstream = UpstreamClient(
            timeout=config.upstream_timeout_seconds,
            retry_attempts=config.upstream_retry_attempts,
            transport=transport,
            metrics=self.metrics,
        )
        self.cmc_client = CoinMarketCapClient(self.upstream, config.cmc_api_key, config.cmc_base_url)
        self.fx_client = FreeCurrencyClient(self.upstream, config.fx_api_key, config.fx_base_url)
        self.news_client = MarketauxClient(self.upstream, config.news_api_key, config.news_base_url)
        self.finnhub_client = FinnhubClient(self.upstream, config.finnhub_api_key, config.finnhub_base_url)
        self.gemini_client = GeminiClient(
            self.upstream, config.gemini_api_key, config.gemini_base_url, config.gemini_model
        )

        self.portfolio_store = PortfolioStore(
            config.mongodb_uri,
            config.mongodb_db,
            {"crypto": config.mongodb_collection, "stock": config.mongodb_stock_collection},
            client_factory=store_client_factory,
        )

        self.dispatcher = Dispatcher(
            cmc=self.cmc_client,
            fx=self.fx_client,
            news=self.news_client,
            finnhub=self.finnhub_client,
            gemini=self.gemini_client,
            cache_manager=self.cache_manager,
            store=self.portfolio_store,
            default_currency=config.default_currency,
            metrics=self.metrics,
        )
        self.static_site = StaticSite(config.static_dir)
        self.app.state.gateway_service = self

        self._log_missing_configuration()
        self._maintenance_task: Optional[asyncio.Task] = None

        @self.app.on_event("startup")
        async def _startup():
            self._maintenance_task = asyncio.create_task(self._maintenance_loop())

        @self.app.on_event("shutdown")
        async def _shutdown():
            if self._maintenance_task:
                self._maintenance_task.cancel()
                try:
                    await self._maintenance_task
                except asyncio.CancelledError:
                    pass
                self._maintenance_task = None
            await self.upstream.close()
            await self.portfolio_store.close()

        self._setup_stats_routes()
        self._setup_api_routes()
        self._setup_static_routes()

    def _setup_middleware(self):
        """Register gateway middleware inside the request-timing middleware."""
        self.app.add_middleware(GatewayHTTPMiddleware, service=self)
        super()._setup_middleware()

    def _log_missing_configuration(self):
        for client in self.dispatcher.clients.values():
            if not client.configured:
                self.logger.warning("Upstream credential not configured", upstream=client.name, setting=client.key_env)
        if not self.portfolio_store.configured:
            self.logger.warning("Portfolio storage not configured", setting="MONGODB_URI")

    def run_maintenance(self) -> Dict[str, int]:
        """Drop idle limiter buckets and expired cache entries."""
        result = {
            "swept_buckets": self.rate_limiter.sweep(),
            "purged_entries": self.cache_manager.purge_expired(),
        }
        self.logger.debug("Maintenance pass finished", **result)
        return result

    async def _maintenance_loop(self):
        interval = self.config.maintenance_interval_seconds
        while True:
            await asyncio.sleep(interval)
            self.run_maintenance()

    def _setup_stats_routes(self):
        """Limiter and cache statistics, outside ``/api/`` so they are never rate limited."""

        @self.app.get("/stats/rate-limits")
        async def get_rate_limits():
            return {"rate_limits": self.rate_limiter.get_stats()}

        @self.app.get("/stats/cache")
        async def get_cache_stats():
            return self.cache_manager.get_stats()

    def _setup_api_routes(self):
        """Every ``/api/*`` path goes through the dispatcher."""

        @self.app.api_route("/api/{api_path:path}", methods=API_METHODS, include_in_schema=False)
        async def api_gateway(api_path: str, request: Request):
            api_request = ApiRequest(
                method=request.method,
                path=request.url.path,
                query=tuple(request.query_params.multi_items()),
                headers={key.lower(): value for key, value in request.headers.items()},
                body=await read_body(request),
            )
            result = await self.dispatcher.handle(api_request)
            return JSONResponse(status_code=result.status_code, content=result.body, headers=result.headers)

    def _setup_static_routes(self):
        """SPA fallback; registered last so API and operational routes win."""

        @self.app.api_route("/{full_path:path}", methods=API_METHODS, include_in_schema=False)
        async def static_fallback(full_path: str, request: Request):
            return self.static_site.response_for(request.method, request.url.path)

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report storage reachability and which upstream credentials are set."""
        dependencies: Dict[str, Any] = {}
        if self.portfolio_store.configured:
            dependencies["storage"] = "ok" if await self.portfolio_store.ping() else "error"
        else:
            dependencies["storage"] = "not_configured"

        for name, client in self.dispatcher.clients.items():
            dependencies[name] = "configured" if client.configured else "missing_key"
        return dependencies


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Build the ASGI application."""
    return GatewayService(config, **kwargs).app


def main():
    service = GatewayService(get_config(SERVICE_NAME, DEFAULT_PORT))
    service.run()


if __name__ == "__main__":
    main()
