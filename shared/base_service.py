"""
Base service class for the Market Dashboard Gateway.
"""

import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST

from shared.config import ServiceConfig, get_config
from shared.errors import GatewayError
from shared.logging import clear_context, configure_logging, get_logger, set_request_id
from shared.metrics import get_metrics_collector

SERVICE_VERSION = "1.0.0"


class BaseService:
    """FastAPI service skeleton: config, logging, metrics, health and error handling.

    Subclasses add their own routes after calling ``super().__init__`` and
    override ``_check_dependencies`` to report on what they depend on.
    """

    def __init__(self, service_name: str, port: int, config: Optional[ServiceConfig] = None):
        self.service_name = service_name
        self.config = config or get_config(service_name, port)
        self.port = self.config.port
        self._start_time = time.time()

        configure_logging(service_name, self.config.log_level)
        self.logger = get_logger(service_name)
        self.metrics = get_metrics_collector(service_name)

        self.app = self._create_app()
        self._setup_middleware()
        self._setup_routes()
        self._setup_exception_handlers()

    def _create_app(self) -> FastAPI:
        docs_enabled = self.config.env == "local"
        return FastAPI(
            title=f"{self.service_name.title()} Service",
            description=f"Market Dashboard - {self.service_name.title()} Service",
            version=SERVICE_VERSION,
            docs_url="/docs" if docs_enabled else None,
            redoc_url=None,
            openapi_url="/openapi.json" if docs_enabled else None,
        )

    def _setup_middleware(self):
        """Request id, access log and HTTP metrics for every request."""

        @self.app.middleware("http")
        async def track_request(request: Request, call_next):
            request_id = set_request_id(request.headers.get("X-Request-ID"))
            started = time.perf_counter()
            try:
                response = await call_next(request)
                duration = time.perf_counter() - started
                self.metrics.record_http_request(
                    method=request.method,
                    endpoint=request.url.path,
                    status_code=response.status_code,
                    duration=duration,
                )
                self.logger.info(
                    "HTTP request",
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=round(duration * 1000, 2),
                )
                response.headers["X-Request-ID"] = request_id
                return response
            finally:
                clear_context()

    def _setup_routes(self):
        """Operational endpoints shared by every service."""

        @self.app.get("/health")
        async def health_check():
            try:
                dependencies = await self._check_dependencies()
            except Exception as exc:
                self.logger.error("Health check failed", error=str(exc))
                self.metrics.record_health_check("error")
                return JSONResponse(
                    status_code=503,
                    content={"service": self.service_name, "status": "error", "error": str(exc)},
                )

            self.metrics.record_health_check("ok")
            return {
                "service": self.service_name,
                "status": "ok",
                "uptime_seconds": self._get_uptime(),
                "dependencies": dependencies,
                "version": SERVICE_VERSION,
            }

        @self.app.get("/metrics")
        async def metrics_endpoint():
            return Response(content=self.metrics.render(), media_type=CONTENT_TYPE_LATEST)

    def _setup_exception_handlers(self):
        @self.app.exception_handler(GatewayError)
        async def gateway_error_handler(request: Request, exc: GatewayError):
            self.logger.warning("Gateway error", code=exc.code, message=exc.message, path=request.url.path)
            return JSONResponse(status_code=exc.status_code, content=exc.to_body())

        @self.app.exception_handler(Exception)
        async def unhandled_error_handler(request: Request, exc: Exception):
            self.logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=True)
            self.metrics.record_error(type(exc).__name__)
            return JSONResponse(status_code=500, content={"error": "Server error", "detail": str(exc)})

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Check service dependencies. Override in subclasses."""
        return {}

    def _get_uptime(self) -> float:
        return time.time() - self._start_time

    def run(self):
        """Serve the app with uvicorn on the configured host and port."""
        import uvicorn

        uvicorn.run(
            self.app,
            host=self.config.host,
            port=self.config.port,
            log_level=self.config.log_level.lower(),
        )
