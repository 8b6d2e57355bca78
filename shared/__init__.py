"""
Shared utilities for the Market Dashboard Gateway.

This package aggregates the common building blocks used by the gateway:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and response bodies
- retry: Retry decorator for transient upstream failures
- base_service: FastAPI app skeleton with health/metrics routes

Do not import from dashboard_gateway into shared/.
"""
