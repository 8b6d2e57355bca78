"""
Structured logging for the Market Dashboard Gateway.

Every log line is a JSON object carrying the logger name, level, ISO
timestamp, the service that emitted it and, inside a request, the request
id and the client address the rate limiter keyed on.
"""

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
client_id_var: ContextVar[Optional[str]] = ContextVar("client_id", default=None)

EventDict = Dict[str, Any]


def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Derive ``service`` from dotted logger names such as ``gateway.cache_manager``."""
    logger_name = event_dict.get("logger") or ""
    service, dot, _ = logger_name.partition(".")
    if dot:
        event_dict.setdefault("service", service)
    return event_dict


def add_request_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Attach the current request id and client address, when set."""
    for key, var in (("request_id", request_id_var), ("client_id", client_id_var)):
        value = var.get()
        if value:
            event_dict[key] = value
    return event_dict


def configure_logging(service_name: str, log_level: str = "info") -> None:
    """Configure structlog and the stdlib root logger for ``service_name``."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            add_service_context,
            add_request_context,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    logging.getLogger(service_name).setLevel(level)


def set_request_id(request_id: Optional[str] = None) -> str:
    """Use the caller's request id or mint one; returns the id in effect."""
    request_id = request_id or str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def set_client_context(client_id: Optional[str] = None) -> None:
    if client_id:
        client_id_var.set(client_id)


def clear_context() -> None:
    request_id_var.set(None)
    client_id_var.set(None)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, e.g. ``get_logger("gateway.upstream")``."""
    return structlog.get_logger(name)
