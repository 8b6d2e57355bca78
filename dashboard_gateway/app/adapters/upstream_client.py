"""
Outbound HTTP client shared by every market-data upstream.
"""

from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, TYPE_CHECKING

import httpx

from shared.logging import get_logger
from shared.retry import RetryPolicy, retry_on_exception

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


QueryPairs = Sequence[Tuple[str, str]]


@dataclass(frozen=True)
class ProxyResult:
    """Uniform envelope for an upstream response."""

    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class UpstreamClient:
    """
    Thin async wrapper over a pooled ``httpx.AsyncClient``.

    The upstream status code is always passed through and a body that is not
    valid JSON becomes ``{}``, so callers get a ``ProxyResult`` for any HTTP
    response. Transport failures on GET requests are retried; POSTs are not.
    """

    def __init__(
        self,
        *,
        timeout: float = 15.0,
        retry_attempts: int = 2,
        retry_base_delay: float = 0.25,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional["MetricsCollector"] = None,
    ) -> None:
        self.logger = get_logger("gateway.upstream")
        self.metrics = metrics
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
        self._get_with_retry = retry_on_exception(
            (httpx.TransportError,),
            RetryPolicy(
                max_attempts=retry_attempts,
                base_delay=retry_base_delay,
                max_delay=2.0,
            ),
        )(self._get)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def fetch(
        self,
        url: str,
        *,
        params: Optional[QueryPairs] = None,
        headers: Optional[Mapping[str, str]] = None,
        upstream: str = "upstream",
    ) -> ProxyResult:
        """GET ``url`` and normalize the response into a ``ProxyResult``."""
        request_headers: Dict[str, str] = {"Accept": "application/json"}
        if headers:
            request_headers.update(headers)

        start = time.perf_counter()
        response = await self._get_with_retry(url, params=list(params or ()), headers=request_headers)
        return self._to_result(response, upstream, time.perf_counter() - start)

    async def post_json(
        self,
        url: str,
        payload: Any,
        *,
        headers: Optional[Mapping[str, str]] = None,
        upstream: str = "upstream",
    ) -> ProxyResult:
        """POST a JSON payload once and normalize the response."""
        request_headers: Dict[str, str] = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        start = time.perf_counter()
        response = await self._client.post(url, json=payload, headers=request_headers)
        return self._to_result(response, upstream, time.perf_counter() - start)

    async def _get(self, url: str, *, params: QueryPairs, headers: Mapping[str, str]) -> httpx.Response:
        return await self._client.get(url, params=params, headers=headers)

    def _to_result(self, response: httpx.Response, upstream: str, duration: float) -> ProxyResult:
        if self.metrics:
            self.metrics.record_upstream_request(upstream, response.status_code, duration)

        if response.is_success:
            self.logger.debug(
                "Upstream request succeeded",
                upstream=upstream,
                path=response.request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
        else:
            # Query strings can carry API keys, so only the path is logged.
            self.logger.warning(
                "Upstream returned error status",
                upstream=upstream,
                path=response.request.url.path,
                status_code=response.status_code,
            )

        return ProxyResult(status_code=response.status_code, body=parse_json_body(response))


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")


def _finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"Number out of range: {text}")
    return value


def parse_json_body(response: httpx.Response) -> Any:
    """Decode a strict JSON body, falling back to an empty object.

    ``NaN``, ``Infinity`` and numbers that overflow a float are refused: they
    cannot be sent on to the browser as JSON.
    """
    if not response.content:
        return {}
    try:
        return json.loads(response.content, parse_constant=_reject_constant, parse_float=_finite_float)
    except ValueError:
        return {}
