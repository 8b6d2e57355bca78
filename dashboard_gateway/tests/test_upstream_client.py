"""
Unit tests for the upstream HTTP client.
"""

import json

import httpx
import pytest

from dashboard_gateway.app.adapters.upstream_client import ProxyResult, UpstreamClient
from shared.metrics import MetricsCollector
from shared.retry import RetryError


def make_client(handler, **kwargs):
    return UpstreamClient(
        transport=httpx.MockTransport(handler),
        retry_base_delay=0,
        **kwargs,
    )


class TestUpstreamClient:
    """Test cases for UpstreamClient."""

    @pytest.mark.asyncio
    async def test_success_passes_body_and_status(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"data": [{"id": 1}]})

        client = make_client(handler)
        result = await client.fetch(
            "https://cmc.test/v1/cryptocurrency/map",
            params=[("start", "1")],
            headers={"X-CMC_PRO_API_KEY": "k"},
        )
        await client.close()

        assert result == ProxyResult(200, {"data": [{"id": 1}]})
        assert result.ok
        assert seen[0].headers["accept"] == "application/json"
        assert seen[0].headers["x-cmc_pro_api_key"] == "k"
        assert seen[0].url.params["start"] == "1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401, 429, 500, 503])
    async def test_error_status_is_forwarded(self, status_code):
        client = make_client(lambda request: httpx.Response(status_code, json={"status": {"error_code": 1}}))

        result = await client.fetch("https://cmc.test/v1/exchange/info")
        await client.close()

        assert result.status_code == status_code
        assert result.body == {"status": {"error_code": 1}}
        assert not result.ok

    @pytest.mark.asyncio
    async def test_non_json_body_becomes_empty_object(self):
        client = make_client(lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"))

        result = await client.fetch("https://finnhub.test/api/v1/quote")
        await client.close()

        assert result == ProxyResult(502, {})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [b'{"price": NaN}', b'{"price": -Infinity}', b'{"price": 1e400}'])
    async def test_non_finite_numbers_become_empty_object(self, content):
        client = make_client(lambda request: httpx.Response(200, content=content))

        result = await client.fetch("https://cmc.test/v1/cryptocurrency/listings/latest")
        await client.close()

        assert result == ProxyResult(200, {})

    @pytest.mark.asyncio
    async def test_empty_body_becomes_empty_object(self):
        client = make_client(lambda request: httpx.Response(204))

        result = await client.fetch("https://finnhub.test/api/v1/quote")
        await client.close()

        assert result == ProxyResult(204, {})

    @pytest.mark.asyncio
    async def test_transport_errors_are_retried(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            if len(attempts) == 1:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={"ok": True})

        client = make_client(handler, retry_attempts=2)
        result = await client.fetch("https://news.test/v1/news/all")
        await client.close()

        assert result.body == {"ok": True}
        assert len(attempts) == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            raise httpx.ConnectTimeout("timed out", request=request)

        client = make_client(handler, retry_attempts=3)
        with pytest.raises(RetryError) as exc_info:
            await client.fetch("https://news.test/v1/news/all")
        await client.close()

        assert exc_info.value.attempts == 3
        assert len(attempts) == 3

    @pytest.mark.asyncio
    async def test_post_json_is_sent_once(self):
        attempts = []

        def handler(request):
            attempts.append(request)
            return httpx.Response(500, json={"error": {"message": "internal"}})

        client = make_client(handler)
        result = await client.post_json("https://gemini.test/v1beta/x", {"a": 1}, headers={"X-goog-api-key": "g"})
        await client.close()

        assert result == ProxyResult(500, {"error": {"message": "internal"}})
        assert len(attempts) == 1
        assert json.loads(attempts[0].content) == {"a": 1}
        assert attempts[0].headers["content-type"] == "application/json"
        assert attempts[0].headers["x-goog-api-key"] == "g"

    @pytest.mark.asyncio
    async def test_records_upstream_metrics(self):
        metrics = MetricsCollector("gateway")
        client = make_client(lambda request: httpx.Response(200, json={}), metrics=metrics)

        await client.fetch("https://cmc.test/v1/cryptocurrency/map", upstream="coinmarketcap")
        await client.close()

        assert metrics.sample_value(
            "upstream_requests_total", {"upstream": "coinmarketcap", "status_code": "200"}
        ) == 1.0
