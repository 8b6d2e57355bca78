"""
Shared fixtures for the gateway test suite.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from shared.config import ServiceConfig


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeCollection:
    def __init__(self):
        self.docs: Dict[Any, Dict[str, Any]] = {}
        self.updates: List[Dict[str, Any]] = []

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        await asyncio.sleep(0)
        return self.docs.get(query["_id"])

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False):
        await asyncio.sleep(0)
        self.updates.append({"query": query, "update": update, "upsert": upsert})
        doc = self.docs.setdefault(query["_id"], {"_id": query["_id"]})
        doc.update(update["$set"])


class FakeDatabase:
    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())


class FakeAdmin:
    def __init__(self, client: "FakeMongoClient"):
        self.client = client

    async def command(self, name: str):
        await asyncio.sleep(0)
        self.client.commands.append(name)
        if self.client.fail_ping:
            raise ConnectionError("connection refused")
        return {"ok": 1}


class FakeMongoClient:
    """In-memory stand-in for ``pymongo.AsyncMongoClient``."""

    def __init__(self, uri: str, fail_ping: bool = False):
        self.uri = uri
        self.fail_ping = fail_ping
        self.commands: List[str] = []
        self.closed = False
        self.admin = FakeAdmin(self)
        self.databases: Dict[str, FakeDatabase] = {}

    def get_database(self, name: str) -> FakeDatabase:
        return self.databases.setdefault(name, FakeDatabase())

    async def close(self):
        self.closed = True


class FakeMongoFactory:
    """Client factory that records every client it builds."""

    def __init__(self, fail_ping: bool = False):
        self.fail_ping = fail_ping
        self.clients: List[FakeMongoClient] = []

    def __call__(self, uri: str) -> FakeMongoClient:
        client = FakeMongoClient(uri, fail_ping=self.fail_ping)
        self.clients.append(client)
        return client


def make_config(**overrides) -> ServiceConfig:
    """Build a config with every upstream key set and storage disabled."""
    values = {
        "service_name": "gateway",
        "env": "test",
        "log_level": "warning",
        "cmc_api_key": "cmc-key",
        "fx_api_key": "fx-key",
        "news_api_key": "news-key",
        "finnhub_api_key": "finnhub-key",
        "gemini_api_key": "gemini-key",
        "gemini_model": "gemini-2.5-flash",
        "cmc_base_url": "https://cmc.test",
        "fx_base_url": "https://fx.test/v1",
        "news_base_url": "https://news.test/v1",
        "finnhub_base_url": "https://finnhub.test/api/v1",
        "gemini_base_url": "https://gemini.test",
        "upstream_retry_attempts": 2,
        "default_currency": "INR",
        "rate_limit": 1000,
        "rate_limit_window_ms": 24 * 60 * 60 * 1000,
        "trust_forwarded_for": False,
        "cache_ttl_seconds": 86400,
        "mongodb_uri": None,
        "mongodb_db": "crypto",
        "mongodb_collection": "portfolio",
        "mongodb_stock_collection": "stock_portfolio",
        "static_dir": "frontend",
        "port": 3000,
    }
    values.update(overrides)
    return ServiceConfig(_env_file=None, **values)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def mongo_factory():
    return FakeMongoFactory()
