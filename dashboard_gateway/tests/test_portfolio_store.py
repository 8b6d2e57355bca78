"""
Unit tests for the MongoDB portfolio store.
"""

import asyncio
from datetime import datetime

import pytest

from dashboard_gateway.app.adapters.portfolio_store import PortfolioStore
from dashboard_gateway.app.domain.portfolio import normalize_entry
from shared.errors import StorageError, StorageNotConfiguredError
from conftest import FakeMongoFactory

COLLECTIONS = {"crypto": "portfolio", "stock": "stock_portfolio"}


def make_store(factory, uri="mongodb://localhost:27017"):
    return PortfolioStore(uri, "crypto", COLLECTIONS, client_factory=factory)


class TestPortfolioStore:
    """Test cases for PortfolioStore."""

    @pytest.mark.asyncio
    async def test_not_configured(self, mongo_factory):
        store = make_store(mongo_factory, uri=None)

        assert store.configured is False
        with pytest.raises(StorageNotConfiguredError) as exc_info:
            await store.read("crypto", "default")
        assert exc_info.value.status_code == 501
        assert exc_info.value.to_body() == {"error": "Portfolio storage not configured (MONGODB_URI missing)"}
        assert mongo_factory.clients == []

    @pytest.mark.asyncio
    async def test_read_missing_document(self, mongo_factory):
        store = make_store(mongo_factory)

        assert await store.read("crypto", "nobody") == []

    @pytest.mark.asyncio
    async def test_write_then_read(self, mongo_factory):
        store = make_store(mongo_factory)
        entries = [normalize_entry({"id": "bitcoin", "symbol": "BTC", "quantity": 2})]

        saved = await store.write("crypto", "user-1", entries)
        loaded = await store.read("crypto", "user-1")

        assert saved == loaded == [entries[0].to_dict()]
        collection = mongo_factory.clients[0].get_database("crypto").get_collection("portfolio")
        update = collection.updates[0]
        assert update["query"] == {"_id": "user-1"}
        assert update["upsert"] is True
        assert isinstance(update["update"]["$set"]["updatedAt"], datetime)

    @pytest.mark.asyncio
    async def test_write_replaces_previous_entries(self, mongo_factory):
        store = make_store(mongo_factory)
        await store.write("stock", "u", [normalize_entry({"id": "AAPL"}), normalize_entry({"id": "MSFT"})])

        await store.write("stock", "u", [normalize_entry({"id": "NVDA"})])

        assert [entry["id"] for entry in await store.read("stock", "u")] == ["NVDA"]
        assert await store.read("crypto", "u") == []

    @pytest.mark.asyncio
    async def test_client_created_once_under_concurrency(self, mongo_factory):
        store = make_store(mongo_factory)

        await asyncio.gather(*(store.read("crypto", f"user-{i}") for i in range(10)))

        assert len(mongo_factory.clients) == 1
        assert mongo_factory.clients[0].commands == ["ping"]

    @pytest.mark.asyncio
    async def test_failed_connection_is_retried_later(self):
        factory = FakeMongoFactory(fail_ping=True)
        store = make_store(factory)

        with pytest.raises(StorageError):
            await store.read("crypto", "default")
        assert factory.clients[0].closed is True

        factory.fail_ping = False
        assert await store.read("crypto", "default") == []
        assert len(factory.clients) == 2

    @pytest.mark.asyncio
    async def test_ping(self, mongo_factory):
        store = make_store(mongo_factory)

        assert await store.ping() is True

    @pytest.mark.asyncio
    async def test_ping_failure(self):
        store = make_store(FakeMongoFactory(fail_ping=True))

        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_close_releases_client(self, mongo_factory):
        store = make_store(mongo_factory)
        await store.read("crypto", "default")

        await store.close()
        await store.read("crypto", "default")

        assert mongo_factory.clients[0].closed is True
        assert len(mongo_factory.clients) == 2

    @pytest.mark.asyncio
    async def test_unknown_kind(self, mongo_factory):
        store = make_store(mongo_factory)

        with pytest.raises(ValueError):
            await store.read("bonds", "default")
