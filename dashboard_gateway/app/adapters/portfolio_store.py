"""
MongoDB persistence for user portfolios.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence

from pymongo import AsyncMongoClient
from pymongo.server_api import ServerApi

from shared.errors import StorageError, StorageNotConfiguredError
from shared.logging import get_logger

from ..domain.portfolio import PortfolioEntry


ClientFactory = Callable[[str], Any]


def _default_client_factory(uri: str) -> AsyncMongoClient:
    return AsyncMongoClient(
        uri,
        server_api=ServerApi("1", strict=True, deprecation_errors=True),
    )


class PortfolioStore:
    """
    One document per user: ``{_id, entries, updatedAt}``.

    The client is created on first use and shared for the life of the
    process. Concurrent first requests wait on the same lock so only one
    client is ever built. Writes replace the whole entry list.
    """

    def __init__(
        self,
        uri: Optional[str],
        database: str,
        collections: Dict[str, str],
        *,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.uri = uri or None
        self.database = database
        self.collections = dict(collections)
        self.logger = get_logger("gateway.portfolio_store")
        self._client_factory = client_factory or _default_client_factory
        self._client: Optional[Any] = None
        self._lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        return self.uri is not None

    def require_configured(self) -> None:
        if not self.configured:
            raise StorageNotConfiguredError()

    async def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is None:
                self.require_configured()
                client = self._client_factory(self.uri)
                try:
                    await client.admin.command("ping")
                except Exception as exc:
                    self.logger.error("Portfolio storage connection failed", error=str(exc))
                    await client.close()
                    raise StorageError(f"Portfolio storage unavailable: {exc}") from exc
                self._client = client
                self.logger.info("Portfolio storage connected", database=self.database)
        return self._client

    async def _collection(self, kind: str) -> Any:
        try:
            name = self.collections[kind]
        except KeyError:
            raise ValueError(f"Unknown portfolio kind: {kind}") from None
        client = await self._get_client()
        return client.get_database(self.database).get_collection(name)

    async def read(self, kind: str, user_key: str) -> List[Dict[str, Any]]:
        """Return the stored entries for ``user_key``, or [] when none exist."""
        collection = await self._collection(kind)
        doc = await collection.find_one({"_id": user_key})
        if not doc:
            return []
        return list(doc.get("entries") or [])

    async def write(self, kind: str, user_key: str, entries: Sequence[PortfolioEntry]) -> List[Dict[str, Any]]:
        """Replace the stored entries for ``user_key`` (upsert, last write wins)."""
        payload = [entry.to_dict() for entry in entries]
        collection = await self._collection(kind)
        await collection.update_one(
            {"_id": user_key},
            {"$set": {"entries": payload, "updatedAt": datetime.now(timezone.utc)}},
            upsert=True,
        )
        self.logger.info("Portfolio saved", kind=kind, user_key=user_key, entries=len(payload))
        return payload

    async def ping(self) -> bool:
        """Return True when the document store answers a ping."""
        try:
            client = await self._get_client()
            await client.admin.command("ping")
            return True
        except Exception as exc:
            self.logger.error("Portfolio storage health check failed", error=str(exc))
            return False

    async def close(self) -> None:
        """Close the shared client; the next call reconnects."""
        async with self._lock:
            client, self._client = self._client, None
        if client is not None:
            await client.close()
            self.logger.info("Portfolio storage closed")
