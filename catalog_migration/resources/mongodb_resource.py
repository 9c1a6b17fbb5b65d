"""MongoDB Resource - Read-only access to the source store."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from catalog_migration.errors import ConfigurationError, SourceConnectionError
from catalog_migration.models import MongoSettings

__all__ = ["MongoSourceResource"]

logger = logging.getLogger(__name__)


class MongoSourceResource:
    """
    Read-only MongoDB access for the extract stage.

    Keeps every MongoDB interaction in one place. The resource is a context
    manager: the client is created lazily and closed on exit, whatever the
    outcome of the block.

    Example:
        >>> with MongoSourceResource(settings) as source:
        ...     source.ping()
        ...     for doc in source.iter_collection("datasets", batch_size=500):
        ...         ...
    """

    def __init__(self, settings: MongoSettings):
        if not settings.database:
            raise ConfigurationError("MongoDB database name is not configured")
        self.settings = settings
        self._client: Optional[MongoClient] = None

    def __enter__(self) -> "MongoSourceResource":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get_client(self) -> MongoClient:
        if self._client is None:
            self._client = MongoClient(**self.settings.client_kwargs())
        return self._client

    def _get_db(self) -> Database:
        return self._get_client()[self.settings.database]

    def _get_collection(self, name: str) -> Collection:
        return self._get_db()[name]

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.debug("Closed MongoDB client")

    def ping(self) -> None:
        """
        Verify the server is reachable and the credentials are accepted.

        Raises:
            SourceConnectionError: On any connection or authentication failure
        """
        try:
            self._get_db().command("ping")
        except PyMongoError as e:
            raise SourceConnectionError(
                f"Cannot connect to MongoDB at {self.settings.host}:{self.settings.port}: {e}"
            ) from e
        logger.info(
            f"Connected to MongoDB {self.settings.host}:{self.settings.port}/{self.settings.database}"
        )

    def iter_collection(self, name: str, *, batch_size: int = 1000) -> Iterator[Dict[str, Any]]:
        """
        Stream every document of a collection.

        The cursor fetches ``batch_size`` documents per round trip, so memory
        use is bounded by the batch rather than the collection size.

        Args:
            name: Collection name
            batch_size: Documents per server round trip

        Yields:
            Documents in the order the server returns them

        Raises:
            SourceConnectionError: If the query fails mid-stream
        """
        cursor = self._get_collection(name).find({}, batch_size=batch_size)
        try:
            yield from cursor
        except PyMongoError as e:
            raise SourceConnectionError(f"Reading collection {name!r} failed: {e}") from e
