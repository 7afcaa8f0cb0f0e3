# splitter/standalone.py
"""Split strategies for unsharded collections."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from mongo_batch.config import InputConfig
from mongo_batch.connection import ConnectionDescriptor, get_collection, open_client
from mongo_batch.splitter.assemble import assemble_splits, format_splits_summary
from mongo_batch.splitter.boundaries import BoundaryKeyFetcher
from mongo_batch.splitter.types import Split

__all__ = ["MongoSplitter", "StandaloneSplitter", "get_splitter"]

_module_logger = logging.getLogger(__name__)


class MongoSplitter(ABC):
    """Base class for strategies that partition an input collection."""

    def __init__(self, config: InputConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or _module_logger

    @abstractmethod
    def calculate_splits(self) -> List[Split]:
        """Return the ordered split sequence (never empty)."""

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class StandaloneSplitter(MongoSplitter):
    """
    Calculate splits on a single collection by running splitVector.

    splitVector returns index boundaries that each enclose roughly
    ``split_size`` MB of data; those boundaries become split bounds. This is
    the strategy used for any collection that is not sharded.
    """

    def __init__(
        self,
        config: InputConfig,
        *,
        client: Optional[MongoClient] = None,
        auth_db: Optional[Database] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the splitter.

        Args:
            config: Input configuration
            client: Client for the input URI (opened on demand if None)
            auth_db: Pre-authenticated admin handle; opened from
                ``config.auth_uri`` when None and that URI is set
            logger: Logger to report through (default: module logger)
        """
        super().__init__(config, logger)
        self.descriptor = ConnectionDescriptor.from_uri(config.input_uri)
        self._client = client
        self._owned_clients: List[MongoClient] = []

        if auth_db is None and config.auth_uri:
            auth_db = self._open_auth_db(config.auth_uri)

        self.fetcher = BoundaryKeyFetcher(self.descriptor, auth_db=auth_db, logger=self.logger)

    @property
    def collection(self) -> Collection:
        if self._client is None:
            self._client = open_client(self.config.input_uri)
            self._owned_clients.append(self._client)
        return get_collection(self._client, self.descriptor)

    def calculate_splits(self) -> List[Split]:
        """
        Generate one split per splitVector chunk.

        Returns:
            Ordered splits tiling the whole key space

        Raises:
            AuthenticationError: Admin credentials were rejected
            SplitCalculationError: splitVector reported an error
        """
        self.logger.info("Calculating splits for %s", self.descriptor.redacted())

        boundary_keys = self.fetcher.fetch(
            self.collection,
            self.config.split_key,
            self.config.split_size,
        )

        if not boundary_keys:
            self.logger.warning(
                "No input splits were calculated by splitVector. Proceeding with a "
                "*single* split. Data may be too small, try lowering split_size "
                "if this is undesirable."
            )

        splits = assemble_splits(boundary_keys)
        self.logger.debug(format_splits_summary(splits))
        return splits

    def close(self) -> None:
        self.fetcher.close()
        while self._owned_clients:
            self._owned_clients.pop().close()

    def _open_auth_db(self, auth_uri: str) -> Database:
        auth_descriptor = ConnectionDescriptor.from_uri(auth_uri)
        client = open_client(auth_uri)
        self._owned_clients.append(client)
        return client.get_database(auth_descriptor.database or "admin")


def get_splitter(config: InputConfig, **kwargs) -> MongoSplitter:
    """
    Select the split strategy for ``config``.

    Only unsharded collections are supported, so this always returns a
    StandaloneSplitter.
    """
    return StandaloneSplitter(config, **kwargs)
