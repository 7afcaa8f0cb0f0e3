# splitter/boundaries.py
"""Boundary key retrieval via the splitVector command."""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional

from bson.son import SON
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import OperationFailure, PyMongoError

from mongo_batch.connection import ConnectionDescriptor, open_client
from mongo_batch.errors import AuthenticationError, SplitCalculationError
from mongo_batch.splitter.types import BoundaryKey

__all__ = ["BoundaryKeyFetcher", "build_split_vector_command", "parse_split_keys"]

ADMIN_DB = "admin"

_module_logger = logging.getLogger(__name__)


def build_split_vector_command(
    namespace: str,
    key_pattern: Mapping[str, Any],
    chunk_size: int,
) -> SON:
    """Build the splitVector request; field order matters to the server."""
    return SON([
        ("splitVector", namespace),
        ("keyPattern", dict(key_pattern)),
        # force=True returns a single midpoint instead of a full vector
        ("force", False),
        ("maxChunkSize", chunk_size),
    ])


def parse_split_keys(response: Mapping[str, Any]) -> List[BoundaryKey]:
    """
    Validate a splitVector response and extract its boundary keys.

    Raises:
        SplitCalculationError: If the response carries ``$err`` (regardless of
            ``ok``) or ``ok`` is not 1
    """
    if "$err" in response:
        raise SplitCalculationError(
            f"Error calculating splits: {response['$err']}", response
        )
    if response.get("ok") != 1:
        raise SplitCalculationError(
            f"Unable to calculate input splits: {response.get('errmsg')}", response
        )
    # "min" and "max" are implicit; each entry is a single boundary, not a range
    return list(response.get("splitKeys") or [])


class BoundaryKeyFetcher:
    """
    Fetch approximate equal-size boundary keys for a collection.

    The splitVector command must run against the admin database. If no
    privileged handle is supplied, the sibling ``admin`` database of the
    target collection is used, and authenticated on first use when it is not
    already and the connection URI carries a username and password. The
    resolved handle is cached for the lifetime of the fetcher.
    """

    def __init__(
        self,
        descriptor: ConnectionDescriptor,
        auth_db: Optional[Database] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the fetcher.

        Args:
            descriptor: Parsed input URI (source of admin credentials)
            auth_db: Pre-authenticated database to run the command against;
                skips ad-hoc authentication entirely
            logger: Logger to report through (default: module logger)
        """
        self.descriptor = descriptor
        self.logger = logger or _module_logger
        self._auth_db = auth_db
        self._owned_client: Optional[MongoClient] = None

    def fetch(
        self,
        collection: Collection,
        key_pattern: Mapping[str, Any],
        chunk_size: int,
    ) -> List[BoundaryKey]:
        """
        Run splitVector for ``collection`` and return its boundary keys.

        Args:
            collection: Target collection
            key_pattern: Index key pattern to partition on, e.g. {"_id": 1}
            chunk_size: Approximate split size in MB

        Returns:
            Boundary keys in collection order; empty when the collection is
            too small to split

        Raises:
            AuthenticationError: If admin credentials were tried and rejected
            SplitCalculationError: If the command reports an error
        """
        cmd = build_split_vector_command(collection.full_name, key_pattern, chunk_size)
        admin_db = self.admin_database(collection)

        self.logger.info(
            "Running splitVector on %s (keyPattern=%s, maxChunkSize=%s)",
            collection.full_name,
            dict(key_pattern),
            chunk_size,
        )
        response = admin_db.command(cmd, check=False)
        keys = parse_split_keys(response)
        self.logger.debug("splitVector returned %d boundary keys", len(keys))
        return keys

    def admin_database(self, collection: Collection) -> Database:
        """Resolve (and cache) the database the command is issued against."""
        if self._auth_db is None:
            admin_db = collection.database.client.get_database(ADMIN_DB)
            # Without credentials there is nothing to escalate to
            if self.descriptor.has_credentials and not self._is_authenticated(admin_db):
                admin_db = self._authenticate()
            self._auth_db = admin_db
        return self._auth_db

    def close(self) -> None:
        """Release the escalated client, if one was opened."""
        if self._owned_client is not None:
            self._owned_client.close()
            self._owned_client = None
            self._auth_db = None

    def _is_authenticated(self, admin_db: Database) -> bool:
        """True when some user on this connection is authenticated against admin."""
        try:
            status = admin_db.command("connectionStatus")
        except OperationFailure as exc:
            # The client's own login (against its URI database) was refused
            self.logger.debug("connectionStatus failed, treating admin as unauthenticated: %s", exc)
            return False
        users = (status.get("authInfo") or {}).get("authenticatedUsers") or []
        return any(u.get("db") == ADMIN_DB for u in users)

    def _authenticate(self) -> Database:
        self.logger.info("Authenticating to %s database as %s", ADMIN_DB, self.descriptor.username)
        client = open_client(
            self.descriptor.uri,
            username=self.descriptor.username,
            password=self.descriptor.password,
            authSource=ADMIN_DB,
        )
        admin_db = client.get_database(ADMIN_DB)
        try:
            # Authentication is lazy; force the handshake now
            admin_db.command("ping")
        except OperationFailure as exc:
            client.close()
            self.logger.error("Authentication to %s database failed: %s", ADMIN_DB, exc)
            raise AuthenticationError(
                "Could not authenticate to admin database. "
                "Try setting auth_uri with admin credentials."
            ) from exc
        except PyMongoError:
            client.close()
            raise

        self._owned_client = client
        return admin_db
