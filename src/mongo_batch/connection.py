# mongo_batch/connection.py
"""Connection URIs, client construction, and collection lookup."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.uri_parser import parse_uri

__all__ = [
    "ConnectionDescriptor",
    "open_client",
    "get_collection",
    "redact_uri",
]

_USERINFO_RE = re.compile(r"(mongodb(?:\+srv)?://[^:@/]+):[^@/]*@")


def redact_uri(uri: str) -> str:
    """Mask the password component of a MongoDB URI for display."""
    return _USERINFO_RE.sub(r"\1:****@", uri)


@dataclass(frozen=True)
class ConnectionDescriptor:
    """Parsed view of a ``mongodb://`` URI."""

    uri: str = field(repr=False)
    hosts: Tuple[Tuple[str, int], ...]
    database: Optional[str]
    collection: Optional[str]
    username: Optional[str] = None
    password: Optional[str] = field(default=None, repr=False)
    options: Dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_uri(cls, uri: str) -> "ConnectionDescriptor":
        parsed = parse_uri(uri)
        return cls(
            uri=uri,
            hosts=tuple(tuple(node) for node in parsed.get("nodelist", [])),
            database=parsed.get("database"),
            collection=parsed.get("collection"),
            username=parsed.get("username"),
            # "user@host" parses to an empty password; treat it as absent
            password=parsed.get("password") or None,
            options=dict(parsed.get("options") or {}),
        )

    @property
    def has_credentials(self) -> bool:
        """True only when both a username and a password are present."""
        return self.username is not None and self.password is not None

    @property
    def namespace(self) -> str:
        if not self.database or not self.collection:
            raise ValueError(
                f"URI must name a database and collection: {self.redacted()}"
            )
        return f"{self.database}.{self.collection}"

    def host_strings(self) -> List[str]:
        return [f"{host}:{port}" for host, port in self.hosts]

    def redacted(self) -> str:
        return redact_uri(self.uri)


def open_client(uri: str, **kwargs: Any) -> MongoClient:
    """
    Construct a MongoClient for ``uri``.

    Keyword arguments override options embedded in the URI (for example
    ``authSource`` or ``username``).
    """
    return MongoClient(uri, **kwargs)


def get_collection(client: MongoClient, descriptor: ConnectionDescriptor) -> Collection:
    """Resolve the collection named by ``descriptor`` on ``client``."""
    if not descriptor.database or not descriptor.collection:
        raise ValueError(
            f"URI must name a database and collection: {descriptor.redacted()}"
        )
    return client[descriptor.database][descriptor.collection]
