# output/sink.py
"""Record sink: one key/value pair in, one upsert out."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from pymongo import InsertOne, MongoClient, ReplaceOne, UpdateMany, UpdateOne
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from mongo_batch.config import OutputConfig
from mongo_batch.connection import ConnectionDescriptor, get_collection, open_client
from mongo_batch.errors import WriteError
from mongo_batch.output.encoding import ID_FIELD, build_document
from mongo_batch.output.write_buffer import WriteBuffer

_module_logger = logging.getLogger(__name__)

__all__ = ["WriteTarget", "RecordSink", "open_record_sink"]

REPLACE = "replace"
UPDATE = "update"


@dataclass
class WriteTarget:
    """The document (and query, in update mode) for a single write."""

    mode: str
    document: Dict[str, Any]
    query: Dict[str, Any] = field(default_factory=dict)
    multi: bool = False

    def to_request(self):
        """Translate into the pymongo bulk request it describes."""
        if self.mode == UPDATE:
            op = UpdateMany if self.multi else UpdateOne
            return op(self.query, {"$set": self.document}, upsert=True)
        if ID_FIELD not in self.document:
            return InsertOne(self.document)
        return ReplaceOne({ID_FIELD: self.document[ID_FIELD]}, self.document, upsert=True)


class RecordSink:
    """
    Write key/value pairs to a collection.

    Without update keys every record is a full replace-by-``_id`` upsert.
    With update keys, their values select the target document and the rest
    of the record is applied as a ``$set`` upsert.

    Not safe for concurrent use; each worker owns its own sink.
    """

    def __init__(
        self,
        collection: Collection,
        update_keys: Optional[Sequence[str]] = None,
        multi_update: bool = False,
        *,
        batch_size: int = 1,
        client: Optional[MongoClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the sink.

        Args:
            collection: Output collection
            update_keys: Fields used as the update query; None for replace mode
            multi_update: Apply updates to every matching document
            batch_size: Requests buffered per bulk_write (1 = write-through)
            client: Client released on close(); leave None if the caller owns it
            logger: Logger to report through (default: module logger)
        """
        self.collection = collection
        self.update_keys: Optional[Tuple[str, ...]] = (
            tuple(update_keys) if update_keys is not None else None
        )
        self.multi_update = multi_update
        self.logger = logger or _module_logger
        self._buffer = WriteBuffer(batch_size)
        self._client = client
        self._closed = False
        self.records_written = 0

    def build_target(self, key: Any, value: Any) -> WriteTarget:
        doc = build_document(key, value)

        if self.update_keys is None:
            return WriteTarget(REPLACE, doc)

        query: Dict[str, Any] = {}
        for update_key in self.update_keys:
            query[update_key] = doc.pop(update_key, None)

        # An explicit null must never overwrite an existing _id
        if ID_FIELD in doc and doc[ID_FIELD] is None:
            del doc[ID_FIELD]

        return WriteTarget(UPDATE, doc, query, multi=self.multi_update)

    def write(self, key: Any, value: Any) -> None:
        """
        Write one record.

        Raises:
            WriteError: If the server rejected this write (or, when batching,
                any buffered write flushed by this call)
        """
        if self._closed:
            raise ValueError("write to closed RecordSink")

        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("Writing out data {k: %r, value: %r}", key, value)

        target = self.build_target(key, value)
        if self._buffer.add(target.to_request()):
            self._flush()

    def flush(self) -> None:
        """Send any buffered writes now."""
        self._flush()

    def close(self) -> None:
        """
        Flush buffered writes and release the client.

        Raises:
            WriteError: If a buffered write was rejected
        """
        if self._closed:
            return
        self._closed = True
        try:
            self._flush()
        finally:
            if self._client is not None:
                self._client.close()
                self._client = None

    def _flush(self) -> None:
        pending = len(self._buffer)
        if not pending:
            return
        try:
            self._buffer.flush(self.collection)
        except PyMongoError as exc:
            self.logger.error(
                "Write of %d record(s) to %s failed: %s",
                pending,
                self.collection.full_name,
                exc,
            )
            raise WriteError("can't write to mongo", exc) from exc
        self.records_written += pending

    def __enter__(self) -> "RecordSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def open_record_sink(
    config: OutputConfig,
    logger: Optional[logging.Logger] = None,
) -> RecordSink:
    """Open a client for ``config.output_uri`` and wrap it in a RecordSink."""
    descriptor = ConnectionDescriptor.from_uri(config.output_uri)
    client = open_client(config.output_uri)
    try:
        collection = get_collection(client, descriptor)
    except ValueError:
        client.close()
        raise
    return RecordSink(
        collection,
        update_keys=config.update_keys,
        multi_update=config.multi_update,
        batch_size=config.batch_size,
        client=client,
        logger=logger,
    )
