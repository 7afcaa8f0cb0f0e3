"""Write key/value records back to MongoDB."""

from .encoding import (
    ID_FIELD,
    VALUE_FIELD,
    Contribution,
    MongoOutput,
    build_document,
    classify,
    to_bson_value,
)
from .sink import RecordSink, WriteTarget, open_record_sink
from .write_buffer import WriteBuffer

__all__ = [
    # Document construction
    "ID_FIELD",
    "VALUE_FIELD",
    "Contribution",
    "MongoOutput",
    "build_document",
    "classify",
    "to_bson_value",

    # Sink
    "RecordSink",
    "WriteTarget",
    "WriteBuffer",
    "open_record_sink",
]
