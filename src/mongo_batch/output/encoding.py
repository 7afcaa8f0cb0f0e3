# output/encoding.py
"""Conversion of arbitrary keys and values into BSON-ready documents."""
from __future__ import annotations

import dataclasses
import datetime
import decimal
import uuid
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Mapping, MutableMapping

from bson.binary import Binary
from bson.decimal128 import Decimal128
from bson.objectid import ObjectId

__all__ = [
    "ID_FIELD",
    "VALUE_FIELD",
    "MongoOutput",
    "Contribution",
    "classify",
    "to_bson_value",
    "build_document",
]

ID_FIELD = "_id"
VALUE_FIELD = "value"

# Types the bson encoder accepts as-is
_NATIVE_SCALARS = (
    type(None),
    bool,
    int,
    float,
    str,
    datetime.datetime,
    ObjectId,
    Binary,
    Decimal128,
    uuid.UUID,
)


class MongoOutput(ABC):
    """Keys and values that know how to place their own fields in a document."""

    @abstractmethod
    def append_as_key(self, doc: MutableMapping[str, Any]) -> None:
        """Add identifying fields (normally ``_id``) to ``doc``."""

    @abstractmethod
    def append_as_value(self, doc: MutableMapping[str, Any]) -> None:
        """Add output fields to ``doc``."""


class Contribution(Enum):
    """How a key or value contributes to the output document."""

    SELF_DESCRIBING = "self_describing"
    DOCUMENT = "document"
    SCALAR = "scalar"


def classify(obj: Any) -> Contribution:
    if isinstance(obj, MongoOutput):
        return Contribution.SELF_DESCRIBING
    if isinstance(obj, Mapping):
        return Contribution.DOCUMENT
    return Contribution.SCALAR


def to_bson_value(obj: Any) -> Any:
    """
    Convert ``obj`` into a value the bson encoder accepts.

    Native BSON scalars pass through, mappings and dataclasses become dicts,
    sequences become lists, ``bytes`` becomes Binary, ``Decimal`` becomes
    Decimal128, ``date`` is widened to midnight. Anything else is stored as
    its string form.
    """
    if isinstance(obj, _NATIVE_SCALARS):
        return obj
    if isinstance(obj, Mapping):
        return {str(k): to_bson_value(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return to_bson_value(dataclasses.asdict(obj))
    if isinstance(obj, (bytes, bytearray, memoryview)):
        return Binary(bytes(obj))
    if isinstance(obj, decimal.Decimal):
        return Decimal128(obj)
    if isinstance(obj, datetime.date):
        return datetime.datetime(obj.year, obj.month, obj.day)
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_bson_value(v) for v in obj]
    return str(obj)


def build_document(key: Any, value: Any) -> dict:
    """
    Assemble the output document for one key/value pair.

    The key becomes the identity (``_id``) and the value is flattened into
    the document, unless either knows how to place itself.
    """
    doc: dict = {}

    kind = classify(key)
    if kind is Contribution.SELF_DESCRIBING:
        key.append_as_key(doc)
    elif kind is Contribution.DOCUMENT:
        # An identity document ({"_id": x}) contributes x, not {"_id": {"_id": x}}
        if set(key) == {ID_FIELD}:
            doc[ID_FIELD] = key[ID_FIELD]
        else:
            doc[ID_FIELD] = dict(key)
    else:
        doc[ID_FIELD] = to_bson_value(key)

    kind = classify(value)
    if kind is Contribution.SELF_DESCRIBING:
        value.append_as_value(doc)
    elif kind is Contribution.DOCUMENT:
        doc.update(value)
    else:
        doc[VALUE_FIELD] = to_bson_value(value)

    return doc
