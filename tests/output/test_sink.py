# tests/output/test_sink.py
from __future__ import annotations

import logging

import pytest
from pymongo import InsertOne, ReplaceOne, UpdateMany, UpdateOne
from pymongo.errors import BulkWriteError, OperationFailure

import mongo_batch.output.sink as sink_mod
from mongo_batch.config import OutputConfig
from mongo_batch.errors import WriteError
from mongo_batch.output.sink import RecordSink, WriteTarget, open_record_sink


class FakeCollection:
    def __init__(self, full_name="shop.totals"):
        self.full_name = full_name
        self.batches: list[list] = []
        self.fail_with: Exception | None = None

    def bulk_write(self, requests, ordered=True):
        assert ordered is True
        self.batches.append(list(requests))
        if self.fail_with is not None:
            raise self.fail_with
        return None

    @property
    def requests(self):
        return [r for batch in self.batches for r in batch]


class FakeClient:
    def __init__(self):
        self.closed = False
        self.collection = FakeCollection()

    def __getitem__(self, name):
        client = self

        class _Db:
            def __getitem__(self, coll):
                return client.collection

        return _Db()

    def close(self):
        self.closed = True


# =============================================================================
# Replace mode
# =============================================================================

def test_replace_mode_upserts_full_document():
    coll = FakeCollection()
    sink = RecordSink(coll)

    sink.write({"_id": 5}, {"a": 1})

    assert coll.requests == [ReplaceOne({"_id": 5}, {"_id": 5, "a": 1}, upsert=True)]
    assert sink.records_written == 1


def test_replace_mode_scalar_key_and_value():
    coll = FakeCollection()
    RecordSink(coll).write("apple", 3)
    assert coll.requests == [
        ReplaceOne({"_id": "apple"}, {"_id": "apple", "value": 3}, upsert=True)
    ]


def test_replace_mode_without_identity_inserts():
    target = WriteTarget("replace", {"a": 1})
    assert target.to_request() == InsertOne({"a": 1})


# =============================================================================
# Conditional-update mode
# =============================================================================

def test_update_mode_moves_merge_keys_into_query():
    sink = RecordSink(FakeCollection(), update_keys=["a"])
    target = sink.build_target(None, {"a": 1, "b": 2})

    assert target.query == {"a": 1}
    assert target.document == {"b": 2}
    assert target.to_request() == UpdateOne({"a": 1}, {"$set": {"b": 2}}, upsert=True)


def test_update_mode_strips_null_identity_only():
    sink = RecordSink(FakeCollection(), update_keys=["sku"])
    target = sink.build_target(None, {"sku": "x", "note": None})

    assert "_id" not in target.document
    # other null fields are kept as explicit nulls
    assert target.document == {"note": None}


def test_update_mode_keeps_non_null_identity():
    sink = RecordSink(FakeCollection(), update_keys=["sku"])
    target = sink.build_target(7, {"sku": "x", "qty": 2})
    assert target.document == {"_id": 7, "qty": 2}


def test_update_mode_with_several_keys_and_missing_key():
    sink = RecordSink(FakeCollection(), update_keys=("region", "day"))
    target = sink.build_target(None, {"region": "eu", "total": 9})
    assert target.query == {"region": "eu", "day": None}
    assert target.document == {"total": 9}


def test_multi_update_patches_all_matches():
    coll = FakeCollection()
    sink = RecordSink(coll, update_keys=["a"], multi_update=True)
    sink.write(None, {"a": 1, "b": 2})
    assert coll.requests == [UpdateMany({"a": 1}, {"$set": {"b": 2}}, upsert=True)]


# =============================================================================
# Failure semantics
# =============================================================================

def test_write_rejection_is_wrapped_and_not_resubmitted(caplog):
    coll = FakeCollection()
    cause = OperationFailure("E11000 duplicate key error", code=11000)
    coll.fail_with = cause
    sink = RecordSink(coll, update_keys=["a"])
    caplog.set_level(logging.ERROR)

    with pytest.raises(WriteError) as info:
        sink.write(None, {"a": 1, "b": 2})

    assert isinstance(info.value, OSError)
    assert info.value.cause is cause
    assert info.value.__cause__ is cause
    assert any("failed" in r.getMessage() for r in caplog.records)

    coll.fail_with = None
    sink.close()
    assert len(coll.batches) == 1
    assert sink.records_written == 0


def test_batched_writes_surface_error_on_close():
    client = FakeClient()
    coll = FakeCollection()
    coll.fail_with = BulkWriteError({"writeErrors": [{"index": 0, "code": 11000}]})
    sink = RecordSink(coll, batch_size=10, client=client)

    sink.write(1, {"a": 1})
    sink.write(2, {"a": 2})
    assert coll.batches == []

    with pytest.raises(WriteError):
        sink.close()

    assert len(coll.batches) == 1 and len(coll.batches[0]) == 2
    # the client is released even though the flush failed
    assert client.closed


def test_batch_flushes_when_full():
    coll = FakeCollection()
    sink = RecordSink(coll, batch_size=2)
    for i in range(5):
        sink.write(i, {"n": i})

    assert [len(b) for b in coll.batches] == [2, 2]
    sink.close()
    assert [len(b) for b in coll.batches] == [2, 2, 1]
    assert sink.records_written == 5


def test_close_is_idempotent_and_blocks_further_writes():
    client = FakeClient()
    sink = RecordSink(FakeCollection(), client=client)
    sink.close()
    sink.close()
    assert client.closed
    with pytest.raises(ValueError):
        sink.write(1, 2)


def test_context_manager_closes():
    coll = FakeCollection()
    with RecordSink(coll, batch_size=100) as sink:
        sink.write(1, {"x": 1})
    assert len(coll.requests) == 1


# =============================================================================
# Factory
# =============================================================================

def test_open_record_sink_uses_output_config(monkeypatch):
    client = FakeClient()
    seen = []

    def fake_open_client(uri, **kwargs):
        seen.append(uri)
        return client

    monkeypatch.setattr(sink_mod, "open_client", fake_open_client)
    config = OutputConfig(
        "mongodb://localhost/shop.totals", update_keys=("sku",), multi_update=True
    )

    with open_record_sink(config) as sink:
        assert sink.update_keys == ("sku",)
        assert sink.multi_update is True
        sink.write(None, {"sku": "a", "n": 1})

    assert seen == ["mongodb://localhost/shop.totals"]
    assert client.collection.requests == [
        UpdateMany({"sku": "a"}, {"$set": {"n": 1}}, upsert=True)
    ]
    assert client.closed


def test_open_record_sink_requires_collection(monkeypatch):
    client = FakeClient()
    monkeypatch.setattr(sink_mod, "open_client", lambda uri, **kw: client)

    with pytest.raises(ValueError):
        open_record_sink(OutputConfig("mongodb://localhost/shop"))
    assert client.closed
