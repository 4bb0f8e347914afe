import types

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from src.gdp_insights.domain.errors import DuplicateYear, StoreError
from src.gdp_insights.domain.models import GdpRecordInput
from src.gdp_insights.infrastructure import record_store_mongo as rsm


class _Cursor:
    def __init__(self, docs):
        self._docs = list(docs)

    def sort(self, field, direction=1):
        self._docs.sort(key=lambda d: d.get(field, 0), reverse=direction == -1)
        return self

    def __iter__(self):
        return iter(self._docs)


class _FakeCollection:
    """Just enough of a pymongo collection, including the unique year index."""

    def __init__(self):
        self.docs = []
        self.fail_with = None

    def _check(self):
        if self.fail_with is not None:
            raise self.fail_with

    def find(self, query=None):
        self._check()
        query = query or {}
        return _Cursor([d for d in self.docs if all(d.get(k) == v for k, v in query.items())])

    def find_one(self, query):
        return next(iter(self.find(query)), None)

    def insert_one(self, doc):
        self._check()
        if any(d["year"] == doc["year"] for d in self.docs):
            raise DuplicateKeyError("E11000 duplicate key error: year")
        doc = dict(doc)
        doc["_id"] = ObjectId()
        self.docs.append(doc)
        return types.SimpleNamespace(inserted_id=doc["_id"])

    def find_one_and_update(self, query, update, return_document=None):
        self._check()
        doc = self.find_one(query)
        if doc is None:
            return None
        doc.update(update["$set"])
        return dict(doc)

    def delete_one(self, query):
        self._check()
        doc = self.find_one(query)
        if doc is None:
            return types.SimpleNamespace(deleted_count=0)
        self.docs.remove(doc)
        return types.SimpleNamespace(deleted_count=1)


@pytest.fixture
def collection():
    return _FakeCollection()


@pytest.fixture
def store(collection):
    return rsm.MongoRecordStore(collection)


def _input(year=2023, value=100.0, country="Japan"):
    return GdpRecordInput(year=year, value=value, country=country)


def test_insert_returns_object_id_string(store, collection):
    created = store.insert(_input())
    assert ObjectId.is_valid(created.id)
    assert collection.docs[0]["country"] == "Japan"
    assert store.get(created.id) == created


def test_unique_index_maps_to_duplicate_year(store):
    store.insert(_input())
    with pytest.raises(DuplicateYear) as info:
        store.insert(_input(value=1.0))
    assert info.value.year == 2023


def test_update_and_delete(store):
    created = store.insert(_input())
    updated = store.update_value(created.id, 321.0)
    assert updated.value == 321.0 and updated.id == created.id
    assert store.delete(created.id) is True
    assert store.delete(created.id) is False
    assert store.update_value(created.id, 1.0) is None


def test_malformed_ids_are_treated_as_missing(store):
    assert store.get("not-an-object-id") is None
    assert store.update_value("nope", 5.0) is None
    assert store.delete("nope") is False


def test_list_is_sorted_by_year_and_tolerates_missing_country(store, collection):
    store.insert(_input(year=2021))
    collection.docs.append({"_id": ObjectId(), "year": 2019, "value": 5})
    listed = store.list_by_year()
    assert [r.year for r in listed] == [2019, 2021]
    assert listed[0].country == ""
    assert store.find_by_year(2021)[0].year == 2021


def test_backend_errors_become_store_errors(store, collection):
    created = store.insert(_input())
    collection.fail_with = ServerSelectionTimeoutError("no primary")
    with pytest.raises(StoreError):
        store.list_by_year()
    with pytest.raises(StoreError):
        store.find_by_year(2023)
    with pytest.raises(StoreError):
        store.insert(_input(year=2024))
    with pytest.raises(StoreError):
        store.update_value(created.id, 9.0)
    with pytest.raises(StoreError):
        store.delete(created.id)


def test_connect_wraps_server_errors(monkeypatch):
    class _DeadClient:
        def __init__(self, *_args, **_kwargs):
            pass

        def server_info(self):
            raise ServerSelectionTimeoutError("down")

    monkeypatch.setattr(rsm, "MongoClient", _DeadClient)
    with pytest.raises(StoreError):
        rsm.MongoRecordStore.connect("mongodb://nowhere:27017", "gdp")


def test_connect_creates_unique_year_index(monkeypatch, collection):
    calls = []
    collection.create_index = lambda keys, unique=False: calls.append((keys, unique))

    class _Client:
        def __init__(self, url, serverSelectionTimeoutMS=None):
            self.url = url

        def server_info(self):
            return {}

        def __getitem__(self, name):
            return {"gdp_records": collection}

    monkeypatch.setattr(rsm, "MongoClient", _Client)
    store = rsm.MongoRecordStore.connect("mongodb://localhost:27017", "gdp")
    assert calls == [([("year", 1)], True)]
    assert store.kind == "mongo"
