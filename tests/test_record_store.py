import json

import pytest

from src.gdp_insights.config import Settings
from src.gdp_insights.domain.errors import DuplicateYear, StoreError
from src.gdp_insights.domain.models import GdpRecordInput
from src.gdp_insights.infrastructure import record_store as rs


def _input(year=2023, value=100.0, country="France"):
    return GdpRecordInput(year=year, value=value, country=country)


def test_inmemory_store_crud_cycle():
    store = rs.InMemoryRecordStore()
    created = store.insert(_input())
    assert created.id and created.year == 2023

    assert store.get(created.id) == created
    assert store.find_by_year(2023) == [created]
    assert store.find_by_year(1999) == []

    updated = store.update_value(created.id, 150.0)
    assert updated.value == 150.0 and updated.year == 2023
    assert store.get(created.id).value == 150.0

    assert store.delete(created.id) is True
    assert store.delete(created.id) is False
    assert store.get(created.id) is None


def test_inmemory_store_ids_are_unique_and_listing_is_by_year():
    store = rs.InMemoryRecordStore()
    for year in (2022, 2019, 2021):
        store.insert(_input(year=year))
    listed = store.list_by_year()
    assert [r.year for r in listed] == [2019, 2021, 2022]
    assert len({r.id for r in listed}) == 3


def test_inmemory_store_guards_year_uniqueness():
    store = rs.InMemoryRecordStore()
    store.insert(_input())
    with pytest.raises(DuplicateYear):
        store.insert(_input(value=5.0, country="Spain"))
    assert len(store.find_by_year(2023)) == 1


def test_update_unknown_id_returns_none():
    assert rs.InMemoryRecordStore().update_value("missing", 1.0) is None


def test_file_store_persists_across_instances(tmp_path):
    path = tmp_path / "records.json"
    first = rs.FileRecordStore(str(path))
    created = first.insert(_input())
    first.update_value(created.id, 210.5)

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk[created.id] == {"year": 2023, "value": 210.5, "country": "France"}

    second = rs.FileRecordStore(str(path))
    reloaded = second.get(created.id)
    assert reloaded is not None and reloaded.value == 210.5

    assert second.delete(created.id) is True
    assert json.loads(path.read_text(encoding="utf-8")) == {}


def test_file_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "records.json"
    path.write_text("{not json", encoding="utf-8")
    store = rs.FileRecordStore(str(path))
    assert store.list_by_year() == []


@pytest.mark.parametrize("content", ["[1, 2]", '"records"', "42"])
def test_file_store_ignores_non_mapping_root(tmp_path, content):
    path = tmp_path / "records.json"
    path.write_text(content, encoding="utf-8")
    store = rs.FileRecordStore(str(path))
    assert store.list_by_year() == []


def test_file_store_skips_malformed_entries(tmp_path):
    path = tmp_path / "records.json"
    path.write_text(
        json.dumps({"ok": {"year": 2020, "value": 1.5, "country": "X"}, "bad": {"year": "soon"}}),
        encoding="utf-8",
    )
    store = rs.FileRecordStore(str(path))
    assert [r.id for r in store.list_by_year()] == ["ok"]


def test_file_store_write_failure_rolls_back(tmp_path, monkeypatch):
    store = rs.FileRecordStore(str(tmp_path / "records.json"))

    def _fail(self):
        raise StoreError("disk full")

    monkeypatch.setattr(rs.FileRecordStore, "_save", _fail)
    with pytest.raises(StoreError):
        store.insert(_input())
    assert store.list_by_year() == []


def test_build_record_store_defaults_to_memory():
    store = rs.build_record_store(Settings())
    assert isinstance(store, rs.InMemoryRecordStore)
    assert store.kind == "in-memory"


def test_build_record_store_file(tmp_path):
    store = rs.build_record_store(Settings(store_impl="file", records_file=str(tmp_path / "r.json")))
    assert isinstance(store, rs.FileRecordStore)
    assert store.path == tmp_path / "r.json"


def test_build_record_store_unknown_impl_falls_back():
    assert isinstance(rs.build_record_store(Settings(store_impl="sqlite")), rs.InMemoryRecordStore)


def test_build_record_store_mongo_unreachable_falls_back(monkeypatch):
    from src.gdp_insights.infrastructure import record_store_mongo

    def _boom(*_args, **_kwargs):
        raise StoreError("unreachable")

    monkeypatch.setattr(record_store_mongo.MongoRecordStore, "connect", classmethod(lambda cls, *a, **k: _boom()))
    store = rs.build_record_store(Settings(store_impl="mongo"))
    assert isinstance(store, rs.InMemoryRecordStore)
