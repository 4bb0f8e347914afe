from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..domain.errors import DuplicateYear, StoreError
from ..domain.models import GdpRecord, GdpRecordInput


logger = logging.getLogger("gdp.store")


def _object_id(record_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(record_id)
    except (InvalidId, TypeError):
        return None


class MongoRecordStore:
    """Record store over a MongoDB collection.

    A unique index on ``year`` backs up the gateway's duplicate check, so two
    racing creators cannot both insert the same year.
    """

    kind = "mongo"

    def __init__(self, collection: Any) -> None:
        self._collection = collection

    @classmethod
    def connect(cls, mongo_url: str, mongo_db: str, collection: str = "gdp_records") -> "MongoRecordStore":
        try:
            client = MongoClient(mongo_url, serverSelectionTimeoutMS=500)
            client.server_info()
            coll = client[mongo_db][collection]
            coll.create_index([("year", ASCENDING)], unique=True)
        except PyMongoError as exc:
            raise StoreError("Could not connect to the record database.") from exc
        logger.info("Connected record store to %s/%s", mongo_db, collection)
        return cls(coll)

    def find_by_year(self, year: int) -> List[GdpRecord]:
        try:
            return [self._to_record(doc) for doc in self._collection.find({"year": year})]
        except PyMongoError as exc:
            raise StoreError("Database Error: Failed to query GDP records.") from exc

    def insert(self, record: GdpRecordInput) -> GdpRecord:
        doc: Dict[str, Any] = record.model_dump()
        try:
            res = self._collection.insert_one(doc)
        except DuplicateKeyError as exc:
            raise DuplicateYear(record.year) from exc
        except PyMongoError as exc:
            raise StoreError("Database Error: Failed to create GDP record.") from exc
        return GdpRecord(id=str(res.inserted_id), **record.model_dump())

    def get(self, record_id: str) -> Optional[GdpRecord]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        try:
            doc = self._collection.find_one({"_id": oid})
        except PyMongoError as exc:
            raise StoreError("Database Error: Failed to read GDP record.") from exc
        return self._to_record(doc) if doc else None

    def update_value(self, record_id: str, value: float) -> Optional[GdpRecord]:
        oid = _object_id(record_id)
        if oid is None:
            return None
        try:
            doc = self._collection.find_one_and_update(
                {"_id": oid},
                {"$set": {"value": value}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as exc:
            raise StoreError("Database Error: Failed to update record.") from exc
        return self._to_record(doc) if doc else None

    def delete(self, record_id: str) -> bool:
        oid = _object_id(record_id)
        if oid is None:
            return False
        try:
            res = self._collection.delete_one({"_id": oid})
        except PyMongoError as exc:
            raise StoreError("Database Error: Failed to delete record.") from exc
        return bool(res and res.deleted_count)

    def list_by_year(self) -> List[GdpRecord]:
        try:
            return [self._to_record(doc) for doc in self._collection.find().sort("year", ASCENDING)]
        except PyMongoError as exc:
            raise StoreError("Database Error: Failed to list GDP records.") from exc

    def _to_record(self, doc: Dict[str, Any]) -> GdpRecord:
        doc = dict(doc)
        rid = doc.pop("_id")
        return GdpRecord(
            id=str(rid),
            year=int(doc.get("year", 0)),
            value=float(doc.get("value", 0.0)),
            country=str(doc.get("country") or ""),
        )
