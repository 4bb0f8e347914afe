from __future__ import annotations

import json
import logging
import uuid
from pathlib import Path
from threading import RLock
from typing import Dict, List, Optional, Protocol

from ..config import Settings
from ..domain.errors import DuplicateYear, StoreError
from ..domain.models import GdpRecord, GdpRecordInput


logger = logging.getLogger("gdp.store")


class RecordStore(Protocol):
    """Client for the document collection holding GDP records.

    Implementations raise :class:`StoreError` when the backend call fails and
    :class:`DuplicateYear` when their own uniqueness guard rejects an insert.
    """

    kind: str

    def find_by_year(self, year: int) -> List[GdpRecord]: ...
    def insert(self, record: GdpRecordInput) -> GdpRecord: ...
    def get(self, record_id: str) -> Optional[GdpRecord]: ...
    def update_value(self, record_id: str, value: float) -> Optional[GdpRecord]: ...
    def delete(self, record_id: str) -> bool: ...
    def list_by_year(self) -> List[GdpRecord]: ...


def _new_id() -> str:
    return uuid.uuid4().hex


class InMemoryRecordStore:
    """Process-local store; the lock makes the year check and insert atomic."""

    kind = "in-memory"

    def __init__(self) -> None:
        self._lock = RLock()
        self._records: Dict[str, GdpRecord] = {}

    def find_by_year(self, year: int) -> List[GdpRecord]:
        with self._lock:
            return [r for r in self._records.values() if r.year == year]

    def insert(self, record: GdpRecordInput) -> GdpRecord:
        with self._lock:
            if any(r.year == record.year for r in self._records.values()):
                raise DuplicateYear(record.year)
            created = GdpRecord(id=_new_id(), **record.model_dump())
            self._records[created.id] = created
            return created

    def get(self, record_id: str) -> Optional[GdpRecord]:
        with self._lock:
            return self._records.get(record_id)

    def update_value(self, record_id: str, value: float) -> Optional[GdpRecord]:
        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                return None
            updated = current.model_copy(update={"value": value})
            self._records[record_id] = updated
            return updated

    def delete(self, record_id: str) -> bool:
        with self._lock:
            return self._records.pop(record_id, None) is not None

    def list_by_year(self) -> List[GdpRecord]:
        with self._lock:
            return sorted(self._records.values(), key=lambda r: r.year)


class FileRecordStore(InMemoryRecordStore):
    """JSON file-backed store for development persistence.

    Structure: a single JSON object mapping record id -> record dict.
    """

    kind = "file"

    def __init__(self, file_path: Optional[str] = None) -> None:
        super().__init__()
        root = Path(__file__).resolve().parents[3]
        default_path = root / "run" / "gdp_records.json"
        self._path = Path(file_path or default_path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8")) or {}
        except (OSError, ValueError):
            logger.warning("Could not read %s; starting with an empty collection", self._path)
            return
        if not isinstance(data, dict):
            logger.warning("%s does not hold a record mapping; starting with an empty collection", self._path)
            return
        for rid, raw in data.items():
            try:
                self._records[rid] = GdpRecord(**{**raw, "id": rid})
            except (TypeError, ValueError):
                logger.warning("Skipping malformed record %s in %s", rid, self._path)

    def _save(self) -> None:
        obj = {rid: rec.model_dump(exclude={"id"}) for rid, rec in self._records.items()}
        try:
            self._path.write_text(json.dumps(obj, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StoreError(f"Could not write {self._path.name}.") from exc

    def insert(self, record: GdpRecordInput) -> GdpRecord:
        with self._lock:
            created = super().insert(record)
            try:
                self._save()
            except StoreError:
                self._records.pop(created.id, None)
                raise
            return created

    def update_value(self, record_id: str, value: float) -> Optional[GdpRecord]:
        with self._lock:
            previous = self._records.get(record_id)
            updated = super().update_value(record_id, value)
            if updated is None:
                return None
            try:
                self._save()
            except StoreError:
                self._records[record_id] = previous  # type: ignore[assignment]
                raise
            return updated

    def delete(self, record_id: str) -> bool:
        with self._lock:
            previous = self._records.get(record_id)
            if not super().delete(record_id):
                return False
            try:
                self._save()
            except StoreError:
                self._records[record_id] = previous  # type: ignore[assignment]
                raise
            return True


def build_record_store(settings: Settings) -> RecordStore:
    """Construct the store named by ``settings.store_impl``.

    An unreachable Mongo server falls back to the in-memory store so local
    development keeps working; the fallback is logged.
    """
    impl = settings.store_impl
    if impl == "mongo":
        from .record_store_mongo import MongoRecordStore

        try:
            return MongoRecordStore.connect(settings.mongo_url, settings.mongo_db, settings.collection)
        except StoreError:
            logger.warning("Mongo unavailable at %s; using in-memory record store", settings.mongo_url)
            return InMemoryRecordStore()
    if impl == "file":
        return FileRecordStore(settings.records_file)
    if impl != "memory":
        logger.warning("Unknown GDP_STORE_IMPL %r; using in-memory record store", impl)
    return InMemoryRecordStore()
