from __future__ import annotations

"""Record Store Gateway: the only path through which GDP records change.

The gateway owns three responsibilities on top of the injected store client:

- the one-record-per-year rule on create (an equality query before insert);
- argument checks on the edit and delete paths;
- keeping listings fresh: every successful mutation drops the cached sorted
  list, bumps ``revision`` and notifies subscribers.

Subscribers are plain callables receiving a change dict
(``{"op", "id", "year", "revision"}``); a failing subscriber is logged and never
fails the mutation that triggered it.
"""

import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..core.validator import Clock, utc_now, positive_number, require_valid
from ..domain.errors import DuplicateYear, GdpError, InvalidInput, NotFound
from ..domain.models import AnalysisPoint, GdpRecord, GdpRecordInput
from ..infrastructure.record_store import RecordStore
from ..observability.metrics import record_mutation


logger = logging.getLogger("gdp.records")

ChangeListener = Callable[[Dict[str, Any]], None]


class RecordGateway:
    def __init__(
        self,
        store: RecordStore,
        *,
        clock: Clock = utc_now,
        cache_listing: bool = True,
    ) -> None:
        self._store = store
        self._clock = clock
        self._cache_listing = cache_listing
        self._lock = Lock()
        self._cache: Optional[List[GdpRecord]] = None
        self._revision = 0
        self._listeners: List[ChangeListener] = []

    @property
    def store_kind(self) -> str:
        return self._store.kind

    @property
    def revision(self) -> int:
        return self._revision

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register ``listener`` for change notifications; returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def _changed(self, op: str, record_id: str, year: Optional[int]) -> None:
        with self._lock:
            self._cache = None
            self._revision += 1
            change = {"op": op, "id": record_id, "year": year, "revision": self._revision}
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(change)
            except Exception:
                logger.exception("Change listener failed for %s %s", op, record_id)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def submit(self, raw: Mapping[str, Any]) -> GdpRecord:
        """Validate a raw form submission and create the record."""
        try:
            record = require_valid(raw, self._clock)
        except GdpError as exc:
            record_mutation("create", exc.code)
            raise
        return self.create(record)

    def create(self, record: GdpRecordInput) -> GdpRecord:
        try:
            if self._store.find_by_year(record.year):
                raise DuplicateYear(record.year)
            created = self._store.insert(record)
        except GdpError as exc:
            record_mutation("create", exc.code)
            if isinstance(exc, DuplicateYear):
                logger.info("Rejected duplicate record for %s", record.year)
            else:
                logger.error("Create for %s failed: %s", record.year, exc.message)
            raise
        record_mutation("create", "ok")
        logger.info("Created record %s for %s (%s)", created.id, created.year, created.country)
        self._changed("created", created.id, created.year)
        return created

    def update(self, record_id: str, value: Any) -> GdpRecord:
        """Overwrite the ``value`` of an existing record; the year never changes."""
        try:
            if not record_id:
                raise InvalidInput("Invalid data provided for update.")
            new_value = positive_number(value)
            if new_value is None:
                raise InvalidInput("GDP value must be a positive number.")
            updated = self._store.update_value(record_id, new_value)
            if updated is None:
                raise NotFound(record_id)
        except GdpError as exc:
            record_mutation("update", exc.code)
            logger.warning("Update of %s rejected: %s", record_id, exc.message)
            raise
        record_mutation("update", "ok")
        logger.info("Updated record %s value to %s", record_id, new_value)
        self._changed("updated", updated.id, updated.year)
        return updated

    def delete(self, record_id: str) -> None:
        try:
            if not record_id:
                raise InvalidInput("Invalid ID provided for deletion.")
            existing = self._store.get(record_id)
            if existing is None or not self._store.delete(record_id):
                raise NotFound(record_id)
        except GdpError as exc:
            record_mutation("delete", exc.code)
            logger.warning("Delete of %s rejected: %s", record_id, exc.message)
            raise
        record_mutation("delete", "ok")
        logger.info("Deleted record %s (%s)", record_id, existing.year)
        self._changed("deleted", record_id, existing.year)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get(self, record_id: str) -> GdpRecord:
        record = self._store.get(record_id) if record_id else None
        if record is None:
            raise NotFound(record_id)
        return record

    def list(self) -> List[GdpRecord]:
        """All records ordered ascending by year."""
        if not self._cache_listing:
            return self._store.list_by_year()
        with self._lock:
            cached = self._cache
            revision = self._revision
        if cached is not None:
            return list(cached)
        records = self._store.list_by_year()
        with self._lock:
            # a mutation that landed while we were reading wins
            if self._revision == revision:
                self._cache = list(records)
        return records

    def analysis_points(self) -> List[AnalysisPoint]:
        return [AnalysisPoint(year=r.year, value=r.value) for r in self.list()]
