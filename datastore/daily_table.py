from __future__ import annotations
import json
from datetime import date
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Optional, Tuple

from app.schemas import DailyAggregate, DailyAggregateFields
from settings import get_settings


class PersistenceError(RuntimeError):
    """Raised when the daily weather table cannot read or write a row."""


class DuplicateRowError(PersistenceError):
    """Raised when inserting a second row for an existing (city, date) key."""


class DailyWeatherTable:
    """Daily weather rows keyed by id, unique on (city, date)."""

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._rows: Dict[int, DailyAggregate] = {}
        self._index: Dict[Tuple[str, date], int] = {}
        self._next_id = 1
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def find(self, city: str, day: date) -> Optional[DailyAggregate]:
        with self._lock:
            row_id = self._index.get((city, day))
            if row_id is None:
                return None
            return self._rows[row_id].model_copy(deep=True)

    def get(self, row_id: int) -> Optional[DailyAggregate]:
        with self._lock:
            row = self._rows.get(row_id)
            return row.model_copy(deep=True) if row is not None else None

    def insert(self, fields: DailyAggregateFields) -> DailyAggregate:
        with self._lock:
            key = (fields.city, fields.date)
            if key in self._index:
                raise DuplicateRowError(
                    f"Row for {fields.city!r} on {fields.date.isoformat()} already exists "
                    f"in table {self.name!r}."
                )
            row = DailyAggregate(id=self._next_id, **fields.model_dump(exclude={"id"}))
            self._rows[row.id] = row
            self._index[key] = row.id
            try:
                self._persist()
            except PersistenceError:
                del self._rows[row.id]
                del self._index[key]
                raise
            self._next_id += 1
            return row.model_copy(deep=True)

    def update(self, row_id: int, fields: DailyAggregateFields) -> DailyAggregate:
        with self._lock:
            current = self._rows.get(row_id)
            if current is None:
                raise PersistenceError(f"Row {row_id} not found in table {self.name!r}.")
            if (fields.city, fields.date) != (current.city, current.date):
                raise PersistenceError(f"Row {row_id} cannot change its (city, date) key.")
            row = DailyAggregate(id=row_id, **fields.model_dump(exclude={"id"}))
            self._rows[row_id] = row
            try:
                self._persist()
            except PersistenceError:
                self._rows[row_id] = current
                raise
            return row.model_copy(deep=True)

    def scan(self) -> list[DailyAggregate]:
        """Return deep copies of all stored rows ordered by id."""

        with self._lock:
            return [self._rows[row_id].model_copy(deep=True) for row_id in sorted(self._rows)]

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        payload = {
            str(row_id): row.model_dump(mode="json") for row_id, row in self._rows.items()
        }
        try:
            self.persistence_path.write_text(json.dumps(payload, indent=2, sort_keys=True))
        except OSError as exc:
            raise PersistenceError(
                f"Could not write table {self.name!r} to {self.persistence_path}: {exc}"
            ) from exc

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            raw = self.persistence_path.read_text() or "{}"
            data = json.loads(raw)
        except (OSError, json.JSONDecodeError):
            data = {}

        for payload in data.values():
            row = DailyAggregate.model_validate(payload)
            self._rows[row.id] = row
            self._index[(row.city, row.date)] = row.id
            self._next_id = max(self._next_id, row.id + 1)


@lru_cache
def build_default_table(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> DailyWeatherTable:
    settings = get_settings()
    table_name = settings.table_name if name is None else name
    table_path = settings.table_persistence_path if path is None else path
    persistence = Path(table_path) if table_path else None
    return DailyWeatherTable(name=table_name, persistence_path=persistence)
