"""Storage backends for the verified membership list.

Records look like {"ss13": ..., "discord": ..., "create_time": ...} (or
"ss14" instead of "ss13" for the SS14 list).

- JsonFileStorage keeps the list in a pretty-printed JSON file.
- SupabaseStorage keeps it in a Supabase (Postgres) table.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The verified list could not be read or written."""


class VerifyListStorage:
    """get / set / append / remove over a list of records."""

    def get(self) -> list[dict]:
        raise NotImplementedError

    def set(self, records: list[dict]) -> None:
        raise NotImplementedError

    def append(self, record: dict) -> None:
        records = self.get()
        self.set(records + [record])

    def remove(self, index: int) -> dict:
        records = self.get()
        removed = records[index]
        self.set(records[:index] + records[index + 1:])
        return removed


class JsonFileStorage(VerifyListStorage):
    """Verified list cached in memory and mirrored to a JSON file."""

    def __init__(self, path: str):
        self.path = Path(path)
        self._records: Optional[list[dict]] = None
        self._lock = threading.RLock()

    def _load(self) -> list[dict]:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.write_text("[]")
        try:
            data = json.loads(self.path.read_text() or "[]")
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e
        return data if isinstance(data, list) else []

    def _write(self, records: list[dict]) -> None:
        try:
            self.path.write_text(json.dumps(records, indent=4))
        except OSError as e:
            raise StorageError(f"Failed to write {self.path}: {e}") from e

    def get(self) -> list[dict]:
        with self._lock:
            if self._records is None:
                self._records = self._load()
            return list(self._records)

    def set(self, records: list[dict]) -> None:
        with self._lock:
            self._write(records)
            self._records = list(records)

    def append(self, record: dict) -> None:
        with self._lock:
            super().append(record)

    def remove(self, index: int) -> dict:
        with self._lock:
            return super().remove(index)


class SupabaseStorage(VerifyListStorage):
    """Verified list stored in a Supabase table."""

    def __init__(self, supabase_client, table: str, fields: tuple[str, ...]):
        self.supabase = supabase_client
        self.table = table
        self.fields = fields

    def _row(self, record: dict) -> dict:
        return {field: record.get(field) for field in self.fields}

    def get(self) -> list[dict]:
        try:
            response = self.supabase.table(self.table).select("*").order("id").execute()
        except Exception as e:
            raise StorageError(f"Failed to query {self.table}: {e}") from e
        return [self._row(row) for row in (response.data or [])]

    def set(self, records: list[dict]) -> None:
        try:
            # Supabase refuses unfiltered deletes
            self.supabase.table(self.table).delete().gte("id", 0).execute()
            if records:
                self.supabase.table(self.table).insert([self._row(r) for r in records]).execute()
        except Exception as e:
            raise StorageError(f"Failed to replace {self.table}: {e}") from e
        logger.info(f"[VERIFIED] Replaced {self.table} with {len(records)} records")

    def append(self, record: dict) -> None:
        try:
            self.supabase.table(self.table).insert(self._row(record)).execute()
        except Exception as e:
            raise StorageError(f"Failed to insert into {self.table}: {e}") from e

    def remove(self, index: int) -> dict:
        try:
            response = self.supabase.table(self.table).select("*").order("id").execute()
            row = (response.data or [])[index]
            self.supabase.table(self.table).delete().eq("id", row["id"]).execute()
        except IndexError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete from {self.table}: {e}") from e
        return self._row(row)
