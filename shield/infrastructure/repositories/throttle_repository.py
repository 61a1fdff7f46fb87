"""Throttle record persistence (JSON file). Development fallback and test store."""
import json
import os
import threading
from datetime import datetime
from typing import Dict

from shield.domain.enums import IdentifierType
from shield.domain.throttle_record import ThrottleRecord, record_key


class ThrottleRepository:
    """JSON-backed throttle storage.

    Every mutation is a read-modify-write of one record under a lock and is
    flushed to disk before the lock is released, so the file is the only
    state: reads always go through ``_load``.
    """

    def __init__(self, data_path: str = "data/ip_throttles.json"):
        self._data_path = data_path
        self._lock = threading.Lock()
        self._records: Dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def find(self, identifier: str, identifier_type: IdentifierType | None = None) -> ThrottleRecord | None:
        with self._lock:
            self._load()
            data = self._records.get(record_key(identifier, identifier_type))
            return ThrottleRecord.from_dict(data) if data else None

    def get_all(self) -> list:
        with self._lock:
            self._load()
            return [ThrottleRecord.from_dict(d) for d in self._records.values()]

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def increment(
        self,
        identifier: str,
        identifier_type: IdentifierType | None,
        now: datetime,
        block_at: int,
        block_until: datetime,
    ) -> ThrottleRecord:
        """Count one failure and block once the counter reaches *block_at*.

        Returns the record as stored after the update.
        """
        with self._lock:
            self._load()
            key = record_key(identifier, identifier_type)
            record = self._records.get(key)
            if record is None:
                record = self._empty(identifier, identifier_type)
                self._records[key] = record
            record["attempts"] = int(record.get("attempts", 0)) + 1
            record["last_attempt"] = now.isoformat()
            if record["attempts"] >= block_at:
                record["blocked"] = True
                record["blocked_until"] = block_until.isoformat()
            self._persist()
            return ThrottleRecord.from_dict(record)

    def block(
        self,
        identifier: str,
        identifier_type: IdentifierType | None,
        until: datetime | None,
    ) -> ThrottleRecord:
        """Upsert a block. ``until=None`` blocks with no expiry."""
        with self._lock:
            self._load()
            key = record_key(identifier, identifier_type)
            record = self._records.setdefault(key, self._empty(identifier, identifier_type))
            record["blocked"] = True
            record["blocked_until"] = until.isoformat() if until else None
            self._persist()
            return ThrottleRecord.from_dict(record)

    def clear(self, identifier: str, identifier_type: IdentifierType | None = None) -> None:
        """Upsert to the cleared state (attempts=0, not blocked)."""
        with self._lock:
            self._load()
            key = record_key(identifier, identifier_type)
            record = self._records.setdefault(key, self._empty(identifier, identifier_type))
            record["attempts"] = 0
            record["blocked"] = False
            record["blocked_until"] = None
            self._persist()

    def lift_block(
        self,
        identifier: str,
        identifier_type: IdentifierType | None,
        now: datetime,
    ) -> bool:
        """Clear a block whose expiry is before *now*. Never creates a record.

        Returns False when the record is gone or was re-blocked meanwhile.
        """
        with self._lock:
            self._load()
            record = self._records.get(record_key(identifier, identifier_type))
            if record is None:
                return False
            current = ThrottleRecord.from_dict(record)
            if not current.block_expired(now):
                return False
            record["attempts"] = 0
            record["blocked"] = False
            record["blocked_until"] = None
            self._persist()
            return True

    # ------------------------------------------------------------------
    # File handling
    # ------------------------------------------------------------------

    @staticmethod
    def _empty(identifier: str, identifier_type: IdentifierType | None) -> dict:
        return ThrottleRecord(identifier, identifier_type).to_dict()

    def _persist(self) -> None:
        """Write all records to the JSON file (tmp + replace)."""
        directory = os.path.dirname(self._data_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self._data_path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._records, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, self._data_path)

    def _load(self) -> None:
        if not os.path.exists(self._data_path):
            self._records = {}
            return
        with open(self._data_path, "r", encoding="utf-8") as f:
            self._records = json.load(f)
