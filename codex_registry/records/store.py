"""In-memory record store.

Stands in for the persistence layer: records come in already built, and the
store only normalizes addresses at write and query time and models lazy
relation loading through ``populate``. Swap for a real database in
production.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from threading import RLock
from typing import Any, Iterable, Optional

from codex_registry.records.addresses import normalize_query
from codex_registry.records.models import UNLOADED, Record, copy_relation

logger = logging.getLogger(__name__)

POPULATABLE = frozenset({"metadata", "provenance"})

_QUERY_FIELDS = {
    "ownerAddress": "owner_address",
    "owner_address": "owner_address",
    "approvedAddress": "approved_address",
    "approved_address": "approved_address",
    "isPrivate": "is_private",
    "is_private": "is_private",
    "isIgnored": "is_ignored",
    "is_ignored": "is_ignored",
}


def parse_populate(raw: Optional[str]) -> tuple[str, ...]:
    """Turn ``"metadata,provenance"`` into a tuple of known relation names."""
    if not raw:
        return ()
    names = [name.strip() for name in raw.split(",")]
    return tuple(name for name in names if name in POPULATABLE)


class InMemoryRecordStore:
    """Thread-safe dict of records keyed by token id."""

    def __init__(self, records: Iterable[Record] = ()) -> None:
        self._lock = RLock()
        self._records: dict[str, Record] = {}
        for record in records:
            self.save(record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def save(self, record: Record) -> Record:
        """Store a normalized copy of *record* and return it."""
        record.validate()
        stored = record.normalized()
        with self._lock:
            self._records[stored.token_id] = stored
        logger.debug("Stored record %s (owner=%s)", stored.token_id, stored.owner_address)
        return self._populated(stored, POPULATABLE)

    def delete(self, token_id: str) -> bool:
        with self._lock:
            return self._records.pop(str(token_id), None) is not None

    def get(self, token_id: str, populate: Iterable[str] = ()) -> Optional[Record]:
        with self._lock:
            record = self._records.get(str(token_id))
        if record is None:
            return None
        return self._populated(record, populate)

    def find(
        self, query: Optional[dict[str, Any]] = None, populate: Iterable[str] = ()
    ) -> list[Record]:
        """Records matching every condition in *query*, ordered by token id."""
        conditions = self._conditions(query or {})
        with self._lock:
            records = list(self._records.values())
        matches = [
            record for record in records
            if all(getattr(record, attr) == value for attr, value in conditions.items())
        ]
        matches.sort(key=lambda r: (len(r.token_id), r.token_id))
        return [self._populated(record, populate) for record in matches]

    @staticmethod
    def _conditions(query: dict[str, Any]) -> dict[str, Any]:
        conditions: dict[str, Any] = {}
        for key, value in normalize_query(query).items():
            if key not in _QUERY_FIELDS:
                raise KeyError(f"unsupported query field: {key}")
            conditions[_QUERY_FIELDS[key]] = value
        return conditions

    @staticmethod
    def _populated(record: Record, populate: Iterable[str]) -> Record:
        wanted = set(populate)
        return replace(
            record,
            whitelisted_addresses=list(record.whitelisted_addresses),
            file_hashes=list(record.file_hashes),
            metadata=copy_relation(record.metadata) if "metadata" in wanted else UNLOADED,
            provenance=(
                copy_relation(record.provenance) if "provenance" in wanted else UNLOADED
            ),
        )
