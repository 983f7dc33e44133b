"""Records and their per-viewer visibility.

    from codex_registry.records import Record, RecordProjector
    record = Record.from_dict(document)
    RecordProjector().project(record, viewer="0xbb")
"""

from codex_registry.records.addresses import normalize_address, normalize_query
from codex_registry.records.models import (
    UNLOADED,
    Loaded,
    MalformedRecordError,
    MetadataFile,
    PendingUpdate,
    ProvenanceEvent,
    Record,
    RecordMetadata,
    Unloaded,
)
from codex_registry.records.projector import RecordProjector, record_to_json
from codex_registry.records.store import InMemoryRecordStore
from codex_registry.records.visibility import (
    RedactionPlan,
    apply_privacy_filters,
    decide,
)

__all__ = [
    "InMemoryRecordStore",
    "Loaded",
    "MalformedRecordError",
    "MetadataFile",
    "PendingUpdate",
    "ProvenanceEvent",
    "Record",
    "RecordMetadata",
    "RecordProjector",
    "RedactionPlan",
    "UNLOADED",
    "Unloaded",
    "apply_privacy_filters",
    "decide",
    "normalize_address",
    "normalize_query",
    "record_to_json",
]
