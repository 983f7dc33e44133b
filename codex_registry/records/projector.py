"""Externally safe JSON representation of records.

The projector runs the visibility rules and serializes the resulting view.
Relations that are not loaded serialize as ``[]`` (list relations) or ``None``
(single relations) so the response shape is fixed and no internal reference
ids leak out.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Optional

from codex_registry.records.models import (
    Loaded,
    MetadataFile,
    PendingUpdate,
    ProvenanceEvent,
    Record,
    RecordMetadata,
    Relation,
)
from codex_registry.records.visibility import apply_privacy_filters

logger = logging.getLogger(__name__)


def _timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _list_relation(relation: Relation, serialize) -> list[dict[str, Any]]:
    if isinstance(relation, Loaded):
        return [serialize(item) for item in relation.value]
    return []


def _file_to_json(item: MetadataFile) -> dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "mimeType": item.mime_type,
        "hash": item.hash,
        "uri": item.uri,
    }


def _pending_update_to_json(item: PendingUpdate) -> dict[str, Any]:
    return {
        "id": item.id,
        "nameHash": item.name_hash,
        "descriptionHash": item.description_hash,
        "data": dict(item.data),
    }


def _provenance_to_json(item: ProvenanceEvent) -> dict[str, Any]:
    return {
        "id": item.id,
        "type": item.type,
        "data": dict(item.data),
        "createdAt": _timestamp(item.created_at),
    }


def _metadata_to_json(relation: Relation) -> Optional[dict[str, Any]]:
    if not isinstance(relation, Loaded):
        return None
    metadata: RecordMetadata = relation.value
    return {
        "id": metadata.id,
        "name": metadata.name,
        "description": metadata.description,
        "pendingUpdates": _list_relation(metadata.pending_updates, _pending_update_to_json),
        "images": _list_relation(metadata.images, _file_to_json),
        "files": _list_relation(metadata.files, _file_to_json),
    }


def record_to_json(record: Record) -> dict[str, Any]:
    """Serialize a (possibly redacted) record view. No filtering happens here."""
    return {
        "tokenId": record.token_id,
        "ownerAddress": record.owner_address,
        "approvedAddress": record.approved_address,
        "nameHash": record.name_hash,
        "descriptionHash": record.description_hash,
        "fileHashes": list(record.file_hashes),
        "providerId": record.provider_id,
        "providerMetadataId": record.provider_metadata_id,
        "isPrivate": record.is_private,
        "isIgnored": record.is_ignored,
        "whitelistedAddresses": list(record.whitelisted_addresses),
        "metadata": _metadata_to_json(record.metadata),
        "provenance": _list_relation(record.provenance, _provenance_to_json),
        "createdAt": _timestamp(record.created_at),
        "updatedAt": _timestamp(record.updated_at),
    }


class RecordProjector:
    """Applies visibility rules and produces response-ready dicts.

    Stateless; one instance can serve any number of concurrent requests.
    """

    def view(self, record: Record, viewer: Optional[str]) -> Record:
        """Redacted view of *record* for *viewer*."""
        return apply_privacy_filters(record, viewer)

    def project(self, record: Record, viewer: Optional[str]) -> dict[str, Any]:
        """Redact *record* for *viewer* and serialize it."""
        return record_to_json(self.view(record, viewer))

    def project_many(
        self, records: Iterable[Record], viewer: Optional[str]
    ) -> list[dict[str, Any]]:
        return [self.project(record, viewer) for record in records]
