"""Record data model.

A record's related objects (metadata, provenance, and the metadata's own
sub-collections) are loaded lazily by the persistence layer. Each relation is
held as an explicit tagged state, ``Unloaded`` or ``Loaded(value)``, rather
than a nullable reference, so redaction can force a relation back to
``Unloaded`` without ambiguity.

Records are built from persistence documents with :meth:`Record.from_dict`,
which is also where addresses are canonicalized::

    record = Record.from_dict({
        "tokenId": "7",
        "ownerAddress": "0xAA",
        "nameHash": "0x01",
        "whitelistedAddresses": ["0xbb", "0xAA"],
        "metadata": {"id": "m1", "name": "Painting"},
    })
    record.owner_address          # "0xaa"
    record.whitelisted_addresses  # ["0xbb"]
    record.metadata.is_loaded     # True
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar, Union

from codex_registry.records.addresses import normalize_address, normalize_addresses

T = TypeVar("T")


class MalformedRecordError(ValueError):
    """Raised when a record lacks its identifying fields."""


# ---------------------------------------------------------------------------
# Relation states
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Unloaded:
    """A relation that was never populated (or was depopulated)."""

    is_loaded = False


@dataclass(frozen=True)
class Loaded(Generic[T]):
    """A populated relation holding its resolved value."""

    value: T
    is_loaded = True


Relation = Union[Unloaded, Loaded]

UNLOADED = Unloaded()


def copy_relation(relation: Relation) -> Relation:
    """Independent copy of *relation*; loaded values are deep-copied."""
    if isinstance(relation, Loaded):
        return Loaded(copy.deepcopy(relation.value))
    return UNLOADED


_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no", ""})


def _parse_bool(raw: Any, default: bool, name: str) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    if isinstance(raw, str):
        value = raw.strip().lower()
        if value in _TRUE_STRINGS:
            return True
        if value in _FALSE_STRINGS:
            return False
    raise MalformedRecordError(f"{name} must be a boolean, got {raw!r}")


def _list_relation(raw: Any, factory) -> Relation:
    # Documents carry either resolved objects or bare reference ids; bare ids
    # mean the relation was not populated.
    if raw is None:
        return UNLOADED
    if isinstance(raw, (Loaded, Unloaded)):
        return raw
    items = list(raw)
    if any(not isinstance(item, dict) for item in items):
        return UNLOADED
    return Loaded([factory(item) for item in items])


def _parse_timestamp(raw: Any) -> Optional[datetime]:
    if raw is None or isinstance(raw, datetime):
        return raw
    return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))


# ---------------------------------------------------------------------------
# Related objects
# ---------------------------------------------------------------------------


@dataclass
class MetadataFile:
    """An image or file attached to record metadata."""
    id: str
    name: str = ""
    mime_type: str = ""
    hash: str = ""
    uri: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetadataFile":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            mime_type=data.get("mimeType", data.get("mime_type", "")),
            hash=data.get("hash", ""),
            uri=data.get("uri", ""),
        )


@dataclass
class PendingUpdate:
    """A metadata change awaiting on-chain confirmation."""
    id: str
    name_hash: str = ""
    description_hash: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PendingUpdate":
        return cls(
            id=str(data.get("id", "")),
            name_hash=data.get("nameHash", data.get("name_hash", "")),
            description_hash=data.get("descriptionHash", data.get("description_hash")),
            data=dict(data.get("data") or {}),
        )


@dataclass
class RecordMetadata:
    """Off-chain metadata for a record.

    ``pending_updates``, ``images`` and ``files`` are owner-only and are
    themselves lazily loaded relations.
    """
    id: str
    name: str = ""
    description: Optional[str] = None
    pending_updates: Relation = UNLOADED
    images: Relation = UNLOADED
    files: Relation = UNLOADED

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecordMetadata":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            description=data.get("description"),
            pending_updates=_list_relation(
                data.get("pendingUpdates", data.get("pending_updates")),
                PendingUpdate.from_dict,
            ),
            images=_list_relation(data.get("images"), MetadataFile.from_dict),
            files=_list_relation(data.get("files"), MetadataFile.from_dict),
        )


@dataclass
class ProvenanceEvent:
    """One entry in a record's provenance trail."""
    id: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProvenanceEvent":
        return cls(
            id=str(data.get("id", "")),
            type=data.get("type", ""),
            data=dict(data.get("data") or {}),
            created_at=_parse_timestamp(data.get("createdAt", data.get("created_at"))),
        )


# ---------------------------------------------------------------------------
# Record
# ---------------------------------------------------------------------------


@dataclass
class Record:
    """A registry record as supplied by the persistence layer.

    ``whitelisted_addresses`` never includes the owner or approved address;
    both are implicitly whitelisted.
    """
    token_id: str
    owner_address: str
    name_hash: str = ""
    approved_address: Optional[str] = None
    description_hash: Optional[str] = None
    file_hashes: list[str] = field(default_factory=list)
    provider_id: Optional[str] = None
    provider_metadata_id: Optional[str] = None
    is_private: bool = True
    is_ignored: bool = False
    whitelisted_addresses: list[str] = field(default_factory=list)
    metadata: Relation = UNLOADED
    provenance: Relation = UNLOADED
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def effective_whitelist(self) -> list[str]:
        """Owner, approved and explicit whitelist, canonical and deduplicated."""
        return normalize_addresses(
            [self.owner_address, self.approved_address, *self.whitelisted_addresses]
        )

    def validate(self) -> None:
        """Raise :class:`MalformedRecordError` if identifying fields are missing."""
        if not self.token_id:
            raise MalformedRecordError("record is missing token_id")
        if normalize_address(self.owner_address) is None:
            raise MalformedRecordError(
                f"record {self.token_id} is missing owner_address"
            )

    def normalized(self) -> "Record":
        """Copy with addresses canonicalized and the whitelist cleaned up."""
        owner = normalize_address(self.owner_address)
        approved = normalize_address(self.approved_address)
        return Record(
            token_id=str(self.token_id),
            owner_address=owner or "",
            name_hash=(self.name_hash or "").lower(),
            approved_address=approved,
            description_hash=self.description_hash.lower() if self.description_hash else None,
            file_hashes=list(self.file_hashes),
            provider_id=self.provider_id,
            provider_metadata_id=self.provider_metadata_id,
            is_private=self.is_private,
            is_ignored=self.is_ignored,
            whitelisted_addresses=normalize_addresses(
                self.whitelisted_addresses, exclude=(owner, approved)
            ),
            metadata=copy_relation(self.metadata),
            provenance=copy_relation(self.provenance),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Record":
        """Build a record from a persistence document (camelCase keys)."""
        token_id = data.get("tokenId", data.get("token_id", data.get("_id")))
        owner = data.get("ownerAddress", data.get("owner_address"))
        if token_id is None or normalize_address(owner) is None:
            raise MalformedRecordError(
                f"document is missing tokenId or ownerAddress: {sorted(data)}"
            )

        raw_metadata = data.get("metadata")
        if isinstance(raw_metadata, (Loaded, Unloaded)):
            metadata = raw_metadata
        elif isinstance(raw_metadata, dict):
            metadata = Loaded(RecordMetadata.from_dict(raw_metadata))
        else:
            metadata = UNLOADED

        record = cls(
            token_id=str(token_id),
            owner_address=owner,
            name_hash=data.get("nameHash", data.get("name_hash", "")),
            approved_address=data.get("approvedAddress", data.get("approved_address")),
            description_hash=data.get("descriptionHash", data.get("description_hash")),
            file_hashes=list(data.get("fileHashes", data.get("file_hashes")) or []),
            provider_id=data.get("providerId", data.get("provider_id")),
            provider_metadata_id=data.get(
                "providerMetadataId", data.get("provider_metadata_id")
            ),
            is_private=_parse_bool(
                data.get("isPrivate", data.get("is_private")), True, "isPrivate"
            ),
            is_ignored=_parse_bool(
                data.get("isIgnored", data.get("is_ignored")), False, "isIgnored"
            ),
            whitelisted_addresses=list(
                data.get("whitelistedAddresses", data.get("whitelisted_addresses")) or []
            ),
            metadata=metadata,
            provenance=_list_relation(data.get("provenance"), ProvenanceEvent.from_dict),
            created_at=_parse_timestamp(data.get("createdAt", data.get("created_at"))),
            updated_at=_parse_timestamp(data.get("updatedAt", data.get("updated_at"))),
        )
        return record.normalized()
