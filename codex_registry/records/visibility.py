"""Per-viewer visibility rules for records.

Rules, first match wins:

1. Public record: only owner-only fields are masked, unless the viewer is
   the owner.
2. Private record, viewer on the effective whitelist (owner, approved or
   explicitly whitelisted): same masking as a public record; loaded
   metadata and provenance stay visible.
3. Private record, anyone else (anonymous viewers included): the metadata
   relation is dropped back to ``Unloaded`` and owner-only masking applies.

Owner-only masking (any viewer other than the owner) clears the whitelist and
depopulates the metadata's ``pending_updates``, ``images`` and ``files``.

Nothing here mutates the record passed in; :func:`apply_privacy_filters`
returns a fresh view whose loaded relations are deep copies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional

from codex_registry.records.addresses import normalize_address, same_address
from codex_registry.records.models import UNLOADED, Loaded, Record, copy_relation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedactionPlan:
    """What a given viewer is allowed to see of a record."""

    viewer: Optional[str]
    is_owner: bool
    is_whitelisted: bool
    mask_owner_only_fields: bool
    exclude_metadata: bool

    @property
    def is_redacted(self) -> bool:
        return self.mask_owner_only_fields or self.exclude_metadata


def is_whitelisted(record: Record, viewer: Optional[str]) -> bool:
    """Exact membership of *viewer* in the record's effective whitelist."""
    viewer = normalize_address(viewer)
    if viewer is None:
        return False
    return viewer in record.effective_whitelist


def decide(record: Record, viewer: Optional[str]) -> RedactionPlan:
    """Compute the redaction plan for *viewer* looking at *record*."""
    record.validate()
    viewer = normalize_address(viewer)
    is_owner = same_address(viewer, record.owner_address)
    whitelisted = is_whitelisted(record, viewer)

    return RedactionPlan(
        viewer=viewer,
        is_owner=is_owner,
        is_whitelisted=whitelisted,
        mask_owner_only_fields=not is_owner,
        exclude_metadata=record.is_private and not whitelisted,
    )


def mask_owner_only_fields(record: Record) -> Record:
    """Copy of *record* with the owner-only fields emptied."""
    metadata = record.metadata
    if isinstance(metadata, Loaded):
        metadata = Loaded(replace(
            metadata.value,
            pending_updates=UNLOADED,
            images=UNLOADED,
            files=UNLOADED,
        ))
    return replace(record, whitelisted_addresses=[], metadata=metadata)


def apply_plan(record: Record, plan: RedactionPlan) -> Record:
    """Build the redacted view of *record* described by *plan*."""
    view = replace(
        record,
        whitelisted_addresses=list(record.whitelisted_addresses),
        file_hashes=list(record.file_hashes),
        metadata=UNLOADED if plan.exclude_metadata else copy_relation(record.metadata),
        provenance=copy_relation(record.provenance),
    )
    if plan.mask_owner_only_fields:
        view = mask_owner_only_fields(view)
    return view


def apply_privacy_filters(record: Record, viewer: Optional[str]) -> Record:
    """Return the view of *record* that *viewer* may see."""
    plan = decide(record, viewer)
    if plan.is_redacted:
        logger.debug(
            "Redacting record %s for viewer %s (mask=%s, exclude_metadata=%s)",
            record.token_id, plan.viewer, plan.mask_owner_only_fields,
            plan.exclude_metadata,
        )
    return apply_plan(record, plan)
