"""Record API — read records as the calling viewer is allowed to see them.

Endpoints:
    GET /api/records/{token_id}   One record
    GET /api/records              Records filtered by owner / approved address
    GET /api/users/records        The caller's own records

All accept ``?populate=metadata,provenance``. Every response goes through
the record projector, so fields are always present and redacted per viewer.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from codex_registry.api.auth import get_viewer, require_viewer
from codex_registry.records import InMemoryRecordStore, RecordProjector
from codex_registry.records.store import parse_populate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["records"])

_projector = RecordProjector()


def _store(request: Request) -> InMemoryRecordStore:
    return request.app.state.record_store


@router.get("/records/{token_id}")
async def get_record(
    token_id: str,
    request: Request,
    populate: Optional[str] = Query(None, description="Comma-separated relations"),
    viewer: Optional[str] = Depends(get_viewer),
) -> dict[str, Any]:
    record = _store(request).get(token_id, populate=parse_populate(populate))
    if record is None:
        raise HTTPException(status_code=404, detail=f"record {token_id} not found")
    return _projector.project(record, viewer)


@router.get("/records")
async def list_records(
    request: Request,
    owner: Optional[str] = Query(None, description="Owner address"),
    approved: Optional[str] = Query(None, description="Approved address"),
    populate: Optional[str] = Query(None, description="Comma-separated relations"),
    viewer: Optional[str] = Depends(get_viewer),
) -> list[dict[str, Any]]:
    query: dict[str, Any] = {}
    if owner:
        query["ownerAddress"] = owner
    if approved:
        query["approvedAddress"] = approved
    records = _store(request).find(query, populate=parse_populate(populate))
    return _projector.project_many(records, viewer)


@router.get("/users/records")
async def list_own_records(
    request: Request,
    populate: Optional[str] = Query(None, description="Comma-separated relations"),
    viewer: str = Depends(require_viewer),
) -> list[dict[str, Any]]:
    records = _store(request).find(
        {"ownerAddress": viewer}, populate=parse_populate(populate)
    )
    return _projector.project_many(records, viewer)
