"""Internal publish endpoint.

Lets business services that run out of process (transaction watchers, the
faucet worker) push a user event through the router:

    POST /api/events  {"address": "0xaa", "name": "faucet-transfer:complete", "data": {...}}
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from codex_registry.records.addresses import normalize_address

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["events"])


class PublishRequest(BaseModel):
    """A user event to deliver."""
    address: str = Field(..., description="Target identity")
    name: str = Field(..., min_length=1, description="Event name")
    data: Any = Field(None, description="Event payload")


class PublishResponse(BaseModel):
    address: str
    name: str
    delivered: int


@router.post("/events", response_model=PublishResponse)
async def publish_event(req: PublishRequest, request: Request) -> PublishResponse:
    address = normalize_address(req.address)
    if address is None:
        raise HTTPException(status_code=422, detail="address must not be blank")
    delivered = request.app.state.event_router.publish(address, req.name, req.data)
    return PublishResponse(address=address, name=req.name, delivered=delivered)
