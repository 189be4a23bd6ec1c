from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Query, Request

from slotblog.api.routes_public_parts.common import _executor, _pubkey_or_400
from slotblog.api.schemas import AddressResponse

router = APIRouter()

Json = Dict[str, Any]


@router.get("/blog/address", response_model=AddressResponse)
def blog_address(request: Request, owner: str = Query(...), title: str = Query(default="")) -> Json:
    """Pure derivation: where would (owner, title) live. Does not touch state."""
    pk = _pubkey_or_400(owner, field="owner")
    out = _executor(request).derive_address(pk, title)
    return {"address": out["address"], "bump": out["bump"], "owner": pk, "title": title}


@router.get("/blog/{owner}")
def blog_get(request: Request, owner: str, title: str = Query(default="")) -> Json:
    pk = _pubkey_or_400(owner, field="owner")
    entry = _executor(request).read_entry(pk, title)
    return {"ok": True, "entry": entry}


@router.get("/slots/{address}")
def slot_get(request: Request, address: str) -> Json:
    slot = _executor(request).read_slot(address)
    return {"ok": True, "slot": slot}
