from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from slotblog.api.errors import ApiError
from slotblog.api.routes_public_parts.common import _executor, _pubkey_or_400
from slotblog.api.schemas import AirdropRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/accounts/{pubkey}")
def account_get(request: Request, pubkey: str) -> Json:
    pk = _pubkey_or_400(pubkey, field="pubkey")
    ex = _executor(request)
    return {"ok": True, "account": pk, "balance": ex.balance(pk), "nonce": ex.nonce(pk)}


@router.post("/dev/airdrop")
def dev_airdrop(request: Request, body: AirdropRequest) -> Json:
    ex = _executor(request)
    if str(getattr(ex.cfg, "mode", "prod")) == "prod":
        raise ApiError.forbidden("airdrop_disabled", "airdrop is disabled in prod mode", {})
    pk = _pubkey_or_400(body.account, field="account")
    out = ex.airdrop(pk, body.lamports)
    if not out.get("ok"):
        raise ApiError.bad_request(str(out.get("error") or "rejected"), str(out.get("reason") or ""), {})
    return {"ok": True, "account": pk, "balance": ex.balance(pk)}
