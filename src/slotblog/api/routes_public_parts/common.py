from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from slotblog.api.errors import ApiError
from slotblog.runtime.sigverify import is_pubkey_hex

Json = Dict[str, Any]


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _pubkey_or_400(value: str, *, field: str) -> str:
    pk = str(value or "").strip().lower()
    if not is_pubkey_hex(pk):
        raise ApiError.bad_request("bad_pubkey", f"{field} must be a 64-hex Ed25519 pubkey", {field: value})
    return pk
