from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from slotblog.api.errors import ApiError, status_for_code
from slotblog.api.routes_public_parts.common import _executor
from slotblog.api.schemas import TxSubmitRequest, TxSubmitResponse

router = APIRouter()

Json = Dict[str, Any]


@router.post("/tx/submit", response_model=TxSubmitResponse)
def tx_submit(request: Request, body: TxSubmitRequest) -> Json:
    """Admit and apply a signed blog tx.

    The whole tx lands or nothing does; failures map to HTTP status by code
    (409 already_exists, 404 not_found, 403 unauthorized, ...).
    """
    if body.system:
        raise ApiError.forbidden(
            "system_tx_forbidden",
            "system-only txs cannot be submitted through the public tx endpoint",
            {"tx_type": body.tx_type},
        )

    ex = _executor(request)
    out = ex.submit_tx(body.model_dump())
    if not out.get("ok"):
        code = str(out.get("error") or "rejected")
        details = out.get("details") if isinstance(out.get("details"), dict) else {}
        raise ApiError(status_for_code(code), code, str(out.get("reason") or ""), details)
    return out
