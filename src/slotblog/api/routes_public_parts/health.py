from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from slotblog.api.routes_public_parts.common import _executor

router = APIRouter()


@router.get("/health")
def health() -> Dict[str, Any]:
    return {"ok": True}


@router.get("/status")
def status(request: Request) -> Dict[str, Any]:
    ex = _executor(request)
    st = ex.read_state()
    params = st.get("params") if isinstance(st.get("params"), dict) else {}
    return {
        "ok": True,
        "chain_id": str(st.get("chain_id") or ""),
        "height": int(st.get("height", 0) or 0),
        "tip": str(st.get("tip") or ""),
        "program_id": str(params.get("program_id") or ""),
        "addressing": str(params.get("addressing") or ""),
    }
