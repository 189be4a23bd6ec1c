from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from slotblog.runtime.errors import ApplyError

# Apply/admission error code -> HTTP status.
_STATUS_BY_CODE: Dict[str, int] = {
    "already_exists": 409,
    "not_found": 404,
    "unauthorized": 403,
    "invalid_payload": 400,
    "payload_too_large": 413,
    "corrupt_record": 500,
    "insufficient_funds": 402,
    "derivation_failed": 500,
    "bad_env": 400,
    "bad_signer": 400,
    "bad_nonce": 409,
    "bad_sig": 401,
    "unsupported_tx": 400,
    "system_tx_forbidden": 403,
    "tx_unimplemented": 400,
}


def status_for_code(code: str) -> int:
    return _STATUS_BY_CODE.get(str(code or ""), 400)


@dataclass
class ApiError(Exception):
    status_code: int
    code: str
    message: str
    details: Dict[str, Any]

    @staticmethod
    def bad_request(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(400, code, message, details or {})

    @staticmethod
    def forbidden(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(403, code, message, details or {})

    @staticmethod
    def not_found(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(404, code, message, details or {})

    @staticmethod
    def internal(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> "ApiError":
        return ApiError(500, code, message, details or {})

    @staticmethod
    def from_apply(e: ApplyError) -> "ApiError":
        details = e.details if isinstance(e.details, dict) else ({} if e.details is None else {"details": e.details})
        return ApiError(status_for_code(e.code), e.code, e.reason, details)

    def to_json(self) -> Dict[str, Any]:
        return {"ok": False, "error": {"code": self.code, "message": self.message, "details": self.details}}


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, exc: ApiError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_json())

    @app.exception_handler(ApplyError)
    async def _apply_error(_request: Request, exc: ApplyError) -> JSONResponse:
        err = ApiError.from_apply(exc)
        return JSONResponse(status_code=err.status_code, content=err.to_json())
