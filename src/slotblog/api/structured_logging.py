# src/slotblog/api/structured_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from slotblog.util.jsonlog import log_event

_CONFIGURED_ATTR = "_slotblog_jsonl"


def _level(name: Optional[str]) -> int:
    resolved = (name or os.environ.get("SLOTBLOG_LOG_LEVEL") or "INFO").strip().upper()
    lvl = logging.getLevelName(resolved)
    return lvl if isinstance(lvl, int) else logging.INFO


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Route the root logger to stdout with bare messages (each one a JSON line).

    Idempotent: later calls only adjust the level.
    """
    level = _level(level_name)
    root = logging.getLogger()
    root.setLevel(level)
    if getattr(root, _CONFIGURED_ATTR, False):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.handlers = [handler]
    setattr(root, _CONFIGURED_ATTR, True)


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Emit one `http_request` event per request and echo `x-request-id`.

    SLOTBLOG_LOG_REQUESTS=0 turns the event off; the header is always set.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        flag = (os.environ.get("SLOTBLOG_LOG_REQUESTS") or "1").strip().lower()
        self._enabled = flag not in {"0", "false", "no", "off"}
        self._logger = logging.getLogger("slotblog.http")

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.monotonic()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers.setdefault("x-request-id", request_id)
            return response
        finally:
            if self._enabled:
                log_event(
                    self._logger,
                    "http_request",
                    level=logging.WARNING if status >= 500 else logging.INFO,
                    request_id=request_id,
                    method=request.method,
                    path=request.url.path,
                    status=status,
                    duration_ms=int((time.monotonic() - started) * 1000),
                )
