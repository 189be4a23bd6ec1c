from __future__ import annotations

import os

from fastapi import FastAPI

from slotblog.api.errors import register_error_handlers
from slotblog.api.routes_public import public_router
from slotblog.api.structured_logging import RequestLogMiddleware, configure_structured_logging
from slotblog.runtime.executor_boot import build_executor as _build_executor


def build_executor():
    """Build a BlogExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `slotblog.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor()


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load chain config + attach executor
      - False: keep lightweight; tests attach app.state.executor themselves
    """
    mode = os.environ.get("SLOTBLOG_MODE", "prod").strip().lower()

    configure_structured_logging()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="slotblog API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="slotblog API")

    app.state.executor = build_executor() if boot_runtime else None

    app.add_middleware(RequestLogMiddleware)
    register_error_handlers(app)
    app.include_router(public_router)

    return app
