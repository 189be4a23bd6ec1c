from __future__ import annotations

import json
import logging
import time
from enum import Enum
from typing import Any, Dict

Json = Dict[str, Any]


def _jsonable(v: Any) -> Any:
    # Slot buffers and derived addresses are raw bytes in memory; log them as hex.
    if isinstance(v, (bytes, bytearray)):
        return bytes(v).hex()
    if isinstance(v, Enum):
        return v.value
    return repr(v)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit one JSONL event: {"ts_ms", "event", **fields}, keys sorted."""
    if not logger.isEnabledFor(level):
        return
    payload: Json = {"ts_ms": int(time.time() * 1000), "event": str(event)}
    payload.update(fields)
    logger.log(level, json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=_jsonable))
