# src/slotblog/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_LOADED = False


def dotenv_path(explicit: Optional[str] = None) -> Path:
    """explicit arg > SLOTBLOG_DOTENV_PATH > ./.env"""
    return Path(explicit or os.getenv("SLOTBLOG_DOTENV_PATH") or ".env").expanduser()


def load_dotenv_if_present(path: Optional[str] = None) -> bool:
    """Load SLOTBLOG_* settings from a .env file, at most once per process.

    Variables already present in the environment are never overridden.
    Returns True only when a file was found and loaded on this call.
    """
    global _LOADED
    if _LOADED:
        return False
    _LOADED = True

    p = dotenv_path(path)
    if not p.is_file():
        return False
    load_dotenv(dotenv_path=p, override=False)
    return True
