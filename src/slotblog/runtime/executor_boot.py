# src/slotblog/runtime/executor_boot.py

from __future__ import annotations

from typing import Optional

from slotblog.runtime.chain_config import ChainConfig, load_chain_config
from slotblog.runtime.executor import BlogExecutor


def build_executor(cfg: Optional[ChainConfig] = None) -> BlogExecutor:
    """
    Build a BlogExecutor from an explicit config or, if omitted, from
    SLOTBLOG_CHAIN_CONFIG_PATH / SLOTBLOG_* environment variables.

    `slotblog.api.app` calls this with no args in production.
    """
    c = cfg or load_chain_config()
    return BlogExecutor(db_path=c.db_path, chain_id=c.chain_id, cfg=c)
