from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Dict, Optional

import pytest

# Ensure local "src/" takes precedence over any globally-installed "slotblog" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from slotblog.ledger.slots import credit  # noqa: E402
from slotblog.runtime.chain_config import ChainConfig, chain_config_from_json  # noqa: E402

Json = Dict[str, Any]

FUNDS = 10**9


def make_cfg(tmp_path: Path, **overrides: Any) -> ChainConfig:
    raw: Json = {"chain_id": "slotblog-test", "mode": "dev", "db_path": str(tmp_path / "slotblog.db")}
    raw.update(overrides)
    return chain_config_from_json(raw)


def make_state(cfg: ChainConfig, balances: Optional[Dict[str, int]] = None) -> Json:
    st: Json = {"chain_id": cfg.chain_id, "height": 0, "tip": "", "params": cfg.to_params(), "accounts": {}, "slots": {}}
    for pk, amount in (balances or {}).items():
        credit(st, pk, amount)
    return st


@pytest.fixture
def cfg(tmp_path: Path) -> ChainConfig:
    return make_cfg(tmp_path)


@pytest.fixture
def owner_cfg(tmp_path: Path) -> ChainConfig:
    return make_cfg(tmp_path, addressing="owner")
