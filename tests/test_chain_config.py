from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from slotblog.ledger.derive import AddressingMode
from slotblog.runtime.chain_config import (
    DEFAULT_PROGRAM_ID,
    apply_chain_config_to_env,
    chain_config_from_json,
    default_chain_config,
    load_chain_config,
    parse_program_id,
)

_EXPORTED = (
    "SLOTBLOG_CHAIN_ID",
    "SLOTBLOG_MODE",
    "SLOTBLOG_DB_PATH",
    "SLOTBLOG_PROGRAM_ID",
    "SLOTBLOG_ADDRESSING",
    "SLOTBLOG_API_HOST",
    "SLOTBLOG_API_PORT",
    "SLOTBLOG_ALLOW_UNSIGNED_TXS",
    "SLOTBLOG_LOG_LEVEL",
)


def test_defaults_are_production_safe() -> None:
    cfg = default_chain_config()
    assert cfg.mode == "prod"
    assert cfg.allow_unsigned_txs is False
    assert cfg.addressing_mode is AddressingMode.TITLE
    assert cfg.caps.max_title_len == 100
    assert cfg.caps.max_description_len == 500
    assert cfg.rent.lamports_per_byte_year == 3480
    assert cfg.rent.exemption_threshold_years == 2
    assert cfg.program_id_bytes == parse_program_id(DEFAULT_PROGRAM_ID)


def test_program_id_is_hex() -> None:
    raw = parse_program_id(DEFAULT_PROGRAM_ID)
    assert len(raw) == 32
    assert parse_program_id(DEFAULT_PROGRAM_ID.upper()) == raw
    with pytest.raises(ValueError):
        parse_program_id("6oppHjv5Nzxg2DrrtHHQZ7qAgMVDszTf9JHBMgYNt5dU")
    with pytest.raises(ValueError):
        parse_program_id("not-a-program-id")


def test_to_params_never_allows_unsigned_in_prod() -> None:
    cfg = chain_config_from_json({"mode": "dev", "allow_unsigned_txs": True})
    assert cfg.to_params()["allow_unsigned_txs"] is True

    with pytest.raises(ValueError, match="allow_unsigned_txs"):
        chain_config_from_json({"mode": "prod", "allow_unsigned_txs": True})


@pytest.mark.parametrize(
    "raw",
    [
        {"mode": "staging"},
        {"addressing": "global"},
        {"api_port": 70000},
        {"max_title_len": 0},
        {"max_title_len": 101},
        {"max_description_len": 501},
        {"max_description_len": 100_000},
        {"lamports_per_byte_year": -1},
        {"genesis_balances": {"alice": 5}},
    ],
)
def test_invalid_configs_fail_fast(raw: dict) -> None:
    with pytest.raises(ValueError):
        chain_config_from_json(raw)


def test_load_from_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "chain.json"
    path.write_text(
        json.dumps({"chain_id": "file-chain", "mode": "testnet", "addressing": "OWNER", "refund_on_shrink": "false"}),
        encoding="utf-8",
    )
    monkeypatch.setenv("SLOTBLOG_CHAIN_CONFIG_PATH", str(path))

    cfg = load_chain_config()
    assert cfg.chain_id == "file-chain"
    assert cfg.mode == "testnet"
    assert cfg.addressing_mode is AddressingMode.OWNER
    assert cfg.rent.refund_on_shrink is False


def test_env_overrides_and_export(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("SLOTBLOG_CHAIN_CONFIG_PATH", raising=False)
    # apply_chain_config_to_env writes os.environ directly; register every key so teardown restores it.
    for key in _EXPORTED:
        monkeypatch.setenv(key, "")
    monkeypatch.setenv("SLOTBLOG_CHAIN_ID", "env-chain")
    monkeypatch.setenv("SLOTBLOG_MODE", "dev")
    monkeypatch.setenv("SLOTBLOG_API_PORT", "9001")
    monkeypatch.setenv("SLOTBLOG_DB_PATH", str(tmp_path / "x.db"))

    cfg = load_chain_config()
    assert (cfg.chain_id, cfg.mode, cfg.api_port) == ("env-chain", "dev", 9001)

    apply_chain_config_to_env(cfg)
    assert os.environ["SLOTBLOG_ADDRESSING"] == "title"
    assert os.environ["SLOTBLOG_ALLOW_UNSIGNED_TXS"] == "0"
