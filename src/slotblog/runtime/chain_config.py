# src/slotblog/runtime/chain_config.py
from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from slotblog.ledger.derive import AddressingMode
from slotblog.ledger.layout import MAX_DESCRIPTION_LEN, MAX_TITLE_LEN, FieldCaps
from slotblog.ledger.rent import DEFAULT_EXEMPTION_THRESHOLD_YEARS, DEFAULT_LAMPORTS_PER_BYTE_YEAR, RentParams

Json = Dict[str, Any]

# Default derivation namespace: the published program id
# 6oppHjv5Nzxg2DrrtHHQZ7qAgMVDszTf9JHBMgYNt5dU (base58), as hex.
DEFAULT_PROGRAM_ID = "56493780893a2385493fe2e0e9a5a4ca62355275b4bbeb8b469e346c1d4fd73b"

_HEX64_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


def _as_bool(v: Any, default: bool) -> bool:
    if v is None:
        return bool(default)
    if isinstance(v, bool):
        return v
    s = str(v).strip().lower()
    if s in {"1", "true", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "no", "n", "off"}:
        return False
    return bool(default)


def parse_program_id(s: str) -> bytes:
    """Parse a program id given as 64 hex chars; return the raw 32 bytes."""
    raw = str(s or "").strip()
    if not _HEX64_RE.match(raw):
        raise ValueError(f"program_id must be 32 bytes as 64 hex chars; got: {s!r}")
    return bytes.fromhex(raw)


@dataclass(frozen=True)
class ChainConfig:
    chain_id: str
    mode: str  # "dev" | "testnet" | "prod"

    # Single SQLite DB file path for all persistence.
    db_path: str

    program_id: str
    addressing: str  # "title" | "owner"

    max_title_len: int
    max_description_len: int

    lamports_per_byte_year: int
    exemption_threshold_years: int
    refund_on_shrink: bool

    api_host: str
    api_port: int

    allow_unsigned_txs: bool

    log_level: str

    genesis_balances: Dict[str, int] = field(default_factory=dict)

    @property
    def program_id_bytes(self) -> bytes:
        return parse_program_id(self.program_id)

    @property
    def addressing_mode(self) -> AddressingMode:
        return AddressingMode.parse(self.addressing)

    @property
    def caps(self) -> FieldCaps:
        return FieldCaps(max_title_len=int(self.max_title_len), max_description_len=int(self.max_description_len))

    @property
    def rent(self) -> RentParams:
        return RentParams(
            lamports_per_byte_year=int(self.lamports_per_byte_year),
            exemption_threshold_years=int(self.exemption_threshold_years),
            refund_on_shrink=bool(self.refund_on_shrink),
        )

    def to_params(self) -> Json:
        """Protocol params persisted into the ledger at genesis."""
        return {
            "program_id": self.program_id_bytes.hex(),
            "addressing": self.addressing_mode.value,
            "max_title_len": int(self.max_title_len),
            "max_description_len": int(self.max_description_len),
            "lamports_per_byte_year": int(self.lamports_per_byte_year),
            "exemption_threshold_years": int(self.exemption_threshold_years),
            "refund_on_shrink": bool(self.refund_on_shrink),
            "allow_unsigned_txs": bool(self.allow_unsigned_txs) and self.mode != "prod",
        }


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_chain_config(cfg: ChainConfig) -> None:
    """Fail-fast validation for operator config."""

    if not isinstance(cfg.chain_id, str) or not cfg.chain_id.strip():
        raise ValueError("chain_id must be a non-empty string")

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")

    parse_program_id(cfg.program_id)
    AddressingMode.parse(cfg.addressing)

    if not 0 < int(cfg.max_title_len) <= MAX_TITLE_LEN:
        raise ValueError(f"max_title_len must be 1..{MAX_TITLE_LEN}; got: {cfg.max_title_len}")
    if not 0 < int(cfg.max_description_len) <= MAX_DESCRIPTION_LEN:
        raise ValueError(f"max_description_len must be 1..{MAX_DESCRIPTION_LEN}; got: {cfg.max_description_len}")

    if int(cfg.lamports_per_byte_year) < 0 or int(cfg.exemption_threshold_years) < 0:
        raise ValueError("rent parameters must be >= 0")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if mode == "prod" and cfg.allow_unsigned_txs:
        raise ValueError("allow_unsigned_txs is not permitted in prod mode")

    for pk, amount in cfg.genesis_balances.items():
        if not _HEX64_RE.match(str(pk)):
            raise ValueError(f"genesis_balances key must be a 64-hex pubkey; got: {pk!r}")
        if int(amount) < 0:
            raise ValueError(f"genesis balance must be >= 0; got: {amount}")


def default_chain_config() -> ChainConfig:
    return ChainConfig(
        chain_id="slotblog-dev",
        # Production-safe defaults.
        mode="prod",
        db_path="./data/slotblog.db",
        program_id=DEFAULT_PROGRAM_ID,
        addressing=AddressingMode.TITLE.value,
        max_title_len=MAX_TITLE_LEN,
        max_description_len=MAX_DESCRIPTION_LEN,
        lamports_per_byte_year=DEFAULT_LAMPORTS_PER_BYTE_YEAR,
        exemption_threshold_years=DEFAULT_EXEMPTION_THRESHOLD_YEARS,
        refund_on_shrink=True,
        api_host="127.0.0.1",
        api_port=8080,
        allow_unsigned_txs=False,
        log_level="INFO",
        genesis_balances={},
    )


def chain_config_from_json(raw: Json) -> ChainConfig:
    if not isinstance(raw, dict):
        raise ValueError("chain config must be a JSON object")

    d = default_chain_config()

    balances = raw.get("genesis_balances")
    gb: Dict[str, int] = {}
    if isinstance(balances, dict):
        gb = {str(k).strip().lower(): _as_int(v, 0) for k, v in balances.items()}

    cfg = ChainConfig(
        chain_id=_as_str(raw.get("chain_id"), d.chain_id),
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        program_id=_as_str(raw.get("program_id"), d.program_id),
        addressing=_as_str(raw.get("addressing"), d.addressing).strip().lower(),
        max_title_len=_as_int(raw.get("max_title_len"), d.max_title_len),
        max_description_len=_as_int(raw.get("max_description_len"), d.max_description_len),
        lamports_per_byte_year=_as_int(raw.get("lamports_per_byte_year"), d.lamports_per_byte_year),
        exemption_threshold_years=_as_int(raw.get("exemption_threshold_years"), d.exemption_threshold_years),
        refund_on_shrink=_as_bool(raw.get("refund_on_shrink"), d.refund_on_shrink),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        allow_unsigned_txs=_as_bool(raw.get("allow_unsigned_txs"), d.allow_unsigned_txs),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
        genesis_balances=gb,
    )

    validate_chain_config(cfg)
    return cfg


def read_chain_config_file(path: str) -> ChainConfig:
    p = Path(path)
    return chain_config_from_json(json.loads(p.read_text(encoding="utf-8")))


def load_chain_config(*, config_path: Optional[str] = None) -> ChainConfig:
    p = config_path or os.environ.get("SLOTBLOG_CHAIN_CONFIG_PATH")
    if p:
        return read_chain_config_file(p)

    # Env overrides on top of the defaults, mirroring apply_chain_config_to_env().
    raw: Json = {}
    for key, env in (
        ("chain_id", "SLOTBLOG_CHAIN_ID"),
        ("mode", "SLOTBLOG_MODE"),
        ("db_path", "SLOTBLOG_DB_PATH"),
        ("program_id", "SLOTBLOG_PROGRAM_ID"),
        ("addressing", "SLOTBLOG_ADDRESSING"),
        ("api_host", "SLOTBLOG_API_HOST"),
        ("api_port", "SLOTBLOG_API_PORT"),
        ("allow_unsigned_txs", "SLOTBLOG_ALLOW_UNSIGNED_TXS"),
        ("log_level", "SLOTBLOG_LOG_LEVEL"),
    ):
        v = os.environ.get(env)
        if v is not None and v.strip():
            raw[key] = v.strip()
    return chain_config_from_json(raw)


def apply_chain_config_to_env(cfg: ChainConfig) -> None:
    validate_chain_config(cfg)
    os.environ["SLOTBLOG_CHAIN_ID"] = cfg.chain_id
    os.environ["SLOTBLOG_MODE"] = (cfg.mode or "prod").strip().lower()
    os.environ["SLOTBLOG_DB_PATH"] = cfg.db_path
    os.environ["SLOTBLOG_PROGRAM_ID"] = cfg.program_id
    os.environ["SLOTBLOG_ADDRESSING"] = cfg.addressing_mode.value
    os.environ["SLOTBLOG_API_HOST"] = cfg.api_host
    os.environ["SLOTBLOG_API_PORT"] = str(int(cfg.api_port))
    os.environ["SLOTBLOG_ALLOW_UNSIGNED_TXS"] = "1" if cfg.allow_unsigned_txs else "0"
    os.environ["SLOTBLOG_LOG_LEVEL"] = cfg.log_level
