# src/slotblog/runtime/apply/accounts.py
from __future__ import annotations

"""System-only balance funding (dev/testnet airdrops, genesis top-ups)."""

from typing import Any, Dict, Optional

from slotblog.ledger.slots import credit
from slotblog.runtime.errors import Unauthorized, ValidationError
from slotblog.runtime.sigverify import is_pubkey_hex
from slotblog.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


def _apply_account_airdrop(state: Json, env: TxEnvelope) -> Json:
    if not env.system:
        raise Unauthorized("system_only", {"tx_type": env.tx_type})

    payload = env.payload if isinstance(env.payload, dict) else {}
    account = str(payload.get("account") or "").strip().lower()
    if not is_pubkey_hex(account):
        raise ValidationError("bad_account", {"account": account})

    lamports = payload.get("lamports")
    if isinstance(lamports, bool) or not isinstance(lamports, int) or lamports <= 0:
        raise ValidationError("bad_lamports", {"lamports": lamports})

    credit(state, account, lamports)
    return {"applied": "ACCOUNT_AIRDROP", "account": account, "lamports": lamports}


def apply_accounts(state: Json, env: TxEnvelope) -> Optional[Json]:
    if env.tx_type.strip().upper() == "ACCOUNT_AIRDROP":
        return _apply_account_airdrop(state, env)
    return None
