# src/slotblog/runtime/sigverify.py
from __future__ import annotations

import re
from typing import Any, Dict

from slotblog.crypto.sig import canonical_tx_message, verify_ed25519_signature

Json = Dict[str, Any]

_PUBKEY_RE = re.compile(r"^[0-9a-f]{64}$")


def is_pubkey_hex(s: Any) -> bool:
    """True for a 64-char lowercase hex string (a raw Ed25519 public key)."""
    return isinstance(s, str) and _PUBKEY_RE.fullmatch(s) is not None


def unsigned_txs_allowed(state: Json) -> bool:
    params = state.get("params") if isinstance(state, dict) else None
    return isinstance(params, dict) and params.get("allow_unsigned_txs") is True


def verify_tx_signature(state: Json, tx: Json) -> bool:
    """Check tx["sig"] against the signer id, which is itself the public key.

    An empty signature only passes when the ledger params opt in to unsigned
    txs; ChainConfig never sets that in prod. Pure: reads state, no I/O.
    """
    if not isinstance(tx, dict) or not is_pubkey_hex(tx.get("signer")):
        return False

    sig = tx.get("sig")
    if not (isinstance(sig, str) and sig.strip()):
        return unsigned_txs_allowed(state)

    try:
        msg = canonical_tx_message(
            tx_type=str(tx.get("tx_type") or ""),
            signer=tx["signer"],
            nonce=int(tx.get("nonce") or 0),
            payload=tx.get("payload"),
        )
    except (TypeError, ValueError):
        return False
    return verify_ed25519_signature(message=msg, sig=sig, pubkey=tx["signer"])
