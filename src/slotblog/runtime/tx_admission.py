from __future__ import annotations

import json
import os
from typing import Any, Dict, Optional

from slotblog.ledger.slots import nonce_of
from slotblog.runtime.sigverify import is_pubkey_hex, verify_tx_signature
from slotblog.runtime.supported_txs import REQUIRED_PAYLOAD_KEYS, SYSTEM_TX_TYPES, USER_TX_TYPES
from slotblog.runtime.tx_admission_types import TxVerdict

Json = Dict[str, Any]


def _env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return int(default)
    try:
        return int(str(v).strip())
    except ValueError:
        return int(default)


def _json_size_bytes(obj: Any) -> int:
    """Compute JSON byte size. If not serializable, return -1 (unknown)."""
    try:
        return len(json.dumps(obj, separators=(",", ":"), ensure_ascii=False, sort_keys=True).encode("utf-8"))
    except (TypeError, ValueError):
        return -1


def _validate_payload_limits(payload: Any) -> Optional[TxVerdict]:
    """Generic payload validation (shape + size caps).

    Field caps for titles and descriptions are enforced again at apply time
    against the ledger params; these limits only bound what admission will
    even look at.
    """
    if payload is None:
        return TxVerdict.reject("invalid_payload", "payload_required", {"expected": "object"})
    if not isinstance(payload, dict):
        return TxVerdict.reject("invalid_payload", "payload_must_be_object", {"type": str(type(payload))})

    max_payload_bytes = _env_int("SLOTBLOG_MAX_TX_PAYLOAD_BYTES", 8 * 1024)
    max_payload_keys = _env_int("SLOTBLOG_MAX_TX_PAYLOAD_KEYS", 16)

    if len(payload) > int(max_payload_keys):
        return TxVerdict.reject(
            "invalid_payload",
            "payload_too_many_keys",
            {"keys": len(payload), "max_keys": int(max_payload_keys)},
        )

    payload_bytes = _json_size_bytes(payload)
    if payload_bytes < 0:
        return TxVerdict.reject("invalid_payload", "payload_not_json", {})
    if payload_bytes > int(max_payload_bytes):
        return TxVerdict.reject(
            "payload_too_large",
            "payload_exceeds_size_limit",
            {"bytes": int(payload_bytes), "max_bytes": int(max_payload_bytes)},
        )
    return None


def _validate_payload_shape(tx_type: str, payload: Json) -> Optional[TxVerdict]:
    for key in REQUIRED_PAYLOAD_KEYS.get(tx_type, ()):
        if key not in payload:
            return TxVerdict.reject("invalid_payload", f"missing_{key}", {"missing": key})

    owner = payload.get("owner")
    if owner is not None and not is_pubkey_hex(owner):
        return TxVerdict.reject("invalid_payload", "bad_owner", {"owner": owner})

    for key in ("title", "description", "new_title"):
        if key in payload and not isinstance(payload.get(key), str):
            return TxVerdict.reject("invalid_payload", f"{key}_must_be_string", {"field": key})

    bump = payload.get("bump")
    if bump is not None and (isinstance(bump, bool) or not isinstance(bump, int) or not 0 <= bump <= 255):
        return TxVerdict.reject("invalid_payload", "bad_bump", {"bump": bump})
    return None


def admit_tx(tx: Any, state: Json) -> TxVerdict:
    """Decide whether a user-submitted envelope may be applied.

    Order: envelope shape, tx type, signer, payload, nonce, signature. The
    first failing check wins; admission never mutates state.
    """
    if not isinstance(tx, dict):
        return TxVerdict.reject("bad_env", "not_object", {})

    tx_type = str(tx.get("tx_type") or "").strip()
    if bool(tx.get("system", False)) or tx_type in SYSTEM_TX_TYPES:
        return TxVerdict.reject("system_tx_forbidden", "system_only_tx", {"tx_type": tx_type})
    if tx_type not in USER_TX_TYPES:
        return TxVerdict.reject("unsupported_tx", "tx_type_not_supported", {"tx_type": tx_type})

    signer = tx.get("signer")
    if not is_pubkey_hex(signer):
        return TxVerdict.reject("bad_signer", "signer_must_be_pubkey_hex", {"signer": signer})

    payload = tx.get("payload")
    rej = _validate_payload_limits(payload)
    if rej is not None:
        return rej
    rej = _validate_payload_shape(tx_type, payload)
    if rej is not None:
        return rej

    nonce = tx.get("nonce")
    if isinstance(nonce, bool) or not isinstance(nonce, int):
        return TxVerdict.reject("bad_nonce", "nonce_must_be_int", {"nonce": nonce})
    expected = nonce_of(state, signer) + 1
    if int(nonce) != expected:
        return TxVerdict.reject("bad_nonce", "unexpected_nonce", {"nonce": int(nonce), "expected": expected})

    if not verify_tx_signature(state, tx):
        return TxVerdict.reject("bad_sig", "invalid_signature", {"signer": signer})

    return TxVerdict.admit()
