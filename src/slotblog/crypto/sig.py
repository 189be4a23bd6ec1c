# src/slotblog/crypto/sig.py
from __future__ import annotations

"""
Ed25519 co-signatures for slotblog txs.

A tx is signed over its canonical message: sorted-key compact JSON of
{tx_type, signer, nonce, payload}. The signer id is the raw public key in
hex, so verification needs nothing but the envelope itself.

Keys and signatures travel as hex; base64/base64url signatures are accepted
on input.
"""

import base64
import binascii
import json
from typing import Any, Dict

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

Json = Dict[str, Any]

SIGNED_FIELDS = ("tx_type", "signer", "nonce", "payload")


def _decode_bytes(s: str) -> bytes:
    s = str(s or "").strip()
    if not s:
        raise ValueError("empty key or signature")
    try:
        return bytes.fromhex(s)
    except ValueError:
        pass
    try:
        padded = s + "=" * (-len(s) % 4)
        return base64.b64decode(padded.replace("-", "+").replace("_", "/"), validate=True)
    except binascii.Error as e:
        raise ValueError("expected hex or base64") from e


def _private_key(privkey: str) -> Ed25519PrivateKey:
    try:
        seed = bytes.fromhex(str(privkey or "").strip())
    except ValueError as e:
        raise ValueError("ed25519 privkey must be hex") from e
    if len(seed) != 32:
        raise ValueError("ed25519 privkey must be a 32-byte seed")
    return Ed25519PrivateKey.from_private_bytes(seed)


def canonical_tx_message(*, tx_type: str, signer: str, nonce: int, payload: Json) -> bytes:
    body: Json = {
        "tx_type": str(tx_type),
        "signer": str(signer),
        "nonce": int(nonce),
        "payload": payload if isinstance(payload, dict) else {},
    }
    return json.dumps(body, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def verify_ed25519_signature(*, message: bytes, sig: str, pubkey: str) -> bool:
    try:
        Ed25519PublicKey.from_public_bytes(_decode_bytes(pubkey)).verify(_decode_bytes(sig), message)
    except (InvalidSignature, ValueError):
        return False
    return True


def sign_ed25519(*, message: bytes, privkey: str) -> str:
    """Sign message with a hex seed; return the 64-byte signature as hex."""
    return _private_key(privkey).sign(message).hex()


def pubkey_hex_from_seed(privkey: str) -> str:
    """The signer id (lowercase hex public key) for a private key."""
    return _private_key(privkey).public_key().public_bytes(Encoding.Raw, PublicFormat.Raw).hex()


def sign_tx_envelope_dict(*, tx: Json, privkey: str) -> Json:
    """Return a copy of tx with the signed fields normalized and 'sig' set."""
    out = dict(tx)
    out["tx_type"] = str(tx.get("tx_type") or "")
    out["signer"] = str(tx.get("signer") or "")
    out["nonce"] = int(tx.get("nonce") or 0)
    out["payload"] = tx.get("payload") if isinstance(tx.get("payload"), dict) else {}

    msg = canonical_tx_message(**{k: out[k] for k in SIGNED_FIELDS})
    out["sig"] = sign_ed25519(message=msg, privkey=privkey)
    return out
