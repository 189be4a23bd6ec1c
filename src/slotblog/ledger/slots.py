# src/slotblog/ledger/slots.py
from __future__ import annotations

"""
Explicit keyed store over the ledger state dict.

    state["accounts"][pubkey_hex] = {"balance": int, "nonce": int}
    state["slots"][address_hex]   = {"program": hex, "bump": int,
                                     "lamports": int, "size": int, "data": hex}

`data` is the physical buffer; only the first `size` bytes are ever read.
"""

from typing import Any, Dict, Optional

from slotblog.ledger.rent import resize_buffer
from slotblog.runtime.errors import InsufficientFunds, NotFound

Json = Dict[str, Any]


def _slots(state: Json) -> Json:
    slots = state.get("slots")
    if not isinstance(slots, dict):
        slots = {}
        state["slots"] = slots
    return slots


def _accounts(state: Json) -> Json:
    accounts = state.get("accounts")
    if not isinstance(accounts, dict):
        accounts = {}
        state["accounts"] = accounts
    return accounts


# ---------------------------
# Accounts
# ---------------------------


def ensure_account(state: Json, pubkey: str) -> Json:
    acct = _accounts(state).setdefault(str(pubkey), {"balance": 0, "nonce": 0})
    acct.setdefault("balance", 0)
    acct.setdefault("nonce", 0)
    return acct


def get_account(state: Json, pubkey: str) -> Json:
    accounts = state.get("accounts")
    acct = accounts.get(str(pubkey)) if isinstance(accounts, dict) else None
    return acct if isinstance(acct, dict) else {}


def balance_of(state: Json, pubkey: str) -> int:
    return int(get_account(state, pubkey).get("balance", 0) or 0)


def nonce_of(state: Json, pubkey: str) -> int:
    return int(get_account(state, pubkey).get("nonce", 0) or 0)


def credit(state: Json, pubkey: str, amount: int) -> None:
    if int(amount) < 0:
        raise ValueError("credit amount must be >= 0")
    acct = ensure_account(state, pubkey)
    acct["balance"] = int(acct["balance"]) + int(amount)


def debit(state: Json, pubkey: str, amount: int) -> None:
    if int(amount) < 0:
        raise ValueError("debit amount must be >= 0")
    acct = ensure_account(state, pubkey)
    have = int(acct["balance"])
    if have < int(amount):
        raise InsufficientFunds("insufficient_lamports", {"account": pubkey, "have": have, "need": int(amount)})
    acct["balance"] = have - int(amount)


# ---------------------------
# Slots
# ---------------------------


def get_slot(state: Json, address: str) -> Optional[Json]:
    slots = state.get("slots")
    slot = slots.get(str(address)) if isinstance(slots, dict) else None
    return slot if isinstance(slot, dict) else None


def require_slot(state: Json, address: str) -> Json:
    slot = get_slot(state, address)
    if slot is None:
        raise NotFound("account_does_not_exist", {"address": address})
    return slot


def slot_data(slot: Json) -> bytes:
    buf = bytes.fromhex(str(slot.get("data") or ""))
    size = int(slot.get("size", 0) or 0)
    return buf[:size]


def put_slot(state: Json, address: str, *, program: str, bump: int, lamports: int, data: bytes) -> Json:
    slot: Json = {
        "program": str(program),
        "bump": int(bump),
        "lamports": int(lamports),
        "size": len(data),
        "data": bytes(data).hex(),
    }
    _slots(state)[str(address)] = slot
    return slot


def write_slot_data(slot: Json, data: bytes) -> None:
    """Resize the slot to len(data) and overwrite its logical contents.

    Bytes beyond the new logical size are kept in the physical buffer.
    """
    buf = bytearray(bytes.fromhex(str(slot.get("data") or "")))
    resize_buffer(buf, len(data))
    buf[: len(data)] = data
    slot["data"] = bytes(buf).hex()
    slot["size"] = len(data)


def remove_slot(state: Json, address: str) -> Json:
    slot = require_slot(state, address)
    del _slots(state)[str(address)]
    return slot


def slot_view(address: str, slot: Json) -> Json:
    return {
        "address": str(address),
        "program": str(slot.get("program") or ""),
        "bump": int(slot.get("bump", 0) or 0),
        "lamports": int(slot.get("lamports", 0) or 0),
        "size": int(slot.get("size", 0) or 0),
        "data": slot_data(slot).hex(),
    }
