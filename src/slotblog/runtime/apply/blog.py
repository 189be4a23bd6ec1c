# src/slotblog/runtime/apply/blog.py
from __future__ import annotations

"""
Blog entry lifecycle apply semantics.

Per derived address:

    Absent --BLOG_CREATE--> Present --BLOG_UPDATE--> Present --BLOG_DELETE--> Absent

The signer is the caller and pays for capacity. `payload["owner"]` names
the entry being addressed (defaults to the signer); the stored owner must
match the signer for update and delete.

These functions mutate `state` in place and may leave it half-written when
they raise; callers go through domain_apply.apply_tx_atomic.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from slotblog.ledger.derive import AddressingMode, blog_entry_address
from slotblog.ledger.layout import MAX_DESCRIPTION_LEN, MAX_TITLE_LEN, BlogEntry, FieldCaps, decode_blog_entry, encode_blog_entry, validate_fields
from slotblog.ledger.rent import RentParams, minimum_balance, resize_delta
from slotblog.ledger.slots import credit, debit, ensure_account, get_slot, put_slot, remove_slot, require_slot, slot_data, write_slot_data
from slotblog.runtime.errors import AlreadyExists, CorruptRecord, Unauthorized, ValidationError
from slotblog.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]


@dataclass(frozen=True)
class BlogParams:
    program_id: bytes
    mode: AddressingMode
    caps: FieldCaps
    rent: RentParams

    @classmethod
    def from_state(cls, state: Json) -> "BlogParams":
        params = state.get("params")
        if not isinstance(params, dict):
            params = {}
        pid = str(params.get("program_id") or "").strip()
        if len(pid) != 64:
            raise ValidationError("program_id_not_configured", {"program_id": pid})
        return cls(
            program_id=bytes.fromhex(pid),
            mode=AddressingMode.parse(params.get("addressing") or AddressingMode.TITLE.value),
            caps=FieldCaps(
                max_title_len=min(int(params.get("max_title_len", MAX_TITLE_LEN)), MAX_TITLE_LEN),
                max_description_len=min(int(params.get("max_description_len", MAX_DESCRIPTION_LEN)), MAX_DESCRIPTION_LEN),
            ),
            rent=RentParams.from_params(params),
        )


def _as_dict(x: Any) -> Json:
    return x if isinstance(x, dict) else {}


def _as_str(x: Any) -> str:
    return x if isinstance(x, str) else ""


def _mark_nonce(state: Json, env: TxEnvelope) -> None:
    ensure_account(state, env.signer)["nonce"] = int(env.nonce)


def _derive(params: BlogParams, owner_hex: str, title: str, payload: Json) -> tuple[str, int]:
    try:
        owner_b = bytes.fromhex(owner_hex)
    except ValueError as e:
        raise ValidationError("bad_owner", {"owner": owner_hex}) from e

    if params.mode is AddressingMode.TITLE and "title" not in payload:
        raise ValidationError("missing_title", {"missing": "title"})

    address, bump = blog_entry_address(owner_b, title, program_id=params.program_id, mode=params.mode)

    # A caller-supplied bump must be the canonical one.
    claimed = payload.get("bump")
    if claimed is not None and int(claimed) != bump:
        raise ValidationError("seeds_constraint_violated", {"bump": claimed, "canonical_bump": bump})
    return address, bump


def _load_entry(params: BlogParams, address: str, slot: Json) -> BlogEntry:
    if str(slot.get("program") or "") != params.program_id.hex():
        raise CorruptRecord("account_owned_by_wrong_program", {"address": address})
    return decode_blog_entry(slot_data(slot))


def _require_owner(entry: BlogEntry, signer: str, address: str) -> None:
    if entry.owner_hex != signer:
        raise Unauthorized("owner_mismatch", {"address": address, "owner": entry.owner_hex, "signer": signer})


# ---------------------------
# Create
# ---------------------------


def _apply_blog_create(state: Json, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    params = BlogParams.from_state(state)

    owner = env.target_owner
    if owner != env.signer:
        raise Unauthorized("owner_must_sign", {"owner": owner, "signer": env.signer})

    title = _as_str(payload.get("title"))
    description = _as_str(payload.get("description"))
    validate_fields(title, description, params.caps)

    address, bump = _derive(params, owner, title, payload)
    if get_slot(state, address) is not None:
        raise AlreadyExists("account_already_in_use", {"address": address})

    data = encode_blog_entry(BlogEntry(owner=bytes.fromhex(owner), title=title, description=description), params.caps)
    lamports = minimum_balance(len(data), params.rent)

    debit(state, env.signer, lamports)
    put_slot(state, address, program=params.program_id.hex(), bump=bump, lamports=lamports, data=data)

    _mark_nonce(state, env)
    return {"applied": "BLOG_CREATE", "address": address, "bump": bump, "size": len(data), "lamports": lamports}


# ---------------------------
# Update
# ---------------------------


def _apply_blog_update(state: Json, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    params = BlogParams.from_state(state)

    owner = env.target_owner
    title = _as_str(payload.get("title"))
    address, _bump = _derive(params, owner, title, payload)

    slot = require_slot(state, address)
    entry = _load_entry(params, address, slot)
    _require_owner(entry, env.signer, address)

    new_title: Optional[str] = payload.get("new_title") if isinstance(payload.get("new_title"), str) else None
    if new_title is not None and new_title != entry.title and params.mode is AddressingMode.TITLE:
        # The address was derived from the title; renaming would orphan the slot.
        raise ValidationError("title_immutable", {"title": entry.title, "new_title": new_title})

    description = payload.get("description")
    if not isinstance(description, str):
        raise ValidationError("missing_description", {"missing": "description"})
    updated = BlogEntry(
        owner=entry.owner,
        title=new_title if new_title is not None else entry.title,
        description=description,
    )
    data = encode_blog_entry(updated, params.caps)

    old_size = int(slot.get("size", 0) or 0)
    lamports = int(slot.get("lamports", 0) or 0)
    delta = resize_delta(lamports, len(data), params.rent)
    if delta > 0:
        debit(state, env.signer, delta)
    elif delta < 0:
        credit(state, env.signer, -delta)
    slot["lamports"] = lamports + delta

    write_slot_data(slot, data)

    _mark_nonce(state, env)
    return {
        "applied": "BLOG_UPDATE",
        "address": address,
        "old_size": old_size,
        "size": len(data),
        "lamports": int(slot["lamports"]),
        "lamports_delta": delta,
    }


# ---------------------------
# Delete
# ---------------------------


def _apply_blog_delete(state: Json, env: TxEnvelope) -> Json:
    payload = _as_dict(env.payload)
    params = BlogParams.from_state(state)

    owner = env.target_owner
    title = _as_str(payload.get("title"))
    address, _bump = _derive(params, owner, title, payload)

    slot = require_slot(state, address)
    entry = _load_entry(params, address, slot)
    _require_owner(entry, env.signer, address)

    refund = int(slot.get("lamports", 0) or 0)
    remove_slot(state, address)
    credit(state, entry.owner_hex, refund)

    _mark_nonce(state, env)
    return {"applied": "BLOG_DELETE", "address": address, "refunded": refund}


BLOG_APPLIERS = {
    "BLOG_CREATE": _apply_blog_create,
    "BLOG_UPDATE": _apply_blog_update,
    "BLOG_DELETE": _apply_blog_delete,
}


def apply_blog(state: Json, env: TxEnvelope) -> Optional[Json]:
    """Apply a blog tx. Returns None if tx_type is not a blog tx."""
    fn = BLOG_APPLIERS.get(env.tx_type.strip().upper())
    if fn is None:
        return None
    return fn(state, env)
