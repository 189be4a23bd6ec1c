# src/slotblog/ledger/derive.py
from __future__ import annotations

"""
Deterministic slot address derivation.

An address is sha256 over the seeds, the program id and a fixed marker. The
result must not decompress to an Ed25519 point, so no private key can ever
sign for a derived slot. `find_program_address` walks the bump byte down from
255 until that holds; the (address, bump) pair is a pure function of its
inputs.

Addressing modes:
  - TITLE: seeds = [b"blog", owner, title]   (many entries per owner)
  - OWNER: seeds = [b"blog", owner]          (at most one entry per owner)
"""

import hashlib
from enum import Enum
from typing import List, Sequence, Tuple

from slotblog.runtime.errors import DerivationError, ValidationError

BLOG_SEED: bytes = b"blog"
PDA_MARKER: bytes = b"ProgramDerivedAddress"

MAX_SEED_LEN: int = 32
MAX_SEEDS: int = 16

# Ed25519 field constants
_P = 2**255 - 19
_D = (-121665 * pow(121666, _P - 2, _P)) % _P


class AddressingMode(str, Enum):
    TITLE = "title"
    OWNER = "owner"

    @classmethod
    def parse(cls, v: object) -> "AddressingMode":
        if isinstance(v, AddressingMode):
            return v
        s = str(v or "").strip().lower()
        for m in cls:
            if m.value == s:
                return m
        raise ValueError(f"addressing must be one of {[m.value for m in cls]}; got: {v!r}")


def is_on_curve(b: bytes) -> bool:
    """Return True if b is a decompressible Ed25519 point encoding."""
    if len(b) != 32:
        return False
    y = int.from_bytes(b, "little") & ((1 << 255) - 1)
    y %= _P
    yy = (y * y) % _P
    u = (yy - 1) % _P
    v = (_D * yy + 1) % _P
    xx = (u * pow(v, _P - 2, _P)) % _P
    if xx == 0:
        return True
    # Euler's criterion: xx must be a quadratic residue.
    return pow(xx, (_P - 1) // 2, _P) == 1


def _check_seeds(seeds: Sequence[bytes]) -> None:
    if len(seeds) > MAX_SEEDS:
        raise ValidationError("max_seed_length_exceeded", {"seeds": len(seeds), "max_seeds": MAX_SEEDS})
    for i, s in enumerate(seeds):
        if len(s) > MAX_SEED_LEN:
            raise ValidationError(
                "max_seed_length_exceeded",
                {"index": i, "len": len(s), "max_len": MAX_SEED_LEN},
            )


def create_program_address(seeds: Sequence[bytes], program_id: bytes) -> bytes:
    _check_seeds(seeds)
    h = hashlib.sha256()
    for s in seeds:
        h.update(bytes(s))
    h.update(bytes(program_id))
    h.update(PDA_MARKER)
    out = h.digest()
    if is_on_curve(out):
        raise DerivationError("address_on_curve", {"address": out.hex()})
    return out


def find_program_address(seeds: Sequence[bytes], program_id: bytes) -> Tuple[bytes, int]:
    base: List[bytes] = [bytes(s) for s in seeds]
    # The bump seed takes one of the MAX_SEEDS positions.
    _check_seeds(base + [b"\xff"])
    for bump in range(255, -1, -1):
        try:
            return create_program_address(base + [bytes([bump])], program_id), bump
        except DerivationError:
            continue
    raise DerivationError("no_viable_bump", {"seeds": [s.hex() for s in base]})


def blog_entry_seeds(owner: bytes, title: str, *, mode: AddressingMode) -> List[bytes]:
    if len(owner) != 32:
        raise ValidationError("bad_owner", {"len": len(owner)})
    if AddressingMode.parse(mode) is AddressingMode.OWNER:
        return [BLOG_SEED, bytes(owner)]
    return [BLOG_SEED, bytes(owner), str(title or "").encode("utf-8")]


def blog_entry_address(
    owner: bytes,
    title: str,
    *,
    program_id: bytes,
    mode: AddressingMode = AddressingMode.TITLE,
) -> Tuple[str, int]:
    """Return (address_hex, bump) for a blog entry slot."""
    addr, bump = find_program_address(blog_entry_seeds(owner, title, mode=mode), program_id)
    return addr.hex(), bump
