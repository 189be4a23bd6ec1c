# src/slotblog/ledger/layout.py
from __future__ import annotations

"""
Binary layout of a stored blog entry.

    offset  size  field
    0       8     discriminator = sha256(b"account:BlogEntryState")[:8]
    8       32    owner (raw Ed25519 pubkey)
    40      4     title length (u32 little-endian)
    44      n     title (UTF-8)
    44+n    4     description length (u32 little-endian)
    48+n    m     description (UTF-8)

The logical slot is always exactly 48 + n + m bytes.
"""

import hashlib
import struct
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from slotblog.runtime.errors import CorruptRecord, ValidationError

Json = Dict[str, Any]

ACCOUNT_NAME = "BlogEntryState"

DISCRIMINATOR_SIZE: int = 8
OWNER_SIZE: int = 32
LEN_PREFIX_SIZE: int = 4

MAX_TITLE_LEN: int = 100
MAX_DESCRIPTION_LEN: int = 500

# Largest possible record body (everything after the discriminator).
INIT_SPACE: int = OWNER_SIZE + LEN_PREFIX_SIZE + MAX_TITLE_LEN + LEN_PREFIX_SIZE + MAX_DESCRIPTION_LEN

DISCRIMINATOR: bytes = hashlib.sha256(f"account:{ACCOUNT_NAME}".encode("utf-8")).digest()[:DISCRIMINATOR_SIZE]

_U32 = struct.Struct("<I")


@dataclass(frozen=True)
class FieldCaps:
    max_title_len: int = MAX_TITLE_LEN
    max_description_len: int = MAX_DESCRIPTION_LEN


DEFAULT_CAPS = FieldCaps()


@dataclass(frozen=True)
class BlogEntry:
    owner: bytes
    title: str
    description: str

    @property
    def owner_hex(self) -> str:
        return self.owner.hex()

    def to_json(self) -> Json:
        return {"owner": self.owner_hex, "title": self.title, "description": self.description}


def validate_fields(title: str, description: str, caps: FieldCaps = DEFAULT_CAPS) -> Tuple[bytes, bytes]:
    """Return (title_bytes, description_bytes) or raise ValidationError."""
    if not isinstance(title, str):
        raise ValidationError("title_must_be_string", {"type": type(title).__name__})
    if not isinstance(description, str):
        raise ValidationError("description_must_be_string", {"type": type(description).__name__})

    t = title.encode("utf-8")
    d = description.encode("utf-8")
    if len(t) > int(caps.max_title_len):
        raise ValidationError("title_too_long", {"len": len(t), "max_len": int(caps.max_title_len)})
    if len(d) > int(caps.max_description_len):
        raise ValidationError("description_too_long", {"len": len(d), "max_len": int(caps.max_description_len)})
    return t, d


def record_size(title_len: int, description_len: int) -> int:
    return DISCRIMINATOR_SIZE + OWNER_SIZE + LEN_PREFIX_SIZE + int(title_len) + LEN_PREFIX_SIZE + int(description_len)


def encode_blog_entry(entry: BlogEntry, caps: FieldCaps = DEFAULT_CAPS) -> bytes:
    if not isinstance(entry.owner, (bytes, bytearray)) or len(entry.owner) != OWNER_SIZE:
        raise ValidationError("bad_owner", {"expected_len": OWNER_SIZE})
    t, d = validate_fields(entry.title, entry.description, caps)
    return b"".join(
        (
            DISCRIMINATOR,
            bytes(entry.owner),
            _U32.pack(len(t)),
            t,
            _U32.pack(len(d)),
            d,
        )
    )


def _read_str(data: bytes, off: int, field: str) -> Tuple[str, int]:
    if off + LEN_PREFIX_SIZE > len(data):
        raise CorruptRecord("truncated_length_prefix", {"field": field, "offset": off, "size": len(data)})
    (n,) = _U32.unpack_from(data, off)
    off += LEN_PREFIX_SIZE
    if off + n > len(data):
        raise CorruptRecord("length_out_of_bounds", {"field": field, "declared": n, "available": len(data) - off})
    raw = data[off : off + n]
    try:
        s = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CorruptRecord("invalid_utf8", {"field": field}) from e
    return s, off + n


def decode_blog_entry(data: bytes) -> BlogEntry:
    data = bytes(data)
    if len(data) < DISCRIMINATOR_SIZE:
        raise CorruptRecord("account_discriminator_not_found", {"size": len(data)})
    if data[:DISCRIMINATOR_SIZE] != DISCRIMINATOR:
        raise CorruptRecord("account_discriminator_mismatch", {"found": data[:DISCRIMINATOR_SIZE].hex()})

    off = DISCRIMINATOR_SIZE
    if off + OWNER_SIZE > len(data):
        raise CorruptRecord("truncated_owner", {"size": len(data)})
    owner = data[off : off + OWNER_SIZE]
    off += OWNER_SIZE

    title, off = _read_str(data, off, "title")
    description, off = _read_str(data, off, "description")

    if off != len(data):
        raise CorruptRecord("trailing_bytes", {"consumed": off, "size": len(data)})

    return BlogEntry(owner=owner, title=title, description=description)
