from __future__ import annotations

import struct

import pytest

from slotblog.ledger.layout import (
    DISCRIMINATOR,
    INIT_SPACE,
    BlogEntry,
    FieldCaps,
    decode_blog_entry,
    encode_blog_entry,
    record_size,
    validate_fields,
)
from slotblog.ledger.rent import required_capacity
from slotblog.runtime.errors import CorruptRecord, ValidationError

OWNER = bytes(range(32))


def _entry(title: str = "hello", description: str = "world") -> BlogEntry:
    return BlogEntry(owner=OWNER, title=title, description=description)


def test_constants() -> None:
    assert len(DISCRIMINATOR) == 8
    assert INIT_SPACE == 32 + 4 + 100 + 4 + 500


def test_encoded_layout() -> None:
    data = encode_blog_entry(_entry())
    assert data[:8] == DISCRIMINATOR
    assert data[8:40] == OWNER
    assert struct.unpack_from("<I", data, 40)[0] == 5
    assert data[44:49] == b"hello"
    assert struct.unpack_from("<I", data, 49)[0] == 5
    assert data[53:] == b"world"
    assert len(data) == record_size(5, 5) == required_capacity("hello", "world") == 58


def test_decode_returns_fields() -> None:
    e = _entry("café", "déjà vu")
    assert decode_blog_entry(encode_blog_entry(e)) == e


def test_caps_count_utf8_bytes() -> None:
    validate_fields("a" * 100, "b" * 500)
    with pytest.raises(ValidationError) as e:
        validate_fields("é" * 51, "")
    assert e.value.reason == "title_too_long"
    with pytest.raises(ValidationError) as e2:
        encode_blog_entry(_entry(description="d" * 501))
    assert e2.value.reason == "description_too_long"


def test_custom_caps() -> None:
    caps = FieldCaps(max_title_len=3, max_description_len=3)
    with pytest.raises(ValidationError):
        encode_blog_entry(_entry("four", "ok"), caps)


def test_bad_owner_is_rejected() -> None:
    with pytest.raises(ValidationError):
        encode_blog_entry(BlogEntry(owner=b"short", title="t", description="d"))


def test_discriminator_mismatch() -> None:
    data = bytearray(encode_blog_entry(_entry()))
    data[0] ^= 0xFF
    with pytest.raises(CorruptRecord) as e:
        decode_blog_entry(bytes(data))
    assert e.value.reason == "account_discriminator_mismatch"


def test_declared_length_past_buffer_end() -> None:
    data = bytearray(encode_blog_entry(_entry()))
    struct.pack_into("<I", data, 40, 10_000)
    with pytest.raises(CorruptRecord) as e:
        decode_blog_entry(bytes(data))
    assert e.value.reason == "length_out_of_bounds"


@pytest.mark.parametrize("cut", [0, 4, 20, 42, 50])
def test_truncated_buffers(cut: int) -> None:
    data = encode_blog_entry(_entry())[:cut]
    with pytest.raises(CorruptRecord):
        decode_blog_entry(data)


def test_trailing_bytes_are_corrupt() -> None:
    data = encode_blog_entry(_entry()) + b"leftover"
    with pytest.raises(CorruptRecord) as e:
        decode_blog_entry(data)
    assert e.value.reason == "trailing_bytes"


def test_invalid_utf8() -> None:
    data = bytearray(encode_blog_entry(_entry()))
    data[44] = 0xFF
    with pytest.raises(CorruptRecord) as e:
        decode_blog_entry(bytes(data))
    assert e.value.reason == "invalid_utf8"
