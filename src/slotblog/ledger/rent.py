# src/slotblog/ledger/rent.py
from __future__ import annotations

"""Capacity deposit ("rent") model.

A slot must hold a deposit proportional to its size for as long as it exists:

    minimum_balance(size) = (ACCOUNT_STORAGE_OVERHEAD + size)
                            * lamports_per_byte_year
                            * exemption_threshold_years

Create deposits exactly minimum_balance(size). Update settles the difference
when the size changes. Delete returns the whole remaining deposit to the owner.
"""

from dataclasses import dataclass
from typing import Any, Dict

from slotblog.ledger.layout import record_size

Json = Dict[str, Any]

# Fixed per-slot bookkeeping cost charged on top of the data length.
ACCOUNT_STORAGE_OVERHEAD: int = 128

DEFAULT_LAMPORTS_PER_BYTE_YEAR: int = 3480
DEFAULT_EXEMPTION_THRESHOLD_YEARS: int = 2


@dataclass(frozen=True)
class RentParams:
    lamports_per_byte_year: int = DEFAULT_LAMPORTS_PER_BYTE_YEAR
    exemption_threshold_years: int = DEFAULT_EXEMPTION_THRESHOLD_YEARS
    refund_on_shrink: bool = True

    @classmethod
    def from_params(cls, params: Json) -> "RentParams":
        d = cls()
        p = params if isinstance(params, dict) else {}
        return cls(
            lamports_per_byte_year=int(p.get("lamports_per_byte_year", d.lamports_per_byte_year)),
            exemption_threshold_years=int(p.get("exemption_threshold_years", d.exemption_threshold_years)),
            refund_on_shrink=bool(p.get("refund_on_shrink", d.refund_on_shrink)),
        )


DEFAULT_RENT = RentParams()


def required_capacity(title: str, description: str) -> int:
    """Exact slot size for a record holding these fields."""
    return record_size(len(title.encode("utf-8")), len(description.encode("utf-8")))


def minimum_balance(size: int, params: RentParams = DEFAULT_RENT) -> int:
    if int(size) < 0:
        raise ValueError("size must be >= 0")
    return (ACCOUNT_STORAGE_OVERHEAD + int(size)) * int(params.lamports_per_byte_year) * int(params.exemption_threshold_years)


def resize_delta(current_lamports: int, new_size: int, params: RentParams = DEFAULT_RENT) -> int:
    """Lamports to move into (positive) or out of (negative) a slot at new_size.

    Negative values are only paid out when params.refund_on_shrink is set.
    """
    delta = minimum_balance(new_size, params) - int(current_lamports)
    if delta < 0 and not params.refund_on_shrink:
        return 0
    return delta


def resize_buffer(buf: bytearray, new_size: int) -> bytearray:
    """Make buf able to hold new_size bytes without clearing anything.

    Growing past the physical end pads with zeros; shrinking leaves the
    physical buffer as-is (callers track the logical size separately).
    """
    n = int(new_size)
    if n < 0:
        raise ValueError("new_size must be >= 0")
    if len(buf) < n:
        buf.extend(b"\x00" * (n - len(buf)))
    return buf
