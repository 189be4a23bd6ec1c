from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ApplyError(Exception):
    """Canonical error type for domain apply and dispatch failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class AlreadyExists(ApplyError):
    """Create targeted an address that already holds a slot."""

    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("already_exists", reason, details)


class NotFound(ApplyError):
    """The derived address holds no slot ("account does not exist")."""

    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("not_found", reason, details)


class Unauthorized(ApplyError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("unauthorized", reason, details)


class ValidationError(ApplyError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("invalid_payload", reason, details)


class CorruptRecord(ApplyError):
    """Stored bytes failed discriminator or bounds checks."""

    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("corrupt_record", reason, details)


class InsufficientFunds(ApplyError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("insufficient_funds", reason, details)


class DerivationError(ApplyError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("derivation_failed", reason, details)


__all__ = [
    "ApplyError",
    "AlreadyExists",
    "NotFound",
    "Unauthorized",
    "ValidationError",
    "CorruptRecord",
    "InsufficientFunds",
    "DerivationError",
]
