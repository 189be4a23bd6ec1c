from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

Json = Dict[str, Any]


@dataclass(frozen=True)
class TxReject:
    code: str
    reason: str
    details: Optional[Json] = None


@dataclass(frozen=True)
class TxVerdict:
    """Outcome of admission. Unpacks as `ok, reject` (reject is None when ok)."""

    ok: bool
    code: str = "ok"
    reason: str = "admitted"
    details: Optional[Json] = None

    def __iter__(self) -> Iterator[Any]:
        yield self.ok
        yield None if self.ok else TxReject(self.code, self.reason, self.details)

    @classmethod
    def admit(cls) -> "TxVerdict":
        return cls(True)

    @classmethod
    def reject(cls, code: str, reason: str, details: Optional[Json] = None) -> "TxVerdict":
        return cls(False, code, reason, details if details is not None else {})

    def as_failure(self, tx_id: str = "") -> Json:
        """Executor-shaped failure dict for a rejected verdict."""
        return {"ok": False, "tx_id": tx_id, "error": self.code, "reason": self.reason, "details": self.details or {}}


@dataclass(frozen=True)
class TxEnvelope:
    """Normalized tx envelope: tx_type upper-cased, signer lower-cased."""

    tx_type: str
    signer: str
    nonce: int
    payload: Json = field(default_factory=dict)
    sig: str = ""
    system: bool = False

    @property
    def target_owner(self) -> str:
        """The owner whose slot this tx addresses: payload["owner"], else the signer."""
        owner = self.payload.get("owner")
        if isinstance(owner, str) and owner.strip():
            return owner.strip().lower()
        return self.signer

    @classmethod
    def from_json(cls, j: Any) -> "TxEnvelope":
        if isinstance(j, TxEnvelope):
            return j
        if not isinstance(j, dict):
            j = dict(j)
        payload = j.get("payload")
        return cls(
            tx_type=str(j.get("tx_type") or "").strip().upper(),
            signer=str(j.get("signer") or "").strip().lower(),
            nonce=int(j.get("nonce") or 0),
            payload=dict(payload) if isinstance(payload, dict) else {},
            sig=str(j.get("sig") or ""),
            system=bool(j.get("system", False)),
        )
