from __future__ import annotations

"""Pydantic request/response schemas for the public API.

These only validate HTTP input shape. Field caps, nonce and signature rules
live in runtime admission/apply and are enforced there.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class TxSubmitRequest(BaseModel):
    tx_type: str = Field(..., description="BLOG_CREATE | BLOG_UPDATE | BLOG_DELETE")
    signer: str = Field(..., description="Signer Ed25519 pubkey, 64 lowercase hex")
    nonce: int = Field(..., description="Signer nonce; must be the stored nonce + 1")
    payload: Dict[str, Any] = Field(default_factory=dict)
    sig: str = Field(default="", description="Ed25519 signature (hex or base64) over the canonical tx message")
    system: bool = Field(default=False, description="Always rejected over HTTP")


class TxSubmitResponse(BaseModel):
    ok: bool
    tx_id: str
    height: int
    result: Dict[str, Any]


class AirdropRequest(BaseModel):
    account: str = Field(..., description="Recipient pubkey, 64 lowercase hex")
    lamports: int = Field(..., gt=0)


class AddressResponse(BaseModel):
    address: str
    bump: int
    owner: str
    title: Optional[str] = None
