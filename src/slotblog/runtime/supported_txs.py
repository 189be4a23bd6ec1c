# src/slotblog/runtime/supported_txs.py
"""Tx types understood by this build.

User txs are signed by the caller and reach the apply router through
admission. System txs are only ever constructed by the executor itself.
"""

from __future__ import annotations

from typing import AbstractSet, Dict, Tuple

BLOG_CREATE = "BLOG_CREATE"
BLOG_UPDATE = "BLOG_UPDATE"
BLOG_DELETE = "BLOG_DELETE"

ACCOUNT_AIRDROP = "ACCOUNT_AIRDROP"

USER_TX_TYPES: AbstractSet[str] = frozenset({BLOG_CREATE, BLOG_UPDATE, BLOG_DELETE})
SYSTEM_TX_TYPES: AbstractSet[str] = frozenset({ACCOUNT_AIRDROP})

SUPPORTED_TX_TYPES: AbstractSet[str] = USER_TX_TYPES | SYSTEM_TX_TYPES

# Payload keys every tx of a given type must carry (as strings).
REQUIRED_PAYLOAD_KEYS: Dict[str, Tuple[str, ...]] = {
    BLOG_CREATE: ("title", "description"),
    BLOG_UPDATE: ("description",),
    BLOG_DELETE: (),
    ACCOUNT_AIRDROP: ("account", "lamports"),
}
