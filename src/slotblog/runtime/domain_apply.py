# src/slotblog/runtime/domain_apply.py
"""
Entry point for applying tx envelopes to ledger state.

`apply_tx` routes to the domain appliers and mutates in place.
`apply_tx_atomic` is what the executor uses: all or nothing, except that a
failed user tx still burns its nonce.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Optional, Sequence

from slotblog.ledger.slots import ensure_account
from slotblog.runtime.apply.accounts import apply_accounts
from slotblog.runtime.apply.blog import apply_blog
from slotblog.runtime.errors import ApplyError
from slotblog.runtime.supported_txs import SUPPORTED_TX_TYPES
from slotblog.runtime.tx_admission_types import TxEnvelope

Json = Dict[str, Any]
ApplyFn = Callable[[Json, TxEnvelope], Optional[Json]]

# Tried in order; the first applier that returns a dict claims the tx.
DOMAIN_APPLIERS: Sequence[ApplyFn] = (apply_blog, apply_accounts)


def apply_tx(state: Json, env: Any) -> Json:
    tx = TxEnvelope.from_json(env)
    if tx.tx_type not in SUPPORTED_TX_TYPES:
        raise ApplyError("tx_unimplemented", "tx_type_not_implemented", {"tx_type": tx.tx_type})

    for applier in DOMAIN_APPLIERS:
        result = applier(state, tx)
        if result is not None:
            return result
    raise ApplyError("tx_unimplemented", "tx_type_not_claimed", {"tx_type": tx.tx_type})


def consume_nonce(state: Json, tx: TxEnvelope) -> None:
    """Record tx.nonce as the signer's latest nonce. System txs carry no nonce."""
    if tx.system or not tx.signer:
        return
    ensure_account(state, tx.signer)["nonce"] = int(tx.nonce)


def apply_tx_atomic(state: Json, env: Any) -> Json:
    """Apply env to a private copy of state and swap it in only on success.

    On ApplyError no slot or balance changes; the signer's nonce is still
    consumed so the tx cannot be replayed. The error is re-raised.
    """
    tx = TxEnvelope.from_json(env)
    working = copy.deepcopy(state)
    try:
        result = apply_tx(working, tx)
    except ApplyError:
        consume_nonce(state, tx)
        raise

    # Swap contents rather than rebinding so existing references see the commit.
    state.clear()
    state.update(working)
    return result


__all__ = ["ApplyError", "apply_tx", "apply_tx_atomic", "consume_nonce"]
