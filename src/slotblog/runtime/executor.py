from __future__ import annotations

import copy
import hashlib
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from slotblog.ledger.derive import blog_entry_address
from slotblog.ledger.layout import decode_blog_entry
from slotblog.ledger.slots import balance_of, credit, get_slot, nonce_of, slot_data, slot_view
from slotblog.runtime.apply.blog import BlogParams
from slotblog.runtime.chain_config import ChainConfig, default_chain_config
from slotblog.runtime.domain_apply import ApplyError, apply_tx_atomic
from slotblog.runtime.errors import CorruptRecord, NotFound
from slotblog.runtime.sigverify import is_pubkey_hex
from slotblog.runtime.sqlite_db import SqliteDB, SqliteLedgerStore, _canon_json
from slotblog.runtime.supported_txs import ACCOUNT_AIRDROP
from slotblog.runtime.tx_admission import admit_tx
from slotblog.runtime.tx_admission_types import TxVerdict
from slotblog.util.jsonlog import log_event

Json = Dict[str, Any]

log = logging.getLogger("slotblog.executor")


def _ensure_parent(path: str) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def compute_tx_id(env: Json) -> str:
    return hashlib.sha256(_canon_json(env).encode("utf-8")).hexdigest()


class ExecutorError(RuntimeError):
    pass


class BlogExecutor:
    """Single-writer host for the blog ledger, persisted in SQLite.

    Each submitted tx is admitted against the current snapshot and then
    applied inside one SQLite write transaction, so concurrent submitters
    (threads or processes) are linearized per database.
    """

    def __init__(self, *, db_path: str, chain_id: str, cfg: Optional[ChainConfig] = None) -> None:
        self.chain_id = str(chain_id)
        self.cfg = cfg or default_chain_config()

        self.db_path = str(db_path)
        _ensure_parent(self.db_path)

        self._db = SqliteDB(path=self.db_path)
        self._ledger_store = SqliteLedgerStore(db=self._db)

        if not self._ledger_store.exists():
            self._ledger_store.write(self._initial_state())

        st = self._ledger_store.read()

        # Fail-closed on chain_id mismatch once state is present.
        st_chain_id = str(st.get("chain_id") or "").strip()
        if st_chain_id and st_chain_id != self.chain_id:
            raise ExecutorError(f"chain_id mismatch: db={st_chain_id!r} executor={self.chain_id!r}. Refuse to start.")

        # Params are fixed at genesis; a config that disagrees would re-derive different addresses.
        want = self.cfg.to_params()
        have = st.get("params") if isinstance(st.get("params"), dict) else {}
        for key in ("program_id", "addressing"):
            if str(have.get(key)) != str(want.get(key)):
                raise ExecutorError(f"{key} mismatch: db={have.get(key)!r} config={want.get(key)!r}. Refuse to start.")

        self.params = BlogParams.from_state(st)

    def _initial_state(self) -> Json:
        st: Json = {
            "chain_id": self.chain_id,
            "height": 0,
            "tip": "",
            "params": self.cfg.to_params(),
            "accounts": {},
            "slots": {},
        }
        for pk, amount in sorted(self.cfg.genesis_balances.items()):
            credit(st, pk, int(amount))
        return st

    # ----------------------------
    # Reads
    # ----------------------------

    def read_state(self) -> Json:
        return self._ledger_store.read()

    def balance(self, pubkey: str) -> int:
        return balance_of(self.read_state(), pubkey)

    def nonce(self, pubkey: str) -> int:
        return nonce_of(self.read_state(), pubkey)

    def derive_address(self, owner: str, title: str = "") -> Json:
        addr, bump = blog_entry_address(
            bytes.fromhex(owner),
            title,
            program_id=self.params.program_id,
            mode=self.params.mode,
        )
        return {"address": addr, "bump": bump}

    def read_slot(self, address: str) -> Json:
        address = str(address or "").strip().lower()
        slot = get_slot(self.read_state(), address)
        if slot is None:
            raise NotFound("account_does_not_exist", {"address": address})
        out = slot_view(address, slot)
        try:
            out["entry"] = decode_blog_entry(slot_data(slot)).to_json()
        except CorruptRecord as e:
            out["entry"] = None
            out["error"] = {"code": e.code, "reason": e.reason}
        return out

    def read_entry(self, owner: str, title: str = "") -> Json:
        """Return the decoded entry stored at derive(owner, title).

        Raises NotFound if the slot is absent and CorruptRecord if it does not decode.
        """
        addr = self.derive_address(owner, title)["address"]
        slot = get_slot(self.read_state(), addr)
        if slot is None:
            raise NotFound("account_does_not_exist", {"address": addr})
        entry = decode_blog_entry(slot_data(slot)).to_json()
        entry["address"] = addr
        entry["size"] = int(slot.get("size", 0) or 0)
        entry["lamports"] = int(slot.get("lamports", 0) or 0)
        return entry

    # ----------------------------
    # Writes
    # ----------------------------

    def _apply(self, env: Json, *, admit: bool) -> Json:
        tx_id = compute_tx_id(env)

        def mut(st: Json) -> Json:
            if admit:
                verdict = admit_tx(env, st)
                if not verdict.ok:
                    return verdict.as_failure(tx_id)
            try:
                result = apply_tx_atomic(st, env)
            except ApplyError as e:
                # Commit anyway: the nonce consumed on failure must persist.
                return {"ok": False, "tx_id": tx_id, "error": e.code, "reason": e.reason, "details": e.details}
            st["height"] = int(st.get("height", 0)) + 1
            st["tip"] = tx_id
            return {"ok": True, "tx_id": tx_id, "height": int(st["height"]), "result": result}

        out = self._ledger_store.update(mut)
        if out.get("ok"):
            log_event(log, "tx_applied", tx_id=tx_id, tx_type=env.get("tx_type"), signer=env.get("signer"), result=out.get("result"))
        else:
            log_event(
                log,
                "tx_rejected",
                tx_id=tx_id,
                tx_type=env.get("tx_type"),
                signer=env.get("signer"),
                error=out.get("error"),
                reason=out.get("reason"),
            )
        return out

    def submit_tx(self, env: Json) -> Json:
        """Admit and apply a user-signed envelope as one atomic transaction."""
        if not isinstance(env, dict):
            return TxVerdict.reject("bad_env", "not_object").as_failure()
        return self._apply(copy.deepcopy(env), admit=True)

    def airdrop(self, pubkey: str, lamports: int) -> Json:
        """Credit lamports to an account. Refused in prod mode."""
        if self.cfg.mode == "prod":
            raise ExecutorError("airdrop is disabled in prod mode")
        pk = str(pubkey or "").strip().lower()
        if not is_pubkey_hex(pk):
            raise ValueError("pubkey must be 64 lowercase hex chars")
        env = {
            "tx_type": ACCOUNT_AIRDROP,
            "signer": "SYSTEM",
            "nonce": 0,
            "payload": {"account": pk, "lamports": int(lamports)},
            "system": True,
        }
        return self._apply(env, admit=False)
