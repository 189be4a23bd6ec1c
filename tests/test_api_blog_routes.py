from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import FUNDS, make_cfg
from slotblog.api.app import create_app
from slotblog.runtime.executor import BlogExecutor
from slotblog.testing.sigtools import make_tx, pubkey_for

ALICE = pubkey_for("alice")
BOB = pubkey_for("bob")


@pytest.fixture
def client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SLOTBLOG_MODE", "dev")
    cfg = make_cfg(tmp_path, genesis_balances={ALICE: FUNDS, BOB: FUNDS})
    app = create_app(boot_runtime=False)
    app.state.executor = BlogExecutor(db_path=cfg.db_path, chain_id=cfg.chain_id, cfg=cfg)
    with TestClient(app) as c:
        yield c


def _submit(client: TestClient, tx: dict):
    return client.post("/v1/tx/submit", json=tx)


def test_status(client: TestClient) -> None:
    body = client.get("/v1/status").json()
    assert body["chain_id"] == "slotblog-test"
    assert body["addressing"] == "title"
    assert len(body["program_id"]) == 64


def test_blog_lifecycle_over_http(client: TestClient) -> None:
    r = _submit(client, make_tx("alice", "BLOG_CREATE", 1, {"title": "hello", "description": "world"}))
    assert r.status_code == 200
    created = r.json()
    assert created["ok"] is True
    address = created["result"]["address"]

    r = client.get("/v1/blog/address", params={"owner": ALICE, "title": "hello"})
    assert r.json()["address"] == address

    r = client.get(f"/v1/blog/{ALICE}", params={"title": "hello"})
    assert r.status_code == 200
    assert r.json()["entry"]["description"] == "world"

    r = client.get(f"/v1/slots/{address}")
    assert r.json()["slot"]["entry"]["owner"] == ALICE

    r = _submit(client, make_tx("alice", "BLOG_UPDATE", 2, {"title": "hello", "description": "bye"}))
    assert r.json()["result"]["size"] == 56

    r = _submit(client, make_tx("alice", "BLOG_DELETE", 3, {"title": "hello"}))
    assert r.status_code == 200

    r = client.get(f"/v1/blog/{ALICE}", params={"title": "hello"})
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"

    acct = client.get(f"/v1/accounts/{ALICE}").json()
    assert acct["balance"] == FUNDS
    assert acct["nonce"] == 3


def test_error_codes_map_to_http_status(client: TestClient) -> None:
    assert _submit(client, make_tx("alice", "BLOG_CREATE", 1, {"title": "a", "description": "b"})).status_code == 200

    r = _submit(client, make_tx("alice", "BLOG_CREATE", 2, {"title": "a", "description": "c"}))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "already_exists"

    r = _submit(client, make_tx("bob", "BLOG_UPDATE", 1, {"owner": ALICE, "title": "a", "description": "x"}))
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "unauthorized"

    r = _submit(client, make_tx("bob", "BLOG_DELETE", 2, {"title": "missing"}))
    assert r.status_code == 404

    r = _submit(client, make_tx("bob", "BLOG_CREATE", 3, {"title": "t", "description": "d" * 501}))
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_payload"

    r = _submit(client, make_tx("bob", "BLOG_CREATE", 9, {"title": "t", "description": "d"}))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "bad_nonce"

    tx = make_tx("bob", "BLOG_CREATE", 4, {"title": "t", "description": "d"})
    tx["sig"] = "00" * 64
    assert _submit(client, tx).status_code == 401


def test_system_flag_is_forbidden(client: TestClient) -> None:
    tx = make_tx("alice", "BLOG_CREATE", 1, {"title": "a", "description": "b"})
    tx["system"] = True
    r = _submit(client, tx)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "system_tx_forbidden"


def test_bad_pubkey_is_400(client: TestClient) -> None:
    r = client.get("/v1/blog/alice")
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_pubkey"


def test_dev_airdrop(client: TestClient) -> None:
    carol = pubkey_for("carol")
    r = client.post("/v1/dev/airdrop", json={"account": carol, "lamports": 1000})
    assert r.status_code == 200
    assert r.json()["balance"] == 1000

    assert client.post("/v1/dev/airdrop", json={"account": carol, "lamports": 0}).status_code == 422


def test_airdrop_refused_in_prod(tmp_path: Path) -> None:
    cfg = make_cfg(tmp_path, mode="prod")
    app = create_app(boot_runtime=False)
    app.state.executor = BlogExecutor(db_path=cfg.db_path, chain_id=cfg.chain_id, cfg=cfg)
    with TestClient(app) as c:
        r = c.post("/v1/dev/airdrop", json={"account": ALICE, "lamports": 1})
        assert r.status_code == 403
        assert r.json()["error"]["code"] == "airdrop_disabled"
