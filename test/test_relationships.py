"""
Friend requests, friend list and blocking, driven through the HTTP API.
"""

from gamehub.api.models import BlockedUser, Friendship
from gamehub.core import relationships


def _friends_of(client, user):
    resp = client.get("/friends", headers=user.headers)
    assert resp.status_code == 200
    return {f["id"] for f in resp.json()}


def test_request_accept_flow(client, register):
    alice, bob = register(), register()

    resp = client.post(f"/friends/request/{bob.id}", headers=alice.headers)
    assert resp.status_code == 201
    assert resp.json()["friendship"]["status"] == "pending"

    pending = client.get("/friends/pending", headers=bob.headers).json()
    assert [p["id"] for p in pending] == [alice.id]
    assert client.get("/friends/pending", headers=alice.headers).json() == []

    resp = client.post(f"/friends/accept/{alice.id}", headers=bob.headers)
    assert resp.status_code == 200
    assert resp.json()["friendship"]["status"] == "accepted"

    assert _friends_of(client, alice) == {bob.id}
    assert _friends_of(client, bob) == {alice.id}


def test_request_checks_in_order(client, register):
    alice, bob = register(), register()

    assert client.post(f"/friends/request/{alice.id}", headers=alice.headers).status_code == 403
    assert client.post("/friends/request/9999", headers=alice.headers).status_code == 404

    assert client.post(f"/friends/request/{bob.id}", headers=alice.headers).status_code == 201
    # Pending in either direction blocks a new request
    assert client.post(f"/friends/request/{bob.id}", headers=alice.headers).status_code == 400
    assert client.post(f"/friends/request/{alice.id}", headers=bob.headers).status_code == 400

    client.post(f"/friends/accept/{alice.id}", headers=bob.headers)
    resp = client.post(f"/friends/request/{alice.id}", headers=bob.headers)
    assert resp.status_code == 400
    assert "already friends" in resp.json()["detail"]


def test_cannot_accept_own_request(client, register):
    alice, bob = register(), register()
    client.post(f"/friends/request/{bob.id}", headers=alice.headers)
    assert client.post(f"/friends/accept/{bob.id}", headers=alice.headers).status_code == 404
    assert client.post(f"/friends/reject/{bob.id}", headers=alice.headers).status_code == 404


def test_reject_deletes_request(client, register, session_scope):
    alice, bob = register(), register()
    client.post(f"/friends/request/{bob.id}", headers=alice.headers)
    assert client.post(f"/friends/reject/{alice.id}", headers=bob.headers).status_code == 200
    with session_scope() as s:
        assert s.query(Friendship).count() == 0
    # A fresh request is possible afterwards
    assert client.post(f"/friends/request/{bob.id}", headers=alice.headers).status_code == 201


def test_remove_friend_from_either_side(client, register):
    alice, bob = register(), register()
    client.post(f"/friends/request/{bob.id}", headers=alice.headers)
    client.post(f"/friends/accept/{alice.id}", headers=bob.headers)

    # Bob received the request but can still remove the friendship
    assert client.delete(f"/friends/{alice.id}", headers=bob.headers).status_code == 200
    assert _friends_of(client, alice) == set()
    assert client.delete(f"/friends/{alice.id}", headers=bob.headers).status_code == 404


def test_block_removes_friendship_and_prevents_requests(client, register, session_scope):
    alice, bob = register(), register()
    client.post(f"/friends/request/{bob.id}", headers=alice.headers)

    resp = client.post(f"/users/block/{alice.id}", headers=bob.headers)
    assert resp.status_code == 201

    with session_scope() as s:
        assert s.query(Friendship).count() == 0
        block = s.query(BlockedUser).one()
        assert (block.user_id, block.blocked_user_id) == (bob.id, alice.id)

    assert client.post(f"/friends/request/{bob.id}", headers=alice.headers).status_code == 400
    assert client.post(f"/friends/request/{alice.id}", headers=bob.headers).status_code == 400


def test_block_accepted_friend(client, register):
    alice, bob = register(), register()
    client.post(f"/friends/request/{bob.id}", headers=alice.headers)
    client.post(f"/friends/accept/{alice.id}", headers=bob.headers)

    assert client.post(f"/users/block/{bob.id}", headers=alice.headers).status_code == 201
    assert _friends_of(client, alice) == set()
    assert _friends_of(client, bob) == set()


def test_block_rules_and_unblock(client, register):
    alice, bob = register(), register()

    assert client.post(f"/users/block/{alice.id}", headers=alice.headers).status_code == 403
    assert client.post("/users/block/9999", headers=alice.headers).status_code == 404
    assert client.post(f"/users/block/{bob.id}", headers=alice.headers).status_code == 201
    assert client.post(f"/users/block/{bob.id}", headers=alice.headers).status_code == 400

    blocked = client.get("/users/blocked", headers=alice.headers).json()
    assert [u["id"] for u in blocked] == [bob.id]
    # Blocking is one-way
    assert client.get("/users/blocked", headers=bob.headers).json() == []

    assert client.post(f"/users/unblock/{bob.id}", headers=alice.headers).status_code == 200
    assert client.post(f"/users/unblock/{bob.id}", headers=alice.headers).status_code == 404
    assert client.post(f"/friends/request/{bob.id}", headers=alice.headers).status_code == 201


def test_crossing_requests_keep_one_row_per_pair(client, register, session_scope, monkeypatch):
    alice, bob = register(), register()
    assert client.post(f"/friends/request/{bob.id}", headers=alice.headers).status_code == 201

    # Bob's request races past the pending check; the pair key still rejects it
    monkeypatch.setattr(relationships, "has_pending_request_between", lambda db, a, b: False)
    resp = client.post(f"/friends/request/{alice.id}", headers=bob.headers)
    assert resp.status_code == 400
    assert "pending" in resp.json()["detail"]

    with session_scope() as s:
        rows = s.query(Friendship).all()
        assert [(r.user_id, r.friend_id, r.status) for r in rows] == [(alice.id, bob.id, "pending")]
        assert (rows[0].pair_low, rows[0].pair_high) == (min(alice.id, bob.id), max(alice.id, bob.id))
