import pytest
from postgrest.exceptions import APIError

from tests.helpers import make_group, make_user, membership


@pytest.fixture
def admin(client):
    response = client.post("/api/admin/auth/login", json={"username": "chefe", "password": "test-admin-password"})
    assert response.status_code == 200
    return client


def test_login_logout(client):
    response = client.post("/api/admin/auth/login", json={"username": "chefe", "password": "nope"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"
    assert client.get("/api/admin/auth/me").status_code == 401

    client.post("/api/admin/auth/login", json={"username": "chefe", "password": "test-admin-password"})
    assert client.get("/api/admin/auth/me").json()["data"]["admin"] == {"username": "chefe"}

    assert client.post("/api/admin/auth/logout").json()["data"]["message"] == "Logged out"
    assert client.get("/api/admin/auth/me").status_code == 401


def test_user_tokens_do_not_open_the_admin_realm(client, alice):
    assert client.get("/api/admin/stats", headers=alice.headers).status_code == 401
    assert client.get("/api/admin/users", headers=alice.headers).status_code == 401


def test_admin_session_does_not_act_as_a_user(admin):
    assert admin.get("/api/groups").status_code == 401


def test_stats(admin, db, alice, bob, carol):
    busy = make_group(db, alice, name="Busy", member=[bob])
    quiet = make_group(db, carol, name="Quiet")
    make_group(db, bob, name="Empty")
    for _ in range(2):
        game = db.insert_row("games", {"group_id": busy["id"], "date": "2024-03-01T20:00:00+00:00", "game_type": "CASH"})
        db.insert_row("game_participants", {"game_id": game["id"], "user_id": alice.id, "spent": "5.00", "won": "0.00"})
    db.insert_row("games", {"group_id": quiet["id"], "date": "2024-03-01T20:00:00+00:00", "game_type": "TOURNAMENT"})

    stats = admin.get("/api/admin/stats").json()["data"]
    assert (stats["totalUsers"], stats["totalGroups"], stats["totalGames"], stats["totalParticipants"]) == (3, 3, 3, 2)
    assert stats["recentActivity"] == {
        "usersLast7Days": 3, "usersLast30Days": 3, "gamesLast7Days": 3, "gamesLast30Days": 3,
    }
    assert [(g["name"], g["gameCount"], g["memberCount"]) for g in stats["topGroups"]] == [
        ("Busy", 2, 2),
        ("Quiet", 1, 1),
    ]


def test_list_users_paginates_and_searches(admin, db):
    for name in ("Ann", "Ben", "Cid", "Dot", "Eve"):
        make_user(db, name)

    page = admin.get("/api/admin/users", params={"page": 2, "limit": 2}).json()["data"]
    assert page["pagination"] == {"page": 2, "limit": 2, "total": 5, "totalPages": 3}
    assert [u["name"] for u in page["users"]] == ["Cid", "Ben"]

    found = admin.get("/api/admin/users", params={"search": "EVE@"}).json()["data"]
    assert [u["name"] for u in found["users"]] == ["Eve"]
    assert found["pagination"]["total"] == 1

    assert admin.get("/api/admin/users", params={"limit": 500}).status_code == 400


def test_list_groups(admin, db, alice, bob):
    make_group(db, alice, name="Friday Poker", member=[bob])
    make_group(db, bob, name="Sunday Cash")

    groups = admin.get("/api/admin/groups", params={"search": "friday"}).json()["data"]["groups"]
    assert [(g["name"], g["memberCount"]) for g in groups] == [("Friday Poker", 2)]

    everything = admin.get("/api/admin/groups").json()["data"]
    assert [g["name"] for g in everything["groups"]] == ["Sunday Cash", "Friday Poker"]


def test_delete_user_keeps_other_groups_totals(admin, db, alice, bob, carol):
    owned = make_group(db, bob, name="Bob's", member=[alice])
    shared = make_group(db, alice, name="Alice's", member=[bob])
    game = db.insert_row("games", {"group_id": shared["id"], "date": "2024-03-01T20:00:00+00:00", "game_type": "CASH"})
    db.insert_row("game_participants", {"game_id": game["id"], "user_id": alice.id, "spent": "10.00", "won": "0.00"})
    db.insert_row("game_participants", {"game_id": game["id"], "user_id": bob.id, "spent": "0.00", "won": "10.00"})
    db.insert_row("group_invites", {
        "group_id": shared["id"], "inviter_id": bob.id, "invitee_id": carol.id,
        "token": "x" * 64, "expires_at": "2999-01-01T00:00:00+00:00",
    })

    response = admin.delete(f"/api/admin/users/{bob.id}")
    assert response.json()["data"]["message"] == "User deleted successfully"

    assert [g["id"] for g in db.rows("groups")] == [shared["id"]]
    assert membership(db, shared["id"], bob.id) is None
    assert membership(db, owned["id"], alice.id) is None
    assert db.rows("group_invites") == []
    assert all(p["id"] != bob.id for p in db.rows("user_profiles"))

    rows = {(p["user_id"], p["guest_name"], p["won"]) for p in db.rows("game_participants")}
    assert rows == {(alice.id, None, "0.00"), (None, "Bob", "10.00")}

    assert admin.get("/api/auth/me", headers=bob.headers).status_code == 401
    assert admin.delete(f"/api/admin/users/{bob.id}").status_code == 404


def test_delete_group(admin, db, alice, bob):
    group = make_group(db, alice, member=[bob])
    response = admin.delete(f"/api/admin/groups/{group['id']}")
    assert response.json()["data"]["message"] == "Group deleted successfully"
    assert db.rows("groups") == []
    assert db.rows("group_members") == []
    assert admin.delete(f"/api/admin/groups/{group['id']}").status_code == 404


def test_delete_user_runs_as_one_store_transaction(admin, db, alice, bob):
    make_group(db, bob, name="Bob's", member=[alice])
    db.rpc_calls.clear()

    assert admin.delete(f"/api/admin/users/{bob.id}").status_code == 200
    assert db.rpc_calls == ["delete_user_account"]


def test_failed_user_delete_leaves_the_account_in_place(admin, db, alice, bob, monkeypatch):
    group = make_group(db, bob, name="Bob's", member=[alice])

    def rejected(p_user_id):
        raise APIError({"message": "could not serialize access", "code": "40001", "hint": None, "details": None})

    monkeypatch.setattr(db, "_rpc_delete_user_account", rejected, raising=False)
    response = admin.delete(f"/api/admin/users/{bob.id}")
    assert response.status_code == 500
    assert response.json()["error"] == "Failed to delete user"

    assert membership(db, group["id"], bob.id)["role"] == "OWNER"
    assert any(p["id"] == bob.id for p in db.rows("user_profiles"))
    assert admin.get("/api/auth/me", headers=bob.headers).status_code == 200


def test_malformed_user_id_is_rejected(admin):
    assert admin.delete("/api/admin/users/42").status_code == 400
