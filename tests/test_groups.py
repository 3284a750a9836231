import pytest

from tests.helpers import make_group, membership


def test_create_group_makes_caller_the_single_owner(client, db, alice):
    response = client.post("/api/groups", json={"name": "  Friday Poker  "}, headers=alice.headers)
    assert response.status_code == 201
    group = response.json()["data"]["group"]
    assert group["name"] == "Friday Poker"
    assert group["role"] == "OWNER"

    members = [m for m in db.rows("group_members") if m["group_id"] == group["id"]]
    assert [(m["user_id"], m["role"]) for m in members] == [(alice.id, "OWNER")]


def test_create_group_validates_name(client, alice):
    response = client.post("/api/groups", json={"name": "x"}, headers=alice.headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"


def test_list_groups_shows_role_and_counts(client, db, alice, bob):
    group = make_group(db, alice, member=[bob])
    make_group(db, bob, name="Bob's table")

    response = client.get("/api/groups", headers=alice.headers)
    groups = response.json()["data"]["groups"]
    assert len(groups) == 1
    assert groups[0]["id"] == group["id"]
    assert groups[0]["role"] == "OWNER"
    assert groups[0]["memberCount"] == 2
    assert groups[0]["gameCount"] == 0

    response = client.get("/api/groups", headers=bob.headers)
    assert {g["role"] for g in response.json()["data"]["groups"]} == {"MEMBER", "OWNER"}


def test_group_detail_for_members_only(client, db, alice, bob, carol, dave):
    group = make_group(db, alice, member=[carol], admin=[bob])

    response = client.get(f"/api/groups/{group['id']}", headers=bob.headers)
    assert response.status_code == 200
    detail = response.json()["data"]["group"]
    assert detail["currentUserRole"] == "ADMIN"
    assert detail["permissions"] == {"canManageMembers": True, "canChangeRoles": False, "canUpdateGroup": False}
    assert [m["role"] for m in detail["members"]] == ["OWNER", "ADMIN", "MEMBER"]
    assert detail["members"][0]["name"] == "Alice"

    response = client.get(f"/api/groups/{group['id']}", headers=dave.headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Not a member of this group"


def test_list_members(client, db, alice, bob, carol, dave):
    group = make_group(db, alice, member=[carol], admin=[bob])

    response = client.get(f"/api/groups/{group['id']}/members", headers=carol.headers)
    members = response.json()["data"]["members"]
    assert [(m["name"], m["role"]) for m in members] == [("Alice", "OWNER"), ("Bob", "ADMIN"), ("Carol", "MEMBER")]
    assert members[2]["email"] == "carol@example.com"
    assert members[2]["userId"] == carol.id

    assert client.get(f"/api/groups/{group['id']}/members", headers=dave.headers).status_code == 403


def test_rename_is_owner_only(client, db, alice, bob):
    group = make_group(db, alice, admin=[bob])

    response = client.put(f"/api/groups/{group['id']}", json={"name": "Saturday"}, headers=bob.headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Only group owner can perform this action"

    response = client.put(f"/api/groups/{group['id']}", json={"name": "Saturday"}, headers=alice.headers)
    assert response.status_code == 200
    assert response.json()["data"]["group"]["name"] == "Saturday"


def test_delete_group_cascades(client, db, alice, bob):
    group = make_group(db, alice, member=[bob])
    game = db.insert_row("games", {"group_id": group["id"], "date": "2024-01-01T20:00:00+00:00", "game_type": "CASH"})
    db.insert_row("game_participants", {"game_id": game["id"], "user_id": bob.id, "spent": "10.00", "won": "0.00"})

    response = client.delete(f"/api/groups/{group['id']}", headers=alice.headers)
    assert response.json()["data"]["message"] == "Group deleted successfully"
    assert db.rows("groups") == []
    assert db.rows("group_members") == []
    assert db.rows("games") == []
    assert db.rows("game_participants") == []
    assert db.rpc_calls[-1] == "delete_group"


def test_owner_changes_roles(client, db, alice, bob, carol):
    group = make_group(db, alice, member=[bob], admin=[carol])
    bob_membership = membership(db, group["id"], bob.id)

    url = f"/api/groups/{group['id']}/members/{bob_membership['id']}"
    response = client.put(url, json={"role": "ADMIN"}, headers=alice.headers)
    assert response.status_code == 200
    assert response.json()["data"]["member"]["role"] == "ADMIN"
    assert membership(db, group["id"], bob.id)["role"] == "ADMIN"

    response = client.put(url, json={"role": "MEMBER"}, headers=carol.headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Only group owner can perform this action"


def test_owner_role_cannot_be_assigned_or_changed(client, db, alice, bob):
    group = make_group(db, alice, member=[bob])
    bob_membership = membership(db, group["id"], bob.id)
    owner_membership = membership(db, group["id"], alice.id)

    response = client.put(
        f"/api/groups/{group['id']}/members/{bob_membership['id']}", json={"role": "OWNER"}, headers=alice.headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Role must be ADMIN or MEMBER"

    response = client.put(
        f"/api/groups/{group['id']}/members/{owner_membership['id']}", json={"role": "MEMBER"}, headers=alice.headers,
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot change the role of the group owner"


@pytest.mark.parametrize("actor", ["alice", "bob", "carol"])
def test_owner_is_never_removed(client, db, alice, bob, carol, actor):
    group = make_group(db, alice, admin=[bob], member=[carol])
    owner_membership = membership(db, group["id"], alice.id)
    player = {"alice": alice, "bob": bob, "carol": carol}[actor]

    response = client.delete(f"/api/groups/{group['id']}/members/{owner_membership['id']}", headers=player.headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Cannot remove the group owner"
    assert membership(db, group["id"], alice.id) is not None


def test_member_removal_rules(client, db, alice, bob, carol, dave):
    group = make_group(db, alice, admin=[bob, dave], member=[carol])
    gid = group["id"]

    dave_membership = membership(db, gid, dave.id)
    response = client.delete(f"/api/groups/{gid}/members/{dave_membership['id']}", headers=bob.headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Only owner can remove admins"

    bob_membership = membership(db, gid, bob.id)
    response = client.delete(f"/api/groups/{gid}/members/{bob_membership['id']}", headers=carol.headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Insufficient permissions"

    carol_membership = membership(db, gid, carol.id)
    response = client.delete(f"/api/groups/{gid}/members/{carol_membership['id']}", headers=bob.headers)
    assert response.json()["data"]["message"] == "Member removed successfully"
    assert membership(db, gid, carol.id) is None

    response = client.delete(f"/api/groups/{gid}/members/{dave_membership['id']}", headers=alice.headers)
    assert response.status_code == 200


def test_member_can_leave(client, db, alice, bob):
    group = make_group(db, alice, member=[bob])
    bob_membership = membership(db, group["id"], bob.id)

    response = client.delete(f"/api/groups/{group['id']}/members/{bob_membership['id']}", headers=bob.headers)
    assert response.status_code == 200
    assert client.get(f"/api/groups/{group['id']}", headers=bob.headers).status_code == 403


def test_membership_from_another_group_is_not_found(client, db, alice, bob):
    group = make_group(db, alice)
    other = make_group(db, bob, name="Elsewhere")
    foreign = membership(db, other["id"], bob.id)

    response = client.delete(f"/api/groups/{group['id']}/members/{foreign['id']}", headers=alice.headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Member not found"


def test_malformed_group_id_is_rejected(client, alice):
    response = client.get("/api/groups/not-a-uuid", headers=alice.headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"
