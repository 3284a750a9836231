from datetime import datetime, timedelta, timezone


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


class Player:
    def __init__(self, row, token):
        self.id = row["id"]
        self.email = row["email"]
        self.name = row["name"]
        self.token = token

    @property
    def headers(self):
        return bearer(self.token)


def make_user(db, name, email=None):
    """Register an account the way signup does and return it with a live token"""
    email = (email or f"{name.lower()}@example.com").lower()
    result = db.auth.sign_up({"email": email, "password": "password123", "options": {"data": {"name": name}}})
    row = db.insert_row("user_profiles", {"id": result.user.id, "email": email, "name": name})
    return Player(row, result.session.access_token)


def make_group(db, owner, name="Friday Poker", **members):
    """Group owned by ``owner``; keyword args map role -> list of players"""
    group = db._rpc_create_group_with_owner(name, owner.id)
    for role, players in members.items():
        for player in players:
            db.insert_row("group_members", {"group_id": group["id"], "user_id": player.id, "role": role.upper()})
    return group


def membership(db, group_id, user_id):
    return next(
        (m for m in db.rows("group_members") if m["group_id"] == group_id and m["user_id"] == user_id),
        None,
    )


def days_from_now(days):
    return datetime.now(timezone.utc) + timedelta(days=days)
