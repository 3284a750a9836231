"""
In-memory stand-in for ``supabase.Client``.

Covers the slice of the query builder, RPC and Auth APIs the application uses,
with the same call shapes, so services run unchanged against it. The three RPC
functions mirror supabase/migrations/0001_init.sql.
"""
import copy
import re
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

from postgrest.exceptions import APIError

_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}")

UNIQUE_KEYS = {
    "user_profiles": [("email",)],
    "groups": [("public_invite_token",)],
    "group_members": [("group_id", "user_id")],
    "group_invites": [("token",)],
    "game_participants": [("game_id", "user_id")],
}

DEFAULTS = {
    "groups": {"public_invite_token": None, "updated_at": None},
    "group_members": {"role": "MEMBER"},
    "group_invites": {"status": "PENDING", "seen_at": None, "invitee_id": None, "invitee_email": None},
    "games": {"notes": None, "updated_at": None},
    "game_participants": {"user_id": None, "guest_name": None},
}


def unique_violation(table: str) -> APIError:
    return APIError({
        "message": f'duplicate key value violates unique constraint on "{table}"',
        "code": "23505",
        "hint": None,
        "details": None,
    })


def _coerce(value: Any) -> Any:
    if isinstance(value, str) and _ISO_RE.match(value):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return value


def _ilike(pattern: str) -> re.Pattern:
    parts = [re.escape(p) for p in pattern.split("%")]
    return re.compile(".*".join(parts), re.IGNORECASE | re.DOTALL)


class FakeResponse:
    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


class FakeQuery:
    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.action = "select"
        self.columns = "*"
        self.count_mode = None
        self.payload: Any = None
        self.filters: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[tuple] = []
        self.limit_value: Optional[int] = None
        self.range_value: Optional[tuple] = None
        self._negate_next = False

    # ---- actions -----------------------------------------------------------

    def select(self, columns: str = "*", count: Optional[str] = None):
        self.action = "select"
        self.columns = columns
        self.count_mode = count
        return self

    def insert(self, payload):
        self.action = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.action = "update"
        self.payload = payload
        return self

    def delete(self):
        self.action = "delete"
        return self

    # ---- filters -----------------------------------------------------------

    @property
    def not_(self):
        self._negate_next = True
        return self

    def _add(self, predicate: Callable[[Dict[str, Any]], bool]):
        if self._negate_next:
            self._negate_next = False
            self.filters.append(lambda row, p=predicate: not p(row))
        else:
            self.filters.append(predicate)
        return self

    @staticmethod
    def _compare(row, column, op, value) -> bool:
        current = row.get(column)
        if current is None:
            return False
        left, right = _coerce(current), _coerce(value)
        return op(left, right)

    def eq(self, column, value):
        return self._add(lambda row: row.get(column) is not None and _coerce(row.get(column)) == _coerce(value))

    def neq(self, column, value):
        return self._add(lambda row: _coerce(row.get(column)) != _coerce(value))

    def gt(self, column, value):
        return self._add(lambda row: self._compare(row, column, lambda a, b: a > b, value))

    def gte(self, column, value):
        return self._add(lambda row: self._compare(row, column, lambda a, b: a >= b, value))

    def lt(self, column, value):
        return self._add(lambda row: self._compare(row, column, lambda a, b: a < b, value))

    def lte(self, column, value):
        return self._add(lambda row: self._compare(row, column, lambda a, b: a <= b, value))

    def in_(self, column, values):
        values = list(values)
        return self._add(lambda row: row.get(column) in values)

    def is_(self, column, value):
        if value in ("null", None):
            return self._add(lambda row: row.get(column) is None)
        expected = value in ("true", True)
        return self._add(lambda row: row.get(column) is expected)

    def ilike(self, column, pattern):
        regex = _ilike(pattern)
        return self._add(lambda row: row.get(column) is not None and bool(regex.fullmatch(str(row.get(column)))))

    def or_(self, filters: str):
        clauses = []
        for clause in filters.split(","):
            column, op, value = clause.split(".", 2)
            if op == "ilike":
                regex = _ilike(value)
                clauses.append(lambda row, c=column, r=regex: row.get(c) is not None and bool(r.fullmatch(str(row.get(c)))))
            elif op == "eq":
                clauses.append(lambda row, c=column, v=value: row.get(c) is not None and str(row.get(c)) == v)
            else:
                raise NotImplementedError(f"or_ operator {op}")
        return self._add(lambda row: any(clause(row) for clause in clauses))

    # ---- modifiers ---------------------------------------------------------

    def order(self, column, desc: bool = False):
        self.orders.append((column, desc))
        return self

    def limit(self, count: int):
        self.limit_value = count
        return self

    def range(self, start: int, end: int):
        self.range_value = (start, end)
        return self

    # ---- execution ---------------------------------------------------------

    def _matching(self) -> List[Dict[str, Any]]:
        rows = self.db.tables.setdefault(self.table_name, [])
        return [row for row in rows if all(f(row) for f in self.filters)]

    def _project(self, row: Dict[str, Any]) -> Dict[str, Any]:
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        names = [c.strip() for c in self.columns.split(",")]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def execute(self) -> FakeResponse:
        if self.action == "insert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([self.db.insert_row(self.table_name, item) for item in payload])

        matched = self._matching()

        if self.action == "update":
            updated = []
            for row in matched:
                candidate = {**row, **copy.deepcopy(self.payload)}
                self.db.check_unique(self.table_name, candidate, ignore=row)
                row.update(copy.deepcopy(self.payload))
                updated.append(copy.deepcopy(row))
            return FakeResponse(updated)

        if self.action == "delete":
            rows = self.db.tables.setdefault(self.table_name, [])
            ids = {id(row) for row in matched}
            self.db.tables[self.table_name] = [row for row in rows if id(row) not in ids]
            return FakeResponse([copy.deepcopy(row) for row in matched])

        for column, desc in reversed(self.orders):
            present = [r for r in matched if r.get(column) is not None]
            missing = [r for r in matched if r.get(column) is None]
            present.sort(key=lambda r: _coerce(r.get(column)), reverse=desc)
            matched = present + missing

        count = len(matched) if self.count_mode else None
        if self.range_value is not None:
            start, end = self.range_value
            matched = matched[start:end + 1]
        if self.limit_value is not None:
            matched = matched[:self.limit_value]
        return FakeResponse([self._project(row) for row in matched], count=count)


class FakeRpc:
    def __init__(self, fn: Callable[[], Any]):
        self.fn = fn

    def execute(self) -> FakeResponse:
        return FakeResponse(self.fn())


class FakeAuthAdmin:
    def __init__(self, auth: "FakeAuth"):
        self.auth = auth

    def delete_user(self, user_id: str):
        self.auth.accounts = {e: a for e, a in self.auth.accounts.items() if a["id"] != user_id}
        self.auth.tokens = {t: uid for t, uid in self.auth.tokens.items() if uid != user_id}

    def sign_out(self, jwt: str, scope: str = "global"):
        self.auth.sign_outs.append((jwt, scope))
        user_id = self.auth.tokens.get(jwt)
        if scope == "local":
            self.auth.tokens.pop(jwt, None)
        else:
            self.auth.tokens = {t: uid for t, uid in self.auth.tokens.items() if uid != user_id}


class FakeAuth:
    def __init__(self):
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.admin = FakeAuthAdmin(self)
        self.sign_outs: List[tuple] = []

    def _user(self, account: Dict[str, Any]) -> SimpleNamespace:
        return SimpleNamespace(id=account["id"], email=account["email"], user_metadata=account["metadata"])

    def issue_token(self, user_id: str) -> str:
        token = f"token-{uuid.uuid4().hex}"
        self.tokens[token] = user_id
        return token

    def sign_up(self, credentials: Dict[str, Any]):
        email = credentials["email"]
        if email in self.accounts:
            raise Exception("User already registered")
        account = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password": credentials["password"],
            "metadata": (credentials.get("options") or {}).get("data") or {},
        }
        self.accounts[email] = account
        return SimpleNamespace(
            user=self._user(account),
            session=SimpleNamespace(access_token=self.issue_token(account["id"])),
        )

    def sign_in_with_password(self, credentials: Dict[str, Any]):
        account = self.accounts.get(credentials["email"])
        if account is None or account["password"] != credentials["password"]:
            raise Exception("Invalid login credentials")
        return SimpleNamespace(
            user=self._user(account),
            session=SimpleNamespace(access_token=self.issue_token(account["id"])),
        )

    def get_user(self, jwt: str = None):
        user_id = self.tokens.get(jwt)
        if user_id is None:
            raise Exception("invalid JWT: unable to parse or verify signature")
        account = next(a for a in self.accounts.values() if a["id"] == user_id)
        return SimpleNamespace(user=self._user(account))


class FakeSessionAuth:
    """Auth API of a fresh client: remembers the session of its last sign in, like supabase-py"""

    def __init__(self, auth: FakeAuth):
        self.shared = auth
        self.current_session = None

    def sign_up(self, credentials: Dict[str, Any]):
        response = self.shared.sign_up(credentials)
        self.current_session = response.session
        return response

    def sign_in_with_password(self, credentials: Dict[str, Any]):
        response = self.shared.sign_in_with_password(credentials)
        self.current_session = response.session
        return response


class FakeSessionClient:
    def __init__(self, auth: FakeAuth):
        self.auth = FakeSessionAuth(auth)


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.auth = FakeAuth()
        self.session_clients: List[FakeSessionClient] = []
        self.rpc_calls: List[str] = []
        self._clock = datetime.now(timezone.utc) - timedelta(hours=1)

    def new_session(self) -> FakeSessionClient:
        client = FakeSessionClient(self.auth)
        self.session_clients.append(client)
        return client

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rows(self, name: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(name, [])

    def next_timestamp(self) -> str:
        # Strictly increasing so ordering by created_at follows insertion order
        self._clock += timedelta(milliseconds=1)
        return self._clock.isoformat()

    def check_unique(self, table: str, row: Dict[str, Any], ignore: Optional[Dict[str, Any]] = None) -> None:
        for key in UNIQUE_KEYS.get(table, []):
            values = tuple(row.get(k) for k in key)
            if any(v is None for v in values):
                continue
            for other in self.rows(table):
                if other is ignore:
                    continue
                if tuple(other.get(k) for k in key) == values:
                    raise unique_violation(table)

    def insert_row(self, table: str, item: Dict[str, Any]) -> Dict[str, Any]:
        row = {"id": str(uuid.uuid4()), **DEFAULTS.get(table, {}), **copy.deepcopy(item)}
        row.setdefault("created_at", self.next_timestamp())
        self.check_unique(table, row)
        self.rows(table).append(row)
        return copy.deepcopy(row)

    # ---- RPC ---------------------------------------------------------------

    def rpc(self, name: str, params: Dict[str, Any]) -> FakeRpc:
        self.rpc_calls.append(name)
        handler = getattr(self, f"_rpc_{name}")
        return FakeRpc(lambda: handler(**params))

    def _rpc_create_group_with_owner(self, p_name: str, p_user_id: str):
        group = self.insert_row("groups", {"name": p_name})
        self.insert_row("group_members", {"group_id": group["id"], "user_id": p_user_id, "role": "OWNER"})
        return group

    def _rpc_accept_group_invite(self, p_invite_id: str, p_user_id: str):
        invite = next((i for i in self.rows("group_invites") if i["id"] == p_invite_id), None)
        now = datetime.now(timezone.utc)
        if invite is None or invite["status"] != "PENDING" or _coerce(invite["expires_at"]) <= now:
            raise APIError({"message": "invite is not pending", "code": "P0001", "hint": None, "details": None})
        member = self.insert_row("group_members", {
            "group_id": invite["group_id"], "user_id": p_user_id, "role": "MEMBER",
        })
        invite["status"] = "ACCEPTED"
        return member

    def _rpc_delete_group(self, p_group_id: str):
        if not any(g["id"] == p_group_id for g in self.rows("groups")):
            return False
        game_ids = {g["id"] for g in self.rows("games") if g["group_id"] == p_group_id}
        self.tables["game_participants"] = [p for p in self.rows("game_participants") if p["game_id"] not in game_ids]
        for table in ("games", "group_invites", "group_members"):
            self.tables[table] = [r for r in self.rows(table) if r["group_id"] != p_group_id]
        self.tables["groups"] = [g for g in self.rows("groups") if g["id"] != p_group_id]
        return True

    def _rpc_delete_user_account(self, p_user_id: str):
        profile = next((p for p in self.rows("user_profiles") if p["id"] == p_user_id), None)
        if profile is None:
            return False
        owned = [m["group_id"] for m in self.rows("group_members") if m["user_id"] == p_user_id and m["role"] == "OWNER"]
        for group_id in owned:
            self._rpc_delete_group(group_id)
        for participant in self.rows("game_participants"):
            if participant["user_id"] == p_user_id:
                participant.update({"user_id": None, "guest_name": (profile.get("name") or profile["email"])[:100]})
        self.tables["group_invites"] = [
            i for i in self.rows("group_invites") if p_user_id not in (i["inviter_id"], i.get("invitee_id"))
        ]
        for table in ("group_members", "blind_presets"):
            self.tables[table] = [r for r in self.rows(table) if r["user_id"] != p_user_id]
        self.tables["user_profiles"] = [p for p in self.rows("user_profiles") if p["id"] != p_user_id]
        return True

    def _rpc_save_game(self, p_game_id, p_group_id, p_date, p_game_type, p_notes, p_participants):
        if p_game_id is None:
            game = self.insert_row("games", {
                "group_id": p_group_id, "date": p_date, "game_type": p_game_type, "notes": p_notes,
            })
        else:
            stored = next((g for g in self.rows("games") if g["id"] == p_game_id and g["group_id"] == p_group_id), None)
            if stored is None:
                raise APIError({"message": "game not found", "code": "P0002", "hint": None, "details": None})
            stored.update({
                "date": p_date, "game_type": p_game_type, "notes": p_notes, "updated_at": self.next_timestamp(),
            })
            game = copy.deepcopy(stored)
            self.tables["game_participants"] = [
                p for p in self.rows("game_participants") if p["game_id"] != p_game_id
            ]
        for participant in p_participants:
            self.insert_row("game_participants", {"game_id": game["id"], **participant})
        return game
