"""
Shared pytest configuration.

The service modules talk to Supabase only through utils.db.supaconn() and
utils.db.public_conn(). Tests swap both for an in-memory FakeSupabase that
understands the subset of the query builder ShuttleMatch uses, so every
service helper runs unchanged against plain Python lists.
"""

import itertools
import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import streamlit as st

from utils import db


# ============================================================================
# Fake Supabase client
# ============================================================================

_BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _split_top_level(expr):
    """Split a PostgREST or_() expression on commas outside parentheses."""
    parts, depth, current = [], 0, ""
    for char in expr:
        if char == "," and depth == 0:
            parts.append(current)
            current = ""
            continue
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        current += char
    if current:
        parts.append(current)
    return parts


def _condition(term):
    if term.startswith("and(") and term.endswith(")"):
        inner = [_condition(t) for t in _split_top_level(term[4:-1])]
        return lambda row: all(check(row) for check in inner)
    column, op, value = term.split(".", 2)
    if op == "eq":
        return lambda row: str(row.get(column)) == value
    if op == "neq":
        return lambda row: str(row.get(column)) != value
    raise NotImplementedError(f"or_ operator {op}")


class FakeQuery:
    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.action = "select"
        self.payload = None
        self.count_mode = None
        self.filters = []
        self.order_by = []
        self.limit_n = None
        self.range_bounds = None

    # Actions

    def select(self, columns="*", count=None):
        self.count_mode = count
        return self

    def insert(self, rows):
        self.action, self.payload = "insert", rows
        return self

    def upsert(self, rows):
        self.action, self.payload = "upsert", rows
        return self

    def update(self, fields):
        self.action, self.payload = "update", fields
        return self

    def delete(self):
        self.action = "delete"
        return self

    # Filters

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def gt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) > value)
        return self

    def gte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) >= value)
        return self

    def lt(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) < value)
        return self

    def lte(self, column, value):
        self.filters.append(lambda row: row.get(column) is not None and row.get(column) <= value)
        return self

    def is_(self, column, value):
        expected = None if value in (None, "null") else value
        self.filters.append(lambda row: row.get(column) is expected)
        return self

    def or_(self, expr):
        terms = [_condition(t) for t in _split_top_level(expr)]
        self.filters.append(lambda row: any(check(row) for check in terms))
        return self

    # Modifiers

    def order(self, column, desc=False):
        self.order_by.append((column, desc))
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def range(self, start, end):
        self.range_bounds = (start, end)
        return self

    def _matches(self, row):
        return all(check(row) for check in self.filters)

    def execute(self):
        if self.table in self.client.failing_tables:
            raise RuntimeError(f"relation {self.table} is unavailable")
        rows = self.client.tables.setdefault(self.table, [])

        if self.action in ("insert", "upsert"):
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for item in payload:
                row = self.client.new_row(item)
                if self.action == "upsert":
                    rows[:] = [r for r in rows if r.get("id") != row["id"]]
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted, count=None)

        matched = [r for r in rows if self._matches(r)]

        if self.action == "update":
            for row in matched:
                row.update(self.payload)
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)

        if self.action == "delete":
            self.client.tables[self.table] = [r for r in rows if not self._matches(r)]
            return SimpleNamespace(data=[dict(r) for r in matched], count=None)

        for column, desc in reversed(self.order_by):
            matched.sort(key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else 0), reverse=desc)
        count = len(matched) if self.count_mode else None
        if self.range_bounds:
            start, end = self.range_bounds
            matched = matched[start:end + 1]
        if self.limit_n is not None:
            matched = matched[:self.limit_n]
        return SimpleNamespace(data=[dict(r) for r in matched], count=count)


class FakeRpc:
    def __init__(self, client, name, params):
        self.client, self.name, self.params = client, name, params

    def execute(self):
        self.client.rpc_calls.append((self.name, dict(self.params)))
        if self.name == "update_match_stats":
            self.client.apply_match_stats(self.params)
        return SimpleNamespace(data=None, count=None)


class FakeBucket:
    def __init__(self, client, bucket):
        self.client, self.bucket = client, bucket

    def upload(self, path, file, file_options=None):
        key = (self.bucket, path)
        options = file_options or {}
        if key in self.client.uploads and options.get("upsert") != "true":
            raise RuntimeError("The resource already exists")
        self.client.uploads[key] = {"data": file, "options": options}
        return SimpleNamespace(path=path)

    def get_public_url(self, path):
        return f"https://storage.test/{self.bucket}/{path}"


class FakeStorage:
    def __init__(self, client):
        self.client = client

    def from_(self, bucket):
        return FakeBucket(self.client, bucket)


class FakeAuth:
    def __init__(self, client):
        self.client = client
        self.accounts = {}
        self.session = None
        self.signed_out = False

    def _response(self, account):
        user = SimpleNamespace(id=account["id"], email=account["email"])
        self.session = SimpleNamespace(
            access_token=f"access-{account['id']}",
            refresh_token=f"refresh-{account['id']}",
            expires_at=(datetime.now(timezone.utc) + timedelta(hours=1)).timestamp(),
            user=user,
        )
        return SimpleNamespace(user=user, session=self.session)

    def sign_up(self, credentials):
        email = credentials["email"]
        if email in self.accounts:
            raise RuntimeError("User already registered")
        account = {"id": str(uuid.uuid4()), "email": email, "password": credentials["password"]}
        self.accounts[email] = account
        metadata = credentials.get("options", {}).get("data", {})
        # Mirrors the remote trigger that creates the profile row
        self.client.tables.setdefault("profiles", []).append(dict(
            metadata,
            id=account["id"],
            email=email,
            experience_points=0,
            membership_status="trial",
        ))
        return self._response(account)

    def sign_in_with_password(self, credentials):
        account = self.accounts.get(credentials["email"])
        if not account or account["password"] != credentials["password"]:
            raise RuntimeError("Invalid login credentials")
        return self._response(account)

    def update_user(self, attributes):
        if not self.session:
            raise RuntimeError("Auth session missing")
        for account in self.accounts.values():
            if account["id"] == self.session.user.id:
                account.update(attributes)
        return SimpleNamespace(user=self.session.user)

    def sign_out(self):
        self.session = None
        self.signed_out = True

    def get_session(self):
        return self.session


class FakeSupabase:
    """In-memory stand-in for supabase.Client."""

    def __init__(self):
        self.tables = {}
        self.rpc_calls = []
        self.uploads = {}
        self.failing_tables = set()
        self.storage = FakeStorage(self)
        self.auth = FakeAuth(self)
        self._clock = itertools.count(1)

    def new_row(self, item):
        row = dict(item)
        row.setdefault("id", str(uuid.uuid4()))
        row.setdefault("created_at", (_BASE_TIME + timedelta(seconds=next(self._clock))).isoformat())
        return row

    def seed(self, table, rows):
        created = [self.new_row(r) for r in rows]
        self.tables.setdefault(table, []).extend(created)
        return created

    def rows(self, table, **filters):
        return [
            r for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in filters.items())
        ]

    def table(self, name):
        return FakeQuery(self, name)

    def rpc(self, name, params):
        return FakeRpc(self, name, params)

    def apply_match_stats(self, params):
        profiles = {p["id"]: p for p in self.tables.get("profiles", [])}
        for player, gain in (
            (params["p_player1"], params["p_player1_exp_gain"]),
            (params["p_player2"], params["p_player2_exp_gain"]),
        ):
            profile = profiles.get(player)
            if profile is None:
                continue
            profile["experience_points"] = (profile.get("experience_points") or 0) + gain
            profile["total_matches_played"] = (profile.get("total_matches_played") or 0) + 1
            if not params["p_is_friendly"]:
                key = "total_wins" if params["p_winner"] == player else "total_losses"
                profile[key] = (profile.get(key) or 0) + 1


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def session_state(monkeypatch):
    """
    Plain dict in place of st.session_state, fresh for every test.
    Cached readers are cleared too so no rows leak between tests.
    """
    state = {}
    monkeypatch.setattr(st, "session_state", state)
    st.cache_data.clear()
    yield state
    st.cache_data.clear()


@pytest.fixture
def fake_db(monkeypatch):
    """FakeSupabase wired into utils.db for both the session and public client."""
    client = FakeSupabase()
    monkeypatch.setattr(db, "supaconn", lambda: client)
    monkeypatch.setattr(db, "public_conn", lambda: client)
    return client


@pytest.fixture
def make_player(fake_db):
    """Factory that seeds a profile row and returns it."""
    def _make(name="Player", level="beginner", xp=0, **fields):
        row = {
            "name": name,
            "email": f"{name.lower().replace(' ', '.')}@example.com",
            "phone": "09123456789",
            "level": level,
            "experience_points": xp,
            "total_wins": 0,
            "total_losses": 0,
            "total_matches_played": 0,
            "penalty_count": 0,
            "account_suspension_until": None,
            "membership_status": "trial",
        }
        row.update(fields)
        return fake_db.seed("profiles", [row])[0]
    return _make


@pytest.fixture
def signed_in(session_state):
    """Put a user record into the session, as sign_in() would."""
    def _sign_in(profile):
        session_state["user"] = {
            "id": profile["id"],
            "email": profile.get("email"),
            "expires_at": (datetime.now(timezone.utc) + timedelta(hours=1)).timestamp(),
        }
        return session_state["user"]
    return _sign_in
