# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.

`db` is an in-memory stand-in for the Supabase client covering the
PostgREST query builder calls the routers make
(select/insert/update/delete/upsert + eq/neq/in_/like/ilike/gte/lte/lt/gt/is_
+ order/limit/range).
"""

import copy
import re
from datetime import datetime, timezone
from itertools import count
from typing import Generator
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from main import create_app
from dependencies.auth import CurrentUser, get_current_user, get_optional_auth
from services.storage import UnifiedStorageService, get_storage


SUPABASE_CONSUMERS = [
    "routers.auth",
    "routers.roles",
    "routers.parks",
    "routers.trees",
    "routers.activities",
    "routers.instructors",
    "routers.volunteers",
    "routers.warehouse",
    "routers.advertising",
    "routers.sponsorship",
    "routers.hr",
    "routers.exports",
    "core.supabase_client",
    "jobs.maintenance_job",
]


# ============================================================
# Fake Supabase
# ============================================================
class FakeResponse:
    def __init__(self, data):
        self.data = data


def _as_datetime(value):
    if not isinstance(value, str) or len(value) < 10 or value[4] != "-":
        return None
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _compare(left, right) -> int:
    left_dt, right_dt = _as_datetime(left), _as_datetime(right)
    if left_dt is not None and right_dt is not None:
        left, right = left_dt, right_dt
    elif isinstance(left, (int, float)) and isinstance(right, (int, float)):
        pass
    else:
        left, right = str(left), str(right)
    return (left > right) - (left < right)


def _sort_key(value):
    if value is None:
        return (1, "")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, value)
    return (0, str(value))


def _like(pattern: str, flags=0):
    regex = "^" + ".*".join(re.escape(part) for part in pattern.split("%")) + "$"
    return re.compile(regex, flags)


class FakeQuery:
    def __init__(self, db, table: str):
        self.db = db
        self.table_name = table
        self.operation = "select"
        self.payload = None
        self.on_conflict = None
        self.filters = []
        self.orderings = []
        self.row_limit = None
        self.row_range = None

    # ---- operations ----
    def select(self, *columns, **kwargs):
        self.operation = "select"
        return self

    def insert(self, payload):
        self.operation, self.payload = "insert", payload
        return self

    def update(self, payload):
        self.operation, self.payload = "update", payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def upsert(self, payload, on_conflict=None, **kwargs):
        self.operation, self.payload, self.on_conflict = "upsert", payload, on_conflict
        return self

    # ---- filters ----
    def _where(self, predicate):
        self.filters.append(predicate)
        return self

    def eq(self, column, value):
        return self._where(lambda row: row.get(column) == value)

    def neq(self, column, value):
        return self._where(lambda row: row.get(column) != value)

    def in_(self, column, values):
        values = list(values)
        return self._where(lambda row: row.get(column) in values)

    def gte(self, column, value):
        return self._where(lambda row: row.get(column) is not None and _compare(row[column], value) >= 0)

    def gt(self, column, value):
        return self._where(lambda row: row.get(column) is not None and _compare(row[column], value) > 0)

    def lte(self, column, value):
        return self._where(lambda row: row.get(column) is not None and _compare(row[column], value) <= 0)

    def lt(self, column, value):
        return self._where(lambda row: row.get(column) is not None and _compare(row[column], value) < 0)

    def like(self, column, pattern):
        regex = _like(pattern)
        return self._where(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))

    def ilike(self, column, pattern):
        regex = _like(pattern, re.IGNORECASE)
        return self._where(lambda row: row.get(column) is not None and bool(regex.match(str(row[column]))))

    def is_(self, column, value):
        if value in ("null", None):
            return self._where(lambda row: row.get(column) is None)
        return self._where(lambda row: row.get(column) is value)

    # ---- shaping ----
    def order(self, column, desc=False, **kwargs):
        self.orderings.append((column, desc))
        return self

    def limit(self, n):
        self.row_limit = n
        return self

    def range(self, start, end):
        self.row_range = (start, end)
        return self

    # ---- execution ----
    def _matches(self, row) -> bool:
        return all(predicate(row) for predicate in self.filters)

    def execute(self):
        if self.table_name in self.db.failing_tables:
            raise Exception(f"relation \"{self.table_name}\" is unavailable")

        rows = self.db.tables.setdefault(self.table_name, [])

        if self.operation == "insert":
            items = self.payload if isinstance(self.payload, list) else [self.payload]
            return FakeResponse([copy.deepcopy(self.db.add_row(self.table_name, item)) for item in items])

        if self.operation == "upsert":
            keys = [k.strip() for k in (self.on_conflict or "id").split(",")]
            existing = next((r for r in rows if all(r.get(k) == self.payload.get(k) for k in keys)), None)
            if existing is not None:
                existing.update(copy.deepcopy(self.payload))
                return FakeResponse([copy.deepcopy(existing)])
            return FakeResponse([copy.deepcopy(self.db.add_row(self.table_name, self.payload))])

        matched = [r for r in rows if self._matches(r)]

        if self.operation == "update":
            for row in matched:
                row.update(copy.deepcopy(self.payload))
            return FakeResponse(copy.deepcopy(matched))

        if self.operation == "delete":
            self.db.tables[self.table_name] = [r for r in rows if not self._matches(r)]
            return FakeResponse(copy.deepcopy(matched))

        result = list(matched)
        for column, desc in reversed(self.orderings):
            result.sort(key=lambda r: _sort_key(r.get(column)), reverse=desc)
        if self.row_range is not None:
            start, end = self.row_range
            result = result[start:end + 1]
        if self.row_limit is not None:
            result = result[: self.row_limit]
        return FakeResponse(copy.deepcopy(result))


class FakeSupabase:
    def __init__(self):
        self.tables = {}
        self.failing_tables = set()
        self._ids = {}
        self.auth = Mock()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def add_row(self, table: str, row: dict) -> dict:
        counter = self._ids.setdefault(table, count(1))
        stored = copy.deepcopy(row)
        if stored.get("id") is None:
            stored["id"] = next(counter)
        stored.setdefault("created_at", datetime.now(timezone.utc).isoformat())
        self.tables.setdefault(table, []).append(stored)
        return stored

    def seed(self, table: str, *rows: dict) -> list:
        return [copy.deepcopy(self.add_row(table, row)) for row in rows]

    def rows(self, table: str) -> list:
        return self.tables.get(table, [])


# ============================================================
# Fixtures
# ============================================================
def make_user(role: str = "super-admin", **kwargs) -> CurrentUser:
    return CurrentUser(
        id=kwargs.pop("id", f"user-{role}"),
        email=kwargs.pop("email", f"{role}@parques.test"),
        role=role,
        **kwargs,
    )


@pytest.fixture(scope="function")
def app(tmp_path):
    """Create a test FastAPI application instance with local-only storage."""
    application = create_app()
    storage = UnifiedStorageService(uploads_dir=str(tmp_path / "uploads"))
    application.dependency_overrides[get_storage] = lambda: storage
    yield application
    application.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def db(monkeypatch) -> FakeSupabase:
    fake = FakeSupabase()
    for module in SUPABASE_CONSUMERS:
        monkeypatch.setattr(f"{module}.get_supabase_client", lambda: fake)
    return fake


@pytest.fixture
def login_as(app):
    """login_as("operador-campo") makes every request run as that role."""
    def _login(role: str = "super-admin", **kwargs) -> CurrentUser:
        user = make_user(role, **kwargs)
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_optional_auth] = lambda: user
        return user
    return _login


@pytest.fixture
def admin(login_as) -> CurrentUser:
    return login_as("super-admin")


@pytest.fixture
def no_object_storage(monkeypatch):
    """Force the filesystem fallback regardless of the environment."""
    def missing():
        raise RuntimeError("Missing object storage credentials")
    monkeypatch.setattr("services.storage.get_s3", missing)


@pytest.fixture(autouse=True)
def reset_state():
    """Reset cache and rate limits before each test."""
    from core.cache import cache_clear
    from core.rate_limiter import reset_rate_limits
    cache_clear()
    reset_rate_limits()
    yield
    cache_clear()
    reset_rate_limits()


PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f\x00"
    b"\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES
