"""Shared fixtures: an in-memory Supabase stand-in and a mocked Sympla API."""

from __future__ import annotations

import copy
import re
from pathlib import Path
import sys
from typing import Any, Callable
from uuid import uuid4

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from postgrest.exceptions import APIError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from api.graphql_app import build_graphql_router  # noqa: E402
from Database.deps import Services, build_services, get_services  # noqa: E402
from Tickets.sympla import SymplaClient  # noqa: E402

# unique constraints enforced by the fake, per table
UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    "users": [("email",), ("cpf",), ("ida",)],
    "events": [("sympla_id",)],
    "tickets": [("event_id", "code")],
    "activities": [],
}

# foreign keys enforced by the fake: table -> column -> referenced table
FOREIGN_KEYS: dict[str, dict[str, str]] = {
    "tickets": {"user_id": "users", "event_id": "events"},
    "activities": {"event_id": "events"},
}

_OR_CONDITION = re.compile(r'(\w+)\.eq\."((?:[^"\\]|\\.)*)"')

SYMPLA_BASE_URL = "https://sympla.test/public/v3"


class FakeSupabaseResponse:
    """Minimal Supabase-like response wrapper."""

    def __init__(self, data: list[dict[str, Any]]) -> None:
        self.data = data


def unique_violation(table: str, columns: tuple[str, ...], values: tuple[Any, ...]) -> APIError:
    constraint = f"{table}_{'_'.join(columns)}_key"
    return APIError(
        {
            "message": f'duplicate key value violates unique constraint "{constraint}"',
            "code": "23505",
            "details": f"Key ({', '.join(columns)})=({', '.join(str(v) for v in values)}) already exists.",
            "hint": None,
        }
    )


def foreign_key_violation(table: str, column: str, value: Any, referenced: str) -> APIError:
    return APIError(
        {
            "message": f'insert or update on table "{table}" violates foreign key constraint "{table}_{column}_fkey"',
            "code": "23503",
            "details": f'Key ({column})=({value}) is not present in table "{referenced}".',
            "hint": None,
        }
    )


class FakeTable:
    """In-memory table with a Supabase-like query builder."""

    def __init__(self, db: "FakeDB", name: str) -> None:
        self._db = db
        self._name = name
        self._store = db.tables[name]
        self._action: str | None = None
        self._payload: dict[str, Any] | None = None
        self._predicates: list[Callable[[dict[str, Any]], bool]] = []
        self._order: str | None = None
        self._limit: int | None = None

    def select(self, *_: str) -> "FakeTable":
        self._action = "select"
        return self

    def insert(self, payload: dict[str, Any]) -> "FakeTable":
        self._action = "insert"
        self._payload = payload
        return self

    def update(self, payload: dict[str, Any]) -> "FakeTable":
        self._action = "update"
        self._payload = payload
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value: Any) -> "FakeTable":
        self._predicates.append(lambda row: str(row.get(column)) == str(value))
        return self

    def in_(self, column: str, values: list[Any]) -> "FakeTable":
        wanted = {str(value) for value in values}
        self._predicates.append(lambda row: str(row.get(column)) in wanted)
        return self

    def or_(self, expression: str) -> "FakeTable":
        conditions = [
            (column, value.replace('\\"', '"').replace("\\\\", "\\"))
            for column, value in _OR_CONDITION.findall(expression)
        ]
        self._predicates.append(
            lambda row: any(str(row.get(column)) == value for column, value in conditions)
        )
        return self

    def order(self, column: str) -> "FakeTable":
        self._order = column
        return self

    def limit(self, size: int) -> "FakeTable":
        self._limit = size
        return self

    def _matching(self) -> list[dict[str, Any]]:
        return [row for row in self._store if all(check(row) for check in self._predicates)]

    def _check_unique(self, candidate: dict[str, Any], ignore: dict[str, Any] | None = None) -> None:
        for columns in UNIQUE_KEYS[self._name]:
            values = tuple(candidate.get(column) for column in columns)
            if any(value is None for value in values):
                continue
            for existing in self._store:
                if existing is ignore:
                    continue
                if tuple(str(existing.get(column)) for column in columns) == tuple(str(v) for v in values):
                    raise unique_violation(self._name, columns, values)

    def _check_references(self, candidate: dict[str, Any]) -> None:
        for column, referenced in FOREIGN_KEYS.get(self._name, {}).items():
            value = candidate.get(column)
            if value is None:
                continue
            if not any(str(row.get("id")) == str(value) for row in self._db.tables[referenced]):
                raise foreign_key_violation(self._name, column, value, referenced)

    def execute(self) -> FakeSupabaseResponse:
        if self._action == "select":
            self._db.check_failure(self._name, "select")
            rows = self._matching()
            if self._order:
                rows = sorted(rows, key=lambda row: str(row.get(self._order)))
            if self._limit is not None:
                rows = rows[: self._limit]
            data = copy.deepcopy(rows)
        elif self._action == "insert":
            self._db.check_failure(self._name, "insert")
            row = copy.deepcopy(self._payload or {})
            row.setdefault("id", str(uuid4()))
            self._check_references(row)
            self._check_unique(row)
            self._store.append(row)
            data = [copy.deepcopy(row)]
        elif self._action == "update":
            self._db.check_failure(self._name, "update")
            rows = self._matching()
            for row in rows:
                self._check_references({**row, **(self._payload or {})})
                self._check_unique({**row, **(self._payload or {})}, ignore=row)
                row.update(copy.deepcopy(self._payload or {}))
            data = copy.deepcopy(rows)
        elif self._action == "delete":
            self._db.check_failure(self._name, "delete")
            rows = self._matching()
            for row in rows:
                self._store.remove(row)
            data = copy.deepcopy(rows)
        else:
            raise ValueError("Unsupported action for FakeTable.")
        return FakeSupabaseResponse(data)


class FakeRpc:
    def __init__(self, db: "FakeDB", name: str, params: dict[str, Any]) -> None:
        self._db = db
        self._name = name
        self._params = params

    def execute(self) -> FakeSupabaseResponse:
        if self._name != "push_user_ticket":
            raise ValueError(f"Unknown function {self._name}")
        self._db.check_failure("users", "rpc")
        for user in self._db.tables["users"]:
            if str(user["id"]) == self._params["user_id"]:
                owned = user.setdefault("tickets", [])
                if self._params["ticket_id"] not in owned:
                    owned.append(self._params["ticket_id"])
                return FakeSupabaseResponse([copy.deepcopy(user)])
        return FakeSupabaseResponse([])


class FakeDB:
    """Simplified Supabase client exposing table(...) and rpc(...)."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {name: [] for name in UNIQUE_KEYS}
        self.failures: set[tuple[str, str]] = set()

    def fail(self, table: str, action: str) -> None:
        self.failures.add((table, action))

    def check_failure(self, table: str, action: str) -> None:
        if (table, action) in self.failures:
            raise APIError({"message": f"{action} on {table} failed", "code": "XX000", "details": None, "hint": None})

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            raise ValueError(f"Unknown table {name}")
        return FakeTable(self, name)

    def rpc(self, name: str, params: dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, name, params)

    def seed(self, table: str, **row: Any) -> dict[str, Any]:
        row.setdefault("id", str(uuid4()))
        if table == "users":
            row.setdefault("tickets", [])
        self.tables[table].append(row)
        return row


def sympla_participant(**overrides: Any) -> dict[str, Any]:
    payload = {
        "id": 9001,
        "order_id": "ORD-77",
        "ticket_number": "C123",
        "ticket_num_qr_code": "QR-C123",
        "ticket_name": "Inteira",
        "first_name": "John",
        "last_name": "",
        "email": "john@example.com",
        "marked_seat_name": "A1",
        "sector_name": "Pista",
        "checkin": [{"check_in": False}],
    }
    payload.update(overrides)
    return payload


@pytest.fixture()
def fake_db() -> FakeDB:
    return FakeDB()


@pytest.fixture()
def sympla_tickets() -> dict[tuple[str, str], dict[str, Any]]:
    """Participants served by the mocked Sympla API, keyed by (event, ticket number)."""
    return {}


@pytest.fixture()
def sympla_requests() -> list[httpx.Request]:
    return []


@pytest.fixture()
def sympla(sympla_tickets, sympla_requests) -> SymplaClient:
    def handler(request: httpx.Request) -> httpx.Response:
        sympla_requests.append(request)
        parts = request.url.path.split("/")
        payload = sympla_tickets.get((parts[-4], parts[-1]))
        if payload is None:
            return httpx.Response(404, json={"message": "Participant not found"})
        return httpx.Response(200, json={"data": payload})

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SymplaClient("test-key", http_client, base_url=SYMPLA_BASE_URL)


@pytest.fixture()
def services(fake_db, sympla) -> Services:
    return build_services(fake_db, sympla)


@pytest.fixture()
def client(services) -> TestClient:
    """Create a TestClient with the services dependency overridden."""

    app = FastAPI()
    app.dependency_overrides[get_services] = lambda: services  # type: ignore[assignment]
    app.include_router(build_graphql_router())
    return TestClient(app)
