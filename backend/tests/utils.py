from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Any


class FakeBilling:
    """In-memory stand-ins for the auth, customer, subscription and Stripe collaborators."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}
        self.customers: dict[str, str] = {}
        self.subscriptions: dict[str, dict[str, Any]] = {}
        self.sessions: list[dict[str, Any]] = []
        self.calls: list[str] = []
        self.session_error: Exception | None = None

    def add_user(self, token: str = "valid-token", email: str = "buyer@example.com") -> dict[str, Any]:
        user = {"id": str(uuid.uuid4()), "email": email}
        self.users[token] = user
        return user

    async def resolve_user(self, token: str) -> dict[str, Any] | None:
        self.calls.append("resolve_user")
        return self.users.get(token)

    async def get_or_create_customer(self, user: dict[str, Any]) -> str:
        self.calls.append("get_or_create_customer")
        return self.customers.setdefault(user["id"], f"cus_{uuid.uuid4().hex[:10]}")

    async def get_active_subscription(self, user: dict[str, Any]) -> dict[str, Any] | None:
        self.calls.append("get_active_subscription")
        return self.subscriptions.get(user["id"])

    async def create_session(self, params: dict[str, Any]) -> str:
        self.calls.append("create_session")
        if self.session_error is not None:
            raise self.session_error
        self.sessions.append(params)
        return f"cs_test_{len(self.sessions)}"

    def collaborators(self) -> dict[str, Any]:
        return {
            "resolve_user": self.resolve_user,
            "get_or_create_customer": self.get_or_create_customer,
            "get_active_subscription": self.get_active_subscription,
            "create_session": self.create_session,
        }


class FakeCursor:
    """Records executed SQL and replays queued fetchone() rows."""

    def __init__(self, rows: list[Any] | None = None, error: Exception | None = None) -> None:
        self.rows = list(rows or [])
        self.error = error
        self.executed: list[tuple[str, tuple[Any, ...]]] = []

    async def execute(self, query: str, params: tuple[Any, ...] = ()) -> None:
        self.executed.append((" ".join(query.split()), params))
        if self.error is not None:
            raise self.error

    async def fetchone(self) -> Any:
        return self.rows.pop(0) if self.rows else None


def fake_get_conn(cursor: FakeCursor):
    @asynccontextmanager
    async def _get_conn():
        yield cursor

    return _get_conn
