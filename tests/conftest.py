"""Shared fixtures: an in-memory directory with fault injection."""

from __future__ import annotations

from typing import Optional

import pytest

from effective_membership.auth.authenticator import SessionInfo
from effective_membership.graph import retry
from effective_membership.graph.client import GraphAPIError

GROUP_G = "11111111-1111-1111-1111-111111111111"
GROUP_H = "22222222-2222-2222-2222-222222222222"
GROUP_K = "33333333-3333-3333-3333-333333333333"
GROUP_L = "44444444-4444-4444-4444-444444444444"
GROUP_M = "55555555-5555-5555-5555-555555555555"


def make_user(user_id: str, name: str, enabled: bool = True, **extra) -> dict:
    data = {
        "id": user_id,
        "displayName": name,
        "userPrincipalName": f"{user_id}@contoso.com",
        "mail": f"{user_id}@contoso.com",
        "jobTitle": "Engineer",
        "department": "R&D",
        "companyName": "Contoso",
        "accountEnabled": enabled,
    }
    data.update(extra)
    return data


class FakeDirectory:
    """
    Group graph held in memory.

    groups: id -> {"name": str, "users": [user dicts], "groups": [child ids]}
    Every call is logged as (operation, argument) in ``calls``.
    """

    def __init__(self):
        self.groups: dict[str, dict] = {}
        self.calls: list[tuple[str, str]] = []
        self._faults: dict[tuple[str, str], list] = {}
        self._permanent: dict[tuple[str, str], Exception] = {}

    def add_group(self, group_id: str, name: str, users=(), groups=(), **extra):
        self.groups[group_id] = {
            "name": name,
            "users": list(users),
            "groups": list(groups),
            "extra": extra,
        }
        return self

    def fail(self, group_id: str, operation: str, error: Exception, times: Optional[int] = None):
        """Make ``operation`` on ``group_id`` raise ``error`` (``times`` times, or always)."""
        if times is None:
            self._permanent[(group_id, operation)] = error
        else:
            self._faults.setdefault((group_id, operation), []).extend([error] * times)

    def calls_for(self, group_id: str) -> list[str]:
        return [op for op, arg in self.calls if arg == group_id]

    def _enter(self, operation: str, key: str):
        self.calls.append((operation, key))
        pending = self._faults.get((key, operation))
        if pending:
            raise pending.pop(0)
        if (key, operation) in self._permanent:
            raise self._permanent[(key, operation)]

    def _group(self, group_id: str) -> dict:
        group = self.groups.get(group_id)
        if group is None:
            raise GraphAPIError(
                404,
                "Request_ResourceNotFound: Resource does not exist",
                f"https://graph.microsoft.com/v1.0/groups/{group_id}",
            )
        return group

    def _group_json(self, group_id: str) -> dict:
        group = self._group(group_id)
        return {
            "id": group_id,
            "displayName": group["name"],
            "description": group["extra"].get("description"),
            "mail": group["extra"].get("mail"),
            "securityEnabled": True,
            "mailEnabled": False,
            "groupTypes": [],
        }

    async def get_group(self, group_id: str) -> dict:
        self._enter("get_group", group_id)
        return self._group_json(group_id)

    async def list_user_members(self, group_id: str) -> list[dict]:
        self._enter("list_user_members", group_id)
        return list(self._group(group_id)["users"])

    async def list_group_members(self, group_id: str) -> list[dict]:
        self._enter("list_group_members", group_id)
        return [
            {"id": child, "displayName": self.groups.get(child, {}).get("name", "")}
            for child in self._group(group_id)["groups"]
        ]

    async def find_groups_by_name(self, name: str) -> list[dict]:
        self._enter("find_groups_by_name", name)
        return [self._group_json(gid) for gid, g in self.groups.items() if g["name"] == name]


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture
def cyclic_directory() -> FakeDirectory:
    """G has users {A, B} and nested H; H has user B and nested G."""
    d = FakeDirectory()
    d.add_group(
        GROUP_G, "Group G",
        users=[make_user("user-a", "Alice"), make_user("user-b", "Bob")],
        groups=[GROUP_H],
    )
    d.add_group(
        GROUP_H, "Group H",
        users=[make_user("user-b", "Bob")],
        groups=[GROUP_G],
    )
    return d


@pytest.fixture
def session() -> SessionInfo:
    return SessionInfo(is_authorized=True, identity="app:test", mode="secret")


@pytest.fixture(autouse=True)
def sleeps(monkeypatch) -> list[float]:
    """Replace the backoff sleep with a recorder."""
    recorded: list[float] = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(retry, "_sleep", fake_sleep)
    return recorded
