"""
Directory operations consumed by the membership engine.

Each method is one logical lookup; paginated collections are fully drained.
Member listings use the type-cast segments (members/microsoft.graph.user and
members/microsoft.graph.group) so Graph filters by object type server-side.
"""

from __future__ import annotations

import logging

from .client import GraphClient
from ..config import USER_SELECT_FIELDS, GROUP_SELECT_FIELDS

logger = logging.getLogger("effective_membership.graph.directory")


def odata_quote(value: str) -> str:
    """Quote a string literal for an OData $filter expression."""
    return "'" + value.replace("'", "''") + "'"


class DirectoryAPI:
    """Group and member lookups against Microsoft Graph."""

    def __init__(self, graph: GraphClient):
        self.graph = graph

    async def get_group(self, group_id: str) -> dict:
        return await self.graph.get(
            f"groups/{group_id}",
            params={"$select": GROUP_SELECT_FIELDS},
        )

    async def list_user_members(self, group_id: str) -> list[dict]:
        return await self.graph.get_all_pages(
            f"groups/{group_id}/members/microsoft.graph.user",
            params={"$select": USER_SELECT_FIELDS},
        )

    async def list_group_members(self, group_id: str) -> list[dict]:
        return await self.graph.get_all_pages(
            f"groups/{group_id}/members/microsoft.graph.group",
            params={"$select": "id,displayName"},
        )

    async def find_groups_by_name(self, name: str) -> list[dict]:
        logger.debug(f"Searching groups with displayName {name!r}")
        return await self.graph.get_all_pages(
            "groups",
            params={
                "$filter": f"displayName eq {odata_quote(name)}",
                "$select": GROUP_SELECT_FIELDS,
            },
        )
