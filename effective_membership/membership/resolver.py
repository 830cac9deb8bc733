"""
Group resolver — turns a display name or id into canonical group metadata.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

from .models import GroupInfo
from ..config import DEFAULT_MAX_RETRIES, DEFAULT_BASE_DELAY_SECONDS
from ..errors import GroupNotFound, InvalidGroupIdentifier, RemoteCallFailure
from ..graph.client import GraphAPIError
from ..graph.retry import call_with_retry

logger = logging.getLogger("effective_membership.membership.resolver")

GROUP_ID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def looks_like_group_id(value: str) -> bool:
    return bool(GROUP_ID_PATTERN.match(value.strip()))


def validate_group_id(value: str) -> str:
    """Return the trimmed identifier or raise InvalidGroupIdentifier."""
    candidate = (value or "").strip()
    if not GROUP_ID_PATTERN.match(candidate):
        raise InvalidGroupIdentifier(
            f"Invalid group id {value!r}: expected a GUID like "
            "xxxxxxxx-xxxx-xxxx-xxxx-xxxxxxxxxxxx"
        )
    return candidate


class GroupResolver:
    """Look up groups by display name or id through the directory API."""

    def __init__(
        self,
        directory: Any,
        stats: Optional[Any] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    ):
        self.directory = directory
        self.stats = stats
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def _call(self, description: str, operation):
        return await call_with_retry(
            operation,
            description=description,
            stats=self.stats,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
        )

    async def resolve_name(self, name: str) -> GroupInfo:
        """
        Find the group whose display name equals ``name`` exactly.

        Several groups may share a display name; the first one Graph returns
        is used and a warning is logged.
        """
        matches = await self._call(
            f"search groups named {name!r}",
            lambda: self.directory.find_groups_by_name(name),
        )
        if not matches:
            raise GroupNotFound(f"No group found with display name {name!r}")

        chosen = matches[0]
        if len(matches) > 1:
            logger.warning(
                f"{len(matches)} groups share the display name {name!r}; "
                f"using the first match ({chosen.get('id')})"
            )
        return GroupInfo.from_graph(chosen)

    async def resolve_id(self, group_id: str) -> GroupInfo:
        group_id = validate_group_id(group_id)
        try:
            data = await self._call(
                f"get group {group_id}",
                lambda: self.directory.get_group(group_id),
            )
        except RemoteCallFailure as e:
            if isinstance(e.last_error, GraphAPIError) and e.last_error.status_code == 404:
                raise GroupNotFound(f"No group found with id {group_id}") from e
            raise
        info = GroupInfo.from_graph(data)
        if not info.group_id:
            info.group_id = group_id
        return info

    async def resolve(self, identifier_or_name: str) -> GroupInfo:
        """Resolve a GUID by id, anything else by display name."""
        value = (identifier_or_name or "").strip()
        if not value:
            raise GroupNotFound("Empty group identifier or name")
        if looks_like_group_id(value):
            return await self.resolve_id(value)
        return await self.resolve_name(value)
