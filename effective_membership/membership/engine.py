"""
Recursive membership engine.

Depth-first walk over nested groups. For each group the order is fixed:
depth guard, cycle guard, mark visited, then fetch. Marking before fetching
is what keeps a group that (transitively) contains itself from being
entered twice.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .models import UserRecord
from .state import TraversalContext
from ..config import DEFAULT_MAX_RETRIES, DEFAULT_BASE_DELAY_SECONDS
from ..graph.retry import call_with_retry

logger = logging.getLogger("effective_membership.membership.engine")


class MembershipEngine:
    """
    Walks the nested-group graph below a root and collects users.

    ``directory`` is any object exposing the DirectoryAPI coroutines
    get_group, list_user_members and list_group_members.
    """

    def __init__(
        self,
        directory: Any,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    ):
        self.directory = directory
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def _call(self, ctx: TraversalContext, description: str, operation):
        return await call_with_retry(
            operation,
            description=description,
            stats=ctx.stats,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
        )

    async def resolve(
        self,
        ctx: TraversalContext,
        group_id: str,
        max_depth: int,
        current_depth: int = 0,
        parent_id: Optional[str] = None,
    ) -> None:
        """Process one group and recurse into its nested groups."""
        if current_depth >= max_depth:
            logger.debug(
                f"Depth limit reached at {group_id} "
                f"(depth {current_depth} >= max {max_depth}); not expanding"
            )
            return

        if ctx.is_visited(group_id):
            logger.debug(f"Group {group_id} already visited; skipping")
            return

        ctx.mark_visited(group_id, current_depth, parent_id)

        try:
            group = await self._call(
                ctx,
                f"get group {group_id}",
                lambda: self.directory.get_group(group_id),
            )
            group_name = group.get("displayName") or ""
            logger.info(f"{'  ' * current_depth}Processing group '{group_name}' ({group_id}) at depth {current_depth}")

            users = await self._call(
                ctx,
                f"list user members of {group_id}",
                lambda: self.directory.list_user_members(group_id),
            )
            added = 0
            for user in users:
                if not user.get("id"):
                    continue
                if user.get("accountEnabled") is False and not ctx.include_disabled:
                    logger.debug(f"Skipping disabled user {user.get('userPrincipalName') or user['id']}")
                    continue
                record = UserRecord.from_graph(user, group_id, group_name, current_depth)
                if ctx.record_user(record):
                    added += 1
            logger.debug(f"Group {group_id}: {len(users)} direct users, {added} new")

            nested = await self._call(
                ctx,
                f"list nested groups of {group_id}",
                lambda: self.directory.list_group_members(group_id),
            )
            logger.debug(f"Group {group_id}: {len(nested)} nested groups")
            for child in nested:
                child_id = child.get("id")
                if child_id:
                    await self.resolve(ctx, child_id, max_depth, current_depth + 1, group_id)

        except Exception as e:
            message = f"Group {group_id}: {e}"
            logger.error(f"Failed to process group {group_id}: {e}")
            ctx.record_error(message)
