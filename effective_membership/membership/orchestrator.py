"""
Run orchestrator — drives one effective-membership resolution end to end.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from .engine import MembershipEngine
from .models import GroupInfo, MembershipResult
from .resolver import GroupResolver, validate_group_id
from .state import TraversalContext
from ..config import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_RETRIES,
    DEFAULT_BASE_DELAY_SECONDS,
    MIN_DEPTH,
    MAX_DEPTH,
)
from ..errors import InvalidMaxDepth, SessionNotAuthorized
from ..graph.retry import call_with_retry

logger = logging.getLogger("effective_membership.membership.orchestrator")


def validate_max_depth(max_depth: int) -> int:
    if isinstance(max_depth, bool) or not isinstance(max_depth, int):
        raise InvalidMaxDepth(f"max_depth must be an integer, got {max_depth!r}")
    if not MIN_DEPTH <= max_depth <= MAX_DEPTH:
        raise InvalidMaxDepth(
            f"max_depth must be between {MIN_DEPTH} and {MAX_DEPTH}, got {max_depth}"
        )
    return max_depth


class MembershipOrchestrator:
    """
    Resolves the effective membership of one root group per call to run().

    ``session`` must expose a boolean ``is_authorized`` attribute (see
    auth.authenticator.SessionInfo). ``directory`` exposes the DirectoryAPI
    coroutines.
    """

    def __init__(
        self,
        directory: Any,
        session: Any,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
    ):
        self.directory = directory
        self.session = session
        self.max_retries = max_retries
        self.base_delay = base_delay

    def _check_session(self):
        if not getattr(self.session, "is_authorized", False):
            raise SessionNotAuthorized(
                "No active, authorized directory session. Authenticate before resolving membership."
            )

    async def run(
        self,
        root: str,
        max_depth: int = DEFAULT_MAX_DEPTH,
        include_disabled: bool = False,
        include_group_info: bool = False,
        root_is_name: Optional[bool] = None,
    ) -> MembershipResult:
        """
        Resolve the effective membership of ``root``.

        ``root`` is a group id or display name; ``root_is_name`` forces one
        interpretation, otherwise GUID-shaped input is treated as an id.
        Raises only for precondition failures; per-group failures end up in
        the result's error list.
        """
        self._check_session()
        validate_max_depth(max_depth)
        if root_is_name is False:
            root = validate_group_id(root)

        ctx = TraversalContext(include_disabled=include_disabled)
        resolver = GroupResolver(
            self.directory,
            stats=ctx.stats,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
        )
        if root_is_name:
            root_group = await resolver.resolve_name(root)
        else:
            root_group = await resolver.resolve(root)

        logger.info(
            f"Resolving effective membership of '{root_group.display_name}' "
            f"({root_group.group_id}), max depth {max_depth}"
        )

        engine = MembershipEngine(
            self.directory,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
        )
        ctx.stats.start()
        await engine.resolve(ctx, root_group.group_id, max_depth, 0)
        ctx.stats.finish()

        if include_group_info:
            await self._enrich_groups(ctx)

        users = sorted(ctx.users.values(), key=lambda u: u.display_name or "")
        logger.info(
            f"Resolution complete: {len(users)} users across "
            f"{ctx.stats.groups_processed} groups, {ctx.stats.errors} errors, "
            f"{ctx.stats.api_calls} API calls in {ctx.stats.duration_seconds:.1f}s"
        )

        return MembershipResult(
            root_group=root_group,
            users=users,
            statistics=ctx.stats,
            groups=list(ctx.visit_order),
            errors=list(ctx.errors),
            max_depth=max_depth,
            include_disabled=include_disabled,
        )

    async def _enrich_groups(self, ctx: TraversalContext):
        """Attach metadata to each visited group; failures become placeholders."""
        for visited in ctx.visit_order:
            group_id = visited.group_id
            try:
                data = await call_with_retry(
                    lambda: self.directory.get_group(group_id),
                    description=f"get group info {group_id}",
                    stats=ctx.stats,
                    max_retries=self.max_retries,
                    base_delay=self.base_delay,
                )
                info = GroupInfo.from_graph(data)
                info.group_id = info.group_id or group_id
                visited.info = info
            except Exception as e:
                logger.warning(f"Could not load details for group {group_id}: {e}")
                visited.info = GroupInfo.placeholder(group_id)
