"""
Traversal state for a single resolution run.

A TraversalContext is created fresh by the orchestrator and handed to every
recursive engine call. It is not safe to share between concurrent tasks:
the visited check-and-insert and the user insert are plain dict operations.
"""

from __future__ import annotations

import logging
from typing import Optional

from .models import RunStatistics, UserRecord, VisitedGroup

logger = logging.getLogger("effective_membership.membership.state")


class TraversalContext:
    """Visited groups, discovered users, statistics and the error log."""

    def __init__(self, include_disabled: bool = False):
        self.include_disabled = include_disabled
        self.visited: dict[str, bool] = {}
        self.visit_order: list[VisitedGroup] = []
        self.users: dict[str, UserRecord] = {}
        self.stats = RunStatistics()
        self.errors: list[str] = []

    def is_visited(self, group_id: str) -> bool:
        return group_id in self.visited

    def mark_visited(self, group_id: str, depth: int, parent_id: Optional[str] = None) -> bool:
        """
        Insert a group into the visited set.
        Returns False (and changes nothing) if it was already present.
        """
        if group_id in self.visited:
            return False
        self.visited[group_id] = True
        self.visit_order.append(VisitedGroup(group_id=group_id, depth=depth, parent_id=parent_id))
        self.stats.groups_processed += 1
        return True

    def record_user(self, user: UserRecord) -> bool:
        """
        Store a user unless one with the same id is already known.
        The first discovery is kept; later paths never overwrite it.
        """
        existing = self.users.get(user.user_id)
        if existing is not None:
            logger.debug(
                f"User {user.user_id} already found via group "
                f"{existing.source_group_id} at depth {existing.discovery_depth}"
            )
            return False
        self.users[user.user_id] = user
        self.stats.users_found += 1
        return True

    def record_error(self, message: str):
        self.errors.append(message)
        self.stats.errors += 1
