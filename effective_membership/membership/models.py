"""
Membership data models — structured types produced by a resolution run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


@dataclass
class GroupInfo:
    """Directory group metadata."""
    group_id: str
    display_name: str = ""
    description: Optional[str] = None
    mail: Optional[str] = None
    security_enabled: Optional[bool] = None
    mail_enabled: Optional[bool] = None
    group_types: list[str] = field(default_factory=list)

    @classmethod
    def from_graph(cls, data: dict) -> "GroupInfo":
        return cls(
            group_id=data.get("id", ""),
            display_name=data.get("displayName") or "",
            description=data.get("description"),
            mail=data.get("mail"),
            security_enabled=data.get("securityEnabled"),
            mail_enabled=data.get("mailEnabled"),
            group_types=list(data.get("groupTypes") or []),
        )

    @classmethod
    def placeholder(cls, group_id: str) -> "GroupInfo":
        """Stand-in used when metadata could not be fetched."""
        return cls(group_id=group_id, display_name="Unknown")

    def to_dict(self) -> dict:
        return {
            "id": self.group_id,
            "displayName": self.display_name,
            "description": self.description,
            "mail": self.mail,
            "securityEnabled": self.security_enabled,
            "mailEnabled": self.mail_enabled,
            "groupTypes": self.group_types,
        }


@dataclass
class UserRecord:
    """A user reached through the group graph, with first-discovery provenance."""
    user_id: str
    display_name: str = ""
    user_principal_name: str = ""
    mail: Optional[str] = None
    job_title: Optional[str] = None
    department: Optional[str] = None
    company_name: Optional[str] = None
    account_enabled: bool = True
    source_group_id: str = ""
    source_group_name: str = ""
    discovery_depth: int = 0

    @classmethod
    def from_graph(
        cls,
        data: dict,
        source_group_id: str,
        source_group_name: str,
        depth: int,
    ) -> "UserRecord":
        enabled = data.get("accountEnabled")
        return cls(
            user_id=data["id"],
            display_name=data.get("displayName") or "",
            user_principal_name=data.get("userPrincipalName") or "",
            mail=data.get("mail"),
            job_title=data.get("jobTitle"),
            department=data.get("department"),
            company_name=data.get("companyName"),
            # Graph omits accountEnabled when the caller lacks permission to read it
            account_enabled=True if enabled is None else bool(enabled),
            source_group_id=source_group_id,
            source_group_name=source_group_name,
            discovery_depth=depth,
        )

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "displayName": self.display_name,
            "userPrincipalName": self.user_principal_name,
            "mail": self.mail,
            "jobTitle": self.job_title,
            "department": self.department,
            "companyName": self.company_name,
            "accountEnabled": self.account_enabled,
            "sourceGroupId": self.source_group_id,
            "sourceGroupName": self.source_group_name,
            "discoveryDepth": self.discovery_depth,
        }


@dataclass
class VisitedGroup:
    """A group entered during traversal."""
    group_id: str
    depth: int
    parent_id: Optional[str] = None
    info: Optional[GroupInfo] = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.group_id,
            "depth": self.depth,
            "parentId": self.parent_id,
        }
        if self.info is not None:
            data.update({k: v for k, v in self.info.to_dict().items() if k != "id"})
        return data


@dataclass
class RunStatistics:
    """Counters and timing for one run."""
    groups_processed: int = 0
    api_calls: int = 0
    users_found: int = 0
    errors: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def start(self):
        self.started_at = datetime.now(timezone.utc)

    def finish(self):
        self.finished_at = datetime.now(timezone.utc)

    @property
    def duration_seconds(self) -> float:
        if not self.started_at or not self.finished_at:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict:
        return {
            "groups_processed": self.groups_processed,
            "api_calls": self.api_calls,
            "users_found": self.users_found,
            "errors": self.errors,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": round(self.duration_seconds, 3),
        }


@dataclass
class MembershipResult:
    """Final output of a resolution run."""
    root_group: GroupInfo
    users: list[UserRecord]
    statistics: RunStatistics
    groups: list[VisitedGroup]
    errors: list[str]
    max_depth: int
    include_disabled: bool = False

    @property
    def user_ids(self) -> list[str]:
        return [u.user_id for u in self.users]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> dict:
        return {
            "root_group": self.root_group.to_dict(),
            "options": {
                "max_depth": self.max_depth,
                "include_disabled": self.include_disabled,
            },
            "statistics": self.statistics.to_dict(),
            "users": [u.to_dict() for u in self.users],
            "groups": [g.to_dict() for g in self.groups],
            "errors": list(self.errors),
        }
