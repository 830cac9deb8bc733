from .models import GroupInfo, UserRecord, VisitedGroup, RunStatistics, MembershipResult
from .state import TraversalContext
from .engine import MembershipEngine
from .resolver import GroupResolver, validate_group_id, looks_like_group_id
from .orchestrator import MembershipOrchestrator, validate_max_depth

__all__ = [
    "GroupInfo",
    "UserRecord",
    "VisitedGroup",
    "RunStatistics",
    "MembershipResult",
    "TraversalContext",
    "MembershipEngine",
    "GroupResolver",
    "validate_group_id",
    "looks_like_group_id",
    "MembershipOrchestrator",
    "validate_max_depth",
]
