"""
Read-only request guard.
Every outbound Graph request passes through here; membership resolution only
ever needs GET, so anything else is refused and recorded.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger("effective_membership.safety")

READ_METHODS = {"GET", "HEAD", "OPTIONS"}

# Membership write endpoints get a dedicated reason in the audit trail
MEMBERSHIP_WRITE_PATTERNS = [
    re.compile(r"/members/\$ref$", re.IGNORECASE),
    re.compile(r"/members/[^/]+/\$ref$", re.IGNORECASE),
    re.compile(r"/owners/\$ref$", re.IGNORECASE),
    re.compile(r"/addMembers?$", re.IGNORECASE),
]


class SafetyViolation(Exception):
    """Raised when a non-read request is attempted."""
    pass


class SafetyGuardian:
    """
    Validates outbound requests and keeps an audit log of refused ones.
    """

    def __init__(self):
        self.violations: list[dict] = []
        self.checks_performed: int = 0
        self.started_at: str = datetime.now(timezone.utc).isoformat()

    def validate_request(self, method: str, url: str, body: Optional[dict] = None) -> bool:
        """
        Return True for read requests, raise SafetyViolation otherwise.
        """
        self.checks_performed += 1
        method_upper = method.upper()

        if method_upper in READ_METHODS:
            return True

        for pattern in MEMBERSHIP_WRITE_PATTERNS:
            if pattern.search(url):
                self._record_violation(method_upper, url, "Membership write blocked")
                raise SafetyViolation(
                    f"SAFETY VIOLATION: Membership write blocked: {method_upper} {url}"
                )

        self._record_violation(method_upper, url, "Write HTTP method blocked")
        raise SafetyViolation(
            f"SAFETY VIOLATION: Write method blocked: {method_upper} {url}"
        )

    def _record_violation(self, method: str, url: str, reason: str):
        violation = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "method": method,
            "url": url,
            "reason": reason,
        }
        self.violations.append(violation)
        logger.critical(f"SAFETY VIOLATION: {reason} — {method} {url}")

    def get_audit_record(self) -> dict:
        """Return the safety audit record for the run report."""
        return {
            "mode": "READ-ONLY",
            "started_at": self.started_at,
            "checks_performed": self.checks_performed,
            "violations_detected": len(self.violations),
            "violations": self.violations,
            "status": "CLEAN" if not self.violations else "VIOLATIONS_DETECTED",
        }
