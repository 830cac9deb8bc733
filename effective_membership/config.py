"""
Configuration module for the Effective Group Membership Resolver.
Defines tunable traversal parameters, Graph API settings and output options.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


# ─── Tenant Authentication ───────────────────────────────────────────────────

@dataclass
class CertificateAuth:
    """Certificate-based app-only authentication configuration."""
    tenant_id: str
    client_id: str
    certificate_path: str          # Path to base64-encoded PFX
    certificate_password: str = "" # Falls back to env var, then prompt

@dataclass
class ClientSecretAuth:
    """Client-secret app-only authentication configuration."""
    tenant_id: str
    client_id: str
    client_secret: str = ""        # Falls back to env var

@dataclass
class DelegatedAuth:
    """Delegated (device code) authentication configuration."""
    tenant_id: str
    client_id: str
    scopes: list[str] = field(default_factory=lambda: [
        "GroupMember.Read.All",
        "User.Read.All",
    ])

@dataclass
class AuthConfig:
    """Authentication configuration — "certificate", "secret" or "delegated"."""
    mode: str = "certificate"
    certificate: Optional[CertificateAuth] = None
    secret: Optional[ClientSecretAuth] = None
    delegated: Optional[DelegatedAuth] = None


CERT_PASSWORD_ENV = "EFFECTIVE_MEMBERSHIP_CERT_PASSWORD"
CLIENT_SECRET_ENV = "EFFECTIVE_MEMBERSHIP_CLIENT_SECRET"


# ─── Graph API Settings ─────────────────────────────────────────────────────

GRAPH_BASE_URL = "https://graph.microsoft.com"
GRAPH_API_VERSION = "v1.0"

# Pagination
DEFAULT_PAGE_SIZE = 999           # Maximum items per page ($top)
MAX_PAGES_PER_ENDPOINT = 10000    # Safety cap on pagination loops

# HTTP timeouts (seconds)
REQUEST_TIMEOUT_SECONDS = 60.0
CONNECT_TIMEOUT_SECONDS = 30.0

# Retry wrapper defaults
DEFAULT_MAX_RETRIES = 3           # Total attempts per remote lookup
DEFAULT_BASE_DELAY_SECONDS = 1.0  # Backoff base; doubled per attempt

USER_SELECT_FIELDS = (
    "id,displayName,userPrincipalName,mail,jobTitle,"
    "department,companyName,accountEnabled"
)
GROUP_SELECT_FIELDS = (
    "id,displayName,description,mail,mailEnabled,securityEnabled,groupTypes"
)


# ─── Traversal Settings ─────────────────────────────────────────────────────

MIN_DEPTH = 1
MAX_DEPTH = 50
DEFAULT_MAX_DEPTH = 10


@dataclass
class TraversalConfig:
    """Controls for a membership resolution run."""
    max_depth: int = DEFAULT_MAX_DEPTH
    include_disabled: bool = False        # Keep disabled accounts in the output
    include_group_info: bool = False      # Enrich visited groups with metadata
    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS
    page_size: int = DEFAULT_PAGE_SIZE


# ─── Output Configuration ───────────────────────────────────────────────────

@dataclass
class OutputConfig:
    """Output directory and format settings."""
    base_dir: str = ""
    timestamp: str = ""
    formats: list[str] = field(default_factory=lambda: ["json", "csv"])

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        if not self.base_dir:
            self.base_dir = os.path.join(
                os.getcwd(),
                f"effective_membership_{self.timestamp}"
            )

    @property
    def run_dir(self) -> Path:
        return Path(self.base_dir)


# ─── Master Configuration ───────────────────────────────────────────────────

@dataclass
class EngineConfig:
    """Top-level configuration for the resolver."""
    auth: AuthConfig = field(default_factory=AuthConfig)
    traversal: TraversalConfig = field(default_factory=TraversalConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    verbose: bool = False

    @classmethod
    def from_file(cls, path: str | Path) -> "EngineConfig":
        """Load configuration from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        config = cls()
        if "auth" in data:
            auth_data = data["auth"]
            config.auth.mode = auth_data.get("mode", "certificate")
            if "certificate" in auth_data:
                c = auth_data["certificate"]
                config.auth.certificate = CertificateAuth(
                    tenant_id=c["tenant_id"],
                    client_id=c["client_id"],
                    certificate_path=c.get("certificate_path", "./base64.txt"),
                    certificate_password=c.get("certificate_password", ""),
                )
            if "secret" in auth_data:
                s = auth_data["secret"]
                config.auth.secret = ClientSecretAuth(
                    tenant_id=s["tenant_id"],
                    client_id=s["client_id"],
                    client_secret=s.get("client_secret", ""),
                )
            if "delegated" in auth_data:
                d = auth_data["delegated"]
                config.auth.delegated = DelegatedAuth(
                    tenant_id=d["tenant_id"],
                    client_id=d["client_id"],
                )
                if d.get("scopes"):
                    config.auth.delegated.scopes = list(d["scopes"])
        if "traversal" in data:
            for k, v in data["traversal"].items():
                if hasattr(config.traversal, k):
                    setattr(config.traversal, k, v)
        if "output" in data:
            for k, v in data["output"].items():
                if hasattr(config.output, k):
                    setattr(config.output, k, v)
        config.verbose = data.get("verbose", False)
        return config


# ─── Required Graph API Permissions (Least Privilege, Read-Only) ─────────

REQUIRED_PERMISSIONS = {
    "GroupMember.Read.All": "Read group metadata and direct group members",
    "User.Read.All": "Read profile attributes of member users",
}
