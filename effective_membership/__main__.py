"""
Effective Group Membership Resolver — command line entry point

Usage:
    python -m effective_membership --group-id <GUID> --tenant-id ... --client-id ...
    python -m effective_membership --group-name "All Engineering" --config config.json
    python -m effective_membership --group-name "Sales" --delegated --tenant-id ... --client-id ...
    python -m effective_membership --group-id <GUID> --max-depth 5 --include-disabled --include-group-info

This tool is STRICTLY READ-ONLY. It never modifies group memberships.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from . import __version__
from .auth.authenticator import Authenticator, AuthenticationError
from .config import (
    EngineConfig,
    CertificateAuth,
    ClientSecretAuth,
    DelegatedAuth,
    DEFAULT_MAX_DEPTH,
)
from .errors import MembershipError
from .graph.client import GraphClient
from .graph.directory import DirectoryAPI
from .membership import (
    MembershipOrchestrator,
    MembershipResult,
    validate_group_id,
    validate_max_depth,
)
from .reporting import export_json, export_csv
from .safety.guardian import SafetyGuardian


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="effective_membership",
        description="Resolve the effective (transitive) user membership of a directory group (READ-ONLY)",
    )

    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--group-id", help="Object id (GUID) of the root group")
    target.add_argument("--group-name", help="Exact display name of the root group")

    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help=f"Maximum nesting depth to expand, 1-50 (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "--include-disabled",
        action="store_true",
        help="Include disabled user accounts in the output",
    )
    parser.add_argument(
        "--include-group-info",
        action="store_true",
        help="Fetch metadata for every visited group",
    )
    parser.add_argument("--config", "-c", type=Path, help="Path to JSON configuration file")
    parser.add_argument(
        "--delegated",
        action="store_true",
        help="Use delegated (device-code) authentication",
    )
    parser.add_argument(
        "--client-secret",
        action="store_true",
        help="Use client-secret authentication (secret read from the environment)",
    )
    parser.add_argument("--tenant-id", help="Tenant ID (GUID)")
    parser.add_argument("--client-id", help="App registration client ID (GUID)")
    parser.add_argument("--cert-path", type=Path, help="Path to base64-encoded PFX certificate")
    parser.add_argument(
        "--output-dir", "-o",
        type=Path,
        default=None,
        help="Output directory for exports (default: ./effective_membership_<timestamp>)",
    )
    parser.add_argument(
        "--formats",
        nargs="+",
        choices=["json", "csv"],
        default=None,
        help="Export formats to generate (default: json csv)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> EngineConfig:
    """Build configuration from a config file overlaid with CLI arguments."""
    if args.config:
        config = EngineConfig.from_file(args.config)
    else:
        config = EngineConfig()

    if args.delegated:
        config.auth.mode = "delegated"
    elif args.client_secret:
        config.auth.mode = "secret"

    tenant_id = args.tenant_id
    client_id = args.client_id
    if tenant_id and client_id:
        if config.auth.mode == "delegated":
            config.auth.delegated = DelegatedAuth(tenant_id=tenant_id, client_id=client_id)
        elif config.auth.mode == "secret":
            config.auth.secret = ClientSecretAuth(tenant_id=tenant_id, client_id=client_id)
        else:
            config.auth.certificate = CertificateAuth(
                tenant_id=tenant_id,
                client_id=client_id,
                certificate_path=str(args.cert_path or "./base64.txt"),
            )
    if args.cert_path and config.auth.certificate:
        config.auth.certificate.certificate_path = str(args.cert_path)

    if args.max_depth is not None:
        config.traversal.max_depth = args.max_depth
    if args.include_disabled:
        config.traversal.include_disabled = True
    if args.include_group_info:
        config.traversal.include_group_info = True
    if args.output_dir:
        config.output.base_dir = str(args.output_dir)
    if args.formats is not None:
        config.output.formats = list(args.formats)
    if args.verbose:
        config.verbose = True
    return config


def configure_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def print_summary(result: MembershipResult, http_stats: Optional[dict] = None):
    stats = result.statistics
    print("\n" + "=" * 70)
    print(" RESOLUTION COMPLETE")
    print("=" * 70)
    print(f"  Root group:        {result.root_group.display_name} ({result.root_group.group_id})")
    print(f"  Users found:       {len(result.users)}")
    print(f"  Groups processed:  {stats.groups_processed}")
    print(f"  API calls:         {stats.api_calls}")
    if http_stats:
        print(f"  HTTP requests:     {http_stats['total_requests']} ({http_stats['pages_fetched']} pages)")
    print(f"  Errors:            {stats.errors}")
    print(f"  Duration:          {stats.duration_seconds:.1f}s")
    if result.errors:
        print("\n  ⚠  Some groups could not be fully processed:")
        for message in result.errors:
            print(f"      {message}")


async def main_async(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    config = build_config(args)
    configure_logging(config.verbose)

    print("=" * 70)
    print(f" Effective Group Membership Resolver v{__version__}")
    print(" Mode: READ-ONLY — No memberships will be modified")
    print("=" * 70)

    try:
        validate_max_depth(config.traversal.max_depth)
        if args.group_id:
            validate_group_id(args.group_id)
    except MembershipError as e:
        print(f"❌ {e}")
        return 1

    run_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:8]

    print("\n🔐 Authenticating...")
    authenticator = Authenticator(config.auth)
    try:
        token = await authenticator.acquire_token()
    except AuthenticationError as e:
        print(f"❌ Authentication failed: {e}")
        print("   The app registration needs these Graph permissions:")
        for permission, purpose in Authenticator.list_required_permissions().items():
            print(f"     • {permission}: {purpose}")
        return 1
    if not token:
        print("❌ Authentication failed. Exiting.")
        return 1
    print(f"✅ Authenticated as {authenticator.session.identity}.")

    guardian = SafetyGuardian()
    traversal = config.traversal
    async with GraphClient(token, guardian=guardian, page_size=traversal.page_size) as client:
        orchestrator = MembershipOrchestrator(
            DirectoryAPI(client),
            authenticator.session,
            max_retries=traversal.max_retries,
            base_delay=traversal.base_delay_seconds,
        )
        root = args.group_id if args.group_id else args.group_name
        print(f"\n🔎 Resolving effective membership of {root!r} (max depth {traversal.max_depth})...")
        try:
            result = await orchestrator.run(
                root,
                max_depth=traversal.max_depth,
                include_disabled=traversal.include_disabled,
                include_group_info=traversal.include_group_info,
                root_is_name=args.group_name is not None,
            )
        except MembershipError as e:
            print(f"❌ {e}")
            return 1
        http_stats = client.get_stats()

    print_summary(result, http_stats)

    output_dir = config.output.run_dir
    formats = config.output.formats
    if formats:
        print()
    if "json" in formats:
        path = export_json(result, output_dir, run_id, guardian.get_audit_record())
        print(f"  📄 JSON:  {path}")
    if "csv" in formats:
        for p in export_csv(result, output_dir, run_id):
            print(f"  📊 CSV:   {p}")
    print()
    return 0


def main():
    """Synchronous entry point for `python -m effective_membership`."""
    sys.exit(asyncio.run(main_async()))


if __name__ == "__main__":
    main()
