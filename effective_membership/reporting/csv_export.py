"""
CSV exporter — users, visited groups and a run summary.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any

USER_FIELDS = [
    "user_id", "display_name", "user_principal_name", "mail", "job_title",
    "department", "company_name", "account_enabled", "source_group_id",
    "source_group_name", "discovery_depth",
]

GROUP_FIELDS = [
    "group_id", "display_name", "depth", "parent_id", "description",
    "mail", "security_enabled", "mail_enabled", "group_types",
]


def export_csv(
    result: Any,
    output_dir: Path,
    run_id: str,
) -> list[Path]:
    """
    Write CSV files for users, groups and the run summary.

    Returns:
        List of created CSV file paths.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    created = []

    users_path = output_dir / f"users_{run_id}.csv"
    with open(users_path, "w", newline="", encoding="utf-8-sig") as fh:
        writer = csv.DictWriter(fh, fieldnames=USER_FIELDS)
        writer.writeheader()
        for u in result.users:
            writer.writerow({field: getattr(u, field, "") for field in USER_FIELDS})
    created.append(users_path)

    groups_path = output_dir / f"groups_{run_id}.csv"
    with open(groups_path, "w", newline="", encoding="utf-8-sig") as fh:
        writer = csv.DictWriter(fh, fieldnames=GROUP_FIELDS)
        writer.writeheader()
        for g in result.groups:
            info = g.info
            writer.writerow({
                "group_id": g.group_id,
                "display_name": info.display_name if info else "",
                "depth": g.depth,
                "parent_id": g.parent_id or "",
                "description": (info.description or "") if info else "",
                "mail": (info.mail or "") if info else "",
                "security_enabled": info.security_enabled if info else "",
                "mail_enabled": info.mail_enabled if info else "",
                "group_types": ";".join(info.group_types) if info else "",
            })
    created.append(groups_path)

    summary_path = output_dir / f"summary_{run_id}.csv"
    stats = result.statistics
    with open(summary_path, "w", newline="", encoding="utf-8-sig") as fh:
        writer = csv.writer(fh)
        writer.writerow(["metric", "value"])
        writer.writerow(["root_group_id", result.root_group.group_id])
        writer.writerow(["root_group_name", result.root_group.display_name])
        writer.writerow(["max_depth", result.max_depth])
        writer.writerow(["include_disabled", result.include_disabled])
        writer.writerow(["users_found", len(result.users)])
        writer.writerow(["groups_processed", stats.groups_processed])
        writer.writerow(["api_calls", stats.api_calls])
        writer.writerow(["errors", stats.errors])
        writer.writerow(["duration_seconds", round(stats.duration_seconds, 3)])
        for i, message in enumerate(result.errors, 1):
            writer.writerow([f"error_{i}", message])
    created.append(summary_path)

    return created
