"""
JSON exporter — writes the complete membership result.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from .. import __version__


def export_json(
    result: Any,
    output_dir: Path,
    run_id: str,
    safety_audit: Optional[dict] = None,
) -> Path:
    """
    Write the run result to a JSON file.

    Returns:
        Path to the created JSON file.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    payload = {
        "metadata": {
            "engine": "Effective Group Membership Resolver",
            "version": __version__,
            "run_id": run_id,
            "generated_utc": datetime.now(timezone.utc).isoformat(),
            "mode": "READ-ONLY",
        },
        **result.to_dict(),
    }
    if safety_audit is not None:
        payload["safety"] = safety_audit

    filepath = output_dir / f"effective_membership_{run_id}.json"
    with open(filepath, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2, default=str, ensure_ascii=False)

    return filepath
