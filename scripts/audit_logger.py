#!/usr/bin/env python3
"""Audit logger for team sync runs.

Writes an append-only JSON Lines file recording every action issued
(or simulated) against the GitHub organization.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from models import SyncAction, SyncResult


class AuditLogger:
    """Writes audit records in JSON Lines format."""

    def __init__(self, log_dir: str = ".", prefix: str = "sync_audit"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self.log_file = self.log_dir / f"{prefix}_{timestamp}.jsonl"
        self.records: list[dict] = []

    def log_action(self, action: SyncAction, org_name: str, dry_run: bool = False) -> None:
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "org": org_name,
            "dry_run": dry_run,
            "action_type": action.action_type.value,
            "team": action.team,
            "details": action.details,
            "status": action.status.value,
            "message": action.message,
            "error": action.error,
        }
        self.records.append(record)
        self._append_record(record)

    def log_result(self, result: SyncResult) -> None:
        """Log a run summary followed by each of its actions."""
        plan = result.plan
        self._append_record({
            "timestamp": result.executed_at,
            "type": "sync_summary",
            "org": plan.org_name,
            "dry_run": result.dry_run,
            "success_count": result.success_count,
            "skipped_count": result.skipped_count,
            "failed_count": result.failed_count,
            "error": result.error,
            "warnings": plan.warnings,
            "total_actions": len(plan.actions),
        })
        for action in plan.actions:
            self.log_action(action, plan.org_name, result.dry_run)

    def _append_record(self, record: dict) -> None:
        try:
            with open(self.log_file, "a") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            logging.error(f"Failed to write audit log: {e}")

    @property
    def log_path(self) -> str:
        return str(self.log_file)

    def get_summary(self) -> str:
        """Return a human-readable summary of logged actions."""
        counts = {}
        for r in self.records:
            counts[r.get("status")] = counts.get(r.get("status"), 0) + 1
        return (
            f"Audit log: {self.log_file}\n"
            f"  Records: {len(self.records)}\n"
            f"  Success: {counts.get('success', 0)} | "
            f"Skipped: {counts.get('skipped', 0)} | "
            f"Warning: {counts.get('warning', 0)} | "
            f"Failed: {counts.get('failed', 0)}"
        )
