#!/usr/bin/env python3

from models import ActionStatus, ActionType, SyncPlan, SyncResult


CATEGORIES = {
    "Teams": [ActionType.TEAM_CREATE, ActionType.TEAM_DELETE],
    "Team Membership": [ActionType.TEAM_MEMBER_SET, ActionType.TEAM_MEMBER_REMOVE],
    "Team Permissions": [ActionType.TEAM_REPO_SET, ActionType.TEAM_REPO_REMOVE],
}


def format_plan_markdown(plan: SyncPlan, dry_run: bool = True) -> str:
    lines = []
    title = "Team Sync Plan" if dry_run else "Team Sync"
    lines.append(f"## {title} — `{plan.org_name}`")
    lines.append("")

    if not plan.has_changes and not plan.warnings:
        lines.append("**No changes detected** — teams are in sync with config.")
        lines.append("")
        lines.append(f"> Generated at {plan.timestamp}")
        return "\n".join(lines)

    lines.append(f"**{plan.summary}**")
    lines.append("")

    for category, action_types in CATEGORIES.items():
        actions = plan.of_type(*action_types)
        if not actions:
            continue

        lines.append(f"### {category}")
        lines.append("")
        lines.append("```diff")
        for action in actions:
            prefix = {"+": "+", "-": "-", "~": "!"}.get(action.symbol, " ")
            lines.append(f"{prefix} {action.description}")
        lines.append("```")
        lines.append("")

    if plan.warnings:
        lines.append("### Warnings")
        lines.append("")
        for warning in plan.warnings:
            lines.append(f"- {warning}")
        lines.append("")

    lines.append("---")
    lines.append(f"> Generated at {plan.timestamp} | {len(plan.actions)} operations")

    return "\n".join(lines)


def format_plan_terminal(plan: SyncPlan) -> str:
    lines = []
    lines.append("=" * 60)
    lines.append(f"  Team Sync Plan: {plan.org_name}")
    lines.append("=" * 60)
    lines.append("")

    if not plan.has_changes:
        lines.append("  No changes — teams are in sync.")
    else:
        lines.append(f"  {plan.summary}")
        lines.append("")
        for action in plan.actions:
            lines.append(f"  {action.symbol} {action.description}")

    if plan.warnings:
        lines.append("")
        lines.append("  WARNINGS:")
        for w in plan.warnings:
            lines.append(f"    - {w}")

    lines.append("=" * 60)

    return "\n".join(lines)


def format_result_terminal(result: SyncResult) -> str:
    lines = []
    mode = "DRY RUN" if result.dry_run else "LIVE"
    lines.append(f"=== Sync Result ({mode}) ===")
    lines.append(f"Applied:  {result.success_count}")
    lines.append(f"Skipped:  {result.skipped_count}")
    lines.append(f"Warnings: {result.warning_count}")
    if result.error:
        lines.append(f"Failed:   {result.failed_count}")
        lines.append(f"Aborted:  {result.error}")

    if result.plan.warnings:
        lines.append("")
        for w in result.plan.warnings:
            lines.append(f"  ! {w}")

    return "\n".join(lines)


def format_step_summary(result: SyncResult) -> str:
    lines = []
    mode = "Dry Run" if result.dry_run else "Live"

    lines.append(f"## Team Sync — {mode}")
    lines.append("")
    lines.append("| Metric | Count |")
    lines.append("|--------|-------|")
    lines.append(f"| Applied | {result.success_count} |")
    lines.append(f"| Simulated | {result.skipped_count} |")
    lines.append(f"| Warnings | {result.warning_count} |")
    lines.append("")

    if result.error:
        lines.append(f"**Aborted:** {result.error}")
        lines.append("")

    warned = [a for a in result.plan.actions if a.status == ActionStatus.WARNING]
    if warned:
        lines.append("### Not applied")
        lines.append("")
        for a in warned:
            lines.append(f"- {a.description}")
        lines.append("")

    lines.append(format_plan_markdown(result.plan, dry_run=result.dry_run))

    return "\n".join(lines)
