#!/usr/bin/env python3
"""Data models for GitHub team synchronization.

Provides type-safe representations of desired teams (from config),
observed teams (from the GitHub API), and the sync actions that
converge one onto the other.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union


# --- Enums ---

class TeamPrivacy(str, Enum):
    CLOSED = "closed"
    SECRET = "secret"

class TeamMemberRole(str, Enum):
    MAINTAINER = "maintainer"
    MEMBER = "member"

class RepoPermission(str, Enum):
    PULL = "pull"
    TRIAGE = "triage"
    PUSH = "push"
    MAINTAIN = "maintain"
    ADMIN = "admin"

class ActionType(str, Enum):
    TEAM_CREATE = "team_create"
    TEAM_DELETE = "team_delete"
    TEAM_MEMBER_SET = "team_member_set"
    TEAM_MEMBER_REMOVE = "team_member_remove"
    TEAM_REPO_SET = "team_repo_set"
    TEAM_REPO_REMOVE = "team_repo_remove"

class ActionStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    SKIPPED = "skipped"
    WARNING = "warning"
    FAILED = "failed"


# Highest first; used to reduce GitHub's boolean permission flags.
PERMISSION_PRECEDENCE = (
    RepoPermission.ADMIN,
    RepoPermission.MAINTAIN,
    RepoPermission.PUSH,
    RepoPermission.TRIAGE,
    RepoPermission.PULL,
)

_SLUG_INVALID = re.compile(r"[^a-z0-9-]")


def slugify(name: str) -> str:
    """Normalize a team name into its slug.

    Lower-cases the name and replaces every character outside
    ``[a-z0-9-]`` with ``-``. One input character always maps to one
    output character, so a non-empty name yields a non-empty slug.
    """
    return _SLUG_INVALID.sub("-", name.lower())


def effective_permission(flags: Optional[dict]) -> Optional[RepoPermission]:
    """Reduce GitHub's ``permissions`` flag map to the single highest level.

    Returns None when no flag is set.
    """
    flags = flags or {}
    for perm in PERMISSION_PRECEDENCE:
        if flags.get(perm.value):
            return perm
    return None


# --- Desired state (from config) ---

@dataclass
class TeamRole:
    username: str
    role: Union[TeamMemberRole, str] = TeamMemberRole.MEMBER

    def to_dict(self) -> dict:
        return {"username": self.username, "role": enum_value(self.role)}


@dataclass
class RepoGrant:
    name: str
    permission: Union[RepoPermission, str] = RepoPermission.PULL

    def to_dict(self) -> dict:
        return {"name": self.name, "permission": enum_value(self.permission)}


@dataclass
class DesiredTeam:
    """One team entry from the config file.

    Enum fields accept raw strings too; the validation gate in
    ``validators.validate_team`` is what guarantees they are legal.
    """
    name: str
    description: Optional[str] = None
    privacy: Union[TeamPrivacy, str] = TeamPrivacy.CLOSED
    parent_team_id: Optional[int] = None
    create_default_maintainer: bool = False
    roles: list[TeamRole] = field(default_factory=list)
    repositories: list[RepoGrant] = field(default_factory=list)

    @property
    def slug(self) -> str:
        return slugify(self.name)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "privacy": enum_value(self.privacy),
            "parent_team_id": self.parent_team_id,
            "create_default_maintainer": self.create_default_maintainer,
            "roles": [r.to_dict() for r in self.roles],
            "repositories": [g.to_dict() for g in self.repositories],
        }


# --- Observed state (from GitHub) ---

@dataclass
class ObservedTeam:
    slug: str
    id: Any = None
    name: str = ""
    members: dict[str, TeamMemberRole] = field(default_factory=dict)
    repos: dict[str, Optional[RepoPermission]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "slug": self.slug,
            "id": self.id,
            "name": self.name,
            "members": {u: r.value for u, r in self.members.items()},
            "repos": {k: v.value if v else None for k, v in self.repos.items()},
        }


# --- Sync Operations ---

@dataclass
class SyncAction:
    """A single operation that converges one piece of observed state."""
    action_type: ActionType
    team: str
    details: dict = field(default_factory=dict)
    status: ActionStatus = ActionStatus.PENDING
    message: str = ""
    error: str = ""

    def to_dict(self) -> dict:
        return {
            "action_type": self.action_type.value,
            "team": self.team,
            "details": self.details,
            "status": self.status.value,
            "message": self.message,
            "error": self.error,
        }

    @property
    def symbol(self) -> str:
        """Symbol for plan output (Terraform-style)."""
        if self.action_type == ActionType.TEAM_CREATE:
            return "+"
        if self.action_type in (
            ActionType.TEAM_DELETE,
            ActionType.TEAM_MEMBER_REMOVE,
            ActionType.TEAM_REPO_REMOVE,
        ):
            return "-"
        if self.action_type == ActionType.TEAM_REPO_SET and not self.details.get("from"):
            return "+"
        return "~"

    @property
    def changes_state(self) -> bool:
        """False for a membership set that re-applies the role already held."""
        if self.action_type == ActionType.TEAM_MEMBER_SET:
            return self.details.get("from") != self.details.get("role")
        return True

    @property
    def description(self) -> str:
        """Human-readable description of the action."""
        d = self.details
        if self.action_type == ActionType.TEAM_CREATE:
            return f"Create team `{self.team}` ({d.get('privacy', 'closed')})"
        if self.action_type == ActionType.TEAM_DELETE:
            return f"Delete team `{self.team}`"
        if self.action_type == ActionType.TEAM_MEMBER_SET:
            return f"Set `{d.get('username')}` in `{self.team}` as `{d.get('role')}`"
        if self.action_type == ActionType.TEAM_MEMBER_REMOVE:
            return f"Remove `{d.get('username')}` from `{self.team}`"
        if self.action_type == ActionType.TEAM_REPO_SET:
            if d.get("from"):
                return (
                    f"Update `{self.team}` → `{d.get('repo')}`: "
                    f"`{d.get('from')}` → `{d.get('permission')}`"
                )
            return f"Grant `{self.team}` → `{d.get('repo')}` ({d.get('permission')})"
        if self.action_type == ActionType.TEAM_REPO_REMOVE:
            return f"Revoke `{self.team}` access to `{d.get('repo')}`"
        return f"{self.action_type.value} on {self.team}"


@dataclass
class SyncPlan:
    """Ordered actions of a single run, in the order they were issued."""
    actions: list[SyncAction] = field(default_factory=list)
    timestamp: str = ""
    org_name: str = ""
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.timestamp:
            self.timestamp = _utcnow()

    def of_type(self, *action_types: ActionType) -> list[SyncAction]:
        return [a for a in self.actions if a.action_type in action_types]

    @property
    def adds(self) -> list[SyncAction]:
        return [a for a in self.actions if a.symbol == "+"]

    @property
    def updates(self) -> list[SyncAction]:
        return [a for a in self.actions if a.symbol == "~"]

    @property
    def removes(self) -> list[SyncAction]:
        return [a for a in self.actions if a.symbol == "-"]

    @property
    def has_changes(self) -> bool:
        return any(a.changes_state for a in self.actions)

    @property
    def summary(self) -> str:
        return f"{len(self.adds)} to add, {len(self.updates)} to set, {len(self.removes)} to remove"

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "org_name": self.org_name,
            "summary": self.summary,
            "has_changes": self.has_changes,
            "warnings": self.warnings,
            "actions": [a.to_dict() for a in self.actions],
        }


@dataclass
class SyncResult:
    """Outcome of one reconciliation run."""
    plan: SyncPlan
    executed_at: str = ""
    dry_run: bool = False
    error: str = ""

    def __post_init__(self):
        if not self.executed_at:
            self.executed_at = _utcnow()

    def _count(self, status: ActionStatus) -> int:
        return sum(1 for a in self.plan.actions if a.status == status)

    @property
    def success_count(self) -> int:
        return self._count(ActionStatus.SUCCESS)

    @property
    def skipped_count(self) -> int:
        return self._count(ActionStatus.SKIPPED)

    @property
    def failed_count(self) -> int:
        return self._count(ActionStatus.FAILED)

    @property
    def warning_count(self) -> int:
        return len(self.plan.warnings)

    def to_dict(self) -> dict:
        return {
            "executed_at": self.executed_at,
            "dry_run": self.dry_run,
            "success_count": self.success_count,
            "skipped_count": self.skipped_count,
            "failed_count": self.failed_count,
            "warning_count": self.warning_count,
            "error": self.error,
            "plan": self.plan.to_dict(),
        }


def enum_value(v: Any) -> Any:
    return v.value if isinstance(v, Enum) else v


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S") + "Z"
