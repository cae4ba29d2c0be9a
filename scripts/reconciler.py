#!/usr/bin/env python3
"""Reconciliation engine for GitHub team management.

Compares desired teams (from the config file) against the live
organization and issues the operations that bring each team into
alignment: existence, then memberships, then repository grants, one
team at a time. Teams that exist on GitHub but not in config are
deleted last.

In dry-run mode every write is replaced by a logged description of
what would happen; reads still go to GitHub so the plan reflects the
real organization.
"""

import logging
from typing import Callable, Iterable, Optional

from errors import ConfigurationError, ForbiddenError, GitHubAPIError, NotFoundError
from github_client import GitHubClient
from models import (
    ActionStatus,
    ActionType,
    DesiredTeam,
    ObservedTeam,
    RepoPermission,
    SyncAction,
    SyncPlan,
    SyncResult,
    TeamMemberRole,
    effective_permission,
    enum_value,
)
from validators import validate_desired_teams


# ---------------------------------------------------------------------- #
#  Pure diffs                                                             #
# ---------------------------------------------------------------------- #

def diff_memberships(
    team: DesiredTeam,
    team_slug: str,
    current_members: dict,
    keep: Iterable[str] = (),
) -> list[SyncAction]:
    """Membership actions for one team.

    Every desired role is (re)applied, whether or not it already holds.
    Current members outside the desired roles (and ``keep``) are removed
    after all assignments. Logins are compared case-insensitively.
    """
    actions = []
    current_by_login = {u.lower(): role for u, role in current_members.items()}
    keep_set = {r.username.lower() for r in team.roles} | {u.lower() for u in keep}

    for r in team.roles:
        role = TeamMemberRole(enum_value(r.role))
        details = {"username": r.username, "role": role.value, "team_slug": team_slug}
        current = current_by_login.get(r.username.lower())
        if current is not None:
            details["from"] = enum_value(current)
        actions.append(SyncAction(
            action_type=ActionType.TEAM_MEMBER_SET,
            team=team.name,
            details=details,
        ))

    for username in current_members:
        if username.lower() not in keep_set:
            actions.append(SyncAction(
                action_type=ActionType.TEAM_MEMBER_REMOVE,
                team=team.name,
                details={"username": username, "team_slug": team_slug},
            ))

    return actions


def diff_repo_permissions(
    team: DesiredTeam,
    team_slug: str,
    current_repos: dict,
) -> list[SyncAction]:
    """Repository grant actions for one team.

    A grant whose effective permission already equals the desired one
    produces no action. Repository names are compared case-insensitively.
    """
    actions = []
    current_by_name = {name.lower(): perm for name, perm in current_repos.items()}
    desired_names = set()

    for grant in team.repositories:
        desired_names.add(grant.name.lower())
        perm = RepoPermission(enum_value(grant.permission))
        current = current_by_name.get(grant.name.lower())
        if current == perm:
            continue
        details = {"repo": grant.name, "permission": perm.value, "team_slug": team_slug}
        if current is not None:
            details["from"] = enum_value(current)
        actions.append(SyncAction(
            action_type=ActionType.TEAM_REPO_SET,
            team=team.name,
            details=details,
        ))

    for repo_name in current_repos:
        if repo_name.lower() not in desired_names:
            actions.append(SyncAction(
                action_type=ActionType.TEAM_REPO_REMOVE,
                team=team.name,
                details={"repo": repo_name, "team_slug": team_slug},
            ))

    return actions


def stale_teams(desired: Iterable[DesiredTeam], existing: dict) -> list[ObservedTeam]:
    """Observed teams whose slug no desired team maps to, in observed order."""
    desired_slugs = {t.slug for t in desired}
    return [t for slug, t in existing.items() if slug not in desired_slugs]


# ---------------------------------------------------------------------- #
#  Reconcilers                                                            #
# ---------------------------------------------------------------------- #

class _BaseReconciler:
    """Shared plumbing: records actions on the plan and runs or simulates them."""

    def __init__(self, client: GitHubClient, org_name: str, plan: SyncPlan, dry_run: bool = False):
        self.client = client
        self.org_name = org_name
        self.plan = plan
        self.dry_run = dry_run

    def _execute(self, action: SyncAction, call: Callable[[], object]):
        """Issue one write, or describe it in dry-run mode.

        Failures are marked on the action and re-raised unchanged.
        """
        self.plan.actions.append(action)

        if self.dry_run:
            action.status = ActionStatus.SKIPPED
            action.message = f"[DRY RUN] Would {_lower_first(action.description)}"
            logging.info(f"  {action.symbol} {action.message}")
            return None

        try:
            result = call()
        except GitHubAPIError as e:
            action.status = ActionStatus.FAILED
            action.error = str(e)
            raise

        action.status = ActionStatus.SUCCESS
        action.message = "done"
        logging.info(f"  {action.symbol} {action.description}")
        return result


class TeamReconciler(_BaseReconciler):
    """Creates missing teams and deletes teams absent from config."""

    def fetch_existing(self) -> dict[str, ObservedTeam]:
        logging.info(f"Fetching teams of '{self.org_name}'...")
        existing = {}
        for t in self.client.list_teams(self.org_name):
            existing[t["slug"]] = ObservedTeam(
                slug=t["slug"], id=t.get("id"), name=t.get("name", t["slug"])
            )
        logging.info(f"  Found {len(existing)} teams")
        return existing

    def ensure(self, team: DesiredTeam, existing: dict) -> Optional[ObservedTeam]:
        """Make sure the team exists.

        Returns the observed team, or None in dry-run mode when the team
        would have to be created first.
        """
        observed = existing.get(team.slug)
        if observed is not None:
            logging.info(f"Team '{team.name}' already exists")
            return observed

        privacy = enum_value(team.privacy) or "closed"
        action = SyncAction(
            action_type=ActionType.TEAM_CREATE,
            team=team.name,
            details={
                "team_slug": team.slug,
                "description": team.description,
                "privacy": privacy,
                "parent_team_id": team.parent_team_id or None,
                "create_default_maintainer": team.create_default_maintainer,
            },
        )
        created = self._execute(action, lambda: self.client.create_team(
            self.org_name,
            team.name,
            description=team.description,
            privacy=privacy,
            parent_team_id=team.parent_team_id or None,
            create_default_maintainer=team.create_default_maintainer,
        ))
        if self.dry_run:
            return None

        created = created or {}
        return ObservedTeam(
            slug=created.get("slug") or team.slug,
            id=created.get("id"),
            name=team.name,
        )

    def delete_stale(self, desired: list[DesiredTeam], existing: dict) -> None:
        for observed in stale_teams(desired, existing):
            action = SyncAction(
                action_type=ActionType.TEAM_DELETE,
                team=observed.name or observed.slug,
                details={"team_slug": observed.slug},
            )
            try:
                self._execute(action, lambda: self.client.delete_team(self.org_name, observed.slug))
            except ForbiddenError as e:
                action.status = ActionStatus.WARNING
                warning = f"Team '{observed.slug}' could not be deleted (forbidden): {e.message}"
                self.plan.warnings.append(warning)
                logging.warning(warning)


class MembershipReconciler(_BaseReconciler):
    """Applies every desired role and removes members not in config."""

    def fetch_members(self, team_slug: str) -> dict:
        """Drain the member listing into ``username -> role``."""
        return {
            m["username"]: TeamMemberRole(m["role"])
            for m in self.client.list_team_members(self.org_name, team_slug)
        }

    def reconcile(self, team: DesiredTeam, observed: ObservedTeam, keep_current: bool = False) -> None:
        current = self.fetch_members(observed.slug)
        observed.members = current
        # Members GitHub assigned at creation stay when a default maintainer was requested.
        keep = current.keys() if keep_current else ()
        for action in diff_memberships(team, observed.slug, current, keep):
            d = action.details
            if action.action_type == ActionType.TEAM_MEMBER_SET:
                self._execute(action, lambda: self.client.set_membership(
                    self.org_name, d["team_slug"], d["username"], d["role"]
                ))
            else:
                self._execute(action, lambda: self.client.remove_membership(
                    self.org_name, d["team_slug"], d["username"]
                ))

    def report_pending(self, team: DesiredTeam) -> None:
        """Describe the assignments that would follow creating ``team``.

        Dry-run only. The team does not exist yet, so there is nothing to
        read and nothing to remove.
        """
        for action in diff_memberships(team, team.slug, {}):
            self._execute(action, lambda: None)


class RepoPermissionReconciler(_BaseReconciler):
    """Grants, updates and revokes a team's repository permissions."""

    def fetch_repos(self, team_slug: str) -> dict:
        return {
            r["name"]: effective_permission(r.get("permissions"))
            for r in self.client.list_team_repos(self.org_name, team_slug)
        }

    def reconcile(self, team: DesiredTeam, observed: ObservedTeam) -> None:
        current = self.fetch_repos(observed.slug)
        observed.repos = current
        for action in diff_repo_permissions(team, observed.slug, current):
            d = action.details
            if action.action_type == ActionType.TEAM_REPO_SET:
                self._execute(action, lambda: self.client.set_repo_permission(
                    self.org_name, d["team_slug"], d["repo"], d["permission"]
                ))
            else:
                self._execute(action, lambda: self.client.remove_repo_access(
                    self.org_name, d["team_slug"], d["repo"]
                ))


# ---------------------------------------------------------------------- #
#  Engine                                                                 #
# ---------------------------------------------------------------------- #

class Reconciler:
    """Runs one full reconciliation pass over the organization's teams."""

    def __init__(self, client: GitHubClient, org_name: str, dry_run: bool = False):
        self.client = client
        self.org_name = org_name
        self.dry_run = dry_run

    def verify_organization(self) -> None:
        try:
            self.client.get_organization(self.org_name)
        except NotFoundError as e:
            raise ConfigurationError(f"Organization '{self.org_name}' not found") from e

    def run(self, desired: list[DesiredTeam]) -> SyncResult:
        """Converge the organization's teams to ``desired``.

        Config errors abort before any remote call. Remote errors abort
        the run, except a forbidden team deletion which becomes a warning.
        An aborting GitHubAPIError carries the partial result as ``result``.
        """
        validate_desired_teams(desired)

        plan = SyncPlan(org_name=self.org_name)
        result = SyncResult(plan=plan, dry_run=self.dry_run)
        args = (self.client, self.org_name, plan, self.dry_run)
        teams = TeamReconciler(*args)
        memberships = MembershipReconciler(*args)
        repos = RepoPermissionReconciler(*args)

        mode = "DRY RUN" if self.dry_run else "LIVE"
        logging.info(f"Reconciling {len(desired)} teams in '{self.org_name}' ({mode})")

        try:
            self._converge(desired, teams, memberships, repos)
        except GitHubAPIError as e:
            result.error = str(e)
            e.result = result
            logging.error(f"Reconciliation aborted after {len(plan.actions)} action(s): {e}")
            raise

        logging.info(f"Reconciliation complete: {plan.summary}")
        return result

    def _converge(self, desired, teams, memberships, repos) -> None:
        self.verify_organization()
        existing = teams.fetch_existing()

        for team in desired:
            logging.info(f"=== Syncing team: {team.name} ===")
            observed = teams.ensure(team, existing)
            if observed is None:
                memberships.report_pending(team)
                continue

            just_created = team.slug not in existing
            memberships.reconcile(
                team, observed,
                keep_current=just_created and team.create_default_maintainer,
            )
            repos.reconcile(team, observed)

        teams.delete_stale(desired, existing)


def _lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]
