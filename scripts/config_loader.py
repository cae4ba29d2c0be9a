#!/usr/bin/env python3

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from errors import ConfigurationError
from github_client import DEFAULT_API_URL
from models import (
    DesiredTeam,
    RepoGrant,
    RepoPermission,
    TeamMemberRole,
    TeamPrivacy,
    TeamRole,
)
from validators import validate_teams_config


DEFAULT_CONFIG_PATH = ".github/teams.yaml"


@dataclass
class RunConfig:
    """Everything a run needs, resolved once by the entry point."""
    org: str
    token: str
    config_path: str = DEFAULT_CONFIG_PATH
    dry_run: bool = False
    api_url: str = DEFAULT_API_URL

    @classmethod
    def from_env(cls, env=None, **overrides) -> "RunConfig":
        """Build a run config from GitHub Actions style environment variables.

        Inputs arrive as ``INPUT_<NAME>`` (upper-cased, dashes kept or
        turned into underscores depending on the runner). The organization
        falls back to ``GITHUB_REPOSITORY_OWNER`` and then to the owner part
        of ``GITHUB_REPOSITORY``.
        """
        env = os.environ if env is None else env

        def get_input(name, default=""):
            for key in (f"INPUT_{name.upper()}", f"INPUT_{name.upper().replace('-', '_')}"):
                value = env.get(key, "").strip()
                if value:
                    return value
            return default

        org = get_input("org")
        if not org:
            org = env.get("GITHUB_REPOSITORY_OWNER", "")
        if not org and "/" in env.get("GITHUB_REPOSITORY", ""):
            org = env["GITHUB_REPOSITORY"].split("/", 1)[0]

        values = {
            "org": org,
            "token": env.get("GITHUB_TOKEN", ""),
            "config_path": get_input("config-path", DEFAULT_CONFIG_PATH),
            "dry_run": parse_bool(get_input("dry-run", "false")),
            "api_url": env.get("GITHUB_API_URL", DEFAULT_API_URL),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def load_yaml_file(path: Path) -> dict:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")

    return data


def _coerce(enum_cls, value, default):
    """Return the enum member for value, or value unchanged if it is not one."""
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return value


def build_team(entry: dict) -> DesiredTeam:
    roles = []
    for r in entry.get("roles") or []:
        if isinstance(r, dict):
            roles.append(TeamRole(
                username=r.get("username", ""),
                role=_coerce(TeamMemberRole, r.get("role"), TeamMemberRole.MEMBER),
            ))

    repositories = []
    for g in entry.get("repositories") or []:
        if isinstance(g, dict):
            repositories.append(RepoGrant(
                name=g.get("name", ""),
                permission=_coerce(RepoPermission, g.get("permission"), RepoPermission.PULL),
            ))

    return DesiredTeam(
        name=entry["name"],
        description=entry.get("description"),
        privacy=_coerce(TeamPrivacy, entry.get("privacy"), TeamPrivacy.CLOSED),
        parent_team_id=entry.get("parent_team_id"),
        create_default_maintainer=bool(entry.get("create_default_maintainer", False)),
        roles=roles,
        repositories=repositories,
    )


def load_teams(config_path: Path) -> tuple[dict, list[DesiredTeam]]:
    raw = load_yaml_file(config_path)
    if "teams" not in raw:
        raise ConfigurationError(f"Config file {config_path} has no 'teams' key")

    teams = []
    for entry in raw.get("teams") or []:
        if isinstance(entry, dict) and isinstance(entry.get("name"), str) and entry["name"]:
            teams.append(build_team(entry))

    return raw, teams


def collect_warnings(teams: list[DesiredTeam]) -> list[str]:
    warnings = []
    for team in teams:
        if not team.roles:
            warnings.append(
                f"Team '{team.name}' declares no roles; all of its current "
                f"members will be removed"
            )
    return warnings


def load_config(
    config_path: Optional[str] = None,
    validate: bool = True,
) -> tuple[list[DesiredTeam], list[str], list[str]]:
    path = Path(config_path or DEFAULT_CONFIG_PATH)

    logging.info(f"Loading config from: {path}")

    raw, teams = load_teams(path)

    errors = []
    warnings = []

    if validate:
        errors = validate_teams_config(raw)
        warnings = collect_warnings(teams)

    logging.info(f"Config loaded: {len(teams)} teams")

    return teams, errors, warnings
