#!/usr/bin/env python3
"""Configuration validation for team synchronization.

Validates the raw YAML document against a JSON schema, and provides the
validation gate the reconciler runs over desired teams before it touches
any of them.
"""

import json
from pathlib import Path
from typing import Any

import jsonschema

from errors import ConfigurationError
from models import (
    DesiredTeam,
    RepoPermission,
    TeamMemberRole,
    TeamPrivacy,
    enum_value,
    slugify,
)


SCHEMA_DIR = Path(__file__).parent.parent / "schemas"


def _load_schema(schema_name: str) -> dict:
    """Load a JSON schema file from the schemas directory."""
    schema_path = SCHEMA_DIR / f"{schema_name}.schema.json"
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema not found: {schema_path}")
    with open(schema_path, "r") as f:
        return json.load(f)


def _describe_path(data: Any, path: list) -> str:
    """Render a schema error path with team and repo names where known."""
    parts = []
    node = data
    for p in path:
        child = None
        if isinstance(node, (list, dict)):
            try:
                child = node[p]
            except (IndexError, KeyError, TypeError):
                child = None
        if isinstance(p, int) and isinstance(child, dict):
            label = child.get("name") or child.get("username")
            parts.append(f"'{label}'" if label else str(p))
        else:
            parts.append(str(p))
        node = child
    return " → ".join(parts) or "(root)"


def validate_schema(data: dict, schema_name: str) -> list[str]:
    """Validate data against a JSON schema. Returns list of errors."""
    try:
        schema = _load_schema(schema_name)
    except FileNotFoundError as e:
        return [str(e)]

    errors = []
    validator = jsonschema.Draft7Validator(schema)
    for error in sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path]):
        path = _describe_path(data, list(error.absolute_path))
        errors.append(f"[{schema_name}] {path}: {error.message}")

    return errors


def validate_teams_config(teams_data: dict) -> list[str]:
    """Validate the teams document structure and content."""
    errors = validate_schema(teams_data, "teams")

    teams = teams_data.get("teams", [])
    if not isinstance(teams, list):
        return errors

    slugs: dict[str, str] = {}
    for team_config in teams:
        if not isinstance(team_config, dict) or not isinstance(team_config.get("name"), str):
            continue
        team_name = team_config["name"]

        slug = slugify(team_name)
        if slug in slugs:
            errors.append(
                f"[teams] Teams '{slugs[slug]}' and '{team_name}' "
                f"both map to slug '{slug}'"
            )
        else:
            slugs[slug] = team_name

        for u in _duplicates(team_config.get("roles"), "username"):
            errors.append(f"[teams] Duplicate member '{u}' in team '{team_name}'")
        for r in _duplicates(team_config.get("repositories"), "name"):
            errors.append(f"[teams] Duplicate repository '{r}' in team '{team_name}'")

    return errors


def _duplicates(entries, key: str) -> list[str]:
    seen = set()
    dupes = []
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        value = entry.get(key)
        folded = value.lower() if isinstance(value, str) else value
        if folded in seen and value not in dupes:
            dupes.append(value)
        seen.add(folded)
    return dupes


# --- Reconciler validation gate ---

def validate_team(team: DesiredTeam) -> None:
    """Check the enum fields of one desired team.

    Raises ConfigurationError naming the team (and repository, for
    permissions) on the first invalid value.
    """
    if enum_value(team.privacy) not in {p.value for p in TeamPrivacy}:
        raise ConfigurationError(
            f"Invalid privacy '{enum_value(team.privacy)}' for team '{team.name}' "
            f"(expected one of: closed, secret)"
        )

    usernames = set()
    for r in team.roles:
        if enum_value(r.role) not in {m.value for m in TeamMemberRole}:
            raise ConfigurationError(
                f"Invalid role '{enum_value(r.role)}' for member '{r.username}' "
                f"in team '{team.name}'"
            )
        if r.username.lower() in usernames:
            raise ConfigurationError(
                f"Duplicate member '{r.username}' in team '{team.name}'"
            )
        usernames.add(r.username.lower())

    repos = set()
    for g in team.repositories:
        if enum_value(g.permission) not in {p.value for p in RepoPermission}:
            raise ConfigurationError(
                f"Invalid permission '{enum_value(g.permission)}' for repository "
                f"'{g.name}' in team '{team.name}' "
                f"(expected one of: {', '.join(p.value for p in RepoPermission)})"
            )
        if g.name.lower() in repos:
            raise ConfigurationError(
                f"Duplicate repository '{g.name}' in team '{team.name}'"
            )
        repos.add(g.name.lower())


def validate_desired_teams(teams: list[DesiredTeam]) -> None:
    """Run the gate over every team and reject slug collisions."""
    slugs: dict[str, str] = {}
    for team in teams:
        if not team.name:
            raise ConfigurationError("Team entry is missing a name")
        validate_team(team)
        if team.slug in slugs:
            raise ConfigurationError(
                f"Teams '{slugs[team.slug]}' and '{team.name}' both map to "
                f"slug '{team.slug}'"
            )
        slugs[team.slug] = team.name
