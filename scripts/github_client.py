#!/usr/bin/env python3

import logging
from typing import Iterator, Optional

import requests

from errors import classify_exception, classify_response

DEFAULT_API_URL = "https://api.github.com"
PER_PAGE = 100


class GitHubClient:
    """Client for the GitHub REST endpoints used by team sync.

    Every failed call raises a classified ``errors.GitHubAPIError``
    (NotFoundError, ForbiddenError or TransportError). List methods
    return lazy generators that follow ``Link: rel="next"`` headers;
    callers drain them before acting on the result.
    """

    def __init__(self, token, api_url=DEFAULT_API_URL):
        """Initialize GitHub client with authorization token."""
        self.api_url = api_url.rstrip("/")
        self.session = requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28"
        })

    # ------------------------------------------------------------------ #
    #  Transport                                                          #
    # ------------------------------------------------------------------ #

    def _request(self, method, path_or_url, **kwargs) -> requests.Response:
        if path_or_url.startswith("http"):
            url = path_or_url
        else:
            url = f"{self.api_url}{path_or_url}"

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise classify_exception(e, method, url) from e

        error = classify_response(response)
        if error is not None:
            logging.debug(f"{method} {url} -> {response.status_code}")
            raise error
        return response

    def _json(self, method, path, **kwargs):
        response = self._request(method, path, **kwargs)
        if response.status_code == 204 or not response.content:
            return {}
        return response.json()

    def _paginate(self, path, params=None) -> Iterator[dict]:
        """Yield every item of a list endpoint, one page at a time."""
        query = {"per_page": PER_PAGE}
        query.update(params or {})

        url = path
        while url:
            response = self._request("GET", url, params=query)
            for item in response.json():
                yield item
            url = response.links.get("next", {}).get("url")
            # The next link already carries the query string.
            query = None

    # ------------------------------------------------------------------ #
    #  Organization and teams                                             #
    # ------------------------------------------------------------------ #

    def get_organization(self, org_name) -> dict:
        """Fetch an organization; raises NotFoundError if it does not exist."""
        return self._json("GET", f"/orgs/{org_name}")

    def list_teams(self, org_name) -> Iterator[dict]:
        """
        List all teams of an organization.

        Args:
            org_name (str): Name of the GitHub organization

        Yields:
            dict: {"slug", "id", "name"} for every team
        """
        for t in self._paginate(f"/orgs/{org_name}/teams"):
            yield {"slug": t["slug"], "id": t["id"], "name": t.get("name", t["slug"])}

    def get_team_by_slug(self, org_name, team_slug) -> dict:
        return self._json("GET", f"/orgs/{org_name}/teams/{team_slug}")

    def create_team(
        self,
        org_name,
        name,
        description=None,
        privacy="closed",
        parent_team_id=None,
        create_default_maintainer=False,
    ) -> dict:
        """
        Create a team in the organization.

        Args:
            org_name (str): Name of the GitHub organization
            name (str): Display name of the team
            description (str): Optional team description
            privacy (str): "closed" or "secret"
            parent_team_id (int): Optional parent team; omitted when falsy
            create_default_maintainer (bool): Whether the creating account
                should stay on as maintainer. GitHub always adds it and has
                no field for this, so it is not sent; the membership pass
                keeps or removes that account accordingly.

        Returns:
            dict: The created team as returned by GitHub
        """
        payload = {"name": name, "privacy": privacy}
        if description is not None:
            payload["description"] = description
        if parent_team_id:
            payload["parent_team_id"] = parent_team_id
        return self._json("POST", f"/orgs/{org_name}/teams", json=payload)

    def delete_team(self, org_name, team_slug) -> None:
        self._request("DELETE", f"/orgs/{org_name}/teams/{team_slug}")

    # ------------------------------------------------------------------ #
    #  Team membership                                                    #
    # ------------------------------------------------------------------ #

    def list_team_members(self, org_name, team_slug) -> Iterator[dict]:
        """
        List team members with their team role.

        The members endpoint does not report roles, so maintainers and
        members are listed separately through the ``role`` filter.

        Yields:
            dict: {"username", "role"} for every member
        """
        path = f"/orgs/{org_name}/teams/{team_slug}/members"
        for role in ("maintainer", "member"):
            for m in self._paginate(path, {"role": role}):
                yield {"username": m["login"], "role": role}

    def set_membership(self, org_name, team_slug, username, role) -> dict:
        """Add a user to a team or update their role."""
        return self._json(
            "PUT",
            f"/orgs/{org_name}/teams/{team_slug}/memberships/{username}",
            json={"role": role},
        )

    def remove_membership(self, org_name, team_slug, username) -> None:
        self._request(
            "DELETE",
            f"/orgs/{org_name}/teams/{team_slug}/memberships/{username}",
        )

    # ------------------------------------------------------------------ #
    #  Team repositories                                                  #
    # ------------------------------------------------------------------ #

    def list_team_repos(self, org_name, team_slug) -> Iterator[dict]:
        """
        List repositories a team has access to.

        Yields:
            dict: {"name", "permissions"} where permissions is GitHub's
            boolean flag map (admin, maintain, push, triage, pull)
        """
        for r in self._paginate(f"/orgs/{org_name}/teams/{team_slug}/repos"):
            yield {"name": r["name"], "permissions": r.get("permissions") or {}}

    def set_repo_permission(self, org_name, team_slug, repo_name, permission, owner: Optional[str] = None) -> None:
        """Grant or change a team's permission on a repository."""
        owner = owner or org_name
        self._request(
            "PUT",
            f"/orgs/{org_name}/teams/{team_slug}/repos/{owner}/{repo_name}",
            json={"permission": permission},
        )

    def remove_repo_access(self, org_name, team_slug, repo_name, owner: Optional[str] = None) -> None:
        owner = owner or org_name
        self._request(
            "DELETE",
            f"/orgs/{org_name}/teams/{team_slug}/repos/{owner}/{repo_name}",
        )
