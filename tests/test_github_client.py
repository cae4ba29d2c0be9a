"""Tests for the GitHub client: pagination and error classification."""

import json
import sys
from pathlib import Path
from unittest import mock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

from errors import ForbiddenError, NotFoundError, TransportError, classify_response
from github_client import GitHubClient


API = "https://api.github.com"


def make_response(status, body=None, links=None, url=API):
    response = requests.Response()
    response.status_code = status
    response._content = json.dumps(body).encode() if body is not None else b""
    response.url = url
    if links:
        response.headers["Link"] = ", ".join(
            f'<{target}>; rel="{rel}"' for rel, target in links.items()
        )
    return response


@pytest.fixture
def client():
    return GitHubClient("test-token")


def stub(client, *responses):
    client.session.request = mock.Mock(side_effect=list(responses))
    return client.session.request


class TestSession:
    def test_auth_headers(self, client):
        assert client.session.headers["Authorization"] == "Bearer test-token"
        assert client.session.headers["X-GitHub-Api-Version"] == "2022-11-28"

    def test_custom_api_url(self):
        c = GitHubClient("t", api_url="https://ghe.example.com/api/v3/")
        request = stub(c, make_response(200, {"login": "acme"}))
        c.get_organization("acme")
        assert request.call_args[0][1] == "https://ghe.example.com/api/v3/orgs/acme"


class TestPagination:
    def test_follows_next_links(self, client):
        page2 = f"{API}/organizations/1/teams?per_page=100&page=2"
        request = stub(
            client,
            make_response(200, [{"slug": "a", "id": 1, "name": "A"}], links={"next": page2}),
            make_response(200, [{"slug": "b", "id": 2, "name": "B"}]),
        )

        teams = list(client.list_teams("acme"))

        assert teams == [
            {"slug": "a", "id": 1, "name": "A"},
            {"slug": "b", "id": 2, "name": "B"},
        ]
        first, second = request.call_args_list
        assert first[0] == ("GET", f"{API}/orgs/acme/teams")
        assert first[1]["params"] == {"per_page": 100}
        assert second[0] == ("GET", page2)
        assert second[1]["params"] is None

    def test_lazy_until_iterated(self, client):
        request = stub(client, make_response(200, []))
        teams = client.list_teams("acme")
        assert request.call_count == 0
        assert list(teams) == []
        assert request.call_count == 1

    def test_members_listed_by_role(self, client):
        request = stub(
            client,
            make_response(200, [{"login": "alice"}]),
            make_response(200, [{"login": "bob"}, {"login": "carol"}]),
        )
        members = list(client.list_team_members("acme", "backend"))
        assert members == [
            {"username": "alice", "role": "maintainer"},
            {"username": "bob", "role": "member"},
            {"username": "carol", "role": "member"},
        ]
        roles = [c[1]["params"]["role"] for c in request.call_args_list]
        assert roles == ["maintainer", "member"]

    def test_team_repos_carry_permission_flags(self, client):
        stub(client, make_response(200, [
            {"name": "api", "permissions": {"admin": False, "push": True, "pull": True}},
            {"name": "docs"},
        ]))
        repos = list(client.list_team_repos("acme", "backend"))
        assert repos[0] == {"name": "api", "permissions": {"admin": False, "push": True, "pull": True}}
        assert repos[1] == {"name": "docs", "permissions": {}}


class TestWrites:
    def test_create_team_payload(self, client):
        request = stub(client, make_response(201, {"slug": "sec", "id": 9}))
        created = client.create_team("acme", "sec", description="Security", privacy="secret", parent_team_id=7)
        assert created["id"] == 9
        assert request.call_args[1]["json"] == {
            "name": "sec", "privacy": "secret", "description": "Security", "parent_team_id": 7,
        }

    def test_create_team_omits_unset_fields(self, client):
        request = stub(client, make_response(201, {"slug": "ops", "id": 3}))
        client.create_team("acme", "ops", parent_team_id=0)
        assert request.call_args[1]["json"] == {"name": "ops", "privacy": "closed"}

    def test_set_membership(self, client):
        request = stub(client, make_response(200, {"state": "active", "role": "maintainer"}))
        client.set_membership("acme", "backend", "alice", "maintainer")
        args, kwargs = request.call_args
        assert args == ("PUT", f"{API}/orgs/acme/teams/backend/memberships/alice")
        assert kwargs["json"] == {"role": "maintainer"}

    def test_set_repo_permission_uses_org_as_owner(self, client):
        request = stub(client, make_response(204))
        client.set_repo_permission("acme", "backend", "api", "push")
        args, kwargs = request.call_args
        assert args == ("PUT", f"{API}/orgs/acme/teams/backend/repos/acme/api")
        assert kwargs["json"] == {"permission": "push"}

    def test_remove_repo_access(self, client):
        request = stub(client, make_response(204))
        client.remove_repo_access("acme", "backend", "api")
        assert request.call_args[0] == ("DELETE", f"{API}/orgs/acme/teams/backend/repos/acme/api")


class TestErrorClassification:
    def test_not_found(self, client):
        stub(client, make_response(404, {"message": "Not Found"}))
        with pytest.raises(NotFoundError) as exc:
            client.get_team_by_slug("acme", "missing")
        assert exc.value.status_code == 404
        assert exc.value.message == "Not Found"

    def test_forbidden(self, client):
        stub(client, make_response(403, {"message": "Must have admin rights"}))
        with pytest.raises(ForbiddenError):
            client.delete_team("acme", "legacy")

    @pytest.mark.parametrize("status", [401, 422, 500, 502])
    def test_everything_else_is_transport(self, client, status):
        stub(client, make_response(status, {"message": "nope"}))
        with pytest.raises(TransportError) as exc:
            client.delete_team("acme", "legacy")
        assert exc.value.status_code == status

    def test_connection_error(self, client):
        client.session.request = mock.Mock(side_effect=requests.ConnectionError("refused"))
        with pytest.raises(TransportError) as exc:
            client.get_organization("acme")
        assert exc.value.status_code is None
        assert "refused" in str(exc.value)

    def test_error_mid_pagination_propagates(self, client):
        stub(
            client,
            make_response(200, [{"slug": "a", "id": 1}], links={"next": f"{API}/x?page=2"}),
            make_response(502, {"message": "Bad Gateway"}),
        )
        with pytest.raises(TransportError):
            list(client.list_teams("acme"))

    def test_success_is_not_classified(self):
        assert classify_response(make_response(204)) is None

    def test_non_json_error_body(self):
        response = make_response(500)
        response._content = b"<html>oops</html>"
        error = classify_response(response)
        assert isinstance(error, TransportError)
        assert "oops" in error.message
