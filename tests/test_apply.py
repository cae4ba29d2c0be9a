"""Tests for the CLI and Action entry points."""

import json
import shutil
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))

import apply
import main as action_main
import plan as plan_cli
from fake_client import FakeGitHubClient


FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for var in ("GITHUB_OUTPUT", "GITHUB_STEP_SUMMARY", "GITHUB_REPOSITORY_OWNER", "GITHUB_REPOSITORY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("GITHUB_TOKEN", "test-token")
    return tmp_path


@pytest.fixture
def fake(monkeypatch):
    client = FakeGitHubClient(
        teams=["platform-team", "legacy"],
        members={"platform-team": {"alice": "member", "mallory": "member"}},
        repos={"platform-team": {"api-service": "push"}},
        forbidden_deletes={"legacy"},
    )
    monkeypatch.setattr(apply, "GitHubClient", lambda token, api_url: client)
    return client


def config_path(name="teams.yaml"):
    return str(FIXTURES_DIR / name)


class TestApplyCli:
    def test_live_run_with_protected_team_exits_zero(self, workdir, fake):
        code = apply.main(["--config", config_path(), "--org", "acme"])

        assert code == 0
        assert ("delete_team", "acme", "legacy") in fake.calls
        assert "legacy" in fake.teams
        assert ("remove_membership", "acme", "platform-team", "mallory") in fake.writes
        results = json.loads((workdir / "sync_results.json").read_text())
        assert results["warning_count"] == 1
        assert list(workdir.glob("sync_audit_*.jsonl"))

    @pytest.mark.parametrize("flag", [["--dry-run"], ["--dry-run=true"], ["--dry-run", "true"]])
    def test_dry_run_flag_forms(self, workdir, fake, flag):
        code = apply.main(["--config", config_path(), "--org", "acme"] + flag)
        assert code == 0
        assert fake.writes == []
        results = json.loads((workdir / "sync_results.json").read_text())
        assert results["dry_run"] is True

    def test_dry_run_false(self, workdir, fake):
        apply.main(["--config", config_path(), "--org", "acme", "--dry-run=false"])
        assert fake.writes

    def test_invalid_permission_exits_one(self, workdir, fake):
        code = apply.main(["--config", config_path("invalid_permission.yaml"), "--org", "acme"])
        assert code == 1
        assert fake.calls == []

    def test_missing_config_exits_one(self, workdir, fake):
        code = apply.main(["--config", str(workdir / "missing.yaml"), "--org", "acme"])
        assert code == 1

    def test_missing_token_exits_one(self, workdir, fake, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN")
        code = apply.main(["--config", config_path(), "--org", "acme"])
        assert code == 1
        assert fake.calls == []

    def test_missing_org_exits_one(self, workdir, fake):
        assert apply.main(["--config", config_path()]) == 1

    def test_api_failure_exits_one(self, workdir, fake):
        fake.failing_deletes = {"legacy"}
        fake.forbidden_deletes = set()
        assert apply.main(["--config", config_path(), "--org", "acme"]) == 1

    def test_aborted_run_still_writes_audit_trail(self, workdir, fake, monkeypatch):
        output = workdir / "github_output"
        monkeypatch.setenv("GITHUB_OUTPUT", str(output))
        fake.failing_deletes = {"legacy"}
        fake.forbidden_deletes = set()

        assert apply.main(["--config", config_path(), "--org", "acme"]) == 1

        assert fake.writes
        results = json.loads((workdir / "sync_results.json").read_text())
        assert results["failed_count"] == 1
        assert results["success_count"] == len(fake.writes) - 1
        assert "Server Error" in results["error"]
        audit = list(workdir.glob("sync_audit_*.jsonl"))
        assert audit
        records = [json.loads(line) for line in audit[0].read_text().splitlines()]
        assert records[0]["type"] == "sync_summary"
        assert records[0]["failed_count"] == 1
        assert "sync_status=failed" in output.read_text().splitlines()

    def test_github_outputs(self, workdir, fake, monkeypatch):
        output = workdir / "github_output"
        summary = workdir / "summary.md"
        monkeypatch.setenv("GITHUB_OUTPUT", str(output))
        monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary))

        apply.main(["--config", config_path(), "--org", "acme", "--dry-run"])

        lines = output.read_text().splitlines()
        assert "sync_status=dry_run" in lines
        assert "warnings=0" in lines
        assert "Team Sync" in summary.read_text()


class TestActionEntry:
    def test_inputs_from_environment(self, workdir, fake):
        shutil.copy(config_path(), workdir / "teams.yaml")
        env = {
            "GITHUB_TOKEN": "test-token",
            "GITHUB_REPOSITORY": "acme/infra",
            "INPUT_CONFIG-PATH": "teams.yaml",
            "INPUT_DRY-RUN": "true",
        }
        assert action_main.main(env) == 0
        assert fake.calls[0] == ("get_organization", "acme")
        assert fake.writes == []

    def test_failure_sets_error_annotation(self, workdir, fake, capsys):
        env = {"GITHUB_TOKEN": "test-token", "INPUT_ORG": "acme", "INPUT_CONFIG-PATH": "nope.yaml"}
        assert action_main.main(env) == 1
        assert "::error::" in capsys.readouterr().out

    def test_missing_token(self, workdir, fake, capsys):
        env = {"INPUT_ORG": "acme", "INPUT_CONFIG-PATH": config_path()}
        assert action_main.main(env) == 1
        assert "Missing GITHUB_TOKEN" in capsys.readouterr().out


class TestPlanCli:
    def test_pending_changes_exit_two(self, workdir, fake):
        code = plan_cli.main(["--config", config_path(), "--org", "acme", "--format", "json",
                              "--output", str(workdir / "plan.json")])
        assert code == 2
        assert fake.writes == []
        plan = json.loads((workdir / "plan.json").read_text())
        assert plan["has_changes"] is True

    def test_in_sync_exit_zero(self, workdir, monkeypatch):
        client = FakeGitHubClient()
        monkeypatch.setattr(apply, "GitHubClient", lambda token, api_url: client)
        code = plan_cli.main(["--config", config_path("empty_teams.yaml"), "--org", "acme"])
        assert code == 0

    def test_reasserted_memberships_count_as_in_sync(self, workdir, monkeypatch):
        client = FakeGitHubClient(
            teams=["backend"],
            members={"backend": {"alice": "maintainer"}},
            repos={"backend": {"api": "push"}},
        )
        monkeypatch.setattr(apply, "GitHubClient", lambda token, api_url: client)
        code = plan_cli.main(["--config", config_path("in_sync.yaml"), "--org", "acme"])
        assert code == 0
        assert client.writes == []

    def test_validate_only(self, workdir, fake):
        assert plan_cli.main(["--config", config_path(), "--validate-only"]) == 0
        assert plan_cli.main(["--config", config_path("slug_collision.yaml"), "--validate-only"]) == 1
        assert fake.calls == []
