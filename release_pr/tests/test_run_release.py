"""Tests for the run_release entry point."""

from unittest.mock import MagicMock, patch

import pytest

from release_pr.scripts import run_release
from release_pr.scripts.config import ReleaseConfig
from release_pr.scripts.git_operations import PushError
from release_pr.scripts.github_client import PullRequestInfo
from release_pr.scripts.release_orchestrator import (
    AlreadyReleased,
    NoActionNeeded,
    PullRequestOpened,
    PullRequestUpdated,
    Tagged,
)

PR = PullRequestInfo(number=42, url="https://github.com/org/repo/pull/42", head_ref="release/next")


class TestOutcomeOutputs:
    """Tests for mapping outcomes to output keys."""

    def test_tagged(self):
        assert run_release.outcome_outputs(Tagged("release-20240601120000")) == [
            ("tag", "release-20240601120000")
        ]

    def test_pull_request_paths(self):
        expected = [("pr_id", "42"), ("pr_url", PR.url)]
        assert run_release.outcome_outputs(PullRequestOpened(PR)) == expected
        assert run_release.outcome_outputs(PullRequestUpdated(PR)) == expected

    def test_no_output(self):
        assert run_release.outcome_outputs(AlreadyReleased()) == []
        assert run_release.outcome_outputs(NoActionNeeded("on release branch")) == []


class TestWriteOutput:
    """Tests for the GITHUB_OUTPUT writer."""

    def test_appends_lines(self, tmp_path):
        out = tmp_path / "output"
        out.write_text("existing=1\n")

        run_release.write_output(str(out), [("tag", "release-20240601120000")])

        assert out.read_text() == "existing=1\ntag=release-20240601120000\n"

    def test_skipped_without_path(self, tmp_path):
        run_release.write_output(None, [("tag", "x")])
        assert list(tmp_path.iterdir()) == []


class TestResolveRepository:
    """Tests for repository slug resolution."""

    def test_prefers_configured_repository(self):
        git = MagicMock()
        cfg = ReleaseConfig(token="t", repository="org/repo")

        assert run_release.resolve_repository(cfg, git) == "org/repo"
        git.get_remote_url.assert_not_called()

    def test_parses_remote_url(self):
        git = MagicMock()
        git.get_remote_url.return_value = "git@github.com:org/repo.git"

        assert run_release.resolve_repository(ReleaseConfig(token="t"), git) == "org/repo"


class TestMain:
    """End-to-end runs of main() with the orchestrator patched."""

    @pytest.fixture
    def env(self, monkeypatch, tmp_path):
        out = tmp_path / "github_output"
        out.write_text("")
        monkeypatch.setenv("GITHUB_TOKEN", "t")
        monkeypatch.setenv("GITHUB_REPOSITORY", "org/repo")
        monkeypatch.setenv("GITHUB_OUTPUT", str(out))
        for name in ("RELEASE_BRANCH", "TAG_PREFIX", "PR_TITLE", "RELEASE_PR_TIMEOUT", "RELEASE_PR_CONFIG"):
            monkeypatch.delenv(name, raising=False)
        return out

    @patch("release_pr.scripts.run_release.ReleaseOrchestrator")
    def test_pr_path_writes_pr_id(self, mock_orch, env):
        mock_orch.return_value.run.return_value = PullRequestOpened(PR)

        assert run_release.main([]) == 0

        assert env.read_text() == f"pr_id=42\npr_url={PR.url}\n"

    @patch("release_pr.scripts.run_release.ReleaseOrchestrator")
    def test_tag_path_writes_tag(self, mock_orch, env):
        mock_orch.return_value.run.return_value = Tagged("release-20240601120000")

        assert run_release.main([]) == 0

        assert env.read_text() == "tag=release-20240601120000\n"

    @patch("release_pr.scripts.run_release.ReleaseOrchestrator")
    def test_already_released_writes_nothing(self, mock_orch, env):
        mock_orch.return_value.run.return_value = AlreadyReleased()

        assert run_release.main([]) == 0

        assert env.read_text() == ""

    @patch("release_pr.scripts.run_release.ReleaseOrchestrator")
    def test_failure_exits_nonzero_without_output(self, mock_orch, env):
        mock_orch.return_value.run.side_effect = PushError("Failed to push branch: rejected")

        assert run_release.main([]) == 1

        assert env.read_text() == ""

    @patch("release_pr.scripts.run_release.ReleaseOrchestrator")
    def test_missing_token(self, mock_orch, env, monkeypatch):
        monkeypatch.delenv("GITHUB_TOKEN")

        assert run_release.main([]) == 1

        mock_orch.assert_not_called()
        assert env.read_text() == ""

    @patch("release_pr.scripts.run_release.ReleaseOrchestrator")
    def test_wires_repo_dir_and_config(self, mock_orch, env):
        mock_orch.return_value.run.return_value = AlreadyReleased()

        run_release.main(["--repo-dir", "/work"])

        git, gh = mock_orch.call_args[0]
        assert git.work_dir == "/work"
        assert gh.repo == "org/repo"
        assert gh.token == "t"
        cfg = mock_orch.return_value.run.call_args[0][0]
        assert cfg.release_branch == "release/next"
