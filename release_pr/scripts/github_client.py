"""
GitHub API client wrapper for release PR automation.

This module provides a thin wrapper around the GitHub operations the
release orchestrator needs: release note generation, release PR lookup,
creation and update, and the merged-release check for a commit. It uses
the `gh` CLI for authentication and API access.
"""

import json
import os
import subprocess
from dataclasses import dataclass
from typing import List, Optional

DEFAULT_TIMEOUT = 60.0


@dataclass
class PullRequestInfo:
    """Information about a pull request."""
    number: int
    url: str
    head_ref: str = ""


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""
    pass


class PullRequestError(GitHubClientError):
    """Raised when PR lookup, creation or update fails."""
    pass


class GitHubClient:
    """
    GitHub API client for release PR operations.

    Uses the `gh` CLI for authentication and API access.
    All methods are repository-scoped.
    """

    def __init__(self, repo: str, token: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the GitHub client.

        Args:
            repo: Repository in format "owner/name"
            token: Optional GitHub token (uses gh CLI auth if not provided)
            timeout: Deadline in seconds for each gh invocation
        """
        self.repo = repo
        self.token = token
        self.timeout = timeout

    def _run_gh(self, args: List[str], check: bool = True) -> str:
        """
        Run a gh CLI command and return output.

        Args:
            args: Command arguments (without 'gh')
            check: Whether to raise on non-zero exit code

        Returns:
            Command output as string

        Raises:
            GitHubClientError: If command fails, times out, or gh is missing
        """
        cmd = ["gh"] + args
        if self.token:
            # Extend environment with GH_TOKEN, don't replace it
            env = {**os.environ, "GH_TOKEN": self.token}
        else:
            env = None

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=check,
                env=env,
                timeout=self.timeout,
            )
            return result.stdout
        except subprocess.CalledProcessError as e:
            raise GitHubClientError(f"gh command failed: {e.stderr}")
        except subprocess.TimeoutExpired:
            raise GitHubClientError(f"gh command timed out after {self.timeout}s: gh {args[0]}")
        except FileNotFoundError as e:
            raise GitHubClientError(f"Failed to run gh: {e}")

    def _run_gh_json(self, args: List[str]):
        output = self._run_gh(args)
        if not output.strip():
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise GitHubClientError(f"Unexpected gh output: {e}")

    def generate_notes(
        self,
        tag_name: str,
        target_branch: str,
        previous_tag: Optional[str] = None,
    ) -> str:
        """
        Generate release notes using GitHub's auto-generated release notes API.

        Uses POST /repos/{owner}/{repo}/releases/generate-notes. The tag
        does not need to exist; GitHub compares target_branch against
        previous_tag (or the latest release when omitted).

        Args:
            tag_name: Candidate tag name for the notes header
            target_branch: Branch the notes are computed for
            previous_tag: Lower bound tag (optional)

        Returns:
            Markdown body

        Raises:
            GitHubClientError: If the API call fails
        """
        args = [
            "api", "-X", "POST",
            f"repos/{self.repo}/releases/generate-notes",
            "-f", f"tag_name={tag_name}",
            "-f", f"target_commitish={target_branch}",
            "--jq", ".body",
        ]
        if previous_tag:
            args.extend(["-f", f"previous_tag_name={previous_tag}"])
        try:
            output = self._run_gh(args)
        except GitHubClientError as e:
            raise GitHubClientError(f"Failed to generate PR body: {e}")
        return output.strip()

    def find_open_pr(self, base: str, head: str) -> Optional[PullRequestInfo]:
        """
        Find an open PR from head into base.

        Args:
            base: Target branch of the PR
            head: Source branch of the PR

        Returns:
            PullRequestInfo or None if no matching PR is open

        Raises:
            PullRequestError: If the lookup fails
        """
        try:
            prs = self._run_gh_json([
                "pr", "list",
                "--repo", self.repo,
                "--base", base,
                "--head", head,
                "--state", "open",
                "--json", "number,url,headRefName",
            ])
        except GitHubClientError as e:
            raise PullRequestError(f"Failed to get the current release PR: {e}")

        for pr in prs or []:
            # gh matches head loosely across forks; require the exact branch
            if pr.get("headRefName") == head:
                return PullRequestInfo(
                    number=int(pr["number"]),
                    url=pr.get("url", ""),
                    head_ref=pr["headRefName"],
                )
        return None

    def create_pr(
        self,
        title: str,
        head_branch: str,
        base_branch: str,
        body: str,
    ) -> PullRequestInfo:
        """
        Create a pull request using gh CLI.

        Args:
            title: PR title
            head_branch: Source branch
            base_branch: Target branch
            body: PR body/description

        Returns:
            PullRequestInfo with number and URL

        Raises:
            PullRequestError: If PR creation fails
        """
        try:
            output = self._run_gh([
                "pr", "create",
                "--repo", self.repo,
                "--title", title,
                "--body", body,
                "--head", head_branch,
                "--base", base_branch,
            ])
        except GitHubClientError as e:
            raise PullRequestError(f"Failed to create the new release PR: {e}")

        # gh pr create outputs the PR URL
        # Format: https://github.com/owner/repo/pull/123
        pr_url = output.strip().splitlines()[-1] if output.strip() else ""
        try:
            pr_number = int(pr_url.rstrip("/").split("/")[-1])
        except (ValueError, IndexError):
            raise PullRequestError(f"Failed to parse PR number from: {pr_url}")

        return PullRequestInfo(number=pr_number, url=pr_url, head_ref=head_branch)

    def update_pr(self, number: int, body: str) -> None:
        """
        Replace the body of a pull request.

        Raises:
            PullRequestError: If the update fails
        """
        try:
            self._run_gh([
                "api", "-X", "PATCH",
                f"repos/{self.repo}/pulls/{number}",
                "-f", f"body={body}",
                "--silent",
            ])
        except GitHubClientError as e:
            raise PullRequestError(f"Failed to update the release PR: {e}")

    def commit_is_merged_release(self, commit_id: str, release_branch: str) -> bool:
        """
        Check whether a commit came from merging the release branch.

        Uses GET /repos/{owner}/{repo}/commits/{sha}/pulls, which lists
        the PRs the commit is associated with (merge, squash or rebase).
        A match needs an exact head ref and a merged state.

        Args:
            commit_id: Full commit SHA
            release_branch: Short name of the release branch

        Returns:
            True if a merged PR from release_branch produced the commit

        Raises:
            GitHubClientError: If the lookup fails
        """
        try:
            prs = self._run_gh_json([
                "api",
                f"repos/{self.repo}/commits/{commit_id}/pulls",
                "--jq", "[.[] | {number: .number, head: .head.ref, merged_at: .merged_at}]",
            ])
        except GitHubClientError as e:
            raise GitHubClientError(f"Failed to check commit: {e}")

        for pr in prs or []:
            if pr.get("head") == release_branch and pr.get("merged_at"):
                return True
        return False
