"""
Git operations helper for release PR automation.

This module provides the local working copy operations used by the
release orchestrator, using subprocess calls to the git CLI.
"""

import os
import re
import subprocess
from typing import List, Optional, Tuple

BRANCH_REF_PREFIX = "refs/heads/"
TAG_REF_PREFIX = "refs/tags/"


class GitOperationsError(Exception):
    """Base exception for git operations errors."""
    pass


class BranchError(GitOperationsError):
    """Raised when branch operations fail."""
    pass


class CommitError(GitOperationsError):
    """Raised when commit operations fail."""
    pass


class TagError(GitOperationsError):
    """Raised when tag lookup or creation fails."""
    pass


class PushError(GitOperationsError):
    """Raised when push operations fail."""
    pass


def short_branch_name(ref: str) -> str:
    """Strip the refs/heads/ prefix from a branch reference."""
    if ref.startswith(BRANCH_REF_PREFIX):
        return ref[len(BRANCH_REF_PREFIX):]
    return ref


def full_branch_ref(name: str) -> str:
    """Qualify a short branch name as refs/heads/<name>."""
    if name.startswith(BRANCH_REF_PREFIX):
        return name
    return f"{BRANCH_REF_PREFIX}{name}"


def parse_remote_url(url: str) -> Tuple[str, str]:
    """
    Extract owner and repository name from a remote URL.

    Handles scp-like (git@github.com:org/repo.git), ssh:// and https://
    forms. Only the last two path segments are used.

    Args:
        url: Remote URL as returned by `git remote get-url`

    Returns:
        Tuple of (owner, name)

    Raises:
        GitOperationsError: If the URL has no owner/name segments
    """
    path = url.strip().rstrip("/")
    if path.endswith(".git"):
        path = path[:-len(".git")]

    segments = [s for s in re.split(r"[/:]", path) if s]
    if len(segments) < 2:
        raise GitOperationsError(f"Unexpected remote repository url: {url}")

    owner, name = segments[-2], segments[-1]
    if "@" in owner or not name:
        raise GitOperationsError(f"Unexpected remote repository url: {url}")
    return owner, name


class GitOperations:
    """
    Local git operations for the release branch and tag workflow.

    All commands run against an existing working copy; nothing here
    clones or fetches.
    """

    def __init__(self, work_dir: str = ".", remote: str = "origin", token: Optional[str] = None):
        """
        Initialize git operations.

        Args:
            work_dir: Path to the working copy
            remote: Name of the remote to push to
            token: Optional GitHub token, exported as GH_TOKEN for credential helpers
        """
        self.work_dir = work_dir
        self.remote = remote
        self.token = token

    def _run_git(self, args: List[str], check: bool = True) -> str:
        """
        Run a git command and return output.

        Args:
            args: Command arguments (without 'git')
            check: Whether to raise on non-zero exit code

        Returns:
            Command output as string

        Raises:
            GitOperationsError: If command fails and check=True
        """
        cmd = ["git"] + args
        env = os.environ.copy()

        if self.token:
            env["GH_TOKEN"] = self.token

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=check,
                cwd=self.work_dir,
                env=env,
            )
            return result.stdout.strip()
        except subprocess.CalledProcessError as e:
            raise GitOperationsError(f"git {' '.join(args)} failed: {e.stderr}")
        except FileNotFoundError as e:
            raise GitOperationsError(f"Failed to run git: {e}")

    def current_branch_ref(self) -> str:
        """
        Get the full ref of the checked out branch.

        Returns:
            Reference like "refs/heads/main"

        Raises:
            BranchError: If HEAD is detached or the repository is unreadable
        """
        try:
            return self._run_git(["symbolic-ref", "HEAD"])
        except GitOperationsError as e:
            raise BranchError(f"Failed to get base branch: {e}")

    def latest_commit_id(self) -> str:
        """Return the commit SHA that HEAD points at."""
        try:
            return self._run_git(["rev-parse", "--verify", "HEAD^{commit}"])
        except GitOperationsError as e:
            raise CommitError(f"Failed to find latest commit: {e}")

    def find_tags(self, pattern: str) -> List[str]:
        """
        List tags matching a glob pattern.

        Args:
            pattern: Glob pattern such as "release-*"

        Returns:
            Tag names in lexicographic order
        """
        try:
            output = self._run_git(["tag", "--list", pattern, "--sort=refname"])
        except GitOperationsError as e:
            raise TagError(f"Failed to get tags: {e}")
        return [line.strip() for line in output.splitlines() if line.strip()]

    def resolve_tag(self, tag_name: str) -> str:
        """
        Resolve a tag to the commit it targets.

        Annotated tags are peeled to their commit.

        Raises:
            TagError: If the tag does not exist
        """
        try:
            return self._run_git(["rev-parse", "--verify", f"{TAG_REF_PREFIX}{tag_name}^{{commit}}"])
        except GitOperationsError as e:
            raise TagError(f"Failed to find tag: {e}")

    def create_or_reset_branch(self, name: str, at_commit: str) -> str:
        """
        Point a branch at a commit and check it out.

        An existing branch is reset, discarding whatever it pointed at.

        Args:
            name: Short branch name (e.g., "release/next")
            at_commit: Commit the branch should point at

        Returns:
            Full reference of the branch (e.g., "refs/heads/release/next")

        Raises:
            BranchError: If the branch cannot be created or checked out
        """
        branch = short_branch_name(name)
        try:
            self._run_git(["checkout", "-B", branch, at_commit])
        except GitOperationsError as e:
            raise BranchError(f"Failed to create branch: {e}")
        return full_branch_ref(branch)

    def commit_staged(self, message: str) -> str:
        """
        Commit whatever is staged in the index.

        An empty index still produces a commit so the release branch is
        always exactly one commit ahead of its base.

        Returns:
            SHA of the new commit

        Raises:
            CommitError: If the commit fails
        """
        try:
            self._run_git(["commit", "--allow-empty", "--no-verify", "-m", message])
        except GitOperationsError as e:
            raise CommitError(f"Failed to commit: {e}")
        return self.latest_commit_id()

    def create_tag(self, name: str, at_commit: str) -> None:
        """
        Create an annotated tag at a commit.

        Raises:
            TagError: If the tag exists already or creation fails
        """
        try:
            self._run_git(["tag", "-a", name, "-m", name, at_commit])
        except GitOperationsError as e:
            raise TagError(f"Failed to create tag: {e}")

    def push_ref(self, refspec: str) -> None:
        """
        Push a refspec to the remote.

        A leading "+" forces the update, as git itself interprets it.

        Raises:
            PushError: If the remote rejects the push
        """
        target = "tag" if TAG_REF_PREFIX in refspec else "branch"
        try:
            self._run_git(["push", self.remote, refspec])
        except GitOperationsError as e:
            raise PushError(f"Failed to push {target}: {e}")

    def get_remote_url(self) -> str:
        """
        Get the URL of the configured remote.

        Returns:
            Remote URL string
        """
        try:
            return self._run_git(["remote", "get-url", self.remote])
        except GitOperationsError as e:
            raise GitOperationsError(f"Remote repository url is not found: {e}")
