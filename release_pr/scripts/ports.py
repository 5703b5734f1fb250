"""
Capability interfaces consumed by the release orchestrator.

GitOperations and GitHubClient satisfy these structurally; tests use
in-memory fakes with the same methods.
"""

from typing import List, Optional, Protocol

from .github_client import PullRequestInfo


class VersionControlPort(Protocol):
    """Operations on the local working copy."""

    def current_branch_ref(self) -> str: ...

    def latest_commit_id(self) -> str: ...

    def find_tags(self, pattern: str) -> List[str]: ...

    def resolve_tag(self, tag_name: str) -> str: ...

    def create_or_reset_branch(self, name: str, at_commit: str) -> str: ...

    def commit_staged(self, message: str) -> str: ...

    def create_tag(self, name: str, at_commit: str) -> None: ...

    def push_ref(self, refspec: str) -> None: ...


class RemoteReleasePort(Protocol):
    """Operations on the hosted repository."""

    def generate_notes(
        self,
        tag_name: str,
        target_branch: str,
        previous_tag: Optional[str] = None,
    ) -> str: ...

    def find_open_pr(self, base: str, head: str) -> Optional[PullRequestInfo]: ...

    def create_pr(
        self,
        title: str,
        head_branch: str,
        base_branch: str,
        body: str,
    ) -> PullRequestInfo: ...

    def update_pr(self, number: int, body: str) -> None: ...

    def commit_is_merged_release(self, commit_id: str, release_branch: str) -> bool: ...
