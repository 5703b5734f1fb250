"""Release orchestrator for release PR automation.

Decides whether the current commit is the result of a merged release PR
and drives one of two flows:

1. Release commit: tag the commit with {prefix}-{timestamp} and push the tag
2. Development commit: reset the release branch onto HEAD, add the release
   commit, force-push it, and open or refresh the release PR
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from . import config
from .config import ReleaseConfig
from .git_operations import TAG_REF_PREFIX, full_branch_ref, short_branch_name
from .github_client import PullRequestInfo
from .ports import RemoteReleasePort, VersionControlPort

logger = logging.getLogger(__name__)

# Fixed width keeps lexicographic order equal to chronological order
TAG_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
TAG_TIMESTAMP_PATTERN = r"\d{14}"


@dataclass(frozen=True)
class AlreadyReleased:
    """The release commit already carries the latest release tag."""


@dataclass(frozen=True)
class Tagged:
    """A new release tag was created and pushed."""
    tag_name: str


@dataclass(frozen=True)
class NoActionNeeded:
    """Nothing to do for this commit."""
    reason: str


@dataclass(frozen=True)
class PullRequestOpened:
    """A new release PR was created."""
    pr: PullRequestInfo


@dataclass(frozen=True)
class PullRequestUpdated:
    """An existing release PR got fresh release notes."""
    pr: PullRequestInfo


Outcome = Union[AlreadyReleased, Tagged, NoActionNeeded, PullRequestOpened, PullRequestUpdated]


def release_tag_name(prefix: str, now: datetime) -> str:
    """Build the tag name for a release made at `now`."""
    return f"{prefix}-{now.strftime(TAG_TIMESTAMP_FORMAT)}"


def select_latest_tag(prefix: str, tags: List[str]) -> Optional[str]:
    """
    Pick the latest release tag from a list of tag names.

    Only names of the form {prefix}-{YYYYMMDDHHMMSS} take part; anything
    else matching the glob would break the ordering and is skipped.

    Args:
        prefix: Tag prefix (e.g., "release")
        tags: Candidate tag names

    Returns:
        Lexicographically last well-formed tag, or None
    """
    pattern = re.compile(rf"{re.escape(prefix)}-{TAG_TIMESTAMP_PATTERN}")
    valid = []
    for tag in tags:
        if pattern.fullmatch(tag):
            valid.append(tag)
        else:
            logger.warning(f"Ignoring tag {tag}: not in {prefix}-YYYYMMDDHHMMSS form")
    if not valid:
        return None
    return sorted(valid)[-1]


class ReleaseOrchestrator:
    """Runs the release decision and the resulting release flow.

    All repository and GitHub access goes through the two ports, so the
    orchestrator itself holds no state besides its collaborators.
    """

    def __init__(
        self,
        git: VersionControlPort,
        gh: RemoteReleasePort,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize with collaborators.

        Args:
            git: Working copy operations
            gh: GitHub operations
            clock: Returns the current time; defaults to UTC now
        """
        self.git = git
        self.gh = gh
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def run(self, cfg: ReleaseConfig) -> Outcome:
        """Decide which flow applies to HEAD and execute it.

        Args:
            cfg: Configuration captured at startup

        Returns:
            Outcome describing what was done
        """
        commit = self.git.latest_commit_id()
        released = self.gh.commit_is_merged_release(commit, cfg.release_branch)

        if released:
            logger.info("The latest commit is for release")
            if self.already_tagged(cfg.tag_prefix):
                logger.info("The latest commit is already released")
                return AlreadyReleased()
            return Tagged(self.create_release_tag(cfg.tag_prefix, commit))

        logger.info("The latest commit is not for release")
        base_ref = self.git.current_branch_ref()
        if short_branch_name(base_ref) == short_branch_name(cfg.release_branch):
            reason = f"HEAD is on the release branch {cfg.release_branch}"
            logger.info(f"Nothing to do: {reason}")
            return NoActionNeeded(reason)

        return self.create_release_pr(cfg.release_branch, cfg.tag_prefix, cfg.pr_title)

    def latest_tag(self, prefix: str) -> Optional[str]:
        """Return the latest {prefix}-* tag, or None if there is none."""
        return select_latest_tag(prefix, self.git.find_tags(f"{prefix}-*"))

    def already_tagged(self, prefix: str) -> bool:
        """Check whether the latest release tag points at HEAD.

        Read-only; safe to call at any time.
        """
        tag_name = self.latest_tag(prefix)
        if tag_name is None:
            return False
        if self.git.resolve_tag(tag_name) != self.git.latest_commit_id():
            return False
        logger.info(f"The latest commit has {tag_name}")
        return True

    def create_release_tag(self, prefix: str, commit: Optional[str] = None) -> str:
        """Tag a commit as released and push the tag.

        Args:
            prefix: Tag prefix
            commit: Commit to tag; defaults to HEAD

        Returns:
            Name of the created tag
        """
        target = commit or self.git.latest_commit_id()
        tag = release_tag_name(prefix, self.clock())

        self.git.create_tag(tag, target)
        # Tags are never reused, so the push is never forced
        self.git.push_ref(f"{TAG_REF_PREFIX}{tag}")

        logger.info(f"Release Tag: {tag}")
        return tag

    def create_release_pr(
        self,
        release_branch: str,
        tag_prefix: str,
        pr_title: str,
    ) -> Union[PullRequestOpened, PullRequestUpdated]:
        """Prepare the release branch and open or refresh its PR.

        Steps run in order without rollback. A failure after the push
        leaves the branch on the remote; the next run resets it again.

        Args:
            release_branch: Release branch short name
            tag_prefix: Prefix of release tags, for the notes lower bound
            pr_title: Title used when a new PR is created

        Returns:
            PullRequestOpened or PullRequestUpdated
        """
        base_ref = self.git.current_branch_ref()
        base_branch = short_branch_name(base_ref)
        logger.info(f"Base branch: {base_ref}")

        head = self.git.latest_commit_id()
        branch_ref = self.git.create_or_reset_branch(release_branch, head)
        logger.info(f"Create release branch: {branch_ref}")

        commit_id = self.git.commit_staged(config.RELEASE_COMMIT_MESSAGE)
        logger.info(f"Create release commit: {commit_id}")

        branch_ref = full_branch_ref(branch_ref)
        self.git.push_ref(f"+{branch_ref}:{branch_ref}")
        logger.info(f"Push release branch: {branch_ref.replace('refs/heads/', 'remotes/origin/')}")

        head_branch = short_branch_name(branch_ref)
        previous_tag = self.latest_tag(tag_prefix)
        notes = self.gh.generate_notes(config.NEXT_RELEASE_TAG, head_branch, previous_tag)

        existing = self.gh.find_open_pr(base_branch, head_branch)
        if existing is not None:
            self.gh.update_pr(existing.number, notes)
            logger.info(f"Release PR: {existing.url or existing.number} (updated)")
            return PullRequestUpdated(existing)

        pr = self.gh.create_pr(pr_title, head_branch, base_branch, notes)
        logger.info(f"Release PR: {pr.url or pr.number} (created)")
        return PullRequestOpened(pr)
