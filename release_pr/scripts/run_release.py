#!/usr/bin/env python3
"""
Entry point for the release PR workflow step.

Reads configuration from the environment, wires git and gh, runs the
release orchestrator and writes the result to GITHUB_OUTPUT:

    tag=<name>                on the tagging path
    pr_id=<number>, pr_url=<url>  on the PR path

Usage:
    python -m release_pr.scripts.run_release [--repo-dir DIR] [--verbose]
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from .config import ConfigurationError, ReleaseConfig
from .git_operations import GitOperations, GitOperationsError, parse_remote_url
from .github_client import GitHubClient, GitHubClientError
from .release_orchestrator import (
    Outcome,
    PullRequestOpened,
    PullRequestUpdated,
    ReleaseOrchestrator,
    Tagged,
)

logger = logging.getLogger(__name__)


def outcome_outputs(outcome: Outcome) -> List[Tuple[str, str]]:
    """Map an outcome to the key/value pairs it publishes."""
    if isinstance(outcome, Tagged):
        return [("tag", outcome.tag_name)]
    if isinstance(outcome, (PullRequestOpened, PullRequestUpdated)):
        return [("pr_id", str(outcome.pr.number)), ("pr_url", outcome.pr.url)]
    return []


def write_output(path: Optional[str], pairs: List[Tuple[str, str]]) -> None:
    """
    Append key=value lines to the output file.

    Args:
        path: Output file, usually $GITHUB_OUTPUT; nothing is written if unset
        pairs: Key/value pairs in order
    """
    if not path or not pairs:
        return
    with open(path, "a") as f:
        for name, value in pairs:
            f.write(f"{name}={value}\n")


def resolve_repository(cfg: ReleaseConfig, git: GitOperations) -> str:
    """Use GITHUB_REPOSITORY when set, else derive owner/name from the remote URL."""
    if cfg.repository:
        return cfg.repository
    owner, name = parse_remote_url(git.get_remote_url())
    return f"{owner}/{name}"


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Create a release tag or release PR")
    parser.add_argument("--repo-dir", default=".", help="Path to the git working copy")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )

    try:
        cfg = ReleaseConfig.from_env()
        git = GitOperations(work_dir=args.repo_dir, token=cfg.token)
        repo = resolve_repository(cfg, git)
        logger.debug(f"Repository: {repo}")
        gh = GitHubClient(repo, token=cfg.token, timeout=cfg.timeout)

        outcome = ReleaseOrchestrator(git, gh).run(cfg)
    except (ConfigurationError, GitOperationsError, GitHubClientError) as e:
        logger.error(str(e))
        return 1

    try:
        write_output(cfg.output_path, outcome_outputs(outcome))
    except OSError as e:
        logger.error(f"Failed to open {cfg.output_path}: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
