"""
Central configuration for release PR automation.

Values come from environment variables, optionally layered over a YAML
file named by RELEASE_PR_CONFIG. The result is captured once at startup
and passed into the orchestrator.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

import yaml

# Defaults
DEFAULT_RELEASE_BRANCH = "release/next"
DEFAULT_TAG_PREFIX = "release"
DEFAULT_PR_TITLE = "Release"
DEFAULT_TIMEOUT = 60.0

# Environment variables
ENV_TOKEN = "GITHUB_TOKEN"
ENV_RELEASE_BRANCH = "RELEASE_BRANCH"
ENV_TAG_PREFIX = "TAG_PREFIX"
ENV_PR_TITLE = "PR_TITLE"
ENV_OUTPUT = "GITHUB_OUTPUT"
ENV_REPOSITORY = "GITHUB_REPOSITORY"
ENV_TIMEOUT = "RELEASE_PR_TIMEOUT"
ENV_CONFIG_FILE = "RELEASE_PR_CONFIG"

# Release commit / notes
RELEASE_COMMIT_MESSAGE = "Release commit"
NEXT_RELEASE_TAG = "next-release"

# Keys accepted in the YAML file
FILE_KEYS = ("release_branch", "tag_prefix", "pr_title", "timeout")


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


@dataclass(frozen=True)
class ReleaseConfig:
    """Configuration for a single run."""
    token: str
    release_branch: str = DEFAULT_RELEASE_BRANCH
    tag_prefix: str = DEFAULT_TAG_PREFIX
    pr_title: str = DEFAULT_PR_TITLE
    repository: Optional[str] = None
    output_path: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ReleaseConfig":
        """
        Build the configuration from the process environment.

        Args:
            environ: Mapping to read instead of os.environ

        Returns:
            ReleaseConfig

        Raises:
            ConfigurationError: If the token is missing or a value is invalid
        """
        env = os.environ if environ is None else environ

        file_values: Dict[str, Any] = {}
        config_file = env.get(ENV_CONFIG_FILE)
        if config_file:
            file_values = load_config_file(config_file)

        def pick(env_name: str, key: str, default: Any) -> Any:
            value = env.get(env_name)
            if value:
                return value
            if file_values.get(key) not in (None, ""):
                return file_values[key]
            return default

        token = env.get(ENV_TOKEN)
        if not token:
            raise ConfigurationError(f"{ENV_TOKEN} env variable is required")

        raw_timeout = pick(ENV_TIMEOUT, "timeout", DEFAULT_TIMEOUT)
        try:
            timeout = float(raw_timeout)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid timeout: {raw_timeout!r}")
        if timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {timeout}")

        config = cls(
            token=token,
            release_branch=str(pick(ENV_RELEASE_BRANCH, "release_branch", DEFAULT_RELEASE_BRANCH)),
            tag_prefix=str(pick(ENV_TAG_PREFIX, "tag_prefix", DEFAULT_TAG_PREFIX)),
            pr_title=str(pick(ENV_PR_TITLE, "pr_title", DEFAULT_PR_TITLE)),
            repository=env.get(ENV_REPOSITORY) or None,
            output_path=env.get(ENV_OUTPUT) or None,
            timeout=timeout,
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Reject values that would produce unusable refs."""
        if not self.release_branch or any(c.isspace() for c in self.release_branch):
            raise ConfigurationError(f"Invalid release branch: {self.release_branch!r}")
        if not self.tag_prefix or any(c.isspace() or c in "*?[" for c in self.tag_prefix):
            raise ConfigurationError(f"Invalid tag prefix: {self.tag_prefix!r}")
        if self.repository is not None and self.repository.count("/") != 1:
            raise ConfigurationError(f"{ENV_REPOSITORY} must be owner/name, got {self.repository!r}")


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Read the optional YAML configuration file.

    Args:
        path: Path to a YAML mapping

    Returns:
        Dict restricted to the known keys

    Raises:
        ConfigurationError: If the file is missing, unparsable or not a mapping
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return {k: v for k, v in data.items() if k in FILE_KEYS}
