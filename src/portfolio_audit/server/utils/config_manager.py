"""
Configuration management for the portfolio audit engine.

Handles configuration creation, validation, environment variable overrides
and persistence of the engine's settings. Remote credentials are read from
the environment only and never written to the configuration file.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional

from ...versioning.models import RemoteIdentity


@dataclass
class RepositoryConfig:
    """
    Working tree and remote settings.

    working_tree_path defaults to the current directory at startup, the way
    the site process always ran git from its own checkout.
    """

    working_tree_path: str = "."
    remote_name: str = "origin"
    # None pushes to whatever branch is checked out
    target_branch: Optional[str] = None
    # Identity recorded on commits; None falls back to the git configuration
    committer_name: Optional[str] = None
    committer_email: Optional[str] = None
    history_limit: int = 50


@dataclass
class GitTimeoutsConfig:
    """Git operation timeouts in seconds."""

    # Local operations: status, add, commit, log, revert, checkout (minimum 5s)
    git_local_timeout: int = 30
    # Push (minimum 30s)
    git_remote_timeout: int = 300
    # ls-remote reachability check (minimum 5s)
    git_probe_timeout: int = 30
    # Maximum wait for the mutation gate
    gate_acquire_timeout: int = 600


@dataclass
class AuditConfig:
    """
    Engine configuration data structure.

    Contains the working tree binding, logging level and git timeouts.
    """

    server_dir: str
    log_level: str = "INFO"
    repository_config: Optional[RepositoryConfig] = None
    git_timeouts_config: Optional[GitTimeoutsConfig] = None

    def __post_init__(self):
        """Initialize nested config objects if not provided."""
        if self.repository_config is None:
            self.repository_config = RepositoryConfig()
        if self.git_timeouts_config is None:
            self.git_timeouts_config = GitTimeoutsConfig()


class AuditConfigManager:
    """
    Manages portfolio audit configuration.

    Handles configuration creation, validation, file persistence and
    environment variable overrides.
    """

    def __init__(self, server_dir_path: Optional[str] = None):
        """
        Initialize configuration manager.

        Args:
            server_dir_path: Path to data directory (defaults to
                PORTFOLIO_AUDIT_DATA_DIR env var or ~/.portfolio-audit)
        """
        if server_dir_path:
            self.server_dir = Path(server_dir_path)
        else:
            default_dir = os.environ.get(
                "PORTFOLIO_AUDIT_DATA_DIR", str(Path.home() / ".portfolio-audit")
            )
            self.server_dir = Path(default_dir)

        self.config_file_path = self.server_dir / "config.json"

    def create_default_config(self) -> AuditConfig:
        """
        Create default configuration.

        Returns:
            AuditConfig with default values
        """
        return AuditConfig(server_dir=str(self.server_dir))

    def save_config(self, config: AuditConfig) -> None:
        """
        Save configuration to file.

        Args:
            config: AuditConfig object to save
        """
        self.server_dir.mkdir(parents=True, exist_ok=True)

        with open(self.config_file_path, "w") as f:
            json.dump(asdict(config), f, indent=2)

    def load_config(self) -> Optional[AuditConfig]:
        """
        Load configuration from file.

        Returns:
            AuditConfig if file exists and is valid, None otherwise

        Raises:
            ValueError: If configuration file is malformed
        """
        if not self.config_file_path.exists():
            return None

        try:
            with open(self.config_file_path, "r") as f:
                config_dict = json.load(f)

            if "server_dir" not in config_dict:
                config_dict["server_dir"] = str(self.server_dir)

            if isinstance(config_dict.get("repository_config"), dict):
                config_dict["repository_config"] = RepositoryConfig(
                    **config_dict["repository_config"]
                )

            if isinstance(config_dict.get("git_timeouts_config"), dict):
                config_dict["git_timeouts_config"] = GitTimeoutsConfig(
                    **config_dict["git_timeouts_config"]
                )

            return AuditConfig(**config_dict)

        except (json.JSONDecodeError, TypeError) as e:
            raise ValueError(f"Failed to parse configuration file: {e}")

    def load_or_create_config(self) -> AuditConfig:
        """
        Load the configuration file (or defaults), apply env overrides and validate.

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        config = self.load_config() or self.create_default_config()
        config = self.apply_env_overrides(config)
        self.validate_config(config)
        return config

    def apply_env_overrides(self, config: AuditConfig) -> AuditConfig:
        """
        Apply environment variable overrides to configuration.

        Supported environment variables:
        - PORTFOLIO_AUDIT_WORKING_TREE: Override working tree path
        - PORTFOLIO_AUDIT_REMOTE_NAME: Override remote name
        - PORTFOLIO_AUDIT_TARGET_BRANCH: Override push branch
        - PORTFOLIO_AUDIT_LOG_LEVEL: Override log level

        Args:
            config: Base configuration to apply overrides to

        Returns:
            Updated configuration with environment overrides
        """
        assert config.repository_config is not None  # Guaranteed by __post_init__

        if working_tree_env := os.environ.get("PORTFOLIO_AUDIT_WORKING_TREE"):
            config.repository_config.working_tree_path = working_tree_env

        if remote_env := os.environ.get("PORTFOLIO_AUDIT_REMOTE_NAME"):
            config.repository_config.remote_name = remote_env

        if branch_env := os.environ.get("PORTFOLIO_AUDIT_TARGET_BRANCH"):
            config.repository_config.target_branch = branch_env

        if log_level_env := os.environ.get("PORTFOLIO_AUDIT_LOG_LEVEL"):
            config.log_level = log_level_env.upper()

        if history_env := os.environ.get("PORTFOLIO_AUDIT_HISTORY_LIMIT"):
            try:
                config.repository_config.history_limit = int(history_env)
            except ValueError:
                logging.warning(
                    f"Invalid PORTFOLIO_AUDIT_HISTORY_LIMIT environment variable value '{history_env}'. Using default {config.repository_config.history_limit}"
                )

        return config

    def validate_config(self, config: AuditConfig) -> None:
        """
        Validate configuration settings.

        Args:
            config: Configuration to validate

        Raises:
            ValueError: If any configuration value is invalid
        """
        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if config.log_level.upper() not in valid_log_levels:
            raise ValueError(
                f"Log level must be one of {valid_log_levels}, got {config.log_level}"
            )

        assert config.repository_config is not None  # Guaranteed by __post_init__
        repo = config.repository_config
        if not repo.working_tree_path:
            raise ValueError("working_tree_path must not be empty")
        if not repo.remote_name or repo.remote_name.startswith("-"):
            raise ValueError(f"Invalid remote_name: {repo.remote_name!r}")
        if repo.target_branch is not None and (
            not repo.target_branch or repo.target_branch.startswith("-")
        ):
            raise ValueError(f"Invalid target_branch: {repo.target_branch!r}")
        if bool(repo.committer_name) != bool(repo.committer_email):
            raise ValueError(
                "committer_name and committer_email must be configured together"
            )
        if not (1 <= repo.history_limit <= 50):
            raise ValueError(
                f"history_limit must be between 1 and 50, got {repo.history_limit}"
            )

        assert config.git_timeouts_config is not None  # Guaranteed by __post_init__
        timeouts = config.git_timeouts_config
        if timeouts.git_local_timeout < 5:
            raise ValueError(
                f"git_local_timeout must be >= 5, got {timeouts.git_local_timeout}"
            )
        if timeouts.git_remote_timeout < 30:
            raise ValueError(
                f"git_remote_timeout must be >= 30, got {timeouts.git_remote_timeout}"
            )
        if timeouts.git_probe_timeout < 5:
            raise ValueError(
                f"git_probe_timeout must be >= 5, got {timeouts.git_probe_timeout}"
            )
        if timeouts.gate_acquire_timeout < 1:
            raise ValueError(
                f"gate_acquire_timeout must be >= 1, got {timeouts.gate_acquire_timeout}"
            )


def load_remote_identity() -> RemoteIdentity:
    """Remote username and token from GITHUB_USERNAME / GITHUB_TOKEN."""
    return RemoteIdentity(
        username=os.environ.get("GITHUB_USERNAME") or None,
        token=os.environ.get("GITHUB_TOKEN") or None,
    )
