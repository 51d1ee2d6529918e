"""
Tests for AuditConfigManager: defaults, persistence, env overrides, validation.
"""

import json

import pytest

from portfolio_audit.server.utils.config_manager import (
    AuditConfig,
    AuditConfigManager,
    GitTimeoutsConfig,
    RepositoryConfig,
    load_remote_identity,
)


@pytest.fixture
def manager(tmp_path):
    return AuditConfigManager(str(tmp_path / "audit"))


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "PORTFOLIO_AUDIT_DATA_DIR",
        "PORTFOLIO_AUDIT_WORKING_TREE",
        "PORTFOLIO_AUDIT_REMOTE_NAME",
        "PORTFOLIO_AUDIT_TARGET_BRANCH",
        "PORTFOLIO_AUDIT_LOG_LEVEL",
        "PORTFOLIO_AUDIT_HISTORY_LIMIT",
        "GITHUB_USERNAME",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_default_config(self, manager):
        config = manager.create_default_config()

        assert config.log_level == "INFO"
        assert config.repository_config.remote_name == "origin"
        assert config.repository_config.target_branch is None
        assert config.repository_config.history_limit == 50
        assert config.git_timeouts_config.git_local_timeout == 30
        assert config.git_timeouts_config.git_remote_timeout == 300
        manager.validate_config(config)

    def test_data_dir_from_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("PORTFOLIO_AUDIT_DATA_DIR", str(tmp_path / "env-dir"))

        manager = AuditConfigManager()

        assert manager.config_file_path == tmp_path / "env-dir" / "config.json"


class TestPersistence:
    def test_save_and_load(self, manager):
        config = manager.create_default_config()
        config.repository_config.target_branch = "main"
        config.git_timeouts_config.git_remote_timeout = 120

        manager.save_config(config)
        loaded = manager.load_config()

        assert isinstance(loaded.repository_config, RepositoryConfig)
        assert isinstance(loaded.git_timeouts_config, GitTimeoutsConfig)
        assert loaded.repository_config.target_branch == "main"
        assert loaded.git_timeouts_config.git_remote_timeout == 120

    def test_missing_file_returns_none(self, manager):
        assert manager.load_config() is None

    def test_malformed_file(self, manager):
        manager.server_dir.mkdir(parents=True)
        manager.config_file_path.write_text("{not json")

        with pytest.raises(ValueError):
            manager.load_config()

    def test_unknown_key_is_rejected(self, manager):
        manager.server_dir.mkdir(parents=True)
        manager.config_file_path.write_text(json.dumps({"repository_config": {"bogus": 1}}))

        with pytest.raises(ValueError):
            manager.load_config()

    def test_credentials_never_saved(self, manager, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_secret")

        manager.save_config(manager.load_or_create_config())

        assert "ghp_secret" not in manager.config_file_path.read_text()


class TestEnvOverrides:
    def test_overrides(self, manager, monkeypatch):
        monkeypatch.setenv("PORTFOLIO_AUDIT_WORKING_TREE", "/srv/site")
        monkeypatch.setenv("PORTFOLIO_AUDIT_REMOTE_NAME", "github")
        monkeypatch.setenv("PORTFOLIO_AUDIT_TARGET_BRANCH", "production")
        monkeypatch.setenv("PORTFOLIO_AUDIT_LOG_LEVEL", "debug")
        monkeypatch.setenv("PORTFOLIO_AUDIT_HISTORY_LIMIT", "20")

        config = manager.apply_env_overrides(manager.create_default_config())

        assert config.repository_config.working_tree_path == "/srv/site"
        assert config.repository_config.remote_name == "github"
        assert config.repository_config.target_branch == "production"
        assert config.log_level == "DEBUG"
        assert config.repository_config.history_limit == 20

    def test_invalid_history_limit_keeps_default(self, manager, monkeypatch):
        monkeypatch.setenv("PORTFOLIO_AUDIT_HISTORY_LIMIT", "many")

        config = manager.apply_env_overrides(manager.create_default_config())

        assert config.repository_config.history_limit == 50


class TestValidation:
    @pytest.mark.parametrize(
        "mutate",
        [
            lambda c: setattr(c, "log_level", "LOUD"),
            lambda c: setattr(c.repository_config, "remote_name", "--upload-pack=x"),
            lambda c: setattr(c.repository_config, "target_branch", ""),
            lambda c: setattr(c.repository_config, "history_limit", 51),
            lambda c: setattr(c.repository_config, "committer_name", "Bot"),
            lambda c: setattr(c.git_timeouts_config, "git_local_timeout", 1),
            lambda c: setattr(c.git_timeouts_config, "git_remote_timeout", 10),
        ],
    )
    def test_invalid_values(self, manager, mutate):
        config = AuditConfig(server_dir=str(manager.server_dir))
        mutate(config)

        with pytest.raises(ValueError):
            manager.validate_config(config)


class TestRemoteIdentity:
    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("GITHUB_USERNAME", "alice")
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_secret")

        identity = load_remote_identity()

        assert identity.username == "alice"
        assert identity.is_complete

    def test_missing(self):
        assert load_remote_identity().is_complete is False
