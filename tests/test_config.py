"""Unit tests for taskcomments.engine.config — YAML loading & validation."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from taskcomments.engine import config as config_mod
from taskcomments.engine.config import (
    AppConfig,
    CommentsConfig,
    CORSConfig,
    DatabaseConfig,
    LoggingConfig,
    SecurityConfig,
    ServerConfig,
    ServiceConfig,
    get_config,
    load_config,
    reset_config,
)
from taskcomments.engine.errors import ConfigError


class TestModels:
    """Defaults and field validators."""

    def test_defaults(self):
        cfg = AppConfig()
        assert cfg.service.environment == "dev"
        assert cfg.comments.max_content_length == 1000
        assert cfg.server.path == "/comments"
        assert cfg.security.token_hash_rounds == 12
        assert cfg.logging.level == "INFO"

    def test_invalid_environment(self):
        with pytest.raises(PydanticValidationError):
            ServiceConfig(environment="production")

    def test_logging_level_upper_cased(self):
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_logging_level(self):
        with pytest.raises(PydanticValidationError):
            LoggingConfig(level="verbose")

    def test_server_path_must_be_absolute(self):
        with pytest.raises(PydanticValidationError):
            ServerConfig(path="comments")

    def test_max_content_length_capped(self):
        assert CommentsConfig(max_content_length=500).max_content_length == 500
        with pytest.raises(PydanticValidationError):
            CommentsConfig(max_content_length=1001)
        with pytest.raises(PydanticValidationError):
            CommentsConfig(max_content_length=0)

    def test_hash_rounds_bounds(self):
        with pytest.raises(PydanticValidationError):
            SecurityConfig(token_hash_rounds=3)

    def test_is_sqlite(self):
        assert DatabaseConfig(url="sqlite://").is_sqlite
        assert not DatabaseConfig().is_sqlite

    def test_cors_headers(self):
        headers = CORSConfig(allow_origin="https://app.example.com").headers()
        assert headers["Access-Control-Allow-Origin"] == "https://app.example.com"
        assert "authorization" in headers["Access-Control-Allow-Headers"]
        assert "DELETE" in headers["Access-Control-Allow-Methods"]


class TestLoadConfig:
    """load_config() file handling."""

    def test_missing_file_gives_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "nope.yaml"))
        assert cfg == AppConfig()

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "taskcomments.yaml"
        path.write_text(
            "service:\n"
            "  environment: staging\n"
            "database:\n"
            "  url: sqlite:///tc.db\n"
            "comments:\n"
            "  max_content_length: 280\n"
        )
        cfg = load_config(str(path))
        assert cfg.service.environment == "staging"
        assert cfg.database.url == "sqlite:///tc.db"
        assert cfg.comments.max_content_length == 280

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "taskcomments.yaml"
        path.write_text("")
        assert load_config(str(path)) == AppConfig()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "taskcomments.yaml"
        path.write_text("service: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "taskcomments.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(str(path))

    def test_validation_failure(self, tmp_path):
        path = tmp_path / "taskcomments.yaml"
        path.write_text("service:\n  environment: qa\n")
        with pytest.raises(ConfigError) as exc:
            load_config(str(path))
        assert exc.value.context["path"] == str(path)

    def test_auto_discovery(self, tmp_path, monkeypatch):
        (tmp_path / "taskcomments.yaml").write_text("server:\n  port: 9100\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        assert load_config().server.port == 9100


class TestGlobalConfig:

    def test_get_config_caches(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        first = get_config()
        assert get_config() is first

    def test_reset_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        get_config()
        reset_config()
        assert config_mod._config is None
