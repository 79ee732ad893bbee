"""
Tests for the config module.

Tests configuration loading, validation, settings resolution and default
config generation.
"""

import os
import stat
from unittest.mock import patch

import pytest
import yaml

from hireos_sync.config.generator import generate_default_config, save_config_file
from hireos_sync.config.loader import DEFAULT_CONFIG_FILE, ConfigError, ConfigLoader
from hireos_sync.config.settings import (
    DEFAULT_GHL_BASE_URL,
    DEFAULT_MAX_RECORDS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TOKEN_EXPIRY_MARGIN,
    DEFAULT_WORKFLOWS,
    ConfigurationError,
    GHLSettings,
)


@pytest.fixture
def loader(tmp_path):
    """Create a ConfigLoader rooted in a temporary directory."""
    return ConfigLoader(config_dir=tmp_path)


def write_config(path, content):
    path.write_text(content, encoding="utf-8")
    return path


class TestConfigLoading:
    """Tests for loading YAML configuration files."""

    def test_default_file_name(self, loader, tmp_path):
        assert loader.config_file == DEFAULT_CONFIG_FILE
        assert loader.config_path == tmp_path / "config.yaml"

    def test_env_config_dir(self, tmp_path):
        with patch.dict(os.environ, {"HIREOS_SYNC_CONFIG_DIR": str(tmp_path)}):
            assert ConfigLoader().config_dir == tmp_path.resolve()

    def test_missing_file_returns_empty(self, loader):
        assert loader.load() == {}

    def test_load_valid_file(self, loader, tmp_path):
        write_config(tmp_path / "config.yaml", "page_size: 50\ndry_run: true\n")
        assert loader.load() == {"page_size": 50, "dry_run": True}

    def test_comments_only_returns_empty(self, loader, tmp_path):
        path = write_config(tmp_path / "c.yaml", "# nothing here\n")
        assert loader.load_from_file(path) == {}

    def test_invalid_yaml_raises(self, loader, tmp_path):
        path = write_config(tmp_path / "c.yaml", "page_size: [unclosed\n")
        with pytest.raises(ConfigError, match="parse"):
            loader.load_from_file(path)

    def test_list_yaml_raises(self, loader, tmp_path):
        path = write_config(tmp_path / "c.yaml", "- a\n- b\n")
        with pytest.raises(ConfigError, match="dictionary"):
            loader.load_from_file(path)

    def test_unreadable_file_raises(self, loader, tmp_path):
        path = write_config(tmp_path / "c.yaml", "verbose: true\n")
        with patch("builtins.open", side_effect=PermissionError("denied")):
            with pytest.raises(ConfigError, match="read"):
                loader.load_from_file(path)

    def test_load_and_validate_rejects_bad_values(self, loader, tmp_path):
        write_config(tmp_path / "config.yaml", "page_size: 0\n")
        with pytest.raises(ConfigError, match="page_size"):
            loader.load_and_validate()


class TestConfigValidation:
    """Tests for ConfigLoader.validate."""

    def test_empty_config(self, loader):
        loader.validate({})

    def test_non_dict_rejected(self, loader):
        with pytest.raises(ConfigError):
            loader.validate(["page_size"])

    def test_unknown_keys_ignored(self, loader):
        loader.validate({"future_option": 1, "verbose": True})

    def test_full_valid_config(self, loader):
        loader.validate(
            {
                "verbose": False,
                "dry_run": True,
                "log_dir": "~/logs",
                "log_retention_count": 5,
                "db_path": "hireos.db",
                "ghl_base_url": "https://rest.gohighlevel.com/v1",
                "ghl_v2_base_url": "https://services.leadconnectorhq.com",
                "ghl_token_url": "https://services.leadconnectorhq.com/oauth/token",
                "page_size": 100,
                "max_records": 1000,
                "page_delay": 0,
                "request_timeout": 10,
                "max_retries": 0,
                "rate_limit_delay": 0.5,
                "token_expiry_margin": 120,
                "workflows": {"interview": "wf-1"},
            }
        )

    @pytest.mark.parametrize(
        "key,value",
        [
            ("verbose", "yes"),
            ("page_size", "20"),
            ("page_delay", "fast"),
            ("workflows", ["interview"]),
            ("db_path", 3),
        ],
    )
    def test_wrong_type_rejected(self, loader, key, value):
        with pytest.raises(ConfigError, match="Invalid type"):
            loader.validate({key: value})

    def test_bool_not_accepted_as_int(self, loader):
        with pytest.raises(ConfigError, match="got bool"):
            loader.validate({"max_records": True})

    @pytest.mark.parametrize(
        "key,value",
        [
            ("page_size", 0),
            ("max_records", -1),
            ("max_retries", -1),
            ("page_delay", -0.1),
            ("request_timeout", 0),
        ],
    )
    def test_out_of_range_rejected(self, loader, key, value):
        with pytest.raises(ConfigError, match=key):
            loader.validate({key: value})

    def test_non_http_url_rejected(self, loader):
        with pytest.raises(ConfigError, match="ghl_base_url"):
            loader.validate({"ghl_base_url": "ftp://example.com"})

    def test_empty_workflow_id_rejected(self, loader):
        with pytest.raises(ConfigError, match="offer"):
            loader.validate({"workflows": {"offer": "  "}})

    def test_non_string_workflow_id_rejected(self, loader):
        with pytest.raises(ConfigError, match="workflows"):
            loader.validate({"workflows": {"offer": 42}})


class TestGHLSettings:
    """Tests for GHLSettings resolution."""

    def test_defaults(self):
        settings = GHLSettings.from_config({}, environ={})
        assert settings.base_url == DEFAULT_GHL_BASE_URL
        assert settings.page_size == DEFAULT_PAGE_SIZE
        assert settings.max_records == DEFAULT_MAX_RECORDS
        assert settings.token_expiry_margin == DEFAULT_TOKEN_EXPIRY_MARGIN
        assert settings.workflows == DEFAULT_WORKFLOWS
        assert settings.api_key is None

    def test_secrets_from_environment(self):
        settings = GHLSettings.from_config(
            None,
            environ={
                "GHL_API_KEY": "key-1",
                "GHL_LOCATION_ID": "loc-1",
                "GHL_CLIENT_ID": "client",
                "GHL_CLIENT_SECRET": "secret",
            },
        )
        assert settings.require_api_key() == "key-1"
        assert settings.location_id == "loc-1"
        assert settings.require_client_credentials() == ("client", "secret")

    def test_config_values_applied(self):
        settings = GHLSettings.from_config(
            {
                "ghl_base_url": "https://example.test/v1/",
                "page_size": 50,
                "page_delay": 1,
                "workflows": {"interview": "custom-wf", "onboard": "wf-9"},
            },
            environ={},
        )
        assert settings.base_url == "https://example.test/v1"
        assert settings.page_size == 50
        assert settings.page_delay == 1.0
        assert settings.workflows["interview"] == "custom-wf"
        assert settings.workflows["onboard"] == "wf-9"
        assert settings.workflows["offer"] == DEFAULT_WORKFLOWS["offer"]

    def test_defaults_not_mutated_by_overrides(self):
        GHLSettings.from_config({"workflows": {"offer": "x"}}, environ={})
        assert DEFAULT_WORKFLOWS["offer"] != "x"

    def test_missing_api_key(self):
        settings = GHLSettings.from_config({}, environ={"GHL_API_KEY": ""})
        with pytest.raises(ConfigurationError, match="GHL_API_KEY"):
            settings.require_api_key()

    def test_missing_client_secret(self):
        settings = GHLSettings.from_config({}, environ={"GHL_CLIENT_ID": "client"})
        with pytest.raises(ConfigurationError, match="GHL_CLIENT_SECRET"):
            settings.require_client_credentials()

    def test_location_id(self):
        settings = GHLSettings.from_config({}, environ={"GHL_LOCATION_ID": "loc-1"})
        assert settings.require_location_id() == "loc-1"
        with pytest.raises(ConfigurationError, match="GHL_LOCATION_ID"):
            GHLSettings.from_config({}, environ={}).require_location_id()

    def test_credential_status(self):
        settings = GHLSettings.from_config({}, environ={"GHL_API_KEY": "k"})
        status = settings.credential_status()
        assert status["GHL_API_KEY"] is True
        assert status["GHL_CLIENT_ID"] is False


class TestConfigGenerator:
    """Tests for default config generation."""

    def test_generated_config_is_all_comments(self):
        assert yaml.safe_load(generate_default_config()) is None

    def test_generated_config_mentions_every_option(self):
        content = generate_default_config()
        for key in ("page_size", "max_records", "token_expiry_margin", "workflows"):
            assert key in content
        for workflow_id in DEFAULT_WORKFLOWS.values():
            assert workflow_id in content

    def test_defaults_rendered(self):
        content = generate_default_config()
        assert f"# page_size: {DEFAULT_PAGE_SIZE}" in content
        assert f"# max_records: {DEFAULT_MAX_RECORDS}" in content

    def test_save_creates_private_file(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"
        success, error = save_config_file(path)

        assert success is True
        assert error is None
        assert path.exists()
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_save_refuses_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("verbose: true\n")

        success, error = save_config_file(path)

        assert success is False
        assert "--force" in error
        assert path.read_text() == "verbose: true\n"

    def test_save_overwrite(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("verbose: true\n")
        success, _ = save_config_file(path, overwrite=True)
        assert success is True
        assert "HireOS" in path.read_text()
