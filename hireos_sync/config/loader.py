"""
Reads ``config.yaml`` for hireos_sync.

The file is optional: a missing or empty file yields ``{}`` and every
setting falls back to its default. Keys this release doesn't know about
are left alone; known keys are checked for type and range before use.
"""

import logging
from pathlib import Path
from typing import Any, Callable

import yaml

from hireos_sync.utils import resolve_config_dir

DEFAULT_CONFIG_FILE = "config.yaml"

logger = logging.getLogger(__name__)

KeyType = type[Any] | tuple[type[Any], ...]

NUMBER = (int, float)

KEY_TYPES: dict[str, KeyType] = {
    "verbose": bool,
    "dry_run": bool,
    "log_dir": str,
    "log_retention_count": int,
    "db_path": str,
    "ghl_base_url": str,
    "ghl_v2_base_url": str,
    "ghl_token_url": str,
    "page_size": int,
    "max_records": int,
    "page_delay": NUMBER,
    "request_timeout": NUMBER,
    "max_retries": int,
    "rate_limit_delay": NUMBER,
    "token_expiry_margin": int,
    # action name -> workflow id
    "workflows": dict,
}

_AT_LEAST_ONE: tuple[Callable[[Any], bool], str] = (lambda v: v >= 1, ">= 1")
_NOT_NEGATIVE: tuple[Callable[[Any], bool], str] = (lambda v: v >= 0, ">= 0")
_ABOVE_ZERO: tuple[Callable[[Any], bool], str] = (lambda v: v > 0, "> 0")
_HTTP_URL: tuple[Callable[[Any], bool], str] = (
    lambda v: v.startswith(("http://", "https://")),
    "an http(s) URL",
)

RANGE_RULES: dict[str, tuple[Callable[[Any], bool], str]] = {
    "page_size": _AT_LEAST_ONE,
    "max_records": _AT_LEAST_ONE,
    "log_retention_count": _NOT_NEGATIVE,
    "max_retries": _NOT_NEGATIVE,
    "token_expiry_margin": _NOT_NEGATIVE,
    "page_delay": _NOT_NEGATIVE,
    "rate_limit_delay": _NOT_NEGATIVE,
    "request_timeout": _ABOVE_ZERO,
    "ghl_base_url": _HTTP_URL,
    "ghl_v2_base_url": _HTTP_URL,
    "ghl_token_url": _HTTP_URL,
}


class ConfigError(Exception):
    """config.yaml could not be read or holds a bad value."""


def _describe(expected: KeyType) -> str:
    if isinstance(expected, tuple):
        return " or ".join(t.__name__ for t in expected)
    return expected.__name__


def _check_type(key: str, value: Any) -> None:
    expected = KEY_TYPES[key]
    actual = type(value).__name__
    # YAML `true` is an int as far as isinstance is concerned
    sneaky_bool = isinstance(value, bool) and expected is not bool
    if sneaky_bool or not isinstance(value, expected):
        raise ConfigError(
            f"Invalid type for '{key}': expected {_describe(expected)}, got {actual}"
        )


def _check_workflows(workflows: dict[Any, Any]) -> None:
    for action, workflow_id in workflows.items():
        if not (isinstance(action, str) and isinstance(workflow_id, str)):
            raise ConfigError("workflows must map action names to workflow id strings")
        if not workflow_id.strip():
            raise ConfigError(f"Workflow id for '{action}' cannot be empty")


class ConfigLoader:
    """
    Loads and checks the YAML config file in a config directory.

        loader = ConfigLoader()
        config = loader.load_and_validate()
    """

    def __init__(
        self, config_dir: Path | None = None, config_file: str = DEFAULT_CONFIG_FILE
    ):
        # config_dir falls back to $HIREOS_SYNC_CONFIG_DIR, then ~/.hireos-sync
        self.config_dir = resolve_config_dir(config_dir)
        self.config_file = config_file

    @property
    def config_path(self) -> Path:
        return self.config_dir / self.config_file

    def load(self) -> dict[str, Any]:
        """Read config.yaml from config_dir ({} when there is none)."""
        return self.load_from_file(self.config_path)

    def load_from_file(self, path: Path | str) -> dict[str, Any]:
        """
        Read one YAML file into a dict without validating it.

        Raises:
            ConfigError: The file is unreadable, isn't YAML, or its top
                level isn't a mapping
        """
        path = Path(path)
        if not path.exists():
            logger.debug(f"No config file at {path}, using defaults")
            return {}

        try:
            with open(path, encoding="utf-8") as stream:
                data = yaml.safe_load(stream)
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {path} as YAML: {e}") from e
        except OSError as e:
            raise ConfigError(f"Could not read {path}: {e}") from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"{path} must hold a YAML dictionary at the top level, "
                f"not a {type(data).__name__}"
            )

        logger.debug(f"Read {len(data)} config keys from {path}")
        return data

    def validate(self, config: dict[str, Any]) -> None:
        """Raise ConfigError for the first known key with a bad type or value."""
        if not isinstance(config, dict):
            raise ConfigError(
                f"Configuration must be a dictionary, got {type(config).__name__}"
            )

        known = [key for key in config if key in KEY_TYPES]
        for key in known:
            _check_type(key, config[key])

        for key in known:
            rule = RANGE_RULES.get(key)
            if rule is None:
                continue
            check, wanted = rule
            if not check(config[key]):
                raise ConfigError(f"{key} must be {wanted}, got {config[key]}")

        if "workflows" in config:
            _check_workflows(config["workflows"])

    def load_and_validate(self) -> dict[str, Any]:
        config = self.load()
        if config:
            self.validate(config)
        return config
