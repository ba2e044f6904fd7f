"""
Environment Config Provider - Load configuration from files and environment.

Sources, lowest to highest precedence:
1. YAML config file (.reffy.yaml in the repo root, or an explicit path)
2. <repo>/.env
3. Process environment variables
4. CLI overrides
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from dotenv import dotenv_values

from reffy.core.exceptions import ConfigFileError
from reffy.core.ports.config_provider import (
    DEFAULT_PUSH_LABEL,
    AppConfig,
    ConfigProviderPort,
    LinearConfig,
    SyncConfig,
)


CONFIG_FILE_NAME = ".reffy.yaml"

# Environment variable -> dotted config key
ENV_KEYS: dict[str, str] = {
    "LINEAR_API_KEY": "linear.api_key",
    "LINEAR_OAUTH_TOKEN": "linear.oauth_token",
    "LINEAR_TEAM_ID": "linear.team_id",
    "LINEAR_PROJECT_ID": "linear.project_id",
    "LINEAR_API_URL": "linear.api_url",
    "LINEAR_PUSH_LABEL": "sync.push_label",
    "LINEAR_PULL_CREATE": "sync.pull_create",
    "LINEAR_PULL_LABEL": "sync.pull_label",
    "LINEAR_PULL_CREATE_CONFLICTS": "sync.pull_create_conflicts",
}

# CLI override name -> dotted config key
CLI_KEYS: dict[str, str] = {
    "api_key": "linear.api_key",
    "oauth_token": "linear.oauth_token",
    "team_id": "linear.team_id",
    "project_id": "linear.project_id",
    "push_label": "sync.push_label",
    "pull_create": "sync.pull_create",
    "pull_label": "sync.pull_label",
    "pull_create_conflicts": "sync.pull_create_conflicts",
}


def _flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    flat: dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def _as_bool(value: Any, env_true: str | None = None, env_false: str | None = None) -> bool | None:
    """
    Interpret a config value as a boolean.

    Strings from the environment follow the exact-match rules
    (`env_true` must match to be true, `env_false` must match to be false).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip()
    if env_true is not None:
        return text == env_true
    if env_false is not None:
        return text != env_false
    return text.lower() in ("1", "true", "yes", "on")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class EnvironmentConfigProvider(ConfigProviderPort):
    """
    Configuration provider that merges a YAML file, .env and the environment.

    The .env file is read without mutating os.environ.
    """

    def __init__(
        self,
        repo_root: str | Path = ".",
        config_file: str | Path | None = None,
        cli_overrides: dict[str, Any] | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        """
        Initialize the provider.

        Args:
            repo_root: Repository holding .references/, .env and .reffy.yaml
            config_file: Explicit YAML config path
            cli_overrides: Values from command line arguments
            environ: Environment mapping (defaults to os.environ)
        """
        self.repo_root = Path(repo_root)
        self.cli_overrides = cli_overrides or {}
        self.environ = environ if environ is not None else os.environ
        self.logger = logging.getLogger("EnvironmentConfigProvider")

        self._explicit_config_file = Path(config_file) if config_file else None
        self.config_file_path: Path | None = None
        self._values: dict[str, Any] = {}
        self._loaded = False

    @property
    def name(self) -> str:
        if self.config_file_path:
            return f"Environment+{self.config_file_path.name}"
        return "Environment"

    def load(self) -> AppConfig:
        """
        Load configuration from every source.

        Raises:
            ConfigFileError: If the YAML config file is missing or malformed
        """
        self._values = {}
        self._load_config_file()
        self._load_env_file()
        self._load_environment()
        self._apply_cli_overrides()
        self._loaded = True
        return self._build_config()

    def get(self, key: str, default: Any = None) -> Any:
        if not self._loaded:
            self.load()
        return self._values.get(key, default)

    def validate(self) -> list[str]:
        try:
            config = self.load()
        except ConfigFileError as e:
            return [str(e)]

        return config.validate()

    # -------------------------------------------------------------------------
    # Sources
    # -------------------------------------------------------------------------

    def _load_config_file(self) -> None:
        path = self._explicit_config_file
        if path is None:
            default = self.repo_root / CONFIG_FILE_NAME
            if not default.is_file():
                return
            path = default
        elif not path.is_file():
            raise ConfigFileError(f"Config file not found: {path}", path=str(path))

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigFileError(f"Invalid YAML syntax in {path}", path=str(path), cause=e) from e
        except OSError as e:
            raise ConfigFileError(f"Cannot read {path}", path=str(path), cause=e) from e

        if not isinstance(data, Mapping):
            raise ConfigFileError(f"{path} must contain a mapping", path=str(path))

        self.config_file_path = path
        self._values.update(_flatten(data))
        self.logger.debug(f"Loaded config file {path}")

    def _load_env_file(self) -> None:
        env_file = self.repo_root / ".env"
        if not env_file.is_file():
            return
        values = dotenv_values(env_file)
        self._apply_env(values)
        self.logger.debug(f"Loaded {env_file}")

    def _load_environment(self) -> None:
        self._apply_env(self.environ)

    def _apply_env(self, env: Mapping[str, str | None]) -> None:
        for env_key, key in ENV_KEYS.items():
            if env_key in env and env[env_key] is not None:
                self._values[key] = env[env_key]

    def _apply_cli_overrides(self) -> None:
        for name, key in CLI_KEYS.items():
            value = self.cli_overrides.get(name)
            if value is not None:
                self._values[key] = value

    # -------------------------------------------------------------------------
    # Build
    # -------------------------------------------------------------------------

    def _build_config(self) -> AppConfig:
        v = self._values

        linear = LinearConfig(
            api_key=_optional_str(v.get("linear.api_key")),
            oauth_token=_optional_str(v.get("linear.oauth_token")),
            team_id=_optional_str(v.get("linear.team_id")),
            project_id=_optional_str(v.get("linear.project_id")),
        )
        api_url = _optional_str(v.get("linear.api_url"))
        if api_url:
            linear.api_url = api_url

        # Unset means the default label; set-but-blank disables labelling
        if "sync.push_label" in v:
            push_label = _optional_str(v["sync.push_label"])
        else:
            push_label = DEFAULT_PUSH_LABEL

        sync = SyncConfig(
            push_label=push_label,
            pull_create=bool(_as_bool(v.get("sync.pull_create"), env_true="1")),
            pull_label=_optional_str(v.get("sync.pull_label")),
        )
        conflicts = _as_bool(v.get("sync.pull_create_conflicts"), env_false="0")
        if conflicts is not None:
            sync.pull_create_conflicts = conflicts
        for key in ("push_list_limit", "pull_list_limit"):
            value = v.get(f"sync.{key}")
            if value is None:
                continue
            try:
                setattr(sync, key, int(value))
            except (TypeError, ValueError) as e:
                raise ConfigFileError(f"sync.{key} must be an integer, got {value!r}", cause=e) from e

        return AppConfig(linear=linear, sync=sync, repo_root=str(self.repo_root))
