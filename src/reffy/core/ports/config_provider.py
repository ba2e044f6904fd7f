"""
Configuration Provider Port - Abstract interface for configuration.

Implementations:
- EnvironmentConfigProvider: Load from env vars, .env and .reffy.yaml
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any


DEFAULT_PUSH_LABEL = "reffy"


@dataclass
class LinearConfig:
    """Connection settings for Linear."""

    api_key: str | None = None
    oauth_token: str | None = None
    team_id: str | None = None
    project_id: str | None = None
    api_url: str = "https://api.linear.app/graphql"

    def is_configured(self) -> bool:
        """Check if a credential is present."""
        return bool(self.api_key or self.oauth_token)

    def auth_header(self) -> dict[str, str]:
        """Authorization header, preferring the OAuth bearer token."""
        if self.oauth_token:
            return {"Authorization": f"Bearer {self.oauth_token}"}
        if self.api_key:
            return {"Authorization": self.api_key}
        return {}


@dataclass
class SyncConfig:
    """Configuration for push and pull runs."""

    # Label attached to pushed issues and used to find reusable ones
    push_label: str | None = DEFAULT_PUSH_LABEL

    # Import unmapped remote issues carrying pull_label during pull
    pull_create: bool = False
    pull_label: str | None = None

    # Preserve local edits as conflict copies before pull overwrites them
    pull_create_conflicts: bool = True

    # Page sizes for remote listings
    push_list_limit: int = 100
    pull_list_limit: int = 50


@dataclass
class AppConfig:
    """Complete application configuration."""

    linear: LinearConfig
    sync: SyncConfig
    repo_root: str = "."

    def validate(self, pull: bool = True) -> list[str]:
        """
        Validate configuration.

        Args:
            pull: Include the pull-only checks

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not self.linear.is_configured():
            errors.append("Missing Linear credential (LINEAR_API_KEY or LINEAR_OAUTH_TOKEN)")
        if pull and self.sync.pull_create and not self.sync.pull_label:
            errors.append("LINEAR_PULL_CREATE requires LINEAR_PULL_LABEL")

        return errors


class ConfigProviderPort(ABC):
    """
    Abstract interface for configuration providers.

    Configuration can come from various sources:
    - Environment variables
    - .env files
    - YAML config files
    - Command line arguments
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the provider name."""
        ...

    @abstractmethod
    def load(self) -> AppConfig:
        """
        Load configuration from source.

        Returns:
            Complete application configuration
        """
        ...

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a specific configuration value.

        Args:
            key: Configuration key (dot notation supported)
            default: Default value if not found

        Returns:
            Configuration value
        """
        ...

    @abstractmethod
    def validate(self) -> list[str]:
        """
        Validate loaded configuration.

        Returns:
            List of validation errors
        """
        ...
