"""
Ports - Abstract interfaces for external dependencies.

Ports define the contracts that adapters must implement.
This enables dependency inversion and easy testing.
"""

from .artifact_source import ArtifactSourcePort
from .config_provider import (
    DEFAULT_PUSH_LABEL,
    AppConfig,
    ConfigProviderPort,
    LinearConfig,
    SyncConfig,
)
from .remote_gateway import RemoteGatewayPort


__all__ = [
    "DEFAULT_PUSH_LABEL",
    "AppConfig",
    "ArtifactSourcePort",
    "ConfigProviderPort",
    "LinearConfig",
    "RemoteGatewayPort",
    "SyncConfig",
]
