"""
Adapters - Implementations of the core ports.

- linear: RemoteGatewayPort over the Linear GraphQL API
- references: ArtifactSourcePort over a .references/ directory
- config: ConfigProviderPort over YAML, .env and the environment
"""

from reffy.adapters.config import EnvironmentConfigProvider
from reffy.adapters.linear import LinearApiClient, LinearGateway
from reffy.adapters.references import ReferencesStore


__all__ = [
    "EnvironmentConfigProvider",
    "LinearApiClient",
    "LinearGateway",
    "ReferencesStore",
]
