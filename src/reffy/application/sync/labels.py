"""
Label Resolver - Per-run cache of label name to id lookups.
"""

import logging

from reffy.core.ports.remote_gateway import RemoteGatewayPort


class LabelResolver:
    """
    Resolves label names through the gateway, once per (team, name) pair.

    Misses are cached too, so an unknown label costs one remote call per run.
    Create a new resolver for each run.
    """

    def __init__(self, gateway: RemoteGatewayPort):
        self.gateway = gateway
        self.logger = logging.getLogger("LabelResolver")
        self._cache: dict[tuple[str, str], str | None] = {}

    def resolve(self, team_id: str, label_name: str) -> str | None:
        key = (team_id, label_name)
        if key not in self._cache:
            label_id = self.gateway.resolve_label_id(team_id, label_name)
            self.logger.debug(f"Resolved label {label_name!r} in team {team_id}: {label_id}")
            self._cache[key] = label_id
        return self._cache[key]

    def clear(self) -> None:
        self._cache.clear()
