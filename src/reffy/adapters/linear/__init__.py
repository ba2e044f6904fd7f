"""
Linear Adapter - Integration with Linear.

This module provides the LinearGateway and its GraphQL client for
syncing reference artifacts to Linear issues.
"""

from reffy.adapters.linear.adapter import LinearGateway
from reffy.adapters.linear.client import LinearApiClient


__all__ = ["LinearApiClient", "LinearGateway"]
