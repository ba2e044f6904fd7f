"""
Config Adapters - Configuration loading.
"""

from reffy.adapters.config.environment import EnvironmentConfigProvider


__all__ = ["EnvironmentConfigProvider"]
