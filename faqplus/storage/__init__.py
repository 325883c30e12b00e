"""
Configuration storage for the bot's settings.
"""

from .configuration_provider import ConfigurationDataProvider, FileConfigurationDataProvider
from .models import ConfigurationEntity, ConfigurationEntityTypes, CONFIGURATION_INFO_PARTITION_KEY

__all__ = [
    "ConfigurationDataProvider",
    "FileConfigurationDataProvider",
    "ConfigurationEntity",
    "ConfigurationEntityTypes",
    "CONFIGURATION_INFO_PARTITION_KEY",
]
