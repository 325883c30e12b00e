"""
Data models for the configuration store.
"""

from dataclasses import dataclass
from typing import Optional

# Partition holding the bot's configuration entities
CONFIGURATION_INFO_PARTITION_KEY = "ConfigurationInfo"


class ConfigurationEntityTypes:
    """Row keys of the configuration entities."""
    KNOWLEDGE_BASE_ID = "KnowledgeBaseId"


@dataclass
class ConfigurationEntity:
    """One configuration value stored under a partition and row key."""
    partition_key: str
    row_key: str
    data: Optional[str] = None
