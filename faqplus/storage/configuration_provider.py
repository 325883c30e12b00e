"""
Configuration data providers backing the knowledge base id lookup.
"""

import asyncio
import json
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

from .models import ConfigurationEntity

logger = logging.getLogger(__name__)


class ConfigurationDataProvider(ABC):
    """Abstract store of configuration entities keyed by partition and row."""

    @abstractmethod
    async def get_configuration_data(self, partition_key: str, row_key: str) -> Optional[ConfigurationEntity]:
        """Get a configuration entity, or None when it does not exist."""
        pass

    @abstractmethod
    async def upsert_configuration_data(self, partition_key: str, row_key: str, data: str) -> ConfigurationEntity:
        """Insert or replace a configuration entity."""
        pass


class FileConfigurationDataProvider(ConfigurationDataProvider):
    """Configuration entities persisted in a single JSON file."""

    def __init__(self, storage_path: Path):
        self.storage_path = Path(storage_path)
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.config_file = self.storage_path / "configuration.json"

    def _load(self) -> Dict[str, Dict[str, Optional[str]]]:
        if not self.config_file.exists():
            return {}
        with open(self.config_file, 'r') as f:
            return json.load(f)

    def _save(self, entities: Dict[str, Dict[str, Optional[str]]]):
        # Write beside the store and swap in, so a failed dump keeps the old file
        with tempfile.NamedTemporaryFile(
            "w", dir=self.storage_path, prefix=".configuration-", suffix=".tmp", delete=False
        ) as f:
            temp_path = Path(f.name)
            try:
                json.dump(entities, f, indent=2)
            except Exception:
                f.close()
                temp_path.unlink()
                raise
        temp_path.replace(self.config_file)

    def _upsert(self, partition_key: str, row_key: str, data: str):
        entities = self._load()
        entities.setdefault(partition_key, {})[row_key] = data
        self._save(entities)

    async def get_configuration_data(self, partition_key: str, row_key: str) -> Optional[ConfigurationEntity]:
        loop = asyncio.get_running_loop()
        entities = await loop.run_in_executor(None, self._load)
        partition = entities.get(partition_key, {})
        if row_key not in partition:
            logger.debug(f"No configuration entity for {partition_key}/{row_key}")
            return None

        return ConfigurationEntity(partition_key=partition_key, row_key=row_key, data=partition[row_key])

    async def upsert_configuration_data(self, partition_key: str, row_key: str, data: str) -> ConfigurationEntity:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, self._upsert, partition_key, row_key, data)

        logger.info(f"Saved configuration entity {partition_key}/{row_key}")
        return ConfigurationEntity(partition_key=partition_key, row_key=row_key, data=data)
