# relay_alarm/core/config/store.py
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from relay_alarm.core.config.models import SystemConfig, default_config, migrate_document

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)  # Set to DEBUG for more verbose logging


async def read_json_file(file_path: Path) -> Optional[Dict[str, Any]]:
    """
    Reads a JSON file asynchronously and returns its content as a dictionary.
    """
    try:
        async with aiofiles.open(file_path, "r") as file:
            content = await file.read()
            return json.loads(content)
    except json.JSONDecodeError as e:
        logger.error(f"JSON decode error in file {file_path}: {e}")
        return None
    except Exception as e:
        logger.error(f"Error reading file {file_path}: {e}")
        return None


async def write_json_file(file_path: Path, data: Dict[str, Any]) -> bool:
    """
    Writes a dictionary to a JSON file asynchronously. The content goes to a
    sibling temp file first so readers never see a half-written document.
    """
    tmp_path = file_path.with_name(file_path.name + ".tmp")
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(tmp_path, "w") as file:
            await file.write(json.dumps(data, indent=2))
        await aiofiles.os.replace(tmp_path, file_path)
        logger.debug(f"Successfully wrote to file: {file_path}")
        return True
    except Exception as e:
        logger.error(f"Error writing to file {file_path}: {e}")
        return False


class SettingsStore:
    """
    Durable storage for the relay configuration document.

    Saves are coalesced: `schedule_save` only records the latest document and
    makes sure a single background writer is draining it, so the caller never
    waits on disk.
    """

    def __init__(self, path: Path, relay_ids: List[str]):
        self.path = path
        self.relay_ids = list(relay_ids)
        self._pending: Optional[SystemConfig] = None
        self._writer: Optional[asyncio.Task] = None

    async def load(self) -> SystemConfig:
        """Load the stored document, falling back to defaults if needed."""
        if not self.path.exists():
            logger.info(f"Settings file not found at {self.path}, using default settings")
            config = default_config(self.relay_ids)
            await self.save(config)
            return config

        raw = await read_json_file(self.path)
        if not isinstance(raw, dict):
            logger.error(f"Settings file {self.path} is unreadable, using default settings")
            return default_config(self.relay_ids)

        try:
            config = SystemConfig.model_validate(migrate_document(raw, self.relay_ids))
        except (ValidationError, TypeError) as e:
            logger.error(f"Invalid settings in {self.path}, using default settings: {e}")
            return default_config(self.relay_ids)

        logger.info(f"Loaded settings from {self.path} (alarmEnabled={config.alarmEnabled})")
        return config

    async def save(self, config: SystemConfig) -> bool:
        """Write the document now. Failures are logged, never raised."""
        return await write_json_file(self.path, config.model_dump(mode="json"))

    def schedule_save(self, config: SystemConfig) -> None:
        """Queue `config` for writing without blocking the caller."""
        self._pending = config
        if self._writer is None or self._writer.done():
            self._writer = asyncio.get_running_loop().create_task(self._drain())

    async def flush(self) -> None:
        """Wait until every scheduled document has been written."""
        if self._writer is not None:
            await self._writer

    async def _drain(self) -> None:
        while self._pending is not None:
            config, self._pending = self._pending, None
            if not await self.save(config):
                logger.error("Failed to persist settings; in-memory state remains authoritative")
