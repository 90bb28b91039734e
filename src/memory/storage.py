"""File-backed persistence for incident memory documents.

One pretty-printed JSON file per incident, named ``<incident_id>.json``.
A missing record is ``None``; anything else that goes wrong is a
``StorageError``.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

from pydantic import ValidationError

from src.core.errors import StorageError
from src.core.logging import get_logger
from src.core.models import IncidentMemory

logger = get_logger("storage")


class IncidentStore:
    """Keyed whole-document storage of incident records. Last writer wins."""

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, incident_id: str) -> Path:
        if not incident_id or "/" in incident_id or "\\" in incident_id or incident_id.startswith("."):
            raise StorageError(f"Invalid incident id: {incident_id!r}")
        return self._dir / f"{incident_id}.json"

    # ── Public API ──────────────────────────────────────────────

    async def load(self, incident_id: str) -> IncidentMemory | None:
        return await asyncio.to_thread(self._load_sync, incident_id)

    async def save(self, memory: IncidentMemory) -> None:
        await asyncio.to_thread(self._save_sync, memory)

    async def exists(self, incident_id: str) -> bool:
        return await asyncio.to_thread(self._path(incident_id).is_file)

    async def list_ids(self) -> list[str]:
        return await asyncio.to_thread(self._list_ids_sync)

    # ── Blocking helpers ────────────────────────────────────────

    def _load_sync(self, incident_id: str) -> IncidentMemory | None:
        path = self._path(incident_id)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read incident {incident_id}: {e}") from e

        try:
            return IncidentMemory.model_validate(json.loads(content))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("incident_document_corrupt", incident_id=incident_id, path=str(path))
            raise StorageError(f"Incident {incident_id} is corrupt: {e}") from e

    def _save_sync(self, memory: IncidentMemory) -> None:
        path = self._path(memory.incident_id)
        tmp_path = path.with_name(path.name + ".tmp")
        content = json.dumps(memory.to_document(), indent=2, ensure_ascii=False)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(content + "\n", encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write incident {memory.incident_id}: {e}") from e
        logger.debug("incident_saved", incident_id=memory.incident_id, path=str(path))

    def _list_ids_sync(self) -> list[str]:
        if not self._dir.is_dir():
            return []
        try:
            return sorted(p.stem for p in self._dir.glob("*.json") if p.is_file())
        except OSError as e:
            raise StorageError(f"Failed to list incidents in {self._dir}: {e}") from e
