"""Persistence for Content Packs, keyed by project id.

A store holds at most one record per project; ``store`` is an upsert. The
pipeline reads it during the cache check and writes it once per successful
run.
"""

import asyncio
import json
import logging
import os
import re
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from pydantic import Field, ValidationError

from contracts import ContentPack, ContractModel, utc_now

logger = logging.getLogger(__name__)


class ContentPackStoreError(Exception):
    """A store read or write failed."""


class ContentPackRecord(ContractModel):
    """What a store keeps per project."""
    project_id: str
    content_pack: ContentPack
    quality_score: Optional[float] = None
    stored_at: datetime = Field(default_factory=utc_now)


class ContentPackStore(ABC):
    """Abstract Content Pack store."""

    @abstractmethod
    async def load_record(self, project_id: str) -> Optional[ContentPackRecord]:
        """Return the record for a project, or None."""
        pass

    @abstractmethod
    async def save_record(self, record: ContentPackRecord) -> None:
        """Insert or replace the record for ``record.project_id``."""
        pass

    async def load(self, project_id: str) -> Optional[ContentPack]:
        record = await self.load_record(project_id)
        return record.content_pack if record else None

    async def store(
        self,
        project_id: str,
        pack: ContentPack,
        quality_score: Optional[float] = None,
    ) -> ContentPackRecord:
        """Upsert the pack. A missing score keeps the previously stored one."""
        if quality_score is None:
            previous = await self.load_record(project_id)
            if previous is not None and previous.content_pack.hash == pack.hash:
                quality_score = previous.quality_score
        record = ContentPackRecord(project_id=project_id, content_pack=pack, quality_score=quality_score)
        await self.save_record(record)
        logger.info(
            "Stored content pack",
            extra={"project_id": project_id, "hash": pack.hash, "quality_score": quality_score},
        )
        return record


class InMemoryContentPackStore(ContentPackStore):
    """Process-local store, used by tests and one-off runs."""

    def __init__(self):
        self._records: Dict[str, ContentPackRecord] = {}

    async def load_record(self, project_id: str) -> Optional[ContentPackRecord]:
        record = self._records.get(project_id)
        return record.model_copy(deep=True) if record else None

    async def save_record(self, record: ContentPackRecord) -> None:
        self._records[record.project_id] = record.model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._records)


class FileContentPackStore(ContentPackStore):
    """One JSON file per project under a directory.

    Writes go to a temporary file that replaces the record, so readers never
    see a half-written pack.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def path_for(self, project_id: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9_.-]+", "_", project_id).strip(".") or "_"
        return self.directory / f"{safe}.json"

    async def load_record(self, project_id: str) -> Optional[ContentPackRecord]:
        return await asyncio.to_thread(self._read, project_id)

    async def save_record(self, record: ContentPackRecord) -> None:
        await asyncio.to_thread(self._write, record)

    def _read(self, project_id: str) -> Optional[ContentPackRecord]:
        path = self.path_for(project_id)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return ContentPackRecord.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise ContentPackStoreError(f"Cannot read content pack record {path}: {e}") from e

    def _write(self, record: ContentPackRecord) -> None:
        path = self.path_for(record.project_id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(record.to_json_dict(), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(tmp_path, path)
        except OSError as e:
            raise ContentPackStoreError(f"Cannot write content pack record {path}: {e}") from e
