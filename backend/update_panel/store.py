"""
Persistent store for the release registry, poll stats, trash and managed bots.

Two interchangeable backends share the ``Store`` interface: flat JSON files
and MongoDB (Motor). Every mutating request does a read-modify-write of the
whole registry or stats record. Concurrent writers are last-writer-wins;
there is no locking or version token.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Optional

from update_panel.bot_models import BotReport, ManagedBot
from update_panel.errors import StorageFailure
from update_panel.release_models import RegistryModel, StatsModel, TrashEntry

logger = logging.getLogger(__name__)


class Store(ABC):
    """Load/save boundary the registry, telemetry and routes depend on."""

    @abstractmethod
    async def load_registry(self) -> RegistryModel: ...

    @abstractmethod
    async def save_registry(self, registry: RegistryModel) -> None: ...

    @abstractmethod
    async def load_stats(self) -> StatsModel: ...

    @abstractmethod
    async def save_stats(self, stats: StatsModel) -> None: ...

    @abstractmethod
    async def add_trash(self, entry: TrashEntry) -> None: ...

    @abstractmethod
    async def list_trash(self) -> List[TrashEntry]: ...

    @abstractmethod
    async def list_bots(self) -> List[ManagedBot]: ...

    @abstractmethod
    async def get_bot(self, bot_id: str) -> Optional[ManagedBot]: ...

    @abstractmethod
    async def save_bot(self, bot: ManagedBot) -> None: ...

    @abstractmethod
    async def add_report(self, report: BotReport) -> None: ...

    @abstractmethod
    async def list_reports(self, bot_id: str, limit: int = 50) -> List[BotReport]: ...

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        return None


# ---------- JSON files ----------

class JsonFileStore(Store):
    """One JSON file per record under ``data_dir``.

    Writes land in a temp file next to the target and are moved into place
    with ``os.replace`` so readers never see a half-written file.
    """

    RELEASES = "releases.json"
    STATS = "stats.json"
    TRASH = "trash.json"
    BOTS = "bots.json"
    REPORTS = "reports.json"

    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _read(self, name: str, default: Any) -> Any:
        path = self.data_dir / name
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read {path}: {e}", exc_info=True)
            raise StorageFailure(f"Could not read {name}") from e

    def _write(self, name: str, data: Any) -> None:
        path = self.data_dir / name
        fd, tmp = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}", exc_info=True)
            if os.path.exists(tmp):
                os.remove(tmp)
            raise StorageFailure(f"Could not write {name}") from e

    async def _read_async(self, name: str, default: Any) -> Any:
        return await asyncio.to_thread(self._read, name, default)

    async def _write_async(self, name: str, data: Any) -> None:
        await asyncio.to_thread(self._write, name, data)

    async def load_registry(self) -> RegistryModel:
        return RegistryModel.model_validate(await self._read_async(self.RELEASES, {}))

    async def save_registry(self, registry: RegistryModel) -> None:
        await self._write_async(self.RELEASES, registry.model_dump(mode="json", by_alias=True))

    async def load_stats(self) -> StatsModel:
        return StatsModel.model_validate(await self._read_async(self.STATS, {}))

    async def save_stats(self, stats: StatsModel) -> None:
        await self._write_async(self.STATS, stats.model_dump(mode="json", by_alias=True))

    async def add_trash(self, entry: TrashEntry) -> None:
        trash = await self._read_async(self.TRASH, [])
        trash.append(entry.model_dump(mode="json", by_alias=True))
        await self._write_async(self.TRASH, trash)

    async def list_trash(self) -> List[TrashEntry]:
        entries = [TrashEntry.model_validate(doc) for doc in await self._read_async(self.TRASH, [])]
        entries.sort(key=lambda e: e.deleted_at, reverse=True)
        return entries

    async def list_bots(self) -> List[ManagedBot]:
        bots = await self._read_async(self.BOTS, {})
        return [ManagedBot.model_validate(doc) for doc in bots.values()]

    async def get_bot(self, bot_id: str) -> Optional[ManagedBot]:
        doc = (await self._read_async(self.BOTS, {})).get(bot_id)
        return ManagedBot.model_validate(doc) if doc else None

    async def save_bot(self, bot: ManagedBot) -> None:
        bots = await self._read_async(self.BOTS, {})
        bots[bot.id] = bot.model_dump(mode="json", by_alias=True)
        await self._write_async(self.BOTS, bots)

    async def add_report(self, report: BotReport) -> None:
        reports = await self._read_async(self.REPORTS, [])
        reports.append(report.model_dump(mode="json", by_alias=True))
        await self._write_async(self.REPORTS, reports)

    async def list_reports(self, bot_id: str, limit: int = 50) -> List[BotReport]:
        reports = [
            BotReport.model_validate(doc)
            for doc in await self._read_async(self.REPORTS, [])
            if doc.get("botId") == bot_id
        ]
        reports.sort(key=lambda r: r.created_at, reverse=True)
        return reports[:limit]


# ---------- MongoDB ----------

class MongoStore(Store):
    """Motor-backed store.

    Registry and stats are single documents in the ``state`` collection;
    trash, bots and reports have a collection each.
    """

    REGISTRY_ID = "releases"
    STATS_ID = "stats"

    def __init__(self, database):
        self.db = database

    @property
    def _state(self):
        return self.db["state"]

    async def ensure_indexes(self) -> None:
        """Create indexes if they don't already exist (idempotent)."""
        await self.db["trash"].create_index([("deletedAt", -1)], name="deleted_at_desc")
        await self.db["reports"].create_index([("botId", 1), ("createdAt", -1)], name="bot_created_desc")
        await self.db["bots"].create_index([("ownerId", 1)], name="owner_id")

    async def _load_state(self, doc_id: str) -> dict:
        doc = await self._state.find_one({"_id": doc_id})
        if not doc:
            return {}
        doc.pop("_id", None)
        return doc

    async def _save_state(self, doc_id: str, data: dict) -> None:
        await self._state.replace_one({"_id": doc_id}, data, upsert=True)

    async def load_registry(self) -> RegistryModel:
        return RegistryModel.model_validate(await self._load_state(self.REGISTRY_ID))

    async def save_registry(self, registry: RegistryModel) -> None:
        await self._save_state(self.REGISTRY_ID, registry.model_dump(by_alias=True))

    async def load_stats(self) -> StatsModel:
        return StatsModel.model_validate(await self._load_state(self.STATS_ID))

    async def save_stats(self, stats: StatsModel) -> None:
        await self._save_state(self.STATS_ID, stats.model_dump(by_alias=True))

    async def add_trash(self, entry: TrashEntry) -> None:
        await self.db["trash"].insert_one(entry.model_dump(by_alias=True))

    async def list_trash(self) -> List[TrashEntry]:
        cursor = self.db["trash"].find({}, {"_id": 0}).sort("deletedAt", -1)
        return [TrashEntry.model_validate(doc) async for doc in cursor]

    async def list_bots(self) -> List[ManagedBot]:
        cursor = self.db["bots"].find({}).sort("createdAt", 1)
        return [_bot_from_doc(doc) async for doc in cursor]

    async def get_bot(self, bot_id: str) -> Optional[ManagedBot]:
        doc = await self.db["bots"].find_one({"_id": bot_id})
        return _bot_from_doc(doc) if doc else None

    async def save_bot(self, bot: ManagedBot) -> None:
        doc = bot.model_dump(by_alias=True)
        doc["_id"] = doc.pop("id")
        await self.db["bots"].replace_one({"_id": bot.id}, doc, upsert=True)

    async def add_report(self, report: BotReport) -> None:
        await self.db["reports"].insert_one(report.model_dump(by_alias=True))

    async def list_reports(self, bot_id: str, limit: int = 50) -> List[BotReport]:
        cursor = self.db["reports"].find({"botId": bot_id}, {"_id": 0}).sort("createdAt", -1).limit(limit)
        return [BotReport.model_validate(doc) async for doc in cursor]

    async def ping(self) -> bool:
        try:
            await self.db.command("ping")
            return True
        except Exception as e:
            logger.warning(f"MongoDB connection check failed: {e}")
            return False


def _bot_from_doc(doc: dict) -> ManagedBot:
    doc = dict(doc)
    doc["id"] = doc.pop("_id")
    return ManagedBot.model_validate(doc)


def create_store(settings) -> Store:
    """Pick the backend named by ``STORE_BACKEND``."""
    if settings.store_backend == "mongo":
        from update_panel.mongodb import get_database

        logger.info(f"Using MongoDB store (database={settings.mongodb_database})")
        return MongoStore(get_database(settings.mongodb_database, settings.mongodb_uri))
    if settings.store_backend == "json":
        logger.info(f"Using JSON file store in {settings.data_dir}")
        return JsonFileStore(settings.data_dir)
    raise ValueError(f"Unknown STORE_BACKEND: {settings.store_backend}")
