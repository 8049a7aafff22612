"""Tests for the JSON file store and backend selection."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from update_panel.bot_models import BotReport, ManagedBot
from update_panel.errors import StorageFailure
from update_panel.mongodb import close_mongo_client
from update_panel.release_models import BotRecord, RegistryModel, ReleaseModel, StatsModel, TrashEntry
from update_panel.store import JsonFileStore, MongoStore, create_store


@pytest.mark.asyncio
class TestJsonFileStore:
    async def test_missing_files_load_as_empty(self, store):
        registry = await store.load_registry()
        stats = await store.load_stats()

        assert registry.latest is None and registry.items == []
        assert stats.downloads == 0 and stats.bots == {}
        assert await store.list_trash() == []
        assert await store.list_bots() == []

    async def test_registry_persisted_with_camel_case_layout(self, store, settings):
        await store.save_registry(RegistryModel(
            latest="v1.0",
            items=[ReleaseModel(version="v1.0", filename="bot-v1.0.zip", notes="hi")],
        ))

        raw = json.loads((settings.data_dir / "releases.json").read_text())
        assert raw["latest"] == "v1.0"
        assert set(raw["items"][0]) == {"version", "filename", "notes", "createdAt"}

        reloaded = await JsonFileStore(settings.data_dir).load_registry()
        assert reloaded.items[0].notes == "hi"

    async def test_stats_layout(self, store, settings):
        await store.save_stats(StatsModel(downloads=3, bots={"bot-a": BotRecord(bot_version="v1.0")}))

        raw = json.loads((settings.data_dir / "stats.json").read_text())
        assert raw["downloads"] == 3
        assert raw["bots"]["bot-a"]["botVersion"] == "v1.0"
        assert "lastCheck" in raw["bots"]["bot-a"]

    async def test_no_temp_files_left_behind(self, store, settings):
        await store.save_stats(StatsModel(downloads=1))
        assert [p.name for p in settings.data_dir.iterdir()] == ["stats.json"]

    async def test_corrupt_file_is_storage_failure(self, store, settings):
        (settings.data_dir / "releases.json").write_text("{not json")
        with pytest.raises(StorageFailure):
            await store.load_registry()

    async def test_trash_newest_first(self, store):
        await store.add_trash(TrashEntry(version="v1.0", filename="bot-v1.0.zip"))
        await store.add_trash(TrashEntry(version="v2.0", filename="bot-v2.0.zip"))

        assert [t.version for t in await store.list_trash()] == ["v2.0", "v1.0"]

    async def test_bots_and_reports(self, store):
        bot = ManagedBot(name="helper", owner_id="1", token="sealed")
        await store.save_bot(bot)
        await store.add_report(BotReport(bot_id=bot.id, type="ready"))
        await store.add_report(BotReport(bot_id="other", type="error"))

        assert (await store.get_bot(bot.id)).name == "helper"
        assert await store.get_bot("missing") is None
        reports = await store.list_reports(bot.id)
        assert [r.type for r in reports] == ["ready"]

    async def test_ping(self, store):
        assert await store.ping() is True


def test_create_store_json(settings):
    assert isinstance(create_store(settings), JsonFileStore)


def test_create_store_mongo(settings):
    settings.store_backend = "mongo"
    try:
        assert isinstance(create_store(settings), MongoStore)
    finally:
        close_mongo_client()


def test_create_store_unknown(settings):
    settings.store_backend = "redis"
    with pytest.raises(ValueError):
        create_store(settings)


def _mongo_db(state_collection):
    db = MagicMock()
    db.__getitem__.return_value = state_collection
    return db


@pytest.mark.asyncio
class TestMongoStore:
    async def test_load_registry_drops_id(self):
        state = MagicMock()
        state.find_one = AsyncMock(return_value={
            "_id": "releases",
            "latest": "v1.0",
            "items": [{"version": "v1.0", "filename": "bot-v1.0.zip", "notes": "", "createdAt": "2024-01-01T00:00:00Z"}],
        })

        registry = await MongoStore(_mongo_db(state)).load_registry()

        state.find_one.assert_awaited_once_with({"_id": "releases"})
        assert registry.latest == "v1.0"
        assert registry.items[0].filename == "bot-v1.0.zip"

    async def test_missing_stats_document(self):
        state = MagicMock()
        state.find_one = AsyncMock(return_value=None)

        stats = await MongoStore(_mongo_db(state)).load_stats()

        assert stats.downloads == 0

    async def test_save_stats_upserts_single_document(self):
        state = MagicMock()
        state.replace_one = AsyncMock()

        await MongoStore(_mongo_db(state)).save_stats(StatsModel(downloads=5))

        args, kwargs = state.replace_one.await_args
        assert args[0] == {"_id": "stats"}
        assert args[1]["downloads"] == 5
        assert kwargs == {"upsert": True}

    async def test_ping_failure_is_false(self):
        db = MagicMock()
        db.command = AsyncMock(side_effect=RuntimeError("no server"))

        assert await MongoStore(db).ping() is False
