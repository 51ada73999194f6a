"""Unit tests for the snapshot stores."""
import asyncio
import json
from datetime import datetime, timezone

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from parley.conversation import Message, Role
from parley.errors import PersistenceFailure
from parley.memory import (
    InMemoryMessageStore,
    JsonFileMessageStore,
    MessageStore,
    create_message_store,
    dump_messages,
    load_messages,
)


def _conversation():
    created = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
    return [
        Message(id=1, role=Role.USER, text="what is this?", image=b"\x89PNG\x00\xff", created_at=created),
        Message(id=2, role=Role.SYSTEM, text="The service is not responding.", created_at=created),
        Message(id=3, role=Role.ASSISTANT, text="a cat \U0001F431", created_at=created),
    ]


message_strategy = st.builds(
    Message,
    id=st.integers(min_value=0, max_value=2**53),
    role=st.sampled_from(list(Role)),
    text=st.text(),
    image=st.one_of(st.none(), st.binary(min_size=1, max_size=64)),
    created_at=st.datetimes(
        min_value=datetime(2000, 1, 1),
        max_value=datetime(2100, 1, 1),
        timezones=st.just(timezone.utc),
    ),
)


class TestMessageStore:
    """Tests for MessageStore interface."""

    def test_message_store_is_abstract(self):
        """Test that MessageStore cannot be instantiated directly."""
        with pytest.raises(TypeError):
            MessageStore()  # type: ignore


class TestSerialization:
    """Tests for the snapshot format."""

    @settings(max_examples=50)
    @given(st.lists(message_strategy, max_size=8))
    def test_dump_then_load_is_identity(self, messages):
        """Property test: a snapshot loads back to the same list."""
        assert load_messages(dump_messages(messages)) == messages

    def test_image_stored_as_base64(self):
        """Test image bytes are written as base64 text."""
        data = json.loads(dump_messages(_conversation()))
        assert data[0]["image"] == "iVBORwD/"
        assert data[1]["image"] is None

    def test_legacy_layout_accepted(self):
        """Test the browser layout (content, string ids) still loads."""
        raw = json.dumps([
            {"id": "1700000000000", "role": "user", "content": "hi"},
            {"id": "1700000000001", "role": "assistant", "content": "hello", "image": ""},
        ])
        messages = load_messages(raw)

        assert [m.id for m in messages] == [1700000000000, 1700000000001]
        assert [m.text for m in messages] == ["hi", "hello"]
        assert messages[1].image is None

    def test_non_numeric_id_is_renumbered(self):
        """Test a failure reply saved under the id "err" keeps its neighbours."""
        raw = json.dumps([
            {"id": "1700000000000", "role": "user", "content": "hi"},
            {"id": "err", "role": "assistant", "content": "crashed"},
            {"id": "1700000000500", "role": "user", "content": "again"},
            {"id": "err", "role": "assistant", "content": "crashed"},
        ])
        messages = load_messages(raw)

        assert [m.id for m in messages] == [1700000000000, 1700000000001, 1700000000500, 1700000000501]
        assert [m.text for m in messages] == ["hi", "crashed", "again", "crashed"]

    def test_invalid_snapshot_raises(self):
        """Test malformed data is reported as a persistence failure."""
        with pytest.raises(PersistenceFailure) as exc_info:
            load_messages('[{"id": 1, "role": "robot", "text": "x"}]', key="chats")
        assert exc_info.value.key == "chats"


class TestInMemoryStore:
    """Tests for the in-memory store."""

    @pytest.mark.asyncio
    async def test_empty_load(self):
        async with InMemoryMessageStore() as store:
            assert await store.load() == []
            assert store.backend_type == "memory"

    @pytest.mark.asyncio
    async def test_save_then_load(self):
        """Test saving overwrites the whole list."""
        async with InMemoryMessageStore() as store:
            await store.save(_conversation())
            await store.save(_conversation()[:1])

            assert await store.load() == _conversation()[:1]

    @pytest.mark.asyncio
    async def test_keys_are_isolated(self):
        """Test stores sharing slots keep conversations apart."""
        slots = {}
        first = InMemoryMessageStore(key="a", slots=slots)
        second = InMemoryMessageStore(key="b", slots=slots)

        await first.save(_conversation())

        assert await second.load() == []
        assert await InMemoryMessageStore(key="a", slots=slots).load() == _conversation()

    @pytest.mark.asyncio
    async def test_clear(self):
        async with InMemoryMessageStore() as store:
            await store.save(_conversation())
            await store.clear()
            assert await store.load() == []


@pytest.mark.integration
class TestJsonFileStore:
    """Tests for the JSON file store."""

    @pytest.mark.asyncio
    async def test_missing_file_loads_empty(self, tmp_path):
        async with JsonFileMessageStore(tmp_path / "chats.json") as store:
            assert await store.load() == []

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        """Test a saved conversation survives a new store instance."""
        path = tmp_path / "nested" / "chats.json"
        async with JsonFileMessageStore(path) as store:
            await store.save(_conversation())

        async with JsonFileMessageStore(path) as store:
            assert await store.load() == _conversation()
            assert store.path == path

    @pytest.mark.asyncio
    async def test_other_keys_preserved(self, tmp_path):
        """Test saving one key keeps the rest of the file."""
        path = tmp_path / "chats.json"
        path.write_text(json.dumps({"other": [{"id": 1, "role": "user", "text": "keep"}]}))

        async with JsonFileMessageStore(path, key="mine") as store:
            await store.save(_conversation())

        data = json.loads(path.read_text())
        assert data["other"] == [{"id": 1, "role": "user", "text": "keep"}]
        assert len(data["mine"]) == 3

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "chats.json"
        async with JsonFileMessageStore(path) as store:
            await store.save(_conversation())
            await store.save([])

        assert [p.name for p in tmp_path.iterdir()] == ["chats.json"]

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        """Test an unreadable file is reported, not silently reset."""
        path = tmp_path / "chats.json"
        path.write_text("{not json")

        async with JsonFileMessageStore(path) as store:
            with pytest.raises(PersistenceFailure):
                await store.load()

    @pytest.mark.asyncio
    async def test_non_object_file_raises(self, tmp_path):
        path = tmp_path / "chats.json"
        path.write_text("[]")

        async with JsonFileMessageStore(path) as store:
            with pytest.raises(PersistenceFailure):
                await store.load()


@pytest.mark.integration
class TestSQLiteStore:
    """Tests for the SQLite store."""

    @pytest.fixture(autouse=True)
    def _require_aiosqlite(self):
        pytest.importorskip("aiosqlite")

    @pytest.mark.asyncio
    async def test_round_trip(self, tmp_path):
        """Test a saved conversation survives reconnecting."""
        db_path = tmp_path / "chats.db"
        store = create_message_store("sqlite", path=db_path)
        async with store:
            assert await store.load() == []
            await store.save(_conversation())
            await store.save(_conversation()[:2])

        async with create_message_store("sqlite", path=db_path) as store:
            assert await store.load() == _conversation()[:2]
            assert store.backend_type == "sqlite"
            assert store.db_path == db_path

    @pytest.mark.asyncio
    async def test_requires_connection(self, tmp_path):
        """Test using a store before connect fails cleanly."""
        store = create_message_store("sqlite", path=tmp_path / "chats.db")
        with pytest.raises(PersistenceFailure):
            await store.load()


class TestFactory:
    """Tests for create_message_store."""

    def test_memory_backend(self):
        store = create_message_store("memory", key="k")
        assert isinstance(store, InMemoryMessageStore)
        assert store.key == "k"

    def test_json_backend(self, tmp_path):
        store = create_message_store("json", path=tmp_path / "c.json")
        assert isinstance(store, JsonFileMessageStore)
        assert store.backend_type == "json"

    def test_unsupported_backend(self):
        """Test that unsupported backends raise ValueError."""
        with pytest.raises(ValueError, match="Unsupported store backend"):
            create_message_store("redis")

    def test_successive_saves_keep_last(self, tmp_path):
        """Test the last of several saves wins."""
        async def _scenario():
            store = JsonFileMessageStore(tmp_path / "c.json")
            await store.connect()
            conversation = _conversation()
            for size in range(len(conversation) + 1):
                await store.save(conversation[:size])
            return await store.load()

        assert asyncio.run(_scenario()) == _conversation()
