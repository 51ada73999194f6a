"""JSON file snapshot store.

The file holds a single JSON object mapping conversation keys to message
lists, the same layout a browser keeps in local storage. Writes go to a
temporary file in the same directory which then replaces the original, so
a crash never leaves a half-written snapshot behind.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any

from ..config import CONVERSATION_KEY, DEFAULT_JSON_STORE_PATH
from ..conversation.models import Message
from ..errors import PersistenceFailure
from .base import MessageStore, messages_from_data, messages_to_data


class JsonFileMessageStore(MessageStore):
    """File-backed snapshot store.

    Other keys already present in the file are preserved on save.
    """

    def __init__(
        self,
        path: str | Path = DEFAULT_JSON_STORE_PATH,
        key: str = CONVERSATION_KEY
    ) -> None:
        super().__init__(key)
        self._path = Path(path)

    async def connect(self) -> None:
        """Ensure the parent directory exists."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceFailure(str(e), key=self._key) from e

    async def disconnect(self) -> None:
        """Nothing to release for a plain file."""
        pass

    async def load(self) -> list[Message]:
        slots = await asyncio.to_thread(self._read_slots)
        data = slots.get(self._key)
        if data is None:
            return []
        return messages_from_data(data, key=self._key)

    async def save(self, messages: list[Message]) -> None:
        data = messages_to_data(messages)
        await asyncio.to_thread(self._write_slot, data)

    def _read_slots(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            slots = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceFailure(f"cannot read {self._path}: {e}", key=self._key) from e
        if not isinstance(slots, dict):
            raise PersistenceFailure(f"{self._path} does not hold a JSON object", key=self._key)
        return slots

    def _write_slot(self, data: list[dict[str, Any]]) -> None:
        slots = self._read_slots()
        slots[self._key] = data
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.",
                dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                    json.dump(slots, tmp, ensure_ascii=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceFailure(f"cannot write {self._path}: {e}", key=self._key) from e

    @property
    def backend_type(self) -> str:
        return "json"

    @property
    def path(self) -> Path:
        return self._path
