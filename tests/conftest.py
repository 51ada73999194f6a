"""Pytest configuration and shared fixtures."""
import asyncio

import pytest

from parley.config import ControllerSettings
from parley.conversation import ConversationController
from parley.errors import PersistenceFailure, ProbeFailure
from parley.memory import InMemoryMessageStore
from parley.transport import ChatTransport


class ScriptedTransport(ChatTransport):
    """In-process transport answering from scripted outcomes.

    Each send consumes the next entry of ``replies`` (a string answer or an
    exception to raise); each ping consumes the next entry of ``probes``
    (True for healthy). Exhausted scripts fall back to the last entry.
    """

    def __init__(self, replies=None, probes=None):
        super().__init__()
        self.replies = list(replies or ["ok"])
        self.probes = list(probes or [True])
        self.payloads = []
        self.pings = 0
        self.closed = False

    async def send(self, payload):
        self.payloads.append(payload)
        outcome = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        await asyncio.sleep(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def ping(self):
        self.pings += 1
        healthy = self.probes.pop(0) if len(self.probes) > 1 else self.probes[0]
        if not healthy:
            raise ProbeFailure("service down")

    async def close(self):
        self.closed = True


class FailingStore(InMemoryMessageStore):
    """Store whose saves (and optionally loads) always fail."""

    def __init__(self, fail_load=False):
        super().__init__()
        self.fail_load = fail_load
        self.save_attempts = 0

    async def load(self):
        if self.fail_load:
            raise PersistenceFailure("disk unreadable", key=self.key)
        return await super().load()

    async def save(self, messages):
        self.save_attempts += 1
        raise PersistenceFailure("disk full", key=self.key)


@pytest.fixture
def fast_settings():
    """Settings with no delays, so turns finish within a few loop iterations."""
    return ControllerSettings(reveal_interval=0.0, probe_interval=0.0)


@pytest.fixture
def slots():
    """Backing dict shared by in-memory stores (survives controller restarts)."""
    return {}


@pytest.fixture
def make_controller(fast_settings, slots):
    """Factory building a controller over a scripted transport."""
    def _make(transport=None, store=None, settings=None):
        return ConversationController(
            transport or ScriptedTransport(),
            store or InMemoryMessageStore(slots=slots),
            settings or fast_settings,
        )

    return _make


@pytest.fixture
def log_entries():
    """List collecting (level, component, message) debug callback entries."""
    return []
