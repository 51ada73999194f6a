"""Message lifecycle controller.

Turns user input into an ordered, persisted conversation:

    idle -> sending -> revealing -> idle
                    -> retrying  -> idle

Only one turn runs at a time. Each turn is tagged with the epoch it started
in; ``clear()`` and ``close()`` move to a new epoch, so callbacks from
cancelled work can never touch the new conversation.
"""

import asyncio
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from ..config import ControllerSettings
from ..recovery import RecoveryAction, RecoveryPolicy, RetryState
from ..reveal import RevealScheduler
from ..timers import SleepFunc, TimerHandle
from ..transport.models import ChatPayload
from .models import (
    ConversationView,
    Message,
    MessageIdGenerator,
    Phase,
    Role,
    TypingState,
    format_context,
    utcnow,
)

if TYPE_CHECKING:
    from ..memory.base import MessageStore
    from ..transport.base import ChatTransport


class ConversationController:
    """Owns the conversation and sequences transport, recovery and reveal.

    The controller owns the transport and the store it is given and closes
    both in ``close()``.

    Example:
        async with ConversationController(transport, store) as controller:
            controller.submit("hello")
            await controller.wait_idle()
            print(controller.messages[-1].text)
    """

    def __init__(
        self,
        transport: "ChatTransport",
        store: "MessageStore",
        settings: ControllerSettings | None = None,
        *,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._transport = transport
        self._store = store
        self._settings = settings or ControllerSettings()
        self._reveal = RevealScheduler(self._settings.reveal_interval, sleep=sleep)
        self._policy = RecoveryPolicy(
            transport.probe,
            interval=self._settings.probe_interval,
            sleep=sleep,
        )
        self._ids = MessageIdGenerator(clock)

        self._messages: list[Message] = []
        self._phase = Phase.IDLE
        self._typing: TypingState | None = None
        self._typing_text = ""
        self._retry = RetryState()
        self._epoch = 0

        self._turn: asyncio.Task | None = None
        self._probe_handle: TimerHandle | None = None
        self._writer: asyncio.Task | None = None
        self._dirty = False
        self._saving_paused = False
        self._started = False
        self._closed = False

        # Input buffer a host UI may fill before calling submit()
        self.draft = ""
        self._attachment: bytes | None = None

        self._change_callback: Any = None
        self._debug_callback: Any = None

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def pending_send(self) -> bool:
        return self._phase is not Phase.IDLE

    @property
    def typing(self) -> TypingState | None:
        return self._typing

    @property
    def typing_text(self) -> str:
        """Prefix of the answer revealed so far (empty when not revealing)."""
        return self._typing_text

    @property
    def retry_state(self) -> RetryState:
        return self._retry

    @property
    def attachment(self) -> bytes | None:
        return self._attachment

    @property
    def settings(self) -> ControllerSettings:
        return self._settings

    def view(self) -> ConversationView:
        """Immutable snapshot of the current state."""
        return ConversationView(
            messages=tuple(self._messages),
            phase=self._phase,
            typing=self._typing,
            typing_text=self._typing_text,
            retry=self._retry,
        )

    def set_change_callback(self, callback: Any) -> None:
        """Set the callback receiving a ConversationView after every change.

        Args:
            callback: Callable(view: ConversationView)
        """
        self._change_callback = callback

    def set_debug_callback(self, callback: Any) -> None:
        """Set the debug callback for detailed logging.

        Args:
            callback: Callable(level: str, component: str, message: str)
                      level: 'debug', 'info', 'warning', 'error'
        """
        self._debug_callback = callback
        self._transport.set_debug_callback(callback)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open the store and load the saved conversation once.

        A store that cannot be read is logged and the session starts empty;
        snapshots are not written again until ``clear()``.
        """
        if self._started:
            return
        self._started = True

        try:
            await self._store.connect()
            messages = await self._store.load()
        except Exception as e:
            self._debug("error", "Memory", f"Failed to load conversation: {e}")
            self._debug("warning", "Memory", "Saving paused until the conversation is cleared")
            self._saving_paused = True
            messages = []

        self._messages = list(messages)
        self._ids.seed(self._messages)
        self._debug("info", "Memory", f"Loaded {len(self._messages)} message(s) from {self._store.backend_type}")
        self._notify()

    async def close(self) -> None:
        """Cancel outstanding work, flush pending writes and release resources."""
        if self._closed:
            return
        self._closed = True
        self._epoch += 1
        self._cancel_work()
        if self._turn is not None:
            await asyncio.wait({self._turn})
        self._turn = None
        self._set_idle()

        await self.flush()
        try:
            await self._store.disconnect()
        except Exception as e:
            self._debug("error", "Memory", f"Failed to close store: {e}")
        try:
            await self._transport.close()
        except Exception as e:
            self._debug("error", "Transport", f"Failed to close transport: {e}")

    async def __aenter__(self) -> "ConversationController":
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def wait_idle(self) -> None:
        """Wait until the current turn (including any recovery episode) ends."""
        while self._turn is not None and not self._turn.done():
            await asyncio.wait({self._turn})

    async def flush(self) -> None:
        """Wait until every scheduled snapshot write has finished."""
        while self._writer is not None and not self._writer.done():
            await asyncio.wait({self._writer})

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def attach_image(self, data: bytes) -> None:
        """Attach an image to the next submitted message."""
        self._attachment = data or None

    def detach_image(self) -> None:
        self._attachment = None

    def submit(self, text: str = "", image: bytes | None = None) -> bool:
        """Start a turn with a new user message.

        Args:
            text: Message text
            image: Image bytes; defaults to the attached image

        Returns:
            True if the message was accepted. False when there is nothing to
            send, or a send (or recovery episode) is already in progress.
        """
        if self._closed:
            return False
        if self.pending_send:
            self._debug("debug", "Controller", f"Submit ignored while {self._phase.value}")
            return False

        if image is None:
            image = self._attachment
        image = image or None
        has_text = bool(text.strip())
        if not has_text and image is None:
            return False

        self._retry = self._policy.begin_send(self._retry)
        context = format_context(self._messages, self._settings.context_window)
        payload = ChatPayload.build(text, context=context, image=image)

        self.draft = ""
        self._attachment = None
        self._phase = Phase.SENDING
        self._append(
            Role.USER,
            text if has_text else self._settings.image_placeholder,
            image=image,
        )
        self._debug("info", "Controller", f"Sending: '{text[:50]}'")

        self._turn = asyncio.create_task(
            self._run_turn(payload, self._epoch),
            name="parley-turn",
        )
        return True

    def clear(self) -> None:
        """Empty the conversation and reset all transient state.

        The caller is responsible for confirming with the user first.
        """
        self._epoch += 1
        self._cancel_work()
        self._turn = None
        self._messages = []
        self._retry = RetryState()
        self.draft = ""
        self._attachment = None
        self._set_idle()
        self._debug("info", "Controller", "Conversation cleared")
        self._saving_paused = False
        self._persist()
        self._notify()

    # ------------------------------------------------------------------
    # Turn
    # ------------------------------------------------------------------

    async def _run_turn(self, payload: ChatPayload, epoch: int) -> None:
        try:
            answer = await self._transport.send(payload)
        except Exception as e:
            if epoch != self._epoch:
                return
            probe_handle = self._handle_failure(e, epoch)
            if probe_handle is not None:
                await probe_handle.wait()
            return

        if epoch != self._epoch:
            return

        target_id = self._ids.next_id()
        self._phase = Phase.REVEALING
        self._typing = TypingState(target_message_id=target_id)
        self._typing_text = ""
        self._notify()

        reveal = self._reveal.play(
            answer,
            on_prefix=lambda prefix: self._on_reveal_prefix(prefix, target_id, epoch),
            on_complete=lambda text: self._on_reveal_complete(text, target_id, epoch),
        )
        await reveal.wait()

    def _handle_failure(self, error: BaseException, epoch: int) -> TimerHandle | None:
        self._retry, action = self._policy.on_failure(self._retry, error)

        if action is RecoveryAction.GIVE_UP:
            self._debug("error", "Controller", f"Send failed permanently: {error}")
            self._set_idle()
            self._append(Role.ASSISTANT, self._settings.failure_reply)
            return None

        self._debug("warning", "Controller", f"Send failed (attempt {self._retry.attempt}): {error}")
        self._phase = Phase.RETRYING
        if action is RecoveryAction.ANNOUNCE_AND_PROBE:
            self._append(Role.SYSTEM, self._settings.degraded_notice)
            self._cancel_probe()
            self._probe_handle = self._policy.start_probing(
                lambda ok: self._on_probe_result(ok, epoch)
            )
        else:
            # Episode already announced; unreachable from submit, which refuses
            # sends while retrying
            self._notify()
        return self._probe_handle

    def _on_probe_result(self, ok: bool, epoch: int) -> bool:
        if epoch != self._epoch:
            return False

        self._retry, restored = self._policy.on_probe(self._retry, ok)
        if not restored:
            self._debug("debug", "Recovery", f"Probe failed (attempt {self._retry.attempt})")
            self._notify()
            return self._retry.is_probing

        self._debug("info", "Recovery", "Service restored")
        self._probe_handle = None
        self._set_idle()
        self._append(Role.SYSTEM, self._settings.restored_notice)
        return False

    def _on_reveal_prefix(self, prefix: str, target_id: int, epoch: int) -> None:
        if epoch != self._epoch:
            return
        self._typing = TypingState(
            target_message_id=target_id,
            revealed_prefix_length=len(prefix),
        )
        self._typing_text = prefix
        self._notify()

    def _on_reveal_complete(self, text: str, target_id: int, epoch: int) -> None:
        if epoch != self._epoch:
            return
        self._set_idle()
        self._append(Role.ASSISTANT, text, message_id=target_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append(
        self,
        role: Role,
        text: str,
        image: bytes | None = None,
        message_id: int | None = None
    ) -> Message:
        message = Message(
            id=message_id if message_id is not None else self._ids.next_id(),
            role=role,
            text=text,
            image=image,
            created_at=utcnow(),
        )
        self._messages.append(message)
        self._persist()
        self._notify()
        return message

    def _set_idle(self) -> None:
        self._phase = Phase.IDLE
        self._typing = None
        self._typing_text = ""

    def _cancel_probe(self) -> None:
        if self._probe_handle is not None:
            self._probe_handle.cancel()
            self._probe_handle = None

    def _cancel_work(self) -> None:
        self._reveal.cancel()
        self._cancel_probe()
        if self._turn is not None and not self._turn.done():
            self._turn.cancel()

    def _persist(self) -> None:
        """Schedule a full snapshot write; never blocks the caller."""
        # An unreadable snapshot must not be replaced by this session's list
        if self._saving_paused:
            return
        self._dirty = True
        if self._writer is None or self._writer.done():
            self._writer = asyncio.create_task(
                self._write_snapshots(),
                name="parley-persist",
            )

    async def _write_snapshots(self) -> None:
        # Always writes the latest list, so overlapping changes coalesce
        while self._dirty:
            self._dirty = False
            snapshot = list(self._messages)
            try:
                await self._store.save(snapshot)
            except Exception as e:
                self._debug("error", "Memory", f"Failed to save conversation: {e}")
            else:
                self._debug("debug", "Memory", f"Saved {len(snapshot)} message(s)")

    def _notify(self) -> None:
        if self._change_callback is None:
            return
        try:
            self._change_callback(self.view())
        except Exception as e:
            self._debug("error", "Controller", f"Change callback failed: {e}")

    def _debug(self, level: str, component: str, message: str) -> None:
        if not self._debug_callback:
            return
        try:
            self._debug_callback(level, component, message)
        except Exception:
            # A broken log sink must not change the outcome of the caller
            pass
