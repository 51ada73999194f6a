"""Retry/backoff policy for an unavailable chat service.

A failed send opens a recovery episode: the user is told once that the
service is degraded, the service is probed at a fixed interval, and the user
is told once when it answers again. The failed message is never resent
automatically; the user resubmits.

The policy is a set of pure transitions over ``RetryState`` plus the probe
timer. The state itself is held by the caller and passed back in.
"""

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from .config import PROBE_INTERVAL
from .errors import ParleyError
from .timers import SleepFunc, TimerHandle, call_every


class RetryState(BaseModel):
    """Progress of the current recovery episode."""

    model_config = ConfigDict(frozen=True)

    attempt: int = Field(default=0, ge=0, description="Failures seen in this episode")
    is_probing: bool = Field(default=False, description="Waiting for a probe to succeed")


class RecoveryAction(str, Enum):
    """What the caller should do after a failed send."""

    ANNOUNCE_AND_PROBE = "announce_and_probe"  # First failure of an episode
    KEEP_PROBING = "keep_probing"              # Episode already announced
    GIVE_UP = "give_up"                        # Not retryable; end the turn


class RecoveryPolicy:
    """Decides how to recover from transport failures.

    Example:
        policy = RecoveryPolicy(transport.probe, interval=4.0)
        state, action = policy.on_failure(state, error)
        if action is RecoveryAction.ANNOUNCE_AND_PROBE:
            handle = policy.start_probing(on_result)
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable[bool]],
        interval: float = PROBE_INTERVAL,
        sleep: SleepFunc = asyncio.sleep
    ) -> None:
        self._probe = probe
        self._interval = interval
        self._sleep = sleep

    @property
    def interval(self) -> float:
        return self._interval

    def begin_send(self, state: RetryState) -> RetryState:
        """Reset the episode for a user-initiated send."""
        return RetryState()

    def on_failure(
        self,
        state: RetryState,
        error: BaseException
    ) -> tuple[RetryState, RecoveryAction]:
        """Transition after a failed send.

        Args:
            state: Current retry state
            error: The failure raised by the transport

        Returns:
            New state and the action the caller must take
        """
        retryable = isinstance(error, ParleyError) and error.is_retryable()
        if not retryable:
            return RetryState(attempt=state.attempt + 1), RecoveryAction.GIVE_UP

        next_state = RetryState(attempt=state.attempt + 1, is_probing=True)
        if state.is_probing:
            return next_state, RecoveryAction.KEEP_PROBING
        return next_state, RecoveryAction.ANNOUNCE_AND_PROBE

    def on_probe(self, state: RetryState, ok: bool) -> tuple[RetryState, bool]:
        """Transition after a probe.

        Returns:
            New state and whether the service was restored by this probe.
            Only the first successful probe of an episode reports True.
        """
        if not state.is_probing:
            return state, False
        if ok:
            return RetryState(), True
        return RetryState(attempt=state.attempt + 1, is_probing=True), False

    def start_probing(self, on_result: Callable[[bool], bool]) -> TimerHandle:
        """Probe the service every interval until ``on_result`` returns False.

        Args:
            on_result: Receives each probe outcome; return False to stop

        Returns:
            Handle for the probe timer; cancel it to end the episode early
        """
        async def _tick() -> bool:
            try:
                ok = await self._probe()
            except Exception:
                # Any probe error is just a failed probe
                ok = False
            return on_result(ok)

        return call_every(
            self._interval,
            _tick,
            sleep=self._sleep,
            name="parley-probe"
        )
