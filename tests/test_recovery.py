"""Unit tests for the recovery policy and error taxonomy."""
import asyncio

import pytest
from hypothesis import given
from hypothesis import strategies as st

from parley.errors import ParleyError, PersistenceFailure, ProbeFailure, TransportError
from parley.recovery import RecoveryAction, RecoveryPolicy, RetryState


async def _never_called():
    raise AssertionError("probe should not run")


async def _yield_sleep(_interval):
    await asyncio.sleep(0)


class TestErrors:
    """Tests for retry classification of errors."""

    def test_transport_error_retryable_by_default(self):
        """Test network-style failures are retryable."""
        error = TransportError("connection reset")
        assert error.is_retryable() is True
        assert error.status_code is None
        assert str(error) == "Transport error: connection reset"

    def test_transport_error_with_status(self):
        """Test status codes are kept and shown."""
        error = TransportError("Bad Request", status_code=400, retryable=False)
        assert error.is_retryable() is False
        assert error.status_code == 400
        assert "(status: 400)" in str(error)

    def test_probe_failure_is_retryable(self):
        assert ProbeFailure("down").is_retryable() is True

    def test_persistence_failure_not_retryable(self):
        """Test persistence failures keep the conversation key."""
        error = PersistenceFailure("disk full", key="chats")
        assert error.is_retryable() is False
        assert error.key == "chats"
        assert "(key: chats)" in str(error)

    def test_base_error_not_retryable(self):
        assert ParleyError("x").is_retryable() is False


class TestRecoveryTransitions:
    """Tests for the pure state transitions."""

    def setup_method(self):
        self.policy = RecoveryPolicy(_never_called, interval=4.0)

    def test_begin_send_resets(self):
        """Test a user send starts a fresh episode."""
        state = RetryState(attempt=3, is_probing=True)
        assert self.policy.begin_send(state) == RetryState()

    def test_first_failure_announces(self):
        """Test the first retryable failure announces and starts probing."""
        state, action = self.policy.on_failure(RetryState(), TransportError("down"))

        assert action is RecoveryAction.ANNOUNCE_AND_PROBE
        assert state == RetryState(attempt=1, is_probing=True)

    def test_failure_while_probing_does_not_reannounce(self):
        """Test further failures within an episode keep probing silently."""
        state = RetryState(attempt=1, is_probing=True)
        state, action = self.policy.on_failure(state, TransportError("down"))

        assert action is RecoveryAction.KEEP_PROBING
        assert state == RetryState(attempt=2, is_probing=True)

    @pytest.mark.parametrize("error", [
        TransportError("Bad Request", status_code=400, retryable=False),
        PersistenceFailure("disk full"),
        RuntimeError("unexpected"),
    ])
    def test_non_retryable_gives_up(self, error):
        """Test terminal failures end the turn without probing."""
        state, action = self.policy.on_failure(RetryState(), error)

        assert action is RecoveryAction.GIVE_UP
        assert state.is_probing is False
        assert state.attempt == 1

    def test_successful_probe_restores(self):
        """Test a healthy probe ends the episode."""
        state, restored = self.policy.on_probe(RetryState(attempt=2, is_probing=True), True)

        assert restored is True
        assert state == RetryState()

    def test_failed_probe_counts_attempt(self):
        state, restored = self.policy.on_probe(RetryState(attempt=2, is_probing=True), False)

        assert restored is False
        assert state == RetryState(attempt=3, is_probing=True)

    @given(st.integers(min_value=0, max_value=1000), st.booleans())
    def test_probe_outside_episode_is_ignored(self, attempt: int, ok: bool):
        """Property test: probes never restore when no episode is open."""
        state = RetryState(attempt=attempt)
        new_state, restored = self.policy.on_probe(state, ok)

        assert restored is False
        assert new_state == state

    @given(st.lists(st.booleans(), max_size=20))
    def test_restore_reported_once_per_episode(self, outcomes):
        """Property test: at most one restore per announced episode."""
        state, _ = self.policy.on_failure(RetryState(), TransportError("down"))
        restores = 0
        for ok in outcomes:
            state, restored = self.policy.on_probe(state, ok)
            restores += restored
        assert restores <= 1
        assert restores == (1 if any(outcomes) else 0)

    def test_retry_state_rejects_negative_attempt(self):
        with pytest.raises(ValueError):
            RetryState(attempt=-1)


class TestProbing:
    """Tests for the probe timer."""

    @pytest.mark.asyncio
    async def test_probes_until_callback_stops(self):
        """Test probing continues while on_result returns True."""
        outcomes = iter([False, False, True])
        seen = []

        async def _probe():
            return next(outcomes)

        def _on_result(ok):
            seen.append(ok)
            return not ok

        policy = RecoveryPolicy(_probe, interval=0.0, sleep=_yield_sleep)
        await policy.start_probing(_on_result).wait()

        assert seen == [False, False, True]

    @pytest.mark.asyncio
    async def test_probe_exception_counts_as_failure(self):
        """Test a raising probe is reported as unhealthy, not fatal."""
        seen = []

        async def _probe():
            raise ConnectionError("refused")

        def _on_result(ok):
            seen.append(ok)
            return len(seen) < 2

        policy = RecoveryPolicy(_probe, interval=0.0, sleep=_yield_sleep)
        await policy.start_probing(_on_result).wait()

        assert seen == [False, False]

    @pytest.mark.asyncio
    async def test_first_probe_waits_one_interval(self):
        """Test probing starts after the interval, not immediately."""
        intervals = []

        async def _sleep(interval):
            intervals.append(interval)
            await asyncio.sleep(0)

        async def _probe():
            return True

        policy = RecoveryPolicy(_probe, interval=4.0, sleep=_sleep)
        assert policy.interval == 4.0
        await policy.start_probing(lambda ok: False).wait()

        assert intervals == [4.0]
