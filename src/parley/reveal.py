"""Incremental reveal of a fully received answer.

Hides how an answer is disclosed on screen: the text is stepped one
grapheme cluster at a time (so emoji, flags and combining marks are never
split) at a fixed cadence, and completion is signalled exactly once.
"""

import asyncio
from collections.abc import Callable, Iterator

import regex

from .config import REVEAL_INTERVAL
from .timers import SleepFunc, TimerHandle, call_every

_GRAPHEME = regex.compile(r"\X")


def grapheme_prefixes(text: str) -> Iterator[str]:
    """Lazily yield growing prefixes of ``text``, one grapheme per step.

    The last prefix yielded equals ``text``; an empty text yields nothing.
    Each call starts a fresh sequence.
    """
    for match in _GRAPHEME.finditer(text):
        yield text[:match.end()]


class Reveal:
    """One playback of an answer.

    Created by ``RevealScheduler.play``; do not construct directly.
    """

    def __init__(
        self,
        text: str,
        on_prefix: Callable[[str], None] | None = None,
        on_complete: Callable[[str], None] | None = None
    ) -> None:
        self.text = text
        self.prefix = ""
        self.steps = 0
        self._on_prefix = on_prefix
        self._on_complete = on_complete
        self._prefixes = grapheme_prefixes(text)
        self._completed = False
        self._cancelled = False
        self._handle: TimerHandle | None = None

    @property
    def completed(self) -> bool:
        return self._completed

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def active(self) -> bool:
        return self._handle is not None and not self._handle.done

    def start(self, interval: float, sleep: SleepFunc) -> None:
        self._handle = call_every(
            interval,
            self._tick,
            sleep=sleep,
            immediate=True,
            name="parley-reveal"
        )

    def cancel(self) -> None:
        """Stop the reveal; completion will never fire."""
        if self._handle is not None and not self._completed:
            self._cancelled = True
            self._handle.cancel()

    async def wait(self) -> str | None:
        """Wait for the reveal to end.

        Returns:
            The full text if the reveal completed, None if it was cancelled
        """
        if self._handle is not None:
            await self._handle.wait()
        return self.text if self._completed else None

    def _tick(self) -> bool:
        prefix = next(self._prefixes, None)
        if prefix is not None:
            self.prefix = prefix
            self.steps += 1
            if self._on_prefix:
                self._on_prefix(prefix)
            if len(prefix) < len(self.text):
                return True
        self._complete()
        return False

    def _complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        self.prefix = self.text
        if self._on_complete:
            self._on_complete(self.text)


class RevealScheduler:
    """Plays answers one at a time.

    Starting a new playback cancels the active one immediately, so at most
    one reveal is ever running.
    """

    def __init__(
        self,
        interval: float = REVEAL_INTERVAL,
        sleep: SleepFunc = asyncio.sleep
    ) -> None:
        self._interval = interval
        self._sleep = sleep
        self._active: Reveal | None = None

    @property
    def active(self) -> Reveal | None:
        """The running reveal, if any."""
        if self._active is not None and self._active.active:
            return self._active
        return None

    def play(
        self,
        text: str,
        on_prefix: Callable[[str], None] | None = None,
        on_complete: Callable[[str], None] | None = None
    ) -> Reveal:
        """Start revealing ``text``.

        Args:
            text: Complete answer to reveal
            on_prefix: Called with each growing prefix
            on_complete: Called once with the full text when done

        Returns:
            The new reveal
        """
        self.cancel()
        reveal = Reveal(text, on_prefix=on_prefix, on_complete=on_complete)
        self._active = reveal
        reveal.start(self._interval, self._sleep)
        return reveal

    def cancel(self) -> None:
        """Cancel the active reveal, if any."""
        if self._active is not None:
            self._active.cancel()
            self._active = None
