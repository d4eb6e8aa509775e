"""
VoiceNotes Client — Voice Capture Session
===========================================

What:  A bounded, cancellable dictation session that turns a stream of
       speech-recognition fragments into one string for the note editor.
Why:   Recognizers emit interim guesses that get revised. Only fragments the
       recognizer marks final may reach a note, and a forgotten microphone
       must not stay open forever.
How:   The recognizer is injected as a RecognitionFeed, so tests drive the
       session with synthetic fragments. A loop.call_later deadline stops
       the session automatically.

State Machine:
                 start()
        ┌──────┐ ───────▶ ┌───────────┐
        │ IDLE │          │ LISTENING │──── final fragment: append "text "
        └──────┘ ◀─────── └───────────┘──── interim fragment: ignored
           │      stop() / deadline / feed ended
           │
           │ close()      (close() from LISTENING finalizes first)
           ▼
        ┌─────────┐
        │ STOPPED │  terminal, recognizer released
        └─────────┘

    stop(), the deadline and the feed's own end all race; whichever runs
    first finalizes and the others are no-ops. Callbacks from an earlier
    run (e.g. a late on_end after restart()) are ignored.

Output:
    The finalized text has trailing whitespace trimmed. The editor should
    merge it with append_transcript() so typed text is never overwritten.
"""

import asyncio
import enum
import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, List, Optional, Protocol

from voicenotes.config import settings
from voicenotes.exceptions import AlreadyActiveError, VoiceSessionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptFragment:
    """One recognizer result; `is_final` marks text that will not be revised."""

    text: str
    is_final: bool


FragmentCallback = Callable[[TranscriptFragment], None]
EndCallback = Callable[[], None]
CompletionListener = Callable[[str], None]


class RecognitionFeed(Protocol):
    """
    The speech recognizer the session drives.

    start() begins delivering fragments to `on_fragment` until stop() is
    called or the recognizer ends by itself, in which case it calls `on_end`.
    stop() must be safe to call more than once.
    """

    def start(self, on_fragment: FragmentCallback, on_end: EndCallback) -> None: ...

    def stop(self) -> None: ...


class SessionState(str, enum.Enum):
    IDLE = "idle"
    LISTENING = "listening"
    STOPPED = "stopped"


class VoiceCaptureSession:
    """
    Usage:
        async with VoiceCaptureSession(feed) as session:
            session.start()
            ...                       # user talks
            dictated = session.stop()  # or: await session.wait()
        content = append_transcript(content, dictated)

    Args:
        feed: The recognizer to drive
        max_duration: Seconds before the session stops itself
                      (default: settings.voice_max_duration_seconds)
    """

    def __init__(self, feed: RecognitionFeed, max_duration: Optional[float] = None):
        self._feed = feed
        self.max_duration = (
            max_duration if max_duration is not None else settings.voice_max_duration_seconds
        )
        self._state = SessionState.IDLE
        self._parts: List[str] = []
        self._output = ""
        self._run = 0
        self._deadline_handle: Optional[asyncio.TimerHandle] = None
        self._done: Optional["asyncio.Future[str]"] = None
        self._listeners: List[CompletionListener] = []

    async def __aenter__(self) -> "VoiceCaptureSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    # ── Read-only state ──────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is SessionState.LISTENING

    @property
    def accumulated_text(self) -> str:
        """Final fragments received so far in the current run."""
        return "".join(self._parts)

    @property
    def output(self) -> str:
        """Text of the most recently finalized run."""
        return self._output

    @property
    def deadline(self) -> Optional[float]:
        """Event-loop time at which the current run stops itself, if listening."""
        if self._deadline_handle is None:
            return None
        return self._deadline_handle.when()

    # ── Control ──────────────────────────────────────────────────────────

    def start(self) -> None:
        """
        Begin a new run. Must be called from inside a running event loop.

        Raises:
            AlreadyActiveError: A run is already in progress
            VoiceSessionError: The session is closed, or the feed failed to start
        """
        if self._state is SessionState.STOPPED:
            raise VoiceSessionError("Voice capture session is closed")
        if self._state is SessionState.LISTENING:
            raise AlreadyActiveError()

        loop = asyncio.get_running_loop()
        self._run += 1
        run = self._run
        self._parts = []
        self._done = loop.create_future()
        self._state = SessionState.LISTENING
        self._deadline_handle = loop.call_later(self.max_duration, self._on_deadline, run)

        try:
            self._feed.start(partial(self._on_fragment, run), partial(self._on_feed_end, run))
        except Exception as e:
            self._cancel_deadline()
            self._state = SessionState.IDLE
            self._release_feed()
            self._done.cancel()
            logger.error("Recognition feed failed to start: %s", str(e))
            raise VoiceSessionError(
                "Could not start voice capture",
                context={"error_type": type(e).__name__},
            ) from e

        logger.info("Voice capture started (limit %.0fs)", self.max_duration)

    def stop(self) -> str:
        """Finalize the current run and return its text. No-op when not listening."""
        if self._state is not SessionState.LISTENING:
            return self._output
        return self._finalize("stopped")

    def restart(self) -> str:
        """Finish the current run (if any) and start a fresh one; returns the old output."""
        previous = self.stop()
        self.start()
        return previous

    def close(self) -> None:
        """Release the recognizer for good. Safe to call repeatedly."""
        if self._state is SessionState.STOPPED:
            return
        if self._state is SessionState.LISTENING:
            self._finalize("closed")
        self._state = SessionState.STOPPED
        self._listeners.clear()

    async def wait(self) -> str:
        """Wait for the current run to finish and return its text."""
        if self._done is None or self._done.cancelled():
            return self._output
        return await asyncio.shield(self._done)

    def on_complete(self, listener: CompletionListener) -> Callable[[], None]:
        """Call `listener(text)` whenever a run finalizes; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Feed and timer callbacks ─────────────────────────────────────────

    def _on_fragment(self, run: int, fragment: TranscriptFragment) -> None:
        if run != self._run or self._state is not SessionState.LISTENING:
            return
        if fragment.is_final:
            self._parts.append(fragment.text + " ")

    def _on_feed_end(self, run: int) -> None:
        if run == self._run and self._state is SessionState.LISTENING:
            self._finalize("feed ended")

    def _on_deadline(self, run: int) -> None:
        self._deadline_handle = None
        if run == self._run and self._state is SessionState.LISTENING:
            self._finalize("time limit reached")

    # ── Internals ────────────────────────────────────────────────────────

    def _finalize(self, reason: str) -> str:
        # State flips first so callbacks fired by feed.stop() are ignored
        self._state = SessionState.IDLE
        self._cancel_deadline()
        self._output = "".join(self._parts).rstrip()
        self._release_feed()

        if self._done is not None and not self._done.done():
            self._done.set_result(self._output)

        logger.info("Voice capture finished (%s): %d chars", reason, len(self._output))
        for listener in list(self._listeners):
            try:
                listener(self._output)
            except Exception:
                logger.exception("Voice completion listener %r failed", listener)
        return self._output

    def _cancel_deadline(self) -> None:
        if self._deadline_handle is not None:
            self._deadline_handle.cancel()
            self._deadline_handle = None

    def _release_feed(self) -> None:
        try:
            self._feed.stop()
        except Exception:
            logger.exception("Recognition feed failed to stop cleanly")


def append_transcript(existing: str, dictated: str) -> str:
    """
    Add dictated text after whatever the user already typed.

    >>> append_transcript("Buy milk.", "and eggs")
    'Buy milk. and eggs'
    >>> append_transcript("", "hello")
    'hello'
    """
    dictated = dictated.strip()
    if not dictated:
        return existing
    if not existing:
        return dictated
    if existing[-1].isspace():
        return existing + dictated
    return existing + " " + dictated
