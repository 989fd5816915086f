"""Transposable playback controller.

One ``PlaybackSession`` per audio track. The session decodes a source into
a ``player -> pitch shift -> gain -> destination`` chain and tracks elapsed
time itself (stored offset plus time since the transport last started)
rather than trusting the engine transport, so pause, seek and live
transposition never lose the playback position.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Generator, Optional

from worship_chords.audio.engine import (
    AudioContext,
    AudioContextProvider,
    GainNode,
    PitchShiftNode,
    PlayerNode,
)
from worship_chords.errors import DecodeFailure, LoadAborted
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)

SEEK_GUARD_SECONDS = 0.05


class PlaybackStatus(Enum):
    """Session lifecycle state."""

    IDLE = auto()
    LOADING = auto()
    READY = auto()
    PLAYING = auto()
    PAUSED = auto()
    ENDED = auto()
    ERROR = auto()


class EndPolicy(Enum):
    """What happens when playback reaches the end of the track."""

    STOP = auto()  # pin at the end and wait
    LOOP = auto()  # wrap to the start and keep playing


class PlayStateOwner(Enum):
    """Who decides whether the session is playing."""

    SELF = auto()  # the session's own controls
    EXTERNAL = auto()  # a coordinator driving several sessions together


@dataclass
class PlaybackPosition:
    """Current playback position information.

    Attributes:
        current_seconds: Current position in seconds
        total_seconds: Total duration in seconds
        progress_percent: Progress as percentage (0-100)
    """

    current_seconds: float
    total_seconds: float
    progress_percent: float


class StopEventGuard:
    """Suppresses transport stop notifications caused by our own stop/start.

    Stopping and restarting a transport (for a seek, pause or loop) makes
    the engine report "stopped". Those reports must not be read as the
    track running out. While a ``suppress()`` block is open, and for a
    short window after it closes, ``should_ignore()`` is true.

    Attributes:
        window: Seconds to keep suppressing after the block closes
    """

    def __init__(self, clock: Callable[[], float], window: float = SEEK_GUARD_SECONDS):
        self.clock = clock
        self.window = window
        self._depth = 0
        self._until: Optional[float] = None

    @contextmanager
    def suppress(self) -> Generator[None, None, None]:
        """Bracket a programmatic stop/start pair."""
        self._depth += 1
        try:
            yield
        finally:
            self._depth = max(0, self._depth - 1)
            self._until = self.clock() + self.window

    @property
    def active(self) -> bool:
        return self._depth > 0

    def should_ignore(self) -> bool:
        """Whether a stop notification arriving now is self-inflicted."""
        if self._depth > 0:
            return True
        return self._until is not None and self.clock() < self._until

    def clear(self) -> None:
        self._depth = 0
        self._until = None


class PlaybackSession:
    """Pitch-shifting player for a single track.

    Attributes:
        end_policy: STOP or LOOP at the end of the track
        owner: SELF or EXTERNAL ownership of play/pause state
        volume: Gain applied after the pitch shift
        window_size: Pitch-shift grain window in seconds
    """

    def __init__(
        self,
        provider: AudioContextProvider,
        end_policy: EndPolicy = EndPolicy.STOP,
        owner: PlayStateOwner = PlayStateOwner.SELF,
        volume: float = 1.0,
        pitch_offset: float = 0.0,
        window_size: float = 0.1,
        seek_guard_seconds: float = SEEK_GUARD_SECONDS,
    ):
        """Initialize the session.

        Args:
            provider: Shared audio context provider
            end_policy: End-of-track behaviour
            owner: Who owns play/pause state
            volume: Initial playback volume
            pitch_offset: Initial pitch offset in semitones
            window_size: Pitch-shift window in seconds
            seek_guard_seconds: Stop-notification suppression window
        """
        self.provider = provider
        self.end_policy = end_policy
        self.owner = owner
        self.volume = max(0.0, volume)
        self.window_size = window_size

        self._context: Optional[AudioContext] = None
        self._player: Optional[PlayerNode] = None
        self._pitch: Optional[PitchShiftNode] = None
        self._gain: Optional[GainNode] = None

        self._status = PlaybackStatus.IDLE
        self._source_url: Optional[str] = None
        self._duration = 0.0
        self._offset = 0.0
        self._start_ts: Optional[float] = None
        self._pitch_offset = float(pitch_offset)
        self._error: Optional[Exception] = None

        self._generation = 0
        self._frame_handle: Any = None
        self._disposed = False
        self._guard = StopEventGuard(self._now, seek_guard_seconds)

        # Callbacks
        self._on_status_changed: Optional[Callable[[PlaybackStatus], None]] = None
        self._on_position_changed: Optional[Callable[[PlaybackPosition], None]] = None
        self._on_ended: Optional[Callable[[], None]] = None
        self._on_play_request: Optional[Callable[[bool], None]] = None
        self._owner_ended: Optional[Callable[[], None]] = None

    def set_callbacks(
        self,
        on_status_changed: Optional[Callable[[PlaybackStatus], None]] = None,
        on_position_changed: Optional[Callable[[PlaybackPosition], None]] = None,
        on_ended: Optional[Callable[[], None]] = None,
    ) -> None:
        """Set session event callbacks.

        Args:
            on_status_changed: Called when status changes
            on_position_changed: Called each frame while playing and after seeks
            on_ended: Called when the track ends under the STOP policy
        """
        self._on_status_changed = on_status_changed
        self._on_position_changed = on_position_changed
        self._on_ended = on_ended

    def bind_owner(
        self,
        on_play_request: Optional[Callable[[bool], None]],
        on_ended: Optional[Callable[[], None]] = None,
    ) -> None:
        """Attach the external owner of play state.

        Args:
            on_play_request: Receives toggle() requests (True = play)
            on_ended: Told when this track ends under the STOP policy
        """
        self._on_play_request = on_play_request
        self._owner_ended = on_ended

    # -- state -----------------------------------------------------------

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def source_url(self) -> Optional[str]:
        return self._source_url

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def pitch_offset(self) -> float:
        return self._pitch_offset

    @property
    def error(self) -> Optional[Exception]:
        """Last load failure, if the session is in ERROR."""
        return self._error

    @property
    def is_playing(self) -> bool:
        return self._status == PlaybackStatus.PLAYING

    @property
    def is_loaded(self) -> bool:
        return self._status in (
            PlaybackStatus.READY,
            PlaybackStatus.PLAYING,
            PlaybackStatus.PAUSED,
            PlaybackStatus.ENDED,
        )

    @property
    def disposed(self) -> bool:
        return self._disposed

    @property
    def position_seconds(self) -> float:
        """Elapsed position in seconds."""
        if self._status == PlaybackStatus.PLAYING and self._start_ts is not None:
            return min(self._elapsed(), self._duration)
        return self._offset

    def get_position(self) -> PlaybackPosition:
        """Get current playback position information."""
        current = self.position_seconds
        total = self._duration
        progress = (current / total * 100) if total > 0 else 0.0
        return PlaybackPosition(current_seconds=current, total_seconds=total, progress_percent=progress)

    def _now(self) -> float:
        return self._context.now() if self._context is not None else 0.0

    def _elapsed(self) -> float:
        if self._start_ts is None:
            return self._offset
        return self._offset + (self._now() - self._start_ts)

    def _set_status(self, new_status: PlaybackStatus) -> None:
        old_status = self._status
        self._status = new_status
        if old_status != new_status:
            logger.debug(f"Session {self._source_url}: {old_status.name} -> {new_status.name}")
            if self._on_status_changed and not self._disposed:
                self._on_status_changed(new_status)

    def _notify_position(self) -> None:
        if self._on_position_changed and not self._disposed:
            self._on_position_changed(self.get_position())

    # -- loading ---------------------------------------------------------

    async def load(self, source_url: str) -> bool:
        """Load a source, replacing whatever the session held.

        A load started while another is pending supersedes it; the older
        call returns False without touching the session.

        Args:
            source_url: URL or local path of the audio

        Returns:
            True if this load completed and the session is READY

        Raises:
            DecodeFailure: If the audio cannot be fetched or decoded
        """
        if self._disposed:
            logger.warning(f"Ignoring load of {source_url} on a disposed session")
            return False

        self._release_graph()
        if self._status != PlaybackStatus.IDLE:
            self._set_status(PlaybackStatus.IDLE)

        self._generation += 1
        generation = self._generation
        self._source_url = source_url
        self._duration = 0.0
        self._offset = 0.0
        self._error = None
        self._set_status(PlaybackStatus.LOADING)

        self._context = self.provider.get()
        try:
            buffer = await self._context.decode(source_url)
            self._ensure_current(generation, source_url)
        except LoadAborted:
            logger.debug(f"Discarding superseded load: {source_url}")
            return False
        except Exception as e:
            if generation != self._generation or self._disposed:
                logger.debug(f"Ignoring failure of superseded load {source_url}: {e}")
                return False
            failure = e if isinstance(e, DecodeFailure) else DecodeFailure(source_url, e)
            logger.error(f"Failed to load audio: {failure}")
            self._error = failure
            self._set_status(PlaybackStatus.ERROR)
            if failure is e:
                raise
            raise failure from e

        context = self._context
        self._player = context.create_player(buffer)
        self._pitch = context.create_pitch_shift(pitch=self._pitch_offset, window_size=self.window_size)
        self._gain = context.create_gain(self.volume)
        self._player.connect(self._pitch).connect(self._gain).connect(context.destination)
        self._player.on_stop = self._on_transport_stop

        self._duration = buffer.duration
        logger.info(f"Loaded {source_url}: {self._duration:.2f}s")
        self._set_status(PlaybackStatus.READY)
        return True

    def _ensure_current(self, generation: int, source_url: str) -> None:
        if self._disposed or generation != self._generation:
            raise LoadAborted(source_url)

    def unload(self) -> None:
        """Drop the current source and return to IDLE.

        Also aborts a pending load.
        """
        self._generation += 1
        self._release_graph()
        self._source_url = None
        self._duration = 0.0
        self._offset = 0.0
        self._set_status(PlaybackStatus.IDLE)

    def _release_graph(self) -> None:
        self._cancel_tick()
        self._guard.clear()
        self._start_ts = None
        for node in (self._player, self._pitch, self._gain):
            if node is not None:
                node.dispose()
        self._player = None
        self._pitch = None
        self._gain = None

    # -- transport -------------------------------------------------------

    def set_pitch_offset(self, semitones: float) -> None:
        """Retune playback without interrupting it.

        Args:
            semitones: Pitch offset in semitones
        """
        self._pitch_offset = float(semitones)
        if self._pitch is not None:
            self._pitch.pitch = self._pitch_offset
        logger.debug(f"Pitch offset set to {self._pitch_offset:+g}")

    def set_volume(self, volume: float) -> None:
        self.volume = max(0.0, volume)
        if self._gain is not None:
            self._gain.gain = self.volume

    def _start_transport(self) -> None:
        self._start_ts = self._now()
        self._player.start(self._offset)

    def _stop_transport(self) -> None:
        with self._guard.suppress():
            if self._player is not None and self._player.started:
                self._player.stop()

    def play(self) -> None:
        """Start or resume playback from the stored offset."""
        if self._disposed or not self.is_loaded:
            logger.warning(f"Cannot play in state {self._status.name}")
            return
        if self._status == PlaybackStatus.PLAYING:
            return
        if self._status == PlaybackStatus.ENDED:
            self._offset = 0.0

        with self._guard.suppress():
            self._start_transport()
        self._set_status(PlaybackStatus.PLAYING)
        self._schedule_tick()

    def pause(self) -> None:
        """Pause and remember the elapsed position."""
        if self._status != PlaybackStatus.PLAYING:
            return
        elapsed = self._elapsed()
        self._cancel_tick()
        self._stop_transport()
        self._offset = min(elapsed, self._duration)
        self._start_ts = None
        self._set_status(PlaybackStatus.PAUSED)

    def toggle(self) -> None:
        """Flip play/pause.

        When play state is owned externally the request goes to the owner,
        which decides for every session it drives.
        """
        want_playing = not self.is_playing
        if self.owner == PlayStateOwner.EXTERNAL:
            if self._on_play_request:
                self._on_play_request(want_playing)
            return
        if want_playing:
            self.play()
        else:
            self.pause()

    def seek(self, seconds: float) -> None:
        """Move to a position, keeping the current play state.

        Args:
            seconds: Target position; clamped to [0, duration]
        """
        if self._disposed or not self.is_loaded:
            return
        target = max(0.0, min(float(seconds), self._duration))

        if self._status == PlaybackStatus.PLAYING:
            with self._guard.suppress():
                if self._player.started:
                    self._player.stop()
                self._offset = target
                self._start_transport()
        else:
            self._offset = target
            self._start_ts = None
            if self._status == PlaybackStatus.ENDED:
                self._set_status(PlaybackStatus.PAUSED)

        logger.debug(f"Seek to {target:.2f}s")
        self._notify_position()

    def reset(self) -> None:
        """Stop and rewind to the start."""
        if self._disposed or not self.is_loaded:
            return
        self._cancel_tick()
        self._stop_transport()
        self._offset = 0.0
        self._start_ts = None
        self._set_status(PlaybackStatus.READY)
        self._notify_position()

    # -- frame loop ------------------------------------------------------

    def _schedule_tick(self) -> None:
        if self._frame_handle is None and self._context is not None and not self._disposed:
            self._frame_handle = self._context.request_frame(self.tick)

    def _cancel_tick(self) -> None:
        if self._frame_handle is not None and self._context is not None:
            self._context.cancel_frame(self._frame_handle)
        self._frame_handle = None

    def tick(self) -> None:
        """Per-frame update while playing.

        Recomputes the elapsed position and applies the end policy once it
        reaches the duration.
        """
        self._frame_handle = None
        if self._disposed or self._status != PlaybackStatus.PLAYING:
            return

        if self._elapsed() >= self._duration:
            self._handle_end()
            return

        self._notify_position()
        self._schedule_tick()

    def _handle_end(self) -> None:
        if self.end_policy == EndPolicy.LOOP:
            logger.debug("End of track, looping")
            with self._guard.suppress():
                if self._player.started:
                    self._player.stop()
                self._offset = 0.0
                self._start_transport()
            self._notify_position()
            self._schedule_tick()
            return

        logger.debug("End of track, stopping")
        self._cancel_tick()
        self._stop_transport()
        self._offset = self._duration
        self._start_ts = None
        self._set_status(PlaybackStatus.ENDED)
        self._notify_position()
        if self._on_ended and not self._disposed:
            self._on_ended()
        if self._owner_ended and not self._disposed:
            self._owner_ended()

    def _on_transport_stop(self) -> None:
        """Transport reported a stop."""
        if self._disposed or self._guard.should_ignore():
            return
        if self._status == PlaybackStatus.PLAYING:
            # Ran out of samples before a tick noticed
            self._handle_end()

    # -- teardown --------------------------------------------------------

    def dispose(self) -> None:
        """Release audio resources. No callback fires after this returns."""
        if self._disposed:
            return
        self._disposed = True
        self._generation += 1
        self._release_graph()
        self._on_status_changed = None
        self._on_position_changed = None
        self._on_ended = None
        self._on_play_request = None
        self._owner_ended = None
        self._status = PlaybackStatus.IDLE
        logger.debug(f"Session disposed: {self._source_url}")
