"""Page-level transposition coordinator.

Owns the one semitone offset a song page works with. Every change is
pushed as a copy to the chord renderer (a transposed chart and/or text)
and to each attached playback session, which retunes without stopping.
Sessions whose play state is owned externally also share this
coordinator's play/pause/seek.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

from worship_chords.audio.controller import PlaybackSession, PlayStateOwner
from worship_chords.errors import InvalidKey
from worship_chords.logging_config import get_logger
from worship_chords.music.chart import ChordChart, transpose_chord_chart
from worship_chords.music.chord_text import transpose_text
from worship_chords.music.keys import (
    key_for_offset,
    key_to_chromatic_position,
    normalize_key,
    normalize_semitones,
    prefers_flats,
    semitone_distance,
)

logger = get_logger(__name__)

MAX_STEP = 6


@dataclass(frozen=True)
class TransposedView:
    """What the chord renderer shows for the current offset.

    Attributes:
        original_key: Key the song is written in
        target_key: Key being displayed
        semitones: Offset from the original key
        chart: Transposed structured chart, if the song has one
        lyrics_text: Transposed chord-over-lyrics text, if the song has it
    """

    original_key: str
    target_key: str
    semitones: int
    chart: Optional[ChordChart] = None
    lyrics_text: Optional[str] = None


class TransposeCoordinator:
    """Keeps chart display and audio pitch on the same semitone offset.

    Attributes:
        original_key: Key the song is written in
        chart: Untransposed structured chart
        lyrics_text: Untransposed chord-over-lyrics text
    """

    def __init__(
        self,
        original_key: str,
        chart: Optional[ChordChart] = None,
        lyrics_text: Optional[str] = None,
        renderer: Optional[Callable[[TransposedView], None]] = None,
    ):
        """Initialize the coordinator.

        Args:
            original_key: Key the song is written in
            chart: Structured chart to transpose
            lyrics_text: Chord-over-lyrics text to transpose
            renderer: Receives a TransposedView after every change
        """
        self.original_key = normalize_key(original_key or "")
        self.chart = chart
        self.lyrics_text = lyrics_text
        self.renderer = renderer

        self._semitones = 0
        self._target_key = self.original_key
        self._sessions: List[PlaybackSession] = []
        self._playing = False

    @property
    def semitones(self) -> int:
        return self._semitones

    @property
    def target_key(self) -> str:
        return self._target_key

    @property
    def sessions(self) -> List[PlaybackSession]:
        return list(self._sessions)

    @property
    def playing(self) -> bool:
        """Shared play state for externally owned sessions."""
        return self._playing

    # -- sessions --------------------------------------------------------

    def attach(self, session: PlaybackSession) -> PlaybackSession:
        """Attach a session and bring it to the current offset."""
        if session not in self._sessions:
            self._sessions.append(session)
        session.set_pitch_offset(self._semitones)
        if session.owner == PlayStateOwner.EXTERNAL:
            session.bind_owner(self.set_playing, self._on_session_ended)
        return session

    def detach(self, session: PlaybackSession) -> None:
        if session in self._sessions:
            self._sessions.remove(session)
            session.bind_owner(None, None)

    def _external_sessions(self) -> List[PlaybackSession]:
        return [s for s in self._sessions if s.owner == PlayStateOwner.EXTERNAL and not s.disposed]

    # -- transposition ---------------------------------------------------

    def set_target_key(self, key: str) -> TransposedView:
        """Transpose to a key chosen in the key picker.

        Unrecognized keys (or an unrecognized original key) fall back to no
        transposition.
        """
        steps = semitone_distance(self.original_key, key)
        if key_to_chromatic_position(key) is None or key_to_chromatic_position(self.original_key) is None:
            return self._apply(0, self.original_key)
        return self._apply(steps, normalize_key(key))

    def set_semitones(self, steps: int) -> TransposedView:
        """Transpose by an explicit semitone offset."""
        steps = normalize_semitones(steps)
        try:
            target = key_for_offset(self.original_key, steps)
        except InvalidKey as e:
            logger.warning(f"Cannot name target key: {e}")
            target = self.original_key
        return self._apply(steps, target)

    def step(self, delta: int) -> TransposedView:
        """Move the offset up or down by ``delta`` semitones.

        Stepping stops at the ends of the [-6, 6] range instead of wrapping
        around, so the audio never jumps by an octave.
        """
        return self.set_semitones(max(-MAX_STEP, min(MAX_STEP, self._semitones + delta)))

    def reset_key(self) -> TransposedView:
        return self._apply(0, self.original_key)

    def current_view(self) -> TransposedView:
        """Transposed content for the current offset."""
        flats = prefers_flats(self._target_key)
        chart = None
        if self.chart is not None:
            chart = transpose_chord_chart(self.chart, self._semitones, prefer_flats=flats)
        lyrics_text = None
        if self.lyrics_text is not None:
            lyrics_text = transpose_text(self.lyrics_text, self._semitones, prefer_flats=flats)
        return TransposedView(
            original_key=self.original_key,
            target_key=self._target_key,
            semitones=self._semitones,
            chart=chart,
            lyrics_text=lyrics_text,
        )

    def _apply(self, steps: int, target_key: str) -> TransposedView:
        self._semitones = steps
        self._target_key = target_key
        logger.info(f"Transpose {self.original_key} -> {target_key} ({steps:+d})")

        view = self.current_view()
        if self.renderer:
            self.renderer(view)
        for session in self._sessions:
            if not session.disposed:
                session.set_pitch_offset(steps)
        return view

    # -- shared transport ------------------------------------------------

    def set_playing(self, playing: bool) -> None:
        """Play or pause every externally owned session together."""
        self._playing = playing
        for session in self._external_sessions():
            if playing:
                session.play()
            else:
                session.pause()

    def play(self) -> None:
        self.set_playing(True)

    def pause(self) -> None:
        self.set_playing(False)

    def toggle(self) -> None:
        self.set_playing(not self._playing)

    def seek(self, seconds: float) -> None:
        """Seek every externally owned session to the same position."""
        for session in self._external_sessions():
            session.seek(seconds)

    def _on_session_ended(self) -> None:
        # One stem finishing under STOP ends the shared transport
        if self._playing:
            self.set_playing(False)

    def dispose(self) -> None:
        """Dispose every attached session."""
        for session in self._sessions:
            session.dispose()
        self._sessions.clear()
        self._playing = False
