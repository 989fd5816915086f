"""Practice player.

Plays a local audio file with live transposition. The displayed chord
chart and the audio pitch move together through a TransposeCoordinator.
"""

from typing import Optional

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Footer, Header, Label, ProgressBar, Static

from worship_chords.audio.controller import (
    EndPolicy,
    PlaybackPosition,
    PlaybackSession,
    PlaybackStatus,
)
from worship_chords.audio.coordinator import TransposeCoordinator, TransposedView
from worship_chords.audio.engine import AudioContextProvider
from worship_chords.audio.miniaudio_engine import MiniaudioContext
from worship_chords.errors import DecodeFailure
from worship_chords.logging_config import get_logger

logger = get_logger(__name__)

SEEK_STEP_SECONDS = 5.0


def format_time(seconds: float) -> str:
    """Format seconds as m:ss."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


class PracticeApp(App):
    """Single-track practice player with a transposing chord display."""

    CSS_PATH = "practice.tcss"
    TITLE = "Worship Chords"
    SUB_TITLE = "Practice"

    BINDINGS = [
        ("space", "toggle_playback", "Play/Pause"),
        ("left", "seek_back", "-5s"),
        ("right", "seek_forward", "+5s"),
        ("plus", "transpose_up", "Key +1"),
        ("minus", "transpose_down", "Key -1"),
        ("r", "reset", "Reset"),
        ("l", "toggle_loop", "Loop"),
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        source: str,
        original_key: str,
        lyrics_text: Optional[str] = None,
        sample_rate: int = 44100,
        buffer_ms: int = 200,
        volume: float = 0.8,
        loop: bool = False,
        *args,
        **kwargs,
    ):
        """Initialize the player.

        Args:
            source: Path or URL of the audio to practice with
            original_key: Key the chart is written in
            lyrics_text: Chord-over-lyrics text to display
            sample_rate: Output device sample rate
            buffer_ms: Output device buffer size
            volume: Playback volume
            loop: Start with the LOOP end policy
        """
        super().__init__(*args, **kwargs)
        self.source = source
        self.provider = AudioContextProvider(
            lambda: MiniaudioContext(sample_rate=sample_rate, buffer_ms=buffer_ms)
        )
        self.session = PlaybackSession(
            self.provider,
            end_policy=EndPolicy.LOOP if loop else EndPolicy.STOP,
            volume=volume,
        )
        self.coordinator = TransposeCoordinator(
            original_key,
            lyrics_text=lyrics_text,
            renderer=self._render_view,
        )

    def compose(self) -> ComposeResult:
        """Compose the screen layout."""
        yield Header()

        with Vertical(id="info"):
            yield Label(self.source, id="title")
            yield Label("", id="key_label")
            yield Label("Loading...", id="status_label")

        with Horizontal(id="transport"):
            yield ProgressBar(id="progress_bar", total=100, show_eta=False)
            yield Label("0:00 / 0:00", id="position_label")

        with VerticalScroll(id="chart_scroll"):
            yield Static("", id="chart", markup=False)

        yield Footer()

    async def on_mount(self) -> None:
        """Wire callbacks, show the chart and load the audio."""
        self.session.set_callbacks(
            on_status_changed=self._on_status_changed,
            on_position_changed=self._on_position_changed,
        )
        self.coordinator.attach(self.session)
        self._render_view(self.coordinator.current_view())

        try:
            await self.session.load(self.source)
        except DecodeFailure as e:
            self.notify(str(e), severity="error", timeout=10)

    def on_unmount(self) -> None:
        self.coordinator.dispose()
        self.provider.close()

    # -- rendering -------------------------------------------------------

    def _render_view(self, view: TransposedView) -> None:
        self.query_one("#key_label", Label).update(
            f"Key: [bold]{view.target_key}[/bold] ({view.semitones:+d} from {view.original_key})"
        )
        self.query_one("#chart", Static).update(view.lyrics_text or "(no chart)")

    def _on_status_changed(self, status: PlaybackStatus) -> None:
        policy = "loop" if self.session.end_policy == EndPolicy.LOOP else "stop at end"
        self.query_one("#status_label", Label).update(f"{status.name.title()} - {policy}")

    def _on_position_changed(self, position: PlaybackPosition) -> None:
        self.query_one("#progress_bar", ProgressBar).update(progress=position.progress_percent)
        self.query_one("#position_label", Label).update(
            f"{format_time(position.current_seconds)} / {format_time(position.total_seconds)}"
        )

    # -- actions ---------------------------------------------------------

    def action_toggle_playback(self) -> None:
        self.session.toggle()

    def action_seek_back(self) -> None:
        self.session.seek(self.session.position_seconds - SEEK_STEP_SECONDS)

    def action_seek_forward(self) -> None:
        self.session.seek(self.session.position_seconds + SEEK_STEP_SECONDS)

    def action_transpose_up(self) -> None:
        self.coordinator.step(1)

    def action_transpose_down(self) -> None:
        self.coordinator.step(-1)

    def action_reset(self) -> None:
        """Rewind to the start and return to the written key."""
        self.session.reset()
        self.coordinator.reset_key()

    def action_toggle_loop(self) -> None:
        if self.session.end_policy == EndPolicy.LOOP:
            self.session.end_policy = EndPolicy.STOP
        else:
            self.session.end_policy = EndPolicy.LOOP
        self._on_status_changed(self.session.status)
        self.notify(f"End policy: {self.session.end_policy.name.lower()}")

