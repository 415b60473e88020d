"""
Playback session state machine.

Owns the active PlaybackSession and moves it between states through an
explicit transition table. Every applied transition is logged and kept in
session.history. Media sink failures walk the fallback chain: next source
of the same episode, then the first source of the next episode, then
Exhausted.

Transitions are applied under a lock. Starting a url is split in two: the
transition picks the episode and source under the lock, then the resume
lookup and proxy resolution run outside it, and the url is handed to the
sink only if no later transition has superseded it in the meantime.

Emits:
    episodes_changed(episodes)
    session_state_changed(state, session)
    exhausted(session)
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from playback import playlist_parser
from playback.constants import POSITION_SAVE_INTERVAL_SECONDS, RESUME_THRESHOLD_SECONDS
from playback.events import EventEmitter
from playback.media import MediaRouter, UrlResolver
from playback.models import (
    PlaybackSession,
    PlayMode,
    SessionEvent,
    SessionState,
    Transition,
)
from util.errors import PlaybackMediaError
from util.logging_util import log_transition, setup_logger

logger = setup_logger(__name__)

ResumePrompt = Callable[[float], bool]

TRANSITIONS: Dict[Tuple[SessionState, SessionEvent], str] = {
    (SessionState.IDLE, SessionEvent.DISPLAY_CONTENT): "_on_display_content",
    (SessionState.PLAYING, SessionEvent.PLAYBACK_ERROR): "_on_playback_error",
    (SessionState.PAUSED, SessionEvent.PLAYBACK_ERROR): "_on_playback_error",
    (SessionState.FAILED, SessionEvent.PLAYBACK_ERROR): "_on_playback_error",
    (SessionState.PLAYING, SessionEvent.NATURAL_END): "_on_natural_end",
    (SessionState.PLAYING, SessionEvent.PAUSE): "_on_pause",
    (SessionState.PAUSED, SessionEvent.RESUME): "_on_resume",
    (SessionState.PLAYING, SessionEvent.TICK): "_on_tick",
}
# Explicit selection bypasses the fallback order from any state
for _state in SessionState:
    TRANSITIONS[(_state, SessionEvent.SELECT)] = "_on_select"


def should_offer_resume(saved_position: Optional[float]) -> bool:
    """A saved position is worth offering only past the resume threshold."""
    return saved_position is not None and saved_position > RESUME_THRESHOLD_SECONDS


def format_time(seconds: float) -> str:
    """Format a media time as H:MM:SS, or M:SS under an hour."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


@dataclass
class PendingStart:
    """A url picked by a transition but not yet handed to the sink."""
    generation: int
    position_key: str
    url: str
    play_mode: PlayMode


class PlaybackStateMachine(EventEmitter):
    """
    Drives one PlaybackSession at a time.

    Args:
        router: Media router wrapping the stream and direct sinks.
        position_store: Object with save(key, position, duration) and load(key).
        resolver: URL rewriting collaborator used in proxy mode.
        resume_prompt: Called with a saved position; True seeks to it.
        auto_next: Whether a naturally ended episode advances to the next one.
        play_mode: Mode applied to sessions handed to display_content.
    """

    def __init__(
        self,
        router: MediaRouter,
        position_store=None,
        resolver: Optional[UrlResolver] = None,
        resume_prompt: Optional[ResumePrompt] = None,
        auto_next: bool = True,
        play_mode: PlayMode = PlayMode.DIRECT,
    ):
        super().__init__()
        self.router = router
        self.position_store = position_store
        self.resolver = resolver
        self.resume_prompt = resume_prompt
        self.auto_next = auto_next
        self.play_mode = play_mode
        self.session: Optional[PlaybackSession] = None

        # Sink callbacks may arrive from a player thread
        self._lock = threading.RLock()
        self._generation = 0
        self._last_saved_bucket = 0
        self._pending_start: Optional[PendingStart] = None
        # Set while the sink is loading; nested starts are left to the outer loop
        self._loading = False

        router.on("error", self._on_sink_error)
        router.on("ended", self._on_sink_ended)
        router.on("time_update", self._on_sink_time_update)

    @property
    def state(self) -> SessionState:
        return self.session.state if self.session is not None else SessionState.IDLE

    # Commands

    def display_content(self, session: PlaybackSession, raw_playlist: str,
                        is_current: Optional[Callable[[], bool]] = None) -> Optional[PlaybackSession]:
        """
        Replace the active session and start playing the parsed playlist.

        Args:
            session: The fresh session to make active.
            raw_playlist: Delimited playlist string of the content.
            is_current: Checked under the lock before anything changes; when it
                returns False the active session is left alone.

        Returns:
            The session, or None if is_current rejected it.
        """
        with self._lock:
            if is_current is not None and not is_current():
                logger.info(f"Not displaying superseded content {session.content_id}")
                return None
            if self.session is not None:
                self._persist_position()
                self.router.stop()
            session.play_mode = self.play_mode
            self.session = session
            self._apply(SessionEvent.DISPLAY_CONTENT, raw_playlist=raw_playlist)
        self._run_pending_starts()
        return session

    def playback_error(self, error: Optional[Exception] = None) -> bool:
        return self._dispatch(SessionEvent.PLAYBACK_ERROR, error=error)

    def natural_end(self) -> bool:
        return self._dispatch(SessionEvent.NATURAL_END)

    def pause(self) -> bool:
        return self._dispatch(SessionEvent.PAUSE)

    def resume(self) -> bool:
        return self._dispatch(SessionEvent.RESUME)

    def time_update(self, position: float, duration: float = 0.0) -> bool:
        return self._dispatch(SessionEvent.TICK, position=position, duration=duration)

    def select(self, episode_index: int, source_index: int = 0) -> bool:
        return self._dispatch(SessionEvent.SELECT, episode_index=episode_index, source_index=source_index)

    def select_episode(self, episode_index: int) -> bool:
        return self.select(episode_index, 0)

    def select_source(self, source_index: int) -> bool:
        with self._lock:
            episode_index = self.session.episode_index if self.session is not None else 0
        return self.select(episode_index, source_index)

    def recover(self) -> bool:
        """Retry the current episode and source of a failed session."""
        with self._lock:
            if self.state != SessionState.FAILED:
                return False
            indices = (self.session.episode_index, self.session.source_index)
        return self.select(*indices)

    def seek(self, position: float):
        with self._lock:
            self.router.seek(position)
            if self.session is not None:
                self.session.position = position
                self._last_saved_bucket = self._bucket(position)

    def set_volume(self, volume: float) -> float:
        volume = max(0.0, min(1.0, volume))
        self.router.set_volume(volume)
        return volume

    def set_play_mode(self, mode: PlayMode):
        """Session-wide; applies from the next url that is started."""
        with self._lock:
            self.play_mode = mode
            if self.session is not None:
                self.session.play_mode = mode

    def stop(self):
        with self._lock:
            # Anything still resolving must not start playing afterwards
            self._generation += 1
            self._pending_start = None
            self._persist_position()
            self.router.stop()

    # Transition machinery

    def _dispatch(self, event: SessionEvent, **payload) -> bool:
        with self._lock:
            applied = self._apply(event, **payload)
        if applied:
            self._run_pending_starts()
        return applied

    def _apply(self, event: SessionEvent, **payload) -> bool:
        if self.session is None:
            logger.debug(f"No session, ignoring {event.value}")
            return False
        handler_name = TRANSITIONS.get((self.session.state, event))
        if handler_name is None:
            logger.debug(f"Ignoring {event.value} in state {self.session.state.value}")
            return False
        getattr(self, handler_name)(**payload)
        return True

    def _set_state(self, event: SessionEvent, new_state: SessionState):
        session = self.session
        old_state = session.state
        session.state = new_state
        session.updated_at = time.time()
        session.history.append(Transition(
            event=event,
            from_state=old_state,
            to_state=new_state,
            episode_index=session.episode_index,
            source_index=session.source_index,
            at=session.updated_at,
        ))
        log_transition(logger, event.value, old_state.value, new_state.value,
                       session.episode_index, session.source_index)
        self.emit("session_state_changed", new_state, session)

    def _on_display_content(self, raw_playlist: str):
        self._generation += 1
        self._pending_start = None
        self._set_state(SessionEvent.DISPLAY_CONTENT, SessionState.LOADING)
        self.session.episodes = tuple(playlist_parser.parse(raw_playlist))
        self.session.episode_index = 0
        self.session.source_index = 0
        self.emit("episodes_changed", self.session.episodes)

        if not self.session.episodes:
            logger.warning(f"No playable episodes in content {self.session.content_id}")
            self._exhaust(SessionEvent.DISPLAY_CONTENT)
            return
        self._start(0, 0, SessionEvent.DISPLAY_CONTENT)

    def _on_playback_error(self, error: Optional[Exception] = None):
        if error is not None:
            logger.warning(f"Playback error on ep={self.session.episode_index} "
                           f"src={self.session.source_index}: {error}")
        self._advance_after_error()

    def _on_natural_end(self):
        # A finished episode should not be offered for resume again
        self.session.position = 0.0
        self._persist_position()
        if self.auto_next:
            self._advance_episode(SessionEvent.NATURAL_END)
        else:
            self._exhaust(SessionEvent.NATURAL_END)

    def _on_pause(self):
        self.router.pause()
        self._set_state(SessionEvent.PAUSE, SessionState.PAUSED)
        self._persist_position()

    def _on_resume(self):
        self.router.play()
        self._set_state(SessionEvent.RESUME, SessionState.PLAYING)

    def _on_tick(self, position: float, duration: float = 0.0):
        self.session.position = position
        if duration:
            self.session.duration = duration
        bucket = self._bucket(position)
        if bucket != self._last_saved_bucket:
            self._last_saved_bucket = bucket
            self._persist_position()

    def _on_select(self, episode_index: int, source_index: int = 0):
        episodes = self.session.episodes
        if not 0 <= episode_index < len(episodes):
            raise IndexError(f"Episode {episode_index} out of range (0-{len(episodes) - 1})")
        if not 0 <= source_index < len(episodes[episode_index].sources):
            raise IndexError(f"Source {source_index} out of range for episode {episode_index}")

        if self.session.state in (SessionState.PLAYING, SessionState.PAUSED):
            self._persist_position()
        self._start(episode_index, source_index, SessionEvent.SELECT)

    # Fallback chain

    def _advance_after_error(self):
        session = self.session
        episode = session.current_episode
        if episode is not None and session.source_index + 1 < len(episode.sources):
            self._start(session.episode_index, session.source_index + 1, SessionEvent.PLAYBACK_ERROR)
            return
        self._advance_episode(SessionEvent.PLAYBACK_ERROR)

    def _advance_episode(self, event: SessionEvent):
        next_index = self.session.episode_index + 1
        if next_index < len(self.session.episodes):
            self._start(next_index, 0, event)
        else:
            self._exhaust(event)

    def _exhaust(self, event: SessionEvent):
        self._pending_start = None
        self.router.stop()
        self._set_state(event, SessionState.EXHAUSTED)
        logger.info(f"Session for content {self.session.content_id} exhausted")
        self.emit("exhausted", self.session)

    # Starting a url

    def _start(self, episode_index: int, source_index: int, event: SessionEvent):
        """Pick the url to play next. Called under the lock; loading happens later."""
        self._generation += 1

        session = self.session
        session.episode_index = episode_index
        session.source_index = source_index
        session.position = 0.0
        session.duration = 0.0
        # Late events from the previous url must not count against this one
        self.router.stop()
        self._set_state(event, SessionState.PLAYING)

        self._pending_start = PendingStart(
            generation=self._generation,
            position_key=session.position_key(),
            url=session.current_source.url,
            play_mode=session.play_mode,
        )

    def _run_pending_starts(self):
        """Resolve and load the url the latest transition picked, outside the lock."""
        while True:
            with self._lock:
                if self._loading or self._pending_start is None:
                    return
                start, self._pending_start = self._pending_start, None

            start_at = self._resume_position(start.position_key)
            url = self._resolve(start.url, start.play_mode)

            with self._lock:
                if start.generation != self._generation:
                    logger.debug(f"Dropping superseded start of {start.url}")
                    continue
                self._loading = True
                try:
                    self._load(start, url, start_at)
                finally:
                    self._loading = False

    def _load(self, start: PendingStart, url: str, start_at: float):
        try:
            self.router.load(url)
        except PlaybackMediaError as e:
            if start.generation == self._generation:
                logger.warning(f"Sink rejected {url}: {e}")
                self._advance_after_error()
            return
        except Exception as e:
            if start.generation == self._generation:
                logger.error(f"Media dispatch failed for {url}: {e}")
                self._set_state(SessionEvent.PLAYBACK_ERROR, SessionState.FAILED)
                self._advance_after_error()
            return

        # The sink may already have reported an error and moved us on
        if start.generation != self._generation:
            return

        session = self.session
        if start_at:
            self.router.seek(start_at)
            session.position = start_at
        self._last_saved_bucket = self._bucket(start_at)
        if session.state == SessionState.PAUSED:
            self.router.pause()

    def _resolve(self, url: str, play_mode: PlayMode) -> str:
        if play_mode != PlayMode.PROXY:
            return url
        if self.resolver is None:
            logger.warning("Proxy mode without a resolver, playing directly")
            return url
        try:
            return self.resolver.resolve(url)
        except Exception as e:
            logger.warning(f"Proxy resolution failed, falling back to direct: {e}")
            return url

    def _resume_position(self, key: str) -> float:
        if self.position_store is None:
            return 0.0
        try:
            saved = self.position_store.load(key)
        except Exception as e:
            logger.warning(f"Could not load position for {key}: {e}")
            return 0.0

        if not should_offer_resume(saved):
            return 0.0
        if self.resume_prompt is not None and self.resume_prompt(saved):
            logger.info(f"Resuming {key} at {format_time(saved)}")
            return saved
        return 0.0

    def _persist_position(self):
        session = self.session
        if self.position_store is None or session is None or session.current_episode is None:
            return
        key = session.position_key()
        try:
            self.position_store.save(key, session.position, session.duration)
        except Exception as e:
            logger.warning(f"Could not save position for {key}: {e}")

    @staticmethod
    def _bucket(position: float) -> int:
        return int(position // POSITION_SAVE_INTERVAL_SECONDS)

    # Sink callbacks

    def _on_sink_error(self, error: Optional[Exception] = None):
        self.playback_error(error)

    def _on_sink_ended(self):
        self.natural_end()

    def _on_sink_time_update(self, position: float, duration: float = 0.0):
        self.time_update(position, duration)
