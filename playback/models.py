"""
Data models for the playback system.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from playback.constants import DEFAULT_VOLUME


class PlayMode(Enum):
    DIRECT = "direct"
    PROXY = "proxy"


class MediaType(Enum):
    HLS = "hls"
    DIRECT = "direct"


class SessionState(Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    FAILED = "failed"
    EXHAUSTED = "exhausted"


class SessionEvent(Enum):
    DISPLAY_CONTENT = "display_content"
    PLAYBACK_ERROR = "playback_error"
    NATURAL_END = "natural_end"
    PAUSE = "pause"
    RESUME = "resume"
    SELECT = "select"
    TICK = "tick"


@dataclass(frozen=True)
class PlaySource:
    """One delivery line for an episode."""
    label: str
    url: str


@dataclass(frozen=True)
class Episode:
    """One playable unit with one or more alternate sources."""
    index: int
    title: str
    sources: Tuple[PlaySource, ...]


@dataclass
class Transition:
    """A state transition applied to a session."""
    event: SessionEvent
    from_state: SessionState
    to_state: SessionState
    episode_index: int
    source_index: int
    at: float


@dataclass
class PlaybackSession:
    """The one active playback session of a client."""
    source_id: int
    content_id: str
    title: str
    episodes: Tuple[Episode, ...] = ()
    episode_index: int = 0
    source_index: int = 0
    play_mode: PlayMode = PlayMode.DIRECT
    position: float = 0.0
    duration: float = 0.0
    state: SessionState = SessionState.IDLE
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
    history: List[Transition] = field(default_factory=list)

    @property
    def current_episode(self) -> Optional[Episode]:
        if 0 <= self.episode_index < len(self.episodes):
            return self.episodes[self.episode_index]
        return None

    @property
    def current_source(self) -> Optional[PlaySource]:
        episode = self.current_episode
        if episode is None or not 0 <= self.source_index < len(episode.sources):
            return None
        return episode.sources[self.source_index]

    def position_key(self, episode_index: Optional[int] = None) -> str:
        """Key under which the watch position of an episode is stored."""
        if episode_index is None:
            episode_index = self.episode_index
        return f"play_position_{self.source_id}_{self.content_id}_{episode_index}"


@dataclass
class SavedPosition:
    """A persisted watch position."""
    session_key: str
    position: float
    duration: float
    saved_at: int = 0


@dataclass
class PlayerSettings:
    """Client player preferences."""
    play_mode: PlayMode = PlayMode.DIRECT
    auto_next: bool = True
    volume: float = DEFAULT_VOLUME
