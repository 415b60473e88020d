"""
Database operations for the playback system: watch positions and player
settings.

Uses SQLAlchemy ORM for database access. The public API uses dataclass models
from models.py. PositionStore wraps the position functions so that a failing
write surfaces as PersistenceError, which callers only log.
"""

import time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from playback.db_engine import get_engine, get_session
from playback.models import PlayerSettings, SavedPosition
from playback.orm_models import (
    Base,
    PlayerSettingsORM,
    PlayPositionORM,
    position_orm_to_dataclass,
    settings_orm_to_dataclass,
)
from util.errors import PersistenceError

DEFAULT_PROFILE = "default"


def init_db():
    """Initialize the database schema."""
    engine = get_engine()
    Base.metadata.create_all(engine)


def save_position(session_key: str, position: float, duration: float):
    """Insert or update the watch position stored under a key."""
    with get_session() as session:
        orm = session.get(PlayPositionORM, session_key)
        if orm is None:
            orm = PlayPositionORM(
                session_key=session_key,
                position=position,
                duration=duration or 0.0,
                saved_at=int(time.time()),
            )
            session.add(orm)
        else:
            orm.position = position
            orm.duration = duration or 0.0
            orm.saved_at = int(time.time())


def get_position(session_key: str) -> Optional[SavedPosition]:
    """Get the watch position stored under a key."""
    with get_session() as session:
        orm = session.get(PlayPositionORM, session_key)
        if orm is None:
            return None
        return position_orm_to_dataclass(orm)


def delete_position(session_key: str):
    """Forget the watch position stored under a key."""
    with get_session() as session:
        orm = session.get(PlayPositionORM, session_key)
        if orm is not None:
            session.delete(orm)


def get_player_settings(profile: str = DEFAULT_PROFILE) -> PlayerSettings:
    """Get the player settings of a profile, defaults if none are stored."""
    with get_session() as session:
        orm = session.get(PlayerSettingsORM, profile)
        if orm is None:
            return PlayerSettings()
        return settings_orm_to_dataclass(orm)


def save_player_settings(settings: PlayerSettings, profile: str = DEFAULT_PROFILE):
    """Insert or update the player settings of a profile."""
    with get_session() as session:
        orm = session.get(PlayerSettingsORM, profile)
        if orm is None:
            orm = PlayerSettingsORM(profile=profile)
            session.add(orm)
        orm.play_mode = settings.play_mode.value
        orm.auto_next = settings.auto_next
        orm.volume = settings.volume


class PositionStore:
    """The save/load interface the playback session consumes."""

    def save(self, session_key: str, position: float, duration: float) -> None:
        try:
            save_position(session_key, position, duration)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save position for {session_key}: {e}") from e

    def load(self, session_key: str) -> Optional[float]:
        try:
            saved = get_position(session_key)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load position for {session_key}: {e}") from e
        return saved.position if saved is not None else None


class SettingsStore:
    """Loads and saves the player settings of one profile."""

    def __init__(self, profile: str = DEFAULT_PROFILE):
        self.profile = profile

    def load(self) -> PlayerSettings:
        try:
            return get_player_settings(self.profile)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load settings for {self.profile}: {e}") from e

    def save(self, settings: PlayerSettings) -> None:
        try:
            save_player_settings(settings, self.profile)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not save settings for {self.profile}: {e}") from e
