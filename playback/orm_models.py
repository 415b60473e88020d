"""
SQLAlchemy ORM models for the playback system.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

from sqlalchemy import Boolean, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from playback.models import PlayerSettings, PlayMode, SavedPosition


class Base(DeclarativeBase):
    pass


class PlayPositionORM(Base):
    """SQLAlchemy model for play_positions table."""

    __tablename__ = "play_positions"

    session_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    position: Mapped[float] = mapped_column(Float, nullable=False)
    duration: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    saved_at: Mapped[int] = mapped_column(Integer, nullable=False)


class PlayerSettingsORM(Base):
    """SQLAlchemy model for player_settings table.

    One row per client profile; the default profile is "default".
    """

    __tablename__ = "player_settings"

    profile: Mapped[str] = mapped_column(Text, primary_key=True)
    play_mode: Mapped[str] = mapped_column(Text, nullable=False)
    auto_next: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    volume: Mapped[float] = mapped_column(Float, nullable=False)


def position_orm_to_dataclass(orm: PlayPositionORM) -> SavedPosition:
    return SavedPosition(
        session_key=orm.session_key,
        position=orm.position,
        duration=orm.duration,
        saved_at=orm.saved_at,
    )


def settings_orm_to_dataclass(orm: PlayerSettingsORM) -> PlayerSettings:
    return PlayerSettings(
        play_mode=PlayMode(orm.play_mode),
        auto_next=bool(orm.auto_next),
        volume=orm.volume,
    )
