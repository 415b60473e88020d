"""
SQLAlchemy ORM models for the content discovery system.

These models are internal to the database layer. The public interface
uses the dataclass models from models.py.
"""

from typing import Optional

from sqlalchemy import Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from discovery.constants import MAX_REASON_LENGTH
from discovery.models import NegativeRecord, SampleHistory, SampleOutcome


class Base(DeclarativeBase):
    pass


class NegativeRecordORM(Base):
    """SQLAlchemy model for invalid_content_ids table."""

    __tablename__ = "invalid_content_ids"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)
    content_id: Mapped[str] = mapped_column(String(100), nullable=False)
    reason: Mapped[str] = mapped_column(String(MAX_REASON_LENGTH), nullable=False, default="")
    created_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("source_id", "content_id", name="uq_invalid_source_content"),
        Index("idx_invalid_created_at", "created_at"),
    )


class SampleHistoryORM(Base):
    """SQLAlchemy model for sample_history table."""

    __tablename__ = "sample_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[int] = mapped_column(Integer, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False)
    cache_hits: Mapped[int] = mapped_column(Integer, default=0)
    outcome: Mapped[str] = mapped_column(Text, nullable=False)
    content_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sampled_at: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("idx_sample_history_source", "source_id"),
    )


def negative_record_orm_to_dataclass(orm: NegativeRecordORM) -> NegativeRecord:
    return NegativeRecord(
        id=orm.id,
        source_id=orm.source_id,
        candidate_id=orm.content_id,
        reason=orm.reason,
        recorded_at=orm.created_at,
    )


def sample_history_orm_to_dataclass(orm: SampleHistoryORM) -> SampleHistory:
    return SampleHistory(
        id=orm.id,
        source_id=orm.source_id,
        category=orm.category,
        attempts=orm.attempts,
        cache_hits=orm.cache_hits,
        outcome=SampleOutcome(orm.outcome),
        content_id=orm.content_id,
        sampled_at=orm.sampled_at,
    )
