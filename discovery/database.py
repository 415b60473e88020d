"""
Database operations for the content discovery system.

Holds the negative-result cache (candidate ids known to be dead for a
source) and the per-call sampling history. Uses SQLAlchemy ORM; the public
API uses dataclass models from models.py.
"""

import time
from typing import List, Optional

from sqlalchemy import delete, exists, func, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from discovery.constants import MAX_REASON_LENGTH
from discovery.db_engine import get_engine, get_session
from discovery.models import NegativeRecord, SampleHistory, SampleOutcome
from discovery.orm_models import (
    Base,
    NegativeRecordORM,
    SampleHistoryORM,
    negative_record_orm_to_dataclass,
    sample_history_orm_to_dataclass,
)


def init_db():
    """Initialize the database schema."""
    engine = get_engine()
    Base.metadata.create_all(engine)


def has_negative_result(source_id: int, candidate_id: str) -> bool:
    """Check if a candidate is already known to be invalid for a source."""
    with get_session() as session:
        stmt = select(
            exists().where(
                NegativeRecordORM.source_id == source_id,
                NegativeRecordORM.content_id == str(candidate_id),
            )
        )
        return session.execute(stmt).scalar()


def record_negative_result(source_id: int, candidate_id: str, reason: str = "") -> bool:
    """Remember that a candidate is invalid for a source.

    Equivalent to INSERT OR IGNORE: recording the same pair again, even from
    a concurrent writer, is a no-op. Returns True if a new row was stored.
    """
    stmt = (
        sqlite_insert(NegativeRecordORM)
        .values(
            source_id=source_id,
            content_id=str(candidate_id),
            reason=(reason or "")[:MAX_REASON_LENGTH],
            created_at=int(time.time()),
        )
        .on_conflict_do_nothing(index_elements=["source_id", "content_id"])
    )
    with get_session() as session:
        result = session.execute(stmt)
        return result.rowcount > 0


def get_negative_results(source_id: int) -> List[NegativeRecord]:
    """Get every negative record for a source, oldest first."""
    with get_session() as session:
        stmt = (
            select(NegativeRecordORM)
            .where(NegativeRecordORM.source_id == source_id)
            .order_by(NegativeRecordORM.created_at.asc(), NegativeRecordORM.id.asc())
        )
        orms = session.execute(stmt).scalars().all()
        return [negative_record_orm_to_dataclass(orm) for orm in orms]


def count_negative_results(source_id: int) -> int:
    """Count the negative records for a source."""
    with get_session() as session:
        stmt = select(func.count()).select_from(NegativeRecordORM).where(
            NegativeRecordORM.source_id == source_id
        )
        return session.execute(stmt).scalar_one()


def clear_negative_results(source_id: int, older_than: Optional[int] = None) -> int:
    """Administrative clear of a source's negative records.

    Only records created before `older_than` (epoch seconds) are removed when
    it is given. The sampler never calls this. Returns the number removed.
    """
    stmt = delete(NegativeRecordORM).where(NegativeRecordORM.source_id == source_id)
    if older_than is not None:
        stmt = stmt.where(NegativeRecordORM.created_at < older_than)
    with get_session() as session:
        result = session.execute(stmt)
        return result.rowcount


def insert_sample_history(history: SampleHistory) -> int:
    """Store the bookkeeping of one sampling call.

    Returns the history id.
    """
    orm = SampleHistoryORM(
        source_id=history.source_id,
        category=history.category,
        attempts=history.attempts,
        cache_hits=history.cache_hits,
        outcome=history.outcome.value,
        content_id=history.content_id,
        sampled_at=history.sampled_at or int(time.time()),
    )
    with get_session() as session:
        session.add(orm)
        session.flush()
        return orm.id


def get_recent_sample_history(source_id: int, limit: int = 20) -> List[SampleHistory]:
    """Get the most recent sampling calls for a source."""
    with get_session() as session:
        stmt = (
            select(SampleHistoryORM)
            .where(SampleHistoryORM.source_id == source_id)
            .order_by(SampleHistoryORM.sampled_at.desc(), SampleHistoryORM.id.desc())
            .limit(limit)
        )
        orms = session.execute(stmt).scalars().all()
        return [sample_history_orm_to_dataclass(orm) for orm in orms]


def count_sample_outcomes(source_id: int, outcome: SampleOutcome) -> int:
    """Count sampling calls for a source that ended with the given outcome."""
    with get_session() as session:
        stmt = select(func.count()).select_from(SampleHistoryORM).where(
            SampleHistoryORM.source_id == source_id,
            SampleHistoryORM.outcome == outcome.value,
        )
        return session.execute(stmt).scalar_one()


class NegativeResultStore:
    """The has/record interface the sampler consumes, backed by this module."""

    def has(self, source_id: int, candidate_id: str) -> bool:
        return has_negative_result(source_id, candidate_id)

    def record(self, source_id: int, candidate_id: str, reason: str = "") -> None:
        record_negative_result(source_id, candidate_id, reason)
