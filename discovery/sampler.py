"""
Random candidate sampler.

Draws candidate ids uniformly from the id range an upstream index claims to
have, skips ids already known to be dead, and returns the first record that
validates. Every rejected candidate is remembered in the negative-result
cache so it is never fetched again for that source.
"""

import random
import time
from typing import Callable, Optional

from discovery.constants import (
    DEFAULT_TOTAL_HINT,
    MAX_SAMPLE_ATTEMPTS,
    REASON_INCOMPLETE,
    REASON_INVALID,
    REASON_NOT_FOUND,
    REASON_UNAVAILABLE,
    SAMPLE_ID_CEILING,
)
from discovery.database import NegativeResultStore, insert_sample_history
from discovery.models import (
    ContentSource,
    RawContentRecord,
    SampleHistory,
    SampleOutcome,
    raw_record_from_upstream,
)
from discovery.sources import get_source
from discovery.upstream import UpstreamClient
from util.errors import (
    ContentExhausted,
    UnknownSourceError,
    UpstreamInvalid,
    UpstreamUnavailable,
)
from util.logging_util import log_sample_attempt, setup_logger

logger = setup_logger(__name__)


class CandidateRejected(Exception):
    """A fetched candidate failed validation. Internal to the sampler."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class RandomSampler:
    """Produces one validated RawContentRecord per call, or raises ContentExhausted."""

    def __init__(
        self,
        client: Optional[UpstreamClient] = None,
        store: Optional[NegativeResultStore] = None,
        rng: Optional[random.Random] = None,
        max_attempts: int = MAX_SAMPLE_ATTEMPTS,
        id_ceiling: int = SAMPLE_ID_CEILING,
        history_recorder: Optional[Callable[[SampleHistory], object]] = insert_sample_history,
    ):
        self.client = client or UpstreamClient()
        self.store = store or NegativeResultStore()
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts
        self.id_ceiling = id_ceiling
        self.history_recorder = history_recorder

    def _total_hint(self, source: ContentSource, category: Optional[str]) -> int:
        """Upper bound for candidate ids. Never trusted beyond that."""
        try:
            listing = self.client.list_items(source.api_url, page=1, limit=1, category=category)
        except (UpstreamUnavailable, UpstreamInvalid) as e:
            logger.warning(f"No total hint from source {source.id}, using default: {e}")
            return DEFAULT_TOTAL_HINT

        if listing.total is None or listing.total < 1:
            logger.warning(f"Implausible total {listing.total!r} from source {source.id}, using default")
            return DEFAULT_TOTAL_HINT
        return listing.total

    def _is_cached(self, source_id: int, candidate_id: str) -> bool:
        try:
            return self.store.has(source_id, candidate_id)
        except Exception as e:
            logger.error(f"Negative cache lookup failed for {source_id}/{candidate_id}: {e}")
            return False

    def _remember(self, source_id: int, candidate_id: str, reason: str):
        try:
            self.store.record(source_id, candidate_id, reason)
        except Exception as e:
            logger.error(f"Could not record negative result {source_id}/{candidate_id}: {e}")

    def _fetch_valid(self, source: ContentSource, candidate_id: str) -> RawContentRecord:
        try:
            response = self.client.get_by_id(source.api_url, candidate_id)
        except UpstreamUnavailable as e:
            raise CandidateRejected(f"{REASON_UNAVAILABLE}: {e}") from e
        except UpstreamInvalid as e:
            raise CandidateRejected(f"{REASON_INVALID}: {e}") from e

        if response.item is None:
            raise CandidateRejected(REASON_NOT_FOUND)

        record = raw_record_from_upstream(response.item, source_id=source.id)
        if not record.title or not record.play_url:
            raise CandidateRejected(REASON_INCOMPLETE)
        if not record.content_id:
            record.content_id = candidate_id
        return record

    def _record_history(self, history: SampleHistory):
        if self.history_recorder is None:
            return
        try:
            self.history_recorder(history)
        except Exception as e:
            logger.error(f"Could not store sample history for source {history.source_id}: {e}")

    def sample(self, source: ContentSource, category: Optional[str] = None) -> RawContentRecord:
        """
        Sample one valid record from a source.

        Args:
            source: The content source to sample from.
            category: Optional upstream category filter.

        Returns:
            The first candidate record that validates.

        Raises:
            ContentExhausted: if no candidate validated within the attempt bound.
        """
        total = self._total_hint(source, category)
        upper = max(1, min(total, self.id_ceiling))
        cache_hits = 0

        for attempt in range(1, self.max_attempts + 1):
            candidate_id = str(self.rng.randint(1, upper))

            if self._is_cached(source.id, candidate_id):
                cache_hits += 1
                log_sample_attempt(logger, source.id, attempt, candidate_id, "cached")
                continue

            try:
                record = self._fetch_valid(source, candidate_id)
            except CandidateRejected as e:
                log_sample_attempt(logger, source.id, attempt, candidate_id, e.reason)
                self._remember(source.id, candidate_id, e.reason)
                continue

            log_sample_attempt(logger, source.id, attempt, candidate_id, "ok")
            logger.info(f"Sampled '{record.title}' from source {source.id} after {attempt} attempt(s)")
            self._record_history(SampleHistory(
                source_id=source.id,
                category=category,
                attempts=attempt,
                cache_hits=cache_hits,
                outcome=SampleOutcome.FOUND,
                content_id=record.content_id,
                sampled_at=int(time.time()),
            ))
            return record

        logger.warning(f"Source {source.id} exhausted after {self.max_attempts} attempts ({cache_hits} cached)")
        self._record_history(SampleHistory(
            source_id=source.id,
            category=category,
            attempts=self.max_attempts,
            cache_hits=cache_hits,
            outcome=SampleOutcome.EXHAUSTED,
            sampled_at=int(time.time()),
        ))
        raise ContentExhausted(source.id, self.max_attempts)

    def sample_source_by_id(self, source_id: int, category: Optional[str] = None) -> RawContentRecord:
        """Resolve an active configured source, then sample it."""
        source = get_source(source_id)
        if source is None:
            raise UnknownSourceError(source_id)
        return self.sample(source, category)
