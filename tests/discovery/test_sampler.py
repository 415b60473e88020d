"""Tests for the random candidate sampler."""

import random
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy import create_engine

from discovery import db_engine
from discovery.constants import DEFAULT_TOTAL_HINT, MAX_SAMPLE_ATTEMPTS, SAMPLE_ID_CEILING
from discovery.models import ContentSource, SampleOutcome, SourceType, UpstreamItem, UpstreamListing
from discovery.orm_models import Base
from discovery.sampler import RandomSampler
from util.errors import (
    ContentExhausted,
    ExhaustedError,
    UnknownSourceError,
    UpstreamInvalid,
    UpstreamUnavailable,
)


class FakeStore:
    """In-memory negative result store."""

    def __init__(self, known=None):
        self.records = dict(known or {})
        self.has_calls = 0

    def has(self, source_id, candidate_id):
        self.has_calls += 1
        return (source_id, candidate_id) in self.records

    def record(self, source_id, candidate_id, reason=""):
        self.records.setdefault((source_id, candidate_id), reason)


def _item(vod_id, name="A Title", play_url="EP1$https://cdn.example.com/1.m3u8"):
    return {"vod_id": vod_id, "vod_name": name, "vod_play_url": play_url, "type_name": "Drama"}


def _rng(*values):
    rng = MagicMock()
    rng.randint.side_effect = list(values)
    return rng


@pytest.fixture
def source():
    return ContentSource(id=1, name="Test", type=SourceType.VIDEO, api_url="https://example.com/?ac=detail")


@pytest.fixture
def client():
    client = MagicMock()
    client.list_items.return_value = UpstreamListing(status=1, total=50, items=[])
    return client


@pytest.fixture
def temp_db():
    """Create a temporary in-memory database for testing."""
    test_engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(test_engine)
    db_engine.set_engine(test_engine)
    yield test_engine
    db_engine.reset_engine()


class TestSampleSuccess:
    def test_first_valid_record_wins(self, source, client):
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(7))
        sampler = RandomSampler(client=client, store=FakeStore(), rng=_rng(7), history_recorder=None)

        record = sampler.sample(source)

        assert record.content_id == "7"
        assert record.title == "A Title"
        assert record.category == "Drama"
        assert record.source_id == 1
        client.get_by_id.assert_called_once_with(source.api_url, "7")

    def test_draws_within_total(self, source, client):
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(3))
        rng = _rng(3)
        sampler = RandomSampler(client=client, store=FakeStore(), rng=rng, history_recorder=None)

        sampler.sample(source, category="4")

        rng.randint.assert_called_with(1, 50)
        client.list_items.assert_called_once_with(source.api_url, page=1, limit=1, category="4")

    def test_total_capped_at_ceiling(self, source, client):
        client.list_items.return_value = UpstreamListing(status=1, total=5_000_000)
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(3))
        rng = _rng(3)
        sampler = RandomSampler(client=client, store=FakeStore(), rng=rng, history_recorder=None)

        sampler.sample(source)

        rng.randint.assert_called_with(1, SAMPLE_ID_CEILING)

    @pytest.mark.parametrize("failure", [
        UpstreamUnavailable("down"),
        UpstreamInvalid("garbage"),
    ])
    def test_default_total_when_hint_unavailable(self, source, client, failure):
        client.list_items.side_effect = failure
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(3))
        rng = _rng(3)
        sampler = RandomSampler(client=client, store=FakeStore(), rng=rng, history_recorder=None)

        sampler.sample(source)

        rng.randint.assert_called_with(1, min(DEFAULT_TOTAL_HINT, SAMPLE_ID_CEILING))

    @pytest.mark.parametrize("total", [None, 0, -5])
    def test_default_total_when_hint_implausible(self, source, client, total):
        client.list_items.return_value = UpstreamListing(status=1, total=total)
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(3))
        rng = _rng(3)
        sampler = RandomSampler(client=client, store=FakeStore(), rng=rng, history_recorder=None)

        sampler.sample(source)

        rng.randint.assert_called_with(1, min(DEFAULT_TOTAL_HINT, SAMPLE_ID_CEILING))

    def test_missing_vod_id_uses_candidate(self, source, client):
        item = _item(None)
        client.get_by_id.return_value = UpstreamItem(status=1, item=item)
        sampler = RandomSampler(client=client, store=FakeStore(), rng=_rng(12), history_recorder=None)

        assert sampler.sample(source).content_id == "12"


class TestSampleRejections:
    def test_incomplete_records_are_skipped_and_remembered(self, source, client):
        client.get_by_id.side_effect = [
            UpstreamItem(status=1, item=_item(1, name="")),
            UpstreamItem(status=1, item=_item(2, play_url="   ")),
            UpstreamItem(status=1, item=_item(3)),
        ]
        store = FakeStore()
        sampler = RandomSampler(client=client, store=store, rng=_rng(1, 2, 3), history_recorder=None)

        record = sampler.sample(source)

        assert record.content_id == "3"
        assert record.title and record.play_url
        assert store.records[(1, "1")] == "incomplete"
        assert store.records[(1, "2")] == "incomplete"
        assert (1, "3") not in store.records

    def test_not_found_is_remembered(self, source, client):
        client.get_by_id.side_effect = [
            UpstreamItem(status=1, item=None),
            UpstreamItem(status=1, item=_item(2)),
        ]
        store = FakeStore()
        sampler = RandomSampler(client=client, store=store, rng=_rng(1, 2), history_recorder=None)

        sampler.sample(source)

        assert store.records[(1, "1")] == "not found"

    def test_network_and_payload_failures_are_remembered(self, source, client):
        client.get_by_id.side_effect = [
            UpstreamUnavailable("timeout"),
            UpstreamInvalid("code 0"),
            UpstreamItem(status=1, item=_item(3)),
        ]
        store = FakeStore()
        sampler = RandomSampler(client=client, store=store, rng=_rng(1, 2, 3), history_recorder=None)

        record = sampler.sample(source)

        assert record.content_id == "3"
        assert store.records[(1, "1")].startswith("unavailable")
        assert store.records[(1, "2")].startswith("invalid")

    def test_failing_store_does_not_abort(self, source, client):
        client.get_by_id.side_effect = [
            UpstreamItem(status=1, item=None),
            UpstreamItem(status=1, item=_item(2)),
        ]
        store = MagicMock()
        store.has.return_value = False
        store.record.side_effect = RuntimeError("disk full")
        sampler = RandomSampler(client=client, store=store, rng=_rng(1, 2), history_recorder=None)

        assert sampler.sample(source).content_id == "2"

    def test_never_returns_empty_fields(self, source, client):
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(1, name="", play_url=""))
        sampler = RandomSampler(client=client, store=FakeStore(), rng=random.Random(0), history_recorder=None)

        with pytest.raises(ContentExhausted):
            sampler.sample(source)


class TestSampleExhaustion:
    def test_fully_cached_range_makes_no_fetches(self, source, client):
        """Every id cached: exactly N attempts and zero by-id calls."""
        client.list_items.return_value = UpstreamListing(status=1, total=5)
        store = FakeStore({(1, str(i)): "not found" for i in range(1, 6)})
        sampler = RandomSampler(client=client, store=store, rng=random.Random(42), history_recorder=None)

        with pytest.raises(ExhaustedError) as exc_info:
            sampler.sample(source)

        assert exc_info.value.attempts == MAX_SAMPLE_ATTEMPTS
        assert store.has_calls == MAX_SAMPLE_ATTEMPTS
        client.get_by_id.assert_not_called()

    def test_custom_attempt_bound(self, source, client):
        client.get_by_id.return_value = UpstreamItem(status=1, item=None)
        sampler = RandomSampler(client=client, store=FakeStore(), rng=random.Random(1),
                                max_attempts=3, history_recorder=None)

        with pytest.raises(ContentExhausted) as exc_info:
            sampler.sample(source)

        assert exc_info.value.source_id == 1
        assert exc_info.value.attempts == 3
        assert client.get_by_id.call_count <= 3


class TestSampleHistoryRecording:
    def test_records_found(self, source, client):
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(9))
        recorder = MagicMock()
        sampler = RandomSampler(client=client, store=FakeStore({(1, "4"): ""}), rng=_rng(4, 9),
                                history_recorder=recorder)

        sampler.sample(source)

        history = recorder.call_args[0][0]
        assert history.outcome == SampleOutcome.FOUND
        assert history.attempts == 2
        assert history.cache_hits == 1
        assert history.content_id == "9"

    def test_records_exhausted(self, source, client):
        client.get_by_id.return_value = UpstreamItem(status=1, item=None)
        recorder = MagicMock()
        sampler = RandomSampler(client=client, store=FakeStore(), rng=random.Random(3),
                                max_attempts=2, history_recorder=recorder)

        with pytest.raises(ContentExhausted):
            sampler.sample(source)

        assert recorder.call_args[0][0].outcome == SampleOutcome.EXHAUSTED

    def test_history_failure_is_ignored(self, source, client):
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(9))
        recorder = MagicMock(side_effect=RuntimeError("db locked"))
        sampler = RandomSampler(client=client, store=FakeStore(), rng=_rng(9), history_recorder=recorder)

        assert sampler.sample(source).content_id == "9"


class TestSamplerWithDatabase:
    def test_dead_ids_are_not_fetched_again(self, temp_db, source, client):
        from discovery.database import NegativeResultStore, count_negative_results, get_recent_sample_history

        client.list_items.return_value = UpstreamListing(status=1, total=1)
        client.get_by_id.return_value = UpstreamItem(status=1, item=None)
        sampler = RandomSampler(client=client, store=NegativeResultStore(), rng=random.Random(0))

        with pytest.raises(ContentExhausted):
            sampler.sample(source)

        # Only id 1 exists in the range: fetched once, then served from the cache
        assert client.get_by_id.call_count == 1
        assert count_negative_results(1) == 1
        assert get_recent_sample_history(1)[0].cache_hits == MAX_SAMPLE_ATTEMPTS - 1


class TestSampleSourceById:
    def test_unknown_source(self, client):
        sampler = RandomSampler(client=client, store=FakeStore(), history_recorder=None)

        with patch("discovery.sampler.get_source", return_value=None):
            with pytest.raises(UnknownSourceError):
                sampler.sample_source_by_id(99)

    def test_resolves_and_samples(self, source, client):
        client.get_by_id.return_value = UpstreamItem(status=1, item=_item(5))
        sampler = RandomSampler(client=client, store=FakeStore(), rng=_rng(5), history_recorder=None)

        with patch("discovery.sampler.get_source", return_value=source) as mock_get:
            record = sampler.sample_source_by_id(1, "2")

        mock_get.assert_called_once_with(1)
        assert record.content_id == "5"
