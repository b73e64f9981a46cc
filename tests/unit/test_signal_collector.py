"""
Unit tests for the session-scoped signal collector and its key store.
"""

import asyncio
import json
from datetime import date, timedelta

import pytest

from src.collector.key_store import KeyStore
from src.collector.signal_collector import SignalCollector
from src.collector.transport import SignalTransport
from src.utils.constants import CollectorConstants
from src.utils.models import SignalType

VIEW_DATE = "2025-03-14"

ARTICLE = {
    "number": 3,
    "title": "Chip export rules tighten",
    "url": "https://example.com/chips",
    "category": "ai",
    "source": "Reuters",
}


class FakeTransport(SignalTransport):
    """Records payloads; ``post`` blocks until ``release`` is set."""

    def __init__(self, block=False):
        self.beacons = []
        self.posts = []
        self.completed = []
        self.release = asyncio.Event() if block else None

    def send_beacon(self, payload):
        self.beacons.append(payload)
        return True

    async def post(self, payload):
        self.posts.append(payload)
        if self.release is not None:
            await self.release.wait()
        self.completed.append(payload)


@pytest.fixture
def key_store(tmp_path):
    return KeyStore(str(tmp_path / "storage.json"))


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def collector(key_store, transport):
    return SignalCollector(key_store, transport, viewing_date=VIEW_DATE)


class TestKeyStore:
    def test_values_persist_across_instances(self, tmp_path):
        path = str(tmp_path / "storage.json")
        KeyStore(path).save_set("k", {"b", "a"})

        assert KeyStore(path).load_set("k") == {"a", "b"}
        assert KeyStore(path).get_item("k") == '["a", "b"]'

    def test_legacy_key_migrated(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(json.dumps({"trackedClicks": '["2025-03-14_1"]'}), encoding="utf-8")

        store = KeyStore(str(path))

        assert store.get_item(CollectorConstants.LEGACY_SENT_KEY) is None
        assert store.load_set(CollectorConstants.SENT_POSITIVE_KEY) == {"2025-03-14_1"}
        on_disk = json.loads(path.read_text(encoding="utf-8"))
        assert "trackedClicks" not in on_disk

    def test_legacy_key_ignored_when_current_exists(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text(
            json.dumps({"trackedClicks": '["old"]', "trackedSignals": '["new"]'}),
            encoding="utf-8",
        )

        store = KeyStore(str(path))

        assert store.load_set(CollectorConstants.SENT_POSITIVE_KEY) == {"new"}

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "storage.json"
        path.write_text("{not json", encoding="utf-8")

        assert KeyStore(str(path)).load_set("anything") == set()

    def test_remove_item_persists(self, tmp_path):
        path = str(tmp_path / "storage.json")
        store = KeyStore(path)
        store.set_item("a", "1")
        store.set_item("b", "2")

        store.remove_item("a")
        store.remove_item("missing")

        reloaded = KeyStore(path)
        assert reloaded.get_item("a") is None
        assert reloaded.get_item("b") == "2"

    def test_malformed_set_value(self):
        store = KeyStore()
        store.set_item("k", "not-a-list")

        assert store.load_set("k") == set()


class TestTrackClick:
    def test_click_queues_positive_signal(self, collector):
        assert collector.track_click(ARTICLE) is True

        assert len(collector.pending) == 1
        signal = collector.pending[0]
        assert signal.type == SignalType.POSITIVE
        assert signal.article_id == 3
        assert signal.source == "Reuters"

    def test_double_click_queues_once(self, collector):
        collector.track_click(ARTICLE)
        assert collector.track_click(ARTICLE) is False

        assert len(collector.pending) == 1

    def test_key_persisted_before_delivery(self, collector, key_store):
        collector.track_click(ARTICLE)

        assert key_store.load_set(CollectorConstants.SENT_POSITIVE_KEY) == {f"{VIEW_DATE}_3"}

    def test_dedup_survives_reload(self, key_store, transport):
        SignalCollector(key_store, transport, viewing_date=VIEW_DATE).track_click(ARTICLE)

        reloaded = SignalCollector(key_store, transport, viewing_date=VIEW_DATE)

        assert reloaded.track_click(ARTICLE) is False
        assert reloaded.pending == []

    def test_same_article_number_on_another_date(self, key_store, transport):
        SignalCollector(key_store, transport, viewing_date=VIEW_DATE).track_click(ARTICLE)

        other_day = SignalCollector(key_store, transport, viewing_date="2025-03-13")

        assert other_day.track_click(ARTICLE) is True

    def test_tracking_disabled(self, key_store, transport):
        collector = SignalCollector(
            key_store, transport, viewing_date=VIEW_DATE, tracking_enabled=False
        )

        assert collector.track_click(ARTICLE) is False
        assert collector.track_dislike(ARTICLE) is None
        assert collector.pending == []


class TestTrackDislike:
    def test_dislike_toggles(self, collector):
        assert collector.track_dislike(ARTICLE) is True
        assert collector.is_disliked(ARTICLE)

        assert collector.track_dislike(ARTICLE) is False
        assert not collector.is_disliked(ARTICLE)

    def test_even_toggles_leave_nothing_queued(self, collector):
        for _ in range(4):
            collector.track_dislike(ARTICLE)

        assert collector.pending == []

    def test_odd_toggles_leave_one_negative(self, collector):
        for _ in range(3):
            collector.track_dislike(ARTICLE)

        assert [s.type for s in collector.pending] == [SignalType.NEGATIVE]

    def test_undislike_keeps_queued_click(self, collector):
        collector.track_click(ARTICLE)
        collector.track_dislike(ARTICLE)
        collector.track_dislike(ARTICLE)

        assert [s.type for s in collector.pending] == [SignalType.POSITIVE]

    def test_undislike_keeps_other_articles(self, collector):
        other = {**ARTICLE, "number": 4}
        collector.track_dislike(other)
        collector.track_dislike(ARTICLE)
        collector.track_dislike(ARTICLE)

        assert [s.article_id for s in collector.pending] == [4]

    def test_dislike_state_persisted(self, collector, key_store):
        collector.track_dislike(ARTICLE)

        assert key_store.load_set(CollectorConstants.DISLIKED_KEY) == {f"{VIEW_DATE}_3"}


class TestFlush:
    def test_beacon_flush_swaps_queue(self, collector, transport):
        collector.track_click(ARTICLE)
        collector.track_dislike({**ARTICLE, "number": 4})

        assert collector.flush() is True

        assert collector.pending == []
        assert len(transport.beacons) == 1
        payload = transport.beacons[0]
        assert [s["type"] for s in payload["signals"]] == ["positive", "negative"]
        assert payload["signals"][0]["article_id"] == 3

    def test_flush_empty_queue_sends_nothing(self, collector, transport):
        assert collector.flush() is False
        assert transport.beacons == []

    @pytest.mark.asyncio
    async def test_flush_and_wait_delivers(self, collector, transport):
        collector.track_click(ARTICLE)

        await collector.flush_and_wait()

        assert len(transport.completed) == 1
        assert collector.pending == []

    @pytest.mark.asyncio
    async def test_flush_and_wait_is_bounded(self, key_store):
        """A stalled request does not block navigation past the timeout."""
        transport = FakeTransport(block=True)
        collector = SignalCollector(key_store, transport, viewing_date=VIEW_DATE)
        collector.track_click(ARTICLE)

        await asyncio.wait_for(collector.flush_and_wait(timeout=0.05), timeout=1)

        assert len(transport.posts) == 1
        assert transport.completed == []

        # The request was not cancelled and can still complete
        transport.release.set()
        await asyncio.gather(*collector._in_flight)
        assert len(transport.completed) == 1

    @pytest.mark.asyncio
    async def test_zero_timeout_does_not_wait(self, key_store):
        """A zero budget is honored rather than replaced by the default."""
        transport = FakeTransport(block=True)
        collector = SignalCollector(
            key_store, transport, viewing_date=VIEW_DATE, flush_timeout=30
        )
        collector.track_click(ARTICLE)

        await asyncio.wait_for(collector.flush_and_wait(timeout=0), timeout=1)

        assert transport.completed == []
        transport.release.set()
        await asyncio.gather(*collector._in_flight)
        assert len(transport.completed) == 1

    @pytest.mark.asyncio
    async def test_signals_during_flush_go_to_next_batch(self, key_store):
        transport = FakeTransport(block=True)
        collector = SignalCollector(key_store, transport, viewing_date=VIEW_DATE)
        collector.track_click(ARTICLE)

        flushing = asyncio.ensure_future(collector.flush_and_wait(timeout=1))
        await asyncio.sleep(0)
        collector.track_click({**ARTICLE, "number": 9})
        transport.release.set()
        await flushing

        assert [s["article_id"] for s in transport.posts[0]["signals"]] == [3]
        assert [s.article_id for s in collector.pending] == [9]


class TestNavigateDate:
    def test_navigate_back(self, collector):
        assert collector.navigate_date(-1) is True
        assert collector.current_date == "2025-03-13"

    def test_future_dates_refused(self, key_store, transport):
        collector = SignalCollector(key_store, transport)

        assert collector.navigate_date(1) is False
        assert collector.current_date == date.today().isoformat()

    def test_identity_follows_viewing_date(self, collector):
        collector.navigate_date(-1)
        collector.track_click(ARTICLE)

        expected = (date(2025, 3, 14) - timedelta(days=1)).isoformat()
        assert collector.sent_positive_keys == {f"{expected}_3"}
