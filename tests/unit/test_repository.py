import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import mongomock
import pytest

from planora.core.itinerary_service import build_draft
from planora.core.repository import ItineraryRepository
from planora.core.schemas import Day, TripPreferences
from tests.fakes import make_activity

NOW = datetime(2025, 6, 1, 9, 0, 0)


@pytest.fixture
def repo():
    collection = mongomock.MongoClient().db.itineraries
    repository = ItineraryRepository(collection)
    repository.ensure_indexes()
    return repository


def _draft(user_id=None, created=NOW, ttl_days=7):
    prefs = TripPreferences(destination="Jakarta, Indonesia", start_date="2026-11-02", end_date="2026-11-03")
    days = [Day(day=1, activities=[make_activity("National Monument", "09:00")])]
    return build_draft(prefs, days, user_id, ttl_days, now=created)


def test_create_and_get(repo):
    doc = _draft()
    assert repo.create(doc) == doc.id
    assert doc.id.startswith("itn_")

    stored = repo.get(doc.id)
    assert stored.prefs.destination == "Jakarta, Indonesia"
    assert stored.days[0].activities[0].title == "National Monument"
    assert stored.currency == "IDR"
    assert stored.status == "draft"
    assert stored.expires_at == NOW + timedelta(days=7)
    assert stored.user_id is None


def test_get_missing_returns_none(repo):
    assert repo.get("itn_missing") is None


def test_stored_shape_is_camel_case_with_real_datetimes(repo):
    doc = _draft(user_id="user_1")
    repo.create(doc)

    raw = repo.collection.find_one({"_id": doc.id})
    assert raw["userId"] == "user_1"
    assert isinstance(raw["createdAt"], datetime)
    assert raw["prefs"]["startDate"] == "2026-11-02"


def test_claim_succeeds_once(repo):
    doc = _draft()
    repo.create(doc)

    claimed = repo.claim(doc.id, "user_a")
    assert claimed.user_id == "user_a"

    assert repo.claim(doc.id, "user_b") is None
    assert repo.get(doc.id).user_id == "user_a"


def test_claim_missing_itinerary(repo):
    assert repo.claim("itn_missing", "user_a") is None


def test_update_requires_ownership(repo):
    doc = _draft(user_id="owner")
    repo.create(doc)

    assert repo.update(doc.id, "intruder", {"isPublic": True}) is None
    updated = repo.update(doc.id, "owner", {"isPublic": True})
    assert updated.is_public is True
    assert updated.updated_at > doc.updated_at


def test_save_clears_expiry(repo):
    doc = _draft(user_id="owner")
    repo.create(doc)

    assert repo.save(doc.id, "someone-else") is None
    saved = repo.save(doc.id, "owner")
    assert saved.status == "saved"
    assert saved.expires_at is None


def test_delete_requires_ownership(repo):
    doc = _draft(user_id="owner")
    repo.create(doc)

    assert repo.delete(doc.id, "intruder") is False
    assert repo.delete(doc.id, "owner") is True
    assert repo.get(doc.id) is None


def test_list_for_user_hides_expired_drafts(repo):
    live = _draft(user_id="owner", created=NOW - timedelta(days=1))
    expired = _draft(user_id="owner", created=NOW - timedelta(days=10))
    saved = _draft(user_id="owner", created=NOW - timedelta(days=30))
    other = _draft(user_id="other", created=NOW)
    for doc in (live, expired, saved, other):
        repo.create(doc)
    repo.save(saved.id, "owner")

    listed = repo.list_for_user("owner", now=NOW)

    # Newest first
    assert [d.id for d in listed] == [live.id, saved.id]


def test_purge_expired_drafts(repo):
    expired = _draft(created=NOW - timedelta(days=10))
    live = _draft(created=NOW)
    saved = _draft(user_id="owner", created=NOW - timedelta(days=30))
    for doc in (expired, live, saved):
        repo.create(doc)
    repo.save(saved.id, "owner")

    assert repo.purge_expired_drafts(now=NOW) == 1
    assert repo.get(expired.id) is None
    assert repo.get(live.id) is not None
    assert repo.get(saved.id) is not None


class AtomicCollection:
    """mongomock does not apply find_one_and_update atomically; a server does."""

    def __init__(self, collection):
        self._collection = collection
        self._lock = threading.Lock()

    def find_one_and_update(self, *args, **kwargs):
        with self._lock:
            return self._collection.find_one_and_update(*args, **kwargs)

    def __getattr__(self, name):
        return getattr(self._collection, name)


def test_concurrent_claims_have_one_winner():
    repo = ItineraryRepository(AtomicCollection(mongomock.MongoClient().db.itineraries))
    doc = _draft()
    repo.create(doc)
    barrier = threading.Barrier(8)

    def claim(user_id):
        barrier.wait()
        return repo.claim(doc.id, user_id)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(claim, [f"user_{i}" for i in range(8)]))

    winners = [r for r in results if r is not None]
    assert len(winners) == 1
    assert repo.get(doc.id).user_id == winners[0].user_id
