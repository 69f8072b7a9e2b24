from __future__ import annotations

import logging
import uuid
from datetime import datetime
from functools import lru_cache
from typing import Any

from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection

from planora.core.schemas import ItineraryDocument
from planora.core.settings import get_settings

logger = logging.getLogger(__name__)

DATETIME_FIELDS = {"createdAt": "created_at", "updatedAt": "updated_at", "expiresAt": "expires_at"}


def new_itinerary_id() -> str:
    return f"itn_{uuid.uuid4().hex[:12]}"


def to_mongo(doc: ItineraryDocument) -> dict[str, Any]:
    """Stored shape: the camelCase JSON document with real datetimes for date queries."""
    data = doc.model_dump(mode="json", by_alias=True)
    for alias, attr in DATETIME_FIELDS.items():
        data[alias] = getattr(doc, attr)
    return data


def from_mongo(raw: dict[str, Any] | None) -> ItineraryDocument | None:
    if raw is None:
        return None
    return ItineraryDocument.model_validate(raw)


class ItineraryRepository:
    """
    Itinerary documents keyed by ``_id``.

    Reads are by id alone; every mutation matches the (id, owner) pair so a
    caller can only change what it owns. Claiming is the one mutation that
    matches an ownerless document instead.
    """

    def __init__(self, collection: Collection):
        self.collection = collection

    def ensure_indexes(self) -> None:
        self.collection.create_index(
            [("userId", ASCENDING), ("status", ASCENDING), ("createdAt", DESCENDING)]
        )
        self.collection.create_index("expiresAt")

    def create(self, doc: ItineraryDocument) -> str:
        self.collection.insert_one(to_mongo(doc))
        return doc.id

    def get(self, itinerary_id: str) -> ItineraryDocument | None:
        return from_mongo(self.collection.find_one({"_id": itinerary_id}))

    def list_for_user(self, user_id: str, now: datetime | None = None) -> list[ItineraryDocument]:
        """Saved itineraries plus drafts that have not expired, newest first."""
        now = now or datetime.utcnow()
        cursor = self.collection.find(
            {
                "userId": user_id,
                "$or": [
                    {"status": "saved"},
                    {"status": "draft", "expiresAt": {"$gt": now}},
                    {"status": "draft", "expiresAt": None},
                ],
            }
        ).sort("createdAt", DESCENDING)
        return [from_mongo(raw) for raw in cursor]

    def update(
        self, itinerary_id: str, owner_id: str, updates: dict[str, Any]
    ) -> ItineraryDocument | None:
        """Apply already-serialised camelCase field updates; None if not found or not owned."""
        changes = {**updates, "updatedAt": datetime.utcnow()}
        raw = self.collection.find_one_and_update(
            {"_id": itinerary_id, "userId": owner_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        return from_mongo(raw)

    def delete(self, itinerary_id: str, owner_id: str) -> bool:
        result = self.collection.delete_one({"_id": itinerary_id, "userId": owner_id})
        return result.deleted_count > 0

    def claim(self, itinerary_id: str, user_id: str) -> ItineraryDocument | None:
        """
        Give an ownerless itinerary to ``user_id``.

        Single conditional update, so of two concurrent claims exactly one
        matches. Returns None when the itinerary is missing or already owned.
        """
        raw = self.collection.find_one_and_update(
            {"_id": itinerary_id, "userId": None},
            {"$set": {"userId": user_id, "updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if raw is None:
            logger.info(f"Claim of {itinerary_id} by {user_id} matched nothing")
        return from_mongo(raw)

    def save(self, itinerary_id: str, owner_id: str) -> ItineraryDocument | None:
        """Promote a draft to saved; saved itineraries never expire."""
        raw = self.collection.find_one_and_update(
            {"_id": itinerary_id, "userId": owner_id},
            {
                "$set": {"status": "saved", "updatedAt": datetime.utcnow()},
                "$unset": {"expiresAt": ""},
            },
            return_document=ReturnDocument.AFTER,
        )
        return from_mongo(raw)

    def purge_expired_drafts(self, now: datetime | None = None) -> int:
        now = now or datetime.utcnow()
        result = self.collection.delete_many({"status": "draft", "expiresAt": {"$lte": now}})
        if result.deleted_count:
            logger.info(f"Purged {result.deleted_count} expired draft itineraries")
        return result.deleted_count


@lru_cache
def get_repo() -> ItineraryRepository:
    settings = get_settings()
    client = MongoClient(
        settings.mongodb_uri,
        serverSelectionTimeoutMS=5000,  # 5 second timeout
        connectTimeoutMS=10000,
        socketTimeoutMS=20000,
        retryWrites=True,
        retryReads=True,
    )
    repo = ItineraryRepository(client[settings.database_name].itineraries)
    try:
        repo.ensure_indexes()
    except Exception as e:
        logger.warning(f"Index creation failed (continuing without indexes): {e}")
    return repo
