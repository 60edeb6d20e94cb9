"""
Record Store.

Whole-collection load/save of users, stores and ratings over a key-value blob.
The blob is a single MongoDB collection holding one document per key::

    {"_id": "users", "value": [{...}, {...}]}

A collection is always read and written wholesale. Callers that load, mutate
and save must do so inside ``locked(...)`` so concurrent requests in the same
process cannot overwrite each other's updates.
"""

import logging
import threading
from contextlib import ExitStack, contextmanager
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Type

from pydantic import BaseModel
from pymongo.database import Database

import config
from schemas import Rating, Store, User

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "currentUser"


class Collection(str, Enum):
    USERS = "users"
    STORES = "stores"
    RATINGS = "ratings"


MODELS: Dict[Collection, Type[BaseModel]] = {
    Collection.USERS: User,
    Collection.STORES: Store,
    Collection.RATINGS: Rating,
}

# Locks are always taken in this order to avoid deadlocks between callers
# that need several collections.
LOCK_ORDER = (Collection.USERS, Collection.STORES, Collection.RATINGS)


class RecordStore:
    def __init__(self, db: Database, collection_name: Optional[str] = None):
        self.blobs = db[collection_name or config.KV_COLLECTION]
        self._locks = {c: threading.RLock() for c in Collection}

    def exists(self, collection: Collection) -> bool:
        return self.blobs.find_one({"_id": collection.value}, {"_id": 1}) is not None

    def load(self, collection: Collection) -> List[BaseModel]:
        """Return every record of ``collection`` in stored order; empty when absent."""
        doc = self.blobs.find_one({"_id": collection.value})
        if not doc:
            return []
        model = MODELS[collection]
        records = [model.model_validate(item) for item in doc.get("value", [])]
        logger.debug(f"Loaded {len(records)} {collection.value}")
        return records

    def save(self, collection: Collection, records: Sequence[BaseModel]) -> None:
        """Overwrite ``collection`` with ``records``."""
        value = [r.model_dump(mode="json") for r in records]
        self.blobs.replace_one({"_id": collection.value}, {"_id": collection.value, "value": value}, upsert=True)
        logger.debug(f"Saved {len(value)} {collection.value}")

    def load_current_user(self) -> Optional[User]:
        doc = self.blobs.find_one({"_id": CURRENT_USER_KEY})
        if not doc or doc.get("value") is None:
            return None
        return User.model_validate(doc["value"])

    def save_current_user(self, user: Optional[User]) -> None:
        if user is None:
            self.blobs.delete_one({"_id": CURRENT_USER_KEY})
            return
        self.blobs.replace_one(
            {"_id": CURRENT_USER_KEY},
            {"_id": CURRENT_USER_KEY, "value": user.model_dump(mode="json")},
            upsert=True,
        )

    @contextmanager
    def locked(self, *collections: Collection) -> Iterator[None]:
        """Hold the mutual-exclusion section for ``collections``."""
        wanted = set(collections)
        with ExitStack() as stack:
            for collection in LOCK_ORDER:
                if collection in wanted:
                    stack.enter_context(self._locks[collection])
            yield
