"""
Bootstrap data for a fresh database.

Each collection is seeded only when its key has never been written, so running
this twice is harmless.
"""

import logging
from datetime import datetime, timezone
from typing import Dict

from ratings import apply_aggregates
from record_store import Collection, RecordStore
from schemas import Rating, Role, Store, User
from security import hash_password

logger = logging.getLogger(__name__)

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Admin123!"


def _at(day: int) -> datetime:
    return datetime(2024, 1, day, tzinfo=timezone.utc)


def bootstrap_users():
    return [
        User(id="1", name="System Administrator Account", email=ADMIN_EMAIL,
             address="123 Admin Street, Admin City, AC 12345",
             password_hash=hash_password(ADMIN_PASSWORD), role=Role.ADMIN, created_at=_at(1)),
        User(id="2", name="John Doe Regular User Account", email="john@example.com",
             address="456 User Avenue, User City, UC 67890",
             password_hash=hash_password("User123!"), role=Role.USER, created_at=_at(2)),
        User(id="3", name="Jane Smith Store Owner Account", email="jane@example.com",
             address="789 Store Boulevard, Store City, SC 11111",
             password_hash=hash_password("Store123!"), role=Role.STORE_OWNER, created_at=_at(3)),
    ]


def bootstrap_stores():
    return [
        Store(id="1", name="Tech Solutions Store Downtown", email="contact@techsolutions.com",
              address="100 Tech Park, Downtown, DT 22222", owner_id="3", created_at=_at(4)),
        Store(id="2", name="Fashion Forward Boutique Center", email="info@fashionforward.com",
              address="200 Fashion Plaza, Center City, CC 33333", owner_id="3", created_at=_at(5)),
        Store(id="3", name="Gourmet Food Market Express", email="hello@gourmetmarket.com",
              address="300 Food Street, Market District, MD 44444", owner_id="3", created_at=_at(6)),
    ]


def bootstrap_ratings():
    return [
        Rating(id="1", store_id="1", user_id="2", score=5, created_at=_at(7)),
        Rating(id="2", store_id="2", user_id="2", score=4, created_at=_at(8)),
    ]


def seed_bootstrap_data(store: RecordStore) -> Dict[str, int]:
    """Populate absent collections; return how many records each one received.

    Bootstrap stores and ratings are only written when the records they
    reference exist, so seeding on top of existing users never leaves a store
    pointing at a missing or non-owner user.
    """
    seeded = {}
    with store.locked(Collection.USERS, Collection.STORES, Collection.RATINGS):
        if not store.exists(Collection.USERS):
            users = bootstrap_users()
            store.save(Collection.USERS, users)
            seeded[Collection.USERS.value] = len(users)
        users = {u.id: u for u in store.load(Collection.USERS)}

        if not store.exists(Collection.STORES):
            stores = [
                s for s in bootstrap_stores()
                if s.owner_id in users and users[s.owner_id].role == Role.STORE_OWNER
            ]
            if stores:
                store.save(Collection.STORES, stores)
                seeded[Collection.STORES.value] = len(stores)
            else:
                logger.warning("Skipped seeding stores: bootstrap owner is not a store owner")
        store_ids = {s.id for s in store.load(Collection.STORES)}

        if not store.exists(Collection.RATINGS):
            ratings = [r for r in bootstrap_ratings() if r.store_id in store_ids and r.user_id in users]
            if ratings:
                store.save(Collection.RATINGS, ratings)
                seeded[Collection.RATINGS.value] = len(ratings)
            else:
                logger.warning("Skipped seeding ratings: bootstrap stores or raters are missing")

        if Collection.STORES.value in seeded or Collection.RATINGS.value in seeded:
            stores = store.load(Collection.STORES)
            apply_aggregates(stores, store.load(Collection.RATINGS))
            store.save(Collection.STORES, stores)

    if seeded:
        logger.info(f"Seeded bootstrap data: {seeded}")
    return seeded
