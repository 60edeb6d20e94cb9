"""
Directory of users, stores and ratings: admin record management plus the
filtered, sorted listings behind each dashboard.

Deletion rules:
- deleting a store removes its ratings;
- a user who still owns stores cannot be deleted;
- deleting any other user removes their ratings and recomputes the stores
  they had rated, and clears a persisted session that belongs to them.
"""

import logging
from typing import Any, Dict, List, Optional

from errors import DuplicateEmail, NotFound, ReferentialError, ValidationError
from ratings import RatingAggregator, apply_aggregates
from record_store import Collection, RecordStore
from schemas import Rating, Role, Store, User
from security import hash_password
from validation import validate_store_fields, validate_user_fields

logger = logging.getLogger(__name__)

USER_SORT_FIELDS = {"name", "email", "address", "role", "created_at"}
STORE_SORT_FIELDS = {"name", "email", "address", "average_rating", "total_ratings", "created_at"}


def _contains(value: str, needle: Optional[str]) -> bool:
    return not needle or needle.lower() in value.lower()


def _sort(records: List[Any], sort_by: str, order: str, allowed: set) -> List[Any]:
    if sort_by not in allowed:
        raise ValidationError({"sort_by": f"Cannot sort by {sort_by}"})
    if order not in ("asc", "desc"):
        raise ValidationError({"order": "Order must be asc or desc"})

    def key(record):
        value = getattr(record, sort_by)
        if isinstance(value, Role):
            value = value.value
        return value.lower() if isinstance(value, str) else value

    return sorted(records, key=key, reverse=order == "desc")


class Directory:
    def __init__(self, store: RecordStore, aggregator: Optional[RatingAggregator] = None):
        self.store = store
        self.aggregator = aggregator or RatingAggregator(store)

    # Users

    def create_user(self, data: Dict[str, Any]) -> User:
        validate_user_fields(data.get("name", ""), data.get("email", ""), data.get("address", ""), data.get("password", ""))
        try:
            role = Role(data.get("role") or Role.USER)
        except ValueError:
            raise ValidationError({"role": "Role must be admin, user or store_owner"})
        with self.store.locked(Collection.USERS):
            users = self.store.load(Collection.USERS)
            if any(u.email == data["email"] for u in users):
                raise DuplicateEmail(data["email"])
            user = User(
                name=data["name"],
                email=data["email"],
                address=data["address"],
                password_hash=hash_password(data["password"]),
                role=role,
            )
            users.append(user)
            self.store.save(Collection.USERS, users)
        logger.info(f"Created user {user.id} ({role.value})")
        return user

    def get_user(self, user_id: str) -> Dict[str, Any]:
        user = next((u for u in self.store.load(Collection.USERS) if u.id == user_id), None)
        if user is None:
            raise NotFound("User not found")
        result = user.public()
        if user.role == Role.STORE_OWNER:
            result["rating"] = round(self.aggregator.owner_average(user.id), 2)
        return result

    def delete_user(self, user_id: str) -> None:
        with self.store.locked(Collection.USERS, Collection.STORES, Collection.RATINGS):
            users = self.store.load(Collection.USERS)
            if not any(u.id == user_id for u in users):
                raise NotFound("User not found")
            stores = self.store.load(Collection.STORES)
            if any(s.owner_id == user_id for s in stores):
                raise ReferentialError("User still owns stores; delete them first")
            self.store.save(Collection.USERS, [u for u in users if u.id != user_id])

            ratings = self.store.load(Collection.RATINGS)
            affected = {r.store_id for r in ratings if r.user_id == user_id}
            if affected:
                ratings = [r for r in ratings if r.user_id != user_id]
                self.store.save(Collection.RATINGS, ratings)
                apply_aggregates(stores, ratings, affected)
                self.store.save(Collection.STORES, stores)

            current = self.store.load_current_user()
            if current is not None and current.id == user_id:
                self.store.save_current_user(None)
        logger.info(f"Deleted user {user_id}; recomputed {len(affected)} rated stores")

    def list_users(
        self,
        search: Optional[str] = None,
        name: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        role: Optional[str] = None,
        sort_by: str = "name",
        order: str = "asc",
    ) -> List[User]:
        users = [
            u for u in self.store.load(Collection.USERS)
            if (not search or any(_contains(v, search) for v in (u.name, u.email, u.address)))
            and _contains(u.name, name)
            and _contains(u.email, email)
            and _contains(u.address, address)
            and (not role or u.role.value == role)
        ]
        return _sort(users, sort_by, order, USER_SORT_FIELDS)

    # Stores

    def create_store(self, data: Dict[str, Any]) -> Store:
        validate_store_fields(data.get("name", ""), data.get("email", ""), data.get("address", ""))
        with self.store.locked(Collection.USERS, Collection.STORES):
            owner = next((u for u in self.store.load(Collection.USERS) if u.id == data.get("owner_id")), None)
            if owner is None or owner.role != Role.STORE_OWNER:
                raise ReferentialError("owner_id must be a valid Store Owner")
            stores = self.store.load(Collection.STORES)
            store = Store(name=data["name"], email=data["email"], address=data["address"], owner_id=owner.id)
            stores.append(store)
            self.store.save(Collection.STORES, stores)
        logger.info(f"Created store {store.id} owned by {owner.id}")
        return store

    def delete_store(self, store_id: str) -> None:
        with self.store.locked(Collection.STORES, Collection.RATINGS):
            stores = self.store.load(Collection.STORES)
            if not any(s.id == store_id for s in stores):
                raise NotFound("Store not found")
            self.store.save(Collection.STORES, [s for s in stores if s.id != store_id])
            ratings = self.store.load(Collection.RATINGS)
            remaining = [r for r in ratings if r.store_id != store_id]
            if len(remaining) != len(ratings):
                self.store.save(Collection.RATINGS, remaining)
        logger.info(f"Deleted store {store_id} and {len(ratings) - len(remaining)} ratings")

    def list_stores(
        self,
        search: Optional[str] = None,
        name: Optional[str] = None,
        email: Optional[str] = None,
        address: Optional[str] = None,
        sort_by: str = "name",
        order: str = "asc",
    ) -> List[Store]:
        stores = [
            s for s in self.store.load(Collection.STORES)
            if (not search or any(_contains(v, search) for v in (s.name, s.email, s.address)))
            and _contains(s.name, name)
            and _contains(s.email, email)
            and _contains(s.address, address)
        ]
        return _sort(stores, sort_by, order, STORE_SORT_FIELDS)

    def browse_stores(
        self,
        user_id: str,
        search: Optional[str] = None,
        sort_by: str = "name",
        order: str = "asc",
    ) -> List[Dict[str, Any]]:
        """Stores as a normal user sees them, with their own score attached."""
        stores = [
            s for s in self.store.load(Collection.STORES)
            if not search or _contains(s.name, search) or _contains(s.address, search)
        ]
        mine = {r.store_id: r.score for r in self.store.load(Collection.RATINGS) if r.user_id == user_id}
        return [
            {**s.model_dump(mode="json"), "my_rating": mine.get(s.id)}
            for s in _sort(stores, sort_by, order, STORE_SORT_FIELDS)
        ]

    # Ratings

    def list_ratings(self) -> List[Rating]:
        return self.store.load(Collection.RATINGS)

    def stats(self) -> Dict[str, int]:
        return {
            "total_users": len(self.store.load(Collection.USERS)),
            "total_stores": len(self.store.load(Collection.STORES)),
            "total_ratings": len(self.store.load(Collection.RATINGS)),
        }
