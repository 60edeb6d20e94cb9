"""
Rating Aggregator.

Keeps each store's cached ``average_rating`` and ``total_ratings`` consistent
with its ratings. Every write to the ratings collection goes through
``upsert_rating`` (or the directory's deletes), which recomputes the affected
stores before returning.
"""

import logging
from typing import Dict, Iterable, List, Optional

from errors import NotFound, ReferentialError
from record_store import Collection, RecordStore
from schemas import Rating, Store, User
from validation import ensure_valid, validate_score

logger = logging.getLogger(__name__)


def average(scores: Iterable[int]) -> float:
    scores = list(scores)
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def apply_aggregates(stores: List[Store], ratings: List[Rating], store_ids: Optional[Iterable[str]] = None) -> None:
    """Recompute cached aggregates in place for ``store_ids`` (all stores when None)."""
    targets = None if store_ids is None else set(store_ids)
    by_store: Dict[str, List[int]] = {}
    for r in ratings:
        by_store.setdefault(r.store_id, []).append(r.score)
    for store in stores:
        if targets is not None and store.id not in targets:
            continue
        scores = by_store.get(store.id, [])
        store.average_rating = average(scores)
        store.total_ratings = len(scores)


class RatingAggregator:
    def __init__(self, store: RecordStore):
        self.store = store

    def upsert_rating(self, store_id: str, user_id: str, score: int) -> Rating:
        """Create or update the rating of ``user_id`` for ``store_id``."""
        ensure_valid({"score": validate_score(score)})
        with self.store.locked(Collection.USERS, Collection.STORES, Collection.RATINGS):
            stores = self.store.load(Collection.STORES)
            if not any(s.id == store_id for s in stores):
                raise ReferentialError("Store not found")
            users = self.store.load(Collection.USERS)
            if not any(u.id == user_id for u in users):
                raise ReferentialError("User not found")

            ratings = self.store.load(Collection.RATINGS)
            existing = next((r for r in ratings if r.store_id == store_id and r.user_id == user_id), None)
            if existing:
                existing.score = score
                rating = existing
                logger.info(f"Updated rating {rating.id} for store {store_id} by user {user_id} to {score}")
            else:
                rating = Rating(store_id=store_id, user_id=user_id, score=score)
                ratings.append(rating)
                logger.info(f"Created rating {rating.id} for store {store_id} by user {user_id}: {score}")
            self.store.save(Collection.RATINGS, ratings)

            apply_aggregates(stores, ratings, [store_id])
            self.store.save(Collection.STORES, stores)
        return rating

    def recompute_store(self, store_id: str) -> Store:
        with self.store.locked(Collection.STORES, Collection.RATINGS):
            stores = self.store.load(Collection.STORES)
            target = next((s for s in stores if s.id == store_id), None)
            if target is None:
                raise NotFound("Store not found")
            apply_aggregates(stores, self.store.load(Collection.RATINGS), [store_id])
            self.store.save(Collection.STORES, stores)
        return target

    def recompute_all(self) -> None:
        with self.store.locked(Collection.STORES, Collection.RATINGS):
            stores = self.store.load(Collection.STORES)
            apply_aggregates(stores, self.store.load(Collection.RATINGS))
            self.store.save(Collection.STORES, stores)

    def user_rating_for_store(self, store_id: str, user_id: str) -> Optional[Rating]:
        return next(
            (r for r in self.store.load(Collection.RATINGS) if r.store_id == store_id and r.user_id == user_id),
            None,
        )

    def store_ratings(self, store_id: str, users: Optional[List[User]] = None) -> List[dict]:
        """Ratings of ``store_id`` joined with the rater's name and email."""
        if users is None:
            users = self.store.load(Collection.USERS)
        user_map = {u.id: u for u in users}
        result = []
        for r in self.store.load(Collection.RATINGS):
            if r.store_id != store_id:
                continue
            rater = user_map.get(r.user_id)
            result.append({
                **r.model_dump(mode="json"),
                "user_name": rater.name if rater else "Unknown User",
                "user_email": rater.email if rater else "Unknown Email",
            })
        return result

    def owner_average(self, owner_id: str) -> float:
        """Mean score across every rating of the stores ``owner_id`` owns."""
        owned = {s.id for s in self.store.load(Collection.STORES) if s.owner_id == owner_id}
        return average(r.score for r in self.store.load(Collection.RATINGS) if r.store_id in owned)

    def owner_summary(self, owner_id: str) -> dict:
        """Store-owner dashboard: owned stores, overall average and raters."""
        stores = [s for s in self.store.load(Collection.STORES) if s.owner_id == owner_id]
        owned = {s.id for s in stores}
        ratings = [r for r in self.store.load(Collection.RATINGS) if r.store_id in owned]
        users = self.store.load(Collection.USERS)
        return {
            "average_rating": round(average(r.score for r in ratings), 2),
            "total_ratings": len(ratings),
            "stores": [
                {"store": s.model_dump(mode="json"), "ratings": self.store_ratings(s.id, users)}
                for s in stores
            ],
        }
