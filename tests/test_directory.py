"""Tests for admin record management and dashboard listings."""

import pytest

from auth import AuthService
from conftest import ADMIN, NORMAL_USER, user_payload
from directory import Directory
from errors import DuplicateEmail, NotFound, ReferentialError, ValidationError
from ratings import RatingAggregator
from record_store import Collection, RecordStore
from schemas import Role


def store_payload(**overrides) -> dict:
    payload = {
        "name": "Corner Bookshop And Cafe",
        "email": "books@corner.com",
        "address": "12 Reading Row, Libraryville",
        "owner_id": "3",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def directory(seeded_store: RecordStore) -> Directory:
    return Directory(seeded_store)


class TestUsers:
    def test_create_user_with_role(self, directory: Directory, seeded_store: RecordStore) -> None:
        user = directory.create_user(user_payload(role="store_owner"))
        assert user.role is Role.STORE_OWNER
        assert len(seeded_store.load(Collection.USERS)) == 4

    def test_create_user_rejects_duplicate_email(self, directory: Directory) -> None:
        with pytest.raises(DuplicateEmail):
            directory.create_user(user_payload(email="admin@example.com"))

    def test_create_user_rejects_unknown_role(self, directory: Directory) -> None:
        with pytest.raises(ValidationError) as exc_info:
            directory.create_user(user_payload(role="superuser"))
        assert "role" in exc_info.value.errors

    def test_get_store_owner_includes_rating(self, directory: Directory) -> None:
        owner = directory.get_user("3")
        assert "password_hash" not in owner
        assert owner["rating"] == 4.5
        assert "rating" not in directory.get_user("2")

    def test_get_missing_user(self, directory: Directory) -> None:
        with pytest.raises(NotFound):
            directory.get_user("404")

    def test_cannot_delete_owner_of_stores(self, directory: Directory, seeded_store: RecordStore) -> None:
        with pytest.raises(ReferentialError):
            directory.delete_user("3")
        assert any(u.id == "3" for u in seeded_store.load(Collection.USERS))

    def test_delete_user_removes_ratings_and_recomputes(self, directory: Directory, seeded_store: RecordStore) -> None:
        directory.delete_user("2")
        assert not any(u.id == "2" for u in seeded_store.load(Collection.USERS))
        assert seeded_store.load(Collection.RATINGS) == []
        for store in seeded_store.load(Collection.STORES):
            assert (store.average_rating, store.total_ratings) == (0.0, 0)

    def test_delete_user_clears_their_persisted_session(self, directory: Directory, seeded_store: RecordStore) -> None:
        AuthService(seeded_store).login(*NORMAL_USER)
        directory.delete_user("2")
        assert seeded_store.load_current_user() is None
        assert AuthService(seeded_store).current_user is None

    def test_delete_user_keeps_other_session(self, directory: Directory, seeded_store: RecordStore) -> None:
        AuthService(seeded_store).login(*ADMIN)
        directory.delete_user("2")
        assert seeded_store.load_current_user().id == "1"

    def test_delete_missing_user(self, directory: Directory) -> None:
        with pytest.raises(NotFound):
            directory.delete_user("404")


class TestUserListing:
    def test_default_sort_is_name_ascending(self, directory: Directory) -> None:
        names = [u.name for u in directory.list_users()]
        assert names == sorted(names, key=str.lower)

    def test_descending_by_email(self, directory: Directory) -> None:
        emails = [u.email for u in directory.list_users(sort_by="email", order="desc")]
        assert emails == ["john@example.com", "jane@example.com", "admin@example.com"]

    def test_search_matches_name_email_or_address(self, directory: Directory) -> None:
        assert [u.id for u in directory.list_users(search="JANE")] == ["3"]
        assert [u.id for u in directory.list_users(search="user avenue")] == ["2"]

    def test_field_and_role_filters(self, directory: Directory) -> None:
        assert [u.id for u in directory.list_users(role="admin")] == ["1"]
        assert [u.id for u in directory.list_users(address="store city")] == ["3"]

    def test_rejects_unknown_sort_field(self, directory: Directory) -> None:
        with pytest.raises(ValidationError):
            directory.list_users(sort_by="password_hash")

    def test_rejects_unknown_order(self, directory: Directory) -> None:
        with pytest.raises(ValidationError):
            directory.list_users(order="sideways")


class TestStores:
    def test_create_store_starts_unrated(self, directory: Directory) -> None:
        store = directory.create_store(store_payload())
        assert (store.average_rating, store.total_ratings) == (0.0, 0)
        assert store.owner_id == "3"

    @pytest.mark.parametrize("owner_id", ["2", "404", None])
    def test_owner_must_be_store_owner(self, directory: Directory, owner_id) -> None:
        with pytest.raises(ReferentialError):
            directory.create_store(store_payload(owner_id=owner_id))

    def test_create_store_validates_fields(self, directory: Directory) -> None:
        with pytest.raises(ValidationError) as exc_info:
            directory.create_store(store_payload(name="Tiny", email="bad"))
        assert set(exc_info.value.errors) == {"name", "email"}

    def test_delete_store_cascades_ratings(self, directory: Directory, seeded_store: RecordStore) -> None:
        directory.delete_store("1")
        assert [s.id for s in seeded_store.load(Collection.STORES)] == ["2", "3"]
        assert [r.store_id for r in seeded_store.load(Collection.RATINGS)] == ["2"]

    def test_delete_missing_store(self, directory: Directory) -> None:
        with pytest.raises(NotFound):
            directory.delete_store("404")

    def test_list_stores_sorted_by_rating(self, directory: Directory) -> None:
        stores = directory.list_stores(sort_by="average_rating", order="desc")
        assert [s.id for s in stores] == ["1", "2", "3"]

    def test_list_stores_filters(self, directory: Directory) -> None:
        assert [s.id for s in directory.list_stores(search="fashion")] == ["2"]
        assert [s.id for s in directory.list_stores(email="gourmet")] == ["3"]

    def test_browse_stores_attaches_own_rating(self, directory: Directory) -> None:
        rows = {row["id"]: row for row in directory.browse_stores("2")}
        assert rows["1"]["my_rating"] == 5
        assert rows["3"]["my_rating"] is None
        assert rows["1"]["average_rating"] == 5.0

    def test_browse_stores_search_ignores_email(self, directory: Directory) -> None:
        assert [row["id"] for row in directory.browse_stores("2", search="market district")] == ["3"]
        assert directory.browse_stores("2", search="techsolutions.com") == []


class TestStats:
    def test_totals(self, directory: Directory) -> None:
        assert directory.stats() == {"total_users": 3, "total_stores": 3, "total_ratings": 2}

    def test_totals_follow_upserts(self, directory: Directory, seeded_store: RecordStore) -> None:
        RatingAggregator(seeded_store).upsert_rating("3", "2", 1)
        assert directory.stats()["total_ratings"] == 3
        assert len(directory.list_ratings()) == 3
