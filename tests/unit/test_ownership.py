"""Unit tests for the collection ownership guard."""
import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from memri.models import Collection
from memri.services.ownership import get_owned_collection, get_owned_photo, is_owner
from tests.factories import create_collection, create_photo, create_user


class TestIsOwner:
    """Tests for is_owner."""

    def test_owner(self, db: Session, test_user):
        collection = create_collection(db, test_user)

        assert is_owner(db, collection.id, test_user.id) is True

    def test_non_owner(self, db: Session, test_user, other_user):
        collection = create_collection(db, test_user)

        assert is_owner(db, collection.id, other_user.id) is False

    def test_shared_owner(self, db: Session, test_user, other_user):
        collection = create_collection(db, test_user, extra_owners=[other_user])

        assert is_owner(db, collection.id, other_user.id) is True

    def test_missing_collection(self, db: Session, test_user):
        assert is_owner(db, 999999, test_user.id) is False

    def test_creator_without_owner_row(self, db: Session, test_user):
        collection = Collection(name="Orphaned", user_id=test_user.id)
        db.add(collection)
        db.commit()

        assert is_owner(db, collection.id, test_user.id) is False


class TestGetOwnedCollection:
    """Tests for the 404-then-403 guard."""

    def test_returns_collection(self, db: Session, test_user):
        collection = create_collection(db, test_user)

        assert get_owned_collection(db, collection.id, test_user.id).id == collection.id

    def test_missing_is_404(self, db: Session, test_user):
        with pytest.raises(HTTPException) as exc_info:
            get_owned_collection(db, 999999, test_user.id)

        assert exc_info.value.status_code == 404

    def test_not_owner_is_403(self, db: Session, test_user, other_user):
        collection = create_collection(db, test_user)

        with pytest.raises(HTTPException) as exc_info:
            get_owned_collection(db, collection.id, other_user.id, action="delete")

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail == "Not authorized to delete this collection"


class TestGetOwnedPhoto:
    """Tests for photo access through the photo's collection."""

    def test_owner_of_collection(self, db: Session, test_user):
        photo = create_photo(db, create_collection(db, test_user))

        assert get_owned_photo(db, photo.id, test_user.id).id == photo.id

    def test_missing_is_404(self, db: Session, test_user):
        with pytest.raises(HTTPException) as exc_info:
            get_owned_photo(db, 999999, test_user.id)

        assert exc_info.value.status_code == 404

    def test_not_owner_is_403(self, db: Session, test_user):
        stranger = create_user(db, username="mallory")
        photo = create_photo(db, create_collection(db, test_user))

        with pytest.raises(HTTPException) as exc_info:
            get_owned_photo(db, photo.id, stranger.id, action="update")

        assert exc_info.value.status_code == 403
