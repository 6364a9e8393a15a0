"""Business logic for collections (date memories) and their owners."""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from memri.models.collection import Collection, CollectionOwner, CollectionType
from memri.models.photo import Photo


class CollectionService:
    """Service for collection-related operations."""

    @staticmethod
    def list_for_user(db: Session, user_id: int) -> List[Collection]:
        """Collections the user is an owner of, newest first."""
        return (
            db.query(Collection)
            .join(CollectionOwner, CollectionOwner.collection_id == Collection.id)
            .filter(CollectionOwner.user_id == user_id)
            .order_by(Collection.created_at.desc(), Collection.id.desc())
            .all()
        )

    @staticmethod
    def create_collection(
        db: Session,
        user_id: int,
        name: str,
        description: Optional[str] = None,
        collection_type: CollectionType = CollectionType.CUSTOM,
    ) -> Collection:
        """
        Create a collection and make its creator the first owner.

        Both rows are committed together.
        """
        collection = Collection(
            name=name,
            description=description,
            type=collection_type,
            user_id=user_id,
        )
        db.add(collection)
        db.flush()

        db.add(CollectionOwner(collection_id=collection.id, user_id=user_id))
        db.commit()
        db.refresh(collection)
        return collection

    @staticmethod
    def add_owner(db: Session, collection: Collection, user_id: int) -> CollectionOwner:
        """Share a collection with another user (no-op if already an owner)."""
        existing = (
            db.query(CollectionOwner)
            .filter(
                CollectionOwner.collection_id == collection.id,
                CollectionOwner.user_id == user_id,
            )
            .first()
        )
        if existing:
            return existing

        owner = CollectionOwner(collection_id=collection.id, user_id=user_id)
        db.add(owner)
        db.commit()
        return owner

    @staticmethod
    def update_collection(db: Session, collection: Collection, changes: Dict[str, Any]) -> Collection:
        for field in ("name", "description", "type"):
            if field in changes:
                setattr(collection, field, changes[field])
        db.commit()
        db.refresh(collection)
        return collection

    @staticmethod
    def delete_collection(db: Session, collection: Collection) -> List[str]:
        """
        Delete a collection with its photos and ownership rows.

        Returns:
            File names of the deleted photos, so their bytes can be removed
        """
        file_names = [
            name
            for (name,) in db.query(Photo.file_name).filter(
                Photo.collection_id == collection.id
            )
        ]
        db.delete(collection)
        db.commit()
        return file_names


# Singleton instance
collection_service = CollectionService()
