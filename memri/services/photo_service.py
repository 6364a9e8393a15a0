"""Business logic for photos."""
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from memri.models.collection import CollectionOwner
from memri.models.photo import Photo


class PhotoService:
    """Service for photo-related operations."""

    @staticmethod
    def list_for_user(
        db: Session, user_id: int, collection_id: Optional[int] = None
    ) -> List[Photo]:
        """
        Photos in collections the user owns, newest upload first.

        Args:
            db: Database session
            user_id: Owner whose gallery to list
            collection_id: Restrict to one collection

        Returns:
            List of Photo objects
        """
        query = (
            db.query(Photo)
            .join(CollectionOwner, CollectionOwner.collection_id == Photo.collection_id)
            .filter(CollectionOwner.user_id == user_id)
        )
        if collection_id is not None:
            query = query.filter(Photo.collection_id == collection_id)
        return query.order_by(Photo.uploaded_at.desc(), Photo.id.desc()).all()

    @staticmethod
    def create_photo(
        db: Session,
        title: str,
        file_name: str,
        file_type: str,
        file_path: str,
        collection_id: int,
        description: Optional[str] = None,
        is_liked: bool = False,
    ) -> Photo:
        photo = Photo(
            title=title,
            description=description,
            file_name=file_name,
            file_type=file_type,
            file_path=file_path,
            collection_id=collection_id,
            is_liked=is_liked,
        )
        db.add(photo)
        db.commit()
        db.refresh(photo)
        return photo

    @staticmethod
    def update_photo(db: Session, photo: Photo, changes: Dict[str, Any]) -> Photo:
        for field in ("title", "description", "is_liked", "collection_id"):
            if field in changes:
                setattr(photo, field, changes[field])
        db.commit()
        db.refresh(photo)
        return photo

    @staticmethod
    def toggle_like(db: Session, photo: Photo) -> Photo:
        photo.is_liked = not photo.is_liked
        db.commit()
        db.refresh(photo)
        return photo

    @staticmethod
    def delete_photo(db: Session, photo: Photo) -> str:
        """Delete the photo row and return its file name."""
        file_name = photo.file_name
        db.delete(photo)
        db.commit()
        return file_name


# Singleton instance
photo_service = PhotoService()
