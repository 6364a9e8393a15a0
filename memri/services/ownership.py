"""Authorization checks for mutating collections and the photos inside them."""
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from memri.models.collection import Collection, CollectionOwner
from memri.models.photo import Photo


def is_owner(db: Session, collection_id: int, user_id: int) -> bool:
    """
    Whether ``user_id`` is an owner of ``collection_id``.

    False for a missing collection as well as for a missing ownership row;
    callers that need to tell 404 from 403 check existence first.
    """
    return (
        db.query(CollectionOwner.id)
        .filter(
            CollectionOwner.collection_id == collection_id,
            CollectionOwner.user_id == user_id,
        )
        .first()
        is not None
    )


def get_owned_collection(db: Session, collection_id: int, user_id: int, action: str = "access") -> Collection:
    """
    Load a collection the user owns.

    Raises:
        HTTPException: 404 if the collection does not exist, 403 if the user
            is not one of its owners
    """
    collection = db.get(Collection, collection_id)
    if not collection:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Collection not found")

    if not is_owner(db, collection_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {action} this collection",
        )
    return collection


def get_owned_photo(db: Session, photo_id: int, user_id: int, action: str = "access") -> Photo:
    """Load a photo whose collection the user owns (404 before 403)."""
    photo = db.get(Photo, photo_id)
    if not photo:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Photo not found")

    if photo.collection_id is None or not is_owner(db, photo.collection_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Not authorized to {action} this photo",
        )
    return photo
