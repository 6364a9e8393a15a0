"""API endpoints for collections (date memories)."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session

from memri.api.deps import get_file_service, get_retry_policy
from memri.database import get_db
from memri.models.collection import CollectionType
from memri.models.user import User
from memri.schemas import CollectionOut, CollectionUpdate, OwnerAdd
from memri.services.auth.base import AuthContext
from memri.services.auth.dependencies import get_current_user
from memri.services.collection_service import collection_service
from memri.services.file_service import FileService
from memri.services.ownership import get_owned_collection
from memri.services.photo_service import photo_service
from memri.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/collections", tags=["collections"])


@router.get("", response_model=List[CollectionOut])
async def list_collections(
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    retry: RetryPolicy = Depends(get_retry_policy),
):
    """Collections the current user owns."""
    return await retry.run(
        lambda: collection_service.list_for_user(db, auth.identity_id),
        on_retry=db.rollback,
    )


@router.post("", response_model=CollectionOut, status_code=status.HTTP_201_CREATED)
async def create_collection(
    name: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    collection_type: str = Form(CollectionType.CUSTOM.value, alias="type"),
    photos: List[UploadFile] = File(default=[], alias="photo"),
    photo_titles: List[str] = Form(default=[], alias="photoTitle"),
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    files: FileService = Depends(get_file_service),
    retry: RetryPolicy = Depends(get_retry_policy),
):
    """
    Create a collection, optionally with an initial batch of photos.

    Every upload is validated and stored before anything is written to the
    database, so a bad file leaves no half-created collection behind.
    """
    if not name or not name.strip():
        raise HTTPException(status_code=400, detail="Name is required")

    try:
        kind = CollectionType(collection_type or CollectionType.CUSTOM.value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid collection type: {collection_type}")

    logger.info("Creating collection for user %s (%s)", auth.display_label, auth.identity_id)

    saved = []
    try:
        for upload in photos:
            file_name, file_path = await files.save_photo(upload)
            saved.append((upload, file_name, file_path))
    except ValueError as e:
        for _upload, file_name, _path in saved:
            files.delete_file(file_name)
        raise HTTPException(status_code=400, detail=str(e))

    # Files whose photo row is not committed yet
    pending = [file_name for _upload, file_name, _path in saved]
    try:
        collection = await retry.run(
            lambda: collection_service.create_collection(
                db, auth.identity_id, name.strip(), description, kind
            ),
            on_retry=db.rollback,
        )
        logger.info("Collection created successfully: %s", collection.id)

        for i, (upload, file_name, file_path) in enumerate(saved):
            title = photo_titles[i] if i < len(photo_titles) and photo_titles[i] else upload.filename
            await retry.run(
                lambda: photo_service.create_photo(
                    db,
                    title=title or file_name,
                    file_name=file_name,
                    file_type=upload.content_type,
                    file_path=file_path,
                    collection_id=collection.id,
                ),
                on_retry=db.rollback,
            )
            pending.remove(file_name)
            logger.info("Photo %d/%d saved successfully", i + 1, len(saved))
    except Exception:
        db.rollback()
        for file_name in pending:
            files.delete_file(file_name)
        raise

    return collection


@router.get("/{collection_id}", response_model=CollectionOut)
async def get_collection(
    collection_id: int,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_owned_collection(db, collection_id, auth.identity_id)


@router.put("/{collection_id}", response_model=CollectionOut)
async def update_collection(
    collection_id: int,
    payload: CollectionUpdate,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Rename or re-describe a collection (owners only)."""
    collection = get_owned_collection(db, collection_id, auth.identity_id, action="update")
    changes = payload.model_dump(exclude_unset=True)
    if "name" in changes and changes["name"] is None:
        raise HTTPException(status_code=400, detail="Name cannot be empty")
    if "type" in changes and changes["type"] is None:
        raise HTTPException(status_code=400, detail="Type cannot be empty")
    return collection_service.update_collection(db, collection, changes)


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collection(
    collection_id: int,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    files: FileService = Depends(get_file_service),
):
    """Delete a collection, its photos and their files (owners only)."""
    collection = get_owned_collection(db, collection_id, auth.identity_id, action="delete")

    for file_name in collection_service.delete_collection(db, collection):
        files.delete_file(file_name)

    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{collection_id}/owners", response_model=CollectionOut)
async def add_collection_owner(
    collection_id: int,
    payload: OwnerAdd,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Share a collection with another user."""
    collection = get_owned_collection(db, collection_id, auth.identity_id, action="share")

    other = db.query(User).filter(User.username == payload.username).first()
    if not other:
        raise HTTPException(status_code=404, detail="User not found")

    collection_service.add_owner(db, collection, other.id)
    return collection
