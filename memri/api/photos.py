"""API endpoints for photos, likes and photo comments."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from sqlalchemy.orm import Session

from memri.api.deps import get_file_service, get_retry_policy
from memri.database import get_db
from memri.schemas import CommentCreate, CommentOut, PhotoOut, PhotoUpdate
from memri.services.auth.base import AuthContext
from memri.services.auth.dependencies import get_current_user
from memri.services.comment_service import comment_service
from memri.services.file_service import FileService
from memri.services.ownership import get_owned_collection, get_owned_photo
from memri.services.photo_service import photo_service
from memri.services.retry import RetryPolicy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/photos", tags=["photos"])


@router.get("", response_model=List[PhotoOut])
async def list_photos(
    collection_id: Optional[int] = Query(None, alias="collectionId"),
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    retry: RetryPolicy = Depends(get_retry_policy),
):
    """Photos in the user's collections, optionally narrowed to one collection."""
    if collection_id is not None:
        get_owned_collection(db, collection_id, auth.identity_id)

    return await retry.run(
        lambda: photo_service.list_for_user(db, auth.identity_id, collection_id),
        on_retry=db.rollback,
    )


@router.post("", response_model=PhotoOut, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    photo: Optional[UploadFile] = File(None),
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    collection_id: Optional[int] = Form(None, alias="collectionId"),
    is_liked: bool = Form(False, alias="isLiked"),
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    files: FileService = Depends(get_file_service),
    retry: RetryPolicy = Depends(get_retry_policy),
):
    """Upload a single photo into a collection the user owns."""
    if photo is None:
        raise HTTPException(status_code=400, detail="No file uploaded")
    if collection_id is None:
        raise HTTPException(status_code=400, detail="Collection is required")

    get_owned_collection(db, collection_id, auth.identity_id, action="upload to")

    try:
        file_name, file_path = await files.save_photo(photo)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        created = await retry.run(
            lambda: photo_service.create_photo(
                db,
                title=(title or "").strip() or photo.filename or file_name,
                file_name=file_name,
                file_type=photo.content_type,
                file_path=file_path,
                collection_id=collection_id,
                description=description,
                is_liked=is_liked,
            ),
            on_retry=db.rollback,
        )
    except Exception:
        db.rollback()
        files.delete_file(file_name)
        raise

    logger.info("Photo %s uploaded to collection %s by %s", created.id, collection_id, auth.display_label)
    return created


@router.get("/{photo_id}", response_model=PhotoOut)
async def get_photo(
    photo_id: int,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return get_owned_photo(db, photo_id, auth.identity_id)


@router.put("/{photo_id}", response_model=PhotoOut)
async def update_photo(
    photo_id: int,
    payload: PhotoUpdate,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Edit photo metadata. Moving it requires owning the target collection too."""
    photo = get_owned_photo(db, photo_id, auth.identity_id, action="update")
    changes = payload.model_dump(exclude_unset=True)

    if "title" in changes and changes["title"] is None:
        raise HTTPException(status_code=400, detail="Title cannot be empty")
    if "is_liked" in changes and changes["is_liked"] is None:
        del changes["is_liked"]

    target = changes.get("collection_id")
    if "collection_id" in changes:
        if target is None:
            raise HTTPException(status_code=400, detail="Collection is required")
        if target != photo.collection_id:
            get_owned_collection(db, target, auth.identity_id, action="move photos to")

    return photo_service.update_photo(db, photo, changes)


@router.delete("/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(
    photo_id: int,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    files: FileService = Depends(get_file_service),
):
    photo = get_owned_photo(db, photo_id, auth.identity_id, action="delete")
    file_name = photo_service.delete_photo(db, photo)
    files.delete_file(file_name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{photo_id}/like", response_model=PhotoOut)
async def toggle_like(
    photo_id: int,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    photo = get_owned_photo(db, photo_id, auth.identity_id, action="like")
    return photo_service.toggle_like(db, photo)


# =============================================================================
# Comments
# =============================================================================


@router.get("/{photo_id}/comments", response_model=List[CommentOut])
async def list_comments(
    photo_id: int,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_owned_photo(db, photo_id, auth.identity_id)
    return comment_service.list_for_photo(db, photo_id)


@router.post("/{photo_id}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
async def add_comment(
    photo_id: int,
    payload: CommentCreate,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_owned_photo(db, photo_id, auth.identity_id, action="comment on")
    if not payload.content.strip():
        raise HTTPException(status_code=400, detail="Comment cannot be empty")

    return comment_service.create_comment(db, photo_id, auth.identity_id, payload.content)
