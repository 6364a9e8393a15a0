"""User listing and profile updates."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from memri.api.deps import get_file_service
from memri.database import get_db
from memri.models.user import User
from memri.schemas import UserOut
from memri.services.auth.base import AuthContext
from memri.services.auth.dependencies import get_current_user
from memri.services.file_service import FileService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=List[UserOut])
async def list_users(
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """All accounts, without credentials (used when sharing collections)."""
    return db.query(User).order_by(User.username).all()


@router.put("/profile")
async def update_profile(
    display_name: Optional[str] = Form(None, alias="displayName"),
    profile_picture: Optional[UploadFile] = File(None, alias="profilePicture"),
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
    files: FileService = Depends(get_file_service),
):
    """Update display name and/or profile picture."""
    user = db.get(User, auth.identity_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    if display_name is not None:
        display_name = display_name.strip()
        if not display_name:
            raise HTTPException(status_code=400, detail="Display name cannot be empty")
        user.display_name = display_name

    replaced_picture = None
    if profile_picture is not None:
        try:
            _file_name, file_path = await files.save_photo(profile_picture)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        replaced_picture = user.profile_picture
        user.profile_picture = file_path

    db.commit()
    db.refresh(user)

    if replaced_picture and replaced_picture.startswith("/uploads/"):
        files.delete_file(replaced_picture)
    logger.info("Updated profile for %s", user.username)

    return {"user": UserOut.model_validate(user)}
