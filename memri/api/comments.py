"""Comment deletion (comments are created and listed under /api/photos)."""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from memri.database import get_db
from memri.models.comment import Comment
from memri.services.auth.base import AuthContext
from memri.services.auth.dependencies import get_current_user
from memri.services.comment_service import comment_service

router = APIRouter(prefix="/api/comments", tags=["comments"])


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: int,
    auth: AuthContext = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Only the author may delete a comment."""
    comment = db.get(Comment, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    if comment.user_id != auth.identity_id:
        raise HTTPException(status_code=403, detail="Not authorized to delete this comment")

    comment_service.delete_comment(db, comment)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
