"""Business logic for photo comments."""
from typing import List

from sqlalchemy.orm import Session

from memri.models.comment import Comment


class CommentService:
    """Service for comment-related operations."""

    @staticmethod
    def list_for_photo(db: Session, photo_id: int) -> List[Comment]:
        """Comments on a photo, oldest first."""
        return (
            db.query(Comment)
            .filter(Comment.photo_id == photo_id)
            .order_by(Comment.created_at.asc(), Comment.id.asc())
            .all()
        )

    @staticmethod
    def create_comment(db: Session, photo_id: int, user_id: int, content: str) -> Comment:
        comment = Comment(photo_id=photo_id, user_id=user_id, content=content.strip())
        db.add(comment)
        db.commit()
        db.refresh(comment)
        return comment

    @staticmethod
    def delete_comment(db: Session, comment: Comment) -> None:
        db.delete(comment)
        db.commit()


# Singleton instance
comment_service = CommentService()
