from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from memri.database import Base


class Photo(Base):
    """Uploaded image belonging to a collection."""

    __tablename__ = "photos"

    id = Column(Integer, primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(64), nullable=False)
    file_path = Column(String(512), nullable=False)
    is_liked = Column(Boolean, default=False, nullable=False)
    collection_id = Column(
        Integer, ForeignKey("collections.id", ondelete="CASCADE"), index=True
    )
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    collection = relationship("Collection", back_populates="photos")
    comments = relationship(
        "Comment", back_populates="photo", cascade="all, delete-orphan"
    )
