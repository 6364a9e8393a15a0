from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from memri.database import Base


class User(Base):
    """Account that owns collections and logs in with a username."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=False)
    profile_picture = Column(String(512), nullable=True)  # URL path under /uploads
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    # Relationships
    sessions = relationship(
        "Session", back_populates="user", cascade="all, delete-orphan"
    )
    collection_links = relationship(
        "CollectionOwner", back_populates="user", cascade="all, delete-orphan"
    )
    comments = relationship("Comment", back_populates="user")
