import enum

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Enum,
    UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from memri.database import Base


class CollectionType(str, enum.Enum):
    NATURE = "nature"
    TRAVELS = "travels"
    FAVORITES = "favorites"
    CUSTOM = "custom"


class Collection(Base):
    """A date memory: a named group of photos shared by its owners."""

    __tablename__ = "collections"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(
        Enum(
            CollectionType,
            name="collection_type",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=CollectionType.CUSTOM,
    )
    # Creator; ownership is decided by collection_owners
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    owners = relationship(
        "CollectionOwner", back_populates="collection", cascade="all, delete-orphan"
    )
    photos = relationship(
        "Photo", back_populates="collection", cascade="all, delete-orphan"
    )


class CollectionOwner(Base):
    """Many-to-many link between a collection and the users allowed to edit it."""

    __tablename__ = "collection_owners"
    __table_args__ = (
        UniqueConstraint("collection_id", "user_id", name="uq_collection_owner"),
    )

    id = Column(Integer, primary_key=True)
    collection_id = Column(
        Integer,
        ForeignKey("collections.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    collection = relationship("Collection", back_populates="owners")
    user = relationship("User", back_populates="collection_links")
