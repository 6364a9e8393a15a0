"""
Database models for Memri.

Import all models here so metadata.create_all sees every table.
"""

from memri.database import Base
from memri.models.user import User
from memri.models.session import Session
from memri.models.collection import Collection, CollectionOwner, CollectionType
from memri.models.photo import Photo
from memri.models.comment import Comment

__all__ = [
    "Base",
    "User",
    "Session",
    "Collection",
    "CollectionOwner",
    "CollectionType",
    "Photo",
    "Comment",
]
