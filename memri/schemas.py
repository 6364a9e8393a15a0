"""
Pydantic request/response models for the JSON API.

Responses use camelCase keys to match what the web client expects; request
bodies accept either camelCase or snake_case.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from memri.models.collection import CollectionType


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


# --- Auth ---


class LoginRequest(ApiModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class UserOut(ApiModel):
    """Account as exposed to clients; never carries the password hash."""

    id: int
    username: str
    display_name: str
    profile_picture: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginResponse(ApiModel):
    user: UserOut
    session_token: str


class ChangePasswordRequest(ApiModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8)


class SessionOut(ApiModel):
    token_prefix: str
    current: bool
    expires_at: datetime
    created_at: datetime
    updated_at: datetime


# --- Collections ---


class CollectionOut(ApiModel):
    id: int
    name: str
    description: Optional[str] = None
    type: CollectionType
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None


class CollectionUpdate(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[CollectionType] = None


class OwnerAdd(ApiModel):
    username: str = Field(min_length=1)


# --- Photos ---


class PhotoOut(ApiModel):
    id: int
    title: str
    description: Optional[str] = None
    file_name: str
    file_type: str
    file_path: str
    is_liked: bool
    collection_id: Optional[int] = None
    uploaded_at: Optional[datetime] = None


class PhotoUpdate(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_liked: Optional[bool] = None
    collection_id: Optional[int] = None


# --- Comments ---


class CommentCreate(ApiModel):
    content: str = Field(min_length=1, max_length=2000)


class CommentOut(ApiModel):
    id: int
    content: str
    photo_id: int
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
