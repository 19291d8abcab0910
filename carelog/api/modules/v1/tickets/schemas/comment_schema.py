from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1)
    is_internal: bool = False


class CommentResponse(BaseModel):
    id: UUID
    ticket_id: UUID
    user_id: UUID
    comment: str
    is_internal: bool
    created_at: datetime
    author_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AttachmentCreate(BaseModel):
    """Metadata of a file already uploaded to blob storage."""

    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=1024)
    file_type: Optional[str] = Field(None, max_length=100)
    file_size: Optional[int] = Field(None, ge=0)


class AttachmentResponse(BaseModel):
    id: UUID
    ticket_id: UUID
    uploaded_by: UUID
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
