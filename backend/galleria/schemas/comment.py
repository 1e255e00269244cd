"""Comment schemas"""
from datetime import datetime

from pydantic import BaseModel, Field

from galleria.schemas.base import APIModel


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000, description="Comment text")


class CommentResponse(APIModel):
    id: int
    image_id: int
    user_id: int
    author: str
    content: str
    created_at: datetime
    is_own_comment: bool = False
    can_delete: bool = False
