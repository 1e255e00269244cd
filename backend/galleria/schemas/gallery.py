"""Gallery schemas"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from galleria.schemas.base import APIModel


class GalleryCreate(BaseModel):
    """Schema for creating a gallery"""

    name: str = Field(..., min_length=1, max_length=255, description="Gallery name")


class CoverImage(APIModel):
    id: int
    title: str
    url: str


class GalleryResponse(APIModel):
    """Gallery with owner and cover details"""

    id: int
    name: str
    user_id: int
    owner: str
    is_owner: bool
    cover_image: Optional[CoverImage] = None
    image_count: int
    created_at: datetime
    updated_at: datetime
