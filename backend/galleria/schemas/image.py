"""Image schemas"""
from datetime import datetime

from galleria.schemas.base import APIModel


class ImageResponse(APIModel):
    """Image metadata; ``image_url`` serves the file itself"""

    id: int
    title: str
    author: str
    user_id: int
    gallery_id: int
    mimetype: str
    size: int
    image_url: str
    created_at: datetime
