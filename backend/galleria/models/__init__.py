"""Database models"""
from galleria.models.comment import Comment
from galleria.models.gallery import Gallery
from galleria.models.image import Image
from galleria.models.refresh_token import RefreshToken
from galleria.models.revoked_token import RevokedToken
from galleria.models.user import User

__all__ = ["Comment", "Gallery", "Image", "RefreshToken", "RevokedToken", "User"]
