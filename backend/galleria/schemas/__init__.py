"""Pydantic schemas for request/response validation"""
from galleria.schemas.auth import Credentials, MeResponse, TokenResponse
from galleria.schemas.base import MessageResponse, Page
from galleria.schemas.comment import CommentCreate, CommentResponse
from galleria.schemas.gallery import CoverImage, GalleryCreate, GalleryResponse
from galleria.schemas.image import ImageResponse

__all__ = [
    "Credentials",
    "MeResponse",
    "TokenResponse",
    "MessageResponse",
    "Page",
    "CommentCreate",
    "CommentResponse",
    "CoverImage",
    "GalleryCreate",
    "GalleryResponse",
    "ImageResponse",
]
