"""Image endpoints, nested under a gallery"""
import os
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from galleria.api.deps import AuthContext, get_image_store, optional_user, require_user
from galleria.api.galleries import image_url
from galleria.config import settings
from galleria.database import get_db
from galleria.errors import Conflict, Forbidden, NotFound, UnprocessableInput
from galleria.models.gallery import Gallery
from galleria.models.image import Image
from galleria.schemas.base import Page
from galleria.schemas.image import ImageResponse
from galleria.utils.logger import logger
from galleria.utils.pagination import PageParams, page_params, paginate
from galleria.utils.storage import ImageStore

router = APIRouter(prefix="/api/galleries/{gallery_id}/images", tags=["images"])


def _to_response(image: Image) -> ImageResponse:
    return ImageResponse(
        id=image.id,
        title=image.title,
        author=image.author.username if image.author else "Unknown",
        user_id=image.user_id,
        gallery_id=image.gallery_id,
        mimetype=image.mimetype,
        size=image.size,
        image_url=image_url(image),
        created_at=image.created_at,
    )


def _get_gallery(db: Session, gallery_id: int) -> Gallery:
    gallery = db.query(Gallery).filter(Gallery.id == gallery_id).first()
    if not gallery:
        raise NotFound(f"Gallery(id={gallery_id}) not found")
    return gallery


def _is_allowed_image(upload: UploadFile) -> bool:
    """Accept JPEG and PNG only, judged by both content type and extension"""
    ext = os.path.splitext(upload.filename or "")[1].lower()
    return upload.content_type in settings.ALLOWED_IMAGE_TYPES and ext in settings.ALLOWED_IMAGE_EXTENSIONS


@router.post("", response_model=ImageResponse, status_code=status.HTTP_201_CREATED)
def upload_image(
    gallery_id: int,
    title: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_user),
    store: ImageStore = Depends(get_image_store),
):
    """
    Upload an image into a gallery (gallery owner only)

    Multipart form fields:
    - title: image title, unique within the gallery
    - file: a .jpeg/.jpg/.png file
    """
    gallery = _get_gallery(db, gallery_id)
    if gallery.user_id != ctx.user_id:
        raise Forbidden("You don't have permission to add images to this gallery")

    if not title or not title.strip():
        raise UnprocessableInput("Invalid input parameters. Expected title")
    if file is None or not file.filename:
        raise UnprocessableInput("Invalid input parameters. Expected file")
    if not _is_allowed_image(file):
        raise UnprocessableInput("Only image files (.jpeg, .jpg, .png) are allowed")

    duplicate = db.query(Image.id).filter(
        Image.gallery_id == gallery_id,
        Image.user_id == ctx.user_id,
        Image.title == title,
    ).first()
    if duplicate:
        raise Conflict("An image with this title already exists")

    filename, size = store.save(file.file, file.filename)

    image = Image(
        title=title,
        filename=filename,
        original_name=file.filename,
        mimetype=file.content_type,
        size=size,
        user_id=ctx.user_id,
        gallery_id=gallery_id,
    )
    db.add(image)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        store.delete(filename)
        raise Conflict("An image with this title already exists")
    db.refresh(image)

    logger.info(
        f"Uploaded image {image.id} to gallery {gallery_id}",
        extra={"user_id": ctx.user_id, "action": "upload_image"},
    )
    return _to_response(image)


@router.get("", response_model=Page[ImageResponse])
def list_images(
    gallery_id: int,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    ctx: Optional[AuthContext] = Depends(optional_user),
):
    """List a gallery's images, newest first (cursor pagination)"""
    _get_gallery(db, gallery_id)

    query = db.query(Image).options(joinedload(Image.author)).filter(Image.gallery_id == gallery_id)
    page = paginate(query, Image, params)
    return Page[ImageResponse](
        items=[_to_response(image) for image in page.items],
        next_cursor=page.next_cursor,
    )


@router.get("/{image_id}")
def get_image_file(
    gallery_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    ctx: Optional[AuthContext] = Depends(optional_user),
    store: ImageStore = Depends(get_image_store),
):
    """Serve the stored image file with its original content type"""
    _get_gallery(db, gallery_id)

    image = db.query(Image).filter(Image.id == image_id, Image.gallery_id == gallery_id).first()
    if not image:
        raise NotFound(f"Image(id={image_id}) not found in gallery(id={gallery_id})")
    if not store.exists(image.filename):
        raise NotFound("Image file not found on server")

    return FileResponse(store.path(image.filename), media_type=image.mimetype)


@router.delete("/{image_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_image(
    gallery_id: int,
    image_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_user),
    store: ImageStore = Depends(get_image_store),
):
    """Delete an image and its stored file (gallery owner only)"""
    gallery = _get_gallery(db, gallery_id)
    if gallery.user_id != ctx.user_id:
        raise Forbidden("You don't have permission to delete images from this gallery")

    image = db.query(Image).filter(Image.id == image_id, Image.gallery_id == gallery_id).first()
    if not image:
        raise NotFound(f"Image(id={image_id}) not found in gallery(id={gallery_id})")

    filename = image.filename
    db.delete(image)
    db.commit()
    store.delete(filename)

    logger.info(
        f"Deleted image {image_id}",
        extra={"user_id": ctx.user_id, "action": "delete_image"},
    )
    return None
