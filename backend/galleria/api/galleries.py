"""Gallery endpoints"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from galleria.api.deps import AuthContext, get_image_store, optional_user, require_user
from galleria.database import get_db
from galleria.errors import Conflict, Forbidden, NotFound
from galleria.models.gallery import Gallery
from galleria.models.image import Image
from galleria.schemas.base import Page
from galleria.schemas.gallery import CoverImage, GalleryCreate, GalleryResponse
from galleria.utils.logger import logger
from galleria.utils.pagination import PageParams, page_params, paginate
from galleria.utils.storage import ImageStore

router = APIRouter(prefix="/api/galleries", tags=["galleries"])


def image_url(image: Image) -> str:
    return f"/api/galleries/{image.gallery_id}/images/{image.id}"


def _to_response(gallery: Gallery, db: Session, ctx: Optional[AuthContext]) -> GalleryResponse:
    """Convert ORM model to response schema, with cover image and image count"""
    latest = (
        db.query(Image)
        .filter(Image.gallery_id == gallery.id)
        .order_by(Image.created_at.desc(), Image.id.desc())
        .first()
    )
    image_count = db.query(func.count(Image.id)).filter(Image.gallery_id == gallery.id).scalar() or 0

    return GalleryResponse(
        id=gallery.id,
        name=gallery.name,
        user_id=gallery.user_id,
        owner=gallery.owner.username if gallery.owner else "Unknown",
        is_owner=ctx is not None and ctx.user_id == gallery.user_id,
        cover_image=CoverImage(id=latest.id, title=latest.title, url=image_url(latest)) if latest else None,
        image_count=image_count,
        created_at=gallery.created_at,
        updated_at=gallery.updated_at,
    )


@router.post("", response_model=GalleryResponse, status_code=status.HTTP_201_CREATED)
def create_gallery(
    gallery_data: GalleryCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_user),
):
    """
    Create a gallery owned by the caller.

    Gallery names are unique per owner.
    """
    gallery = Gallery(name=gallery_data.name, user_id=ctx.user_id)
    db.add(gallery)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(f"You already have a gallery named '{gallery_data.name}'")
    db.refresh(gallery)

    logger.info(
        f"Created gallery {gallery.id}",
        extra={"user_id": ctx.user_id, "action": "create_gallery"},
    )
    return _to_response(gallery, db, ctx)


@router.get("", response_model=Page[GalleryResponse])
def list_galleries(
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    ctx: Optional[AuthContext] = Depends(optional_user),
):
    """
    List galleries, newest first (cursor pagination).

    Query parameters:
    - limit: page size, 1-100 (default 10)
    - cursor: ``nextCursor`` from the previous page
    """
    query = db.query(Gallery).options(joinedload(Gallery.owner))
    page = paginate(query, Gallery, params)
    return Page[GalleryResponse](
        items=[_to_response(gallery, db, ctx) for gallery in page.items],
        next_cursor=page.next_cursor,
    )


@router.get("/{gallery_id}", response_model=GalleryResponse)
def get_gallery(
    gallery_id: int,
    db: Session = Depends(get_db),
    ctx: Optional[AuthContext] = Depends(optional_user),
):
    """Get a gallery by ID"""
    gallery = db.query(Gallery).filter(Gallery.id == gallery_id).first()
    if not gallery:
        raise NotFound(f"Gallery(id={gallery_id}) not found")
    return _to_response(gallery, db, ctx)


@router.delete("/{gallery_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_gallery(
    gallery_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_user),
    store: ImageStore = Depends(get_image_store),
):
    """
    Delete a gallery (owner only)

    Removes its images, their stored files and their comments.
    """
    gallery = db.query(Gallery).filter(Gallery.id == gallery_id).first()
    if not gallery:
        raise NotFound(f"Gallery(id={gallery_id}) not found")
    if gallery.user_id != ctx.user_id:
        raise Forbidden("You do not have permission to delete this gallery")

    filenames = [image.filename for image in gallery.images]
    db.delete(gallery)
    db.commit()

    for filename in filenames:
        store.delete(filename)

    logger.info(
        f"Deleted gallery {gallery_id}",
        extra={"user_id": ctx.user_id, "action": "delete_gallery"},
    )
    return None
