"""Comment endpoints"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session, joinedload

from galleria.api.deps import AuthContext, optional_user, require_user
from galleria.database import get_db
from galleria.errors import Forbidden, NotFound, Unauthorized
from galleria.models.comment import Comment
from galleria.models.image import Image
from galleria.schemas.base import Page
from galleria.schemas.comment import CommentCreate, CommentResponse
from galleria.utils.logger import logger
from galleria.utils.pagination import PageParams, page_params, paginate

router = APIRouter(prefix="/api/comments", tags=["comments"])


def _get_image(db: Session, image_id: int) -> Image:
    image = db.query(Image).options(joinedload(Image.gallery)).filter(Image.id == image_id).first()
    if not image:
        raise NotFound(f"Image(id={image_id}) not found")
    return image


def _can_delete(comment: Comment, gallery_owner_id: int, user_id: Optional[int]) -> bool:
    """Comment authors and the owner of the image's gallery may delete a comment"""
    return user_id is not None and user_id in (comment.user_id, gallery_owner_id)


def _to_response(comment: Comment, gallery_owner_id: int, ctx: Optional[AuthContext]) -> CommentResponse:
    user_id = ctx.user_id if ctx else None
    return CommentResponse(
        id=comment.id,
        image_id=comment.image_id,
        user_id=comment.user_id,
        author=comment.author.username if comment.author else "Unknown",
        content=comment.content,
        created_at=comment.created_at,
        is_own_comment=user_id is not None and comment.user_id == user_id,
        can_delete=_can_delete(comment, gallery_owner_id, user_id),
    )


@router.post("/{image_id}", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def create_comment(
    image_id: int,
    comment_data: CommentCreate,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_user),
):
    """Leave a comment on an image"""
    image = _get_image(db, image_id)

    comment = Comment(content=comment_data.content, user_id=ctx.user_id, image_id=image.id)
    db.add(comment)
    db.commit()
    db.refresh(comment)

    logger.info(
        f"Created comment {comment.id} on image {image_id}",
        extra={"user_id": ctx.user_id, "action": "create_comment"},
    )
    return _to_response(comment, image.gallery.user_id, ctx)


@router.get("/{image_id}", response_model=Page[CommentResponse])
def list_comments(
    image_id: int,
    params: PageParams = Depends(page_params),
    db: Session = Depends(get_db),
    ctx: Optional[AuthContext] = Depends(optional_user),
):
    """
    List an image's comments, newest first (cursor pagination)

    Comments are visible to signed-in users only. A missing image is
    reported before the missing credential.
    """
    image = _get_image(db, image_id)
    if ctx is None:
        raise Unauthorized("Sign in to view comments")

    query = db.query(Comment).options(joinedload(Comment.author)).filter(Comment.image_id == image_id)
    page = paginate(query, Comment, params)
    owner_id = image.gallery.user_id
    return Page[CommentResponse](
        items=[_to_response(comment, owner_id, ctx) for comment in page.items],
        next_cursor=page.next_cursor,
    )


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    ctx: AuthContext = Depends(require_user),
):
    """Delete a comment (its author or the gallery owner)"""
    comment = (
        db.query(Comment)
        .options(joinedload(Comment.image).joinedload(Image.gallery))
        .filter(Comment.id == comment_id)
        .first()
    )
    if not comment:
        raise NotFound(f"Comment(id={comment_id}) not found")

    if not _can_delete(comment, comment.image.gallery.user_id, ctx.user_id):
        raise Forbidden("You don't have permission to delete this comment")

    db.delete(comment)
    db.commit()

    logger.info(
        f"Deleted comment {comment_id}",
        extra={"user_id": ctx.user_id, "action": "delete_comment"},
    )
    return None
