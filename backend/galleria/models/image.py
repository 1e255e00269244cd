"""Image model"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from galleria.database import Base
from galleria.utils.timestamps import utcnow_ms


class Image(Base):
    """Image model - metadata for an uploaded file; the bytes live in the image store"""

    __tablename__ = "images"
    __table_args__ = (
        UniqueConstraint("title", "gallery_id", "user_id", name="uq_images_title_gallery_user"),
        Index("ix_images_gallery_created_id", "gallery_id", "created_at", "id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    filename = Column(String(255), unique=True, nullable=False)  # name inside UPLOAD_DIR
    original_name = Column(String(255), nullable=True)
    mimetype = Column(String(100), nullable=False)
    size = Column(Integer, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    gallery_id = Column(Integer, ForeignKey("galleries.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow_ms, nullable=False)

    # Relationships
    author = relationship("User", back_populates="images")
    gallery = relationship("Gallery", back_populates="images")
    comments = relationship("Comment", back_populates="image", cascade="all, delete-orphan")
