"""Comment model"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from galleria.database import Base
from galleria.utils.timestamps import utcnow_ms


class Comment(Base):
    """Comment model - free text left by a user on an image"""

    __tablename__ = "comments"
    __table_args__ = (
        Index("ix_comments_image_created_id", "image_id", "created_at", "id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    content = Column(Text, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    image_id = Column(Integer, ForeignKey("images.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow_ms, nullable=False)

    # Relationships
    author = relationship("User", back_populates="comments")
    image = relationship("Image", back_populates="comments")
