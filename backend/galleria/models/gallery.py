"""Gallery model"""
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from galleria.database import Base
from galleria.utils.timestamps import utcnow_ms


class Gallery(Base):
    """Gallery model - a named collection of images owned by one user"""

    __tablename__ = "galleries"
    __table_args__ = (
        UniqueConstraint("name", "user_id", name="uq_galleries_name_user"),
        Index("ix_galleries_created_id", "created_at", "id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow_ms, nullable=False)
    updated_at = Column(DateTime, default=utcnow_ms, onupdate=utcnow_ms, nullable=False)

    # Relationships
    owner = relationship("User", back_populates="galleries")
    images = relationship("Image", back_populates="gallery", cascade="all, delete-orphan")
