"""User model"""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from galleria.database import Base
from galleria.utils.timestamps import utcnow_ms


class User(Base):
    """User model - an account that owns galleries, images and comments"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)  # bcrypt
    created_at = Column(DateTime, default=utcnow_ms, nullable=False)
    updated_at = Column(DateTime, default=utcnow_ms, onupdate=utcnow_ms, nullable=False)

    # Relationships
    galleries = relationship("Gallery", back_populates="owner", cascade="all, delete-orphan")
    images = relationship("Image", back_populates="author", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="author", cascade="all, delete-orphan")
