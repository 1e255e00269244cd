"""RefreshToken model: registry of refresh tokens still valid for rotation"""
from sqlalchemy import Column, DateTime, Integer, String

from galleria.database import Base
from galleria.utils.timestamps import utcnow_ms


class RefreshToken(Base):
    """One row per refresh token that may still be exchanged.

    Only the SHA-256 of the token is stored. Rows are deleted on rotation and
    on sign-out, so presence in this table is what makes a refresh token usable.
    Rows whose token expired without ever being used are pruned on sign-out.
    """

    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow_ms, nullable=False)
    expires_at = Column(DateTime, nullable=True, index=True)
