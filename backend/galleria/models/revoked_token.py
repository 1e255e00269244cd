"""RevokedToken model: jti blacklist for the database revocation backend"""
from sqlalchemy import Column, DateTime, Integer, String

from galleria.database import Base
from galleria.utils.timestamps import utcnow_ms


class RevokedToken(Base):
    """Stores revoked access-token IDs (jti claims).

    Only used when REVOCATION_BACKEND=database. expires_at mirrors the token's
    original exp so the sweep can drop rows that no longer matter.
    """

    __tablename__ = "revoked_tokens"

    id = Column(Integer, primary_key=True, index=True)
    jti = Column(String(36), unique=True, nullable=False, index=True)
    revoked_at = Column(DateTime, default=utcnow_ms, nullable=False)
    expires_at = Column(DateTime, nullable=True, index=True)
