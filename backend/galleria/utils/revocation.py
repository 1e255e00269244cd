"""Revocation store: revoked access-token jtis and the refresh-token registry.

Two sets are kept side by side:

- **blacklist**: jti values rejected at verification time regardless of
  signature validity.  ``sweep()`` only does work once the set has grown past
  ``sweep_threshold``; it first drops entries whose token has expired anyway,
  and if the set is still over the threshold it clears it entirely.  A full
  clear can un-revoke a token that has not yet expired, but access tokens
  are short-lived so that window is bounded by the access-token lifetime.
- **refresh registry**: refresh tokens that may still be exchanged.  A
  refresh token with a valid signature is useless unless it is present here;
  rotation and sign-out remove it, and sign-out also prunes entries whose
  token expired without ever being exchanged.

Both an in-memory implementation (default, one per application instance) and
a database-backed one (``REVOCATION_BACKEND=database``) are provided with the
same method names, so the auth gate and the session flows never care which
one they hold.  Handlers run in FastAPI's threadpool, so the in-memory sets
are guarded by a lock.
"""
import hashlib
import threading
from datetime import datetime
from typing import Callable, Dict, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from galleria.models.refresh_token import RefreshToken
from galleria.models.revoked_token import RevokedToken
from galleria.utils.logger import logger
from galleria.utils.timestamps import utcnow_ms

DEFAULT_SWEEP_THRESHOLD = 1000


def hash_token(token: str) -> str:
    """SHA-256 of a token string, used as the registry lookup key"""
    return hashlib.sha256(token.encode()).hexdigest()


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class MemoryBlacklist:
    """Thread-safe in-process jti blacklist"""

    def __init__(self, sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD):
        self.sweep_threshold = sweep_threshold
        self._revoked: Dict[str, Optional[datetime]] = {}  # jti -> token exp
        self._lock = threading.Lock()

    def add(self, jti: str, expires_at: Optional[datetime] = None) -> None:
        with self._lock:
            self._revoked[jti] = expires_at

    def contains(self, jti: str) -> bool:
        with self._lock:
            return jti in self._revoked

    def __contains__(self, jti: str) -> bool:
        return self.contains(jti)

    def __len__(self) -> int:
        with self._lock:
            return len(self._revoked)

    def sweep(self) -> int:
        """Shrink the blacklist once it exceeds the threshold. Returns entries removed."""
        with self._lock:
            before = len(self._revoked)
            if before <= self.sweep_threshold:
                return 0

            now = utcnow_ms()
            expired = [jti for jti, exp in self._revoked.items() if exp is not None and exp <= now]
            for jti in expired:
                del self._revoked[jti]

            if len(self._revoked) > self.sweep_threshold:
                self._revoked.clear()

            removed = before - len(self._revoked)

        logger.info(
            f"Blacklist sweep removed {removed} of {before} entries",
            extra={"action": "blacklist_sweep"},
        )
        return removed


class MemoryRefreshRegistry:
    """Thread-safe in-process set of refresh tokens valid for rotation"""

    def __init__(self) -> None:
        self._tokens: Dict[str, Optional[datetime]] = {}  # token -> token exp
        self._lock = threading.Lock()

    def add(self, token: str, expires_at: Optional[datetime] = None) -> None:
        with self._lock:
            self._tokens[token] = expires_at

    def remove(self, token: str) -> bool:
        """Remove ``token``. Returns False if it was not registered."""
        with self._lock:
            if token not in self._tokens:
                return False
            del self._tokens[token]
            return True

    def contains(self, token: str) -> bool:
        with self._lock:
            return token in self._tokens

    def __contains__(self, token: str) -> bool:
        return self.contains(token)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)

    def prune(self) -> int:
        """Forget tokens that expired without being rotated. Returns entries removed."""
        with self._lock:
            now = utcnow_ms()
            expired = [token for token, exp in self._tokens.items() if exp is not None and exp <= now]
            for token in expired:
                del self._tokens[token]

        if expired:
            logger.info(
                f"Refresh registry prune removed {len(expired)} expired tokens",
                extra={"action": "refresh_prune"},
            )
        return len(expired)


# ---------------------------------------------------------------------------
# Database backend
# ---------------------------------------------------------------------------

class DatabaseBlacklist:
    """jti blacklist persisted in the ``revoked_tokens`` table"""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
    ):
        self.session_factory = session_factory
        self.sweep_threshold = sweep_threshold

    def add(self, jti: str, expires_at: Optional[datetime] = None) -> None:
        with self.session_factory() as db:
            if db.query(RevokedToken.id).filter(RevokedToken.jti == jti).first():
                return
            db.add(RevokedToken(jti=jti, expires_at=expires_at))
            try:
                db.commit()
            except IntegrityError:
                # Concurrent revocation of the same jti already landed
                db.rollback()

    def contains(self, jti: str) -> bool:
        with self.session_factory() as db:
            return db.query(RevokedToken.id).filter(RevokedToken.jti == jti).first() is not None

    def __contains__(self, jti: str) -> bool:
        return self.contains(jti)

    def __len__(self) -> int:
        with self.session_factory() as db:
            return db.query(func.count(RevokedToken.id)).scalar() or 0

    def sweep(self) -> int:
        with self.session_factory() as db:
            before = db.query(func.count(RevokedToken.id)).scalar() or 0
            if before <= self.sweep_threshold:
                return 0

            db.query(RevokedToken).filter(
                RevokedToken.expires_at.isnot(None),
                RevokedToken.expires_at <= utcnow_ms(),
            ).delete(synchronize_session=False)

            remaining = db.query(func.count(RevokedToken.id)).scalar() or 0
            if remaining > self.sweep_threshold:
                db.query(RevokedToken).delete(synchronize_session=False)
                remaining = 0
            db.commit()

        removed = before - remaining
        logger.info(
            f"Blacklist sweep removed {removed} of {before} entries",
            extra={"action": "blacklist_sweep"},
        )
        return removed


class DatabaseRefreshRegistry:
    """Refresh registry persisted in the ``refresh_tokens`` table (hashed)"""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def add(self, token: str, expires_at: Optional[datetime] = None) -> None:
        with self.session_factory() as db:
            db.add(RefreshToken(token_hash=hash_token(token), expires_at=expires_at))
            try:
                db.commit()
            except IntegrityError:
                db.rollback()

    def remove(self, token: str) -> bool:
        """Delete the row for ``token``; only one concurrent caller can see True."""
        with self.session_factory() as db:
            deleted = (
                db.query(RefreshToken)
                .filter(RefreshToken.token_hash == hash_token(token))
                .delete(synchronize_session=False)
            )
            db.commit()
            return deleted > 0

    def contains(self, token: str) -> bool:
        with self.session_factory() as db:
            row = db.query(RefreshToken.id).filter(RefreshToken.token_hash == hash_token(token)).first()
            return row is not None

    def __contains__(self, token: str) -> bool:
        return self.contains(token)

    def __len__(self) -> int:
        with self.session_factory() as db:
            return db.query(func.count(RefreshToken.id)).scalar() or 0

    def prune(self) -> int:
        with self.session_factory() as db:
            removed = db.query(RefreshToken).filter(
                RefreshToken.expires_at.isnot(None),
                RefreshToken.expires_at <= utcnow_ms(),
            ).delete(synchronize_session=False)
            db.commit()

        if removed:
            logger.info(
                f"Refresh registry prune removed {removed} expired tokens",
                extra={"action": "refresh_prune"},
            )
        return removed


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class RevocationStore:
    """The blacklist and refresh registry owned by one application instance"""

    def __init__(self, blacklist, refresh_registry):
        self.blacklist = blacklist
        self.refresh_registry = refresh_registry

    @classmethod
    def in_memory(cls, sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD) -> "RevocationStore":
        return cls(MemoryBlacklist(sweep_threshold), MemoryRefreshRegistry())

    @classmethod
    def from_database(
        cls,
        session_factory: Callable[[], Session],
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
    ) -> "RevocationStore":
        return cls(
            DatabaseBlacklist(session_factory, sweep_threshold),
            DatabaseRefreshRegistry(session_factory),
        )
