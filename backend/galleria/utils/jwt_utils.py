"""JWT utilities: signing keys, token pair issuance and verification.

Access and refresh tokens live in separate signing domains: each has its own
secret and carries a ``type`` claim, so a refresh token never verifies as an
access token and vice versa.  Both members of a pair share one ``jti``.
"""
import enum
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, NamedTuple, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from galleria.utils.logger import logger
from galleria.utils.revocation import RevocationStore

ACCESS = "access"
REFRESH = "refresh"


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

class Identity(NamedTuple):
    """Decoded identity claim of an access or refresh token"""
    user_id: int
    username: str
    jti: str
    expires_at: datetime   # naive UTC


class TokenPair(NamedTuple):
    access_token: str
    refresh_token: str
    jti: str


class RejectReason(str, enum.Enum):
    MALFORMED = "malformed"
    EXPIRED = "expired"
    BAD_SIGNATURE = "bad_signature"
    REVOKED = "revoked"


class TokenRejected(Exception):
    """Raised by the verifier; carries the rejection reason"""

    def __init__(self, reason: RejectReason, detail: str = ""):
        super().__init__(detail or reason.value)
        self.reason = reason


# ---------------------------------------------------------------------------
# Key management
# ---------------------------------------------------------------------------

class SigningKeys(NamedTuple):
    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"

    @classmethod
    def load(
        cls,
        access_secret: Optional[str],
        refresh_secret: Optional[str],
        algorithm: str = "HS256",
    ) -> "SigningKeys":
        """Build the key set from configuration.

        Missing secrets are generated for this process only, so every token is
        invalidated on restart. Identical secrets would merge the two signing
        domains and are refused.
        """
        if not access_secret or not refresh_secret:
            logger.warning(
                "JWT_ACCESS_SECRET/JWT_REFRESH_SECRET not set; generated random secrets for this "
                "process. All tokens will be invalidated on restart."
            )
        access_secret = access_secret or secrets.token_urlsafe(64)
        refresh_secret = refresh_secret or secrets.token_urlsafe(64)

        if access_secret == refresh_secret:
            raise RuntimeError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")

        return cls(access_secret=access_secret, refresh_secret=refresh_secret, algorithm=algorithm)

    def secret_for(self, token_type: str) -> str:
        return self.access_secret if token_type == ACCESS else self.refresh_secret


# ---------------------------------------------------------------------------
# Issuer
# ---------------------------------------------------------------------------

class TokenIssuer:
    """Mints access/refresh pairs and registers each refresh token."""

    def __init__(
        self,
        keys: SigningKeys,
        store: RevocationStore,
        access_ttl: timedelta = timedelta(minutes=60),
        refresh_ttl: timedelta = timedelta(days=7),
    ):
        self.keys = keys
        self.store = store
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def _sign(self, user_id: int, username: str, jti: str, token_type: str, now: int, ttl: timedelta) -> str:
        payload: Dict[str, Any] = {
            "sub": str(user_id),
            "username": username,
            "jti": jti,
            "type": token_type,
            "iat": now,
            "exp": now + int(ttl.total_seconds()),
        }
        return jwt.encode(payload, self.keys.secret_for(token_type), algorithm=self.keys.algorithm)

    def issue(self, user: Any) -> TokenPair:
        """Issue a fresh pair for an already-authenticated user.

        Args:
            user: Anything with ``id`` and ``username`` attributes (usually the
                  ``User`` row).

        Returns:
            TokenPair whose two tokens share a newly generated jti.
        """
        jti = str(uuid.uuid4())
        now = int(datetime.now(timezone.utc).timestamp())
        access_token = self._sign(user.id, user.username, jti, ACCESS, now, self.access_ttl)
        refresh_token = self._sign(user.id, user.username, jti, REFRESH, now, self.refresh_ttl)

        refresh_exp = now + int(self.refresh_ttl.total_seconds())
        self.store.refresh_registry.add(
            refresh_token,
            datetime.fromtimestamp(refresh_exp, tz=timezone.utc).replace(tzinfo=None),
        )

        logger.info(
            f"Issued token pair for user {user.id}",
            extra={"user_id": user.id, "jti": jti, "action": "issue_tokens"},
        )
        return TokenPair(access_token=access_token, refresh_token=refresh_token, jti=jti)


# ---------------------------------------------------------------------------
# Verifier
# ---------------------------------------------------------------------------

class TokenVerifier:
    """Validates tokens against their signing domain; never mutates the store."""

    def __init__(self, keys: SigningKeys, store: RevocationStore):
        self.keys = keys
        self.store = store

    def _decode(self, token: str, token_type: str) -> Identity:
        try:
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise TokenRejected(RejectReason.MALFORMED, str(exc))

        try:
            payload = jwt.decode(
                token,
                self.keys.secret_for(token_type),
                algorithms=[self.keys.algorithm],
            )
        except ExpiredSignatureError as exc:
            raise TokenRejected(RejectReason.EXPIRED, str(exc))
        except JWTClaimsError as exc:
            raise TokenRejected(RejectReason.MALFORMED, str(exc))
        except JWTError as exc:
            raise TokenRejected(RejectReason.BAD_SIGNATURE, str(exc))

        # A token signed for the other domain with a shared secret still must not pass
        if payload.get("type") != token_type:
            raise TokenRejected(RejectReason.BAD_SIGNATURE, f"not a {token_type} token")

        try:
            return Identity(
                user_id=int(payload["sub"]),
                username=str(payload["username"]),
                jti=str(payload["jti"]),
                expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc).replace(tzinfo=None),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenRejected(RejectReason.MALFORMED, f"missing or invalid claim: {exc}")

    def decode_access(self, token: str) -> Identity:
        """Check signature and expiry of an access token, ignoring the blacklist."""
        return self._decode(token, ACCESS)

    def verify(self, token: str) -> Identity:
        """Fully verify an access token.

        Raises:
            TokenRejected: MALFORMED, EXPIRED, BAD_SIGNATURE or REVOKED.
        """
        identity = self.decode_access(token)
        if self.store.blacklist.contains(identity.jti):
            raise TokenRejected(RejectReason.REVOKED, "token has been revoked")
        return identity

    def verify_refresh(self, token: str) -> Identity:
        """Check signature and expiry of a refresh token (registry is checked by the caller)."""
        return self._decode(token, REFRESH)
