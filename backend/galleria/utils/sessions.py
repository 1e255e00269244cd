"""Session lifecycle: issuance, refresh-token rotation and sign-out.

:class:`SessionManager` bundles the token issuer, the verifier and the
revocation store owned by one application instance.  ``main.py`` builds one
in the lifespan handler and stores it on ``app.state.sessions``; tests build
their own with :meth:`SessionManager.create`.
"""
from datetime import timedelta
from typing import Any, Callable, Optional, Tuple

from sqlalchemy.orm import Session

from galleria.config import Settings
from galleria.errors import Forbidden, NotFound, Unauthorized
from galleria.utils.jwt_utils import (
    SigningKeys,
    TokenIssuer,
    TokenPair,
    TokenRejected,
    TokenVerifier,
)
from galleria.utils.logger import logger
from galleria.utils.revocation import DEFAULT_SWEEP_THRESHOLD, RevocationStore


class SessionManager:
    """Issuer + verifier + revocation store for one application instance"""

    def __init__(self, issuer: TokenIssuer, verifier: TokenVerifier, store: RevocationStore):
        self.issuer = issuer
        self.verifier = verifier
        self.store = store

    @classmethod
    def create(
        cls,
        keys: SigningKeys,
        store: Optional[RevocationStore] = None,
        access_ttl: timedelta = timedelta(minutes=60),
        refresh_ttl: timedelta = timedelta(days=7),
        sweep_threshold: int = DEFAULT_SWEEP_THRESHOLD,
    ) -> "SessionManager":
        store = store or RevocationStore.in_memory(sweep_threshold)
        return cls(
            issuer=TokenIssuer(keys, store, access_ttl=access_ttl, refresh_ttl=refresh_ttl),
            verifier=TokenVerifier(keys, store),
            store=store,
        )

    def issue(self, user: Any) -> TokenPair:
        return self.issuer.issue(user)

    def rotate(self, refresh_token: Optional[str], load_user: Callable[[int], Any]) -> Tuple[TokenPair, Any]:
        """Exchange a registered refresh token for a brand-new pair.

        The old refresh token is removed from the registry before the new pair
        is minted, so of two concurrent rotations with the same token only one
        succeeds.

        Args:
            refresh_token: Token from the client's cookie, if any.
            load_user:     Looks a user up by id; returns None if it no longer exists.

        Returns:
            ``(new_pair, user)``

        Raises:
            Unauthorized: no refresh token presented.
            Forbidden:    token unknown to the registry, already rotated, or
                          failing signature/expiry checks.
            NotFound:     the token's subject no longer exists.
        """
        if not refresh_token:
            raise Unauthorized("Refresh token is required")

        registry = self.store.refresh_registry
        if not registry.contains(refresh_token):
            raise Forbidden("Invalid refresh token")

        try:
            identity = self.verifier.verify_refresh(refresh_token)
        except TokenRejected as exc:
            registry.remove(refresh_token)
            logger.info(
                f"Refresh token rejected: {exc.reason.value}",
                extra={"reason": exc.reason.value, "action": "rotate_refresh"},
            )
            raise Forbidden("Invalid refresh token")

        user = load_user(identity.user_id)
        if user is None:
            raise NotFound("User not found")

        if not registry.remove(refresh_token):
            # Lost a race with a concurrent rotation or sign-out
            raise Forbidden("Invalid refresh token")

        pair = self.issuer.issue(user)
        logger.info(
            f"Rotated refresh token for user {user.id}",
            extra={"user_id": user.id, "jti": pair.jti, "action": "rotate_refresh"},
        )
        return pair, user

    def sign_out(self, refresh_token: Optional[str], access_token: Optional[str]) -> Optional[str]:
        """Forget the refresh token and revoke the access token, whichever are present.

        Returns the revoked jti, or None if no access token was revoked.
        Never raises for missing or unusable tokens.
        """
        if refresh_token:
            self.store.refresh_registry.remove(refresh_token)
            try:
                self.store.refresh_registry.prune()
            except Exception as exc:
                logger.warning(
                    "Refresh registry prune failed",
                    extra={"action": "refresh_prune", "reason": str(exc)},
                )

        if not access_token:
            return None

        try:
            identity = self.verifier.decode_access(access_token)
        except TokenRejected as exc:
            logger.info(
                f"Sign-out skipped revocation: {exc.reason.value}",
                extra={"reason": exc.reason.value, "action": "sign_out"},
            )
            return None

        self.store.blacklist.add(identity.jti, identity.expires_at)
        try:
            self.store.blacklist.sweep()
        except Exception as exc:
            logger.warning(
                "Blacklist sweep failed",
                extra={"action": "blacklist_sweep", "reason": str(exc)},
            )

        logger.info(
            f"Revoked access token for user {identity.user_id}",
            extra={"user_id": identity.user_id, "jti": identity.jti, "action": "sign_out"},
        )
        return identity.jti


def build_session_manager(settings: Settings, session_factory: Callable[[], Session]) -> SessionManager:
    """Build the application's session manager from configuration.

    Raises:
        RuntimeError: on signing-key misconfiguration.
    """
    keys = SigningKeys.load(
        settings.JWT_ACCESS_SECRET,
        settings.JWT_REFRESH_SECRET,
        settings.JWT_ALGORITHM,
    )

    if settings.REVOCATION_BACKEND == "database":
        store = RevocationStore.from_database(session_factory, settings.BLACKLIST_SWEEP_THRESHOLD)
    else:
        store = RevocationStore.in_memory(settings.BLACKLIST_SWEEP_THRESHOLD)

    return SessionManager.create(
        keys,
        store=store,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )
