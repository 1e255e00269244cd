"""API dependencies for authentication.

Every protected route declares one of two gates:

- :data:`require_user`: a valid bearer access token is mandatory.
- :data:`optional_user`: anonymous callers are let through with ``None``.

Outcomes
--------
============================  ==================  ==================
credential                    required            optional
============================  ==================  ==================
absent                        401                 anonymous
malformed/expired/bad sig     403                 anonymous
revoked                       401                 401
valid                         AuthContext         AuthContext
============================  ==================  ==================

A revoked token is explicitly untrusted, so it is rejected even where
authentication is optional.  The resolved :class:`AuthContext` is handed to
the handler as a plain value; nothing is written to the shared request object.
"""
from typing import Callable, NamedTuple, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from galleria.errors import Forbidden, Unauthorized
from galleria.middleware.monitoring import record_auth_failure
from galleria.utils.jwt_utils import Identity, RejectReason, TokenRejected
from galleria.utils.logger import logger
from galleria.utils.sessions import SessionManager
from galleria.utils.storage import ImageStore

_bearer_scheme = HTTPBearer(auto_error=False)


class AuthContext(NamedTuple):
    """Verified caller identity plus the raw token it came from"""
    identity: Identity
    token: str

    @property
    def user_id(self) -> int:
        return self.identity.user_id


def get_sessions(request: Request) -> SessionManager:
    """Session manager owned by the running application"""
    return request.app.state.sessions


def get_image_store(request: Request) -> ImageStore:
    return request.app.state.image_store


def auth_gate(required: bool) -> Callable:
    """Return a FastAPI dependency that verifies the bearer access token.

    Usage::

        @router.get("/me")
        def me(ctx: AuthContext = Depends(require_user)):
            ...

    Args:
        required: Reject anonymous callers (401) and bad tokens (403) instead
                  of proceeding with ``None``.
    """

    def _gate(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
        sessions: SessionManager = Depends(get_sessions),
    ) -> Optional[AuthContext]:
        if credentials is None or not credentials.credentials:
            if required:
                record_auth_failure("missing")
                raise Unauthorized("Access token is required")
            return None

        token = credentials.credentials
        try:
            identity = sessions.verifier.verify(token)
        except TokenRejected as exc:
            if exc.reason is RejectReason.REVOKED:
                record_auth_failure(exc.reason.value)
                logger.info(
                    "Rejected revoked access token",
                    extra={"reason": exc.reason.value, "path": request.url.path},
                )
                raise Unauthorized("Access token revoked")
            if required:
                record_auth_failure(exc.reason.value)
                raise Forbidden("Invalid access token")
            return None

        return AuthContext(identity=identity, token=token)

    # Give FastAPI a unique name so it doesn't collapse distinct dependencies
    _gate.__name__ = "require_user" if required else "optional_user"
    return _gate


require_user = auth_gate(required=True)
optional_user = auth_gate(required=False)
