"""Sign-up, sign-in, token refresh and sign-out endpoints"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from galleria.api.deps import AuthContext, get_sessions, optional_user, require_user
from galleria.config import settings
from galleria.database import get_db
from galleria.errors import Conflict, Unauthorized
from galleria.middleware.monitoring import record_auth_failure, record_token_revoked, record_tokens_issued
from galleria.middleware.rate_limit import get_rate_limit, limiter
from galleria.models.user import User
from galleria.schemas.auth import Credentials, MeResponse, TokenResponse
from galleria.schemas.base import MessageResponse
from galleria.utils.jwt_utils import TokenPair
from galleria.utils.logger import logger
from galleria.utils.passwords import hash_password, verify_password
from galleria.utils.sessions import SessionManager

router = APIRouter(prefix="/api/auth", tags=["authentication"])


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------

def _set_refresh_cookie(response: Response, refresh_token: str) -> None:
    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=settings.refresh_cookie_max_age,
        path=settings.REFRESH_COOKIE_PATH,
        secure=settings.REFRESH_COOKIE_SECURE,
        httponly=True,
        samesite="strict",
    )


def _clear_refresh_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        path=settings.REFRESH_COOKIE_PATH,
        secure=settings.REFRESH_COOKIE_SECURE,
        httponly=True,
        samesite="strict",
    )


def _token_response(message: str, user: User, pair: TokenPair, sessions: SessionManager) -> TokenResponse:
    return TokenResponse(
        message=message,
        username=user.username,
        access_token=pair.access_token,
        expires_in=int(sessions.issuer.access_ttl.total_seconds()),
    )


# ---------------------------------------------------------------------------
# POST /api/auth/signup
# ---------------------------------------------------------------------------

@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(get_rate_limit("signup"))
def signup(
    request: Request,
    response: Response,
    credentials: Credentials,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_sessions),
) -> TokenResponse:
    """Create an account and sign it in.

    The access token is returned in the body; the refresh token is set as an
    HTTP-only, same-site-strict cookie scoped to ``/api/auth``.
    """
    if db.query(User).filter(User.username == credentials.username).first():
        raise Conflict("User with this username already exists")

    user = User(username=credentials.username, password_hash=hash_password(credentials.password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("User with this username already exists")
    db.refresh(user)

    pair = sessions.issue(user)
    _set_refresh_cookie(response, pair.refresh_token)
    record_tokens_issued("signup")

    logger.info(f"Created user {user.username}", extra={"user_id": user.id, "action": "signup"})
    return _token_response(f"Signup successful for {user.username}", user, pair, sessions)


# ---------------------------------------------------------------------------
# POST /api/auth/signin
# ---------------------------------------------------------------------------

@router.post("/signin", response_model=TokenResponse)
@limiter.limit(get_rate_limit("signin"))
def signin(
    request: Request,
    response: Response,
    credentials: Credentials,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_sessions),
) -> TokenResponse:
    """Exchange a username and password for a token pair."""
    user = db.query(User).filter(User.username == credentials.username).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        record_auth_failure("bad_credentials")
        raise Unauthorized("Incorrect username or password")

    pair = sessions.issue(user)
    _set_refresh_cookie(response, pair.refresh_token)
    record_tokens_issued("signin")

    return _token_response(f"Signin successful for {user.username}", user, pair, sessions)


# ---------------------------------------------------------------------------
# GET /api/auth/me
# ---------------------------------------------------------------------------

@router.get("/me", response_model=MeResponse)
def me(ctx: AuthContext = Depends(require_user)) -> MeResponse:
    """Return the identity carried by the caller's access token."""
    return MeResponse(user_id=ctx.identity.user_id, username=ctx.identity.username)


# ---------------------------------------------------------------------------
# GET|POST /api/auth/signout
# ---------------------------------------------------------------------------

@router.api_route("/signout", methods=["GET", "POST"], response_model=MessageResponse)
def signout(
    request: Request,
    response: Response,
    ctx: Optional[AuthContext] = Depends(optional_user),
    sessions: SessionManager = Depends(get_sessions),
) -> MessageResponse:
    """Forget the refresh cookie and revoke the presented access token.

    Either credential may be absent; with neither this is a successful no-op.
    """
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)

    revoked_jti = sessions.sign_out(refresh_token, ctx.token if ctx else None)

    if refresh_token:
        _clear_refresh_cookie(response)
    if revoked_jti:
        record_token_revoked()

    return MessageResponse(message="Signed out successfully")


# ---------------------------------------------------------------------------
# POST /api/auth/refresh
# ---------------------------------------------------------------------------

@router.post("/refresh", response_model=TokenResponse)
@limiter.limit(get_rate_limit("refresh"))
def refresh(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    sessions: SessionManager = Depends(get_sessions),
) -> TokenResponse:
    """Rotate the refresh cookie and return a fresh access token.

    The presented refresh token is single-use: it is unusable as soon as this
    call succeeds, even if the response never reaches the client.
    """
    pair, user = sessions.rotate(
        request.cookies.get(settings.REFRESH_COOKIE_NAME),
        lambda user_id: db.query(User).filter(User.id == user_id).first(),
    )
    _set_refresh_cookie(response, pair.refresh_token)
    record_tokens_issued("refresh")

    return _token_response("Token refreshed successfully", user, pair, sessions)
