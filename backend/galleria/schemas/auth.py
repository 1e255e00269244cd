"""Authentication schemas"""
from pydantic import BaseModel, Field

from galleria.schemas.base import APIModel


class Credentials(BaseModel):
    """Body of sign-up and sign-in requests"""

    username: str = Field(..., min_length=1, max_length=150, description="Username")
    password: str = Field(..., min_length=1, max_length=256, description="Password")


class TokenResponse(APIModel):
    """Access token returned in the body; the refresh token travels as a cookie"""

    message: str
    username: str
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until the access token expires


class MeResponse(APIModel):
    is_authenticated: bool = True
    user_id: int
    username: str
