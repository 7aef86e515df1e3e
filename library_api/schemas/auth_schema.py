from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from library_api.models.user_model import UserRole
from library_api.schemas.common_schema import CamelModel


class TokenIdentity(BaseModel):
    """Caller identity extracted from a verified token."""

    subject_id: str
    email: str
    name: str
    role: Optional[str] = None


class DevLoginRequest(BaseModel):
    """Body of the development login endpoint."""

    sub: str = Field(..., min_length=1, description="Subject identifier", examples=["member-001"])
    email: EmailStr = Field(..., description="Email address", examples=["member@example.com"])
    name: str = Field(..., min_length=1, description="Display name", examples=["John Member"])
    role: UserRole = Field(..., description="Role granted to the user")


class TokenResponse(CamelModel):
    access_token: str = Field(..., description="Signed bearer token")
    expires_in: int = Field(..., description="Lifetime of the token in seconds")
