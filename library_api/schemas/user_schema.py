from pydantic import BaseModel, ConfigDict, Field

from library_api.models.user_model import UserRole


class UserResponse(BaseModel):
    """Public view of the authenticated user."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Subject identifier")
    email: str
    name: str
    role: UserRole
