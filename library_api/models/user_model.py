from sqlmodel import SQLModel, Field, Column, String, DateTime
from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Using PyEnum to avoid conflict with SQLModel's Enum
class UserRole(str, PyEnum):
    ADMIN = "ADMIN"
    LIBRARIAN = "LIBRARIAN"
    MEMBER = "MEMBER"

    @classmethod
    def parse(cls, value: Optional[str], default: "UserRole" = None) -> "UserRole":
        """Returns the matching role, or ``default`` (MEMBER) for unknown values."""
        try:
            return cls(value)
        except ValueError:
            return default or cls.MEMBER


class UserBase(SQLModel):
    email: str = Field(
        max_length=255,
        description="User's email address",
        schema_extra={"example": "member@library.local"},
    )
    name: str = Field(
        max_length=255,
        description="User's display name",
        schema_extra={"example": "John Member"},
    )
    role: UserRole = Field(
        default=UserRole.MEMBER, description="User's role in the system"
    )


class User(UserBase, table=True):
    __tablename__ = "users"

    # Subject identifier issued by the identity provider
    id: str = Field(
        sa_column=Column(String(255), primary_key=True),
        description="Issuer-provided subject identifier",
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), default=utcnow, nullable=False),
        description="Account creation timestamp",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(
            DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
        ),
        description="Account last updated timestamp",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}', role='{self.role.value}')>"
