# mealhub/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field

from mealhub.domain.status import Role


class User(SQLModel, table=True):
    """
    Persistent user profile.

    Identity:
      - id: MUST match the auth service user id (UUID from JWT "sub")

    Role:
      - CUSTOMER | PROVIDER | ADMIN
      - guests are represented by a missing token.

    Passwords live in the auth service; this table only mirrors identity,
    name and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches the auth service user id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from the auth service",
    )

    name: str = Field(
        max_length=50,
        description="Display name; first part of email by default",
    )

    role: Role = Field(
        default=Role.CUSTOMER,
        index=True,
        description="Application role: CUSTOMER | PROVIDER | ADMIN",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
