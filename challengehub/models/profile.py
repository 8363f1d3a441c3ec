"""
ChallengeHub Backend — Profile SQLAlchemy Model
=================================================

What:  ORM model for the `profiles` table: the role-specific identity of a user.
How:   One row per (user, role). Student, architect and company ids used
       throughout the lifecycle are profile ids, not user ids.
Who:   Read by ProfileService when resolving the acting identity of a request.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Enum, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from challengehub.database import Base


class UserRole(str, enum.Enum):
    """Closed set of caller roles carried in the access token."""

    STUDENT = "student"
    ARCHITECT = "architect"
    COMPANY = "company"
    ADMIN = "admin"

    @property
    def has_profile(self) -> bool:
        """Admins act without a role-specific profile."""
        return self is not UserRole.ADMIN


def enum_column(enum_cls: type, length: int = 20) -> Enum:
    """String-backed enum column storing member values (portable across backends)."""
    return Enum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


class Profile(Base):
    """A user's identity in one role (student, architect or company)."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Id of the authenticated user (token `sub`); owned by the auth service
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    role: Mapped[UserRole] = mapped_column(enum_column(UserRole), nullable=False)

    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "role", name="uq_profiles_user_role"),
    )

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, role='{self.role.value}', user_id={self.user_id})>"
