"""
ChallengeHub Backend — Challenge SQLAlchemy Model
===================================================

What:  ORM model for the `challenges` table.
How:   Owned by a company profile. The lifecycle manager only reads it:
       ownership for selection and visibility, open/deadline for
       submissions and edits, `max_winners` for the selection quota.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from challengehub.database import Base
from challengehub.models.profile import enum_column


class ChallengeStatus(str, enum.Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    CLOSED = "closed"


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite returns timestamps without tzinfo)."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Challenge(Base):
    """A company-posted problem that students submit solutions against."""

    __tablename__ = "challenges"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    company_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False, index=True
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    status: Mapped[ChallengeStatus] = mapped_column(
        enum_column(ChallengeStatus),
        nullable=False,
        default=ChallengeStatus.ACTIVE,
    )

    # Null means submissions stay open until the challenge is closed
    deadline: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Selection quota: at most this many solutions may reach SELECTED
    max_winners: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("max_winners >= 1", name="ck_challenges_max_winners_positive"),
    )

    def deadline_passed(self, now: Optional[datetime] = None) -> bool:
        deadline = as_utc(self.deadline)
        if deadline is None:
            return False
        return (now or datetime.now(timezone.utc)) > deadline

    def __repr__(self) -> str:
        return f"<Challenge(id={self.id}, status='{self.status.value}', company_id={self.company_id})>"
