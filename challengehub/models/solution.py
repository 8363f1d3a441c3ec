"""
ChallengeHub Backend — Solution SQLAlchemy Model
==================================================

What:  ORM model for the `solutions` table and the solution status machine.
How:   `SolutionStatus.can_transition_to` is the single transition table;
       SolutionService consults it before every conditional UPDATE.
Who:   Used by SolutionService for every lifecycle operation and by Alembic.

Lifecycle:
    SUBMITTED --claim--> CLAIMED --review(approve)--> APPROVED --select--> SELECTED
                                 --review(reject)---> REJECTED

    - SUBMITTED: initial, editable by the owning student
    - CLAIMED:   exactly one reviewer bound, locked against student edits
    - APPROVED:  eligible for company selection
    - REJECTED:  terminal
    - SELECTED:  terminal, implies a prior APPROVED

Query Patterns:
    - Student history:   WHERE student_id = :id ORDER BY created_at DESC
    - Challenge listing: WHERE challenge_id = :id [AND status = :s]
    - Architect queue:   WHERE reviewer_id = :id
    - Winner quota:      COUNT(*) WHERE challenge_id = :id AND status = 'selected'
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import FrozenSet, List, Optional

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from challengehub.database import Base
from challengehub.models.profile import enum_column


class SolutionStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    CLAIMED = "claimed"
    APPROVED = "approved"
    REJECTED = "rejected"
    SELECTED = "selected"

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self]

    def can_transition_to(self, target: "SolutionStatus") -> bool:
        return target in _TRANSITIONS[self]

    @classmethod
    def sources_of(cls, target: "SolutionStatus") -> List["SolutionStatus"]:
        """Statuses from which `target` is reachable in one step."""
        return [status for status in cls if status.can_transition_to(target)]


_TRANSITIONS: dict = {
    SolutionStatus.SUBMITTED: frozenset({SolutionStatus.CLAIMED}),
    SolutionStatus.CLAIMED: frozenset({SolutionStatus.APPROVED, SolutionStatus.REJECTED}),
    SolutionStatus.APPROVED: frozenset({SolutionStatus.SELECTED}),
    SolutionStatus.REJECTED: frozenset(),
    SolutionStatus.SELECTED: frozenset(),
}

# Outcomes an architect may choose when reviewing
REVIEW_OUTCOMES: FrozenSet[SolutionStatus] = _TRANSITIONS[SolutionStatus.CLAIMED]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Solution(Base):
    """
    A student's submission to a challenge.

    Immutable after creation: id, challenge_id, student_id.
    reviewer_id is written once, by the claim transition.
    Content fields change only while status is SUBMITTED.
    """

    __tablename__ = "solutions"

    # ── Identity & Ownership ──────────────────────────────────────────────
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    challenge_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("challenges.id"), nullable=False
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=False
    )

    # ── Content (student-editable before review) ──────────────────────────
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    submission_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    tags: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # ── Lifecycle ─────────────────────────────────────────────────────────
    status: Mapped[SolutionStatus] = mapped_column(
        enum_column(SolutionStatus),
        nullable=False,
        default=SolutionStatus.SUBMITTED,
    )
    reviewer_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=True, default=None
    )

    # ── Review (architect) ────────────────────────────────────────────────
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, default=None)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # ── Selection (company) ───────────────────────────────────────────────
    company_feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    selection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True, default=None)
    selected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # ── Timestamps ────────────────────────────────────────────────────────
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_solutions_student_created", "student_id", "created_at"),
        Index("idx_solutions_challenge_status", "challenge_id", "status"),
        Index("idx_solutions_reviewer", "reviewer_id"),
        CheckConstraint(
            "(status = 'submitted') = (reviewer_id IS NULL)",
            name="ck_solutions_reviewer_matches_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Solution(id={self.id}, status='{self.status.value}', "
            f"challenge_id={self.challenge_id})>"
        )
