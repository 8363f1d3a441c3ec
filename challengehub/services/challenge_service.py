"""
ChallengeHub Backend — Challenge Service (Lifecycle Collaborator)
===================================================================

What:  The challenge lookups the solution lifecycle depends on.
How:   Read-only access to `challenges`: existence, ownership, whether
       submissions are open, and the winner quota.
Who:   Injected into SolutionService; never called by routes directly.

Callers are responsible for wrapping SQLAlchemy errors; this service runs
inside their transaction and retry scope.
"""

import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from challengehub.exceptions import InvalidStateError, NotFoundError
from challengehub.models.challenge import Challenge, ChallengeStatus
from challengehub.models.solution import Solution, SolutionStatus


class ChallengeService:

    async def get_challenge(
        self, db: AsyncSession, challenge_id: uuid.UUID, for_update: bool = False
    ) -> Challenge:
        """
        Fetch a challenge or raise NotFoundError.

        for_update=True takes a row lock (PostgreSQL), serializing
        selections on the same challenge until the transaction ends.
        """
        query = select(Challenge).where(Challenge.id == challenge_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        challenge = result.scalar_one_or_none()
        if challenge is None:
            raise NotFoundError(resource="challenge", resource_id=str(challenge_id))
        return challenge

    async def get_owner_id(self, db: AsyncSession, challenge_id: uuid.UUID) -> uuid.UUID:
        result = await db.execute(select(Challenge.company_id).where(Challenge.id == challenge_id))
        company_id = result.scalar_one_or_none()
        if company_id is None:
            raise NotFoundError(resource="challenge", resource_id=str(challenge_id))
        return company_id

    async def count_selected(self, db: AsyncSession, challenge_id: uuid.UUID) -> int:
        result = await db.execute(
            select(func.count(Solution.id)).where(
                Solution.challenge_id == challenge_id,
                Solution.status == SolutionStatus.SELECTED,
            )
        )
        return result.scalar() or 0

    def ensure_accepting_submissions(self, challenge: Challenge) -> None:
        if challenge.status != ChallengeStatus.ACTIVE:
            raise InvalidStateError(
                message="This challenge is not accepting submissions",
                context={"challenge_id": str(challenge.id), "challenge_status": challenge.status.value},
            )
        if challenge.deadline_passed():
            raise InvalidStateError(
                message="The submission deadline for this challenge has passed",
                context={"challenge_id": str(challenge.id)},
            )

    def ensure_before_deadline(self, challenge: Challenge) -> None:
        if challenge.deadline_passed():
            raise InvalidStateError(
                message="The submission deadline for this challenge has passed; solutions can no longer be edited",
                context={"challenge_id": str(challenge.id)},
            )
