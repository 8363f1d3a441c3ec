"""
ChallengeHub Backend — Profile Service (Identity Resolver)
============================================================

What:  Maps an authenticated user + role to the role-specific profile id.
Who:   Called by `dependencies.require_capability` for every request whose
       role has a profile (student, architect, company).
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from challengehub.exceptions import DatabaseError, NotFoundError
from challengehub.models.profile import Profile, UserRole

logger = logging.getLogger(__name__)


class ProfileService:

    async def resolve_profile_id(
        self, db: AsyncSession, user_id: uuid.UUID, role: UserRole
    ) -> uuid.UUID:
        """
        Return the profile id of `user_id` in `role`.

        Raises:
            NotFoundError: the user has no profile for that role (→ 404)
            DatabaseError: query execution failed (→ 500)
        """
        try:
            result = await db.execute(
                select(Profile.id).where(Profile.user_id == user_id, Profile.role == role)
            )
            profile_id = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error resolving %s profile: %s", role.value, str(e))
            raise DatabaseError(
                message="Could not resolve your profile. Please try again.",
                context={"role": role.value, "error_type": type(e).__name__},
            ) from e

        if profile_id is None:
            raise NotFoundError(resource=f"{role.value} profile")
        return profile_id
