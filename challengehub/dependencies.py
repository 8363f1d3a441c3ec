"""
ChallengeHub Backend — Request Dependencies
=============================================

What:  FastAPI dependencies that turn an HTTP request into core inputs.
How:   - Bearer token → AuthenticatedUser (PyJWT verification only)
       - AuthenticatedUser + action → Actor (capability check, profile lookup)
       - raw path/body ids → UUID (ValidationError on bad format)
       - query string → SolutionListQuery (validated once, here)
       - SolutionService constructed per request
Who:   Used by the route handlers in routes/solutions.py.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import jwt
from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from challengehub import policies
from challengehub.config import Settings, settings
from challengehub.database import get_db_session
from challengehub.exceptions import UnauthorizedError, ValidationError
from challengehub.models.profile import UserRole
from challengehub.policies import Actor
from challengehub.schemas.solution import SolutionListQuery
from challengehub.services.challenge_service import ChallengeService
from challengehub.services.profile_service import ProfileService
from challengehub.services.solution_service import SolutionService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ══════════════════════════════════════════════════════════════════════════
# Identity
# ══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AuthenticatedUser:
    user_id: uuid.UUID
    role: UserRole


def decode_access_token(token: str, config: Settings = settings) -> Dict[str, Any]:
    """Verify and decode an access token. Raises UnauthorizedError on failure."""
    if not config.jwt_secret_key:
        logger.error("JWT_SECRET_KEY is not configured; rejecting all tokens")
        raise UnauthorizedError(message="Authentication is not configured on this server")
    try:
        return jwt.decode(
            token,
            config.jwt_secret_key,
            algorithms=[config.jwt_algorithm],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError(message="Token expired") from None
    except jwt.InvalidTokenError:
        raise UnauthorizedError(message="Invalid token") from None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> AuthenticatedUser:
    """Authenticated caller from the `Authorization: Bearer <token>` header."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError(message="Missing or invalid Authorization header")

    claims = decode_access_token(credentials.credentials)
    try:
        user_id = uuid.UUID(str(claims["sub"]))
        role = UserRole(str(claims.get("role", "")).lower())
    except ValueError:
        raise UnauthorizedError(message="Token carries an invalid subject or role") from None
    return AuthenticatedUser(user_id=user_id, role=role)


def get_profile_service() -> ProfileService:
    return ProfileService()


def require_capability(action: str):
    """
    Dependency factory: gate a route to the roles allowed for `action`
    and resolve the caller's role-specific profile.

    Usage:
        actor: Actor = Depends(require_capability("claim"))
    """

    async def resolve_actor(
        user: AuthenticatedUser = Depends(get_current_user),
        db: AsyncSession = Depends(get_db_session),
        profiles: ProfileService = Depends(get_profile_service),
    ) -> Actor:
        policies.require_capability(user.role, action)
        profile_id = None
        if user.role.has_profile:
            profile_id = await profiles.resolve_profile_id(db, user.user_id, user.role)
        return Actor(user_id=user.user_id, role=user.role, profile_id=profile_id)

    return resolve_actor


# ══════════════════════════════════════════════════════════════════════════
# Input Parsing
# ══════════════════════════════════════════════════════════════════════════

def parse_object_id(
    value: Optional[str], resource: str, additional_context: Optional[str] = None
) -> uuid.UUID:
    """Parse a resource id, raising ValidationError for missing or malformed ids."""
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        message = f"Invalid {resource} ID format"
        if additional_context:
            message = f"{message}. {additional_context}"
        raise ValidationError(
            message=message,
            field=f"{resource}Id",
            context={"provided": None if value is None else str(value)[:64]},
        ) from None


def simplify_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Pydantic error list → JSON-safe [{field, message}]."""
    return [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in errors
    ]


def get_list_query(
    status: Optional[str] = Query(default=None, description="Exact status match"),
    page: int = Query(default=1, description="1-based page number"),
    limit: Optional[int] = Query(default=None, description="Page size"),
    sort_by: str = Query(default="createdAt", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
) -> SolutionListQuery:
    params: Dict[str, Any] = {
        "status": status,
        "page": page,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }
    if limit is not None:
        params["limit"] = limit
    try:
        return SolutionListQuery(**params)
    except PydanticValidationError as e:
        raise ValidationError(
            message="Invalid query parameters",
            context={"errors": simplify_errors(e.errors())},
        ) from None


def get_solution_service() -> SolutionService:
    return SolutionService(challenges=ChallengeService(), config=settings)
