"""
ChallengeHub Backend — Solution Request/Response Schemas
==========================================================

What:  Pydantic models defining the solution API contract.
How:   JSON field names are camelCase (alias generator); request bodies
       also accept snake_case. Content rules that belong to the lifecycle
       (non-empty title, URL shape, score range) are enforced by
       SolutionService so they hold for every caller, not only HTTP.
Who:   Used by route handlers for bodies, query parameters and responses.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic.alias_generators import to_camel

from challengehub.config import settings
from challengehub.models.solution import SolutionStatus


class CamelModel(BaseModel):
    """Base for API models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


CONTENT_FIELDS = {"title", "description", "submission_url", "tags"}


class SolutionContent(CamelModel):
    """Student-editable fields. `None` means "leave unchanged" on update."""

    title: Optional[str] = None
    description: Optional[str] = None
    submission_url: Optional[str] = None
    tags: Optional[List[str]] = None

    def provided_fields(self) -> Dict[str, object]:
        return self.model_dump(include=CONTENT_FIELDS, exclude_none=True)


class SolutionCreate(SolutionContent):
    """
    Body of POST /api/solutions.

    The challenge may be given as `challengeId` or, for older clients,
    `challenge`. When both are present `challengeId` wins.
    """

    challenge_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("challengeId", "challenge_id"),
    )
    challenge: Optional[str] = None

    @property
    def effective_challenge_id(self) -> Optional[str]:
        return self.challenge_id or self.challenge


class SolutionUpdate(SolutionContent):
    """Body of PUT /api/solutions/{id}."""


class ReviewRequest(CamelModel):
    """Body of PATCH /api/solutions/{id}/review."""

    status: str = Field(description="Review outcome: approved or rejected (any casing)")
    feedback: Optional[str] = None
    # Strict: a JSON boolean is not a score
    score: Optional[StrictInt] = None


class SelectionRequest(CamelModel):
    """Body of PATCH /api/solutions/{id}/select."""

    company_feedback: Optional[str] = None
    selection_reason: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Query Parameter Model
# ══════════════════════════════════════════════════════════════════════════

# Offsets must stay within a 64-bit integer on every backend
MAX_PAGE = 1_000_000

# Public sort keys → Solution column names
SORT_FIELDS: Dict[str, str] = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "score": "score",
    "title": "title",
    "status": "status",
}


class SolutionListQuery(BaseModel):
    """
    Filtering and pagination for every solution listing.

    Parameters:
        status:     exact status match (any casing), optional
        page:       1-based page number, default 1, at most MAX_PAGE
        limit:      page size, default DEFAULT_PAGE_SIZE, at most MAX_PAGE_SIZE
        sort_by:    createdAt | updatedAt | score | title | status (snake_case accepted)
        sort_order: asc | desc, default desc
    """

    status: Optional[SolutionStatus] = None
    page: int = Field(default=1, ge=1, le=MAX_PAGE)
    limit: int = Field(default_factory=lambda: settings.default_page_size, ge=1)
    sort_by: str = Field(default="createdAt")
    sort_order: Literal["asc", "desc"] = "desc"

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return v.strip().lower() or None
        return v

    @field_validator("limit")
    @classmethod
    def cap_limit(cls, v: int) -> int:
        if v > settings.max_page_size:
            raise ValueError(f"limit must not exceed {settings.max_page_size}")
        return v

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, v: str) -> str:
        if v in SORT_FIELDS:
            return v
        camel = to_camel(v)
        if camel in SORT_FIELDS:
            return camel
        raise ValueError(f"Invalid sortBy '{v}'. Must be one of: {sorted(SORT_FIELDS)}")

    @field_validator("sort_order", mode="before")
    @classmethod
    def normalize_sort_order(cls, v):
        return v.lower() if isinstance(v, str) else v

    @property
    def sort_column(self) -> str:
        return SORT_FIELDS[self.sort_by]

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


# ══════════════════════════════════════════════════════════════════════════
# Response Model
# ══════════════════════════════════════════════════════════════════════════


class SolutionResponse(CamelModel):
    """Full representation of a solution, as returned by every endpoint."""

    id: uuid.UUID
    challenge_id: uuid.UUID
    student_id: uuid.UUID
    title: str
    description: str
    submission_url: str
    tags: List[str] = Field(default_factory=list)
    status: SolutionStatus
    reviewer_id: Optional[uuid.UUID] = None
    feedback: Optional[str] = None
    score: Optional[int] = None
    reviewed_at: Optional[datetime] = None
    company_feedback: Optional[str] = None
    selection_reason: Optional[str] = None
    selected_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
