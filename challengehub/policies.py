"""
ChallengeHub Backend — Authorization Policies
===============================================

What:  Role capabilities and the actor-to-resource relations used for
       visibility and ownership checks.
How:   Two layers:
       1. Capability check at the HTTP boundary: each action has a fixed
          set of roles allowed to attempt it (CAPABILITIES).
       2. Relation check in the core: role alone is not enough; the actor
          must also be the owner, the challenge owner, or the bound
          reviewer. ADMIN bypasses ownership.
Who:   `dependencies.require_capability` uses layer 1; SolutionService
       uses layer 2.
"""

import enum
import uuid
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional

from challengehub.exceptions import ForbiddenError
from challengehub.models.profile import UserRole
from challengehub.models.solution import Solution

STUDENT = UserRole.STUDENT
ARCHITECT = UserRole.ARCHITECT
COMPANY = UserRole.COMPANY
ADMIN = UserRole.ADMIN


@dataclass(frozen=True)
class Actor:
    """
    The resolved acting identity of a request.

    profile_id is the role-specific profile (student/architect/company);
    it is None only for ADMIN.
    """

    user_id: uuid.UUID
    role: UserRole
    profile_id: Optional[uuid.UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role is ADMIN


class Relation(str, enum.Enum):
    """How an actor relates to a particular solution."""

    OWNER = "owner"                      # the submitting student
    CHALLENGE_OWNER = "challenge_owner"  # the company that posted the challenge
    REVIEWER = "reviewer"                # the architect bound by claim
    STAFF = "staff"                      # admin, or an architect not bound to it
    NONE = "none"


# ── Capability table ──────────────────────────────────────────────────────
CAPABILITIES: Dict[str, FrozenSet[UserRole]] = {
    "submit": frozenset({STUDENT}),
    "list_own": frozenset({STUDENT}),
    "list_for_challenge": frozenset({COMPANY, ARCHITECT, ADMIN}),
    "view": frozenset({STUDENT, COMPANY, ARCHITECT, ADMIN}),
    "update": frozenset({STUDENT}),
    "claim": frozenset({ARCHITECT}),
    "review": frozenset({ARCHITECT}),
    "select": frozenset({COMPANY}),
    "list_reviews": frozenset({ARCHITECT}),
}

ACTION_LABELS: Dict[str, str] = {
    "submit": "submitting solutions",
    "list_own": "listing your solutions",
    "list_for_challenge": "listing challenge solutions",
    "view": "viewing solutions",
    "update": "updating solutions",
    "claim": "claiming solutions for review",
    "review": "reviewing solutions",
    "select": "selecting winning solutions",
    "list_reviews": "listing your reviews",
}


def require_capability(role: UserRole, action: str) -> None:
    """Raise ForbiddenError unless `role` may attempt `action`."""
    allowed = CAPABILITIES[action]
    if role not in allowed:
        raise ForbiddenError(
            message=f"Role '{role.value}' is not allowed to perform {ACTION_LABELS[action]}",
            context={"action": action, "allowed_roles": sorted(r.value for r in allowed)},
        )


def relation_to(actor: Actor, solution: Solution, challenge_company_id: uuid.UUID) -> Relation:
    """Classify the actor's relation to `solution`."""
    if actor.role is ADMIN:
        return Relation.STAFF
    if actor.role is STUDENT:
        return Relation.OWNER if solution.student_id == actor.profile_id else Relation.NONE
    if actor.role is COMPANY:
        return Relation.CHALLENGE_OWNER if challenge_company_id == actor.profile_id else Relation.NONE
    if actor.role is ARCHITECT:
        return Relation.REVIEWER if solution.reviewer_id == actor.profile_id else Relation.STAFF
    return Relation.NONE


def ensure_can_view(actor: Actor, solution: Solution, challenge_company_id: uuid.UUID) -> Relation:
    relation = relation_to(actor, solution, challenge_company_id)
    if relation is Relation.NONE:
        raise ForbiddenError(
            message="You do not have permission to view this solution",
            context={"solution_id": str(solution.id)},
        )
    return relation


def ensure_can_list_challenge(actor: Actor, challenge_company_id: uuid.UUID) -> None:
    """Companies see only their own challenges; architects and admins see all."""
    if actor.role in (ARCHITECT, ADMIN):
        return
    if actor.role is COMPANY and challenge_company_id == actor.profile_id:
        return
    raise ForbiddenError(message="You do not have permission to view solutions for this challenge")
