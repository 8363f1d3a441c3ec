"""
ChallengeHub Backend — Solution Route Handlers
================================================

What:  HTTP surface of the solution lifecycle.
How:   Each handler: role gate + profile resolution (dependency), id
       parsing, one SolutionService call, envelope formatting, one
       action log line. No business rules live here.

Routes (prefix /api/solutions):
    POST   ""                        submit              Student
    GET    /student                  list own            Student
    GET    /architect                list reviews        Architect
    GET    /challenge/{challenge_id} list for challenge  Company / Architect / Admin
    GET    /{solution_id}            fetch one           owner / challenge owner / Architect / Admin
    PUT    /{solution_id}            update pre-review   Student (owner)
    PATCH  /{solution_id}/claim      claim               Architect
    PATCH  /{solution_id}/review     approve / reject    bound Architect
    PATCH  /{solution_id}/select     select winner       Company (challenge owner)

Static segments are registered before /{solution_id} so that
/student and /architect are not parsed as ids.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from challengehub.database import get_db_session
from challengehub.dependencies import (
    get_list_query,
    get_solution_service,
    parse_object_id,
    require_capability,
)
from challengehub.exceptions import ValidationError
from challengehub.models.solution import SolutionStatus
from challengehub.policies import Actor
from challengehub.schemas.envelope import ApiResponse, ErrorResponse, PaginatedData
from challengehub.schemas.solution import (
    ReviewRequest,
    SelectionRequest,
    SolutionCreate,
    SolutionListQuery,
    SolutionResponse,
    SolutionUpdate,
)
from challengehub.services.solution_service import SolutionPage, SolutionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/solutions", tags=["Solutions"])

SingleSolution = ApiResponse[SolutionResponse]
SolutionList = ApiResponse[PaginatedData[SolutionResponse]]

ERROR_RESPONSES = {
    400: {"description": "Invalid input", "model": ErrorResponse},
    401: {"description": "Missing or invalid token", "model": ErrorResponse},
    403: {"description": "Role or ownership check failed", "model": ErrorResponse},
    404: {"description": "Solution, challenge or profile not found", "model": ErrorResponse},
    409: {"description": "Invalid state or lost a concurrent update", "model": ErrorResponse},
}


def log_action(action: str, actor: Actor, **details: Any) -> None:
    """One structured line per handled call; the only place user ids are logged."""
    logger.info(
        "%s by user %s (%s) %s",
        action,
        actor.user_id,
        actor.role.value,
        details,
        extra={"action": action, "user_id": str(actor.user_id), **details},
    )


def paginated(page: SolutionPage, message: str) -> SolutionList:
    return SolutionList(
        message=message,
        data=PaginatedData[SolutionResponse].build(page.items, page.total, page.page, page.limit),
    )


# ══════════════════════════════════════════════════════════════════════════
# Collection Routes
# ══════════════════════════════════════════════════════════════════════════

@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SingleSolution,
    responses=ERROR_RESPONSES,
    summary="Submit a solution to a challenge",
)
async def submit_solution(
    body: SolutionCreate,
    actor: Actor = Depends(require_capability("submit")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SingleSolution:
    raw_challenge_id = body.effective_challenge_id
    try:
        challenge_id = parse_object_id(
            raw_challenge_id,
            "challenge",
            additional_context="Please provide a valid challengeId in your request",
        )
    except ValidationError as e:
        logger.warning(
            "Challenge ID validation failed during solution submission: %s",
            e.message,
            extra={"user_id": str(actor.user_id), "provided_challenge_id": raw_challenge_id},
        )
        raise

    solution = await service.submit(db, actor.profile_id, challenge_id, body)

    log_action("submit-solution", actor, solution_id=str(solution.id), challenge_id=str(challenge_id))
    return SingleSolution(message="Solution submitted successfully", data=solution)


@router.get(
    "/student",
    response_model=SolutionList,
    responses=ERROR_RESPONSES,
    summary="List the current student's solutions",
)
async def get_student_solutions(
    query: SolutionListQuery = Depends(get_list_query),
    actor: Actor = Depends(require_capability("list_own")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SolutionList:
    page = await service.list_for_student(db, actor.profile_id, query)

    log_action(
        "get-student-solutions",
        actor,
        count=len(page.items),
        status=query.status.value if query.status else None,
    )
    return paginated(page, "Student solutions retrieved successfully")


@router.get(
    "/architect",
    response_model=SolutionList,
    responses=ERROR_RESPONSES,
    summary="List solutions claimed or reviewed by the current architect",
)
async def get_architect_reviews(
    query: SolutionListQuery = Depends(get_list_query),
    actor: Actor = Depends(require_capability("list_reviews")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SolutionList:
    page = await service.list_for_architect(db, actor.profile_id, query)

    log_action("get-architect-reviews", actor, count=len(page.items))
    return paginated(page, "Architect reviews retrieved successfully")


@router.get(
    "/challenge/{challenge_id}",
    response_model=SolutionList,
    responses=ERROR_RESPONSES,
    summary="List solutions submitted to a challenge",
)
async def get_challenge_solutions(
    challenge_id: str,
    query: SolutionListQuery = Depends(get_list_query),
    actor: Actor = Depends(require_capability("list_for_challenge")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SolutionList:
    parsed_id = parse_object_id(challenge_id, "challenge")
    page = await service.list_for_challenge(db, parsed_id, actor, query)

    log_action("get-challenge-solutions", actor, challenge_id=str(parsed_id), count=len(page.items))
    return paginated(page, "Challenge solutions retrieved successfully")


# ══════════════════════════════════════════════════════════════════════════
# Item Routes
# ══════════════════════════════════════════════════════════════════════════

@router.get(
    "/{solution_id}",
    response_model=SingleSolution,
    responses=ERROR_RESPONSES,
    summary="Get a solution by ID",
)
async def get_solution_by_id(
    solution_id: str,
    actor: Actor = Depends(require_capability("view")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SingleSolution:
    parsed_id = parse_object_id(solution_id, "solution")
    solution = await service.get_by_id(db, parsed_id, actor)

    log_action("get-solution", actor, solution_id=str(parsed_id))
    return SingleSolution(message="Solution retrieved successfully", data=solution)


@router.put(
    "/{solution_id}",
    response_model=SingleSolution,
    responses=ERROR_RESPONSES,
    summary="Update a solution before it is claimed for review",
)
async def update_solution(
    solution_id: str,
    body: SolutionUpdate,
    actor: Actor = Depends(require_capability("update")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SingleSolution:
    parsed_id = parse_object_id(solution_id, "solution")
    solution = await service.update(db, parsed_id, actor.profile_id, body)

    log_action("update-solution", actor, solution_id=str(parsed_id))
    return SingleSolution(message="Solution updated successfully", data=solution)


@router.patch(
    "/{solution_id}/claim",
    response_model=SingleSolution,
    responses=ERROR_RESPONSES,
    summary="Claim a solution for review",
)
async def claim_solution(
    solution_id: str,
    actor: Actor = Depends(require_capability("claim")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SingleSolution:
    parsed_id = parse_object_id(solution_id, "solution")
    solution = await service.claim_for_review(db, parsed_id, actor.profile_id)

    log_action("claim-solution", actor, solution_id=str(parsed_id), architect_id=str(actor.profile_id))
    return SingleSolution(message="Solution claimed for review successfully", data=solution)


@router.patch(
    "/{solution_id}/review",
    response_model=SingleSolution,
    responses=ERROR_RESPONSES,
    summary="Approve or reject a claimed solution",
)
async def review_solution(
    solution_id: str,
    body: ReviewRequest,
    actor: Actor = Depends(require_capability("review")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SingleSolution:
    parsed_id = parse_object_id(solution_id, "solution")
    solution = await service.review(db, parsed_id, actor.profile_id, body)

    log_action(
        "review-solution",
        actor,
        solution_id=str(parsed_id),
        status=solution.status.value,
        architect_id=str(actor.profile_id),
    )
    outcome = "approved" if solution.status == SolutionStatus.APPROVED else "rejected"
    return SingleSolution(message=f"Solution {outcome} successfully", data=solution)


@router.patch(
    "/{solution_id}/select",
    response_model=SingleSolution,
    responses=ERROR_RESPONSES,
    summary="Select an approved solution as a challenge winner",
)
async def select_solution(
    solution_id: str,
    body: SelectionRequest,
    actor: Actor = Depends(require_capability("select")),
    db: AsyncSession = Depends(get_db_session),
    service: SolutionService = Depends(get_solution_service),
) -> SingleSolution:
    parsed_id = parse_object_id(solution_id, "solution")
    solution = await service.select_as_winner(db, parsed_id, actor.profile_id, body)

    log_action(
        "select-solution",
        actor,
        solution_id=str(parsed_id),
        company_id=str(actor.profile_id),
        has_feedback=bool(body.company_feedback),
    )
    return SingleSolution(message="Solution selected as winner successfully", data=solution)
