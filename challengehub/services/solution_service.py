"""
ChallengeHub Backend — Solution Service (Lifecycle Manager)
=============================================================

What:  Owns the solution state machine and its role-and-ownership rules.
How:   Every transition is ONE conditional UPDATE whose WHERE clause restates
       the precondition (current status, bound reviewer, owning student).
       If no row matched, the record is re-read only to choose the error
       kind. No read-then-write window exists for two callers to both win.
Who:   Called by the solution route handlers with an already-resolved
       profile id (mutations) or Actor (reads).
When:  Once per request, inside the request's transaction.

Transitions:
    submit            → SUBMITTED                         (student)
    claim_for_review  SUBMITTED → CLAIMED, reviewer bound (architect)
    review            CLAIMED   → APPROVED | REJECTED     (bound architect)
    select_as_winner  APPROVED  → SELECTED                (challenge-owning company)

Error Kinds:
    ValidationError    malformed content, decision or score
    NotFoundError      unknown solution or challenge
    ForbiddenError     wrong owner / wrong reviewer / wrong company
    InvalidStateError  transition not legal from the current status
    ConflictError      someone else got there first
    DatabaseError      anything the store raised

Retries:
    Read paths retry transient OperationalErrors (tenacity). Transitions are
    never retried.
"""

import logging
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, TypeVar

from pydantic import AnyHttpUrl, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from challengehub import policies
from challengehub.config import Settings, settings as default_settings
from challengehub.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from challengehub.models.solution import REVIEW_OUTCOMES, Solution, SolutionStatus
from challengehub.policies import Actor
from challengehub.schemas.solution import (
    ReviewRequest,
    SelectionRequest,
    SolutionContent,
    SolutionListQuery,
    SolutionResponse,
)
from challengehub.services.challenge_service import ChallengeService

logger = logging.getLogger(__name__)

T = TypeVar("T")

_http_url = TypeAdapter(AnyHttpUrl)


@dataclass
class SolutionPage:
    """One page of a listing, before envelope formatting."""

    items: List[SolutionResponse]
    total: int
    page: int
    limit: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def _database_errors(action: str, **context: Any) -> Iterator[None]:
    """Translate SQLAlchemy failures into DatabaseError (details logged, not returned)."""
    try:
        yield
    except SQLAlchemyError as e:
        logger.error("Database error while %s: %s", action, str(e), exc_info=True)
        raise DatabaseError(
            message=f"A database error occurred while {action}. Please try again.",
            context={"error_type": type(e).__name__, **context},
        ) from e


class SolutionService:
    """
    Stateless lifecycle manager. All state lives in the store.

    Constructed per request by `dependencies.get_solution_service`.
    """

    def __init__(
        self,
        challenges: Optional[ChallengeService] = None,
        config: Optional[Settings] = None,
    ):
        self.challenges = challenges or ChallengeService()
        self.settings = config or default_settings

    # ══════════════════════════════════════════════════════════════════════
    # Transitions
    # ══════════════════════════════════════════════════════════════════════

    async def submit(
        self,
        db: AsyncSession,
        student_id: uuid.UUID,
        challenge_id: uuid.UUID,
        content: SolutionContent,
    ) -> SolutionResponse:
        """
        Create a SUBMITTED solution owned by `student_id`.

        Raises:
            ValidationError: title missing/too long, URL malformed, bad tags
            NotFoundError: challenge does not exist
            InvalidStateError: challenge closed or past its deadline
        """
        fields = self._clean_content(content.provided_fields(), partial=False)

        with _database_errors("submitting the solution", challenge_id=str(challenge_id)):
            challenge = await self.challenges.get_challenge(db, challenge_id)
            self.challenges.ensure_accepting_submissions(challenge)

            now = _utcnow()
            solution = Solution(
                challenge_id=challenge.id,
                student_id=student_id,
                status=SolutionStatus.SUBMITTED,
                reviewer_id=None,
                created_at=now,
                updated_at=now,
                **fields,
            )
            db.add(solution)
            await db.flush()

        logger.info("Solution %s submitted to challenge %s", solution.id, challenge_id)
        return self._to_response(solution)

    async def update(
        self,
        db: AsyncSession,
        solution_id: uuid.UUID,
        student_id: uuid.UUID,
        content: SolutionContent,
    ) -> SolutionResponse:
        """
        Partially update content while the solution is still SUBMITTED.

        Fields left as None are not modified. An update with no fields is a
        no-op that returns the current record.

        Raises:
            NotFoundError: solution does not exist
            ForbiddenError: caller is not the owning student
            ConflictError: solution already claimed (now or concurrently)
            InvalidStateError: challenge deadline has passed
            ValidationError: content fails shape checks
        """
        with _database_errors("updating the solution", solution_id=str(solution_id)):
            solution = await self._load(db, solution_id)
            if solution.student_id != student_id:
                raise ForbiddenError(
                    message="You can only update your own solutions",
                    context={"solution_id": str(solution_id)},
                )
            if solution.status != SolutionStatus.SUBMITTED:
                raise ConflictError(
                    message="Solution is already under review and can no longer be edited",
                    context={"solution_id": str(solution_id), "current_status": solution.status.value},
                )

            challenge = await self.challenges.get_challenge(db, solution.challenge_id)
            self.challenges.ensure_before_deadline(challenge)

            fields = self._clean_content(content.provided_fields(), partial=True)
            if not fields:
                return self._to_response(solution)

            result = await db.execute(
                update(Solution)
                .where(
                    Solution.id == solution_id,
                    Solution.student_id == student_id,
                    Solution.status == SolutionStatus.SUBMITTED,
                    Solution.reviewer_id.is_(None),
                )
                .values(**fields, updated_at=_utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise ConflictError(
                    message="Solution is already under review and can no longer be edited",
                    context={"solution_id": str(solution_id)},
                )
            solution = await self._load(db, solution_id)

        logger.info("Solution %s content updated (%s)", solution_id, ", ".join(sorted(fields)))
        return self._to_response(solution)

    async def claim_for_review(
        self, db: AsyncSession, solution_id: uuid.UUID, architect_id: uuid.UUID
    ) -> SolutionResponse:
        """
        SUBMITTED → CLAIMED, binding `reviewer_id = architect_id`.

        Exclusive: the UPDATE only matches an unclaimed SUBMITTED row, so of
        any number of concurrent claimants exactly one sees rowcount == 1.

        Raises:
            NotFoundError: solution does not exist
            ConflictError: solution already claimed
            InvalidStateError: solution already reviewed or selected
        """
        target = SolutionStatus.CLAIMED
        with _database_errors("claiming the solution", solution_id=str(solution_id)):
            result = await db.execute(
                update(Solution)
                .where(
                    Solution.id == solution_id,
                    Solution.status.in_(SolutionStatus.sources_of(target)),
                    Solution.reviewer_id.is_(None),
                )
                .values(status=target, reviewer_id=architect_id, updated_at=_utcnow())
                .execution_options(synchronize_session=False)
            )
            solution = await self._load(db, solution_id)

        if result.rowcount != 1:
            if solution.status in (SolutionStatus.SUBMITTED, SolutionStatus.CLAIMED):
                raise ConflictError(
                    message="Solution is already claimed for review",
                    context={"solution_id": str(solution_id)},
                )
            raise self._invalid_transition(solution, target, "claimed")

        logger.info("Solution %s claimed for review", solution_id)
        return self._to_response(solution)

    async def review(
        self,
        db: AsyncSession,
        solution_id: uuid.UUID,
        architect_id: uuid.UUID,
        request: ReviewRequest,
    ) -> SolutionResponse:
        """
        CLAIMED → APPROVED | REJECTED by the bound reviewer.

        Raises:
            ValidationError: unknown decision, missing/out-of-range score
            NotFoundError: solution does not exist
            ForbiddenError: a different architect holds the claim
            InvalidStateError: solution is not CLAIMED
        """
        decision = self._parse_decision(request.status)
        score = self._validate_score(request.score, required=decision == SolutionStatus.APPROVED)
        feedback = self._clean_text(request.feedback, "feedback")

        with _database_errors("reviewing the solution", solution_id=str(solution_id)):
            now = _utcnow()
            result = await db.execute(
                update(Solution)
                .where(
                    Solution.id == solution_id,
                    Solution.status.in_(SolutionStatus.sources_of(decision)),
                    Solution.reviewer_id == architect_id,
                )
                .values(
                    status=decision,
                    feedback=feedback,
                    score=score,
                    reviewed_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            solution = await self._load(db, solution_id)

        if result.rowcount != 1:
            if solution.reviewer_id is not None and solution.reviewer_id != architect_id:
                raise ForbiddenError(
                    message="Only the architect who claimed this solution can review it",
                    context={"solution_id": str(solution_id)},
                )
            if solution.status == SolutionStatus.SUBMITTED:
                raise InvalidStateError(
                    message="Solution must be claimed before it can be reviewed",
                    current_status=solution.status.value,
                    context={"solution_id": str(solution_id)},
                )
            raise self._invalid_transition(solution, decision, "reviewed")

        logger.info("Solution %s reviewed: %s", solution_id, decision.value)
        return self._to_response(solution)

    async def select_as_winner(
        self,
        db: AsyncSession,
        solution_id: uuid.UUID,
        company_id: uuid.UUID,
        request: SelectionRequest,
    ) -> SolutionResponse:
        """
        APPROVED → SELECTED by the company that owns the challenge.

        Sibling solutions are left untouched. The challenge's `max_winners`
        caps how many solutions may be SELECTED; the quota is counted while
        holding a lock on the challenge row.

        Raises:
            NotFoundError: solution does not exist
            ForbiddenError: company does not own the challenge
            InvalidStateError: solution is SUBMITTED, CLAIMED or REJECTED
            ConflictError: solution already selected, or quota exhausted
        """
        target = SolutionStatus.SELECTED
        company_feedback = self._clean_text(request.company_feedback, "companyFeedback")
        selection_reason = self._clean_text(request.selection_reason, "selectionReason")

        with _database_errors("selecting the solution", solution_id=str(solution_id)):
            solution = await self._load(db, solution_id)
            challenge = await self.challenges.get_challenge(db, solution.challenge_id, for_update=True)

            if challenge.company_id != company_id:
                raise ForbiddenError(
                    message="Only the company that owns this challenge can select winners",
                    context={"solution_id": str(solution_id)},
                )
            if solution.status == target:
                raise ConflictError(
                    message="Solution has already been selected as a winner",
                    context={"solution_id": str(solution_id)},
                )
            if not solution.status.can_transition_to(target):
                raise self._invalid_transition(solution, target, "selected")

            selected = await self.challenges.count_selected(db, challenge.id)
            if selected >= challenge.max_winners:
                raise ConflictError(
                    message="This challenge already has the maximum number of winners",
                    context={"challenge_id": str(challenge.id), "max_winners": challenge.max_winners},
                )

            now = _utcnow()
            result = await db.execute(
                update(Solution)
                .where(
                    Solution.id == solution_id,
                    Solution.status.in_(SolutionStatus.sources_of(target)),
                )
                .values(
                    status=target,
                    company_feedback=company_feedback,
                    selection_reason=selection_reason,
                    selected_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            solution = await self._load(db, solution_id)

        if result.rowcount != 1:
            if solution.status == target:
                raise ConflictError(
                    message="Solution has already been selected as a winner",
                    context={"solution_id": str(solution_id)},
                )
            raise self._invalid_transition(solution, target, "selected")

        logger.info("Solution %s selected as winner of challenge %s", solution_id, challenge.id)
        return self._to_response(solution)

    # ══════════════════════════════════════════════════════════════════════
    # Read Paths
    # ══════════════════════════════════════════════════════════════════════

    async def get_by_id(
        self, db: AsyncSession, solution_id: uuid.UUID, actor: Actor
    ) -> SolutionResponse:
        """
        Fetch one solution if the actor may see it.

        Visibility: owner student, challenge-owning company, any architect, admin.
        """

        async def fetch() -> Solution:
            solution = await self._load(db, solution_id)
            company_id = await self.challenges.get_owner_id(db, solution.challenge_id)
            policies.ensure_can_view(actor, solution, company_id)
            return solution

        solution = await self._read(db, fetch, "fetching the solution")
        return self._to_response(solution)

    async def list_for_student(
        self, db: AsyncSession, student_id: uuid.UUID, query: Optional[SolutionListQuery] = None
    ) -> SolutionPage:
        """Solutions submitted by `student_id`."""
        query = query or SolutionListQuery()
        return await self._read(
            db,
            lambda: self._paginate(db, [Solution.student_id == student_id], query),
            "listing student solutions",
        )

    async def list_for_architect(
        self, db: AsyncSession, architect_id: uuid.UUID, query: Optional[SolutionListQuery] = None
    ) -> SolutionPage:
        """Solutions bound to `architect_id`, including ones still under review."""
        query = query or SolutionListQuery()
        return await self._read(
            db,
            lambda: self._paginate(db, [Solution.reviewer_id == architect_id], query),
            "listing architect reviews",
        )

    async def list_for_challenge(
        self,
        db: AsyncSession,
        challenge_id: uuid.UUID,
        actor: Actor,
        query: Optional[SolutionListQuery] = None,
    ) -> SolutionPage:
        """
        Solutions submitted to a challenge.

        Companies may list only their own challenges; architects and admins any.
        """
        query = query or SolutionListQuery()

        async def fetch() -> SolutionPage:
            company_id = await self.challenges.get_owner_id(db, challenge_id)
            policies.ensure_can_list_challenge(actor, company_id)
            return await self._paginate(db, [Solution.challenge_id == challenge_id], query)

        return await self._read(db, fetch, "listing challenge solutions")

    # ══════════════════════════════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════════════════════════════

    async def _read(
        self, db: AsyncSession, operation: Callable[[], Awaitable[T]], action: str
    ) -> T:
        """Run an idempotent read, retrying transient OperationalErrors."""
        with _database_errors(action):
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.settings.read_retry_attempts),
                wait=wait_exponential(
                    multiplier=self.settings.read_retry_initial_wait,
                    max=self.settings.read_retry_max_wait,
                )
                + wait_random(0, self.settings.read_retry_initial_wait),
                retry=retry_if_exception_type(OperationalError),
                before_sleep=before_sleep_log(logger, logging.WARNING),
                reraise=True,
            ):
                with attempt:
                    try:
                        return await operation()
                    except OperationalError:
                        await db.rollback()
                        raise

    async def _paginate(
        self, db: AsyncSession, conditions: List[Any], query: SolutionListQuery
    ) -> SolutionPage:
        if query.status is not None:
            conditions = [*conditions, Solution.status == query.status]

        column = getattr(Solution, query.sort_column)
        order = column.asc() if query.sort_order == "asc" else column.desc()

        rows = await db.execute(
            select(Solution)
            .where(*conditions)
            .order_by(order, Solution.id)
            .offset(query.offset)
            .limit(query.limit)
        )
        solutions = list(rows.scalars().all())

        count_result = await db.execute(select(func.count(Solution.id)).where(*conditions))
        total = count_result.scalar() or 0

        return SolutionPage(
            items=[self._to_response(s) for s in solutions],
            total=total,
            page=query.page,
            limit=query.limit,
        )

    async def _load(self, db: AsyncSession, solution_id: uuid.UUID) -> Solution:
        result = await db.execute(
            select(Solution)
            .where(Solution.id == solution_id)
            .execution_options(populate_existing=True)
        )
        solution = result.scalar_one_or_none()
        if solution is None:
            raise NotFoundError(resource="solution", resource_id=str(solution_id))
        return solution

    @staticmethod
    def _to_response(solution: Solution) -> SolutionResponse:
        return SolutionResponse.model_validate(solution)

    @staticmethod
    def _invalid_transition(
        solution: Solution, target: SolutionStatus, verb: str
    ) -> InvalidStateError:
        return InvalidStateError(
            message=f"Solution cannot be {verb} while it is {solution.status.value}",
            current_status=solution.status.value,
            context={"solution_id": str(solution.id), "target_status": target.value},
        )

    # ── Validation ────────────────────────────────────────────────────────

    def _clean_content(self, fields: Dict[str, Any], partial: bool) -> Dict[str, Any]:
        """
        Normalize and shape-check student content.

        partial=False (submit): title and submissionUrl are required.
        partial=True (update):  only provided fields are checked and returned.
        """
        cleaned: Dict[str, Any] = {}

        if "title" in fields or not partial:
            title = (fields.get("title") or "").strip()
            if not title:
                raise ValidationError(message="Title is required", field="title")
            if len(title) > self.settings.max_title_length:
                raise ValidationError(
                    message=f"Title must be at most {self.settings.max_title_length} characters",
                    field="title",
                )
            cleaned["title"] = title

        if "description" in fields or not partial:
            cleaned["description"] = self._clean_text(fields.get("description"), "description") or ""

        if "submission_url" in fields or not partial:
            cleaned["submission_url"] = self._validate_url(fields.get("submission_url"))

        if "tags" in fields or not partial:
            cleaned["tags"] = self._clean_tags(fields.get("tags") or [])

        return cleaned

    def _validate_url(self, value: Optional[str]) -> str:
        url = (value or "").strip()
        if not url:
            raise ValidationError(message="Submission URL is required", field="submissionUrl")
        if len(url) > 2048:
            raise ValidationError(message="Submission URL is too long", field="submissionUrl")
        try:
            _http_url.validate_python(url)
        except PydanticValidationError:
            raise ValidationError(
                message="Submission URL must be a valid http(s) URL",
                field="submissionUrl",
            ) from None
        return url

    def _clean_tags(self, tags: List[str]) -> List[str]:
        cleaned: List[str] = []
        for tag in tags:
            normalized = tag.strip().lower()
            if not normalized or normalized in cleaned:
                continue
            if len(normalized) > self.settings.max_tag_length:
                raise ValidationError(
                    message=f"Tags must be at most {self.settings.max_tag_length} characters",
                    field="tags",
                )
            cleaned.append(normalized)
        if len(cleaned) > self.settings.max_tags:
            raise ValidationError(
                message=f"At most {self.settings.max_tags} tags are allowed",
                field="tags",
            )
        return cleaned

    def _clean_text(self, value: Optional[str], field: str) -> Optional[str]:
        if value is None:
            return None
        text = value.strip()
        if len(text) > self.settings.max_description_length:
            raise ValidationError(
                message=f"{field} must be at most {self.settings.max_description_length} characters",
                field=field,
            )
        return text or None

    @staticmethod
    def _parse_decision(value: Optional[str]) -> SolutionStatus:
        try:
            decision = SolutionStatus((value or "").strip().lower())
        except ValueError:
            decision = None
        if decision not in REVIEW_OUTCOMES:
            allowed = sorted(s.value for s in REVIEW_OUTCOMES)
            raise ValidationError(
                message=f"Review status must be one of: {', '.join(allowed)}",
                field="status",
            )
        return decision

    def _validate_score(self, score: Optional[int], required: bool) -> Optional[int]:
        low, high = self.settings.review_score_min, self.settings.review_score_max
        if score is None:
            if required:
                raise ValidationError(message="A score is required when approving a solution", field="score")
            return None
        if not low <= score <= high:
            raise ValidationError(message=f"Score must be between {low} and {high}", field="score")
        return score
