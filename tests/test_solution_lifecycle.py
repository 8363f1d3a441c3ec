"""
ChallengeHub Backend — Solution Lifecycle Tests
=================================================

What:  SolutionService transitions against a real (in-memory SQLite) store.
How:   Each test seeds a world (students, architects, companies, one
       challenge) and drives the lifecycle through the service.

What we test:
    ✅ Happy path: submit → claim → approve → select
    ✅ Reject path, then selection refused
    ✅ Claim exclusivity (second claimant conflicts, reviewer unchanged)
    ✅ Only the bound reviewer may review
    ✅ Update after claim conflicts and leaves content unchanged
    ✅ Selection requires APPROVED and respects the winner quota
    ✅ Content, decision and score validation
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import select

from challengehub.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from challengehub.models.challenge import ChallengeStatus
from challengehub.models.solution import Solution, SolutionStatus
from challengehub.schemas.solution import ReviewRequest, SelectionRequest, SolutionContent


async def fetch_row(db, solution_id) -> Solution:
    result = await db.execute(
        select(Solution)
        .where(Solution.id == solution_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


class TestScenarios:
    """End-to-end walks through the state machine."""

    @pytest.mark.asyncio
    async def test_submit_claim_approve_select(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        assert solution.status == SolutionStatus.SUBMITTED
        assert solution.reviewer_id is None

        claimed = await service.claim_for_review(db_session, solution.id, world.architect.id)
        assert claimed.status == SolutionStatus.CLAIMED
        assert claimed.reviewer_id == world.architect.id

        with pytest.raises(ConflictError):
            await service.claim_for_review(db_session, solution.id, world.other_architect.id)

        approved = await service.review(
            db_session,
            solution.id,
            world.architect.id,
            ReviewRequest(status="APPROVED", score=90, feedback="Clean design"),
        )
        assert approved.status == SolutionStatus.APPROVED
        assert approved.score == 90
        assert approved.feedback == "Clean design"
        assert approved.reviewed_at is not None

        selected = await service.select_as_winner(
            db_session,
            solution.id,
            world.company.id,
            SelectionRequest(company_feedback="Great work", selection_reason="Best throughput"),
        )
        assert selected.status == SolutionStatus.SELECTED
        assert selected.company_feedback == "Great work"
        assert selected.selection_reason == "Best throughput"
        assert selected.selected_at is not None
        assert selected.reviewer_id == world.architect.id

    @pytest.mark.asyncio
    async def test_rejected_solution_cannot_be_selected(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)

        rejected = await service.review(
            db_session, solution.id, world.architect.id, ReviewRequest(status="REJECTED")
        )
        assert rejected.status == SolutionStatus.REJECTED
        assert rejected.score is None

        with pytest.raises(InvalidStateError) as exc_info:
            await service.select_as_winner(db_session, solution.id, world.company.id, SelectionRequest())
        assert exc_info.value.current_status == "rejected"

        row = await fetch_row(db_session, solution.id)
        assert row.status == SolutionStatus.REJECTED


class TestSubmit:

    @pytest.mark.asyncio
    async def test_submit_normalizes_content(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session,
            world.student.id,
            world.challenge.id,
            content_factory(title="  Padded  ", tags=["Python", "python", " FastAPI ", ""]),
        )
        assert solution.title == "Padded"
        assert solution.tags == ["python", "fastapi"]
        assert solution.student_id == world.student.id
        assert solution.challenge_id == world.challenge.id

    @pytest.mark.asyncio
    async def test_submit_requires_title(self, db_session, world, service, content_factory):
        with pytest.raises(ValidationError) as exc_info:
            await service.submit(
                db_session, world.student.id, world.challenge.id, content_factory(title="   ")
            )
        assert exc_info.value.field == "title"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", ["not a url", "ftp://files.example.com/x", ""])
    async def test_submit_rejects_malformed_url(self, db_session, world, service, content_factory, url):
        with pytest.raises(ValidationError) as exc_info:
            await service.submit(
                db_session, world.student.id, world.challenge.id, content_factory(submission_url=url)
            )
        assert exc_info.value.field == "submissionUrl"

    @pytest.mark.asyncio
    async def test_submit_rejects_too_many_tags(self, db_session, world, service, content_factory):
        tags = [f"tag{i}" for i in range(11)]
        with pytest.raises(ValidationError):
            await service.submit(
                db_session, world.student.id, world.challenge.id, content_factory(tags=tags)
            )

    @pytest.mark.asyncio
    async def test_submit_to_unknown_challenge(self, db_session, world, service, content_factory):
        with pytest.raises(NotFoundError):
            await service.submit(db_session, world.student.id, uuid4(), content_factory())

    @pytest.mark.asyncio
    async def test_submit_to_closed_challenge(self, db_session, world, service, content_factory):
        world.challenge.status = ChallengeStatus.CLOSED
        await db_session.commit()

        with pytest.raises(InvalidStateError):
            await service.submit(db_session, world.student.id, world.challenge.id, content_factory())

    @pytest.mark.asyncio
    async def test_submit_after_deadline(self, db_session, world, service, content_factory):
        world.challenge.deadline = datetime.now(timezone.utc) - timedelta(hours=1)
        await db_session.commit()

        with pytest.raises(InvalidStateError):
            await service.submit(db_session, world.student.id, world.challenge.id, content_factory())


class TestUpdate:

    @pytest.mark.asyncio
    async def test_partial_update_leaves_other_fields(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )

        updated = await service.update(
            db_session, solution.id, world.student.id, SolutionContent(title="Better title")
        )
        assert updated.title == "Better title"
        assert updated.submission_url == "http://a"
        assert updated.description == "My approach"
        assert updated.status == SolutionStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_empty_update_is_noop(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        unchanged = await service.update(db_session, solution.id, world.student.id, SolutionContent())
        assert unchanged.title == solution.title
        assert unchanged.tags == solution.tags
        assert unchanged.status == SolutionStatus.SUBMITTED

    @pytest.mark.asyncio
    async def test_update_by_other_student_forbidden(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        with pytest.raises(ForbiddenError):
            await service.update(
                db_session, solution.id, world.other_student.id, SolutionContent(title="Mine now")
            )

    @pytest.mark.asyncio
    async def test_update_after_claim_conflicts(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)

        with pytest.raises(ConflictError):
            await service.update(
                db_session,
                solution.id,
                world.student.id,
                SolutionContent(title="Sneaky edit", submission_url="http://b", tags=["late"]),
            )

        row = await fetch_row(db_session, solution.id)
        assert row.title == "X"
        assert row.submission_url == "http://a"
        assert row.tags == ["python"]
        assert row.status == SolutionStatus.CLAIMED

    @pytest.mark.asyncio
    async def test_update_after_deadline(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        world.challenge.deadline = datetime.now(timezone.utc) - timedelta(minutes=1)
        await db_session.commit()

        with pytest.raises(InvalidStateError):
            await service.update(db_session, solution.id, world.student.id, SolutionContent(title="Late"))

    @pytest.mark.asyncio
    async def test_update_unknown_solution(self, db_session, world, service):
        with pytest.raises(NotFoundError):
            await service.update(db_session, uuid4(), world.student.id, SolutionContent(title="?"))


class TestClaim:

    @pytest.mark.asyncio
    async def test_second_claim_keeps_first_reviewer(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)

        with pytest.raises(ConflictError):
            await service.claim_for_review(db_session, solution.id, world.other_architect.id)

        row = await fetch_row(db_session, solution.id)
        assert row.reviewer_id == world.architect.id
        assert row.status == SolutionStatus.CLAIMED

    @pytest.mark.asyncio
    async def test_same_architect_cannot_claim_twice(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)

        with pytest.raises(ConflictError):
            await service.claim_for_review(db_session, solution.id, world.architect.id)

    @pytest.mark.asyncio
    async def test_claim_reviewed_solution_is_invalid_state(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)
        await service.review(db_session, solution.id, world.architect.id, ReviewRequest(status="rejected"))

        with pytest.raises(InvalidStateError):
            await service.claim_for_review(db_session, solution.id, world.other_architect.id)

        row = await fetch_row(db_session, solution.id)
        assert row.status == SolutionStatus.REJECTED
        assert row.reviewer_id == world.architect.id

    @pytest.mark.asyncio
    async def test_claim_unknown_solution(self, db_session, world, service):
        with pytest.raises(NotFoundError):
            await service.claim_for_review(db_session, uuid4(), world.architect.id)


class TestReview:

    @pytest.mark.asyncio
    async def test_other_architect_forbidden_and_state_unchanged(
        self, db_session, world, service, content_factory
    ):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)

        with pytest.raises(ForbiddenError):
            await service.review(
                db_session,
                solution.id,
                world.other_architect.id,
                ReviewRequest(status="approved", score=99),
            )

        row = await fetch_row(db_session, solution.id)
        assert row.status == SolutionStatus.CLAIMED
        assert row.reviewer_id == world.architect.id
        assert row.score is None

    @pytest.mark.asyncio
    async def test_review_unclaimed_is_invalid_state(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        with pytest.raises(InvalidStateError) as exc_info:
            await service.review(
                db_session, solution.id, world.architect.id, ReviewRequest(status="approved", score=80)
            )
        assert exc_info.value.current_status == "submitted"

    @pytest.mark.asyncio
    async def test_review_twice_is_invalid_state(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)
        await service.review(
            db_session, solution.id, world.architect.id, ReviewRequest(status="approved", score=70)
        )

        with pytest.raises(InvalidStateError):
            await service.review(db_session, solution.id, world.architect.id, ReviewRequest(status="rejected"))

        row = await fetch_row(db_session, solution.id)
        assert row.status == SolutionStatus.APPROVED
        assert row.score == 70

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "request_body",
        [
            ReviewRequest(status="selected", score=50),
            ReviewRequest(status="claimed"),
            ReviewRequest(status="maybe"),
            ReviewRequest(status="approved"),
            ReviewRequest(status="approved", score=101),
            ReviewRequest(status="rejected", score=-1),
        ],
    )
    async def test_invalid_review_input(self, db_session, world, service, content_factory, request_body):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)

        with pytest.raises(ValidationError):
            await service.review(db_session, solution.id, world.architect.id, request_body)

        row = await fetch_row(db_session, solution.id)
        assert row.status == SolutionStatus.CLAIMED


class TestSelect:

    async def approved_solution(self, db_session, world, service, content_factory, **content):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory(**content)
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)
        await service.review(
            db_session, solution.id, world.architect.id, ReviewRequest(status="approved", score=85)
        )
        return solution

    @pytest.mark.asyncio
    async def test_select_submitted_is_invalid_state(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        with pytest.raises(InvalidStateError):
            await service.select_as_winner(db_session, solution.id, world.company.id, SelectionRequest())

    @pytest.mark.asyncio
    async def test_select_claimed_is_invalid_state(self, db_session, world, service, content_factory):
        solution = await service.submit(
            db_session, world.student.id, world.challenge.id, content_factory()
        )
        await service.claim_for_review(db_session, solution.id, world.architect.id)

        with pytest.raises(InvalidStateError):
            await service.select_as_winner(db_session, solution.id, world.company.id, SelectionRequest())

        row = await fetch_row(db_session, solution.id)
        assert row.status == SolutionStatus.CLAIMED

    @pytest.mark.asyncio
    async def test_select_by_other_company_forbidden(self, db_session, world, service, content_factory):
        solution = await self.approved_solution(db_session, world, service, content_factory)

        with pytest.raises(ForbiddenError):
            await service.select_as_winner(
                db_session, solution.id, world.other_company.id, SelectionRequest()
            )

        row = await fetch_row(db_session, solution.id)
        assert row.status == SolutionStatus.APPROVED

    @pytest.mark.asyncio
    async def test_select_twice_conflicts(self, db_session, world, service, content_factory):
        solution = await self.approved_solution(db_session, world, service, content_factory)
        await service.select_as_winner(db_session, solution.id, world.company.id, SelectionRequest())

        with pytest.raises(ConflictError):
            await service.select_as_winner(db_session, solution.id, world.company.id, SelectionRequest())

    @pytest.mark.asyncio
    async def test_winner_quota(self, db_session, world, service, content_factory):
        first = await self.approved_solution(db_session, world, service, content_factory, title="First")
        second = await self.approved_solution(db_session, world, service, content_factory, title="Second")

        await service.select_as_winner(db_session, first.id, world.company.id, SelectionRequest())
        with pytest.raises(ConflictError):
            await service.select_as_winner(db_session, second.id, world.company.id, SelectionRequest())

        row = await fetch_row(db_session, second.id)
        assert row.status == SolutionStatus.APPROVED

    @pytest.mark.asyncio
    async def test_selection_leaves_siblings_untouched(self, db_session, world, service, content_factory):
        world.challenge.max_winners = 2
        await db_session.commit()

        first = await self.approved_solution(db_session, world, service, content_factory, title="First")
        second = await self.approved_solution(db_session, world, service, content_factory, title="Second")
        pending = await service.submit(
            db_session, world.other_student.id, world.challenge.id, content_factory(title="Pending")
        )

        await service.select_as_winner(db_session, first.id, world.company.id, SelectionRequest())

        assert (await fetch_row(db_session, second.id)).status == SolutionStatus.APPROVED
        assert (await fetch_row(db_session, pending.id)).status == SolutionStatus.SUBMITTED

        selected = await service.select_as_winner(db_session, second.id, world.company.id, SelectionRequest())
        assert selected.status == SolutionStatus.SELECTED
