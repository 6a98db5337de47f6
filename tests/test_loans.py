"""Loan application test suite — reference numbering, draft/submit/cancel,
HR approval and rejection, notifications, and API permissions."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import select

from hris.common.audit import AuditTrail
from hris.common.constants import (
    LoanApplicationStatus,
    LoanType,
    NotificationType,
    TenantRole,
)
from hris.common.exceptions import (
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from hris.loans.schemas import (
    LoanApplicationCreate,
    LoanApplicationUpdate,
    LoanApproveRequest,
)
from hris.loans.service import LoanApplicationService
from hris.notifications.models import Notification
from tests.conftest import auth_headers_for, make_ctx, seed_employee, seed_tenant

REFERENCE_RE = re.compile(r"^LA-\d{4}-\d{5}$")


def _application(**overrides) -> LoanApplicationCreate:
    data = dict(
        loan_type=LoanType.salary,
        amount_requested=Decimal("25000.00"),
        term_months=12,
        purpose="Home repairs",
    )
    data.update(overrides)
    return LoanApplicationCreate(**data)


async def _pending(db, ctx, **overrides):
    application = await LoanApplicationService.create(db, ctx, _application(**overrides))
    return await LoanApplicationService.submit(db, ctx, application.id)


# ═════════════════════════════════════════════════════════════════════
# 1. Applicant actions
# ═════════════════════════════════════════════════════════════════════


class TestLoanApplicant:

    async def test_create_draft_with_reference(self, db, employee_ctx):
        application = await LoanApplicationService.create(db, employee_ctx, _application())

        year = datetime.now(timezone.utc).year
        assert application.status == LoanApplicationStatus.draft
        assert REFERENCE_RE.match(application.reference_number)
        assert application.reference_number == f"LA-{year}-00001"
        assert application.employee_id == employee_ctx.employee_id
        assert application.created_by == employee_ctx.user_id

    async def test_reference_numbers_increment(self, db, employee_ctx):
        first = await LoanApplicationService.create(db, employee_ctx, _application())
        second = await LoanApplicationService.create(db, employee_ctx, _application())
        assert first.reference_number.endswith("-00001")
        assert second.reference_number.endswith("-00002")

    async def test_reference_sequence_is_per_tenant(self, db, employee_ctx):
        await LoanApplicationService.create(db, employee_ctx, _application())

        other = await seed_tenant(db)
        emp = await seed_employee(db, other.id)
        other_ctx = await make_ctx(db, other.id, employee=emp)
        theirs = await LoanApplicationService.create(db, other_ctx, _application())

        assert theirs.reference_number.endswith("-00001")

    async def test_create_requires_employee_record(self, db, tenant):
        ctx = await make_ctx(db, tenant.id, TenantRole.hr_manager)
        with pytest.raises(ForbiddenException):
            await LoanApplicationService.create(db, ctx, _application())

    async def test_submit_moves_to_pending(self, db, employee_ctx):
        application = await _pending(db, employee_ctx)
        assert application.status == LoanApplicationStatus.pending
        assert application.submitted_at is not None

    async def test_submit_twice_is_invalid(self, db, employee_ctx):
        application = await _pending(db, employee_ctx)
        with pytest.raises(InvalidStateException):
            await LoanApplicationService.submit(db, employee_ctx, application.id)

    async def test_cannot_submit_someone_elses(self, db, tenant, employee_ctx):
        application = await LoanApplicationService.create(db, employee_ctx, _application())
        stranger = await seed_employee(db, tenant.id)
        stranger_ctx = await make_ctx(db, tenant.id, employee=stranger)
        with pytest.raises(ForbiddenException):
            await LoanApplicationService.submit(db, stranger_ctx, application.id)

    async def test_cancel_pending(self, db, employee_ctx):
        application = await _pending(db, employee_ctx)
        cancelled = await LoanApplicationService.cancel(
            db, employee_ctx, application.id, "No longer needed",
        )
        assert cancelled.status == LoanApplicationStatus.cancelled
        assert cancelled.cancellation_reason == "No longer needed"
        assert cancelled.cancelled_at is not None

    async def test_my_applications(self, db, employee_ctx, hr_ctx):
        mine = await LoanApplicationService.create(db, employee_ctx, _application())
        await LoanApplicationService.create(db, hr_ctx, _application())

        result = await LoanApplicationService.my_applications(db, employee_ctx)

        assert [a.id for a in result] == [mine.id]

    async def test_reference_numbers_widen_past_99999(self, db, employee_ctx):
        year = datetime.now(timezone.utc).year
        first = await LoanApplicationService.create(db, employee_ctx, _application())
        first.reference_number = f"LA-{year}-99999"
        await db.flush()

        second = await LoanApplicationService.create(db, employee_ctx, _application())
        third = await LoanApplicationService.create(db, employee_ctx, _application())

        assert second.reference_number == f"LA-{year}-100000"
        assert third.reference_number == f"LA-{year}-100001"

    async def test_update_draft(self, db, employee_ctx):
        application = await LoanApplicationService.create(db, employee_ctx, _application())

        updated = await LoanApplicationService.update(
            db, employee_ctx, application.id,
            LoanApplicationUpdate(amount_requested=Decimal("18000.00"), term_months=6),
        )

        assert updated.amount_requested == Decimal("18000.00")
        assert updated.term_months == 6
        assert updated.loan_type == LoanType.salary
        assert updated.purpose == "Home repairs"

        audit = (
            await db.execute(
                select(AuditTrail).where(
                    AuditTrail.entity_id == application.id, AuditTrail.action == "update",
                )
            )
        ).scalars().one()
        assert audit.old_values == {"amount_requested": "25000.00", "term_months": 12}
        assert audit.new_values == {"amount_requested": "18000.00", "term_months": 6}

    async def test_update_submitted_is_invalid(self, db, employee_ctx):
        application = await _pending(db, employee_ctx)
        with pytest.raises(InvalidStateException):
            await LoanApplicationService.update(
                db, employee_ctx, application.id, LoanApplicationUpdate(term_months=3),
            )

    async def test_cannot_edit_someone_elses_draft(self, db, tenant, employee_ctx):
        application = await LoanApplicationService.create(db, employee_ctx, _application())
        stranger = await seed_employee(db, tenant.id)
        stranger_ctx = await make_ctx(db, tenant.id, employee=stranger)

        with pytest.raises(ForbiddenException):
            await LoanApplicationService.update(
                db, stranger_ctx, application.id, LoanApplicationUpdate(term_months=3),
            )
        with pytest.raises(ForbiddenException):
            await LoanApplicationService.delete(db, stranger_ctx, application.id)

    def test_update_cannot_clear_required_fields(self):
        with pytest.raises(PydanticValidationError):
            LoanApplicationUpdate(amount_requested=None)
        assert LoanApplicationUpdate(purpose=None).model_dump(exclude_unset=True) == {
            "purpose": None,
        }

    async def test_delete_draft(self, db, employee_ctx):
        application = await LoanApplicationService.create(db, employee_ctx, _application())

        await LoanApplicationService.delete(db, employee_ctx, application.id)

        with pytest.raises(NotFoundException):
            await LoanApplicationService.get_application(db, employee_ctx, application.id)

    async def test_delete_pending_is_invalid(self, db, employee_ctx):
        application = await _pending(db, employee_ctx)
        with pytest.raises(InvalidStateException):
            await LoanApplicationService.delete(db, employee_ctx, application.id)


# ═════════════════════════════════════════════════════════════════════
# 2. Review
# ═════════════════════════════════════════════════════════════════════


class TestLoanReview:

    async def test_approve_defaults_to_requested_terms(self, db, employee_ctx, hr_ctx):
        application = await _pending(db, employee_ctx)

        approved = await LoanApplicationService.approve(
            db, hr_ctx, application.id, LoanApproveRequest(),
        )

        assert approved.status == LoanApplicationStatus.approved
        assert approved.amount_approved == Decimal("25000.00")
        assert approved.approved_term_months == 12
        assert approved.reviewer_id == hr_ctx.employee_id
        assert approved.reviewed_at is not None

    async def test_approve_with_adjusted_terms(self, db, employee_ctx, hr_ctx):
        application = await _pending(db, employee_ctx)

        approved = await LoanApplicationService.approve(
            db, hr_ctx, application.id,
            LoanApproveRequest(
                amount_approved=Decimal("20000.00"),
                approved_term_months=10,
                interest_rate=Decimal("5.5"),
                remarks="Capped at policy limit",
            ),
        )

        assert approved.amount_approved == Decimal("20000.00")
        assert approved.approved_term_months == 10
        assert approved.interest_rate == Decimal("5.5")

    async def test_approve_draft_is_invalid(self, db, employee_ctx, hr_ctx):
        application = await LoanApplicationService.create(db, employee_ctx, _application())
        with pytest.raises(InvalidStateException) as exc:
            await LoanApplicationService.approve(
                db, hr_ctx, application.id, LoanApproveRequest(),
            )
        assert exc.value.current_status == LoanApplicationStatus.draft

    async def test_approve_twice_is_invalid(self, db, employee_ctx, hr_ctx):
        application = await _pending(db, employee_ctx)
        await LoanApplicationService.approve(db, hr_ctx, application.id, LoanApproveRequest())
        with pytest.raises(InvalidStateException):
            await LoanApplicationService.approve(
                db, hr_ctx, application.id, LoanApproveRequest(),
            )
        with pytest.raises(InvalidStateException):
            await LoanApplicationService.cancel(db, employee_ctx, application.id)

    async def test_reject_requires_remarks(self, db, employee_ctx, hr_ctx):
        application = await _pending(db, employee_ctx)
        with pytest.raises(ValidationException) as exc:
            await LoanApplicationService.reject(db, hr_ctx, application.id, "   ")
        assert "remarks" in exc.value.errors
        assert application.status == LoanApplicationStatus.pending

    async def test_reject_blank_remarks_checked_before_lookup(self, db, hr_ctx):
        with pytest.raises(ValidationException):
            await LoanApplicationService.reject(db, hr_ctx, uuid.uuid4(), "")

    async def test_reject(self, db, employee_ctx, hr_ctx):
        application = await _pending(db, employee_ctx)
        rejected = await LoanApplicationService.reject(
            db, hr_ctx, application.id, "  Exceeds eligible amount ",
        )
        assert rejected.status == LoanApplicationStatus.rejected
        assert rejected.remarks == "Exceeds eligible amount"
        assert rejected.reviewer_id == hr_ctx.employee_id

    async def test_review_notifies_applicant(self, db, employee_ctx, hr_ctx):
        application = await _pending(db, employee_ctx)
        await LoanApplicationService.reject(db, hr_ctx, application.id, "Incomplete documents")

        notes = (
            await db.execute(
                select(Notification).where(Notification.recipient_id == employee_ctx.user_id)
            )
        ).scalars().all()
        assert len(notes) == 1
        assert notes[0].type == NotificationType.alert
        assert notes[0].entity_id == application.id
        assert "Incomplete documents" in notes[0].message

    async def test_get_application_owner_or_reviewer(self, db, tenant, employee_ctx, hr_ctx):
        application = await LoanApplicationService.create(db, employee_ctx, _application())

        assert (await LoanApplicationService.get_application(
            db, employee_ctx, application.id,
        )).id == application.id
        assert (await LoanApplicationService.get_application(
            db, hr_ctx, application.id,
        )).id == application.id

        stranger = await seed_employee(db, tenant.id)
        stranger_ctx = await make_ctx(db, tenant.id, employee=stranger)
        with pytest.raises(ForbiddenException):
            await LoanApplicationService.get_application(db, stranger_ctx, application.id)

    async def test_other_tenant_application_not_found(self, db, employee_ctx):
        other = await seed_tenant(db)
        reviewer = await make_ctx(db, other.id, TenantRole.admin)
        application = await _pending(db, employee_ctx)
        with pytest.raises(NotFoundException):
            await LoanApplicationService.approve(
                db, reviewer, application.id, LoanApproveRequest(),
            )


# ═════════════════════════════════════════════════════════════════════
# 3. API
# ═════════════════════════════════════════════════════════════════════


class TestLoanAPI:

    async def test_full_flow(self, client, db, employee_ctx, hr_ctx):
        await db.commit()
        applicant = auth_headers_for(employee_ctx)
        reviewer = auth_headers_for(hr_ctx)

        resp = await client.post(
            "/api/v1/loans",
            json={"loan_type": "emergency", "amount_requested": "5000.00", "term_months": 6},
            headers=applicant,
        )
        assert resp.status_code == 201
        loan = resp.json()
        assert loan["status"] == "draft"
        assert REFERENCE_RE.match(loan["reference_number"])

        resp = await client.post(f"/api/v1/loans/{loan['id']}/submit", headers=applicant)
        assert resp.status_code == 200
        assert resp.json()["status"] == "pending"

        resp = await client.put(
            f"/api/v1/loans/{loan['id']}/approve", json={}, headers=reviewer,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "approved"
        assert Decimal(body["amount_approved"]) == Decimal("5000.00")
        assert body["approved_term_months"] == 6

        resp = await client.get(f"/api/v1/loans/{loan['id']}", headers=applicant)
        assert resp.status_code == 200
        assert resp.json()["reviewer"]["id"] == str(hr_ctx.employee_id)

    async def test_employee_cannot_approve(self, client, db, employee_ctx):
        application = await _pending(db, employee_ctx)
        await db.commit()
        resp = await client.put(
            f"/api/v1/loans/{application.id}/approve",
            json={},
            headers=auth_headers_for(employee_ctx),
        )
        assert resp.status_code == 403

    async def test_reject_blank_remarks_is_422(self, client, db, employee_ctx, hr_ctx):
        application = await _pending(db, employee_ctx)
        await db.commit()
        resp = await client.put(
            f"/api/v1/loans/{application.id}/reject",
            json={"remarks": ""},
            headers=auth_headers_for(hr_ctx),
        )
        assert resp.status_code == 422
        assert "remarks" in resp.json()["errors"]

    async def test_reviewer_list_filters_by_status(self, client, db, employee_ctx, hr_ctx):
        await _pending(db, employee_ctx)
        await LoanApplicationService.create(db, employee_ctx, _application())
        await db.commit()

        resp = await client.get(
            "/api/v1/loans", params={"status": "pending"}, headers=auth_headers_for(hr_ctx),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["meta"]["total"] == 1
        assert body["data"][0]["status"] == "pending"

    async def test_edit_and_delete_draft(self, client, db, employee_ctx):
        application = await LoanApplicationService.create(db, employee_ctx, _application())
        await db.commit()
        headers = auth_headers_for(employee_ctx)

        resp = await client.patch(
            f"/api/v1/loans/{application.id}",
            json={"loan_type": "housing", "purpose": None},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["loan_type"] == "housing"
        assert resp.json()["purpose"] is None

        resp = await client.patch(
            f"/api/v1/loans/{application.id}",
            json={"term_months": None},
            headers=headers,
        )
        assert resp.status_code == 422

        resp = await client.delete(f"/api/v1/loans/{application.id}", headers=headers)
        assert resp.status_code == 204

        resp = await client.get(f"/api/v1/loans/{application.id}", headers=headers)
        assert resp.status_code == 404
