# ========================================
# accelerator/routes/admin_applicants.py
# ========================================

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from accelerator.database import get_db
from accelerator.models.enums import ApplicationStatus
from accelerator.schemas.applicant import (
    ApplicantSummary,
    RatingUpdate,
    ReviewerAssignment,
    StatusOverride,
)
from accelerator.schemas.flagging import FlaggingResponse
from accelerator.schemas.interview import (
    AdvanceToInterview,
    InterviewComplete,
    InterviewDecisionUpdate,
    InterviewSchedule,
)
from accelerator.services import lifecycle
from accelerator.services.phase_machine import AdminOverride
from accelerator.utils.auth import admin_required, staff_required

router = APIRouter(prefix="/admin/applicants", tags=["Admin - Applicants"])


# ===========================
# READ (admins and viewers)
# ===========================

# ✅ 1. LIST APPLICANTS
@router.get("", response_model=List[ApplicantSummary])
async def list_applicants(
    status: Optional[ApplicationStatus] = Query(None, description="Filter by status"),
    cohort_id: Optional[str] = Query(None, description="Filter by cohort"),
    limit: int = Query(100, le=500),
    current_user: dict = Depends(staff_required)
):
    db = get_db()
    return await lifecycle.list_applicants(
        db, status=status.value if status else None, cohort_id=cohort_id, limit=limit
    )


# ✅ 2. APPLICANT DETAIL WITH FRESH FLAGS
@router.get("/{applicant_id}")
async def applicant_detail(applicant_id: str, current_user: dict = Depends(staff_required)):
    db = get_db()
    return await lifecycle.applicant_detail(db, applicant_id)


# ✅ 3. AUDIT TRAIL
@router.get("/{applicant_id}/audit-log")
async def applicant_audit_log(applicant_id: str, current_user: dict = Depends(staff_required)):
    db = get_db()
    applicant = await lifecycle.get_applicant(db, applicant_id)
    entries = await db.audit_logs.find(
        {"target_id": str(applicant["_id"])}
    ).sort("timestamp", -1).to_list(200)
    for entry in entries:
        entry["id"] = str(entry.pop("_id"))
    return entries


# ===========================
# REVIEW (admins only)
# ===========================

# ✅ 4. RE-RUN PHASE 1 FLAGS
@router.post("/{applicant_id}/reanalyze", response_model=FlaggingResponse)
async def reanalyze(applicant_id: str, current_user: dict = Depends(admin_required)):
    db = get_db()
    return await lifecycle.reanalyze_phase1(db, applicant_id, current_user)


# ✅ 5. RATE
@router.put("/{applicant_id}/rating", response_model=ApplicantSummary)
async def rate(applicant_id: str, body: RatingUpdate, current_user: dict = Depends(admin_required)):
    db = get_db()
    applicant = await lifecycle.rate_applicant(db, applicant_id, body.rating, current_user)
    return lifecycle.serialize_applicant(applicant)


# ✅ 6. ASSIGN REVIEWER
@router.put("/{applicant_id}/assignment", response_model=ApplicantSummary)
async def assign(applicant_id: str, body: ReviewerAssignment, current_user: dict = Depends(admin_required)):
    db = get_db()
    applicant = await lifecycle.assign_reviewer(db, applicant_id, body.reviewer_id, current_user)
    return lifecycle.serialize_applicant(applicant)


# ✅ 7. FORCE STATUS (override)
@router.post("/{applicant_id}/override", response_model=ApplicantSummary)
async def override(applicant_id: str, body: StatusOverride, current_user: dict = Depends(admin_required)):
    """Move the applicant to any status, bypassing the normal guards. A reason is required."""
    db = get_db()
    grant = AdminOverride.from_user(current_user, body.reason)
    applicant = await lifecycle.override_status(db, applicant_id, body.status, grant)
    return lifecycle.serialize_applicant(applicant)


# ===========================
# PHASE 3 DECISIONS
# ===========================

# ✅ 8. REOPEN SUBMITTED APPLICATION
@router.post("/{applicant_id}/phase3/reopen", response_model=ApplicantSummary)
async def reopen_phase3(applicant_id: str, current_user: dict = Depends(admin_required)):
    db = get_db()
    applicant = await lifecycle.reopen_phase3(db, applicant_id, current_user)
    return lifecycle.serialize_applicant(applicant)


# ✅ 9. REJECT SUBMITTED APPLICATION
@router.post("/{applicant_id}/phase3/reject", response_model=ApplicantSummary)
async def reject_phase3(applicant_id: str, current_user: dict = Depends(admin_required)):
    db = get_db()
    applicant = await lifecycle.reject_phase3(db, applicant_id, current_user)
    return lifecycle.serialize_applicant(applicant)


# ===========================
# PHASE 4: INTERVIEW
# ===========================

# ✅ 10. INVITE TO INTERVIEW
@router.post("/{applicant_id}/interview", response_model=ApplicantSummary)
async def advance_to_interview(applicant_id: str, body: AdvanceToInterview, current_user: dict = Depends(admin_required)):
    """Assign an interviewer and move the applicant to the interview phase."""
    db = get_db()
    applicant = await lifecycle.advance_to_interview(db, applicant_id, body.interviewer_id, current_user)
    return lifecycle.serialize_applicant(applicant)


# ✅ 11. SCHEDULE
@router.post("/{applicant_id}/interview/schedule", response_model=ApplicantSummary)
async def schedule_interview(applicant_id: str, body: InterviewSchedule, current_user: dict = Depends(admin_required)):
    db = get_db()
    applicant = await lifecycle.schedule_interview(db, applicant_id, body.scheduled_at, current_user)
    return lifecycle.serialize_applicant(applicant)


# ✅ 12. MARK INTERVIEWED
@router.post("/{applicant_id}/interview/complete", response_model=ApplicantSummary)
async def complete_interview(applicant_id: str, body: InterviewComplete, current_user: dict = Depends(admin_required)):
    db = get_db()
    applicant = await lifecycle.complete_interview(db, applicant_id, body.notes, current_user)
    return lifecycle.serialize_applicant(applicant)


# ✅ 13. DECISION (pending / accepted / rejected)
@router.put("/{applicant_id}/interview/decision", response_model=ApplicantSummary)
async def interview_decision(applicant_id: str, body: InterviewDecisionUpdate, current_user: dict = Depends(admin_required)):
    db = get_db()
    applicant = await lifecycle.set_interview_decision(db, applicant_id, body.decision, current_user)
    return lifecycle.serialize_applicant(applicant)
