# ========================================
# accelerator/routes/application.py
# ========================================

from fastapi import APIRouter, Depends

from accelerator.database import get_db
from accelerator.schemas.application import (
    Phase1SignupRequest,
    Phase1SignupResponse,
    Phase3Application,
    Phase3ApplicationInput,
)
from accelerator.schemas.applicant import ApplicantDashboard, RedeemCodeRequest, RedemptionResponse
from accelerator.services import lifecycle
from accelerator.utils.auth import applicant_required

router = APIRouter(prefix="/applications", tags=["Applications"])

# ===========================
# PUBLIC
# ===========================

# ✅ 1. PHASE 1 SIGNUP
@router.post("/phase1", response_model=Phase1SignupResponse, status_code=201)
async def submit_phase1(request: Phase1SignupRequest):
    """Create an applicant account and submit the Phase 1 application."""
    db = get_db()
    return await lifecycle.submit_phase1(db, request)


# ===========================
# APPLICANT ENDPOINTS
# ===========================

# ✅ 2. MY STATUS
@router.get("/me", response_model=ApplicantDashboard)
async def my_status(current_user: dict = Depends(applicant_required)):
    return lifecycle.applicant_dashboard(current_user)


# ✅ 3. REDEEM WEBINAR CODE
@router.post("/webinar-code", response_model=RedemptionResponse)
async def redeem_webinar_code(body: RedeemCodeRequest, current_user: dict = Depends(applicant_required)):
    """Enter the code shown during a webinar to unlock the in-depth application."""
    db = get_db()
    result = await lifecycle.redeem_webinar_code(db, body.code, current_user["_id"])
    return result.to_dict()


# ✅ 4. GET MY PHASE 3 APPLICATION
@router.get("/phase3", response_model=Phase3Application)
async def get_phase3(current_user: dict = Depends(applicant_required)):
    db = get_db()
    doc = await lifecycle.get_phase3_application(db, current_user["_id"])
    if not doc:
        return Phase3Application(applicant_id=str(current_user["_id"]), cohort_id=current_user.get("cohort_id"))
    return lifecycle.phase3_from_doc(doc)


# ✅ 5. SAVE PHASE 3 DRAFT
@router.put("/phase3", response_model=Phase3Application)
async def save_phase3_draft(data: Phase3ApplicationInput, current_user: dict = Depends(applicant_required)):
    db = get_db()
    doc = await lifecycle.save_phase3_draft(db, current_user, data)
    return lifecycle.phase3_from_doc(doc)


# ✅ 6. SUBMIT PHASE 3
@router.post("/phase3/submit", response_model=Phase3Application)
async def submit_phase3(data: Phase3ApplicationInput, current_user: dict = Depends(applicant_required)):
    """Submit the in-depth application. It cannot be edited again unless an admin reopens it."""
    db = get_db()
    doc = await lifecycle.submit_phase3(db, current_user, data)
    return lifecycle.phase3_from_doc(doc)
