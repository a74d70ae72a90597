# ========================================
# accelerator/routes/interviewers.py
# ========================================

from fastapi import APIRouter, Depends, Query
from typing import List

from accelerator.database import get_db
from accelerator.schemas.interview import InterviewerCreate, InterviewerResponse
from accelerator.services import interviewers
from accelerator.utils.auth import admin_required, staff_required

router = APIRouter(prefix="/admin/interviewers", tags=["Admin - Interviewers"])


@router.get("", response_model=List[InterviewerResponse])
async def list_interviewers(
    active_only: bool = Query(True),
    current_user: dict = Depends(staff_required)
):
    db = get_db()
    return [interviewers.serialize_interviewer(i) for i in await interviewers.list_interviewers(db, active_only)]


@router.post("", response_model=InterviewerResponse, status_code=201)
async def create_interviewer(data: InterviewerCreate, current_user: dict = Depends(admin_required)):
    db = get_db()
    return interviewers.serialize_interviewer(await interviewers.create_interviewer(db, data))


@router.post("/{interviewer_id}/deactivate", response_model=InterviewerResponse)
async def deactivate_interviewer(interviewer_id: str, current_user: dict = Depends(admin_required)):
    db = get_db()
    return interviewers.serialize_interviewer(await interviewers.set_interviewer_active(db, interviewer_id, False))


@router.post("/{interviewer_id}/activate", response_model=InterviewerResponse)
async def activate_interviewer(interviewer_id: str, current_user: dict = Depends(admin_required)):
    db = get_db()
    return interviewers.serialize_interviewer(await interviewers.set_interviewer_active(db, interviewer_id, True))


# ✅ Interviews assigned to an interviewer
@router.get("/{interviewer_id}/interviews")
async def interviewer_interviews(interviewer_id: str, current_user: dict = Depends(staff_required)):
    db = get_db()
    return await interviewers.interviews_for(db, interviewer_id)
