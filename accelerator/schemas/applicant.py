# ========================================
# accelerator/schemas/applicant.py
# ========================================

from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from accelerator.models.enums import ApplicationStatus


class ApplicantSummary(BaseModel):
    """Row in the admin applicant table"""
    id: str
    email: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    company_name: str = ""
    status: ApplicationStatus
    phase: str
    status_display: str
    cohort_id: Optional[str] = None
    webinar_attended: Optional[int] = None
    rating: Optional[int] = None
    assigned_to: Optional[str] = None
    interviewer_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ApplicantDashboard(BaseModel):
    """What the applicant sees after logging in"""
    status: ApplicationStatus
    phase: str
    status_display: str
    webinar_attended: Optional[int] = None
    title: str
    message: str
    type: str
    action_required: bool


# ===========================
# ADMIN ACTIONS
# ===========================

class RatingUpdate(BaseModel):
    rating: Optional[int] = None  # 1-3, None clears


class ReviewerAssignment(BaseModel):
    reviewer_id: Optional[str] = None


class StatusOverride(BaseModel):
    status: ApplicationStatus
    reason: str


# ===========================
# WEBINAR CODE
# ===========================

class RedeemCodeRequest(BaseModel):
    code: str


class RedemptionResponse(BaseModel):
    redeemed: bool
    message: str
    status: Optional[str] = None
    phase: Optional[str] = None
    webinar_num: Optional[int] = None
    cohort_id: Optional[str] = None
