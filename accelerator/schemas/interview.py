from pydantic import BaseModel
from typing import Optional
from datetime import datetime

from accelerator.models.enums import InterviewDecision
from accelerator.schemas.cohort import UTCDatetime


class InterviewerCreate(BaseModel):
    user_id: str  # an admin or viewer account
    title: Optional[str] = None
    calendar_url: Optional[str] = None


class InterviewerResponse(BaseModel):
    id: str
    user_id: str
    name: str = ""
    email: str = ""
    title: Optional[str] = None
    calendar_url: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


class AdvanceToInterview(BaseModel):
    interviewer_id: str


class InterviewSchedule(BaseModel):
    scheduled_at: UTCDatetime


class InterviewComplete(BaseModel):
    notes: Optional[str] = None


class InterviewDecisionUpdate(BaseModel):
    decision: InterviewDecision
