# ========================================
# accelerator/schemas/cohort.py
# ========================================

from pydantic import BaseModel, AfterValidator
from typing import Annotated, Optional, List
from datetime import datetime, timezone


def to_naive_utc(value: datetime) -> datetime:
    """Mongo hands back naive UTC datetimes, so store them that way too."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


UTCDatetime = Annotated[datetime, AfterValidator(to_naive_utc)]


# ===========================
# WEBINARS (embedded in cohorts)
# ===========================

class WebinarCreate(BaseModel):
    timestamp: UTCDatetime
    link: str = ""
    title: Optional[str] = None
    description: Optional[str] = None
    max_attendees: Optional[int] = None


class Webinar(BaseModel):
    num: int
    code: str
    timestamp: datetime
    cohort_id: Optional[str] = None
    link: str = ""
    title: Optional[str] = None
    description: Optional[str] = None
    max_attendees: Optional[int] = None
    attendee_count: int = 0
    created_at: Optional[datetime] = None


# ===========================
# COHORTS
# ===========================

class CohortDates(BaseModel):
    """The two windows every ordering and overlap check looks at."""
    application_start_date: UTCDatetime
    application_end_date: UTCDatetime
    program_start_date: UTCDatetime
    program_end_date: UTCDatetime


class CohortCreate(CohortDates):
    name: str
    description: Optional[str] = ""
    webinars: List[WebinarCreate] = []


class CohortUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    application_start_date: Optional[UTCDatetime] = None
    application_end_date: Optional[UTCDatetime] = None
    program_start_date: Optional[UTCDatetime] = None
    program_end_date: Optional[UTCDatetime] = None


class CohortResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = ""
    application_start_date: datetime
    application_end_date: datetime
    program_start_date: datetime
    program_end_date: datetime
    is_active: bool
    current_applicant_count: int = 0
    webinars: List[Webinar] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
