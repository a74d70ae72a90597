from enum import Enum


class Phase(str, Enum):
    SIGNUP = "SIGNUP"
    WEBINAR = "WEBINAR"
    IN_DEPTH_APPLICATION = "IN_DEPTH_APPLICATION"
    INTERVIEW = "INTERVIEW"
    ACCEPTED = "ACCEPTED"


# Linear order of the coarse phases
PHASE_ORDER = [
    Phase.SIGNUP,
    Phase.WEBINAR,
    Phase.IN_DEPTH_APPLICATION,
    Phase.INTERVIEW,
    Phase.ACCEPTED,
]


class ApplicationStatus(str, Enum):
    """Fine-grained applicant status. The single source of truth; phase is derived."""

    # Phase 1
    PHASE_1 = "PHASE_1"

    # Phase 2
    PHASE_2 = "PHASE_2"

    # Phase 3
    PHASE_3 = "PHASE_3"
    PHASE_3_IN_PROGRESS = "PHASE_3_IN_PROGRESS"
    PHASE_3_SUBMITTED = "PHASE_3_SUBMITTED"
    PHASE_3_REJECTED = "PHASE_3_REJECTED"

    # Phase 4
    PHASE_4 = "PHASE_4"
    PHASE_4_INTERVIEW_SCHEDULED = "PHASE_4_INTERVIEW_SCHEDULED"
    PHASE_4_POST_INTERVIEW = "PHASE_4_POST_INTERVIEW"
    PHASE_4_REJECTED = "PHASE_4_REJECTED"

    # Final
    ACCEPTED = "ACCEPTED"


class Phase3ApplicationStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    REJECTED = "REJECTED"


class InterviewStatus(str, Enum):
    NOT_YET_SCHEDULED = "NOT_YET_SCHEDULED"
    SCHEDULED = "SCHEDULED"
    INTERVIEWED = "INTERVIEWED"


class InterviewDecision(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FlagType(str, Enum):
    YELLOW = "YELLOW"  # advisory
    RED = "RED"  # blocks auto-advance


class EquityCategory(str, Enum):
    FOUNDER = "founder"
    EMPLOYEE = "employee"
    INVESTOR = "investor"
    TOTAL = "total"
    GRAND_TOTAL = "grandTotal"


class UserRole(str, Enum):
    APPLICANT = "applicant"
    ADMIN = "admin"
    VIEWER = "viewer"
