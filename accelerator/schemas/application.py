# ========================================
# accelerator/schemas/application.py
# ========================================

from pydantic import BaseModel, EmailStr, Field
from typing import Optional, List
from datetime import datetime

from accelerator.models.enums import EquityCategory, Phase3ApplicationStatus

# ===========================
# PHASE 1 (SIGNUP) APPLICATION
# ===========================

class CompanyInfo(BaseModel):
    company_name: str = ""
    company_website: Optional[str] = None
    is_founder: bool = False


class PersonalInfo(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""


class ServiceHistory(BaseModel):
    country: Optional[str] = None  # USA / Israel / Other, blank means undeclared
    unit: Optional[str] = None


class PitchDeck(BaseModel):
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    no_deck_explanation: Optional[str] = None


class ExtendedInfo(BaseModel):
    role: str = ""
    founder_count: Optional[int] = None
    linkedin_profile: Optional[str] = None
    service_history: ServiceHistory = Field(default_factory=ServiceHistory)
    grandma_test: str = ""  # "explain it to your grandma" company description
    pitch_deck: Optional[PitchDeck] = None
    discovery: str = ""
    time_commitment: bool = False


class Phase1Application(BaseModel):
    """Snapshot of a submitted Phase 1 application, as read by the flag rules."""
    id: Optional[str] = None
    applicant_id: Optional[str] = None
    cohort_id: Optional[str] = None
    company_info: CompanyInfo = Field(default_factory=CompanyInfo)
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo)
    extended_info: ExtendedInfo = Field(default_factory=ExtendedInfo)
    submitted_at: Optional[datetime] = None


# Input: Phase 1 signup form (creates the applicant identity)
class SignupPersonalInfo(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: EmailStr
    confirm_email: str = ""
    password: str = ""
    confirm_password: str = ""
    phone: str = ""


class Phase1SignupRequest(BaseModel):
    company_info: CompanyInfo
    personal_info: SignupPersonalInfo
    extended_info: ExtendedInfo


class Phase1SignupResponse(BaseModel):
    application_id: str
    applicant_id: str
    status: str
    phase: str
    needs_review: bool
    flag_count: int


# ===========================
# PHASE 3 (IN-DEPTH) APPLICATION
# ===========================

class ScorerResult(BaseModel):
    """Opaque result of the external free-text scorer."""
    score: Optional[float] = None  # 0-10
    is_specific: bool = False
    has_clear_target: bool = False
    has_defined_problem: bool = False
    feedback: str = ""
    strengths: List[str] = []
    weaknesses: List[str] = []
    status: str = "complete"  # complete / processing
    analyzed_at: Optional[datetime] = None


class ProductInfo(BaseModel):
    product_description: str = ""
    problem_customer: str = ""  # free-text answer sent to the scorer
    ai_analysis: Optional[ScorerResult] = None


class TeamInfo(BaseModel):
    capacity: str = ""  # e.g. "all full time", "some part time"
    cofounder_departed: bool = False
    team_description: str = ""


class EquityRow(BaseModel):
    name: str = ""
    shares: Optional[float] = None
    percentage: float = 0.0
    category: EquityCategory


class FundingInfo(BaseModel):
    equity_breakdown: List[EquityRow] = []
    amount_raised: Optional[float] = None


class LegalInfo(BaseModel):
    is_incorporated: bool = False
    alternate_structure: Optional[str] = None  # "discuss" when asking to talk it over
    has_ip_assignment: Optional[bool] = None
    has_founder_vesting: Optional[bool] = None
    has_board_structure: Optional[bool] = None
    willing_to_amend: Optional[bool] = None  # None: not answered


class Phase3Application(BaseModel):
    id: Optional[str] = None
    applicant_id: Optional[str] = None
    cohort_id: Optional[str] = None
    status: Phase3ApplicationStatus = Phase3ApplicationStatus.DRAFT
    product_info: ProductInfo = Field(default_factory=ProductInfo)
    team_info: TeamInfo = Field(default_factory=TeamInfo)
    funding_info: FundingInfo = Field(default_factory=FundingInfo)
    legal_info: LegalInfo = Field(default_factory=LegalInfo)
    submitted_at: Optional[datetime] = None


# Input: Phase 3 draft / submission body
class Phase3ApplicationInput(BaseModel):
    product_info: ProductInfo = Field(default_factory=ProductInfo)
    team_info: TeamInfo = Field(default_factory=TeamInfo)
    funding_info: FundingInfo = Field(default_factory=FundingInfo)
    legal_info: LegalInfo = Field(default_factory=LegalInfo)
