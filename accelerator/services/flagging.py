"""
Rule-based flagging of submitted applications.

Phase 1: YELLOW flags are advisory, the single RED flag (no declared service
country) blocks auto-advance. Phase 3 results always need a human review.
"""

from typing import List, Optional

from accelerator.models.enums import FlagType
from accelerator.schemas.application import Phase1Application, Phase3Application
from accelerator.schemas.flagging import Flag, FlaggingResult
from accelerator.services.equity import check_equity

# Consumer and disposable mail providers
PERSONAL_EMAIL_DOMAINS = {
    "gmail.com",
    "googlemail.com",
    "yahoo.com",
    "hotmail.com",
    "outlook.com",
    "live.com",
    "aol.com",
    "icloud.com",
    "me.com",
    "mail.com",
    "gmx.com",
    "protonmail.com",
    "proton.me",
    "10minutemail.com",
    "guerrillamail.com",
    "mailinator.com",
    "temp-mail.org",
    "yopmail.com",
}

EXPECTED_FOUNDER_COUNTS = {2, 3}

# Matched case-insensitively as substrings of the declared unit
COMBAT_UNIT_KEYWORDS = [
    "infantry",
    "combat",
    "special forces",
    "ranger",
    "seal",
    "marine",
    "airborne",
    "paratrooper",
    "armor",
    "artillery",
    "green beret",
    "delta",
    "golani",
    "givati",
    "nahal",
    "kfir",
    "sayeret",
    "shayetet",
    "duvdevan",
    "egoz",
    "maglan",
    "yahalom",
    "oketz",
    "shaldag",
    "669",
]

MIN_SCORER_SCORE = 7
FULL_TIME_CAPACITY = "all full time"


def _yellow(field: str, message: str) -> Flag:
    return Flag(type=FlagType.YELLOW, field=field, message=message)


def _red(field: str, message: str) -> Flag:
    return Flag(type=FlagType.RED, field=field, message=message)


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


def email_domain(email: str) -> str:
    if "@" not in (email or ""):
        return ""
    return email.rsplit("@", 1)[1].strip().lower()


def is_combat_unit(unit: Optional[str]) -> bool:
    text = (unit or "").lower()
    return any(keyword in text for keyword in COMBAT_UNIT_KEYWORDS)


# ===========================
# PHASE 1
# ===========================

def analyze_phase1(application: Phase1Application) -> FlaggingResult:
    """Evaluate a Phase 1 application. Pure: same input, same result."""
    flags: List[Flag] = []
    company = application.company_info
    personal = application.personal_info
    extended = application.extended_info
    service = extended.service_history

    if _blank(extended.linkedin_profile):
        flags.append(_yellow("linkedInProfile", "No LinkedIn profile provided"))

    if _blank(company.company_website):
        flags.append(_yellow("companyWebsite", "No company website provided"))

    domain = email_domain(personal.email)
    if domain in PERSONAL_EMAIL_DOMAINS:
        flags.append(_yellow("email", f"Personal email domain used ({domain})"))

    if extended.founder_count not in EXPECTED_FOUNDER_COUNTS:
        flags.append(_yellow(
            "founderCount",
            f"Founder count is {extended.founder_count if extended.founder_count is not None else 'missing'} (expected 2 or 3)",
        ))

    if _blank(service.country):
        flags.append(_red("serviceHistory", "No military service country declared"))
    elif not is_combat_unit(service.unit):
        flags.append(_yellow(
            "serviceUnit",
            f"Service unit '{(service.unit or '').strip()}' is not a recognized combat unit",
        ))

    deck = extended.pitch_deck
    if deck is None or (_blank(deck.file_url) and _blank(deck.no_deck_explanation)):
        flags.append(_yellow("pitchDeck", "No pitch deck and no explanation provided"))

    needs_review = any(f.type == FlagType.RED for f in flags)
    return FlaggingResult(flags=flags, auto_advance=not needs_review, needs_review=needs_review)


# ===========================
# PHASE 3
# ===========================

def _normalize_capacity(capacity: str) -> str:
    return " ".join((capacity or "").lower().replace("_", " ").replace("-", " ").split())


def _incorporation_flags(application: Phase3Application) -> List[Flag]:
    legal = application.legal_info
    flags = []

    if not legal.is_incorporated:
        if (legal.alternate_structure or "").strip().lower() == "discuss":
            flags.append(_yellow(
                "incorporation",
                "Not incorporated and wants to discuss an alternative structure",
            ))
        return flags

    missing = []
    if not legal.has_ip_assignment:
        missing.append("IP assignment")
    if not legal.has_founder_vesting:
        missing.append("founder vesting")
    if not legal.has_board_structure:
        missing.append("board structure")

    if missing:
        terms = ", ".join(missing)
        if legal.willing_to_amend is False:
            message = f"Governing documents missing {terms}; applicant unwilling to amend"
        elif legal.willing_to_amend is True:
            message = f"Governing documents missing {terms}; applicant willing to amend"
        else:
            message = f"Governing documents missing {terms}; amendment status unknown"
        flags.append(_yellow("governingDocuments", message))

    return flags


def analyze_phase3(application: Phase3Application) -> FlaggingResult:
    """Evaluate a Phase 3 application. Phase 3 never auto-advances."""
    flags: List[Flag] = []

    analysis = application.product_info.ai_analysis
    if analysis is None or analysis.score is None:
        flags.append(_yellow("problemCustomer", "AI analysis of the problem/customer answer is unavailable"))
    elif analysis.score < MIN_SCORER_SCORE:
        flags.append(_yellow(
            "problemCustomer",
            f"AI analysis scored the problem/customer answer {analysis.score:.1f}/10",
        ))

    if _normalize_capacity(application.team_info.capacity) != FULL_TIME_CAPACITY:
        flags.append(_yellow("teamCapacity", "Team is not all full time"))

    if application.team_info.cofounder_departed:
        flags.append(_yellow("cofounderDeparted", "A previous co-founder has left the company"))

    flags.extend(check_equity(application.funding_info.equity_breakdown))
    flags.extend(_incorporation_flags(application))

    return FlaggingResult(flags=flags, auto_advance=False, needs_review=True)


def flag_summary(result: FlaggingResult) -> str:
    if not result.flags:
        return "Application appears clean with no issues detected."

    parts = []
    red = len(result.red_flags)
    yellow = len(result.yellow_flags)
    if red:
        parts.append(f"{red} red flag{'s' if red > 1 else ''}")
    if yellow:
        parts.append(f"{yellow} yellow flag{'s' if yellow > 1 else ''}")

    decision = "needs review" if result.needs_review else "eligible for auto-advance"
    return f"Application flagged with {', '.join(parts)}; {decision}."
