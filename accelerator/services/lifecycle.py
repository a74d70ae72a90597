"""
Lifecycle orchestrator: the only part of the engine that writes.

Each operation reads the applicant, asks the state machine whether the move
is legal, then persists it with a compare-and-swap on the applicant's current
status. Two racing requests can both pass the guard but only one of them
matches the status filter; the other sees ``None`` back from Mongo and is
treated as having lost.

Notifications are sent after the write and never undo it.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from accelerator.errors import NotFoundError, PhaseProgressionError, ValidationError
from accelerator.models.enums import (
    ApplicationStatus,
    InterviewDecision,
    InterviewStatus,
    Phase,
    Phase3ApplicationStatus,
    UserRole,
)
from accelerator.schemas.application import (
    Phase1Application,
    Phase1SignupRequest,
    Phase3Application,
    Phase3ApplicationInput,
)
from accelerator.schemas.flagging import FlaggingResult
from accelerator.schemas.settings import SystemSettings
from accelerator.services import phase_machine as pm
from accelerator.services.cohorts import get_active_cohort
from accelerator.services.flagging import analyze_phase1, analyze_phase3, flag_summary
from accelerator.services.settings import get_settings
from accelerator.services.webinars import find_webinar_by_code, is_valid_code_format
from accelerator.utils.email import send_notification
from accelerator.utils.scorer import score_text
from accelerator.utils.security import get_password_hash

logger = logging.getLogger(__name__)

S = ApplicationStatus

# Template sent when an applicant lands in a status
STATUS_TEMPLATES = {
    S.PHASE_2: "phase2_promotion",
    S.PHASE_3: "phase3_invitation",
    S.PHASE_3_SUBMITTED: "phase3_submitted",
    S.PHASE_3_REJECTED: "phase3_rejected",
    S.PHASE_4: "phase4_invitation",
    S.PHASE_4_REJECTED: "phase4_rejected",
    S.ACCEPTED: "accepted",
}

# Phase 3 documents a draft save must not touch
LOCKED_PHASE3_STATUSES = [
    Phase3ApplicationStatus.SUBMITTED.value,
    Phase3ApplicationStatus.REJECTED.value,
]

DECISION_STATUS = {
    InterviewDecision.PENDING: S.PHASE_4_POST_INTERVIEW,
    InterviewDecision.ACCEPTED: S.ACCEPTED,
    InterviewDecision.REJECTED: S.PHASE_4_REJECTED,
}


@dataclass
class RedemptionResult:
    redeemed: bool
    message: str
    status: Optional[str] = None
    phase: Optional[str] = None
    webinar_num: Optional[int] = None
    cohort_id: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


# ===========================
# HELPERS
# ===========================

def parse_applicant_id(applicant_id) -> ObjectId:
    if isinstance(applicant_id, ObjectId):
        return applicant_id
    if not ObjectId.is_valid(applicant_id):
        raise ValidationError("Invalid applicant ID")
    return ObjectId(applicant_id)


async def get_applicant(db, applicant_id) -> dict:
    applicant = await db.users.find_one({
        "_id": parse_applicant_id(applicant_id),
        "role": UserRole.APPLICANT.value,
    })
    if not applicant:
        raise NotFoundError("Applicant", str(applicant_id))
    return applicant


async def notify(applicant: dict, template: str) -> bool:
    """Send a notification. Failures are logged, never raised."""
    try:
        sent = await send_notification(applicant, template)
    except Exception:
        logger.warning("Notification %s for applicant %s failed", template, applicant.get("_id"), exc_info=True)
        return False
    if not sent:
        logger.warning("Notification %s for applicant %s was not delivered", template, applicant.get("_id"))
    return sent


async def notify_status(applicant: dict) -> bool:
    template = STATUS_TEMPLATES.get(ApplicationStatus(applicant["status"]))
    if template is None:
        return False
    return await notify(applicant, template)


async def log_admin_action(db, admin: dict, action: str, applicant_id, details: dict = None):
    await db.audit_logs.insert_one({
        "action": action,
        "admin_id": str(admin["_id"]),
        "admin_name": admin.get("name") or admin.get("email"),
        "target_type": "applicant",
        "target_id": str(applicant_id),
        "details": details or {},
        "timestamp": datetime.utcnow(),
    })


async def compare_and_set_status(db, applicant_id: ObjectId, transition: pm.Transition, extra: dict = None):
    """Apply ``transition`` only if the applicant is still in its source status.

    Returns the updated applicant, or None when another writer got there first.
    """
    update = {"$set": pm.status_update(transition.target, updated_at=datetime.utcnow(), **(extra or {}))}
    updated = await db.users.find_one_and_update(
        {"_id": applicant_id, "status": transition.source.value},
        update,
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        logger.warning(
            "Lost status race for applicant %s (%s -> %s)",
            applicant_id, transition.source.value, transition.target.value,
        )
    else:
        logger.info(
            "Applicant %s moved %s -> %s%s",
            applicant_id, transition.source.value, transition.target.value,
            " (forced)" if transition.forced else "",
        )
    return updated


async def _apply(db, applicant: dict, transition: pm.Transition, extra: dict = None) -> dict:
    updated = await compare_and_set_status(db, applicant["_id"], transition, extra)
    if updated is None:
        raise PhaseProgressionError(
            transition.source_phase,
            transition.target_phase,
            "the applicant's status changed while this request was processed; reload and retry",
            source_status=transition.source,
            target_status=transition.target,
        )
    return updated


def _flag_metadata(result: FlaggingResult) -> dict:
    return {
        "flag_count": len(result.flags),
        "needs_review": result.needs_review,
        "auto_advance": result.auto_advance,
        "last_analyzed": datetime.utcnow(),
    }


def flagging_response(result: FlaggingResult, application_id=None) -> dict:
    return {
        "application_id": str(application_id) if application_id else None,
        "flags": [f.model_dump() for f in result.flags],
        "auto_advance": result.auto_advance,
        "needs_review": result.needs_review,
        "summary": flag_summary(result),
        "analyzed_at": datetime.utcnow(),
    }


def serialize_applicant(applicant: dict) -> dict:
    status = ApplicationStatus(applicant["status"])
    return {
        "id": str(applicant["_id"]),
        "email": applicant.get("email"),
        "first_name": applicant.get("first_name", ""),
        "last_name": applicant.get("last_name", ""),
        "company_name": applicant.get("company_name", ""),
        "status": status.value,
        "phase": pm.phase_of(status).value,
        "status_display": pm.display_name(status),
        "cohort_id": applicant.get("cohort_id"),
        "webinar_attended": applicant.get("webinar_attended"),
        "rating": applicant.get("rating"),
        "assigned_to": applicant.get("assigned_to"),
        "interviewer_id": applicant.get("interviewer_id"),
        "created_at": applicant.get("created_at"),
        "updated_at": applicant.get("updated_at"),
    }


# ===========================
# PHASE 1: SIGNUP
# ===========================

def signup_errors(request: Phase1SignupRequest) -> List[dict]:
    errors = []

    def require(ok, field, message):
        if not ok:
            errors.append({"field": field, "message": message})

    company = request.company_info
    personal = request.personal_info
    extended = request.extended_info

    require(company.company_name.strip(), "companyName", "Company name is required")
    require(company.is_founder, "isFounder", "You must be a founder to apply")
    require(personal.first_name.strip(), "firstName", "First name is required")
    require(personal.last_name.strip(), "lastName", "Last name is required")
    require(
        personal.confirm_email.strip().lower() == str(personal.email).strip().lower(),
        "confirmEmail", "Email addresses do not match",
    )
    require(personal.password, "password", "Password is required")
    require(personal.password == personal.confirm_password, "confirmPassword", "Passwords do not match")
    require(personal.phone.strip(), "phone", "Phone number is required")
    require(extended.role.strip(), "role", "Role is required")
    require(extended.founder_count is not None and extended.founder_count >= 1,
            "founderCount", "Number of founders must be at least 1")
    # Blank content is allowed here; the flag rules handle it
    require(extended.service_history.country is not None, "serviceHistory.country", "Service country is required")
    require(extended.service_history.unit is not None, "serviceHistory.unit", "Service unit is required")
    require(extended.grandma_test.strip(), "grandmaTest", "Company description is required")
    require(extended.discovery.strip(), "discovery", "Please tell us how you heard about us")
    require(extended.time_commitment, "timeCommitment", "Time commitment confirmation is required")
    return errors


def _email_taken() -> ValidationError:
    return ValidationError("Email already registered", errors=[{"field": "email", "message": "Email already registered"}])


async def email_registered(db, email: str) -> bool:
    return await db.users.find_one({"email": email}) is not None


async def submit_phase1(db, request: Phase1SignupRequest, settings: Optional[SystemSettings] = None) -> dict:
    """Create the applicant, store the Phase 1 application and apply the flag decision."""
    if settings is None:
        settings = await get_settings(db)
    if not settings.accepting_applications:
        raise ValidationError("Applications are currently closed")

    errors = signup_errors(request)
    if errors:
        raise ValidationError(
            "Validation errors: " + ", ".join(e["message"] for e in errors), errors=errors
        )

    email = str(request.personal_info.email).strip().lower()
    if await email_registered(db, email):
        raise _email_taken()

    cohort = await get_active_cohort(db)
    if not cohort:
        raise NotFoundError("Cohort accepting applications")
    cohort_id = str(cohort["_id"])

    now = datetime.utcnow()
    personal = request.personal_info
    applicant = {
        "email": email,
        "password": get_password_hash(personal.password),
        "role": UserRole.APPLICANT.value,
        "name": f"{personal.first_name.strip()} {personal.last_name.strip()}",
        "first_name": personal.first_name.strip(),
        "last_name": personal.last_name.strip(),
        "company_name": request.company_info.company_name.strip(),
        "cohort_id": cohort_id,
        "webinar_attended": None,
        "rating": None,
        "assigned_to": None,
        "interviewer_id": None,
        "created_at": now,
        "updated_at": now,
        **pm.status_update(S.PHASE_1),
    }
    try:
        result = await db.users.insert_one(applicant)
    except DuplicateKeyError:
        # Lost a race with another signup for the same address
        raise _email_taken()
    applicant["_id"] = result.inserted_id
    applicant_id = str(result.inserted_id)

    application = Phase1Application(
        applicant_id=applicant_id,
        cohort_id=cohort_id,
        company_info=request.company_info,
        personal_info={
            "first_name": personal.first_name,
            "last_name": personal.last_name,
            "email": email,
            "phone": personal.phone,
        },
        extended_info=request.extended_info,
        submitted_at=now,
    )
    flagging = analyze_phase1(application)

    doc = application.model_dump(exclude={"id"})
    doc.update(_flag_metadata(flagging))
    try:
        app_result = await db.phase1_applications.insert_one(doc)
    except PyMongoError:
        await db.users.delete_one({"_id": applicant["_id"]})
        logger.error("Phase 1 application insert failed, removed applicant %s", applicant_id)
        raise

    await db.cohorts.update_one({"_id": cohort["_id"]}, {"$inc": {"current_applicant_count": 1}})
    logger.info(
        "Phase 1 application %s submitted for applicant %s (%s)",
        app_result.inserted_id, applicant_id, flag_summary(flagging),
    )

    applicant = await apply_signup_decision(db, applicant, flagging, settings)
    return {
        "application_id": str(app_result.inserted_id),
        "applicant_id": applicant_id,
        "status": applicant["status"],
        "phase": applicant["phase"],
        "needs_review": flagging.needs_review,
        "flag_count": len(flagging.flags),
    }


async def apply_signup_decision(db, applicant: dict, flagging: FlaggingResult, settings: SystemSettings) -> dict:
    """Auto-advance a PHASE_1 applicant whose flags allow it. Otherwise leave it for review."""
    if applicant["status"] != S.PHASE_1.value:
        return applicant

    target = pm.next_status_after_signup(flagging, settings)
    if target == S.PHASE_1:
        logger.info("Applicant %s held in PHASE_1 for manual review", applicant["_id"])
        return applicant

    transition = pm.plan_transition(
        S.PHASE_1, target, pm.Trigger.AUTO_ADVANCE, flagging=flagging, settings=settings
    )
    updated = await compare_and_set_status(db, applicant["_id"], transition)
    if updated is None:
        return await get_applicant(db, applicant["_id"])

    await notify_status(updated)
    return updated


async def get_phase1_application(db, applicant_id) -> dict:
    doc = await db.phase1_applications.find_one({"applicant_id": str(applicant_id)})
    if not doc:
        raise NotFoundError("Phase 1 application", str(applicant_id))
    return doc


def phase1_from_doc(doc: dict) -> Phase1Application:
    return Phase1Application.model_validate({**doc, "id": str(doc["_id"])})


async def reanalyze_phase1(db, applicant_id, admin: dict, settings: Optional[SystemSettings] = None) -> dict:
    """Recompute Phase 1 flags and auto-advance if the applicant is now eligible."""
    applicant = await get_applicant(db, applicant_id)
    doc = await get_phase1_application(db, applicant["_id"])
    flagging = analyze_phase1(phase1_from_doc(doc))

    await db.phase1_applications.update_one({"_id": doc["_id"]}, {"$set": _flag_metadata(flagging)})
    if settings is None:
        settings = await get_settings(db)
    await apply_signup_decision(db, applicant, flagging, settings)
    await log_admin_action(db, admin, "reanalyze_phase1", applicant["_id"], {"flag_count": len(flagging.flags)})

    return flagging_response(flagging, doc["_id"])


# ===========================
# PHASE 2: WEBINAR CODE
# ===========================

def _past_webinar(applicant: dict) -> bool:
    """Already promoted, either by a redeemed code or because the webinar was skipped.

    Attended but still in PHASE_2 is an unfinished redemption and may retry.
    """
    phase = pm.phase_of(applicant["status"])
    return pm.phase_index(phase) >= pm.phase_index(Phase.IN_DEPTH_APPLICATION)


def _no_redemption_result(applicant: dict) -> RedemptionResult:
    if applicant.get("webinar_attended") is None:
        message = "Webinar step not required"
    else:
        message = "Webinar already attended"
    return RedemptionResult(
        redeemed=False,
        message=message,
        status=applicant["status"],
        phase=applicant["phase"],
        webinar_num=applicant.get("webinar_attended"),
        cohort_id=applicant.get("cohort_id"),
    )


async def redeem_webinar_code(db, code: str, applicant_id) -> RedemptionResult:
    """Redeem a webinar code and promote the applicant from PHASE_2 to PHASE_3.

    The promotion is a single conditional write keyed on status PHASE_2, so a
    code submitted twice (or concurrently) redeems exactly once.
    """
    if not is_valid_code_format(code):
        raise ValidationError("Invalid webinar code format", errors=[{"field": "code", "message": "Code must be 6 letters or digits"}])

    match = await find_webinar_by_code(db, code)
    if match is None:
        raise NotFoundError("Webinar code", code.strip().upper())
    cohort, webinar = match

    applicant = await get_applicant(db, applicant_id)
    if _past_webinar(applicant):
        return _no_redemption_result(applicant)

    transition = pm.plan_transition(applicant["status"], S.PHASE_3, pm.Trigger.WEBINAR_CODE)
    updated = await compare_and_set_status(
        db, applicant["_id"], transition, {"webinar_attended": webinar["num"]}
    )
    if updated is None:
        current = await get_applicant(db, applicant["_id"])
        if _past_webinar(current):
            return _no_redemption_result(current)
        raise PhaseProgressionError(
            pm.phase_of(current["status"]), Phase.IN_DEPTH_APPLICATION,
            "the applicant's status changed while the code was being redeemed",
            source_status=current["status"], target_status=S.PHASE_3,
        )

    await db.webinar_attendance.insert_one({
        "applicant_id": str(applicant["_id"]),
        "cohort_id": str(cohort["_id"]),
        "webinar_num": webinar["num"],
        "code": webinar["code"],
        "redeemed_at": datetime.utcnow(),
    })
    await db.cohorts.update_one(
        {"_id": cohort["_id"], "webinars.num": webinar["num"]},
        {"$inc": {"webinars.$.attendee_count": 1}},
    )
    logger.info("Applicant %s redeemed webinar #%s of cohort %s", applicant["_id"], webinar["num"], cohort["_id"])

    await notify_status(updated)
    return RedemptionResult(
        redeemed=True,
        message="Webinar attendance recorded",
        status=updated["status"],
        phase=updated["phase"],
        webinar_num=webinar["num"],
        cohort_id=str(cohort["_id"]),
    )


# ===========================
# PHASE 3: IN-DEPTH APPLICATION
# ===========================

async def get_phase3_application(db, applicant_id) -> Optional[dict]:
    return await db.phase3_applications.find_one({"applicant_id": str(applicant_id)})


def phase3_from_doc(doc: dict) -> Phase3Application:
    return Phase3Application.model_validate({**doc, "id": str(doc["_id"])})


async def _upsert_phase3(db, applicant: dict, fields: dict, unset: Optional[dict] = None, drafts_only: bool = False):
    """Write the applicant's Phase 3 document, creating it on first save.

    With ``drafts_only`` a submitted or rejected document is never matched;
    the upsert then collides with it on the unique applicant_id index.
    """
    now = datetime.utcnow()
    update = {
        "$set": {**fields, "updated_at": now},
        "$setOnInsert": {
            "applicant_id": str(applicant["_id"]),
            "cohort_id": applicant.get("cohort_id"),
            "created_at": now,
        },
    }
    if unset:
        update["$unset"] = unset
    query = {"applicant_id": str(applicant["_id"])}
    if drafts_only:
        query["status"] = {"$nin": LOCKED_PHASE3_STATUSES}
    return await db.phase3_applications.find_one_and_update(
        query,
        update,
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


async def save_phase3_draft(db, applicant: dict, data: Phase3ApplicationInput) -> dict:
    status = ApplicationStatus(applicant["status"])
    if status != S.PHASE_3_IN_PROGRESS:
        transition = pm.plan_transition(status, S.PHASE_3_IN_PROGRESS, pm.Trigger.DRAFT_SAVED)
        applicant = await _apply(db, applicant, transition)

    # The scorer result is never taken from the client
    fields = data.model_dump(mode="json", exclude={"product_info": {"ai_analysis"}})
    fields["status"] = Phase3ApplicationStatus.DRAFT.value
    try:
        doc = await _upsert_phase3(db, applicant, fields, drafts_only=True)
    except DuplicateKeyError:
        current = await get_applicant(db, applicant["_id"])
        raise PhaseProgressionError(
            pm.phase_of(current["status"]), Phase.IN_DEPTH_APPLICATION,
            "the application was submitted; an admin must reopen the submitted application",
            source_status=current["status"], target_status=S.PHASE_3_IN_PROGRESS,
        )
    logger.info("Saved Phase 3 draft for applicant %s", applicant["_id"])
    return doc


async def submit_phase3(db, applicant: dict, data: Phase3ApplicationInput) -> dict:
    """Submit the in-depth application, score the free-text answer and store the flags."""
    transition = pm.plan_transition(applicant["status"], S.PHASE_3_SUBMITTED, pm.Trigger.APPLICANT_SUBMIT)

    analysis = await score_text(data.product_info.problem_customer)
    application = Phase3Application(
        applicant_id=str(applicant["_id"]),
        cohort_id=applicant.get("cohort_id"),
        status=Phase3ApplicationStatus.SUBMITTED,
        product_info=data.product_info.model_copy(update={"ai_analysis": analysis}),
        team_info=data.team_info,
        funding_info=data.funding_info,
        legal_info=data.legal_info,
        submitted_at=datetime.utcnow(),
    )
    flagging = analyze_phase3(application)

    applicant = await _apply(db, applicant, transition)

    fields = application.model_dump(mode="json", exclude={"id", "applicant_id", "cohort_id", "submitted_at"})
    fields["submitted_at"] = application.submitted_at
    if analysis is None:
        fields["product_info"].pop("ai_analysis", None)
    fields.update(_flag_metadata(flagging))
    doc = await _upsert_phase3(db, applicant, fields)

    logger.info("Phase 3 submitted for applicant %s (%s)", applicant["_id"], flag_summary(flagging))
    await notify_status(applicant)
    return doc


async def reopen_phase3(db, applicant_id, admin: dict) -> dict:
    applicant = await get_applicant(db, applicant_id)
    transition = pm.plan_transition(applicant["status"], S.PHASE_3_IN_PROGRESS, pm.Trigger.ADMIN_REOPEN)
    applicant = await _apply(db, applicant, transition)

    await _upsert_phase3(
        db, applicant, {"status": Phase3ApplicationStatus.DRAFT.value}, unset={"submitted_at": ""}
    )
    await log_admin_action(db, admin, "reopen_phase3", applicant["_id"])
    return applicant


async def reject_phase3(db, applicant_id, admin: dict) -> dict:
    applicant = await get_applicant(db, applicant_id)
    transition = pm.plan_transition(applicant["status"], S.PHASE_3_REJECTED, pm.Trigger.ADMIN_REJECT)
    applicant = await _apply(db, applicant, transition)

    await _upsert_phase3(db, applicant, {"status": Phase3ApplicationStatus.REJECTED.value})
    await log_admin_action(db, admin, "reject_phase3", applicant["_id"])
    await notify_status(applicant)
    return applicant


# ===========================
# PHASE 4: INTERVIEW
# ===========================

async def _get_interviewer(db, interviewer_id: str) -> dict:
    if not ObjectId.is_valid(interviewer_id or ""):
        raise ValidationError("Invalid interviewer ID")
    interviewer = await db.interviewers.find_one({"_id": ObjectId(interviewer_id), "is_active": True})
    if not interviewer:
        raise NotFoundError("Interviewer", interviewer_id)
    return interviewer


async def advance_to_interview(db, applicant_id, interviewer_id: str, admin: dict) -> dict:
    """Move a submitted applicant to PHASE_4 with the interviewer set in the same write."""
    applicant = await get_applicant(db, applicant_id)
    interviewer = await _get_interviewer(db, interviewer_id)
    transition = pm.plan_transition(
        applicant["status"], S.PHASE_4, pm.Trigger.ADMIN_INTERVIEW, interviewer_id=interviewer_id
    )
    applicant = await _apply(db, applicant, transition, {"interviewer_id": str(interviewer["_id"])})

    now = datetime.utcnow()
    await db.interviews.insert_one({
        "applicant_id": str(applicant["_id"]),
        "interviewer_id": str(interviewer["_id"]),
        "cohort_id": applicant.get("cohort_id"),
        "status": InterviewStatus.NOT_YET_SCHEDULED.value,
        "scheduled_at": None,
        "completed_at": None,
        "notes": None,
        "created_at": now,
        "updated_at": now,
    })
    await log_admin_action(db, admin, "advance_to_interview", applicant["_id"], {"interviewer_id": interviewer_id})
    await notify_status(applicant)
    return applicant


async def get_interview(db, applicant_id) -> dict:
    interview = await db.interviews.find_one(
        {"applicant_id": str(applicant_id)}, sort=[("created_at", -1)]
    )
    if not interview:
        raise NotFoundError("Interview for applicant", str(applicant_id))
    return interview


async def _move_within_interview(db, applicant: dict, target: ApplicationStatus) -> dict:
    if applicant["status"] == target.value:
        return applicant
    transition = pm.plan_transition(applicant["status"], target, pm.Trigger.INTERVIEW_UPDATE)
    return await _apply(db, applicant, transition)


async def schedule_interview(db, applicant_id, scheduled_at: datetime, admin: dict) -> dict:
    applicant = await get_applicant(db, applicant_id)
    interview = await get_interview(db, applicant["_id"])
    applicant = await _move_within_interview(db, applicant, S.PHASE_4_INTERVIEW_SCHEDULED)

    await db.interviews.update_one(
        {"_id": interview["_id"]},
        {"$set": {
            "status": InterviewStatus.SCHEDULED.value,
            "scheduled_at": scheduled_at,
            "updated_at": datetime.utcnow(),
        }},
    )
    await log_admin_action(db, admin, "schedule_interview", applicant["_id"], {"scheduled_at": scheduled_at.isoformat()})
    return applicant


async def complete_interview(db, applicant_id, notes: Optional[str], admin: dict) -> dict:
    applicant = await get_applicant(db, applicant_id)
    interview = await get_interview(db, applicant["_id"])
    applicant = await _move_within_interview(db, applicant, S.PHASE_4_POST_INTERVIEW)

    await db.interviews.update_one(
        {"_id": interview["_id"]},
        {"$set": {
            "status": InterviewStatus.INTERVIEWED.value,
            "completed_at": datetime.utcnow(),
            "notes": notes,
            "updated_at": datetime.utcnow(),
        }},
    )
    await log_admin_action(db, admin, "complete_interview", applicant["_id"])
    return applicant


async def set_interview_decision(db, applicant_id, decision: InterviewDecision, admin: dict) -> dict:
    """pending / accepted / rejected. Any interview status can move to any other."""
    applicant = await get_applicant(db, applicant_id)
    target = DECISION_STATUS[InterviewDecision(decision)]
    transition = pm.plan_transition(applicant["status"], target, pm.Trigger.INTERVIEW_UPDATE)
    applicant = await _apply(db, applicant, transition)

    await log_admin_action(db, admin, "interview_decision", applicant["_id"], {"decision": InterviewDecision(decision).value})
    await notify_status(applicant)
    return applicant


# ===========================
# ADMIN OVERRIDE & REVIEW
# ===========================

async def override_status(db, applicant_id, target, override: pm.AdminOverride) -> dict:
    """Forced move to any status. Bypasses the guards, never the audit log."""
    applicant = await get_applicant(db, applicant_id)
    transition = pm.force_transition(applicant["status"], target, override)
    applicant = await _apply(db, applicant, transition)

    await db.audit_logs.insert_one({
        "action": "force_transition",
        "admin_id": override.admin_id,
        "target_type": "applicant",
        "target_id": str(applicant["_id"]),
        "details": {
            "from": transition.source.value,
            "to": transition.target.value,
            "reason": override.reason,
        },
        "timestamp": datetime.utcnow(),
    })
    await notify_status(applicant)
    return applicant


async def rate_applicant(db, applicant_id, rating: Optional[int], admin: dict) -> dict:
    if rating is not None and rating not in (1, 2, 3):
        raise ValidationError("Rating must be 1, 2 or 3", errors=[{"field": "rating", "message": "Rating must be 1, 2 or 3"}])

    applicant = await get_applicant(db, applicant_id)
    await db.users.update_one(
        {"_id": applicant["_id"]},
        {"$set": {"rating": rating, "updated_at": datetime.utcnow()}},
    )
    await log_admin_action(db, admin, "rate_applicant", applicant["_id"], {"rating": rating})
    return await get_applicant(db, applicant["_id"])


async def assign_reviewer(db, applicant_id, reviewer_id: Optional[str], admin: dict) -> dict:
    applicant = await get_applicant(db, applicant_id)

    if reviewer_id is not None:
        if not ObjectId.is_valid(reviewer_id):
            raise ValidationError("Invalid reviewer ID")
        reviewer = await db.users.find_one({
            "_id": ObjectId(reviewer_id),
            "role": {"$in": [UserRole.ADMIN.value, UserRole.VIEWER.value]},
        })
        if not reviewer:
            raise NotFoundError("Reviewer", reviewer_id)

    await db.users.update_one(
        {"_id": applicant["_id"]},
        {"$set": {"assigned_to": reviewer_id, "updated_at": datetime.utcnow()}},
    )
    await log_admin_action(db, admin, "assign_reviewer", applicant["_id"], {"assigned_to": reviewer_id})
    return await get_applicant(db, applicant["_id"])


async def list_applicants(db, status: Optional[str] = None, cohort_id: Optional[str] = None, limit: int = 100) -> List[dict]:
    query = {"role": UserRole.APPLICANT.value}
    if status:
        query["status"] = ApplicationStatus(status).value
    if cohort_id:
        query["cohort_id"] = cohort_id
    applicants = await db.users.find(query).sort("created_at", -1).to_list(limit)
    return [serialize_applicant(a) for a in applicants]


async def applicant_detail(db, applicant_id) -> dict:
    """Applicant, both applications and freshly computed flags."""
    applicant = await get_applicant(db, applicant_id)
    detail = serialize_applicant(applicant)

    phase1 = await db.phase1_applications.find_one({"applicant_id": str(applicant["_id"])})
    if phase1:
        application = phase1_from_doc(phase1)
        detail["phase1_application"] = application.model_dump(mode="json")
        detail["phase1_flags"] = flagging_response(analyze_phase1(application), phase1["_id"])

    phase3 = await get_phase3_application(db, applicant["_id"])
    if phase3:
        application = phase3_from_doc(phase3)
        detail["phase3_application"] = application.model_dump(mode="json")
        if application.status != Phase3ApplicationStatus.DRAFT:
            detail["phase3_flags"] = flagging_response(analyze_phase3(application), phase3["_id"])

    return detail


def applicant_dashboard(applicant: dict) -> dict:
    status = ApplicationStatus(applicant["status"])
    return {
        "status": status.value,
        "phase": pm.phase_of(status).value,
        "status_display": pm.display_name(status),
        "webinar_attended": applicant.get("webinar_attended"),
        **pm.applicant_message(status),
    }
