"""
Applicant phase/status state machine.

Status is the only stored authority; the coarse phase is always derived with
``phase_of``. Every function here is pure: the current status, the input that
triggers the move (flagging result, admin action, webinar code) and the
system settings fully determine the outcome.

Normal moves go through ``plan_transition`` and must match an edge in
``TRANSITIONS`` with the right trigger. Admins can leave any status, including
terminal ones, with ``force_transition``, which requires an ``AdminOverride``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from accelerator.errors import PhaseProgressionError, ValidationError
from accelerator.models.enums import ApplicationStatus, Phase, PHASE_ORDER, UserRole
from accelerator.schemas.flagging import FlaggingResult
from accelerator.schemas.settings import SystemSettings

S = ApplicationStatus

STATUS_PHASE = {
    S.PHASE_1: Phase.SIGNUP,
    S.PHASE_2: Phase.WEBINAR,
    S.PHASE_3: Phase.IN_DEPTH_APPLICATION,
    S.PHASE_3_IN_PROGRESS: Phase.IN_DEPTH_APPLICATION,
    S.PHASE_3_SUBMITTED: Phase.IN_DEPTH_APPLICATION,
    S.PHASE_3_REJECTED: Phase.IN_DEPTH_APPLICATION,
    S.PHASE_4: Phase.INTERVIEW,
    S.PHASE_4_INTERVIEW_SCHEDULED: Phase.INTERVIEW,
    S.PHASE_4_POST_INTERVIEW: Phase.INTERVIEW,
    S.PHASE_4_REJECTED: Phase.INTERVIEW,
    S.ACCEPTED: Phase.ACCEPTED,
}

TERMINAL_STATUSES = frozenset({S.ACCEPTED, S.PHASE_3_REJECTED, S.PHASE_4_REJECTED})

INTERVIEW_STATUSES = frozenset({
    S.PHASE_4,
    S.PHASE_4_INTERVIEW_SCHEDULED,
    S.PHASE_4_POST_INTERVIEW,
    S.PHASE_4_REJECTED,
})

# Statuses an admin may pick while the applicant is in the interview phase
INTERVIEW_TARGETS = INTERVIEW_STATUSES | {S.ACCEPTED}


class Trigger(str, Enum):
    AUTO_ADVANCE = "auto_advance"
    WEBINAR_CODE = "webinar_code"
    DRAFT_SAVED = "draft_saved"
    APPLICANT_SUBMIT = "applicant_submit"
    ADMIN_REOPEN = "admin_reopen"
    ADMIN_REJECT = "admin_reject"
    ADMIN_INTERVIEW = "admin_interview"
    INTERVIEW_UPDATE = "interview_update"


PRECONDITIONS = {
    Trigger.AUTO_ADVANCE: "the Phase 1 application must pass flag review with no red flags",
    Trigger.WEBINAR_CODE: "a valid webinar code must be redeemed",
    Trigger.DRAFT_SAVED: "the applicant must save a Phase 3 draft",
    Trigger.APPLICANT_SUBMIT: "the applicant must submit the Phase 3 application",
    Trigger.ADMIN_REOPEN: "an admin must reopen the submitted application",
    Trigger.ADMIN_REJECT: "an admin must reject the submitted application",
    Trigger.ADMIN_INTERVIEW: "an admin must assign an interviewer",
    Trigger.INTERVIEW_UPDATE: "an admin must set the interview outcome",
}


def _build_transitions():
    edges = {
        (S.PHASE_1, S.PHASE_2): Trigger.AUTO_ADVANCE,
        (S.PHASE_1, S.PHASE_3): Trigger.AUTO_ADVANCE,
        (S.PHASE_2, S.PHASE_3): Trigger.WEBINAR_CODE,
        (S.PHASE_3, S.PHASE_3_IN_PROGRESS): Trigger.DRAFT_SAVED,
        (S.PHASE_3, S.PHASE_3_SUBMITTED): Trigger.APPLICANT_SUBMIT,
        (S.PHASE_3_IN_PROGRESS, S.PHASE_3_SUBMITTED): Trigger.APPLICANT_SUBMIT,
        (S.PHASE_3_SUBMITTED, S.PHASE_3_IN_PROGRESS): Trigger.ADMIN_REOPEN,
        (S.PHASE_3_SUBMITTED, S.PHASE_3_REJECTED): Trigger.ADMIN_REJECT,
        (S.PHASE_3_SUBMITTED, S.PHASE_4): Trigger.ADMIN_INTERVIEW,
    }
    # The interview phase is fully connected, in both directions
    for source in INTERVIEW_STATUSES:
        for target in INTERVIEW_TARGETS:
            if source != target:
                edges[(source, target)] = Trigger.INTERVIEW_UPDATE
    return edges


TRANSITIONS = _build_transitions()


def phase_of(status) -> Phase:
    return STATUS_PHASE[ApplicationStatus(status)]


def phase_index(phase) -> int:
    return PHASE_ORDER.index(Phase(phase))


def is_terminal(status) -> bool:
    return ApplicationStatus(status) in TERMINAL_STATUSES


def allowed_targets(status) -> list:
    status = ApplicationStatus(status)
    return sorted((t for (s, t) in TRANSITIONS if s == status), key=lambda t: list(S).index(t))


# ===========================
# TRANSITION VALUES
# ===========================

@dataclass(frozen=True)
class AdminOverride:
    """Capability proving an admin explicitly chose to bypass the guards."""
    admin_id: str
    reason: str

    @classmethod
    def from_user(cls, user: dict, reason: str) -> "AdminOverride":
        if not user or user.get("role") != UserRole.ADMIN.value:
            raise ValidationError("Admin override requires an admin user")
        if not (reason or "").strip():
            raise ValidationError("Admin override requires a reason")
        return cls(admin_id=str(user["_id"]), reason=reason.strip())


@dataclass(frozen=True)
class Transition:
    source: ApplicationStatus
    target: ApplicationStatus
    trigger: Trigger
    forced: bool = False

    @property
    def source_phase(self) -> Phase:
        return phase_of(self.source)

    @property
    def target_phase(self) -> Phase:
        return phase_of(self.target)


@dataclass(frozen=True)
class ForcedTransition(Transition):
    override: Optional[AdminOverride] = None


def _reject(source, target, precondition: str) -> PhaseProgressionError:
    return PhaseProgressionError(
        phase_of(source),
        phase_of(target),
        precondition,
        source_status=ApplicationStatus(source),
        target_status=ApplicationStatus(target),
    )


# ===========================
# NORMAL PATH
# ===========================

def next_status_after_signup(flagging: FlaggingResult, settings: SystemSettings) -> ApplicationStatus:
    """Where a PHASE_1 applicant goes once its Phase 1 flags are known."""
    if not flagging.auto_advance:
        return S.PHASE_1
    if settings.skip_phase2:
        return S.PHASE_3
    return S.PHASE_2


def next_phase(current, flagging: FlaggingResult, settings: SystemSettings) -> Phase:
    """Next phase reachable without any human action.

    Only SIGNUP moves automatically; every other phase waits for a webinar code
    or an admin decision and therefore stays where it is.
    """
    current = Phase(current)
    if current == Phase.SIGNUP:
        return phase_of(next_status_after_signup(flagging, settings))
    return current


def plan_transition(
    current,
    target,
    trigger: Trigger,
    *,
    flagging: Optional[FlaggingResult] = None,
    settings: Optional[SystemSettings] = None,
    interviewer_id: Optional[str] = None,
) -> Transition:
    """Validate a guarded move and return it, or raise PhaseProgressionError."""
    current = ApplicationStatus(current)
    target = ApplicationStatus(target)

    if current == target:
        raise _reject(current, target, f"applicant is already in {current.value}")

    expected = TRANSITIONS.get((current, target))
    if expected is None:
        if current in TERMINAL_STATUSES:
            raise _reject(current, target, f"{current.value} is terminal; an admin override is required")
        allowed = ", ".join(t.value for t in allowed_targets(current)) or "none"
        raise _reject(
            current, target,
            f"no direct transition without an admin override (allowed next: {allowed})",
        )

    if trigger != expected:
        raise _reject(current, target, PRECONDITIONS[expected])

    if trigger == Trigger.AUTO_ADVANCE:
        if flagging is None or settings is None:
            raise _reject(current, target, PRECONDITIONS[trigger])
        if not flagging.auto_advance:
            raise _reject(current, target, "red flags require a manual admin decision")
        wanted = next_status_after_signup(flagging, settings)
        if wanted != target:
            raise _reject(
                current, target,
                "webinar phase is skipped by system settings" if settings.skip_phase2
                else "webinar phase is required by system settings",
            )

    if trigger == Trigger.ADMIN_INTERVIEW and not (interviewer_id or "").strip():
        raise _reject(current, target, PRECONDITIONS[trigger])

    return Transition(source=current, target=target, trigger=trigger)


# ===========================
# OVERRIDE PATH
# ===========================

def force_transition(current, target, override: AdminOverride) -> ForcedTransition:
    """Admin escape hatch: any status to any other, terminal ones included."""
    current = ApplicationStatus(current)
    target = ApplicationStatus(target)
    if not isinstance(override, AdminOverride):
        raise _reject(current, target, "an admin override is required")
    if current == target:
        raise _reject(current, target, f"applicant is already in {current.value}")
    return ForcedTransition(source=current, target=target, trigger=None, forced=True, override=override)


def status_update(status, **extra) -> dict:
    """Mongo $set payload keeping the stored phase consistent with status."""
    status = ApplicationStatus(status)
    return {"status": status.value, "phase": phase_of(status).value, **extra}


# ===========================
# DISPLAY
# ===========================

DISPLAY_NAMES = {
    S.PHASE_1: "Phase 1",
    S.PHASE_2: "Phase 2",
    S.PHASE_3: "Phase 3",
    S.PHASE_3_IN_PROGRESS: "Phase 3 In Progress",
    S.PHASE_3_SUBMITTED: "Phase 3 Submitted",
    S.PHASE_3_REJECTED: "Phase 3 Rejected",
    S.PHASE_4: "Phase 4 (Interview)",
    S.PHASE_4_INTERVIEW_SCHEDULED: "Phase 4 Interview Scheduled",
    S.PHASE_4_POST_INTERVIEW: "Phase 4 Post Interview",
    S.PHASE_4_REJECTED: "Phase 4 Rejected",
    S.ACCEPTED: "Accepted",
}

APPLICANT_MESSAGES = {
    S.PHASE_1: ("Thank you for signing up!", "Thanks for signing up! We are reviewing your application.", "info", False),
    S.PHASE_2: ("Please attend a webinar", "Please attend one of our upcoming webinars to continue with your application.", "warning", True),
    S.PHASE_3: ("Please fill out our application", "Please fill out our in-depth application.", "warning", True),
    S.PHASE_3_IN_PROGRESS: ("Please finish submitting your application", "Your application is in progress. Please complete and submit it.", "warning", True),
    S.PHASE_3_SUBMITTED: ("Thanks for submitting!", "Thanks for submitting! We are reviewing your application.", "info", False),
    S.PHASE_3_REJECTED: ("Application Update", "Sorry, we won't be continuing with your application at this time.", "error", False),
    S.PHASE_4: ("Interview Invitation", "We liked your application! Let's schedule an interview.", "success", True),
    S.PHASE_4_INTERVIEW_SCHEDULED: ("Interview Scheduled", "Can't wait to see you at your scheduled interview!", "success", False),
    S.PHASE_4_POST_INTERVIEW: ("Interview Complete", "We will be in touch soon with next steps.", "info", False),
    S.PHASE_4_REJECTED: ("Application Update", "Sorry, we think you have potential but won't be moving forward at this time.", "error", False),
    S.ACCEPTED: ("Congratulations!", "Congratulations! You've been accepted into the program!", "success", False),
}


def display_name(status) -> str:
    return DISPLAY_NAMES.get(ApplicationStatus(status), str(status))


def applicant_message(status) -> dict:
    title, message, kind, action_required = APPLICANT_MESSAGES[ApplicationStatus(status)]
    return {"title": title, "message": message, "type": kind, "action_required": action_required}
