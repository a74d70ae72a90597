"""
Tests for the lifecycle orchestrator against an in-memory Mongo.
"""

import asyncio
from datetime import datetime

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from accelerator.database import ensure_indexes
from accelerator.errors import NotFoundError, PhaseProgressionError, ValidationError
from accelerator.models.enums import ApplicationStatus as S, InterviewDecision, UserRole
from accelerator.schemas.application import Phase1SignupRequest, Phase3ApplicationInput, ScorerResult, TeamInfo
from accelerator.schemas.settings import SystemSettingsUpdate
from accelerator.services import lifecycle
from accelerator.services import phase_machine as pm
from accelerator.services.settings import update_settings

from factories import make_phase3, signup_payload


async def make_applicant(db, status, cohort_id=None, **fields):
    doc = {
        "email": f"{ObjectId()}@startup.io",
        "role": UserRole.APPLICANT.value,
        "first_name": "Noa",
        "last_name": "Cohen",
        "cohort_id": cohort_id,
        "webinar_attended": None,
        "created_at": datetime.utcnow(),
        **pm.status_update(status),
        **fields,
    }
    result = await db.users.insert_one(doc)
    doc["_id"] = result.inserted_id
    return doc


async def make_interviewer(db):
    result = await db.interviewers.insert_one({
        "user_id": str(ObjectId()),
        "name": "Ira Interviewer",
        "is_active": True,
    })
    return str(result.inserted_id)


def phase3_input():
    application = make_phase3()
    return Phase3ApplicationInput(
        product_info=application.product_info.model_copy(update={"ai_analysis": None}),
        team_info=application.team_info,
        funding_info=application.funding_info,
        legal_info=application.legal_info,
    )


# ===========================
# PHASE 1
# ===========================

class TestSignup:
    async def test_clean_signup_skips_webinar_by_default(self, db, active_cohort, sent_notifications):
        result = await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(signup_payload()))

        assert result["status"] == "PHASE_3"
        assert result["phase"] == "IN_DEPTH_APPLICATION"
        assert result["needs_review"] is False
        assert sent_notifications == [(result["applicant_id"], "phase3_invitation")]

        applicant = await db.users.find_one({"_id": ObjectId(result["applicant_id"])})
        assert applicant["cohort_id"] == str(active_cohort["_id"])
        assert applicant["password"] != "s3cret-pass"

        application = await db.phase1_applications.find_one({"applicant_id": result["applicant_id"]})
        assert application["flag_count"] == 0
        assert application["auto_advance"] is True
        assert "password" not in application["personal_info"]

        cohort = await db.cohorts.find_one({"_id": active_cohort["_id"]})
        assert cohort["current_applicant_count"] == 1

    async def test_clean_signup_goes_to_webinar_when_not_skipping(self, db, active_cohort, sent_notifications):
        await update_settings(db, SystemSettingsUpdate(skip_phase2=False))
        result = await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(signup_payload()))

        assert result["status"] == "PHASE_2"
        assert result["phase"] == "WEBINAR"
        assert sent_notifications[0][1] == "phase2_promotion"

    async def test_red_flag_holds_for_review(self, db, active_cohort, sent_notifications):
        payload = signup_payload(extended_info={"service_history": {"country": "", "unit": ""}})
        result = await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(payload))

        assert result["status"] == "PHASE_1"
        assert result["needs_review"] is True
        assert sent_notifications == []

    async def test_validation_lists_every_problem(self, db, active_cohort):
        payload = signup_payload(
            personal_info={"confirm_email": "other@farmlink.io", "confirm_password": "nope"},
            extended_info={"founder_count": 0, "time_commitment": False},
        )
        with pytest.raises(ValidationError) as exc:
            await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(payload))
        assert {e["field"] for e in exc.value.errors} == {
            "confirmEmail", "confirmPassword", "founderCount", "timeCommitment",
        }
        assert await db.users.count_documents({}) == 0

    async def test_duplicate_email(self, db, active_cohort):
        request = Phase1SignupRequest.model_validate(signup_payload())
        await lifecycle.submit_phase1(db, request)
        with pytest.raises(ValidationError, match="already registered"):
            await lifecycle.submit_phase1(db, request)

    async def test_racing_signup_with_same_email(self, db, active_cohort, monkeypatch):
        await ensure_indexes(db)
        await db.users.insert_one({"email": "dana@farmlink.io", "role": UserRole.APPLICANT.value})

        # Both requests passed the lookup; the unique index decides
        async def not_registered(db, email):
            return False

        monkeypatch.setattr(lifecycle, "email_registered", not_registered)
        with pytest.raises(ValidationError, match="already registered"):
            await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(signup_payload()))
        assert await db.users.count_documents({}) == 1

    async def test_failed_application_insert_removes_applicant(self, db, active_cohort):
        await db.phase1_applications.create_index("personal_info.email", unique=True)
        await db.phase1_applications.insert_one({"personal_info": {"email": "dana@farmlink.io"}})

        with pytest.raises(DuplicateKeyError):
            await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(signup_payload()))
        assert await db.users.count_documents({}) == 0
        cohort = await db.cohorts.find_one({"_id": active_cohort["_id"]})
        assert cohort["current_applicant_count"] == 0

    async def test_requires_active_cohort(self, db):
        with pytest.raises(NotFoundError):
            await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(signup_payload()))

    async def test_closed_applications(self, db, active_cohort):
        await update_settings(db, SystemSettingsUpdate(accepting_applications=False))
        with pytest.raises(ValidationError, match="closed"):
            await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(signup_payload()))

    async def test_notification_failure_does_not_roll_back(self, db, active_cohort, monkeypatch):
        async def broken(applicant, template):
            raise RuntimeError("smtp down")

        monkeypatch.setattr(lifecycle, "send_notification", broken)
        result = await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(signup_payload()))

        applicant = await db.users.find_one({"_id": ObjectId(result["applicant_id"])})
        assert applicant["status"] == "PHASE_3"

    async def test_reanalyze_advances_fixed_application(self, db, active_cohort, admin):
        payload = signup_payload(extended_info={"service_history": {"country": " ", "unit": "Golani"}})
        result = await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(payload))
        assert result["status"] == "PHASE_1"

        await db.phase1_applications.update_one(
            {"applicant_id": result["applicant_id"]},
            {"$set": {"extended_info.service_history.country": "Israel"}},
        )
        response = await lifecycle.reanalyze_phase1(db, result["applicant_id"], admin)

        assert response["needs_review"] is False
        applicant = await lifecycle.get_applicant(db, result["applicant_id"])
        assert applicant["status"] == "PHASE_3"
        assert await db.audit_logs.count_documents({"action": "reanalyze_phase1"}) == 1


# ===========================
# PHASE 2: WEBINAR CODE
# ===========================

class TestRedemption:
    async def test_redeem_promotes_once(self, db, active_cohort, sent_notifications):
        applicant = await make_applicant(db, S.PHASE_2, cohort_id=str(active_cohort["_id"]))

        first = await lifecycle.redeem_webinar_code(db, "abc123", str(applicant["_id"]))
        assert first.redeemed is True
        assert first.status == "PHASE_3"
        assert first.webinar_num == 1

        second = await lifecycle.redeem_webinar_code(db, "ABC123", str(applicant["_id"]))
        assert second.redeemed is False
        assert "already attended" in second.message

        stored = await lifecycle.get_applicant(db, applicant["_id"])
        assert stored["webinar_attended"] == 1
        assert stored["phase"] == "IN_DEPTH_APPLICATION"
        assert await db.webinar_attendance.count_documents({}) == 1
        cohort = await db.cohorts.find_one({"_id": active_cohort["_id"]})
        assert cohort["webinars"][0]["attendee_count"] == 1
        assert sent_notifications == [(str(applicant["_id"]), "phase3_invitation")]

    async def test_concurrent_redemptions_redeem_once(self, db, active_cohort):
        applicant = await make_applicant(db, S.PHASE_2)

        results = await asyncio.gather(
            lifecycle.redeem_webinar_code(db, "ABC123", str(applicant["_id"])),
            lifecycle.redeem_webinar_code(db, "ZZ9X8Y", str(applicant["_id"])),
        )

        assert sorted(r.redeemed for r in results) == [False, True]
        assert await db.webinar_attendance.count_documents({}) == 1

    async def test_attended_but_not_promoted_can_retry(self, db, active_cohort):
        applicant = await make_applicant(db, S.PHASE_2, webinar_attended=2)
        result = await lifecycle.redeem_webinar_code(db, "zz9x8y", str(applicant["_id"]))
        assert result.redeemed is True

    async def test_skipped_webinar_needs_no_code(self, db, active_cohort):
        applicant = await make_applicant(db, S.PHASE_3)
        result = await lifecycle.redeem_webinar_code(db, "ABC123", str(applicant["_id"]))

        assert result.redeemed is False
        assert result.message == "Webinar step not required"
        assert result.status == "PHASE_3"
        assert await db.webinar_attendance.count_documents({}) == 0

    async def test_malformed_code_fails_before_lookup(self, db, monkeypatch):
        async def lookup(db, code):
            raise AssertionError("lookup should not run")

        monkeypatch.setattr(lifecycle, "find_webinar_by_code", lookup)
        for code in ("ABC12", "ABC1234", "ABC-12", ""):
            with pytest.raises(ValidationError):
                await lifecycle.redeem_webinar_code(db, code, str(ObjectId()))

    async def test_unknown_code(self, db, active_cohort):
        applicant = await make_applicant(db, S.PHASE_2)
        with pytest.raises(NotFoundError):
            await lifecycle.redeem_webinar_code(db, "QQQQQQ", str(applicant["_id"]))

    async def test_unknown_applicant(self, db, active_cohort):
        with pytest.raises(NotFoundError):
            await lifecycle.redeem_webinar_code(db, "ABC123", str(ObjectId()))

    async def test_signup_phase_cannot_redeem(self, db, active_cohort):
        applicant = await make_applicant(db, S.PHASE_1)
        with pytest.raises(PhaseProgressionError):
            await lifecycle.redeem_webinar_code(db, "ABC123", str(applicant["_id"]))
        assert await db.webinar_attendance.count_documents({}) == 0


# ===========================
# PHASE 3
# ===========================

class TestPhase3:
    async def test_draft_then_submit(self, db, sent_notifications):
        applicant = await make_applicant(db, S.PHASE_3)

        await lifecycle.save_phase3_draft(db, applicant, phase3_input())
        applicant = await lifecycle.get_applicant(db, applicant["_id"])
        assert applicant["status"] == "PHASE_3_IN_PROGRESS"

        # Saving again while in progress is fine
        await lifecycle.save_phase3_draft(db, applicant, phase3_input())

        doc = await lifecycle.submit_phase3(db, applicant, phase3_input())
        assert doc["status"] == "SUBMITTED"
        assert doc["submitted_at"] is not None
        # Scorer not configured: analysis absent, flagged, always needs review
        assert "ai_analysis" not in doc["product_info"]
        assert doc["needs_review"] is True
        assert doc["auto_advance"] is False
        assert doc["flag_count"] == 1

        applicant = await lifecycle.get_applicant(db, applicant["_id"])
        assert applicant["status"] == "PHASE_3_SUBMITTED"
        assert sent_notifications[-1] == (str(applicant["_id"]), "phase3_submitted")

    async def test_scorer_failure_is_stored_as_processing(self, db, monkeypatch):
        async def failing_scorer(text):
            return ScorerResult(status="processing")

        monkeypatch.setattr(lifecycle, "score_text", failing_scorer)
        applicant = await make_applicant(db, S.PHASE_3)
        doc = await lifecycle.submit_phase3(db, applicant, phase3_input())
        assert doc["product_info"]["ai_analysis"]["status"] == "processing"

    async def test_good_score_clears_problem_flag(self, db, monkeypatch):
        async def scorer(text):
            return ScorerResult(score=9, is_specific=True)

        monkeypatch.setattr(lifecycle, "score_text", scorer)
        applicant = await make_applicant(db, S.PHASE_3)
        doc = await lifecycle.submit_phase3(db, applicant, phase3_input())
        assert doc["flag_count"] == 0
        # Clean, yet still waiting for an admin
        assert doc["needs_review"] is True

    async def test_cannot_edit_after_submit(self, db):
        applicant = await make_applicant(db, S.PHASE_3_SUBMITTED)
        with pytest.raises(PhaseProgressionError, match="admin must reopen"):
            await lifecycle.save_phase3_draft(db, applicant, phase3_input())

    async def test_stale_draft_save_cannot_overwrite_submission(self, db):
        await ensure_indexes(db)
        applicant = await make_applicant(db, S.PHASE_3)
        await lifecycle.save_phase3_draft(db, applicant, phase3_input())

        # Read before the submit landed, still says PHASE_3_IN_PROGRESS
        stale = await lifecycle.get_applicant(db, applicant["_id"])
        await lifecycle.submit_phase3(db, stale, phase3_input())

        edited = phase3_input().model_copy(update={"team_info": TeamInfo(capacity="Nights and weekends")})
        with pytest.raises(PhaseProgressionError, match="admin must reopen"):
            await lifecycle.save_phase3_draft(db, stale, edited)

        doc = await lifecycle.get_phase3_application(db, applicant["_id"])
        assert doc["status"] == "SUBMITTED"
        assert doc["team_info"]["capacity"] == "All full time"
        assert await db.phase3_applications.count_documents({}) == 1
        current = await lifecycle.get_applicant(db, applicant["_id"])
        assert current["status"] == "PHASE_3_SUBMITTED"

    async def test_webinar_applicant_cannot_submit(self, db):
        applicant = await make_applicant(db, S.PHASE_2)
        with pytest.raises(PhaseProgressionError):
            await lifecycle.submit_phase3(db, applicant, phase3_input())
        assert await db.phase3_applications.count_documents({}) == 0

    async def test_reopen_clears_submission(self, db, admin):
        applicant = await make_applicant(db, S.PHASE_3)
        await lifecycle.submit_phase3(db, applicant, phase3_input())

        reopened = await lifecycle.reopen_phase3(db, applicant["_id"], admin)
        assert reopened["status"] == "PHASE_3_IN_PROGRESS"

        doc = await lifecycle.get_phase3_application(db, applicant["_id"])
        assert doc["status"] == "DRAFT"
        assert "submitted_at" not in doc

    async def test_reject(self, db, admin, sent_notifications):
        applicant = await make_applicant(db, S.PHASE_3_SUBMITTED)
        rejected = await lifecycle.reject_phase3(db, str(applicant["_id"]), admin)

        assert rejected["status"] == "PHASE_3_REJECTED"
        assert sent_notifications == [(str(applicant["_id"]), "phase3_rejected")]
        log = await db.audit_logs.find_one({"action": "reject_phase3"})
        assert log["target_id"] == str(applicant["_id"])


# ===========================
# PHASE 4 AND OVERRIDES
# ===========================

class TestInterview:
    async def test_full_interview_flow(self, db, admin, sent_notifications):
        applicant = await make_applicant(db, S.PHASE_3_SUBMITTED)
        interviewer_id = await make_interviewer(db)

        invited = await lifecycle.advance_to_interview(db, applicant["_id"], interviewer_id, admin)
        assert invited["status"] == "PHASE_4"
        assert invited["interviewer_id"] == interviewer_id
        interview = await lifecycle.get_interview(db, applicant["_id"])
        assert interview["status"] == "NOT_YET_SCHEDULED"

        scheduled = await lifecycle.schedule_interview(db, applicant["_id"], datetime(2030, 1, 5, 15), admin)
        assert scheduled["status"] == "PHASE_4_INTERVIEW_SCHEDULED"

        done = await lifecycle.complete_interview(db, applicant["_id"], "Strong team", admin)
        assert done["status"] == "PHASE_4_POST_INTERVIEW"
        interview = await lifecycle.get_interview(db, applicant["_id"])
        assert interview["status"] == "INTERVIEWED"
        assert interview["notes"] == "Strong team"

        accepted = await lifecycle.set_interview_decision(db, applicant["_id"], InterviewDecision.ACCEPTED, admin)
        assert accepted["status"] == "ACCEPTED"
        assert accepted["phase"] == "ACCEPTED"
        assert [t for _, t in sent_notifications] == ["phase4_invitation", "accepted"]

    async def test_decision_can_move_back_to_pending(self, db, admin):
        applicant = await make_applicant(db, S.PHASE_4_REJECTED)
        pending = await lifecycle.set_interview_decision(db, applicant["_id"], "pending", admin)
        assert pending["status"] == "PHASE_4_POST_INTERVIEW"

    async def test_accepted_is_terminal(self, db, admin):
        applicant = await make_applicant(db, S.ACCEPTED)
        with pytest.raises(PhaseProgressionError):
            await lifecycle.set_interview_decision(db, applicant["_id"], "rejected", admin)

    async def test_unknown_interviewer_leaves_applicant_alone(self, db, admin):
        applicant = await make_applicant(db, S.PHASE_3_SUBMITTED)
        with pytest.raises(NotFoundError):
            await lifecycle.advance_to_interview(db, applicant["_id"], str(ObjectId()), admin)
        stored = await lifecycle.get_applicant(db, applicant["_id"])
        assert stored["status"] == "PHASE_3_SUBMITTED"
        assert await db.interviews.count_documents({}) == 0

    async def test_interview_requires_submitted_application(self, db, admin):
        applicant = await make_applicant(db, S.PHASE_3_IN_PROGRESS)
        interviewer_id = await make_interviewer(db)
        with pytest.raises(PhaseProgressionError):
            await lifecycle.advance_to_interview(db, applicant["_id"], interviewer_id, admin)


class TestAdminActions:
    async def test_override_past_red_flags(self, db, admin, sent_notifications):
        applicant = await make_applicant(db, S.PHASE_1)
        grant = pm.AdminOverride.from_user(admin, "Service verified manually")

        moved = await lifecycle.override_status(db, applicant["_id"], S.PHASE_3, grant)
        assert moved["status"] == "PHASE_3"
        log = await db.audit_logs.find_one({"action": "force_transition"})
        assert log["details"] == {"from": "PHASE_1", "to": "PHASE_3", "reason": "Service verified manually"}
        assert sent_notifications[-1][1] == "phase3_invitation"

    async def test_override_reopens_terminal_status(self, db, admin):
        applicant = await make_applicant(db, S.PHASE_3_REJECTED)
        grant = pm.AdminOverride.from_user(admin, "Rejected by mistake")
        moved = await lifecycle.override_status(db, applicant["_id"], S.PHASE_3_SUBMITTED, grant)
        assert moved["phase"] == "IN_DEPTH_APPLICATION"

    async def test_rating(self, db, admin):
        applicant = await make_applicant(db, S.PHASE_3_SUBMITTED)
        rated = await lifecycle.rate_applicant(db, applicant["_id"], 2, admin)
        assert rated["rating"] == 2
        cleared = await lifecycle.rate_applicant(db, applicant["_id"], None, admin)
        assert cleared["rating"] is None
        with pytest.raises(ValidationError):
            await lifecycle.rate_applicant(db, applicant["_id"], 4, admin)

    async def test_assign_reviewer(self, db, admin):
        applicant = await make_applicant(db, S.PHASE_3_SUBMITTED)
        reviewer = await db.users.insert_one({"email": "v@accelerator.io", "role": "viewer"})

        assigned = await lifecycle.assign_reviewer(db, applicant["_id"], str(reviewer.inserted_id), admin)
        assert assigned["assigned_to"] == str(reviewer.inserted_id)

        with pytest.raises(NotFoundError):
            await lifecycle.assign_reviewer(db, applicant["_id"], str(applicant["_id"]), admin)

    async def test_lost_race_is_reported(self, db):
        applicant = await make_applicant(db, S.PHASE_3)
        transition = pm.plan_transition(S.PHASE_2, S.PHASE_3, pm.Trigger.WEBINAR_CODE)
        assert await lifecycle.compare_and_set_status(db, applicant["_id"], transition) is None

    async def test_detail_includes_fresh_flags(self, db, active_cohort):
        payload = signup_payload(company_info={"company_website": ""})
        result = await lifecycle.submit_phase1(db, Phase1SignupRequest.model_validate(payload))

        detail = await lifecycle.applicant_detail(db, result["applicant_id"])
        assert detail["status_display"] == "Phase 3"
        assert [f["field"] for f in detail["phase1_flags"]["flags"]] == ["companyWebsite"]
        assert "phase3_application" not in detail

    async def test_list_filters_by_status(self, db):
        await make_applicant(db, S.PHASE_1)
        await make_applicant(db, S.PHASE_2)
        listed = await lifecycle.list_applicants(db, status="PHASE_2")
        assert [a["status"] for a in listed] == ["PHASE_2"]

    def test_dashboard_message(self):
        dashboard = lifecycle.applicant_dashboard({"status": "PHASE_2"})
        assert dashboard["phase"] == "WEBINAR"
        assert dashboard["action_required"] is True
