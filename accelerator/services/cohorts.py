"""
Cohort scheduling: date-ordering rules, the overlap validator and the
cohort write path.

``validate_cohort_dates``, ``overlaps`` and ``find_overlapping`` are pure.
Every cohort write runs read-validate-write under ``cohort_write_lock`` so two
requests cannot both pass the overlap check and then both insert.
"""

import asyncio
import logging
import weakref
from datetime import datetime
from typing import Iterable, List, Optional

from bson import ObjectId

from accelerator.errors import NotFoundError, OverlapError, ValidationError
from accelerator.schemas.cohort import CohortCreate, CohortUpdate

logger = logging.getLogger(__name__)

DATE_FIELDS = (
    "application_start_date",
    "application_end_date",
    "program_start_date",
    "program_end_date",
)

_write_locks = weakref.WeakKeyDictionary()


def cohort_write_lock() -> asyncio.Lock:
    """Single-writer lock for cohort documents, one per event loop."""
    loop = asyncio.get_running_loop()
    lock = _write_locks.get(loop)
    if lock is None:
        lock = _write_locks[loop] = asyncio.Lock()
    return lock


def _dates(cohort):
    if isinstance(cohort, dict):
        return tuple(cohort.get(field) for field in DATE_FIELDS)
    return tuple(getattr(cohort, field) for field in DATE_FIELDS)


# ===========================
# PURE RULES
# ===========================

def date_errors(cohort) -> List[dict]:
    app_start, app_end, prog_start, prog_end = _dates(cohort)
    missing = [f for f, v in zip(DATE_FIELDS, (app_start, app_end, prog_start, prog_end)) if v is None]
    if missing:
        return [{"field": f, "message": f"{f} is required"} for f in missing]

    errors = []
    if app_start >= app_end:
        errors.append({
            "field": "application_start_date",
            "message": "Application start date must be before application end date",
        })
    if prog_start >= prog_end:
        errors.append({
            "field": "program_start_date",
            "message": "Program start date must be before program end date",
        })
    if app_end > prog_start:
        errors.append({
            "field": "application_end_date",
            "message": "Application period must end on or before the program start date",
        })
    return errors


def validate_cohort_dates(cohort) -> None:
    errors = date_errors(cohort)
    if errors:
        raise ValidationError(
            "Validation errors: " + ", ".join(e["message"] for e in errors),
            errors=errors,
        )


def windows_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return not (a_end < b_start or b_end < a_start)


def overlaps(candidate, existing) -> bool:
    """True if either the application windows or the program windows intersect."""
    c_app_start, c_app_end, c_prog_start, c_prog_end = _dates(candidate)
    e_app_start, e_app_end, e_prog_start, e_prog_end = _dates(existing)
    application = windows_overlap(c_app_start, c_app_end, e_app_start, e_app_end)
    program = windows_overlap(c_prog_start, c_prog_end, e_prog_start, e_prog_end)
    return application or program


def find_overlapping(candidate, cohorts: Iterable[dict], exclude_id: Optional[str] = None) -> List[dict]:
    return [
        cohort for cohort in cohorts
        if str(cohort.get("_id")) != str(exclude_id) and overlaps(candidate, cohort)
    ]


def check_schedule(candidate, cohorts: Iterable[dict], exclude_id: Optional[str] = None) -> None:
    """Dates must be well ordered before the overlap check means anything."""
    validate_cohort_dates(candidate)
    conflicts = find_overlapping(candidate, cohorts, exclude_id=exclude_id)
    if conflicts:
        names = ", ".join(c.get("name") or str(c["_id"]) for c in conflicts)
        raise OverlapError(
            f"Cannot create overlapping cohorts (conflicts with: {names})",
            conflicts=[{"id": str(c["_id"]), "name": c.get("name")} for c in conflicts],
        )


# ===========================
# PERSISTENCE
# ===========================

def parse_cohort_id(cohort_id: str) -> ObjectId:
    if not ObjectId.is_valid(cohort_id):
        raise ValidationError("Invalid cohort ID")
    return ObjectId(cohort_id)


def serialize_cohort(doc: dict) -> dict:
    cohort_id = str(doc["_id"])
    return {
        "id": cohort_id,
        "name": doc.get("name", ""),
        "description": doc.get("description", ""),
        "application_start_date": doc["application_start_date"],
        "application_end_date": doc["application_end_date"],
        "program_start_date": doc["program_start_date"],
        "program_end_date": doc["program_end_date"],
        "is_active": doc.get("is_active", False),
        "current_applicant_count": doc.get("current_applicant_count", 0),
        "webinars": [
            {**w, "cohort_id": cohort_id}
            for w in sorted(doc.get("webinars", []), key=lambda w: w["num"])
        ],
        "created_at": doc.get("created_at"),
        "updated_at": doc.get("updated_at"),
    }


async def get_cohort(db, cohort_id: str) -> dict:
    cohort = await db.cohorts.find_one({"_id": parse_cohort_id(cohort_id)})
    if not cohort:
        raise NotFoundError("Cohort", cohort_id)
    return cohort


async def list_cohorts(db) -> List[dict]:
    return await db.cohorts.find({}).sort("application_start_date", 1).to_list(None)


async def get_active_cohort(db, now: Optional[datetime] = None) -> Optional[dict]:
    """The active cohort whose application window contains ``now``."""
    now = now or datetime.utcnow()
    return await db.cohorts.find_one({
        "is_active": True,
        "application_start_date": {"$lte": now},
        "application_end_date": {"$gte": now},
    })


async def create_cohort(db, data: CohortCreate) -> dict:
    # Imported here: webinars needs the write lock defined above
    from accelerator.services.webinars import build_webinar, collect_codes, generate_unique_code

    async with cohort_write_lock():
        existing = await list_cohorts(db)
        check_schedule(data, existing)

        now = datetime.utcnow()
        cohort_id = ObjectId()
        taken = collect_codes(existing)
        webinars = []
        for num, webinar in enumerate(data.webinars, start=1):
            code = generate_unique_code(taken)
            taken.add(code)
            webinars.append(build_webinar(num, code, webinar))

        doc = {
            "_id": cohort_id,
            "name": data.name,
            "description": data.description or "",
            "application_start_date": data.application_start_date,
            "application_end_date": data.application_end_date,
            "program_start_date": data.program_start_date,
            "program_end_date": data.program_end_date,
            "is_active": True,
            "current_applicant_count": 0,
            "webinars": webinars,
            "created_at": now,
            "updated_at": now,
        }
        await db.cohorts.insert_one(doc)

    logger.info("Created cohort %s (%s) with %d webinars", cohort_id, data.name, len(webinars))
    return doc


async def update_cohort(db, cohort_id: str, updates: CohortUpdate) -> dict:
    changes = updates.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")

    async with cohort_write_lock():
        current = await get_cohort(db, cohort_id)

        if any(field in changes for field in DATE_FIELDS):
            merged = {**current, **changes}
            existing = await list_cohorts(db)
            check_schedule(merged, existing, exclude_id=cohort_id)

        changes["updated_at"] = datetime.utcnow()
        await db.cohorts.update_one({"_id": current["_id"]}, {"$set": changes})

    logger.info("Updated cohort %s: %s", cohort_id, sorted(changes))
    return await get_cohort(db, cohort_id)


async def set_cohort_active(db, cohort_id: str, active: bool) -> dict:
    async with cohort_write_lock():
        current = await get_cohort(db, cohort_id)
        if active:
            existing = await list_cohorts(db)
            check_schedule(current, existing, exclude_id=cohort_id)
        await db.cohorts.update_one(
            {"_id": current["_id"]},
            {"$set": {"is_active": active, "updated_at": datetime.utcnow()}},
        )

    logger.info("Cohort %s %s", cohort_id, "activated" if active else "deactivated")
    return await get_cohort(db, cohort_id)


async def delete_cohort(db, cohort_id: str) -> None:
    async with cohort_write_lock():
        current = await get_cohort(db, cohort_id)
        enrolled = await db.users.count_documents({"cohort_id": cohort_id})
        if enrolled:
            raise ValidationError(f"Cohort has {enrolled} applicants and cannot be deleted; deactivate it instead")
        await db.cohorts.delete_one({"_id": current["_id"]})

    logger.info("Deleted cohort %s", cohort_id)
