"""
Webinar codes. Webinars live inside their cohort document; a code is
6 characters from a fixed alphabet and unique across every cohort.
"""

import logging
import secrets
from datetime import datetime
from typing import Iterable, Optional, Set, Tuple

from accelerator.errors import PortalError
from accelerator.schemas.cohort import WebinarCreate
from accelerator.services.cohorts import cohort_write_lock, get_cohort

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
MAX_CODE_ATTEMPTS = 10


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def is_valid_code_format(code: str) -> bool:
    code = normalize_code(code)
    return len(code) == CODE_LENGTH and all(ch in CODE_ALPHABET for ch in code)


def generate_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def collect_codes(cohorts: Iterable[dict]) -> Set[str]:
    return {
        normalize_code(w.get("code"))
        for cohort in cohorts
        for w in cohort.get("webinars", [])
    }


def generate_unique_code(taken: Set[str]) -> str:
    for _ in range(MAX_CODE_ATTEMPTS):
        code = generate_code()
        if code not in taken:
            return code
    raise PortalError("Unable to generate unique webinar code after maximum attempts")


def build_webinar(num: int, code: str, data: WebinarCreate) -> dict:
    return {
        "num": num,
        "code": code,
        "timestamp": data.timestamp,
        "link": data.link,
        "title": data.title,
        "description": data.description,
        "max_attendees": data.max_attendees,
        "attendee_count": 0,
        "created_at": datetime.utcnow(),
    }


async def add_webinar(db, cohort_id: str, data: WebinarCreate) -> dict:
    async with cohort_write_lock():
        cohort = await get_cohort(db, cohort_id)
        cohorts = await db.cohorts.find({}, {"webinars": 1}).to_list(None)
        code = generate_unique_code(collect_codes(cohorts))
        num = max((w["num"] for w in cohort.get("webinars", [])), default=0) + 1
        webinar = build_webinar(num, code, data)
        await db.cohorts.update_one(
            {"_id": cohort["_id"]},
            {"$push": {"webinars": webinar}, "$set": {"updated_at": datetime.utcnow()}},
        )

    logger.info("Added webinar #%d to cohort %s", num, cohort_id)
    return {**webinar, "cohort_id": cohort_id}


async def find_webinar_by_code(db, code: str) -> Optional[Tuple[dict, dict]]:
    """Scan every cohort's embedded webinars for an exact, case-insensitive match."""
    wanted = normalize_code(code)
    cohorts = await db.cohorts.find({}, {"name": 1, "webinars": 1}).to_list(None)
    for cohort in cohorts:
        for webinar in cohort.get("webinars", []):
            if normalize_code(webinar.get("code")) == wanted:
                return cohort, webinar
    return None
