import logging
from datetime import datetime
from typing import List

from bson import ObjectId

from accelerator.errors import NotFoundError, ValidationError
from accelerator.models.enums import UserRole
from accelerator.schemas.interview import InterviewerCreate

logger = logging.getLogger(__name__)


def serialize_interviewer(doc: dict) -> dict:
    return {
        "id": str(doc["_id"]),
        "user_id": doc["user_id"],
        "name": doc.get("name", ""),
        "email": doc.get("email", ""),
        "title": doc.get("title"),
        "calendar_url": doc.get("calendar_url"),
        "is_active": doc.get("is_active", True),
        "created_at": doc.get("created_at"),
    }


async def create_interviewer(db, data: InterviewerCreate) -> dict:
    """Register a staff user as an interviewer."""
    if not ObjectId.is_valid(data.user_id):
        raise ValidationError("Invalid user ID")

    user = await db.users.find_one({
        "_id": ObjectId(data.user_id),
        "role": {"$in": [UserRole.ADMIN.value, UserRole.VIEWER.value]},
    })
    if not user:
        raise NotFoundError("Staff user", data.user_id)

    if await db.interviewers.find_one({"user_id": data.user_id}):
        raise ValidationError("User is already an interviewer")

    doc = {
        "user_id": data.user_id,
        "name": user.get("name", ""),
        "email": user.get("email", ""),
        "title": data.title,
        "calendar_url": data.calendar_url,
        "is_active": True,
        "created_at": datetime.utcnow(),
    }
    result = await db.interviewers.insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Registered interviewer %s for user %s", result.inserted_id, data.user_id)
    return doc


async def list_interviewers(db, active_only: bool = True) -> List[dict]:
    query = {"is_active": True} if active_only else {}
    return await db.interviewers.find(query).sort("name", 1).to_list(None)


async def set_interviewer_active(db, interviewer_id: str, active: bool) -> dict:
    if not ObjectId.is_valid(interviewer_id):
        raise ValidationError("Invalid interviewer ID")
    result = await db.interviewers.update_one(
        {"_id": ObjectId(interviewer_id)}, {"$set": {"is_active": active}}
    )
    if result.matched_count == 0:
        raise NotFoundError("Interviewer", interviewer_id)
    return await db.interviewers.find_one({"_id": ObjectId(interviewer_id)})


async def interviews_for(db, interviewer_id: str) -> List[dict]:
    interviews = await db.interviews.find({"interviewer_id": interviewer_id}).sort("created_at", -1).to_list(None)
    for interview in interviews:
        interview["id"] = str(interview.pop("_id"))
    return interviews
