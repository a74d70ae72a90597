# tests/conftest.py
from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from accelerator.models.enums import UserRole
from accelerator.services import lifecycle


@pytest.fixture
def db():
    """Fresh in-memory database per test."""
    return AsyncMongoMockClient()["accelerator_test"]


@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch):
    """Capture notifications instead of talking to SMTP."""
    sent = []

    async def fake_send(applicant, template):
        sent.append((str(applicant["_id"]), template))
        return True

    monkeypatch.setattr(lifecycle, "send_notification", fake_send)
    return sent


@pytest.fixture(autouse=True)
def no_scorer(monkeypatch):
    monkeypatch.delenv("SCORER_URL", raising=False)


@pytest.fixture
def admin():
    return {"_id": ObjectId(), "role": UserRole.ADMIN.value, "name": "Ada Admin", "email": "ada@accelerator.test"}


@pytest.fixture
async def active_cohort(db):
    now = datetime.utcnow()
    doc = {
        "_id": ObjectId(),
        "name": "Spring",
        "application_start_date": now - timedelta(days=10),
        "application_end_date": now + timedelta(days=10),
        "program_start_date": now + timedelta(days=20),
        "program_end_date": now + timedelta(days=120),
        "is_active": True,
        "current_applicant_count": 0,
        "webinars": [
            {"num": 1, "code": "ABC123", "timestamp": now, "attendee_count": 0},
            {"num": 2, "code": "ZZ9X8Y", "timestamp": now + timedelta(days=3), "attendee_count": 0},
        ],
        "created_at": now,
        "updated_at": now,
    }
    await db.cohorts.insert_one(doc)
    return doc
