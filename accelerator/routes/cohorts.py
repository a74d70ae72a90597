# ========================================
# accelerator/routes/cohorts.py
# ========================================

from fastapi import APIRouter, Depends
from typing import List, Optional

from accelerator.database import get_db
from accelerator.schemas.cohort import CohortCreate, CohortResponse, CohortUpdate, Webinar, WebinarCreate
from accelerator.services import cohorts, webinars
from accelerator.utils.auth import admin_required, staff_required

router = APIRouter(prefix="/cohorts", tags=["Cohorts"])


# ===========================
# PUBLIC
# ===========================

# ✅ 1. COHORT CURRENTLY ACCEPTING APPLICATIONS
@router.get("/active", response_model=Optional[CohortResponse])
async def active_cohort():
    db = get_db()
    cohort = await cohorts.get_active_cohort(db)
    return cohorts.serialize_cohort(cohort) if cohort else None


# ===========================
# STAFF
# ===========================

# ✅ 2. LIST
@router.get("", response_model=List[CohortResponse])
async def list_cohorts(current_user: dict = Depends(staff_required)):
    db = get_db()
    return [cohorts.serialize_cohort(c) for c in await cohorts.list_cohorts(db)]


# ✅ 3. GET ONE
@router.get("/{cohort_id}", response_model=CohortResponse)
async def get_cohort(cohort_id: str, current_user: dict = Depends(staff_required)):
    db = get_db()
    return cohorts.serialize_cohort(await cohorts.get_cohort(db, cohort_id))


# ✅ 4. LIST WEBINARS
@router.get("/{cohort_id}/webinars", response_model=List[Webinar])
async def list_webinars(cohort_id: str, current_user: dict = Depends(staff_required)):
    db = get_db()
    return cohorts.serialize_cohort(await cohorts.get_cohort(db, cohort_id))["webinars"]


# ===========================
# ADMIN
# ===========================

# ✅ 5. CREATE
@router.post("", response_model=CohortResponse, status_code=201)
async def create_cohort(data: CohortCreate, current_user: dict = Depends(admin_required)):
    """Create a cohort. Rejected if either window overlaps an existing cohort."""
    db = get_db()
    return cohorts.serialize_cohort(await cohorts.create_cohort(db, data))


# ✅ 6. UPDATE
@router.put("/{cohort_id}", response_model=CohortResponse)
async def update_cohort(cohort_id: str, data: CohortUpdate, current_user: dict = Depends(admin_required)):
    db = get_db()
    return cohorts.serialize_cohort(await cohorts.update_cohort(db, cohort_id, data))


# ✅ 7. ACTIVATE / DEACTIVATE
@router.post("/{cohort_id}/activate", response_model=CohortResponse)
async def activate_cohort(cohort_id: str, current_user: dict = Depends(admin_required)):
    db = get_db()
    return cohorts.serialize_cohort(await cohorts.set_cohort_active(db, cohort_id, True))


@router.post("/{cohort_id}/deactivate", response_model=CohortResponse)
async def deactivate_cohort(cohort_id: str, current_user: dict = Depends(admin_required)):
    db = get_db()
    return cohorts.serialize_cohort(await cohorts.set_cohort_active(db, cohort_id, False))


# ✅ 8. DELETE
@router.delete("/{cohort_id}")
async def delete_cohort(cohort_id: str, current_user: dict = Depends(admin_required)):
    db = get_db()
    await cohorts.delete_cohort(db, cohort_id)
    return {"message": "Cohort deleted successfully", "cohort_id": cohort_id}


# ✅ 9. ADD WEBINAR
@router.post("/{cohort_id}/webinars", response_model=Webinar, status_code=201)
async def add_webinar(cohort_id: str, data: WebinarCreate, current_user: dict = Depends(admin_required)):
    db = get_db()
    return await webinars.add_webinar(db, cohort_id, data)
