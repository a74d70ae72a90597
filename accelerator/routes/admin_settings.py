# ========================================
# accelerator/routes/admin_settings.py
# ========================================

from fastapi import APIRouter, Depends

from accelerator.database import get_db
from accelerator.schemas.settings import SystemSettings, SystemSettingsUpdate
from accelerator.services import settings as settings_service
from accelerator.utils.auth import admin_required, staff_required

router = APIRouter(prefix="/admin/settings", tags=["Admin - Settings"])


@router.get("", response_model=SystemSettings)
async def get_settings(current_user: dict = Depends(staff_required)):
    db = get_db()
    return await settings_service.get_settings(db)


@router.put("", response_model=SystemSettings)
async def update_settings(updates: SystemSettingsUpdate, current_user: dict = Depends(admin_required)):
    """Changing skip_phase2 only affects applicants promoted from now on."""
    db = get_db()
    return await settings_service.update_settings(db, updates, admin_id=str(current_user["_id"]))


@router.post("/toggle-skip-phase2", response_model=SystemSettings)
async def toggle_skip_phase2(current_user: dict = Depends(admin_required)):
    db = get_db()
    return await settings_service.toggle_skip_phase2(db, admin_id=str(current_user["_id"]))
