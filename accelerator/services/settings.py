import logging
from datetime import datetime
from typing import Optional

from accelerator.errors import ValidationError
from accelerator.schemas.settings import SystemSettings, SystemSettingsUpdate

logger = logging.getLogger(__name__)

SETTINGS_ID = "system_settings"


async def get_settings(db) -> SystemSettings:
    """Read the global settings document, creating it with defaults if missing."""
    doc = await db.settings.find_one({"_id": SETTINGS_ID})
    if doc is None:
        defaults = SystemSettings(updated_at=datetime.utcnow())
        await db.settings.update_one(
            {"_id": SETTINGS_ID},
            {"$setOnInsert": defaults.model_dump()},
            upsert=True,
        )
        logger.info("Created default system settings")
        doc = await db.settings.find_one({"_id": SETTINGS_ID})
    return SystemSettings.model_validate(doc)


async def update_settings(db, updates: SystemSettingsUpdate, admin_id: Optional[str] = None) -> SystemSettings:
    changes = updates.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError("No settings to update")

    await get_settings(db)
    changes["updated_at"] = datetime.utcnow()
    changes["updated_by"] = admin_id
    await db.settings.update_one({"_id": SETTINGS_ID}, {"$set": changes})

    logger.info("System settings updated by %s: %s", admin_id, changes)
    return await get_settings(db)


async def toggle_skip_phase2(db, admin_id: Optional[str] = None) -> SystemSettings:
    current = await get_settings(db)
    return await update_settings(
        db, SystemSettingsUpdate(skip_phase2=not current.skip_phase2), admin_id=admin_id
    )
