from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class SystemSettings(BaseModel):
    """Global, admin-editable switches. Passed into the state machine explicitly."""
    skip_phase2: bool = True  # promote Phase 1 straight to Phase 3
    accepting_applications: bool = True
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None


class SystemSettingsUpdate(BaseModel):
    skip_phase2: Optional[bool] = None
    accepting_applications: Optional[bool] = None
