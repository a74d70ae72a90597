from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from accelerator.models.enums import FlagType


class Flag(BaseModel):
    type: FlagType
    field: str
    message: str


class FlaggingResult(BaseModel):
    """Fresh output of the rule engine. Flags themselves are never stored."""
    flags: List[Flag] = []
    auto_advance: bool = False
    needs_review: bool = True

    @property
    def red_flags(self) -> List[Flag]:
        return [f for f in self.flags if f.type == FlagType.RED]

    @property
    def yellow_flags(self) -> List[Flag]:
        return [f for f in self.flags if f.type == FlagType.YELLOW]


# Output: what admins see on the applicant detail page
class FlaggingResponse(BaseModel):
    application_id: Optional[str] = None
    flags: List[Flag]
    auto_advance: bool
    needs_review: bool
    summary: str
    analyzed_at: datetime
