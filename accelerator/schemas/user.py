from pydantic import BaseModel, EmailStr
from typing import Optional

from accelerator.models.enums import UserRole


# Staff accounts are created by admins; applicants sign up through Phase 1
class StaffCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    role: UserRole = UserRole.VIEWER


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    name: str = ""
    email: EmailStr
    role: UserRole
    status: Optional[str] = None
    cohort_id: Optional[str] = None


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
