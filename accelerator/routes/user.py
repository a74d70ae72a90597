# ========================================
# accelerator/routes/user.py
# ========================================

from fastapi import APIRouter, HTTPException, Depends
from datetime import datetime

from accelerator.database import get_db
from accelerator.schemas.user import StaffCreate, UserLogin, UserResponse, TokenResponse
from accelerator.utils.auth import create_access_token, get_current_user, admin_required
from accelerator.utils.security import get_password_hash, verify_password

router = APIRouter(prefix="/users", tags=["Users"])


def _user_out(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "name": user.get("name", ""),
        "email": user["email"],
        "role": user["role"],
        "status": user.get("status"),
        "cohort_id": user.get("cohort_id"),
    }


# ✅ 1. LOGIN
@router.post("/login", response_model=TokenResponse)
async def login(user_credentials: UserLogin):
    """Login and get a JWT access token."""
    db = get_db()

    user = await db.users.find_one({"email": user_credentials.email.strip().lower()})
    if not user or not verify_password(user_credentials.password, user["password"]):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    await db.users.update_one({"_id": user["_id"]}, {"$set": {"last_login": datetime.utcnow()}})
    access_token = create_access_token(data={"sub": user["email"]})
    return {"access_token": access_token, "token_type": "bearer"}


# ✅ 2. WHO AM I
@router.get("/me", response_model=UserResponse)
async def get_me(current_user: dict = Depends(get_current_user)):
    return _user_out(current_user)


# ✅ 3. CREATE STAFF ACCOUNT (Admin)
@router.post("/staff", response_model=UserResponse, status_code=201)
async def create_staff(user: StaffCreate, current_user: dict = Depends(admin_required)):
    """Create an admin or viewer account. Applicants sign up through Phase 1."""
    if user.role.value == "applicant":
        raise HTTPException(status_code=400, detail="Applicants must sign up through the Phase 1 form")

    db = get_db()
    email = str(user.email).strip().lower()
    if await db.users.find_one({"email": email}):
        raise HTTPException(status_code=400, detail="Email already registered")

    user_dict = {
        "name": user.name,
        "email": email,
        "password": get_password_hash(user.password),
        "role": user.role.value,
        "created_at": datetime.utcnow(),
        "created_by": str(current_user["_id"]),
    }
    result = await db.users.insert_one(user_dict)
    user_dict["_id"] = result.inserted_id
    return _user_out(user_dict)
