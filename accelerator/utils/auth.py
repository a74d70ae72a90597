from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from datetime import datetime, timedelta

from accelerator.database import get_db
from accelerator.models.enums import UserRole
from accelerator.utils.security import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

security = HTTPBearer()


def create_access_token(data: dict):
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(credentials.credentials, SECRET_KEY, algorithms=[ALGORITHM])
        email: str = payload.get("sub")
        if email is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception

    db = get_db()
    user = await db.users.find_one({"email": email})
    if user is None:
        raise credentials_exception

    return user


# ===========================
# ROLE CHECKS
# ===========================

def admin_required(current_user: dict = Depends(get_current_user)):
    """Admins only: every lifecycle write made on someone else's behalf."""
    if current_user.get("role") != UserRole.ADMIN.value:
        raise HTTPException(status_code=403, detail="Admin access required")
    return current_user


def staff_required(current_user: dict = Depends(get_current_user)):
    """Admins and read-only viewers."""
    if current_user.get("role") not in (UserRole.ADMIN.value, UserRole.VIEWER.value):
        raise HTTPException(status_code=403, detail="Staff access required")
    return current_user


def applicant_required(current_user: dict = Depends(get_current_user)):
    if current_user.get("role") != UserRole.APPLICANT.value:
        raise HTTPException(status_code=403, detail="Only applicants can perform this action")
    return current_user
