# ========================================
# accelerator/main.py
# ========================================

import logging
import os

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from accelerator.database import connect_to_mongo, close_mongo_connection
from accelerator.errors import PortalError

# ===========================
# IMPORT ALL ROUTERS
# ===========================

from accelerator.routes.user import router as user_router
from accelerator.routes.application import router as application_router
from accelerator.routes.cohorts import router as cohorts_router
from accelerator.routes.admin_applicants import router as admin_applicants_router
from accelerator.routes.interviewers import router as interviewers_router
from accelerator.routes.admin_settings import router as admin_settings_router

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"

# ===========================
# CREATE FASTAPI APP
# ===========================

app = FastAPI(
    title="Accelerator Application Portal API",
    description="Applicant lifecycle from signup to acceptance, with cohort and interview management",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc"
)

# ===========================
# CORS MIDDLEWARE
# ===========================
raw_origins = os.getenv("ALLOWED_ORIGINS", "")
origins = [o.strip() for o in raw_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ===========================
# ERROR HANDLERS
# ===========================

@app.exception_handler(PortalError)
async def portal_error_handler(request: Request, exc: PortalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("%s %s rejected (%d): %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# ===========================
# DATABASE EVENTS
# ===========================

@app.on_event("startup")
async def start_db():
    await connect_to_mongo()

@app.on_event("shutdown")
async def stop_db():
    await close_mongo_connection()

# ===========================
# REGISTER ROUTERS
# ===========================

app.include_router(user_router, tags=["Users"])
app.include_router(application_router, tags=["Applications"])
app.include_router(cohorts_router, tags=["Cohorts"])
app.include_router(admin_applicants_router, tags=["Admin - Applicants"])
app.include_router(interviewers_router, tags=["Admin - Interviewers"])
app.include_router(admin_settings_router, tags=["Admin - Settings"])

# ===========================
# ROOT ENDPOINTS
# ===========================

@app.get("/")
async def root():
    return {
        "status": "Accelerator Application Portal API running",
        "version": VERSION,
        "documentation": "/docs",
        "phases": ["SIGNUP", "WEBINAR", "IN_DEPTH_APPLICATION", "INTERVIEW", "ACCEPTED"],
        "endpoints": {
            "authentication": ["/users/login", "/users/me"],
            "applicant": [
                "/applications/phase1",
                "/applications/me",
                "/applications/webinar-code",
                "/applications/phase3",
                "/applications/phase3/submit"
            ],
            "admin": [
                "/admin/applicants",
                "/admin/applicants/{id}/reanalyze",
                "/admin/applicants/{id}/override",
                "/admin/applicants/{id}/interview",
                "/admin/interviewers",
                "/admin/settings",
                "/cohorts"
            ],
            "public": ["/cohorts/active"]
        }
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": VERSION
    }
