from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.exceptions import register_exception_handlers
from app.startup import configure_logging, run_startup_checks

# ========== Staff Directory & Roles ==========
from modules.staff.routers.staff_router import router as staff_router
from modules.staff.routers.role_router import router as role_router
from modules.staff.routers.invitation_router import (
    router as invitation_router,
    public_router as invitation_public_router,
)

# ========== Scheduling ==========
from modules.staff.routers.schedule_router import router as schedule_router
from modules.staff.routers.recurring_shift_router import router as recurring_shift_router

# ========== Time Off ==========
from modules.staff.routers.time_off_router import router as time_off_router

configure_logging()

app = FastAPI(
    title="Staff Scheduling API",
    description="""
    Multi-tenant staff operations for appointment-based businesses.

    ## Features

    * **Staff Directory** - Staff members, location and service assignments, archiving and deletion
    * **Invitations** - One-time onboarding tokens for staff members
    * **Roles & Permissions** - Default and custom roles with granular permissions
    * **Shift Scheduling** - One-off shifts with overlap and overtime conflict detection
    * **Recurring Shifts** - Weekly and daily patterns expanded on demand, with per-day overrides
    * **Time Off** - Requests, approvals and per-business time-off types
    * **Availability** - Combined view of a staff member's shifts and approved time off

    ## Identity

    Every business-scoped request identifies the acting staff member with the
    `X-Staff-Member-Id` header. Accepting an invitation only needs its token.
    Send `X-Force-Create: true` to save a shift despite warning-level conflicts.
    """,
    version="1.0.0",
    debug=settings.debug,
)

# Register exception handlers for consistent error responses
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ========== Include routers ==========

business_prefix = f"{settings.api_prefix}/businesses/{{business_id}}"

app.include_router(staff_router, prefix=business_prefix, tags=["Staff"])
app.include_router(role_router, prefix=business_prefix, tags=["Roles"])
app.include_router(invitation_router, prefix=business_prefix, tags=["Invitations"])
app.include_router(invitation_public_router, prefix=settings.api_prefix, tags=["Invitations"])
app.include_router(schedule_router, prefix=f"{business_prefix}/schedule", tags=["Staff Schedule Management"])
app.include_router(recurring_shift_router, prefix=f"{business_prefix}/schedule", tags=["Recurring Shifts"])
app.include_router(time_off_router, prefix=f"{business_prefix}/time-off", tags=["Time Off"])


@app.on_event("startup")
async def startup_event():
    """Validate the database before serving requests"""
    run_startup_checks()


@app.get("/")
def read_root():
    return {"message": "Staff scheduling API is running"}


@app.get("/health")
def health():
    return {"status": "ok", "environment": settings.environment}
