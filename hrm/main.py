from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hrm.api.v1.attendance.router import router as attendance_router
from hrm.api.v1.holidays.router import router as holidays_router
from hrm.api.v1.leaves.router import router as leaves_router
from hrm.api.v1.reports.router import router as reports_router
from hrm.api.v1.shifts.router import router as shifts_router
from hrm.core.config import settings
from hrm.core.logging_config import configure_logging


def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title="HRM Core")

    # CORS: comma-separated CORS_ORIGINS, or every origin when unset
    origins = [o.strip() for o in settings.cors_origins.split(",")] if settings.cors_origins else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(shifts_router)
    app.include_router(attendance_router)
    app.include_router(leaves_router)
    app.include_router(holidays_router)
    app.include_router(reports_router)

    return app


app = create_app()
