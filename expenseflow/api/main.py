import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from expenseflow import __version__
from expenseflow.core.config import get_settings
from expenseflow.core.logger import setup_logger
from expenseflow.api.routers import auth, requests, dashboard, notifications, users

settings = get_settings()

setup_logger(
    "expenseflow",
    log_dir=settings.log_dir,
    level=settings.log_level,
    file_logging=settings.log_to_file,
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Multi-stage approval workflow for expense claims and purchase orders",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.debug else settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api")
app.include_router(requests.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api")
app.include_router(notifications.router, prefix="/api")
app.include_router(users.router, prefix="/api")

# Uploaded receipts, unless they are served from another host
if settings.receipts_base_url.startswith("/"):
    app.mount(
        settings.receipts_base_url.rstrip("/"),
        StaticFiles(directory=settings.receipts_dir, check_dir=False),
        name="receipts",
    )

logger.info(
    f"{settings.app_name} {__version__} ready "
    f"(manager limit {settings.manager_approval_limit}, finance limit {settings.finance_approval_limit})"
)


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": __version__}


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": __version__,
        "docs": "/docs" if settings.debug else None,
    }
