"""
FastAPI application entry point.

- Mounts all routers under /api
- Adds CORS so the web frontend can call the backend
- Auto-creates database tables on startup
- Serves uploaded files from /uploads
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from internhub.config import settings
from internhub.database import Base, engine
from internhub.errors import AppError, app_error_handler
from internhub.routers import (
    applications, auth, evaluations, internships, profiles, resources, submissions, tasks, uploads,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup (if they don't exist yet)."""
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(
    title="InternHub",
    description="Internship marketplace: internships, tasks, applications, submissions and evaluations",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(AppError, app_error_handler)

# Mount all routers under /api
app.include_router(auth.router, prefix="/api", tags=["auth"])
app.include_router(profiles.router, prefix="/api", tags=["profiles"])
app.include_router(internships.router, prefix="/api", tags=["internships"])
app.include_router(tasks.router, prefix="/api", tags=["tasks"])
app.include_router(resources.router, prefix="/api", tags=["resources"])
app.include_router(applications.router, prefix="/api", tags=["applications"])
app.include_router(submissions.router, prefix="/api", tags=["submissions"])
app.include_router(evaluations.router, prefix="/api", tags=["evaluations"])
app.include_router(uploads.router, prefix="/api", tags=["uploads"])

# Uploaded resumes, cover letters and avatars
Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "InternHub API is running"}
