"""
OJT Platform - Main Application

FastAPI backend with:
- MongoDB for every entity (users, profiles, jobs, assessments)
- JWT authentication
- Assessment grading and skill-based job matching

Run: uvicorn ojt_platform.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.errors import PyMongoError

from ojt_platform.api.routes import api_router
from ojt_platform.core.config import get_settings
from ojt_platform.core.errors import PlatformError, platform_error_handler
from ojt_platform.core.logger import logger
from ojt_platform.db.mongodb import init_mongo_indexes, test_mongo_connection

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
    except PyMongoError as e:
        logger.error(f"MongoDB index initialization failed: {e}")
    yield


# Create FastAPI app
app = FastAPI(
    title="OJT Platform",
    description="""
    Job and on-the-job-training matching for students and companies.

    ## Features
    - **Authentication**: JWT-based auth for students, companies and admins
    - **Students**: Profile, skills, job recommendations, applications
    - **Companies**: Job posting, applicant ranking, custom assessments
    - **Assessments**: Timed skills assessments with category breakdown
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    debug=settings.debug,
    lifespan=lifespan
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(PlatformError, platform_error_handler)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check with database ping."""
    mongo_ok = test_mongo_connection()
    return {
        "status": "healthy" if mongo_ok else "degraded",
        "mongodb": "connected" if mongo_ok else "disconnected"
    }
