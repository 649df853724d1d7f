"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from ojt_platform.api.routes.auth_routes import router as auth_router
from ojt_platform.api.routes.student_routes import router as student_router
from ojt_platform.api.routes.company_routes import router as company_router
from ojt_platform.api.routes.job_routes import router as job_router
from ojt_platform.api.routes.assessment_routes import router as assessment_router
from ojt_platform.api.routes.custom_assessment_routes import router as custom_assessment_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(student_router)
api_router.include_router(company_router)
api_router.include_router(job_router)
api_router.include_router(assessment_router)
api_router.include_router(custom_assessment_router)
