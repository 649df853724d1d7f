"""
Job Routes

GET /jobs - List active jobs with filters
GET /jobs/stats - Job statistics
GET /jobs/company/me - Jobs posted by current company
GET /jobs/{job_id} - Get job details
POST /jobs - Create job posting (company only)
PUT /jobs/{job_id} - Update job (owning company only)
DELETE /jobs/{job_id} - Delete job (owning company only)
POST /jobs/{job_id}/apply - Apply to job (student only)
GET /jobs/{job_id}/applications - Applications, best match first (owning company only)
PUT /jobs/{job_id}/applications/{application_id} - Update application status
"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from ojt_platform.core.auth import get_current_student, get_current_company
from ojt_platform.core.errors import InvalidInput
from ojt_platform.core.logger import logger
from ojt_platform.db.mongodb import utc_now
from ojt_platform.services.matching_service import get_recommendation_service
from ojt_platform.services.mongo_service import (
    CompanyService, CustomSubmissionService, JobService, StudentService, new_id
)
from ojt_platform.schemas.schemas import (
    ApplicationCreate, ApplicationResponse, ApplicationStatus, ApplicationStatusUpdate,
    JobCreate, JobListResponse, JobResponse, JobStatsResponse, JobStatus, JobType,
    JobUpdate, MessageResponse
)

router = APIRouter(prefix="/jobs", tags=["Jobs"])


# ============================================================
# RESPONSE HELPERS
# ============================================================

def job_response(doc: dict) -> JobResponse:
    return JobResponse(
        job_id=doc["_id"], company_id=doc["company_id"], company_name=doc.get("company_name", ""),
        title=doc["title"], department=doc.get("department"), description=doc["description"],
        requirements=doc.get("requirements", []), skills_required=doc.get("skills_required", []),
        job_type=doc["job_type"], experience_level=doc["experience_level"],
        location=doc.get("location") or {}, number_of_positions=doc.get("number_of_positions", 1),
        application_deadline=doc.get("application_deadline"), status=doc["status"],
        require_custom_assessment=doc.get("require_custom_assessment", False),
        custom_assessment_id=doc.get("custom_assessment_id"),
        applications_count=len(doc.get("applications", [])),
        created_at=doc["created_at"]
    )


def application_response(job: dict, application: dict) -> ApplicationResponse:
    return ApplicationResponse(
        application_id=application["application_id"],
        job_id=job["_id"],
        job_title=job["title"],
        company_name=job.get("company_name", ""),
        student_user_id=application["student_user_id"],
        student_name=application.get("student_name"),
        status=application["status"],
        match_score=application.get("match_score", 0),
        notes=application.get("notes"),
        custom_assessment_submission_id=application.get("custom_assessment_submission_id"),
        applied_at=application["applied_at"]
    )


# ============================================================
# LISTING
# ============================================================

@router.get("", response_model=JobListResponse)
async def list_jobs(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    search: Optional[str] = Query(None, description="Search in title and description"),
    job_type: Optional[JobType] = Query(None),
    city: Optional[str] = Query(None),
    remote: Optional[bool] = Query(None),
    skill: Optional[str] = Query(None, description="Filter by required skill")
):
    """List active job postings with filters and pagination."""
    docs, total = JobService().list_active(
        page=page,
        page_size=page_size,
        search=search,
        job_type=job_type.value if job_type else None,
        city=city,
        remote=remote,
        skill=skill
    )
    return JobListResponse(
        jobs=[job_response(doc) for doc in docs], total=total, page=page, page_size=page_size
    )


@router.get("/stats", response_model=JobStatsResponse)
async def job_stats():
    """Counts of active jobs, companies and applications."""
    return JobStatsResponse(**JobService().stats(total_companies=CompanyService().count()))


@router.get("/company/me", response_model=List[JobResponse])
async def my_company_jobs(company: dict = Depends(get_current_company)):
    """All jobs posted by the current company, any status."""
    return [job_response(doc) for doc in JobService().list_by_company(company["user_id"])]


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str):
    """Get details of a specific job."""
    return job_response(JobService().get(job_id))


# ============================================================
# COMPANY: CREATE / UPDATE / DELETE
# ============================================================

@router.post("", response_model=JobResponse, status_code=201)
async def create_job(job: JobCreate, company: dict = Depends(get_current_company)):
    """Create a new job posting. Only companies with a profile can create jobs."""
    profile = CompanyService().get_by_user(company["user_id"])
    doc = JobService().create(profile, job.model_dump(mode="json"))
    return job_response(doc)


@router.put("/{job_id}", response_model=JobResponse)
async def update_job(job_id: str, update: JobUpdate, company: dict = Depends(get_current_company)):
    """Update a job posting. Only the owning company can update; null fields are ignored."""
    service = JobService()
    service.get_owned(job_id, company["user_id"])

    fields = update.model_dump(mode="json", exclude_none=True)
    if not fields:
        raise InvalidInput("No fields to update")

    return job_response(service.update(job_id, fields))


@router.delete("/{job_id}", response_model=MessageResponse)
async def delete_job(job_id: str, company: dict = Depends(get_current_company)):
    """Delete a job posting together with its applications."""
    service = JobService()
    service.get_owned(job_id, company["user_id"])
    service.delete(job_id)
    return MessageResponse(message="Job deleted successfully")


# ============================================================
# APPLICATIONS
# ============================================================

@router.post("/{job_id}/apply", response_model=ApplicationResponse, status_code=201)
async def apply_to_job(
    job_id: str,
    application: ApplicationCreate,
    student: dict = Depends(get_current_student)
):
    """
    Apply to a job. Students only, once per job.

    The stored match score is the skill-only match at the time of applying.
    """
    profile = StudentService().get_by_user(student["user_id"])
    service = JobService()
    job = service.get(job_id)

    if job["status"] != JobStatus.active.value:
        raise InvalidInput("This job is no longer accepting applications")

    submission_id = application.custom_assessment_submission_id
    if job.get("require_custom_assessment"):
        if not submission_id:
            raise InvalidInput("This job requires a custom assessment to be completed before applying")
        submission = CustomSubmissionService().get(submission_id)
        if submission["student_user_id"] != student["user_id"] or submission["job_id"] != job_id:
            raise InvalidInput("Custom assessment submission does not belong to this application")

    name = " ".join(filter(None, [profile.get("first_name"), profile.get("last_name")])) or None
    record = {
        "application_id": new_id(),
        "student_user_id": student["user_id"],
        "student_name": name,
        "status": ApplicationStatus.pending.value,
        "match_score": get_recommendation_service().score_application(job, profile),
        "notes": None,
        "custom_assessment_submission_id": submission_id,
        "applied_at": utc_now()
    }
    service.add_application(job_id, record)
    logger.info(f"Student {student['user_id']} applied to job {job_id} (match {record['match_score']}%)")

    return application_response(job, record)


@router.get("/{job_id}/applications", response_model=List[ApplicationResponse])
async def list_applications(job_id: str, company: dict = Depends(get_current_company)):
    """Applications on a job, highest match score first, then most recent."""
    job = JobService().get_owned(job_id, company["user_id"])
    applications = sorted(
        job.get("applications", []),
        key=lambda a: (a.get("match_score", 0), a["applied_at"]),
        reverse=True
    )
    return [application_response(job, a) for a in applications]


@router.put("/{job_id}/applications/{application_id}", response_model=ApplicationResponse)
async def update_application_status(
    job_id: str,
    application_id: str,
    update: ApplicationStatusUpdate,
    company: dict = Depends(get_current_company)
):
    """Move an application through the hiring pipeline."""
    service = JobService()
    job = service.get_owned(job_id, company["user_id"])
    application = service.update_application(job_id, application_id, update.status.value, update.notes)
    return application_response(job, application)
