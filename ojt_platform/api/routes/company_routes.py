"""
Company Routes

GET /companies/profile - Get own company profile
PUT /companies/profile - Create or update company profile
GET /companies/job-matches/{job_id} - Students ranked by skill match for a job
GET /companies/analytics - Application funnel across the company's jobs
GET /companies/search-students - Filter students by skills, score, location, job type
"""

import math
from collections import Counter
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from ojt_platform.core.auth import get_current_company
from ojt_platform.core.errors import InvalidInput
from ojt_platform.core.logger import logger
from ojt_platform.services.grading_service import round_half_up
from ojt_platform.services.matching_service import get_recommendation_service
from ojt_platform.services.mongo_service import CompanyService, JobService, StudentService
from ojt_platform.api.routes.student_routes import student_response
from ojt_platform.schemas.schemas import (
    ApplicationStatus, CompanyAnalyticsResponse, CompanyProfileUpdate, CompanyResponse,
    JobStatus, JobType, SkillCount, StudentMatchListResponse, StudentMatchResponse,
    StudentSearchResponse
)

router = APIRouter(prefix="/companies", tags=["Companies"])


def company_response(doc: dict) -> CompanyResponse:
    return CompanyResponse(
        company_id=doc["_id"], user_id=doc["user_id"], company_name=doc.get("company_name", ""),
        industry=doc.get("industry"), company_size=doc.get("company_size"),
        description=doc.get("description"), website=doc.get("website"), city=doc.get("city"),
        verified=doc.get("verified", False)
    )


@router.get("/profile", response_model=CompanyResponse)
async def get_profile(company: dict = Depends(get_current_company)):
    """Get current company's profile."""
    return company_response(CompanyService().get_by_user(company["user_id"]))


@router.put("/profile", response_model=CompanyResponse)
async def update_profile(data: CompanyProfileUpdate, company: dict = Depends(get_current_company)):
    """Create or update the company profile. A new profile needs a company name."""
    service = CompanyService()
    fields = data.model_dump(exclude_none=True)

    if not service.find_by_user(company["user_id"]) and not fields.get("company_name"):
        raise InvalidInput("Company name is required")

    return company_response(service.upsert_profile(company["user_id"], fields))


@router.get("/job-matches/{job_id}", response_model=StudentMatchListResponse)
async def get_student_matches(
    job_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    company: dict = Depends(get_current_company)
):
    """
    Students who have not applied yet, ranked by skill match against the job.

    Location and job-type preferences do not count here.
    """
    job = JobService().get_owned(job_id, company["user_id"])
    applied = [a["student_user_id"] for a in job.get("applications", [])]

    ranked = get_recommendation_service().rank_students(job, StudentService().list_excluding(applied))
    total = len(ranked)
    start = (page - 1) * limit
    logger.debug(f"Ranked {total} students for job {job_id}")

    return StudentMatchListResponse(
        matches=[
            StudentMatchResponse(student=student_response(m["student"]), match_score=m["match_score"])
            for m in ranked[start:start + limit]
        ],
        total=total,
        page=page,
        pages=math.ceil(total / limit),
        limit=limit
    )


@router.get("/analytics", response_model=CompanyAnalyticsResponse)
async def get_analytics(company: dict = Depends(get_current_company)):
    """
    Application counts by status, the skills applicants bring most often and
    their average assessment score, across all of the company's jobs.
    """
    CompanyService().get_by_user(company["user_id"])
    jobs = JobService().list_by_company(company["user_id"])
    applications = [a for job in jobs for a in job.get("applications", [])]

    by_status = {s.value: 0 for s in ApplicationStatus}
    for application in applications:
        by_status[application["status"]] = by_status.get(application["status"], 0) + 1

    profiles = StudentService().find_by_users({a["student_user_id"] for a in applications})
    skill_counts: Counter = Counter()
    scores: List[int] = []
    for application in applications:
        profile = profiles.get(application["student_user_id"])
        if not profile:
            continue
        skill_counts.update(s["name"] for s in profile.get("skills", []))
        if profile.get("assessment_score"):
            scores.append(profile["assessment_score"]["overall"])

    return CompanyAnalyticsResponse(
        total_jobs=len(jobs),
        active_jobs=sum(1 for job in jobs if job.get("status") == JobStatus.active.value),
        total_applications=len(applications),
        applications_by_status=by_status,
        top_skills=[SkillCount(name=name, count=count) for name, count in skill_counts.most_common(10)],
        average_applicant_score=round_half_up(sum(scores) / len(scores)) if scores else 0
    )


@router.get("/search-students", response_model=StudentSearchResponse)
async def search_students(
    search: Optional[str] = Query(None, description="Name, skill or field of study"),
    skills: Optional[str] = Query(None, description="Comma-separated skill names"),
    min_score: Optional[int] = Query(None, ge=0, le=100),
    location: Optional[str] = Query(None),
    job_type: Optional[JobType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    company: dict = Depends(get_current_company)
):
    """Find students to approach, highest assessment score first."""
    skill_names = [s.strip() for s in skills.split(",") if s.strip()] if skills else None
    docs, total = StudentService().search(
        page=page,
        limit=limit,
        search=search,
        skills=skill_names,
        min_score=min_score,
        location=location,
        job_type=job_type.value if job_type else None
    )
    return StudentSearchResponse(
        students=[student_response(doc) for doc in docs],
        total=total,
        page=page,
        pages=math.ceil(total / limit),
        limit=limit
    )
