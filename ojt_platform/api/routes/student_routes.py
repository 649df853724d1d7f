"""
Student Routes

GET /students/profile - Get own profile
PUT /students/profile - Create or update profile
GET /students/job-matches - Recommended jobs, best match first
GET /students/applications - Get my applications
"""

from fastapi import APIRouter, Depends
from typing import List

from ojt_platform.core.auth import get_current_student
from ojt_platform.services.matching_service import get_recommendation_service
from ojt_platform.services.mongo_service import JobService, StudentService
from ojt_platform.api.routes.job_routes import application_response, job_response
from ojt_platform.schemas.schemas import (
    ApplicationResponse, JobMatchResponse, MatchDetails, StudentProfileUpdate, StudentResponse
)

router = APIRouter(prefix="/students", tags=["Students"])


def student_response(doc: dict) -> StudentResponse:
    return StudentResponse(
        user_id=doc["user_id"], email=doc.get("email"),
        first_name=doc.get("first_name"), last_name=doc.get("last_name"),
        phone=doc.get("phone"), city=doc.get("city"), education=doc.get("education"),
        skills=doc.get("skills", []), preferences=doc.get("preferences") or {},
        assessment_completed=doc.get("assessment_completed", False),
        assessment_score=doc.get("assessment_score"),
        updated_at=doc.get("updated_at")
    )


@router.get("/profile", response_model=StudentResponse)
async def get_profile(student: dict = Depends(get_current_student)):
    """Get current student's profile with skills."""
    return student_response(StudentService().get_by_user(student["user_id"]))


@router.put("/profile", response_model=StudentResponse)
async def update_profile(data: StudentProfileUpdate, student: dict = Depends(get_current_student)):
    """
    Create or update the student profile. Fields left out or sent as null are
    not changed.

    Skills sent here are self-reported; verified skills from the assessment
    are kept.
    """
    service = StudentService()
    fields = data.model_dump(mode="json", exclude_none=True)

    if "skills" in fields:
        existing = service.find_by_user(student["user_id"]) or {}
        verified = [s for s in existing.get("skills", []) if s.get("verified")]
        verified_names = {s["name"].casefold() for s in verified}
        reported = [
            {**s, "verified": False, "score": None}
            for s in fields["skills"]
            if s["name"].casefold() not in verified_names
        ]
        fields["skills"] = verified + reported

    doc = service.upsert_profile(student["user_id"], student["email"], fields)
    return student_response(doc)


@router.get("/job-matches", response_model=List[JobMatchResponse])
async def get_job_matches(student: dict = Depends(get_current_student)):
    """
    Active jobs ranked by skill match plus location / job-type preference.

    Jobs under the minimum match score are left out.
    """
    profile = StudentService().get_by_user(student["user_id"])
    matches = get_recommendation_service().recommend_jobs(profile, JobService().all_active())

    return [
        JobMatchResponse(
            job=job_response(m["job"]),
            match_score=m["match_score"],
            match_details=MatchDetails(**m["match_details"])
        )
        for m in matches
    ]


@router.get("/applications", response_model=List[ApplicationResponse])
async def get_my_applications(student: dict = Depends(get_current_student)):
    """All applications made by current student, most recent first."""
    results = []
    for job in JobService().applied_by_student(student["user_id"]):
        for application in job.get("applications", []):
            if application["student_user_id"] == student["user_id"]:
                results.append(application_response(job, application))

    return sorted(results, key=lambda a: a.applied_at, reverse=True)
