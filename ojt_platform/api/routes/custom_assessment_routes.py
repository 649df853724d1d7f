"""
Custom Assessment Routes

Companies can attach their own short assessment to a job. Once attached,
students must pass through it (submit once) before applying.

POST /custom-assessments - Create assessment for an owned job (company)
GET /custom-assessments/job/{job_id} - Get a job's assessment
POST /custom-assessments/submit - Submit answers (student, once per job)
GET /custom-assessments/submissions/{submission_id} - Submission (owner student or company)
GET /custom-assessments/job/{job_id}/submissions - All submissions for a job (company)
GET /custom-assessments/student-status/{job_id} - Has the student done it? (student)
"""

from fastapi import APIRouter, Depends
from typing import List

from ojt_platform.core.auth import get_current_company, get_current_student, get_current_user
from ojt_platform.core.errors import Conflict, Forbidden, InvalidInput
from ojt_platform.core.logger import logger
from ojt_platform.db.mongodb import utc_now
from ojt_platform.services.grading_service import get_grader
from ojt_platform.services.mongo_service import (
    CustomAssessmentService, CustomSubmissionService, JobService
)
from ojt_platform.schemas.schemas import (
    CustomAssessmentCreate, CustomAssessmentCreated, CustomAssessmentResponse,
    CustomAssessmentStatus, CustomAssessmentSubmitRequest, CustomQuestionResponse,
    CustomSubmissionCreated, CustomSubmissionResponse, CustomSubmissionResult, UserRole
)

router = APIRouter(prefix="/custom-assessments", tags=["Custom Assessments"])


def submission_response(doc: dict) -> CustomSubmissionResponse:
    return CustomSubmissionResponse(
        submission_id=doc["_id"], assessment_id=doc["assessment_id"], job_id=doc["job_id"],
        student_user_id=doc["student_user_id"], answers=doc.get("answers", []),
        score=doc["score"], percentage=doc["percentage"], passed=doc["passed"],
        time_spent=doc.get("time_spent"), submitted_at=doc["submitted_at"]
    )


@router.post("", response_model=CustomAssessmentCreated, status_code=201)
async def create_custom_assessment(data: CustomAssessmentCreate, company: dict = Depends(get_current_company)):
    """Create a custom assessment and mark the job as requiring it."""
    jobs = JobService()
    jobs.get_owned(data.job_id, company["user_id"])

    doc = CustomAssessmentService().create(company["user_id"], data.model_dump(mode="json"))
    jobs.attach_custom_assessment(data.job_id, doc["_id"])
    logger.info(f"Custom assessment {doc['_id']} attached to job {data.job_id}")

    return CustomAssessmentCreated(
        assessment_id=doc["_id"], title=doc["title"], question_count=len(doc["questions"])
    )


@router.get("/job/{job_id}", response_model=CustomAssessmentResponse)
async def get_job_assessment(job_id: str, user: dict = Depends(get_current_user)):
    """The job's active custom assessment. Students do not see correct answers."""
    doc = CustomAssessmentService().get_for_job(job_id)
    hide_answers = user["role"] == UserRole.student.value

    return CustomAssessmentResponse(
        assessment_id=doc["_id"], job_id=doc["job_id"], title=doc["title"],
        description=doc.get("description"), duration=doc["duration"],
        passing_score=doc["passing_score"],
        questions=[
            CustomQuestionResponse(
                id=q["id"], question_text=q["question_text"], question_type=q["question_type"],
                options=q.get("options", []),
                correct_answer=None if hide_answers else q.get("correct_answer"),
                points=q.get("points", 1), category=q.get("category", "technical")
            )
            for q in doc.get("questions", [])
        ]
    )


@router.post("/submit", response_model=CustomSubmissionCreated, status_code=201)
async def submit_custom_assessment(
    request: CustomAssessmentSubmitRequest,
    student: dict = Depends(get_current_student)
):
    """Grade and store a student's one submission for a job's assessment."""
    assessment = CustomAssessmentService().get(request.assessment_id)
    if assessment["job_id"] != request.job_id:
        raise InvalidInput("Assessment does not belong to this job")

    submissions = CustomSubmissionService()
    if submissions.find_for_student(request.job_id, student["user_id"]):
        raise Conflict("Assessment already submitted")

    result = get_grader().grade(
        CustomAssessmentService.gradable_questions(assessment),
        request.answers,
        assessment["passing_score"]
    )

    submission_id = submissions.create({
        "assessment_id": request.assessment_id,
        "job_id": request.job_id,
        "student_user_id": student["user_id"],
        "answers": [
            {
                "question_id": r.question_id, "answer": r.answer or "", "is_correct": r.is_correct,
                "points_earned": r.points_awarded, "needs_review": r.needs_review
            }
            for r in result.per_question
        ],
        "score": result.total_score,
        "total_points": result.total_possible,
        "percentage": result.percentage,
        "passed": result.passed,
        "warnings": result.warnings,
        "time_spent": request.time_spent,
        "submitted_at": utc_now()
    })
    logger.info(
        f"Custom assessment {request.assessment_id} submitted by {student['user_id']}: "
        f"{result.percentage}% passed={result.passed}"
    )

    return CustomSubmissionCreated(
        submission_id=submission_id,
        result=CustomSubmissionResult(
            score=result.total_score, total_points=result.total_possible,
            percentage=result.percentage, passed=result.passed,
            passing_score=assessment["passing_score"]
        ),
        warnings=result.warnings
    )


@router.get("/submissions/{submission_id}", response_model=CustomSubmissionResponse)
async def get_submission(submission_id: str, user: dict = Depends(get_current_user)):
    """Readable by the submitting student or the company that owns the assessment."""
    doc = CustomSubmissionService().get(submission_id)

    if user["role"] == UserRole.student.value:
        allowed = doc["student_user_id"] == user["user_id"]
    elif user["role"] == UserRole.company.value:
        assessment = CustomAssessmentService().get(doc["assessment_id"])
        allowed = assessment["company_user_id"] == user["user_id"]
    else:
        allowed = False

    if not allowed:
        raise Forbidden("Not authorized to view this submission")
    return submission_response(doc)


@router.get("/job/{job_id}/submissions", response_model=List[CustomSubmissionResponse])
async def list_job_submissions(job_id: str, company: dict = Depends(get_current_company)):
    """All submissions for an owned job, newest first."""
    JobService().get_owned(job_id, company["user_id"])
    return [submission_response(doc) for doc in CustomSubmissionService().list_for_job(job_id)]


@router.get("/student-status/{job_id}", response_model=CustomAssessmentStatus)
async def student_status(job_id: str, student: dict = Depends(get_current_student)):
    """Whether the job has a custom assessment and whether this student has done it."""
    job = JobService().get(job_id)
    if not job.get("require_custom_assessment") and not job.get("custom_assessment_id"):
        return CustomAssessmentStatus(has_assessment=False, completed=False, passed=False)

    submission = CustomSubmissionService().find_for_student(job_id, student["user_id"])
    if not submission:
        return CustomAssessmentStatus(has_assessment=True, completed=False, passed=False)

    return CustomAssessmentStatus(
        has_assessment=True, completed=True, passed=submission.get("passed", False),
        score=submission["score"], submitted_at=submission["submitted_at"]
    )
