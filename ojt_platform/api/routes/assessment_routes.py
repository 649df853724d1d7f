"""
Assessment Routes

GET /assessments - Latest active assessment (optionally by category)
GET /assessments/stats - Platform-wide assessment statistics (public)
GET /assessments/results/me - My assessment results
GET /assessments/results/{result_id} - One result with answers for review
GET /assessments/attempts/current - Resume my latest in-progress attempt
PUT /assessments/attempts/{attempt_id} - Record an answer / move to a question
POST /assessments/init - Install the default question bank (admin)
POST /assessments - Create assessment (admin)
GET /assessments/{assessment_id} - Get assessment without answers
POST /assessments/{assessment_id}/attempts - Start an attempt (student)
POST /assessments/{assessment_id}/submit - Submit and grade (student)
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends, Query
from typing import Dict, List, Optional

from ojt_platform.core.auth import get_current_admin, get_current_student, get_current_user
from ojt_platform.core.errors import InvalidInput, NotFound
from ojt_platform.core.logger import logger
from ojt_platform.db.mongodb import utc_now
from ojt_platform.services import attempt_service
from ojt_platform.services.attempt_service import AssessmentAttempt, AttemptStore
from ojt_platform.services.grading_service import get_grader
from ojt_platform.services.mongo_service import (
    AssessmentResultService, AssessmentService, StudentService
)
from ojt_platform.services.seed_data import DEFAULT_ASSESSMENT, DEFAULT_ASSESSMENT_TITLE
from ojt_platform.schemas.schemas import (
    AssessmentCategory, AssessmentCreate, AssessmentListResponse, AssessmentQuestionPublic,
    AssessmentResponse, AssessmentResultResponse, AssessmentStatsResponse,
    AssessmentSubmitRequest, AssessmentSubmitResponse, AttemptResponse, AttemptStartRequest,
    AttemptUpdateRequest, ProficiencyLevel, ResultAnswer, SubmittedAnswer
)

router = APIRouter(prefix="/assessments", tags=["Assessments"])


# ============================================================
# HELPERS
# ============================================================

def level_for_score(percentage: int) -> ProficiencyLevel:
    """Verified skill level earned by a category percentage."""
    if percentage >= 80:
        return ProficiencyLevel.expert
    if percentage >= 70:
        return ProficiencyLevel.advanced
    if percentage >= 60:
        return ProficiencyLevel.intermediate
    return ProficiencyLevel.beginner


def public_questions(doc: dict, question_ids: Optional[List[str]] = None) -> List[AssessmentQuestionPublic]:
    """Questions without correct answers, in bank order or in `question_ids` order."""
    by_id = {q["id"]: q for q in doc.get("questions", [])}
    ids = question_ids if question_ids is not None else list(by_id)
    return [
        AssessmentQuestionPublic(
            id=q["id"], question=q["question"], type=q["type"], options=q.get("options", []),
            difficulty=q.get("difficulty"), category=q["category"], points=q.get("points", 1)
        )
        for q in (by_id[i] for i in ids if i in by_id)
    ]


def assessment_response(doc: dict) -> AssessmentResponse:
    return AssessmentResponse(
        assessment_id=doc["_id"], title=doc["title"], description=doc.get("description"),
        time_limit=doc["time_limit"], passing_score=doc["passing_score"],
        total_points=sum(q.get("points", 1) for q in doc.get("questions", [])),
        category=doc.get("category", AssessmentCategory.general.value),
        is_active=doc.get("is_active", True),
        questions=public_questions(doc),
        created_at=doc["created_at"]
    )


def attempt_response(attempt: AssessmentAttempt, assessment: dict) -> AttemptResponse:
    return AttemptResponse(
        attempt_id=attempt.id, assessment_id=attempt.assessment_id, status=attempt.status.value,
        current_index=attempt.current_index, answers=attempt.answers, started_at=attempt.started_at,
        questions=public_questions(assessment, attempt.question_ids), result_id=attempt.result_id
    )


def _as_utc_naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============================================================
# LISTING / STATS
# ============================================================

@router.get("", response_model=AssessmentListResponse)
async def list_assessments(
    category: Optional[AssessmentCategory] = Query(None),
    user: dict = Depends(get_current_user)
):
    """The latest active assessment, correct answers hidden."""
    doc = AssessmentService().latest_active(category.value if category else None)
    data = [assessment_response(doc)] if doc else []
    return AssessmentListResponse(count=len(data), data=data)


@router.get("/stats", response_model=AssessmentStatsResponse)
async def assessment_stats():
    """How many assessments were taken, by how many students, and how well."""
    return AssessmentStatsResponse(**AssessmentResultService().stats())


# ============================================================
# RESULTS
# ============================================================

@router.get("/results/me", response_model=List[AssessmentResultResponse])
async def my_results(student: dict = Depends(get_current_student)):
    """All my results, newest first. Answers are left out; fetch one result to review."""
    titles: Dict[str, Optional[str]] = {}
    assessments = AssessmentService()
    responses = []
    for doc in AssessmentResultService().list_for_student(student["user_id"]):
        assessment_id = doc["assessment_id"]
        if assessment_id not in titles:
            try:
                titles[assessment_id] = assessments.get(assessment_id)["title"]
            except NotFound:
                titles[assessment_id] = None
        responses.append(AssessmentResultResponse(
            result_id=doc["_id"], assessment_id=assessment_id, assessment_title=titles[assessment_id],
            score=doc["score"], total_possible=doc["total_possible"], percentage=doc["percentage"],
            passed=doc["passed"], category_scores=doc.get("category_scores", {}),
            time_spent=doc.get("time_spent", 0), started_at=doc["started_at"],
            completed_at=doc["completed_at"]
        ))
    return responses


@router.get("/results/{result_id}", response_model=AssessmentResultResponse)
async def get_result(result_id: str, student: dict = Depends(get_current_student)):
    """
    One of my results with every answer enriched for review:
    question text, correct answer and explanation.
    """
    doc = AssessmentResultService().get_for_student(result_id, student["user_id"])

    try:
        assessment = AssessmentService().get(doc["assessment_id"])
    except NotFound:
        logger.warning(f"Result {result_id} references missing assessment {doc['assessment_id']}")
        assessment = {"questions": []}
    questions = {q["id"]: q for q in assessment.get("questions", [])}

    answers = []
    for answer in doc.get("answers", []):
        question = questions.get(answer["question_id"], {})
        answers.append(ResultAnswer(
            question_id=answer["question_id"], answer=answer.get("answer"),
            is_correct=answer["is_correct"], points=answer["points"],
            needs_review=answer.get("needs_review", False),
            question=question.get("question"), correct_answer=question.get("correct_answer"),
            explanation=question.get("explanation")
        ))

    return AssessmentResultResponse(
        result_id=doc["_id"], assessment_id=doc["assessment_id"],
        assessment_title=assessment.get("title"),
        score=doc["score"], total_possible=doc["total_possible"], percentage=doc["percentage"],
        passed=doc["passed"], category_scores=doc.get("category_scores", {}),
        time_spent=doc.get("time_spent", 0), started_at=doc["started_at"],
        completed_at=doc["completed_at"], answers=answers
    )


# ============================================================
# ATTEMPTS
# ============================================================

@router.get("/attempts/current", response_model=AttemptResponse)
async def current_attempt(student: dict = Depends(get_current_student)):
    """Resume the latest in-progress attempt."""
    attempt = AttemptStore().latest_in_progress(student["user_id"])
    if attempt is None:
        raise NotFound("No assessment in progress")
    return attempt_response(attempt, AssessmentService().get(attempt.assessment_id))


@router.put("/attempts/{attempt_id}", response_model=AttemptResponse)
async def update_attempt(
    attempt_id: str,
    update: AttemptUpdateRequest,
    student: dict = Depends(get_current_student)
):
    """Record an answer and/or move to another question."""
    store = AttemptStore()
    attempt = store.load(attempt_id, student["user_id"])

    if update.question_id is not None:
        attempt = attempt_service.record_answer(attempt, update.question_id, update.answer)
    if update.current_index is not None:
        attempt = attempt_service.move_to(attempt, update.current_index)

    store.save(attempt)
    return attempt_response(attempt, AssessmentService().get(attempt.assessment_id))


# ============================================================
# ADMIN
# ============================================================

@router.post("/init", response_model=AssessmentResponse)
async def init_default_assessment(admin: dict = Depends(get_current_admin)):
    """Install the default IT Skills Assessment once; later calls return it."""
    service = AssessmentService()
    existing = service.find_by_title(DEFAULT_ASSESSMENT_TITLE)
    if existing:
        return assessment_response(existing)
    return assessment_response(service.create(DEFAULT_ASSESSMENT, created_by=admin["user_id"]))


@router.post("", response_model=AssessmentResponse, status_code=201)
async def create_assessment(data: AssessmentCreate, admin: dict = Depends(get_current_admin)):
    """Create an assessment. Question ids must be unique within it."""
    fields = data.model_dump(mode="json")
    ids = [q["id"] for q in fields["questions"] if q.get("id")]
    if len(ids) != len(set(ids)):
        raise InvalidInput("Question ids must be unique within an assessment")
    return assessment_response(AssessmentService().create(fields, created_by=admin["user_id"]))


# ============================================================
# TAKING AN ASSESSMENT
# ============================================================

@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(assessment_id: str, user: dict = Depends(get_current_user)):
    """Get assessment by id, correct answers hidden."""
    return assessment_response(AssessmentService().get(assessment_id))


@router.post("/{assessment_id}/attempts", response_model=AttemptResponse, status_code=201)
async def start_attempt(
    assessment_id: str,
    request: AttemptStartRequest,
    student: dict = Depends(get_current_student)
):
    """Draw a question set for this student and persist the attempt."""
    assessment = AssessmentService().get(assessment_id)
    attempt = attempt_service.start_attempt(
        assessment,
        student["user_id"],
        category=request.category.value if request.category else None
    )
    AttemptStore().save(attempt)
    logger.info(f"Student {student['user_id']} started attempt {attempt.id} on {assessment_id}")
    return attempt_response(attempt, assessment)


@router.post("/{assessment_id}/submit", response_model=AssessmentSubmitResponse)
async def submit_assessment(
    assessment_id: str,
    request: AssessmentSubmitRequest,
    student: dict = Depends(get_current_student)
):
    """
    Grade a submission, store the result and update the student's profile.

    With an attempt_id only the attempt's questions are graded; answers saved
    on the attempt are used when the request carries none.
    """
    logger.info(
        f"Assessment submission received: assessment={assessment_id} "
        f"user={student['user_id']} answers={len(request.answers)}"
    )
    assessment = AssessmentService().get(assessment_id)

    store = AttemptStore()
    attempt = None
    answers = request.answers
    if request.attempt_id:
        # Closed before grading so a concurrent submit of the same attempt fails
        attempt = store.claim(request.attempt_id, student["user_id"], assessment_id)
        questions = AssessmentService.gradable_questions(assessment, attempt.question_ids)
        if not answers:
            answers = [SubmittedAnswer(question_id=k, answer=v) for k, v in attempt.answers.items()]
    else:
        questions = AssessmentService.gradable_questions(assessment)

    try:
        result = get_grader().grade(questions, answers, assessment["passing_score"])
    except InvalidInput:
        if attempt is not None:
            # Reopen so the student can fix the payload and submit again
            store.save(attempt)
        raise

    started_at = _as_utc_naive(request.started_at)
    completed_at = utc_now()
    result_id = AssessmentResultService().insert({
        "student_user_id": student["user_id"],
        "assessment_id": assessment_id,
        "attempt_id": attempt.id if attempt else None,
        "answers": [
            {
                "question_id": r.question_id, "answer": r.answer, "is_correct": r.is_correct,
                "points": r.points_awarded, "needs_review": r.needs_review
            }
            for r in result.per_question
        ],
        "score": result.total_score,
        "total_possible": result.total_possible,
        "percentage": result.percentage,
        "passed": result.passed,
        "category_scores": result.category_breakdown,
        "warnings": result.warnings,
        # Minutes
        "time_spent": max(0, round((completed_at - started_at).total_seconds() / 60)),
        "started_at": started_at,
        "completed_at": completed_at
    })

    if attempt is not None:
        store.save(attempt_service.mark_submitted(attempt, result_id))

    StudentService().record_assessment(
        student["user_id"],
        student["email"],
        overall=result.percentage,
        breakdown=result.category_breakdown,
        verified_skills=[
            {"name": category, "level": level_for_score(score).value, "verified": True, "score": score}
            for category, score in result.category_breakdown.items()
        ]
    )
    logger.info(
        f"Assessment graded: result={result_id} percentage={result.percentage} passed={result.passed}"
    )

    return AssessmentSubmitResponse(
        score=result.total_score, total_possible=result.total_possible,
        percentage=result.percentage, passed=result.passed,
        category_scores=result.category_breakdown, result_id=result_id,
        warnings=result.warnings
    )
