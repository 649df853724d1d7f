"""
Assessment Attempt Service

An attempt is the in-progress state of one student taking one assessment:
which questions were drawn, the answers given so far and where the student
is. Transitions are pure functions that return a new attempt; persistence
is a separate, explicit step through AttemptStore.

    attempt = start_attempt(assessment_doc, user_id, rng=random.Random(7))
    attempt = record_answer(attempt, question_id, "O(log n)")
    AttemptStore().save(attempt)
"""

import random
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field
from pymongo import ReturnDocument
from pymongo.collection import Collection

from ojt_platform.core.config import get_settings
from ojt_platform.core.errors import InvalidInput, NotFound
from ojt_platform.core.logger import logger
from ojt_platform.db.mongodb import get_collection, utc_now, COLLECTIONS
from ojt_platform.schemas.schemas import AttemptStatus

settings = get_settings()


class AssessmentAttempt(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(ObjectId()))
    student_user_id: str
    assessment_id: str
    question_ids: List[str]
    answers: Dict[str, Optional[str]] = {}
    current_index: int = 0
    started_at: datetime = Field(default_factory=utc_now)
    status: AttemptStatus = AttemptStatus.in_progress
    result_id: Optional[str] = None


# ============================================================
# TRANSITIONS
# ============================================================

def start_attempt(
    assessment: dict,
    student_user_id: str,
    category: Optional[str] = None,
    per_category: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> AssessmentAttempt:
    """
    Draw a question subset from an assessment document.

    Up to `per_category` questions are sampled from each category (or only
    from `category` when given), then the combined list is shuffled.
    """
    per_category = settings.attempt_questions_per_category if per_category is None else per_category
    rng = rng or random.Random()

    by_category: Dict[str, List[str]] = {}
    for question in assessment.get("questions", []):
        if category and question.get("category") != category:
            continue
        by_category.setdefault(question.get("category", "general"), []).append(question["id"])

    selected: List[str] = []
    for ids in by_category.values():
        selected.extend(rng.sample(ids, min(per_category, len(ids))))

    if not selected:
        raise InvalidInput(
            f"No questions available for category '{category}'" if category
            else "Assessment has no questions"
        )
    rng.shuffle(selected)

    return AssessmentAttempt(
        student_user_id=student_user_id,
        assessment_id=str(assessment["_id"]),
        question_ids=selected,
    )


def _require_in_progress(attempt: AssessmentAttempt) -> None:
    if attempt.status != AttemptStatus.in_progress:
        raise InvalidInput("Attempt has already been submitted")


def record_answer(attempt: AssessmentAttempt, question_id: str, answer: Optional[str]) -> AssessmentAttempt:
    """Return a copy of the attempt with `answer` stored for `question_id`."""
    _require_in_progress(attempt)
    if question_id not in attempt.question_ids:
        raise InvalidInput(f"Question '{question_id}' is not part of this attempt")

    answers = dict(attempt.answers)
    answers[question_id] = answer
    return attempt.model_copy(update={"answers": answers})


def move_to(attempt: AssessmentAttempt, index: int) -> AssessmentAttempt:
    _require_in_progress(attempt)
    if not 0 <= index < len(attempt.question_ids):
        raise InvalidInput(f"Question index {index} out of range")
    return attempt.model_copy(update={"current_index": index})


def mark_submitted(attempt: AssessmentAttempt, result_id: str) -> AssessmentAttempt:
    _require_in_progress(attempt)
    return attempt.model_copy(update={"status": AttemptStatus.submitted, "result_id": result_id})


# ============================================================
# SERIALIZATION
# ============================================================

def to_document(attempt: AssessmentAttempt) -> dict:
    """Mongo document for an attempt."""
    return {
        "_id": ObjectId(attempt.id),
        "student_user_id": attempt.student_user_id,
        "assessment_id": attempt.assessment_id,
        "question_ids": list(attempt.question_ids),
        "answers": dict(attempt.answers),
        "current_index": attempt.current_index,
        "started_at": attempt.started_at,
        "status": attempt.status.value,
        "result_id": attempt.result_id,
    }


def from_document(doc: dict) -> AssessmentAttempt:
    return AssessmentAttempt(
        id=str(doc["_id"]),
        student_user_id=doc["student_user_id"],
        assessment_id=doc["assessment_id"],
        question_ids=doc.get("question_ids", []),
        answers=doc.get("answers") or {},
        current_index=doc.get("current_index", 0),
        started_at=doc["started_at"],
        status=doc.get("status", AttemptStatus.in_progress),
        result_id=doc.get("result_id"),
    )


# ============================================================
# STORE
# ============================================================

class AttemptStore:
    """Durable storage for attempts in the assessment_attempts collection."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["assessment_attempts"])

    def save(self, attempt: AssessmentAttempt) -> AssessmentAttempt:
        doc = to_document(attempt)
        self.collection.replace_one({"_id": doc["_id"]}, doc, upsert=True)
        logger.debug(f"Saved attempt {attempt.id} ({attempt.status.value})")
        return attempt

    def load(self, attempt_id: str, student_user_id: Optional[str] = None) -> AssessmentAttempt:
        """
        Load an attempt by id.

        Raises:
            NotFound: unknown id, or the attempt belongs to another student
        """
        if not ObjectId.is_valid(attempt_id):
            raise NotFound("Attempt not found")
        query = {"_id": ObjectId(attempt_id)}
        if student_user_id is not None:
            query["student_user_id"] = student_user_id
        doc = self.collection.find_one(query)
        if not doc:
            raise NotFound("Attempt not found")
        return from_document(doc)

    def claim(self, attempt_id: str, student_user_id: str, assessment_id: str) -> AssessmentAttempt:
        """
        Close an in-progress attempt for submission in one atomic step.

        Returns the attempt as it was before closing. Only one caller can
        claim a given attempt; the rest get InvalidInput.

        Raises:
            NotFound: unknown id, or the attempt belongs to another student
            InvalidInput: different assessment, or already submitted
        """
        if not ObjectId.is_valid(attempt_id):
            raise NotFound("Attempt not found")
        doc = self.collection.find_one_and_update(
            {
                "_id": ObjectId(attempt_id),
                "student_user_id": student_user_id,
                "assessment_id": assessment_id,
                "status": AttemptStatus.in_progress.value
            },
            {"$set": {"status": AttemptStatus.submitted.value}},
            return_document=ReturnDocument.BEFORE
        )
        if doc:
            return from_document(doc)

        existing = self.load(attempt_id, student_user_id)
        if existing.assessment_id != assessment_id:
            raise InvalidInput("Attempt belongs to a different assessment")
        raise InvalidInput("Attempt has already been submitted")

    def latest_in_progress(self, student_user_id: str) -> Optional[AssessmentAttempt]:
        doc = self.collection.find_one(
            {"student_user_id": student_user_id, "status": AttemptStatus.in_progress.value},
            sort=[("started_at", -1)]
        )
        return from_document(doc) if doc else None
