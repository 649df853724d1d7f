"""
Assessment Grading Service

PURPOSE:
Turn a question bank plus a learner's submitted answers into a ScoreResult:
per-question correctness, total score, percentage, pass/fail and a
per-category percentage breakdown.

HOW IT WORKS:
1. Validate the bank (non-empty, every question has an id, points >= 1)
2. Index answers by question id (no positional matching)
3. Compare normalized answer to normalized correct answer
4. Sum points overall and per category
5. Round percentages half-up, clamp to [0, 100]

Pure and synchronous: no I/O, inputs are never mutated, so one question bank
can be graded from any number of concurrent requests.
"""

import math
from typing import Dict, Iterable, List, Optional, Sequence

from ojt_platform.core.errors import InvalidInput, DataIntegrityWarning
from ojt_platform.core.logger import logger
from ojt_platform.schemas.schemas import (
    Question,
    QuestionResult,
    QuestionType,
    ScoreResult,
    SubmittedAnswer,
)

# Answers to these types are still auto-graded but flagged for a human.
REVIEW_TYPES = {QuestionType.short_answer, QuestionType.coding}


# ============================================================
# HELPERS
# ============================================================

def round_half_up(value: float) -> int:
    """Round like JavaScript's Math.round (66.5 -> 67, -0.5 -> 0)."""
    return int(math.floor(value + 0.5))


def bounded_percentage(earned: float, possible: float) -> int:
    """
    Percentage of `possible` that `earned` represents.

    Returns 0 when nothing was possible; the result is always in [0, 100].
    """
    if possible <= 0:
        return 0
    return max(0, min(100, round_half_up(100 * earned / possible)))


def normalize_answer(value: Optional[str]) -> str:
    """Trim and case-fold an answer for comparison."""
    if value is None:
        return ""
    return str(value).strip().casefold()


def answers_match(submitted: Optional[str], correct: Optional[str]) -> bool:
    """An empty submission or a question with no key is never correct."""
    given = normalize_answer(submitted)
    expected = normalize_answer(correct)
    return bool(given) and bool(expected) and given == expected


# ============================================================
# VALIDATION
# ============================================================

def _validate_questions(questions: Sequence[Question]) -> None:
    if not questions:
        raise InvalidInput("Assessment has no questions")

    seen = set()
    for index, question in enumerate(questions):
        if not question.id:
            raise InvalidInput(f"Question at position {index} has no id")
        if question.id in seen:
            raise InvalidInput(f"Duplicate question id '{question.id}'")
        if question.points <= 0:
            raise InvalidInput(f"Question '{question.id}' must be worth at least 1 point")
        seen.add(question.id)


def _index_answers(
    answers: Iterable[Optional[SubmittedAnswer]],
    question_ids: set,
    warnings: List[str],
) -> Dict[str, Optional[str]]:
    """Map question id -> raw answer. The last answer for a question wins."""
    by_id: Dict[str, Optional[str]] = {}
    for index, answer in enumerate(answers):
        if answer is None:
            continue
        if not answer.question_id:
            if answer.answer is None:
                # Unanswered placeholder
                continue
            raise InvalidInput(f"Answer at position {index} has no question id")

        if answer.question_id not in question_ids:
            warnings.append(f"Answer references unknown question '{answer.question_id}'")
            continue
        if answer.question_id in by_id:
            warnings.append(f"Duplicate answer for question '{answer.question_id}', keeping the last one")
        by_id[answer.question_id] = answer.answer
    return by_id


# ============================================================
# GRADER
# ============================================================

class AssessmentGrader:
    """
    Grades a submission against a question bank.

    Stateless; a single module-level instance is shared by the routes.
    """

    def grade(
        self,
        questions: Sequence[Question],
        answers: Sequence[Optional[SubmittedAnswer]],
        passing_score: int,
    ) -> ScoreResult:
        """
        Grade `answers` against `questions`.

        Args:
            questions: Question bank; each must have an id and points >= 1
            answers: Submitted answers, matched by question id; may be partial
            passing_score: Inclusive pass threshold, 0-100

        Returns:
            ScoreResult with per-question records and category breakdown

        Raises:
            InvalidInput: empty bank, missing ids, non-positive points,
                or a passing score outside 0-100
        """
        if passing_score is None or not 0 <= passing_score <= 100:
            raise InvalidInput(f"Passing score must be between 0 and 100, got {passing_score}")
        _validate_questions(questions)

        warnings: List[str] = []
        question_ids = {q.id for q in questions}
        answer_by_id = _index_answers(answers, question_ids, warnings)

        per_question: List[QuestionResult] = []
        total_score = 0
        total_possible = 0
        category_earned: Dict[str, int] = {}
        category_possible: Dict[str, int] = {}

        for question in questions:
            raw = answer_by_id.get(question.id)
            is_correct = answers_match(raw, question.correct_answer)
            points = question.points if is_correct else 0

            total_score += points
            total_possible += question.points
            category_earned[question.category] = category_earned.get(question.category, 0) + points
            category_possible[question.category] = category_possible.get(question.category, 0) + question.points

            per_question.append(QuestionResult(
                question_id=question.id,
                answer=raw,
                is_correct=is_correct,
                points_awarded=points,
                needs_review=question.type in REVIEW_TYPES,
            ))

        if total_possible <= 0:
            warnings.append("Assessment is worth zero points; reporting 0%")

        percentage = bounded_percentage(total_score, total_possible)
        category_breakdown = {
            category: bounded_percentage(category_earned[category], possible)
            for category, possible in category_possible.items()
        }

        for message in warnings:
            logger.warning(f"{DataIntegrityWarning.__name__}: {message}")

        return ScoreResult(
            total_score=total_score,
            total_possible=total_possible,
            percentage=percentage,
            passed=percentage >= passing_score,
            per_question=per_question,
            category_breakdown=category_breakdown,
            warnings=warnings,
        )


# Shared instance
grader = AssessmentGrader()


def get_grader() -> AssessmentGrader:
    """Get grader instance."""
    return grader
