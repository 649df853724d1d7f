"""
Skill Matching Service

PURPOSE:
Score how well a candidate's skills cover a job's required skills, then use
that score to recommend jobs to students and rank students for companies.

HOW IT WORKS:
1. Each requirement is worth 20 points (must-have) or 10 (nice-to-have)
2. Candidate skill found at or above the required level -> full weight
3. Found below the required level -> weight * candidate_rank / required_rank
4. Percentage = earned / possible, rounded half-up, clamped to [0, 100]

Location and job-type preferences are NOT part of the skill score. They are a
separate PreferenceBonus that the recommendation path composes on top;
company-side ranking and application scoring use the skill score alone.

All functions here are pure: documents come in, plain dicts/models go out.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from ojt_platform.core.config import get_settings
from ojt_platform.core.logger import logger
from ojt_platform.services.grading_service import bounded_percentage
from ojt_platform.schemas.schemas import (
    CandidateSkill,
    MatchResult,
    PreferenceBonus,
    ProficiencyLevel,
    SkillPriority,
    SkillRequirement,
)

settings = get_settings()

LEVEL_RANK = {
    ProficiencyLevel.beginner.value: 1,
    ProficiencyLevel.intermediate.value: 2,
    ProficiencyLevel.advanced.value: 3,
    ProficiencyLevel.expert.value: 4,
}

PRIORITY_WEIGHT = {
    SkillPriority.must_have.value: 20,
    SkillPriority.nice_to_have.value: 10,
}


# ============================================================
# HELPERS
# ============================================================

def level_rank(level: Union[ProficiencyLevel, str, None]) -> int:
    """Ordinal rank of a proficiency level; unknown levels rank as Beginner."""
    if isinstance(level, ProficiencyLevel):
        level = level.value
    return LEVEL_RANK.get(level or "", 1)


def priority_weight(priority: Union[SkillPriority, str, None]) -> int:
    if isinstance(priority, SkillPriority):
        priority = priority.value
    return PRIORITY_WEIGHT.get(priority or "", PRIORITY_WEIGHT[SkillPriority.nice_to_have.value])


def normalize_skill_name(name: str) -> str:
    return name.strip().casefold()


# ============================================================
# SKILL MATCH
# ============================================================

class MatchScorer:
    """Skill-only match between a requirement list and a candidate's skills."""

    def score(
        self,
        requirements: Sequence[SkillRequirement],
        candidate_skills: Sequence[CandidateSkill],
    ) -> MatchResult:
        """
        Compute the bounded match percentage.

        Args:
            requirements: Job's required skills (name, level, priority)
            candidate_skills: Candidate's skills (name, level)

        Returns:
            MatchResult; no requirements means 0%, never 100%
        """
        # First occurrence of a skill name wins
        by_name: Dict[str, CandidateSkill] = {}
        for skill in candidate_skills:
            by_name.setdefault(normalize_skill_name(skill.name), skill)

        earned = 0.0
        possible = 0.0
        for requirement in requirements:
            weight = priority_weight(requirement.priority)
            possible += weight

            candidate = by_name.get(normalize_skill_name(requirement.name))
            if candidate is None:
                continue

            required_rank = level_rank(requirement.level)
            candidate_rank = level_rank(candidate.level)
            if candidate_rank >= required_rank:
                earned += weight
            else:
                earned += weight * candidate_rank / required_rank

        return MatchResult(
            percentage=bounded_percentage(earned, possible),
            earned_points=earned,
            possible_points=possible,
        )


# Shared instance
scorer = MatchScorer()


def get_match_scorer() -> MatchScorer:
    """Get match scorer instance."""
    return scorer


# ============================================================
# PREFERENCE BONUS (job recommendations only)
# ============================================================

def compute_preference_bonus(
    job_doc: dict,
    preferences: Optional[dict],
    points: Optional[float] = None,
) -> PreferenceBonus:
    """
    Location and job-type fit between a job document and student preferences.

    Location matches when the job is remote, the student accepts remote work,
    or the job's city is one of the student's preferred cities.
    """
    points = settings.preference_bonus_points if points is None else points
    preferences = preferences or {}
    location = job_doc.get("location") or {}

    preferred_cities = {normalize_skill_name(c) for c in preferences.get("locations", []) if c}
    job_city = normalize_skill_name(location.get("city") or "")

    location_match = bool(
        location.get("remote")
        or preferences.get("remote")
        or (job_city and job_city in preferred_cities)
    )
    job_type_match = job_doc.get("job_type") in set(preferences.get("job_types", []))

    earned = (points if location_match else 0.0) + (points if job_type_match else 0.0)
    return PreferenceBonus(
        location_match=location_match,
        job_type_match=job_type_match,
        earned_points=earned,
        possible_points=2 * points,
    )


def compose_with_preferences(match: MatchResult, bonus: PreferenceBonus) -> MatchResult:
    """Add a preference bonus onto a skill match and recompute the percentage."""
    earned = match.earned_points + bonus.earned_points
    possible = match.possible_points + bonus.possible_points
    return MatchResult(
        percentage=bounded_percentage(earned, possible),
        earned_points=earned,
        possible_points=possible,
    )


# ============================================================
# DOCUMENT ADAPTERS
# ============================================================

def requirements_from_job(job_doc: dict) -> List[SkillRequirement]:
    """Read skill requirements off a job document, skipping unnamed entries."""
    requirements = []
    for raw in job_doc.get("skills_required") or []:
        if not raw.get("name"):
            logger.warning(f"Job {job_doc.get('_id')} has a skill requirement without a name")
            continue
        requirements.append(SkillRequirement(
            name=raw["name"],
            level=raw.get("level") if raw.get("level") in LEVEL_RANK else ProficiencyLevel.beginner,
            priority=raw.get("priority") or SkillPriority.nice_to_have,
        ))
    return requirements


def skills_from_student(student_doc: dict) -> List[CandidateSkill]:
    """Read candidate skills off a student document, skipping unnamed entries."""
    return [
        CandidateSkill(
            name=raw["name"],
            level=raw.get("level") if raw.get("level") in LEVEL_RANK else ProficiencyLevel.beginner,
        )
        for raw in student_doc.get("skills") or []
        if raw.get("name")
    ]


def rank(items: Iterable[dict], key: Callable[[dict], Any] = lambda item: item["match_score"]) -> List[dict]:
    """Stable sort, highest score first."""
    return sorted(items, key=key, reverse=True)


# ============================================================
# RECOMMENDATION SERVICE
# ============================================================

class RecommendationService:
    """
    Job recommendations for students and candidate ranking for companies.

    Process (student side):
    1. Skill match against every active job
    2. Compose location / job-type preference bonus
    3. Drop matches below the configured minimum
    4. Sort descending, keep the top N

    Company side uses the skill match only.
    """

    def __init__(self, match_scorer: Optional[MatchScorer] = None):
        self.scorer = match_scorer or get_match_scorer()

    def score_application(self, job_doc: dict, student_doc: dict) -> int:
        """Skill-only match percentage stored on an application."""
        return self.scorer.score(
            requirements_from_job(job_doc),
            skills_from_student(student_doc),
        ).percentage

    def recommend_jobs(
        self,
        student_doc: dict,
        job_docs: Iterable[dict],
        min_score: Optional[int] = None,
        top_n: Optional[int] = None,
    ) -> List[dict]:
        """
        Rank jobs for a student.

        Returns:
            List of {"job", "match_score", "match_details"} dicts
        """
        min_score = settings.match_min_score if min_score is None else min_score
        top_n = settings.match_max_results if top_n is None else top_n

        candidate_skills = skills_from_student(student_doc)
        preferences = student_doc.get("preferences") or {}

        matches = []
        for job_doc in job_docs:
            requirements = requirements_from_job(job_doc)
            skill_match = self.scorer.score(requirements, candidate_skills)
            bonus = compute_preference_bonus(job_doc, preferences)
            combined = compose_with_preferences(skill_match, bonus)

            if combined.percentage < min_score:
                continue

            matches.append({
                "job": job_doc,
                "match_score": combined.percentage,
                "match_details": {
                    "skill_match": skill_match.percentage,
                    "location_match": 100 if bonus.location_match else 0,
                    "job_type_match": 100 if bonus.job_type_match else 0,
                },
            })

        ranked = rank(matches)[:top_n]
        logger.debug(f"Recommended {len(ranked)} jobs for student {student_doc.get('user_id')}")
        return ranked

    def rank_students(self, job_doc: dict, student_docs: Iterable[dict]) -> List[dict]:
        """
        Rank students for a job by skill match.

        Returns:
            List of {"student", "match_score"} dicts, best first
        """
        requirements = requirements_from_job(job_doc)
        matches = [
            {
                "student": student_doc,
                "match_score": self.scorer.score(requirements, skills_from_student(student_doc)).percentage,
            }
            for student_doc in student_docs
        ]
        return rank(matches)


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================

def get_recommendation_service() -> RecommendationService:
    """Get recommendation service instance."""
    return RecommendationService()
