# tests/test_matching_service.py
import pytest

from ojt_platform.schemas.schemas import CandidateSkill, MatchResult, SkillRequirement
from ojt_platform.services.matching_service import (
    MatchScorer,
    RecommendationService,
    compose_with_preferences,
    compute_preference_bonus,
    level_rank,
    rank,
)


@pytest.fixture
def scorer():
    return MatchScorer()


def req(name, level="Beginner", priority="must-have"):
    return SkillRequirement(name=name, level=level, priority=priority)


def skill(name, level="Beginner"):
    return CandidateSkill(name=name, level=level)


class TestMatchScorer:
    def test_no_requirements_is_zero(self, scorer):
        result = scorer.score([], [skill("Python", "Expert")])
        assert result == MatchResult(percentage=0, earned_points=0, possible_points=0)

    def test_partial_credit_below_required_level(self, scorer):
        result = scorer.score([req("SQL", "Advanced")], [skill("SQL", "Intermediate")])

        assert result.possible_points == 20
        assert result.earned_points == pytest.approx(20 * 2 / 3)
        assert result.percentage == 67

    def test_full_credit_at_or_above_level(self, scorer):
        result = scorer.score(
            [req("Python", "Intermediate"), req("Git", "Beginner", "nice-to-have")],
            [skill("Python", "Expert"), skill("Git", "Beginner")],
        )
        assert result.earned_points == 30
        assert result.possible_points == 30
        assert result.percentage == 100

    def test_must_have_weighs_double(self, scorer):
        requirements = [req("Python"), req("Docker", priority="nice-to-have")]

        only_must = scorer.score(requirements, [skill("Python")])
        only_nice = scorer.score(requirements, [skill("Docker")])

        assert only_must.percentage == 67
        assert only_nice.percentage == 33

    def test_names_are_case_insensitive(self, scorer):
        result = scorer.score([req("JavaScript")], [skill("  javascript ")])
        assert result.percentage == 100

    def test_missing_skill_earns_nothing(self, scorer):
        result = scorer.score([req("Go")], [skill("Python", "Expert")])
        assert result.earned_points == 0
        assert result.percentage == 0

    def test_unknown_level_ranks_as_beginner(self):
        assert level_rank("Guru") == 1
        assert level_rank(None) == 1
        assert level_rank("Expert") == 4


class TestPreferences:
    JOB = {"job_type": "internship", "location": {"city": "Manila", "remote": False}}

    def test_both_preferences_match(self):
        bonus = compute_preference_bonus(self.JOB, {"job_types": ["internship"], "locations": ["manila"]}, points=4)
        assert bonus.location_match and bonus.job_type_match
        assert bonus.earned_points == 8
        assert bonus.possible_points == 8

    def test_remote_job_matches_any_location(self):
        job = {"job_type": "full-time", "location": {"city": "Cebu", "remote": True}}
        bonus = compute_preference_bonus(job, {"locations": ["Manila"]}, points=4)
        assert bonus.location_match is True
        assert bonus.job_type_match is False

    def test_no_preferences(self):
        bonus = compute_preference_bonus(self.JOB, None, points=4)
        assert bonus.earned_points == 0
        assert bonus.possible_points == 8

    def test_default_points_from_settings(self):
        bonus = compute_preference_bonus(self.JOB, {})
        assert bonus.possible_points == pytest.approx(8)

    def test_compose_recomputes_percentage(self, scorer):
        match = scorer.score([req("SQL", "Advanced")], [skill("SQL", "Intermediate")])
        bonus = compute_preference_bonus(self.JOB, {"job_types": ["internship"]}, points=4)

        combined = compose_with_preferences(match, bonus)

        assert combined.possible_points == 28
        assert combined.earned_points == pytest.approx(20 * 2 / 3 + 4)
        assert combined.percentage == 62
        # Skill-only result is unchanged
        assert match.percentage == 67


class TestRecommendationService:
    def job(self, title, skills, job_type="internship", city="Manila"):
        return {
            "_id": title,
            "title": title,
            "job_type": job_type,
            "location": {"city": city, "remote": False},
            "skills_required": skills,
        }

    def test_rank_is_stable_descending(self):
        items = [{"id": 1, "match_score": 50}, {"id": 2, "match_score": 80}, {"id": 3, "match_score": 50}]
        assert [i["id"] for i in rank(items)] == [2, 1, 3]

    def test_recommend_filters_and_sorts(self):
        student = {
            "user_id": "u1",
            "skills": [{"name": "Python", "level": "Advanced"}],
            "preferences": {"job_types": ["internship"], "locations": ["Manila"]},
        }
        jobs = [
            self.job("partial", [
                {"name": "Python", "level": "Expert", "priority": "must-have"},
                {"name": "SQL", "level": "Beginner", "priority": "must-have"},
            ]),
            self.job("perfect", [{"name": "Python", "level": "Beginner", "priority": "must-have"}]),
            self.job("none", [{"name": "Rust", "level": "Beginner", "priority": "must-have"}],
                     job_type="full-time", city="Davao"),
        ]

        matches = RecommendationService().recommend_jobs(student, jobs, min_score=20, top_n=20)

        assert [m["job"]["title"] for m in matches] == ["perfect", "partial"]
        assert matches[0]["match_score"] == 100
        assert matches[0]["match_details"] == {"skill_match": 100, "location_match": 100, "job_type_match": 100}

    def test_recommend_respects_top_n(self):
        student = {"skills": [{"name": "Python", "level": "Expert"}]}
        jobs = [self.job(f"job{i}", [{"name": "Python", "priority": "must-have"}]) for i in range(5)]
        assert len(RecommendationService().recommend_jobs(student, jobs, min_score=0, top_n=3)) == 3

    def test_rank_students_is_skill_only(self):
        job = self.job("backend", [{"name": "SQL", "level": "Advanced", "priority": "must-have"}])
        students = [
            {"user_id": "weak", "skills": [{"name": "SQL", "level": "Intermediate"}],
             "preferences": {"job_types": ["internship"], "locations": ["Manila"]}},
            {"user_id": "strong", "skills": [{"name": "sql", "level": "Expert"}]},
        ]

        ranked = RecommendationService().rank_students(job, students)

        assert [(m["student"]["user_id"], m["match_score"]) for m in ranked] == [("strong", 100), ("weak", 67)]

    def test_unnamed_requirements_are_skipped(self):
        job = self.job("odd", [{"level": "Expert"}, {"name": "Python", "priority": "must-have"}])
        student = {"skills": [{"name": "Python"}]}
        assert RecommendationService().score_application(job, student) == 100
