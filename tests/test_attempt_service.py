# tests/test_attempt_service.py
import random
from datetime import datetime, timezone

import pytest

from ojt_platform.core.errors import InvalidInput, NotFound
from ojt_platform.schemas.schemas import AttemptStatus
from ojt_platform.services.attempt_service import (
    AttemptStore,
    from_document,
    mark_submitted,
    move_to,
    record_answer,
    start_attempt,
    to_document,
)


@pytest.fixture
def assessment():
    questions = []
    for category, count in [("programming", 12), ("database", 4)]:
        for i in range(count):
            questions.append({"id": f"{category}-{i}", "question": "?", "category": category})
    return {"_id": "a1", "questions": questions}


class TestStartAttempt:
    def test_samples_per_category(self, assessment):
        attempt = start_attempt(assessment, "u1", per_category=10, rng=random.Random(1))

        categories = [qid.split("-")[0] for qid in attempt.question_ids]
        assert categories.count("programming") == 10
        assert categories.count("database") == 4
        assert len(set(attempt.question_ids)) == 14
        assert attempt.status == AttemptStatus.in_progress
        assert attempt.current_index == 0

    def test_single_category(self, assessment):
        attempt = start_attempt(assessment, "u1", category="database", per_category=10, rng=random.Random(1))
        assert sorted(attempt.question_ids) == [f"database-{i}" for i in range(4)]

    def test_same_seed_same_draw(self, assessment):
        first = start_attempt(assessment, "u1", per_category=3, rng=random.Random(42))
        second = start_attempt(assessment, "u1", per_category=3, rng=random.Random(42))
        assert first.question_ids == second.question_ids

    def test_started_at_is_naive_utc(self, assessment):
        attempt = start_attempt(assessment, "u1")
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        assert attempt.started_at.tzinfo is None
        assert abs((now - attempt.started_at).total_seconds()) < 60

    def test_unknown_category(self, assessment):
        with pytest.raises(InvalidInput):
            start_attempt(assessment, "u1", category="networking")


class TestTransitions:
    @pytest.fixture
    def attempt(self, assessment):
        return start_attempt(assessment, "u1", per_category=2, rng=random.Random(3))

    def test_record_answer_returns_new_attempt(self, attempt):
        qid = attempt.question_ids[0]
        updated = record_answer(attempt, qid, "A")

        assert updated.answers == {qid: "A"}
        assert attempt.answers == {}

    def test_record_answer_overwrites(self, attempt):
        qid = attempt.question_ids[0]
        updated = record_answer(record_answer(attempt, qid, "A"), qid, "B")
        assert updated.answers[qid] == "B"

    def test_record_answer_rejects_foreign_question(self, attempt):
        with pytest.raises(InvalidInput):
            record_answer(attempt, "not-drawn", "A")

    def test_move_to(self, attempt):
        assert move_to(attempt, 2).current_index == 2
        with pytest.raises(InvalidInput):
            move_to(attempt, len(attempt.question_ids))

    def test_submitted_attempt_is_closed(self, attempt):
        done = mark_submitted(attempt, "r1")

        assert done.status == AttemptStatus.submitted
        assert done.result_id == "r1"
        with pytest.raises(InvalidInput):
            record_answer(done, attempt.question_ids[0], "A")
        with pytest.raises(InvalidInput):
            move_to(done, 0)

    def test_document_round_trip(self, attempt):
        attempt = record_answer(attempt, attempt.question_ids[1], "C")
        doc = to_document(attempt)

        assert doc["status"] == "in_progress"
        assert from_document(doc) == attempt


class TestAttemptStore:
    def test_save_load_and_resume(self, mongo, assessment):
        store = AttemptStore()
        attempt = start_attempt(assessment, "u1", rng=random.Random(0))
        store.save(attempt)
        store.save(record_answer(attempt, attempt.question_ids[0], "A"))

        loaded = store.load(attempt.id, "u1")
        assert loaded.answers == {attempt.question_ids[0]: "A"}
        assert store.latest_in_progress("u1").id == attempt.id

        store.save(mark_submitted(loaded, "r1"))
        assert store.latest_in_progress("u1") is None

    def test_load_checks_owner(self, mongo, assessment):
        store = AttemptStore()
        attempt = store.save(start_attempt(assessment, "u1"))

        with pytest.raises(NotFound):
            store.load(attempt.id, "someone-else")
        with pytest.raises(NotFound):
            store.load("not-an-id")

    def test_claim_is_single_use(self, mongo, assessment):
        attempt = AttemptStore().save(start_attempt(assessment, "u1"))

        # Two workers loaded the same in-progress attempt; only one may submit it
        first, second = AttemptStore(), AttemptStore()
        assert first.load(attempt.id, "u1").status == AttemptStatus.in_progress
        assert second.load(attempt.id, "u1").status == AttemptStatus.in_progress

        claimed = first.claim(attempt.id, "u1", "a1")
        assert claimed.status == AttemptStatus.in_progress
        with pytest.raises(InvalidInput):
            second.claim(attempt.id, "u1", "a1")
        assert first.latest_in_progress("u1") is None

    def test_claim_checks_owner_and_assessment(self, mongo, assessment):
        store = AttemptStore()
        attempt = store.save(start_attempt(assessment, "u1"))

        with pytest.raises(NotFound):
            store.claim(attempt.id, "someone-else", "a1")
        with pytest.raises(InvalidInput):
            store.claim(attempt.id, "u1", "other-assessment")
        assert store.latest_in_progress("u1").id == attempt.id
