"""
MongoDB Service - CRUD operations for document collections.

Collections in this database:
1. users                 - Login accounts (email, password hash, role)
2. students              - Student profiles keyed by user_id
3. companies             - Company profiles keyed by user_id
4. jobs                  - Job postings with embedded applications
5. assessments           - Skills assessments and their question banks
6. assessment_results    - Graded submissions (immutable history)
7. custom_assessments    - Per-job company assessments
8. custom_assessment_submissions - Graded custom assessment submissions

Lookups that miss raise NotFound; ownership checks raise Forbidden.
"""

import re
from typing import Optional, List, Dict, Any, Tuple
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError

from ojt_platform.core.errors import Conflict, Forbidden, NotFound
from ojt_platform.core.logger import logger
from ojt_platform.db.mongodb import get_collection, utc_now, COLLECTIONS
from ojt_platform.schemas.schemas import JobStatus, Question


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: dict) -> dict:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def serialize_docs(docs: list) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def to_object_id(value: str, label: str) -> ObjectId:
    """Parse an id from a URL or body; malformed ids are reported as missing."""
    if not value or not ObjectId.is_valid(value):
        raise NotFound(f"{label} not found")
    return ObjectId(value)


def new_id() -> str:
    return str(ObjectId())


# ============================================================
# USERS COLLECTION
# ============================================================

class UserService:
    """Login accounts."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["users"])

    def create(self, email: str, password_hash: str, role: str) -> str:
        """
        Insert a new user.

        Raises:
            Conflict: email already registered
        """
        email = email.lower()
        if self.collection.find_one({"email": email}):
            raise Conflict("Email already registered")

        doc = {
            "email": email,
            "password_hash": password_hash,
            "role": role,
            "is_active": True,
            "created_at": utc_now()
        }
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise Conflict("Email already registered")
        return str(result.inserted_id)

    def get_by_email(self, email: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one({"email": email.lower()}))

    def get_by_id(self, user_id: str) -> Optional[dict]:
        if not ObjectId.is_valid(user_id):
            return None
        return serialize_doc(self.collection.find_one({"_id": ObjectId(user_id)}))


# ============================================================
# STUDENTS COLLECTION
# ============================================================

class StudentService:
    """
    Student profiles. One document per user, keyed by the user's id string.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["students"])

    def find_by_user(self, user_id: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one({"user_id": user_id}))

    def get_by_user(self, user_id: str) -> dict:
        doc = self.find_by_user(user_id)
        if not doc:
            raise NotFound("Student profile not found. Please complete your profile first.")
        return doc

    def upsert_profile(self, user_id: str, email: str, fields: Dict[str, Any]) -> dict:
        """Create the profile on first save, otherwise update the given fields."""
        now = utc_now()
        defaults = {"user_id": user_id, "email": email, "assessment_completed": False, "created_at": now}
        doc = self.collection.find_one_and_update(
            {"user_id": user_id},
            {
                "$set": {**fields, "updated_at": now},
                # Mongo rejects a path present in both $set and $setOnInsert
                "$setOnInsert": {k: v for k, v in defaults.items() if k not in fields}
            },
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return serialize_doc(doc)

    def record_assessment(
        self,
        user_id: str,
        email: str,
        overall: int,
        breakdown: Dict[str, int],
        verified_skills: List[dict],
    ) -> dict:
        """
        Store the latest assessment score and replace verified category skills.

        Self-reported skills (verified=False) are kept; verified skills whose
        name matches a newly verified one are replaced.
        """
        existing = self.find_by_user(user_id) or {}
        verified_names = {s["name"].casefold() for s in verified_skills}
        kept = [
            s for s in existing.get("skills", [])
            if not (s.get("verified") and s.get("name", "").casefold() in verified_names)
        ]
        return self.upsert_profile(user_id, email, {
            "assessment_completed": True,
            "assessment_score": {"overall": overall, "breakdown": breakdown},
            "skills": kept + verified_skills,
        })

    def list_excluding(self, user_ids: List[str]) -> List[dict]:
        cursor = self.collection.find({"user_id": {"$nin": list(user_ids)}})
        return serialize_docs(list(cursor))

    def find_by_users(self, user_ids: List[str]) -> Dict[str, dict]:
        """Profiles for the given users, keyed by user_id. Users without a profile are left out."""
        cursor = self.collection.find({"user_id": {"$in": list(user_ids)}})
        return {doc["user_id"]: serialize_doc(doc) for doc in cursor}

    def search(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
        skills: Optional[List[str]] = None,
        min_score: Optional[int] = None,
        location: Optional[str] = None,
        job_type: Optional[str] = None,
    ) -> Tuple[List[dict], int]:
        """
        Students matching every given filter, best assessment score first.

        `location` matches the student's city, a preferred location, or any
        student open to remote work. Skill names match case-insensitively.
        """
        clauses: List[Dict[str, Any]] = []
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            clauses.append({"$or": [
                {"first_name": pattern},
                {"last_name": pattern},
                {"skills.name": pattern},
                {"education.field_of_study": pattern}
            ]})
        if skills:
            clauses.append({"skills.name": {
                "$in": [re.compile(f"^{re.escape(s)}$", re.IGNORECASE) for s in skills]
            }})
        if min_score is not None:
            clauses.append({"assessment_score.overall": {"$gte": min_score}})
        if location:
            pattern = {"$regex": re.escape(location), "$options": "i"}
            clauses.append({"$or": [
                {"city": pattern},
                {"preferences.locations": pattern},
                {"preferences.remote": True}
            ]})
        if job_type:
            clauses.append({"preferences.job_types": job_type})

        query = {"$and": clauses} if clauses else {}
        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort([("assessment_score.overall", DESCENDING), ("updated_at", DESCENDING)])
            .skip((page - 1) * limit)
            .limit(limit)
        )
        return serialize_docs(list(cursor)), total


# ============================================================
# COMPANIES COLLECTION
# ============================================================

class CompanyService:
    """Company profiles, keyed by user_id."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["companies"])

    def find_by_user(self, user_id: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one({"user_id": user_id}))

    def get_by_user(self, user_id: str) -> dict:
        doc = self.find_by_user(user_id)
        if not doc:
            raise NotFound("Company profile not found. Please complete your profile first.")
        return doc

    def upsert_profile(self, user_id: str, fields: Dict[str, Any]) -> dict:
        now = utc_now()
        doc = self.collection.find_one_and_update(
            {"user_id": user_id},
            {
                "$set": {**fields, "updated_at": now},
                "$setOnInsert": {
                    k: v for k, v in {"user_id": user_id, "verified": False, "created_at": now}.items()
                    if k not in fields
                }
            },
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
        return serialize_doc(doc)

    def count(self) -> int:
        return self.collection.count_documents({})


# ============================================================
# JOBS COLLECTION
# Applications live inside the job document
# ============================================================

class JobService:
    """
    Job postings and their embedded applications.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["jobs"])

    def create(self, company: dict, fields: Dict[str, Any]) -> dict:
        now = utc_now()
        doc = {
            **fields,
            "company_id": company["_id"],
            "company_user_id": company["user_id"],
            "company_name": company.get("company_name", ""),
            "require_custom_assessment": False,
            "custom_assessment_id": None,
            "applications": [],
            "created_at": now,
            "updated_at": now
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"Job {result.inserted_id} created by company {company['_id']}")
        return serialize_doc(doc)

    def get(self, job_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(job_id, "Job")})
        if not doc:
            raise NotFound("Job not found")
        return serialize_doc(doc)

    def get_owned(self, job_id: str, company_user_id: str) -> dict:
        """
        Fetch a job that must belong to the given company user.

        Raises:
            NotFound: job does not exist
            Forbidden: job belongs to another company
        """
        doc = self.get(job_id)
        if doc.get("company_user_id") != company_user_id:
            raise Forbidden("Not authorized to access this job")
        return doc

    def list_active(
        self,
        page: int = 1,
        page_size: int = 10,
        search: Optional[str] = None,
        job_type: Optional[str] = None,
        city: Optional[str] = None,
        remote: Optional[bool] = None,
        skill: Optional[str] = None,
    ) -> Tuple[List[dict], int]:
        """Active jobs matching the filters, newest first, plus the total count."""
        query: Dict[str, Any] = {"status": JobStatus.active.value}
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"title": pattern}, {"description": pattern}]
        if job_type:
            query["job_type"] = job_type
        if city:
            query["location.city"] = {"$regex": f"^{re.escape(city)}$", "$options": "i"}
        if remote is not None:
            query["location.remote"] = remote
        if skill:
            query["skills_required.name"] = {"$regex": f"^{re.escape(skill)}$", "$options": "i"}

        total = self.collection.count_documents(query)
        cursor = (
            self.collection.find(query)
            .sort("created_at", DESCENDING)
            .skip((page - 1) * page_size)
            .limit(page_size)
        )
        return serialize_docs(list(cursor)), total

    def all_active(self) -> List[dict]:
        return serialize_docs(list(self.collection.find({"status": JobStatus.active.value})))

    def list_by_company(self, company_user_id: str) -> List[dict]:
        cursor = self.collection.find({"company_user_id": company_user_id}).sort("created_at", DESCENDING)
        return serialize_docs(list(cursor))

    def update(self, job_id: str, fields: Dict[str, Any]) -> dict:
        doc = self.collection.find_one_and_update(
            {"_id": to_object_id(job_id, "Job")},
            {"$set": {**fields, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise NotFound("Job not found")
        return serialize_doc(doc)

    def delete(self, job_id: str) -> None:
        result = self.collection.delete_one({"_id": to_object_id(job_id, "Job")})
        if result.deleted_count == 0:
            raise NotFound("Job not found")

    def attach_custom_assessment(self, job_id: str, assessment_id: str) -> None:
        self.update(job_id, {"require_custom_assessment": True, "custom_assessment_id": assessment_id})

    # --------------------------------------------------------
    # Applications
    # --------------------------------------------------------

    def add_application(self, job_id: str, application: dict) -> dict:
        """
        Append an application unless the student already applied.

        Raises:
            Conflict: student already has an application on this job
        """
        result = self.collection.update_one(
            {
                "_id": to_object_id(job_id, "Job"),
                "applications.student_user_id": {"$ne": application["student_user_id"]}
            },
            {"$push": {"applications": application}}
        )
        if result.matched_count == 0:
            # Job exists (checked by caller), so the filter failed on the student
            raise Conflict("Already applied for this job")
        return application

    def update_application(
        self,
        job_id: str,
        application_id: str,
        status: str,
        notes: Optional[str] = None,
    ) -> dict:
        """
        Set the status (and notes, when given) of one embedded application.

        Only the matched array element is written, so applications pushed
        concurrently are kept. An empty string clears the notes.
        """
        changes: Dict[str, Any] = {
            "applications.$.status": status,
            "applications.$.updated_at": utc_now()
        }
        if notes is not None:
            changes["applications.$.notes"] = notes

        doc = self.collection.find_one_and_update(
            {"_id": to_object_id(job_id, "Job"), "applications.application_id": application_id},
            {"$set": changes},
            return_document=ReturnDocument.AFTER
        )
        if not doc:
            raise NotFound("Application not found")
        return next(a for a in doc["applications"] if a["application_id"] == application_id)

    def applied_by_student(self, student_user_id: str) -> List[dict]:
        """Jobs the student has an application on."""
        cursor = self.collection.find({"applications.student_user_id": student_user_id})
        return serialize_docs(list(cursor))

    def stats(self, total_companies: int) -> dict:
        active = {"$match": {"status": JobStatus.active.value}}

        applications = list(self.collection.aggregate([
            active,
            {"$project": {"count": {"$size": "$applications"}}},
            {"$group": {"_id": None, "total": {"$sum": "$count"}}}
        ]))
        by_type = self.collection.aggregate([
            active,
            {"$group": {"_id": "$job_type", "count": {"$sum": 1}}}
        ])
        by_experience = self.collection.aggregate([
            active,
            {"$group": {"_id": "$experience_level", "count": {"$sum": 1}}}
        ])
        top_skills = self.collection.aggregate([
            active,
            {"$unwind": "$skills_required"},
            {"$group": {"_id": "$skills_required.name", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
            {"$limit": 10}
        ])

        return {
            "total_jobs": self.collection.count_documents({"status": JobStatus.active.value}),
            "total_companies": total_companies,
            "total_applications": applications[0]["total"] if applications else 0,
            "jobs_by_type": {row["_id"]: row["count"] for row in by_type},
            "jobs_by_experience": {row["_id"]: row["count"] for row in by_experience},
            "top_skills": [{"name": row["_id"], "count": row["count"]} for row in top_skills],
        }


# ============================================================
# ASSESSMENTS COLLECTION
# ============================================================

def gradable_question(raw: dict) -> Question:
    """Project a stored assessment question onto the grader's Question shape."""
    return Question(
        id=raw.get("id"),
        text=raw.get("question", ""),
        type=raw.get("type", "multiple-choice"),
        options=raw.get("options", []),
        correct_answer=raw.get("correct_answer"),
        category=raw.get("category", "general"),
        points=raw.get("points", 1),
        explanation=raw.get("explanation"),
    )


class AssessmentService:
    """
    Skills assessments. Question ids are ObjectId hex strings assigned on
    creation when the author did not provide one.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["assessments"])

    def create(self, fields: Dict[str, Any], created_by: Optional[str] = None) -> dict:
        questions = []
        for question in fields.get("questions", []):
            questions.append({**question, "id": question.get("id") or new_id()})

        doc = {
            **fields,
            "questions": questions,
            "is_active": True,
            "created_by": created_by,
            "created_at": utc_now()
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info(f"Assessment '{doc.get('title')}' created with {len(questions)} questions")
        return serialize_doc(doc)

    def get(self, assessment_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(assessment_id, "Assessment")})
        if not doc:
            raise NotFound("Assessment not found")
        return serialize_doc(doc)

    def find_by_title(self, title: str) -> Optional[dict]:
        return serialize_doc(self.collection.find_one({"title": title}))

    def latest_active(self, category: Optional[str] = None) -> Optional[dict]:
        query: Dict[str, Any] = {"is_active": True}
        if category:
            query["category"] = category
        return serialize_doc(self.collection.find_one(query, sort=[("created_at", DESCENDING)]))

    @staticmethod
    def gradable_questions(doc: dict, question_ids: Optional[List[str]] = None) -> List[Question]:
        """
        Questions to grade, optionally restricted to a subset of ids (in bank order).
        """
        wanted = set(question_ids) if question_ids is not None else None
        return [
            gradable_question(raw)
            for raw in doc.get("questions", [])
            if wanted is None or raw.get("id") in wanted
        ]


# ============================================================
# ASSESSMENT RESULTS COLLECTION
# Immutable once written
# ============================================================

class AssessmentResultService:
    """Graded assessment submissions."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["assessment_results"])

    def insert(self, doc: dict) -> str:
        result = self.collection.insert_one(dict(doc))
        return str(result.inserted_id)

    def get_for_student(self, result_id: str, student_user_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(result_id, "Assessment result")})
        if not doc:
            raise NotFound("Assessment result not found")
        if doc.get("student_user_id") != student_user_id:
            raise Forbidden("Not authorized to view this result")
        return serialize_doc(doc)

    def list_for_student(self, student_user_id: str) -> List[dict]:
        cursor = self.collection.find({"student_user_id": student_user_id}).sort("completed_at", DESCENDING)
        return serialize_docs(list(cursor))

    def stats(self) -> dict:
        total = self.collection.count_documents({})
        passed = self.collection.count_documents({"passed": True})

        answered = list(self.collection.aggregate([
            {"$project": {"count": {"$size": "$answers"}}},
            {"$group": {"_id": None, "total": {"$sum": "$count"}}}
        ]))
        average = list(self.collection.aggregate([
            {"$group": {"_id": None, "avg": {"$avg": "$percentage"}}}
        ]))

        return {
            "total_assessments_taken": total,
            "unique_students": len(self.collection.distinct("student_user_id")),
            "total_skills_assessed": answered[0]["total"] if answered else 0,
            "passing_rate": round(100 * passed / total, 1) if total else 0.0,
            "average_score": round(average[0]["avg"], 1) if average and average[0]["avg"] is not None else 0.0,
        }


# ============================================================
# CUSTOM ASSESSMENTS COLLECTION
# ============================================================

def gradable_custom_question(raw: dict) -> Question:
    return Question(
        id=raw.get("id"),
        text=raw.get("question_text", ""),
        type=raw.get("question_type", "multiple-choice"),
        options=raw.get("options", []),
        correct_answer=raw.get("correct_answer"),
        category=raw.get("category", "technical"),
        points=raw.get("points", 1),
    )


class CustomAssessmentService:
    """Per-job assessments authored by companies."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["custom_assessments"])

    def create(self, company_user_id: str, fields: Dict[str, Any]) -> dict:
        questions = [{**q, "id": new_id()} for q in fields.get("questions", [])]
        doc = {
            **fields,
            "questions": questions,
            "company_user_id": company_user_id,
            "is_active": True,
            "created_at": utc_now()
        }
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_doc(doc)

    def get(self, assessment_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(assessment_id, "Custom assessment")})
        if not doc:
            raise NotFound("Custom assessment not found")
        return serialize_doc(doc)

    def find_for_job(self, job_id: str) -> Optional[dict]:
        doc = self.collection.find_one(
            {"job_id": job_id, "is_active": True},
            sort=[("created_at", DESCENDING)]
        )
        return serialize_doc(doc)

    def get_for_job(self, job_id: str) -> dict:
        doc = self.find_for_job(job_id)
        if not doc:
            raise NotFound("No custom assessment found for this job")
        return doc

    @staticmethod
    def gradable_questions(doc: dict) -> List[Question]:
        return [gradable_custom_question(raw) for raw in doc.get("questions", [])]


# ============================================================
# CUSTOM ASSESSMENT SUBMISSIONS COLLECTION
# ============================================================

class CustomSubmissionService:
    """One graded submission per (assessment, student, job)."""

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["custom_submissions"])

    def find_for_student(self, job_id: str, student_user_id: str) -> Optional[dict]:
        doc = self.collection.find_one({"job_id": job_id, "student_user_id": student_user_id})
        return serialize_doc(doc)

    def create(self, doc: dict) -> str:
        """
        Raises:
            Conflict: the student already submitted for this job
        """
        key = {
            "assessment_id": doc["assessment_id"],
            "student_user_id": doc["student_user_id"],
            "job_id": doc["job_id"]
        }
        if self.collection.find_one(key):
            raise Conflict("You have already completed this assessment")
        try:
            result = self.collection.insert_one(dict(doc))
        except DuplicateKeyError:
            raise Conflict("You have already completed this assessment")
        return str(result.inserted_id)

    def get(self, submission_id: str) -> dict:
        doc = self.collection.find_one({"_id": to_object_id(submission_id, "Submission")})
        if not doc:
            raise NotFound("Submission not found")
        return serialize_doc(doc)

    def list_for_job(self, job_id: str) -> List[dict]:
        cursor = self.collection.find({"job_id": job_id}).sort("submitted_at", DESCENDING)
        return serialize_docs(list(cursor))
