"""
MongoDB Connection Utility

MongoDB stores every entity of the platform:
- Users, student and company profiles
- Job postings (applications are embedded in the job document)
- Assessments, attempts and results
- Company custom assessments and their submissions
"""
from datetime import datetime, timezone

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ojt_platform.core.config import get_settings
from ojt_platform.core.logger import logger

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the platform database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    """Get a specific collection. Use the COLLECTIONS constants for names."""
    db = get_mongo_db()
    return db[name]


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form pymongo reads back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except PyMongoError as e:
        logger.error(f"MongoDB connection failed: {e}")
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "students": "students",
    "companies": "companies",
    "jobs": "jobs",
    "assessments": "assessments",
    "assessment_results": "assessment_results",
    "assessment_attempts": "assessment_attempts",
    "custom_assessments": "custom_assessments",
    "custom_submissions": "custom_assessment_submissions",
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # One account per email, one profile per user
    db[COLLECTIONS["users"]].create_index("email", unique=True)
    db[COLLECTIONS["students"]].create_index("user_id", unique=True)
    db[COLLECTIONS["companies"]].create_index("user_id", unique=True)

    # Job listing filters
    db[COLLECTIONS["jobs"]].create_index("status")
    db[COLLECTIONS["jobs"]].create_index("company_id")

    db[COLLECTIONS["assessment_results"]].create_index([
        ("student_user_id", ASCENDING),
        ("completed_at", DESCENDING)
    ])
    db[COLLECTIONS["assessment_attempts"]].create_index([
        ("student_user_id", ASCENDING),
        ("status", ASCENDING)
    ])
    db[COLLECTIONS["custom_assessments"]].create_index("job_id")

    # One custom-assessment submission per student per job
    db[COLLECTIONS["custom_submissions"]].create_index([
        ("assessment_id", ASCENDING),
        ("student_user_id", ASCENDING),
        ("job_id", ASCENDING)
    ], unique=True)

    logger.info("MongoDB indexes created successfully")
