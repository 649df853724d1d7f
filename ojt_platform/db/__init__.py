"""
Database module - MongoDB connection.
"""
from ojt_platform.db.mongodb import get_mongo_db, get_collection, test_mongo_connection, utc_now

__all__ = [
    "get_mongo_db",
    "get_collection",
    "test_mongo_connection",
    "utc_now"
]
