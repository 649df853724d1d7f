"""
OJT Platform
Students take a skills assessment and get matched to jobs; companies post
jobs, rank applicants and attach their own assessments.

Architecture:
- MongoDB: all documents (users, profiles, jobs, assessments, results)
- Pure services: assessment grading and skill matching
"""

__version__ = "1.0.0"
