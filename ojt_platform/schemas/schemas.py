"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity, plus the
in-memory shapes the grading and matching services work on.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
from enum import Enum


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    student = "student"
    company = "company"
    admin = "admin"


class JobType(str, Enum):
    full_time = "full-time"
    part_time = "part-time"
    contract = "contract"
    internship = "internship"
    ojt = "ojt"


class ExperienceLevel(str, Enum):
    entry_level = "entry-level"
    junior = "junior"
    mid_level = "mid-level"
    senior = "senior"


class JobStatus(str, Enum):
    draft = "draft"
    active = "active"
    closed = "closed"
    on_hold = "on-hold"


class ApplicationStatus(str, Enum):
    pending = "pending"
    reviewed = "reviewed"
    shortlisted = "shortlisted"
    rejected = "rejected"
    hired = "hired"


class ProficiencyLevel(str, Enum):
    beginner = "Beginner"
    intermediate = "Intermediate"
    advanced = "Advanced"
    expert = "Expert"


class SkillPriority(str, Enum):
    must_have = "must-have"
    nice_to_have = "nice-to-have"


class QuestionType(str, Enum):
    multiple_choice = "multiple-choice"
    true_false = "true-false"
    short_answer = "short-answer"
    coding = "coding"


class QuestionCategory(str, Enum):
    programming = "programming"
    database = "database"
    web_development = "webDevelopment"
    networking = "networking"
    problem_solving = "problemSolving"


class AssessmentCategory(str, Enum):
    general = "general"
    programming = "programming"
    database = "database"
    web_development = "webDevelopment"
    networking = "networking"
    problem_solving = "problemSolving"


class CustomQuestionCategory(str, Enum):
    technical = "technical"
    behavioral = "behavioral"
    situational = "situational"
    general = "general"


class Difficulty(str, Enum):
    easy = "easy"
    medium = "medium"
    hard = "hard"


class AttemptStatus(str, Enum):
    in_progress = "in_progress"
    submitted = "submitted"


# ============================================================
# GRADING SHAPES
# ============================================================

class Question(BaseModel):
    """A gradable question. Category is opaque to the grader."""
    id: Optional[str] = None
    text: str = ""
    type: QuestionType = QuestionType.multiple_choice
    options: List[str] = []
    correct_answer: Optional[str] = None
    category: str = "general"
    points: int = 1
    explanation: Optional[str] = None


class SubmittedAnswer(BaseModel):
    question_id: Optional[str] = None
    answer: Optional[str] = None


class QuestionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    answer: Optional[str] = None
    is_correct: bool
    points_awarded: int
    needs_review: bool = False


class ScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_score: int
    total_possible: int
    percentage: int
    passed: bool
    per_question: List[QuestionResult]
    category_breakdown: Dict[str, int]
    warnings: List[str] = []


# ============================================================
# MATCHING SHAPES
# ============================================================

class SkillRequirement(BaseModel):
    name: str = Field(..., min_length=1)
    level: ProficiencyLevel = ProficiencyLevel.beginner
    priority: SkillPriority = SkillPriority.nice_to_have


class CandidateSkill(BaseModel):
    name: str = Field(..., min_length=1)
    level: ProficiencyLevel = ProficiencyLevel.beginner


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    percentage: int
    earned_points: float
    possible_points: float


class PreferenceBonus(BaseModel):
    """Location / job-type fit, composed onto a skill match for recommendations."""
    model_config = ConfigDict(frozen=True)

    location_match: bool
    job_type_match: bool
    earned_points: float
    possible_points: float


# ============================================================
# AUTH SCHEMAS
# ============================================================

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8)
    role: UserRole

    @field_validator("role")
    @classmethod
    def no_self_service_admin(cls, v: UserRole) -> UserRole:
        if v == UserRole.admin:
            raise ValueError("Admin accounts are created with ojt_platform.create_admin")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: str


class UserResponse(BaseModel):
    user_id: str
    email: str
    role: str
    is_active: bool
    created_at: datetime


# ============================================================
# STUDENT SCHEMAS
# ============================================================

class StudentSkill(CandidateSkill):
    verified: bool = False
    score: Optional[int] = None


class StudentPreferences(BaseModel):
    job_types: List[JobType] = []
    locations: List[str] = []
    remote: bool = False


class Education(BaseModel):
    school: Optional[str] = None
    degree: Optional[str] = None
    field_of_study: Optional[str] = None
    graduation_year: Optional[int] = Field(None, ge=1950, le=2100)
    gpa: Optional[float] = Field(None, ge=0)


class StudentProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = None
    city: Optional[str] = None
    education: Optional[Education] = None
    skills: Optional[List[StudentSkill]] = None
    preferences: Optional[StudentPreferences] = None

    @field_validator("phone")
    @classmethod
    def phone_digits(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        digits = "".join(ch for ch in v if ch.isdigit())
        if not 10 <= len(digits) <= 11:
            raise ValueError("Phone number must be 10-11 digits")
        return v


class AssessmentScoreSummary(BaseModel):
    overall: int
    breakdown: Dict[str, int] = {}


class StudentResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    education: Optional[Education] = None
    skills: List[StudentSkill] = []
    preferences: StudentPreferences = StudentPreferences()
    assessment_completed: bool = False
    assessment_score: Optional[AssessmentScoreSummary] = None
    updated_at: Optional[datetime] = None


# ============================================================
# COMPANY SCHEMAS
# ============================================================

class CompanyProfileUpdate(BaseModel):
    company_name: Optional[str] = Field(None, min_length=2, max_length=200)
    industry: Optional[str] = None
    company_size: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    city: Optional[str] = None


class CompanyResponse(BaseModel):
    company_id: str
    user_id: str
    company_name: str
    industry: Optional[str] = None
    company_size: Optional[str] = None
    description: Optional[str] = None
    website: Optional[str] = None
    city: Optional[str] = None
    verified: bool = False


# ============================================================
# JOB SCHEMAS
# ============================================================

class JobLocation(BaseModel):
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    remote: bool = False
    hybrid: bool = False


class JobCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    department: Optional[str] = None
    description: str = Field(..., min_length=1)
    requirements: List[str] = []
    skills_required: List[SkillRequirement] = []
    job_type: JobType
    experience_level: ExperienceLevel = ExperienceLevel.entry_level
    location: JobLocation = JobLocation()
    number_of_positions: int = Field(1, ge=1)
    application_deadline: Optional[datetime] = None
    status: JobStatus = JobStatus.draft


class JobUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=3, max_length=200)
    department: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[List[str]] = None
    skills_required: Optional[List[SkillRequirement]] = None
    job_type: Optional[JobType] = None
    experience_level: Optional[ExperienceLevel] = None
    location: Optional[JobLocation] = None
    number_of_positions: Optional[int] = Field(None, ge=1)
    application_deadline: Optional[datetime] = None
    status: Optional[JobStatus] = None


class JobResponse(BaseModel):
    job_id: str
    company_id: str
    company_name: str
    title: str
    department: Optional[str] = None
    description: str
    requirements: List[str] = []
    skills_required: List[SkillRequirement] = []
    job_type: str
    experience_level: str
    location: JobLocation
    number_of_positions: int
    application_deadline: Optional[datetime] = None
    status: str
    require_custom_assessment: bool = False
    custom_assessment_id: Optional[str] = None
    applications_count: int = 0
    created_at: datetime


class JobListResponse(BaseModel):
    jobs: List[JobResponse]
    total: int
    page: int
    page_size: int


class SkillCount(BaseModel):
    name: str
    count: int


class JobStatsResponse(BaseModel):
    total_jobs: int
    total_companies: int
    total_applications: int
    jobs_by_type: Dict[str, int] = {}
    jobs_by_experience: Dict[str, int] = {}
    top_skills: List[SkillCount] = []


# ============================================================
# APPLICATION SCHEMAS
# ============================================================

class ApplicationCreate(BaseModel):
    custom_assessment_submission_id: Optional[str] = None


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus
    notes: Optional[str] = None


class ApplicationResponse(BaseModel):
    application_id: str
    job_id: str
    job_title: str
    company_name: str
    student_user_id: str
    student_name: Optional[str] = None
    status: str
    match_score: int
    notes: Optional[str] = None
    custom_assessment_submission_id: Optional[str] = None
    applied_at: datetime


# ============================================================
# MATCH LIST SCHEMAS
# ============================================================

class MatchDetails(BaseModel):
    skill_match: int
    location_match: int
    job_type_match: int


class JobMatchResponse(BaseModel):
    job: JobResponse
    match_score: int
    match_details: MatchDetails


class StudentMatchResponse(BaseModel):
    student: StudentResponse
    match_score: int


class StudentMatchListResponse(BaseModel):
    matches: List[StudentMatchResponse]
    total: int
    page: int
    pages: int
    limit: int


class StudentSearchResponse(BaseModel):
    students: List[StudentResponse]
    total: int
    page: int
    pages: int
    limit: int


class CompanyAnalyticsResponse(BaseModel):
    """Hiring funnel across all of a company's jobs."""
    total_jobs: int
    active_jobs: int
    total_applications: int
    applications_by_status: Dict[str, int]
    top_skills: List[SkillCount] = []
    average_applicant_score: int = 0


# ============================================================
# ASSESSMENT SCHEMAS
# ============================================================

class AssessmentQuestionCreate(BaseModel):
    id: Optional[str] = None
    question: str = Field(..., min_length=1)
    type: QuestionType
    options: List[str] = []
    correct_answer: str
    difficulty: Difficulty = Difficulty.easy
    category: QuestionCategory
    points: int = Field(1, ge=1)
    explanation: Optional[str] = None


class AssessmentCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    questions: List[AssessmentQuestionCreate] = Field(..., min_length=1)
    time_limit: int = Field(..., ge=1, description="Minutes")
    passing_score: int = Field(60, ge=0, le=100)
    category: AssessmentCategory = AssessmentCategory.general


class AssessmentQuestionPublic(BaseModel):
    """Question as shown to a learner - no correct answer."""
    id: str
    question: str
    type: str
    options: List[str] = []
    difficulty: Optional[str] = None
    category: str
    points: int


class AssessmentResponse(BaseModel):
    assessment_id: str
    title: str
    description: Optional[str] = None
    time_limit: int
    passing_score: int
    total_points: int
    category: str
    is_active: bool
    questions: List[AssessmentQuestionPublic] = []
    created_at: datetime


class AssessmentListResponse(BaseModel):
    count: int
    data: List[AssessmentResponse]


class AssessmentSubmitRequest(BaseModel):
    answers: List[Optional[SubmittedAnswer]]
    started_at: datetime
    attempt_id: Optional[str] = None


class AssessmentSubmitResponse(BaseModel):
    """JSON projection of ScoreResult returned to the learner."""
    score: int
    total_possible: int
    percentage: int
    passed: bool
    category_scores: Dict[str, int]
    result_id: str
    warnings: List[str] = []


class ResultAnswer(BaseModel):
    question_id: str
    answer: Optional[str] = None
    is_correct: bool
    points: int
    needs_review: bool = False
    question: Optional[str] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


class AssessmentResultResponse(BaseModel):
    result_id: str
    assessment_id: str
    assessment_title: Optional[str] = None
    score: int
    total_possible: int
    percentage: int
    passed: bool
    category_scores: Dict[str, int]
    time_spent: int
    started_at: datetime
    completed_at: datetime
    answers: List[ResultAnswer] = []


class AssessmentStatsResponse(BaseModel):
    total_assessments_taken: int
    unique_students: int
    total_skills_assessed: int
    passing_rate: float
    average_score: float


# ============================================================
# ATTEMPT SCHEMAS
# ============================================================

class AttemptStartRequest(BaseModel):
    category: Optional[QuestionCategory] = None


class AttemptUpdateRequest(BaseModel):
    question_id: Optional[str] = None
    answer: Optional[str] = None
    current_index: Optional[int] = Field(None, ge=0)


class AttemptResponse(BaseModel):
    attempt_id: str
    assessment_id: str
    status: str
    current_index: int
    answers: Dict[str, Optional[str]]
    started_at: datetime
    questions: List[AssessmentQuestionPublic]
    result_id: Optional[str] = None


# ============================================================
# CUSTOM ASSESSMENT SCHEMAS
# ============================================================

class CustomQuestionCreate(BaseModel):
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType = QuestionType.multiple_choice
    options: List[str] = []
    correct_answer: Optional[str] = None
    points: int = Field(1, ge=1)
    category: CustomQuestionCategory = CustomQuestionCategory.technical

    @field_validator("question_type")
    @classmethod
    def no_coding(cls, v: QuestionType) -> QuestionType:
        if v == QuestionType.coding:
            raise ValueError("Coding questions are not supported in custom assessments")
        return v


class CustomAssessmentCreate(BaseModel):
    job_id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    duration: int = Field(30, ge=1, description="Minutes")
    passing_score: int = Field(60, ge=0, le=100)
    questions: List[CustomQuestionCreate] = Field(..., min_length=1)


class CustomAssessmentCreated(BaseModel):
    assessment_id: str
    title: str
    question_count: int


class CustomQuestionResponse(BaseModel):
    id: str
    question_text: str
    question_type: str
    options: List[str] = []
    correct_answer: Optional[str] = None
    points: int
    category: str


class CustomAssessmentResponse(BaseModel):
    assessment_id: str
    job_id: str
    title: str
    description: Optional[str] = None
    duration: int
    passing_score: int
    questions: List[CustomQuestionResponse]


class CustomAssessmentSubmitRequest(BaseModel):
    assessment_id: str
    job_id: str
    answers: List[Optional[SubmittedAnswer]]
    time_spent: Optional[int] = Field(None, ge=0, description="Seconds")


class CustomSubmissionResult(BaseModel):
    score: int
    total_points: int
    percentage: int
    passed: bool
    passing_score: int


class CustomSubmissionCreated(BaseModel):
    submission_id: str
    result: CustomSubmissionResult
    warnings: List[str] = []


class CustomSubmissionResponse(BaseModel):
    submission_id: str
    assessment_id: str
    job_id: str
    student_user_id: str
    answers: List[Dict[str, Any]]
    score: int
    percentage: int
    passed: bool
    time_spent: Optional[int] = None
    submitted_at: datetime


class CustomAssessmentStatus(BaseModel):
    has_assessment: bool
    completed: bool
    passed: bool
    score: Optional[int] = None
    submitted_at: Optional[datetime] = None


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True


class ErrorResponse(BaseModel):
    detail: str
