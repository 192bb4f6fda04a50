from datetime import datetime
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    computed_field,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from models import DemandLevel, MarketOutlook


# --- Users ---
class UserCreate(BaseModel):
    email: str
    cognito_sub: str
    name: Optional[str] = None
    image_url: Optional[str] = None


class User(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: Optional[str] = None
    image_url: Optional[str] = None
    industry: Optional[str] = None
    experience: Optional[int] = None
    bio: Optional[str] = None
    skills: List[str] = []


class OnboardingForm(BaseModel):
    industry: str = Field(min_length=1)
    sub_industry: Optional[str] = None
    experience: int = Field(default=0, ge=0, le=50)
    bio: Optional[str] = Field(default=None, max_length=500)
    skills: List[str] = []

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        return [skill.strip() for skill in value if skill and skill.strip()]

    def industry_key(self) -> str:
        """Compound "industry-subindustry" key stored on the user and insight rows."""
        if not self.sub_industry:
            return self.industry
        return f"{self.industry}-{self.sub_industry.lower().replace(' ', '-')}"


class OnboardingStatus(BaseModel):
    is_onboarded: bool


# --- Industry insights ---
class SalaryRange(BaseModel):
    role: str
    min: float
    max: float
    median: float
    location: str


class IndustryInsightData(BaseModel):
    """Shape the model is asked to return for an industry (camelCase keys)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    salary_ranges: List[SalaryRange]
    growth_rate: float
    demand_level: DemandLevel
    top_skills: List[str]
    market_outlook: MarketOutlook
    key_trends: List[str]
    recommended_skills: List[str]

    @field_validator("demand_level", "market_outlook", mode="before")
    @classmethod
    def upper_enum(cls, value):
        return value.strip().upper() if isinstance(value, str) else value


class IndustryInsight(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    industry: str
    salary_ranges: List[SalaryRange]
    growth_rate: float
    demand_level: DemandLevel
    top_skills: List[str]
    market_outlook: MarketOutlook
    key_trends: List[str]
    recommended_skills: List[str]
    last_updated: datetime
    next_update: datetime


class ProfileUpdateResult(BaseModel):
    success: bool = True
    user: User
    industry_insight: IndustryInsight


# --- Interview quizzes ---
class QuizQuestion(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    question: str
    options: List[str]
    correct_answer: str
    explanation: str = ""


class QuizResponse(BaseModel):
    questions: List[QuizQuestion]


class QuizResultInput(BaseModel):
    questions: List[QuizQuestion] = Field(min_length=1)
    answers: List[Optional[str]]


class QuestionResult(BaseModel):
    question: str
    answer: str
    user_answer: Optional[str] = None
    is_correct: bool
    explanation: str = ""


class Assessment(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    quiz_score: float
    questions: List[QuestionResult]
    category: str
    improvement_tip: Optional[str] = None
    created_at: Optional[datetime] = None


class AssessmentStats(BaseModel):
    average_score: float
    latest_score: Optional[float] = None
    total_questions: int
    total_assessments: int


# --- Resume ---
class ResumeContent(BaseModel):
    content: str = Field(min_length=1)


class Resume(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    content: str
    updated_at: Optional[datetime] = None


class ContactInfo(BaseModel):
    email: Optional[EmailStr] = None
    mobile: Optional[str] = None
    linkedin: Optional[str] = None
    twitter: Optional[str] = None


class ResumeEntry(BaseModel):
    title: str = Field(min_length=1)
    organization: str = Field(min_length=1)
    start_date: str = Field(min_length=1)
    end_date: Optional[str] = None
    description: str = Field(min_length=1)
    current: bool = False

    @model_validator(mode="after")
    def require_end_date(self):
        if not self.current and not self.end_date:
            raise ValueError("End date is required unless this is your current position")
        return self


class ResumeForm(BaseModel):
    contact_info: ContactInfo = ContactInfo()
    summary: str = ""
    skills: str = ""
    experience: List[ResumeEntry] = []
    education: List[ResumeEntry] = []
    projects: List[ResumeEntry] = []


class ImproveRequest(BaseModel):
    current: str = Field(min_length=1)
    type: str = Field(min_length=1)  # e.g. "experience", "project"


class ImprovedContent(BaseModel):
    content: str


# --- Cover letters ---
class CoverLetterCreate(BaseModel):
    job_title: str = Field(min_length=1)
    company_name: str = Field(min_length=1)
    job_description: str = Field(min_length=1)


class CoverLetter(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    job_title: str
    company_name: str
    job_description: Optional[str] = None
    content: str
    status: str
    created_at: Optional[datetime] = None


# --- Workflow orchestration ---
class WorkflowFunction(BaseModel):
    id: str
    name: str
    cron: str
    steps: List[str]


class WorkflowInvocation(BaseModel):
    function: str
    run_id: Optional[str] = None
    # Restrict a retry to the industries whose step failed last time
    industries: Optional[List[str]] = None


class StepFailure(BaseModel):
    industry: Optional[str] = None
    step: str
    error: str


class RefreshReport(BaseModel):
    run_id: str
    function: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    refreshed: List[str] = []
    failed: List[StepFailure] = []

    @computed_field
    @property
    def status(self) -> str:
        return "partial_failure" if self.failed else "completed"
