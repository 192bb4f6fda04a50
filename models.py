import enum

from sqlalchemy.orm import relationship
from sqlalchemy import (
    Column,
    Integer,
    String,
    Float,
    ForeignKey,
    Text,
    DateTime,
    Enum,
    func,
    JSON,
)
from database import Base


class DemandLevel(str, enum.Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class MarketOutlook(str, enum.Enum):
    POSITIVE = "POSITIVE"
    NEUTRAL = "NEUTRAL"
    NEGATIVE = "NEGATIVE"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    cognito_sub = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    image_url = Column(String, nullable=True)

    # Compound "industry-subindustry" key, e.g. "tech-software-engineering"
    industry = Column(String, ForeignKey("industry_insights.industry"), nullable=True)
    experience = Column(Integer, nullable=True)
    bio = Column(Text, nullable=True)
    skills = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    industry_insight = relationship("IndustryInsight", back_populates="users")
    resume = relationship("Resume", back_populates="user", uselist=False)
    assessments = relationship("Assessment", back_populates="user", order_by="Assessment.created_at")
    cover_letters = relationship("CoverLetter", back_populates="user")


class IndustryInsight(Base):
    __tablename__ = "industry_insights"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    industry = Column(String, unique=True, index=True, nullable=False)

    salary_ranges = Column(JSON, nullable=False, default=list)  # [{role, min, max, median, location}]
    growth_rate = Column(Float, nullable=False)
    demand_level = Column(Enum(DemandLevel, name="demand_level"), nullable=False)
    top_skills = Column(JSON, nullable=False, default=list)
    market_outlook = Column(Enum(MarketOutlook, name="market_outlook"), nullable=False)
    key_trends = Column(JSON, nullable=False, default=list)
    recommended_skills = Column(JSON, nullable=False, default=list)

    last_updated = Column(DateTime(timezone=True), nullable=False)
    next_update = Column(DateTime(timezone=True), nullable=False, index=True)

    users = relationship("User", back_populates="industry_insight")


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="resume")


class Assessment(Base):
    __tablename__ = "assessments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    quiz_score = Column(Float, nullable=False)
    questions = Column(JSON, nullable=False)  # [{question, answer, user_answer, is_correct, explanation}]
    category = Column(String, nullable=False, default="Technical")
    improvement_tip = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="assessments")


class CoverLetter(Base):
    __tablename__ = "cover_letters"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    content = Column(Text, nullable=False)
    job_title = Column(String, nullable=False)
    company_name = Column(String, nullable=False)
    job_description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="completed")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="cover_letters")
