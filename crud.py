from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

import models
import schemas


INSIGHT_REFRESH_INTERVAL = timedelta(days=7)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --- User CRUD ---
def get_user_by_id(db: Session, user_id: int):
    """Get a user by their primary key ID."""
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_cognito_sub(db: Session, cognito_sub: str):
    return db.query(models.User).filter(models.User.cognito_sub == cognito_sub).first()


def create_user(db: Session, user: schemas.UserCreate):
    db_user = models.User(
        email=user.email,
        cognito_sub=user.cognito_sub,
        name=user.name,
        image_url=user.image_url,
        skills=[],
    )
    db.add(db_user)
    db.flush()  # Assign ID without committing
    db.refresh(db_user)
    return db_user


def update_user_profile(db: Session, user_id: int, form: schemas.OnboardingForm, industry: str):
    user = get_user_by_id(db, user_id)
    if not user:
        return None

    user.industry = industry
    user.experience = form.experience
    user.bio = form.bio
    user.skills = list(form.skills)
    db.add(user)
    db.flush()
    return user


# --- Industry insight CRUD ---
def get_industry_insight(db: Session, industry: str):
    return (
        db.query(models.IndustryInsight)
        .filter(models.IndustryInsight.industry == industry)
        .first()
    )


def _apply_insight_data(row: models.IndustryInsight, data: schemas.IndustryInsightData, now: datetime, interval: timedelta):
    row.salary_ranges = [s.model_dump() for s in data.salary_ranges]
    row.growth_rate = data.growth_rate
    row.demand_level = data.demand_level
    row.top_skills = list(data.top_skills)
    row.market_outlook = data.market_outlook
    row.key_trends = list(data.key_trends)
    row.recommended_skills = list(data.recommended_skills)
    row.last_updated = now
    row.next_update = now + interval


def create_industry_insight(
    db: Session,
    industry: str,
    data: schemas.IndustryInsightData,
    now: Optional[datetime] = None,
    interval: timedelta = INSIGHT_REFRESH_INTERVAL,
):
    row = models.IndustryInsight(industry=industry)
    _apply_insight_data(row, data, now or utcnow(), interval)
    db.add(row)
    db.flush()
    return row


def upsert_industry_insight(
    db: Session,
    industry: str,
    data: schemas.IndustryInsightData,
    now: Optional[datetime] = None,
    interval: timedelta = INSIGHT_REFRESH_INTERVAL,
):
    """Overwrite the insight row for ``industry`` in place, creating it if absent."""
    row = get_industry_insight(db, industry)
    if row is None:
        return create_industry_insight(db, industry, data, now=now, interval=interval)

    _apply_insight_data(row, data, now or utcnow(), interval)
    db.add(row)
    db.flush()
    return row


def list_insight_industries(db: Session) -> List[str]:
    """Every industry with an insight row.

    ``users.industry`` references ``industry_insights.industry``, so this also
    covers every industry a user has onboarded into.
    """
    return [
        row.industry
        for row in db.query(models.IndustryInsight.industry).order_by(models.IndustryInsight.industry)
    ]


# --- Resume CRUD ---
def get_resume_for_user(db: Session, user_id: int):
    return db.query(models.Resume).filter(models.Resume.user_id == user_id).first()


def upsert_resume(db: Session, user_id: int, content: str):
    db_resume = get_resume_for_user(db, user_id)
    if db_resume is None:
        db_resume = models.Resume(user_id=user_id, content=content)
    else:
        db_resume.content = content
    db.add(db_resume)
    db.flush()
    return db_resume


# --- Assessment CRUD ---
def create_assessment(
    db: Session,
    user_id: int,
    quiz_score: float,
    questions: List[schemas.QuestionResult],
    improvement_tip: Optional[str],
    category: str = "Technical",
):
    db_assessment = models.Assessment(
        user_id=user_id,
        quiz_score=quiz_score,
        questions=[q.model_dump() for q in questions],
        category=category,
        improvement_tip=improvement_tip,
    )
    db.add(db_assessment)
    db.flush()
    return db_assessment


def get_assessments_for_user(db: Session, user_id: int):
    """Oldest first, for trend charts."""
    return (
        db.query(models.Assessment)
        .filter(models.Assessment.user_id == user_id)
        .order_by(models.Assessment.created_at.asc(), models.Assessment.id.asc())
        .all()
    )


# --- Cover letter CRUD ---
def create_cover_letter(db: Session, user_id: int, letter: schemas.CoverLetterCreate, content: str):
    db_letter = models.CoverLetter(
        user_id=user_id,
        content=content,
        job_title=letter.job_title,
        company_name=letter.company_name,
        job_description=letter.job_description,
        status="completed",
    )
    db.add(db_letter)
    db.flush()
    return db_letter


def get_cover_letters_for_user(db: Session, user_id: int):
    return (
        db.query(models.CoverLetter)
        .filter(models.CoverLetter.user_id == user_id)
        .order_by(models.CoverLetter.created_at.desc(), models.CoverLetter.id.desc())
        .all()
    )


def get_cover_letter(db: Session, letter_id: int, user_id: int):
    return (
        db.query(models.CoverLetter)
        .filter(models.CoverLetter.id == letter_id, models.CoverLetter.user_id == user_id)
        .first()
    )


def delete_cover_letter(db: Session, letter_id: int, user_id: int) -> bool:
    """Delete a cover letter owned by the user; False when there is none."""
    db_letter = get_cover_letter(db, letter_id=letter_id, user_id=user_id)
    if not db_letter:
        return False

    db.delete(db_letter)
    db.flush()
    return True
