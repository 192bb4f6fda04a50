import asyncio
from datetime import timedelta
from typing import List, Optional, Sequence

import structlog
from sqlalchemy import text
from sqlalchemy.orm import Session

import crud
import models
import schemas
import llm_interaction
from auth import TokenPayload
from database import is_postgres
from errors import CareerCoachError, InvalidInputError, NotFoundError, PersistenceError
from resume_markdown import build_resume_markdown
from settings import get_settings

# Set up logging
logger = structlog.get_logger(__name__)

QUIZ_CATEGORY = "Technical"


def _refresh_interval() -> timedelta:
    return timedelta(days=get_settings().insight_refresh_interval_days)


def _commit(db: Session, failure_message: str, **log_fields) -> None:
    """Commit the session or roll back and raise a PersistenceError."""
    try:
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.error(failure_message, error=str(exc), exc_info=True, **log_fields)
        raise PersistenceError(failure_message) from exc


# --- Users & onboarding --- #


def sync_user(db: Session, identity: TokenPayload) -> models.User:
    """Return the user row for a verified identity, creating it on first visit."""
    user = crud.get_user_by_cognito_sub(db, identity.sub)
    if user:
        return user

    user = crud.create_user(
        db,
        schemas.UserCreate(
            email=identity.email or identity.sub,
            cognito_sub=identity.sub,
            name=identity.display_name,
            image_url=identity.picture,
        ),
    )
    _commit(db, "Failed to create user", cognito_sub=identity.sub)
    logger.info("Created user on first visit", user_id=user.id)
    return user


def get_onboarding_status(user: models.User) -> schemas.OnboardingStatus:
    return schemas.OnboardingStatus(is_onboarded=bool(user.industry))


async def update_user_profile(
    db: Session, user: models.User, form: schemas.OnboardingForm
) -> schemas.ProfileUpdateResult:
    """Update the profile and make sure an insight row exists for the new industry.

    Both writes share one transaction bounded by
    ``settings.profile_update_timeout_seconds``; any failure rolls both back.
    """
    settings = get_settings()
    user_id = user.id
    industry = form.industry_key()
    timeout = settings.profile_update_timeout_seconds

    async def _transaction():
        if is_postgres(db):
            db.execute(text(f"SET LOCAL statement_timeout = {int(timeout * 1000)}"))

        insight = crud.get_industry_insight(db, industry)
        if insight is None:
            data = await llm_interaction.generate_industry_insights(industry)
            insight = crud.create_industry_insight(db, industry, data, interval=_refresh_interval())

        updated = crud.update_user_profile(db, user_id, form, industry)
        if updated is None:
            raise NotFoundError()
        db.commit()
        return updated, insight

    try:
        updated_user, insight = await asyncio.wait_for(_transaction(), timeout=timeout)
    except Exception as exc:
        db.rollback()
        reason = "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
        logger.error("Error updating user and industry", user_id=user_id, industry=industry, error=reason, exc_info=True)
        raise PersistenceError(f"Failed to update profile: {reason}") from exc

    db.refresh(updated_user)
    db.refresh(insight)
    logger.info("Profile updated", user_id=user_id, industry=industry)
    return schemas.ProfileUpdateResult(
        user=schemas.User.model_validate(updated_user),
        industry_insight=schemas.IndustryInsight.model_validate(insight),
    )


# --- Industry insights --- #


async def get_industry_insights(db: Session, user: models.User) -> models.IndustryInsight:
    if not user.industry:
        raise NotFoundError("Complete onboarding first")

    insight = crud.get_industry_insight(db, user.industry)
    if insight is not None:
        return insight

    logger.info("No insight cached for industry, generating", industry=user.industry)
    data = await llm_interaction.generate_industry_insights(user.industry)
    insight = crud.create_industry_insight(db, user.industry, data, interval=_refresh_interval())
    _commit(db, "Failed to save industry insights", industry=user.industry)
    db.refresh(insight)
    return insight


# --- Interview quizzes --- #


async def generate_quiz(user: models.User) -> List[schemas.QuizQuestion]:
    return await llm_interaction.generate_quiz_questions(user.industry, user.skills or [])


def build_question_results(
    questions: Sequence[schemas.QuizQuestion], answers: Sequence[Optional[str]]
) -> List[schemas.QuestionResult]:
    results = []
    for index, question in enumerate(questions):
        user_answer = answers[index] if index < len(answers) else None
        results.append(
            schemas.QuestionResult(
                question=question.question,
                answer=question.correct_answer,
                user_answer=user_answer,
                is_correct=user_answer == question.correct_answer,
                explanation=question.explanation,
            )
        )
    return results


def calculate_quiz_score(
    questions: Sequence[schemas.QuizQuestion], answers: Sequence[Optional[str]]
) -> float:
    """Percentage of questions answered with the canonical answer."""
    if not questions:
        return 0.0
    results = build_question_results(questions, answers)
    correct = sum(1 for r in results if r.is_correct)
    return 100 * correct / len(questions)


async def save_quiz_result(
    db: Session,
    user: models.User,
    questions: Sequence[schemas.QuizQuestion],
    answers: Sequence[Optional[str]],
) -> models.Assessment:
    results = build_question_results(questions, answers)
    score = calculate_quiz_score(questions, answers)
    wrong_answers = [r for r in results if not r.is_correct]

    improvement_tip = None
    if wrong_answers:
        try:
            improvement_tip = await llm_interaction.generate_improvement_tip(user.industry, wrong_answers)
        except CareerCoachError as exc:
            # A missing tip must not cost the user their quiz result
            logger.warning("Error generating improvement tip", user_id=user.id, error=str(exc))

    assessment = crud.create_assessment(
        db,
        user_id=user.id,
        quiz_score=score,
        questions=results,
        improvement_tip=improvement_tip,
        category=QUIZ_CATEGORY,
    )
    _commit(db, "Failed to save quiz result", user_id=user.id)
    db.refresh(assessment)
    logger.info("Saved quiz result", user_id=user.id, score=score)
    return assessment


def get_assessments(db: Session, user: models.User) -> List[models.Assessment]:
    return crud.get_assessments_for_user(db, user.id)


def get_assessment_stats(db: Session, user: models.User) -> schemas.AssessmentStats:
    assessments = crud.get_assessments_for_user(db, user.id)
    if not assessments:
        return schemas.AssessmentStats(average_score=0.0, latest_score=None, total_questions=0, total_assessments=0)

    average = sum(a.quiz_score for a in assessments) / len(assessments)
    return schemas.AssessmentStats(
        average_score=round(average, 1),
        latest_score=assessments[-1].quiz_score,
        total_questions=sum(len(a.questions or []) for a in assessments),
        total_assessments=len(assessments),
    )


# --- Resume --- #


def save_resume(db: Session, user: models.User, content: str) -> models.Resume:
    resume = crud.upsert_resume(db, user.id, content)
    _commit(db, "Failed to save resume", user_id=user.id)
    db.refresh(resume)
    return resume


def build_and_save_resume(db: Session, user: models.User, form: schemas.ResumeForm) -> models.Resume:
    content = build_resume_markdown(form, full_name=user.name)
    if not content:
        raise InvalidInputError("Resume has no content")
    return save_resume(db, user, content)


def get_resume(db: Session, user: models.User) -> Optional[models.Resume]:
    return crud.get_resume_for_user(db, user.id)


async def improve_with_ai(user: models.User, current: str, section_type: str) -> str:
    return await llm_interaction.improve_resume_section(user.industry, current, section_type)


# --- Cover letters --- #


async def generate_cover_letter(
    db: Session, user: models.User, letter: schemas.CoverLetterCreate
) -> models.CoverLetter:
    content = await llm_interaction.generate_cover_letter(
        job_title=letter.job_title,
        company_name=letter.company_name,
        job_description=letter.job_description,
        industry=user.industry,
        experience=user.experience,
        skills=user.skills,
        bio=user.bio,
    )
    db_letter = crud.create_cover_letter(db, user.id, letter, content)
    _commit(db, "Failed to save cover letter", user_id=user.id)
    db.refresh(db_letter)
    logger.info("Generated cover letter", user_id=user.id, cover_letter_id=db_letter.id)
    return db_letter


def get_cover_letters(db: Session, user: models.User) -> List[models.CoverLetter]:
    return crud.get_cover_letters_for_user(db, user.id)


def get_cover_letter(db: Session, user: models.User, letter_id: int) -> models.CoverLetter:
    letter = crud.get_cover_letter(db, letter_id=letter_id, user_id=user.id)
    if letter is None:
        raise NotFoundError("Cover letter not found")
    return letter


def delete_cover_letter(db: Session, user: models.User, letter_id: int) -> None:
    if not crud.delete_cover_letter(db, letter_id=letter_id, user_id=user.id):
        raise NotFoundError("Cover letter not found")
    _commit(db, "Failed to delete cover letter", user_id=user.id, cover_letter_id=letter_id)
