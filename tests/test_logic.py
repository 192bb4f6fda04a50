import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.orm import Session

import logic
import models
import schemas
from errors import GenerationError, InvalidInputError, NotFoundError, PersistenceError
from settings import Settings


def _questions(count: int):
    return [
        schemas.QuizQuestion(
            question=f"Question {i}?",
            options=["A", "B", "C", "D"],
            correct_answer="A",
            explanation=f"Because {i}.",
        )
        for i in range(count)
    ]


# --- Quiz scoring --- #


def test_quiz_score_counts_exact_matches():
    questions = _questions(10)
    answers = ["A"] * 7 + ["B", "C", "D"]

    assert logic.calculate_quiz_score(questions, answers) == 70.0


def test_quiz_score_treats_missing_answers_as_wrong():
    questions = _questions(4)

    assert logic.calculate_quiz_score(questions, ["A", None]) == 25.0


def test_quiz_score_without_questions_is_zero():
    assert logic.calculate_quiz_score([], []) == 0.0


def test_build_question_results_records_user_answer():
    results = logic.build_question_results(_questions(2), ["A", "C"])

    assert [r.is_correct for r in results] == [True, False]
    assert results[1].answer == "A"
    assert results[1].user_answer == "C"
    assert results[1].explanation == "Because 1."


@pytest.mark.asyncio
async def test_save_quiz_result_keeps_result_when_tip_fails(db_session: Session, make_user):
    user = make_user(industry="tech")

    with patch(
        "logic.llm_interaction.generate_improvement_tip",
        new_callable=AsyncMock,
        side_effect=GenerationError(),
    ) as mock_tip:
        assessment = await logic.save_quiz_result(db_session, user, _questions(10), ["A"] * 7 + ["B"] * 3)

    mock_tip.assert_awaited_once()
    assert assessment.quiz_score == 70.0
    assert assessment.improvement_tip is None
    assert assessment.category == "Technical"
    assert len(assessment.questions) == 10


@pytest.mark.asyncio
async def test_save_quiz_result_survives_empty_model_reply(db_session: Session, make_user):
    user = make_user(industry="tech")
    empty = MagicMock()
    empty.choices = []
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=empty)

    with patch("llm_interaction.get_llm_client", return_value=client):
        assessment = await logic.save_quiz_result(db_session, user, _questions(2), ["A", "B"])

    client.chat.completions.create.assert_awaited_once()
    assert assessment.quiz_score == 50.0
    assert assessment.improvement_tip is None


@pytest.mark.asyncio
async def test_save_quiz_result_skips_tip_when_all_correct(db_session: Session, make_user):
    user = make_user(industry="tech")

    with patch("logic.llm_interaction.generate_improvement_tip", new_callable=AsyncMock) as mock_tip:
        assessment = await logic.save_quiz_result(db_session, user, _questions(3), ["A", "A", "A"])

    mock_tip.assert_not_awaited()
    assert assessment.quiz_score == 100.0


@pytest.mark.asyncio
async def test_save_quiz_result_passes_only_wrong_answers_to_tip(db_session: Session, make_user):
    user = make_user(industry="tech")

    with patch(
        "logic.llm_interaction.generate_improvement_tip",
        new_callable=AsyncMock,
        return_value="Review indexing strategies.",
    ) as mock_tip:
        assessment = await logic.save_quiz_result(db_session, user, _questions(3), ["A", "B", "A"])

    industry, wrong = mock_tip.await_args.args
    assert industry == "tech"
    assert [w.question for w in wrong] == ["Question 1?"]
    assert assessment.improvement_tip == "Review indexing strategies."


def test_assessment_stats(db_session: Session, make_user):
    user = make_user()
    results = logic.build_question_results(_questions(5), ["A"] * 5)
    for score in (50.0, 75.0, 80.0):
        logic.crud.create_assessment(db_session, user.id, score, results, None)
    db_session.commit()

    stats = logic.get_assessment_stats(db_session, user)

    assert stats.average_score == 68.3
    assert stats.latest_score == 80.0
    assert stats.total_questions == 15
    assert stats.total_assessments == 3


def test_assessment_stats_without_assessments(db_session: Session, make_user):
    stats = logic.get_assessment_stats(db_session, make_user())

    assert stats.average_score == 0.0
    assert stats.latest_score is None
    assert stats.total_assessments == 0


# --- Profile update transaction --- #


@pytest.mark.asyncio
async def test_update_user_profile_creates_insight_and_updates_user(db_session: Session, make_user, insight_data):
    user = make_user()
    form = schemas.OnboardingForm(
        industry="tech", sub_industry="Software Engineering", experience=3, skills="Python, SQL"
    )

    with patch(
        "logic.llm_interaction.generate_industry_insights",
        new_callable=AsyncMock,
        return_value=insight_data,
    ) as mock_generate:
        result = await logic.update_user_profile(db_session, user, form)

    mock_generate.assert_awaited_once_with("tech-software-engineering")
    assert result.success is True
    assert result.user.industry == "tech-software-engineering"
    assert result.user.skills == ["Python", "SQL"]
    assert result.user.experience == 3
    assert result.industry_insight.industry == "tech-software-engineering"
    assert db_session.query(models.IndustryInsight).count() == 1


@pytest.mark.asyncio
async def test_update_user_profile_reuses_existing_insight(db_session: Session, make_user, insight_data):
    logic.crud.create_industry_insight(db_session, "finance", insight_data)
    db_session.commit()
    user = make_user()

    with patch("logic.llm_interaction.generate_industry_insights", new_callable=AsyncMock) as mock_generate:
        result = await logic.update_user_profile(db_session, user, schemas.OnboardingForm(industry="finance"))

    mock_generate.assert_not_awaited()
    assert result.user.industry == "finance"
    assert db_session.query(models.IndustryInsight).count() == 1


@pytest.mark.asyncio
async def test_update_user_profile_rolls_back_on_generation_failure(db_session: Session, make_user):
    user = make_user()

    with patch(
        "logic.llm_interaction.generate_industry_insights",
        new_callable=AsyncMock,
        side_effect=GenerationError(),
    ):
        with pytest.raises(PersistenceError) as exc_info:
            await logic.update_user_profile(db_session, user, schemas.OnboardingForm(industry="tech"))

    assert exc_info.value.message.startswith("Failed to update profile")
    db_session.refresh(user)
    assert user.industry is None
    assert db_session.query(models.IndustryInsight).count() == 0


@pytest.mark.asyncio
async def test_update_user_profile_rolls_back_insight_when_user_update_fails(
    db_session: Session, make_user, insight_data
):
    user = make_user()

    with patch(
        "logic.llm_interaction.generate_industry_insights",
        new_callable=AsyncMock,
        return_value=insight_data,
    ), patch("logic.crud.update_user_profile", side_effect=RuntimeError("disk full")):
        with pytest.raises(PersistenceError) as exc_info:
            await logic.update_user_profile(db_session, user, schemas.OnboardingForm(industry="tech"))

    assert "disk full" in exc_info.value.message
    assert db_session.query(models.IndustryInsight).count() == 0


@pytest.mark.asyncio
async def test_update_user_profile_times_out(db_session: Session, make_user, insight_data):
    user = make_user()

    async def slow_generation(industry):
        await asyncio.sleep(1)
        return insight_data

    with patch("logic.get_settings", return_value=Settings(profile_update_timeout_seconds=0.05)), patch(
        "logic.llm_interaction.generate_industry_insights", side_effect=slow_generation
    ):
        with pytest.raises(PersistenceError) as exc_info:
            await logic.update_user_profile(db_session, user, schemas.OnboardingForm(industry="tech"))

    assert exc_info.value.message == "Failed to update profile: timed out"
    db_session.refresh(user)
    assert user.industry is None


# --- Insights, resume, cover letters --- #


@pytest.mark.asyncio
async def test_get_industry_insights_requires_onboarding(db_session: Session, make_user):
    with pytest.raises(NotFoundError):
        await logic.get_industry_insights(db_session, make_user())


@pytest.mark.asyncio
async def test_get_industry_insights_generates_missing_row(db_session: Session, insight_data):
    # Detached user whose industry has no insight row yet
    user = models.User(id=1, industry="retail")

    with patch(
        "logic.llm_interaction.generate_industry_insights",
        new_callable=AsyncMock,
        return_value=insight_data,
    ) as mock_generate:
        first = await logic.get_industry_insights(db_session, user)
        second = await logic.get_industry_insights(db_session, user)

    mock_generate.assert_awaited_once_with("retail")
    assert first.id == second.id


def test_build_and_save_resume_rejects_empty_form(db_session: Session, make_user):
    with pytest.raises(InvalidInputError) as exc_info:
        logic.build_and_save_resume(db_session, make_user(), schemas.ResumeForm())

    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "Resume has no content"


def test_build_and_save_resume_overwrites(db_session: Session, make_user):
    user = make_user()
    logic.build_and_save_resume(db_session, user, schemas.ResumeForm(summary="First."))
    resume = logic.build_and_save_resume(db_session, user, schemas.ResumeForm(summary="Second."))

    assert resume.content == "## Professional Summary\n\nSecond."
    assert db_session.query(models.Resume).count() == 1


@pytest.mark.asyncio
async def test_generate_cover_letter_uses_profile(db_session: Session, make_user):
    user = make_user(industry="tech", skills=["Python"])
    letter_in = schemas.CoverLetterCreate(job_title="Engineer", company_name="Acme", job_description="Build APIs")

    with patch(
        "logic.llm_interaction.generate_cover_letter",
        new_callable=AsyncMock,
        return_value="Dear Acme team,",
    ) as mock_generate:
        letter = await logic.generate_cover_letter(db_session, user, letter_in)

    kwargs = mock_generate.await_args.kwargs
    assert kwargs["company_name"] == "Acme"
    assert kwargs["skills"] == ["Python"]
    assert letter.content == "Dear Acme team,"
    assert letter.status == "completed"


def test_cover_letter_lookup_missing_raises(db_session: Session, make_user):
    user = make_user()

    with pytest.raises(NotFoundError):
        logic.get_cover_letter(db_session, user, 999)
    with pytest.raises(NotFoundError):
        logic.delete_cover_letter(db_session, user, 999)
