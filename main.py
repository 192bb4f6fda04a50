import secrets
from typing import List, Optional

from fastapi import (
    FastAPI,
    Depends,
    Header,
    Request,
    Response,
    status,
)
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
import structlog

import models
import schemas
import logic
import workflows
from auth import TokenPayload, get_current_identity, get_current_user
from database import create_db_and_tables, get_db
from errors import CareerCoachError, UnauthorizedError
from settings import get_settings, Settings
from request_id_middleware import RequestIdMiddleware
from route_protection import ProtectedRouteMiddleware
from observability import init_observability


# Initialise observability before creating app
init_observability()
logger = structlog.get_logger(__name__)

# Create DB tables on startup
create_db_and_tables()

app = FastAPI(
    title="Career Coach",
    description="Backend API for the AI career coach: onboarding, industry insights, resumes, quizzes and cover letters",
    version="0.1.0",
)

# --- CORS Middleware ---
origins = [
    "http://localhost",
    "http://localhost:3000",
    "http://localhost:8000",
    "http://127.0.0.1",
    "http://127.0.0.1:8000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(ProtectedRouteMiddleware)
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(CareerCoachError)
async def career_coach_error_handler(request: Request, exc: CareerCoachError) -> JSONResponse:
    logger.info("Request failed", error=exc.message, status_code=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health", tags=["Meta"])
def health():
    return {"status": "ok"}


# Add route for favicon.ico
@app.get("/favicon.ico", include_in_schema=False)
async def favicon():
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- User Endpoints ---
@app.get("/users/me", response_model=schemas.User, tags=["Users"])
def get_me(
    identity: TokenPayload = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Return the caller's user record, creating it on the first visit."""
    return logic.sync_user(db, identity)


# --- Onboarding Endpoints ---
@app.get("/onboarding/status", response_model=schemas.OnboardingStatus, tags=["Onboarding"])
def get_onboarding_status_endpoint(current_user: models.User = Depends(get_current_user)):
    return logic.get_onboarding_status(current_user)


@app.post("/onboarding", response_model=schemas.ProfileUpdateResult, tags=["Onboarding"])
async def update_profile_endpoint(
    form: schemas.OnboardingForm,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return await logic.update_user_profile(db, current_user, form)


# --- Dashboard Endpoints ---
@app.get("/dashboard/insights", response_model=schemas.IndustryInsight, tags=["Dashboard"])
async def get_insights_endpoint(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return await logic.get_industry_insights(db, current_user)


# --- Resume Endpoints ---
@app.get("/resume", response_model=Optional[schemas.Resume], tags=["Resume"])
def get_resume_endpoint(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return logic.get_resume(db, current_user)


@app.post("/resume", response_model=schemas.Resume, tags=["Resume"])
def save_resume_endpoint(
    resume: schemas.ResumeContent,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return logic.save_resume(db, current_user, resume.content)


@app.post("/resume/build", response_model=schemas.Resume, tags=["Resume"])
def build_resume_endpoint(
    form: schemas.ResumeForm,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Assemble the structured resume form into markdown and save it."""
    return logic.build_and_save_resume(db, current_user, form)


@app.post("/resume/improve", response_model=schemas.ImprovedContent, tags=["Resume"])
async def improve_resume_endpoint(
    request: schemas.ImproveRequest,
    current_user: models.User = Depends(get_current_user),
):
    content = await logic.improve_with_ai(current_user, request.current, request.type)
    return schemas.ImprovedContent(content=content)


# --- Interview Endpoints ---
@app.post("/interview/quiz", response_model=schemas.QuizResponse, tags=["Interview"])
async def generate_quiz_endpoint(current_user: models.User = Depends(get_current_user)):
    questions = await logic.generate_quiz(current_user)
    return schemas.QuizResponse(questions=questions)


@app.post(
    "/interview/assessments",
    response_model=schemas.Assessment,
    status_code=status.HTTP_201_CREATED,
    tags=["Interview"],
)
async def save_quiz_result_endpoint(
    result: schemas.QuizResultInput,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return await logic.save_quiz_result(db, current_user, result.questions, result.answers)


@app.get("/interview/assessments", response_model=List[schemas.Assessment], tags=["Interview"])
def get_assessments_endpoint(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return logic.get_assessments(db, current_user)


@app.get("/interview/stats", response_model=schemas.AssessmentStats, tags=["Interview"])
def get_assessment_stats_endpoint(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return logic.get_assessment_stats(db, current_user)


# --- Cover Letter Endpoints ---
@app.post(
    "/ai-cover-letter",
    response_model=schemas.CoverLetter,
    status_code=status.HTTP_201_CREATED,
    tags=["Cover Letters"],
)
async def generate_cover_letter_endpoint(
    letter: schemas.CoverLetterCreate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return await logic.generate_cover_letter(db, current_user, letter)


@app.get("/ai-cover-letter", response_model=List[schemas.CoverLetter], tags=["Cover Letters"])
def get_cover_letters_endpoint(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return logic.get_cover_letters(db, current_user)


@app.get("/ai-cover-letter/{letter_id}", response_model=schemas.CoverLetter, tags=["Cover Letters"])
def get_cover_letter_endpoint(
    letter_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return logic.get_cover_letter(db, current_user, letter_id)


@app.delete("/ai-cover-letter/{letter_id}", tags=["Cover Letters"])
def delete_cover_letter_endpoint(
    letter_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logger.info("Deleting cover letter", cover_letter_id=letter_id, user_id=current_user.id)
    logic.delete_cover_letter(db, current_user, letter_id)
    return {"status": "deleted", "id": letter_id}


# --- Workflow Orchestration Endpoint --- #
def verify_workflow_key(
    x_workflow_key: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.workflow_signing_key
    if not expected:
        if settings.auth_enabled:
            logger.error("Workflow endpoint called but WORKFLOW_SIGNING_KEY is not set")
            raise UnauthorizedError("Workflow key not configured")
        return
    if not x_workflow_key or not secrets.compare_digest(x_workflow_key, expected):
        raise UnauthorizedError("Invalid workflow key")


@app.get(
    "/api/workflows",
    response_model=List[schemas.WorkflowFunction],
    dependencies=[Depends(verify_workflow_key)],
    tags=["Workflows"],
)
def list_workflow_functions():
    return list(workflows.FUNCTIONS.values())


@app.put(
    "/api/workflows",
    response_model=List[schemas.WorkflowFunction],
    dependencies=[Depends(verify_workflow_key)],
    tags=["Workflows"],
)
def sync_workflow_functions():
    """Orchestrator registration handshake: report the functions and their crons."""
    functions = list(workflows.FUNCTIONS.values())
    logger.info("Workflow functions synced", functions=[f.id for f in functions])
    return functions


@app.post(
    "/api/workflows",
    response_model=schemas.RefreshReport,
    dependencies=[Depends(verify_workflow_key)],
    tags=["Workflows"],
)
async def invoke_workflow_function(invocation: schemas.WorkflowInvocation):
    return await workflows.invoke(invocation)


# --- Main execution --- (for running with uvicorn)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
