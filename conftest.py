import os

import pytest

TEST_DATABASE_URL = "sqlite:///./career-coach-test.db"

# Must be set before the app modules build their engine / settings
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("AWS_EMF_ENVIRONMENT", "Local")
os.environ["AUTH_ENABLED"] = "false"

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

# --- Alembic Imports ---
from alembic.config import Config
from alembic import command
# --- End Alembic Imports ---

# Import app and DB dependency function first
from main import app, get_db

# Import database components needed for setup
from database import Base

connect_args = (
    {"check_same_thread": False} if TEST_DATABASE_URL.startswith("sqlite") else {}
)
test_engine = create_engine(TEST_DATABASE_URL, connect_args=connect_args)


@event.listens_for(test_engine, "connect")
def _enforce_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON;")
    cursor.close()


TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create the test database from models and stamp with Alembic head."""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)

    alembic_cfg = Config("alembic.ini")
    alembic_cfg.set_main_option("sqlalchemy.url", TEST_DATABASE_URL)
    command.stamp(alembic_cfg, "head")

    yield  # Tests run here

    test_engine.dispose()
    db_path = TEST_DATABASE_URL.split("///")[-1]
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)


@pytest.fixture(autouse=True)
def clean_tables(setup_test_database):
    """Every test starts from empty tables."""
    yield
    with test_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(scope="function")
def db_session(setup_test_database):
    """Yields a SQLAlchemy session directly from the test factory."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def override_get_db():
    """Route the app's get_db dependency to the test database.

    Each API call gets its own session, matching production request handling.
    """

    def _override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    original = app.dependency_overrides.get(get_db)
    app.dependency_overrides[get_db] = _override_get_db

    yield

    if original:
        app.dependency_overrides[get_db] = original
    else:
        del app.dependency_overrides[get_db]


@pytest.fixture(scope="function")
def test_client(override_get_db):
    """Provides a test client configured with our test database session."""
    return TestClient(app)


# --- Shared factories --- #

SAMPLE_INSIGHT = {
    "salaryRanges": [
        {"role": "Software Engineer", "min": 90000, "max": 160000, "median": 120000, "location": "US"},
        {"role": "Data Engineer", "min": 95000, "max": 165000, "median": 125000, "location": "US"},
    ],
    "growthRate": 12.5,
    "demandLevel": "HIGH",
    "topSkills": ["Python", "SQL", "Cloud", "Kubernetes", "System Design"],
    "marketOutlook": "POSITIVE",
    "keyTrends": ["AI tooling", "Platform engineering", "Remote work", "Security", "Cost control"],
    "recommendedSkills": ["LLM integration", "Terraform", "Go", "Observability", "Rust"],
}


@pytest.fixture
def insight_data():
    import schemas

    return schemas.IndustryInsightData.model_validate(SAMPLE_INSIGHT)


@pytest.fixture
def make_user(db_session):
    """Create users directly in the test database.

    An industry gets its insight row first, as onboarding would create it.
    """
    import crud
    import models
    import schemas

    def _make_user(
        cognito_sub: str = "sub-test",
        email: str = "test@example.com",
        industry=None,
        skills=None,
        name: str = "Test User",
    ):
        if industry and crud.get_industry_insight(db_session, industry) is None:
            crud.create_industry_insight(
                db_session, industry, schemas.IndustryInsightData.model_validate(SAMPLE_INSIGHT)
            )
        user = models.User(
            cognito_sub=cognito_sub,
            email=email,
            name=name,
            industry=industry,
            skills=skills or [],
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def insight_payload():
    """Raw camelCase insight JSON as the model is asked to return it."""
    return dict(SAMPLE_INSIGHT)


@pytest.fixture
def session_factory():
    """Session factory for code that opens its own sessions (scheduled jobs)."""
    return TestSessionLocal
