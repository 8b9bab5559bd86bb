import os
import tempfile
from types import SimpleNamespace

# Settings are read at import time, so the environment must be in place first.
_TEST_DB_PATH = os.path.join(tempfile.gettempdir(), "test_dealflow.db")
os.environ["SECRET_KEY"] = "test-secret-key-1234567890"
os.environ["DATABASE_URL"] = f"sqlite+pysqlite:///{_TEST_DB_PATH}"
os.environ["ENVIRONMENT"] = "test"
os.environ["API_V1_STR"] = "/api"
os.environ.pop("RESEND_API_KEY", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from dealflow import models  # noqa: E402
from dealflow.api import deps  # noqa: E402
from dealflow.database import Base, engine as app_engine, get_db  # noqa: E402
from dealflow.main import app  # noqa: E402

TEST_ENGINE = app_engine

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=TEST_ENGINE, future=True)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db

ADMIN_ID = 1
OWNER_ID = 2
OPTIMA_USER_ID = 3
NORTHWIND_USER_ID = 4


@pytest.fixture(scope="function", autouse=True)
def setup_test_database():
    """Fresh schema per test; dependency overrides restored afterwards."""

    original_overrides = dict(app.dependency_overrides)

    Base.metadata.drop_all(bind=TEST_ENGINE)
    Base.metadata.create_all(bind=TEST_ENGINE)

    yield

    app.dependency_overrides.clear()
    app.dependency_overrides.update(original_overrides)

    Base.metadata.drop_all(bind=TEST_ENGINE)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


def _stub_user(role_name: models.RoleName, user_id: int):
    class StubUser:
        def __init__(self):
            self.id = user_id
            self.email = f"{role_name.value}{user_id}@test.com"
            self.active = True
            self.role = type("Role", (), {"name": role_name})()

    return StubUser()


@pytest.fixture
def login_as():
    """Authenticate subsequent requests as ``(role, user_id)``."""

    def _login(role_name: models.RoleName, user_id: int = ADMIN_ID):
        app.dependency_overrides[deps.get_current_user] = lambda: _stub_user(role_name, user_id)

    return _login


@pytest.fixture
def seeded(db_session):
    """Roles, an admin, a deal owner with one draft deal, and two funding partners."""

    roles = {}
    for role_id, name in enumerate(models.RoleName, start=1):
        role = models.Role(id=role_id, name=name)
        db_session.add(role)
        roles[name] = role
    db_session.flush()

    db_session.add_all(
        [
            models.User(id=ADMIN_ID, email="admin@test.com", name="Admin", role_id=roles[models.RoleName.admin].id),
            models.User(id=OWNER_ID, email="owner@test.com", name="Owner", role_id=roles[models.RoleName.client].id),
            models.User(
                id=OPTIMA_USER_ID,
                email="analyst@optima.test",
                name="Optima Analyst",
                role_id=roles[models.RoleName.partner].id,
            ),
            models.User(
                id=NORTHWIND_USER_ID,
                email="analyst@northwind.test",
                name="Northwind Analyst",
                role_id=roles[models.RoleName.partner].id,
            ),
        ]
    )
    db_session.flush()

    company = models.Company(name="Acme Lending", owner_id=OWNER_ID, industry="Specialty finance")
    db_session.add(company)
    db_session.flush()

    deal = models.Deal(
        company_id=company.id,
        qualification_code="QC-2026-0001",
        stage=models.DealStage.draft,
        funding_amount="$2.5M",
        asset_classes=["Consumer Loans"],
        geographies=["United States"],
        overall_score=85,
    )
    optima = models.FundingPartner(
        name="Optima Capital", slug="optima", primary_contact_email="deals@optima.test"
    )
    northwind = models.FundingPartner(
        name="Northwind Credit", slug="northwind", primary_contact_email="deals@northwind.test"
    )
    db_session.add_all([deal, optima, northwind])
    db_session.flush()

    db_session.add_all(
        [
            models.PartnerMember(partner_id=optima.id, user_id=OPTIMA_USER_ID),
            models.PartnerMember(partner_id=northwind.id, user_id=NORTHWIND_USER_ID),
        ]
    )
    db_session.commit()

    return SimpleNamespace(
        admin_id=ADMIN_ID,
        owner_id=OWNER_ID,
        optima_user_id=OPTIMA_USER_ID,
        northwind_user_id=NORTHWIND_USER_ID,
        deal_id=deal.id,
        company_id=company.id,
        optima_id=optima.id,
        northwind_id=northwind.id,
    )
