"""Shared test configuration and fixtures for School Intake tests"""

import logging
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from school_intake.main import create_app
from school_intake.models import SubmissionRecord  # noqa: F401
from school_intake.services.email_service import EmailService
from school_intake.services.form_registry import FormRegistry
from school_intake.services.message_service import MessageService
from school_intake.services.pdf_generator import PdfGeneratorService
from school_intake.services.pdf_renderer import PdfTemplateRenderer
from school_intake.services.submission_repository import SubmissionRepository
from school_intake.services.submission_service import SubmissionService
from school_intake.services.token_service import PdfTokenService
from tests.config import test_config
from tests.fakes import FakeEmailClient

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@pytest.fixture
def _engine():
    """In-memory SQLite engine shared across threads for one test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def _db_session(_engine):
    """Private DB session for fixtures only.

    Do not use this fixture directly in tests. Prefer higher-level service
    fixtures like `submission_repository` or `submission_service`.
    """
    session = Session(_engine)

    yield session

    session.close()


@pytest.fixture
def submission_repository(_db_session):
    """Create a SubmissionRepository instance for testing"""
    return SubmissionRepository(_db_session)


@pytest.fixture
def form_registry():
    return FormRegistry.from_file(
        test_config["forms_config_file"], test_config["surveys_dir"]
    )


@pytest.fixture
def messages():
    return MessageService.from_files(contact_text=test_config["contact_text"])


@pytest.fixture
def token_service():
    return PdfTokenService(
        test_config["pdf_token_secret"], lifetime=test_config["pdf_token_lifetime"]
    )


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def email_service(email_client):
    return EmailService(
        test_config,
        email_client=email_client,
        now=lambda: datetime(2025, 3, 14, 9, 30, 0),
    )


@pytest.fixture
def pdf_generator():
    return PdfGeneratorService(
        PdfTemplateRenderer(now=lambda: datetime(2025, 3, 14, 9, 30, 0))
    )


@pytest.fixture
def submission_service(
    submission_repository, form_registry, messages, email_service, token_service
):
    """Create a SubmissionService wired to the test database and fake mail client"""
    return SubmissionService(
        repository=submission_repository,
        form_registry=form_registry,
        messages=messages,
        email_service=email_service,
        token_service=token_service,
    )


@pytest.fixture
def app(_engine, email_service):
    """Application built from the test config, backed by the shared test engine"""
    application = create_app(dict(test_config))
    application.state.engine.dispose()
    application.state.engine = _engine
    application.state.email_service = email_service
    return application


@pytest.fixture
def client(app):
    """TestClient for the test application"""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def rate_limited_client(_engine, email_service):
    """TestClient for an application that allows two submissions per minute"""
    application = create_app(
        {**test_config, "rate_limit_enabled": True, "rate_limit_max": 2, "rate_limit_window": 60}
    )
    application.state.engine.dispose()
    application.state.engine = _engine
    application.state.email_service = email_service
    with TestClient(application) as test_client:
        yield test_client
