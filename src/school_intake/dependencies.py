"""FastAPI dependency providers backed by the objects built in create_app()"""

from fastapi import Depends, Request
from sqlmodel import Session

from school_intake.errors import RateLimitError
from school_intake.logging_config import get_logger
from school_intake.models.database import get_db
from school_intake.services.form_registry import FormRegistry
from school_intake.services.message_service import MessageService
from school_intake.services.pdf_generator import PdfGeneratorService
from school_intake.services.rate_limiter import client_identifier
from school_intake.services.submission_repository import SubmissionRepository
from school_intake.services.submission_service import SubmissionService
from school_intake.services.token_service import PdfTokenService

logger = get_logger(__name__)


def get_form_registry(request: Request) -> FormRegistry:
    return request.app.state.form_registry


def get_messages(request: Request) -> MessageService:
    return request.app.state.messages


def get_token_service(request: Request) -> PdfTokenService | None:
    return request.app.state.token_service


def get_pdf_generator(request: Request) -> PdfGeneratorService:
    return request.app.state.pdf_generator


def get_submission_repository(db: Session = Depends(get_db)) -> SubmissionRepository:
    return SubmissionRepository(db)


def get_submission_service(
    request: Request,
    repository: SubmissionRepository = Depends(get_submission_repository),
) -> SubmissionService:
    state = request.app.state
    return SubmissionService(
        repository=repository,
        form_registry=state.form_registry,
        messages=state.messages,
        email_service=state.email_service,
        token_service=state.token_service,
        upload_client=state.upload_client,
        default_notify_email=state.config.get("notify_email"),
    )


async def enforce_rate_limit(request: Request) -> None:
    """Reject the request with 429 once the client exceeds the submission limit"""
    limiter = request.app.state.rate_limiter
    if limiter is None:
        return
    identifier = client_identifier(request)
    if not limiter.hit(identifier):
        retry_after = limiter.retry_after(identifier)
        logger.warning(f"Rate limit exceeded for {identifier}, retry after {retry_after}s")
        raise RateLimitError(request.app.state.messages.get("errors.rate_limit"), retry_after)
