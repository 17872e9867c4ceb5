"""Confirmation PDF download"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.templating import Jinja2Templates

from school_intake.dependencies import (
    get_form_registry,
    get_messages,
    get_pdf_generator,
    get_submission_repository,
    get_token_service,
)
from school_intake.errors import (
    AuthError,
    ConfigError,
    IntakeError,
    NotFoundError,
    UnexpectedError,
    ValidationError,
)
from school_intake.services.form_registry import FormRegistry
from school_intake.services.message_service import MessageService
from school_intake.services.pdf_generator import PdfGeneratorService
from school_intake.services.submission_repository import SubmissionRepository
from school_intake.services.token_service import PdfTokenService

router = APIRouter(include_in_schema=False)

template_dir = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(template_dir))

logger = logging.getLogger(__name__)


def _error_page(request: Request, messages: MessageService, error: IntakeError):
    message = (
        error.message
        if error.expose_message
        else messages.with_contact("errors.unexpected_error")
    )
    return templates.TemplateResponse(
        request,
        "pdf_error.html",
        {
            "title": messages.get("errors.pdf.download_failed_title"),
            "message": message,
            "hint": messages.get("errors.pdf.download_failed_hint"),
        },
        status_code=error.status_code,
    )


@router.get("/pdf/download")
def download_pdf(
    request: Request,
    token: Optional[str] = None,
    repository: SubmissionRepository = Depends(get_submission_repository),
    forms: FormRegistry = Depends(get_form_registry),
    token_service: Optional[PdfTokenService] = Depends(get_token_service),
    pdf_generator: PdfGeneratorService = Depends(get_pdf_generator),
    messages: MessageService = Depends(get_messages),
):
    """
    Stream the confirmation PDF for the submission the token is bound to.

    Errors are rendered as an HTML page because the link is opened directly
    in the browser.
    """
    try:
        if not token:
            raise ValidationError(messages.get("errors.pdf.missing_token"))
        if token_service is None:
            raise ConfigError(messages.get("errors.pdf.not_enabled"))

        submission_id = token_service.validate(token)
        if submission_id is None:
            raise AuthError(messages.get("errors.pdf.invalid_token"))

        submission = repository.find_by_id(submission_id)
        if submission is None:
            raise NotFoundError(messages.get("errors.not_found"))

        if not forms.exists(submission.form_key):
            raise NotFoundError(messages.get("errors.unknown_form"), 400)

        pdf_config = forms.pdf_config(submission.form_key)
        if pdf_config is None or not pdf_config.enabled:
            raise ConfigError(messages.get("errors.pdf.not_enabled"))

        return pdf_generator.generate_and_download(submission, pdf_config)

    except IntakeError as e:
        if e.expose_message:
            logger.warning(f"PDF download refused ({e.status_code}): {e.message}")
        else:
            logger.error(f"PDF download failed: {e.message}")
        return _error_page(request, messages, e)
    except Exception as e:
        logger.exception(f"Unexpected error generating PDF: {e}")
        return _error_page(request, messages, UnexpectedError(str(e)))
