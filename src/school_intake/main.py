#!/usr/bin/env python3
"""School Intake - registration form backend"""

from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware
from starlette.middleware.sessions import SessionMiddleware

from school_intake.backends.upload_client import UploadRelayClient
from school_intake.config import get_config
from school_intake.errors import IntakeError, RateLimitError, StorageError
from school_intake.logging_config import get_logger, setup_logging
from school_intake.models.database import create_db_engine
from school_intake.routers import forms, messages, pdf, submissions
from school_intake.routers.health import health
from school_intake.services.email_service import EmailService
from school_intake.services.form_registry import FormRegistry
from school_intake.services.message_service import MessageService
from school_intake.services.pdf_generator import PdfGeneratorService
from school_intake.services.pdf_renderer import PdfTemplateRenderer
from school_intake.services.rate_limiter import SubmissionRateLimiter
from school_intake.services.token_service import PdfTokenService

logger = get_logger(__name__)


def create_app(app_config: Optional[dict] = None) -> FastAPI:
    """
    Build the application.

    Everything that lives for the whole process (engine, form registry,
    messages, services) is created here and kept on app.state.
    """
    if app_config is None:
        app_config = get_config()

    # Configure logging (INFO -> stdout, WARNING/ERROR -> stderr)
    setup_logging(app_config)

    app = FastAPI(
        title="School Intake",
        description="Registration form intake with confirmation PDFs and email notifications",
        version="1.0.0",
        debug=app_config.get("debug", False),
    )

    session_secret_key = app_config.get("session_secret_key")
    if not session_secret_key or len(session_secret_key) < 32:
        raise RuntimeError(
            "SESSION_SECRET_KEY must be set to a secure random string (>=32 characters)."
        )

    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret_key,
        max_age=app_config.get("session_lifetime", 1800),
        https_only=app_config.get("session_secure", True),
        same_site="lax",
    )

    # Only listed origins get Access-Control-Allow-Origin
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_config.get("allowed_origins", []),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With"],
        expose_headers=["Retry-After"],
    )

    form_registry = FormRegistry.from_file(
        app_config["forms_config_file"], app_config["surveys_dir"]
    )
    message_service = MessageService.from_files(
        app_config.get("messages_file"), app_config.get("contact_text", "")
    )

    token_service = None
    if app_config.get("pdf_token_secret"):
        token_service = PdfTokenService(
            app_config["pdf_token_secret"],
            lifetime=app_config.get("pdf_token_lifetime", 1800),
        )
    elif any(
        form_registry.pdf_config(key) and form_registry.pdf_config(key).enabled
        for key in form_registry.keys()
    ):
        logger.warning("PDF_TOKEN_SECRET is not set; PDF downloads are disabled")

    upload_client = None
    if app_config.get("upload_relay_url"):
        upload_client = UploadRelayClient(
            app_config["upload_relay_url"], timeout=app_config.get("upload_timeout", 30.0)
        )

    rate_limiter = None
    if app_config.get("rate_limit_enabled", True):
        rate_limiter = SubmissionRateLimiter(
            app_config.get("rate_limit_max", 10), app_config.get("rate_limit_window", 60)
        )

    app.state.config = app_config
    app.state.engine = create_db_engine(app_config)
    app.state.form_registry = form_registry
    app.state.messages = message_service
    app.state.token_service = token_service
    app.state.email_service = EmailService(app_config)
    app.state.upload_client = upload_client
    app.state.pdf_generator = PdfGeneratorService(PdfTemplateRenderer())
    app.state.rate_limiter = rate_limiter

    @app.exception_handler(IntakeError)
    async def intake_error_handler(request: Request, exc: IntakeError):
        if exc.expose_message:
            logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
            error = exc.message
        else:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
            error = (
                message_service.with_contact("errors.save_failed")
                if isinstance(exc, StorageError)
                else message_service.get("errors.internal_server_error")
            )
        if isinstance(exc, RateLimitError):
            return JSONResponse(
                status_code=exc.status_code,
                content={"success": False, "error": error, "retry_after": exc.retry_after},
                headers={"Retry-After": str(exc.retry_after)},
            )
        return JSONResponse(
            status_code=exc.status_code, content={"success": False, "error": error}
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": message_service.get("errors.internal_server_error"),
            },
        )

    # Include routers
    app.include_router(health)
    app.include_router(submissions.router)
    app.include_router(pdf.router)
    app.include_router(messages.router)
    app.include_router(forms.router)

    return app


if __name__ == "__main__":
    config = get_config()
    port = config["port"]
    logger.info(f"Starting School Intake on 0.0.0.0:{port}")
    logger.info("Health check available at /api/health")

    try:
        uvicorn.run(
            "school_intake.main:create_app",
            factory=True,
            host="0.0.0.0",
            port=port,
            log_level=config["log_level"].lower(),
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        raise
