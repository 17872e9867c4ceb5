"""Submission service - validation, persistence and follow-up actions"""

import base64
import json
import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit

from starlette.concurrency import run_in_threadpool

from school_intake.backends.upload_client import UploadFile, UploadRelayClient
from school_intake.errors import NotFoundError, ValidationError
from school_intake.services.email_service import EmailService
from school_intake.services.form_registry import FormDefinition, FormRegistry
from school_intake.services.message_service import MessageService
from school_intake.services.submission_repository import SubmissionRepository
from school_intake.services.token_service import PdfTokenService
from school_intake.utils.data_formatter import CONSENT_PREFIX
from school_intake.validators import (
    EMAIL_FIELD_ALIASES,
    NAME_FIELD_ALIASES,
    SubmissionValidator,
    pick_first,
)

logger = logging.getLogger(__name__)

PDF_DOWNLOAD_PATH = "pdf/download"


def clean_consent_fields(data: Mapping[str, Any]) -> dict[str, Any]:
    """Consent checkboxes are required by the form but never stored"""
    return {k: v for k, v in data.items() if not k.startswith(CONSENT_PREFIX)}


class SubmissionService:
    """Runs one submission through validation, storage, uploads, PDF token and email"""

    def __init__(
        self,
        repository: SubmissionRepository,
        form_registry: FormRegistry,
        messages: MessageService,
        email_service: Optional[EmailService] = None,
        token_service: Optional[PdfTokenService] = None,
        upload_client: Optional[UploadRelayClient] = None,
        default_notify_email: Optional[str] = None,
    ):
        self.repository = repository
        self.forms = form_registry
        self.messages = messages
        self.email_service = email_service
        self.token_service = token_service
        self.upload_client = upload_client
        self.default_notify_email = default_notify_email

    async def process_submission(
        self,
        form_key: Optional[str],
        data: Any,
        metadata: Optional[Mapping[str, Any]] = None,
        files: Optional[list[UploadFile]] = None,
        name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Process one submission.

        Returns:
            {"success": True, "id": int, "warnings": [...], "pdf_download"?: {...}}

        Raises:
            ValidationError: Missing form key, empty data or invalid core fields
            NotFoundError: Unknown form key (mapped to 400)
            StorageError: Insert failed
        """
        if not form_key:
            raise ValidationError(self.messages.get("errors.missing_form_key"))
        if not isinstance(form_key, str):
            raise ValidationError(self.messages.get("errors.invalid_form_key"))
        if not self.forms.exists(form_key):
            raise NotFoundError(self.messages.get("errors.unknown_form"), 400)
        if not isinstance(data, dict) or not data:
            raise ValidationError(self.messages.get("errors.invalid_data"))
        if metadata is not None and not isinstance(metadata, dict):
            raise ValidationError(self.messages.get("errors.invalid_metadata"))

        metadata = metadata or {}
        form = self.forms.get(form_key)
        data = clean_consent_fields(data)

        name = name or pick_first(data, NAME_FIELD_ALIASES)
        email = email or pick_first(data, EMAIL_FIELD_ALIASES)

        validator = SubmissionValidator()
        if not validator.validate({"formular": form_key, "name": name, "email": email}):
            raise ValidationError(
                self.messages.format(
                    "errors.validation_failed", {"error": validator.first_error}
                )
            )

        # The validator only accepts strings, so these are the stored values
        name = name.strip()
        email = email.strip()
        version = metadata.get("version")

        warnings: list[str] = []

        if form.db:
            submission_id = self.repository.insert(
                {
                    "form_key": form_key,
                    "form_version": str(version) if version else form.version,
                    "name": name,
                    "email": email,
                    "data": data,
                    "pdf_config": form.pdf.model_dump() if form.pdf else None,
                }
            )
            logger.info(
                f"New submission: id={submission_id}, form={form_key}, email={email}"
            )
        else:
            logger.info(f"Form submission (no DB): {form_key}")
            submission_id = 0

        response: dict[str, Any] = {"success": True, "id": submission_id}

        if files and submission_id:
            warnings.extend(await self._relay_files(submission_id, files))

        if submission_id:
            pdf_download = self._pdf_download(submission_id, form)
            if pdf_download is not None:
                response["pdf_download"] = pdf_download

        if not await self._notify(form_key, data):
            recipients = self._recipients(form_key)
            if recipients:
                warnings.append(self.messages.get("warnings.notification_failed"))

        response["warnings"] = warnings
        return response

    async def _relay_files(self, submission_id: int, files: list[UploadFile]) -> list[str]:
        if self.upload_client is None:
            logger.warning(
                f"Files received for submission {submission_id} but no upload relay is configured"
            )
            return [self.messages.get("warnings.upload_failed")]

        result = await run_in_threadpool(self.upload_client.upload_files, submission_id, files)
        if not result["success"]:
            logger.error(f"File upload failed for submission {submission_id}: {result['failed']}")
            return [self.messages.get("warnings.upload_failed")]
        return []

    def _pdf_download(self, submission_id: int, form: FormDefinition) -> Optional[dict]:
        pdf_config = form.pdf
        if pdf_config is None or not pdf_config.enabled:
            return None
        if self.token_service is None:
            logger.error("PDF is enabled but no token service is configured")
            return None

        lifetime = pdf_config.token_lifetime or self.token_service.lifetime
        token = self.token_service.issue(submission_id, lifetime)
        return {
            "enabled": True,
            "required": pdf_config.required,
            "url": f"{PDF_DOWNLOAD_PATH}?{urlencode({'token': token})}",
            "title": pdf_config.download_title,
            "expires_in": lifetime,
        }

    def _recipients(self, form_key: str) -> Optional[str]:
        return self.forms.notification_recipients(form_key) or self.default_notify_email

    async def _notify(self, form_key: str, data: Mapping[str, Any]) -> bool:
        """Send the notification email. Failures are logged, never raised."""
        recipients = self._recipients(form_key)
        if not recipients or self.email_service is None:
            return False
        try:
            return await self.email_service.send_notification(recipients, form_key, data)
        except Exception as e:
            logger.error(f"Email notification failed for form {form_key}: {e}")
            return False

    def generate_prefill_link(
        self, form_key: str, submitted_data: Mapping[str, Any], page_url: str
    ) -> Optional[str]:
        """
        Link that re-opens the form with selected fields filled in.

        The configured prefill fields are passed as base64-encoded JSON in the
        `prefill` query parameter.
        """
        prefill_fields = self.forms.get(form_key).prefill_fields
        if not prefill_fields:
            return None

        prefill_data = {k: submitted_data[k] for k in prefill_fields if k in submitted_data}
        if not prefill_data:
            return None

        encoded = base64.b64encode(
            json.dumps(prefill_data, ensure_ascii=False).encode("utf-8")
        ).decode("ascii")
        parts = urlsplit(page_url)
        query = urlencode({"form": form_key, "prefill": encoded})
        return urlunsplit((parts.scheme or "https", parts.netloc, parts.path or "/", query, ""))
