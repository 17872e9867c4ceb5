"""Tests for submission processing"""

import base64
import json
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest

from school_intake.backends.upload_client import UploadFile, UploadRelayClient
from school_intake.errors import NotFoundError, ValidationError
from school_intake.services.form_registry import FormRegistry
from school_intake.services.submission_service import SubmissionService, clean_consent_fields
from tests.config import test_config

SURVEY_DATA = {
    "name": "Max Mustermann",
    "email": "max@gmail.com",
    "parent_name": "Erika Mustermann",
    "grade": "5",
    "consent_privacy": True,
}


class TestSubmissionService:
    """Test the complete submission flow against the test database"""

    @pytest.mark.asyncio
    async def test_process_submission(self, submission_service, submission_repository, email_client):
        result = await submission_service.process_submission(
            "registration_2025", dict(SURVEY_DATA), {"version": "2.1"}
        )

        assert result["success"] is True
        assert result["id"] > 0
        assert result["warnings"] == []

        stored = submission_repository.find_by_id(result["id"])
        assert stored.name == "Max Mustermann"
        assert stored.email == "max@gmail.com"
        assert stored.form_version == "2.1"
        assert "consent_privacy" not in stored.data
        assert stored.pdf_config["enabled"] is True

        assert len(email_client.sent) == 1
        assert email_client.sent[0]["to"] == "office@school.org"

    @pytest.mark.asyncio
    async def test_pdf_download_block(self, submission_service, token_service):
        result = await submission_service.process_submission("registration_2025", dict(SURVEY_DATA))

        pdf_download = result["pdf_download"]
        assert pdf_download["enabled"] is True
        assert pdf_download["required"] is False
        assert pdf_download["expires_in"] == 3600
        assert pdf_download["url"].startswith("pdf/download?token=")

        token = parse_qs(urlsplit(pdf_download["url"]).query)["token"][0]
        assert token_service.validate(token) == result["id"]

    @pytest.mark.asyncio
    async def test_form_version_defaults_to_configured_version(
        self, submission_service, submission_repository
    ):
        result = await submission_service.process_submission("registration_2025", dict(SURVEY_DATA))

        assert submission_repository.find_by_id(result["id"]).form_version == "1.0.0"

    @pytest.mark.asyncio
    async def test_no_pdf_for_disabled_form(self, submission_service):
        result = await submission_service.process_submission("no_pdf_form", dict(SURVEY_DATA))

        assert result["id"] > 0
        assert "pdf_download" not in result

    @pytest.mark.asyncio
    async def test_form_without_database(self, submission_service, submission_repository):
        result = await submission_service.process_submission("no_db_form", dict(SURVEY_DATA))

        assert result["success"] is True
        assert result["id"] == 0
        assert submission_repository.find_all_form_keys() == []

    @pytest.mark.asyncio
    async def test_name_and_email_from_aliases(self, submission_service, submission_repository):
        result = await submission_service.process_submission(
            "registration_2025", {"Name": "Anna Schmidt", "E-Mail": "anna@gmail.com"}
        )

        stored = submission_repository.find_by_id(result["id"])
        assert stored.name == "Anna Schmidt"
        assert stored.email == "anna@gmail.com"

    @pytest.mark.asyncio
    async def test_explicit_name_and_email_win(self, submission_service, submission_repository):
        result = await submission_service.process_submission(
            "registration_2025", dict(SURVEY_DATA), name="Moritz", email="moritz@gmail.com"
        )

        stored = submission_repository.find_by_id(result["id"])
        assert stored.name == "Moritz"
        assert stored.email == "moritz@gmail.com"

    @pytest.mark.asyncio
    async def test_missing_form_key(self, submission_service):
        with pytest.raises(ValidationError, match="Missing form_key"):
            await submission_service.process_submission("", dict(SURVEY_DATA))

    @pytest.mark.asyncio
    async def test_unknown_form(self, submission_service):
        with pytest.raises(NotFoundError) as exc_info:
            await submission_service.process_submission("unknown", dict(SURVEY_DATA))

        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("data", [None, {}, ["name"], "name=Max"])
    async def test_invalid_data(self, submission_service, data):
        with pytest.raises(ValidationError):
            await submission_service.process_submission("registration_2025", data)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("form_key", [{"k": 1}, ["registration_2025"], 42])
    async def test_non_string_form_key(self, submission_service, form_key):
        with pytest.raises(ValidationError, match="Invalid form_key"):
            await submission_service.process_submission(form_key, dict(SURVEY_DATA))

    @pytest.mark.asyncio
    @pytest.mark.parametrize("metadata", [["v2"], "v2", 2])
    async def test_non_object_metadata(self, submission_service, submission_repository, metadata):
        with pytest.raises(ValidationError, match="Invalid metadata"):
            await submission_service.process_submission(
                "registration_2025", dict(SURVEY_DATA), metadata
            )

        assert submission_repository.find_all_form_keys() == []

    @pytest.mark.asyncio
    async def test_structured_name_is_rejected(self, submission_service, submission_repository):
        data = {"Name": {"first": "x" * 400, "last": "y"}, "email": "max@gmail.com"}

        with pytest.raises(ValidationError) as exc_info:
            await submission_service.process_submission("registration_2025", data)

        assert exc_info.value.message == "Validation failed: Name must be text"
        assert submission_repository.find_all_form_keys() == []

    @pytest.mark.asyncio
    async def test_stored_name_and_email_are_trimmed(
        self, submission_service, submission_repository
    ):
        result = await submission_service.process_submission(
            "registration_2025", {"name": "  Max Mustermann ", "email": " max@gmail.com "}
        )

        stored = submission_repository.find_by_id(result["id"])
        assert stored.name == "Max Mustermann"
        assert stored.email == "max@gmail.com"

    @pytest.mark.asyncio
    async def test_configured_token_lifetime_is_the_default(
        self, submission_repository, messages, email_service, token_service
    ):
        """Forms without their own token_lifetime use PDF_TOKEN_LIFETIME"""
        registry = FormRegistry.from_dict(
            {
                "registration_2025": {
                    "form": "registration_2025.json",
                    "theme": "theme.json",
                    "pdf": {"enabled": True},
                }
            },
            test_config["surveys_dir"],
        )
        token_service.lifetime = 900
        service = SubmissionService(
            submission_repository,
            registry,
            messages,
            email_service=email_service,
            token_service=token_service,
        )

        result = await service.process_submission("registration_2025", dict(SURVEY_DATA))

        assert result["pdf_download"]["expires_in"] == 900

    @pytest.mark.asyncio
    async def test_validation_error_message(self, submission_service, submission_repository):
        with pytest.raises(ValidationError) as exc_info:
            await submission_service.process_submission(
                "registration_2025", {"name": "Max", "email": "max@"}
            )

        assert exc_info.value.message == "Validation failed: Invalid email address"
        assert submission_repository.find_all_form_keys() == []

    @pytest.mark.asyncio
    async def test_notification_failure_is_a_warning(self, submission_service, email_client):
        email_client.fail = True

        result = await submission_service.process_submission("registration_2025", dict(SURVEY_DATA))

        assert result["success"] is True
        assert result["warnings"] == ["The notification email could not be sent"]

    @pytest.mark.asyncio
    async def test_default_notify_email(
        self, submission_repository, form_registry, messages, email_service, email_client
    ):
        service = SubmissionService(
            submission_repository,
            form_registry,
            messages,
            email_service=email_service,
            default_notify_email="fallback@school.org",
        )

        await service.process_submission("no_db_form", dict(SURVEY_DATA))

        assert email_client.sent[0]["to"] == "fallback@school.org"

    @pytest.mark.asyncio
    async def test_missing_token_service_skips_pdf(
        self, submission_repository, form_registry, messages, email_service
    ):
        service = SubmissionService(
            submission_repository, form_registry, messages, email_service=email_service
        )

        result = await service.process_submission("registration_2025", dict(SURVEY_DATA))

        assert result["success"] is True
        assert "pdf_download" not in result

    @pytest.mark.asyncio
    async def test_files_are_relayed(
        self, submission_repository, form_registry, messages, email_service
    ):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request.read())
            return httpx.Response(200)

        service = SubmissionService(
            submission_repository,
            form_registry,
            messages,
            email_service=email_service,
            upload_client=UploadRelayClient(
                "https://files.school.org/upload", transport=httpx.MockTransport(handler)
            ),
        )

        result = await service.process_submission(
            "registration_2025",
            dict(SURVEY_DATA),
            files=[UploadFile("documents", "report.pdf", b"%PDF-1.4", "application/pdf")],
        )

        assert result["warnings"] == []
        assert len(received) == 1
        assert f'\r\n\r\n{result["id"]}\r\n'.encode() in received[0]

    @pytest.mark.asyncio
    async def test_failed_upload_is_a_warning(
        self, submission_repository, form_registry, messages, email_service
    ):
        service = SubmissionService(
            submission_repository,
            form_registry,
            messages,
            email_service=email_service,
            upload_client=UploadRelayClient(
                "https://files.school.org/upload",
                transport=httpx.MockTransport(lambda request: httpx.Response(503)),
            ),
        )

        result = await service.process_submission(
            "registration_2025",
            dict(SURVEY_DATA),
            files=[UploadFile("documents", "report.pdf", b"%PDF-1.4", "application/pdf")],
        )

        assert result["success"] is True
        assert result["warnings"] == ["Some files could not be uploaded"]


class TestPrefillLink:
    def test_prefill_link(self, submission_service):
        link = submission_service.generate_prefill_link(
            "registration_2025", SURVEY_DATA, "https://www.school.org/register?old=1#top"
        )

        parts = urlsplit(link)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://www.school.org/register"
        query = parse_qs(parts.query)
        assert query["form"] == ["registration_2025"]
        prefill = json.loads(base64.b64decode(query["prefill"][0]))
        assert prefill == {"parent_name": "Erika Mustermann", "email": "max@gmail.com"}

    def test_no_prefill_fields_configured(self, submission_service):
        assert (
            submission_service.generate_prefill_link(
                "no_pdf_form", SURVEY_DATA, "https://www.school.org/"
            )
            is None
        )

    def test_no_matching_values(self, submission_service):
        assert (
            submission_service.generate_prefill_link(
                "registration_2025", {"grade": "5"}, "https://www.school.org/"
            )
            is None
        )


def test_clean_consent_fields():
    assert clean_consent_fields({"name": "Max", "consent_privacy": True, "consent_photos": False}) == {
        "name": "Max"
    }
