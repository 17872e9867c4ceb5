"""Submission endpoints: JSON API and the browser form flow"""

import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from school_intake.backends import upload_client
from school_intake.dependencies import (
    enforce_rate_limit,
    get_messages,
    get_submission_service,
)
from school_intake.errors import AuthError, ValidationError
from school_intake.services import csrf
from school_intake.services.message_service import MessageService
from school_intake.services.submission_service import SubmissionService
from school_intake.validators import pick_first

router = APIRouter()

logger = logging.getLogger(__name__)


def _parse_json_field(raw, messages: MessageService, default=None):
    if not raw:
        return default
    if not isinstance(raw, str):
        raise ValidationError(messages.get("errors.invalid_json"))
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError(messages.get("errors.invalid_json"))


@router.post("/api/submit", status_code=201, dependencies=[Depends(enforce_rate_limit)])
async def submit(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
    messages: MessageService = Depends(get_messages),
):
    """
    Accept a submission as JSON.

    Body: {"form_key": str, "data": {...}, "metadata"?: {...}, "name"?: str, "email"?: str}
    """
    try:
        payload = await request.json()
    except json.JSONDecodeError:
        raise ValidationError(messages.get("errors.invalid_json"))
    if not isinstance(payload, dict):
        raise ValidationError(messages.get("errors.invalid_json"))

    result = await service.process_submission(
        form_key=pick_first(payload, ("form_key", "formKey")),
        data=payload.get("data"),
        metadata=payload.get("metadata"),
        name=payload.get("name"),
        email=payload.get("email"),
    )
    return JSONResponse(status_code=201, content=result)


@router.post("/save", dependencies=[Depends(enforce_rate_limit)])
async def save(
    request: Request,
    service: SubmissionService = Depends(get_submission_service),
    messages: MessageService = Depends(get_messages),
):
    """
    Accept a submission from the survey front-end.

    Form fields: form, survey_data (JSON), meta (JSON), csrf_token and any
    number of file parts.
    """
    form_data = await request.form()

    if not csrf.validate(request.session, form_data.get("csrf_token")):
        logger.warning("Rejected submission with missing or invalid CSRF token")
        raise AuthError(messages.get("errors.csrf_invalid"))

    form_key = form_data.get("form")
    survey_data = _parse_json_field(form_data.get("survey_data"), messages)
    meta = _parse_json_field(form_data.get("meta"), messages, default={})

    files = []
    for field_name, value in form_data.multi_items():
        if isinstance(value, UploadFile) and value.filename:
            files.append(
                upload_client.UploadFile(
                    field_name=field_name,
                    filename=value.filename,
                    content=await value.read(),
                    content_type=value.content_type or "application/octet-stream",
                )
            )

    result = await service.process_submission(
        form_key=form_key,
        data=survey_data,
        metadata=meta,
        files=files,
    )

    page_url = request.headers.get("referer") or str(request.base_url)
    result["prefill_link"] = service.generate_prefill_link(form_key, survey_data, page_url)
    result["csrf_token"] = csrf.regenerate(request.session)
    return result


@router.get("/csrf_token")
async def csrf_token(request: Request):
    """Issue (or return the existing) CSRF token for this session"""
    return {"token": csrf.get_token(request.session)}
