"""Survey schema delivery for the front-end renderer"""

from fastapi import APIRouter, Depends

from school_intake.dependencies import get_form_registry, get_messages
from school_intake.errors import NotFoundError
from school_intake.services.form_registry import FormRegistry
from school_intake.services.message_service import MessageService

router = APIRouter()


@router.get("/api/forms/{form_key}")
def get_form(
    form_key: str,
    forms: FormRegistry = Depends(get_form_registry),
    messages: MessageService = Depends(get_messages),
):
    if not forms.exists(form_key):
        raise NotFoundError(messages.get("errors.unknown_form"))

    definition = forms.get(form_key)
    schema = forms.load_schema(form_key)
    return {
        "form_key": form_key,
        "version": definition.version,
        "schema": schema["schema"],
        "theme": schema["theme"],
        "pdf_enabled": bool(definition.pdf and definition.pdf.enabled),
    }
