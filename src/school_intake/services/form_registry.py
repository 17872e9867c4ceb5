"""Form Registry - maps form keys to survey schema, theme and PDF settings"""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from school_intake.errors import ConfigError, NotFoundError
from school_intake.utils.email_address import is_valid_email

logger = logging.getLogger(__name__)


class PdfSection(BaseModel):
    title: str = ""
    content: str = ""


class PdfConfig(BaseModel):
    """Per-form settings for the confirmation PDF"""

    enabled: bool = False
    required: bool = False
    title: str = "Registration confirmation"
    download_title: str = "Download confirmation as PDF"
    # None falls back to PDF_TOKEN_LIFETIME
    token_lifetime: Optional[int] = None
    logo: Optional[str] = None
    header_title: str = "Registration confirmation"
    intro_text: Optional[str] = None
    footer_text: Optional[str] = None
    include_fields: Union[str, list[str]] = "all"
    exclude_fields: list[str] = Field(default_factory=list)
    pre_sections: list[PdfSection] = Field(default_factory=list)
    post_sections: list[PdfSection] = Field(default_factory=list)


class FormDefinition(BaseModel):
    form: str
    theme: str
    version: str = "1.0.0"
    db: bool = True
    notify_email: Union[str, list[str], None] = None
    prefill_fields: list[str] = Field(default_factory=list)
    pdf: Optional[PdfConfig] = None


class FormRegistry:
    """Read-only view over the forms configuration file"""

    def __init__(self, forms: dict[str, FormDefinition], surveys_dir: Path):
        self.forms = forms
        self.surveys_dir = Path(surveys_dir)

    @classmethod
    def from_file(cls, path: Union[str, Path], surveys_dir: Union[str, Path]):
        """
        Load form definitions from a JSON file.

        Raises:
            ConfigError: If the file is missing or malformed
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError(f"Forms configuration file not found: {path}", 500)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ConfigError(f"Forms configuration is not valid JSON: {e}", 500)
        return cls.from_dict(raw, surveys_dir)

    @classmethod
    def from_dict(cls, raw: dict[str, Any], surveys_dir: Union[str, Path]):
        forms = {}
        for key, definition in raw.items():
            try:
                forms[key] = FormDefinition.model_validate(definition)
            except PydanticValidationError as e:
                raise ConfigError(f"Invalid configuration for form '{key}': {e}", 500)
        logger.info(f"Loaded {len(forms)} form definitions")
        return cls(forms, Path(surveys_dir))

    def exists(self, form_key: str) -> bool:
        return form_key in self.forms

    def keys(self) -> list[str]:
        return list(self.forms)

    def get(self, form_key: str) -> FormDefinition:
        """
        Raises:
            NotFoundError: If the form key is unknown
        """
        form = self.forms.get(form_key)
        if form is None:
            raise NotFoundError("Unknown form")
        return form

    def validate_definition(self, form_key: str) -> bool:
        form = self.forms.get(form_key)
        return form is not None and bool(form.form) and bool(form.theme)

    def version(self, form_key: str) -> str:
        return self.get(form_key).version

    def should_save_to_db(self, form_key: str) -> bool:
        form = self.forms.get(form_key)
        return form is not None and form.db

    def pdf_config(self, form_key: str) -> Optional[PdfConfig]:
        return self.get(form_key).pdf

    def notification_recipients(self, form_key: str) -> Optional[str]:
        """
        Comma-separated notification recipients for a form.

        Returns None when nothing is configured or when any address is invalid.
        """
        form = self.forms.get(form_key)
        if form is None or not form.notify_email:
            return None

        if isinstance(form.notify_email, list):
            recipients = [r.strip() for r in form.notify_email]
        else:
            recipients = [r.strip() for r in form.notify_email.split(",")]
        recipients = [r for r in recipients if r]

        for recipient in recipients:
            if not is_valid_email(recipient):
                logger.error(
                    f"Invalid address in notify_email for form '{form_key}': {recipient}"
                )
                return None

        return ", ".join(recipients) if recipients else None

    def load_schema(self, form_key: str) -> dict[str, Any]:
        """
        Load the survey schema and theme JSON for the front-end renderer.

        Raises:
            NotFoundError: Unknown form key
            ConfigError: Schema or theme file missing or malformed
        """
        form = self.get(form_key)
        return {
            "schema": self._read_json(form.form),
            "theme": self._read_json(form.theme),
        }

    def _read_json(self, filename: str) -> Any:
        path = self.surveys_dir / filename
        if not path.exists():
            logger.error(f"Survey file not found: {path}")
            raise ConfigError("Form is not configured", 500)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.exception(f"Survey file is not valid JSON: {path}")
            raise ConfigError("Form is not configured", 500)
