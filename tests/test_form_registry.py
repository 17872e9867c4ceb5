"""Tests for the form schema registry"""

import json

import pytest

from school_intake.errors import ConfigError, NotFoundError
from school_intake.services.form_registry import FormRegistry


class TestFormRegistry:
    """Test form lookups against the fixture configuration"""

    def test_exists_and_keys(self, form_registry):
        assert form_registry.exists("registration_2025")
        assert not form_registry.exists("unknown")
        assert "no_pdf_form" in form_registry.keys()

    def test_get_unknown_form(self, form_registry):
        with pytest.raises(NotFoundError):
            form_registry.get("unknown")

    def test_defaults(self, form_registry):
        form = form_registry.get("no_pdf_form")

        assert form.version == "1.0.0"
        assert form.db is True
        assert form.pdf is None
        assert form_registry.version("registration_2025") == "1.0.0"
        assert form_registry.pdf_config("no_pdf_form") is None

    def test_pdf_config(self, form_registry):
        pdf_config = form_registry.pdf_config("registration_2025")

        assert pdf_config.enabled is True
        assert pdf_config.token_lifetime == 3600
        assert pdf_config.exclude_fields == ["internal_note"]
        assert pdf_config.include_fields == "all"

    def test_should_save_to_db(self, form_registry):
        assert form_registry.should_save_to_db("registration_2025")
        assert not form_registry.should_save_to_db("no_db_form")
        assert not form_registry.should_save_to_db("unknown")

    def test_notification_recipients(self, tmp_path):
        registry = FormRegistry.from_dict(
            {
                "single": {"form": "f.json", "theme": "t.json", "notify_email": "a@gmail.com"},
                "string_list": {
                    "form": "f.json",
                    "theme": "t.json",
                    "notify_email": "a@gmail.com, b@gmail.com",
                },
                "list": {
                    "form": "f.json",
                    "theme": "t.json",
                    "notify_email": ["a@gmail.com", "b@gmail.com"],
                },
                "invalid": {
                    "form": "f.json",
                    "theme": "t.json",
                    "notify_email": "a@gmail.com, not-valid",
                },
                "empty": {"form": "f.json", "theme": "t.json", "notify_email": ""},
            },
            tmp_path,
        )

        assert registry.notification_recipients("single") == "a@gmail.com"
        assert registry.notification_recipients("string_list") == "a@gmail.com, b@gmail.com"
        assert registry.notification_recipients("list") == "a@gmail.com, b@gmail.com"
        assert registry.notification_recipients("invalid") is None
        assert registry.notification_recipients("empty") is None
        assert registry.notification_recipients("unknown") is None

    def test_load_schema(self, form_registry):
        schema = form_registry.load_schema("registration_2025")

        assert schema["schema"]["title"] == "Registration 2025/26"
        assert schema["theme"]["themeName"] == "default"

    def test_load_schema_missing_file(self, form_registry):
        with pytest.raises(ConfigError):
            form_registry.load_schema("broken_form")

    def test_validate_definition(self, form_registry):
        assert form_registry.validate_definition("registration_2025")
        assert not form_registry.validate_definition("unknown")

    def test_missing_config_file(self, tmp_path):
        with pytest.raises(ConfigError):
            FormRegistry.from_file(tmp_path / "nope.json", tmp_path)

    def test_malformed_config_file(self, tmp_path):
        path = tmp_path / "forms.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(ConfigError):
            FormRegistry.from_file(path, tmp_path)

    def test_invalid_definition(self, tmp_path):
        path = tmp_path / "forms.json"
        path.write_text(json.dumps({"bad": {"theme": "t.json"}}), encoding="utf-8")

        with pytest.raises(ConfigError):
            FormRegistry.from_file(path, tmp_path)
