"""Test-specific configuration for School Intake tests"""

from pathlib import Path

fixtures_dir = Path(__file__).parent / "fixtures"

# Test configuration dictionary
test_config = {
    "app_env": "testing",
    "debug": False,
    "port": 8082,
    "database_url": "sqlite://",
    "session_secret_key": "test-session-secret-key-0123456789abcdef",
    "session_lifetime": 1800,
    "session_secure": False,
    "log_level": "INFO",
    "log_file": None,
    "allowed_origins": ["https://www.school.org"],
    "from_email": "noreply@school.org",
    "notify_email": None,
    "mail_head": "A new registration has been submitted.",
    "mail_foot": "Automatically generated",
    "mailgun_api_key": None,
    "mailgun_domain": None,
    "pdf_token_secret": "test-pdf-token-secret-0123456789abcdef",
    "pdf_token_lifetime": 1800,
    "rate_limit_enabled": False,
    "rate_limit_max": 10,
    "rate_limit_window": 60,
    "forms_config_file": str(fixtures_dir / "forms.json"),
    "surveys_dir": str(fixtures_dir / "surveys"),
    "messages_file": None,
    "contact_text": "Please contact the school office.",
    "upload_relay_url": None,
    "upload_timeout": 5.0,
}
