"""Configuration loader for School Intake with .env support"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional

from dotenv import dotenv_values
from sqlalchemy.engine import URL

project_dir = Path(__file__).parent.parent.parent
package_dir = Path(__file__).parent
default_env_path = project_dir / ".env"

TRUE_VALUES = {"1", "true", "yes", "on"}


def read_env_file(path: Path) -> dict[str, str]:
    """
    Parse a KEY=VALUE environment file.

    Comments, blank lines and keys without a value are skipped. Surrounding
    quotes are removed by python-dotenv.

    Args:
        path: Location of the .env file

    Returns:
        Mapping of variable names to their string values
    """
    if not Path(path).exists():
        return {}
    return {k: v for k, v in dotenv_values(path).items() if v is not None}


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in TRUE_VALUES


def parse_list(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def load_config(
    environ: Optional[Mapping[str, str]] = None, env_file: Optional[Path] = None
) -> dict:
    """
    Build the configuration dictionary.

    Values from the process environment win over values from the env file.

    Args:
        environ: Environment mapping (defaults to os.environ)
        env_file: Optional .env file (defaults to <project>/.env)

    Returns:
        Configuration dictionary
    """
    env = dict(read_env_file(env_file or default_env_path))
    env.update(os.environ if environ is None else environ)

    def get(key: str, default: Optional[str] = None) -> Optional[str]:
        value = env.get(key)
        return default if value is None or value == "" else value

    app_env = get("APP_ENV", "production")

    return {
        "app_env": app_env,
        "port": int(get("PORT", "8000")),
        "debug": parse_bool(get("APP_DEBUG"), default=app_env == "development"),
        # Database
        "database_url": get("DATABASE_URL"),
        "db_driver": get("DB_DRIVER", "postgresql+psycopg2"),
        "db_host": get("DB_HOST", "localhost"),
        "db_port": int(get("DB_PORT", "5432")),
        "db_name": get("DB_NAME", "school_intake"),
        "db_user": get("DB_USER"),
        "db_password": get("DB_PASSWORD"),
        # Sessions / CSRF
        "session_secret_key": get("SESSION_SECRET_KEY"),
        "session_lifetime": int(get("SESSION_LIFETIME", "1800")),
        "session_secure": parse_bool(get("SESSION_SECURE"), default=True),
        # Logging
        "log_level": get("LOG_LEVEL", "INFO"),
        "log_file": get("LOG_FILE"),
        # CORS
        "allowed_origins": parse_list(get("ALLOWED_ORIGINS")),
        # Notifications
        "from_email": get("FROM_EMAIL", "noreply@example.com"),
        "notify_email": get("NOTIFY_EMAIL"),
        "mail_head": get("MAIL_HEAD", "A new registration has been submitted."),
        "mail_foot": get("MAIL_FOOT", ""),
        "mailgun_api_key": get("MAILGUN_API_KEY"),
        "mailgun_domain": get("MAILGUN_DOMAIN"),
        # PDF download tokens
        "pdf_token_secret": get("PDF_TOKEN_SECRET"),
        "pdf_token_lifetime": int(get("PDF_TOKEN_LIFETIME", "1800")),
        # Submission rate limit per client
        "rate_limit_enabled": parse_bool(get("RATE_LIMIT_ENABLED"), default=True),
        "rate_limit_max": int(get("RATE_LIMIT_MAX", "10")),
        "rate_limit_window": int(get("RATE_LIMIT_WINDOW", "60")),
        # Forms, surveys and messages
        "forms_config_file": get(
            "FORMS_CONFIG_FILE", str(project_dir / "config" / "forms.json")
        ),
        "surveys_dir": get("SURVEYS_DIR", str(project_dir / "surveys")),
        "messages_file": get("MESSAGES_FILE"),
        "contact_text": get("CONTACT_TEXT", ""),
        # File upload relay
        "upload_relay_url": get("UPLOAD_RELAY_URL"),
        "upload_timeout": float(get("UPLOAD_TIMEOUT", "30")),
    }


def database_url(config: dict) -> str | URL:
    """Return DATABASE_URL if set, otherwise assemble it from the DB_* parts"""
    if config.get("database_url"):
        return config["database_url"]
    return URL.create(
        config["db_driver"],
        username=config.get("db_user"),
        password=config.get("db_password"),
        host=config.get("db_host"),
        port=config.get("db_port"),
        database=config.get("db_name"),
    )


@lru_cache(maxsize=None)
def get_config() -> dict:
    """
    Process-wide configuration, loaded on first use and reused afterwards.

    Pass the result into create_app() rather than importing it from
    request-handling code.
    """
    return load_config()
