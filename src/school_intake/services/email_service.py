"""Email service for registration notifications"""

import logging
import re
from datetime import datetime
from html import escape
from typing import Any, Callable, Dict, Mapping, Optional

from school_intake.backends.email_client import EmailClient
from school_intake.utils.data_formatter import INTERNAL_PREFIX, format_value, humanize_key
from school_intake.utils.email_address import is_valid_email
from school_intake.validators import EMAIL_FIELD_ALIASES, NAME_FIELD_ALIASES, pick_first

logger = logging.getLogger(__name__)

HEADER_BREAK_RE = re.compile(r"[\r\n]+")

HTML_STYLE = (
    "body { font-family: Arial, sans-serif; }"
    "table { border-collapse: collapse; width: 100%; }"
    "th, td { padding: 12px; text-align: left; border: 1px solid #ddd; }"
    "th { background-color: #4472C4; color: white; font-weight: bold; }"
    "tr:nth-child(even) { background-color: #f2f2f2; }"
)


def sanitize_header_value(value: str) -> str:
    """Collapse CR/LF runs to a space so values cannot inject extra headers"""
    return HEADER_BREAK_RE.sub(" ", value).strip()


class EmailService:
    """Builds and sends the multipart notification for a new submission"""

    def __init__(
        self,
        email_config: dict,
        email_client: Optional[EmailClient] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.mail_head = email_config.get("mail_head") or ""
        self.mail_foot = email_config.get("mail_foot") or ""
        self.now = now

        if email_client is None and email_config.get("mailgun_api_key"):
            email_client = EmailClient(email_config)
        self.email_client = email_client

    async def send_notification(
        self, to: str, form_key: str, form_data: Mapping[str, Any]
    ) -> bool:
        """
        Send the notification email for one submission.

        Args:
            to: One recipient, or several separated by commas
            form_key: Form the submission belongs to
            form_data: Raw survey answers

        Returns:
            bool: True if email was sent successfully, False otherwise
        """
        recipients = [r.strip() for r in to.split(",") if r.strip()]
        if not recipients or not all(is_valid_email(r) for r in recipients):
            logger.warning(f"Invalid notification address: {to}")
            return False

        if self.email_client is None:
            logger.warning("Mail transport is not configured, skipping notification")
            return False

        content = self.build_email(form_key, form_data)
        try:
            await self.email_client.send_email(
                to=", ".join(recipients),
                subject=content["subject"],
                text=content["plain"],
                html=content["html"],
                reply_to=self.extract_reply_to(form_data),
            )
            logger.info(f"Notification for form {form_key} sent to {to}")
            return True
        except Exception as e:
            logger.error(f"Failed to send notification for form {form_key}: {e}")
            return False

    def build_email(self, form_key: str, form_data: Mapping[str, Any]) -> Dict[str, str]:
        """Build subject, plain-text body and HTML body"""
        subject = f"New registration: {form_key}"
        name = pick_first(form_data, NAME_FIELD_ALIASES)
        if name is not None:
            subject += f" from {name}"

        timestamp = self.now().strftime("%d.%m.%Y %H:%M:%S")

        plain_lines = [
            "A new registration has been submitted:",
            "",
            self.mail_head,
            "",
            f"Form: {form_key}",
            "",
        ]
        html_rows = []

        for key, value in form_data.items():
            if key.startswith(INTERNAL_PREFIX):
                continue
            if value is None or value == "":
                continue

            label = humanize_key(key)
            text = format_value(value)
            plain_lines.append(f"{label}: {text}")
            html_rows.append(
                f"<tr><td><strong>{escape(label)}</strong></td>"
                f"<td>{escape(text).replace(chr(10), '<br>')}</td></tr>"
            )

        plain_lines.extend(["", self.mail_foot, "", f"Date: {timestamp}", ""])

        html = (
            "<!doctype html><html><head><meta charset='utf-8'>"
            f"<style>{HTML_STYLE}</style></head><body>"
            f"<h2>New registration: {escape(form_key)}</h2>"
            f"<p>{escape(self.mail_head).replace(chr(10), '<br>')}</p>"
            "<table><thead><tr><th>Field</th><th>Value</th></tr></thead>"
            f"<tbody>{''.join(html_rows)}</tbody></table>"
            f"<p style='margin-top: 20px; color: #666;'>"
            f"{escape(self.mail_foot).replace(chr(10), '<br>')}</p>"
            f"<p style='color: #999; font-size: 12px;'>Date: {timestamp}</p>"
            "</body></html>"
        )

        return {
            "subject": sanitize_header_value(subject),
            "plain": "\n".join(plain_lines),
            "html": html,
        }

    @staticmethod
    def extract_reply_to(form_data: Mapping[str, Any]) -> Optional[str]:
        """First valid address among the email aliases, header-sanitized"""
        for key in EMAIL_FIELD_ALIASES:
            value = form_data.get(key)
            if isinstance(value, str) and is_valid_email(value):
                return sanitize_header_value(value)
        return None
