import logging
from typing import Dict, Optional

from mailgun.client import Client

logger = logging.getLogger(__name__)


class EmailClient:
    def __init__(self, config: dict):
        self.mailgun_api_key = config["mailgun_api_key"]
        self.domain = config["mailgun_domain"]
        self.sender_email = config["from_email"]

        self.client = Client(auth=("api", self.mailgun_api_key))

    async def send_email(
        self,
        to: str,
        text: str,
        subject: str,
        html: Optional[str] = None,
        reply_to: Optional[str] = None,
    ) -> Dict:
        """
        Send a plain-text (and optionally HTML) email using the Mailgun API

        Args:
            to: Recipient address, or several separated by commas
            text: Plain-text body
            subject: Email subject
            html: Optional HTML alternative body
            reply_to: Optional Reply-To address

        Returns:
            Dict containing Mailgun API response

        Raises:
            RuntimeError: If email sending fails
        """
        data = {
            "from": self.sender_email,
            "to": to,
            "subject": subject,
            "text": text,
            "o:tag": "registration-notification",
        }
        if html:
            data["html"] = html
        if reply_to:
            data["h:Reply-To"] = reply_to

        try:
            req = self.client.messages.create(data=data, domain=self.domain)
            response = req.json()

            # Check if request was successful
            if req.status_code != 200:
                logger.error(f"Mailgun API error: {req.status_code} - {response}")
                raise RuntimeError(f"Failed to send email: {response}")

            logger.info(
                f"Email sent successfully to {to}: {response.get('id', 'unknown')}"
            )
            return response

        except Exception as e:
            logger.error(f"Failed to send email to {to}: {str(e)}")
            raise RuntimeError(f"Email sending failed: {str(e)}") from e
