"""PDF Generator Service - renders confirmation PDFs on demand"""

import logging
import re
from io import BytesIO
from typing import Optional

from fastapi import Response
from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate

from school_intake.errors import ConfigError, NotFoundError
from school_intake.models.submission import Submission
from school_intake.services.form_registry import PdfConfig
from school_intake.services.pdf_renderer import PdfTemplateRenderer

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"


class PdfGeneratorService:
    """Turns a submission into a confirmation PDF. Nothing is persisted."""

    def __init__(self, renderer: PdfTemplateRenderer):
        self.renderer = renderer

    def generate(self, submission: Optional[Submission], pdf_config: Optional[PdfConfig]) -> bytes:
        """
        Render the PDF into memory.

        Raises:
            NotFoundError: If there is no submission to render
            ConfigError: If PDF generation is not enabled for the form
        """
        if submission is None:
            raise NotFoundError("Registration not found")
        if pdf_config is None or not pdf_config.enabled:
            raise ConfigError("PDF not enabled for this form")

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            title=pdf_config.title,
            leftMargin=15 * mm,
            rightMargin=15 * mm,
            topMargin=16 * mm,
            bottomMargin=16 * mm,
        )
        doc.build(self.renderer.render(submission, pdf_config))
        return buffer.getvalue()

    def generate_and_download(
        self, submission: Optional[Submission], pdf_config: Optional[PdfConfig]
    ) -> Response:
        """
        Render the PDF and wrap it in a complete attachment response.

        The document is fully rendered before the response is created, so a
        failure never leaves a partially written body.
        """
        content = self.generate(submission, pdf_config)
        filename = self.generate_filename(submission)
        logger.info(f"Generated PDF for submission {submission.id} ({len(content)} bytes)")
        return Response(
            content=content,
            media_type=PDF_MEDIA_TYPE,
            headers={
                "Content-Disposition": f'attachment; filename="{filename}"',
                "Cache-Control": "private, no-store",
            },
        )

    @staticmethod
    def generate_filename(submission: Submission) -> str:
        """confirmation-<formkey>-<id>.pdf with the form key reduced to [a-z0-9]"""
        form_key = re.sub(r"[^a-zA-Z0-9]", "", submission.form_key).lower()
        return f"confirmation-{form_key}-{submission.id}.pdf"
