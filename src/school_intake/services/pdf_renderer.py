"""Builds the reportlab story for a submission confirmation PDF."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Flowable, Image, Paragraph, Spacer, Table, TableStyle

from school_intake.models.submission import Submission
from school_intake.services.form_registry import PdfConfig, PdfSection
from school_intake.utils.data_formatter import format_value, humanize_key, prepare_for_pdf

logger = logging.getLogger(__name__)

MAX_LOGO_WIDTH = 150  # points
CONTENT_WIDTH = 180 * mm  # A4 minus 15mm margins


def _text(value: str) -> str:
    """Escape for reportlab's paragraph markup and keep line breaks"""
    return escape(value).replace("\n", "<br/>")


class PdfTemplateRenderer:
    """
    Renders the fixed confirmation layout:
    header, title, intro, metadata, pre sections, data table, post sections, footer.
    """

    def __init__(self, assets_dir: Optional[Path] = None, now=datetime.now):
        self.assets_dir = Path(assets_dir) if assets_dir else None
        self.now = now

        styles = getSampleStyleSheet()
        self.styles = {
            "header": ParagraphStyle(
                "HeaderTitle", parent=styles["Heading3"], textColor=colors.HexColor("#4472C4")
            ),
            "title": styles["Heading1"],
            "heading": styles["Heading2"],
            "section": styles["Heading3"],
            "body": styles["BodyText"],
            "cell": ParagraphStyle("Cell", parent=styles["BodyText"], fontSize=9, leading=11),
            "footer": ParagraphStyle(
                "Footer", parent=styles["BodyText"], fontSize=8, textColor=colors.grey
            ),
        }

    def render(self, submission: Submission, pdf_config: PdfConfig) -> list[Flowable]:
        story: list[Flowable] = []
        story.extend(self._header(pdf_config))
        story.append(Paragraph(_text(pdf_config.title), self.styles["title"]))

        if pdf_config.intro_text:
            story.append(Paragraph(_text(pdf_config.intro_text), self.styles["body"]))
            story.append(Spacer(1, 6))

        story.append(self._meta_table(submission))
        story.append(Spacer(1, 12))

        for section in pdf_config.pre_sections:
            story.extend(self._custom_section(section))

        story.extend(self._data_table(submission, pdf_config))

        for section in pdf_config.post_sections:
            story.extend(self._custom_section(section))

        story.extend(self._footer(pdf_config))
        return story

    def _header(self, pdf_config: PdfConfig) -> list[Flowable]:
        elements: list[Flowable] = []
        logo = self._load_logo(pdf_config.logo)
        if logo is not None:
            elements.append(logo)
        elements.append(Paragraph(_text(pdf_config.header_title), self.styles["header"]))
        elements.append(Spacer(1, 6))
        return elements

    def _load_logo(self, logo_path: Optional[str]) -> Optional[Image]:
        if not logo_path:
            return None

        path = Path(logo_path)
        if not path.is_absolute() and self.assets_dir is not None:
            path = self.assets_dir / path
        if not path.exists():
            logger.warning(f"PDF logo not found: {path}")
            return None

        try:
            logo = Image(str(path))
            if logo.imageWidth > MAX_LOGO_WIDTH:
                ratio = MAX_LOGO_WIDTH / logo.imageWidth
                logo.drawWidth = MAX_LOGO_WIDTH
                logo.drawHeight = logo.imageHeight * ratio
            logo.hAlign = "LEFT"
            return logo
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load PDF logo {path}: {e}")
            return None

    def _meta_table(self, submission: Submission) -> Table:
        rows = [
            ["Reference number:", f"#{submission.id}"],
            ["Form:", submission.form_key],
            ["Date:", submission.created_at.strftime("%d.%m.%Y %H:%M")],
            ["Status:", submission.status.value],
        ]
        table = Table(rows, colWidths=[45 * mm, CONTENT_WIDTH - 45 * mm], hAlign="LEFT")
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
                    ("FONTNAME", (1, 0), (1, 0), "Helvetica-Bold"),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 2),
                ]
            )
        )
        return table

    def _custom_section(self, section: PdfSection) -> list[Flowable]:
        elements: list[Flowable] = []
        if section.title:
            elements.append(Paragraph(_text(section.title), self.styles["section"]))
        if section.content:
            elements.append(Paragraph(_text(section.content), self.styles["body"]))
        elements.append(Spacer(1, 8))
        return elements

    def _data_table(self, submission: Submission, pdf_config: PdfConfig) -> list[Flowable]:
        elements: list[Flowable] = [Paragraph("Form data", self.styles["heading"])]
        data = prepare_for_pdf(submission.data or {}, pdf_config.model_dump())

        if not data:
            elements.append(Paragraph("No data available", self.styles["body"]))
            return elements

        # Two label/value pairs per row; an odd last pair spans the row
        cell = self.styles["cell"]
        items = list(data.items())
        rows = []
        spans = []
        for index in range(0, len(items), 2):
            pair = items[index : index + 2]
            row = []
            for key, value in pair:
                row.append(Paragraph(f"<b>{_text(humanize_key(key))}</b>", cell))
                row.append(Paragraph(_text(format_value(value)), cell))
            if len(pair) == 1:
                row.extend(["", ""])
                spans.append(("SPAN", (1, len(rows)), (3, len(rows))))
            rows.append(row)

        label_width = 35 * mm
        value_width = CONTENT_WIDTH / 2 - label_width
        table = Table(
            rows, colWidths=[label_width, value_width, label_width, value_width]
        )
        table.setStyle(
            TableStyle(
                [
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.lightgrey),
                    ("BACKGROUND", (0, 0), (0, -1), colors.HexColor("#F2F2F2")),
                    ("BACKGROUND", (2, 0), (2, -1), colors.HexColor("#F2F2F2")),
                    ("VALIGN", (0, 0), (-1, -1), "TOP"),
                    *spans,
                ]
            )
        )
        elements.append(table)
        elements.append(Spacer(1, 12))
        return elements

    def _footer(self, pdf_config: PdfConfig) -> list[Flowable]:
        elements: list[Flowable] = [Spacer(1, 18)]
        if pdf_config.footer_text:
            elements.append(Paragraph(_text(pdf_config.footer_text), self.styles["body"]))
        generated = self.now()
        elements.append(
            Paragraph(
                f"Generated on {generated.strftime('%d.%m.%Y')} at {generated.strftime('%H:%M')}",
                self.styles["footer"],
            )
        )
        return elements
