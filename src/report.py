"""
PDF export of a reviewed test result with ReportLab.

Every question is listed with its four options; the correct option is shaded
green and, when the user picked a wrong one, that option is shaded red.
"""
import io
import logging
from datetime import datetime
from typing import List, Optional
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.platypus import KeepTogether, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from engine import PASS_PERCENTAGE
from src.models import Question, TestResult

logger = logging.getLogger(__name__)

COLOR_DARK = HexColor("#1f2937")
COLOR_GREEN = HexColor("#16a34a")
COLOR_GREEN_LIGHT = HexColor("#dcfce7")
COLOR_RED = HexColor("#dc2626")
COLOR_RED_LIGHT = HexColor("#fee2e2")
COLOR_GRAY = HexColor("#6b7280")
COLOR_GRAY_BORDER = HexColor("#e5e7eb")

OPTION_LABELS = "ABCD"


def _styles():
    styles = getSampleStyleSheet()
    return {
        "title": ParagraphStyle("ReportTitle", parent=styles["Title"], textColor=COLOR_DARK, alignment=TA_CENTER),
        "meta": ParagraphStyle("ReportMeta", parent=styles["Normal"], textColor=COLOR_GRAY, alignment=TA_CENTER),
        "question": ParagraphStyle("Question", parent=styles["Normal"], fontName="Helvetica-Bold", fontSize=11, leading=14),
        "option": ParagraphStyle("Option", parent=styles["Normal"], fontSize=10, leading=12),
    }


def _question_block(number: int, question: Question, selected: Optional[int], styles, width: float):
    rows = []
    commands = [
        ("BOX", (0, 0), (-1, -1), 0.5, COLOR_GRAY_BORDER),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
    for i, option in enumerate(question.options):
        label = f"{OPTION_LABELS[i] if i < len(OPTION_LABELS) else i + 1}. {escape(option)}"
        if i == question.correct_answer:
            label += "  (correct)"
            commands.append(("BACKGROUND", (0, i), (-1, i), COLOR_GREEN_LIGHT))
        elif selected == i:
            label += "  (your answer)"
            commands.append(("BACKGROUND", (0, i), (-1, i), COLOR_RED_LIGHT))
        rows.append([Paragraph(label, styles["option"])])
    options = Table(rows, colWidths=[width])
    options.setStyle(TableStyle(commands))

    header = f"{number}. {escape(question.question_text)}"
    if selected is None:
        header += ' <font color="#6b7280">(not answered)</font>'
    return KeepTogether([Paragraph(header, styles["question"]), Spacer(1, 4), options, Spacer(1, 10)])


def build_result_pdf(
    result: TestResult,
    test_title: str,
    user_name: str = "",
    show_answers: bool = True,
) -> bytes:
    """
    Render a result as PDF.

    Args:
        result: The saved result, with its question snapshot
        test_title: Shown as the document title
        user_name: Shown under the title when given
        show_answers: False gives a question sheet with the answer key only

    Returns:
        PDF document bytes
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=40,
        leftMargin=40,
        topMargin=36,
        bottomMargin=36,
        title=f"{test_title} - Results",
    )
    styles = _styles()
    width = A4[0] - 80

    elements: List = [Paragraph(escape(test_title), styles["title"])]
    meta = [f"Score: {result.score}/{result.total_questions} ({result.percentage}%)"]
    meta.append("Passed" if result.percentage >= PASS_PERCENTAGE else "Not passed")
    if user_name:
        meta.insert(0, escape(user_name))
    if result.date:
        meta.append(_format_date(result.date))
    elements.append(Paragraph(" | ".join(meta), styles["meta"]))
    elements.append(Spacer(1, 16))

    for number, question in enumerate(result.questions, start=1):
        # answer key only: treat the correct option as picked so nothing is marked wrong
        selected = result.selected_for(question.id) if show_answers else question.correct_answer
        elements.append(_question_block(number, question, selected, styles, width))

    doc.build(elements)
    pdf = buffer.getvalue()
    logger.info("Built PDF for result %s (%d questions, %d bytes)", result.id, len(result.questions), len(pdf))
    return pdf


def _format_date(value: str) -> str:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%d %b %Y %H:%M")
    except ValueError:
        return value


def pdf_filename(test_title: str) -> str:
    slug = "".join(c if c.isalnum() else "_" for c in test_title.strip()).strip("_") or "test"
    return f"{slug}_results.pdf"
