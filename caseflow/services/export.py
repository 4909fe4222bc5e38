"""Document export: draft content to DOCX and PDF bytes.

Both exporters take the already-loaded draft content. HTML from the rich
text editor is reduced to plain text first, then split into paragraphs on
blank lines.
"""

import io
import re
from xml.sax.saxutils import escape

from bs4 import BeautifulSoup, Comment
from docx import Document
from docx.shared import Pt
from reportlab.lib.enums import TA_LEFT
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate

FONT_NAME = "Times New Roman"
PDF_FONT_NAME = "Times-Roman"
FONT_SIZE = 11

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PDF_MEDIA_TYPE = "application/pdf"

BLOCK_TAGS = ["p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li"]
_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n")


def html_to_text(content: str | None) -> str:
    """Strip markup, keeping block boundaries as blank lines."""
    if not content:
        return ""

    soup = BeautifulSoup(content, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    for br in soup.find_all("br"):
        br.insert_before("\n")
        br.unwrap()
    for block in soup.find_all(BLOCK_TAGS):
        block.insert_after("\n\n")

    return soup.get_text().replace("\xa0", " ").strip()


def split_paragraphs(text: str) -> list[str]:
    """Paragraphs separated by blank lines; inner newlines kept."""
    return [p.strip() for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]


def to_docx(content: str) -> bytes:
    """Render content as a Word document in 11pt Times New Roman."""
    text = html_to_text(content)
    paragraphs = split_paragraphs(text) or [text]

    document = Document()
    style = document.styles["Normal"]
    style.font.name = FONT_NAME
    style.font.size = Pt(FONT_SIZE)

    for paragraph_text in paragraphs:
        paragraph = document.add_paragraph()
        paragraph.paragraph_format.space_after = Pt(10)
        run = paragraph.add_run(" ".join(paragraph_text.splitlines()))
        run.font.name = FONT_NAME
        run.font.size = Pt(FONT_SIZE)

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def to_pdf(content: str) -> bytes:
    """Render content as a letter-size PDF with one-inch margins."""
    text = html_to_text(content)

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=1 * inch,
        leftMargin=1 * inch,
        topMargin=1 * inch,
        bottomMargin=1 * inch,
    )
    body = ParagraphStyle(
        "Body",
        fontName=PDF_FONT_NAME,
        fontSize=FONT_SIZE,
        leading=FONT_SIZE * 1.4,
        spaceAfter=10,
        alignment=TA_LEFT,
    )

    # Paragraph parses a mini markup language, so text is escaped first
    story = [
        Paragraph(escape(paragraph_text).replace("\n", "<br/>"), body)
        for paragraph_text in split_paragraphs(text)
    ]
    if not story:
        story.append(Paragraph("", body))

    doc.build(story)
    return buffer.getvalue()
