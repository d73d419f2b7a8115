# sharebook/export_pdf.py

from __future__ import annotations
import io
import logging
from datetime import date
from typing import Any, Optional, Sequence

from fpdf import FPDF

from sharebook.rendering import strip_markdown
from sharebook.services.chapters import sort_chapters
from sharebook.utils import today_label

logger = logging.getLogger(__name__)

MARGIN_MM = 20
TITLE_PT = 24
CHAPTER_TITLE_PT = 18
BODY_PT = 12
FOOTER_PT = 10


# ---------- Public API -------------------------------------------------------

def export_project_pdf(
    *,
    project: Any,
    chapters: Sequence[Any],
    cover_image: Optional[bytes] = None,
    today: Optional[date] = None,
) -> bytes:
    """
    Compile an ebook PDF (A4 portrait, mm units). Returns PDF bytes.

    Pages: optional cover image, title page with description and generation
    date, then one section per chapter in order_index order. Chapter bodies are
    flattened to plain text and flow across as many pages as needed.
    """
    book = _EbookBuilder(title=project.title)

    if cover_image:
        book.add_cover(cover_image)

    book.add_title_page(project.title, project.description, today_label(today))

    for chapter in sort_chapters(chapters):
        book.add_chapter(chapter.title, strip_markdown(chapter.content))

    return book.build()


# ---------- Internals --------------------------------------------------------

def _latin1(text: str) -> str:
    # core Helvetica only covers latin-1
    return (text or "").encode("latin-1", "replace").decode("latin-1")


class _EbookPDF(FPDF):
    show_page_numbers = False

    def footer(self):
        if not self.show_page_numbers:
            return
        self.set_y(-MARGIN_MM)
        self.set_font("Helvetica", "", FOOTER_PT)
        self.cell(0, 5, str(self.page_no()), align="C")


class _EbookBuilder:
    def __init__(self, *, title: Optional[str]):
        self._pdf = _EbookPDF(orientation="P", unit="mm", format="A4")
        self._pdf.set_margins(MARGIN_MM, MARGIN_MM, MARGIN_MM)
        self._pdf.set_auto_page_break(auto=True, margin=MARGIN_MM)
        self._pdf.set_title(_latin1(title or "Ebook"))

        self.page_w = self._pdf.w
        self.page_h = self._pdf.h
        self.content_w = self.page_w - 2 * MARGIN_MM

    def add_cover(self, image_bytes: bytes):
        self._pdf.add_page()
        try:
            self._pdf.image(
                io.BytesIO(image_bytes),
                x=MARGIN_MM,
                y=MARGIN_MM * 2,
                w=self.content_w,
                h=self.page_h - 4 * MARGIN_MM,
                keep_aspect_ratio=True,
            )
        except Exception:
            # the book is still useful without its cover
            logger.exception("Error adding cover image to PDF")

    def add_title_page(self, title: str, description: Optional[str], generated_on: str):
        pdf = self._pdf
        pdf.add_page()

        pdf.set_y(self.page_h / 3)
        pdf.set_font("Helvetica", "B", TITLE_PT)
        pdf.multi_cell(0, TITLE_PT / 2, _latin1(title), align="C")

        if description:
            pdf.ln(20)
            pdf.set_font("Helvetica", "", BODY_PT)
            pdf.multi_cell(0, BODY_PT / 2, _latin1(description), align="C")

        # footer sits inside the bottom margin
        pdf.set_auto_page_break(auto=False)
        pdf.set_y(self.page_h - MARGIN_MM)
        pdf.set_font("Helvetica", "I", FOOTER_PT)
        pdf.cell(0, 5, f"Generated on {generated_on}", align="C")
        pdf.set_auto_page_break(auto=True, margin=MARGIN_MM)

    def add_chapter(self, title: str, body: str):
        pdf = self._pdf
        pdf.add_page()
        # set after add_page so the title page closes without a number
        pdf.show_page_numbers = True

        pdf.set_font("Helvetica", "B", CHAPTER_TITLE_PT)
        pdf.multi_cell(0, CHAPTER_TITLE_PT / 2, _latin1(title))
        pdf.ln(5)

        if body:
            pdf.set_font("Helvetica", "", BODY_PT)
            pdf.multi_cell(0, BODY_PT / 2, _latin1(body))

    def build(self) -> bytes:
        return bytes(self._pdf.output())
