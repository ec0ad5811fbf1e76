"""Draws a ComposedDocument onto a reportlab canvas.

Positions come from the composer in millimetres from the page top; the ``_Pen``
converts them once through ``quotedoc.units`` before reaching reportlab.
"""
import io
import logging
from typing import Optional

from reportlab.lib.colors import HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as rl_canvas

from quotedoc.assets import placeholder_initial
from quotedoc.composer import (
    BODY_FONT, BOLD_FONT, Block, ClientInfo, ComposedDocument, LineItem, SummaryBox, TermsChunk,
    format_money,
)
from quotedoc.units import to_native_length, to_native_point, to_native_rect

logger = logging.getLogger(__name__)

# Corporate palette
SLATE_900 = HexColor("#0F172A")
SLATE_800 = HexColor("#1E293B")
SLATE_500 = HexColor("#64748B")
SLATE_400 = HexColor("#94A3B8")
SLATE_100 = HexColor("#F1F5F9")
SLATE_50 = HexColor("#F8FAFC")
GRAY_50 = HexColor("#F9FAFB")
BORDER = HexColor("#E2E8F0")
INDIGO = HexColor("#4449AA")
ORANGE = HexColor("#EA580C")
ORANGE_50 = HexColor("#FFF7ED")
BLUE = HexColor("#2563EB")
BLUE_50 = HexColor("#EFF6FF")
EMERALD = HexColor("#059669")
EMERALD_50 = HexColor("#ECFDF5")


class _Pen:
    """Millimetre-space drawing primitives over a reportlab canvas."""

    def __init__(self, c: rl_canvas.Canvas, page_height: float):
        self.c = c
        self.page_height = page_height

    def text(self, x, y, s, font=BODY_FONT, size=10, color=SLATE_900, align="left"):
        self.c.setFont(font, size)
        self.c.setFillColor(color)
        px, py = to_native_point(x, y, self.page_height)
        if align == "right":
            self.c.drawRightString(px, py, s)
        elif align == "center":
            self.c.drawCentredString(px, py, s)
        else:
            self.c.drawString(px, py, s)

    def rect(self, x, top, w, h, color, radius=0.0):
        px, py, pw, ph = to_native_rect(x, top, w, h, self.page_height)
        self.c.setFillColor(color)
        if radius:
            self.c.roundRect(px, py, pw, ph, to_native_length(radius), stroke=0, fill=1)
        else:
            self.c.rect(px, py, pw, ph, stroke=0, fill=1)

    def line(self, x1, y1, x2, y2, color=BORDER, width=0.5):
        self.c.setStrokeColor(color)
        self.c.setLineWidth(width)
        ax, ay = to_native_point(x1, y1, self.page_height)
        bx, by = to_native_point(x2, y2, self.page_height)
        self.c.line(ax, ay, bx, by)

    def image(self, img: ImageReader, x, top, w, h):
        px, py, pw, ph = to_native_rect(x, top, w, h, self.page_height)
        self.c.drawImage(img, px, py, width=pw, height=ph, preserveAspectRatio=True, anchor="w", mask="auto")


class ProposalRenderer:
    def __init__(self, document: ComposedDocument, logo: Optional[ImageReader] = None):
        self.doc = document
        self.logo = logo
        self.L = document.layout

    def render(self) -> bytes:
        buf = io.BytesIO()
        # invariant output: same document in, same bytes out
        c = rl_canvas.Canvas(buf, pagesize=A4, invariant=1)
        c.setTitle(f"Proposal {self.doc.header.reference}")
        c.setAuthor(self.doc.branding.name or "")
        pen = _Pen(c, A4[1])
        for page in self.doc.pages:
            for block in page.blocks:
                self._draw_block(pen, block, page.number)
            c.showPage()
        c.save()
        pdf_bytes = buf.getvalue()
        buf.close()
        return pdf_bytes

    def _draw_block(self, pen: _Pen, block: Block, page_number: int) -> None:
        draw = getattr(self, f"_draw_{block.kind}")
        if block.kind == "footer":
            draw(pen, block, page_number)
        else:
            draw(pen, block)

    # ---------- header band ----------
    def _draw_header(self, pen: _Pen, block: Block) -> None:
        L, h = self.L, self.doc.header
        right = L.page_width - L.margin_x
        pen.rect(0, 0, L.page_width, L.header_height, SLATE_900)

        drew_logo = False
        if self.logo is not None:
            try:
                pen.image(self.logo, L.margin_x, 6, 36, 12)
                drew_logo = True
            except Exception as e:
                logger.info("Logo could not be drawn, using placeholder: %s", e)
        if not drew_logo:
            pen.rect(L.margin_x, 6, 12, 12, INDIGO, radius=2.5)
            pen.text(L.margin_x + 6, 14.2, placeholder_initial(self.doc.branding.name),
                     font=BOLD_FONT, size=14, color=white, align="center")

        pen.text(L.margin_x, 28, h.company_name, font=BOLD_FONT, size=18, color=white)
        if h.address:
            pen.text(L.margin_x, 34, h.address, size=8, color=SLATE_400)
        if h.contact_line:
            pen.text(L.margin_x, 38, h.contact_line, size=8, color=SLATE_400)

        pen.text(right, 18, "OFFICIAL QUOTE", font=BOLD_FONT, size=8, color=INDIGO, align="right")
        pen.text(right, 32, h.reference, font=BOLD_FONT, size=28, color=white, align="right")
        pen.line(right - 60, 38, right, 38, color=SLATE_800)
        pen.text(right - 60, 43, "ISSUE DATE", size=7, color=SLATE_400)
        pen.text(right - 25, 43, "REFERENCE", size=7, color=SLATE_400)
        pen.text(right - 60, 48, h.issued_on, font=BOLD_FONT, size=9, color=SLATE_100)
        pen.text(right - 25, 48, h.short_reference, font=BOLD_FONT, size=9, color=SLATE_100)

    # ---------- body ----------
    def _draw_client(self, pen: _Pen, block: Block) -> None:
        L = self.L
        info: ClientInfo = block.payload
        top = block.top
        right = L.page_width - L.margin_x
        pen.text(L.margin_x, top + 4, "PREPARED FOR", font=BOLD_FONT, size=10, color=INDIGO)
        pen.text(L.margin_x, top + 14, info.client_name.upper(), font=BOLD_FONT, size=20)
        if info.company_name:
            pen.text(L.margin_x, top + 21, info.company_name.upper(), font=BOLD_FONT, size=11, color=INDIGO)

        box_w = 65.0
        box_x = right - box_w
        pen.rect(box_x, top, box_w, 22, SLATE_50, radius=4)
        pen.text(box_x + box_w / 2, top + 7, "EXECUTIVE SUMMARY", font=BOLD_FONT, size=8, color=INDIGO, align="center")
        pen.text(box_x + box_w / 2, top + 14, info.plan_name, font=BOLD_FONT, size=12, align="center")
        if info.dte_volume:
            pen.text(box_x + box_w / 2, top + 19, f"{info.dte_volume:,} DTEs / year",
                     size=8, color=SLATE_500, align="center")

    def _draw_table_head(self, pen: _Pen, block: Block) -> None:
        L = self.L
        pen.rect(L.margin_x, block.top, L.content_width, block.height - 2, GRAY_50)
        pen.text(L.margin_x + 3, block.top + 5.5, "SERVICE DESCRIPTION", font=BOLD_FONT, size=8, color=SLATE_500)
        pen.text(L.page_width - L.margin_x - 3, block.top + 5.5, "INVESTMENT (USD)",
                 font=BOLD_FONT, size=8, color=SLATE_500, align="right")

    def _draw_line_item(self, pen: _Pen, block: Block) -> None:
        L = self.L
        item: LineItem = block.payload
        top = block.top
        x = L.margin_x + 3
        right = L.page_width - L.margin_x - 3
        label_lines = item.label_lines or (item.label.upper(),)
        y = top + 5
        for line in label_lines:
            pen.text(x, y, line, font=BOLD_FONT, size=L.label_font_size)
            y += L.label_line_height
        pen.text(right, top + 5, format_money(item.amount, self.doc.currency_symbol), font=BOLD_FONT, size=11, align="right")
        # caption and description shift down by the extra label lines
        shift = L.label_line_height * (len(label_lines) - 1)
        if item.one_time:
            pen.rect(x, top + 6.8 + shift, 20, 4, ORANGE_50, radius=1.5)
            pen.text(x + 10, top + 9.7 + shift, "ONE-TIME", font=BOLD_FONT, size=6, color=ORANGE, align="center")
        else:
            pen.text(x, top + 9.7 + shift, item.caption, font=BOLD_FONT, size=7, color=SLATE_400)
        y = top + 14 + shift
        for line in item.description_lines:
            pen.text(x, y, line, size=L.description_font_size, color=SLATE_500)
            y += L.row_line_height
        pen.line(L.margin_x, block.bottom - 0.5, L.page_width - L.margin_x, block.bottom - 0.5)

    # ---------- summary boxes ----------
    def _draw_summary(self, pen: _Pen, block: Block) -> None:
        L = self.L
        due_now, recurring = block.payload
        top = block.top + L.summary_gap
        col_w = (L.content_width - L.summary_column_gap) / 2
        accent = BLUE if self.doc.breakdown.is_monthly else EMERALD
        tint = BLUE_50 if self.doc.breakdown.is_monthly else EMERALD_50
        self._draw_box(pen, due_now, L.margin_x, top, col_w, ORANGE, ORANGE_50)
        self._draw_box(pen, recurring, L.margin_x + col_w + L.summary_column_gap, top, col_w, accent, tint)

    def _draw_box(self, pen: _Pen, box: SummaryBox, x: float, top: float, w: float, accent, tint) -> None:
        h = self.L.summary_height
        pen.rect(x, top, w, h, tint, radius=5)
        pen.text(x + 5, top + 9, box.title, font=BOLD_FONT, size=11, color=SLATE_800)
        pen.text(x + 5, top + 14, box.subtitle, font=BOLD_FONT, size=7, color=accent)

        y = top + 23
        for label, value in box.rows:
            pen.text(x + 5, y, label, size=8, color=SLATE_500)
            pen.text(x + w - 5, y, value, font=BOLD_FONT, size=8,
                     color=accent if value.startswith("+") else SLATE_800, align="right")
            y += 5.5

        base = top + h - 16
        pen.line(x + 5, base, x + w - 5, base, color=BORDER)
        pen.text(x + 5, base + 6, box.total_label.upper(), font=BOLD_FONT, size=8, color=SLATE_800)
        pen.text(x + w - 5, base + 12, box.total_value, font=BOLD_FONT, size=16, color=accent, align="right")
        if box.total_suffix:
            pen.text(x + 5, base + 12, box.total_suffix, font=BOLD_FONT, size=7, color=SLATE_400)
        if box.note:
            pen.text(x + 5, top + h - 1.5, box.note, size=6, color=SLATE_400)

    # ---------- terms ----------
    def _draw_terms_title(self, pen: _Pen, block: Block) -> None:
        L = self.L
        pen.text(L.margin_x, block.top + 6, "TERMS OF SERVICE", font=BOLD_FONT, size=11, color=SLATE_800)
        pen.line(L.margin_x, block.top + 9, L.page_width - L.margin_x, block.top + 9, color=INDIGO, width=1)

    def _draw_terms_paragraph(self, pen: _Pen, block: Block) -> None:
        L = self.L
        chunk: TermsChunk = block.payload
        y = block.top + L.terms_line_height
        if chunk.number is not None:
            pen.text(L.margin_x, y, f"{chunk.number}.", font=BOLD_FONT, size=L.terms_font_size, color=INDIGO)
        for line in chunk.lines:
            pen.text(L.margin_x + L.terms_indent, y, line, size=L.terms_font_size, color=SLATE_800)
            y += L.terms_line_height

    # ---------- footer band ----------
    def _draw_footer(self, pen: _Pen, block: Block, page_number: int) -> None:
        L, f = self.L, self.doc.footer
        right = L.page_width - L.margin_x
        pen.line(L.margin_x, block.top, right, block.top, color=BORDER)
        pen.text(L.margin_x, block.top + 6, f.prepared_by, font=BOLD_FONT, size=8, color=SLATE_800)
        if f.contact_line:
            pen.text(L.margin_x, block.top + 10.5, f.contact_line, size=7, color=SLATE_500)
        pen.text(L.margin_x, block.top + 15, f.validity_note, size=7, color=SLATE_400)
        if f.view_url:
            pen.text(L.margin_x, block.top + 19.5, f"View online: {f.view_url}", size=7, color=INDIGO)
        pen.text(right, block.top + 6, f"Page {page_number} of {self.doc.page_count}",
                 font=BOLD_FONT, size=8, color=SLATE_500, align="right")


def render_pdf(document: ComposedDocument, logo: Optional[ImageReader] = None) -> bytes:
    return ProposalRenderer(document, logo).render()
