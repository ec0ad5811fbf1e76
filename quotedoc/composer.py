"""Page composition for the proposal document.

Composition decides *where* every block goes (page number and top offset, in
millimetres from the top of the page) without touching a canvas. The renderer
then walks the composed pages and draws each block at its assigned position.

Every page opens with a header block and closes with a footer block. Before a
block is placed its height is known up front; when it would run past the usable
bottom of the page, the page is closed and a fresh one opened.
"""
import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, List, Optional, Tuple

from reportlab.pdfbase.pdfmetrics import stringWidth

from quotedoc.financials import FinancialBreakdown, money
from quotedoc.models import CompanyBranding, CreatorContext, LeadContext, QuoteRecord
from quotedoc.settings import RenderConfig
from quotedoc.text_flow import Measure, split_paragraphs, strip_emphasis, wrap_text
from quotedoc.units import to_native_length

logger = logging.getLogger(__name__)

BODY_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"


def helvetica_measure(text: str, font_size: float) -> float:
    return stringWidth(text, BODY_FONT, font_size)


def helvetica_bold_measure(text: str, font_size: float) -> float:
    return stringWidth(text, BOLD_FONT, font_size)


class State(enum.Enum):
    HEADER = "header"
    BODY = "body"
    SUMMARY = "summary"
    TERMS = "terms"
    FOOTER = "footer"


@dataclass(frozen=True)
class Layout:
    # all values in millimetres, A4 portrait
    page_width: float = 210.0
    page_height: float = 297.0
    margin_x: float = 20.0
    header_height: float = 55.0
    content_top: float = 65.0
    usable_bottom: float = 265.0
    footer_top: float = 272.0

    client_block_height: float = 28.0
    table_head_height: float = 10.0
    amount_column_width: float = 45.0
    row_base_height: float = 13.0
    row_line_height: float = 4.0
    description_font_size: float = 8.0
    label_font_size: float = 10.0
    label_line_height: float = 4.5

    summary_gap: float = 8.0
    summary_height: float = 64.0
    summary_column_gap: float = 6.0

    terms_title_height: float = 12.0
    terms_font_size: float = 9.0
    terms_line_height: float = 4.5
    terms_paragraph_gap: float = 4.0
    terms_indent: float = 8.0

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin_x

    @property
    def description_width(self) -> float:
        return self.content_width - self.amount_column_width

    @property
    def terms_width(self) -> float:
        return self.content_width - self.terms_indent


# ---------- block payloads ----------
@dataclass(frozen=True)
class LineItem:
    label: str
    caption: str
    amount: Decimal
    one_time: bool
    description_lines: Tuple[str, ...] = ()
    label_lines: Tuple[str, ...] = ()


@dataclass(frozen=True)
class SummaryBox:
    title: str
    subtitle: str
    rows: Tuple[Tuple[str, str], ...]
    total_label: str
    total_value: str
    total_suffix: str = ""
    note: str = ""


@dataclass(frozen=True)
class TermsChunk:
    number: Optional[int]  # None on the continuation of a split paragraph
    lines: Tuple[str, ...]


@dataclass(frozen=True)
class HeaderInfo:
    company_name: str
    address: str
    contact_line: str
    reference: str
    short_reference: str
    issued_on: str


@dataclass(frozen=True)
class ClientInfo:
    client_name: str
    company_name: Optional[str]
    plan_name: str
    dte_volume: int


@dataclass(frozen=True)
class FooterInfo:
    prepared_by: str
    contact_line: str
    validity_note: str
    view_url: Optional[str] = None


@dataclass(frozen=True)
class Block:
    kind: str
    top: float
    height: float
    payload: Any = None

    @property
    def bottom(self) -> float:
        return self.top + self.height


@dataclass
class Page:
    number: int
    blocks: List[Block] = field(default_factory=list)

    @property
    def kinds(self) -> List[str]:
        return [b.kind for b in self.blocks]


@dataclass
class ComposedDocument:
    quote: QuoteRecord
    breakdown: FinancialBreakdown
    branding: CompanyBranding
    header: HeaderInfo
    footer: FooterInfo
    layout: Layout
    pages: List[Page] = field(default_factory=list)
    currency_symbol: str = "$"

    @property
    def page_count(self) -> int:
        return len(self.pages)

    def signature(self) -> List[List[Tuple[str, float]]]:
        """(kind, top) per block per page; equal signatures mean identical pagination."""
        return [[(b.kind, round(b.top, 4)) for b in p.blocks] for p in self.pages]


# ---------- formatting ----------
def format_money(amount: Decimal, symbol: str = "$") -> str:
    value = money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_pct(pct: Decimal) -> str:
    # 15.00 -> "15", 12.50 -> "12.5"
    text = f"{pct.normalize():f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


# ---------- content builders ----------
def build_line_items(quote: QuoteRecord, measure: Measure, layout: Layout,
                     label_measure: Optional[Measure] = None) -> List[LineItem]:
    """Plan license and implementation lead; add-on modules follow in stored order,
    then the WhatsApp notification service when contracted.

    Labels print upper-case in bold and wrap inside the description column.
    """
    width = to_native_length(layout.description_width)
    label_measure = label_measure or measure

    def desc(text: Optional[str]) -> Tuple[str, ...]:
        return tuple(wrap_text(text or "", width, measure, layout.description_font_size))

    def item(label: str, caption: str, amount: Decimal, one_time: bool,
             description: Optional[str] = None) -> LineItem:
        lines = wrap_text(label.upper(), width, label_measure, layout.label_font_size)
        return LineItem(label, caption, amount, one_time, desc(description), tuple(lines))

    plan_desc = quote.plan_description
    if not plan_desc and quote.dte_volume:
        plan_desc = f"Includes the DTE suite sized for {quote.dte_volume:,} documents per year and base technical support."
    # the license is the recurring charge even when it is priced at zero
    items = [item(f"Annual License {quote.plan_name}".strip(), f"PLAN {quote.plan_name}".strip().upper(),
                  quote.plan_annual_cost, False, plan_desc)]
    if quote.include_implementation and quote.implementation_cost > 0:
        items.append(item("Implementation & Setup", "ONE-TIME", quote.implementation_cost, True))
    for mod in quote.addon_modules:
        items.append(item(mod.name, "ONE-TIME" if mod.is_one_time else "ADD-ON MODULE",
                          mod.display_amount, mod.is_one_time, mod.description))
    if quote.whatsapp_service:
        items.append(item("Smart-WhatsApp Notifications", "ADD-ON SERVICE", quote.whatsapp_cost, False))
    return items


def row_height(item: LineItem, layout: Layout) -> float:
    extra_label_lines = max(0, len(item.label_lines) - 1)
    return (layout.row_base_height + layout.label_line_height * extra_label_lines
            + layout.row_line_height * len(item.description_lines))


def build_summary_boxes(breakdown: FinancialBreakdown, symbol: str = "$") -> Tuple[SummaryBox, SummaryBox]:
    """The two boxes show the breakdown fields as computed, nothing re-derived."""
    tax_label = f"VAT ({format_pct(breakdown.tax_rate_pct)}%)"
    due_now = SummaryBox(
        title="DUE NOW",
        subtitle="Required before activation",
        rows=(
            ("Subtotal", format_money(breakdown.upfront_subtotal, symbol)),
            (tax_label, "+" + format_money(breakdown.upfront_tax, symbol)),
        ),
        total_label="TOTAL DUE TODAY",
        total_value=format_money(breakdown.upfront_amount, symbol),
    )

    rows = [("Subtotal", format_money(breakdown.recurring_base_subtotal, symbol))]
    if breakdown.is_monthly:
        rows.append((
            f"Financing ({format_pct(breakdown.effective_surcharge_pct)}%)",
            "+" + format_money(breakdown.financing_surcharge_amount, symbol),
        ))
    rows.append((tax_label, "+" + format_money(breakdown.tax_amount, symbol)))

    if breakdown.is_monthly:
        n = breakdown.installment_count
        rows.append((f"Total plan ({n} installments)", format_money(breakdown.recurring_gross, symbol)))
        recurring = SummaryBox(
            title="RECURRING PAYMENT",
            subtitle=f"Paid in {n} installments",
            rows=tuple(rows),
            total_label=f"Installment 1 of {n}",
            total_value=format_money(breakdown.installment_amount, symbol),
            total_suffix="/installment",
            note="* Consecutive payment plan.",
        )
    else:
        recurring = SummaryBox(
            title="ANNUAL LICENSE",
            subtitle="Single payment in advance",
            rows=tuple(rows),
            total_label="Total annual license",
            total_value=format_money(breakdown.installment_amount, symbol),
        )
    return due_now, recurring


def _header_info(quote: QuoteRecord, branding: CompanyBranding, issued_on: date) -> HeaderInfo:
    return HeaderInfo(
        company_name=(branding.name or "").upper(),
        address=(branding.address or "").upper(),
        contact_line="  |  ".join(b for b in [branding.phone, (branding.website or "").upper()] if b),
        reference=quote.id[:8].upper(),
        short_reference=quote.id[:6].upper(),
        issued_on=issued_on.strftime("%d/%m/%Y"),
    )


def _footer_info(quote: QuoteRecord, branding: CompanyBranding, creator: Optional[CreatorContext],
                 config: RenderConfig) -> FooterInfo:
    prepared = "Prepared by: "
    if creator and (creator.full_name or creator.email):
        prepared += "  ·  ".join(b for b in [creator.full_name, creator.email] if b)
    else:
        prepared += branding.name or "-"
    view_url = None
    if config.public_quote_base_url:
        view_url = f"{config.public_quote_base_url.rstrip('/')}/quote/{quote.id}"
    return FooterInfo(
        prepared_by=prepared,
        contact_line="  ·  ".join(branding.contact_bits),
        validity_note=f"Proposal valid for {config.validity_days} days from the issue date.",
        view_url=view_url,
    )


class ProposalComposer:
    """Assigns every block of one proposal to a page. One instance per render."""

    def __init__(self, measure: Optional[Measure] = None, layout: Optional[Layout] = None):
        # an injected measure sizes labels too; the default pair uses real Helvetica metrics
        self.measure = measure or helvetica_measure
        self.label_measure = measure or helvetica_bold_measure
        self.layout = layout or Layout()
        self.state = State.HEADER
        self._pages: List[Page] = []
        self._cursor = 0.0
        self._has_body = False

    # ---------- page lifecycle ----------
    @property
    def _page(self) -> Page:
        return self._pages[-1]

    def _open_page(self) -> None:
        L = self.layout
        page = Page(number=len(self._pages) + 1)
        page.blocks.append(Block("header", 0.0, L.header_height))
        self._pages.append(page)
        self._cursor = L.content_top
        self._has_body = False

    def _close_page(self) -> None:
        L = self.layout
        self._page.blocks.append(Block("footer", L.footer_top, L.page_height - L.footer_top))

    def _break_page(self) -> None:
        logger.debug("Page %s full at %.1fmm, opening page %s",
                     self._page.number, self._cursor, self._page.number + 1)
        self._close_page()
        self._open_page()

    def _fits(self, height: float) -> bool:
        return self._cursor + height <= self.layout.usable_bottom

    def _append(self, kind: str, height: float, payload: Any = None, body: bool = True) -> Block:
        block = Block(kind, self._cursor, height, payload)
        self._page.blocks.append(block)
        self._cursor += height
        if body:
            self._has_body = True
        return block

    def _place(self, kind: str, height: float, payload: Any = None, keep_with: float = 0.0) -> Block:
        # keep_with: height of the block that must share the page with this one
        if not self._fits(height + keep_with) and self._has_body:
            self._break_page()
            if kind == "line_item":
                self._append("table_head", self.layout.table_head_height)
        return self._append(kind, height, payload)

    # ---------- content ----------
    def _place_terms_paragraph(self, number: int, lines: List[str]) -> None:
        L = self.layout
        height = L.terms_line_height * len(lines) + L.terms_paragraph_gap
        if not self._fits(height) and self._has_body:
            self._break_page()
        if self._fits(height):
            self._append("terms_paragraph", height, TermsChunk(number, tuple(lines)))
            return

        # taller than what is left of an empty page: split by lines
        remaining = list(lines)
        chunk_number: Optional[int] = number
        while remaining:
            room = L.usable_bottom - self._cursor - L.terms_paragraph_gap
            take = max(1, int(room // L.terms_line_height))
            chunk, remaining = remaining[:take], remaining[take:]
            chunk_height = L.terms_line_height * len(chunk) + L.terms_paragraph_gap
            self._append("terms_paragraph", chunk_height, TermsChunk(chunk_number, tuple(chunk)))
            chunk_number = None
            if remaining:
                self._break_page()

    def compose(self, quote: QuoteRecord, breakdown: FinancialBreakdown, branding: CompanyBranding,
                lead: Optional[LeadContext] = None, creator: Optional[CreatorContext] = None,
                config: Optional[RenderConfig] = None, issued_on: Optional[date] = None) -> ComposedDocument:
        config = config or RenderConfig()
        L = self.layout
        if issued_on is None:
            issued_on = quote.created_at.date() if quote.created_at else date.today()

        self._pages = []
        self.state = State.HEADER
        self._open_page()

        self.state = State.BODY
        company = (lead.company_name if lead and lead.company_name else None) or quote.client_company
        self._append("client", L.client_block_height,
                     ClientInfo(quote.client_name, company, quote.plan_name, quote.dte_volume))
        items = build_line_items(quote, self.measure, L, self.label_measure)
        self._place("table_head", L.table_head_height, keep_with=row_height(items[0], L))
        for item in items:
            self._place("line_item", row_height(item, L), item)

        self.state = State.SUMMARY
        self._place("summary", L.summary_gap + L.summary_height,
                    build_summary_boxes(breakdown, config.currency_symbol))

        paragraphs = split_paragraphs(strip_emphasis(branding.terms_text or ""))
        if paragraphs:
            self.state = State.TERMS
            self._break_page()
            self._append("terms_title", L.terms_title_height, body=False)
            width = to_native_length(L.terms_width)
            for number, para in enumerate(paragraphs, start=1):
                lines = wrap_text(para, width, self.measure, L.terms_font_size)
                self._place_terms_paragraph(number, lines)
        else:
            logger.debug("No terms text for company %s; skipping terms page", branding.id)

        self.state = State.FOOTER
        self._close_page()

        doc = ComposedDocument(
            quote=quote,
            breakdown=breakdown,
            branding=branding,
            header=_header_info(quote, branding, issued_on),
            footer=_footer_info(quote, branding, creator, config),
            layout=L,
            pages=self._pages,
            currency_symbol=config.currency_symbol,
        )
        logger.debug("Composed quote %s into %s page(s)", quote.id, doc.page_count)
        return doc


def compose_document(quote: QuoteRecord, breakdown: FinancialBreakdown, branding: CompanyBranding,
                     lead: Optional[LeadContext] = None, creator: Optional[CreatorContext] = None,
                     config: Optional[RenderConfig] = None, issued_on: Optional[date] = None,
                     measure: Optional[Measure] = None) -> ComposedDocument:
    return ProposalComposer(measure=measure).compose(
        quote, breakdown, branding, lead=lead, creator=creator, config=config, issued_on=issued_on
    )
