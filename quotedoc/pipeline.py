"""Render a quote into a proposal PDF and hand it to the blob store.

This is the seam between the pure core (financials, composition, rendering)
and I/O. Fatal render errors come back as ``RenderResult(url=None, error=...)``
so callers such as a chat-message writer can fall back to plain text.
"""
import logging
import re
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Optional, Tuple

from reportlab.lib.utils import ImageReader

from quotedoc.assets import fetch_logo
from quotedoc.composer import ComposedDocument, compose_document
from quotedoc.errors import BlobStoreError, QuoteRenderError, RecordNotFoundError
from quotedoc.financials import compute_breakdown
from quotedoc.logs import log_event
from quotedoc.models import (
    CompanyBranding, CreatorContext, LeadContext, QuoteRecord, branding_from_dict, creator_from_dict,
    quote_from_dict,
)
from quotedoc.renderer import render_pdf
from quotedoc.settings import RenderConfig

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"

LogoFetcher = Callable[[Optional[str], float], Optional[ImageReader]]


@dataclass(frozen=True)
class RenderResult:
    url: Optional[str]
    error: Optional[str] = None
    filename: Optional[str] = None
    page_count: int = 0
    error_type: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.url is not None and self.error is None

    def as_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "error": self.error, "filename": self.filename, "page_count": self.page_count}


def proposal_filename(client_name: str, now: Optional[float] = None) -> str:
    safe = re.sub(r"[^A-Za-z0-9]", "_", (client_name or "").strip()) or "Client"
    stamp = int((time.time() if now is None else now) * 1000)
    return f"Quote_{safe}_{stamp}.pdf"


def build_document(quote: QuoteRecord, branding: CompanyBranding, config: RenderConfig,
                   lead: Optional[LeadContext] = None, creator: Optional[CreatorContext] = None,
                   issued_on: Optional[date] = None) -> ComposedDocument:
    breakdown = compute_breakdown(quote, config)
    return compose_document(quote, breakdown, branding, lead=lead, creator=creator,
                            config=config, issued_on=issued_on)


def render_proposal_bytes(quote: QuoteRecord, branding: CompanyBranding, config: RenderConfig,
                          lead: Optional[LeadContext] = None, creator: Optional[CreatorContext] = None,
                          logo_fetcher: LogoFetcher = fetch_logo,
                          issued_on: Optional[date] = None) -> Tuple[ComposedDocument, bytes]:
    """Compose and draw the proposal; raises on fatal errors. Returns (document, pdf bytes)."""
    document = build_document(quote, branding, config, lead=lead, creator=creator, issued_on=issued_on)
    logo = logo_fetcher(branding.logo_url, config.logo_timeout)
    if branding.logo_url and logo is None:
        logger.info("Using placeholder logo for company %s", branding.id or branding.name)
    return document, render_pdf(document, logo)


def _upload(blob_store, pdf_bytes: bytes, filename: str) -> str:
    """Any store failure comes back as BlobStoreError, whatever the store raised."""
    try:
        return blob_store.upload(pdf_bytes, filename, PDF_CONTENT_TYPE)
    except BlobStoreError:
        raise
    except Exception as e:
        raise BlobStoreError(f"Upload of {filename} failed: {e}") from e


def _failed(quote_id: str, e: Exception) -> RenderResult:
    log_event("proposal_failed", {"quote_id": quote_id, "error": str(e), "error_type": type(e).__name__})
    return RenderResult(url=None, error=str(e), error_type=type(e).__name__)


def render_proposal(quote: QuoteRecord, branding: CompanyBranding, blob_store, config: RenderConfig,
                    lead: Optional[LeadContext] = None, creator: Optional[CreatorContext] = None,
                    logo_fetcher: LogoFetcher = fetch_logo, now: Optional[float] = None) -> RenderResult:
    """Never raises: every failure is returned as ``RenderResult(url=None, error=...)``."""
    started = time.perf_counter()
    try:
        document, pdf_bytes = render_proposal_bytes(quote, branding, config, lead=lead, creator=creator,
                                                    logo_fetcher=logo_fetcher)
        filename = proposal_filename(quote.client_name, now)
        url = _upload(blob_store, pdf_bytes, filename)
    except QuoteRenderError as e:
        logger.warning("Proposal render for quote %s aborted: %s", quote.id, e)
        return _failed(quote.id, e)
    except Exception as e:
        logger.exception("Proposal render for quote %s crashed", quote.id)
        return _failed(quote.id, e)

    log_event("proposal_rendered", {
        "quote_id": quote.id,
        "company_id": branding.id,
        "filename": filename,
        "pages": document.page_count,
        "bytes": len(pdf_bytes),
        "ms": round((time.perf_counter() - started) * 1000, 1),
    })
    return RenderResult(url=url, filename=filename, page_count=document.page_count)


def generate_proposal(quote_id: str, quotes, companies, blob_store, config: RenderConfig,
                      lead: Optional[LeadContext] = None, creator: Optional[CreatorContext] = None,
                      profiles=None, logo_fetcher: LogoFetcher = fetch_logo,
                      now: Optional[float] = None) -> RenderResult:
    """Look the quote and its company up, then render and upload.

    ``creator`` defaults to the quote author's profile when a ``profiles``
    repository is given.
    """
    try:
        quote, branding, creator = load_inputs(quote_id, quotes, companies, profiles, creator)
    except QuoteRenderError as e:
        logger.warning("Cannot render quote %s: %s", quote_id, e)
        return _failed(quote_id, e)
    return render_proposal(quote, branding, blob_store, config, lead=lead, creator=creator,
                           logo_fetcher=logo_fetcher, now=now)


def load_inputs(quote_id: str, quotes, companies, profiles=None,
                creator: Optional[CreatorContext] = None):
    """Fetch and parse the records one render needs. Raises QuoteRenderError subclasses."""
    row = quotes.get(quote_id)
    if row is None:
        raise RecordNotFoundError("quote", quote_id)
    quote = quote_from_dict(row)

    company_row = companies.get(quote.company_id) if quote.company_id else None
    if company_row is None:
        raise RecordNotFoundError("company", quote.company_id or "-")
    branding = branding_from_dict(company_row)

    if creator is None and profiles is not None and quote.created_by:
        creator = creator_from_dict(profiles.get(quote.created_by))
    return quote, branding, creator
