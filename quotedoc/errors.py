"""Error types raised by the proposal core.

Anything deriving from QuoteRenderError is caught by the pipeline and turned
into a ``{"url": None, "error": ...}`` result instead of escaping the request.
"""


class QuoteRenderError(Exception):
    """Base class for failures that abort a proposal render."""


class QuoteDataError(QuoteRenderError, ValueError):
    """The stored quote record is malformed."""


class FinancialModelError(QuoteDataError):
    """The breakdown cannot be computed from the given totals and rates."""


class RecordNotFoundError(QuoteRenderError, LookupError):
    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"{collection} record '{record_id}' not found")


class BlobStoreError(QuoteRenderError):
    """Upload to the blob store failed."""
