import io
import logging
from typing import Optional

import requests
from reportlab.lib.utils import ImageReader

logger = logging.getLogger(__name__)


def fetch_logo(url: Optional[str], timeout: float = 10.0,
               session: Optional[requests.Session] = None) -> Optional[ImageReader]:
    """Download and decode the company logo.

    Any failure (no url, non-2xx, network error, undecodable bytes) returns None
    and the header draws the placeholder glyph instead.
    """
    if not url:
        return None
    getter = session.get if session is not None else requests.get
    try:
        r = getter(url, timeout=timeout)
    except requests.RequestException as e:
        logger.info("Logo fetch failed for %s: %s", url, e)
        return None
    if not 200 <= r.status_code < 300:
        logger.info("Logo fetch for %s returned HTTP %s", url, r.status_code)
        return None
    return decode_logo(r.content)


def decode_logo(data: bytes) -> Optional[ImageReader]:
    if not data:
        return None
    try:
        img = ImageReader(io.BytesIO(data))
        img.getSize()
        # header alone is not enough: a truncated body only fails on full decode
        img.getRGBData()
    except Exception as e:
        logger.info("Logo could not be decoded: %s", e)
        return None
    return img


def placeholder_initial(company_name: Optional[str]) -> str:
    for ch in (company_name or "").strip():
        if ch.isalnum():
            return ch.upper()
    return "Q"
