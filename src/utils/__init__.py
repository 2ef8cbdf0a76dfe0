"""Utilities package - Flat structure (no nested directories)"""

# Price utilities
from .prices import normalize_price_text, parse_discount_percent, scan_text_for_price

# URL utilities
from .url_utils import (
    REVIEW_CACHE_PREFIX,
    SCRAPE_CACHE_PREFIX,
    extract_origin,
    generate_review_cache_key,
    generate_scrape_cache_key,
    is_http_url,
)

__all__ = [
    # prices
    "normalize_price_text",
    "parse_discount_percent",
    "scan_text_for_price",
    # url
    "REVIEW_CACHE_PREFIX",
    "SCRAPE_CACHE_PREFIX",
    "extract_origin",
    "generate_review_cache_key",
    "generate_scrape_cache_key",
    "is_http_url",
]
