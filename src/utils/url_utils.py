"""URL 파싱 유틸리티"""
from typing import Optional
from urllib.parse import urlparse


SCRAPE_CACHE_PREFIX = "scrape:"
REVIEW_CACHE_PREFIX = "reviews:"


def extract_origin(url: str) -> Optional[str]:
    """
    URL에서 rate limit 단위(origin = hostname) 추출

    Examples:
        >>> extract_origin("https://www.amazon.in/dp/B0CHX1W1XY?th=1")
        'www.amazon.in'
        >>> extract_origin("not a url")

    Args:
        url: 상품 URL

    Returns:
        소문자 hostname 또는 None
    """
    if not url or not isinstance(url, str):
        return None

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None

    if parsed.scheme not in ("http", "https"):
        return None
    return parsed.hostname or None


def is_http_url(url: str) -> bool:
    return extract_origin(url) is not None


def generate_scrape_cache_key(url: str) -> str:
    """스크래핑 결과 캐시 키 ("scrape:" + 원본 URL)"""
    return f"{SCRAPE_CACHE_PREFIX}{url}"


def generate_review_cache_key(url: str, max_reviews: int) -> str:
    """리뷰 캐시 키 (요청 건수마다 별도 엔트리)"""
    return f"{REVIEW_CACHE_PREFIX}{max_reviews}:{url}"
