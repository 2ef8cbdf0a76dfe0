"""URL 유틸 유닛 테스트"""
import pytest

from src.core.logging import sanitize_for_log
from src.utils.url_utils import (
    extract_origin,
    generate_review_cache_key,
    generate_scrape_cache_key,
    is_http_url,
)
from tests.fixtures import URLS


class TestExtractOrigin:
    """origin(hostname) 추출"""

    def test_amazon(self):
        assert extract_origin(URLS["amazon"]) == "www.amazon.in"

    def test_hostname_lowercased(self):
        assert extract_origin("https://WWW.Flipkart.COM/p/itm1") == "www.flipkart.com"

    def test_port_is_not_part_of_origin(self):
        assert extract_origin("http://localhost:8080/dp/1") == "localhost"

    @pytest.mark.parametrize("url", [URLS["malformed"], "", None, "ftp://files.amazon.in/x", "https://"])
    def test_invalid(self, url):
        assert extract_origin(url) is None
        assert is_http_url(url) is False


def test_scrape_cache_key_keeps_full_url():
    """캐시 키는 "scrape:" + 원본 URL"""
    assert generate_scrape_cache_key(URLS["amazon"]) == f"scrape:{URLS['amazon']}"


def test_review_cache_key_includes_limit():
    key = generate_review_cache_key(URLS["amazon"], 5)
    assert key == f"reviews:5:{URLS['amazon']}"
    assert key != generate_review_cache_key(URLS["amazon"], 10)


class TestSanitizeForLog:
    """로깅용 URL 마스킹"""

    def test_masks_sensitive_query_params(self):
        result = sanitize_for_log(URLS["with_token"], max_length=200)
        assert "s3cr3t" not in result
        assert "session_id=***" in result
        assert "tag=abc" in result

    def test_truncates(self):
        assert sanitize_for_log("x" * 150).endswith("...")

    def test_empty(self):
        assert sanitize_for_log("") == "[empty]"
