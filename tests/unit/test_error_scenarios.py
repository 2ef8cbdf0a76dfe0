"""예외 계층 / 에러 코드 테스트"""

import pytest

from src.core.exceptions import (
    BrowserLaunchException,
    CacheBackendException,
    ConnectionLevelException,
    ErrorCategory,
    ExtractionFailedException,
    FetchFailedException,
    NavigationTimeoutException,
    PriceTrackerException,
    QueueShutdownException,
    ScrapeException,
    StaleEngineException,
    UnsupportedPlatformException,
)


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "exc,error_code",
        [
            (UnsupportedPlatformException("https://www.ebay.com/itm/1"), "UNSUPPORTED_PLATFORM"),
            (NavigationTimeoutException("navigation", 30), "NAVIGATION_TIMEOUT"),
            (ExtractionFailedException("no price"), "EXTRACTION_FAILED"),
            (ConnectionLevelException("socket hang up", 2), "CONNECTION_ERROR"),
            (StaleEngineException(1, 2), "STALE_ENGINE"),
            (BrowserLaunchException("timeout", 3), "BROWSER_LAUNCH_ERROR"),
        ],
    )
    def test_scrape_exceptions(self, exc, error_code):
        assert isinstance(exc, ScrapeException)
        assert isinstance(exc, PriceTrackerException)
        assert exc.error_code == error_code
        assert str(exc).startswith(f"[{error_code}]")

    def test_browser_launch_is_connection_level(self):
        exc = BrowserLaunchException("executable not found", 4)

        assert isinstance(exc, ConnectionLevelException)
        assert exc.generation == 4
        assert "executable not found" in exc.message

    def test_stale_engine_generations(self):
        exc = StaleEngineException(1, 3)

        assert exc.started_generation == 1
        assert exc.current_generation == 3
        assert exc.details == {"started": 1, "current": 3}

    def test_navigation_timeout_details(self):
        exc = NavigationTimeoutException("extraction", 15.0)
        assert exc.details == {"operation": "extraction", "timeout_s": 15.0}

    def test_queue_and_cache_exceptions_are_not_scrape_errors(self):
        assert not isinstance(QueueShutdownException("www.amazon.in"), ScrapeException)
        assert not isinstance(CacheBackendException("get", "down"), ScrapeException)


class TestFetchFailed:
    @pytest.mark.parametrize("category", list(ErrorCategory))
    def test_every_category_has_message(self, category):
        exc = FetchFailedException(category, "https://www.amazon.in/dp/1")

        assert exc.category == category
        assert exc.error_code == category.value.upper()
        assert exc.message == FetchFailedException.MESSAGES[category]
        assert exc.details == {"url": "https://www.amazon.in/dp/1"}

    def test_categories_are_closed_set(self):
        assert {c.value for c in ErrorCategory} == {
            "network",
            "timeout",
            "unsupported_platform",
            "extraction_failed",
        }

    def test_custom_details(self):
        exc = FetchFailedException(
            ErrorCategory.TIMEOUT, "https://x", {"url": "https://x", "reason": "NAVIGATION_TIMEOUT"}
        )
        assert exc.details["reason"] == "NAVIGATION_TIMEOUT"
