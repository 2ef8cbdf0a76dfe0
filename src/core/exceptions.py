"""커스텀 예외 정의 (Structured Exception Hierarchy)"""
from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """호출자에게 노출되는 실패 분류 (closed set)"""

    NETWORK = "network"
    TIMEOUT = "timeout"
    UNSUPPORTED_PLATFORM = "unsupported_platform"
    EXTRACTION_FAILED = "extraction_failed"


# 기본 예외 클래스
class PriceTrackerException(Exception):
    """기본 예외 클래스 - 모든 커스텀 예외의 부모"""
    def __init__(self, message: str, error_code: str = "UNKNOWN_ERROR", details: Optional[dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


# 스크래핑 관련 예외
class ScrapeException(PriceTrackerException):
    """스크래핑 관련 예외의 기본 클래스"""
    def __init__(self, message: str, error_code: str = "SCRAPE_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "SCRAPE_ERROR", details)


class UnsupportedPlatformException(ScrapeException):
    """지원하지 않는 쇼핑몰 URL (큐에 들어가지 않음)"""
    def __init__(self, url: str, details: Optional[dict[str, Any]] = None):
        message = f"Unsupported e-commerce platform: {url}"
        super().__init__(message, "UNSUPPORTED_PLATFORM", details or {"url": url})


class NavigationTimeoutException(ScrapeException):
    """페이지 이동/추출 타임아웃 - 브라우저 재시작 없이 재시도"""
    def __init__(self, operation: str, timeout_s: float, details: Optional[dict[str, Any]] = None):
        message = f"Timeout during '{operation}' after {timeout_s}s"
        super().__init__(message, "NAVIGATION_TIMEOUT",
                        details or {"operation": operation, "timeout_s": timeout_s})


class ExtractionFailedException(ScrapeException):
    """가격 등 필수 정보를 추출하지 못함 - 브라우저 재시작 없이 재시도"""
    def __init__(self, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Extraction failed: {reason}"
        super().__init__(message, "EXTRACTION_FAILED", details or {"reason": reason})


class ConnectionLevelException(ScrapeException):
    """브라우저 연결 단절 (소켓 리셋, 자동화 채널 끊김) - 브라우저 재시작 + 백오프"""
    def __init__(self, reason: str, generation: int = 0, details: Optional[dict[str, Any]] = None):
        message = f"Browser connection failed: {reason}"
        self.generation = generation
        super().__init__(message, "CONNECTION_ERROR",
                        details or {"reason": reason, "generation": generation})


class BrowserLaunchException(ConnectionLevelException):
    """브라우저 실행 실패"""
    def __init__(self, reason: str, generation: int = 0, details: Optional[dict[str, Any]] = None):
        super().__init__(f"launch failed ({reason})", generation, details)
        self.error_code = "BROWSER_LAUNCH_ERROR"


class StaleEngineException(ScrapeException):
    """작업 도중 공유 브라우저가 다른 작업에 의해 교체됨"""
    def __init__(self, started_generation: int, current_generation: int, details: Optional[dict[str, Any]] = None):
        message = (
            f"Browser engine relaunched during operation "
            f"(started on generation {started_generation}, now {current_generation})"
        )
        self.started_generation = started_generation
        self.current_generation = current_generation
        super().__init__(message, "STALE_ENGINE",
                        details or {"started": started_generation, "current": current_generation})


class FetchFailedException(PriceTrackerException):
    """호출자에게 전달되는 최종 실패 (분류 포함)"""

    MESSAGES = {
        ErrorCategory.NETWORK: "Network connection failed. Please try again.",
        ErrorCategory.TIMEOUT: "Request timed out. The website may be slow or unavailable.",
        ErrorCategory.UNSUPPORTED_PLATFORM: "This e-commerce platform is not supported yet.",
        ErrorCategory.EXTRACTION_FAILED: (
            "Failed to scrape product information. Please check the URL and try again."
        ),
    }

    def __init__(self, category: ErrorCategory, url: str, details: Optional[dict[str, Any]] = None):
        self.category = category
        self.url = url
        super().__init__(
            self.MESSAGES[category],
            category.value.upper(),
            details or {"url": url},
        )


# 큐 관련 예외
class QueueShutdownException(PriceTrackerException):
    """큐 종료로 대기 중이던 작업이 실행되지 못함"""
    def __init__(self, origin: str, details: Optional[dict[str, Any]] = None):
        message = f"Origin queue for '{origin}' was shut down before the operation ran"
        super().__init__(message, "QUEUE_SHUTDOWN", details or {"origin": origin})


# 캐시 관련 예외 (CacheStore 내부에서만 사용, 외부로 전파되지 않음)
class CacheException(PriceTrackerException):
    """캐시 관련 예외"""
    def __init__(self, message: str, error_code: str = "CACHE_ERROR", details: Optional[dict[str, Any]] = None):
        super().__init__(message, error_code or "CACHE_ERROR", details)


class CacheBackendException(CacheException):
    """캐시 백엔드(Redis) 연결/명령 실패"""
    def __init__(self, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Cache backend {operation} failed: {reason}"
        super().__init__(message, "CACHE_BACKEND_ERROR",
                        details or {"operation": operation, "reason": reason})


class CacheSerializationException(CacheException):
    """캐시 직렬화/역직렬화 오류"""
    def __init__(self, operation: str, reason: str, details: Optional[dict[str, Any]] = None):
        message = f"Cache {operation} failed: {reason}"
        super().__init__(message, "CACHE_SERIALIZATION_ERROR",
                        details or {"operation": operation, "reason": reason})
