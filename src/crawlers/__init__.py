"""Scraping modules (Playwright executor + platform adapters).

공개 API는 이 파일에서만 export합니다.
"""

from .executor import ScrapeExecutor, classify_error
from .platforms import PlatformAdapter, default_platforms, resolve_platform
from .playwright import BrowserEngine, EngineHandle
from .result import Availability, ExtractionResult, Review

__all__ = [
        "ScrapeExecutor",
        "classify_error",
        "PlatformAdapter",
        "default_platforms",
        "resolve_platform",
        "BrowserEngine",
        "EngineHandle",
        "Availability",
        "ExtractionResult",
        "Review",
]
