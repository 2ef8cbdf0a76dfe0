"""Engine Layer - Scrape Orchestration

- ScrapeOrchestrator: URL 1건 조회 진입점 (cache → origin queue → executor)
- FetchResult / ReviewFetchResult / FetchState: 표준 결과 형식과 상태
- create_orchestrator: 시작 시 레지스트리 1회 구성
"""

from .factory import create_orchestrator
from .orchestrator import ScrapeOrchestrator, categorize_error
from .result import FetchResult, FetchState, ReviewFetchResult

__all__ = [
    "ScrapeOrchestrator",
    "FetchResult",
    "FetchState",
    "ReviewFetchResult",
    "categorize_error",
    "create_orchestrator",
]
