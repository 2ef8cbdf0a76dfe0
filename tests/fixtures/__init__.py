"""테스트 자산(데이터) 레이어

규칙:
- 로직 없음 (단순 dict/list/primitive)
- 엔진/네트워크 의존 없음
"""

from .pages import RAW_FIELDS, RAW_REVIEWS
from .urls import URLS

__all__ = [
    "RAW_FIELDS",
    "RAW_REVIEWS",
    "URLS",
]
