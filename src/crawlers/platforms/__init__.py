"""지원 쇼핑몰 어댑터 레지스트리.

URL 부분 문자열로 고정된(closed) 플랫폼 집합 중 하나를 선택합니다.
"""

from typing import Optional

from .amazon import AmazonAdapter
from .base import (
    COLLECT_FIELDS_SCRIPT,
    COLLECT_REVIEWS_SCRIPT,
    FieldStrategies,
    PlatformAdapter,
    ReviewStrategies,
)
from .flipkart import FlipkartAdapter
from .myntra import MyntraAdapter


def default_platforms() -> tuple[PlatformAdapter, ...]:
    return (AmazonAdapter(), FlipkartAdapter(), MyntraAdapter())


def resolve_platform(
    url: str, platforms: Optional[tuple[PlatformAdapter, ...]] = None
) -> Optional[PlatformAdapter]:
    """URL에 맞는 어댑터 반환 (지원하지 않으면 None)"""
    if not url:
        return None
    for adapter in platforms or default_platforms():
        if adapter.matches(url):
            return adapter
    return None


__all__ = [
    "COLLECT_FIELDS_SCRIPT",
    "COLLECT_REVIEWS_SCRIPT",
    "FieldStrategies",
    "ReviewStrategies",
    "PlatformAdapter",
    "AmazonAdapter",
    "FlipkartAdapter",
    "MyntraAdapter",
    "default_platforms",
    "resolve_platform",
]
