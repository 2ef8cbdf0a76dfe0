"""Price extraction helpers."""

from __future__ import annotations

import math
import re
from typing import Iterable, Optional


# 통화 기호가 앞/뒤에 붙은 숫자 (인도식 자릿수 구분 1,54,900 포함)
_CURRENCY_PATTERNS = (
    re.compile(r"(?:₹|Rs\.?|INR)\s*(\d[\d,]*(?:\.\d{1,2})?)", re.IGNORECASE),
    re.compile(r"(\d[\d,]*(?:\.\d{1,2})?)\s*(?:₹|INR)", re.IGNORECASE),
)

DEFAULT_MAX_PLAUSIBLE_PRICE = 100_000_000.0


def normalize_price_text(price_text: Optional[str]) -> Optional[float]:
    """가격 텍스트에서 숫자/소수점 외 문자를 모두 제거한 뒤 파싱.

    Examples:
        >>> normalize_price_text("₹1,54,900")
        154900.0
        >>> normalize_price_text("Rs. 1,299.50")
        1299.5
        >>> normalize_price_text("Currently unavailable")

    Returns:
        양수 가격 또는 None
    """
    if not price_text:
        return None

    cleaned = re.sub(r"[^\d.]", "", price_text).strip(".")
    if not cleaned:
        return None

    # "1.299.00" 처럼 점이 여러 개면 마지막 점만 소수점으로 취급
    if cleaned.count(".") > 1:
        head, _, tail = cleaned.rpartition(".")
        cleaned = f"{head.replace('.', '')}.{tail}"

    try:
        value = float(cleaned)
    except ValueError:
        return None

    if not math.isfinite(value) or value <= 0:
        return None
    return value


def parse_discount_percent(discount_text: Optional[str]) -> Optional[int]:
    """할인율 텍스트("-23%", "23% off")에서 정수 퍼센트 추출"""
    if not discount_text:
        return None

    digits = re.sub(r"[^\d]", "", discount_text)
    if not digits:
        return None

    value = int(digits)
    if not 0 <= value <= 100:
        return None
    return value


def scan_text_for_price(
    text: Optional[str],
    min_price: float = 1000.0,
    max_price: float = DEFAULT_MAX_PLAUSIBLE_PRICE,
) -> Optional[float]:
    """렌더링된 본문 전체에서 통화 표기 가격 후보를 찾아 가장 큰 값을 반환.

    선택자로 가격을 찾지 못했을 때의 보조 전략입니다. min_price 이하의
    숫자(수량, 평점, 배송비 등)는 버립니다.
    """
    if not text:
        return None

    candidates = [
        value
        for value in _iter_currency_amounts(text)
        if min_price < value <= max_price
    ]
    return max(candidates) if candidates else None


def _iter_currency_amounts(text: str) -> Iterable[float]:
    for pattern in _CURRENCY_PATTERNS:
        for match in pattern.finditer(text):
            value = normalize_price_text(match.group(1))
            if value is not None:
                yield value
