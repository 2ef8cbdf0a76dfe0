"""Myntra 상품 페이지 어댑터"""

from typing import Optional

from src.crawlers.result import Availability

from .base import FieldStrategies, PlatformAdapter


class MyntraAdapter(PlatformAdapter):
    name = "myntra"
    domain_markers = ("myntra.",)
    ready_selector = '.pdp-price, [class*="price"]'
    default_availability = Availability.OUT_OF_STOCK

    strategies = FieldStrategies(
        title=(
            ".pdp-product-name",
            ".pdp-title",
            "h1",
        ),
        price=(
            ".pdp-price",
            '[class*="price"]',
        ),
        image=(
            ".image-grid-image",
            'img[class*="image"]',
        ),
        availability=(
            ".size-buttons-size-button",
            '[class*="size"]',
        ),
        discount=(
            ".pdp-discount",
        ),
    )

    def classify_availability(self, text: Optional[str]) -> Availability:
        # 사이즈 버튼이 렌더링되면 구매 가능한 상태
        if text and "sold out" not in text.lower():
            return Availability.IN_STOCK
        return Availability.OUT_OF_STOCK
