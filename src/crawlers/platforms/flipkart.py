"""Flipkart 상품 페이지 어댑터

Flipkart는 클래스명이 자주 바뀌어 선택자 후보가 많고, 로그인 팝업을
닫은 뒤 추출합니다.
"""

from src.crawlers.result import Availability

from .base import FieldStrategies, PlatformAdapter, ReviewStrategies


class FlipkartAdapter(PlatformAdapter):
    name = "flipkart"
    domain_markers = ("flipkart.",)
    wait_until = "networkidle"
    settle_ms = 5000
    dismiss_selector = 'button[class*="close"], ._2KpZ6l._2doB4z, [data-testid="close"]'
    default_availability = Availability.IN_STOCK

    strategies = FieldStrategies(
        title=(
            ".B_NuCI",
            'h1[class*="title"]',
            "h1",
            '[data-testid="product-title"]',
            ".product-title",
        ),
        price=(
            ".Nx9bqj",
            "._30jeq3._16Jk6d",
            "._30jeq3",
            '[class*="price"]',
            '[data-testid="price"]',
            ".price",
            'span[class*="price"]',
            'div[class*="price"]',
            'div[class*="Nx9bqj"]',
            'div[class*="_25b18c"]',
            'span[class*="Nx9bqj"]',
            'span[class*="_25b18c"]',
        ),
        image=(
            "._396cs4._2amPT._3qGm1",
            'img[class*="image"]',
            'img[alt*="product"]',
            ".product-image img",
            'img[data-testid="product-image"]',
            'img[class*="_396cs4"]',
            'img[class*="q6DCl0"]',
            'img[src*="rukmini1.flixcart.com"]',
        ),
        availability=(
            "._2JC05C",
            '[class*="stock"]',
            '[data-testid="availability"]',
            ".availability",
            'span[class*="stock"]',
        ),
        discount=(
            "._3Ay6Sb span",
            '[class*="discount"]',
            ".discount",
            'span[class*="off"]',
        ),
    )

    # 리뷰 카드에는 제목 없이 본문만 있음
    review_strategies = ReviewStrategies(
        container=("._27M-vq", ".review-container", 'div[class*="review"]'),
        rating=("._3LWZlK", '[class*="rating"]'),
        text=(".t-ZTKy", ".review-text"),
        reviewer=("._2sc7ZR", ".reviewer-name"),
        date=("._2-N8zT", ".review-date"),
        verified=("._1lRcqv",),
        helpful=("._3c3Ev5",),
    )
