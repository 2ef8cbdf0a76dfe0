"""Amazon 상품 페이지 어댑터"""

from src.crawlers.result import Availability

from .base import FieldStrategies, PlatformAdapter, ReviewStrategies


class AmazonAdapter(PlatformAdapter):
    name = "amazon"
    domain_markers = ("amazon.",)
    ready_selector = ".a-price-whole, .a-offscreen, #priceblock_dealprice, #priceblock_ourprice"
    default_availability = Availability.OUT_OF_STOCK

    strategies = FieldStrategies(
        title=(
            "#productTitle",
            "h1.a-size-large",
        ),
        price=(
            ".a-price-whole",
            ".a-offscreen",
            "#priceblock_dealprice",
            "#priceblock_ourprice",
        ),
        image=(
            "#landingImage",
            ".a-dynamic-image",
        ),
        availability=(
            "#availability span",
            "#availability",
        ),
        discount=(
            ".a-size-large.a-color-price.savingsPercentage",
            ".savingsPercentage",
        ),
    )

    review_strategies = ReviewStrategies(
        container=('[data-hook="review"]', ".review"),
        rating=('[data-hook="review-star-rating"]', ".review-rating", ".a-icon-alt"),
        title=('[data-hook="review-title"]', ".review-title"),
        text=('[data-hook="review-body"]', ".review-text"),
        reviewer=('[data-hook="genome-widget"] .a-profile-name', ".a-profile-name"),
        date=('[data-hook="review-date"]', ".review-date"),
        verified=('[data-hook="avp-badge"]', ".avp-badge"),
        helpful=('[data-hook="helpful-vote-statement"]',),
    )
