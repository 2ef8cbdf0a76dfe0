"""Extraction Result Standard Format

스크래핑 결과의 표준 형식을 정의합니다.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from src.core.exceptions import ExtractionFailedException


class Availability(str, Enum):
    """재고 상태"""

    IN_STOCK = "in_stock"
    OUT_OF_STOCK = "out_of_stock"
    LIMITED = "limited"


@dataclass
class ExtractionResult:
    """스크래핑 결과 표준 포맷

    양수 가격이 없는 결과는 성공이 아니라 추출 실패이므로
    생성 시점에 ExtractionFailedException을 던집니다.

    Attributes:
        name: 상품명
        price: 가격 (통화 무관, 양수)
        image: 대표 이미지 URL
        availability: 재고 상태
        discount: 할인율 (%)
        source: 플랫폼 태그 ("amazon" | "flipkart" | "myntra")
        url: 스크래핑한 URL
        scraped_at: 추출 시각 (ISO 8601)
    """

    name: Optional[str]
    price: float
    source: str
    image: Optional[str] = None
    availability: Availability = Availability.IN_STOCK
    discount: int = 0
    url: Optional[str] = None
    scraped_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def __post_init__(self) -> None:
        try:
            price = float(self.price)
        except (TypeError, ValueError):
            raise ExtractionFailedException(
                f"price is not numeric: {self.price!r}", {"source": self.source, "url": self.url}
            )
        if not price > 0:
            raise ExtractionFailedException(
                f"no positive price ({self.price!r})", {"source": self.source, "url": self.url}
            )
        self.price = price
        self.availability = Availability(self.availability)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "price": self.price,
            "image": self.image,
            "availability": self.availability.value,
            "discount": self.discount,
            "source": self.source,
            "url": self.url,
            "scraped_at": self.scraped_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionResult":
        """딕셔너리(캐시 값)에서 ExtractionResult 생성

        Args:
            data: to_dict() 형식의 데이터

        Returns:
            ExtractionResult 인스턴스
        """
        kwargs = {
            "name": data.get("name"),
            "price": data.get("price"),
            "source": data.get("source") or "unknown",
            "image": data.get("image"),
            "availability": data.get("availability") or Availability.IN_STOCK,
            "discount": int(data.get("discount") or 0),
            "url": data.get("url"),
        }
        if data.get("scraped_at"):
            kwargs["scraped_at"] = data["scraped_at"]
        return cls(**kwargs)


@dataclass
class Review:
    """상품 리뷰 1건

    평점(0 초과)과 본문이 모두 있는 리뷰만 생성됩니다.

    Attributes:
        rating: 별점 (0 < rating <= 5)
        text: 리뷰 본문 (제목이 있으면 앞에 붙임)
        reviewer: 작성자 이름
        date: 사이트에 표시된 작성일 문자열
        verified_purchase: 구매 인증 여부
        helpful_votes: "도움이 됨" 수
        source: 플랫폼 태그
    """

    rating: float
    text: str
    source: str
    reviewer: str = "Anonymous"
    date: str = ""
    verified_purchase: bool = False
    helpful_votes: int = 0

    def __post_init__(self) -> None:
        self.rating = float(self.rating)
        if not 0 < self.rating <= 5:
            raise ValueError(f"rating out of range: {self.rating}")
        self.text = (self.text or "").strip()
        if not self.text:
            raise ValueError("review text is empty")
        self.helpful_votes = max(0, int(self.helpful_votes or 0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rating": self.rating,
            "text": self.text,
            "reviewer": self.reviewer,
            "date": self.date,
            "verified_purchase": self.verified_purchase,
            "helpful_votes": self.helpful_votes,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Review":
        return cls(
            rating=data.get("rating"),
            text=data.get("text"),
            source=data.get("source") or "unknown",
            reviewer=data.get("reviewer") or "Anonymous",
            date=data.get("date") or "",
            verified_purchase=bool(data.get("verified_purchase")),
            helpful_votes=data.get("helpful_votes") or 0,
        )
