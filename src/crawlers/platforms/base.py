"""Platform adapter 기본 클래스 + 공통 추출 루틴.

각 쇼핑몰 어댑터는 필드별(title/price/image/availability/discount)
선택자 목록만 선언하고, 실제 추출은 이 모듈에서 처리합니다.

1. 페이지에서 선택자마다 첫 번째 매칭 요소의 텍스트/이미지 주소를
   한 번의 evaluate로 수집 (선언 순서 유지)
2. Python에서 필드별로 앞에서부터 첫 번째 유효한 값을 채택
3. 가격을 못 찾으면 본문 전체 텍스트에서 통화 표기 숫자를 스캔

리뷰는 ReviewStrategies(리뷰 카드 컨테이너 + 카드 안 필드별 선택자)를
선언한 어댑터만 지원합니다.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from playwright.async_api import Error as PlaywrightError, Page

from src.core.config import settings
from src.core.exceptions import ExtractionFailedException, UnsupportedPlatformException
from src.core.logging import logger
from src.crawlers.result import Availability, ExtractionResult, Review
from src.utils.prices import normalize_price_text, parse_discount_percent, scan_text_for_price


COLLECT_FIELDS_SCRIPT = """
(cfg) => {
  const first = (sel) => {
    try { return document.querySelector(sel); } catch (e) { return null; }
  };
  const text = (sel) => {
    const el = first(sel);
    const value = el && el.textContent ? el.textContent.trim() : '';
    return value || null;
  };
  const src = (sel) => {
    let el = first(sel);
    if (el && el.tagName !== 'IMG') { el = el.querySelector('img') || el; }
    if (!el) { return null; }
    return el.currentSrc || el.src || el.getAttribute('data-src') || el.getAttribute('data-old-hires') || null;
  };
  const jsonLdImages = () => {
    const found = [];
    const visit = (node) => {
      if (!node || typeof node !== 'object') { return; }
      if (Array.isArray(node)) { node.forEach(visit); return; }
      if (node.image) { found.push(node.image); }
      if (node['@graph']) { visit(node['@graph']); }
    };
    document.querySelectorAll('script[type="application/ld+json"]').forEach((script) => {
      try { visit(JSON.parse(script.textContent)); } catch (e) { /* invalid JSON-LD */ }
    });
    return found;
  };
  const body = document.body;
  return {
    title: cfg.title.map(text),
    price: cfg.price.map(text),
    image: cfg.image.map(src),
    availability: cfg.availability.map(text),
    discount: cfg.discount.map(text),
    jsonld_images: jsonLdImages(),
    body_text: cfg.scan_text && body ? (body.innerText || body.textContent || '') : '',
  };
}
"""

# 리뷰 컨테이너마다 필드별 선택자 목록 중 첫 번째 매칭 요소를 수집
COLLECT_REVIEWS_SCRIPT = """
(cfg) => {
  const pick = (root, selectors) => {
    for (const sel of selectors) {
      let el = null;
      try { el = root.querySelector(sel); } catch (e) { el = null; }
      if (el) { return el; }
    }
    return null;
  };
  const text = (root, selectors) => {
    const el = pick(root, selectors);
    const value = el && el.textContent ? el.textContent.trim() : '';
    return value || null;
  };
  let items = [];
  for (const sel of cfg.container) {
    try { items = Array.from(document.querySelectorAll(sel)); } catch (e) { items = []; }
    if (items.length) { break; }
  }
  return items.slice(0, cfg.limit).map((item) => ({
    rating: text(item, cfg.rating),
    title: text(item, cfg.title),
    text: text(item, cfg.text),
    reviewer: text(item, cfg.reviewer),
    date: text(item, cfg.date),
    verified: !!pick(item, cfg.verified),
    helpful: text(item, cfg.helpful),
  }));
}
"""

_OUT_OF_STOCK_MARKERS = (
    "out of stock",
    "currently unavailable",
    "unavailable",
    "sold out",
    "coming soon",
    "notify me",
)
_LIMITED_PATTERNS = (
    re.compile(r"only\s+\d+\s+left", re.IGNORECASE),
    re.compile(r"few\s+(?:items\s+)?left", re.IGNORECASE),
    re.compile(r"limited\s+stock", re.IGNORECASE),
    re.compile(r"hurry", re.IGNORECASE),
)


@dataclass(frozen=True)
class FieldStrategies:
    """필드별 선택자 목록 (앞쪽이 우선)"""

    title: tuple[str, ...]
    price: tuple[str, ...]
    image: tuple[str, ...]
    availability: tuple[str, ...]
    discount: tuple[str, ...]

    def as_payload(self, scan_text: bool) -> dict[str, Any]:
        return {
            "title": list(self.title),
            "price": list(self.price),
            "image": list(self.image),
            "availability": list(self.availability),
            "discount": list(self.discount),
            "scan_text": scan_text,
        }


@dataclass(frozen=True)
class ReviewStrategies:
    """리뷰 1건(container) 안에서 필드별 선택자 목록"""

    container: tuple[str, ...]
    rating: tuple[str, ...]
    text: tuple[str, ...]
    title: tuple[str, ...] = ()
    reviewer: tuple[str, ...] = ()
    date: tuple[str, ...] = ()
    verified: tuple[str, ...] = ()
    helpful: tuple[str, ...] = ()

    @property
    def ready_selector(self) -> str:
        return ", ".join(self.container)

    def as_payload(self, limit: int) -> dict[str, Any]:
        return {
            "container": list(self.container),
            "rating": list(self.rating),
            "text": list(self.text),
            "title": list(self.title),
            "reviewer": list(self.reviewer),
            "date": list(self.date),
            "verified": list(self.verified),
            "helpful": list(self.helpful),
            "limit": limit,
        }


class PlatformAdapter:
    """쇼핑몰별 추출 전략"""

    name: str = "unknown"
    domain_markers: tuple[str, ...] = ()
    strategies: FieldStrategies

    # 리뷰 추출 (None이면 리뷰 미지원)
    review_strategies: Optional[ReviewStrategies] = None

    # 페이지 이동/준비
    wait_until: str = "domcontentloaded"
    ready_selector: Optional[str] = None
    ready_timeout_s: float = 10.0
    settle_ms: int = 0
    dismiss_selector: Optional[str] = None
    dismiss_timeout_s: float = 2.0

    # 재고 정보 요소가 없을 때의 기본값
    default_availability: Availability = Availability.OUT_OF_STOCK
    scan_text_for_price: bool = True

    def __init__(self, min_text_price: Optional[float] = None):
        self.min_text_price = (
            settings.crawler_min_text_price if min_text_price is None else min_text_price
        )

    def matches(self, url: str) -> bool:
        return any(marker in url for marker in self.domain_markers)

    async def prepare(self, page: Page) -> None:
        """가격 요소 대기, 렌더링 안정화, 팝업 닫기 (모두 best effort)"""
        if self.ready_selector:
            try:
                await page.wait_for_selector(
                    self.ready_selector, timeout=self.ready_timeout_s * 1000
                )
            except PlaywrightError:
                logger.debug(f"[{self.name}] Ready selector not found, continuing")

        if self.settle_ms > 0:
            await page.wait_for_timeout(self.settle_ms)

        if self.dismiss_selector:
            try:
                await page.click(self.dismiss_selector, timeout=self.dismiss_timeout_s * 1000)
            except PlaywrightError:
                pass  # 팝업 없음

    async def extract(self, page: Page, url: str) -> ExtractionResult:
        """렌더링된 페이지에서 상품 정보 추출

        Raises:
            ExtractionFailedException: 유효한 가격을 찾지 못한 경우
        """
        raw = await page.evaluate(
            COLLECT_FIELDS_SCRIPT, self.strategies.as_payload(self.scan_text_for_price)
        )
        return self.parse(raw or {}, url)

    def parse(self, raw: dict[str, Any], url: str) -> ExtractionResult:
        """evaluate 결과(선택자 순서대로 수집된 후보)를 ExtractionResult로 변환"""
        price = self._pick_price(raw.get("price") or [])
        if price is None and self.scan_text_for_price:
            price = scan_text_for_price(raw.get("body_text"), min_price=self.min_text_price)
            if price is not None:
                logger.info(f"[{self.name}] Found price in page text: {price}")

        if price is None:
            raise ExtractionFailedException(
                f"Could not extract price information from {self.name}",
                {"source": self.name, "url": url},
            )

        image = _first_text(raw.get("image") or []) or _first_jsonld_image(
            raw.get("jsonld_images") or []
        )
        if not image:
            logger.info(f"[{self.name}] No image found during scraping")

        discount = 0
        for candidate in raw.get("discount") or []:
            parsed = parse_discount_percent(candidate)
            if parsed is not None:
                discount = parsed
                break

        return ExtractionResult(
            name=_first_text(raw.get("title") or []),
            price=price,
            source=self.name,
            image=image,
            availability=self.classify_availability(_first_text(raw.get("availability") or [])),
            discount=discount,
            url=url,
        )

    @property
    def supports_reviews(self) -> bool:
        return self.review_strategies is not None

    async def prepare_reviews(self, page: Page) -> None:
        """리뷰 컨테이너 대기 (없어도 빈 목록으로 진행)"""
        if self.review_strategies is None:
            return
        try:
            await page.wait_for_selector(
                self.review_strategies.ready_selector, timeout=self.ready_timeout_s * 1000
            )
        except PlaywrightError:
            logger.debug(f"[{self.name}] Review selector not found, continuing")

    async def extract_reviews(self, page: Page, url: str, max_reviews: int) -> list[Review]:
        """렌더링된 페이지에서 리뷰 최대 max_reviews건 추출

        Raises:
            UnsupportedPlatformException: 리뷰 추출 전략이 없는 쇼핑몰 (재시도 대상 아님)
        """
        if self.review_strategies is None:
            raise UnsupportedPlatformException(
                url, {"url": url, "source": self.name, "reason": "reviews_not_supported"}
            )
        raw = await page.evaluate(
            COLLECT_REVIEWS_SCRIPT, self.review_strategies.as_payload(max_reviews)
        )
        return self.parse_reviews(raw or [], max_reviews)

    def parse_reviews(self, raw_items: list[dict[str, Any]], max_reviews: int) -> list[Review]:
        """evaluate 결과를 Review 목록으로 변환.

        평점이나 본문이 없는 항목은 건너뜁니다.
        """
        reviews: list[Review] = []
        for item in raw_items:
            if len(reviews) >= max_reviews:
                break
            if not isinstance(item, dict):
                continue

            rating = _parse_rating(item.get("rating"))
            text = " ".join(
                part.strip()
                for part in (item.get("title"), item.get("text"))
                if isinstance(part, str) and part.strip()
            )
            if rating is None or not text:
                continue

            try:
                reviews.append(
                    Review(
                        rating=rating,
                        text=text,
                        source=self.name,
                        reviewer=_first_text([item.get("reviewer")]) or "Anonymous",
                        date=_first_text([item.get("date")]) or "",
                        verified_purchase=bool(item.get("verified")),
                        helpful_votes=_parse_count(item.get("helpful")),
                    )
                )
            except ValueError as e:
                logger.debug(f"[{self.name}] Skipping review: {e}")

        if len(raw_items) > len(reviews):
            logger.debug(f"[{self.name}] Parsed {len(reviews)}/{len(raw_items)} reviews")
        return reviews

    def classify_availability(self, text: Optional[str]) -> Availability:
        if not text:
            return self.default_availability

        lowered = text.lower()
        if any(marker in lowered for marker in _OUT_OF_STOCK_MARKERS):
            return Availability.OUT_OF_STOCK
        if any(pattern.search(lowered) for pattern in _LIMITED_PATTERNS):
            return Availability.LIMITED
        return Availability.IN_STOCK

    @staticmethod
    def _pick_price(candidates: list[Optional[str]]) -> Optional[float]:
        for candidate in candidates:
            value = normalize_price_text(candidate)
            if value is not None:
                return value
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def _first_text(candidates: list[Optional[str]]) -> Optional[str]:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return None


_RATING_RE = re.compile(r"\d+(?:\.\d+)?")
_COUNT_RE = re.compile(r"\d[\d,]*")


def _parse_rating(text: Any) -> Optional[float]:
    """'4.0 out of 5 stars' -> 4.0"""
    if not isinstance(text, str):
        return None
    match = _RATING_RE.search(text)
    if not match:
        return None
    value = float(match.group())
    return value if 0 < value <= 5 else None


def _parse_count(text: Any) -> int:
    """'12 people found this helpful' -> 12, 'One person ...' -> 1"""
    if not isinstance(text, str):
        return 0
    match = _COUNT_RE.search(text)
    if match:
        return int(match.group().replace(",", ""))
    return 1 if text.strip().lower().startswith("one") else 0


def _first_jsonld_image(candidates: list[Any]) -> Optional[str]:
    for candidate in candidates:
        if isinstance(candidate, str) and candidate:
            return candidate
        if isinstance(candidate, list):
            nested = _first_jsonld_image(candidate)
            if nested:
                return nested
        if isinstance(candidate, dict):
            url = candidate.get("url") or candidate.get("contentUrl")
            if isinstance(url, str) and url:
                return url
    return None
