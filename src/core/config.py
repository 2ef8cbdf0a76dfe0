"""설정 관리 - 환경 변수 로드 및 검증"""
from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    """애플리케이션 설정"""

    # Redis (비어 있으면 메모리 캐시만 사용)
    redis_url: str = "redis://localhost:6379/0"
    cache_key_prefix: str = "pricetracker:"
    cache_ttl_s: int = 3600  # 1시간, 모든 레이어에서 초 단위
    cache_connect_timeout_s: float = 10.0
    cache_socket_timeout_s: float = 5.0

    # 백엔드 장애 시 재연결 시도 간격
    cache_backend_retry_s: float = 30.0

    # 메모리 폴백 캐시 만료 항목 정리 주기
    cache_sweep_interval_s: int = 600

    # 도메인(origin)별 요청 큐
    queue_min_delay_s: float = 10.0

    # 크롤러
    crawler_headless: bool = True
    crawler_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    crawler_viewport_width: int = 1366
    crawler_viewport_height: int = 768
    crawler_max_attempts: int = 3
    crawler_retry_base_delay_s: float = 2.0
    crawler_launch_timeout_s: float = 30.0
    crawler_navigation_timeout_s: float = 30.0
    crawler_extraction_timeout_s: float = 30.0
    crawler_block_resources: bool = True

    # 본문 텍스트 스캔 시 부수적인 작은 숫자(수량, 평점 등) 배제용 하한
    crawler_min_text_price: float = 1000.0

    # 리뷰 요청 1건당 기본 최대 건수
    crawler_max_reviews: int = 10

    # API
    api_title: str = "Price Tracker Scrape Core"
    api_version: str = "1.0.0"
    api_description: str = "Per-origin rate-limited product scraping with tiered caching."

    # 로깅
    log_level: str = "INFO"

    @field_validator("cache_ttl_s", "cache_sweep_interval_s")
    @classmethod
    def validate_positive_int(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache ttl and sweep interval must be positive")
        return v

    @field_validator("queue_min_delay_s", "crawler_retry_base_delay_s", "cache_backend_retry_s")
    @classmethod
    def validate_non_negative_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("delays must be >= 0")
        return v

    @field_validator("crawler_max_attempts", "crawler_max_reviews")
    @classmethod
    def validate_crawler_counts(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("crawler attempt and review counts must be positive")
        return v

    @field_validator(
        "crawler_launch_timeout_s",
        "crawler_navigation_timeout_s",
        "crawler_extraction_timeout_s",
    )
    @classmethod
    def validate_crawler_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("crawler timeouts must be positive")
        return v

    @field_validator("crawler_min_text_price")
    @classmethod
    def validate_crawler_min_text_price(cls, v: float) -> float:
        if v < 0:
            raise ValueError("crawler_min_text_price must be >= 0")
        return v

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
