"""로깅 설정 (Security Enhanced)"""
import logging
import sys
import os
from urllib.parse import urlsplit, urlunsplit

from src.core.config import settings


# Production 환경에서는 DEBUG 로그 비활성화
IS_PRODUCTION = os.getenv("ENVIRONMENT", "development") == "production"


def setup_logging() -> logging.Logger:
    """로거 초기화 및 설정"""

    logger = logging.getLogger("price_tracker")

    # Production에서는 최소 INFO 레벨
    log_level = settings.log_level.upper()
    if IS_PRODUCTION and log_level == "DEBUG":
        log_level = "INFO"

    logger.setLevel(getattr(logging, log_level))

    # 콘솔 핸들러
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, log_level))

    # 포맷터 (민감 정보 제외)
    if IS_PRODUCTION:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(console_handler)

    return logger


logger = setup_logging()


_SENSITIVE_PARAMS = ("password", "token", "api_key", "secret", "session", "sid")


def sanitize_for_log(value: str, max_length: int = 100) -> str:
    """민감 정보 제거 후 로깅용 문자열 반환

    URL이면 query string 중 민감한 파라미터 값을 마스킹합니다.
    (상품 URL에 제휴 토큰/세션 값이 붙어 오는 경우가 많음)

    Args:
        value: 로깅할 문자열
        max_length: 최대 길이

    Returns:
        제거된 문자열
    """
    if not value:
        return "[empty]"

    result = value
    if result.startswith(("http://", "https://")):
        try:
            parts = urlsplit(result)
            if parts.query:
                masked = []
                for pair in parts.query.split("&"):
                    name, _, _ = pair.partition("=")
                    if any(p in name.lower() for p in _SENSITIVE_PARAMS):
                        masked.append(f"{name}=***")
                    else:
                        masked.append(pair)
                result = urlunsplit(parts._replace(query="&".join(masked)))
        except ValueError:
            result = "[invalid-url]"
    elif any(p in result.lower() for p in _SENSITIVE_PARAMS):
        result = "***"

    # 길이 초과 시 절단
    if len(result) > max_length:
        result = result[:max_length] + "..."

    return result
