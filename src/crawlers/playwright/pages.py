"""Playwright browsing context/page 설정 보조 함수.

작업마다 독립된 context(쿠키/스토리지 분리)를 만들고, 추출에 필요 없는
리소스는 차단합니다.
"""

from __future__ import annotations

from typing import Optional

from playwright.async_api import BrowserContext, Page

from src.core.config import settings
from src.crawlers.playwright.browser import EngineHandle


_BLOCKED_RESOURCE_TYPES = {"image", "media", "font"}
_BLOCKED_EXTENSIONS = (
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".svg",
    ".woff",
    ".woff2",
    ".ttf",
    ".mp4",
)


async def open_isolated_context(
    handle: EngineHandle, user_agent: Optional[str] = None
) -> BrowserContext:
    """작업 전용 browsing context 생성"""
    return await handle.new_context(
        user_agent=user_agent or settings.crawler_user_agent,
        viewport={
            "width": settings.crawler_viewport_width,
            "height": settings.crawler_viewport_height,
        },
        locale="en-IN",
        extra_http_headers={
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-IN,en;q=0.9",
        },
    )


async def configure_page(page: Page, timeout_s: float, block_resources: Optional[bool] = None) -> Page:
    page.set_default_timeout(timeout_s * 1000)

    if block_resources is None:
        block_resources = settings.crawler_block_resources
    if not block_resources:
        return page

    # 이미지 요청은 막아도 <img src> 속성은 남아 있어 이미지 URL 추출에는 지장 없음
    async def _route_handler(route, request):
        try:
            if request.resource_type in _BLOCKED_RESOURCE_TYPES:
                try:
                    await route.abort()
                except Exception:
                    return
                return
            url = (request.url or "").lower().split("?", 1)[0]
            if url.endswith(_BLOCKED_EXTENSIONS):
                try:
                    await route.abort()
                except Exception:
                    return
                return
        except Exception:
            return

        try:
            await route.continue_()
        except Exception:
            return

    try:
        await page.route("**/*", _route_handler)
    except Exception:
        pass

    return page
