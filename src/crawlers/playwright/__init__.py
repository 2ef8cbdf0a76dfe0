"""Playwright module for the scrape executor."""

from .browser import BrowserEngine, EngineHandle, build_launch_args
from .pages import configure_page, open_isolated_context

__all__ = [
    "BrowserEngine",
    "EngineHandle",
    "build_launch_args",
    "configure_page",
    "open_isolated_context",
]
