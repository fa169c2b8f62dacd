"""
Process-wide invalidation signal for cached public pages.

Writers call invalidate() after every successful save; readers subscribe
and drop whatever they cached for the affected username.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

PORTFOLIO_TAG = "portfolio"

Subscriber = Callable[[str, Optional[str]], None]

_subscribers: List[Subscriber] = []


def subscribe(callback: Subscriber) -> None:
    if callback not in _subscribers:
        _subscribers.append(callback)


def unsubscribe(callback: Subscriber) -> None:
    if callback in _subscribers:
        _subscribers.remove(callback)


def invalidate(tag: str = PORTFOLIO_TAG, username: Optional[str] = None) -> None:
    """Notify subscribers that pages under `tag` (or one username) are stale."""
    logger.info(f"Invalidating cached pages: tag={tag!r}, username={username!r}")
    for callback in list(_subscribers):
        try:
            callback(tag, username)
        except Exception as e:
            logger.error(f"Cache subscriber {callback!r} failed: {e}")


class PageCache:
    """Rendered public pages keyed by username."""

    def __init__(self, tag: str = PORTFOLIO_TAG):
        self.tag = tag
        self._pages: Dict[str, Any] = {}

    def get(self, username: str) -> Optional[Any]:
        return self._pages.get(username)

    def set(self, username: str, page: Any) -> None:
        self._pages[username] = page

    def clear(self) -> None:
        self._pages.clear()

    def __contains__(self, username: str) -> bool:
        return username in self._pages

    def __call__(self, tag: str, username: Optional[str]) -> None:
        if tag != self.tag:
            return
        if username is None:
            self._pages.clear()
        else:
            self._pages.pop(username, None)


public_pages = PageCache()
subscribe(public_pages)
