"""Page sources: where the engine reads a document's markup and language from."""

import logging
from typing import Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    """Protocol defining what the engine needs from a page."""

    @property
    def url(self) -> str:
        """Current document URL; a change means the user navigated."""
        ...

    async def content(self) -> str:
        """Serialized HTML of the current document."""
        ...

    async def default_language(self) -> Optional[str]:
        """Runtime default language (e.g. navigator.language), if known."""
        ...


def page_identity(page: PageSource) -> str:
    return page.url or ""


class StaticPage:
    """A page whose markup is already in memory (saved file, test fixture)."""

    def __init__(self, html: str, url: str = "about:blank", default_language: Optional[str] = None):
        self.html = html
        self._url = url
        self._default_language = default_language

    @property
    def url(self) -> str:
        return self._url

    async def content(self) -> str:
        return self.html

    async def default_language(self) -> Optional[str]:
        return self._default_language

    def navigate(self, html: str, url: str) -> None:
        """Replace the document, as a single-page app would."""
        self.html = html
        self._url = url


class PlaywrightPage:
    """Adapter over a live Playwright page."""

    def __init__(self, page: Page):
        self.page = page

    @property
    def url(self) -> str:
        return self.page.url

    async def content(self) -> str:
        return await self.page.content()

    async def default_language(self) -> Optional[str]:
        try:
            return await self.page.evaluate("() => navigator.language")
        except PlaywrightError as e:
            logger.warning(f"Could not read navigator.language: {e}")
            return None
