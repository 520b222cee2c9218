"""Unit tests for page sources."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError

from field_classifier.core.browser_interface import PlaywrightPage, StaticPage, page_identity


@pytest.mark.asyncio
async def test_static_page():
    page = StaticPage("<html></html>", url="https://example.com/a", default_language="de-DE")

    assert page.url == "https://example.com/a"
    assert await page.content() == "<html></html>"
    assert await page.default_language() == "de-DE"

    page.navigate("<html><body>next</body></html>", "https://example.com/b")
    assert page_identity(page) == "https://example.com/b"
    assert "next" in await page.content()


def _playwright_page():
    page = MagicMock()
    page.url = "https://jobs.example.com/apply"
    page.content = AsyncMock(return_value="<html lang='fr'></html>")
    page.evaluate = AsyncMock(return_value="fr-FR")
    return page


@pytest.mark.asyncio
async def test_playwright_page_adapter():
    raw = _playwright_page()
    page = PlaywrightPage(raw)

    assert page.url == "https://jobs.example.com/apply"
    assert await page.content() == "<html lang='fr'></html>"
    assert await page.default_language() == "fr-FR"
    raw.evaluate.assert_awaited_once_with("() => navigator.language")


@pytest.mark.asyncio
async def test_playwright_language_failure_is_not_fatal():
    raw = _playwright_page()
    raw.evaluate = AsyncMock(side_effect=PlaywrightError("Execution context was destroyed"))

    assert await PlaywrightPage(raw).default_language() is None


def test_page_identity_without_url():
    page = StaticPage("", url="")
    assert page_identity(page) == ""
