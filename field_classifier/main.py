"""Command-line entry point: classify the form fields of a page and print JSON."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.async_api import async_playwright

from field_classifier.config import Config
from field_classifier.core.field_identification_system import FieldIdentificationSystem
from field_classifier.core.browser_interface import PlaywrightPage, StaticPage
from field_classifier.tools.label_extractor import describe_element

logger = logging.getLogger(__name__)


async def classify_page(engine: FieldIdentificationSystem) -> Dict[str, Any]:
    """
    Classify every candidate control of the engine's page.

    Args:
        engine: Engine bound to the page

    Returns:
        Report with the page locale, the application-page verdict and one
        entry per classified field
    """
    context = await engine.initialize()
    elements = await engine.candidate_elements()
    classified = await engine.classify_fields(elements)

    fields: List[Dict[str, Any]] = []
    for element in elements:
        if element not in classified:
            continue
        result = classified[element]
        label = engine.label_extractor.resolve_label(element) if engine.label_extractor else ""
        fields.append({
            "field": describe_element(element),
            "label": label,
            "field_type": result.field_type,
            "confidence": round(result.confidence, 3),
            "source": result.source,
        })

    return {
        "url": context.url,
        "locale": context.locale.locale,
        "locale_confidence": context.locale.confidence,
        "is_application_page": await engine.is_application_like_page(),
        "candidates": len(elements),
        "fields": fields,
    }


async def classify_file(path: str, url: str = "about:blank", config: Optional[Config] = None) -> Dict[str, Any]:
    """Classify a saved HTML file."""
    html = Path(path).read_text(encoding="utf-8")
    engine = FieldIdentificationSystem(StaticPage(html, url=url), config=config)
    return await classify_page(engine)


async def classify_live(url: str, visible: bool = False, config: Optional[Config] = None) -> Dict[str, Any]:
    """Load a URL in Chromium and classify its fields."""
    config = config or Config()
    options = config.get_browser_options()
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=not visible and options["headless"])
        try:
            page = await browser.new_page()
            page.set_default_timeout(options["timeout"])
            await page.goto(url, wait_until="domcontentloaded")
            engine = FieldIdentificationSystem(PlaywrightPage(page), config=config)
            return await classify_page(engine)
        finally:
            await browser.close()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(description="Classify the form fields of a web page.")
    parser.add_argument("page", help="Saved HTML file, or a URL with --live.")
    parser.add_argument("--url", default="about:blank", help="URL the saved file was captured from.")
    parser.add_argument("--live", action="store_true", help="Load PAGE as a URL in a browser.")
    parser.add_argument("--visible", action="store_true", help="Show the browser window.")
    parser.add_argument("--config", help="Path to a JSON configuration file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")

    args = parser.parse_args(argv)

    config = Config(args.config)
    config.configure_logging("DEBUG" if args.verbose else None)

    try:
        if args.live:
            report = asyncio.run(classify_live(args.page, visible=args.visible, config=config))
        else:
            report = asyncio.run(classify_file(args.page, url=args.url, config=config))
    except OSError as e:
        logger.error(f"Could not read {args.page}: {e}")
        return 1
    except Exception as e:
        logger.critical(f"Classification failed with unhandled exception: {e}", exc_info=True)
        return 1

    print(json.dumps(report, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
