"""Per-page context shared by every signal source until navigation."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from bs4 import BeautifulSoup

from field_classifier.core.locale_detector import LocaleDetector, LocaleResult
from field_classifier.tools.constants import DEFAULT_LOCALE
from field_classifier.tools.section_context import PageStructure, analyze_page_structure
from field_classifier.tools.structured_data import StructuredData, analyze_structured_data

logger = logging.getLogger(__name__)


@dataclass
class PageContext:
    """Everything derived once per document view.

    Built wholesale by ``build_page_context`` and never mutated by sources;
    navigation or an explicit cache clear replaces it.
    """
    url: str = ""
    locale: LocaleResult = field(
        default_factory=lambda: LocaleResult(locale=DEFAULT_LOCALE, confidence=0.0, signal="default")
    )
    structured_data: StructuredData = field(default_factory=StructuredData)
    structure: PageStructure = field(default_factory=PageStructure)
    soup: Optional[BeautifulSoup] = field(default=None, repr=False)
    degraded: bool = False

    @property
    def is_job_application(self) -> bool:
        return self.structured_data.is_job_application or self.structure.form_type == "jobApplication"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "url": self.url,
            "locale": {
                "locale": self.locale.locale,
                "confidence": self.locale.confidence,
                "signal": self.locale.signal,
            },
            "structured_data": self.structured_data.to_dict(),
            "structure": self.structure.to_dict(),
            "is_job_application": self.is_job_application,
            "degraded": self.degraded,
        }

    @classmethod
    def empty(cls, url: str = "") -> "PageContext":
        """Context used when the page could not be analyzed."""
        return cls(url=url, degraded=True)


def build_page_context(soup: BeautifulSoup, url: str, locale_detector: Optional[LocaleDetector] = None,
                       default_language: Optional[str] = None) -> PageContext:
    """
    Analyze a parsed document.

    Args:
        soup: Parsed document
        url: Page URL
        locale_detector: Optional detector; without one the locale is the default
        default_language: Runtime default language of the page

    Returns:
        A fresh PageContext
    """
    if locale_detector is not None:
        locale = locale_detector.detect_document(soup, url, default_language)
    else:
        locale = LocaleResult(locale=DEFAULT_LOCALE, confidence=0.0, signal="default")
    context = PageContext(
        url=url,
        locale=locale,
        structured_data=analyze_structured_data(soup),
        structure=analyze_page_structure(soup, url),
        soup=soup,
    )
    logger.info(
        f"Page context for {url}: locale {locale.locale} ({locale.signal}), "
        f"schema types {context.structured_data.schema_types}, "
        f"form type {context.structure.form_type}"
    )
    return context
