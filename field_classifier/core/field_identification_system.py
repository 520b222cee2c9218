"""Field identification system: the engine callers classify form fields through."""

import asyncio
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag
from playwright.async_api import Page

from field_classifier.config import Config
from field_classifier.core.aggregator import SignalAggregator
from field_classifier.core.browser_interface import PlaywrightPage, StaticPage, page_identity
from field_classifier.core.diagnostics_manager import DiagnosticsManager
from field_classifier.core.exceptions import PageContextError
from field_classifier.core.locale_detector import LocaleDetector
from field_classifier.core.page_context import PageContext, build_page_context
from field_classifier.core.pattern_registry import PatternRegistry
from field_classifier.core.result_cache import MISS, ResultCache
from field_classifier.core.signals import AggregationResult, Signal, SourceOutcome
from field_classifier.tools.constants import (
    SOURCE_SECTION_CONTEXT,
    SOURCE_STRUCTURED_DATA,
)
from field_classifier.tools.dom_utils import candidate_elements, is_visible
from field_classifier.tools.label_extractor import LabelExtractor
from field_classifier.tools.section_context import SectionContextSource
from field_classifier.tools.semantic_matcher import SemanticMatcher
from field_classifier.tools.structured_data import StructuredDataSource
from field_classifier.utils.error_handling import log_error, run_source

logger = logging.getLogger(__name__)

SOURCE_SEMANTIC_MATCHER = "semantic-matcher"

# Distinguishes "build the default" from an explicit None ("absent")
_DEFAULT = object()


class ClassificationMap(Mapping):
    """Mapping from element to AggregationResult keyed by element identity.

    Parsed tags compare by structure, so two identical inputs in different
    forms would share a key in a plain dict.
    """

    def __init__(self):
        self._items: Dict[int, Tuple[Any, AggregationResult]] = {}

    def __setitem__(self, element: Any, result: AggregationResult) -> None:
        self._items[id(element)] = (element, result)

    def __getitem__(self, element: Any) -> AggregationResult:
        entry = self._items.get(id(element))
        if entry is None or entry[0] is not element:
            raise KeyError(element)
        return entry[1]

    def __iter__(self) -> Iterator[Any]:
        return (element for element, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def to_list(self) -> List[Tuple[Any, AggregationResult]]:
        return list(self._items.values())


class FieldIdentificationSystem:
    """Classifies form fields of one page by fusing several weak signals."""

    def __init__(self, page, registry=_DEFAULT, config: Optional[Config] = None,
                 cache=_DEFAULT, diagnostics=_DEFAULT, locale_detector=_DEFAULT,
                 label_extractor=_DEFAULT, structured_data=_DEFAULT,
                 section_context=_DEFAULT, semantic_matcher=_DEFAULT,
                 aggregator: Optional[SignalAggregator] = None):
        """
        Initialize the field identification system.

        Every collaborator is injectable; passing None makes it absent, and
        sources that depend on it abstain.

        Args:
            page: A PageSource, or a Playwright page
            registry: PatternRegistry (default: bundled catalog or ``catalog.path``)
            config: Config (default: Config())
            cache: ResultCache (default: built from ``cache.ttl``)
            diagnostics: DiagnosticsManager (default: built from ``diagnostics.*``)
            locale_detector: LocaleDetector
            label_extractor: LabelExtractor
            structured_data: StructuredDataSource
            section_context: SectionContextSource
            semantic_matcher: SemanticMatcher
            aggregator: SignalAggregator (default: built from ``scoring.*``)
        """
        self.page = PlaywrightPage(page) if isinstance(page, Page) else page
        self.config = config if config is not None else Config()

        if registry is _DEFAULT:
            catalog_path = self.config.get("catalog.path")
            registry = PatternRegistry.from_yaml(catalog_path) if catalog_path else PatternRegistry.default()
        self.registry = registry

        if cache is _DEFAULT:
            cache = ResultCache(self.config.get_cache_ttls())
        self.cache = cache

        if diagnostics is _DEFAULT:
            diagnostics = DiagnosticsManager(
                enabled=self.config.get("diagnostics.enabled", True),
                output_dir=self.config.get("diagnostics.output_dir"),
                max_failures=self.config.get("diagnostics.max_failures", 500),
            )
        self.diagnostics = diagnostics

        if locale_detector is _DEFAULT:
            locale_detector = LocaleDetector(default_language=self.config.get("locale.default"))
        self.locale_detector = locale_detector

        if label_extractor is _DEFAULT:
            label_extractor = LabelExtractor(cache=self.cache)
        self.label_extractor = label_extractor

        if structured_data is _DEFAULT:
            structured_data = StructuredDataSource()
        self.structured_data = structured_data

        if section_context is _DEFAULT:
            section_context = SectionContextSource(registry=self.registry)
        self.section_context = section_context

        if semantic_matcher is _DEFAULT:
            semantic_matcher = SemanticMatcher(self.registry) if self.registry is not None else None
        self.semantic_matcher = semantic_matcher

        self.aggregator = aggregator or SignalAggregator.from_config(self.config)

        self._context: Optional[PageContext] = None
        self._build_task: Optional[asyncio.Future] = None
        self._build_url: Optional[str] = None

    @classmethod
    def from_html(cls, html: str, url: str = "about:blank", default_language: Optional[str] = None,
                  **kwargs) -> "FieldIdentificationSystem":
        """Engine over markup already in memory."""
        return cls(StaticPage(html, url=url, default_language=default_language), **kwargs)

    def is_available(self) -> bool:
        """True when at least one signal source is present."""
        matcher = self.semantic_matcher
        return bool(
            self.structured_data is not None
            or self.section_context is not None
            or (matcher is not None and matcher.available)
        )

    async def initialize(self) -> PageContext:
        """
        Build the page context once; concurrent callers share one build.

        Returns:
            PageContext of the current page
        """
        url = page_identity(self.page)
        if self._context is not None and self._context.url == url:
            return self._context

        if self._context is not None:
            logger.info(f"Navigation detected ({self._context.url} -> {url}), rebuilding page context")
            self._drop_page_state()

        if self._build_task is None or self._build_url != url:
            self._build_url = url
            self._build_task = asyncio.ensure_future(self._build_context(url))
        context = await self._build_task
        if page_identity(self.page) == context.url:
            self._context = context
        return context

    async def _build_context(self, url: str) -> PageContext:
        if self.diagnostics is not None:
            self.diagnostics.start_stage("page_context")
        try:
            html = await self.page.content()
            if not isinstance(html, str):
                raise PageContextError(f"Page returned {type(html).__name__} instead of markup")
            default_language = await self.page.default_language()
            soup = BeautifulSoup(html, "html.parser")
            context = build_page_context(
                soup, url, self.locale_detector,
                default_language or self.config.get("locale.default"),
            )
        except Exception as e:
            info = log_error(e, "page_context")
            if self.diagnostics is not None:
                self.diagnostics.record_failure(info["category"], "page_context", info["message"])
                self.diagnostics.end_stage(False, error=info["message"])
            return PageContext.empty(url)

        if self.diagnostics is not None:
            self.diagnostics.end_stage(True, details={"schema_types": context.structured_data.schema_types})
        return context

    async def get_page_context(self) -> PageContext:
        """Current page context, rebuilt after navigation."""
        return await self.initialize()

    async def is_application_like_page(self) -> bool:
        """True when structured data or page structure says this is a job application."""
        context = await self.get_page_context()
        return context.is_job_application

    async def candidate_elements(self) -> List[Tag]:
        """Form controls of the current document, in document order."""
        context = await self.get_page_context()
        if context.soup is None:
            return []
        return candidate_elements(context.soup)

    def _locale_for_matching(self, context: PageContext) -> Optional[str]:
        if context.locale.is_low_confidence:
            return None
        return context.locale.locale

    def _unavailable(self, source: str) -> SourceOutcome:
        outcome = SourceOutcome.unavailable(source)
        if self.diagnostics is not None:
            self.diagnostics.record_outcome(outcome)
        return outcome

    def _resolve_label(self, element: Tag, label_override: Optional[str]) -> str:
        if label_override is not None:
            return label_override
        if self.label_extractor is None:
            return ""
        return self.label_extractor.resolve_label(element)

    async def collect_outcomes(self, element: Tag, label_override: Optional[str] = None) -> List[SourceOutcome]:
        """
        Ask every source about an element.

        Args:
            element: The form control
            label_override: Caption to use instead of the resolved label

        Returns:
            One outcome per source: structured data, semantic matcher, section context
        """
        context = await self.get_page_context()
        label = self._resolve_label(element, label_override)
        outcomes = []

        if self.structured_data is not None:
            outcomes.append(run_source(
                SOURCE_STRUCTURED_DATA, self.structured_data.hint, element, context, label,
                diagnostics=self.diagnostics,
            ))
        else:
            outcomes.append(self._unavailable(SOURCE_STRUCTURED_DATA))

        if self.semantic_matcher is not None and self.semantic_matcher.available:
            outcomes.append(run_source(
                SOURCE_SEMANTIC_MATCHER, self.semantic_matcher.match, label,
                self._locale_for_matching(context), diagnostics=self.diagnostics,
            ))
        else:
            outcomes.append(self._unavailable(SOURCE_SEMANTIC_MATCHER))

        if self.section_context is not None:
            outcomes.append(run_source(
                SOURCE_SECTION_CONTEXT, self.section_context.signal_for, element,
                diagnostics=self.diagnostics,
            ))
        else:
            outcomes.append(self._unavailable(SOURCE_SECTION_CONTEXT))

        return outcomes

    async def _signals_for(self, element: Tag, label_override: Optional[str]) -> List[Signal]:
        use_cache = self.cache is not None and label_override is None
        if use_cache:
            cached = self.cache.get(element, "signals")
            if cached is not MISS:
                return cached
        outcomes = await self.collect_outcomes(element, label_override)
        signals = [outcome.signal for outcome in outcomes if outcome.signal is not None]
        if use_cache:
            self.cache.set(element, "signals", signals)
        return signals

    async def classify_field(self, element: Tag, label_override: Optional[str] = None) -> Optional[AggregationResult]:
        """
        Classify one form control.

        Args:
            element: The form control
            label_override: Caption to use instead of the resolved label

        Returns:
            AggregationResult, or None when no field type clears the threshold
        """
        try:
            signals = await self._signals_for(element, label_override)
            result = self.aggregator.aggregate(signals)
        except Exception as e:
            log_error(e, "classify_field")
            return None
        if result is not None:
            logger.debug(
                f"Classified <{getattr(element, 'name', '?')}> as {result.field_type} "
                f"({result.confidence:.2f} via {result.source})"
            )
        return result

    async def classify_fields(self, elements: Iterable[Tag]) -> ClassificationMap:
        """
        Classify many form controls; invisible ones are skipped.

        Args:
            elements: Form controls

        Returns:
            ClassificationMap holding only the classified elements
        """
        await self.initialize()
        candidates = [element for element in elements if is_visible(element, self.cache)]
        results = await asyncio.gather(*(self.classify_field(element) for element in candidates))
        classified = ClassificationMap()
        for element, result in zip(candidates, results):
            if result is not None:
                classified[element] = result
        logger.info(f"Classified {len(classified)} of {len(candidates)} visible fields")
        return classified

    def _drop_page_state(self) -> None:
        self._context = None
        self._build_task = None
        self._build_url = None
        if self.cache is not None:
            self.cache.clear_all()
        if self.locale_detector is not None:
            self.locale_detector.clear_cache()

    def clear_cache(self) -> None:
        """Drop the page context, locale memo and result cache."""
        self._drop_page_state()
        logger.debug("Field identification caches cleared")
