"""Page locale detection from declared language, metadata, domain and content."""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from field_classifier.tools.constants import (
    CONTENT_SAMPLE_CHARS,
    DEFAULT_LOCALE,
    LOCALE_CONFIDENCE_CONTENT,
    LOCALE_CONFIDENCE_DECLARED,
    LOCALE_CONFIDENCE_DOMAIN,
    LOCALE_CONFIDENCE_META,
    LOW_LOCALE_CONFIDENCE,
    MIN_CONTENT_HITS,
)

logger = logging.getLogger(__name__)

SUPPORTED_LOCALES = {
    "en": {"name": "English", "codes": ["en", "en-us", "en-gb", "en-au", "en-ca"]},
    "de": {"name": "German", "codes": ["de", "de-de", "de-at", "de-ch"]},
    "fr": {"name": "French", "codes": ["fr", "fr-fr", "fr-ca", "fr-be", "fr-ch"]},
    "es": {"name": "Spanish", "codes": ["es", "es-es", "es-mx", "es-ar", "es-co"]},
    "pt": {"name": "Portuguese", "codes": ["pt", "pt-br", "pt-pt"]},
    "hi": {"name": "Hindi", "codes": ["hi", "hi-in"]},
}

# Hosts first; the leading-dot entries are top-level domains
DOMAIN_LOCALE_MAP = {
    "xing.com": "de",
    "stepstone.de": "de",
    "monster.de": "de",
    "apec.fr": "fr",
    "pole-emploi.fr": "fr",
    "infojobs.net": "es",
    "vagas.com.br": "pt",
    "naukri.com": "hi",
    ".de": "de",
    ".at": "de",
    ".ch": "de",
    ".fr": "fr",
    ".be": "fr",
    ".es": "es",
    ".mx": "es",
    ".ar": "es",
    ".co": "es",
    ".br": "pt",
    ".pt": "pt",
    ".in": "hi",
}

CONTENT_INDICATORS = {
    "de": [r"stellenanzeige", r"bewerbung", r"lebenslauf", r"arbeitgeber", r"gehalt"],
    "fr": [r"offre\s*d'emploi", r"candidature", r"\bcv\b", r"employeur", r"salaire"],
    "es": [r"oferta\s*de\s*empleo", r"solicitud", r"curr[ií]culum", r"empresa", r"salario"],
    "pt": [r"\bvaga", r"candidatura", r"curr[ií]culo", r"empresa", r"sal[áa]rio"],
    "hi": [r"नौकरी", r"आवेदन"],
}

COMMON_PHRASES = {
    "en": {"firstName": "First Name", "lastName": "Last Name",
           "email": "Email Address", "phone": "Phone Number"},
    "de": {"firstName": "Vorname", "lastName": "Nachname",
           "email": "E-Mail-Adresse", "phone": "Telefonnummer"},
    "fr": {"firstName": "Prénom", "lastName": "Nom de famille",
           "email": "Adresse e-mail", "phone": "Numéro de téléphone"},
    "es": {"firstName": "Nombre", "lastName": "Apellido",
           "email": "Correo electrónico", "phone": "Número de teléfono"},
    "pt": {"firstName": "Nome", "lastName": "Sobrenome",
           "email": "Endereço de e-mail", "phone": "Número de telefone"},
    "hi": {"firstName": "पहला नाम", "lastName": "उपनाम",
           "email": "ईमेल", "phone": "फ़ोन नंबर"},
}


@dataclass(frozen=True)
class LocaleResult:
    """Detected page locale and how it was found."""
    locale: str
    confidence: float
    signal: str

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence < LOW_LOCALE_CONFIDENCE


def normalize_locale(code: Optional[str]) -> Optional[str]:
    """
    Map a language tag to a supported locale.

    Args:
        code: Tag such as 'de-AT', 'fr_CA' or 'pt'

    Returns:
        Supported locale id, or None when the tag is unsupported
    """
    if not code:
        return None
    normalized = str(code).strip().lower().replace("_", "-")
    if not normalized:
        return None
    for locale, info in SUPPORTED_LOCALES.items():
        if normalized in info["codes"]:
            return locale
    prefix = normalized.split("-")[0]
    return prefix if prefix in SUPPORTED_LOCALES else None


class LocaleDetector:
    """Detects the language of a page, memoized per page URL."""

    def __init__(self, default_language: Optional[str] = None):
        """
        Initialize the locale detector.

        Args:
            default_language: Runtime default used when the page source
                reports none (e.g. from configuration)
        """
        self.default_language = default_language
        self._content_patterns = {
            locale: [re.compile(p, re.IGNORECASE) for p in patterns]
            for locale, patterns in CONTENT_INDICATORS.items()
        }
        self._cache: Dict[str, LocaleResult] = {}

    async def detect(self, page) -> LocaleResult:
        """
        Detect the locale of a page source.

        Args:
            page: A PageSource

        Returns:
            LocaleResult for the page's current URL
        """
        cached = self._cache.get(page.url)
        if cached is not None:
            return cached
        html = await page.content()
        default_language = await page.default_language()
        soup = BeautifulSoup(html or "", "html.parser")
        return self.detect_document(soup, page.url, default_language)

    def detect_document(self, soup: BeautifulSoup, url: str,
                        default_language: Optional[str] = None) -> LocaleResult:
        """
        Detect the locale of an already parsed document.

        A lower-priority signal is only consulted while the current
        confidence is below that signal's ceiling.
        """
        cached = self._cache.get(url)
        if cached is not None:
            logger.debug(f"Locale cache hit for {url}: {cached.locale}")
            return cached

        locale, confidence, signal = DEFAULT_LOCALE, 0.0, "default"

        html_tag = soup.find("html")
        declared = normalize_locale(html_tag.get("lang")) if html_tag else None
        if declared:
            locale, confidence, signal = declared, LOCALE_CONFIDENCE_DECLARED, "html-lang"

        if confidence < LOCALE_CONFIDENCE_META:
            meta_locale = normalize_locale(self._meta_language(soup))
            if meta_locale:
                locale, confidence, signal = meta_locale, LOCALE_CONFIDENCE_META, "meta"

        if confidence < LOCALE_CONFIDENCE_DOMAIN:
            domain_locale = self._locale_from_domain(url)
            if domain_locale:
                locale, confidence, signal = domain_locale, LOCALE_CONFIDENCE_DOMAIN, "domain"

        if confidence < LOCALE_CONFIDENCE_CONTENT:
            content_locale = self._locale_from_content(soup)
            if content_locale:
                locale, confidence, signal = content_locale, LOCALE_CONFIDENCE_CONTENT, "content"

        if confidence == 0.0:
            runtime_locale = normalize_locale(default_language or self.default_language)
            if runtime_locale:
                locale, signal = runtime_locale, "runtime-default"

        result = LocaleResult(locale=locale, confidence=confidence, signal=signal)
        self._cache[url] = result
        logger.debug(f"Detected locale {locale} ({signal}, {confidence:.1f}) for {url}")
        return result

    def _meta_language(self, soup: BeautifulSoup) -> Optional[str]:
        for meta in soup.find_all("meta"):
            if str(meta.get("http-equiv", "")).lower() == "content-language" and meta.get("content"):
                return meta["content"]
        og_locale = soup.find("meta", attrs={"property": "og:locale"})
        if og_locale and og_locale.get("content"):
            return og_locale["content"]
        return None

    def _locale_from_domain(self, url: str) -> Optional[str]:
        hostname = (urlparse(url or "").hostname or "").lower()
        if not hostname:
            return None
        for pattern, locale in DOMAIN_LOCALE_MAP.items():
            if pattern.startswith("."):
                continue
            if hostname == pattern or hostname.endswith("." + pattern):
                return locale
        tld = "." + hostname.rsplit(".", 1)[-1]
        return DOMAIN_LOCALE_MAP.get(tld)

    def _locale_from_content(self, soup: BeautifulSoup) -> Optional[str]:
        body = soup.body or soup
        sample = body.get_text(" ")[:CONTENT_SAMPLE_CHARS]
        best_locale, best_hits = None, 0
        for locale, patterns in self._content_patterns.items():
            hits = sum(1 for p in patterns if p.search(sample))
            if hits > best_hits:
                best_locale, best_hits = locale, hits
        return best_locale if best_hits >= MIN_CONTENT_HITS else None

    def is_low_confidence(self, result: LocaleResult) -> bool:
        """True when text sources should match against every locale."""
        return result.is_low_confidence

    @staticmethod
    def common_phrases(locale: str) -> Dict[str, str]:
        """Canonical captions for the core contact fields, English when unknown."""
        return dict(COMMON_PHRASES.get(locale, COMMON_PHRASES[DEFAULT_LOCALE]))

    @staticmethod
    def supported_locales() -> List[str]:
        return list(SUPPORTED_LOCALES)

    def clear_cache(self) -> None:
        """Forget every memoized page locale."""
        self._cache.clear()
