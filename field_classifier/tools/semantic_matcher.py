"""Label text to field type matching: phrase table, question extraction, keywords."""

import logging
import re
from typing import Dict, List, Optional, Tuple

from thefuzz import fuzz

from field_classifier.core.pattern_registry import (
    TIER_EXACT,
    TIER_KEYWORD,
    PatternRule,
    contains_phrase,
)
from field_classifier.core.signals import Signal
from field_classifier.tools.constants import (
    CONTAINS_PHRASE_CONFIDENCE,
    EXACT_PHRASE_CONFIDENCE,
    FUZZY_RATIO_THRESHOLD,
    KEYWORD_CONFIDENCE,
    MIN_PARTIAL_LABEL_LENGTH,
    PARTIAL_PHRASE_CONFIDENCE,
    QUESTION_KEYWORD_CAP,
    QUESTION_PHRASE_CAP,
    SOURCE_KEYWORD_FALLBACK,
    SOURCE_QUESTION_EXTRACTION,
    SOURCE_SEMANTIC_MAPPING,
)

logger = logging.getLogger(__name__)

QUESTION_WORDS = [
    "what", "which", "where", "who", "how", "when", "please", "enter", "provide",
    "type", "input", "your", "the", "is", "are", "do", "does",
]
QUESTION_START = re.compile(r"^\s*(what|which|where|who|how|please|enter|provide)\b", re.IGNORECASE)
_QUESTION_WORD_PATTERN = re.compile(r"\b(" + "|".join(QUESTION_WORDS) + r")\b", re.IGNORECASE)
_LABEL_PUNCTUATION = re.compile(r"[*:?!]")
_QUESTION_PUNCTUATION = re.compile(r"[*:?!.,]")
_WHITESPACE = re.compile(r"\s+")

# Tables are built per locale key; None means every locale
_ALL_LOCALES = None


def clean_label(text: str) -> str:
    """Lowercase, drop * : ? ! and collapse whitespace."""
    if not text:
        return ""
    text = _LABEL_PUNCTUATION.sub("", str(text).lower())
    return _WHITESPACE.sub(" ", text).strip()


def looks_like_question(text: str) -> bool:
    return bool(QUESTION_START.match(text or "")) or "?" in (text or "")


def strip_question_words(text: str) -> str:
    text = _QUESTION_WORD_PATTERN.sub(" ", (text or "").lower())
    text = _QUESTION_PUNCTUATION.sub("", text)
    return _WHITESPACE.sub(" ", text).strip()


class SemanticMatcher:
    """Maps caption text to a field type in three tiers; the first tier that hits wins.

    1. ``semantic-mapping``: exact phrase 0.85, label contains a phrase 0.80,
       phrase contains the label (4+ chars) or a near-miss spelling 0.75
    2. ``question-extraction``: for question-like labels, the phrase tier
       (capped at 0.80) then the keyword tier (capped at 0.75) on the label
       stripped of interrogative and filler words
    3. ``keyword-fallback``: coarse keyword patterns, 0.60

    Negative patterns from the registry veto a field type in every tier.
    """

    def __init__(self, registry=None):
        """
        Initialize the semantic matcher.

        Args:
            registry: PatternRegistry providing phrases and keyword patterns;
                None makes the matcher abstain
        """
        self.registry = registry
        self._phrase_tables: Dict[Optional[str], List[Tuple[str, str]]] = {}
        self._keyword_tables: Dict[Optional[str], List[PatternRule]] = {}

    @property
    def available(self) -> bool:
        return self.registry is not None

    def _rules(self, locale: Optional[str]) -> List[PatternRule]:
        rules: List[PatternRule] = []
        for field_type in self.registry.field_types():
            if locale is _ALL_LOCALES:
                rules.extend(self.registry.get_all_patterns(field_type))
            else:
                rules.extend(self.registry.get_patterns(field_type, locale))
        return rules

    def _phrases(self, locale: Optional[str]) -> List[Tuple[str, str]]:
        if locale not in self._phrase_tables:
            seen = set()
            table = []
            for rule in self._rules(locale):
                if rule.tier == TIER_EXACT and (rule.phrase, rule.field_type) not in seen:
                    seen.add((rule.phrase, rule.field_type))
                    table.append((rule.phrase, rule.field_type))
            self._phrase_tables[locale] = table
        return self._phrase_tables[locale]

    def _keywords(self, locale: Optional[str]) -> List[PatternRule]:
        if locale not in self._keyword_tables:
            self._keyword_tables[locale] = [r for r in self._rules(locale) if r.tier == TIER_KEYWORD]
        return self._keyword_tables[locale]

    def _allowed(self, field_type: str, veto_text: str) -> bool:
        return not self.registry.is_excluded(field_type, veto_text)

    def match_phrases(self, text: str, locale: Optional[str] = _ALL_LOCALES,
                      veto_text: Optional[str] = None) -> Optional[Tuple[str, float]]:
        """
        Phrase-table tier.

        Args:
            text: Cleaned label text
            locale: Locale whose phrases apply; None for every locale
            veto_text: Text negative patterns are checked against (defaults to text)

        Returns:
            ``(field_type, confidence)`` or None
        """
        if not text:
            return None
        veto_text = veto_text if veto_text is not None else text
        phrases = self._phrases(locale)

        for phrase, field_type in phrases:
            if text == phrase and self._allowed(field_type, veto_text):
                return field_type, EXACT_PHRASE_CONFIDENCE

        best, best_length = None, 0
        for phrase, field_type in phrases:
            if len(phrase) > best_length and contains_phrase(text, phrase) \
                    and self._allowed(field_type, veto_text):
                best, best_length = field_type, len(phrase)
        if best:
            return best, CONTAINS_PHRASE_CONFIDENCE

        if len(text) < MIN_PARTIAL_LABEL_LENGTH:
            return None

        for phrase, field_type in phrases:
            if contains_phrase(phrase, text) and self._allowed(field_type, veto_text):
                return field_type, PARTIAL_PHRASE_CONFIDENCE

        best, best_ratio = None, FUZZY_RATIO_THRESHOLD - 1
        for phrase, field_type in phrases:
            ratio = fuzz.ratio(text, phrase)
            if ratio > best_ratio and self._allowed(field_type, veto_text):
                best, best_ratio = field_type, ratio
        if best:
            logger.debug(f"Near-miss spelling {text!r} -> {best} (ratio {best_ratio})")
            return best, PARTIAL_PHRASE_CONFIDENCE
        return None

    def match_keywords(self, text: str, locale: Optional[str] = _ALL_LOCALES,
                       veto_text: Optional[str] = None) -> Optional[Tuple[str, float]]:
        """Keyword tier: first field type (catalog order) whose pattern matches."""
        if not text:
            return None
        veto_text = veto_text if veto_text is not None else text
        for rule in self._keywords(locale):
            if rule.matches(text) and self._allowed(rule.field_type, veto_text):
                return rule.field_type, KEYWORD_CONFIDENCE
        return None

    def match_question(self, label_text: str, locale: Optional[str] = _ALL_LOCALES,
                       veto_text: Optional[str] = None) -> Optional[Tuple[str, float]]:
        """Question tier; None unless the label reads like a question or prompt."""
        if not looks_like_question(label_text):
            return None
        extracted = strip_question_words(label_text)
        if not extracted:
            return None
        hit = self.match_phrases(extracted, locale, veto_text)
        if hit:
            return hit[0], min(hit[1], QUESTION_PHRASE_CAP)
        hit = self.match_keywords(extracted, locale, veto_text)
        if hit:
            return hit[0], min(hit[1], QUESTION_KEYWORD_CAP)
        return None

    def match(self, label_text: str, locale: Optional[str] = _ALL_LOCALES) -> Optional[Signal]:
        """
        Classify a caption.

        Args:
            label_text: Raw caption text
            locale: Active page locale; None matches against every locale

        Returns:
            A Signal from the first tier that hits, or None
        """
        if self.registry is None or not label_text or not isinstance(label_text, str):
            return None
        cleaned = clean_label(label_text)
        if not cleaned:
            return None

        for source, tier in (
            (SOURCE_SEMANTIC_MAPPING, lambda: self.match_phrases(cleaned, locale)),
            (SOURCE_QUESTION_EXTRACTION, lambda: self.match_question(label_text, locale, cleaned)),
            (SOURCE_KEYWORD_FALLBACK, lambda: self.match_keywords(cleaned, locale)),
        ):
            hit = tier()
            if hit:
                field_type, confidence = hit
                logger.debug(f"{source}: {label_text!r} -> {field_type} ({confidence:.2f})")
                return Signal(
                    field_type=field_type,
                    confidence=confidence,
                    source=source,
                    evidence={"label": label_text, "locale": locale},
                )
        return None
