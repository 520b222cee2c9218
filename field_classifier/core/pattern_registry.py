"""Pattern registry: field types, their phrases and keyword patterns per locale."""

import logging
import os
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Pattern, Tuple

import yaml

from field_classifier.core.exceptions import CatalogError
from field_classifier.core.field_types import FieldType, SectionType

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "field_catalog.yaml"
)

TIER_EXACT = "exact"
TIER_FUZZY = "fuzzy"
TIER_KEYWORD = "keyword"
TIER_ORDER = {TIER_EXACT: 0, TIER_FUZZY: 1, TIER_KEYWORD: 2}
FIELD_KEYS = {"phrases", "keywords", "i18n", "negative", "section"}
BUILTIN_FIELD_TYPES = {t.value for t in FieldType}
SECTION_IDS = {s.value for s in SectionType}


@dataclass(frozen=True)
class PatternRule:
    """One way of recognising a field type in a caption.

    ``exact`` and ``fuzzy`` rules carry a lowercase phrase; ``keyword`` rules
    carry a compiled case-insensitive pattern.
    """
    field_type: str
    locale: str
    tier: str
    phrase: Optional[str] = None
    pattern: Optional[Pattern] = None

    def matches(self, text: str) -> bool:
        """Check the rule against already-cleaned caption text."""
        if self.tier == TIER_EXACT:
            return text == self.phrase
        if self.tier == TIER_FUZZY:
            return contains_phrase(text, self.phrase)
        return bool(self.pattern.search(text))


def contains_phrase(text: str, phrase: str) -> bool:
    """Whole-word containment: 'tools' is in 'dev tools', 'sex' is not in 'sussex'."""
    if not phrase or not text:
        return False
    return re.search(r"(?<!\w)" + re.escape(phrase) + r"(?!\w)", text) is not None


def _compile(pattern: str, where: str) -> Pattern:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        raise CatalogError(f"Invalid pattern {pattern!r} in {where}: {e}")


def _string_list(value: Any, where: str) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CatalogError(f"Expected a list of strings in {where}")
    return value


class PatternRegistry:
    """Read-only catalog of field types and the rules that recognise them.

    Constructed once and injected into the semantic matcher; nothing mutates
    it during evaluation.
    """

    def __init__(self, catalog: Dict[str, Any]):
        """
        Build the registry from a parsed catalog document.

        Args:
            catalog: Mapping with a ``fields`` table (see data/field_catalog.yaml)

        Raises:
            CatalogError: If the document is malformed
        """
        if not isinstance(catalog, dict):
            raise CatalogError("Catalog must be a mapping")
        fields = catalog.get("fields")
        if not isinstance(fields, dict) or not fields:
            raise CatalogError("Catalog has no 'fields' map")

        self.base_locale = str(catalog.get("base_locale", "en"))
        self._field_order: List[str] = []
        self._rules: Dict[str, Dict[str, List[PatternRule]]] = {}
        self._negative: Dict[str, List[Pattern]] = {}
        self._sections: Dict[str, Optional[str]] = {}
        self._locales: List[str] = [self.base_locale]

        for field_type, entry in fields.items():
            self._load_field(str(field_type), entry or {})

        custom = self.custom_field_types()
        if custom:
            logger.info(f"Catalog declares custom field types: {', '.join(custom)}")
        logger.debug(
            f"Pattern registry loaded {len(self._field_order)} field types "
            f"across locales {', '.join(self._locales)}"
        )

    def _load_field(self, field_type: str, entry: Dict[str, Any]) -> None:
        if not isinstance(entry, dict):
            raise CatalogError(f"Field '{field_type}' must map to a table")
        unknown = set(entry) - FIELD_KEYS
        if unknown:
            raise CatalogError(f"Unknown key(s) {sorted(unknown)} in field '{field_type}'")

        per_locale: Dict[str, List[PatternRule]] = {}
        per_locale[self.base_locale] = self._build_rules(
            field_type, self.base_locale,
            _string_list(entry.get("phrases"), f"{field_type}.phrases"),
            _string_list(entry.get("keywords"), f"{field_type}.keywords"),
        )

        i18n = entry.get("i18n") or {}
        if not isinstance(i18n, dict):
            raise CatalogError(f"Field '{field_type}' has a malformed i18n block")
        for locale, block in i18n.items():
            locale = str(locale).lower()
            if not isinstance(block, dict):
                raise CatalogError(f"Locale block {field_type}.i18n.{locale} must be a table")
            unknown = set(block) - {"phrases", "keywords"}
            if unknown:
                raise CatalogError(
                    f"Unknown tier(s) {sorted(unknown)} in {field_type}.i18n.{locale}"
                )
            per_locale.setdefault(locale, []).extend(self._build_rules(
                field_type, locale,
                _string_list(block.get("phrases"), f"{field_type}.i18n.{locale}.phrases"),
                _string_list(block.get("keywords"), f"{field_type}.i18n.{locale}.keywords"),
            ))
            if locale not in self._locales:
                self._locales.append(locale)

        self._field_order.append(field_type)
        self._rules[field_type] = per_locale
        self._negative[field_type] = [
            _compile(p, f"{field_type}.negative")
            for p in _string_list(entry.get("negative"), f"{field_type}.negative")
        ]
        section = entry.get("section")
        if section is not None and section not in SECTION_IDS:
            raise CatalogError(f"Field '{field_type}' names unknown section '{section}'")
        self._sections[field_type] = section

    def _build_rules(self, field_type: str, locale: str, phrases: List[str],
                     keywords: List[str]) -> List[PatternRule]:
        rules = []
        for phrase in phrases:
            phrase = " ".join(phrase.lower().split())
            rules.append(PatternRule(field_type, locale, TIER_EXACT, phrase=phrase))
            rules.append(PatternRule(field_type, locale, TIER_FUZZY, phrase=phrase))
        for keyword in keywords:
            rules.append(PatternRule(
                field_type, locale, TIER_KEYWORD,
                pattern=_compile(keyword, f"{field_type}.{locale}.keywords"),
            ))
        return rules

    @classmethod
    def from_yaml(cls, path: str) -> "PatternRegistry":
        """
        Load a registry from a YAML catalog file.

        Args:
            path: Path to the catalog

        Returns:
            A new PatternRegistry

        Raises:
            CatalogError: If the file is missing, unparsable or malformed
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                catalog = yaml.safe_load(f)
        except OSError as e:
            raise CatalogError(f"Cannot read catalog {path}: {e}")
        except yaml.YAMLError as e:
            raise CatalogError(f"Cannot parse catalog {path}: {e}")
        logger.info(f"Loaded field catalog from {path}")
        return cls(catalog)

    @classmethod
    def default(cls) -> "PatternRegistry":
        """Registry built from the catalog bundled with the package."""
        return cls.from_yaml(DEFAULT_CATALOG_PATH)

    @staticmethod
    def _ordered(rules: Iterable[PatternRule]) -> List[PatternRule]:
        # sorted() is stable, so catalog order survives within a tier
        return sorted(rules, key=lambda rule: TIER_ORDER[rule.tier])

    def get_patterns(self, field_type: str, locale: str) -> List[PatternRule]:
        """
        Rules for one field type in one locale, base locale rules included.

        Args:
            field_type: Field type identifier
            locale: Locale identifier

        Returns:
            Rules ordered exact, fuzzy, keyword; empty for unknown field types
        """
        per_locale = self._rules.get(str(field_type))
        if not per_locale:
            return []
        rules = list(per_locale.get(self.base_locale, []))
        locale = (locale or self.base_locale).lower()
        if locale != self.base_locale:
            rules.extend(per_locale.get(locale, []))
        return self._ordered(rules)

    def get_all_patterns(self, field_type: str) -> List[PatternRule]:
        """Rules for one field type across every locale in the catalog."""
        per_locale = self._rules.get(str(field_type))
        if not per_locale:
            return []
        rules: List[PatternRule] = []
        for locale in self._locales:
            rules.extend(per_locale.get(locale, []))
        return self._ordered(rules)

    def field_types(self) -> List[str]:
        """Field type identifiers in catalog order."""
        return list(self._field_order)

    def locales(self) -> List[str]:
        return list(self._locales)

    def semantic_phrases(self, locale: Optional[str] = None) -> List[Tuple[str, str]]:
        """
        Phrase table as ``(phrase, field_type)`` pairs in catalog order.

        Args:
            locale: Restrict to base + this locale; ``None`` means all locales
        """
        table = []
        for field_type in self._field_order:
            if locale is None:
                rules = self.get_all_patterns(field_type)
            else:
                rules = self.get_patterns(field_type, locale)
            for rule in rules:
                if rule.tier == TIER_EXACT:
                    table.append((rule.phrase, field_type))
        return table

    def is_excluded(self, field_type: str, text: str) -> bool:
        """True when a negative pattern of ``field_type`` matches ``text``."""
        return any(p.search(text) for p in self._negative.get(str(field_type), []))

    def fields_in_section(self, section_type: str) -> List[str]:
        """Field types the catalog assigns to a form section."""
        return [ft for ft in self._field_order if self._sections.get(ft) == str(section_type)]

    def custom_field_types(self) -> List[str]:
        """Field types the catalog declares beyond the built-in FieldType set."""
        return [ft for ft in self._field_order if ft not in BUILTIN_FIELD_TYPES]

    def __contains__(self, field_type: object) -> bool:
        return str(field_type) in self._rules

    def __len__(self) -> int:
        return len(self._field_order)
