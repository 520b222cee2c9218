"""Unit tests for the pattern registry and the bundled catalog."""

import pytest

from field_classifier.core.exceptions import CatalogError
from field_classifier.core.field_types import FieldType
from field_classifier.core.pattern_registry import (
    TIER_EXACT,
    TIER_FUZZY,
    TIER_KEYWORD,
    TIER_ORDER,
    PatternRegistry,
    PatternRule,
    contains_phrase,
)


def test_bundled_catalog_covers_builtin_field_types(registry):
    assert set(registry.field_types()) == {t.value for t in FieldType}
    assert registry.custom_field_types() == []
    assert FieldType.EXPECTED_COMPENSATION in registry
    assert "shoeSize" not in registry


def test_bundled_catalog_locales(registry):
    assert registry.locales()[0] == "en"
    assert set(registry.locales()) == {"en", "de", "fr", "es", "pt", "hi"}


def test_get_patterns_is_ordered_by_tier(registry):
    rules = registry.get_patterns("email", "fr")
    tiers = [TIER_ORDER[rule.tier] for rule in rules]
    assert tiers == sorted(tiers)
    assert {rule.tier for rule in rules} == {TIER_EXACT, TIER_FUZZY, TIER_KEYWORD}


def test_get_patterns_is_pure(registry):
    assert registry.get_patterns("phone", "de") == registry.get_patterns("phone", "de")


def test_get_patterns_merges_base_and_locale(registry):
    german = [rule.phrase for rule in registry.get_patterns("email", "de") if rule.tier == TIER_EXACT]
    english = [rule.phrase for rule in registry.get_patterns("email", "en") if rule.tier == TIER_EXACT]

    assert "email" in german
    assert "e-mail-adresse" in german
    assert "e-mail-adresse" not in english


def test_get_patterns_unknown_field_type(registry):
    assert registry.get_patterns("shoeSize", "en") == []
    assert registry.get_all_patterns("shoeSize") == []


def test_get_all_patterns_spans_locales(registry):
    locales = {rule.locale for rule in registry.get_all_patterns("email")}
    assert {"en", "de", "fr", "es", "pt", "hi"} <= locales


def test_semantic_phrases_follow_catalog_order(registry):
    table = registry.semantic_phrases("en")
    field_order = registry.field_types()
    positions = [field_order.index(field_type) for _, field_type in table]
    assert positions == sorted(positions)
    assert ("expected ctc", "expectedCompensation") in table


def test_negative_patterns(registry):
    assert registry.is_excluded("email", "confirm email")
    assert registry.is_excluded("email", "re-enter email")
    assert not registry.is_excluded("email", "email address")
    assert not registry.is_excluded("shoeSize", "anything")


def test_fields_in_section(registry):
    assert set(registry.fields_in_section("personal")) >= {"middleName", "addressLine2", "dateOfBirth"}
    assert "agreeTerms" in registry.fields_in_section("application")
    assert registry.fields_in_section("nowhere") == []


def test_custom_field_types_are_accepted():
    registry = PatternRegistry({"fields": {"shoeSize": {"phrases": ["Shoe  Size"], "keywords": [r"\bshoe\b"]}}})

    assert registry.custom_field_types() == ["shoeSize"]
    exact = registry.get_patterns("shoeSize", "en")[0]
    assert exact.tier == TIER_EXACT
    assert exact.phrase == "shoe size"


@pytest.mark.parametrize("catalog", [
    None,
    [],
    {},
    {"fields": {}},
    {"fields": {"email": ["email"]}},
    {"fields": {"email": {"phrases": ["email"], "synonyms": ["mail"]}}},
    {"fields": {"email": {"phrases": "email"}}},
    {"fields": {"email": {"keywords": ["(unclosed"]}}},
    {"fields": {"email": {"i18n": ["de"]}}},
    {"fields": {"email": {"i18n": {"de": {"regex": ["x"]}}}}},
    {"fields": {"email": {"section": "hobbies"}}},
])
def test_malformed_catalog_is_rejected(catalog):
    with pytest.raises(CatalogError):
        PatternRegistry(catalog)


def test_from_yaml_errors(tmp_path):
    with pytest.raises(CatalogError):
        PatternRegistry.from_yaml(str(tmp_path / "missing.yaml"))

    broken = tmp_path / "broken.yaml"
    broken.write_text("fields: [unclosed\n", encoding="utf-8")
    with pytest.raises(CatalogError):
        PatternRegistry.from_yaml(str(broken))


def test_from_yaml_custom_catalog(tmp_path):
    catalog = tmp_path / "catalog.yaml"
    catalog.write_text(
        "fields:\n"
        "  petName:\n"
        "    phrases: [pet name]\n"
        "    i18n:\n"
        "      de: {phrases: [haustiername]}\n",
        encoding="utf-8",
    )
    registry = PatternRegistry.from_yaml(str(catalog))

    assert registry.field_types() == ["petName"]
    assert registry.locales() == ["en", "de"]


def test_contains_phrase_respects_word_boundaries():
    assert contains_phrase("dev tools", "tools")
    assert contains_phrase("expected ctc (inr)", "expected ctc")
    assert not contains_phrase("sussex", "sex")
    assert not contains_phrase("statement", "state")
    assert not contains_phrase("", "state")


def test_pattern_rule_matching(registry):
    exact = PatternRule("email", "en", TIER_EXACT, phrase="email")
    fuzzy = PatternRule("email", "en", TIER_FUZZY, phrase="email")
    keyword = registry.get_patterns("email", "en")[-1]

    assert exact.matches("email") and not exact.matches("work email")
    assert fuzzy.matches("work email") and not fuzzy.matches("emailing")
    assert keyword.tier == TIER_KEYWORD
    assert keyword.matches("your e-mail please")
