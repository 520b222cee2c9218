"""Integration tests for the engine facade: caching, navigation, degradation."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Page

from field_classifier.core.browser_interface import PlaywrightPage
from field_classifier.core.field_identification_system import ClassificationMap, FieldIdentificationSystem
from field_classifier.core.result_cache import MISS
from field_classifier.core.signals import OutcomeStatus

SIMPLE_FORM = '<form><label for="email">Email</label><input id="email"></form>'


def _mock_page(html=SIMPLE_FORM, url="https://jobs.example.com/apply"):
    page = MagicMock()
    page.url = url
    page.content = AsyncMock(return_value=html)
    page.default_language = AsyncMock(return_value=None)
    return page


@pytest.mark.asyncio
async def test_concurrent_initialization_builds_once(registry, config):
    page = _mock_page()
    engine = FieldIdentificationSystem(page, registry=registry, config=config)

    first, second = await asyncio.gather(engine.initialize(), engine.initialize())

    assert first is second
    assert page.content.await_count == 1
    assert await engine.get_page_context() is first


@pytest.mark.asyncio
async def test_navigation_rebuilds_context(make_engine):
    engine = make_engine('<html lang="de"><body>' + SIMPLE_FORM + "</body></html>", url="https://example.com/a")
    before = await engine.get_page_context()
    element = before.soup.select_one("#email")
    await engine.classify_field(element)
    assert engine.cache.get(element, "signals") is not MISS

    engine.page.navigate('<html lang="fr"><body>' + SIMPLE_FORM + "</body></html>", "https://example.com/b")
    after = await engine.get_page_context()

    assert after is not before
    assert after.url == "https://example.com/b"
    assert after.locale.locale == "fr"
    assert engine.cache.get(element, "signals") is MISS


@pytest.mark.asyncio
async def test_returning_to_a_url_redetects_locale(make_engine):
    engine = make_engine('<html lang="de"><body>' + SIMPLE_FORM + "</body></html>", url="https://example.com/app")
    assert (await engine.get_page_context()).locale.locale == "de"

    engine.page.navigate('<html lang="es"><body>' + SIMPLE_FORM + "</body></html>", "https://example.com/other")
    assert (await engine.get_page_context()).locale.locale == "es"

    engine.page.navigate('<html lang="fr"><body>' + SIMPLE_FORM + "</body></html>", "https://example.com/app")
    context = await engine.get_page_context()

    assert context.locale.locale == "fr"
    assert context.locale.signal == "html-lang"


@pytest.mark.asyncio
async def test_clear_cache(make_engine):
    engine = make_engine(SIMPLE_FORM)
    before = await engine.get_page_context()
    await engine.classify_field(before.soup.select_one("#email"))
    assert len(engine.cache) > 0

    engine.clear_cache()

    assert len(engine.cache) == 0
    assert await engine.get_page_context() is not before


@pytest.mark.asyncio
async def test_signals_are_cached_per_element(make_engine):
    engine = make_engine(SIMPLE_FORM)
    element = (await engine.get_page_context()).soup.select_one("#email")

    first = await engine.classify_field(element)
    cached = engine.cache.get(element, "signals")
    second = await engine.classify_field(element)

    assert [s.field_type for s in cached] == ["email"]
    assert first.field_type == second.field_type == "email"


@pytest.mark.asyncio
async def test_label_override_bypasses_cache(make_engine):
    engine = make_engine(SIMPLE_FORM)
    element = (await engine.get_page_context()).soup.select_one("#email")

    overridden = await engine.classify_field(element, label_override="Expected CTC")

    assert overridden.field_type == "expectedCompensation"
    assert engine.cache.get(element, "signals") is MISS
    assert (await engine.classify_field(element)).field_type == "email"


@pytest.mark.asyncio
async def test_classify_fields_skips_hidden_and_keys_by_identity(make_engine):
    html = (
        '<form id="a"><input name="email" placeholder="Email"></form>'
        '<form id="b"><input name="email" placeholder="Email"></form>'
        '<div style="display:none"><input name="phone" placeholder="Phone"></div>'
        '<input type="hidden" name="email" placeholder="Email">'
        '<input name="nothing">'
    )
    engine = make_engine(html)
    inputs = (await engine.get_page_context()).soup.find_all("input")

    classified = await engine.classify_fields(inputs)

    assert isinstance(classified, ClassificationMap)
    assert len(classified) == 2
    assert inputs[0] in classified and inputs[1] in classified
    assert inputs[0] == inputs[1]
    assert classified[inputs[0]] is not classified[inputs[1]]
    for element in inputs[2:]:
        assert element not in classified
    with pytest.raises(KeyError):
        classified[inputs[4]]
    assert [el.get("name") for el, _ in classified.to_list()] == ["email", "email"]


@pytest.mark.asyncio
async def test_failed_page_build_degrades(registry, config, diagnostics):
    page = _mock_page()
    page.content = AsyncMock(side_effect=RuntimeError("target closed"))
    engine = FieldIdentificationSystem(page, registry=registry, config=config, diagnostics=diagnostics)

    context = await engine.initialize()

    assert context.degraded
    assert context.url == "https://jobs.example.com/apply"
    assert not await engine.is_application_like_page()
    assert await engine.candidate_elements() == []
    assert diagnostics.failures[0]["source"] == "page_context"
    assert diagnostics.get_summary()["stages"]["page_context"]["success"] is False


@pytest.mark.asyncio
async def test_non_markup_content_degrades(registry, config, diagnostics):
    engine = FieldIdentificationSystem(_mock_page(html=None), registry=registry, config=config, diagnostics=diagnostics)

    context = await engine.initialize()

    assert context.degraded
    assert diagnostics.failures[0]["category"] == "page_context"


@pytest.mark.asyncio
async def test_failing_source_does_not_break_classification(make_engine, diagnostics):
    broken = MagicMock()
    broken.hint.side_effect = ValueError("schema walk failed")
    engine = make_engine(SIMPLE_FORM, structured_data=broken)
    element = (await engine.get_page_context()).soup.select_one("#email")

    outcomes = await engine.collect_outcomes(element)
    result = await engine.classify_field(element, label_override="Email")

    assert [o.status for o in outcomes] == [OutcomeStatus.FAILED, OutcomeStatus.FOUND, OutcomeStatus.ABSENT]
    assert result.field_type == "email"
    assert any(f["source"] == "structured-data" for f in diagnostics.failures)


@pytest.mark.asyncio
async def test_classification_never_raises(make_engine):
    aggregator = MagicMock()
    aggregator.aggregate.side_effect = RuntimeError("boom")
    engine = make_engine(SIMPLE_FORM, aggregator=aggregator)
    element = (await engine.get_page_context()).soup.select_one("#email")

    assert await engine.classify_field(element) is None


@pytest.mark.asyncio
async def test_absent_collaborators(make_engine, diagnostics):
    engine = make_engine(
        SIMPLE_FORM, structured_data=None, semantic_matcher=None, section_context=None,
        cache=None, label_extractor=None,
    )
    element = (await engine.get_page_context()).soup.select_one("#email")

    assert not engine.is_available()
    outcomes = await engine.collect_outcomes(element)
    assert {o.status for o in outcomes} == {OutcomeStatus.UNAVAILABLE}
    assert await engine.classify_field(element) is None
    assert diagnostics.get_summary()["sources"]["semantic-matcher"]["unavailable"] >= 1


@pytest.mark.asyncio
async def test_registry_absent_disables_matcher(make_engine):
    engine = make_engine(SIMPLE_FORM, registry=None)

    assert engine.semantic_matcher is None
    assert engine.is_available()
    element = (await engine.get_page_context()).soup.select_one("#email")
    assert await engine.classify_field(element) is None


@pytest.mark.asyncio
async def test_application_page_detection(make_engine):
    contact = make_engine(
        "<html><head><title>Contact us</title></head><body>" + SIMPLE_FORM + "</body></html>",
        url="https://example.com/contact",
    )
    careers = make_engine(
        "<html><head><title>Apply now</title></head><body>" + SIMPLE_FORM + "</body></html>",
        url="https://example.com/careers/apply",
    )

    assert not await contact.is_application_like_page()
    assert await careers.is_application_like_page()


@pytest.mark.asyncio
async def test_wraps_playwright_pages(registry, config):
    raw = MagicMock(spec=Page)
    raw.url = "https://jobs.example.com/apply"
    raw.content = AsyncMock(return_value=SIMPLE_FORM)
    raw.evaluate = AsyncMock(return_value="en-US")

    engine = FieldIdentificationSystem(raw, registry=registry, config=config)

    assert isinstance(engine.page, PlaywrightPage)
    elements = await engine.candidate_elements()
    classified = await engine.classify_fields(elements)
    assert [result.field_type for result in classified.values()] == ["email"]


@pytest.mark.asyncio
async def test_from_html(registry, config):
    engine = FieldIdentificationSystem.from_html(SIMPLE_FORM, url="https://example.com/", registry=registry, config=config)
    context = await engine.get_page_context()

    assert context.url == "https://example.com/"
    assert not context.degraded
