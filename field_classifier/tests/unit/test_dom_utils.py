"""Unit tests for markup helpers: visibility, styles, candidates."""

import pytest

from field_classifier.core.result_cache import MISS
from field_classifier.tools.dom_utils import (
    candidate_elements,
    computed_style,
    is_candidate,
    is_visible,
    parse_inline_style,
    text_excluding_controls,
)


@pytest.mark.parametrize("html", [
    '<input type="hidden" name="token">',
    '<input aria-hidden="true">',
    '<input hidden>',
    '<input style="display: none">',
    '<input style="visibility:hidden !important">',
    '<input style="opacity: 0">',
    '<div style="display:none"><p><input></p></div>',
    '<section hidden><input></section>',
])
def test_hidden_elements(soup_of, html):
    assert not is_visible(soup_of(html).find("input"))


@pytest.mark.parametrize("html", [
    '<input type="text">',
    '<div style="color: red"><input style="opacity: 0.5"></div>',
    '<input aria-hidden="false">',
])
def test_visible_elements(soup_of, html):
    assert is_visible(soup_of(html).find("input"))


def test_visibility_is_cached(soup_of, cache):
    element = soup_of('<input style="display:none">').find("input")

    assert not is_visible(element, cache)
    assert cache.get(element, "visibility") is False
    assert cache.get(element, "computed_style") == {"display": "none"}


def test_non_elements_are_not_visible():
    assert not is_visible(None)
    assert not is_visible("text")


def test_parse_inline_style():
    assert parse_inline_style("Display: NONE; color:red;;bogus") == {"display": "none", "color": "red"}
    assert parse_inline_style(None) == {}


def test_computed_style_uses_cache(soup_of, cache):
    element = soup_of('<input style="display:block">').find("input")
    cache.set(element, "computed_style", {"display": "none"})

    assert computed_style(element, cache) == {"display": "none"}
    assert computed_style(element) == {"display": "block"}


def test_candidates(soup_of):
    soup = soup_of(
        '<form><input name="a"><input type="submit"><input type="hidden">'
        '<select name="b"></select><textarea name="c"></textarea><button>Go</button></form>'
    )
    names = [el.get("name") for el in candidate_elements(soup)]

    assert names == ["a", "b", "c"]
    assert not is_candidate(soup.find("button"))


def test_text_excluding_controls(soup_of):
    label = soup_of(
        '<label>Country <!-- note --><select><option>France</option></select>'
        '<script>var x;</script> of residence</label>'
    ).find("label")

    assert text_excluding_controls(label) == "Country of residence"


def test_miss_is_distinct_from_cached_none(soup_of, cache):
    element = soup_of("<input>").find("input")
    cache.set(element, "label_text", None)

    assert cache.get(element, "label_text") is None
    assert cache.get(element, "signals") is MISS
