"""Helpers for working with parsed form markup."""

import logging
import re
from typing import Dict, Optional

from bs4 import BeautifulSoup
from bs4.element import Comment, NavigableString, Tag

from field_classifier.core.result_cache import MISS

logger = logging.getLogger(__name__)

FORM_CONTROL_TAGS = ("input", "select", "textarea", "button")
CANDIDATE_TAGS = ("input", "select", "textarea")
NON_FILLABLE_INPUT_TYPES = {"hidden", "submit", "button", "reset", "image"}
_SKIPPED_TEXT_TAGS = FORM_CONTROL_TAGS + ("script", "style", "option")

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Collapse runs of whitespace and trim."""
    if not text:
        return ""
    return _WHITESPACE.sub(" ", str(text)).strip()


def get_text(element) -> str:
    """Visible-ish text content of a node, whitespace collapsed."""
    if element is None:
        return ""
    if isinstance(element, NavigableString):
        return normalize_text(str(element))
    return normalize_text(element.get_text(" "))


def text_excluding_controls(element: Tag) -> str:
    """Text of an element, skipping anything inside form controls or scripts."""
    parts = []
    for node in element.descendants:
        if not isinstance(node, NavigableString) or isinstance(node, Comment):
            continue
        if _inside(node, element, _SKIPPED_TEXT_TAGS):
            continue
        parts.append(str(node))
    return normalize_text(" ".join(parts))


def _inside(node, stop: Tag, names) -> bool:
    parent = node.parent
    while parent is not None and parent is not stop:
        if parent.name in names:
            return True
        parent = parent.parent
    return False


def class_string(element: Tag) -> str:
    classes = element.get("class") or []
    if isinstance(classes, str):
        return classes
    return " ".join(classes)


def find_root(element: Tag):
    """Top of the tree an element belongs to (the parsed document when attached)."""
    node = element
    while node.parent is not None:
        node = node.parent
    return node


def find_by_id(element: Tag, element_id: str) -> Optional[Tag]:
    """Look up an id in the element's own document."""
    if not element_id:
        return None
    root = find_root(element)
    if not isinstance(root, Tag):
        return None
    return root.find(attrs={"id": element_id})


def parse_inline_style(style: Optional[str]) -> Dict[str, str]:
    """Parse a style attribute into a property map (lowercase names and values)."""
    declarations = {}
    for declaration in (style or "").split(";"):
        if ":" not in declaration:
            continue
        name, value = declaration.split(":", 1)
        name = name.strip().lower()
        if name:
            declarations[name] = value.replace("!important", "").strip().lower()
    return declarations


def computed_style(element: Tag, cache=None) -> Dict[str, str]:
    """
    Style of an element as far as markup can tell: inline declarations only.

    Args:
        element: The element
        cache: Optional ResultCache (category ``computed_style``)
    """
    if cache is not None:
        cached = cache.get(element, "computed_style")
        if cached is not MISS:
            return cached
    style = parse_inline_style(element.get("style"))
    if cache is not None:
        cache.set(element, "computed_style", style)
    return style


def _hidden_by_markup(element: Tag, cache=None) -> bool:
    if element.has_attr("hidden"):
        return True
    style = computed_style(element, cache)
    if style.get("display") == "none" or style.get("visibility") == "hidden":
        return True
    return style.get("opacity") in ("0", "0.0")


def is_visible(element: Tag, cache=None) -> bool:
    """
    Whether a candidate element would be visible to the user.

    Hidden when the element is ``type=hidden`` or ``aria-hidden=true``, or
    when it or any ancestor carries the ``hidden`` attribute or an inline
    ``display:none`` / ``visibility:hidden`` / ``opacity:0``.

    Args:
        element: The element to check
        cache: Optional ResultCache (category ``visibility``)
    """
    if element is None or not isinstance(element, Tag):
        return False
    if cache is not None:
        cached = cache.get(element, "visibility")
        if cached is not MISS:
            return cached

    visible = True
    if element.name == "input" and str(element.get("type", "")).lower() == "hidden":
        visible = False
    elif str(element.get("aria-hidden", "")).lower() == "true":
        visible = False
    else:
        node = element
        while isinstance(node, Tag) and not isinstance(node, BeautifulSoup):
            if _hidden_by_markup(node, cache):
                visible = False
                break
            node = node.parent

    if cache is not None:
        cache.set(element, "visibility", visible)
    return visible


def is_candidate(element: Tag) -> bool:
    """Form controls a filler could write into."""
    if not isinstance(element, Tag) or element.name not in CANDIDATE_TAGS:
        return False
    if element.name == "input":
        return str(element.get("type", "text")).lower() not in NON_FILLABLE_INPUT_TYPES
    return True


def candidate_elements(soup) -> list:
    """All candidate form controls of a document, in document order."""
    return [el for el in soup.find_all(list(CANDIDATE_TAGS)) if is_candidate(el)]
