"""Resolve the human-readable caption of a form control."""

import logging
from typing import Optional

from bs4.element import Comment, NavigableString, Tag

from field_classifier.core.result_cache import MISS
from field_classifier.tools.constants import MAX_ANCESTOR_WALK, MAX_CAPTION_LENGTH
from field_classifier.tools.dom_utils import (
    FORM_CONTROL_TAGS,
    class_string,
    find_by_id,
    find_root,
    get_text,
    normalize_text,
    text_excluding_controls,
)

logger = logging.getLogger(__name__)

# Caption elements inside a field container, in priority order of the CSS list
CONTAINER_CAPTION_SELECTOR = "label, .label, .field-label, [class*='label']"
SIBLING_CAPTION_TAGS = ("span", "div", "p", "label")


def _is_field_container(node: Tag) -> bool:
    """Field entry conventions of common form libraries and ATS vendors."""
    classes = (node.get("class") or [])
    if isinstance(classes, str):
        classes = classes.split()
    if any(c in ("form-group", "field", "input-group", "application-question") for c in classes):
        return True
    if "field" in class_string(node):
        return True
    return node.has_attr("data-automation-id")


class LabelExtractor:
    """Finds caption text for form controls using several strategies."""

    def __init__(self, cache=None):
        """
        Initialize the label extractor.

        Args:
            cache: Optional ResultCache; results are kept under ``label_text``
        """
        self.cache = cache

    def resolve_label(self, element: Tag) -> str:
        """
        Get the caption of a form control.

        Args:
            element: The form control

        Returns:
            Caption text, or "" when nothing is found
        """
        if self.cache is not None:
            cached = self.cache.get(element, "label_text")
            if cached is not MISS:
                return cached

        try:
            label = self._extract(element)
        except Exception as e:
            logger.warning(f"Label extraction failed for <{getattr(element, 'name', '?')}>: {e}")
            return ""

        if self.cache is not None:
            self.cache.set(element, "label_text", label)
        return label

    def _extract(self, element: Tag) -> str:
        for strategy in (
            self._label_for,
            self._wrapping_label,
            self._aria_labelledby,
            self._attribute_caption,
            self._container_caption,
            self._preceding_sibling,
            self._ancestor_text,
        ):
            text = strategy(element)
            if text:
                logger.debug(f"Label via {strategy.__name__}: {text!r}")
                return text
        return ""

    def _label_for(self, element: Tag) -> str:
        element_id = element.get("id")
        if not element_id:
            return ""
        root = find_root(element)
        label = root.find("label", attrs={"for": element_id})
        return get_text(label) if label else ""

    def _wrapping_label(self, element: Tag) -> str:
        label = element.find_parent("label")
        if not label:
            return ""
        return text_excluding_controls(label)

    def _aria_labelledby(self, element: Tag) -> str:
        labelled_by = element.get("aria-labelledby")
        if not labelled_by:
            return ""
        texts = []
        for label_id in str(labelled_by).split():
            node = find_by_id(element, label_id)
            text = get_text(node) if node else ""
            if text:
                texts.append(text)
        return " ".join(texts)

    def _attribute_caption(self, element: Tag) -> str:
        for attribute in ("aria-label", "title", "placeholder"):
            text = normalize_text(element.get(attribute))
            if text:
                return text
        return ""

    def _container_caption(self, element: Tag) -> str:
        for container in element.parents:
            if not isinstance(container, Tag) or container.parent is None:
                break
            if not _is_field_container(container):
                continue
            for caption in container.select(CONTAINER_CAPTION_SELECTOR):
                if caption is element or caption.name in FORM_CONTROL_TAGS:
                    continue
                text = text_excluding_controls(caption)
                if text:
                    return text
        return ""

    def _preceding_sibling(self, element: Tag) -> str:
        sibling = element.previous_sibling
        while sibling is not None:
            if isinstance(sibling, Comment):
                sibling = sibling.previous_sibling
                continue
            if isinstance(sibling, NavigableString):
                text = normalize_text(str(sibling))
                if text:
                    return text
            elif isinstance(sibling, Tag):
                if sibling.name in SIBLING_CAPTION_TAGS:
                    return text_excluding_controls(sibling)
                break
            sibling = sibling.previous_sibling
        return ""

    def _ancestor_text(self, element: Tag) -> str:
        node = element.parent
        for _ in range(MAX_ANCESTOR_WALK):
            if node is None or node.parent is None:
                break
            text = text_excluding_controls(node)
            if text and len(text) <= MAX_CAPTION_LENGTH:
                return text
            node = node.parent
        return ""

    def field_identifiers(self, element: Tag) -> str:
        """
        All identifying strings of a control joined, lowercase.

        Args:
            element: The form control

        Returns:
            Automation attributes, name, id, placeholder, aria-label,
            autocomplete and label text joined by spaces
        """
        parts = [
            element.get("data-automation-id"),
            element.get("data-testid"),
            element.get("data-field"),
            element.get("name"),
            element.get("id"),
            element.get("placeholder"),
            element.get("aria-label"),
            element.get("autocomplete"),
            self.resolve_label(element),
        ]
        return " ".join(str(p) for p in parts if p).lower()


def describe_element(element: Tag) -> Optional[str]:
    """Short selector-like description for logs and CLI output."""
    if not isinstance(element, Tag):
        return None
    if element.get("id"):
        return f"{element.name}#{element['id']}"
    if element.get("name"):
        return f"{element.name}[name={element['name']}]"
    return element.name
