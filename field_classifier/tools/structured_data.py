"""Field hints from schema.org JSON-LD blocks embedded in the page."""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from bs4 import BeautifulSoup

from field_classifier.core.signals import Signal
from field_classifier.tools.constants import (
    SOURCE_STRUCTURED_DATA,
    STRUCTURED_BASE_CONFIDENCE,
    STRUCTURED_MAX_CONFIDENCE,
)

logger = logging.getLogger(__name__)

# schema type -> property -> (context, field types)
SCHEMA_FIELD_MAPPINGS = {
    "JobPosting": {
        "hiringOrganization": ("company", ["currentCompany"]),
        "jobLocation": ("location", ["city", "state", "country"]),
        "baseSalary": ("salary", ["expectedCompensation"]),
        "employmentType": ("employment", []),
        "title": ("job", ["currentTitle"]),
        "description": ("job", []),
    },
    "ContactPoint": {
        "email": ("contact", ["email"]),
        "telephone": ("contact", ["phone"]),
        "contactType": ("contact", []),
    },
    "PostalAddress": {
        "streetAddress": ("address", ["street"]),
        "addressLocality": ("address", ["city"]),
        "addressRegion": ("address", ["state"]),
        "postalCode": ("address", ["zipCode"]),
        "addressCountry": ("address", ["country"]),
    },
    "Organization": {
        "name": ("company", ["currentCompany"]),
        "email": ("contact", ["email"]),
        "telephone": ("contact", ["phone"]),
        "address": ("address", ["street"]),
        "url": ("company", ["portfolio"]),
    },
    "Person": {
        "givenName": ("personal", ["firstName"]),
        "familyName": ("personal", ["lastName"]),
        "name": ("personal", ["fullName"]),
        "email": ("contact", ["email"]),
        "telephone": ("contact", ["phone"]),
        "address": ("address", []),
        "url": ("social", ["portfolio"]),
        "sameAs": ("social", ["linkedIn", "github", "twitter"]),
    },
}

CONTEXT_WEIGHTS = {
    "job": 1.2,
    "company": 1.1,
    "contact": 1.0,
    "address": 1.0,
    "personal": 1.0,
    "social": 0.9,
    "salary": 1.1,
    "employment": 0.8,
}

# Label keyword -> the field type it names; checked in order. A hint only
# applies when the label names the hinted field itself.
LABEL_FIELD_KEYWORDS = [
    ("email", "email"),
    ("e-mail", "email"),
    ("phone", "phone"),
    ("telephone", "phone"),
    ("mobile", "phone"),
    ("street", "street"),
    ("city", "city"),
    ("town", "city"),
    ("state", "state"),
    ("province", "state"),
    ("region", "state"),
    ("zip", "zipCode"),
    ("zipcode", "zipCode"),
    ("postal", "zipCode"),
    ("postcode", "zipCode"),
    ("country", "country"),
    ("salary", "expectedCompensation"),
    ("compensation", "expectedCompensation"),
    ("ctc", "expectedCompensation"),
    ("pay", "expectedCompensation"),
    ("company", "currentCompany"),
    ("employer", "currentCompany"),
    ("organization", "currentCompany"),
    ("title", "currentTitle"),
    ("position", "currentTitle"),
    ("first", "firstName"),
    ("given", "firstName"),
    ("last", "lastName"),
    ("family", "lastName"),
    ("surname", "lastName"),
    ("name", "fullName"),
    ("linkedin", "linkedIn"),
    ("github", "github"),
    ("twitter", "twitter"),
    ("portfolio", "portfolio"),
    ("website", "portfolio"),
]

JOB_SCHEMA_TYPES = ("JobPosting", "JobApplication", "JobOffer")


@dataclass
class FieldHint:
    """What the structured data says about one field type."""
    confidence: float = 0.0
    sources: List[Dict[str, str]] = field(default_factory=list)

    @property
    def contexts(self) -> List[str]:
        return [source["context"] for source in self.sources]


@dataclass
class StructuredData:
    """Everything the JSON-LD blocks of one page yielded."""
    has_structured_data: bool = False
    schema_types: List[str] = field(default_factory=list)
    is_job_application: bool = False
    company: Optional[str] = None
    location: Optional[Dict[str, Any]] = None
    salary: Optional[Dict[str, Any]] = None
    field_hints: Dict[str, FieldHint] = field(default_factory=dict)
    parse_errors: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_types": list(self.schema_types),
            "is_job_application": self.is_job_application,
            "company": self.company,
            "location": self.location,
            "salary": self.salary,
            "field_hints": {
                field_type: round(hint.confidence, 4)
                for field_type, hint in self.field_hints.items()
            },
        }


def schema_type(item: Any) -> Optional[str]:
    """
    Schema type of a JSON-LD node.

    Args:
        item: A decoded JSON-LD object

    Returns:
        First type of a list, trailing segment of a URL-form type, or None
    """
    if not isinstance(item, dict):
        return None
    type_value = item.get("@type")
    if isinstance(type_value, list):
        type_value = type_value[0] if type_value else None
    if not isinstance(type_value, str) or not type_value:
        return None
    if "/" in type_value:
        return type_value.rstrip("/").split("/")[-1]
    return type_value


def extract_json_ld(soup: BeautifulSoup) -> Tuple[List[Dict[str, Any]], int]:
    """
    Decode every JSON-LD block, flattening arrays and @graph containers.

    Returns:
        Tuple of (decoded nodes, number of blocks that failed to parse)
    """
    nodes: List[Dict[str, Any]] = []
    errors = 0
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.string if script.string is not None else script.get_text()
        if not raw or not raw.strip():
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            errors += 1
            logger.warning(f"Skipping malformed JSON-LD block: {e}")
            continue

        if isinstance(data, list):
            candidates = data
        elif isinstance(data, dict) and isinstance(data.get("@graph"), list):
            candidates = data["@graph"]
        else:
            candidates = [data]
        nodes.extend(node for node in candidates if isinstance(node, dict))
    return nodes, errors


def _extract_location(value: Any) -> Dict[str, Any]:
    if isinstance(value, list):
        value = value[0] if value else {}
    if isinstance(value, str):
        return {"raw": value}
    if not isinstance(value, dict):
        return {}
    address = value.get("address", value)
    if isinstance(address, str):
        return {"raw": address}
    if not isinstance(address, dict):
        return {}
    country = address.get("addressCountry")
    if isinstance(country, dict):
        country = country.get("name")
    location = {
        "city": address.get("addressLocality"),
        "state": address.get("addressRegion"),
        "country": country,
        "zipCode": address.get("postalCode"),
    }
    return {k: v for k, v in location.items() if v}


def _extract_salary(value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        return {"raw": value}
    salary: Dict[str, Any] = {}
    amount = value.get("value")
    if isinstance(amount, dict):
        salary["min"] = amount.get("minValue")
        salary["max"] = amount.get("maxValue")
        salary["currency"] = amount.get("currency") or value.get("currency")
        salary["unitText"] = amount.get("unitText") or value.get("unitText")
    elif amount is not None:
        salary["amount"] = amount
        salary["currency"] = value.get("currency")
        salary["unitText"] = value.get("unitText")
    else:
        salary["currency"] = value.get("currency")
    return {k: v for k, v in salary.items() if v is not None}


def _collect_hints(item: Dict[str, Any], item_type: str, result: StructuredData, depth: int = 0) -> None:
    if depth > 10:
        return
    for prop, (context, field_types) in SCHEMA_FIELD_MAPPINGS.get(item_type, {}).items():
        value = item.get(prop)
        if not value:
            continue
        if context == "company" and prop != "url" and result.company is None:
            result.company = value.get("name") if isinstance(value, dict) else str(value)
        elif context == "location":
            result.location = _extract_location(value)
        elif context == "salary":
            result.salary = _extract_salary(value)

        weight = CONTEXT_WEIGHTS.get(context, 1.0)
        for field_type in field_types:
            hint = result.field_hints.setdefault(field_type, FieldHint())
            hint.sources.append({"schema_type": item_type, "property": prop, "context": context})
            hint.confidence = min(
                STRUCTURED_MAX_CONFIDENCE,
                max(hint.confidence, STRUCTURED_BASE_CONFIDENCE * weight),
            )

    for key, value in item.items():
        if key.startswith("@"):
            continue
        for nested in value if isinstance(value, list) else [value]:
            nested_type = schema_type(nested)
            if nested_type:
                _collect_hints(nested, nested_type, result, depth + 1)


def analyze_structured_data(soup: BeautifulSoup) -> StructuredData:
    """
    Build the structured-data part of a page context.

    Args:
        soup: Parsed document

    Returns:
        StructuredData with schema types, field hints and job details
    """
    nodes, errors = extract_json_ld(soup)
    result = StructuredData(has_structured_data=bool(nodes), parse_errors=errors)
    for node in nodes:
        node_type = schema_type(node)
        if not node_type:
            continue
        result.schema_types.append(node_type)
        _collect_hints(node, node_type, result)
    result.is_job_application = any(t in JOB_SCHEMA_TYPES for t in result.schema_types)
    if result.has_structured_data:
        logger.debug(
            f"JSON-LD types {result.schema_types}, hints for {sorted(result.field_hints)}"
        )
    return result


def named_field_type(label: str) -> Optional[str]:
    """
    Field type a label names outright, by its first keyword in table order.

    Args:
        label: Resolved caption of a form control

    Returns:
        Field type id, or None when the label names no hintable field
    """
    label = (label or "").lower()
    for keyword, field_type in LABEL_FIELD_KEYWORDS:
        if re.search(r"\b" + re.escape(keyword) + r"\b", label):
            return field_type
    return None


class StructuredDataSource:
    """Signal source backed by the page's JSON-LD."""

    source = SOURCE_STRUCTURED_DATA

    def hint(self, element, page_context, label_text: str = "") -> Optional[Signal]:
        """
        Signal for an element from the page's structured data.

        Args:
            element: The form control
            page_context: PageContext of the current page
            label_text: Resolved caption of the element

        Returns:
            A Signal, or None when the page is not a job application or the
            label does not name a field the structured data hints at
        """
        data = page_context.structured_data if page_context else None
        if data is None or not data.has_structured_data or not data.is_job_application:
            return None
        field_type = named_field_type(label_text)
        hint = data.field_hints.get(field_type) if field_type else None
        if hint is None:
            return None
        return Signal(
            field_type=field_type,
            confidence=hint.confidence,
            source=self.source,
            evidence={"sources": list(hint.sources)},
        )
