"""Form section context from page structure (headings, instructions, page type)."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

from field_classifier.core.exceptions import SignalSourceError
from field_classifier.core.signals import SectionContext, Signal
from field_classifier.tools.constants import (
    MAX_HEADER_DISTANCE,
    MAX_HEADER_LENGTH,
    SECTION_BASE_CONFIDENCE,
    SECTION_KEYWORD_STEP,
    SECTION_MAX_CONFIDENCE,
    SECTION_MIN_CONFIDENCE,
    SOURCE_SECTION_CONTEXT,
)
from field_classifier.tools.dom_utils import CANDIDATE_TAGS, class_string, get_text

logger = logging.getLogger(__name__)

# The section matching the most keywords wins; earlier sections win ties
SECTION_KEYWORDS = {
    "personal": [
        "personal", "contact", "about you", "your information", "basic info",
        "personal details", "personal information", "contact information",
        "your details", "candidate information", "applicant information",
        "persönliche", "kontaktdaten", "angaben zur person",
        "informations personnelles", "coordonnées",
        "datos personales", "información personal", "información de contacto",
        "dados pessoais", "informações pessoais", "contato",
    ],
    "experience": [
        "experience", "work history", "employment", "professional",
        "work experience", "employment history", "career", "previous roles",
        "previous positions", "job history",
        "berufserfahrung", "werdegang",
        "expérience", "parcours professionnel",
        "experiencia", "historial laboral",
        "experiência", "histórico profissional",
    ],
    "education": [
        "education", "academic", "qualifications", "degree", "school",
        "educational background", "academic history", "training",
        "certifications", "certificates",
        "ausbildung", "bildung", "studium",
        "formation", "études",
        "educación", "formación", "estudios",
        "educação", "formação", "escolaridade",
    ],
    "skills": [
        "skills", "expertise", "competencies", "technical", "abilities",
        "technical skills", "core competencies", "proficiencies",
        "languages", "tools", "technologies",
        "kenntnisse", "fähigkeiten", "kompetenzen",
        "compétences",
        "habilidades", "competencias",
        "competências",
    ],
    "application": [
        "application", "apply", "submit", "cover letter", "resume",
        "application form", "job application", "apply now", "documents",
        "attachments", "upload",
        "bewerbung", "anschreiben", "lebenslauf", "unterlagen",
        "candidature", "lettre de motivation",
        "solicitud", "carta de presentación",
        "candidatura", "currículo",
    ],
    "diversity": [
        "diversity", "equal opportunity", "eeo", "demographic", "voluntary",
        "self-identification", "optional", "veteran", "disability",
        "gender", "ethnicity",
        "vielfalt", "chancengleichheit",
        "diversité", "diversidad", "diversidade",
    ],
    "compensation": [
        "compensation", "salary", "pay", "benefits", "ctc", "package",
        "salary expectations", "expected compensation", "remuneration",
        "gehalt", "vergütung",
        "salaire", "rémunération",
        "salario", "remuneración",
        "salário", "remuneração",
    ],
}

SECTION_FIELD_TYPES = {
    "personal": ["firstName", "lastName", "fullName", "email", "phone",
                 "street", "city", "state", "zipCode", "country"],
    "experience": ["currentCompany", "currentTitle", "yearsExperience",
                   "workStartDate", "workEndDate", "workDescription"],
    "education": ["school", "degree", "fieldOfStudy", "graduationYear", "gpa"],
    "skills": ["technicalSkills", "frameworks", "tools", "softSkills", "skills"],
    "application": ["coverLetter", "resume"],
    "diversity": ["gender", "veteranStatus", "disability", "nationality"],
    "compensation": ["currentCompensation", "expectedCompensation", "noticePeriod"],
}

FORM_TYPE_KEYWORDS = {
    "jobApplication": ["apply", "application", "job", "career", "position", "candidate",
                       "applicant", "resume", "cv", "cover letter", "hiring"],
    "registration": ["register", "sign up", "create account", "join", "member"],
    "contact": ["contact us", "get in touch", "reach out", "inquiry", "message"],
    "profile": ["profile", "settings", "account", "preferences", "update your"],
}

APPLICATION_PATH_SEGMENTS = ("apply", "application", "career", "jobs", "careers", "hiring")

INSTRUCTION_SELECTORS = [
    ".form-instructions",
    ".instructions",
    ".form-description",
    ".help-text",
    "[class*='instruction']",
    "[class*='description']",
    "p:first-of-type",
    ".form-header p",
]
MIN_INSTRUCTION_LENGTH = 20
MAX_INSTRUCTION_LENGTH = 500

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
HEADING_CLASS = re.compile(r"heading|header|title|section", re.IGNORECASE)

_KEYWORD_PATTERNS = {
    section: [re.compile(r"(?<!\w)" + re.escape(k)) for k in keywords]
    for section, keywords in SECTION_KEYWORDS.items()
}


def classify_section(text: str) -> Optional[str]:
    """
    Section type of a heading text.

    Args:
        text: Heading text

    Returns:
        Section type with the most matching keywords (table order breaks
        ties), or None
    """
    text = (text or "").lower()
    best, best_matches = None, 0
    for section, patterns in _KEYWORD_PATTERNS.items():
        matches = sum(1 for p in patterns if p.search(text))
        if matches > best_matches:
            best, best_matches = section, matches
    return best


def section_confidence(section_type: str, text: str) -> float:
    """Confidence for a classified heading, from its number of matching keywords."""
    text = (text or "").lower()
    matches = sum(1 for p in _KEYWORD_PATTERNS.get(section_type, []) if p.search(text))
    confidence = min(SECTION_MAX_CONFIDENCE, SECTION_BASE_CONFIDENCE + matches * SECTION_KEYWORD_STEP)
    return max(SECTION_MIN_CONFIDENCE, confidence)


def find_nearest_header(element: Tag) -> Optional[Dict[str, Any]]:
    """
    Closest preceding heading of an element.

    Walks the previous siblings of the element, then of each ancestor, for at
    most MAX_HEADER_DISTANCE levels.

    Returns:
        Dict with ``text``, ``type`` and ``distance``, or None
    """
    current = element
    distance = 0
    while isinstance(current, Tag) and not isinstance(current, BeautifulSoup) \
            and distance < MAX_HEADER_DISTANCE:
        for sibling in current.find_previous_siblings():
            if not isinstance(sibling, Tag):
                continue
            if sibling.name in HEADING_TAGS:
                text = get_text(sibling)
                return {"text": text, "type": classify_section(text), "distance": distance}
            if HEADING_CLASS.search(class_string(sibling)):
                text = get_text(sibling)
                section_type = classify_section(text)
                if text and len(text) < MAX_HEADER_LENGTH and section_type:
                    return {"text": text, "type": section_type, "distance": distance}
        current = current.parent
        distance += 1
    return None


@dataclass
class HeadingInfo:
    text: str
    section_type: Optional[str]
    confidence: float = 0.0


@dataclass
class PageStructure:
    """Page-level structural analysis."""
    title: str = ""
    form_type: Optional[str] = None
    form_type_confidence: float = 0.0
    sections: List[HeadingInfo] = field(default_factory=list)
    form_instructions: List[str] = field(default_factory=list)
    page_keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "form_type": self.form_type,
            "form_type_confidence": round(self.form_type_confidence, 4),
            "sections": [
                {"text": s.text, "type": s.section_type, "confidence": s.confidence}
                for s in self.sections
            ],
            "form_instructions": list(self.form_instructions),
            "page_keywords": list(self.page_keywords),
        }


def _page_keywords(title: str, url: str) -> List[str]:
    title = title.lower()
    path = urlparse(url or "").path.lower()
    keywords: List[str] = []
    for type_keywords in FORM_TYPE_KEYWORDS.values():
        for keyword in type_keywords:
            if (keyword in title or keyword in path) and keyword not in keywords:
                keywords.append(keyword)
    for segment in filter(None, path.split("/")):
        if segment in APPLICATION_PATH_SEGMENTS and segment not in keywords:
            keywords.append(segment)
    return keywords


def _form_instructions(container: Tag) -> List[str]:
    instructions = []
    for selector in INSTRUCTION_SELECTORS:
        for node in container.select(selector):
            text = get_text(node)
            if MIN_INSTRUCTION_LENGTH < len(text) < MAX_INSTRUCTION_LENGTH:
                instructions.append(text)
    previous = container.find_previous_sibling()
    if previous is not None and previous.name in ("p", "div", "span"):
        text = get_text(previous)
        if MIN_INSTRUCTION_LENGTH < len(text) < MAX_INSTRUCTION_LENGTH:
            instructions.append(text)
    return instructions


def _form_containers(soup: BeautifulSoup) -> List[Tag]:
    forms = soup.find_all("form")
    if forms:
        return forms
    containers = soup.select("[class*='form'], [class*='application'], [id*='form'], [id*='application']")
    return [c for c in containers if len(c.find_all(list(CANDIDATE_TAGS))) >= 3]


def _determine_form_type(structure: PageStructure) -> None:
    best_type, best_score = None, 0.0
    for form_type, keywords in FORM_TYPE_KEYWORDS.items():
        score = float(sum(1 for k in keywords if k in structure.page_keywords))
        for instruction in structure.form_instructions:
            lowered = instruction.lower()
            score += 0.5 * sum(1 for k in keywords if k in lowered)
        if score > best_score:
            best_type, best_score = form_type, score
    if best_type and best_score >= 1:
        structure.form_type = best_type
        structure.form_type_confidence = min(0.60, 0.30 + best_score * 0.15)


def analyze_page_structure(soup: BeautifulSoup, url: str = "") -> PageStructure:
    """
    Analyze headings, instructions and page identifiers of a document.

    Args:
        soup: Parsed document
        url: Page URL (path keywords)

    Returns:
        PageStructure with a form-type guess
    """
    title = get_text(soup.title) if soup.title else ""
    structure = PageStructure(title=title, page_keywords=_page_keywords(title, url))

    for container in _form_containers(soup):
        for instruction in _form_instructions(container):
            if instruction not in structure.form_instructions:
                structure.form_instructions.append(instruction)

    for header in soup.select("h1, h2, h3, h4, h5, h6, [class*='heading'], [class*='header'], [class*='title']"):
        text = get_text(header)
        if not text or len(text) > MAX_HEADER_LENGTH:
            continue
        section_type = classify_section(text)
        confidence = section_confidence(section_type, text) if section_type else 0.0
        structure.sections.append(HeadingInfo(text=text, section_type=section_type, confidence=confidence))

    _determine_form_type(structure)
    logger.debug(
        f"Page structure: form type {structure.form_type}, "
        f"{len(structure.sections)} headings, keywords {structure.page_keywords}"
    )
    return structure


class SectionContextSource:
    """Signal source for the form section an element sits in.

    Never proposes a field type; its signal only feeds the context boost.
    """

    source = SOURCE_SECTION_CONTEXT

    def __init__(self, registry=None):
        """
        Args:
            registry: Optional PatternRegistry whose catalog may assign more
                field types to a section
        """
        self.registry = registry

    def expected_field_types(self, section_type: str) -> List[str]:
        expected = list(SECTION_FIELD_TYPES.get(section_type, []))
        if self.registry is not None:
            for field_type in self.registry.fields_in_section(section_type):
                if field_type not in expected:
                    expected.append(field_type)
        return expected

    def context_for(self, element: Tag) -> Optional[SectionContext]:
        """
        Section context of an element.

        Args:
            element: The form control

        Returns:
            SectionContext, or None when no classified heading is near
        """
        header = find_nearest_header(element)
        if not header or not header["type"]:
            return None
        expected = self.expected_field_types(header["type"])
        if not expected:
            return None
        return SectionContext(
            section_type=header["type"],
            expected_field_types=tuple(expected),
            confidence=section_confidence(header["type"], header["text"]),
            heading=header["text"],
            distance=header["distance"],
        )

    def signal_for(self, element: Tag) -> Optional[Signal]:
        if not isinstance(element, Tag):
            raise SignalSourceError(self.source, f"expected a parsed element, got {type(element).__name__}")
        context = self.context_for(element)
        if context is None:
            return None
        return Signal(field_type=None, confidence=context.confidence, source=self.source, evidence=context)
