"""End-to-end classification scenarios over realistic application forms."""

import json
import logging

import pytest

from field_classifier.core.signals import Signal
from field_classifier.tools.section_context import SectionContextSource

logger = logging.getLogger(__name__)

JOB_POSTING_LD = json.dumps({
    "@context": "https://schema.org",
    "@type": "JobPosting",
    "hiringOrganization": {"@type": "Organization", "name": "Acme Corp"},
})

APPLICATION_FORM = f"""
<html lang="en">
<head>
  <title>Apply: Backend Engineer</title>
  <script type="application/ld+json">{JOB_POSTING_LD}</script>
</head>
<body>
  <form id="application">
    <h2>Personal Information</h2>
    <div class="form-group"><label for="first">First Name *</label><input id="first" name="first"></div>
    <div class="form-group"><label for="email">Email Address</label><input id="email" type="email"></div>
    <input id="email-confirm" placeholder="Confirm email">
    <h2>Work Experience</h2>
    <div class="form-group"><label for="company">Company</label><input id="company"></div>
    <h2>Compensation</h2>
    <div class="form-group"><label for="ctc">Expected CTC</label><input id="ctc"></div>
    <div class="form-group"><label for="notice">What is your notice period?</label><input id="notice"></div>
    <input type="hidden" name="csrf" value="x">
  </form>
</body>
</html>
"""


@pytest.mark.asyncio
async def test_expected_ctc_without_structured_data(make_engine):
    engine = make_engine('<form><label for="ctc">Expected CTC</label><input id="ctc"></form>')
    context = await engine.get_page_context()
    element = context.soup.select_one("#ctc")

    result = await engine.classify_field(element)

    assert result.field_type == "expectedCompensation"
    assert 0.75 <= result.confidence <= 0.85
    assert result.source == "semantic-mapping"


@pytest.mark.asyncio
async def test_company_from_structured_data(make_engine):
    engine = make_engine(APPLICATION_FORM)
    context = await engine.get_page_context()
    element = context.soup.select_one("#company")

    result = await engine.classify_field(element)

    assert result.field_type == "currentCompany"
    assert result.source == "structured-data"
    structured = result.contributing_signals[0]
    assert 0.80 <= structured.confidence <= 0.90
    assert result.confidence == pytest.approx(0.95)


def test_structured_data_outranks_competing_keyword(config):
    from field_classifier.core.aggregator import SignalAggregator

    result = SignalAggregator.from_config(config).aggregate([
        Signal("currentCompany", 0.88, "structured-data"),
        Signal("previousCompany", 0.60, "keyword-fallback"),
    ])

    assert result.field_type == "currentCompany"
    assert result.source == "structured-data"


@pytest.mark.asyncio
async def test_unlabelled_element_is_not_classified(make_engine):
    engine = make_engine('<html><body><form><input type="text" id="mystery"></form></body></html>')
    context = await engine.get_page_context()

    assert await engine.classify_field(context.soup.select_one("#mystery")) is None


def test_keyword_and_section_context_combine(config, soup_of):
    from field_classifier.core.aggregator import SignalAggregator

    soup = soup_of('<form><h2>Compensation</h2><div><input id="ctc"></div></form>')
    section = SectionContextSource().signal_for(soup.select_one("#ctc"))
    keyword = Signal("expectedCompensation", 0.55, "keyword-fallback")
    aggregator = SignalAggregator.from_config(config)

    assert section.confidence == pytest.approx(0.50)
    assert aggregator.aggregate([keyword]) is None
    assert aggregator.aggregate([section]) is None
    combined = aggregator.aggregate([keyword, section])
    assert combined.field_type == "expectedCompensation"
    assert combined.confidence == pytest.approx(0.65)


@pytest.mark.asyncio
async def test_full_application_form(make_engine):
    engine = make_engine(APPLICATION_FORM)
    elements = await engine.candidate_elements()

    classified = await engine.classify_fields(elements)
    by_id = {element.get("id"): result for element, result in classified.items()}
    logger.info(f"Classified: { {k: v.field_type for k, v in by_id.items()} }")

    assert by_id["first"].field_type == "firstName"
    assert by_id["email"].field_type == "email"
    assert by_id["company"].field_type == "currentCompany"
    assert by_id["ctc"].field_type == "expectedCompensation"
    assert by_id["notice"].field_type == "noticePeriod"
    assert "email-confirm" not in by_id or by_id["email-confirm"].field_type != "email"
    assert await engine.is_application_like_page()


@pytest.mark.asyncio
async def test_section_boost_reaches_result(make_engine):
    engine = make_engine(APPLICATION_FORM)
    context = await engine.get_page_context()

    result = await engine.classify_field(context.soup.select_one("#ctc"))

    sources = [signal.source for signal in result.all_signals]
    assert "section-context" in sources
    # 0.85 semantic + 0.10 boost, capped
    assert result.confidence == pytest.approx(0.95)


@pytest.mark.asyncio
async def test_german_form(make_engine):
    html = (
        '<html lang="de"><body><form><h2>Persönliche Angaben</h2>'
        '<label for="v">Vorname</label><input id="v">'
        '<label for="n">Nachname</label><input id="n">'
        '<label for="g">Gehaltsvorstellung</label><input id="g">'
        "</form></body></html>"
    )
    engine = make_engine(html, url="https://www.stepstone.de/bewerbung")
    classified = await engine.classify_fields(await engine.candidate_elements())
    types = {element.get("id"): result.field_type for element, result in classified.items()}

    assert types == {"v": "firstName", "n": "lastName", "g": "expectedCompensation"}
    assert (await engine.get_page_context()).locale.locale == "de"


@pytest.mark.asyncio
async def test_low_confidence_locale_matches_every_locale(make_engine):
    engine = make_engine('<form><label for="x">Nombre completo</label><input id="x"></form>')
    context = await engine.get_page_context()

    assert context.locale.is_low_confidence
    result = await engine.classify_field(context.soup.select_one("#x"))
    assert result.field_type == "fullName"


JOB_WITH_ADDRESS_LD = json.dumps({
    "@context": "https://schema.org",
    "@type": "JobPosting",
    "title": "Field Engineer",
    "hiringOrganization": {"@type": "Organization", "name": "Acme Corp"},
    "jobLocation": {
        "@type": "Place",
        "address": {
            "@type": "PostalAddress",
            "streetAddress": "1 Main St",
            "addressLocality": "Austin",
            "addressRegion": "TX",
            "postalCode": "73301",
        },
    },
})


@pytest.mark.asyncio
async def test_job_location_does_not_override_other_labels(make_engine):
    html = (
        f'<html lang="en"><head><script type="application/ld+json">{JOB_WITH_ADDRESS_LD}</script></head>'
        '<body><form><h2>Personal Information</h2>'
        '<label for="email">Email Address</label><input id="email">'
        '<label for="street">Street Address</label><input id="street">'
        '<label for="st">State</label><input id="st">'
        "</form></body></html>"
    )
    engine = make_engine(html)
    classified = await engine.classify_fields(await engine.candidate_elements())
    types = {element.get("id"): result.field_type for element, result in classified.items()}

    assert types == {"email": "email", "street": "street", "st": "state"}
    email = next(result for element, result in classified.items() if element.get("id") == "email")
    assert email.source == "semantic-mapping"
