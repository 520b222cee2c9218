"""Test configuration for pytest."""

import sys
from pathlib import Path

# Add the project root directory to Python path
project_root = str(Path(__file__).parent.parent.parent)
sys.path.append(project_root)

# --- Pytest Fixtures ---

import pytest
from bs4 import BeautifulSoup

from field_classifier.config import Config
from field_classifier.core.browser_interface import StaticPage
from field_classifier.core.diagnostics_manager import DiagnosticsManager
from field_classifier.core.field_identification_system import FieldIdentificationSystem
from field_classifier.core.pattern_registry import PatternRegistry
from field_classifier.core.result_cache import ResultCache


@pytest.fixture(scope="session")
def registry():
    """The bundled field catalog; read-only, so one per session."""
    return PatternRegistry.default()


@pytest.fixture
def config(monkeypatch):
    """Defaults only, whatever the developer's environment says."""
    monkeypatch.delenv("FIELD_CLASSIFIER_CONFIG", raising=False)
    monkeypatch.delenv("FIELD_CLASSIFIER_LOG_LEVEL", raising=False)
    return Config()


@pytest.fixture
def cache():
    return ResultCache()


@pytest.fixture
def diagnostics():
    return DiagnosticsManager()


@pytest.fixture
def soup_of():
    """Parse a markup snippet."""
    def _parse(html):
        return BeautifulSoup(html, "html.parser")
    return _parse


@pytest.fixture
def make_engine(registry, config, diagnostics):
    """Build an engine over in-memory markup; keyword arguments override collaborators."""
    def _make(html, url="https://jobs.example.com/apply", default_language=None, **kwargs):
        kwargs.setdefault("registry", registry)
        kwargs.setdefault("config", config)
        kwargs.setdefault("diagnostics", diagnostics)
        page = StaticPage(html, url=url, default_language=default_language)
        return FieldIdentificationSystem(page, **kwargs)
    return _make
