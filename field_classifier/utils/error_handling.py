"""Error handling helpers for signal sources and page context builds."""

import json
import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional

import yaml

from field_classifier.core.exceptions import CatalogError, PageContextError, SignalSourceError
from field_classifier.core.signals import OutcomeStatus, Signal, SourceOutcome

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorCategory(Enum):
    """Categories of errors that can occur while classifying fields."""
    MALFORMED_MARKUP = "malformed_markup"
    MALFORMED_STRUCTURED_DATA = "malformed_structured_data"
    CATALOG = "catalog"
    PAGE_CONTEXT = "page_context"
    SOURCE = "source"
    UNKNOWN = "unknown"


_SEVERITY_LOG_LEVEL = {
    ErrorSeverity.LOW: logging.DEBUG,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
}


def categorize_error(error: BaseException) -> ErrorCategory:
    """
    Categorize an exception.

    Args:
        error: The exception to categorize

    Returns:
        The matching ErrorCategory
    """
    if isinstance(error, (json.JSONDecodeError, yaml.YAMLError)):
        return ErrorCategory.MALFORMED_STRUCTURED_DATA
    if isinstance(error, CatalogError):
        return ErrorCategory.CATALOG
    if isinstance(error, PageContextError):
        return ErrorCategory.PAGE_CONTEXT
    if isinstance(error, SignalSourceError):
        return ErrorCategory.SOURCE
    if isinstance(error, (AttributeError, KeyError, IndexError, TypeError, ValueError)):
        return ErrorCategory.MALFORMED_MARKUP
    return ErrorCategory.UNKNOWN


def severity_for(category: ErrorCategory) -> ErrorSeverity:
    """Recovered malformed input is medium; anything unexpected is high."""
    if category in (ErrorCategory.MALFORMED_MARKUP, ErrorCategory.MALFORMED_STRUCTURED_DATA):
        return ErrorSeverity.MEDIUM
    if category is ErrorCategory.UNKNOWN:
        return ErrorSeverity.HIGH
    return ErrorSeverity.MEDIUM


def log_error(error: BaseException, context: str) -> Dict[str, Any]:
    """
    Log an error at the level its category warrants.

    Args:
        error: The exception
        context: Where it happened (source id, stage name)

    Returns:
        Dictionary describing the error
    """
    category = categorize_error(error)
    severity = severity_for(category)
    logger.log(
        _SEVERITY_LOG_LEVEL[severity],
        f"{context} failed ({category.value}): {error}",
        exc_info=severity is ErrorSeverity.HIGH,
    )
    return {
        "message": str(error),
        "category": category.value,
        "severity": severity.value,
        "context": context,
    }


def run_source(source: str, func: Callable[..., Optional[Signal]], *args,
               diagnostics=None, **kwargs) -> SourceOutcome:
    """
    Call a signal source and turn whatever happens into a SourceOutcome.

    Args:
        source: Source identifier
        func: Callable returning a Signal or None
        diagnostics: Optional DiagnosticsManager that records the outcome

    Returns:
        found, absent or failed outcome; never raises
    """
    try:
        signal = func(*args, **kwargs)
    except Exception as e:
        info = log_error(e, source)
        outcome = SourceOutcome.failed(source, info["message"])
        if diagnostics is not None:
            diagnostics.record_outcome(outcome, category=info["category"])
        return outcome

    if signal is None:
        outcome = SourceOutcome.absent(source)
    else:
        outcome = SourceOutcome(source=source, status=OutcomeStatus.FOUND, signal=signal)
    if diagnostics is not None:
        diagnostics.record_outcome(outcome)
    return outcome
