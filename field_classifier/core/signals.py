"""Signal, outcome and result types passed between sources and the aggregator."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def clamp_confidence(value: float) -> float:
    """Clamp a confidence into [0, 1]."""
    return max(0.0, min(1.0, float(value)))


@dataclass(frozen=True)
class Signal:
    """One source's opinion about an element's field type.

    A signal with ``field_type=None`` never votes; it may still carry
    context (e.g. a section hint in ``evidence``).
    """
    field_type: Optional[str]
    confidence: float
    source: str
    evidence: Any = None

    def __post_init__(self):
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field_type": self.field_type,
            "confidence": round(self.confidence, 4),
            "source": self.source,
        }


@dataclass(frozen=True)
class SectionContext:
    """Classified form region around an element."""
    section_type: str
    expected_field_types: Tuple[str, ...]
    confidence: float
    heading: str = ""
    distance: int = 0


class OutcomeStatus(Enum):
    """How a signal source finished for one element."""
    FOUND = "found"
    ABSENT = "absent"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class SourceOutcome:
    """Result of asking one source about one element.

    Keeps "no evidence" and "gathering evidence failed" apart for callers
    that want telemetry; the aggregator only ever sees ``signal``.
    """
    source: str
    status: OutcomeStatus
    signal: Optional[Signal] = None
    error: Optional[str] = None

    @classmethod
    def found(cls, signal: Signal) -> "SourceOutcome":
        return cls(source=signal.source, status=OutcomeStatus.FOUND, signal=signal)

    @classmethod
    def absent(cls, source: str) -> "SourceOutcome":
        return cls(source=source, status=OutcomeStatus.ABSENT)

    @classmethod
    def failed(cls, source: str, error: str) -> "SourceOutcome":
        return cls(source=source, status=OutcomeStatus.FAILED, error=error)

    @classmethod
    def unavailable(cls, source: str) -> "SourceOutcome":
        return cls(source=source, status=OutcomeStatus.UNAVAILABLE)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.FOUND


@dataclass
class AggregationResult:
    """The engine's decision for one candidate element."""
    field_type: str
    confidence: float
    contributing_signals: List[Signal] = field(default_factory=list)
    source: str = "enhanced-detection"
    all_signals: List[Signal] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field_type": self.field_type,
            "confidence": round(self.confidence, 4),
            "source": self.source,
            "signals": [signal.to_dict() for signal in self.contributing_signals],
        }
