"""Weighted fusion of per-source signals into one field type decision."""

import logging
from typing import Dict, List, Optional

from field_classifier.core.signals import AggregationResult, SectionContext, Signal
from field_classifier.tools.constants import (
    AGREEMENT_CAP,
    AGREEMENT_STEP,
    CONTEXT_BOOST,
    MAX_CONFIDENCE,
    MIN_CONFIDENCE,
    SOURCE_SECTION_CONTEXT,
    SOURCE_WEIGHTS,
)

logger = logging.getLogger(__name__)


class SignalAggregator:
    """Combines signals by weighted vote.

    For each field type: ``sum(confidence * weight) + min(cap, (n - 1) * step)``.
    The best field type (first seen wins ties) gets the section context boost
    when the section expects it, is rejected below ``min_confidence`` and is
    reported capped at ``max_confidence``. The threshold is checked against
    the uncapped score.
    """

    def __init__(self, weights: Optional[Dict[str, float]] = None,
                 min_confidence: float = MIN_CONFIDENCE,
                 max_confidence: float = MAX_CONFIDENCE,
                 agreement_step: float = AGREEMENT_STEP,
                 agreement_cap: float = AGREEMENT_CAP,
                 context_boost: float = CONTEXT_BOOST):
        self.weights = dict(SOURCE_WEIGHTS)
        self.weights.update(weights or {})
        self.min_confidence = min_confidence
        self.max_confidence = max_confidence
        self.agreement_step = agreement_step
        self.agreement_cap = agreement_cap
        self.context_boost = context_boost

    @classmethod
    def from_config(cls, config) -> "SignalAggregator":
        """Build an aggregator from the ``scoring`` section of a Config."""
        return cls(
            weights=config.get("scoring.weights", {}),
            min_confidence=config.get("scoring.min_confidence", MIN_CONFIDENCE),
            max_confidence=config.get("scoring.max_confidence", MAX_CONFIDENCE),
            agreement_step=config.get("scoring.agreement_step", AGREEMENT_STEP),
            agreement_cap=config.get("scoring.agreement_cap", AGREEMENT_CAP),
            context_boost=config.get("scoring.context_boost", CONTEXT_BOOST),
        )

    def weight_for(self, source: str) -> float:
        return self.weights.get(source, 1.0)

    def aggregate(self, signals: List[Signal]) -> Optional[AggregationResult]:
        """
        Decide a field type from a list of signals.

        Args:
            signals: Signals from every source, in collection order

        Returns:
            AggregationResult, or None when nothing votes or the best score
            is below the threshold
        """
        votes: Dict[str, List[Signal]] = {}
        for signal in signals:
            if signal.field_type is not None:
                votes.setdefault(signal.field_type, []).append(signal)
        if not votes:
            return None

        best_type, best_score, best_signals = None, 0.0, []
        for field_type, group in votes.items():
            weighted = sum(s.confidence * self.weight_for(s.source) for s in group)
            bonus = min(self.agreement_cap, (len(group) - 1) * self.agreement_step)
            score = weighted + bonus
            if score > best_score:
                best_type, best_score, best_signals = field_type, score, group

        if best_type is None:
            return None

        section = self._section_context(signals)
        if section is not None and best_type in section.expected_field_types:
            best_score += self.context_boost

        if best_score < self.min_confidence:
            logger.debug(f"Rejected {best_type}: score {best_score:.3f} below {self.min_confidence}")
            return None

        return AggregationResult(
            field_type=best_type,
            confidence=min(self.max_confidence, best_score),
            contributing_signals=list(best_signals),
            source=best_signals[0].source,
            all_signals=list(signals),
        )

    @staticmethod
    def _section_context(signals: List[Signal]) -> Optional[SectionContext]:
        for signal in signals:
            if signal.source == SOURCE_SECTION_CONTEXT and isinstance(signal.evidence, SectionContext):
                return signal.evidence
        return None
