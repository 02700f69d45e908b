# =============================================================================
# POLYMARKET CLAIM VALIDATOR - TRIAGE REPORTER
# =============================================================================
#
# Turns a ParsedClaim (plus an optional CorrelationResult) into a verdict.
#
# SCORING:
# Five component scores on a 0-10 scale, combined with fixed weights:
#   legitimacy 0.30 | applicability 0.25 | uncorrelation 0.20
#   feasibility 0.15 | urgency 0.10
#
# VERDICT (on the rounded overall score):
#   >= 7.5 high_priority | >= 6.0 explore | >= 4.5 test_further | else ignore
#
# SECURITY SHORT-CIRCUIT:
# A claim carrying any HIGH flag, or one the pipeline already blocked,
# is reported as security_blocked without scoring.
#
# Every report is recorded as a validation_complete audit event when an
# audit sink is attached.
#
# =============================================================================

import logging
import math
import uuid
from typing import Dict, List, Mapping, Optional

from shared.enums import EdgeSource, MarketType, Severity, StrategyType, TriageVerdict

from .audit_log import AuditSink
from .models import (
    BLOCKED_SUMMARY,
    CorrelationResult,
    ParsedClaim,
    SecurityFlag,
    TriageReport,
    TriageScores,
)

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS: Dict[str, float] = {
    "legitimacy": 0.30,
    "applicability": 0.25,
    "uncorrelation": 0.20,
    "feasibility": 0.15,
    "urgency": 0.10,
}

NEUTRAL_SCORE = 5.0
HIGH_PRIORITY_THRESHOLD = 7.5
EXPLORE_THRESHOLD = 6.0
TEST_FURTHER_THRESHOLD = 4.5

CONFIDENT_PARSE = 0.7
WEAK_PARSE = 0.3
WARNING_CONFIDENCE_PENALTY = 0.05
MAX_SUMMARY_LENGTH = 100

VERDICT_TEXT = {
    TriageVerdict.HIGH_PRIORITY: "High Priority - Act Soon",
    TriageVerdict.EXPLORE: "Worth Exploring",
    TriageVerdict.TEST_FURTHER: "Needs More Data",
    TriageVerdict.ALREADY_COVERED: "Already Covered",
    TriageVerdict.IGNORE: "Skip",
    TriageVerdict.SECURITY_BLOCKED: "Blocked - Security Risk",
}


def _round_one(value: float) -> float:
    """Round half up to one decimal."""
    return math.floor(value * 10 + 0.5) / 10


class TriageReporter:
    """
    Scores parsed claims and assigns a TriageVerdict.
    """

    def __init__(
        self,
        audit_log: Optional[AuditSink] = None,
        weights: Optional[Mapping[str, float]] = None,
    ):
        """
        Initialize the reporter.

        Args:
            audit_log: Sink for validation_complete events (optional)
            weights: Overrides for DEFAULT_WEIGHTS, keyed by component name

        Raises:
            ValueError: On an unknown weight name
        """
        unknown = set(weights or {}) - set(DEFAULT_WEIGHTS)
        if unknown:
            raise ValueError(f"Unknown triage weights: {sorted(unknown)}")
        self.audit_log = audit_log
        self.weights = {**DEFAULT_WEIGHTS, **(weights or {})}

    # -------------------------------------------------------------------------
    # Scores
    # -------------------------------------------------------------------------

    @staticmethod
    def _legitimacy(claim: ParsedClaim) -> float:
        score = NEUTRAL_SCORE
        if claim.parse_confidence > CONFIDENT_PARSE:
            score = min(10.0, score + 1)
        if claim.parse_confidence < WEAK_PARSE:
            score = max(1.0, score - 1)
        return score

    @staticmethod
    def _applicability(claim: ParsedClaim) -> float:
        if claim.market_type in (MarketType.BTC, MarketType.CRYPTO):
            return 6.0
        if claim.market_type == MarketType.WEATHER:
            return 7.0
        return 4.0

    @staticmethod
    def _urgency(claim: ParsedClaim) -> float:
        score = NEUTRAL_SCORE
        if (claim.market_identifiers or {}).get("expirations"):
            score = 7.0
        if claim.strategy_type == StrategyType.ARBITRAGE or claim.edge_source == EdgeSource.STRUCTURAL:
            score = 8.0
        return score

    def compute_scores(
        self,
        claim: ParsedClaim,
        correlation: Optional[CorrelationResult] = None,
    ) -> TriageScores:
        components = {
            "legitimacy": self._legitimacy(claim),
            "applicability": self._applicability(claim),
            "uncorrelation": float(
                correlation.diversification_score if correlation else NEUTRAL_SCORE
            ),
            "feasibility": NEUTRAL_SCORE,
            "urgency": self._urgency(claim),
        }
        overall = sum(components[name] * weight for name, weight in self.weights.items())
        return TriageScores(
            overall=_round_one(overall),
            **{name: _round_one(value) for name, value in components.items()},
        )

    @staticmethod
    def determine_verdict(overall: float) -> TriageVerdict:
        if overall >= HIGH_PRIORITY_THRESHOLD:
            return TriageVerdict.HIGH_PRIORITY
        if overall >= EXPLORE_THRESHOLD:
            return TriageVerdict.EXPLORE
        if overall >= TEST_FURTHER_THRESHOLD:
            return TriageVerdict.TEST_FURTHER
        return TriageVerdict.IGNORE

    @staticmethod
    def _confidence(claim: ParsedClaim) -> float:
        confidence = claim.parse_confidence - len(claim.warnings) * WARNING_CONFIDENCE_PENALTY
        return max(0.0, min(1.0, math.floor(confidence * 100 + 0.5) / 100))

    # -------------------------------------------------------------------------
    # Text
    # -------------------------------------------------------------------------

    @staticmethod
    def _reasoning(
        claim: ParsedClaim,
        correlation: Optional[CorrelationResult],
        verdict: TriageVerdict,
    ) -> str:
        parts = [f"Claim type: {claim.market_type.value} / {claim.strategy_type.value}"]
        if correlation and correlation.is_uncorrelated:
            parts.append("Uncorrelated with existing strategies - diversification opportunity")
        parts.append(f"Verdict: {verdict.value}")
        return ". ".join(parts) + "."

    @staticmethod
    def _next_steps(claim: ParsedClaim, verdict: TriageVerdict) -> List[str]:
        if verdict == TriageVerdict.HIGH_PRIORITY:
            return [
                "Run full walk-forward backtest with the extracted parameters",
                "Review the original claim source for additional context",
                "Consider implementing new strategy based on this approach",
                "Set up monitoring for this market/strategy",
            ]
        if verdict == TriageVerdict.EXPLORE:
            return [
                "Manually review the claim and verify extracted parameters",
                "Collect historical data for backtesting",
                "Run preliminary backtest when data available",
                "Track this claim source for future signals",
            ]
        if verdict == TriageVerdict.TEST_FURTHER:
            return [
                "Gather more data before making a decision",
                "Re-evaluate when more market data is available",
            ]
        steps = ["No further action recommended"]
        if claim.warnings:
            steps.append("Red flags: " + ", ".join(claim.warnings[:2]))
        return steps

    @staticmethod
    def _summary(claim: ParsedClaim, verdict: TriageVerdict, overall: float) -> str:
        text = claim.summary
        if len(text) > MAX_SUMMARY_LENGTH:
            text = text[:MAX_SUMMARY_LENGTH] + "..."
        return f"{VERDICT_TEXT[verdict]} | Overall: {overall:g}/10 | {text}"

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    def _blocked_report(self, claim: ParsedClaim, flags: List[SecurityFlag]) -> TriageReport:
        return TriageReport(
            id=str(uuid.uuid4()),
            claim=claim,
            verdict=TriageVerdict.SECURITY_BLOCKED,
            confidence=1.0,
            scores=TriageScores(0.0, 0.0, 0.0, 0.0, 0.0, 0.0),
            summary=BLOCKED_SUMMARY,
            reasoning="Security flags triggered: " + ", ".join(f.description for f in flags),
            next_steps=(
                "Review the original content for malicious patterns",
                "Do not process this claim further",
            ),
        )

    def _record(self, report: TriageReport) -> None:
        if self.audit_log is not None:
            self.audit_log.log_validation_complete(
                report.claim.id, report.verdict, source_id=report.claim.input.source_id
            )

    def generate(
        self,
        claim: ParsedClaim,
        correlation: Optional[CorrelationResult] = None,
    ) -> TriageReport:
        """
        Produce the triage report for one claim.

        Args:
            claim: Output of ClaimValidationPipeline.validate()
            correlation: Diversification analysis of the claim's returns (optional)

        Returns:
            TriageReport
        """
        high_flags = [f for f in claim.security_flags if f.severity == Severity.HIGH]
        if high_flags or claim.is_blocked:
            report = self._blocked_report(claim, high_flags or list(claim.security_flags))
            logger.warning(f"Claim {claim.id} triaged as security_blocked")
            self._record(report)
            return report

        scores = self.compute_scores(claim, correlation)
        verdict = self.determine_verdict(scores.overall)

        report = TriageReport(
            id=str(uuid.uuid4()),
            claim=claim,
            verdict=verdict,
            confidence=self._confidence(claim),
            scores=scores,
            summary=self._summary(claim, verdict, scores.overall),
            reasoning=self._reasoning(claim, correlation, verdict),
            next_steps=tuple(self._next_steps(claim, verdict)),
            correlation=correlation,
        )
        logger.info(f"Claim {claim.id} triaged as {verdict.value} (overall {scores.overall}/10)")
        self._record(report)
        return report
