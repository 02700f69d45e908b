# =============================================================================
# POLYMARKET CLAIM VALIDATOR - DATA MODELS
# =============================================================================
#
# These dataclasses define the IMMUTABLE records flowing through the
# pipeline. A ParsedClaim is created once per pipeline run and never
# mutated after it is returned.
#
# JSON FORMAT:
# All to_dict() outputs use snake_case keys and enum string values.
# from_dict() is the inverse and is used when reading the audit log.
#
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import json

from shared.enums import (
    AuditEventType,
    EdgeSource,
    FlagType,
    MarketType,
    Severity,
    StrategyType,
    TriageVerdict,
)

MAX_EXCERPT_LENGTH = 50

BLOCKED_SUMMARY = "Content blocked due to security concerns"
FAILED_SUMMARY = "Failed to parse claim"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class SecurityFlag:
    """A single rule match against claim content."""
    type: FlagType
    severity: Severity
    description: str
    matched_excerpt: str = ""

    def __post_init__(self):
        if len(self.matched_excerpt) > MAX_EXCERPT_LENGTH:
            object.__setattr__(
                self, "matched_excerpt", self.matched_excerpt[:MAX_EXCERPT_LENGTH]
            )

    def to_dict(self) -> Dict[str, str]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "matched_excerpt": self.matched_excerpt,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecurityFlag":
        return cls(
            type=FlagType(data["type"]),
            severity=Severity(data["severity"]),
            description=data["description"],
            matched_excerpt=data.get("matched_excerpt", ""),
        )


@dataclass(frozen=True)
class ClaimInput:
    """
    A claim submitted for validation.

    Attributes:
        source: URL of the post, or the raw text itself
        content: Pre-fetched content; takes precedence over fetching
        source_id: Submitter identifier (X handle, Telegram user id)
        received_at: When the claim was received
    """
    source: str
    content: Optional[str] = None
    source_id: Optional[str] = None
    received_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "content": self.content,
            "source_id": self.source_id,
            "received_at": self.received_at.isoformat(),
        }


@dataclass(frozen=True)
class ParsedClaim:
    """
    Structured interpretation of a claim.

    Every pipeline exit path produces one of these. Blocked and failed
    claims carry parse_confidence == 0 and explain themselves in warnings.
    """
    id: str
    input: ClaimInput
    parse_confidence: float
    market_type: MarketType
    strategy_type: StrategyType
    edge_source: EdgeSource
    summary: str
    parameters: Dict[str, Any]
    warnings: Tuple[str, ...]
    security_flags: Tuple[SecurityFlag, ...]
    market_identifiers: Optional[Dict[str, Any]] = None
    claimed_edge: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not (0.0 <= self.parse_confidence <= 1.0):
            raise ValueError(f"parse_confidence out of range: {self.parse_confidence}")

    @property
    def is_blocked(self) -> bool:
        return self.parse_confidence == 0 and self.summary == BLOCKED_SUMMARY

    @classmethod
    def terminal(
        cls,
        claim_id: str,
        claim_input: ClaimInput,
        summary: str,
        warnings: List[str],
        security_flags: List[SecurityFlag],
    ) -> "ParsedClaim":
        """Zero-confidence claim for the blocked and failed exits."""
        return cls(
            id=claim_id,
            input=claim_input,
            parse_confidence=0.0,
            market_type=MarketType.UNKNOWN,
            strategy_type=StrategyType.UNKNOWN,
            edge_source=EdgeSource.UNKNOWN,
            summary=summary,
            parameters={},
            warnings=tuple(warnings),
            security_flags=tuple(security_flags),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "input": self.input.to_dict(),
            "parse_confidence": self.parse_confidence,
            "market_type": self.market_type.value,
            "strategy_type": self.strategy_type.value,
            "edge_source": self.edge_source.value,
            "summary": self.summary,
            "parameters": self.parameters,
            "market_identifiers": self.market_identifiers,
            "claimed_edge": self.claimed_edge,
            "warnings": list(self.warnings),
            "security_flags": [f.to_dict() for f in self.security_flags],
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


@dataclass(frozen=True)
class AuditLogEntry:
    """
    One line of the audit log.

    Optional fields are omitted from the JSON line when unset.
    """
    timestamp: datetime
    event_type: AuditEventType
    claim_id: Optional[str] = None
    source_id: Optional[str] = None
    security_flags: Optional[Tuple[SecurityFlag, ...]] = None
    verdict: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    @property
    def is_security_event(self) -> bool:
        return (
            self.event_type == AuditEventType.SECURITY_FLAG
            or bool(self.security_flags)
        )

    def to_dict(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "claim_id": self.claim_id,
        }
        if self.source_id is not None:
            record["source_id"] = self.source_id
        if self.security_flags:
            record["security_flags"] = [f.to_dict() for f in self.security_flags]
        if self.verdict is not None:
            record["verdict"] = self.verdict
        if self.metadata:
            record["metadata"] = self.metadata
        return record

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditLogEntry":
        """
        Rebuild an entry from its JSON form.

        Raises KeyError/ValueError on malformed records.
        """
        flags = data.get("security_flags")
        return cls(
            timestamp=parse_timestamp(data["timestamp"]),
            event_type=AuditEventType(data["event_type"]),
            claim_id=data.get("claim_id"),
            source_id=data.get("source_id"),
            security_flags=tuple(SecurityFlag.from_dict(f) for f in flags) if flags else None,
            verdict=data.get("verdict"),
            metadata=data.get("metadata"),
        )


@dataclass(frozen=True)
class StrategyReturns:
    """Return series of one named strategy within a family."""
    strategy_name: str
    returns: Tuple[float, ...]
    family: str
    updated_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy_name": self.strategy_name,
            "returns": list(self.returns),
            "family": self.family,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StrategyReturns":
        """Accepts snake_case keys and the legacy camelCase corpus keys."""
        name = data.get("strategy_name", data.get("strategyName"))
        if name is None:
            raise KeyError("strategy_name")
        return cls(
            strategy_name=str(name),
            returns=tuple(float(r) for r in data["returns"]),
            family=str(data["family"]),
            updated_at=str(data.get("updated_at", data.get("updatedAt", ""))),
        )


@dataclass(frozen=True)
class CorrelationResult:
    """Diversification verdict for a new return series."""
    btc_correlation: float
    weather_correlation: float
    is_uncorrelated: bool
    diversification_score: int
    analysis: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "btc_correlation": self.btc_correlation,
            "weather_correlation": self.weather_correlation,
            "is_uncorrelated": self.is_uncorrelated,
            "diversification_score": self.diversification_score,
            "analysis": self.analysis,
        }


@dataclass(frozen=True)
class TriageScores:
    """Component scores on a 0-10 scale, rounded to one decimal."""
    legitimacy: float
    applicability: float
    uncorrelation: float
    feasibility: float
    urgency: float
    overall: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "legitimacy": self.legitimacy,
            "applicability": self.applicability,
            "uncorrelation": self.uncorrelation,
            "feasibility": self.feasibility,
            "urgency": self.urgency,
            "overall": self.overall,
        }


@dataclass(frozen=True)
class TriageReport:
    """Final verdict for one claim."""
    id: str
    claim: ParsedClaim
    verdict: TriageVerdict
    confidence: float
    scores: TriageScores
    summary: str
    reasoning: str
    next_steps: Tuple[str, ...]
    correlation: Optional[CorrelationResult] = None
    generated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "generated_at": self.generated_at.isoformat(),
            "claim_id": self.claim.id,
            "verdict": self.verdict.value,
            "confidence": self.confidence,
            "scores": self.scores.to_dict(),
            "summary": self.summary,
            "reasoning": self.reasoning,
            "next_steps": list(self.next_steps),
            "correlation": self.correlation.to_dict() if self.correlation else None,
        }
