# =============================================================================
# POLYMARKET CLAIM VALIDATOR - SHARED ENUMS
# =============================================================================
#
# These enums define the shared vocabulary across the system.
# Values are the exact strings written to the audit log and returned
# to callers, so they must never be renamed.
#
# =============================================================================

from enum import Enum
from typing import Type, TypeVar

E = TypeVar("E", bound=Enum)


class Severity(Enum):
    """Severity of a security flag. Ordered low < medium < high."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FlagType(Enum):
    """
    Rule family that produced a security flag.

    PROMPT_INJECTION: attempts to steer or subvert the extraction model.
    SUSPICIOUS_PATTERN: hidden text, social engineering, credentials.
    """
    PROMPT_INJECTION = "prompt_injection"
    SUSPICIOUS_PATTERN = "suspicious_pattern"


class AuditEventType(Enum):
    """Event types recorded in the append-only audit log."""
    CLAIM_RECEIVED = "claim_received"
    CLAIM_PARSED = "claim_parsed"
    SECURITY_FLAG = "security_flag"
    VALIDATION_COMPLETE = "validation_complete"
    ERROR = "error"


class MarketType(Enum):
    """Market a claim is about."""
    BTC = "btc"
    CRYPTO = "crypto"
    WEATHER = "weather"
    ELECTIONS = "elections"
    SPORTS = "sports"
    ECONOMICS = "economics"
    EVENTS = "events"
    UNKNOWN = "unknown"


class StrategyType(Enum):
    """Trading style a claim describes."""
    MOMENTUM = "momentum"
    MEAN_REVERSION = "mean-reversion"
    BREAKOUT = "breakout"
    ARBITRAGE = "arbitrage"
    STRUCTURAL = "structural"
    INFORMATION = "information"
    SENTIMENT = "sentiment"
    UNKNOWN = "unknown"


class EdgeSource(Enum):
    """
    Where the claimed edge comes from.

    STRUCTURAL: market structure inefficiency
    INFORMATIONAL: information asymmetry
    BEHAVIORAL: crowd behavior exploitation
    TECHNICAL: indicator based
    FUNDAMENTAL: underlying asset analysis
    """
    STRUCTURAL = "structural"
    INFORMATIONAL = "informational"
    BEHAVIORAL = "behavioral"
    TECHNICAL = "technical"
    FUNDAMENTAL = "fundamental"
    UNKNOWN = "unknown"


class TriageVerdict(Enum):
    """
    Final verdict recorded with a validation_complete audit event.

    The pipeline itself never assigns a verdict; TriageReporter does.
    """
    EXPLORE = "explore"
    IGNORE = "ignore"
    ALREADY_COVERED = "already_covered"
    TEST_FURTHER = "test_further"
    HIGH_PRIORITY = "high_priority"
    SECURITY_BLOCKED = "security_blocked"


class ReturnFamily(Enum):
    """Strategy families tracked by the correlation engine."""
    BTC = "btc"
    WEATHER = "weather"


def coerce_enum(enum_cls: Type[E], value, default: E) -> E:
    """
    Map a raw value onto an enum member.

    Accepts a member, or its string value (case-insensitive).
    Anything else yields the default.
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        for member in enum_cls:
            if member.value == lowered:
                return member
    return default
