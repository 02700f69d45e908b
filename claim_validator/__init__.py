# =============================================================================
# POLYMARKET CLAIM VALIDATOR
# =============================================================================
#
# Screens social-media trading claims before any LLM sees them, extracts
# a structured interpretation, and audits every decision.
#
# ENTRY POINTS:
# - build_pipeline() / ClaimValidationPipeline.validate()
# - CorrelationEngine.analyze()
# - TriageReporter.generate()
#
# =============================================================================

from .allowlist import SourceAllowlist
from .audit_log import AuditLog, AuditSink, InMemoryAuditLog
from .correlation import CorrelationEngine, pearson_correlation
from .extractor import ExtractionError, LLMExtractor, extract_json_object
from .fetcher import (
    ContentFetchError,
    ContentNotFoundError,
    RateLimitedError,
    XContentFetcher,
)
from .models import (
    AuditLogEntry,
    ClaimInput,
    CorrelationResult,
    ParsedClaim,
    SecurityFlag,
    StrategyReturns,
    TriageReport,
    TriageScores,
)
from .pipeline import ClaimValidationPipeline, build_pipeline
from .rules import DEFAULT_RULESET, DetectionRule, PatternRuleSet
from .scanner import SecurityScanner
from .triage import TriageReporter

__all__ = [
    "SourceAllowlist",
    "AuditLog",
    "AuditSink",
    "InMemoryAuditLog",
    "CorrelationEngine",
    "pearson_correlation",
    "ExtractionError",
    "LLMExtractor",
    "extract_json_object",
    "ContentFetchError",
    "ContentNotFoundError",
    "RateLimitedError",
    "XContentFetcher",
    "AuditLogEntry",
    "ClaimInput",
    "CorrelationResult",
    "ParsedClaim",
    "SecurityFlag",
    "StrategyReturns",
    "TriageReport",
    "TriageScores",
    "ClaimValidationPipeline",
    "build_pipeline",
    "DEFAULT_RULESET",
    "DetectionRule",
    "PatternRuleSet",
    "SecurityScanner",
    "TriageReporter",
]
