# =============================================================================
# POLYMARKET CLAIM VALIDATOR - VALIDATION PIPELINE
# =============================================================================
#
# Per-claim state machine, terminal in every branch:
#
#   RECEIVED -> CONTENT_RESOLUTION -> SECURITY_SCAN -+-> BLOCKED
#                                                   +-> SANITIZE+EXTRACT -+-> PARSED
#                                                                         +-> FAILED
#
# FAIL-OPEN CONTENT RESOLUTION:
# A failed fetch does NOT abort the run. The error is embedded into
# placeholder content and that synthetic text still goes through the
# security scan and extraction path.
#
# ERROR SURFACE:
# validate() never raises. Every exit returns a ParsedClaim that differs
# only in parse_confidence, summary and warnings.
#
# =============================================================================

import logging
import uuid
from typing import Any, Callable, Dict, List, Optional, Tuple

from shared.config_loader import ValidatorConfig, get_config
from shared.enums import EdgeSource, MarketType, StrategyType, coerce_enum

from .audit_log import AuditLog, AuditSink
from .extractor import LLMExtractor, build_extraction_prompt, extract_json_object
from .fetcher import XContentFetcher
from .models import (
    BLOCKED_SUMMARY,
    FAILED_SUMMARY,
    ClaimInput,
    ParsedClaim,
    SecurityFlag,
)
from .scanner import SecurityScanner

logger = logging.getLogger(__name__)

DEFAULT_PARSE_CONFIDENCE = 0.5

BlockNotifier = Callable[[ParsedClaim], Any]


def fetch_failure_content(source: str, error: str) -> str:
    """Placeholder content used when a URL could not be resolved."""
    return f"[URL: {source}]\n\nNote: Could not fetch content automatically. Error: {error}"


def _pick(data: Dict[str, Any], *keys: str) -> Any:
    """First present, non-null value among camelCase/snake_case spellings."""
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _confidence(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return DEFAULT_PARSE_CONFIDENCE
    try:
        confidence = float(value)
    except OverflowError:
        return 1.0 if value > 0 else 0.0
    except (TypeError, ValueError):
        return DEFAULT_PARSE_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_PARSE_CONFIDENCE
    return min(1.0, max(0.0, confidence))


def _optional_dict(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _string_list(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(str(item) for item in value)


class ClaimValidationPipeline:
    """
    Orchestrates acquisition, scanning, extraction and audit logging.

    Collaborators are injected:
        audit_log: AuditSink receiving every transition
        extractor: object with complete(prompt) -> str
        fetcher:   object with fetch(url) -> str (optional)
        notifier:  callable invoked with each blocked claim (optional)
    """

    def __init__(
        self,
        audit_log: AuditSink,
        extractor,
        fetcher=None,
        scanner: Optional[SecurityScanner] = None,
        notifier: Optional[BlockNotifier] = None,
    ):
        self.audit_log = audit_log
        self.extractor = extractor
        self.fetcher = fetcher
        self.scanner = scanner or SecurityScanner()
        self.notifier = notifier

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    def resolve_content(self, claim_input: ClaimInput) -> str:
        """
        Determine the text to validate.

        Explicit content wins; URLs are fetched; anything else is taken
        verbatim. Fetch failures degrade to placeholder content.
        """
        if claim_input.content:
            return claim_input.content

        source = claim_input.source
        if not source.startswith("http"):
            return source

        if self.fetcher is None:
            logger.warning("No content fetcher configured, using placeholder content")
            return fetch_failure_content(source, "No content fetcher configured")

        try:
            return self.fetcher.fetch(source)
        except Exception as e:
            logger.warning(f"Fetch failed for {source}: {e}")
            return fetch_failure_content(source, str(e))

    def _blocked(
        self,
        claim_id: str,
        claim_input: ClaimInput,
        flags: List[SecurityFlag],
    ) -> ParsedClaim:
        self.audit_log.log_security_flag(claim_id, flags)
        descriptions = ", ".join(f.description for f in flags)
        claim = ParsedClaim.terminal(
            claim_id,
            claim_input,
            summary=BLOCKED_SUMMARY,
            warnings=[f"Content blocked: {descriptions}"],
            security_flags=flags,
        )
        logger.warning(f"Claim {claim_id} blocked: {self.scanner.summarize(flags)}")

        if self.notifier is not None:
            try:
                self.notifier(claim)
            except Exception as e:
                logger.warning(f"Block notification failed for {claim_id}: {e}")

        return claim

    def _extract(
        self,
        claim_id: str,
        claim_input: ClaimInput,
        content: str,
        flags: List[SecurityFlag],
    ) -> ParsedClaim:
        sanitized = self.scanner.sanitize(content)
        prompt = build_extraction_prompt(sanitized)

        try:
            response_text = self.extractor.complete(prompt)
            extracted = extract_json_object(response_text or "")
            claim = self._assemble(claim_id, claim_input, extracted, flags)
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Extraction failed for claim {claim_id}: {message}")
            self.audit_log.log_error(message, claim_id)
            return ParsedClaim.terminal(
                claim_id,
                claim_input,
                summary=FAILED_SUMMARY,
                warnings=[f"Parse error: {message}"],
                security_flags=flags,
            )

        self.audit_log.log_claim_parsed(claim_id, flags)
        logger.info(
            f"Claim {claim_id} parsed: {claim.market_type.value} / "
            f"{claim.strategy_type.value} (confidence: {claim.parse_confidence})"
        )
        return claim

    @staticmethod
    def _assemble(
        claim_id: str,
        claim_input: ClaimInput,
        extracted: Dict[str, Any],
        flags: List[SecurityFlag],
    ) -> ParsedClaim:
        """Build a ParsedClaim from model output, defaulting missing fields."""
        parameters = _pick(extracted, "parameters")
        summary = _pick(extracted, "summary")
        return ParsedClaim(
            id=claim_id,
            input=claim_input,
            parse_confidence=_confidence(_pick(extracted, "parseConfidence", "parse_confidence")),
            market_type=coerce_enum(
                MarketType, _pick(extracted, "marketType", "market_type"), MarketType.UNKNOWN
            ),
            strategy_type=coerce_enum(
                StrategyType, _pick(extracted, "strategyType", "strategy_type"), StrategyType.UNKNOWN
            ),
            edge_source=coerce_enum(
                EdgeSource, _pick(extracted, "edgeSource", "edge_source"), EdgeSource.UNKNOWN
            ),
            summary=str(summary) if summary is not None else "",
            parameters=parameters if isinstance(parameters, dict) else {},
            market_identifiers=_optional_dict(
                _pick(extracted, "marketIdentifiers", "market_identifiers")
            ),
            claimed_edge=_optional_dict(_pick(extracted, "claimedEdge", "claimed_edge")),
            warnings=_string_list(_pick(extracted, "warnings")),
            security_flags=tuple(flags),
        )

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def validate(self, claim_input: ClaimInput) -> ParsedClaim:
        """
        Run one claim through the pipeline.

        Args:
            claim_input: The submitted claim

        Returns:
            ParsedClaim for every outcome (parsed, blocked, failed)
        """
        claim_id = str(uuid.uuid4())
        self.audit_log.log_claim_received(claim_id, claim_input.source_id)
        logger.info(
            f"Processing claim {claim_id} from "
            f"{claim_input.source_id or claim_input.source[:50]}"
        )

        content = self.resolve_content(claim_input)

        # Flags always describe the resolved content, not the raw source.
        flags = self.scanner.scan(content)

        if self.scanner.should_block(flags):
            return self._blocked(claim_id, claim_input, flags)

        return self._extract(claim_id, claim_input, content, flags)


def build_pipeline(
    config: Optional[ValidatorConfig] = None,
    notifier: Optional[BlockNotifier] = None,
) -> ClaimValidationPipeline:
    """
    Wire a pipeline from configuration.

    Uses the file audit log, the FxTwitter fetcher and the LLM extractor.
    When notifications.telegram_on_block is set and no notifier is given,
    blocked claims are announced via Telegram.
    """
    config = config or get_config()

    if notifier is None and config.telegram_on_block:
        from notifications.telegram import alert_claim_blocked
        notifier = alert_claim_blocked

    return ClaimValidationPipeline(
        audit_log=AuditLog(
            config.data_dir,
            filename=config.audit_log_filename,
            max_bytes=config.audit_max_bytes,
        ),
        extractor=LLMExtractor(
            config.providers,
            max_tokens=config.extraction_max_tokens,
            temperature=config.extraction_temperature,
        ),
        fetcher=XContentFetcher(
            base_url=config.fetch_api_base,
            timeout=config.fetch_timeout,
        ),
        notifier=notifier,
    )
