# =============================================================================
# POLYMARKET CLAIM VALIDATOR
# Module: claim_validator/scanner.py
# Purpose: Block/allow verdict and sanitization for untrusted claim content
# =============================================================================
#
# BLOCK POLICY (fixed, no configuration surface):
# - any HIGH severity flag        -> block
# - three or more MEDIUM flags    -> block
# Callers must not bypass should_block().
#
# SANITIZATION:
# - Applied only to content that passed the block check
# - Strips invisible characters, markup tags, HTML numeric entities
# - Collapses whitespace, trims
# - Idempotent: sanitize(sanitize(x)) == sanitize(x)
#
# =============================================================================

import logging
import re
from typing import Dict, Iterable, List, Optional

from shared.enums import Severity

from .models import SecurityFlag
from .rules import DEFAULT_RULESET, HTML_ENTITY_PATTERN, ZERO_WIDTH_CLASS, PatternRuleSet

logger = logging.getLogger(__name__)

BLOCK_HIGH_SEVERITY_MIN = 1
BLOCK_MEDIUM_SEVERITY_MIN = 3

_ZERO_WIDTH_RE = re.compile(ZERO_WIDTH_CLASS)
_TAG_RE = re.compile(r"<[^>]+>")
_ENTITY_RE = re.compile(HTML_ENTITY_PATTERN, re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")


class SecurityScanner:
    """
    Scans claim content and decides whether it may reach extraction.

    Pure text processing: no I/O and no audit logging.
    """

    def __init__(self, ruleset: Optional[PatternRuleSet] = None):
        self.ruleset = ruleset or DEFAULT_RULESET

    def scan(self, content: str) -> List[SecurityFlag]:
        """Evaluate all detection rules against content."""
        flags = self.ruleset.evaluate(content)
        if flags:
            logger.debug(f"Scan produced {len(flags)} flag(s): {self.summarize(flags)}")
        return flags

    @staticmethod
    def summarize(flags: Iterable[SecurityFlag]) -> Dict[str, int]:
        """Count flags per severity."""
        counts = {severity.value: 0 for severity in Severity}
        for flag in flags:
            counts[flag.severity.value] += 1
        return counts

    def should_block(self, flags: Iterable[SecurityFlag]) -> bool:
        """
        Apply the block policy.

        Args:
            flags: Flags produced by scan()

        Returns:
            True if content must not be forwarded to extraction
        """
        counts = self.summarize(flags)
        return (
            counts[Severity.HIGH.value] >= BLOCK_HIGH_SEVERITY_MIN
            or counts[Severity.MEDIUM.value] >= BLOCK_MEDIUM_SEVERITY_MIN
        )

    def sanitize(self, content: str) -> str:
        """
        Remove potentially dangerous elements from content.

        Args:
            content: Content that already passed should_block()

        Returns:
            Cleaned single-line text
        """
        sanitized = _ZERO_WIDTH_RE.sub("", content)

        # Removing one tag or entity can splice a new one together
        # ("&#&#60;60;"), so strip until nothing changes.
        previous = None
        while previous != sanitized:
            previous = sanitized
            sanitized = _TAG_RE.sub("", sanitized)
            sanitized = _ENTITY_RE.sub("", sanitized)

        return _WHITESPACE_RE.sub(" ", sanitized).strip()
