# =============================================================================
# POLYMARKET CLAIM VALIDATOR
# Module: claim_validator/rules.py
# Purpose: Static detection rules for prompt injection and suspicious content
# =============================================================================
#
# RULE FAMILIES:
# - INJECTION: instruction overrides, role redefinition, data exfiltration,
#   foreign URLs, executable content, encoding obfuscation
# - SUSPICIOUS: hidden text, social engineering, credential-shaped strings
#
# DESIGN:
# - Rules are plain data (pattern, severity, description), compiled once
# - Evaluation order: injection family, then suspicious family, each in
#   declaration order
# - One flag per matching rule, built from the FIRST match in the text
# - Deterministic and side-effect free
#
# =============================================================================

import re
from dataclasses import dataclass
from typing import List, Optional, Pattern, Sequence, Tuple

from shared.enums import FlagType, Severity

from .models import SecurityFlag

# Domains a link may point to without being flagged.
ALLOWED_URL_DOMAINS: Tuple[str, ...] = ("twitter.com", "x.com", "polymarket.com")

# Invisible characters used to hide text from human reviewers.
# SecurityScanner.sanitize strips the same set.
ZERO_WIDTH_CHARS = "\u200b\u200c\u200d\u2060\ufeff"
ZERO_WIDTH_CLASS = f"[{ZERO_WIDTH_CHARS}]"

HTML_ENTITY_PATTERN = r"&#x?[0-9a-f]+;"

_QUALIFIERS = r"(?:(?:previous|prior|all|your|the|any|above)\s+)+"


@dataclass(frozen=True)
class DetectionRule:
    """One entry of the rule table."""
    flag_type: FlagType
    pattern: Pattern[str]
    severity: Severity
    description: str

    def match(self, text: str) -> Optional[SecurityFlag]:
        found = self.pattern.search(text)
        if found is None:
            return None
        return SecurityFlag(
            type=self.flag_type,
            severity=self.severity,
            description=self.description,
            matched_excerpt=found.group(0),
        )


def _rule(flag_type: FlagType, pattern: str, severity: Severity,
          description: str, flags: int = re.IGNORECASE) -> DetectionRule:
    return DetectionRule(flag_type, re.compile(pattern, flags), severity, description)


def _injection(pattern: str, severity: Severity, description: str,
               flags: int = re.IGNORECASE) -> DetectionRule:
    return _rule(FlagType.PROMPT_INJECTION, pattern, severity, description, flags)


def _suspicious(pattern: str, severity: Severity, description: str,
                flags: int = re.IGNORECASE) -> DetectionRule:
    return _rule(FlagType.SUSPICIOUS_PATTERN, pattern, severity, description, flags)


_ALLOWED_HOSTS = "|".join(re.escape(d) for d in ALLOWED_URL_DOMAINS)

# =============================================================================
# INJECTION RULES
# =============================================================================

INJECTION_RULES: Tuple[DetectionRule, ...] = (
    # Direct instruction overrides
    _injection(
        rf"ignore\s+{_QUALIFIERS}(?:instructions?|rules?|guidelines?)",
        Severity.HIGH,
        "Attempt to override instructions",
    ),
    _injection(
        rf"disregard\s+{_QUALIFIERS}(?:instructions?|programming|rules?)",
        Severity.HIGH,
        "Attempt to disregard programming",
    ),
    _injection(
        r"new\s+instructions?:|system\s+prompt:|</?system>",
        Severity.HIGH,
        "Attempt to inject system-level instructions",
    ),
    _injection(
        r"you\s+are\s+now\s+(?:a|an)\s+",
        Severity.MEDIUM,
        "Attempt to redefine assistant role",
    ),
    _injection(
        r"pretend\s+(?:you're|you\s+are|to\s+be)",
        Severity.MEDIUM,
        "Attempt to make assistant pretend",
    ),
    # Data exfiltration
    _injection(
        r"send\s+(?:all|my|the)\s+(?:data|emails?|messages?|info)",
        Severity.HIGH,
        "Potential data exfiltration request",
    ),
    _injection(
        r"forward\s+(?:all|everything|this)\s+to",
        Severity.HIGH,
        "Unauthorized forwarding request",
    ),
    _injection(
        r"summarize\s+(?:all|every)\s+(?:emails?|messages?|conversations?)",
        Severity.MEDIUM,
        "Bulk data access request",
    ),
    # External links
    _injection(
        rf"https?://(?!(?:www\.)?(?:{_ALLOWED_HOSTS})(?:[/:?#]|\s|$))\S+",
        Severity.LOW,
        "External URL detected (not X or Polymarket)",
    ),
    # Executable content
    _injection(
        r"<script[\s>]|javascript:",
        Severity.HIGH,
        "Script injection attempt",
    ),
    _injection(
        r"\$\{[^}]+\}|`[^`]*`",
        Severity.LOW,
        "Template literal or variable interpolation",
        flags=0,
    ),
    # Encoding tricks
    _injection(
        HTML_ENTITY_PATTERN,
        Severity.MEDIUM,
        "HTML entity encoding detected",
    ),
    _injection(
        r"%[0-9a-f]{2}",
        Severity.LOW,
        "URL encoding detected",
    ),
)

# =============================================================================
# SUSPICIOUS CONTENT RULES
# =============================================================================

SUSPICIOUS_RULES: Tuple[DetectionRule, ...] = (
    # Hidden text
    _suspicious(
        ZERO_WIDTH_CLASS,
        Severity.MEDIUM,
        "Zero-width characters detected (possible hidden text)",
        flags=0,
    ),
    _suspicious(
        r"\[hidden\]|\[invisible\]|<!--.*-->",
        Severity.MEDIUM,
        "Hidden content markers detected",
    ),
    # Social engineering
    _suspicious(
        r"urgent|immediately|right\s+now|asap",
        Severity.LOW,
        "Urgency language (potential social engineering)",
    ),
    _suspicious(
        r"don't\s+tell\s+anyone|keep\s+this\s+secret|confidential",
        Severity.MEDIUM,
        "Secrecy request (potential social engineering)",
    ),
    # Credentials
    _suspicious(
        r"sk-[a-zA-Z0-9]{20,}|api[_-]?key\s*[:=]\s*\S+",
        Severity.HIGH,
        "Potential API key or credential detected",
    ),
    _suspicious(
        r"private[_-]?key|secret[_-]?key|password\s*[:=]",
        Severity.HIGH,
        "Potential credential reference",
    ),
)


class PatternRuleSet:
    """
    Ordered collection of detection rules.

    Holds no mutable state; a single instance can be shared freely.
    """

    def __init__(
        self,
        injection_rules: Sequence[DetectionRule] = INJECTION_RULES,
        suspicious_rules: Sequence[DetectionRule] = SUSPICIOUS_RULES,
    ):
        self.injection_rules = tuple(injection_rules)
        self.suspicious_rules = tuple(suspicious_rules)

    @property
    def rules(self) -> Tuple[DetectionRule, ...]:
        """All rules in evaluation order."""
        return self.injection_rules + self.suspicious_rules

    def evaluate(self, text: str) -> List[SecurityFlag]:
        """
        Run every rule against the text.

        Args:
            text: Content to check

        Returns:
            One SecurityFlag per matching rule, in evaluation order
        """
        flags = []
        for rule in self.rules:
            flag = rule.match(text)
            if flag is not None:
                flags.append(flag)
        return flags

    def __len__(self) -> int:
        return len(self.injection_rules) + len(self.suspicious_rules)


DEFAULT_RULESET = PatternRuleSet()
