# =============================================================================
# POLYMARKET CLAIM VALIDATOR - SHARED MODULE
# =============================================================================
#
# Shared utilities with no business logic:
# - Enums (shared vocabulary)
# - Configuration loading (YAML + .env)
# - Logging setup
#
# =============================================================================

from .enums import (
    AuditEventType,
    EdgeSource,
    FlagType,
    MarketType,
    ReturnFamily,
    Severity,
    StrategyType,
    TriageVerdict,
)
from .config_loader import ValidatorConfig, get_config
from .logging_config import setup_logging, get_logger

__all__ = [
    "AuditEventType",
    "EdgeSource",
    "FlagType",
    "MarketType",
    "ReturnFamily",
    "Severity",
    "StrategyType",
    "TriageVerdict",
    "ValidatorConfig",
    "get_config",
    "setup_logging",
    "get_logger",
]
