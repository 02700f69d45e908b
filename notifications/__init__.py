# =============================================================================
# NOTIFICATIONS
# =============================================================================
#
# Outbound operator alerts. Optional: nothing in the validation core
# depends on a notifier being configured.
#
# =============================================================================

from .telegram import alert_claim_blocked, is_configured, send_message

__all__ = [
    "alert_claim_blocked",
    "is_configured",
    "send_message",
]
