# =============================================================================
# TELEGRAM NOTIFICATIONS
# =============================================================================
#
# Optional operator alerts for the claim validator.
# Credentials come from the environment (TELEGRAM_BOT_TOKEN,
# TELEGRAM_CHAT_ID). Without them every send is a silent no-op.
# Sending never raises: failures are logged and reported as False.
#
# =============================================================================
import html
import logging
import os
from datetime import datetime
from typing import Optional, Tuple

import requests

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org/bot{token}"
DEFAULT_TIMEOUT = 10
MAX_MESSAGE_LENGTH = 4096
SOURCE_PREVIEW_LENGTH = 80
MAX_LISTED_FLAGS = 5


def _get_config() -> Tuple[Optional[str], Optional[str]]:
    token = os.environ.get("TELEGRAM_BOT_TOKEN", "").strip()
    chat_id = os.environ.get("TELEGRAM_CHAT_ID", "").strip()
    return token or None, chat_id or None


def is_configured() -> bool:
    token, chat_id = _get_config()
    return bool(token and chat_id)


def send_message(
    text: str,
    parse_mode: str = "HTML",
    disable_notification: bool = False,
    timeout: int = DEFAULT_TIMEOUT,
) -> bool:
    token, chat_id = _get_config()
    if not token or not chat_id:
        logger.debug("Telegram: not configured, message dropped")
        return False
    try:
        url = TELEGRAM_API_BASE.format(token=token) + "/sendMessage"
        payload = {
            "chat_id": chat_id,
            "text": text[:MAX_MESSAGE_LENGTH],
            "parse_mode": parse_mode,
            "disable_web_page_preview": True,
            "disable_notification": disable_notification,
        }
        resp = requests.post(url, json=payload, timeout=timeout)
        if resp.ok:
            logger.debug("Telegram: message sent")
            return True
        logger.warning(f"Telegram API error: {resp.status_code} {resp.text[:100]}")
        return False
    except requests.exceptions.Timeout:
        logger.warning("Telegram: timeout while sending")
        return False
    except Exception as e:
        logger.warning(f"Telegram: send failed: {e}")
        return False


# =============================================================
# CLAIM ALERTS
# =============================================================

def format_claim_message(claim) -> str:
    """
    Render a blocked claim as a short HTML message.

    Untrusted text (source, flag excerpts) is escaped.
    """
    NL = chr(10)
    i_stop = chr(0x1F6D1); i_pin = chr(0x1F4CD); i_flag = chr(0x1F6A9); i_clk = chr(0x23F0)

    source = claim.input.source
    suffix = "..." if len(source) > SOURCE_PREVIEW_LENGTH else ""
    submitter = claim.input.source_id or "unknown"

    lines = [
        i_stop + " <b>CLAIM BLOCKED</b>",
        "",
        i_pin + " Claim: <code>" + claim.id + "</code>",
        i_pin + " From: " + html.escape(submitter),
        i_pin + " Source: " + html.escape(source[:SOURCE_PREVIEW_LENGTH]) + suffix,
        "",
    ]
    for flag in claim.security_flags[:MAX_LISTED_FLAGS]:
        lines.append(
            i_flag + " [" + flag.severity.value.upper() + "] " + html.escape(flag.description)
        )
    remaining = len(claim.security_flags) - MAX_LISTED_FLAGS
    if remaining > 0:
        lines.append("... and " + str(remaining) + " more")

    lines.extend(["", i_clk + " " + datetime.now().strftime("%Y-%m-%d %H:%M:%S")])
    return NL.join(lines)


def alert_claim_blocked(claim) -> bool:
    """Send an alert for a claim rejected by the security scan."""
    return send_message(format_claim_message(claim), disable_notification=False)
