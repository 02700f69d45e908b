"""
UNIT TESTS - TELEGRAM NOTIFICATIONS
===================================
Tests for notifications/telegram.py. requests.post is mocked.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from claim_validator.models import BLOCKED_SUMMARY, ClaimInput, ParsedClaim, SecurityFlag
from notifications import telegram
from shared.enums import FlagType, Severity


def _blocked_claim(source="<script>alert(1)</script>", flags=None):
    flags = flags or [
        SecurityFlag(FlagType.PROMPT_INJECTION, Severity.HIGH, "Script injection attempt", "<script>"),
    ]
    return ParsedClaim.terminal(
        "claim-1",
        ClaimInput(source=source, source_id="@mallory"),
        summary=BLOCKED_SUMMARY,
        warnings=["Content blocked: Script injection attempt"],
        security_flags=flags,
    )


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "token123")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "chat42")


class TestSendMessage:
    def test_unconfigured_is_noop(self):
        with patch("notifications.telegram.requests.post") as post:
            assert telegram.send_message("hi") is False
        post.assert_not_called()
        assert not telegram.is_configured()

    def test_posts_payload(self, configured):
        with patch("notifications.telegram.requests.post") as post:
            post.return_value = MagicMock(ok=True)
            assert telegram.send_message("x" * 5000) is True

        args, kwargs = post.call_args
        assert args[0] == "https://api.telegram.org/bottoken123/sendMessage"
        assert kwargs["json"]["chat_id"] == "chat42"
        assert len(kwargs["json"]["text"]) == 4096
        assert kwargs["json"]["parse_mode"] == "HTML"
        assert kwargs["timeout"] == 10

    def test_api_error_returns_false(self, configured):
        with patch("notifications.telegram.requests.post") as post:
            post.return_value = MagicMock(ok=False, status_code=400, text="Bad Request")
            assert telegram.send_message("hi") is False

    def test_timeout_returns_false(self, configured):
        with patch("notifications.telegram.requests.post",
                   side_effect=requests.exceptions.Timeout()):
            assert telegram.send_message("hi") is False


class TestClaimAlerts:
    def test_format_escapes_untrusted_text(self):
        text = telegram.format_claim_message(_blocked_claim())
        assert "<b>CLAIM BLOCKED</b>" in text
        assert "<code>claim-1</code>" in text
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in text
        assert "<script>" not in text
        assert "[HIGH] Script injection attempt" in text
        assert "@mallory" in text

    def test_long_source_truncated(self):
        text = telegram.format_claim_message(_blocked_claim(source="a" * 200))
        assert "a" * 80 + "..." in text
        assert "a" * 81 not in text

    def test_flag_list_capped(self):
        flags = [
            SecurityFlag(FlagType.PROMPT_INJECTION, Severity.MEDIUM, f"flag {i}") for i in range(7)
        ]
        text = telegram.format_claim_message(_blocked_claim(flags=flags))
        assert "flag 4" in text
        assert "flag 5" not in text
        assert "... and 2 more" in text

    def test_alert_sends(self, configured):
        with patch("notifications.telegram.requests.post") as post:
            post.return_value = MagicMock(ok=True)
            assert telegram.alert_claim_blocked(_blocked_claim()) is True
        assert post.call_args.kwargs["json"]["disable_notification"] is False

    def test_alert_unconfigured(self):
        assert telegram.alert_claim_blocked(_blocked_claim()) is False
