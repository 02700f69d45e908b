"""Global test fixtures: reset singletons and isolate the environment."""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset module-level singletons before and after each test."""
    _do_reset()
    yield
    _do_reset()


def _do_reset():
    import shared.config_loader as config_mod
    config_mod._instance = None


@pytest.fixture(autouse=True)
def no_telegram(monkeypatch):
    """Keep tests from ever reaching the Telegram API."""
    monkeypatch.delenv("TELEGRAM_BOT_TOKEN", raising=False)
    monkeypatch.delenv("TELEGRAM_CHAT_ID", raising=False)
