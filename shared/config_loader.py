# =============================================================================
# POLYMARKET CLAIM VALIDATOR - CONFIG LOADER
# =============================================================================
#
# Reads config/claim_validator.yaml and exposes typed accessors.
# Secrets (LLM API keys, Telegram token) are never stored in YAML:
# they come from the environment, optionally loaded from <root>/.env.
#
# USAGE:
#   from shared.config_loader import get_config
#
#   config = get_config()
#   audit_path = config.audit_log_path
#
# The security scanner block threshold has no config key.
#
# =============================================================================

import copy
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent.parent
CONFIG_PATH = BASE_DIR / "config" / "claim_validator.yaml"
ENV_PATH = BASE_DIR / ".env"

DEFAULT_CONFIG: Dict[str, Any] = {
    "global": {
        "data_dir": "data",
        "log_level": "INFO",
    },
    "audit": {
        "filename": "claim_validator_audit.jsonl",
        "max_bytes": 10 * 1024 * 1024,
    },
    "fetch": {
        "api_base": "https://api.fxtwitter.com",
        "timeout_seconds": 15,
    },
    "extraction": {
        "max_tokens": 2000,
        "temperature": 0.0,
        "providers": [
            {
                "name": "OpenRouter",
                "env_key": "OPENROUTER_API_KEY",
                "base_url": "https://openrouter.ai/api/v1",
                "model": "anthropic/claude-sonnet-4",
            },
            {
                "name": "OpenAI",
                "env_key": "OPENAI_API_KEY",
                "base_url": None,
                "model": "gpt-4o-mini",
            },
        ],
    },
    "allowlist": {
        "filename": "telegram_allowlist.json",
    },
    "notifications": {
        "telegram_on_block": False,
    },
}


@dataclass(frozen=True)
class ProviderConfig:
    """One OpenAI-compatible chat completion provider."""
    name: str
    env_key: str
    model: str
    base_url: Optional[str] = None

    @property
    def api_key(self) -> Optional[str]:
        value = os.environ.get(self.env_key, "").strip()
        return value or None


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


class ValidatorConfig:
    """
    Central configuration for the claim validator.

    READ-ONLY access. Changes require editing the YAML file and calling
    reload().
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env_path: Optional[Path] = None,
    ):
        """
        Initialize configuration.

        Args:
            config_path: Path to the YAML file. Defaults to config/claim_validator.yaml
            env_path: Path to a .env file. Defaults to <root>/.env
        """
        self.config_path = Path(config_path) if config_path else CONFIG_PATH
        self.env_path = Path(env_path) if env_path else ENV_PATH
        self._config: Dict[str, Any] = {}
        self._load_env()
        self._load_config()

    def _load_env(self) -> None:
        if self.env_path.exists():
            load_dotenv(self.env_path, override=False)

    def _load_config(self) -> None:
        """Load configuration from YAML, falling back to defaults."""
        if not self.config_path.exists():
            logger.warning(f"Config file not found: {self.config_path}, using defaults")
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            return

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load config: {e}")
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            return

        if not isinstance(loaded, dict):
            logger.error(f"Config root must be a mapping: {self.config_path}")
            self._config = copy.deepcopy(DEFAULT_CONFIG)
            return

        self._config = _merge(DEFAULT_CONFIG, loaded)
        logger.info(f"Loaded config from {self.config_path}")

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def _section(self, name: str) -> Dict[str, Any]:
        section = self._config.get(name)
        return section if isinstance(section, dict) else {}

    # -------------------------------------------------------------------------
    # Paths
    # -------------------------------------------------------------------------

    @property
    def data_dir(self) -> Path:
        """Base directory for audit log, returns corpus and allowlist."""
        raw = Path(self._section("global").get("data_dir", "data"))
        return raw if raw.is_absolute() else BASE_DIR / raw

    @property
    def audit_log_filename(self) -> str:
        return self._section("audit").get("filename", "claim_validator_audit.jsonl")

    @property
    def audit_log_path(self) -> Path:
        return self.data_dir / self.audit_log_filename

    @property
    def audit_max_bytes(self) -> int:
        return int(self._section("audit").get("max_bytes", 10 * 1024 * 1024))

    @property
    def allowlist_path(self) -> Path:
        filename = self._section("allowlist").get("filename", "telegram_allowlist.json")
        return self.data_dir / filename

    # -------------------------------------------------------------------------
    # Collaborators
    # -------------------------------------------------------------------------

    @property
    def log_level(self) -> str:
        return str(self._section("global").get("log_level", "INFO"))

    @property
    def fetch_api_base(self) -> str:
        return str(self._section("fetch").get("api_base", "https://api.fxtwitter.com")).rstrip("/")

    @property
    def fetch_timeout(self) -> float:
        return float(self._section("fetch").get("timeout_seconds", 15))

    @property
    def extraction_max_tokens(self) -> int:
        return int(self._section("extraction").get("max_tokens", 2000))

    @property
    def extraction_temperature(self) -> float:
        return float(self._section("extraction").get("temperature", 0.0))

    @property
    def providers(self) -> List[ProviderConfig]:
        """Configured LLM providers in fallback order."""
        result = []
        for raw in self._section("extraction").get("providers", []) or []:
            if not isinstance(raw, dict):
                continue
            try:
                result.append(ProviderConfig(
                    name=str(raw["name"]),
                    env_key=str(raw["env_key"]),
                    model=str(raw["model"]),
                    base_url=raw.get("base_url") or None,
                ))
            except KeyError as e:
                logger.warning(f"Skipping provider entry missing {e}: {raw}")
        return result

    @property
    def telegram_on_block(self) -> bool:
        return bool(self._section("notifications").get("telegram_on_block", False))

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return copy.deepcopy(self._config)


# =============================================================================
# MODULE-LEVEL FUNCTIONS
# =============================================================================

_instance: Optional[ValidatorConfig] = None


def get_config() -> ValidatorConfig:
    """Get the global ValidatorConfig instance."""
    global _instance
    if _instance is None:
        _instance = ValidatorConfig()
    return _instance
