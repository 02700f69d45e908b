# =============================================================================
# POLYMARKET CLAIM VALIDATOR - SOURCE ALLOWLIST
# =============================================================================
#
# Persistent set of submitter ids (e.g. Telegram user ids) permitted to
# submit claims. Consulted by callers before invoking the pipeline; the
# pipeline itself never reads it.
#
# FILE FORMAT:
# {"allowed_users": ["123", ...], "updated_at": "<ISO timestamp>"}
#
# An unreadable or missing file yields an EMPTY allowlist: nobody is
# allowed until users are added explicitly.
#
# =============================================================================

import json
import logging
from pathlib import Path
from threading import Lock
from typing import Dict, List, Union

from .models import utc_now

logger = logging.getLogger(__name__)

UserId = Union[str, int]


class SourceAllowlist:
    """
    File-backed allowlist of submitter ids.

    Ids are compared as strings, so 42 and "42" are the same user.
    Every mutation rewrites the file.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = Lock()
        # dict keeps insertion order for get_allowed_users()
        self._users: Dict[str, None] = self._load()

    def _load(self) -> Dict[str, None]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            users = data.get("allowed_users") or []
            return {str(u): None for u in users}
        except (IOError, OSError, json.JSONDecodeError, AttributeError, TypeError) as e:
            logger.warning(f"Could not load allowlist {self.path}: {e}")
            return {}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            "allowed_users": list(self._users),
            "updated_at": utc_now().isoformat(),
        }
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def is_allowed(self, user_id: UserId) -> bool:
        return str(user_id) in self._users

    def add_user(self, user_id: UserId) -> None:
        with self._lock:
            self._users[str(user_id)] = None
            self._save()
        logger.info(f"Allowlist: added {user_id}")

    def remove_user(self, user_id: UserId) -> None:
        with self._lock:
            self._users.pop(str(user_id), None)
            self._save()
        logger.info(f"Allowlist: removed {user_id}")

    def get_allowed_users(self) -> List[str]:
        return list(self._users)
