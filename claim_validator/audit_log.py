# =============================================================================
# POLYMARKET CLAIM VALIDATOR - AUDIT LOG
# =============================================================================
#
# GOVERNANCE INTENT:
# This module provides APPEND-ONLY logging of every claim decision.
# Entries are never edited or deleted; the only removal is whole-file
# rotation, which renames the file and leaves its contents intact.
#
# LOG FORMAT:
# - JSONL (JSON Lines) - one self-contained JSON object per line
# - Append order == chronological order
#
# ROTATION:
# - Before each append, a file larger than max_bytes (10 MB) is renamed to
#   <stem>-<UTC timestamp>.jsonl and a fresh file is started
# - Rotation is best effort: a failed rename never prevents the append
#
# =============================================================================

import json
import logging
import os
from abc import ABC, abstractmethod
from collections import deque
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from shared.enums import AuditEventType, TriageVerdict

from .models import AuditLogEntry, SecurityFlag, utc_now

logger = logging.getLogger(__name__)

AUDIT_LOG_FILENAME = "claim_validator_audit.jsonl"
MAX_LOG_SIZE_BYTES = 10 * 1024 * 1024
DEFAULT_READ_COUNT = 100
SECURITY_EVENT_WINDOW = 1000


class AuditSink(ABC):
    """
    Destination for audit events.

    Subclasses implement append() and read_recent(); the convenience
    emitters below are thin constructors over append().
    """

    @abstractmethod
    def append(
        self,
        event_type: AuditEventType,
        claim_id: Optional[str] = None,
        source_id: Optional[str] = None,
        security_flags: Optional[Iterable[SecurityFlag]] = None,
        verdict: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Stamp the current time and record one event. Returns success."""

    @abstractmethod
    def read_recent(self, count: int = DEFAULT_READ_COUNT) -> List[AuditLogEntry]:
        """Last `count` entries in append order."""

    # -------------------------------------------------------------------------
    # Convenience emitters
    # -------------------------------------------------------------------------

    def log_claim_received(self, claim_id: str, source_id: Optional[str] = None) -> bool:
        return self.append(AuditEventType.CLAIM_RECEIVED, claim_id=claim_id, source_id=source_id)

    def log_claim_parsed(self, claim_id: str, security_flags: Iterable[SecurityFlag]) -> bool:
        """Flags are only attached when non-blocking flags were raised."""
        flags = list(security_flags)
        return self.append(
            AuditEventType.CLAIM_PARSED,
            claim_id=claim_id,
            security_flags=flags or None,
        )

    def log_security_flag(self, claim_id: str, security_flags: Iterable[SecurityFlag]) -> bool:
        return self.append(
            AuditEventType.SECURITY_FLAG,
            claim_id=claim_id,
            security_flags=list(security_flags),
        )

    def log_validation_complete(
        self,
        claim_id: str,
        verdict: Union[TriageVerdict, str],
        source_id: Optional[str] = None,
    ) -> bool:
        if isinstance(verdict, TriageVerdict):
            verdict = verdict.value
        return self.append(
            AuditEventType.VALIDATION_COMPLETE,
            claim_id=claim_id,
            source_id=source_id,
            verdict=verdict,
        )

    def log_error(self, error: str, claim_id: Optional[str] = None) -> bool:
        return self.append(AuditEventType.ERROR, claim_id=claim_id, metadata={"error": error})

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def security_events_since(
        self,
        since: timedelta = timedelta(hours=24),
        window: int = SECURITY_EVENT_WINDOW,
    ) -> List[AuditLogEntry]:
        """
        Security-relevant entries newer than now - since.

        Only the last `window` entries are considered.
        """
        cutoff = utc_now() - since
        return [
            entry for entry in self.read_recent(window)
            if entry.timestamp > cutoff and entry.is_security_event
        ]

    @staticmethod
    def _build_entry(
        event_type: AuditEventType,
        claim_id: Optional[str],
        source_id: Optional[str],
        security_flags: Optional[Iterable[SecurityFlag]],
        verdict: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> AuditLogEntry:
        return AuditLogEntry(
            timestamp=utc_now(),
            event_type=event_type,
            claim_id=claim_id,
            source_id=source_id,
            security_flags=tuple(security_flags) if security_flags is not None else None,
            verdict=verdict,
            metadata=metadata,
        )


class AuditLog(AuditSink):
    """
    File-backed append-only audit log.

    One instance per process, constructed with a base directory.
    """

    def __init__(
        self,
        base_dir: Union[str, Path],
        filename: str = AUDIT_LOG_FILENAME,
        max_bytes: int = MAX_LOG_SIZE_BYTES,
    ):
        """
        Initialize the audit log.

        Args:
            base_dir: Directory holding the log file
            filename: Log file name (must end in .jsonl)
            max_bytes: Size above which the file is rotated
        """
        self.base_dir = Path(base_dir)
        self.log_path = self.base_dir / filename
        self.max_bytes = max_bytes
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def append(
        self,
        event_type: AuditEventType,
        claim_id: Optional[str] = None,
        source_id: Optional[str] = None,
        security_flags: Optional[Iterable[SecurityFlag]] = None,
        verdict: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Append one event.

        GOVERNANCE:
        This is an APPEND-ONLY operation.

        Returns:
            True if written, False on I/O failure (logged, never raised)
        """
        entry = self._build_entry(event_type, claim_id, source_id, security_flags, verdict, metadata)
        self._rotate_if_needed()
        try:
            self._append_json(entry.to_dict())
            return True
        except (IOError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to write audit entry {event_type.value}: {e}")
            return False

    def _append_json(self, data: Dict[str, Any]) -> None:
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(data, ensure_ascii=False) + "\n")
            f.flush()
            os.fsync(f.fileno())

    def _rotated_path(self, now: datetime) -> Path:
        stamp = now.strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        return self.log_path.with_name(f"{self.log_path.stem}-{stamp}{self.log_path.suffix}")

    def _rotate_if_needed(self) -> None:
        """Rename an oversized log file. Errors are ignored."""
        try:
            if not self.log_path.exists():
                return
            if self.log_path.stat().st_size <= self.max_bytes:
                return
            rotated = self._rotated_path(datetime.now(timezone.utc))
            os.replace(self.log_path, rotated)
            logger.info(f"Rotated audit log to {rotated}")
        except OSError as e:
            logger.debug(f"Audit log rotation skipped: {e}")

    def rotated_files(self) -> List[Path]:
        """Rotated siblings of the current log, oldest first."""
        pattern = f"{self.log_path.stem}-*{self.log_path.suffix}"
        return sorted(self.base_dir.glob(pattern))

    def read_recent(self, count: int = DEFAULT_READ_COUNT) -> List[AuditLogEntry]:
        """
        Read the most recent entries.

        GOVERNANCE:
        This is a READ-ONLY operation. Lines that fail to parse (for
        example a torn trailing write) are skipped.

        Args:
            count: Maximum number of entries to return

        Returns:
            Up to `count` entries, oldest first
        """
        if count <= 0 or not self.log_path.exists():
            return []

        entries: deque = deque(maxlen=count)
        try:
            with open(self.log_path, "r", encoding="utf-8", errors="replace") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditLogEntry.from_dict(json.loads(line)))
                    except (json.JSONDecodeError, KeyError, TypeError, ValueError):
                        continue
        except (IOError, OSError) as e:
            logger.error(f"Failed to read audit log: {e}")
            return []

        return list(entries)


class InMemoryAuditLog(AuditSink):
    """List-backed audit sink for tests and embedding."""

    def __init__(self):
        self.entries: List[AuditLogEntry] = []

    def append(
        self,
        event_type: AuditEventType,
        claim_id: Optional[str] = None,
        source_id: Optional[str] = None,
        security_flags: Optional[Iterable[SecurityFlag]] = None,
        verdict: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        self.entries.append(
            self._build_entry(event_type, claim_id, source_id, security_flags, verdict, metadata)
        )
        return True

    def read_recent(self, count: int = DEFAULT_READ_COUNT) -> List[AuditLogEntry]:
        if count <= 0:
            return []
        return list(self.entries[-count:])

    def events_for(self, claim_id: str) -> List[AuditEventType]:
        """Event types recorded for one claim, in order."""
        return [e.event_type for e in self.entries if e.claim_id == claim_id]
