"""Signed audit trail for login attempts and configuration changes."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
from pathlib import Path
from typing import Any, Literal, Optional, Union

logger = logging.getLogger(__name__)

AUDIT_LOG_FILENAME = "auth-events.jsonl"

EventType = Literal["login_success", "login_failure", "config_write"]


class AuditTrail:
    """Append-only JSONL audit file with HMAC-SHA256 signed events.

    Usage:
        trail = AuditTrail(".runtime/audit", signing_key="s3cret")
        trail.safe_log_event("login_success", "alice", details={"roles": 2})
        total, valid = trail.verify()
    """

    def __init__(self, directory: Union[str, Path], signing_key: str = "", *, mount: str = "centrify"):
        self.directory = Path(directory)
        self.log_file = self.directory / AUDIT_LOG_FILENAME
        self._signing_key = signing_key.strip().encode("utf-8")
        self.mount = mount

    def _ensure_dir(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self.directory.chmod(0o700)

    def _sign(self, event: dict[str, Any]) -> str:
        if not self._signing_key:
            return ""
        canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
        return hmac.new(self._signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()

    def log_event(
        self,
        event_type: EventType,
        username: str,
        *,
        details: Optional[dict[str, Any]] = None,
        success: bool = True,
    ) -> None:
        """Append one event with timestamp and signature.

        Args:
            event_type: login_success, login_failure or config_write
            username: Principal the event concerns ("-" for config writes)
            details: Extra context (mode, role count, error kind...)
            success: Whether the operation succeeded
        """
        self._ensure_dir()

        event = {
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "event_type": event_type,
            "mount": self.mount,
            "username": username,
            "success": success,
            "details": details or {},
        }

        signature = self._sign(event)
        if signature:
            event["signature"] = signature

        with self.log_file.open("a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")

        self.log_file.chmod(0o600)

    def safe_log_event(
        self,
        event_type: EventType,
        username: str,
        *,
        details: Optional[dict[str, Any]] = None,
        success: bool = True,
    ) -> bool:
        """Like log_event(), but audit failures never break the caller.

        Returns:
            True if the event was written, False otherwise
        """
        try:
            self.log_event(event_type, username, details=details, success=success)
            return True
        except OSError as e:
            logger.warning(f"[audit] Failed to log {event_type} event for {username}: {e}")
            return False

    def verify(self) -> tuple[int, int]:
        """Verify all signatures in the audit log.

        Returns:
            Tuple of (total_events, valid_signatures)
        """
        if not self.log_file.exists():
            return 0, 0

        total = 0
        valid = 0

        with self.log_file.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                total += 1
                try:
                    event = json.loads(line)
                    stored_sig = event.pop("signature", "")
                    if not stored_sig:
                        continue
                    computed_sig = self._sign(event)
                    if computed_sig and hmac.compare_digest(stored_sig, computed_sig):
                        valid += 1
                except (json.JSONDecodeError, AttributeError):
                    continue

        return total, valid
