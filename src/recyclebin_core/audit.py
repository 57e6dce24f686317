"""Audit logging for recycle bin operations."""

import re
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import BaseModel, Field

from .models import TIMESTAMP_FORMAT, AuditAction


class AuditEntry(BaseModel):
    """Single audit log line."""

    timestamp: str = Field(..., description="YYYY-MM-DD HH:MM:SS format")
    action: str
    message: str

    @classmethod
    def parse(cls, line: str) -> Optional["AuditEntry"]:
        """
        Parse audit line:
        - "2025-10-05 14:03:11 [DELETE] Deleted '/tmp/a.txt' as ID '1761607543_xPfnR2k9Qa'"

        Returns:
            AuditEntry or None if parse fails
        """
        pattern = r"^(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}) \[([A-Z_]+)\] (.+)$"
        match = re.match(pattern, line.strip())
        if not match:
            return None
        timestamp, action, message = match.groups()
        return cls(timestamp=timestamp, action=action, message=message)

    def format(self) -> str:
        """Format as: 2025-10-05 14:03:11 [DELETE] message"""
        return f"{self.timestamp} [{self.action}] {self.message}"


class AuditLog:
    """Append-only, line-oriented action log. Never rewritten."""

    def __init__(self, path: Path, clock: Callable[[], datetime] = datetime.now):
        self.path = path
        self._clock = clock

    def record(self, action: AuditAction, message: str) -> AuditEntry:
        """
        Append one line to the audit log.

        Args:
            action: Audit action tag
            message: Human summary (line breaks are flattened)

        Returns:
            The written entry
        """
        entry = AuditEntry(
            timestamp=self._clock().strftime(TIMESTAMP_FORMAT),
            action=action.value,
            message=" ".join(message.splitlines()),
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(entry.format() + "\n")
        return entry

    def read(self, action_filter: Optional[AuditAction] = None) -> List[AuditEntry]:
        """
        Read entries from the audit log.

        Args:
            action_filter: Only return entries with this action

        Returns:
            List of entries (skips unparseable lines)
        """
        if not self.path.exists():
            return []
        entries = []
        with open(self.path, "r", encoding="utf-8") as f:
            for line in f:
                entry = AuditEntry.parse(line)
                if entry is None:
                    continue
                if action_filter is None or entry.action == action_filter.value:
                    entries.append(entry)
        return entries
