# audit.py
# Append-only audit trail.
#
# The runner never writes log lines itself — it hands LogEntry objects to an
# injected AuditLog. FileAuditLog is the durable record; MemoryAuditLog keeps
# lines in a list for tests and dry inspection.

from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from plan_sandbox.models import LogEntry


def now_iso() -> str:
    """UTC timestamp, millisecond precision, 'Z' suffix."""
    stamp = datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    return stamp.replace("+00:00", "Z")


class AuditLogError(Exception):
    """Raised when an audit line cannot be appended. Always fatal."""


class AuditLog(Protocol):
    def append(self, entry: LogEntry) -> None: ...


class FileAuditLog:
    """
    One shared log file for all runs.

    Each append opens the file in append mode, writes exactly one
    newline-terminated line and closes it. Nothing is ever truncated or
    rewritten, so a crash mid-run leaves a valid partial timeline.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, entry: LogEntry) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._path, "a", encoding="utf-8") as fh:
                fh.write(entry.render() + "\n")
        except OSError as exc:
            raise AuditLogError(f"Cannot append to audit log {self._path}: {exc}") from exc


class MemoryAuditLog:
    def __init__(self) -> None:
        self.entries: list[LogEntry] = []

    def append(self, entry: LogEntry) -> None:
        self.entries.append(entry)

    @property
    def lines(self) -> list[str]:
        return [entry.render() for entry in self.entries]

    @property
    def kinds(self) -> list[str]:
        return [entry.kind for entry in self.entries]
