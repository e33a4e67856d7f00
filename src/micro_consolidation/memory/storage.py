"""Knowledge directory storage.

The knowledge log (``hippocampus.md``) is append-only: each consolidated fact
becomes one ``[HH:MM:SS] - <fact>`` line. Writes open the file in append
mode, write one line and close it again; no lock is taken, so concurrent
writers rely on O_APPEND single-write atomicity.
"""

import asyncio
import pathlib
import re
from datetime import datetime, timezone

from pydantic import BaseModel

from micro_consolidation.telemetry import KNOWLEDGE_FACT_APPENDED, get_logger

log = get_logger(__name__)

KNOWLEDGE_LOG_FILENAME = "hippocampus.md"

_ENTRY_PATTERN = re.compile(r"^\[(\d{2}:\d{2}:\d{2})\] - (.*)$")


def to_single_line(text: str) -> str:
    """Join the non-blank lines of ``text`` with single spaces."""
    return " ".join(line.strip() for line in text.splitlines() if line.strip())


def format_log_entry(fact: str, now: datetime | None = None) -> str:
    """Build a knowledge log line.

    Args:
        fact: Fact text. Inner line breaks are folded so the entry stays on
            one line.
        now: Timestamp to use; defaults to the current UTC time.

    Returns:
        ``[HH:MM:SS] - <fact>`` terminated by a newline.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    return f"[{now.strftime('%H:%M:%S')}] - {to_single_line(fact)}\n"


class KnowledgeLogEntry(BaseModel):
    """A line read back from the knowledge log."""

    timestamp: str | None
    fact: str

    @classmethod
    def parse(cls, line: str) -> "KnowledgeLogEntry":
        """Parse one log line. Lines not in entry format keep timestamp=None."""
        line = line.rstrip("\n")
        match = _ENTRY_PATTERN.match(line)
        if match:
            return cls(timestamp=match.group(1), fact=match.group(2))
        return cls(timestamp=None, fact=line)


def _append_line(path: pathlib.Path, line: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(line)


class KnowledgeStorage:
    """Filesystem boundary for the knowledge directory.

    Attributes:
        knowledge_dir: Directory holding the knowledge log. It does not need to
            exist yet; it is created on the first append.
    """

    def __init__(self, knowledge_dir: pathlib.Path | str) -> None:
        self.knowledge_dir = pathlib.Path(knowledge_dir)

    def get_knowledge_dir(self) -> pathlib.Path:
        return self.knowledge_dir

    def get_knowledge_log_path(self) -> pathlib.Path:
        return self.knowledge_dir / KNOWLEDGE_LOG_FILENAME

    async def append_fact(self, fact: str, now: datetime | None = None) -> pathlib.Path:
        """Append one timestamped fact to the knowledge log.

        Creates the knowledge directory and the log file if needed. Existing
        content is never rewritten.

        Args:
            fact: Fact text to record.
            now: Timestamp override (tests); defaults to current UTC time.

        Returns:
            Path to the knowledge log.
        """
        path = self.get_knowledge_log_path()
        entry = format_log_entry(fact, now)

        await asyncio.to_thread(_append_line, path, entry)

        log.info(KNOWLEDGE_FACT_APPENDED, path=str(path), fact_length=len(fact))
        return path

    def read_entries(self, limit: int | None = None) -> list[KnowledgeLogEntry]:
        """Read entries from the knowledge log, oldest first.

        Args:
            limit: If set, return only the last ``limit`` entries.

        Returns:
            Parsed entries; empty if the log does not exist yet.
        """
        path = self.get_knowledge_log_path()
        if not path.exists():
            return []

        lines = [
            line for line in path.read_text(encoding="utf-8").splitlines() if line.strip()
        ]
        if limit is not None:
            lines = lines[-limit:] if limit > 0 else []
        return [KnowledgeLogEntry.parse(line) for line in lines]
