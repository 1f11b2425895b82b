"""Interaction log persistence."""
import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class InteractionLogger:
    """Appends every exchange to a JSON-lines file and the memorable ones to a second log."""

    def __init__(self, log_file: str, flagged_log_file: str):
        self.log_file = Path(log_file)
        self.flagged_log_file = Path(flagged_log_file)

    async def log_interaction(
        self,
        call_sid: str,
        user_input: str,
        response: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record one exchange. Write failures are logged, never raised."""
        metadata = metadata or {}
        timestamp = datetime.now(timezone.utc).isoformat()

        entry = {
            "timestamp": timestamp,
            "callSid": call_sid,
            "mood": metadata.get("mood") or "unknown",
            "user": user_input,
            "receptionist": response,
            **metadata,
        }

        try:
            await asyncio.to_thread(self._append, self.log_file, json.dumps(entry) + "\n")

            if self.is_flagged(response, metadata):
                await asyncio.to_thread(
                    self._append,
                    self.flagged_log_file,
                    self._format_flagged(timestamp, metadata, user_input, response),
                )
        except (OSError, TypeError, ValueError) as e:
            logger.error(
                f"[INTERACTIONS] Failed to log interaction - CallSid: {call_sid}, "
                f"Error: {type(e).__name__}: {str(e)}"
            )

    @staticmethod
    def is_flagged(response: str, metadata: Dict[str, Any]) -> bool:
        """Whether an exchange is worth keeping in the flagged log."""
        return (
            len(response) > 100
            or "Yale" in response
            or "latte" in response
            or bool(metadata.get("wasHilarious"))
        )

    @staticmethod
    def _format_flagged(
        timestamp: str, metadata: Dict[str, Any], user_input: str, response: str
    ) -> str:
        note = metadata.get("note")
        return (
            f"\n=== {timestamp} | {metadata.get('mood') or 'unknown'} ===\n"
            f"User: {user_input}\n"
            f"Receptionist: {response}\n"
            f"{f'Note: {note}' if note else ''}\n"
            "==================\n"
        )

    @staticmethod
    def _append(path: Path, text: str) -> None:
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)

    async def recent(self, count: int = 50) -> List[Dict[str, Any]]:
        """Get the most recent entries, oldest first."""
        if count <= 0:
            return []
        try:
            content = await asyncio.to_thread(self._read, self.log_file)
        except FileNotFoundError:
            return []

        entries = []
        for number, line in enumerate(content.split("\n"), start=1):
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except ValueError:
                logger.warning(f"[INTERACTIONS] Skipping unreadable log line {number}")
                continue
            if isinstance(entry, dict):
                entries.append(entry)
            else:
                logger.warning(f"[INTERACTIONS] Skipping non-object log line {number}")
        return entries[-count:]

    @staticmethod
    def _read(path: Path) -> str:
        return path.read_text(encoding="utf-8", errors="replace")
