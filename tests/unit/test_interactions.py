"""Unit tests for the interaction log."""
import json

import pytest


class TestInteractionLogger:
    """Test interaction and flagged logs."""

    @pytest.mark.asyncio
    async def test_log_interaction_writes_json_line(self, interaction_logger):
        """Test each exchange becomes one JSON line."""
        await interaction_logger.log_interaction(
            "CA1", "Hello", "What.", {"mood": "Passive Aggressive Tuesday", "interactionNumber": 1}
        )

        lines = interaction_logger.log_file.read_text().strip().split("\n")
        assert len(lines) == 1
        entry = json.loads(lines[0])
        assert entry["callSid"] == "CA1"
        assert entry["user"] == "Hello"
        assert entry["receptionist"] == "What."
        assert entry["mood"] == "Passive Aggressive Tuesday"
        assert entry["interactionNumber"] == 1
        assert "timestamp" in entry

    @pytest.mark.asyncio
    async def test_mood_defaults_to_unknown(self, interaction_logger):
        """Test entries without a mood record unknown."""
        await interaction_logger.log_interaction("CA1", "Hi", "No.")
        entry = json.loads(interaction_logger.log_file.read_text())
        assert entry["mood"] == "unknown"

    @pytest.mark.asyncio
    async def test_short_plain_reply_not_flagged(self, interaction_logger):
        """Test ordinary replies stay out of the flagged log."""
        await interaction_logger.log_interaction("CA1", "Hi", "No.", {"mood": "x"})
        assert not interaction_logger.flagged_log_file.exists()

    @pytest.mark.asyncio
    async def test_memorable_reply_flagged(self, interaction_logger):
        """Test replies mentioning Yale are copied to the flagged log."""
        await interaction_logger.log_interaction(
            "CA1", "Who are you?", "I went to Yale.", {"mood": "Overly Corporate Wednesday"}
        )

        flagged = interaction_logger.flagged_log_file.read_text()
        assert "| Overly Corporate Wednesday ===" in flagged
        assert "User: Who are you?" in flagged
        assert "Receptionist: I went to Yale." in flagged
        assert "==================" in flagged

    def test_is_flagged_rules(self, interaction_logger):
        """Test the flagging rules."""
        assert interaction_logger.is_flagged("x" * 101, {})
        assert interaction_logger.is_flagged("An oat latte", {})
        assert interaction_logger.is_flagged("Fine", {"wasHilarious": True})
        assert not interaction_logger.is_flagged("Fine", {"wasHilarious": False})

    @pytest.mark.asyncio
    async def test_recent_returns_latest_entries(self, interaction_logger):
        """Test recent returns the tail of the log, oldest first."""
        for i in range(5):
            await interaction_logger.log_interaction("CA1", f"line {i}", "Ok.")

        entries = await interaction_logger.recent(2)
        assert [e["user"] for e in entries] == ["line 3", "line 4"]

    @pytest.mark.asyncio
    async def test_recent_without_log_file(self, interaction_logger):
        """Test a missing log reads as empty."""
        assert await interaction_logger.recent() == []

    @pytest.mark.asyncio
    async def test_write_failure_is_swallowed(self, tmp_path):
        """Test an unwritable log never breaks the call."""
        from receptionist.services.persistence.interactions import InteractionLogger

        logger = InteractionLogger(
            log_file=str(tmp_path / "missing-dir" / "log.jsonl"),
            flagged_log_file=str(tmp_path / "missing-dir" / "flagged.log"),
        )
        await logger.log_interaction("CA1", "Hi", "No.")

    @pytest.mark.asyncio
    async def test_recent_skips_unreadable_lines(self, interaction_logger):
        """Test a truncated or non-UTF-8 line does not hide the rest of the log."""
        await interaction_logger.log_interaction("CA1", "first", "Ok.")
        with open(interaction_logger.log_file, "ab") as f:
            f.write(b'{"timestamp": "2024-01-01", "callSid": "CA2", "us\n')
            f.write(b"\xff\xfe\xfa\n")
            f.write(b"42\n")
        await interaction_logger.log_interaction("CA3", "second", "Ok.")

        entries = await interaction_logger.recent(10)

        assert [e["user"] for e in entries] == ["first", "second"]
        assert [e["user"] for e in await interaction_logger.recent(1)] == ["second"]

    @pytest.mark.asyncio
    async def test_unserialisable_metadata_is_swallowed(self, interaction_logger):
        """Test metadata that cannot be written as JSON never breaks the call."""
        await interaction_logger.log_interaction("CA1", "Hi", "No.", {"blob": object()})

        assert not interaction_logger.log_file.exists()
