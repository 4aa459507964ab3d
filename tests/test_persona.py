from __future__ import annotations

from datetime import datetime

import pytest

from eve_engine.chat.persona import (
    EVE_MANGLISH_SYSTEM_INSTRUCTION,
    EVE_SYSTEM_INSTRUCTION,
    build_system_instruction,
    format_away_duration,
)


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (5, None),
        (10, None),
        (11, "11 seconds"),
        (59, "59 seconds"),
        (60, "1 minutes"),
        (3 * 60 + 59, "3 minutes"),
        (2 * 3600 + 5 * 60, "2 hours and 5 minutes"),
        (-30, None),
    ],
)
def test_format_away_duration(seconds, expected) -> None:
    assert format_away_duration(seconds) == expected


def test_instruction_embeds_date_and_time() -> None:
    now = datetime(2026, 10, 19, 14, 5)
    instruction = build_system_instruction("english", now=now)
    assert instruction.startswith(EVE_SYSTEM_INSTRUCTION)
    assert "Monday, October 19, 2026" in instruction
    assert "02:05 PM" in instruction
    assert "away for" not in instruction


def test_instruction_mentions_absence() -> None:
    instruction = build_system_instruction("english", "2 hours and 5 minutes", now=datetime(2026, 1, 1))
    assert "The user has been away for 2 hours and 5 minutes." in instruction


def test_manglish_instruction() -> None:
    instruction = build_system_instruction("manglish", "3 minutes", now=datetime(2026, 1, 1))
    assert instruction.startswith(EVE_MANGLISH_SYSTEM_INSTRUCTION)
    assert "3 minutes aayirunnu offline" in instruction


def test_instruction_teaches_directives() -> None:
    assert "[SELFIE" in EVE_SYSTEM_INSTRUCTION
    assert "[SCENE" in EVE_SYSTEM_INSTRUCTION
