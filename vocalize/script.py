"""
vocalize/script.py
===================
Dialogue Script Tools

Responsibility:
    - Define speakers and dialogue lines for multi-speaker synthesis
    - Import a pasted "NAME: line" script into dialogue lines
    - Estimate word count and spoken duration for a script
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from vocalize.voices.catalog import Emotion, SpeechSettings, VoiceName

logger = logging.getLogger("vocalize.script")

WORD_LIMIT = 2000
WORDS_PER_MINUTE = 140
MAX_SPEAKERS = 10


@dataclass
class Speaker:
    id: str
    name: str
    voice: VoiceName | str = VoiceName.ZEPHYR
    settings: SpeechSettings = field(default_factory=SpeechSettings)


@dataclass
class DialogueLine:
    speaker_id: str
    text: str
    emotion_override: Optional[Emotion] = None

    def __post_init__(self) -> None:
        if self.emotion_override is not None:
            self.emotion_override = Emotion(self.emotion_override)


@dataclass(frozen=True)
class ScriptStats:
    word_count: int
    duration_seconds: int
    is_over_limit: bool


def parse_dialogue_script(text: str, speakers: list[Speaker]) -> list[DialogueLine]:
    """
    Parse a pasted script of ``NAME: text`` lines.

    Lines without a colon are skipped, as are lines with nothing after the
    colon. Names match speakers case-insensitively; unknown names are
    assigned to the first speaker.

    Raises:
        ValueError: If no speakers are defined.
    """
    if not speakers:
        raise ValueError("At least one speaker is required to import a script.")

    by_name = {s.name.strip().lower(): s for s in speakers}
    lines: list[DialogueLine] = []

    for raw in text.splitlines():
        if ":" not in raw:
            continue
        name, _, spoken = raw.partition(":")
        spoken = spoken.strip()
        if not spoken:
            continue
        speaker = by_name.get(name.strip().lower(), speakers[0])
        lines.append(DialogueLine(speaker_id=speaker.id, text=spoken))

    logger.info("Imported %d dialogue lines for %d speakers.", len(lines), len(speakers))
    return lines


def script_stats(text: str, rate: float = 1.0) -> ScriptStats:
    """Word count and estimated spoken duration at 140 words per minute."""
    word_count = len(text.split())
    minutes = (word_count / WORDS_PER_MINUTE) * (1 / (rate or 1))
    duration = int(math.floor(minutes * 60 + 0.5))
    return ScriptStats(
        word_count=word_count,
        duration_seconds=duration,
        is_over_limit=word_count > WORD_LIMIT,
    )


def dialogue_text(lines: list[DialogueLine]) -> str:
    return " ".join(line.text for line in lines)
