"""
vocalize/studio.py
===================
Studio Render Orchestrator

Responsibility:
    1. Request audio from the speech service (single, clone, or dialogue)
    2. Check the payload is present before decoding
    3. Decode base64 -> raw PCM -> normalized SampleBuffer
    4. Encode the buffer as WAV for playback and download
    5. Keep a bounded render history, releasing superseded audio

Render flow:
    payload (base64) -> decode_base64 -> decode_pcm (fade) -> encode_wav

Only the newest render keeps its playback buffer. Older history entries
keep just their WAV bytes, and entries pushed past the history limit are
released completely.
"""

import logging
import os
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Optional

from vocalize.audio.codec import decode_base64, require_audio_payload
from vocalize.audio.pcm import SampleBuffer, decode_pcm, encode_wav
from vocalize.script import DialogueLine, Speaker, dialogue_text, script_stats, WORD_LIMIT
from vocalize.tts import gemini_client
from vocalize.voices.catalog import SpeechSettings, VoiceName

logger = logging.getLogger("vocalize.studio")

SUPPORTED_SAMPLE_RATES: tuple[int, ...] = (16000, 24000)
FALLBACK_SAMPLE_RATE = 24000
FALLBACK_HISTORY_LIMIT = 20


def load_default_sample_rate() -> int:
    """VOCALIZE_SAMPLE_RATE if it names a supported rate, else 24000."""
    raw = os.getenv("VOCALIZE_SAMPLE_RATE")
    if raw is None:
        return FALLBACK_SAMPLE_RATE
    try:
        rate = int(raw)
    except ValueError:
        rate = None
    if rate not in SUPPORTED_SAMPLE_RATES:
        logger.warning(
            "VOCALIZE_SAMPLE_RATE=%r is not one of %s; using %d Hz.",
            raw, SUPPORTED_SAMPLE_RATES, FALLBACK_SAMPLE_RATE,
        )
        return FALLBACK_SAMPLE_RATE
    return rate


def load_default_history_limit() -> int:
    """VOCALIZE_HISTORY_LIMIT if it is a positive integer, else 20."""
    raw = os.getenv("VOCALIZE_HISTORY_LIMIT")
    if raw is None:
        return FALLBACK_HISTORY_LIMIT
    try:
        limit = int(raw)
    except ValueError:
        limit = 0
    if limit < 1:
        logger.warning(
            "VOCALIZE_HISTORY_LIMIT=%r is not a positive integer; using %d.",
            raw, FALLBACK_HISTORY_LIMIT,
        )
        return FALLBACK_HISTORY_LIMIT
    return limit


DEFAULT_SAMPLE_RATE: int = load_default_sample_rate()
DEFAULT_HISTORY_LIMIT: int = load_default_history_limit()

_DIALOGUE_PREVIEW_CHARS = 30


# ---------------------------------------------------------------------------
# Render results
# ---------------------------------------------------------------------------


@dataclass
class RenderResult:
    """Decoded playback buffer plus its WAV encoding."""

    sample_rate: int
    buffer: Optional[SampleBuffer]
    wav: Optional[bytes]

    @property
    def released(self) -> bool:
        return self.buffer is None and self.wav is None

    def release_buffer(self) -> None:
        """Drop the playback buffer; WAV bytes stay available for download."""
        self.buffer = None

    def release(self) -> None:
        self.buffer = None
        self.wav = None


def render_payload(payload: str | None, sample_rate: int, channel_count: int = 1) -> RenderResult:
    """
    Turn a base64 PCM payload into a playback buffer and WAV bytes.

    Raises:
        EmptyAudioError: If the payload is missing or empty.
        DecodeError:     If the payload is not valid base64.
        ValueError:      If sample_rate or channel_count is invalid.
    """
    payload = require_audio_payload(payload)
    raw = decode_base64(payload)
    buffer = decode_pcm(raw, sample_rate, channel_count)
    wav = encode_wav(buffer)

    logger.info(
        "Rendered %d frames (%.2fs) at %d Hz, %d ch -> %.2f KB WAV",
        buffer.frame_count, buffer.duration_seconds, sample_rate, channel_count,
        len(wav) / 1024,
    )
    return RenderResult(sample_rate=sample_rate, buffer=buffer, wav=wav)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@dataclass
class HistoryItem:
    id: str
    timestamp: float
    mode: str
    text: str
    voice_name: str
    render: RenderResult

    def summary(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "mode": self.mode,
            "text": self.text,
            "voice_name": self.voice_name,
            "sample_rate": self.render.sample_rate,
            "available": self.render.wav is not None,
        }


class RenderHistory:
    """Newest-first render history with a fixed capacity. Thread-safe."""

    def __init__(self, max_items: int = DEFAULT_HISTORY_LIMIT) -> None:
        if max_items < 1:
            raise ValueError(f"max_items must be at least 1, got {max_items}.")
        self._max_items = max_items
        self._items: list[HistoryItem] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def current(self) -> Optional[HistoryItem]:
        with self._lock:
            return self._items[0] if self._items else None

    def items(self) -> list[HistoryItem]:
        with self._lock:
            return list(self._items)

    def get(self, item_id: str) -> Optional[HistoryItem]:
        with self._lock:
            return next((i for i in self._items if i.id == item_id), None)

    def push(self, item: HistoryItem) -> None:
        """Make ``item`` current, release the superseded buffer and evict overflow."""
        with self._lock:
            if self._items:
                self._items[0].render.release_buffer()
            self._items.insert(0, item)
            evicted = self._items[self._max_items:]
            del self._items[self._max_items:]

        for old in evicted:
            old.render.release()
        if evicted:
            logger.debug("Evicted %d render(s) from history.", len(evicted))

    def clear(self) -> None:
        with self._lock:
            items, self._items = self._items, []
        for item in items:
            item.render.release()


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class StudioSession:
    """
    Runs synthesis requests and records the rendered results.

    The synthesizer callables default to the Gemini client and can be
    injected for other services or tests.
    """

    def __init__(
        self,
        *,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        history: Optional[RenderHistory] = None,
        single: Optional[Callable[..., str]] = None,
        clone: Optional[Callable[..., str]] = None,
        dialogue: Optional[Callable[..., str]] = None,
    ) -> None:
        if sample_rate not in SUPPORTED_SAMPLE_RATES:
            raise ValueError(
                f"Unsupported sample rate {sample_rate}. "
                f"Allowed: {', '.join(str(r) for r in SUPPORTED_SAMPLE_RATES)}"
            )
        self.sample_rate = sample_rate
        self.history = history if history is not None else RenderHistory()
        self._single = single or gemini_client.synthesize_single
        self._clone = clone or gemini_client.synthesize_clone
        self._dialogue = dialogue or gemini_client.synthesize_dialogue

    def synthesize_single(
        self,
        text: str,
        voice: VoiceName | str,
        settings: Optional[SpeechSettings] = None,
    ) -> HistoryItem:
        settings = settings or SpeechSettings()
        _check_script(text, settings.rate)
        payload = self._single(text, voice, settings)
        voice_name = voice.value if isinstance(voice, VoiceName) else str(voice)
        return self._record("single", text, voice_name, payload)

    def synthesize_clone(
        self,
        text: str,
        voice_profile: str,
        settings: Optional[SpeechSettings] = None,
        voice_name: str = "Clone",
    ) -> HistoryItem:
        settings = settings or SpeechSettings()
        _check_script(text, settings.rate)
        payload = self._clone(text, voice_profile, settings)
        return self._record("clone", text, voice_name, payload)

    def synthesize_dialogue(
        self,
        speakers: list[Speaker],
        lines: list[DialogueLine],
    ) -> HistoryItem:
        if not lines:
            raise ValueError("Dialogue has no lines to synthesize.")
        _check_script(dialogue_text(lines))
        payload = self._dialogue(speakers, lines)

        preview = lines[0].text[:_DIALOGUE_PREVIEW_CHARS] + "..."
        names = " & ".join(s.name for s in speakers[:2])
        return self._record("multi", preview, names, payload)

    def _record(self, mode: str, text: str, voice_name: str, payload: str) -> HistoryItem:
        render = render_payload(payload, self.sample_rate)
        item = HistoryItem(
            id=uuid.uuid4().hex,
            timestamp=time.time(),
            mode=mode,
            text=text,
            voice_name=voice_name,
            render=render,
        )
        self.history.push(item)
        return item


def _check_script(text: str, rate: float = 1.0) -> None:
    if not text or not text.strip():
        raise ValueError("Script text is empty.")
    if script_stats(text, rate).is_over_limit:
        raise ValueError(f"Script exceeds the {WORD_LIMIT}-word studio limit.")
