"""
vocalize/tts/gemini_client.py
==============================
Gemini TTS Client

Responsibility:
    - Build synthesis prompts from text, voice, and speech settings
    - Request single-speaker, cloned-profile, and two-speaker dialogue audio
      from the Gemini speech model
    - Return the audio as a base64 payload of 16-bit little-endian mono PCM
    - Turn uploaded voice samples into the profile description that drives
      cloned-voice synthesis

The returned payload is opaque to this module. Decoding and WAV encoding
happen in vocalize.audio.

This module does NOT:
    - Decode PCM or post-process synthesized audio
    - Retry on its own (see vocalize.retry)
    - Keep any state between calls
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, NamedTuple

from dotenv import load_dotenv
from google import genai
from google.genai import types

from vocalize.audio.codec import EmptyAudioError, decode_base64, encode_base64
from vocalize.retry import generate_content_with_retry
from vocalize.script import DialogueLine, Speaker
from vocalize.voices.catalog import (
    SpeechSettings,
    VoiceName,
    format_settings_instruction,
    map_virtual_voice,
)

load_dotenv()

logger = logging.getLogger("vocalize.tts.gemini")

TTS_MODEL: str = os.getenv("VOCALIZE_TTS_MODEL", "gemini-2.5-flash-preview-tts")
CLONE_BASE_VOICE = "Zephyr"
ANALYSIS_MODEL: str = os.getenv("VOCALIZE_ANALYSIS_MODEL", "gemini-3-flash-preview")

MAX_VOICE_SAMPLES = 3
FALLBACK_PROFILE = "Standard voice"
DEFAULT_CONFIDENCE = 85
UNPARSED_CONFIDENCE = 70

_FINGERPRINT_PROMPT = (
    "Analyze these voice samples meticulously. Synthesize an averaged voice "
    "fingerprint. Return JSON with 'profile' (string) and 'confidence' "
    "(number 0-100)."
)


@dataclass(frozen=True)
class VoiceSample:
    """One uploaded recording used to fingerprint a voice."""

    data: str           # base64 audio
    mime_type: str
    file_name: str = ""


class VoiceProfile(NamedTuple):
    profile: str
    confidence: float


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def synthesize_single(
    text: str,
    voice: VoiceName | str,
    settings: SpeechSettings | None = None,
) -> str:
    """
    Synthesize ``text`` with one studio voice.

    Args:
        text:     Script text.
        voice:    Studio voice id; character voices are mapped to their
                  core voice with the personality added to the prompt.
        settings: Speech tuning, defaults to SpeechSettings().

    Returns:
        Base64 PCM payload.

    Raises:
        RuntimeError:    If the API key is missing or the API call fails.
        EmptyAudioError: If the response carries no audio.
    """
    settings = settings or SpeechSettings()
    base = map_virtual_voice(voice).base
    prompt = f"{format_settings_instruction(settings, voice)}Text: {text}"

    config = types.GenerateContentConfig(
        response_modalities=["AUDIO"],
        speech_config=_single_voice_config(base),
    )
    logger.info("Single-speaker synthesis: voice=%s base=%s chars=%d", voice, base, len(text))
    return _generate_audio(prompt, config)


def synthesize_clone(
    text: str,
    voice_profile: str,
    settings: SpeechSettings | None = None,
) -> str:
    """
    Synthesize ``text`` imitating a cloned voice profile description.

    The profile is passed to the model as an instruction on top of the
    Zephyr core voice.
    """
    settings = settings or SpeechSettings()
    instruction = format_settings_instruction(settings)
    prompt = f"[VOICE_CLONE_INSTRUCTION: {voice_profile}] {instruction} Text: {text}"

    config = types.GenerateContentConfig(
        response_modalities=["AUDIO"],
        speech_config=_single_voice_config(CLONE_BASE_VOICE),
    )
    logger.info("Cloned-voice synthesis: chars=%d", len(text))
    return _generate_audio(prompt, config)


def synthesize_dialogue(speakers: list[Speaker], lines: list[DialogueLine]) -> str:
    """
    Synthesize a conversation with the first two speakers.

    The speech model voices exactly two speakers per request. Lines that
    belong to any other speaker are read by the first speaker.

    Raises:
        ValueError:      If fewer than two speakers are defined.
        RuntimeError:    If the API key is missing or the API call fails.
        EmptyAudioError: If the response carries no audio.
    """
    active = speakers[:2]
    if len(active) < 2:
        raise ValueError("Multi-speaker synthesis requires at least 2 speakers to be defined.")

    prompt = build_dialogue_prompt(speakers, lines)
    config = types.GenerateContentConfig(
        response_modalities=["AUDIO"],
        speech_config=types.SpeechConfig(
            multi_speaker_voice_config=types.MultiSpeakerVoiceConfig(
                speaker_voice_configs=[
                    types.SpeakerVoiceConfig(
                        speaker=s.name,
                        voice_config=_voice_config(map_virtual_voice(s.voice).base),
                    )
                    for s in active
                ],
            ),
        ),
    )
    logger.info(
        "Dialogue synthesis: %s & %s, %d lines", active[0].name, active[1].name, len(lines),
    )
    return _generate_audio(prompt, config)


def build_dialogue_prompt(speakers: list[Speaker], lines: list[DialogueLine]) -> str:
    """Render dialogue lines as a two-speaker TTS transcript with per-line instructions."""
    active = speakers[:2]
    active_ids = {s.id for s in active}
    by_id = {s.id: s for s in speakers}

    body = []
    for line in lines:
        speaker = by_id.get(line.speaker_id) if line.speaker_id in active_ids else active[0]
        instruction = format_settings_instruction(
            speaker.settings, speaker.voice, line.emotion_override,
        )
        body.append(f"{speaker.name}: [INSTRUCTION: {instruction}] {line.text}")

    joined = "\n".join(body)
    return (
        f"TTS the following conversation between {active[0].name} and {active[1].name}:"
        f"\n\n{joined}"
    )


def analyze_voice_samples(samples: list[VoiceSample]) -> VoiceProfile:
    """
    Fingerprint a voice from up to three recordings.

    The returned profile text is what ``synthesize_clone`` expects as
    ``voice_profile``. A reply that is not JSON yields the fallback profile
    at 70 confidence; missing fields fall back to the profile text and 85.

    Raises:
        ValueError:   If no samples or more than MAX_VOICE_SAMPLES are given.
        DecodeError:  If a sample is not valid base64.
        RuntimeError: If the API key is missing or the API call fails.
    """
    if not samples:
        raise ValueError("No voice samples provided.")
    if len(samples) > MAX_VOICE_SAMPLES:
        raise ValueError(
            f"At most {MAX_VOICE_SAMPLES} voice samples are accepted, got {len(samples)}."
        )

    parts = [
        types.Part.from_bytes(data=decode_base64(s.data), mime_type=s.mime_type)
        for s in samples
    ]
    parts.append(types.Part.from_text(text=_FINGERPRINT_PROMPT))

    client = _get_client()
    logger.info("Voice fingerprint: %d sample(s)", len(samples))
    try:
        response = generate_content_with_retry(
            client,
            model=ANALYSIS_MODEL,
            contents=[types.Content(role="user", parts=parts)],
            config=types.GenerateContentConfig(response_mime_type="application/json"),
        )
    except Exception as exc:
        raise RuntimeError(f"Gemini voice analysis failed: {exc}") from exc

    return _parse_voice_profile(getattr(response, "text", None))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_client() -> genai.Client:
    api_key = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
    if not api_key:
        raise RuntimeError("GEMINI_API_KEY environment variable is not set.")
    return genai.Client(api_key=api_key)


def _voice_config(voice_name: str) -> types.VoiceConfig:
    return types.VoiceConfig(
        prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice_name),
    )


def _single_voice_config(voice_name: str) -> types.SpeechConfig:
    return types.SpeechConfig(voice_config=_voice_config(voice_name))


def _generate_audio(prompt: str, config: types.GenerateContentConfig) -> str:
    client = _get_client()

    try:
        response = generate_content_with_retry(
            client,
            model=TTS_MODEL,
            contents=prompt,
            config=config,
        )
    except Exception as exc:
        raise RuntimeError(f"Gemini speech synthesis failed: {exc}") from exc

    data = _extract_inline_audio(response)
    if not data:
        raise EmptyAudioError(
            "Synthesis failed: no audio data received from the model."
        )

    # The SDK hands back decoded bytes; the REST payload is base64 text.
    if isinstance(data, (bytes, bytearray)):
        return encode_base64(data)
    return data


def _parse_voice_profile(text: str | None) -> VoiceProfile:
    try:
        data = json.loads(text or "{}")
    except (TypeError, ValueError):
        logger.warning("Voice analysis reply was not JSON; using fallback profile.")
        return VoiceProfile(FALLBACK_PROFILE, UNPARSED_CONFIDENCE)

    if not isinstance(data, dict):
        data = {}
    profile = data.get("profile")
    confidence = data.get("confidence")
    if not isinstance(profile, str) or not profile:
        profile = FALLBACK_PROFILE
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)) or not confidence:
        confidence = DEFAULT_CONFIDENCE
    return VoiceProfile(profile, confidence)


def _extract_inline_audio(response: Any) -> bytes | str | None:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None

    content = getattr(candidates[0], "content", None)
    for part in getattr(content, "parts", None) or []:
        inline = getattr(part, "inline_data", None)
        if inline is not None and getattr(inline, "data", None):
            return inline.data
    return None
