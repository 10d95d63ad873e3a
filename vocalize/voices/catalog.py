"""
vocalize/voices/catalog.py
===========================
Voice Catalog and Speech Instructions

Responsibility:
    - Enumerate the studio voices
    - Map each virtual voice to a core neural voice plus a personality
      descriptor
    - Hold speech tuning settings (rate, pitch, emotion, volume, accent)
    - Render settings into the natural-language instruction prefixed to
      every synthesis prompt

The speech service only ships a handful of core voices. Character voices
are produced by pairing a core voice with a descriptor that is spliced
into the prompt.

This module does NOT:
    - Call the speech service
    - Persist presets or favourites
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, NamedTuple, Optional


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class VoiceName(str, Enum):
    """Voices offered in the studio gallery."""

    AOEDE = "Aoede"
    GACRUX = "Gacrux"
    ZEPHYR = "Zephyr"
    KORE = "Kore"
    PUCK = "Puck"
    CHARON = "Charon"
    FENRIR = "Fenrir"
    SCHEDAR = "Schedar"
    LEDA = "Leda"
    ACHIRD = "Achird"
    VINDEMIATRIX = "Vindemiatrix"
    ALNILAM = "Alnilam"
    LYRA = "Lyra"
    ORION = "Orion"
    CASSIOPEIA = "Cassiopeia"
    PERSEUS = "Perseus"
    ANDROMEDA = "Andromeda"
    CEPHEUS = "Cepheus"
    AQUILA = "Aquila"
    CYGNUS = "Cygnus"
    DELPHINUS = "Delphinus"
    HYDRA = "Hydra"
    RIGEL = "Rigel"
    ANTARES = "Antares"
    SIRIUS = "Sirius"
    VEGA = "Vega"
    ALTAIR = "Altair"
    CANOPUS = "Canopus"


class Emotion(str, Enum):
    NEUTRAL = "neutral"
    HAPPY = "happy"
    SAD = "sad"
    ANGRY = "angry"
    FEARFUL = "fearful"
    SURPRISED = "surprised"
    DISGUSTED = "disgusted"
    SARCASTIC = "sarcastic"
    WHISPERING = "whispering"
    SHOUTING = "shouting"
    NOSTALGIC = "nostalgic"
    WISE = "wise"
    FRAGILE = "fragile"
    SHAKY = "shaky"
    FRIENDLY = "friendly"
    AUTHORITATIVE = "authoritative"


class PitchLevel(str, Enum):
    VERY_LOW = "very low"
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    VERY_HIGH = "very high"


# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------


class VirtualVoice(NamedTuple):
    """A core service voice plus the personality descriptor layered on it."""

    base: str
    descriptor: str


DEFAULT_VIRTUAL_VOICE = VirtualVoice("Zephyr", "")

VIRTUAL_VOICES: dict[VoiceName, VirtualVoice] = {
    # Core voices
    VoiceName.ZEPHYR: VirtualVoice("Zephyr", ""),
    VoiceName.PUCK: VirtualVoice("Puck", ""),
    VoiceName.CHARON: VirtualVoice("Charon", ""),
    VoiceName.KORE: VirtualVoice("Kore", ""),
    VoiceName.FENRIR: VirtualVoice("Fenrir", ""),
    # Character voices
    VoiceName.LYRA: VirtualVoice("Zephyr", " ethereal and soft atmospheric qualities"),
    VoiceName.ORION: VirtualVoice("Kore", " cinematic power and deep resonance"),
    VoiceName.CASSIOPEIA: VirtualVoice("Zephyr", " regal, commanding and Shakespearean weight"),
    VoiceName.PERSEUS: VirtualVoice("Charon", " brave energy and energetic heroic pace"),
    VoiceName.ANDROMEDA: VirtualVoice("Zephyr", " dreamy, smooth meditation-like cadence"),
    VoiceName.CEPHEUS: VirtualVoice("Fenrir", " ancient wisdom and a slightly raspy historical tone"),
    VoiceName.AQUILA: VirtualVoice("Puck", " sharp precision and quick tech-inspired delivery"),
    VoiceName.CYGNUS: VirtualVoice("Charon", " graceful, friendly Australian charm"),
    VoiceName.DELPHINUS: VirtualVoice("Puck", " cheerful, bubbly gaming-style energy"),
    VoiceName.HYDRA: VirtualVoice("Charon", " dark, shadowy whispering textures"),
    VoiceName.RIGEL: VirtualVoice("Fenrir", " precise, articulate Indian English accent"),
    VoiceName.ANTARES: VirtualVoice("Zephyr", " strong, lyrical Scottish accent"),
    VoiceName.SIRIUS: VirtualVoice("Charon", " charming, warm Irish brogue"),
    VoiceName.VEGA: VirtualVoice("Zephyr", " vibrant, clear South African accent"),
    VoiceName.ALTAIR: VirtualVoice("Kore", " polite, steady Canadian accent"),
    VoiceName.CANOPUS: VirtualVoice("Zephyr", " warm, hospitable Southern US drawl"),
}

EMOTION_PROMPTS: dict[Emotion, str] = {
    Emotion.NEUTRAL: "in a natural, balanced tone",
    Emotion.HAPPY: "with a bright, joyful, and cheerful energy",
    Emotion.SAD: "with a heavy, melancholic, and downcast tone",
    Emotion.ANGRY: "with a sharp, intense, and aggressive edge",
    Emotion.FEARFUL: "with a shaky, anxious, and panicked quality",
    Emotion.SURPRISED: "with a sudden, wide-eyed, and high-pitched energy",
    Emotion.DISGUSTED: "with a repulsed, condescending, and bitter tone",
    Emotion.SARCASTIC: "with a dry, mocking, and cynical inflection",
    Emotion.WHISPERING: "in a soft, hushed, and secretive whisper",
    Emotion.SHOUTING: "at a high volume with a forceful, projective energy",
    Emotion.NOSTALGIC: "in a reflective, warm, and slightly sentimental tone",
    Emotion.WISE: "in a calm, deep, and highly experienced manner",
    Emotion.FRAGILE: "in a thin, gentle, and vulnerable tone",
    Emotion.SHAKY: "with a quivering, unsteady, and old quality",
    Emotion.FRIENDLY: "in a welcoming, approachable, and warm tone",
    Emotion.AUTHORITATIVE: "with a commanding, steady, and professional power",
}


def _meta(gender: str, age: str, accent: str, traits: list[str], tags: list[str]) -> dict[str, Any]:
    return {"gender": gender, "age": age, "accent": accent, "traits": traits, "tags": tags}


VOICE_METADATA: dict[VoiceName, dict[str, Any]] = {
    VoiceName.AOEDE: _meta("Female", "Elderly", "US", ["Empathetic", "Wise"], ["Warm", "Narrative"]),
    VoiceName.GACRUX: _meta("Female", "Elderly", "US", ["Gentle", "Kind"], ["Soft", "Reflective"]),
    VoiceName.ZEPHYR: _meta("Female", "Adult", "US", ["Professional", "Polished"], ["Commercial", "Pro"]),
    VoiceName.KORE: _meta("Male", "Adult", "US", ["Commanding", "Direct"], ["Authoritative", "Deep"]),
    VoiceName.PUCK: _meta("Neutral", "Young", "US", ["Energetic", "Playful"], ["Lively", "Upbeat"]),
    VoiceName.CHARON: _meta("Male", "Adult", "US", ["Mysterious", "Rough"], ["Gravelly", "Dramatic"]),
    VoiceName.FENRIR: _meta("Male", "Adult", "US", ["Reliable", "Calm"], ["Steady", "Instructional"]),
    VoiceName.SCHEDAR: _meta("Male", "Adult", "US", ["Heroic", "Loud"], ["Trailer", "Power"]),
    VoiceName.LEDA: _meta("Female", "Adult", "UK", ["Quick-witted", "Posh"], ["Fast", "Modern"]),
    VoiceName.ACHIRD: _meta("Male", "Adult", "AU", ["Aussie", "Friendly"], ["Expressive", "Narrative"]),
    VoiceName.VINDEMIATRIX: _meta("Female", "Adult", "US", ["Helpful", "Concise"], ["Clear", "Professional"]),
    VoiceName.ALNILAM: _meta("Male", "Adult", "UK", ["Sophisticated", "Artistic"], ["Rhythmic", "Poetic"]),
    VoiceName.LYRA: _meta("Female", "Adult", "UK", ["Ethereal", "Soft"], ["Atmospheric", "Poetic"]),
    VoiceName.ORION: _meta("Male", "Adult", "US", ["Powerful", "Deep"], ["Cinematic", "Narrative"]),
    VoiceName.CASSIOPEIA: _meta("Female", "Elderly", "UK", ["Regal", "Commanding"], ["Shakespearean", "Bold"]),
    VoiceName.PERSEUS: _meta("Male", "Adult", "US", ["Brave", "Energetic"], ["Action", "Bouncy"]),
    VoiceName.ANDROMEDA: _meta("Female", "Adult", "US", ["Dreamy", "Smooth"], ["Meditation", "Cloudy"]),
    VoiceName.CEPHEUS: _meta("Male", "Elderly", "UK", ["Ancient", "Raspy"], ["Historical", "Gravel"]),
    VoiceName.AQUILA: _meta("Female", "Young", "US", ["Sharp", "Quick"], ["Tech", "Fast"]),
    VoiceName.CYGNUS: _meta("Male", "Adult", "AU", ["Graceful", "Friendly"], ["Casual", "Modern"]),
    VoiceName.DELPHINUS: _meta("Neutral", "Young", "US", ["Cheerful", "Bubbly"], ["Gaming", "Upbeat"]),
    VoiceName.HYDRA: _meta("Male", "Adult", "US", ["Dark", "Whispery"], ["Horror", "Shadow"]),
    VoiceName.RIGEL: _meta("Male", "Adult", "IN", ["Precise", "Articulate"], ["Tech", "Global"]),
    VoiceName.ANTARES: _meta("Female", "Adult", "SC", ["Strong", "Lyrical"], ["Narrative", "Rugged"]),
    VoiceName.SIRIUS: _meta("Male", "Adult", "IE", ["Charming", "Warm"], ["Storytelling", "Friendly"]),
    VoiceName.VEGA: _meta("Female", "Adult", "ZA", ["Vibrant", "Clear"], ["Professional", "Bright"]),
    VoiceName.ALTAIR: _meta("Male", "Adult", "CA", ["Polite", "Steady"], ["News", "Trustworthy"]),
    VoiceName.CANOPUS: _meta("Female", "Adult", "SUS", ["Southern", "Hospitable"], ["Warm", "Country"]),
}


# ---------------------------------------------------------------------------
# Speech settings
# ---------------------------------------------------------------------------

MAX_VOLUME = 1.5


@dataclass
class SpeechSettings:
    """Tuning applied to a voice for one synthesis request."""

    rate: float = 1.0
    pitch: PitchLevel = PitchLevel.NORMAL
    emotion: Emotion = Emotion.NEUTRAL
    volume: float = 1.0            # 0 to 1.5
    accent_strength: float = 0.2   # 0 to 1

    def __post_init__(self) -> None:
        self.pitch = PitchLevel(self.pitch)
        self.emotion = Emotion(self.emotion)
        if self.rate <= 0:
            raise ValueError(f"rate must be positive, got {self.rate}.")
        if not 0.0 <= self.volume <= MAX_VOLUME:
            raise ValueError(f"volume must be between 0 and {MAX_VOLUME}, got {self.volume}.")
        if not 0.0 <= self.accent_strength <= 1.0:
            raise ValueError(f"accent_strength must be between 0 and 1, got {self.accent_strength}.")

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "SpeechSettings":
        """Build settings from a partial dict; missing keys keep their defaults."""
        data = dict(data or {})
        if "accentStrength" in data and "accent_strength" not in data:
            data["accent_strength"] = data.pop("accentStrength")
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["pitch"] = self.pitch.value
        result["emotion"] = self.emotion.value
        return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def map_virtual_voice(voice: VoiceName | str | None) -> VirtualVoice:
    """Resolve a voice id to its core voice and descriptor; unknown ids fall back to Zephyr."""
    try:
        return VIRTUAL_VOICES.get(VoiceName(voice), DEFAULT_VIRTUAL_VOICE)
    except ValueError:
        return DEFAULT_VIRTUAL_VOICE


def format_settings_instruction(
    settings: SpeechSettings,
    voice: VoiceName | str | None = None,
    emotion_override: Emotion | str | None = None,
) -> str:
    """
    Render speech settings as the instruction sentence placed before the text.

    Example:
        "Speak in a natural, balanced tone at normal volume at a normal speed
        with a normal pitch and with a natural, subtle accent. "
    """
    personality = map_virtual_voice(voice).descriptor
    emotion = Emotion(emotion_override or settings.emotion)

    rate_desc = "normal speed" if settings.rate == 1 else f"{_format_number(settings.rate)}x speed"
    accent_desc = (
        "with a strong regional accent"
        if settings.accent_strength > 0.5
        else "with a natural, subtle accent"
    )
    if settings.volume > 1.2:
        volume_desc = "loudly"
    elif settings.volume < 0.8:
        volume_desc = "softly"
    else:
        volume_desc = "at normal volume"

    return (
        f"Speak {EMOTION_PROMPTS[emotion]}{personality} {volume_desc} "
        f"at a {rate_desc} with a {settings.pitch.value} pitch and {accent_desc}. "
    )


def list_voices() -> list[dict[str, Any]]:
    """Catalog entries for every studio voice, in enum order."""
    voices = []
    for voice in VoiceName:
        mapped = map_virtual_voice(voice)
        voices.append({
            "id": voice.value,
            "base": mapped.base,
            "descriptor": mapped.descriptor.strip(),
            **VOICE_METADATA.get(voice, {}),
        })
    return voices


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _format_number(value: float) -> str:
    """Shortest round-trip text of ``value``, with no trailing ``.0``."""
    text = repr(float(value))
    return text[:-2] if text.endswith(".0") else text
