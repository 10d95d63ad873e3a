"""
vocalize/audio/pcm.py
======================
PCM Decoder and WAV Encoder

Responsibility:
    - Decode raw 16-bit little-endian PCM into a normalized float buffer
    - Apply the 50 ms linear fade-in / fade-out that suppresses clicks
    - Encode a float buffer into a canonical 44-byte-header RIFF/WAVE file

Normalization is asymmetric: decoding divides by 32768, encoding scales
negative samples by 32768 and non-negative samples by 32767. Decoding then
re-encoding an unfaded frame reproduces the original int16 value for
negative samples and lands within one step for positive ones.

This module does NOT:
    - Handle base64 transport (see vocalize.audio.codec)
    - Resample, mix down, or apply any effect other than the edge fade
"""

import io
import logging
import math
import wave
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger("vocalize.audio.pcm")


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SAMPLE_WIDTH = 2             # bytes per sample (16-bit)
FADE_SECONDS = 0.05          # click-suppression ramp length
WAV_HEADER_SIZE = 44
WAV_MIME_TYPE = "audio/wav"

# Widths of the fmt chunk fields: channels is 16-bit, byte rate is 32-bit.
MAX_CHANNELS = 0xFFFF
MAX_BYTE_RATE = 0xFFFFFFFF
MAX_SAMPLE_RATE = MAX_BYTE_RATE // SAMPLE_WIDTH

_DECODE_SCALE = 32768.0
_NEGATIVE_SCALE = 32768.0
_POSITIVE_SCALE = 32767.0


# ---------------------------------------------------------------------------
# Sample buffer
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class SampleBuffer:
    """
    Decoded audio: one read-only float32 array per channel.

    Every channel holds exactly ``frame_count`` samples. Arrays are copied
    and frozen on construction, so a buffer never changes once built.
    """

    sample_rate: int
    channels: tuple

    def __post_init__(self) -> None:
        _validate_format(self.sample_rate, len(self.channels))
        frozen = tuple(_freeze(np.array(c, dtype=np.float32)) for c in self.channels)
        lengths = {len(c) for c in frozen}
        if len(lengths) > 1:
            raise ValueError(
                f"All channels must have the same frame count, got {sorted(lengths)}."
            )
        object.__setattr__(self, "channels", frozen)

    @property
    def channel_count(self) -> int:
        return len(self.channels)

    @property
    def frame_count(self) -> int:
        return len(self.channels[0])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.channels[index]

    def interleaved(self) -> np.ndarray:
        """Return samples as a (frame_count, channel_count) array."""
        return np.stack(self.channels, axis=1)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


def fade_samples_for(sample_rate: int) -> int:
    """Length of the fade ramp in frames: floor(0.05 * sample_rate)."""
    return math.floor(FADE_SECONDS * sample_rate)


def fade_envelope(frame_count: int, fade_samples: int) -> np.ndarray:
    """
    Per-frame gain for the click-suppression fade.

    Frames with ``i < fade_samples`` ramp up as ``i / fade_samples``.
    Otherwise, frames with ``i > frame_count - fade_samples`` ramp down as
    ``(frame_count - i) / fade_samples``. The fade-in test wins, so a buffer
    shorter than ``2 * fade_samples`` never reaches full gain.
    """
    gain = np.ones(frame_count, dtype=np.float64)
    if fade_samples <= 0 or frame_count == 0:
        return gain

    index = np.arange(frame_count)
    fade_in = index < fade_samples
    fade_out = ~fade_in & (index > frame_count - fade_samples)

    gain[fade_in] = index[fade_in] / fade_samples
    gain[fade_out] = (frame_count - index[fade_out]) / fade_samples
    return gain


def decode_pcm(data: bytes, sample_rate: int, channel_count: int = 1) -> SampleBuffer:
    """
    Decode interleaved 16-bit little-endian PCM into a SampleBuffer.

    A trailing odd byte is dropped. Input too short for a single frame
    yields an empty buffer instead of an error.

    Args:
        data:          Raw PCM bytes.
        sample_rate:   Sample rate in Hz (positive integer).
        channel_count: Number of interleaved channels (>= 1).

    Returns:
        SampleBuffer with normalized, fade-shaped samples.

    Raises:
        ValueError: If sample_rate or channel_count is invalid.
    """
    _validate_format(sample_rate, channel_count)

    total = len(data)
    usable = total - (total % SAMPLE_WIDTH)
    if usable != total:
        logger.debug("Dropping trailing odd byte from %d-byte PCM stream.", total)

    frame_count = usable // SAMPLE_WIDTH // channel_count
    if frame_count == 0:
        empty = tuple(np.zeros(0, dtype=np.float32) for _ in range(channel_count))
        return SampleBuffer(sample_rate=sample_rate, channels=empty)

    pcm = np.frombuffer(data, dtype="<i2", count=frame_count * channel_count)
    frames = pcm.reshape(frame_count, channel_count).astype(np.float64) / _DECODE_SCALE

    gain = fade_envelope(frame_count, fade_samples_for(sample_rate))
    shaped = (frames * gain[:, None]).astype(np.float32)

    return SampleBuffer(
        sample_rate=sample_rate,
        channels=tuple(shaped[:, c] for c in range(channel_count)),
    )


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def quantize(buffer: SampleBuffer) -> np.ndarray:
    """
    Convert float samples to interleaved int16 values.

    Samples are clamped to [-1, 1], scaled by 32768 when negative and by
    32767 otherwise, then truncated toward zero. NaN becomes 0.
    """
    frames = np.nan_to_num(buffer.interleaved().astype(np.float64), nan=0.0)
    clipped = np.clip(frames, -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * _NEGATIVE_SCALE, clipped * _POSITIVE_SCALE)
    return np.trunc(scaled).astype(np.int16)


def encode_wav(buffer: SampleBuffer) -> bytes:
    """
    Encode a SampleBuffer as a 16-bit PCM RIFF/WAVE file.

    The result is a 44-byte header followed by interleaved samples, so its
    length is always ``44 + frame_count * channel_count * 2``.
    """
    pcm = quantize(buffer)

    out = io.BytesIO()
    with wave.open(out, "wb") as wf:
        wf.setnchannels(buffer.channel_count)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(buffer.sample_rate)
        # wave expects native byte order and swaps on big-endian hosts
        wf.writeframes(pcm.tobytes())

    wav_bytes = out.getvalue()
    logger.debug(
        "Encoded WAV: %d frames | %d ch | %d Hz | %d bytes",
        buffer.frame_count, buffer.channel_count, buffer.sample_rate, len(wav_bytes),
    )
    return wav_bytes


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validate_format(sample_rate: int, channel_count: int) -> None:
    if isinstance(sample_rate, bool) or int(sample_rate) != sample_rate or sample_rate <= 0:
        raise ValueError(f"Sample rate must be a positive integer, got {sample_rate!r}.")
    if channel_count < 1:
        raise ValueError(f"Channel count must be at least 1, got {channel_count!r}.")
    if channel_count > MAX_CHANNELS:
        raise ValueError(f"Channel count must be at most {MAX_CHANNELS}, got {channel_count!r}.")
    if sample_rate * channel_count * SAMPLE_WIDTH > MAX_BYTE_RATE:
        raise ValueError(
            f"{sample_rate} Hz x {channel_count} channels does not fit a WAV header byte rate."
        )


def _freeze(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array
