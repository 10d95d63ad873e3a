"""
vocalize/audio/export.py
=========================
Audio Export

Responsibility:
    - Turn a rendered buffer into a downloadable file
    - WAV is produced by the byte-exact encoder in vocalize.audio.pcm
    - MP3 and OGG are transcoded from that WAV with pydub (requires ffmpeg)

This module does NOT:
    - Alter samples before export (no gain, no resampling)
    - Store files anywhere; callers receive bytes
"""

import io
import logging
from enum import Enum

from pydub import AudioSegment

from vocalize.audio.pcm import WAV_MIME_TYPE, SampleBuffer, encode_wav

logger = logging.getLogger("vocalize.audio.export")


class ExportFormat(str, Enum):
    """Download container formats offered by the studio."""

    WAV = "wav"
    MP3 = "mp3"
    OGG = "ogg"


class ExportQuality(str, Enum):
    """Target quality for lossy formats. WAV is always lossless."""

    STANDARD = "128kbps"
    HIGH = "256kbps"
    LOSSLESS = "lossless"


_BITRATES: dict[ExportQuality, str] = {
    ExportQuality.STANDARD: "128k",
    ExportQuality.HIGH: "256k",
    ExportQuality.LOSSLESS: "320k",  # best the lossy encoders offer
}

_MIME_TYPES: dict[ExportFormat, str] = {
    ExportFormat.WAV: WAV_MIME_TYPE,
    ExportFormat.MP3: "audio/mpeg",
    ExportFormat.OGG: "audio/ogg",
}

_CODECS: dict[ExportFormat, str] = {
    ExportFormat.OGG: "libvorbis",
}


class AudioExportError(Exception):
    """Raised when transcoding to the requested format fails."""
    pass


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def mime_type_for(fmt: ExportFormat | str) -> str:
    return _MIME_TYPES[ExportFormat(fmt)]


def export_audio(
    buffer: SampleBuffer,
    fmt: ExportFormat | str = ExportFormat.WAV,
    quality: ExportQuality | str = ExportQuality.LOSSLESS,
) -> bytes:
    """Encode ``buffer`` and export it in the requested format."""
    return export_wav(encode_wav(buffer), fmt, quality)


def export_wav(
    wav_bytes: bytes,
    fmt: ExportFormat | str = ExportFormat.WAV,
    quality: ExportQuality | str = ExportQuality.LOSSLESS,
) -> bytes:
    """
    Export already-encoded WAV bytes in the requested format.

    Args:
        wav_bytes: Output of ``encode_wav``.
        fmt:       Target container (wav | mp3 | ogg).
        quality:   Bitrate preset for lossy formats; ignored for WAV.

    Returns:
        File bytes in the requested format.

    Raises:
        ValueError:       On an unknown format or quality.
        AudioExportError: If pydub/ffmpeg fails to transcode.
    """
    fmt = ExportFormat(fmt)
    quality = ExportQuality(quality)

    if fmt is ExportFormat.WAV:
        return wav_bytes

    export_kwargs = {"format": fmt.value, "bitrate": _BITRATES[quality]}
    if fmt in _CODECS:
        export_kwargs["codec"] = _CODECS[fmt]

    try:
        segment = AudioSegment.from_wav(io.BytesIO(wav_bytes))
        out = io.BytesIO()
        segment.export(out, **export_kwargs)
    except Exception as exc:
        raise AudioExportError(f"Failed to export audio as {fmt.value}: {exc}") from exc

    data = out.getvalue()
    logger.info(
        "Exported %s at %s: %.2f KB", fmt.value, export_kwargs["bitrate"], len(data) / 1024,
    )
    return data
