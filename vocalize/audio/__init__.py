# vocalize/audio/__init__.py
# ===========================
# Audio Layer
#
# Render flow:
#   1. decode_base64   transport text -> raw 16-bit LE PCM bytes
#   2. decode_pcm      raw bytes -> normalized SampleBuffer (50 ms edge fade)
#   3. encode_wav      SampleBuffer -> RIFF/WAVE bytes
#
# Public API:
#   decode_base64, encode_base64, decode_pcm, encode_wav, SampleBuffer

from vocalize.audio.codec import (  # noqa: F401
    DecodeError,
    EmptyAudioError,
    decode_base64,
    encode_base64,
    require_audio_payload,
)
from vocalize.audio.pcm import (  # noqa: F401
    WAV_MIME_TYPE,
    SampleBuffer,
    decode_pcm,
    encode_wav,
)

__all__ = [
    "DecodeError",
    "EmptyAudioError",
    "decode_base64",
    "encode_base64",
    "require_audio_payload",
    "WAV_MIME_TYPE",
    "SampleBuffer",
    "decode_pcm",
    "encode_wav",
]
