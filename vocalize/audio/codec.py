"""
vocalize/audio/codec.py
========================
Byte Codec: base64 transport <-> raw PCM bytes

Responsibility:
    - Decode the base64 text returned by the speech service into raw bytes
    - Encode raw bytes back into base64 text for transport
    - Guard the decode step against an empty upstream payload

The speech service returns 16-bit little-endian PCM wrapped in base64.
This module only handles the transport encoding; sample interpretation
happens in vocalize.audio.pcm.

This module does NOT:
    - Interpret samples, sample rates, or channel layouts
    - Call the speech service or retry failed requests
"""

import base64
import binascii
import logging

logger = logging.getLogger("vocalize.audio.codec")

# Characters ignored by browser ``atob`` before decoding.
_ASCII_WHITESPACE = str.maketrans("", "", " \t\n\r\f")


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DecodeError(Exception):
    """Raised when a base64 payload is malformed."""
    pass


class EmptyAudioError(Exception):
    """Raised when the speech service produced no audio payload."""
    pass


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def decode_base64(payload: str) -> bytes:
    """
    Decode a base64 payload into raw bytes.

    ASCII whitespace is ignored and missing ``=`` padding is tolerated,
    matching what the browser studio accepted. Anything else outside the
    base64 alphabet is rejected.

    Args:
        payload: Base64 text.

    Returns:
        The decoded bytes (one byte per decoded value, 0-255).

    Raises:
        DecodeError: If the payload is not valid base64.
    """
    if not isinstance(payload, str):
        raise DecodeError(
            f"Base64 payload must be text, got {type(payload).__name__}."
        )

    cleaned = payload.translate(_ASCII_WHITESPACE)
    remainder = len(cleaned) % 4
    if remainder:
        cleaned += "=" * (4 - remainder)

    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Malformed base64 audio payload: {exc}") from exc


def encode_base64(data: bytes) -> str:
    """Encode raw bytes as standard padded base64 text."""
    return base64.b64encode(bytes(data)).decode("ascii")


def require_audio_payload(payload: str | None) -> str:
    """
    Check that the speech service actually returned audio.

    Raises:
        EmptyAudioError: If the payload is None or empty.
    """
    if payload is None or len(payload) == 0:
        raise EmptyAudioError("The speech service returned an empty audio stream.")
    return payload
