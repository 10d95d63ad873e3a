"""
vocalize/audio/analysis.py
===========================
Waveform and Level Analysis

Responsibility:
    - Reduce a rendered buffer to display peaks for the waveform scrubber
    - Measure peak and RMS level for the VU meter

Read-only: nothing here changes the audio.
"""

import logging
import math

import numpy as np

from vocalize.audio.pcm import SampleBuffer

logger = logging.getLogger("vocalize.audio.analysis")

DEFAULT_WAVEFORM_BINS = 200
MAX_WAVEFORM_BINS = 4096


def waveform_peaks(buffer: SampleBuffer, bins: int = DEFAULT_WAVEFORM_BINS) -> list[float]:
    """
    Reduce a buffer to ``bins`` absolute peaks, normalized to the loudest bin.

    Each bin covers an equal slice of frames and takes the largest absolute
    sample across all channels. Bins with no frames (buffers shorter than
    ``bins``) report 0.0, as does every bin of a silent buffer.
    """
    if not 1 <= bins <= MAX_WAVEFORM_BINS:
        raise ValueError(f"bins must be between 1 and {MAX_WAVEFORM_BINS}, got {bins}.")

    if buffer.frame_count == 0:
        return [0.0] * bins

    frame_peaks = np.abs(buffer.interleaved()).max(axis=1)
    edges = np.linspace(0, buffer.frame_count, bins + 1).astype(int)
    starts = edges[:-1]
    filled = edges[1:] > starts

    # Filled bins tile the frames, so each reduces up to the next filled start.
    peaks = np.zeros(bins, dtype=np.float64)
    peaks[filled] = np.maximum.reduceat(frame_peaks, starts[filled])

    top = peaks.max()
    if top > 0:
        peaks = peaks / top
    return [float(p) for p in peaks]


def measure_levels(buffer: SampleBuffer) -> dict[str, float | None]:
    """
    Peak and RMS level of the whole buffer.

    Returns:
        Dict with keys:
            - peak:      largest absolute sample (0.0-1.0)
            - rms:       root mean square over all samples
            - peak_dbfs: peak in dBFS, None for digital silence
            - rms_dbfs:  RMS in dBFS, None for digital silence
    """
    if buffer.frame_count == 0:
        return {"peak": 0.0, "rms": 0.0, "peak_dbfs": None, "rms_dbfs": None}

    samples = buffer.interleaved().astype(np.float64)
    peak = float(np.max(np.abs(samples)))
    rms = float(np.sqrt(np.mean(samples ** 2)))

    result = {
        "peak": peak,
        "rms": rms,
        "peak_dbfs": _to_dbfs(peak),
        "rms_dbfs": _to_dbfs(rms),
    }
    logger.debug("Level analysis: %s", result)
    return result


def _to_dbfs(value: float) -> float | None:
    if value <= 0:
        return None
    return 20.0 * math.log10(value)
