"""
vocalize/api/synthesize.py
===========================
HTTP API for the Vocalize studio

Responsibility:
    - POST /api/v1/synthesize      single-voice or cloned-profile synthesis
    - POST /api/v1/dialogue        two-speaker dialogue synthesis
    - POST /api/v1/render          decode an existing base64 PCM payload
    - POST /api/v1/analyze         waveform peaks and levels for a payload
    - POST /api/v1/clone/analyze   voice profile from uploaded samples
    - GET  /api/v1/voices          voice catalog
    - GET  /api/v1/history         recent renders; download one by id

Synthesis and codec work is blocking, so it runs in a worker thread.
"""

import asyncio
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from vocalize.audio.analysis import (
    DEFAULT_WAVEFORM_BINS,
    MAX_WAVEFORM_BINS,
    measure_levels,
    waveform_peaks,
)
from vocalize.audio.codec import DecodeError, EmptyAudioError
from vocalize.audio.export import (
    AudioExportError,
    ExportFormat,
    ExportQuality,
    export_wav,
    mime_type_for,
)
from vocalize.audio.pcm import MAX_CHANNELS, MAX_SAMPLE_RATE
from vocalize.script import MAX_SPEAKERS, DialogueLine, Speaker, parse_dialogue_script
from vocalize.studio import (
    DEFAULT_SAMPLE_RATE,
    RenderHistory,
    StudioSession,
    render_payload,
)
from vocalize.tts import gemini_client
from vocalize.voices.catalog import SpeechSettings, VoiceName, list_voices

logger = logging.getLogger("vocalize.api")

_history = RenderHistory()


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SettingsModel(BaseModel):
    rate: float = 1.0
    pitch: str = "normal"
    emotion: str = "neutral"
    volume: float = 1.0
    accent_strength: float = 0.2


class SynthesizeRequest(BaseModel):
    text: str
    voice: str = VoiceName.ZEPHYR.value
    voice_profile: Optional[str] = None
    settings: SettingsModel = Field(default_factory=SettingsModel)
    sample_rate: int = DEFAULT_SAMPLE_RATE
    format: ExportFormat = ExportFormat.WAV
    quality: ExportQuality = ExportQuality.LOSSLESS


class SpeakerModel(BaseModel):
    id: str
    name: str
    voice: str = VoiceName.ZEPHYR.value
    settings: SettingsModel = Field(default_factory=SettingsModel)


class LineModel(BaseModel):
    speaker_id: str
    text: str
    emotion_override: Optional[str] = None


class DialogueRequest(BaseModel):
    speakers: list[SpeakerModel]
    lines: list[LineModel] = Field(default_factory=list)
    script: Optional[str] = None
    sample_rate: int = DEFAULT_SAMPLE_RATE
    format: ExportFormat = ExportFormat.WAV
    quality: ExportQuality = ExportQuality.LOSSLESS


class RenderRequest(BaseModel):
    audio_base64: Optional[str] = None
    sample_rate: int = Field(default=DEFAULT_SAMPLE_RATE, gt=0, le=MAX_SAMPLE_RATE)
    channel_count: int = Field(default=1, ge=1, le=MAX_CHANNELS)
    format: ExportFormat = ExportFormat.WAV
    quality: ExportQuality = ExportQuality.LOSSLESS
    bins: int = Field(default=DEFAULT_WAVEFORM_BINS, ge=1, le=MAX_WAVEFORM_BINS)


class VoiceSampleModel(BaseModel):
    data: str
    mime_type: str
    file_name: str = ""


class CloneAnalyzeRequest(BaseModel):
    samples: list[VoiceSampleModel]


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Vocalize",
    description="Voice synthesis studio: text to speech, PCM decoding and WAV export.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.post("/api/v1/synthesize")
async def synthesize(request: SynthesizeRequest):
    """Synthesize text with a studio voice, or with a cloned profile if one is given."""
    logger.info("Synthesis request: voice=%s chars=%d", request.voice, len(request.text))

    def run() -> tuple[str, bytes]:
        session = StudioSession(sample_rate=request.sample_rate, history=_history)
        settings = SpeechSettings.from_dict(request.settings.model_dump())
        if request.voice_profile:
            item = session.synthesize_clone(request.text, request.voice_profile, settings)
        else:
            item = session.synthesize_single(request.text, request.voice, settings)
        return item.id, export_wav(item.render.wav, request.format, request.quality)

    item_id, body = await _run_guarded(run)
    return _audio_response(body, request.format, item_id)


@app.post("/api/v1/dialogue")
async def dialogue(request: DialogueRequest):
    """Synthesize a two-speaker conversation from lines or a pasted script."""
    if len(request.speakers) > MAX_SPEAKERS:
        raise HTTPException(status_code=422, detail=f"At most {MAX_SPEAKERS} speakers are allowed.")

    def run() -> tuple[str, bytes]:
        speakers = [
            Speaker(
                id=s.id,
                name=s.name,
                voice=s.voice,
                settings=SpeechSettings.from_dict(s.settings.model_dump()),
            )
            for s in request.speakers
        ]
        if request.script:
            lines = parse_dialogue_script(request.script, speakers)
        else:
            lines = [
                DialogueLine(
                    speaker_id=line.speaker_id,
                    text=line.text,
                    emotion_override=line.emotion_override,
                )
                for line in request.lines
            ]
        session = StudioSession(sample_rate=request.sample_rate, history=_history)
        item = session.synthesize_dialogue(speakers, lines)
        return item.id, export_wav(item.render.wav, request.format, request.quality)

    item_id, body = await _run_guarded(run)
    return _audio_response(body, request.format, item_id)


@app.post("/api/v1/render")
async def render(request: RenderRequest):
    """Decode a base64 PCM payload obtained elsewhere and return it as a file."""

    def run() -> bytes:
        result = render_payload(request.audio_base64, request.sample_rate, request.channel_count)
        return export_wav(result.wav, request.format, request.quality)

    body = await _run_guarded(run)
    return _audio_response(body, request.format, "render")


@app.post("/api/v1/analyze")
async def analyze(request: RenderRequest):
    """Waveform peaks and level measurements for a base64 PCM payload."""

    def run() -> dict[str, Any]:
        result = render_payload(request.audio_base64, request.sample_rate, request.channel_count)
        buffer = result.buffer
        return {
            "sample_rate": buffer.sample_rate,
            "channel_count": buffer.channel_count,
            "frame_count": buffer.frame_count,
            "duration_seconds": buffer.duration_seconds,
            "peaks": waveform_peaks(buffer, request.bins),
            "levels": measure_levels(buffer),
        }

    content = await _run_guarded(run)
    return JSONResponse(status_code=200, content=content)


@app.post("/api/v1/clone/analyze")
async def clone_analyze(request: CloneAnalyzeRequest):
    """Fingerprint uploaded samples into a profile usable as ``voice_profile``."""
    logger.info("Voice clone analysis: %d sample(s)", len(request.samples))

    def run() -> dict[str, Any]:
        samples = [
            gemini_client.VoiceSample(data=s.data, mime_type=s.mime_type, file_name=s.file_name)
            for s in request.samples
        ]
        result = gemini_client.analyze_voice_samples(samples)
        return {"profile": result.profile, "confidence": result.confidence}

    content = await _run_guarded(run)
    return JSONResponse(status_code=200, content=content)


@app.get("/api/v1/voices")
async def voices():
    return JSONResponse(status_code=200, content={"voices": list_voices()})


@app.get("/api/v1/history")
async def history():
    return JSONResponse(
        status_code=200,
        content={"items": [item.summary() for item in _history.items()]},
    )


@app.get("/api/v1/history/{item_id}")
async def history_item(item_id: str):
    item = _history.get(item_id)
    wav = item.render.wav if item is not None else None
    if wav is None:
        raise HTTPException(status_code=404, detail="Render not found or no longer available.")
    return _audio_response(wav, ExportFormat.WAV, item.id)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _run_guarded(func):
    """Run ``func`` in a worker thread and map studio errors to HTTP errors."""
    try:
        return await asyncio.to_thread(func)
    except DecodeError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except EmptyAudioError as exc:
        logger.error("Empty audio from speech service: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc))
    except AudioExportError as exc:
        logger.error("Export failed: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except RuntimeError as exc:
        logger.error("Synthesis runtime error: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))


def _audio_response(body: bytes, fmt: ExportFormat | str, name: str) -> Response:
    try:
        fmt = ExportFormat(fmt)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return Response(
        content=body,
        media_type=mime_type_for(fmt),
        headers={"Content-Disposition": f'attachment; filename="vocalize-{name}.{fmt.value}"'},
    )
