"""
tests/test_api.py
==================
HTTP API Tests

The Gemini synthesizers are patched at module level, so no API key or
network access is required. pydub is mocked for lossy exports.

Test categories:
    1. Synthesis endpoints (single, clone, dialogue)
    2. Error mapping to HTTP status codes
    3. Render and analyze endpoints
    4. Voice catalog and render history
    5. Voice clone analysis
"""

import os
import sys
import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from vocalize.api import synthesize as api_module
from vocalize.audio.codec import EmptyAudioError
from vocalize.audio.pcm import MAX_CHANNELS, MAX_SAMPLE_RATE, WAV_HEADER_SIZE
from vocalize.tts.gemini_client import VoiceProfile, VoiceSample


# ===================================================================
# Test fixtures
# ===================================================================

# int16 LE samples [0, 16384, -16384, 0]
PAYLOAD = "AAAAQADAAAA="

SPEAKERS = [
    {"id": "1", "name": "Narrator", "voice": "Kore"},
    {"id": "2", "name": "Guide", "voice": "Lyra", "settings": {"emotion": "friendly"}},
]


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        api_module._history.clear()
        self.client = TestClient(api_module.app)

    def tearDown(self):
        api_module._history.clear()


# ===================================================================
# 1. Synthesis
# ===================================================================


class TestSynthesize(ApiTestCase):

    @patch("vocalize.tts.gemini_client.synthesize_single", return_value=PAYLOAD)
    def test_returns_wav(self, mock_single):
        resp = self.client.post("/api/v1/synthesize", json={"text": "Hello", "voice": "Orion"})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "audio/wav")
        self.assertEqual(resp.content[:4], b"RIFF")
        self.assertEqual(len(resp.content), WAV_HEADER_SIZE + 8)
        self.assertRegex(
            resp.headers["content-disposition"],
            r'^attachment; filename="vocalize-[0-9a-f]{32}\.wav"$',
        )
        text, voice, settings = mock_single.call_args.args
        self.assertEqual((text, voice), ("Hello", "Orion"))
        self.assertEqual(settings.rate, 1.0)

    @patch("vocalize.tts.gemini_client.synthesize_single", return_value=PAYLOAD)
    def test_settings_forwarded(self, mock_single):
        self.client.post(
            "/api/v1/synthesize",
            json={"text": "Hi", "settings": {"rate": 1.5, "pitch": "high", "emotion": "sad"}},
        )
        settings = mock_single.call_args.args[2]
        self.assertEqual(settings.rate, 1.5)
        self.assertEqual(settings.pitch.value, "high")
        self.assertEqual(settings.emotion.value, "sad")

    @patch("vocalize.tts.gemini_client.synthesize_clone", return_value=PAYLOAD)
    @patch("vocalize.tts.gemini_client.synthesize_single")
    def test_voice_profile_uses_clone(self, mock_single, mock_clone):
        resp = self.client.post(
            "/api/v1/synthesize",
            json={"text": "Hi", "voice_profile": "raspy tenor"},
        )
        self.assertEqual(resp.status_code, 200)
        mock_single.assert_not_called()
        self.assertEqual(mock_clone.call_args.args[1], "raspy tenor")

    @patch("vocalize.audio.export.AudioSegment")
    @patch("vocalize.tts.gemini_client.synthesize_single", return_value=PAYLOAD)
    def test_mp3_export(self, mock_single, mock_segment_cls):
        segment = MagicMock()
        segment.export.side_effect = lambda out, **kwargs: out.write(b"ID3")
        mock_segment_cls.from_wav.return_value = segment

        resp = self.client.post(
            "/api/v1/synthesize",
            json={"text": "Hi", "format": "mp3", "quality": "128kbps"},
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "audio/mpeg")
        self.assertEqual(resp.content, b"ID3")
        self.assertTrue(resp.headers["content-disposition"].endswith('.mp3"'))
        self.assertEqual(segment.export.call_args.kwargs["bitrate"], "128k")


class TestDialogue(ApiTestCase):

    @patch("vocalize.tts.gemini_client.synthesize_dialogue", return_value=PAYLOAD)
    def test_lines(self, mock_dialogue):
        resp = self.client.post(
            "/api/v1/dialogue",
            json={
                "speakers": SPEAKERS,
                "lines": [
                    {"speaker_id": "1", "text": "Welcome."},
                    {"speaker_id": "2", "text": "Thanks.", "emotion_override": "happy"},
                ],
            },
        )

        self.assertEqual(resp.status_code, 200)
        speakers, lines = mock_dialogue.call_args.args
        self.assertEqual([s.name for s in speakers], ["Narrator", "Guide"])
        self.assertEqual(speakers[1].settings.emotion.value, "friendly")
        self.assertEqual(lines[1].emotion_override.value, "happy")

        summary = self.client.get("/api/v1/history").json()["items"][0]
        self.assertEqual(summary["mode"], "multi")
        self.assertEqual(summary["voice_name"], "Narrator & Guide")

    @patch("vocalize.tts.gemini_client.synthesize_dialogue", return_value=PAYLOAD)
    def test_script_import(self, mock_dialogue):
        resp = self.client.post(
            "/api/v1/dialogue",
            json={"speakers": SPEAKERS, "script": "guide: Hello.\nStranger: Who?\nnoise"},
        )

        self.assertEqual(resp.status_code, 200)
        lines = mock_dialogue.call_args.args[1]
        self.assertEqual([(line.speaker_id, line.text) for line in lines], [("2", "Hello."), ("1", "Who?")])

    @patch("vocalize.tts.gemini_client.synthesize_dialogue", return_value=PAYLOAD)
    def test_too_many_speakers(self, mock_dialogue):
        speakers = [{"id": str(n), "name": f"S{n}"} for n in range(11)]
        resp = self.client.post(
            "/api/v1/dialogue",
            json={"speakers": speakers, "lines": [{"speaker_id": "0", "text": "Hi"}]},
        )
        self.assertEqual(resp.status_code, 422)
        mock_dialogue.assert_not_called()

    @patch("vocalize.tts.gemini_client.synthesize_dialogue", return_value=PAYLOAD)
    def test_no_lines(self, mock_dialogue):
        resp = self.client.post("/api/v1/dialogue", json={"speakers": SPEAKERS})
        self.assertEqual(resp.status_code, 422)


# ===================================================================
# 2. Error mapping
# ===================================================================


class TestErrorMapping(ApiTestCase):

    @patch("vocalize.tts.gemini_client.synthesize_single", side_effect=EmptyAudioError("no audio"))
    def test_empty_audio_is_502(self, mock_single):
        resp = self.client.post("/api/v1/synthesize", json={"text": "Hello"})
        self.assertEqual(resp.status_code, 502)
        self.assertEqual(resp.json()["detail"], "no audio")

    @patch("vocalize.tts.gemini_client.synthesize_single", return_value="")
    def test_empty_payload_is_502(self, mock_single):
        resp = self.client.post("/api/v1/synthesize", json={"text": "Hello"})
        self.assertEqual(resp.status_code, 502)

    @patch(
        "vocalize.tts.gemini_client.synthesize_single",
        side_effect=RuntimeError("GEMINI_API_KEY environment variable is not set."),
    )
    def test_runtime_error_is_500(self, mock_single):
        resp = self.client.post("/api/v1/synthesize", json={"text": "Hello"})
        self.assertEqual(resp.status_code, 500)

    @patch("vocalize.tts.gemini_client.synthesize_single", return_value="@@@@")
    def test_malformed_payload_is_422(self, mock_single):
        resp = self.client.post("/api/v1/synthesize", json={"text": "Hello"})
        self.assertEqual(resp.status_code, 422)

    @patch("vocalize.tts.gemini_client.synthesize_single", return_value=PAYLOAD)
    def test_validation_errors_are_422(self, mock_single):
        cases = [
            {"text": "   "},
            {"text": "Hi", "sample_rate": 44100},
            {"text": "Hi", "format": "flac"},
            {"text": "Hi", "settings": {"emotion": "bored"}},
        ]
        for body in cases:
            with self.subTest(body=body):
                resp = self.client.post("/api/v1/synthesize", json=body)
                self.assertEqual(resp.status_code, 422)

    @patch("vocalize.tts.gemini_client.synthesize_single", return_value=PAYLOAD)
    def test_unknown_export_rejected_before_synthesis(self, mock_single):
        for body in ({"text": "Hi", "format": "flac"}, {"text": "Hi", "quality": "64kbps"}):
            with self.subTest(body=body):
                resp = self.client.post("/api/v1/synthesize", json=body)
                self.assertEqual(resp.status_code, 422)
        mock_single.assert_not_called()
        self.assertEqual(len(api_module._history), 0)

    @patch("vocalize.tts.gemini_client.synthesize_dialogue", return_value=PAYLOAD)
    def test_unknown_dialogue_format_rejected_before_synthesis(self, mock_dialogue):
        resp = self.client.post(
            "/api/v1/dialogue",
            json={"speakers": SPEAKERS, "script": "Narrator: Hi.", "format": "flac"},
        )
        self.assertEqual(resp.status_code, 422)
        mock_dialogue.assert_not_called()

    @patch("vocalize.audio.export.AudioSegment")
    @patch("vocalize.tts.gemini_client.synthesize_single", return_value=PAYLOAD)
    def test_export_failure_is_500(self, mock_single, mock_segment_cls):
        mock_segment_cls.from_wav.side_effect = OSError("ffmpeg not found")
        resp = self.client.post("/api/v1/synthesize", json={"text": "Hi", "format": "ogg"})
        self.assertEqual(resp.status_code, 500)


# ===================================================================
# 3. Render and analyze
# ===================================================================


class TestRender(ApiTestCase):

    def test_render_wav(self):
        resp = self.client.post(
            "/api/v1/render", json={"audio_base64": PAYLOAD, "sample_rate": 16000},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.content), WAV_HEADER_SIZE + 8)
        # sample rate field of the header
        self.assertEqual(int.from_bytes(resp.content[24:28], "little"), 16000)
        self.assertIn('filename="vocalize-render.wav"', resp.headers["content-disposition"])

    def test_render_does_not_touch_history(self):
        self.client.post("/api/v1/render", json={"audio_base64": PAYLOAD})
        self.assertEqual(self.client.get("/api/v1/history").json()["items"], [])

    def test_missing_audio_is_502(self):
        resp = self.client.post("/api/v1/render", json={})
        self.assertEqual(resp.status_code, 502)

    def test_bad_input_is_422(self):
        for body in (
            {"audio_base64": "A*=="},
            {"audio_base64": PAYLOAD, "channel_count": 0},
            {"audio_base64": PAYLOAD, "sample_rate": -1},
        ):
            with self.subTest(body=body):
                self.assertEqual(self.client.post("/api/v1/render", json=body).status_code, 422)

    def test_analyze(self):
        resp = self.client.post(
            "/api/v1/analyze", json={"audio_base64": PAYLOAD, "sample_rate": 24000, "bins": 4},
        )
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["frame_count"], 4)
        self.assertEqual(data["channel_count"], 1)
        self.assertEqual(len(data["peaks"]), 4)
        self.assertEqual(max(data["peaks"]), 1.0)
        self.assertIn("rms_dbfs", data["levels"])

    def test_analyze_invalid_bins(self):
        for bins in (0, 10**9):
            with self.subTest(bins=bins):
                resp = self.client.post("/api/v1/analyze", json={"audio_base64": PAYLOAD, "bins": bins})
                self.assertEqual(resp.status_code, 422)

    def test_header_overflow_is_422(self):
        for body in (
            {"audio_base64": PAYLOAD, "sample_rate": 3_000_000_000},
            {"audio_base64": PAYLOAD, "sample_rate": MAX_SAMPLE_RATE + 1},
            {"audio_base64": PAYLOAD, "channel_count": MAX_CHANNELS + 1},
            # each value fits alone; together the byte rate does not
            {"audio_base64": PAYLOAD, "sample_rate": MAX_SAMPLE_RATE, "channel_count": 2},
        ):
            with self.subTest(body=body):
                self.assertEqual(self.client.post("/api/v1/render", json=body).status_code, 422)


# ===================================================================
# 4. Catalog and history
# ===================================================================


class TestCatalogAndHistory(ApiTestCase):

    def test_voices(self):
        voices = self.client.get("/api/v1/voices").json()["voices"]
        self.assertEqual(len(voices), 28)
        self.assertEqual(voices[0]["id"], "Aoede")

    @patch("vocalize.tts.gemini_client.synthesize_single", return_value=PAYLOAD)
    def test_history_download(self, mock_single):
        self.client.post("/api/v1/synthesize", json={"text": "Hello", "voice": "Puck"})
        items = self.client.get("/api/v1/history").json()["items"]

        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["voice_name"], "Puck")
        self.assertTrue(items[0]["available"])

        resp = self.client.get(f"/api/v1/history/{items[0]['id']}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.headers["content-type"], "audio/wav")
        self.assertEqual(resp.content[:4], b"RIFF")

    def test_history_missing(self):
        self.assertEqual(self.client.get("/api/v1/history/nope").status_code, 404)


# ===================================================================
# 5. Voice clone analysis
# ===================================================================

SAMPLE_BODY = {
    "samples": [
        {"data": "AAEC", "mime_type": "audio/wav", "file_name": "take1.wav"},
        {"data": "AwQF", "mime_type": "audio/mpeg"},
    ],
}


class TestCloneAnalyze(ApiTestCase):

    @patch(
        "vocalize.tts.gemini_client.analyze_voice_samples",
        return_value=VoiceProfile("warm baritone, slow cadence", 92),
    )
    def test_returns_profile(self, mock_analyze):
        resp = self.client.post("/api/v1/clone/analyze", json=SAMPLE_BODY)

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"profile": "warm baritone, slow cadence", "confidence": 92})
        samples = mock_analyze.call_args.args[0]
        self.assertEqual(
            samples,
            [
                VoiceSample(data="AAEC", mime_type="audio/wav", file_name="take1.wav"),
                VoiceSample(data="AwQF", mime_type="audio/mpeg", file_name=""),
            ],
        )

    @patch("vocalize.tts.gemini_client._get_client")
    def test_no_samples_is_422(self, mock_get_client):
        resp = self.client.post("/api/v1/clone/analyze", json={"samples": []})
        self.assertEqual(resp.status_code, 422)
        mock_get_client.assert_not_called()

    @patch("vocalize.tts.gemini_client._get_client")
    def test_malformed_sample_is_422(self, mock_get_client):
        body = {"samples": [{"data": "***", "mime_type": "audio/wav"}]}
        self.assertEqual(self.client.post("/api/v1/clone/analyze", json=body).status_code, 422)
        mock_get_client.assert_not_called()

    @patch(
        "vocalize.tts.gemini_client.analyze_voice_samples",
        side_effect=RuntimeError("Gemini voice analysis failed: quota"),
    )
    def test_runtime_error_is_500(self, mock_analyze):
        resp = self.client.post("/api/v1/clone/analyze", json=SAMPLE_BODY)
        self.assertEqual(resp.status_code, 500)


if __name__ == "__main__":
    unittest.main()
