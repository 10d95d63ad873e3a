# vocalize/__init__.py
# =====================
# Vocalize: voice synthesis studio backend
#
# Layers:
#   - vocalize.audio   base64 / PCM / WAV codec, export, analysis
#   - vocalize.voices  voice catalog and speech instructions
#   - vocalize.tts     Gemini speech client (source of base64 PCM)
#   - vocalize.studio  render orchestration and history
#   - vocalize.api     HTTP endpoints

__version__ = "1.0.0"
