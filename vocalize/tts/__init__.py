# vocalize/tts/__init__.py
# =========================
# Speech service clients. Each returns base64 16-bit LE mono PCM or raises.
