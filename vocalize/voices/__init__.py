# vocalize/voices/__init__.py
# ============================
# Voice catalog: studio voices, virtual-voice mapping, emotions, settings.
