# vocalize/api/__init__.py
# =========================
# API Layer: FastAPI application (see vocalize.api.synthesize).
