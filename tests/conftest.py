import json

import pytest


PROVIDER_ENV = [
    "GEMINI_API_KEY",
    "GEMINI_MODEL",
    "OPENROUTER_API_KEY",
    "OPENROUTER_MODEL",
    "OPENROUTER_FALLBACK_MODEL",
    "SAMBANOVA_API_KEY",
    "SAMBANOVA_MODEL",
    "ALLOW_DEMO_MODE",
    "LLM_TIMEOUT_SECS",
    "SUPABASE_URL",
    "SUPABASE_KEY",
]

PAGE_HTML = (
    "<!DOCTYPE html><html><head><style>body{margin:0}</style></head>"
    "<body><canvas id='c'></canvas><script>const planet;\nlet t = 0;</script></body></html>"
)


@pytest.fixture(autouse=True)
def offline_env(monkeypatch):
    """Keep every test offline regardless of the developer's shell."""
    if not _live_run():
        for name in PROVIDER_ENV:
            monkeypatch.delenv(name, raising=False)


def _live_run() -> bool:
    import os

    return os.getenv("RUN_LIVE_LLM_TESTS", "0").lower() in {"1", "true", "yes", "on"}


@pytest.fixture
def split_response():
    """A well-formed provider response using the split delimiter."""
    meta = {
        "title": "Orbit Lab",
        "description": "Planets around a star.",
        "instructions": "Drag the gravity slider.",
        "controls": [
            {"id": "g", "type": "slider", "label": "Gravity", "min": 1, "max": 10, "step": 0.5, "defaultValue": 5},
            {"id": "reset", "type": "button", "label": "Reset"},
        ],
    }
    return json.dumps(meta) + "|||SPLIT|||" + PAGE_HTML

