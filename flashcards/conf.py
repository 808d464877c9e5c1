# flashcards/conf.py
from django.conf import settings

DEFAULTS = {
    "MAX_BATCH_SIZE": 100,
    "FRONT_MAX_LENGTH": 200,
    "BACK_MAX_LENGTH": 500,
    "INPUT_TEXT_MIN_LENGTH": 1000,
    "INPUT_TEXT_MAX_LENGTH": 10000,
    "SESSION_COUNTER_MODE": "overwrite",
    "ORPHAN_AFTER_DAYS": 7,
    "DEFAULT_MODEL": "openai/gpt-4o-mini",
    "ALLOWED_MODELS": ["openai/gpt-4o-mini"],
    "OPENROUTER_API_KEY": "",
    "OPENROUTER_BASE_URL": "https://openrouter.ai/api/v1",
    "OPENROUTER_TIMEOUT": 60.0,
    "PAGE_SIZE_DEFAULT": 20,
    "PAGE_SIZE_MAX": 100,
}

COUNTER_MODES = ("overwrite", "accumulate")


def get_setting(name: str):
    """Read one key of the FLASHCARDS settings dict, falling back to DEFAULTS."""
    if name not in DEFAULTS:
        raise KeyError(f"unknown FLASHCARDS setting: {name}")
    return getattr(settings, "FLASHCARDS", {}).get(name, DEFAULTS[name])
