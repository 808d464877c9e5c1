# studydeck/settings.py
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DJANGO_DEBUG", "false").lower() == "true"
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "rest_framework",
    "flashcards",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]

ROOT_URLCONF = "studydeck.urls"
WSGI_APPLICATION = "studydeck.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("STUDYDECK_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True
TIME_ZONE = "UTC"

APPEND_SLASH = False

REST_FRAMEWORK = {
    # Basic first so unauthenticated requests get 401 with WWW-Authenticate.
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.BasicAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "EXCEPTION_HANDLER": "flashcards.exceptions.api_exception_handler",
}

FLASHCARDS = {
    "MAX_BATCH_SIZE": 100,
    "FRONT_MAX_LENGTH": 200,
    "BACK_MAX_LENGTH": 500,
    "INPUT_TEXT_MIN_LENGTH": 1000,
    "INPUT_TEXT_MAX_LENGTH": 10000,
    # "overwrite" keeps only the latest batch's counts; "accumulate" adds them up.
    "SESSION_COUNTER_MODE": os.getenv("STUDYDECK_SESSION_COUNTER_MODE", "overwrite"),
    "ORPHAN_AFTER_DAYS": 7,
    "DEFAULT_MODEL": "openai/gpt-4o-mini",
    "ALLOWED_MODELS": [
        "openai/gpt-4o-mini",
        "openai/gpt-4",
        "openai/gpt-3.5-turbo",
        "anthropic/claude-3-sonnet",
        "anthropic/claude-3-haiku",
    ],
    "OPENROUTER_API_KEY": os.getenv("OPENROUTER_API_KEY", ""),
    "OPENROUTER_BASE_URL": os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1"),
    "OPENROUTER_TIMEOUT": float(os.getenv("OPENROUTER_TIMEOUT", "60")),
    "PAGE_SIZE_DEFAULT": 20,
    "PAGE_SIZE_MAX": 100,
}

LOG_LEVEL = os.getenv("STUDYDECK_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "flashcards": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": True},
    },
}
