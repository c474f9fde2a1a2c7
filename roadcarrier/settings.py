import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent

# ---------------------------------
#   .env
# ---------------------------------
# Load .env from the project root when present
env_path = BASE_DIR / ".env"
if env_path.exists():
    load_dotenv(env_path)

# ---------------------------------
#   Security / Debug
# ---------------------------------
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "change-me-in-development-only")

DEBUG = os.getenv("DJANGO_DEBUG", "True") == "True"

# e.g. "127.0.0.1 localhost jbrc.in www.jbrc.in"
_raw_hosts = os.getenv("DJANGO_ALLOWED_HOSTS", "")
if _raw_hosts.strip():
    ALLOWED_HOSTS = _raw_hosts.split()
else:
    ALLOWED_HOSTS = ["127.0.0.1", "localhost", "testserver"]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Project apps
    "core.apps.CoreConfig",
    "parties.apps.PartiesConfig",
    "transport.apps.TransportConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "roadcarrier.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "roadcarrier.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("DJANGO_DB_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}

LANGUAGE_CODE = "en-in"

TIME_ZONE = "Asia/Kolkata"
USE_I18N = True
USE_TZ = True

# -----------------------------
#   Static / Media
# -----------------------------
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

MEDIA_URL = "media/"
MEDIA_ROOT = BASE_DIR / "media"

LOGIN_URL = "admin:login"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------
#   Logging
# -----------------------------
LOG_LEVEL = os.getenv("DJANGO_LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.getenv("DJANGO_FRAMEWORK_LOG_LEVEL", "WARNING"),
            "propagate": False,
        },
    },
}

# -----------------------------
#   Document numbering
# -----------------------------
# DEFAULT_RESET: "never" (one global sequence), "year" or "fiscal_year" (April - March)
NUMBERING = {
    "DEFAULT_RESET": os.getenv("NUMBERING_RESET", "never"),
    "MAX_RETRIES": int(os.getenv("NUMBERING_MAX_RETRIES", "5")),
}

# -----------------------------
#   Letterhead (PDF / Excel)
# -----------------------------
COMPANY = {
    "NAME": os.getenv("COMPANY_NAME", "Jodhpur Bombay Road Carrier"),
    "ADDRESS": os.getenv(
        "COMPANY_ADDRESS",
        "P.No. 69, Transport Nagar, IInd PHASE BASANI, JODHPUR",
    ),
    "GSTIN": os.getenv("COMPANY_GSTIN", "08AAAHL5963P1ZK"),
}

# -----------------------------
#   Payment reminders
# -----------------------------
REMINDERS = {
    "COUNTRY_CODE": os.getenv("REMINDER_COUNTRY_CODE", "91"),
    "CHAT_URL": "https://wa.me/",
}
