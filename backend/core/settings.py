# backend/core/settings.py
import os
from pathlib import Path
from datetime import timedelta

from django.core.exceptions import ImproperlyConfigured
from dotenv import load_dotenv, find_dotenv
import dj_database_url

# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────
def get_env_var(name: str, default: str | None = None, required: bool = False) -> str:
    val = os.getenv(name, default)
    if required and not val:
        raise ImproperlyConfigured(f"Missing required environment variable: {name}")
    return val  # type: ignore

def get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "t", "yes", "y")

# ──────────────────────────────────────────────────────────────────────────────
# Paths & .env
# ──────────────────────────────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent       # ~/backend
REPO_DIR = BASE_DIR.parent

explicit_env = REPO_DIR / ".env"
if explicit_env.exists():
    load_dotenv(dotenv_path=explicit_env, override=True)
else:
    discovered = find_dotenv(filename=".env", usecwd=True)
    if discovered:
        load_dotenv(discovered, override=True)

# ──────────────────────────────────────────────────────────────────────────────
# Security & Debug
# ──────────────────────────────────────────────────────────────────────────────
SECRET_KEY = get_env_var("SECRET_KEY", required=True)
DEBUG = get_bool("DEBUG", default=False)
ALLOWED_HOSTS = [h.strip() for h in get_env_var("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]

# Public URLs. FRONTEND_URL is the base of every client signing link.
FRONTEND_URL = get_env_var("FRONTEND_URL", "http://localhost:5173").rstrip("/")
SITE_URL     = get_env_var("SITE_URL",     "http://127.0.0.1:8000").rstrip("/")

CSRF_TRUSTED_ORIGINS = [
    SITE_URL,
    FRONTEND_URL,
] + [
    u.strip() for u in get_env_var("CSRF_TRUSTED_ORIGINS", "").split(",") if u.strip().startswith("http")
]

# ──────────────────────────────────────────────────────────────────────────────
# Installed Apps & Middleware
# ──────────────────────────────────────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third-party
    "corsheaders",
    "rest_framework",
    "rest_framework_simplejwt",

    # Local apps
    "core",
    "accounts",
    "projects",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "core.urls"
WSGI_APPLICATION = "core.wsgi.application"
ASGI_APPLICATION = "core.asgi.application"

AUTH_USER_MODEL = "accounts.User"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ──────────────────────────────────────────────────────────────────────────────
# Database
# ──────────────────────────────────────────────────────────────────────────────
DEFAULT_DB_URL = f"sqlite:///{(REPO_DIR / 'db.sqlite3').resolve()}"
DATABASE_URL = os.environ.get("DATABASE_URL", DEFAULT_DB_URL)

DATABASES = {
    "default": dj_database_url.parse(
        DATABASE_URL,
        conn_max_age=600,
        ssl_require=DATABASE_URL.startswith(("postgres://", "postgresql://")),
    )
}

# ──────────────────────────────────────────────────────────────────────────────
# Templates
# ──────────────────────────────────────────────────────────────────────────────
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS":    [],
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

# ──────────────────────────────────────────────────────────────────────────────
# Static & Media / object store
# ──────────────────────────────────────────────────────────────────────────────
STATIC_URL = "/static/"
STATIC_ROOT = REPO_DIR / "staticfiles"

MEDIA_URL = "/media/"
MEDIA_ROOT = REPO_DIR / "media"

USE_S3 = get_bool("USE_S3", default=False)

if USE_S3:
    AWS_ACCESS_KEY_ID       = get_env_var("AWS_ACCESS_KEY_ID", required=True)
    AWS_SECRET_ACCESS_KEY   = get_env_var("AWS_SECRET_ACCESS_KEY", required=True)
    AWS_STORAGE_BUCKET_NAME = get_env_var("AWS_STORAGE_BUCKET_NAME", required=True)
    AWS_S3_REGION_NAME      = get_env_var("AWS_S3_REGION_NAME", "us-east-1")
    AWS_DEFAULT_ACL         = "private"
    AWS_QUERYSTRING_AUTH    = True
    AWS_S3_FILE_OVERWRITE   = False
    _default_storage = {"BACKEND": "storages.backends.s3boto3.S3Boto3Storage"}
else:
    _default_storage = {"BACKEND": "django.core.files.storage.FileSystemStorage"}

STORAGES = {
    "default": _default_storage,
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
}

# ──────────────────────────────────────────────────────────────────────────────
# DRF / JWT
# ──────────────────────────────────────────────────────────────────────────────
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "EXCEPTION_HANDLER": "core.exceptions.api_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME":  timedelta(minutes=int(get_env_var("ACCESS_TOKEN_LIFETIME", "60"))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(get_env_var("REFRESH_TOKEN_LIFETIME", "7"))),
    "ALGORITHM":              "HS256",
    "SIGNING_KEY":            SECRET_KEY,
    "USER_ID_FIELD":          "id",
    "USER_ID_CLAIM":          "user_id",
    "AUTH_HEADER_TYPES":      ("Bearer",),
    "UPDATE_LAST_LOGIN":      False,
}

# ──────────────────────────────────────────────────────────────────────────────
# CORS (the signing pages live on the frontend origin)
# ──────────────────────────────────────────────────────────────────────────────
_default_cors = f"{FRONTEND_URL},http://127.0.0.1:5173,http://localhost:5173"
CORS_ALLOWED_ORIGINS = [
    *[o.strip() for o in get_env_var("CORS_ALLOWED_ORIGINS", _default_cors).split(",") if o.strip()]
]
CORS_ALLOW_CREDENTIALS = True
CORS_EXPOSE_HEADERS = ["Content-Disposition"]

# Signature images arrive base64-encoded in JSON bodies.
DATA_UPLOAD_MAX_MEMORY_SIZE = int(get_env_var("DATA_UPLOAD_MAX_MEMORY_SIZE", str(10 * 1024 * 1024)))

# ──────────────────────────────────────────────────────────────────────────────
# Agreements & signing
# ──────────────────────────────────────────────────────────────────────────────
AGREEMENT_EDIT_WINDOW_HOURS = int(get_env_var("AGREEMENT_EDIT_WINDOW_HOURS", "48"))
SIGNATURE_LINK_TTL_DAYS     = int(get_env_var("SIGNATURE_LINK_TTL_DAYS", "2"))
SIGNED_PDF_URL_MINUTES      = int(get_env_var("SIGNED_PDF_URL_MINUTES", str(60 * 24 * 7)))
SIGNED_FILE_URL_SALT        = get_env_var("SIGNED_FILE_URL_SALT", "projects.files.download.v1")
AGREEMENT_BRAND_NAME        = get_env_var("AGREEMENT_BRAND_NAME", "Mudhro")
AGREEMENT_CURRENCY_CODE     = get_env_var("AGREEMENT_CURRENCY_CODE", "INR")

# ──────────────────────────────────────────────────────────────────────────────
# Celery (link-expiry sweep only)
# ──────────────────────────────────────────────────────────────────────────────
from celery.schedules import crontab
REDIS_URL = get_env_var("REDIS_URL", "")
CELERY_BROKER_URL     = REDIS_URL or "redis://localhost:6379/0"
CELERY_RESULT_BACKEND = CELERY_BROKER_URL
CELERY_BEAT_SCHEDULE  = {
    "expire-signature-links-hourly": {
        "task":    "projects.tasks.expire_signature_links",
        "schedule": crontab(minute=0),
    },
}

# ──────────────────────────────────────────────────────────────────────────────
# Email
# ──────────────────────────────────────────────────────────────────────────────
if DEBUG:
    EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"
else:
    if os.getenv("EMAIL_HOST") and os.getenv("EMAIL_HOST_USER"):
        EMAIL_BACKEND = "django.core.mail.backends.smtp.EmailBackend"
    else:
        EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

EMAIL_HOST          = get_env_var("EMAIL_HOST", required=False)
EMAIL_PORT          = int(get_env_var("EMAIL_PORT", "587"))
EMAIL_USE_TLS       = get_bool("EMAIL_USE_TLS", True)
EMAIL_HOST_USER     = get_env_var("EMAIL_HOST_USER", required=False)
EMAIL_HOST_PASSWORD = get_env_var("EMAIL_HOST_PASSWORD", required=False)
DEFAULT_FROM_EMAIL  = get_env_var("DEFAULT_FROM_EMAIL", "Mudhro <no-reply@mudhro.com>")

# ──────────────────────────────────────────────────────────────────────────────
# Production Security (enable when DEBUG=False)
# ──────────────────────────────────────────────────────────────────────────────
if not DEBUG:
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SECURE_SSL_REDIRECT = get_bool("SECURE_SSL_REDIRECT", True)
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SESSION_COOKIE_SAMESITE = "Lax"
    CSRF_COOKIE_SAMESITE = "Lax"

# ── LOGGING ───────────────────────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "default"},
    },
    "root": {"handlers": ["console"], "level": "INFO"},
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "accounts": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "projects": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}
