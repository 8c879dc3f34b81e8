import os
from datetime import timedelta
from pathlib import Path

from celery.schedules import crontab
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR.parent / ".env")


def _get_env(*keys, default=None):
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_bool(*keys, default=False):
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


def _get_int(*keys, default=None):
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_list(*keys, default=""):
    v = _get_env(*keys, default=default)
    return [item.strip() for item in v.split(",") if item.strip()]


SECRET_KEY = _get_env("DJANGO_SECRET_KEY", default="dev-only-secret-key-change-me")
DEBUG = _get_bool("DEBUG", default=False)
ALLOWED_HOSTS = _get_list("ALLOWED_HOSTS", default="localhost,127.0.0.1,testserver")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework_simplejwt.token_blacklist",
    "django_filters",
    "import_export",
    "catalog",
    "customers",
    "offers",
    "cart",
    "orders.apps.OrdersConfig",
    "campaigns",
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

ROOT_URLCONF = "storefront.urls"
WSGI_APPLICATION = "storefront.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": _get_env("DB_PATH", default=str(BASE_DIR / "db.sqlite3")),
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "storefront",
    }
}

AUTH_USER_MODEL = "customers.User"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "Africa/Lagos"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_FILTER_BACKENDS": ["django_filters.rest_framework.DjangoFilterBackend"],
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=60),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "ROTATE_REFRESH_TOKENS": True,
    "BLACKLIST_AFTER_ROTATION": True,
}

# Cart
CART_SESSION_COOKIE = _get_env("CART_SESSION_COOKIE", default="cart_session_id")
CART_COOKIE_AGE = _get_int("CART_COOKIE_AGE", default=60 * 60 * 24 * 7)
CART_ALLOWED_ORIGINS = _get_list(
    "CART_ALLOWED_ORIGINS",
    default="https://www.teneraholisticandwellness.com,http://localhost:3000",
)
CART_READY_INTERVAL = _get_int("CART_READY_INTERVAL", default=2)
CART_READY_WINDOW = _get_int("CART_READY_WINDOW", default=10)
CART_SYNC_RATE_LIMIT = _get_int("CART_SYNC_RATE_LIMIT", default=10)

FRONTEND_URL = _get_env("FRONTEND_URL", default="http://localhost:3000")
BACKEND_URL = _get_env("BACKEND_URL", default="http://localhost:8000")

# Paystack
PAYSTACK_PUBLIC_KEY = _get_env("PAYSTACK_PUBLIC_KEY", default="")
PAYSTACK_SECRET_KEY = _get_env("PAYSTACK_SECRET_KEY", default="")
PAYSTACK_SUBACCOUNT = _get_env("PAYSTACK_SUBACCOUNT", default="")
PAYSTACK_CALLBACK_URL = _get_env(
    "PAYSTACK_CALLBACK_URL", default="https://www.teneraholisticandwellness.com/thankyoupage"
)
PAYSTACK_CURRENCY = "NGN"
PAYSTACK_WEBHOOK_RATE_LIMIT = _get_int("PAYSTACK_WEBHOOK_RATE_LIMIT", default=10)

# Pending checkouts older than this get a reminder
ABANDONED_CHECKOUT_AFTER_MINUTES = _get_int("ABANDONED_CHECKOUT_AFTER_MINUTES", default=30)

# Email
EMAIL_BACKEND = _get_env(
    "EMAIL_BACKEND", default="django.core.mail.backends.console.EmailBackend"
)
EMAIL_HOST = _get_env("EMAIL_HOST", default="localhost")
EMAIL_PORT = _get_int("EMAIL_PORT", default=25)
EMAIL_HOST_USER = _get_env("EMAIL_HOST_USER", default="")
EMAIL_HOST_PASSWORD = _get_env("EMAIL_HOST_PASSWORD", default="")
EMAIL_USE_TLS = _get_bool("EMAIL_USE_TLS", default=False)
DEFAULT_FROM_EMAIL = _get_env("DEFAULT_FROM_EMAIL", default="info@bouncebacktolifeconsult.pro")
STAFF_ORDER_EMAIL = _get_env("STAFF_ORDER_EMAIL", default="orders@teneraholisticandwellness.com")

# Celery
CELERY_BROKER_URL = _get_env("CELERY_BROKER_URL", default="redis://localhost:6379/0")
CELERY_RESULT_BACKEND = _get_env("CELERY_RESULT_BACKEND", default=None)
CELERY_TASK_ALWAYS_EAGER = _get_bool("CELERY_TASK_ALWAYS_EAGER", default=False)
CELERY_TIMEZONE = TIME_ZONE
CELERY_BEAT_SCHEDULE = {
    "notify-abandoned-checkouts": {
        "task": "orders.tasks.notify_abandoned_checkouts",
        "schedule": crontab(minute="*/15"),
    },
    "send-due-scheduled-emails": {
        "task": "campaigns.tasks.send_due_scheduled_emails",
        "schedule": crontab(minute="*"),
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{asctime} {levelname} {name} {message}",
            "style": "{",
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
        "level": _get_env("LOG_LEVEL", default="INFO"),
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": False,
        },
    },
}
