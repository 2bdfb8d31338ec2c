"""
Django settings for the SmartWaste back office.

Values come from environment variables with development defaults.
"""
import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "dev-only-insecure-secret-key")
DEBUG = env_bool("DJANGO_DEBUG", True)
ALLOWED_HOSTS = [h for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",") if h]


INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third party
    "rest_framework",
    "django_filters",
    "drf_yasg",
    "rest_framework_simplejwt.token_blacklist",

    # Local apps
    "common",
    "accounts",
    "bins",
    "collection_management",
    "pickups",
    "bin_requests",
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

ROOT_URLCONF = "smartwaste.urls"

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

WSGI_APPLICATION = "smartwaste.wsgi.application"


# Database
# PostgreSQL when POSTGRES_DB is set, SQLite otherwise. SQLite runs every
# atomic block as BEGIN IMMEDIATE so per-bin collection writes serialize.
if os.environ.get("POSTGRES_DB"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["POSTGRES_DB"],
            "USER": os.environ.get("POSTGRES_USER", "postgres"),
            "PASSWORD": os.environ.get("POSTGRES_PASSWORD", ""),
            "HOST": os.environ.get("POSTGRES_HOST", "localhost"),
            "PORT": os.environ.get("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.environ.get("SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
            "OPTIONS": {
                "transaction_mode": "IMMEDIATE",
                "timeout": 20,
            },
            "TEST": {
                "NAME": str(BASE_DIR / "test_db.sqlite3"),
            },
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "accounts.User"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("DJANGO_TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"


# REST framework
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
    ],
    "EXCEPTION_HANDLER": "common.exceptions.api_exception_handler",
    "COERCE_DECIMAL_TO_STRING": True,
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(os.environ.get("JWT_ACCESS_MINUTES", "60"))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(os.environ.get("JWT_REFRESH_DAYS", "7"))),
}

SWAGGER_SETTINGS = {
    "SECURITY_DEFINITIONS": {
        "Bearer": {"type": "apiKey", "name": "Authorization", "in": "header"},
    },
}


# Pickup pricing. Every value can be overridden from the environment;
# a project may also replace PICKUP_FEES partially, missing keys fall back
# to the defaults in pickups.fees.
PICKUP_FEES = {
    "base_rates": {
        "BULKY_WASTE": os.environ.get("PICKUP_FEE_BULKY_WASTE", "25.00"),
        "E_WASTE": os.environ.get("PICKUP_FEE_E_WASTE", "15.00"),
        "ORGANIC": os.environ.get("PICKUP_FEE_ORGANIC", "10.00"),
        "RECYCLABLE": os.environ.get("PICKUP_FEE_RECYCLABLE", "10.00"),
        "HAZARDOUS": os.environ.get("PICKUP_FEE_HAZARDOUS", "10.00"),
        "GENERAL": os.environ.get("PICKUP_FEE_GENERAL", "10.00"),
    },
    "weight_rate": os.environ.get("PICKUP_FEE_WEIGHT_RATE", "2.00"),
    "extra_multiplier": os.environ.get("PICKUP_FEE_EXTRA_MULTIPLIER", "1.2"),
    "emergency_multiplier": os.environ.get("PICKUP_FEE_EMERGENCY_MULTIPLIER", "1.5"),
    "point_value": os.environ.get("PICKUP_REWARD_POINT_VALUE", "0.01"),
}

PAYMENT_GATEWAY = os.environ.get("PAYMENT_GATEWAY", "pickups.gateways.AcceptAllGateway")
PAYMENT_CURRENCY = os.environ.get("PAYMENT_CURRENCY", "USD")

# Unit prices for bin and bag orders, keyed by request type then item.
BIN_REQUEST_CATALOGUE = {
    "BIN": {
        "general": os.environ.get("BIN_PRICE_GENERAL", "25.00"),
        "recyclable": os.environ.get("BIN_PRICE_RECYCLABLE", "30.00"),
        "organic": os.environ.get("BIN_PRICE_ORGANIC", "35.00"),
        "hazardous": os.environ.get("BIN_PRICE_HAZARDOUS", "50.00"),
        "electronic": os.environ.get("BIN_PRICE_ELECTRONIC", "45.00"),
    },
    "BAG": {
        "biodegradable": os.environ.get("BAG_PRICE_BIODEGRADABLE", "2.00"),
        "recyclable": os.environ.get("BAG_PRICE_RECYCLABLE", "3.00"),
        "heavy_duty": os.environ.get("BAG_PRICE_HEAVY_DUTY", "5.00"),
        "compostable": os.environ.get("BAG_PRICE_COMPOSTABLE", "4.00"),
    },
}

NOTIFICATION_SINK = os.environ.get("NOTIFICATION_SINK", "common.notifications.LoggingSink")


# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.environ.get("DJANGO_LOG_LEVEL", "WARNING").upper(),
            "propagate": False,
        },
    },
}
