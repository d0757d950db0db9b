"""Django settings for the myBizHub escrow ledger service.


This project owns the money side of marketplace checkout:
- Verified payments are held in escrow per order (pending wallet balance)
- A cron-driven sweep releases matured holds to the vendor wallet
- Disputes freeze a hold until it is released or refunded

Auth, payment verification and notifications belong to other services.
"""

import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_int(name, default):
	v = os.getenv(name)
	return int(v) if v not in (None, "") else default

#######################
# Escrow timing. Checkout holds funds for ESCROW_HOLD_MS before the sweep may release them.
ESCROW_HOLD_MS = env_int("ESCROW_HOLD_MS", 5 * 60 * 1000)

# Sweep backpressure: rows read per call, releases attempted per call.
ESCROW_SWEEP_SCAN_LIMIT = env_int("ESCROW_SWEEP_SCAN_LIMIT", 300)
ESCROW_SWEEP_BATCH_LIMIT = env_int("ESCROW_SWEEP_BATCH_LIMIT", 60)

# Commit attempts before a contended transaction is reported as transient.
ESCROW_STORE_MAX_ATTEMPTS = env_int("ESCROW_STORE_MAX_ATTEMPTS", 5)

# Shared secrets (Bearer tokens) for the cron sweep and dispute resolution.
# Empty => allow all (dev).
ESCROW_CRON_SECRET = os.getenv("ESCROW_CRON_SECRET", "")
ESCROW_ADMIN_SECRET = os.getenv("ESCROW_ADMIN_SECRET", "")

# HMAC secret for the payment gateway webhook (set in env)
PAYMENT_WEBHOOK_SECRET = os.getenv("PAYMENT_WEBHOOK_SECRET", "dev-secret-change-me")
#######################


INSTALLED_APPS = [
	"django.contrib.admin",
	"django.contrib.auth",
	"django.contrib.contenttypes",
	"django.contrib.sessions",
	"django.contrib.messages",
	"django.contrib.staticfiles",
	# local apps
	"core",
	"api",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.contrib.sessions.middleware.SessionMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
	"django.contrib.auth.middleware.AuthenticationMiddleware",
	"django.contrib.messages.middleware.MessageMiddleware",
]


ROOT_URLCONF = "bizhub.urls"
TEMPLATES = [
	{
		"BACKEND": "django.template.backends.django.DjangoTemplates",
		"DIRS": [],
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


WSGI_APPLICATION = "bizhub.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "bizhub"),
            "USER": os.getenv("POSTGRES_USER", "bizhub"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "bizhub"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "plain"},
	},
	"loggers": {
		"core": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": True},
		"api": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": True},
	},
}


AUTH_PASSWORD_VALIDATORS = []


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
