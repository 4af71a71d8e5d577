"""Django settings for the AIONET pAION ledger & governance backend.


This project serves the dashboard's money-like state:
- pAION ledger: balances, append-only journal, credit/debit/transfer/lock/unlock
- Governance: proposals, tier-weighted votes, tallies, expiry sweep
- tier_stub: local stand-in for the external NFT tier registry


JWT issuance, rate limiting and on-chain verification live outside this service;
requests arrive with an already-verified wallet address in X-User-Address.
"""

import os
from pathlib import Path
from decimal import Decimal


BASE_DIR = Path(__file__).resolve().parent.parent
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = os.getenv("DEBUG", "1") in ("1", "true", "True", "yes")
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "*").split(",")
CSRF_TRUSTED_ORIGINS = os.getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if os.getenv("CSRF_TRUSTED_ORIGINS") else []

def env_int(name, default):
    v = os.getenv(name)
    return int(v) if v else default

#######################
# Wallet allowed to call admin-only endpoints (add/spend tokens, close proposals)
ADMIN_WALLET_ADDRESS = os.getenv("ADMIN_WALLET_ADDRESS", "0x311479200d45ef0243b92dbcf9849b8f6b931d27ae885197ea73066724f2bcf4")

# pAION token policy
PAION = {
	"SYMBOL": "pAION",
	"DECIMALS": 6,
	"MAX_AMOUNT": Decimal(os.getenv("PAION_MAX_AMOUNT", "1000000")),
}

# Governance policy: tier -> voting power is configuration, not code
GOVERNANCE = {
	"VOTING_POWER": {"NOMAD": 1, "PRO": 3, "ROYAL": 5},
	"DEFAULT_TIER": "NOMAD",
	"PROPOSAL_THRESHOLD": env_int("PROPOSAL_THRESHOLD", 3),
	"DEFAULT_DURATION_DAYS": env_int("PROPOSAL_DURATION_DAYS", 7),
	"MAX_DURATION_DAYS": env_int("PROPOSAL_MAX_DURATION_DAYS", 365),
	"MAX_PAGE_SIZE": 100,
}

# Aggregate statistics only; balances are never served from cache
STATS_CACHE_TTL = env_int("STATS_CACHE_TTL", 600)
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
	"tier_stub",
]


MIDDLEWARE = [
	"django.middleware.security.SecurityMiddleware",
	"django.contrib.sessions.middleware.SessionMiddleware",
	"django.middleware.common.CommonMiddleware",
	"django.middleware.csrf.CsrfViewMiddleware",
	"django.contrib.auth.middleware.AuthenticationMiddleware",
	"django.contrib.messages.middleware.MessageMiddleware",
]


ROOT_URLCONF = "aionet.urls"
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


WSGI_APPLICATION = "aionet.wsgi.application"


DB_ENGINE = os.getenv("DB_ENGINE", "sqlite")
if DB_ENGINE == "postgres":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "aionet"),
            "USER": os.getenv("POSTGRES_USER", "aionet"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", "aionet"),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
        }
    }
else:
    # IMMEDIATE: every atomic block takes the write lock at BEGIN, so balance
    # check-then-act sequences are serialized; timeout makes writers queue.
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
            "OPTIONS": {
                "transaction_mode": "IMMEDIATE",
                "timeout": env_int("SQLITE_TIMEOUT", 30),
            },
            "TEST": {
                # file-backed so threaded tests share one database
                "NAME": BASE_DIR / "test_db.sqlite3",
            },
        }
    }


CACHES = {
	"default": {
		"BACKEND": "django.core.cache.backends.locmem.LocMemCache",
		"LOCATION": "aionet-stats",
	}
}


LOGGING = {
	"version": 1,
	"disable_existing_loggers": False,
	"formatters": {
		"standard": {"format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"},
	},
	"handlers": {
		"console": {"class": "logging.StreamHandler", "formatter": "standard"},
	},
	"root": {"handlers": ["console"], "level": os.getenv("LOG_LEVEL", "INFO")},
	"loggers": {
		"django.db.backends": {"level": "WARNING"},
	},
}


AUTH_PASSWORD_VALIDATORS = []


LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True


STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
