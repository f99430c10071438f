import os
from pathlib import Path
from dotenv import load_dotenv
import dj_database_url

BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.environ.get("SECRET_KEY", os.environ.get("DJANGO_SECRET_KEY", "changeme"))
DEBUG = os.getenv("DEBUG", os.getenv("DJANGO_DEBUG", "True")) == "True"
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver").split(",")

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "rest_framework",
    "ops.apps.OpsConfig",  # Operations & observability
    "tenant.apps.TenantConfig",
    "accounting.apps.AccountingConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "tenant.middleware.TenantContextMiddleware",
]

ROOT_URLCONF = "ledger_backend.urls"

WSGI_APPLICATION = "ledger_backend.wsgi.application"

# =============================================================================
# Database Configuration
# =============================================================================
DATABASES = {
    "default": dj_database_url.config(
        env="DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
    )
}

# SQLite serializes writers with a file lock. IMMEDIATE transactions take the
# write lock at BEGIN so concurrent posts wait on the busy timeout instead of
# failing on lock upgrade.
if DATABASES["default"]["ENGINE"] == "django.db.backends.sqlite3":
    db_options = DATABASES["default"].setdefault("OPTIONS", {})
    db_options.setdefault("timeout", int(os.getenv("SQLITE_TIMEOUT", "30")))
    db_options.setdefault("transaction_mode", "IMMEDIATE")
    DATABASES["default"]["CONN_MAX_AGE"] = 0
    # A file-backed test database lets worker threads share one database.
    DATABASES["default"]["TEST"] = {"NAME": str(BASE_DIR / "test_ledger.sqlite3")}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    # Callers reach the ledger through an authenticated gateway that has
    # already scoped the tenant.
    "DEFAULT_AUTHENTICATION_CLASSES": (),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.AllowAny",
    ),
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "accounting.views.ledger_exception_handler",
}

# =============================================================================
# Ledger Configuration
# =============================================================================
# Minor-unit precision used when a tenant does not override it.
LEDGER_CURRENCY_DECIMAL_PLACES = int(os.getenv("LEDGER_CURRENCY_DECIMAL_PLACES", "2"))

# Compare-and-swap attempts on a voucher sequence before giving up.
LEDGER_SEQUENCE_MAX_RETRIES = int(os.getenv("LEDGER_SEQUENCE_MAX_RETRIES", "5"))

# Zero padding of the numeric part of a voucher number (CPV-000123).
LEDGER_VOUCHER_NO_WIDTH = int(os.getenv("LEDGER_VOUCHER_NO_WIDTH", "6"))

# "original": reversing vouchers carry the voided voucher's date.
# "void_date": reversing vouchers are dated on the day of the void.
LEDGER_REVERSAL_DATE_POLICY = os.getenv("LEDGER_REVERSAL_DATE_POLICY", "original")

# When True the balance sheet carries unclosed income/expense activity as a
# "Current Period Earnings" equity line.
LEDGER_FOLD_NET_INCOME_INTO_EQUITY = (
    os.getenv("LEDGER_FOLD_NET_INCOME_INTO_EQUITY", "True") == "True"
)

# =============================================================================
# Structured Logging Configuration
# =============================================================================
from ops.logging_config import get_logging_config
LOGGING = get_logging_config(DEBUG)

# =============================================================================
# Observability Configuration
# =============================================================================
# Application version (set via CI/CD)
VERSION = os.getenv("APP_VERSION", "dev")
