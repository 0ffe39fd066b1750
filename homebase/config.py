import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./homebase.db")

# Auth provider JWT settings (HS256 tokens issued by the hosted auth service)
AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET")
AUTH_JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE", "authenticated")
AUTH_JWT_ALGORITHM = "HS256"
if not AUTH_JWT_SECRET:
    import warnings

    warnings.warn(
        "AUTH_JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    AUTH_JWT_SECRET = "INSECURE-DEV-KEY-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Frontend base URL for links in emails and Stripe onboarding redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")
APP_URL = os.getenv("APP_URL", "https://homebaseproapp.com")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", FRONTEND_URL).split(",") if o.strip()]

# Stripe Configuration
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")
STRIPE_CONNECT_COUNTRY = os.getenv("STRIPE_CONNECT_COUNTRY", "US")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "HomeBase <noreply@homebaseproapp.com>")

# Partner program
# Rates are basis points: 1000 bp = 10%
PARTNER_DEFAULT_COMMISSION_RATE_BP = int(os.getenv("PARTNER_DEFAULT_COMMISSION_RATE_BP", "1000"))
PARTNER_DEFAULT_DISCOUNT_RATE_BP = int(os.getenv("PARTNER_DEFAULT_DISCOUNT_RATE_BP", "1000"))
PARTNER_MINIMUM_PAYOUT_CENTS = int(os.getenv("PARTNER_MINIMUM_PAYOUT_CENTS", "5000"))
PARTNER_APPLY_RATE_LIMIT = int(os.getenv("PARTNER_APPLY_RATE_LIMIT", "5"))
PARTNER_APPLY_RATE_WINDOW = int(os.getenv("PARTNER_APPLY_RATE_WINDOW", "3600"))

# Workflow notifications
DEFAULT_QUIET_HOURS_START = os.getenv("DEFAULT_QUIET_HOURS_START", "22:00")
DEFAULT_QUIET_HOURS_END = os.getenv("DEFAULT_QUIET_HOURS_END", "08:00")

# Database pool (ignored for SQLite)
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "20"))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", "30"))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", "30"))
DB_POOL_RECYCLE = int(os.getenv("DB_POOL_RECYCLE", "300"))
DB_LOG_SLOW_QUERIES = os.getenv("DB_LOG_SLOW_QUERIES", "true").lower() == "true"
DB_SLOW_QUERY_THRESHOLD = float(os.getenv("DB_SLOW_QUERY_THRESHOLD", "1.0"))
