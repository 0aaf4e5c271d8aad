"""Settings shared by every environment.

Environment modules import from here and override what differs.
"""

import os


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "email_approval_db"),
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Public URL of this service (action links) and of the web frontend (redirects).
BASE_URL = os.getenv("BASE_URL", "http://localhost:5000")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

COMPANY_NAME = os.getenv("COMPANY_NAME", "GEER-ANTE ERP")
COMPANY_ID = int(os.getenv("COMPANY_ID", "1"))

APPROVAL_TOKEN_SALT = os.getenv("APPROVAL_TOKEN_SALT", "email-approval")
APPROVAL_TOKEN_TTL_SECONDS = int(os.getenv("APPROVAL_TOKEN_TTL_SECONDS", str(7 * 24 * 60 * 60)))

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_SSL = _flag("SMTP_SSL")
SMTP_STARTTLS = _flag("SMTP_STARTTLS", "1")
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "no-reply@localhost")
SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", COMPANY_NAME)
EMAIL_SEND_TIMEOUT_SECONDS = float(os.getenv("EMAIL_SEND_TIMEOUT_SECONDS", "30"))

# Internal API guard; empty disables the check.
INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "")

TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_CHAT_ID = os.getenv("TELEGRAM_CHAT_ID", "")
TELEGRAM_DEBUG = _flag("TELEGRAM_DEBUG")
