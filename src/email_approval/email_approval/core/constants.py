"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60
DEFAULT_TOKEN_SALT = "email-approval"
NONCE_BYTES = 16

DEFAULT_BASE_URL = "http://localhost:5000"
DEFAULT_FRONTEND_URL = "http://localhost:3000"
DEFAULT_COMPANY_NAME = "GEER-ANTE ERP"

DEFAULT_SEND_TIMEOUT_SECONDS = 30
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 200
DEFAULT_STATS_DAYS = 7

GENERIC_TEMPLATE = "generic-approval"
APPROVAL_MODULE_CONTEXT = "APPROVAL_REQUEST"
