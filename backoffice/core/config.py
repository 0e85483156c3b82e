# backoffice/core/config.py

import os
import logging
from decimal import Decimal

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# =====================================================
# APPLICATION
# =====================================================
APP_ENV = os.getenv("APP_ENV")
if APP_ENV not in {"development", "staging", "production"}:
    raise ValueError("APP_ENV must be development | staging | production")

IS_PRODUCTION = APP_ENV == "production"

# =====================================================
# DATABASE
# =====================================================
DB_TYPE = os.getenv("DB_TYPE")
if DB_TYPE not in {"postgres", "sqlite"}:
    raise ValueError("DB_TYPE must be postgres | sqlite")

if DB_TYPE == "postgres":
    DATABASE_URL = os.getenv("DATABASE_URL")
    if not DATABASE_URL:
        raise ValueError("DATABASE_URL is required for Postgres")

elif DB_TYPE == "sqlite":
    if IS_PRODUCTION:
        raise ValueError("SQLite is NOT allowed in production")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./backoffice.db")

# ---- Pool tuning ----
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 10))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 20))
DB_POOL_TIMEOUT = int(os.getenv("DB_POOL_TIMEOUT", 30))
DB_ECHO_POOL = os.getenv("DB_ECHO_POOL", "false").lower() == "true"

# ---- SSL ----
DB_SSL_VERIFY = os.getenv("DB_SSL_VERIFY", "true").lower() == "true"
if IS_PRODUCTION and not DB_SSL_VERIFY:
    logger.warning("Running in production with relaxed SSL verification")

# =====================================================
# JWT / AUTH
# =====================================================
JWT_ACCESS_SECRET_KEY = os.getenv("JWT_ACCESS_SECRET_KEY")
if not JWT_ACCESS_SECRET_KEY:
    raise ValueError("JWT_ACCESS_SECRET_KEY must be set")

JWT_ALGORITHM = "HS256"

ACCESS_TOKEN_EXPIRE_MINUTES = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60)
)

# =====================================================
# APPROVALS
# =====================================================
# purchase orders strictly below this total are approved to level 2 on approve1
PO_AUTO_APPROVE_THRESHOLD = Decimal(
    os.getenv("PO_AUTO_APPROVE_THRESHOLD", "100000")
)
PO_AUTO_APPROVE_ROLE = os.getenv("PO_AUTO_APPROVE_ROLE", "project_director")

CASHBOOK_APPROVAL_LEVELS = int(os.getenv("CASHBOOK_APPROVAL_LEVELS", 2))
if CASHBOOK_APPROVAL_LEVELS not in {1, 2}:
    raise ValueError("CASHBOOK_APPROVAL_LEVELS must be 1 | 2")

# =====================================================
# DOCUMENT NUMBERS
# =====================================================
DOCUMENT_NUMBER_MAX_ATTEMPTS = int(
    os.getenv("DOCUMENT_NUMBER_MAX_ATTEMPTS", 3)
)

# =====================================================
# SCHEDULER
# =====================================================
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "false").lower() == "true"
STOCK_AUDIT_CRON_HOUR = int(os.getenv("STOCK_AUDIT_CRON_HOUR", 1))
