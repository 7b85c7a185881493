"""
Configuration Module

This module manages application configuration settings and environment
variables for the database, authentication and mail delivery.

Features:
- Environment loading
- Database settings
- JWT settings
- Email settings
- CORS origins

Data Model:
- Connection strings
- Secrets
- SMTP credentials
- Server config

Security:
- Secrets read from environment
- No credentials in source
- Env isolation

Dependencies:
- os for env
- dotenv for loading

Author: Fleetsheet Development Team
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Environment
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# MongoDB Configuration
MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "Fleetsheet")
MONGODB_TLS = _env_flag("MONGODB_TLS")

# JWT Configuration
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Email Configuration
SMTP_SERVER = os.getenv("SMTP_SERVER", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = _env_flag("SMTP_USE_TLS", "true")
SMTP_TIMEOUT = float(os.getenv("SMTP_TIMEOUT", "30"))
FROM_EMAIL = os.getenv("FROM_EMAIL", "Fleetsheet <no-reply@fleetsheet.local>")

# Timesheets
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

# CORS
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
