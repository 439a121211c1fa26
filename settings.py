"""
Environment-driven settings for the storefront API.

Everything is read once at import time from environment variables.
"""

import os

DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "furniture_store")

JWT_SECRET = os.getenv("JWT_SECRET", "devsecret")
JWT_ALGO = "HS256"
JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "7"))

APP_ENV = os.getenv("APP_ENV", "production")
DEBUG = APP_ENV == "development"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

ADMIN_EMAILS = {e.strip().lower() for e in os.getenv("ADMIN_EMAILS", "").split(",") if e.strip()}

OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
AI_MODEL = os.getenv("AI_MODEL", "gpt-4o-mini")

STORE_NAME = os.getenv("STORE_NAME", "Shaaban Furniture Hub")
STORE_LOCATION = os.getenv("STORE_LOCATION", "Zanzibar, Tanzania")
STORE_PHONE = os.getenv("STORE_PHONE", "+255 686 587 266")
STORE_EMAIL = os.getenv("STORE_EMAIL", "contact@shaabanfurniture.com")
CURRENCY = os.getenv("CURRENCY", "TZS")

PORT = int(os.getenv("PORT", "8000"))
