import os

from dotenv import load_dotenv

# Load .env from the project root
load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dealhub.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Hosts under the base domain are tenant subdomains; anything else is a custom domain.
# Empty means the subdomain is inferred from the host shape (sub.domain.tld).
PUBLIC_BASE_DOMAIN = os.getenv("PUBLIC_BASE_DOMAIN", "").strip().lower()
DEFAULT_TENANT_SUBDOMAIN = os.getenv("DEFAULT_TENANT_SUBDOMAIN", "").strip().lower() or None

SITE_URL = (os.getenv("SITE_URL") or os.getenv("NEXT_PUBLIC_SITE_URL") or "http://localhost:3000").rstrip("/")
SHORT_CODE_LENGTH = int(os.getenv("SHORT_CODE_LENGTH", "6"))

LEADERBOARD_DEFAULT_LIMIT = int(os.getenv("LEADERBOARD_DEFAULT_LIMIT", "10"))
LEADERBOARD_MAX_LIMIT = int(os.getenv("LEADERBOARD_MAX_LIMIT", "100"))

AUTO_CREATE_SCHEMA = os.getenv(
    "AUTO_CREATE_SCHEMA",
    "1" if IS_DEV else "0",
).strip().lower() in {"1", "true", "yes", "on"}

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
