import os

from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./rankitpro.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local", "test"}
IS_STAGE = ENV_NORMALIZED in {"stage", "staging"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

# Session cookie
DEV_SESSION_SECRET = "rankitpro-dev-session-secret"
SESSION_SECRET = os.getenv("SESSION_SECRET", "").strip() or (DEV_SESSION_SECRET if IS_DEV else "")
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "rankitpro_session").strip() or "rankitpro_session"
SESSION_MAX_AGE_SECONDS = int(
    os.getenv("SESSION_MAX_AGE_SECONDS", str(2 * 60 * 60 if IS_PROD else 4 * 60 * 60))
)
REMEMBER_ME_MAX_AGE_SECONDS = int(os.getenv("REMEMBER_ME_MAX_AGE_SECONDS", str(30 * 24 * 60 * 60)))
SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", "0" if IS_DEV else "1")
SESSION_COOKIE_HTTPONLY = _env_flag("SESSION_COOKIE_HTTPONLY", "1")
SESSION_COOKIE_SAMESITE = os.getenv(
    "SESSION_COOKIE_SAMESITE",
    "strict" if IS_PROD else "lax",
).strip().lower()
if SESSION_COOKIE_SAMESITE not in {"lax", "strict", "none"}:
    SESSION_COOKIE_SAMESITE = "strict" if IS_PROD else "lax"
SESSION_COOKIE_DOMAIN = os.getenv("SESSION_COOKIE_DOMAIN", "").strip() or None

SESSION_STORE = os.getenv("SESSION_STORE", "memory" if IS_DEV else "database").strip().lower()
MAX_SESSIONS_PER_USER = int(os.getenv("MAX_SESSIONS_PER_USER", "3"))

# Rate limit (fixed window por IP)
RATE_LIMIT_REQUESTS = int(os.getenv("RATE_LIMIT_REQUESTS", "100"))
RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "900"))
AUTH_RATE_LIMIT_REQUESTS = int(os.getenv("AUTH_RATE_LIMIT_REQUESTS", "5"))
AUTH_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv("AUTH_RATE_LIMIT_WINDOW_SECONDS", "900"))
# Quantos proxies confiáveis ficam na frente da app (0 = ignora X-Forwarded-For)
TRUSTED_PROXY_HOPS = max(0, int(os.getenv("TRUSTED_PROXY_HOPS", "0")))

# Auth (JWT, app mobile)
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "").strip() or (DEV_SESSION_SECRET if IS_DEV else "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRE_MINUTES = int(os.getenv("JWT_EXPIRE_MINUTES", "720"))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Bootstrap do super admin
BOOTSTRAP_SUPER_ADMIN_EMAIL = os.getenv("BOOTSTRAP_SUPER_ADMIN_EMAIL", "").strip().lower()
BOOTSTRAP_SUPER_ADMIN_PASSWORD = os.getenv("BOOTSTRAP_SUPER_ADMIN_PASSWORD", "").strip()
BOOTSTRAP_SUPER_ADMIN_USERNAME = os.getenv("BOOTSTRAP_SUPER_ADMIN_USERNAME", "admin").strip() or "admin"

WORDPRESS_TIMEOUT_SECONDS = float(os.getenv("WORDPRESS_TIMEOUT_SECONDS", "15"))
