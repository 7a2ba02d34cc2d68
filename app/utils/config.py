import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


def _get_env(name: str, default: str = None) -> str:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip()


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


APP_NAME = "Resume AI API"
APP_VERSION = _get_env("APP_VERSION", "1.0.0")
ENVIRONMENT = _get_env("ENVIRONMENT", "development").lower()

# Database
MONGO_DETAILS = _get_env("MONGO_DETAILS", "mongodb://localhost:27017")
DB_NAME = _get_env("DB_NAME", "resume_ai_db")

# AI providers
OPENAI_API_KEY = _get_env("OPENAI_API_KEY")
OPENAI_BASE_URL = _get_env("OPENAI_BASE_URL")
OPENROUTER_API_KEY = _get_env("OPENROUTER_API_KEY")
OPENROUTER_BASE_URL = _get_env("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1")
OLLAMA_BASE_URL = _get_env("OLLAMA_BASE_URL", "http://localhost:11434")
AI_TIMEOUT_SECONDS = _get_env_float("AI_TIMEOUT_SECONDS", 60.0)
AI_MAX_RETRIES = _get_env_int("AI_MAX_RETRIES", 0)
# generation calls slower than this are logged as warnings
AI_SLOW_CALL_MS = _get_env_float("AI_SLOW_CALL_MS", 15000.0)

# Model gating
PREMIUM_MODEL = _get_env("PREMIUM_MODEL", "gpt-4o")
FREE_MODEL = _get_env("FREE_MODEL", "gpt-4.1-nano")
PUBLIC_SCORER_MODEL = _get_env("PUBLIC_SCORER_MODEL")

# Rate limiting
RATE_LIMIT_BACKEND = _get_env("RATE_LIMIT_BACKEND", "memory").lower()
RATE_LIMIT_WINDOW_SECONDS = _get_env_int("RATE_LIMIT_WINDOW_SECONDS", 60)
RATE_LIMIT_FREE = _get_env_int("RATE_LIMIT_FREE", 5)
RATE_LIMIT_PRO = _get_env_int("RATE_LIMIT_PRO", 20)
RATE_LIMIT_PUBLIC = _get_env_int("RATE_LIMIT_PUBLIC", 3)
TRUST_X_FORWARDED_FOR = _get_env_bool("TRUST_X_FORWARDED_FOR", False)

# Auth
SESSION_COOKIE_NAME = _get_env("SESSION_COOKIE_NAME", "session_token")
