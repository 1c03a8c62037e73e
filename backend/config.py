# backend/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


GROQ_API_KEY = os.getenv("GROQ_API_KEY") or None
GROQ_MODEL = os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")

# auto | template | groq
QUESTION_SOURCE = os.getenv("QUESTION_SOURCE", "auto").lower()
ENRICHMENT_CONTEXT_CHARS = _int_env("ENRICHMENT_CONTEXT_CHARS", 800)

RATE_LIMIT_MAX_REQUESTS = _int_env("RATE_LIMIT_MAX_REQUESTS", 50)
RATE_LIMIT_WINDOW_SECONDS = _int_env("RATE_LIMIT_WINDOW_SECONDS", 60 * 60)
RATE_LIMIT_SWEEP_SECONDS = _int_env("RATE_LIMIT_SWEEP_SECONDS", 10 * 60)

MAX_UPLOAD_BYTES = _int_env("MAX_UPLOAD_BYTES", 4 * 1024 * 1024)

# collapse | splice
SUBSTITUTION_STRATEGY = os.getenv("SUBSTITUTION_STRATEGY", "collapse").lower()

CORS_ALLOW_ORIGINS = os.getenv("CORS_ALLOW_ORIGINS", "*").split(",")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv(
    "LOG_FORMAT",
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
)
