import os
from dotenv import load_dotenv

# Load .env from the backend directory
load_dotenv(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))

SECRET_KEY: str = os.getenv("SECRET_KEY", "learnpath-dev-secret-change-in-prod")
ALGORITHM: str = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "10080"))  # 7 days

# Database, stored in backend/data/ by default
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.abspath(os.path.join(BASE_DIR, "..", ".."))

DATABASE_PATH: str = os.getenv(
    "DATABASE_PATH",
    os.path.join(BACKEND_DIR, "data", "learnpath.db"),
)
MIGRATIONS_DIR: str = os.path.join(BACKEND_DIR, "migrations")

# Every learner profile is scoped to a subject; only the Python catalog ships today
DEFAULT_SUBJECT: str = os.getenv("DEFAULT_SUBJECT", "python")

# Classification service (OpenRouter-compatible chat completions). No key -> heuristics only.
OPENROUTER_API_KEY: str = os.getenv("OPENROUTER_API_KEY", "").strip()
OPENROUTER_URL: str = os.getenv("OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions").strip()
OPENROUTER_MODEL: str = os.getenv("OPENROUTER_MODEL", "openai/gpt-3.5-turbo").strip()
CLASSIFIER_TIMEOUT_SECONDS: float = float(os.getenv("CLASSIFIER_TIMEOUT_SECONDS", "20"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
