import os
from dotenv import load_dotenv
from pathlib import Path

# Load .env from the project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# SQLite file backing the key-value store
DEFAULT_DB_PATH = "/tmp/wellbeing.db"
DB_PATH = os.getenv("DB_PATH", DEFAULT_DB_PATH)

LOG_DIR = os.getenv("LOG_DIR", "logs")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Write endpoints only; reads are not limited
WRITE_REQUESTS_PER_MINUTE = int(os.getenv("WRITE_REQUESTS_PER_MINUTE", "60"))

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "http://localhost:8000,http://127.0.0.1:8000").split(",")
    if origin.strip()
]
