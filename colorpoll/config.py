# env vars + constants
import os

SERVICE_ID = os.getenv("SERVICE_ID", "colorpoll")
PORT = int(os.getenv("PORT", "8000"))

# empty -> votes kept in this process' memory
STORE_URL = os.getenv("STORE_URL", "").strip().rstrip("/")
STORE_TIMEOUT = float(os.getenv("STORE_TIMEOUT", "1.5"))

SESSION_COOKIE = os.getenv("SESSION_COOKIE", "session_id")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# session registry bounds; an evicted session behaves like a restart
SESSION_MAX = int(os.getenv("SESSION_MAX", "10000"))
SESSION_IDLE_TTL = float(os.getenv("SESSION_IDLE_TTL", "3600"))
