import os

REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", 6379))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD", None)

# Public base URL of this service, used for hook callbacks and guest links
LOCAL_BASE_URL = os.getenv("LOCAL_BASE_URL", "http://localhost:8000").rstrip("/")

HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", 150))
GLANCE_KEY = os.getenv("GLANCE_KEY", "guest-history-glance")

_chat_api_timeout = os.getenv("CHAT_API_TIMEOUT")
CHAT_API_TIMEOUT = float(_chat_api_timeout) if _chat_api_timeout else None

HISTORY_FLAG = "history"
GREETING_FLAG = "greeting"
FLAG_NAMES = (HISTORY_FLAG, GREETING_FLAG)
