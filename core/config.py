"""Runtime configuration read from environment variables.

Values are resolved once at import time. Override them through the process
environment (or a shell `export`) before starting the server.
"""

import os
from typing import List

BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Storage
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///calorie_tracker.db")

# Upstream chat-completion provider (OpenRouter compatible)
LLM_API_BASE_URL = os.getenv("LLM_API_BASE_URL", "https://openrouter.ai/api/v1")
LLM_DEFAULT_MODEL = os.getenv("LLM_DEFAULT_MODEL", "deepseek/deepseek-chat-v3.1:free")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "8"))
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.5"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "300"))
APP_REFERER = os.getenv("APP_REFERER", "http://localhost:3001")
APP_TITLE = os.getenv("APP_TITLE", "Calorie Tracker App")

# HTTP server
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3002"))


def _split_origins(raw: str) -> List[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()] or ["*"]


CORS_ORIGINS = _split_origins(os.getenv("CORS_ORIGINS", "*"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", os.path.join(BASE_DIR, "logs"))
