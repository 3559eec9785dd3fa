"""Runtime settings, read from the environment (and a project .env file)."""
import os
from pathlib import Path

from dotenv import load_dotenv

# .env at the project root
package_dir = Path(__file__).parent
env_file = package_dir.parent / ".env"
if env_file.exists():
    load_dotenv(env_file)


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL = os.getenv("OPENAI_MODEL") or "gpt-4o-mini"

LICHESS_API_TOKEN = os.getenv("LICHESS_API_TOKEN", "")

# seconds, for every upstream call (chess platforms and the LLM)
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "15"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "120"))

USER_AGENT = "ChessFocus/1.0 (contact: contact@chessfocus.app)"

# Chess.com batch fetch only looks at the newest monthly archives
CHESSCOM_MAX_ARCHIVES = 6

OPPONENT_MIN_GAMES = 3
OPPONENT_MAX_GAMES = 20
OPPONENT_DEFAULT_GAMES = 10

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
    ).split(",")
    if origin.strip()
]
