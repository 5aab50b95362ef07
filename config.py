"""Environment-driven settings. Values come from .env via python-dotenv."""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent

SUPABASE_URL = os.environ.get("SUPABASE_URL")
SUPABASE_KEY = os.environ.get("SUPABASE_KEY")

# Gemini (AI question generation). API_KEY is accepted for older .env files.
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")
GEMINI_MODEL = os.environ.get("GEMINI_MODEL", "gemini-2.5-flash")

# Where paused / in-progress test sessions are kept between page loads
SESSION_DIR = Path(os.environ.get("SESSION_DIR") or PROJECT_ROOT / ".sessions")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
