"""
Environment-driven settings.

Values come from the process environment, optionally seeded from the
nearest .env file (current directory first, then its parents).
"""

import os
from pathlib import Path

from dotenv import load_dotenv


def _find_env_file() -> Path:
    env_path = Path(".env")
    if not env_path.exists():
        for parent in Path.cwd().parents:
            candidate = parent / ".env"
            if candidate.exists():
                return candidate
    return env_path


_env_path = _find_env_file()
if _env_path.exists():
    load_dotenv(_env_path)


MMDC_COMMAND = os.environ.get("MMDC_COMMAND", "mmdc").split()
RENDER_TIMEOUT = float(os.environ.get("RENDER_TIMEOUT", "30"))
DEFAULT_DIRECTION = os.environ.get("DEFAULT_DIRECTION", "TD")
MAX_MESSAGE_LENGTH = int(os.environ.get("MAX_MESSAGE_LENGTH", "20000"))
MERMAID_THEME = os.environ.get("MERMAID_THEME", "default")
