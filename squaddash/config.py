"""SquadDash Configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Workspace whose squad folder is aggregated (defaults to the current directory)
TEAM_ROOT = Path(os.getenv("SQUADDASH_TEAM_ROOT", os.getcwd())).resolve()

# Squad folder override; empty means auto-detect (.squad, then legacy .ai-team)
SQUAD_FOLDER = os.getenv("SQUADDASH_SQUAD_FOLDER", "")

# Roster retry: team.md may exist before its Members table has been written
ROSTER_RETRY_DELAY_SECONDS = _env_float("SQUADDASH_ROSTER_RETRY_DELAY_SECONDS", 1.5)

# File watcher
WATCH_ENABLED = _env_bool("SQUADDASH_WATCH_ENABLED", True)

# Observability
OTEL_ENABLED = _env_bool("SQUADDASH_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("SQUADDASH_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("SQUADDASH_OTEL_SERVICE_NAME", "squaddash")
PROM_PORT = _env_int("SQUADDASH_PROM_PORT", 9464)

# Server settings
HOST = os.getenv("SQUADDASH_HOST", "127.0.0.1")
PORT = _env_int("SQUADDASH_PORT", 8000)

# CORS
FRONTEND_ORIGIN = os.getenv("SQUADDASH_FRONTEND_ORIGIN", "http://localhost:3000")
