"""Centralised .env loader and app configuration."""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root
_ROOT = Path(__file__).parent.parent
load_dotenv(_ROOT / ".env")

PUBLICATION_NAME: str = os.getenv("PUBLICATION_NAME", "Newsletter")

# Export + output directories
ARCHIVE_DIR = Path(os.getenv("ARCHIVE_DIR", str(_ROOT / "archive")))
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", str(_ROOT / "output")))


def _parse_windows(raw: str) -> tuple:
    days = []
    for part in raw.split(","):
        part = part.strip()
        if part.isdigit() and int(part) > 0:
            days.append(int(part))
    return tuple(days) or (1, 2, 7)


# Attribution lookback windows, in days
ATTRIBUTION_WINDOWS: tuple = _parse_windows(os.getenv("ATTRIBUTION_WINDOWS", "1,2,7"))

# Top-N post lists
TOP_POSTS_LIMIT = int(os.getenv("TOP_POSTS_LIMIT", "10"))

# Open-rate ranking only considers posts with at least this many deliveries.
# Fixed policy, not read from the environment.
MIN_DELIVERED_FOR_RATE = 100

# IANA zone used for hour-of-day / day-of-week open tallies ("" = system local)
REPORT_TIMEZONE: str = os.getenv("REPORT_TIMEZONE", "")

# Fall back to prefix matching when an analytics file id has no exact post match
PARTIAL_ID_MATCHING: bool = os.getenv("PARTIAL_ID_MATCHING", "true").lower() == "true"

# Thread pool size for per-post CSV reads
READ_WORKERS = int(os.getenv("READ_WORKERS", "8"))

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# HTTP API (scripts/start_api.py)
API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
API_PORT = int(os.getenv("API_PORT", "8000"))
