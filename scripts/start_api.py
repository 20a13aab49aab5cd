"""Run the export analytics API with uvicorn.

Usage:
    python scripts/start_api.py
    python scripts/start_api.py --port 8080 --log-level debug
    python scripts/start_api.py --host 0.0.0.0 --reload

POST /analyze takes {"archive_path": "...", "windows": [1, 7]} and returns
the full report as JSON. Host and port default to API_HOST / API_PORT.
"""
import argparse
import sys
from pathlib import Path

# Ensure project root is on sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from config.settings import API_HOST, API_PORT, LOG_LEVEL


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Serve Substack export analytics over HTTP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--host", default=API_HOST, help="Bind address (default: %(default)s)")
    parser.add_argument("--port", type=int, default=API_PORT, help="Port (default: %(default)s)")
    parser.add_argument("--log-level", default=LOG_LEVEL.lower(),
                        choices=["critical", "error", "warning", "info", "debug"],
                        help="uvicorn log level (default: %(default)s)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    uvicorn.run("api.main:app", host=args.host, port=args.port,
                log_level=args.log_level, reload=args.reload)


if __name__ == "__main__":
    main()
