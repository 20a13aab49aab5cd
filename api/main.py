"""FastAPI server: run the analytics pipeline over an export on disk."""
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is on sys.path so all project imports work
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi import APIRouter, FastAPI, HTTPException
from pydantic import BaseModel, Field

from analytics.report import build_report, report_to_dict
from config.settings import ATTRIBUTION_WINDOWS, PUBLICATION_NAME
from substack.archive import ArchiveError, load_export
from utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter()

app = FastAPI(title="Substack Export Analytics API")


# ── Request models ───────────────────────────────────────────────────────────

class AnalyzeRequest(BaseModel):
    archive_path: str
    windows: Optional[List[int]] = Field(default=None, min_length=1)
    publication: Optional[str] = None


# ── Endpoints ────────────────────────────────────────────────────────────────

@router.get("/health")
def health():
    return {"status": "ok"}


@router.post("/analyze")
def analyze_endpoint(req: AnalyzeRequest):
    """Load the export at ``archive_path`` and return the full report as JSON."""
    path = Path(req.archive_path).expanduser()
    if not path.exists():
        raise HTTPException(status_code=404, detail=f"Archive not found: {path}")

    windows = tuple(req.windows) if req.windows else ATTRIBUTION_WINDOWS
    if any(w <= 0 for w in windows):
        raise HTTPException(status_code=400, detail="Attribution windows must be positive")

    try:
        export = load_export(path)
    except ArchiveError as e:
        raise HTTPException(status_code=422, detail=str(e))

    report = build_report(export, windows=windows,
                          publication=req.publication or PUBLICATION_NAME)
    log.info("Analyzed %s: %d posts, windows %s", path, len(export.posts), windows)
    return report_to_dict(report)


# Wire router into standalone app (used when running api/main.py directly)
app.include_router(router)
