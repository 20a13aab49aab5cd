"""CLI script — process a Substack export into Markdown, CSV and JSON outputs.

Usage examples:
    python scripts/process_archive.py process ~/Downloads/substack-export
    python scripts/process_archive.py analytics export.zip -o reports/ --windows 1 3 7
    python scripts/process_archive.py content ~/Downloads/substack-export -v
    python scripts/process_archive.py subscribers ~/Downloads/substack-export
"""
import argparse
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

# Ensure project root is on sys.path
sys.path.insert(0, str(Path(__file__).parent.parent))

from analytics.report import build_report
from analytics.segmentation import calculate_subscriber_stats, segment_subscribers
from config.settings import ATTRIBUTION_WINDOWS, PUBLICATION_NAME
from exporters.files import write_analytics, write_content, write_dashboard, write_subscribers
from substack.archive import ArchiveError, ExportData, load_export
from utils.logger import get_logger, set_verbose

log = get_logger(__name__)


def _default_output(archive: Path) -> Path:
    """'output/' next to the archive folder or zip."""
    return archive.parent / "output"


def _positive_int(value: str) -> int:
    days = int(value)
    if days <= 0:
        raise argparse.ArgumentTypeError(f"window must be a positive number of days: {value}")
    return days


# ---------------------------------------------------------------------------
# Tasks: each returns True on success; failures are logged, not raised
# ---------------------------------------------------------------------------

def run_content(export: ExportData, out_dir: Path, args) -> bool:
    try:
        write_content(export.posts, out_dir, args.publication)
    except Exception as exc:
        log.error("Content export failed: %s", exc)
        return False
    return True


def run_subscribers(export: ExportData, out_dir: Path, args) -> bool:
    if not export.has_subscribers:
        log.error("Subscriber export failed: no email_list*.csv in %s", export.source)
        return False
    try:
        write_subscribers(segment_subscribers(export.subscribers),
                          calculate_subscriber_stats(export.subscribers), out_dir)
    except Exception as exc:
        log.error("Subscriber export failed: %s", exc)
        return False
    return True


def run_analytics(export: ExportData, out_dir: Path, args) -> bool:
    try:
        report = build_report(export, windows=args.windows, publication=args.publication)
        write_analytics(report, out_dir)
        write_dashboard(report, out_dir)
    except Exception as exc:
        log.error("Analytics failed: %s", exc)
        return False
    ov = report.overview
    log.info("Posts analyzed: %d | delivered: %d | average open rate: %.1f%%",
             ov.posts_with_analytics, ov.total_delivered, ov.average_open_rate)
    for result in report.attribution:
        log.info("%dd window: %d attributed, %d organic (%.1f%% coverage)",
                 result.window_days, result.total_attributed, result.organic_signups,
                 result.attribution_coverage)
    return True


TASKS: Dict[str, List[Callable]] = {
    "process": [run_content, run_subscribers, run_analytics],
    "content": [run_content],
    "subscribers": [run_subscribers],
    "analytics": [run_analytics],
}

HELP = {
    "process": "Run all processing: content, subscribers and analytics",
    "content": "Export posts to consolidated and per-post Markdown",
    "subscribers": "Export subscriber segments and statistics",
    "analytics": "Write the analytics report and dashboard data",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Process a Substack export for content, subscriber and analytics outputs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command", required=True)
    for name in TASKS:
        cmd = sub.add_parser(name, help=HELP[name], description=HELP[name])
        cmd.add_argument("archive", type=Path,
                         help="Path to the export folder or .zip")
        cmd.add_argument("-o", "--output", type=Path, default=None,
                         help="Output directory (default: output/ next to the archive)")
        cmd.add_argument("-v", "--verbose", action="store_true",
                         help="Debug logging")
        cmd.add_argument("--windows", type=_positive_int, nargs="+", metavar="DAYS",
                         default=list(ATTRIBUTION_WINDOWS),
                         help="Attribution windows in days (default: %(default)s)")
        cmd.add_argument("--publication", default=PUBLICATION_NAME,
                         help="Publication name used in report titles")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    set_verbose(args.verbose)

    archive = args.archive.expanduser().resolve()
    out_dir = (args.output.expanduser().resolve() if args.output
               else _default_output(archive))

    try:
        export = load_export(archive)
    except ArchiveError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    out_dir.mkdir(parents=True, exist_ok=True)
    log.info("Archive: %s", archive)
    log.info("Output:  %s", out_dir)

    results = [task(export, out_dir, args) for task in TASKS[args.command]]
    if not all(results):
        print("Some tasks had errors. Check the log above for details.", file=sys.stderr)
        return 1
    print(f"Done. Outputs written to {out_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
