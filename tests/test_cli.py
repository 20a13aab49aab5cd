"""Tests for scripts/process_archive.py."""
import json

from scripts.process_archive import main


class TestProcessArchive:

    def test_process_writes_all_outputs(self, export_dir, tmp_path):
        out = tmp_path / "out"
        assert main(["process", str(export_dir), "-o", str(out), "--windows", "1", "7"]) == 0
        assert (out / "content" / "all-posts.md").is_file()
        assert (out / "subscribers" / "summary.json").is_file()
        attribution = json.loads((out / "dashboard" / "attribution.json").read_text())
        assert [r["window_days"] for r in attribution] == [1, 7]

    def test_default_output_next_to_archive(self, export_dir):
        assert main(["analytics", str(export_dir)]) == 0
        assert (export_dir.parent / "output" / "analytics" / "analytics-report.md").is_file()

    def test_zip_input(self, export_zip, tmp_path):
        assert main(["content", str(export_zip), "-o", str(tmp_path / "out")]) == 0
        assert (tmp_path / "out" / "content" / "individual" / "2024-01-01-first-post.md").is_file()

    def test_missing_archive_fails(self, tmp_path):
        assert main(["process", str(tmp_path / "nope")]) == 1

    def test_subscribers_without_roster_fails(self, export_dir_no_roster, tmp_path):
        assert main(["subscribers", str(export_dir_no_roster), "-o", str(tmp_path / "out")]) == 1

    def test_process_without_roster_reports_failure_but_writes_rest(self, export_dir_no_roster, tmp_path):
        out = tmp_path / "out"
        assert main(["process", str(export_dir_no_roster), "-o", str(out)]) == 1
        assert (out / "analytics" / "analytics-report.md").is_file()
        assert (out / "content" / "all-posts.md").is_file()
