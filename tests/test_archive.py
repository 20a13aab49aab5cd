"""Tests for substack.archive — reading folder and zip exports."""
import pytest

from substack.archive import ArchiveError, ExportArchive, file_post_id, load_export, resolve_post_id


class TestResolvePostId:

    def test_exact(self):
        assert resolve_post_id("123", ["123", "1234"]) == "123"

    def test_unique_prefix(self):
        assert resolve_post_id("1234", ["12345", "999"]) == "12345"

    def test_ambiguous_prefix_rejected(self):
        assert resolve_post_id("12", ["123", "124"]) is None

    def test_partial_disabled(self):
        assert resolve_post_id("1234", ["12345"], partial=False) is None

    def test_no_match(self):
        assert resolve_post_id("999", ["101", "102"]) is None

    def test_longer_file_id_does_not_match_shorter_post(self):
        assert resolve_post_id("12", ["1", "5"]) is None

    def test_prefix_fallback_is_logged(self, caplog):
        resolve_post_id("1234", ["12345"])
        assert "matched post 12345 by prefix" in caplog.text


def test_file_post_id():
    assert file_post_id("posts/123.my.slug.opens.csv", ".opens.csv") == "123"
    assert file_post_id("export/posts/77.delivers.csv", ".delivers.csv") == "77"


class TestExportArchive:

    def test_missing_path(self, tmp_path):
        with pytest.raises(ArchiveError):
            ExportArchive(tmp_path / "nope")

    def test_not_a_zip(self, tmp_path):
        bogus = tmp_path / "export.zip"
        bogus.write_text("not a zip")
        with pytest.raises(ArchiveError):
            ExportArchive(bogus)

    def test_zip_root_is_top_folder(self, export_zip):
        with ExportArchive(export_zip) as archive:
            assert archive.posts_csv == "substack-export/posts.csv"
            assert archive.roster_csv == "substack-export/email_list.my-pub.csv"
            assert len(archive.post_files(".opens.csv")) == 3


class TestLoadExport:

    def test_folder(self, export_dir):
        export = load_export(export_dir)
        assert [p.post_id for p in export.posts] == ["101", "102", "103", "104"]
        assert export.posts[1].slug == "second.post"
        assert len(export.subscribers) == 5
        assert len(export.opens["101"]) == 3
        assert len(export.opens["102"]) == 1
        assert len(export.delivers["101"]) == 3
        assert not export.opens.get("104")

    def test_unmatched_opens_kept_separately(self, export_dir):
        export = load_export(export_dir)
        assert len(export.unmatched_opens) == 1
        assert export.unmatched_opens[0].country == "FR"

    def test_html_attached(self, export_dir):
        export = load_export(export_dir)
        by_id = {p.post_id: p for p in export.posts}
        assert "<strong>world</strong>" in by_id["101"].html_content
        assert by_id["102"].html_content is None

    def test_zip_matches_folder(self, export_dir, export_zip):
        folder = load_export(export_dir)
        zipped = load_export(export_zip)
        assert folder.posts == zipped.posts
        assert folder.subscribers == zipped.subscribers
        assert folder.opens == zipped.opens
        assert folder.delivers == zipped.delivers

    def test_missing_posts_csv_is_fatal(self, export_dir):
        (export_dir / "posts.csv").unlink()
        with pytest.raises(ArchiveError, match="posts.csv"):
            load_export(export_dir)

    def test_missing_roster_degrades(self, export_dir_no_roster):
        export = load_export(export_dir_no_roster)
        assert export.subscribers is None
        assert not export.has_subscribers
        assert len(export.posts) == 4

    def test_prefix_matching_can_be_disabled(self, export_dir):
        with open(export_dir / "posts.csv", "a", encoding="utf-8") as fh:
            fh.write("2024500.long-id,2024-03-01T00:00:00.000Z,true,,,newsletter,Long,,,everyone\n")
        (export_dir / "posts" / "10.opens.csv").write_text(
            "post_id,timestamp,email,country\n10,2024-01-01T00:00:00Z,q@example.com,NZ\n"
        )
        (export_dir / "posts" / "20245.opens.csv").write_text(
            "post_id,timestamp,email,country\n20245,2024-03-02T00:00:00Z,q@example.com,NZ\n"
        )
        strict = load_export(export_dir, partial_matching=False)
        loose = load_export(export_dir, partial_matching=True)
        assert "2024500" not in strict.opens
        # '10' prefixes 101..104 so it stays unmatched; '20245' prefixes only '2024500'
        assert len(loose.opens["2024500"]) == 1
        assert len(loose.unmatched_opens) == 2

    def test_longer_file_id_not_merged_into_shorter_post(self, export_dir):
        (export_dir / "posts" / "1040.opens.csv").write_text(
            "post_id,timestamp,email,country\n1040,2024-02-11T00:00:00Z,q@example.com,NZ\n"
        )
        export = load_export(export_dir)
        assert not export.opens.get("104")
        assert [o.country for o in export.unmatched_opens] == ["NZ", "FR"]

    def test_empty_analytics_file(self, export_dir):
        (export_dir / "posts" / "104.podcast-ep.opens.csv").write_text("")
        export = load_export(export_dir)
        assert not export.opens.get("104")

    def test_ragged_post_row_skipped(self, export_dir, caplog):
        with open(export_dir / "posts.csv", "a", encoding="utf-8") as fh:
            fh.write("105.extra,2024-03-01T00:00:00.000Z,true,,,newsletter,Title, with comma,,,everyone\n")
        export = load_export(export_dir)
        assert [p.post_id for p in export.posts] == ["101", "102", "103", "104"]
        assert "posts.csv: skipped malformed row" in caplog.text

    def test_ragged_roster_row_skipped(self, export_dir, caplog):
        with open(export_dir / "email_list.my-pub.csv", "a", encoding="utf-8") as fh:
            fh.write("f@example.com,true,,free,false,2024-03-01T00:00:00.000Z,,oops\n")
        export = load_export(export_dir)
        assert len(export.subscribers) == 5
        assert "email_list.my-pub.csv: skipped malformed row" in caplog.text

    def test_ragged_opens_row_skipped(self, export_dir, caplog):
        with open(export_dir / "posts" / "101.first-post.opens.csv", "a", encoding="utf-8") as fh:
            fh.write("101,2024-01-03T10:00:00.000Z,x@example.com,newsletter,everyone,true,"
                     "US,Austin,TX,desktop,macos,gmail,Mozilla/5.0,extra\n")
        export = load_export(export_dir)
        assert len(export.opens["101"]) == 3
        assert "101.first-post.opens.csv: skipped malformed row" in caplog.text

    def test_short_row_fills_missing_cells(self, export_dir):
        with open(export_dir / "posts.csv", "a", encoding="utf-8") as fh:
            fh.write("105.short,2024-03-01T00:00:00.000Z,true\n")
        post = load_export(export_dir).posts[-1]
        assert (post.post_id, post.title, post.type) == ("105", "", "newsletter")
