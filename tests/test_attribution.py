"""Tests for analytics.attribution."""
from datetime import datetime, timedelta, timezone

from analytics.attribution import attributable_posts, attribute_signups, attribute_windows


def _iso(dt: datetime) -> str:
    return dt.isoformat()


class TestAttributeSignups:

    def test_most_recent_post_in_window_wins(self, make_post, make_subscriber):
        posts = [make_post("1", "2024-01-01T00:00:00Z"), make_post("2", "2024-01-05T00:00:00Z")]
        result = attribute_signups(posts, [make_subscriber("2024-01-06T00:00:00Z")], 7)
        assert [pa.post_id for pa in result.post_attributions] == ["2"]
        assert result.post_attributions[0].avg_days_to_signup == 1.0
        assert result.organic_signups == 0

    def test_outside_window_is_organic(self, make_post, make_subscriber):
        posts = [make_post("1", "2024-01-01T00:00:00Z"), make_post("2", "2024-01-05T00:00:00Z")]
        result = attribute_signups(posts, [make_subscriber("2024-01-15T00:00:00Z")], 7)
        assert result.post_attributions == ()
        assert result.organic_signups == 1
        assert result.attribution_coverage == 0.0

    def test_window_bounds_inclusive(self, make_post, make_subscriber):
        published = datetime(2024, 1, 1, tzinfo=timezone.utc)
        posts = [make_post("1", _iso(published))]
        subs = [
            make_subscriber(_iso(published)),
            make_subscriber(_iso(published + timedelta(days=7))),
            make_subscriber(_iso(published + timedelta(days=7, seconds=1))),
        ]
        result = attribute_signups(posts, subs, 7)
        assert result.total_attributed == 2
        assert result.organic_signups == 1
        assert result.post_attributions[0].avg_days_to_signup == 3.5

    def test_future_post_never_qualifies(self, make_post, make_subscriber):
        posts = [make_post("later", "2024-01-10T00:00:00Z")]
        result = attribute_signups(posts, [make_subscriber("2024-01-09T23:59:59Z")], 365)
        assert result.total_attributed == 0
        assert result.organic_signups == 1

    def test_identical_dates_resolve_to_first_in_input(self, make_post, make_subscriber):
        posts = [make_post("A", "2024-01-01T00:00:00Z"), make_post("B", "2024-01-01T00:00:00Z")]
        result = attribute_signups(posts, [make_subscriber("2024-01-01T06:00:00Z")], 1)
        assert [pa.post_id for pa in result.post_attributions] == ["A"]

    def test_unpublished_and_undated_posts_ignored(self, make_post, make_subscriber):
        posts = [
            make_post("old", "2024-01-01T00:00:00Z"),
            make_post("draft", "2024-01-04T00:00:00Z", published=False),
            make_post("nodate", None),
        ]
        result = attribute_signups(posts, [make_subscriber("2024-01-05T00:00:00Z")], 7)
        assert [pa.post_id for pa in result.post_attributions] == ["old"]

    def test_undated_subscribers_are_organic_and_counted(self, make_post, make_subscriber):
        posts = [make_post("1", "2024-01-01T00:00:00Z")]
        subs = [make_subscriber(None), make_subscriber("2024-01-01T01:00:00Z")]
        result = attribute_signups(posts, subs, 1)
        assert result.undated_signups == 1
        assert result.organic_signups == 1
        assert result.total_attributed == 1
        assert result.organic_signups + result.total_attributed == len(subs)
        assert result.attribution_coverage == 50.0

    def test_paid_free_split(self, make_post, make_subscriber):
        posts = [make_post("1", "2024-01-01T00:00:00Z")]
        subs = [
            make_subscriber("2024-01-01T05:00:00Z", plan="yearly", paid_at="2024-01-01T05:00:00Z"),
            make_subscriber("2024-01-01T06:00:00Z"),
            make_subscriber("2024-01-01T07:00:00Z"),
        ]
        (pa,) = attribute_signups(posts, subs, 1).post_attributions
        assert (pa.attributed_total, pa.attributed_paid, pa.attributed_free) == (3, 1, 2)

    def test_sorted_by_total_descending(self, make_post, make_subscriber):
        posts = [make_post("1", "2024-01-01T00:00:00Z"), make_post("2", "2024-01-10T00:00:00Z")]
        subs = [make_subscriber("2024-01-02T00:00:00Z"),
                make_subscriber("2024-01-03T00:00:00Z"),
                make_subscriber("2024-01-11T00:00:00Z")]
        result = attribute_signups(posts, subs, 7)
        assert [pa.post_id for pa in result.post_attributions] == ["1", "2"]
        assert [pa.attributed_total for pa in result.post_attributions] == [2, 1]

    def test_no_subscribers(self, make_post):
        result = attribute_signups([make_post("1")], [], 7)
        assert result.attribution_coverage == 0.0
        assert result.organic_signups == 0

    def test_matches_linear_scan(self, make_post, make_subscriber):
        posts = [make_post(str(d), f"2024-01-{d:02d}T00:00:00Z") for d in (1, 4, 9, 20)]
        subs = [make_subscriber(f"2024-01-{d:02d}T12:00:00Z") for d in range(1, 31)]
        window = timedelta(days=2)

        expected = {}
        for sub in subs:
            qualifying = [p for p in posts
                          if p.post_date <= sub.created_at <= p.post_date + window]
            if qualifying:
                newest = max(qualifying, key=lambda p: p.post_date)
                expected[newest.post_id] = expected.get(newest.post_id, 0) + 1

        result = attribute_signups(posts, subs, 2)
        assert {pa.post_id: pa.attributed_total for pa in result.post_attributions} == expected
        assert result.total_attributed + result.organic_signups == len(subs)
        assert 0.0 <= result.attribution_coverage <= 100.0


class TestAttributeWindows:

    def test_one_result_per_window_in_order(self, make_post, make_subscriber):
        posts = [make_post("1", "2024-01-01T00:00:00Z")]
        subs = [make_subscriber("2024-01-02T12:00:00Z")]
        results = attribute_windows(posts, subs, (7, 1, 2))
        assert [r.window_days for r in results] == [7, 1, 2]
        assert [r.total_attributed for r in results] == [1, 0, 1]

    def test_deterministic(self, make_post, make_subscriber):
        posts = [make_post(str(i), f"2024-01-{i:02d}T00:00:00Z") for i in range(1, 10)]
        subs = [make_subscriber(f"2024-01-{i:02d}T08:00:00Z") for i in range(1, 20)]
        assert attribute_windows(posts, subs) == attribute_windows(posts, subs)

    def test_no_windows(self, make_post):
        assert attribute_windows([make_post()], [], ()) == ()


class TestAttributablePosts:

    def test_newest_first_stable(self, make_post):
        posts = [make_post("a", "2024-01-01T00:00:00Z"), make_post("b", "2024-01-03T00:00:00Z"),
                 make_post("c", "2024-01-01T00:00:00Z")]
        assert [p.post_id for p in attributable_posts(posts)] == ["b", "a", "c"]
