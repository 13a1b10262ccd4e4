"""
Tests for the read-only reporting functions
"""
from datetime import datetime, timedelta, timezone

import pytest

from campus_support.models import Profile, Rating, RequestKind, Role, SessionRequest
from campus_support.services.aggregation import activity_metrics, average_rating, filter_by_range, is_ignored, rating_feed, summarize

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
STALE = timedelta(hours=72)


def make_request(n, status="Pending", hours_ago=1, **extra):
    data = {
        "id": f"req-{n}",
        "student_id": "stu-1",
        "provider_id": "tutor-1",
        "student_name": "Thabo",
        "provider_name": "Dr. Ndlovu",
        "status": status,
        "created_at": NOW - timedelta(hours=hours_ago),
    }
    data.update(extra)
    return SessionRequest(**data)


class TestSummarize:
    """Test the status partition"""

    def test_empty(self):
        assert summarize([], NOW, STALE) == {
            "total": 0, "approved": 0, "declined": 0, "pending": 0, "ignored": 0, "completed": 0, "suggested": 0,
        }

    def test_partition_sums_to_total(self):
        requests = [
            make_request(1, "Pending"),
            make_request(2, "Pending", hours_ago=100),
            make_request(3, "Approved"),
            make_request(4, "Completed"),
            make_request(5, "Declined"),
            make_request(6, "Suggested"),
            make_request(7, "Suggested", hours_ago=200),
        ]
        summary = summarize(requests, NOW, STALE)
        assert summary["total"] == 7
        assert summary["approved"] == 2
        assert summary["completed"] == 1
        assert summary["declined"] == 1
        assert summary["pending"] == 2
        assert summary["ignored"] == 2
        assert summary["suggested"] == 2
        assert summary["approved"] + summary["declined"] + summary["pending"] + summary["ignored"] == summary["total"]

    def test_result_is_deterministic(self):
        requests = [make_request(i, status) for i, status in enumerate(["Pending", "Approved", "Declined"])]
        assert summarize(requests, NOW, STALE) == summarize(requests, NOW, STALE)

    def test_legacy_ignored_status_counts_by_age(self):
        fresh = make_request(1, "Ignored", hours_ago=2)
        stale = make_request(2, "Ignored", hours_ago=80)
        summary = summarize([fresh, stale], NOW, STALE)
        assert summary["pending"] == 1
        assert summary["ignored"] == 1


class TestIgnored:
    """Test staleness derived from the request's age"""

    def test_boundary_is_exclusive(self):
        assert not is_ignored(make_request(1, hours_ago=72), NOW, STALE)
        assert is_ignored(make_request(1, hours_ago=73), NOW, STALE)

    def test_decided_requests_are_never_ignored(self):
        assert not is_ignored(make_request(1, "Declined", hours_ago=500), NOW, STALE)
        assert not is_ignored(make_request(1, "Approved", hours_ago=500), NOW, STALE)

    def test_falls_back_to_requested_time(self):
        request = make_request(1, created_at=None, requested_time=NOW - timedelta(days=5))
        assert is_ignored(request, NOW, STALE)

    def test_without_any_time_is_not_ignored(self):
        assert not is_ignored(make_request(1, created_at=None), NOW, STALE)


class TestFilterByRange:
    """Test date, category and kind filters"""

    def test_bounds_are_inclusive(self):
        inside = make_request(1, hours_ago=24)
        on_start = make_request(2, hours_ago=48)
        outside = make_request(3, hours_ago=49)
        start = NOW - timedelta(hours=48)
        selected = filter_by_range([inside, on_start, outside], start=start, end=NOW)
        assert [r.id for r in selected] == ["req-1", "req-2"]

    def test_missing_timestamp_uses_requested_time(self):
        legacy = make_request(1, created_at=None, requested_time=NOW - timedelta(hours=1))
        undated = make_request(2, created_at=None)
        selected = filter_by_range([legacy, undated], start=NOW - timedelta(days=1), end=NOW)
        assert [r.id for r in selected] == ["req-1"]

    def test_no_bounds_keeps_everything(self):
        requests = [make_request(1, created_at=None), make_request(2)]
        assert len(filter_by_range(requests)) == 2

    def test_naive_bounds_are_treated_as_utc(self):
        selected = filter_by_range([make_request(1, hours_ago=1)], start=datetime(2025, 3, 10, 0, 0))
        assert len(selected) == 1

    def test_category_is_case_insensitive(self):
        requests = [make_request(1, category="Academic"), make_request(2, category="Mental")]
        assert [r.id for r in filter_by_range(requests, category="academic")] == ["req-1"]

    def test_kind_filter(self):
        requests = [make_request(1), make_request(2, kind="counselling")]
        assert [r.id for r in filter_by_range(requests, kind=RequestKind.COUNSELLING)] == ["req-2"]


class TestRatings:
    """Test the merged rating feed and averages"""

    def test_feed_merges_standalone_and_request_ratings(self):
        seeded = Rating(id="rt-1", provider_id="tutor-1", rater_name="Seed", rating=3, date=NOW - timedelta(days=3))
        rated = make_request(1, "Completed", rating=5, comment="great", rated_at=NOW - timedelta(days=1))
        feed = rating_feed([rated, make_request(2, "Completed")], [seeded])
        assert [entry["rating"] for entry in feed] == [5, 3]
        assert feed[0]["rater_name"] == "Thabo"
        assert feed[0]["kind"] == "tutoring"
        assert feed[0]["request_id"] == "req-1"

    def test_feed_filters_by_provider(self):
        ratings = [
            Rating(id="rt-1", provider_id="tutor-1", rating=4),
            Rating(id="rt-2", provider_id="tutor-2", rating=2),
        ]
        assert [entry["rating"] for entry in rating_feed([], ratings, "tutor-2")] == [2]

    def test_anonymous_rater_masked_for_providers(self):
        rated = make_request(1, "Completed", kind="counselling", anonymous=True, rating=4, rated_at=NOW)
        assert rating_feed([rated], [], reveal_anonymous=False)[0]["rater_name"] == "Anonymous Student"
        assert rating_feed([rated], [])[0]["rater_name"] == "Thabo"

    def test_average(self):
        ratings = [Rating(id="rt-1", provider_id="tutor-1", rating=4)]
        requests = [make_request(1, "Completed", rating=5)]
        assert average_rating("tutor-1", requests, ratings) == pytest.approx(4.5)

    def test_average_without_ratings_is_none(self):
        assert average_rating("tutor-1", [make_request(1, "Completed")], []) is None


class TestActivityMetrics:
    """Test per-provider activity"""

    def _providers(self):
        return [
            Profile(id="tutor-1", role=Role.TUTOR, name="Dr. Ndlovu"),
            Profile(id="counsellor-1", role=Role.COUNSELLOR, name="Ms. Mokoena"),
        ]

    def test_metrics_per_provider(self):
        requests = [
            make_request(1, "Completed", hours_ago=10, reviewed_at=NOW - timedelta(hours=9)),
            make_request(2, "Declined", hours_ago=10, reviewed_at=NOW - timedelta(hours=7)),
            make_request(3, "Pending", hours_ago=100),
            make_request(4, "Completed", provider_id="counsellor-1", hours_ago=5, reviewed_at=NOW - timedelta(hours=5)),
            make_request(5, "Completed", provider_id="counsellor-1", hours_ago=5),
        ]
        metrics = activity_metrics(self._providers(), requests, NOW, STALE)

        counsellor, tutor = metrics
        assert counsellor["provider_id"] == "counsellor-1"
        assert counsellor["completed_count"] == 2
        assert counsellor["avg_response_time_ms"] == 0

        assert tutor["avg_response_time_ms"] == 2 * 60 * 60 * 1000
        assert tutor["ignored_count"] == 1
        assert tutor["completed_count"] == 1
        assert tutor["total_count"] == 3
        assert tutor["role"] == "tutor"

    def test_provider_without_reviews_has_no_response_time(self):
        metrics = activity_metrics(self._providers(), [make_request(1)], NOW, STALE)
        assert all(m["avg_response_time_ms"] is None for m in metrics)

    def test_ties_keep_provider_order(self):
        metrics = activity_metrics(self._providers(), [], NOW, STALE)
        assert [m["provider_id"] for m in metrics] == ["tutor-1", "counsellor-1"]


@pytest.mark.asyncio
class TestReportingService:
    """Test the snapshot-loading wrapper"""

    async def test_summary_by_kind(self, services, people, pending, clock):
        await services.lifecycle.request_session(people.student.id, people.counsellor.id, {"urgent": True})
        overall = await services.reporting.summarize()
        counselling = await services.reporting.summarize(RequestKind.COUNSELLING)
        assert overall["total"] == 2
        assert counselling["total"] == 1

        clock.advance(hours=73)
        assert (await services.reporting.summarize())["ignored"] == 2

