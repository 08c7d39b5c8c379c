"""
Posting streak and content buffer tests.

compute_streak is pure and tested directly with fixed dates; the stored-log
paths go through log_post / log_content_batch.
"""

from datetime import date, timedelta

import pytest

from launch_engine.core.exceptions import NotFoundError, ValidationError
from launch_engine.services.streak_tracker import (
    compute_streak,
    content_buffer,
    get_streak,
    log_content_batch,
    log_post,
    posting_streaks,
)

TODAY = date(2026, 3, 10)


def _days_ago(*offsets):
    return [TODAY - timedelta(days=n) for n in offsets]


# ═════════════════════════════════════════════════════════════════════════════
# 1. compute_streak
# ═════════════════════════════════════════════════════════════════════════════


class TestComputeStreak:
    def test_no_posts(self):
        assert compute_streak([], today=TODAY) == 0

    def test_run_ending_today(self):
        assert compute_streak(_days_ago(0, 1, 2), today=TODAY) == 3

    def test_today_not_logged_yet_keeps_streak(self):
        assert compute_streak(_days_ago(1, 2, 3), today=TODAY) == 3

    def test_gap_of_two_days_breaks_streak(self):
        assert compute_streak(_days_ago(2, 3, 4), today=TODAY) == 0

    def test_counts_until_first_gap(self):
        assert compute_streak(_days_ago(0, 1, 3, 4, 5), today=TODAY) == 2

    def test_duplicate_dates_count_once(self):
        assert compute_streak(_days_ago(0, 0, 1, 1), today=TODAY) == 2

    def test_future_dates_ignored(self):
        assert compute_streak([TODAY + timedelta(days=1)] + _days_ago(0), today=TODAY) == 1

    def test_lookback_caps_streak(self):
        dates = _days_ago(*range(100))
        assert compute_streak(dates, today=TODAY, lookback=60) == 60


# ═════════════════════════════════════════════════════════════════════════════
# 2. Posting log
# ═════════════════════════════════════════════════════════════════════════════


class TestPostingLog:
    def test_log_post_returns_streak(self, sample_project):
        result = log_post(sample_project.id, "TikTok", post_count=2)
        assert result["platform"] == "tiktok"
        assert result["post_count"] == 2
        assert result["streak"] == 1

    def test_consecutive_days(self, sample_project):
        today = date.today()
        for n in (2, 1, 0):
            log_post(sample_project.id, "email", post_date=today - timedelta(days=n))
        assert get_streak(sample_project.id, "email") == 3

    def test_zero_count_does_not_extend_streak(self, sample_project):
        log_post(sample_project.id, "email", post_count=0, post_date=TODAY)
        assert get_streak(sample_project.id, "email", today=TODAY) == 0

    def test_future_entries_do_not_hide_streak(self, app, sample_project, monkeypatch):
        monkeypatch.setitem(app.config, "STREAK_LOOKBACK_DAYS", 3)
        for n in (3, 2, 1, 0, -1):
            log_post(sample_project.id, "tiktok", post_date=TODAY + timedelta(days=n))
        assert get_streak(sample_project.id, "tiktok", today=TODAY) == 2
        rows = {r["platform"]: r for r in posting_streaks(sample_project.id, today=TODAY)}
        assert rows["tiktok"]["streak"] == 2

    def test_platforms_are_independent(self, sample_project):
        log_post(sample_project.id, "tiktok", post_date=TODAY)
        assert get_streak(sample_project.id, "tiktok", today=TODAY) == 1
        assert get_streak(sample_project.id, "youtube", today=TODAY) == 0

    def test_unknown_platform(self, sample_project):
        with pytest.raises(ValidationError):
            log_post(sample_project.id, "myspace")

    def test_negative_count(self, sample_project):
        with pytest.raises(ValidationError):
            log_post(sample_project.id, "tiktok", post_count=-1)

    def test_bad_date(self, sample_project):
        with pytest.raises(ValidationError):
            log_post(sample_project.id, "tiktok", post_date="yesterday")

    def test_unknown_project(self):
        with pytest.raises(NotFoundError):
            get_streak("missing", "tiktok")

    def test_posting_streaks_cover_every_platform(self, sample_project):
        log_post(sample_project.id, "tiktok", post_count=3, post_date=TODAY)
        rows = {r["platform"]: r for r in posting_streaks(sample_project.id, today=TODAY)}
        assert set(rows) == {"tiktok", "email", "substack", "instagram", "youtube"}
        assert rows["tiktok"] == {"platform": "tiktok", "streak": 1, "total_posts": 3}
        assert rows["email"]["total_posts"] == 0


# ═════════════════════════════════════════════════════════════════════════════
# 3. Content buffer
# ═════════════════════════════════════════════════════════════════════════════


class TestContentBuffer:
    def test_empty_buffer(self, sample_project):
        assert content_buffer(sample_project.id) == {
            "platform": "tiktok", "scheduled": 0, "posted": 0, "buffer": 0,
        }

    def test_scheduled_minus_posted(self, sample_project):
        log_content_batch(sample_project.id, {"videos_scheduled": 5, "videos_filmed": 7})
        log_content_batch(sample_project.id, {"videos_scheduled": 3})
        log_post(sample_project.id, "tiktok", post_count=2)
        assert content_buffer(sample_project.id)["buffer"] == 6

    def test_buffer_goes_negative(self, sample_project):
        log_content_batch(sample_project.id, {"videos_scheduled": 1})
        log_post(sample_project.id, "tiktok", post_count=4)
        buf = content_buffer(sample_project.id)
        assert buf["buffer"] == -3
        assert buf["posted"] == 4

    def test_batch_result_carries_buffer(self, sample_project):
        result = log_content_batch(sample_project.id, {"platform": "youtube", "videos_scheduled": 2})
        assert result["platform"] == "youtube"
        assert result["buffer"]["buffer"] == 2

    def test_batch_counts_validated(self, sample_project):
        with pytest.raises(ValidationError):
            log_content_batch(sample_project.id, {"videos_scheduled": -1})
        with pytest.raises(ValidationError):
            log_content_batch(sample_project.id, {"videos_scheduled": "lots"})
