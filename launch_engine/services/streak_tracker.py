"""
Posting streaks and content buffer.

Streak rule (compute_streak):
    - take the distinct post dates, newest first, limited to the lookback window
    - start counting at today, or at yesterday when nothing is logged for today
      yet, so an unfinished day does not break a running streak
    - count consecutive days backwards until the first gap

Content buffer: total videos scheduled minus total posts for a platform. It is
reported as-is and goes negative when posting outruns production.
"""

import logging
from datetime import date, timedelta
from typing import Iterable

from flask import current_app
from sqlalchemy import func

from launch_engine.core.exceptions import ValidationError
from launch_engine.models import db
from launch_engine.models.launch import LaunchProject
from launch_engine.models.tracking import DEFAULT_PLATFORMS, ContentBatch, PostingLogEntry
from launch_engine.utils.helpers import commit_or_raise, get_or_raise, parse_date_input

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 60


def compute_streak(dates: Iterable[date], today: date | None = None, lookback: int = DEFAULT_LOOKBACK_DAYS) -> int:
    """Consecutive posting days ending today (or yesterday). Pure."""
    today = today or date.today()
    recent = sorted({d for d in dates if d <= today}, reverse=True)[:lookback]
    if not recent:
        return 0

    expected = today if recent[0] == today else today - timedelta(days=1)
    streak = 0
    for d in recent:
        if d != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def _platforms() -> tuple:
    return tuple(current_app.config.get("LAUNCH_PLATFORMS") or DEFAULT_PLATFORMS)


def _check_platform(platform: str) -> str:
    platform = (platform or "").strip().lower()
    if platform not in _platforms():
        raise ValidationError(
            f"platform must be one of {list(_platforms())}", details={"platform": platform},
        )
    return platform


def _lookback() -> int:
    return current_app.config.get("STREAK_LOOKBACK_DAYS", DEFAULT_LOOKBACK_DAYS)


def _post_dates(project_id: str, platform: str, lookback: int, today: date) -> list[date]:
    # Future-dated entries are dropped before the limit so they cannot crowd out
    # the days the streak is counted over.
    rows = (
        db.session.query(PostingLogEntry.post_date)
        .filter(
            PostingLogEntry.project_id == project_id,
            PostingLogEntry.platform == platform,
            PostingLogEntry.post_count >= 1,
            PostingLogEntry.post_date <= today,
        )
        .distinct()
        .order_by(PostingLogEntry.post_date.desc())
        .limit(lookback)
        .all()
    )
    return [row.post_date for row in rows]


def get_streak(project_id: str, platform: str, today: date | None = None) -> int:
    """Current posting streak for one platform of a project."""
    get_or_raise(LaunchProject, project_id)
    platform = _check_platform(platform)
    lookback = _lookback()
    today = today or date.today()
    return compute_streak(_post_dates(project_id, platform, lookback, today), today=today, lookback=lookback)


def log_post(
    project_id: str,
    platform: str,
    post_count: int = 1,
    post_date=None,
    notes: str | None = None,
    owner: str = "system",
) -> dict:
    """Append a posting log entry and return it with the platform's new streak."""
    project = get_or_raise(LaunchProject, project_id)
    platform = _check_platform(platform)
    if post_count is None or post_count < 0:
        raise ValidationError("post_count must be zero or more", details={"post_count": post_count})
    try:
        when = parse_date_input(post_date) or date.today()
    except ValueError as exc:
        raise ValidationError(str(exc), details={"post_date": post_date}) from exc

    entry = PostingLogEntry(
        project_id=project.id,
        owner=owner,
        post_date=when,
        platform=platform,
        post_count=post_count,
        notes=notes,
    )
    db.session.add(entry)
    commit_or_raise("log_post")
    streak = get_streak(project.id, platform)
    logger.info(
        "Post logged project=%s platform=%s count=%d date=%s streak=%d",
        project.id, platform, post_count, when, streak,
    )
    result = entry.to_dict()
    result["streak"] = streak
    return result


def posting_streaks(project_id: str, today: date | None = None) -> list[dict]:
    """Streak and total posts for every configured platform."""
    get_or_raise(LaunchProject, project_id)
    totals = dict(
        db.session.query(PostingLogEntry.platform, func.coalesce(func.sum(PostingLogEntry.post_count), 0))
        .filter(PostingLogEntry.project_id == project_id)
        .group_by(PostingLogEntry.platform)
        .all()
    )
    lookback = _lookback()
    today = today or date.today()
    return [
        {
            "platform": platform,
            "streak": compute_streak(_post_dates(project_id, platform, lookback, today), today=today, lookback=lookback),
            "total_posts": int(totals.get(platform, 0)),
        }
        for platform in _platforms()
    ]


_BATCH_COUNTS = ("videos_scripted", "videos_filmed", "videos_edited", "videos_scheduled")


def log_content_batch(project_id: str, data: dict, owner: str = "system") -> dict:
    """Record a content production batch and return it with the updated buffer."""
    project = get_or_raise(LaunchProject, project_id)
    platform = _check_platform(data.get("platform") or "tiktok")
    counts = {}
    for field in _BATCH_COUNTS:
        value = data.get(field, 0) or 0
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValidationError(f"{field} must be a non-negative integer", details={field: value})
        counts[field] = value
    try:
        when = parse_date_input(data.get("batch_date")) or date.today()
    except ValueError as exc:
        raise ValidationError(str(exc), details={"batch_date": data.get("batch_date")}) from exc

    batch = ContentBatch(
        project_id=project.id,
        owner=owner,
        batch_date=when,
        platform=platform,
        notes=data.get("notes"),
        **counts,
    )
    db.session.add(batch)
    commit_or_raise("log_content_batch")
    logger.info("ContentBatch logged project=%s platform=%s scheduled=%d", project.id, platform, counts["videos_scheduled"])
    result = batch.to_dict()
    result["buffer"] = content_buffer(project.id, platform)
    return result


def content_buffer(project_id: str, platform: str = "tiktok") -> dict:
    """Scheduled content still waiting to be posted (may be negative)."""
    get_or_raise(LaunchProject, project_id)
    platform = _check_platform(platform)
    scheduled = (
        db.session.query(func.coalesce(func.sum(ContentBatch.videos_scheduled), 0))
        .filter(ContentBatch.project_id == project_id, ContentBatch.platform == platform)
        .scalar()
    )
    posted = (
        db.session.query(func.coalesce(func.sum(PostingLogEntry.post_count), 0))
        .filter(PostingLogEntry.project_id == project_id, PostingLogEntry.platform == platform)
        .scalar()
    )
    return {
        "platform": platform,
        "scheduled": int(scheduled),
        "posted": int(posted),
        "buffer": int(scheduled) - int(posted),
    }
