"""
Launch metrics and weekly check-ins — service layer.

Metrics arrive grouped as ``{metric_type: {metric_name: value}}`` and are
stored one row per reading. A check-in freezes the readings of the most recent
recorded day into its ``metrics_snapshot``.
"""

import logging
from datetime import date, timedelta

from sqlalchemy import func

from launch_engine.core.exceptions import ValidationError
from launch_engine.models import db
from launch_engine.models.launch import LaunchProject
from launch_engine.models.tracking import LaunchCheckin, LaunchMetric
from launch_engine.utils.helpers import commit_or_raise, get_or_raise, parse_date_input

logger = logging.getLogger(__name__)

_CHECKIN_TEXT_FIELDS = ("wins", "struggles", "patterns", "next_week_focus")


def _as_date(value, field):
    try:
        return parse_date_input(value) or date.today()
    except ValueError as exc:
        raise ValidationError(str(exc), details={field: value}) from exc


def log_metrics(
    project_id: str,
    metrics: dict,
    recorded_date=None,
    notes: str | None = None,
    owner: str = "system",
) -> list[dict]:
    """Store a batch of metric readings for one day.

    Raises:
        ValidationError: empty payload or a non-numeric value.
    """
    project = get_or_raise(LaunchProject, project_id)
    if not isinstance(metrics, dict) or not metrics:
        raise ValidationError("metrics must be a non-empty object", details={"metrics": "required"})
    when = _as_date(recorded_date, "recorded_date")

    rows = []
    for metric_type, readings in metrics.items():
        if not isinstance(readings, dict):
            raise ValidationError(
                f"metrics.{metric_type} must map metric names to values",
                details={"metric_type": metric_type},
            )
        for metric_name, value in readings.items():
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                raise ValidationError(
                    f"metrics.{metric_type}.{metric_name} must be a number",
                    details={"metric": f"{metric_type}.{metric_name}", "value": value},
                )
            rows.append(LaunchMetric(
                project_id=project.id,
                owner=owner,
                recorded_date=when,
                metric_type=metric_type,
                metric_name=metric_name,
                value=value,
                notes=notes,
            ))

    db.session.add_all(rows)
    commit_or_raise("log_metrics")
    logger.info("Metrics logged project=%s date=%s readings=%d", project.id, when, len(rows))
    return [r.to_dict() for r in rows]


def metrics_history(project_id: str, metric_type: str | None = None, days: int = 30) -> list[dict]:
    """Readings from the last ``days`` days, newest first."""
    get_or_raise(LaunchProject, project_id)
    if days < 1:
        raise ValidationError("days must be at least 1", details={"days": days})
    since = date.today() - timedelta(days=days)
    q = LaunchMetric.query.filter(
        LaunchMetric.project_id == project_id,
        LaunchMetric.recorded_date >= since,
    )
    if metric_type:
        q = q.filter(LaunchMetric.metric_type == metric_type)
    q = q.order_by(LaunchMetric.recorded_date.desc(), LaunchMetric.metric_type, LaunchMetric.metric_name)
    return [m.to_dict() for m in q.all()]


def latest_metrics(project_id: str) -> list[dict]:
    """Readings from the most recent day that has any."""
    latest = (
        db.session.query(func.max(LaunchMetric.recorded_date))
        .filter(LaunchMetric.project_id == project_id)
        .scalar()
    )
    if latest is None:
        return []
    rows = (
        LaunchMetric.query
        .filter_by(project_id=project_id, recorded_date=latest)
        .order_by(LaunchMetric.metric_type, LaunchMetric.metric_name)
        .all()
    )
    return [
        {"metric_type": m.metric_type, "metric_name": m.metric_name, "value": m.value,
         "recorded_date": m.recorded_date.isoformat()}
        for m in rows
    ]


def record_checkin(project_id: str, data: dict, owner: str = "system") -> dict:
    """Record a weekly check-in; week_number is the ISO week of checkin_date."""
    project = get_or_raise(LaunchProject, project_id)
    when = _as_date(data.get("checkin_date"), "checkin_date")
    if not any(str(data.get(f) or "").strip() for f in _CHECKIN_TEXT_FIELDS):
        raise ValidationError(
            "A check-in needs at least one of: " + ", ".join(_CHECKIN_TEXT_FIELDS),
            details={"fields": list(_CHECKIN_TEXT_FIELDS)},
        )

    checkin = LaunchCheckin(
        project_id=project.id,
        owner=owner,
        week_number=when.isocalendar()[1],
        checkin_date=when,
        metrics_snapshot=latest_metrics(project.id),
        **{f: data.get(f) for f in _CHECKIN_TEXT_FIELDS},
    )
    db.session.add(checkin)
    commit_or_raise("record_checkin")
    logger.info("Checkin recorded project=%s week=%d", project.id, checkin.week_number)
    return checkin.to_dict()


def checkin_history(project_id: str, count: int = 4) -> list[dict]:
    get_or_raise(LaunchProject, project_id)
    rows = (
        LaunchCheckin.query
        .filter_by(project_id=project_id)
        .order_by(LaunchCheckin.checkin_date.desc(), LaunchCheckin.created_at.desc())
        .limit(max(count, 1))
        .all()
    )
    return [c.to_dict() for c in rows]
