"""
Launch reporting tests: status, overview, health bands.
"""

from datetime import datetime, timezone

import pytest

from launch_engine.core.exceptions import NotFoundError
from launch_engine.models import db
from launch_engine.services.checklist_service import hand_off_item
from launch_engine.services.launch_reporting import (
    health_band,
    launch_health,
    launch_overview,
    launch_status,
)
from launch_engine.services.launch_tracking_service import log_metrics
from launch_engine.services.phase_state_machine import complete_checklist_item, complete_project
from launch_engine.services.project_composer import create_project

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _completed_at(item, when):
    item.completed = True
    item.completed_at = when
    db.session.commit()


class TestHealthBand:
    @pytest.mark.parametrize("days, band", [
        (0, "on_track"),
        (3, "on_track"),
        (4, "slowing"),
        (6, "slowing"),
        (7, "stalled"),
        (30, "stalled"),
        (None, "stalled"),
    ])
    def test_bands(self, days, band):
        assert health_band(days) == band


class TestLaunchStatus:
    def test_fresh_project(self, sample_project):
        status = launch_status(sample_project.id)
        assert status["phase_position"] == 1
        assert status["phase_count"] == 2
        assert status["progress"] == {"total": 3, "completed": 0, "percent": 0.0}
        assert status["current_sections"] == [{"section": "Accounts", "total": 2, "completed": 0}]
        assert status["active_items"] == []
        assert status["latest_metrics"] == {}
        assert len(status["streaks"]) == 5

    def test_progress_active_items_and_metrics(self, sample_project, items_by_text):
        items = items_by_text()
        complete_checklist_item(items["Buy domain"].id)
        items["Register domain"].linked_task_id = "task-1"
        db.session.commit()
        log_metrics(sample_project.id, {"sales": {"units": 2}}, recorded_date="2026-03-01")
        log_metrics(sample_project.id, {"sales": {"units": 8}}, recorded_date="2026-03-05")

        status = launch_status(sample_project.id)
        assert status["progress"]["completed"] == 1
        assert status["progress"]["percent"] == 33.3
        assert [i["item_text"] for i in status["active_items"]] == ["Register domain"]
        assert status["latest_metrics"]["sales.units"] == {"value": 8.0, "recorded_date": "2026-03-05"}

    def test_unknown_project(self):
        with pytest.raises(NotFoundError):
            launch_status("missing")


class TestOverview:
    def test_completed_launches_are_hidden(self, sample_document, sample_project):
        other = create_project([sample_document["id"]], meta={"title": "Second"})
        complete_project(other.id)
        overview = launch_overview()
        assert [p["id"] for p in overview] == [sample_project.id]
        assert overview[0]["total_items"] == 3
        assert overview[0]["completion_percent"] == 0.0

    def test_owner_filter_includes_shared(self, sample_document):
        mine = create_project([sample_document["id"]], meta={"owner": "ana"})
        shared = create_project([sample_document["id"]], meta={"owner": "ben", "shared": True})
        create_project([sample_document["id"]], meta={"owner": "ben"})
        ids = {p["id"] for p in launch_overview(owner="ana")}
        assert ids == {mine.id, shared.id}


class TestHealth:
    def test_no_completions_is_stalled(self, sample_project):
        report = launch_health(sample_project.id, now=NOW)
        assert report[0]["days_since_last_completion"] is None
        assert report[0]["health"] == "stalled"

    def test_recent_completion_on_track(self, sample_project, items_by_text):
        _completed_at(items_by_text()["Buy domain"], datetime(2026, 3, 8, 9, 0, tzinfo=timezone.utc))
        report = launch_health(sample_project.id, now=NOW)
        assert report[0]["days_since_last_completion"] == 2
        assert report[0]["health"] == "on_track"

    def test_slowing(self, sample_project, items_by_text):
        _completed_at(items_by_text()["Buy domain"], datetime(2026, 3, 5, 9, 0, tzinfo=timezone.utc))
        assert launch_health(sample_project.id, now=NOW)[0]["health"] == "slowing"

    def test_stalled_after_a_week(self, sample_project, items_by_text):
        _completed_at(items_by_text()["Buy domain"], datetime(2026, 3, 3, 9, 0, tzinfo=timezone.utc))
        assert launch_health(sample_project.id, now=NOW)[0]["health"] == "stalled"

    def test_next_items_and_waiting(self, sample_project, items_by_text):
        hand_off_item(items_by_text()["Register domain"].id, "assistant")
        row = launch_health(sample_project.id, now=NOW)[0]
        assert [i["item_text"] for i in row["next_items"]] == ["Buy domain"]
        assert [i["item_text"] for i in row["waiting_on_others"]] == ["Register domain"]

    def test_all_unfinished_projects(self, sample_document, sample_project):
        done = create_project([sample_document["id"]])
        complete_project(done.id)
        report = launch_health(now=NOW)
        assert [r["project_id"] for r in report] == [sample_project.id]
