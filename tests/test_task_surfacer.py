"""
Task surfacing tests.

Covers:
    - tier ordering CRITICAL → PRIORITY:HIGH → rest, sort_order within a tier
    - task payload: priority 5/4/3, provenance notes, project title
    - repeated calls surface disjoint batches
    - per-item best effort: a failed creation or a lost link is skipped
    - handed-off, completed and other-phase items are never candidates
"""

import pytest

from launch_engine.core.exceptions import NotFoundError, ValidationError
from launch_engine.integrations.task_gateway import NullTaskCreator
from launch_engine.models import db
from launch_engine.models.launch import ChecklistItem
from launch_engine.services.checklist_service import hand_off_item
from launch_engine.services.document_service import add_document
from launch_engine.services.phase_state_machine import complete_checklist_item
from launch_engine.services.project_composer import create_project
from launch_engine.services.task_surfacer import surface_tasks, task_priority

from conftest import FakeTaskCreator

TIERED_MARKUP = (
    "# SETUP\n"
    "- [ ] plain one\n"
    "- [ ] high one [PRIORITY:HIGH]\n"
    "- [ ] crit one [CRITICAL]\n"
    "- [ ] plain two\n"
    "- [ ] crit two [CRITICAL]\n"
    "# LAUNCH\n"
    "- [ ] later [CRITICAL]\n"
)


def _tiered_project():
    doc = add_document("Tiered", "playbook", TIERED_MARKUP)
    return create_project([doc["id"]], meta={"title": "Tiered Launch"})


class _RacingTaskCreator(FakeTaskCreator):
    """Links the item itself before the surfacer does, like a concurrent caller."""

    def create_task(self, title, priority, notes=None, project=None):
        task_id = super().create_task(title, priority, notes, project)
        ChecklistItem.query.filter_by(item_text=title).update(
            {ChecklistItem.linked_task_id: "someone-else"}, synchronize_session=False,
        )
        return task_id


# ═════════════════════════════════════════════════════════════════════════════
# 1. Ordering & payload
# ═════════════════════════════════════════════════════════════════════════════


class TestOrdering:
    def test_critical_item_first(self, sample_project, fake_task_creator):
        surfaced = surface_tasks(sample_project.id)
        assert [i.item_text for i in surfaced] == ["Register domain", "Buy domain"]
        assert [c["priority"] for c in fake_task_creator.created] == [5, 3]

    def test_tiers_then_sort_order(self, fake_task_creator):
        project = _tiered_project()
        surfaced = surface_tasks(project.id, count=10)
        assert [i.item_text for i in surfaced] == [
            "crit one", "crit two", "high one", "plain one", "plain two",
        ]
        assert [c["priority"] for c in fake_task_creator.created] == [5, 5, 4, 3, 3]

    def test_only_current_phase(self, fake_task_creator):
        project = _tiered_project()
        surfaced = surface_tasks(project.id, count=10)
        assert "later" not in [i.item_text for i in surfaced]

    def test_task_payload(self, sample_project, fake_task_creator):
        surface_tasks(sample_project.id, count=1)
        created = fake_task_creator.created[0]
        assert created["title"] == "Register domain"
        assert created["project"] == "Author Launch Engine"
        assert created["notes"] == (
            "From launch: Author Launch Engine\nPhase: SETUP\nSection: Accounts"
        )

    def test_notes_fall_back_to_general_section(self, fake_task_creator):
        project = _tiered_project()
        surface_tasks(project.id, count=1)
        assert fake_task_creator.created[0]["notes"].endswith("Section: General")

    def test_task_priority_by_tag(self, items_by_text):
        items = items_by_text()
        assert task_priority(items["Register domain"]) == 5
        assert task_priority(items["Go live"]) == 3


# ═════════════════════════════════════════════════════════════════════════════
# 2. Linking
# ═════════════════════════════════════════════════════════════════════════════


class TestLinking:
    def test_items_are_linked_to_created_tasks(self, sample_project, fake_task_creator):
        surfaced = surface_tasks(sample_project.id)
        assert [i.linked_task_id for i in surfaced] == ["task-1", "task-2"]
        stored = db.session.get(ChecklistItem, surfaced[0].id)
        assert stored.linked_task_id == "task-1"

    def test_repeated_calls_are_disjoint(self, sample_project, fake_task_creator):
        first = surface_tasks(sample_project.id, count=1)
        second = surface_tasks(sample_project.id, count=1)
        third = surface_tasks(sample_project.id, count=1)
        assert [i.item_text for i in first] == ["Register domain"]
        assert [i.item_text for i in second] == ["Buy domain"]
        assert third == []
        assert len(fake_task_creator.created) == 2

    def test_failed_creation_is_skipped(self, sample_project, fake_task_creator):
        fake_task_creator.fail_titles.add("Register domain")
        surfaced = surface_tasks(sample_project.id)
        assert [i.item_text for i in surfaced] == ["Buy domain"]
        failed = ChecklistItem.query.filter_by(item_text="Register domain").one()
        assert failed.linked_task_id is None

    def test_failed_item_is_retried_next_time(self, sample_project, fake_task_creator):
        fake_task_creator.fail_titles.add("Register domain")
        surface_tasks(sample_project.id)
        fake_task_creator.fail_titles.clear()
        again = surface_tasks(sample_project.id)
        assert [i.item_text for i in again] == ["Register domain"]

    def test_lost_link_race_is_skipped(self, sample_project):
        racing = _RacingTaskCreator()
        surfaced = surface_tasks(sample_project.id, count=1, task_creator=racing)
        assert surfaced == []
        item = ChecklistItem.query.filter_by(item_text="Register domain").one()
        assert item.linked_task_id == "someone-else"

    def test_no_task_service_surfaces_nothing(self, sample_project):
        surfaced = surface_tasks(sample_project.id, task_creator=NullTaskCreator())
        assert surfaced == []
        assert ChecklistItem.query.filter(ChecklistItem.linked_task_id.isnot(None)).count() == 0


# ═════════════════════════════════════════════════════════════════════════════
# 3. Candidate filtering & arguments
# ═════════════════════════════════════════════════════════════════════════════


class TestCandidates:
    def test_completed_items_excluded(self, sample_project, items_by_text, fake_task_creator):
        complete_checklist_item(items_by_text()["Register domain"].id)
        surfaced = surface_tasks(sample_project.id)
        assert [i.item_text for i in surfaced] == ["Buy domain"]

    def test_handed_off_items_excluded(self, sample_project, items_by_text, fake_task_creator):
        hand_off_item(items_by_text()["Register domain"].id, "virtual assistant")
        surfaced = surface_tasks(sample_project.id)
        assert [i.item_text for i in surfaced] == ["Buy domain"]

    def test_count_below_one(self, sample_project, fake_task_creator):
        with pytest.raises(ValidationError):
            surface_tasks(sample_project.id, count=0)

    def test_count_capped_by_config(self, app, monkeypatch, fake_task_creator):
        monkeypatch.setitem(app.config, "SURFACE_MAX_COUNT", 2)
        project = _tiered_project()
        assert len(surface_tasks(project.id, count=10)) == 2

    def test_default_count_from_config(self, app, monkeypatch, fake_task_creator):
        monkeypatch.setitem(app.config, "SURFACE_DEFAULT_COUNT", 3)
        project = _tiered_project()
        assert len(surface_tasks(project.id)) == 3

    def test_unknown_project(self, fake_task_creator):
        with pytest.raises(NotFoundError):
            surface_tasks("missing")
