"""
Checklist maintenance tests: listing, manual items, hand-offs, markup export.
"""

import pytest

from launch_engine.core.exceptions import NotFoundError, StateError, ValidationError
from launch_engine.models.launch import ChecklistItem
from launch_engine.services.checklist_service import (
    add_checklist_item,
    export_markup,
    hand_off_item,
    list_checklist,
    reclaim_item,
    waiting_on_others,
)
from launch_engine.services.launch_parser import parse_document
from launch_engine.services.phase_state_machine import complete_checklist_item, phase_order


def _ordered_texts(project_id):
    rows = ChecklistItem.query.filter_by(project_id=project_id).order_by(ChecklistItem.sort_order).all()
    return [(i.sort_order, i.item_text) for i in rows]


# ═════════════════════════════════════════════════════════════════════════════
# 1. Listing
# ═════════════════════════════════════════════════════════════════════════════


class TestListChecklist:
    def test_filters(self, sample_project, items_by_text):
        complete_checklist_item(items_by_text()["Buy domain"].id)
        assert len(list_checklist(sample_project.id)) == 3
        assert [i.item_text for i in list_checklist(sample_project.id, phase="LAUNCH")] == ["Go live"]
        assert [i.item_text for i in list_checklist(sample_project.id, section="Accounts")] == [
            "Register domain", "Buy domain",
        ]
        assert [i.item_text for i in list_checklist(sample_project.id, status="done")] == ["Buy domain"]
        assert len(list_checklist(sample_project.id, status="open")) == 2

    def test_bad_status(self, sample_project):
        with pytest.raises(ValidationError):
            list_checklist(sample_project.id, status="maybe")

    def test_unknown_project(self):
        with pytest.raises(NotFoundError):
            list_checklist("missing")


# ═════════════════════════════════════════════════════════════════════════════
# 2. Manual items
# ═════════════════════════════════════════════════════════════════════════════


class TestAddChecklistItem:
    def test_inserted_at_end_of_phase(self, sample_project):
        item = add_checklist_item(sample_project.id, {"phase": "SETUP", "item_text": "Set up email list"})
        assert item.sort_order == 2
        assert item.source_document_id is None
        assert _ordered_texts(sample_project.id) == [
            (0, "Register domain"), (1, "Buy domain"), (2, "Set up email list"), (3, "Go live"),
        ]

    def test_defaults_to_current_phase(self, sample_project):
        item = add_checklist_item(sample_project.id, {"item_text": "Order proofs"})
        assert item.phase == "SETUP"

    def test_tokens_in_text_and_explicit_fields(self, sample_project):
        item = add_checklist_item(sample_project.id, {
            "item_text": "Book podcast [CRITICAL] [DUE:LAUNCH-10]",
            "tags": ["priority:high"],
            "recurrence": "weekly",
        })
        assert item.item_text == "Book podcast"
        assert item.tags == ["CRITICAL", "PRIORITY:HIGH"]
        assert item.due_offset == -10
        assert item.recurrence == "weekly"

    def test_new_phase_is_appended(self, sample_project):
        item = add_checklist_item(sample_project.id, {"phase": "AFTERGLOW", "item_text": "Thank readers"})
        assert item.sort_order == 3
        assert phase_order(sample_project.id) == ["SETUP", "LAUNCH", "AFTERGLOW"]

    def test_new_critical_item_blocks_phase(self, sample_project, items_by_text):
        from launch_engine.core.exceptions import PhaseBlockedError
        from launch_engine.services.phase_state_machine import advance_phase

        complete_checklist_item(items_by_text()["Register domain"].id)
        add_checklist_item(sample_project.id, {"item_text": "Proof galley [CRITICAL]"})
        with pytest.raises(PhaseBlockedError) as exc_info:
            advance_phase(sample_project.id)
        assert exc_info.value.blocking_items == ["Proof galley"]

    @pytest.mark.parametrize("data", [
        {"item_text": "   "},
        {"item_text": "[CRITICAL]"},
        {"item_text": "x", "recurrence": "hourly"},
        {"item_text": "x", "due_offset": "soon"},
    ])
    def test_invalid_input(self, sample_project, data):
        with pytest.raises(ValidationError):
            add_checklist_item(sample_project.id, data)


# ═════════════════════════════════════════════════════════════════════════════
# 3. Hand-offs
# ═════════════════════════════════════════════════════════════════════════════


class TestHandOff:
    def test_hand_off_and_reclaim(self, sample_project, items_by_text):
        item_id = items_by_text()["Buy domain"].id
        handed = hand_off_item(item_id, "  assistant ", notes="use the usual registrar")
        assert handed.handed_to == "assistant"
        assert handed.handed_at is not None
        assert handed.notes == "use the usual registrar"
        assert [i.id for i in waiting_on_others(sample_project.id)] == [item_id]

        reclaimed = reclaim_item(item_id)
        assert reclaimed.handed_to is None
        assert reclaimed.handed_at is None
        assert waiting_on_others(sample_project.id) == []

    def test_reclaim_is_idempotent(self, items_by_text):
        item = reclaim_item(items_by_text()["Go live"].id)
        assert item.handed_to is None

    def test_completed_item_cannot_be_handed_off(self, items_by_text):
        item_id = items_by_text()["Buy domain"].id
        complete_checklist_item(item_id)
        with pytest.raises(StateError):
            hand_off_item(item_id, "assistant")

    def test_blank_recipient(self, items_by_text):
        with pytest.raises(ValidationError):
            hand_off_item(items_by_text()["Buy domain"].id, "")


# ═════════════════════════════════════════════════════════════════════════════
# 4. Markup export
# ═════════════════════════════════════════════════════════════════════════════


class TestExportMarkup:
    def test_export_reparses_to_same_checklist(self, sample_project):
        reparsed = parse_document(export_markup(sample_project.id))
        assert reparsed.phases == ("SETUP", "LAUNCH")
        assert [(i.phase, i.section, i.item_text, i.tags, i.due_offset, i.recurrence) for i in reparsed.items] == [
            ("SETUP", "Accounts", "Register domain", ("CRITICAL",), None, None),
            ("SETUP", "Accounts", "Buy domain", (), -30, None),
            ("LAUNCH", None, "Go live", (), None, "daily"),
        ]

    def test_completed_items_are_exported_open(self, sample_project, items_by_text):
        complete_checklist_item(items_by_text()["Buy domain"].id)
        assert "- [ ] [DUE:LAUNCH-30] Buy domain" in export_markup(sample_project.id)
