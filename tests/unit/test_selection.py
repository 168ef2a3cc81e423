"""Unit tests for bulk selection helpers."""

import pytest

from src.client.selection import SelectionState, TaskSelection, confirmation_message, validate_bulk_operation
from src.domain.task import TaskStatus
from tests.conftest import make_task


@pytest.mark.unit
class TestTaskSelection:
    """Tests for TaskSelection."""

    def test_select_toggle_and_clear(self):
        selection = TaskSelection()

        selection.select("a")
        assert selection.toggle("b") is True
        assert selection.toggle("a") is False

        assert selection.ids == ["b"]
        assert selection.contains("b")
        assert "a" not in selection

        selection.clear()
        assert selection.count == 0

    def test_select_all_keeps_order_without_duplicates(self):
        selection = TaskSelection(["b"])

        selection.select_all(["a", "b", "c"])

        assert selection.ids == ["b", "a", "c"]
        assert len(selection) == 3

    def test_retain_drops_missing_ids(self):
        selection = TaskSelection(["a", "b", "c"])

        selection.retain(["c", "a"])

        assert selection.ids == ["a", "c"]

    @pytest.mark.parametrize(
        ("selected", "visible", "state"),
        [
            ([], ["a", "b"], SelectionState.NONE),
            (["a"], [], SelectionState.NONE),
            (["a"], ["a", "b"], SelectionState.SOME),
            (["a", "b"], ["a", "b"], SelectionState.ALL),
        ],
    )
    def test_state(self, selected, visible, state):
        assert TaskSelection(selected).state(visible) == state


@pytest.mark.unit
class TestValidateBulkOperation:
    """Tests for validate_bulk_operation()."""

    def test_empty_selection_is_invalid(self):
        result = validate_bulk_operation("delete", [], [])

        assert result.is_valid is False
        assert result.message == "Please select at least one task"

    def test_all_already_completed_is_invalid(self):
        done = make_task("Done task", status=TaskStatus.COMPLETED)

        result = validate_bulk_operation(TaskStatus.COMPLETED, [done], [done.id])

        assert result.is_valid is False
        assert result.message == "All selected tasks are already completed"

    def test_mixed_statuses_are_valid(self):
        done = make_task("Done task", status=TaskStatus.COMPLETED)
        todo = make_task("Todo task")

        assert validate_bulk_operation("pending", [done, todo], [done.id, todo.id]).is_valid is True

    def test_delete_is_always_valid_with_selection(self):
        task = make_task("Any task")

        assert validate_bulk_operation("delete", [task], [task.id]).is_valid is True


@pytest.mark.unit
class TestConfirmationMessage:
    """Tests for confirmation_message()."""

    def test_messages(self):
        assert confirmation_message(TaskStatus.COMPLETED, 1) == "Mark 1 task as completed?"
        assert confirmation_message("pending", 3) == "Mark 3 tasks as pending?"
        assert confirmation_message("delete", 2) == (
            "Are you sure you want to delete 2 tasks? This action cannot be undone."
        )
