"""Unit tests for view derivation."""

from datetime import date, datetime, timedelta

import pytest

from src.client.view import (
    ViewOptions,
    derive_view,
    is_search_active,
    local_date_string,
    search_suggestions,
    sort_tasks,
)
from src.domain.task import SortKey, StatusFilter, TaskStatus
from tests.conftest import make_task


@pytest.fixture
def tasks():
    """Four tasks created a day apart, oldest first."""
    start = datetime(2024, 3, 5, 12, 0).astimezone()
    return [
        make_task("banana bread", created_at=start),
        make_task("Apple pie", status=TaskStatus.COMPLETED, created_at=start + timedelta(days=1)),
        make_task("cherry tart", created_at=start + timedelta(days=2)),
        make_task("Date squares", status=TaskStatus.COMPLETED, created_at=start + timedelta(days=3)),
    ]


def _titles(tasks) -> list[str]:
    return [task.title for task in tasks]


@pytest.mark.unit
class TestDeriveView:
    """Tests for derive_view()."""

    def test_defaults_show_all_newest_first(self, tasks):
        assert _titles(derive_view(tasks)) == ["Date squares", "cherry tart", "Apple pie", "banana bread"]

    def test_status_filter(self, tasks):
        view = derive_view(tasks, ViewOptions(status_filter=StatusFilter.PENDING))

        assert _titles(view) == ["cherry tart", "banana bread"]

    def test_search_matches_title_case_insensitively(self, tasks):
        view = derive_view(tasks, ViewOptions(search_query="  APPLE "))

        assert _titles(view) == ["Apple pie"]

    def test_search_matches_status(self, tasks):
        view = derive_view(tasks, ViewOptions(search_query="complet"))

        assert _titles(view) == ["Date squares", "Apple pie"]

    def test_search_matches_local_creation_date(self, tasks):
        view = derive_view(tasks, ViewOptions(search_query="3/6/2024"))

        assert _titles(view) == ["Apple pie"]

    def test_blank_search_is_ignored(self, tasks):
        assert len(derive_view(tasks, ViewOptions(search_query="   "))) == 4

    def test_filter_and_search_combine(self, tasks):
        view = derive_view(tasks, ViewOptions(status_filter=StatusFilter.COMPLETED, search_query="a"))

        assert _titles(view) == ["Date squares", "Apple pie"]

    def test_created_date_bounds_are_inclusive(self, tasks):
        view = derive_view(tasks, ViewOptions(created_from=date(2024, 3, 6), created_to=date(2024, 3, 7)))

        assert _titles(view) == ["cherry tart", "Apple pie"]

    def test_does_not_mutate_input_and_is_idempotent(self, tasks):
        original = list(tasks)
        options = ViewOptions(sort_key=SortKey.A_Z, search_query="e")

        first = derive_view(tasks, options)
        second = derive_view(tasks, options)

        assert tasks == original
        assert first == second
        assert first is not second


@pytest.mark.unit
class TestSortTasks:
    """Tests for sort_tasks()."""

    @pytest.mark.parametrize(
        ("sort_key", "expected"),
        [
            (SortKey.NEWEST, ["Date squares", "cherry tart", "Apple pie", "banana bread"]),
            (SortKey.OLDEST, ["banana bread", "Apple pie", "cherry tart", "Date squares"]),
            (SortKey.A_Z, ["Apple pie", "banana bread", "cherry tart", "Date squares"]),
            (SortKey.Z_A, ["Date squares", "cherry tart", "banana bread", "Apple pie"]),
            (SortKey.COMPLETED_FIRST, ["Date squares", "Apple pie", "cherry tart", "banana bread"]),
            (SortKey.PENDING_FIRST, ["cherry tart", "banana bread", "Date squares", "Apple pie"]),
        ],
    )
    def test_sort_keys(self, tasks, sort_key, expected):
        assert _titles(sort_tasks(tasks, sort_key)) == expected

    def test_equal_keys_keep_incoming_order(self):
        moment = datetime(2024, 1, 1, 9, 0).astimezone()
        first = make_task("Same", created_at=moment)
        second = make_task("Same", created_at=moment)

        assert sort_tasks([first, second], SortKey.A_Z) == [first, second]
        assert sort_tasks([second, first], SortKey.A_Z) == [second, first]
        assert sort_tasks([first, second], SortKey.NEWEST) == [first, second]

    def test_alphabetic_sort_ignores_accents(self):
        titles = ["Zebra feed", "\u00c9clair order", "Apple pie", "\u00e9t\u00e9 plans", "Eclair order"]
        tasks = [make_task(title) for title in titles]

        assert _titles(sort_tasks(tasks, SortKey.A_Z)) == [
            "Apple pie",
            "Eclair order",
            "\u00c9clair order",
            "\u00e9t\u00e9 plans",
            "Zebra feed",
        ]
        assert _titles(sort_tasks(tasks, SortKey.Z_A))[0] == "Zebra feed"

    def test_case_only_differences_sort_deterministically(self):
        lower = make_task("same title")
        upper = make_task("Same title")

        assert sort_tasks([lower, upper], SortKey.A_Z) == sort_tasks([upper, lower], SortKey.A_Z)


@pytest.mark.unit
class TestSearchHelpers:
    """Tests for search_suggestions(), is_search_active() and local_date_string()."""

    def test_suggestions_are_distinct_and_limited(self):
        tasks = [make_task(f"Task {n}") for n in range(8)]

        assert search_suggestions(tasks, "task") == [f"Task {n}" for n in range(5)]
        assert search_suggestions(tasks, "task", limit=2) == ["Task 0", "Task 1"]

    def test_no_suggestions_for_blank_query(self):
        assert search_suggestions([make_task("Task one")], "  ") == []

    def test_is_search_active(self):
        assert is_search_active(" x ") is True
        assert is_search_active("   ") is False
        assert is_search_active(None) is False

    def test_local_date_string_has_no_padding(self):
        assert local_date_string(datetime(2024, 3, 5, 12, 0).astimezone()) == "3/5/2024"
