# tests/test_filtering.py

from __future__ import annotations

import pytest

from taskdesk.core.errors import InconsistentReference, ValidationError
from taskdesk.core.filtering import (
    FilterSelection,
    TaskCounts,
    company_name,
    compose_filters,
    effective_company,
    list_title,
    show_company_filter,
    with_task_counts,
)
from taskdesk.core.visibility import visible_tasks
from taskdesk.tasks.task_models import Role, TaskPriority, TaskStatus

from .fakes import make_companies, make_task


def _ids(result) -> list[str]:
    return [t.id for t in result.tasks]


def test_admin_status_filter(three_tasks, admin) -> None:
    visible = visible_tasks(three_tasks, admin)
    result = compose_filters(
        visible, FilterSelection(status=TaskStatus.OPEN), sidebar_company=None, role=admin.role
    )

    assert _ids(result) == ["T1", "T3"]
    assert result.counts == TaskCounts(total=2, open=2, progress=0, completed=0)


def test_company_user_status_filter_can_be_empty(three_tasks, user_y) -> None:
    visible = visible_tasks(three_tasks, user_y)
    result = compose_filters(
        visible, FilterSelection(status=TaskStatus.OPEN), sidebar_company=None, role=user_y.role
    )

    assert result.tasks == ()
    assert result.counts.total == 0


def test_admin_sidebar_selection_narrows(three_tasks, admin) -> None:
    result = compose_filters(three_tasks, FilterSelection(), sidebar_company="X", role=admin.role)
    assert _ids(result) == ["T1", "T3"]


def test_admin_facet_company_wins_over_sidebar(three_tasks, admin) -> None:
    result = compose_filters(three_tasks, FilterSelection(company="Y"), sidebar_company="X", role=admin.role)
    assert _ids(result) == ["T2"]


@pytest.mark.parametrize("sidebar", [None, "X", "Y", "nope"])
def test_sidebar_is_informational_for_company_users(three_tasks, user_x, sidebar) -> None:
    visible = visible_tasks(three_tasks, user_x)
    base = compose_filters(visible, FilterSelection(), sidebar_company=None, role=user_x.role)
    result = compose_filters(visible, FilterSelection(company="Y"), sidebar_company=sidebar, role=user_x.role)

    assert result.tasks == base.tasks == tuple(visible)


def test_empty_selection_keeps_order(admin) -> None:
    tasks = [make_task(f"T{i}", company_id="XY"[i % 2]) for i in range(6)]
    result = compose_filters(tasks, FilterSelection(), sidebar_company=None, role=admin.role)
    assert list(result.tasks) == tasks


def test_adding_a_facet_never_grows_the_result(admin) -> None:
    tasks = [
        make_task(f"T{i}", status=s, priority=p, company_id=c)
        for i, (s, p, c) in enumerate(
            (s, p, c)
            for s in ("open", "progress", "completed")
            for p in ("high", "medium", "low")
            for c in ("X", "Y")
        )
    ]
    steps = [
        FilterSelection(),
        FilterSelection(status=TaskStatus.PROGRESS),
        FilterSelection(status=TaskStatus.PROGRESS, priority=TaskPriority.LOW),
        FilterSelection(status=TaskStatus.PROGRESS, priority=TaskPriority.LOW, company="Y"),
    ]
    previous = None
    for sel in steps:
        shown = set(_ids(compose_filters(tasks, sel, sidebar_company=None, role=admin.role)))
        if previous is not None:
            assert shown <= previous
        previous = shown
    assert len(previous) == 1


def test_same_inputs_same_output(three_tasks, admin) -> None:
    sel = FilterSelection(priority=TaskPriority.LOW)
    a = compose_filters(three_tasks, sel, sidebar_company="X", role=admin.role)
    b = compose_filters(three_tasks, sel, sidebar_company="X", role=admin.role)
    assert a == b
    assert _ids(a) == ["T3"]


def test_counts_partition_by_status() -> None:
    tasks = [
        make_task("a", status="open"),
        make_task("b", status="progress"),
        make_task("c", status="progress"),
        make_task("d", status="completed"),
    ]
    counts = TaskCounts.from_tasks(tasks)
    assert (counts.open, counts.progress, counts.completed) == (1, 2, 1)
    assert counts.open + counts.progress + counts.completed == counts.total == 4


def test_selection_from_mapping_treats_blank_as_absent() -> None:
    sel = FilterSelection.from_mapping({"status": "", "priority": " HIGH ", "company": None})
    assert sel == FilterSelection(priority=TaskPriority.HIGH)
    assert FilterSelection.from_mapping({}).is_empty


def test_selection_rejects_unknown_values() -> None:
    with pytest.raises(ValidationError):
        FilterSelection.from_mapping({"status": "done"})
    with pytest.raises(ValidationError):
        FilterSelection.from_mapping({"priority": "urgent"})


def test_with_facet_replaces_and_clears() -> None:
    sel = FilterSelection().with_facet("status", "open").with_facet("company", "X")
    assert sel == FilterSelection(status=TaskStatus.OPEN, company="X")
    assert sel.with_facet("status", None) == FilterSelection(company="X")
    with pytest.raises(KeyError):
        sel.with_facet("owner", "me")


def test_effective_company() -> None:
    assert effective_company(FilterSelection(company="Y"), "X", Role.ADMIN) == "Y"
    assert effective_company(FilterSelection(), "X", "admin") == "X"
    assert effective_company(FilterSelection(company="Y"), "X", Role.COMPANY_USER) is None


def test_unknown_company_keeps_task_with_blank_name() -> None:
    task = make_task("T9", company_id="gone")
    companies = make_companies("X")

    assert company_name(task, companies) == ""
    with pytest.raises(InconsistentReference) as exc:
        company_name(task, companies, strict=True)
    assert exc.value.company_id == "gone"


def test_company_task_counts_exclude_archived() -> None:
    tasks = [
        make_task("a", company_id="X"),
        make_task("b", company_id="X", status="completed"),
        make_task("c", company_id="X", archived=True),
        make_task("d", company_id="Y"),
    ]
    counted = {c.id: c.task_count for c in with_task_counts(make_companies("X", "Y", "Z"), tasks)}
    assert counted == {"X": 2, "Y": 1, "Z": 0}


def test_list_title_and_company_facet_availability() -> None:
    companies = make_companies("X")
    assert list_title("X", companies) == "Tasks - Company X"
    assert list_title(None, companies) == "All tasks"
    assert list_title("missing", companies) == "All tasks"

    assert show_company_filter(Role.ADMIN, None)
    assert not show_company_filter(Role.ADMIN, "X")
    assert not show_company_filter(Role.COMPANY_USER, None)
