# tests/test_change_feed.py

from __future__ import annotations

from taskdesk.tasks.change_feed import ChangeEvent, ChangeFeed


def test_subscribe_is_keyed_by_table_and_unsubscribes() -> None:
    feed = ChangeFeed()
    seen: list[ChangeEvent] = []

    unsubscribe = feed.subscribe("tasks", seen.append)
    assert feed.listener_count("tasks") == 1
    feed.publish("tasks", "update")
    feed.publish("companies", "insert")

    assert [(e.table, e.kind) for e in seen] == [("tasks", "update")]

    unsubscribe()
    unsubscribe()
    assert feed.listener_count("tasks") == 0
    feed.publish("tasks")
    assert len(seen) == 1


def test_failing_handler_does_not_block_others() -> None:
    feed = ChangeFeed()
    seen: list[str] = []

    def broken(_event: ChangeEvent) -> None:
        raise RuntimeError("boom")

    feed.subscribe("tasks", broken)
    feed.subscribe("tasks", lambda e: seen.append(e.table))
    feed.publish("tasks")

    assert seen == ["tasks"]

