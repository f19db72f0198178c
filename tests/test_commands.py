# tests/test_commands.py

from __future__ import annotations

from taskdesk.cli.bootstrap import BOOTSTRAP_ADMIN_ID
from taskdesk.cli.commands import CommandRegistry, registry


def test_command_registry_routes_2_and_3_params(state) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}
    notes: list[str] = []

    def h2(state, args):
        called["h2"] += 1
        return "h2"

    def h3(state, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b", aliases=["bee"])

    assert reg.handle(state, "/a x") == "h2"
    assert reg.handle(state, "/BEE y", emit=notes.append) == "h3"
    assert called == {"h2": 1, "h3": 1}
    assert notes == ["note"]


def test_command_registry_unknown_and_non_command(state) -> None:
    reg = CommandRegistry()
    assert reg.handle(state, "hello") is None
    assert "Empty command" in (reg.handle(state, "/") or "")
    assert "Unknown command" in (reg.handle(state, "/nope") or "")


def test_logged_out_board_is_empty(state) -> None:
    assert "Not logged in" in registry.handle(state, "/whoami")
    assert "Nothing to show" in registry.handle(state, "/tasks")


def test_admin_and_company_user_flow(state) -> None:
    out = registry.handle(state, f"/login {BOOTSTRAP_ADMIN_ID}")
    assert "admin" in out

    registry.handle(state, "/add-company Acme")
    registry.handle(state, "/add-company Globex")
    assert "Acme (0)" in registry.handle(state, "/companies")

    assert registry.handle(state, "/new Broken printer | Floor 2 priority=high company=Acme").startswith("Task created")
    registry.handle(state, "/new VPN access company=globex")

    board = registry.handle(state, "/tasks")
    assert "All tasks (2)" in board
    assert "Broken printer @ Acme" in board

    filtered = registry.handle(state, "/filter priority=high")
    assert "(1)" in filtered
    assert "VPN access" not in filtered
    assert "Error" in registry.handle(state, "/filter priority=urgent")
    registry.handle(state, "/clear")

    assert "Tasks - Globex (1)" in registry.handle(state, "/company Globex")
    assert "only available" in registry.handle(state, "/filter company=Acme")
    registry.handle(state, "/company all")

    assert registry.handle(state, "/add-user alice company_user Acme Alice A").startswith("User alice created")

    out = registry.handle(state, "/login alice")
    assert "Tasks - Acme (1)" in out
    assert "VPN access" not in out

    task_ref = state.board.view.tasks[0].id[:8]
    assert "In progress" in registry.handle(state, f"/set-status {task_ref} progress")
    assert "Error" in registry.handle(state, f"/set-priority {task_ref} low")
    assert "Comment added" in registry.handle(state, f"/comment {task_ref} still broken")

    details = registry.handle(state, f"/show {task_ref}")
    assert "alice: still broken" in details
    assert "Comments (1)" in details

    # The change feed refreshed the board after each write.
    assert "In progress: 1" in registry.handle(state, "/tasks")
    assert "Error" in registry.handle(state, "/add-company Evil")


def test_archived_view_toggle(state) -> None:
    registry.handle(state, f"/login {BOOTSTRAP_ADMIN_ID}")
    registry.handle(state, "/add-company Acme")
    registry.handle(state, "/new Old ticket company=Acme")
    ref = state.board.view.tasks[0].id[:8]

    assert "archived" in registry.handle(state, f"/archive {ref}")
    assert "All tasks (0)" in registry.handle(state, "/tasks")

    archived = registry.handle(state, "/archived")
    assert "Archived tasks (1)" in archived
    assert "Old ticket" in archived

    assert "All tasks (0)" in registry.handle(state, "/back")
    registry.handle(state, "/archived")
    registry.handle(state, f"/restore {ref}")
    assert "All tasks (1)" in registry.handle(state, "/archived")


def test_attach_records_file(state, tmp_path) -> None:
    registry.handle(state, f"/login {BOOTSTRAP_ADMIN_ID}")
    registry.handle(state, "/add-company Acme")
    registry.handle(state, "/new Needs logs company=Acme")
    ref = state.board.view.tasks[0].id[:8]

    small = tmp_path / "app.log"
    small.write_text("x" * 100, "utf-8")
    big = tmp_path / "core.dump"
    big.write_bytes(b"\0" * 2048)

    assert "Attached app.log" in registry.handle(state, f"/attach {ref} {small}")
    assert "too large" in registry.handle(state, f"/attach {ref} {big}")
    assert "no such file" in registry.handle(state, f"/attach {ref} {tmp_path / 'missing'}")
    assert "[0 comments, 1 files]" in registry.handle(state, "/tasks")


def test_users_listing_is_admin_only(state) -> None:
    registry.handle(state, f"/login {BOOTSTRAP_ADMIN_ID}")
    registry.handle(state, "/add-company Acme")
    registry.handle(state, "/add-user bob company_user Acme Bob")

    listing = registry.handle(state, "/users")
    assert f"{BOOTSTRAP_ADMIN_ID}  Administrator (admin)" in listing
    assert "bob  Bob (company_user)" in listing

    registry.handle(state, "/login bob")
    assert registry.handle(state, "/users").startswith("Error")
