# src/taskdesk/cli/commands.py

from __future__ import annotations

import inspect
import logging
import mimetypes
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import cast

from ..core.board import BoardView, DisplayMode
from ..core.errors import NotFound, PermissionDenied, TaskdeskError, ValidationError
from ..core.state import AppState
from ..core.visibility import can_edit_task
from ..tasks import task_api
from ..tasks.task_models import Company, Task

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

STATUS_LABELS = {"open": "Open", "progress": "In progress", "completed": "Completed"}
PRIORITY_LABELS = {"high": "High", "medium": "Medium", "low": "Low"}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except TaskdeskError as e:
            logger.info("/%s rejected: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def _fmt_ts(ts: float | None) -> str:
    if not ts:
        return "-"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d")


def _short(task_or_id: Task | str) -> str:
    tid = task_or_id.id if isinstance(task_or_id, Task) else task_or_id
    return tid[:8]


def format_task_line(task: Task, company: str) -> str:
    due = f" due {task.due_date}" if task.due_date else ""
    extras = ""
    if task.comment_count or task.attachment_count:
        extras = f" [{task.comment_count} comments, {task.attachment_count} files]"
    return (
        f"{_short(task)}  {STATUS_LABELS[task.status]:<11} {PRIORITY_LABELS[task.priority]:<6} "
        f"{task.title} @ {company or '?'}{due}{extras}"
    )


def render_board(view: BoardView) -> str:
    if view.error:
        return f"Nothing to show: {view.error}"

    if view.mode == DisplayMode.ARCHIVED:
        lines = [f"Archived tasks ({len(view.archived_tasks)}):"]
        if not view.archived_tasks:
            lines.append("  No archived tasks.")
        for t in view.archived_tasks:
            lines.append(f"  {format_task_line(t, view.company_name(t))} archived {_fmt_ts(t.archived_at)}")
        lines.append("Use /back to return to the task list.")
        return "\n".join(lines)

    c = view.counts
    lines = [
        f"{view.title} ({c.total})",
        f"  Open: {c.open}  In progress: {c.progress}  Completed: {c.completed}",
    ]
    active = [f"{k}={v}" for k, v in (
        ("status", view.selection.status),
        ("priority", view.selection.priority),
        ("company", view.selection.company),
    ) if v]
    if active:
        lines.append(f"  Filters: {' '.join(active)}")

    if not view.tasks:
        lines.append("  No tasks found.")
    for t in view.tasks:
        lines.append(f"  {format_task_line(t, view.company_name(t))}")
    return "\n".join(lines)


def render_companies(view: BoardView) -> str:
    if view.error:
        return f"Nothing to show: {view.error}"
    if not view.companies:
        return "No companies."
    lines = ["Companies:"]
    for c in view.companies:
        mark = "*" if c.id == view.sidebar_company else " "
        lines.append(f" {mark} {_short(c.id)}  {c.name} ({c.task_count})")
    return "\n".join(lines)


# ---- argument helpers ----


def _split_kv(args: list[str], keys: set[str]) -> tuple[dict[str, str], list[str]]:
    opts: dict[str, str] = {}
    rest: list[str] = []
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key.lower() in keys:
            opts[key.lower()] = value
        else:
            rest.append(a)
    return opts, rest


def _find_task(state: AppState, ref: str) -> Task:
    """Resolve a task by full id or unique id prefix among the tasks on the board."""
    view = state.board.view
    candidates = [t for t in (*view.tasks, *view.archived_tasks) if t.id.startswith(ref)]
    if len({t.id for t in candidates}) == 1:
        return candidates[0]
    if len(candidates) > 1:
        raise ValidationError(f"task reference {ref!r} is ambiguous")

    task = state.store.get_task(ref)
    if task is None or not can_edit_task(state.session.current_identity(), task):
        raise NotFound(f"unknown task {ref!r}")
    return task


def _find_company(state: AppState, ref: str) -> Company:
    """Resolve a company by id, id prefix or case-insensitive name among visible companies."""
    companies = state.board.view.companies
    lowered = ref.lower()
    by_name = [c for c in companies if c.name.lower() == lowered]
    if len(by_name) == 1:
        return by_name[0]
    by_id = [c for c in companies if c.id.startswith(ref)]
    if len(by_id) == 1:
        return by_id[0]
    if len(by_id) > 1 or len(by_name) > 1:
        raise ValidationError(f"company reference {ref!r} is ambiguous")
    raise NotFound(f"unknown company {ref!r}")


# ---- commands ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_login(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /login <user_id>"
    identity = state.session.login(args[0])
    state.board.on_identity_changed()
    return f"Logged in as {identity.name or identity.user_id} ({identity.role}).\n" + render_board(state.board.view)


def cmd_logout(state: AppState, args: list[str]) -> str:
    state.session.logout()
    state.board.on_identity_changed()
    return "Logged out."


def cmd_whoami(state: AppState, args: list[str]) -> str:
    ident = state.session.current_identity()
    if ident is None:
        return "Not logged in. Use /login <user_id>."
    where = f", company {ident.company_id}" if ident.company_id else ""
    return f"{ident.name or ident.user_id} ({ident.user_id}), role {ident.role}{where}"


def cmd_tasks(state: AppState, args: list[str]) -> str:
    return render_board(state.board.view)


def cmd_filter(state: AppState, args: list[str]) -> str:
    """
    /filter status=open priority=high company=<ref>
    An empty value (status=) clears that facet.
    """
    opts, rest = _split_kv(args, {"status", "priority", "company"})
    if rest or not opts:
        return "Usage: /filter status=<open|progress|completed> priority=<high|medium|low> company=<id|name>"

    if "company" in opts:
        if not state.board.view.show_company_filter and opts["company"]:
            return "Company filter is only available to admins with no company selected."
        if opts["company"]:
            opts["company"] = _find_company(state, opts["company"]).id

    view = state.board.view
    for key, value in opts.items():
        view = state.board.set_facet(key, value or None)
    return render_board(view)


def cmd_clear(state: AppState, args: list[str]) -> str:
    return render_board(state.board.clear_filters())


def cmd_company(state: AppState, args: list[str]) -> str:
    if not args:
        return render_companies(state.board.view)
    ref = " ".join(args)
    if ref.lower() == "all":
        return render_board(state.board.select_company(None))
    return render_board(state.board.select_company(_find_company(state, ref).id))


def cmd_companies(state: AppState, args: list[str]) -> str:
    return render_companies(state.board.view)


def cmd_archived(state: AppState, args: list[str]) -> str:
    return render_board(state.board.toggle_archived())


def cmd_back(state: AppState, args: list[str]) -> str:
    return render_board(state.board.leave_archived())


def cmd_new(state: AppState, args: list[str]) -> str:
    """
    /new <title> [| description] [priority=..] [company=..] [due=YYYY-MM-DD]
    """
    opts, rest = _split_kv(args, {"priority", "company", "due"})
    text = " ".join(rest)
    title, _, description = text.partition("|")
    if not title.strip():
        return "Usage: /new <title> [| description] [priority=high|medium|low] [company=<ref>] [due=YYYY-MM-DD]"

    company_id = None
    if opts.get("company"):
        company_id = _find_company(state, opts["company"]).id
    elif state.board.sidebar_company:
        company_id = state.board.sidebar_company

    task_id = task_api.create_task(
        state.store,
        state.session.current_identity(),
        title=title.strip(),
        description=description.strip(),
        priority=opts.get("priority") or "medium",
        company_id=company_id,
        due_date=opts.get("due"),
    )
    return f"Task created: {_short(task_id)}"


def cmd_set_status(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /set-status <task> <open|progress|completed>"
    task = _find_task(state, args[0])
    new_status = task_api.update_task_status(state.store, state.session.current_identity(), task.id, args[1])
    return f"Task {_short(task)} is now {STATUS_LABELS[new_status]}."


def cmd_set_priority(state: AppState, args: list[str]) -> str:
    if len(args) != 2:
        return "Usage: /set-priority <task> <high|medium|low>"
    task = _find_task(state, args[0])
    new_priority = task_api.update_task_priority(state.store, state.session.current_identity(), task.id, args[1])
    return f"Task {_short(task)} priority is now {PRIORITY_LABELS[new_priority]}."


def cmd_archive(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /archive <task>"
    task = _find_task(state, args[0])
    task_api.archive_task(state.store, state.session.current_identity(), task.id)
    return f"Task {_short(task)} archived."


def cmd_restore(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /restore <task>"
    task = _find_task(state, args[0])
    task_api.archive_task(state.store, state.session.current_identity(), task.id, archived=False)
    return f"Task {_short(task)} restored."


def cmd_comment(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /comment <task> <text>"
    task = _find_task(state, args[0])
    task_api.add_comment(state.store, state.session.current_identity(), task.id, " ".join(args[1:]))
    return f"Comment added to {_short(task)}."


def cmd_attach(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/attach <task> <path>: records the file's metadata against the task."""
    if len(args) != 2:
        return "Usage: /attach <task> <path>"
    task = _find_task(state, args[0])
    path = Path(args[1]).expanduser()
    if not path.is_file():
        raise ValidationError(f"no such file: {path}")

    if emit is not None:
        emit(f"Attaching {path.name}...")

    content_type, _ = mimetypes.guess_type(path.name)
    task_api.attach_file(
        state.store,
        state.session.current_identity(),
        task.id,
        filename=path.name,
        file_size=path.stat().st_size,
        content_type=content_type,
        max_bytes=int(getattr(state.settings, "max_attachment_bytes", task_api.DEFAULT_MAX_ATTACHMENT_BYTES)),
    )
    return f"Attached {path.name} to {_short(task)}."


def cmd_show(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /show <task>"
    task = _find_task(state, args[0])
    view = state.board.view
    lines = [
        f"{task.title} ({task.id})",
        f"  Company: {view.company_name(task) or '?'}",
        f"  Status: {STATUS_LABELS[task.status]}  Priority: {PRIORITY_LABELS[task.priority]}",
        f"  Due: {task.due_date or '-'}  Created: {_fmt_ts(task.created_at)} by {task.created_by or '?'}",
    ]
    if task.description:
        lines.append(f"  {task.description}")

    comments = state.store.list_comments(task.id)
    lines.append(f"  Comments ({len(comments)}):")
    for cm in comments:
        lines.append(f"    [{_fmt_ts(cm.created_at)}] {cm.user_id}: {cm.text}")

    attachments = state.store.list_attachments(task.id)
    lines.append(f"  Attachments ({len(attachments)}):")
    for a in attachments:
        lines.append(f"    {a.filename} ({a.file_size} bytes) -> {a.file_path}")
    return "\n".join(lines)


def cmd_add_company(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /add-company <name>"
    company_id = task_api.create_company(state.store, state.session.current_identity(), " ".join(args))
    return f"Company created: {_short(company_id)}"


def cmd_deactivate_company(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /deactivate-company <company>"
    company = _find_company(state, " ".join(args))
    task_api.deactivate_company(state.store, state.session.current_identity(), company.id)
    if state.board.sidebar_company == company.id:
        state.board.select_company(None)
    return f"Company {company.name} deactivated."


def cmd_users(state: AppState, args: list[str]) -> str:
    ident = state.session.current_identity()
    if ident is None or not ident.is_admin:
        raise PermissionDenied("only admins can list users")
    profiles = state.store.list_profiles()
    lines = ["Users:"]
    for p in profiles:
        where = f" company {_short(p.company_id)}" if p.company_id else ""
        lines.append(f"  {p.user_id}  {p.name} ({p.role}){where}")
    return "\n".join(lines)


def cmd_add_user(state: AppState, args: list[str]) -> str:
    """
    /add-user <user_id> admin [name...]
    /add-user <user_id> company_user <company> [name...]
    """
    if len(args) < 2:
        return "Usage: /add-user <user_id> <admin|company_user> [company] [name]"
    user_id, role = args[0], args[1].lower()
    company_id = None
    rest = args[2:]
    if role == "company_user":
        if not rest:
            return "Usage: /add-user <user_id> company_user <company> [name]"
        company_id = _find_company(state, rest[0]).id
        rest = rest[1:]
    task_api.create_profile(
        state.store,
        state.session.current_identity(),
        user_id=user_id,
        name=" ".join(rest) or user_id,
        role=role,
        company_id=company_id,
    )
    return f"User {user_id} created."


def cmd_remove_user(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /remove-user <user_id>"
    task_api.remove_profile(state.store, state.session.current_identity(), args[0])
    return f"User {args[0]} removed."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Log in: /login <user_id>.")
registry.register("logout", cmd_logout, help_text="Log out.")
registry.register("whoami", cmd_whoami, help_text="Show the current user.")
registry.register("tasks", cmd_tasks, help_text="Show the task list (or archived list).", aliases=["ls"])
registry.register(
    "filter", cmd_filter, help_text="Filter tasks: /filter status=.. priority=.. company=.. (empty value clears)."
)
registry.register("clear", cmd_clear, help_text="Clear all filters.")
registry.register("company", cmd_company, help_text="Select a company in the sidebar: /company <ref|all>.")
registry.register("companies", cmd_companies, help_text="List visible companies with task counts.")
registry.register("archived", cmd_archived, help_text="Toggle the archived tasks view.")
registry.register("back", cmd_back, help_text="Leave the archived tasks view.")
registry.register("new", cmd_new, help_text="Create a task: /new <title> [| description] [priority=..] [due=..].")
registry.register("set-status", cmd_set_status, help_text="Change status: /set-status <task> <status>.")
registry.register("set-priority", cmd_set_priority, help_text="Change priority (admins): /set-priority <task> <p>.")
registry.register("archive", cmd_archive, help_text="Archive a task: /archive <task>.")
registry.register("restore", cmd_restore, help_text="Restore an archived task: /restore <task>.")
registry.register("comment", cmd_comment, help_text="Comment on a task: /comment <task> <text>.")
registry.register("attach", cmd_attach, help_text="Attach a file record: /attach <task> <path>.")
registry.register("show", cmd_show, help_text="Task details with comments and attachments.")
registry.register("add-company", cmd_add_company, help_text="Create a company (admins).")
registry.register("deactivate-company", cmd_deactivate_company, help_text="Deactivate a company (admins).")
registry.register("users", cmd_users, help_text="List users (admins).")
registry.register("add-user", cmd_add_user, help_text="Create a user (admins).")
registry.register("remove-user", cmd_remove_user, help_text="Remove a user (admins).")
