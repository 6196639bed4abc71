from __future__ import annotations

import pytest

from gumboard.core.application.use_cases.task_commands import TaskCommand, TaskCommands
from gumboard.utils import metrics
from gumboard.utils.idempotency import EventDeduper

pytestmark = pytest.mark.integration


@pytest.fixture
def commands(repo, service, clock) -> TaskCommands:
    return TaskCommands(store=repo, service=service, deduper=EventDeduper(clock=clock))


def _run(commands, world, intent, **kw):
    return commands.execute(world.author.id, TaskCommand(intent=intent, **kw))


def test_add_creates_default_note_and_announces(commands, world, repo, dispatch):
    result = _run(commands, world, "add", task="  Book venue ")

    assert result.ok is True
    assert result.message == '📝 Added task "Book venue" to Sprint.'
    note = repo.find_bot_default_note(world.author.id, world.board.id)
    assert note is not None and note.id != world.note.id
    assert [i.content for i in note.checklist_items] == ["Book venue"]
    assert dispatch.texts == [":heavy_plus_sign: Book venue by Ada in <http://app.test/boards/board_sprint|Sprint>"]


def test_commands_reuse_the_same_note(commands, world, repo, clock):
    _run(commands, world, "add", task="one")
    clock.advance(2_000)
    _run(commands, world, "add", task="two")

    note = repo.find_bot_default_note(world.author.id, world.board.id)
    assert [(i.content, i.order) for i in note.checklist_items] == [("one", 0.0), ("two", 1.0)]


def test_list_shows_positions_and_state(commands, world, clock):
    assert _run(commands, world, "list").message == "📋 No tasks on Sprint yet."

    _run(commands, world, "add", task="one")
    _run(commands, world, "add", task="two")
    _run(commands, world, "mark", position=2)

    assert _run(commands, world, "list").message == "📋 Tasks on Sprint:\n1. ⬜ one\n2. ✅ two"


def test_mark_and_unmark_by_text(commands, world, dispatch, clock):
    _run(commands, world, "add", task="Ship it")
    clock.advance(60_000)
    dispatch.sent.clear()

    assert _run(commands, world, "mark", task="ship IT").message == '✅ Marked "Ship it" as done.'
    assert dispatch.texts == [":white_check_mark: Ship it by Ada in <http://app.test/boards/board_sprint|Sprint>"]
    assert _run(commands, world, "mark", task="Ship it").message == '✅ "Ship it" is already done.'

    clock.advance(60_000)
    assert _run(commands, world, "unmark", position=1).message == '🔄 Marked "Ship it" as not done.'
    assert dispatch.texts[-1].startswith(":arrows_counterclockwise: Ship it")
    assert _run(commands, world, "unmark", position=1).message == '🔄 "Ship it" is already open.'


def test_edit_and_delete(commands, world, repo, dispatch, clock):
    _run(commands, world, "add", task="Draft")
    clock.advance(60_000)
    dispatch.sent.clear()

    assert _run(commands, world, "edit", position=1, new_task="Final").message == '✏️ Updated "Draft" to "Final".'
    assert _run(commands, world, "delete", task="final").message == '🗑️ Deleted task "Final".'
    assert repo.find_bot_default_note(world.author.id, world.board.id).checklist_items == []
    assert dispatch.sent == []


def test_board_by_name(commands, world, repo):
    backlog = repo.create_board("Backlog", organization_id=world.org.id)
    result = _run(commands, world, "add", task="later", board="backlog")
    assert result.message == '📝 Added task "later" to Backlog.'
    assert repo.find_bot_default_note(world.author.id, backlog.id) is not None


@pytest.mark.parametrize(
    "intent, kwargs, reply",
    [
        ("add", {"task": "x", "board": "Nope"}, '❌ Board "Nope" not found.'),
        ("add", {"task": "  "}, "❌ Please provide a task to add."),
        ("mark", {"position": 3}, "❌ Task #3 not found."),
        ("mark", {"task": "ghost"}, '❌ Task "ghost" not found.'),
        ("delete", {}, "❌ Please tell me which task."),
        ("sing", {}, "❓ Sorry, I didn't understand that."),
    ],
)
def test_user_facing_failures(commands, world, intent, kwargs, reply):
    result = _run(commands, world, intent, **kwargs)
    assert result.ok is False
    assert result.message == reply


def test_edit_needs_new_text(commands, world):
    _run(commands, world, "add", task="Draft")
    result = _run(commands, world, "edit", position=1, new_task="")
    assert result.message == "❌ Please provide the new text for the task."


def test_unknown_user_and_user_without_org(commands, world, repo):
    ghost = commands.execute("user_ghost", TaskCommand(intent="list"))
    assert ghost.message == "❌ User not found. Please link your account first."

    loner = repo.create_user("Lone", "lone@nowhere.test", organization_id=None)
    assert commands.execute(loner.id, TaskCommand(intent="list")).message == "❌ You are not part of an organization."


def test_org_without_boards(commands, repo):
    org = repo.create_organization("Empty")
    user = repo.create_user("Em", "em@empty.test", organization_id=org.id)
    result = commands.execute(user.id, TaskCommand(intent="list"))
    assert result.message == "❌ No boards found in your organization."


def test_redelivered_event_runs_once(commands, world, repo):
    first = _run(commands, world, "add", task="once", event_id="Ev123")
    second = _run(commands, world, "add", task="once", event_id="Ev123")

    assert first.ok and not first.duplicate
    assert second.duplicate is True and second.message == ""
    note = repo.find_bot_default_note(world.author.id, world.board.id)
    assert len(note.checklist_items) == 1
    assert metrics.counter_value("bot_commands_total", intent="add", outcome="duplicate") == 1.0
