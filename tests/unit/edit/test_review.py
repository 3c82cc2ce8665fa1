"""Tests for the review / apply / undo state machine."""

from __future__ import annotations

import pytest

from codelens.edit.review import CodeReview
from codelens.errors import NoTargetFileError
from codelens.workspace.tree import leaf_paths
from codelens.workspace.workspace import Workspace


class _Notices:
    def __init__(self):
        self.items: list[tuple[str, str]] = []

    def __call__(self, message: str, level: str) -> None:
        self.items.append((message, level))


@pytest.fixture
def notices():
    return _Notices()


@pytest.fixture
def ws(notices):
    workspace = Workspace(notify=notices)
    workspace.load_files(
        [
            ("a.py", "print('a')"),
            ("b.py", "print(0)"),
            ("c.py", "stored c"),
        ]
    )
    return workspace


@pytest.fixture
def review(ws):
    return CodeReview(ws)


# ------------------------------------------------------------------
# Apply + undo
# ------------------------------------------------------------------


def test_apply_then_undo_restores_previous_content(ws, review, notices):
    path = review.apply("print(1)", "b.py")
    assert path == "b.py"
    assert ws.file_contents["b.py"] == "print(1)"
    assert ("Applied to b.py", "success") in notices.items

    assert review.undo() is True
    assert ws.file_contents["b.py"] == "print(0)"
    assert review.last_applied is None
    assert ("Reverted changes", "success") in notices.items

    assert review.undo() is False
    assert ws.file_contents["b.py"] == "print(0)"


def test_apply_to_active_file_updates_live_buffer(ws, review):
    ws.edit("print('a edited')")
    review.apply("print('new a')")
    assert ws.code == "print('new a')"
    assert ws.file_contents["a.py"] == "print('new a')"
    assert review.last_applied.previous_content == "print('a edited')"


def test_only_latest_apply_is_undoable(ws, review):
    review.apply("one", "b.py")
    review.apply("two", "c.py")
    review.undo()
    assert ws.file_contents["c.py"] == "stored c"
    assert ws.file_contents["b.py"] == "one"


def test_apply_without_target_or_active_file_fails(notices):
    ws = Workspace(notify=notices)
    review = CodeReview(ws)
    with pytest.raises(NoTargetFileError):
        review.apply("x = 1")
    assert notices.items == [("No file to apply to. Open a file first.", "error")]
    assert ws.file_contents == {}
    assert review.last_applied is None


def test_apply_to_new_path_adds_file_to_tree(ws, review):
    review.apply("export {}", "src/new.ts")
    assert ws.file_contents["src/new.ts"] == "export {}"
    assert "src/new.ts" in leaf_paths(ws.file_tree)

    review.undo()
    assert ws.file_contents["src/new.ts"] == ""


def test_apply_does_not_change_selection(ws, review):
    review.apply("print(1)", "b.py")
    assert ws.selected_path == "a.py"


# ------------------------------------------------------------------
# Review + accept / reject
# ------------------------------------------------------------------


def test_review_non_active_uses_stored_content_and_accept_navigates(ws, review):
    ws.edit("unsaved a buffer")
    diff = review.review("print('c')", "c.py")
    assert diff.original == "stored c"
    assert diff.language == "python"

    assert review.accept() == "c.py"
    assert ws.selected_path == "c.py"
    assert ws.code == "print('c')"
    assert ws.language == "python"
    assert ws.file_contents["c.py"] == "print('c')"
    # The previous active buffer was flushed before navigating away.
    assert ws.file_contents["a.py"] == "unsaved a buffer"
    assert not review.reviewing


def test_review_active_file_uses_live_buffer(ws, review):
    ws.edit("live edit")
    diff = review.review("replacement")
    assert diff.original == "live edit"
    assert diff.target_path == "a.py"

    review.accept()
    assert ws.code == "replacement"
    assert ws.selected_path == "a.py"


def test_second_review_replaces_pending_diff(ws, review):
    review.review("first", "b.py")
    review.review("second", "c.py")
    assert review.diff.modified == "second"
    assert review.diff.target_path == "c.py"


def test_reject_discards_without_mutation(ws, review):
    before = dict(ws.file_contents)
    review.review("changed", "b.py")
    review.reject()
    assert not review.reviewing
    assert ws.file_contents == before


def test_accept_when_idle_is_noop(ws, review):
    assert review.accept() is None


def test_accept_does_not_touch_undo_slot(ws, review):
    review.apply("applied", "b.py")
    review.review("reviewed", "c.py")
    review.accept()
    assert review.last_applied.path == "b.py"


# ------------------------------------------------------------------
# Rename keeps identities aligned
# ------------------------------------------------------------------


def test_rename_repoints_pending_diff_and_undo(ws, review):
    review.apply("print(1)", "b.py")
    review.review("print(2)", "b.py")
    ws.rename_file("b.py", "bee.py")

    assert review.diff.target_path == "bee.py"
    assert review.last_applied.path == "bee.py"

    review.undo()
    assert ws.file_contents["bee.py"] == "print(0)"
    assert "b.py" not in ws.file_contents
