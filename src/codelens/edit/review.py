"""Review / apply / undo state machine for AI-proposed code.

States: ``Idle`` and ``Reviewing`` (one pending DiffState), plus an
orthogonal single-slot UndoRecord.

  review(code, target?)   Idle|Reviewing → Reviewing   (replaces any pending diff)
  accept()                Reviewing → Idle             (commits, may navigate)
  reject()                Reviewing → Idle             (no mutation)
  apply(code, target?)    direct commit, records the undo slot (overwrites it)
  undo()                  restores the undo slot and clears it; no-op if empty

Every transition is synchronous, so reading the live buffer and committing
the content map happen in one uninterrupted step.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from codelens.errors import NoTargetFileError
from codelens.workspace.files import language_for
from codelens.workspace.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass
class DiffState:
    original: str
    modified: str
    language: str
    target_path: str


@dataclass
class UndoRecord:
    path: str
    previous_content: str


class CodeReview:
    """Owns the pending diff and the undo slot for one workspace."""

    def __init__(self, workspace: Workspace) -> None:
        self._ws = workspace
        self.diff: DiffState | None = None
        self.last_applied: UndoRecord | None = None
        workspace.add_rename_listener(self._on_rename)

    @property
    def reviewing(self) -> bool:
        return self.diff is not None

    @property
    def can_undo(self) -> bool:
        return self.last_applied is not None

    # ------------------------------------------------------------------
    # Diff preview
    # ------------------------------------------------------------------

    def review(self, code: str, target_path: str | None = None) -> DiffState:
        """Open a diff of *code* against the current content of the target."""
        target = target_path or self._ws.selected_path
        language = language_for(target_path) if target_path else self._ws.language
        self.diff = DiffState(
            original=self._ws.read(target),
            modified=code,
            language=language,
            target_path=target,
        )
        return self.diff

    def accept(self) -> str | None:
        """Commit the pending diff. Returns the path written, or None if idle.

        Accepting a diff for a file other than the active one flushes the
        active buffer and then makes the target the active file.
        """
        if self.diff is None:
            return None
        diff, self.diff = self.diff, None
        target = diff.target_path
        if not target or target == self._ws.selected_path:
            self._ws.edit(diff.modified)
        else:
            self._ws.open(target, diff.modified)
        logger.debug("Accepted diff for %s", target or "<unsaved buffer>")
        return target or None

    def reject(self) -> None:
        self.diff = None

    # ------------------------------------------------------------------
    # Direct apply + undo
    # ------------------------------------------------------------------

    def apply(self, code: str, target_path: str | None = None) -> str:
        """Write *code* to the target without preview. Returns the path written.

        Raises:
            NoTargetFileError: No target path was given and no file is open.
        """
        target = target_path or self._ws.selected_path
        if not target:
            error = NoTargetFileError()
            self._ws.notify(str(error), "error")
            raise error

        self.last_applied = UndoRecord(path=target, previous_content=self._ws.read(target))
        self._ws.write(target, code)

        file_name = target.rsplit("/", 1)[-1]
        self._ws.notify(f"Applied to {file_name}", "success")
        return target

    def undo(self) -> bool:
        """Revert the most recent apply. Returns False when there is nothing to undo."""
        if self.last_applied is None:
            return False
        record, self.last_applied = self.last_applied, None
        self._ws.write(record.path, record.previous_content)
        self._ws.notify("Reverted changes", "success")
        return True

    # ------------------------------------------------------------------
    # Path identity
    # ------------------------------------------------------------------

    def _on_rename(self, old_path: str, new_path: str) -> None:
        if self.diff is not None and self.diff.target_path == old_path:
            self.diff.target_path = new_path
        if self.last_applied is not None and self.last_applied.path == old_path:
            self.last_applied.path = new_path
