"""In-memory working copy of a project.

Holds the file tree, the file-content map, the selected (active) path and
its live editor buffer. The live buffer is the authority for the active
file; the map entry for the active path is refreshed on every edit and
whenever the selection moves away.

All mutations go through this class so the tree, the map keys and the
selection can never drift apart. Every method is synchronous: nothing can
interleave between reading the live buffer and committing the map.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from codelens.db.models import FileNode, Project
from codelens.rag.assembler import CurrentFile
from codelens.workspace.files import language_for, total_size
from codelens.workspace.tree import build_tree, insert_into_tree, rename_in_tree, root_folders

logger = logging.getLogger(__name__)

# (message, level) where level is "success" | "warning" | "error".
Notifier = Callable[[str, str], None]
RenameListener = Callable[[str, str], None]


def _noop_notify(message: str, level: str) -> None:
    logger.info("[%s] %s", level, message)


class Workspace:
    """The user's editable copy of one project."""

    def __init__(self, notify: Notifier | None = None) -> None:
        self.project_id: str | None = None
        self.project_name = "my-project"
        self.file_tree: list[FileNode] = []
        self.file_contents: dict[str, str] = {}
        self.expanded_folders: set[str] = set()
        self.selected_path = ""
        self.current_file_name = ""
        self.language = "plaintext"
        self.code = ""
        self._notify = notify or _noop_notify
        self._rename_listeners: list[RenameListener] = []

    # ------------------------------------------------------------------
    # Notifications + listeners
    # ------------------------------------------------------------------

    def notify(self, message: str, level: str = "success") -> None:
        self._notify(message, level)

    def add_rename_listener(self, listener: RenameListener) -> None:
        """Register ``listener(old_path, new_path)``, called after every rename."""
        self._rename_listeners.append(listener)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_files(self, files: Iterable[tuple[str, str]]) -> None:
        """Replace the workspace with imported ``(path, content)`` files.

        The first file becomes the active one. An empty import is ignored.
        """
        files = list(files)
        if not files:
            return
        self.file_tree = build_tree(path for path, _ in files)
        self.file_contents = dict(files)
        self.expanded_folders = root_folders(self.file_tree)
        first_path, first_content = files[0]
        self._activate(first_path, first_content)

    def load_project(self, project: Project) -> None:
        self.project_id = project.id
        self.project_name = project.name
        self.file_tree = list(project.file_tree)
        self.file_contents = dict(project.file_contents)
        self.expanded_folders = root_folders(self.file_tree)
        if self.file_contents:
            first_path = next(iter(self.file_contents))
            self._activate(first_path, self.file_contents[first_path])
        else:
            self._activate("", "")

    # ------------------------------------------------------------------
    # Reading + editing
    # ------------------------------------------------------------------

    def read(self, path: str) -> str:
        """Current content of *path*: the live buffer if active, else the map."""
        if path == self.selected_path:
            return self.code
        return self.file_contents.get(path, "")

    def edit(self, new_code: str) -> None:
        """Replace the live buffer of the active file and mirror it into the map."""
        self.code = new_code
        if self.selected_path:
            self.file_contents[self.selected_path] = new_code

    def write(self, path: str, content: str) -> None:
        """Set the content of *path* without changing the selection."""
        if path == self.selected_path:
            self.edit(content)
        elif path in self.file_contents:
            self.file_contents[path] = content
        else:
            self.add_file(path, content)

    def add_file(self, path: str, content: str = "") -> None:
        """Insert a new file into both the tree and the content map."""
        if path in self.file_contents:
            raise ValueError(f"File already exists: {path}")
        self.file_tree = insert_into_tree(self.file_tree, path.split("/"))
        self.file_contents[path] = content

    def select_file(self, path: str) -> None:
        """Make *path* active, flushing the current live buffer first."""
        if path not in self.file_contents:
            raise KeyError(path)
        self._flush_active()
        self._activate(path, self.file_contents[path])

    def open(self, path: str, content: str) -> None:
        """Flush the active buffer, write *content* to *path* and make it active."""
        self._flush_active()
        if path in self.file_contents:
            self.file_contents[path] = content
        else:
            self.add_file(path, content)
        self._activate(path, content)

    def rename_file(self, old_path: str, new_name: str) -> str:
        """Rename a file in place (same folder). Returns the new path.

        Updates the tree node, the content-map key (keeping map order) and
        the selection together, then notifies rename listeners.
        """
        if old_path not in self.file_contents:
            raise KeyError(old_path)
        if not new_name or "/" in new_name:
            raise ValueError(f"Invalid file name: {new_name!r}")
        parent = old_path.rsplit("/", 1)[0] if "/" in old_path else ""
        new_path = f"{parent}/{new_name}" if parent else new_name
        if new_path == old_path:
            return new_path
        if new_path in self.file_contents:
            raise ValueError(f"File already exists: {new_path}")

        self._flush_active()
        self.file_tree = rename_in_tree(self.file_tree, old_path.split("/"), new_name)
        self.file_contents = {
            (new_path if key == old_path else key): value
            for key, value in self.file_contents.items()
        }
        if self.selected_path == old_path:
            self.selected_path = new_path
            self.current_file_name = new_name
            self.language = language_for(new_name)

        for listener in self._rename_listeners:
            listener(old_path, new_path)
        return new_path

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, str]:
        """The content map as it would be saved: live buffer merged in."""
        contents = dict(self.file_contents)
        if self.selected_path:
            contents[self.selected_path] = self.code
        return contents

    def total_size(self) -> int:
        return total_size(self.snapshot())

    def current_file(self) -> CurrentFile | None:
        if not self.selected_path:
            return None
        return CurrentFile(path=self.selected_path, content=self.code)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _flush_active(self) -> None:
        if self.selected_path:
            self.file_contents[self.selected_path] = self.code

    def _activate(self, path: str, content: str) -> None:
        name = path.rsplit("/", 1)[-1] if path else ""
        self.selected_path = path
        self.current_file_name = name
        self.language = language_for(name) if name else "plaintext"
        self.code = content
