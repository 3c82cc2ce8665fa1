"""In-memory project workspace: file tree, content map and active buffer."""

from codelens.workspace.files import language_for, read_directory, should_skip_dir, should_skip_file
from codelens.workspace.workspace import Notifier, Workspace

__all__ = [
    "Notifier",
    "Workspace",
    "language_for",
    "read_directory",
    "should_skip_dir",
    "should_skip_file",
]
