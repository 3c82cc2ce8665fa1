"""Pure operations on the nested file tree.

The content map is the source of truth for path identity; these helpers keep
the presentation tree consistent with it. Every function returns a new list
and never mutates its input.
"""

from __future__ import annotations

from collections.abc import Iterable

from codelens.db.models import FileNode
from codelens.workspace.files import extension_of


def insert_into_tree(tree: list[FileNode], path_parts: list[str]) -> list[FileNode]:
    """Insert a file, creating intermediate folders as needed."""
    head, rest = path_parts[0], path_parts[1:]
    if not rest:
        if any(n.name == head and n.type == "file" for n in tree):
            return list(tree)
        return [*tree, FileNode(name=head, type="file", extension=extension_of(head))]

    for i, node in enumerate(tree):
        if node.name == head and node.type == "folder":
            updated = FileNode(
                name=node.name,
                type="folder",
                children=insert_into_tree(node.children or [], rest),
            )
            return [*tree[:i], updated, *tree[i + 1 :]]

    return [*tree, FileNode(name=head, type="folder", children=insert_into_tree([], rest))]


def build_tree(paths: Iterable[str]) -> list[FileNode]:
    tree: list[FileNode] = []
    for path in paths:
        tree = insert_into_tree(tree, path.split("/"))
    return tree


def rename_in_tree(tree: list[FileNode], path_parts: list[str], new_name: str) -> list[FileNode]:
    """Rename the file node at *path_parts* to *new_name*, re-deriving its extension."""
    head, rest = path_parts[0], path_parts[1:]
    result: list[FileNode] = []
    for node in tree:
        if not rest and node.name == head and node.type == "file":
            result.append(FileNode(name=new_name, type="file", extension=extension_of(new_name)))
        elif rest and node.name == head and node.type == "folder":
            result.append(
                FileNode(
                    name=node.name,
                    type="folder",
                    children=rename_in_tree(node.children or [], rest, new_name),
                )
            )
        else:
            result.append(node)
    return result


def leaf_paths(tree: list[FileNode], prefix: str = "") -> list[str]:
    """Return every file path in the tree, ancestors joined with ``/``."""
    paths: list[str] = []
    for node in tree:
        path = f"{prefix}/{node.name}" if prefix else node.name
        if node.type == "folder":
            paths.extend(leaf_paths(node.children or [], path))
        else:
            paths.append(path)
    return paths


def root_folders(tree: list[FileNode]) -> set[str]:
    return {n.name for n in tree if n.type == "folder"}
