"""Tests for the pure file-tree helpers."""

from __future__ import annotations

from codelens.db.models import FileNode
from codelens.workspace.tree import (
    build_tree,
    insert_into_tree,
    leaf_paths,
    rename_in_tree,
    root_folders,
)


def test_build_tree_nests_folders():
    tree = build_tree(["app/main.py", "app/lib/util.py", "README.md"])
    assert [n.name for n in tree] == ["app", "README.md"]
    app = tree[0]
    assert app.is_folder
    assert [n.name for n in app.children] == ["main.py", "lib"]
    assert app.children[1].children[0].extension == "py"


def test_leaf_paths_round_trip_build_tree():
    paths = ["app/main.py", "app/lib/util.py", "README.md"]
    assert leaf_paths(build_tree(paths)) == paths


def test_insert_existing_file_is_noop():
    tree = build_tree(["a/b.txt"])
    assert leaf_paths(insert_into_tree(tree, ["a", "b.txt"])) == ["a/b.txt"]


def test_insert_does_not_mutate_input():
    tree = build_tree(["a/b.txt"])
    insert_into_tree(tree, ["a", "c.txt"])
    assert leaf_paths(tree) == ["a/b.txt"]


def test_rename_rederives_extension():
    tree = build_tree(["src/app.js"])
    renamed = rename_in_tree(tree, ["src", "app.js"], "app.ts")
    leaf = renamed[0].children[0]
    assert leaf.name == "app.ts"
    assert leaf.extension == "ts"
    assert tree[0].children[0].name == "app.js"


def test_rename_only_touches_the_target():
    tree = build_tree(["x/a.py", "y/a.py"])
    renamed = rename_in_tree(tree, ["y", "a.py"], "b.py")
    assert leaf_paths(renamed) == ["x/a.py", "y/b.py"]


def test_root_folders():
    tree = [
        FileNode(name="src", type="folder", children=[]),
        FileNode(name="setup.cfg", type="file", extension="cfg"),
    ]
    assert root_folders(tree) == {"src"}
