"""Tests for the in-memory Node tree."""

import io

import pytest

from flprefs.node import Node


@pytest.fixture
def top() -> Node:
    return Node(".")


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------


def test_search_creates_and_find_does_not(top):
    c = top.search("a/b/c")
    assert top.find("a/b/c") is c
    assert top.find("a/x") is None
    assert top.find("a/b/c/d") is None
    assert top.find("a/x") is None and top.find("a").n_children == 1


def test_search_never_duplicates(top):
    first = top.search("a/b")
    again = top.search("a/b")
    assert first is again
    assert top.n_children == 1
    assert top.find("a").n_children == 1


def test_search_is_case_sensitive(top):
    lower = top.search("win")
    upper = top.search("Win")
    assert lower is not upper
    assert [c.name for c in top.children] == ["win", "Win"]


def test_empty_segments(top):
    b = top.search("a//b/")
    assert b is top.search("a/b")
    assert top.find("a//b") is None
    assert top.find("a/b/") is None
    assert top.find("") is top


def test_search_offset(top):
    node = top.search("xx/a/b", offset=3)
    assert node.path == "./a/b"
    assert top.find("xx") is None


def test_paths_and_absolute_lookup(top):
    c = top.search("a/b/c")
    assert top.path == "."
    assert c.path == "./a/b/c"
    assert c.segments == ["a", "b", "c"]
    assert c.find("./a/b") is top.find("a/b")
    assert c.find(".") is top
    assert c.top is top


def test_children_keep_creation_order(top):
    for name in ("zeta", "alpha", "mid"):
        top.add_child(name)
    assert [top.child(i) for i in range(3)] == ["zeta", "alpha", "mid"]
    assert top.child(3) is None
    assert top.child_node(-1) is None


def test_remove_detaches_subtree(top):
    b = top.search("a/b")
    top.clear_dirty_flags()
    a = top.find("a")
    assert a.remove()
    assert top.find("a") is None
    assert top.find("a/b") is None
    assert top.dirty
    assert b.top is a
    assert b.find_root() is None


def test_top_node_cannot_be_removed(top):
    assert not top.remove()


def test_delete_all_children(top):
    top.search("a")
    top.search("b")
    top.clear_dirty_flags()
    top.delete_all_children()
    assert top.n_children == 0
    assert top.dirty


# ---------------------------------------------------------------------------
# Entries and dirty flags
# ---------------------------------------------------------------------------


def test_new_node_clean_until_changed(top):
    assert not top.dirty
    top.set("k", "1")
    assert top.dirty
    top.clear_dirty_flags()
    top.set("k", "1")
    assert not top.dirty
    top.set("k", "2")
    assert top.dirty
    assert top.get("k") == "2"
    assert top.get("missing") is None


def test_runtime_groups_are_dirty(top):
    c = top.search("a/b")
    assert c.dirty
    top.clear_dirty_flags()
    assert not top.dirty
    c.set("x", "1")
    assert top.dirty
    assert not top.find("a")._dirty


def test_set_line_does_not_mark_dirty(top):
    assert top.set_line("name:va\\nlue", ["# hello"])
    assert not top.dirty
    assert top.get("name") == "va\nlue"
    assert top.entry(0).comments == ["# hello"]


def test_set_line_later_duplicate_wins(top):
    top.set_line("k:1")
    top.set_line("k:2")
    assert top.n_entries == 1
    assert top.get("k") == "2"


def test_set_line_rejects_malformed(top):
    assert not top.set_line("no separator here")
    assert not top.set_line("")
    assert top.n_entries == 0


def test_delete_entry_compacts_and_keeps_comments(top):
    top.set_line("a:1")
    top.set_line("b:2", ["# about b"])
    top.set_line("c:3")
    assert top.delete_entry("b")
    assert [e.name for e in top.entries] == ["a", "c"]
    assert top.entry(1).comments == ["# about b"]
    assert top.get_entry("c") == 1
    assert not top.delete_entry("b")
    assert top.dirty


def test_delete_last_entry_keeps_comments(top):
    top.set_line("a:1")
    top.set_line("b:2", ["# keep me"])
    assert top.delete_entry("b")
    assert top.tail == ["# keep me"]

    out = io.StringIO()
    top.write(out)
    assert out.getvalue() == "\n[.]\na:1\n# keep me\n"


def test_delete_all_entries(top):
    top.set("a", "1")
    top.clear_dirty_flags()
    top.delete_all_entries()
    assert top.n_entries == 0
    assert top.dirty


# ---------------------------------------------------------------------------
# Index
# ---------------------------------------------------------------------------


def _exercise(node: Node) -> list:
    """Same sequence of operations; returns everything observable."""
    seen = []
    for i in range(60):
        node.set(f"File{i}", f"/tmp/{i}")
    seen.append([node.get_entry(f"File{i}") for i in range(60)])
    for i in range(0, 60, 7):
        node.delete_entry(f"File{i}")
    seen.append([node.get(f"File{i}") for i in range(60)])
    node.set("File7", "again")
    node.set("File59", "changed")
    seen.append([(e.name, e.value) for e in node.entries])
    seen.append([node.get_entry(f"File{i}") for i in range(62)])
    for i in range(40):
        node.add_child(f"g{i}")
    seen.append([node.child_named(f"g{i}") is node.children[i] for i in range(40)])
    seen.append(node.child_named("nope"))
    node.find("g3").remove()
    seen.append([c.name for c in node.children])
    seen.append(node.find("g3"))
    seen.append(node.find("g4").name)
    return seen


def test_index_never_changes_results():
    indexed = Node(".", index_threshold=0)
    linear = Node(".", index_threshold=10_000)
    assert _exercise(indexed) == _exercise(linear)
    assert not linear.indexed


def test_index_can_be_dropped_any_time():
    node = Node(".", index_threshold=4)
    for i in range(10):
        node.set(f"k{i}", str(i))
    assert node.get("k9") == "9"
    assert node.indexed
    node.drop_index()
    assert not node.indexed
    node.set("k10", "10")
    assert node.get_entry("k10") == 10
    assert node.get("k3") == "3"


def test_index_threshold_inherited():
    top = Node(".", index_threshold=3)
    child = top.search("a/b")
    assert child.index_threshold == 3


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def test_write_depth_first(top):
    top.set("theme", "dark")
    win = top.search("window")
    win.comments.append("# window settings")
    win.set("width", "800")
    win.entries[0].comments.append("# pixels")
    top.search("window/pos").set("x", "10")
    top.search("recent").set("File0", "a\nb")

    out = io.StringIO()
    top.write(out)
    assert out.getvalue() == (
        "\n[.]\n"
        "theme:dark\n"
        "\n# window settings\n[./window]\n"
        "# pixels\n"
        "width:800\n"
        "\n[./window/pos]\n"
        "x:10\n"
        "\n[./recent]\n"
        "File0:a\\nb\n"
    )
