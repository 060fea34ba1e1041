from ftpsession.core import UNLIMITED
from ftpsession.ui.tree import TreePrinter, render_tree


def test_render_tree(session):
    assert render_tree(session, "/", UNLIMITED) == [
        "├───/",
        "├───root.txt",
        "├───/sub",
        "|   ├───a.txt",
        "|   ├───/sub/sub2",
        "|   |   ├───nested.txt",
    ]


def test_render_tree_depth_limited(session):
    assert render_tree(session, "/", 0) == ["├───/", "├───root.txt"]


def test_tree_printer_groups_files_of_same_directory():
    printer = TreePrinter()
    for path in ["/docs/a.txt", "/docs/b.txt", "/docs/img/c.png", "/docs/d.txt"]:
        printer(path, 0, None)
    assert printer.lines == [
        "├───/docs",
        "|   ├───a.txt",
        "|   ├───b.txt",
        "|   ├───/docs/img",
        "|   |   ├───c.png",
        "├───/docs",
        "|   ├───d.txt",
    ]


def test_tree_printers_do_not_share_state():
    first, second = TreePrinter(), TreePrinter()
    first("/a/x.txt", 0, None)
    second("/a/y.txt", 0, None)
    assert second.lines == ["├───/a", "|   ├───y.txt"]
