from doc_tree import DirectoryNode, FileNode
from tree_filter import filter_tree
from tree_view import TreeView, render_text

TREE = [
    DirectoryNode("guides", "guides", (
        DirectoryNode("intro", "guides/intro", (
            FileNode("Alpha Guide.md", "guides/intro/Alpha Guide.md"),
        )),
        FileNode("Gamma.md", "guides/Gamma.md"),
    )),
    DirectoryNode("empty", "empty", ()),
    FileNode("README.md", "README.md"),
]


def visible(view, query=""):
    return [row.path for row in view.visible_rows(filter_tree(TREE, query))]


def test_directories_start_collapsed():
    assert visible(TreeView()) == ["guides", "empty", "README.md"]


def test_toggle_affects_only_that_directory():
    view = TreeView()

    assert view.toggle("guides") is True
    assert visible(view) == ["guides", "guides/intro", "guides/Gamma.md", "empty", "README.md"]

    view.toggle("guides/intro")
    assert "guides/intro/Alpha Guide.md" in visible(view)

    # collapsing the parent hides the child but keeps its state
    view.toggle("guides")
    assert visible(view) == ["guides", "empty", "README.md"]
    view.toggle("guides")
    assert "guides/intro/Alpha Guide.md" in visible(view)


def test_single_active_file():
    view = TreeView()
    view.reveal("guides/intro/Alpha Guide.md")
    view.activate("guides/Gamma.md")
    view.activate("guides/intro/Alpha Guide.md")

    active = [row.path for row in view.visible_rows(filter_tree(TREE, "")) if row.active]

    assert active == ["guides/intro/Alpha Guide.md"]


def test_search_expands_matches_and_clear_collapses():
    view = TreeView()
    view.toggle("guides")

    filtered = filter_tree(TREE, "alpha")
    view.apply_search(filtered, "alpha")
    assert [row.path for row in view.visible_rows(filtered)] == [
        "guides", "guides/intro", "guides/intro/Alpha Guide.md",
    ]

    cleared = filter_tree(TREE, "")
    view.apply_search(cleared, "")
    assert view.expanded == set()
    assert [row.path for row in view.visible_rows(cleared)] == ["guides", "empty", "README.md"]


def test_render_text_marks_state_and_highlights():
    view = TreeView()
    filtered = filter_tree(TREE, "alpha")
    view.apply_search(filtered, "alpha")
    view.activate("guides/intro/Alpha Guide.md")

    text = render_text(view.visible_rows(filtered), "alpha")

    assert text.splitlines() == [
        "▾ guides/",
        "  ▾ intro/",
        "      [Alpha] Guide *",
    ]


def test_render_text_collapsed_and_empty_directories():
    text = render_text(TreeView().visible_rows(filter_tree(TREE, "")))

    assert text.splitlines() == ["▸ guides/", "· empty/", "  README"]
