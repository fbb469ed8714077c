"""Name search over the document tree.

The browser client runs the same algorithm on every keystroke; this module is
the Python rendition used by the terminal client and the tests.
"""

import html
import re
from dataclasses import dataclass

from doc_tree import MARKDOWN_EXT, DirectoryNode


@dataclass(frozen=True)
class FilteredNode:
    node: object
    search_match: bool = False
    children: tuple = ()

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def path(self) -> str:
        return self.node.path

    @property
    def is_dir(self) -> bool:
        return isinstance(self.node, DirectoryNode)


def display_name(name: str) -> str:
    if name.endswith(MARKDOWN_EXT):
        return name[: -len(MARKDOWN_EXT)]
    return name


def normalize_query(query: str) -> str:
    return (query or "").strip().lower()


def _unfiltered(nodes) -> tuple:
    return tuple(
        FilteredNode(node, False, _unfiltered(node.children) if isinstance(node, DirectoryNode) else ())
        for node in nodes
    )


def filter_tree(nodes, query: str) -> tuple:
    """Return the nodes whose display name contains ``query``, with ancestors.

    A directory survives when its own name matches or any descendant does;
    it keeps only its surviving children. An empty query returns the whole
    tree with no node marked as a match.
    """
    query = normalize_query(query)
    if not query:
        return _unfiltered(nodes)
    return _filter(nodes, query)


def _filter(nodes, query: str) -> tuple:
    filtered = []
    for node in nodes:
        matches = query in display_name(node.name).lower()
        if isinstance(node, DirectoryNode):
            children = _filter(node.children, query)
            if matches or children:
                filtered.append(FilteredNode(node, matches, children))
        elif matches:
            filtered.append(FilteredNode(node, True))
    return tuple(filtered)


def matching_directories(filtered) -> set:
    """Paths of directories that match or contain a match.

    Only meaningful for a tree produced with a non-empty query, where every
    surviving child leads to a match.
    """
    paths = set()
    for item in filtered:
        if item.is_dir and (item.search_match or item.children):
            paths.add(item.path)
            paths |= matching_directories(item.children)
    return paths


def highlight_segments(text: str, query: str) -> list:
    query = normalize_query(query)
    if not query:
        return [(text, False)]
    segments = []
    pos = 0
    for m in re.finditer(re.escape(query), text, re.IGNORECASE):
        if m.start() > pos:
            segments.append((text[pos:m.start()], False))
        segments.append((m.group(0), True))
        pos = m.end()
    if pos < len(text):
        segments.append((text[pos:], False))
    return segments


def highlight_html(text: str, query: str) -> str:
    return "".join(
        f'<span class="search-highlight">{html.escape(segment)}</span>' if matched else html.escape(segment)
        for segment, matched in highlight_segments(text, query)
    )
