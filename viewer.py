"""Document viewer state for the navigation clients.

``AppState`` owns everything the client shows: the tree, the active search,
the expansion and selection state, and the currently displayed document.
``DocumentViewer`` loads documents into it and tags every fetch with a
request id so that a slow response for an earlier selection can never
replace the document the user picked last.
"""

import html
import logging
import re
from dataclasses import dataclass, field

from tree_filter import filter_tree, normalize_query
from tree_view import TreeView

logger = logging.getLogger(__name__)

DIAGRAM_BLOCK_RE = re.compile(r'<pre><code class="language-mermaid">(.*?)</code></pre>', re.S)

MERMAID_DIAGRAM_TYPES = {
    "graph", "flowchart", "flowchart-elk", "sequenceDiagram", "classDiagram", "classDiagram-v2",
    "stateDiagram", "stateDiagram-v2", "erDiagram", "journey", "gantt", "pie", "quadrantChart",
    "requirementDiagram", "gitGraph", "C4Context", "C4Container", "C4Component", "C4Dynamic",
    "C4Deployment", "mindmap", "timeline", "sankey-beta", "xychart-beta", "block-beta",
    "packet-beta", "architecture-beta", "kanban",
}


class FetchError(Exception):

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class DiagramError(Exception):
    pass


def text_diagram_renderer(source: str) -> str:
    """Validate a Mermaid block and render it as a labelled source listing."""
    lines = [line.strip() for line in source.strip().splitlines()]
    if lines and lines[0] == "---":
        try:
            lines = lines[lines.index("---", 1) + 1:]
        except ValueError:
            raise DiagramError("Unterminated front matter in diagram") from None
    lines = [line for line in lines if line and not line.startswith("%%")]
    if not lines:
        raise DiagramError("Empty diagram")
    keyword = lines[0].split()[0].rstrip(";:")
    if keyword not in MERMAID_DIAGRAM_TYPES:
        raise DiagramError(f"No diagram type detected matching given configuration for text: {lines[0]}")
    return f'<pre class="diagram-source" data-diagram-type="{keyword}">{html.escape(source.strip())}</pre>'


def diagram_error_html(message: str, source: str) -> str:
    return (
        '<div class="mermaid-error">'
        "<strong>Mermaid Diagram Error:</strong><br>"
        f"<code>{html.escape(message)}</code>"
        "<details><summary>Show diagram code</summary>"
        f"<pre><code>{html.escape(source)}</code></pre>"
        "</details></div>"
    )


def process_diagrams(document_html: str, render) -> str:
    """Replace every Mermaid code block with ``render(source)`` output.

    A block whose rendering fails becomes an inline error with the original
    source; the other blocks and the surrounding markup are unaffected.
    """
    count = 0

    def replace(m):
        nonlocal count
        count += 1
        source = html.unescape(m.group(1)).strip()
        try:
            rendered = render(source)
        except Exception as exc:
            logger.warning("Diagram %d failed to render: %s", count, exc)
            return diagram_error_html(str(exc), source)
        return f'<div class="mermaid-diagram">{rendered}</div>'

    return DIAGRAM_BLOCK_RE.sub(replace, document_html)


@dataclass
class History:
    entries: list = field(default_factory=list)

    def push(self, url: str) -> None:
        if not self.entries or self.entries[-1] != url:
            self.entries.append(url)

    @property
    def current(self) -> str | None:
        return self.entries[-1] if self.entries else None


@dataclass
class AppState:
    tree: list = field(default_factory=list)
    filtered: tuple = ()
    query: str = ""
    document: dict | None = None
    error: str | None = None
    last_request_id: int = 0
    view: TreeView = field(default_factory=TreeView)

    def load_tree(self, nodes) -> None:
        self.tree = list(nodes)
        self.set_query(self.query)

    def set_query(self, query: str) -> None:
        self.query = normalize_query(query)
        self.filtered = filter_tree(self.tree, self.query)
        self.view.apply_search(self.filtered, self.query)

    def clear_query(self) -> None:
        self.set_query("")

    def rows(self) -> list:
        return self.view.visible_rows(self.filtered)


class DocumentViewer:

    def __init__(self, fetch, state: AppState, history: History | None = None, render_diagram=text_diagram_renderer):
        self.fetch = fetch
        self.state = state
        self.history = history if history is not None else History()
        self.render_diagram = render_diagram

    def begin(self, path: str) -> int:
        self.state.last_request_id += 1
        self.state.view.activate(path)
        return self.state.last_request_id

    def complete(self, request_id: int, payload: dict | None = None, error: Exception | None = None, push_history: bool = True) -> bool:
        """Apply a finished fetch; returns False when a newer request superseded it."""
        if request_id != self.state.last_request_id:
            logger.debug("Discarding stale response for request %d", request_id)
            return False
        if error is not None:
            self.state.document = None
            self.state.error = f"Failed to load document: {error}"
            return True

        document = dict(payload)
        document["html"] = process_diagrams(document.get("html", ""), self.render_diagram)
        self.state.document = document
        self.state.error = None
        self.state.view.reveal(document["path"])
        if push_history:
            self.history.push("/" + document["path"])
        return True

    def open(self, path: str, push_history: bool = True) -> bool:
        request_id = self.begin(path)
        try:
            payload = self.fetch(path)
        except FetchError as exc:
            logger.info("Could not load %s: %s", path, exc)
            return self.complete(request_id, error=exc, push_history=push_history)
        return self.complete(request_id, payload, push_history=push_history)

    def close(self) -> None:
        self.state.document = None
        self.state.error = None
        self.state.view.clear_active()
