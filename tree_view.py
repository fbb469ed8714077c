from dataclasses import dataclass, field

from tree_filter import display_name, highlight_segments, matching_directories, normalize_query


@dataclass(frozen=True)
class TreeRow:
    depth: int
    name: str
    path: str
    is_dir: bool
    expanded: bool = False
    active: bool = False
    search_match: bool = False
    has_children: bool = False


@dataclass
class TreeView:
    """Expansion and selection state for the navigation tree."""

    expanded: set = field(default_factory=set)
    active_path: str | None = None

    def toggle(self, path: str) -> bool:
        # descendants keep their own state while hidden
        if path in self.expanded:
            self.expanded.discard(path)
            return False
        self.expanded.add(path)
        return True

    def activate(self, path: str) -> None:
        self.active_path = path

    def clear_active(self) -> None:
        self.active_path = None

    def apply_search(self, filtered, query: str) -> None:
        if normalize_query(query):
            self.expanded = matching_directories(filtered)
        else:
            self.expanded = set()

    def reveal(self, path: str) -> None:
        parts = path.split("/")
        for i in range(1, len(parts)):
            self.expanded.add("/".join(parts[:i]))

    def visible_rows(self, filtered, depth: int = 0) -> list:
        rows = []
        for item in filtered:
            if item.is_dir:
                is_open = item.path in self.expanded
                rows.append(TreeRow(depth, item.name, item.path, True,
                                    expanded=is_open,
                                    search_match=item.search_match,
                                    has_children=bool(item.children)))
                if is_open:
                    rows.extend(self.visible_rows(item.children, depth + 1))
            else:
                rows.append(TreeRow(depth, display_name(item.name), item.path, False,
                                    active=item.path == self.active_path,
                                    search_match=item.search_match))
        return rows


def _marked(text: str, query: str) -> str:
    return "".join(f"[{s}]" if matched else s for s, matched in highlight_segments(text, query))


def render_text(rows, query: str = "") -> str:
    lines = []
    for row in rows:
        indent = "  " * row.depth
        if row.is_dir:
            if not row.has_children:
                marker = "·"
            else:
                marker = "▾" if row.expanded else "▸"
            lines.append(f"{indent}{marker} {_marked(row.name, query)}/")
        else:
            active = " *" if row.active else ""
            lines.append(f"{indent}  {_marked(row.name, query)}{active}")
    return "\n".join(lines)
